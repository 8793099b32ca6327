"""Pydantic data models for Regenlock."""

from regenlock.models.version_set import ContentItem, SelectionSet, VersionSet
from regenlock.models.generator import GeneratedItem, GeneratorOutput
from regenlock.models.locked_facts import DateFact, LockedFacts, NumericFact
from regenlock.models.edit_session import EditSession, SectionState
from regenlock.models.export import ExportFailure, ExportManifest, ExportProgress, ExportSummary

__all__ = [
    "ContentItem",
    "DateFact",
    "EditSession",
    "ExportFailure",
    "ExportManifest",
    "ExportProgress",
    "ExportSummary",
    "GeneratedItem",
    "GeneratorOutput",
    "LockedFacts",
    "NumericFact",
    "SectionState",
    "SelectionSet",
    "VersionSet",
]
