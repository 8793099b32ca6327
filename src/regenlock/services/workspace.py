"""Content workspace: the surface a tool's UI layer talks to.

Holds one tool instance's version collection, its manual active-version
pointer and its section editor, and wires generation, fact-locked
regeneration, editing and export together. Everything runs on a single
timeline; there is never more than one generation, edit session or export
in flight.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Protocol, Tuple

from regenlock.facts.drift import OutputDriftReport, correct_output, drift_message
from regenlock.facts.extractor import extract_locked_facts
from regenlock.models.config import DriftConfig, ExportConfig
from regenlock.models.edit_session import SectionState
from regenlock.models.export import ExportSummary
from regenlock.models.generator import GeneratorOutput
from regenlock.models.locked_facts import LockedFacts
from regenlock.models.version_set import ContentItem, VersionSet
from regenlock.services import version_store
from regenlock.services.export_aggregator import ExportAggregator, ProgressCallback
from regenlock.services.file_operations import ArtifactEmitter
from regenlock.services.section_editor import BeginEditResult, CommitResult, SectionEditor
from regenlock.services.version_store import Versions
from regenlock.utils.ids import Clock, IdFactory, generate_random_uuid, utc_now
from regenlock.utils.logging import get_logger


logger = get_logger(__name__)


class ContentGenerator(Protocol):
    async def generate(self, brief: Dict[str, Any], locked_facts: Optional[LockedFacts] = None) -> GeneratorOutput:
        ...


@dataclass(frozen=True)
class RegenerationResult:
    version: VersionSet
    locked_facts: LockedFacts
    report: OutputDriftReport
    message: str

    @property
    def drift_corrected(self) -> bool:
        return self.report.any_drift_corrected


class ContentWorkspace:
    """
    One tool instance's generated content.

    Example:
        >>> workspace = ContentWorkspace(GeneratorClient(config.generator))
        >>> await workspace.generate({"businessName": "Ocala Spa"})
        >>> workspace.begin_edit(item_id, field="name")
        >>> workspace.commit("Sunset Logo")
        >>> result = await workspace.regenerate()
    """

    def __init__(
        self,
        generator: ContentGenerator,
        drift_config: Optional[DriftConfig] = None,
        export_config: Optional[ExportConfig] = None,
        id_factory: IdFactory = generate_random_uuid,
        clock: Clock = utc_now,
    ):
        self.generator = generator
        self.drift_config = drift_config or DriftConfig()
        self.export_config = export_config or ExportConfig()
        self.editor = SectionEditor(clock=clock)
        self._id_factory = id_factory
        self._clock = clock
        self._versions: Versions = ()
        self._active_id: Optional[str] = None

    # Version lifecycle

    @property
    def versions(self) -> Versions:
        return self._versions

    @property
    def active_id(self) -> Optional[str]:
        """Manual selection, or None when the latest version is auto-selected."""
        return self._active_id

    @property
    def active_version(self) -> Optional[VersionSet]:
        return version_store.get_active(self._versions, self._active_id)

    def effective_items(self) -> Tuple[ContentItem, ...]:
        """Active version's items, favorites first."""
        active = self.active_version
        return version_store.sort_for_display(active.items) if active else ()

    def effective_content(self) -> Dict[str, str]:
        """Slot key -> effective text for the active version."""
        active = self.active_version
        return {item.key: item.effective for item in active.items} if active else {}

    def _commit_version(self, brief: Dict[str, Any], output: GeneratorOutput) -> VersionSet:
        version = version_store.create_version(
            brief, output, id_factory=self._id_factory, clock=self._clock
        )
        self._versions = version_store.add_version(self._versions, version)
        # A fresh generation is shown through auto-selection
        self._active_id = None
        return version

    async def generate(self, brief: Dict[str, Any]) -> VersionSet:
        """
        Generate a new version from a brief.

        Raises:
            GeneratorError: Propagated unchanged; no version is created
        """
        output = await self.generator.generate(brief)
        return self._commit_version(brief, output)

    def current_locked_facts(self, extra: Optional[LockedFacts] = None) -> LockedFacts:
        """Facts locked from the active version's effective content, overlaid with ``extra``."""
        active = self.active_version
        base = extract_locked_facts(active.items, self.drift_config.cta_keys) if active else LockedFacts()
        return base.merged_with(extra)

    async def regenerate(
        self,
        brief: Optional[Dict[str, Any]] = None,
        extra_locked: Optional[LockedFacts] = None,
    ) -> RegenerationResult:
        """
        Regenerate while keeping locked facts.

        Args:
            brief: New inputs (defaults to the active version's brief snapshot)
            extra_locked: Caller-supplied facts that override extracted ones

        Returns:
            RegenerationResult with the new (auto-selected) version and drift report

        Raises:
            ValueError: If there is neither a brief nor an active version
            GeneratorError: Propagated unchanged; no version is created
        """
        active = self.active_version
        if brief is None:
            if active is None:
                raise ValueError("Nothing to regenerate: no brief and no existing version")
            brief = active.brief_snapshot

        locked = self.current_locked_facts(extra_locked)
        logger.info(
            "regeneration_started",
            from_version_id=active.id if active else None,
            locked_slots=[k for k, v in locked.model_dump().items() if v is not None],
        )

        output = await self.generator.generate(brief, locked)
        report = correct_output(
            output,
            locked,
            cta_keys=self.drift_config.cta_keys,
            short_cta_words=self.drift_config.short_cta_words,
        )
        version = self._commit_version(brief, report.output)
        message = drift_message(report)

        logger.info(
            "regeneration_finished",
            version_id=version.id,
            drift_corrected=report.any_drift_corrected,
            drift_detected=report.drift_detected,
        )
        return RegenerationResult(version=version, locked_facts=locked, report=report, message=message)

    def select(self, version_id: str) -> bool:
        """Manually select a version; False if it does not exist."""
        if not any(v.id == version_id for v in self._versions):
            return False
        self._active_id = version_id
        return True

    def delete(self, version_id: str) -> bool:
        """Delete a version; False if it does not exist."""
        target = next((v for v in self._versions if v.id == version_id), None)
        if target is None:
            return False
        remaining = version_store.delete_version(self._versions, version_id)
        self._versions = remaining
        self._active_id = version_store.clear_active_pointer(self._active_id, version_id)
        self.editor.forget(target.item_ids)
        return True

    # Section editing

    def _item(self, item_id: str) -> Optional[ContentItem]:
        return version_store.find_item(self._versions, item_id)

    def state(self, item_id: str) -> Optional[SectionState]:
        item = self._item(item_id)
        return self.editor.state(item) if item else None

    def is_edited_visible(self, item_id: str) -> bool:
        item = self._item(item_id)
        return bool(item) and self.editor.is_edited_visible(item)

    def effective(self, item_id: str) -> Optional[str]:
        item = self._item(item_id)
        return item.effective if item else None

    def begin_edit(self, item_id: str, field: str = "content") -> BeginEditResult:
        return self.editor.begin_edit(self._versions, item_id, field)

    def update_draft(self, text: str) -> bool:
        return self.editor.update_draft(text)

    def commit(self, draft: Optional[str] = None) -> CommitResult:
        result = self.editor.commit(self._versions, draft)
        self._versions = result.versions
        return result

    def cancel(self) -> Optional[SectionState]:
        return self.editor.cancel()

    def reset(self, item_id: str, field: Optional[str] = None) -> bool:
        """Reset an item to generated; False when nothing changed or the id is unknown."""
        updated = self.editor.reset(self._versions, item_id, field)
        changed = updated is not self._versions
        self._versions = updated
        return changed

    def toggle_compare(self, item_id: str) -> Optional[SectionState]:
        item = self._item(item_id)
        return self.editor.toggle_compare(item) if item else None

    def rename(self, item_id: str, new_name: str) -> bool:
        updated = version_store.rename_item(self._versions, item_id, new_name, clock=self._clock)
        changed = updated is not self._versions
        self._versions = updated
        return changed

    def toggle_favorite(self, item_id: str) -> bool:
        updated = version_store.toggle_favorite(self._versions, item_id, clock=self._clock)
        changed = updated is not self._versions
        self._versions = updated
        return changed

    # Export

    async def export(
        self,
        emitter: ArtifactEmitter,
        selection: Optional[Iterable[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
        fetcher: Optional[Any] = None,
    ) -> ExportSummary:
        """
        Export the active version (selection defaults to every item).

        Raises:
            ValueError: If there is no version to export
        """
        active = self.active_version
        if active is None:
            raise ValueError("Nothing to export yet.")
        aggregator = ExportAggregator(emitter, fetcher=fetcher, config=self.export_config, clock=self._clock)
        return await aggregator.run(active, selection, on_progress)
