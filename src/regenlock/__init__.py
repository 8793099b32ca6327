"""Regenlock: versioned generated content with edit overlays and fact-locked regeneration."""

__version__ = "0.1.0"
