"""Fact extraction and drift correction for fact-locked regeneration."""
