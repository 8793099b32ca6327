"""Identifier and timestamp sources for version sets and content items."""

import uuid
from datetime import datetime, timezone
from typing import Callable


IdFactory = Callable[[], str]
Clock = Callable[[], datetime]


def generate_random_uuid() -> str:
    """
    Generate random UUID v4.

    Used for every new version set and content item. IDs are never derived
    from list positions, so reordering or regenerating never changes the
    meaning of an ID already handed out.

    Returns:
        UUID string in standard format

    Example:
        >>> generate_random_uuid()
        "f47ac10b-58cc-4372-a567-0e02b2c3d479"
    """
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def sequential_ids(prefix: str = "id") -> IdFactory:
    """
    Build a deterministic ID factory ("id-1", "id-2", ...).

    Handy for reproducible fixtures and demo data.

    Args:
        prefix: Prefix for every generated ID

    Returns:
        Zero-argument callable returning the next ID
    """
    counter = 0

    def _next() -> str:
        nonlocal counter
        counter += 1
        return f"{prefix}-{counter}"

    return _next
