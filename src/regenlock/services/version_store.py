"""Version store: pure functions over an ordered collection of version sets.

Every mutation returns a new top-level tuple. When nothing matches, the
input collection itself is returned; callers compare with ``is`` to learn
that an id was not found. Nothing here raises for a missing id.
"""

import copy
from typing import Any, Callable, Dict, Iterable, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from regenlock.models.generator import GeneratorOutput
from regenlock.models.version_set import ContentItem, SelectionSet, VersionSet
from regenlock.utils.ids import Clock, IdFactory, generate_random_uuid, utc_now
from regenlock.utils.logging import get_logger


logger = get_logger(__name__)

Versions = Tuple[VersionSet, ...]
ItemMutator = Callable[[ContentItem], ContentItem]


def create_version(
    brief: Dict[str, Any],
    output: GeneratorOutput,
    *,
    id_factory: IdFactory = generate_random_uuid,
    clock: Clock = utc_now,
) -> VersionSet:
    """
    Create a new version set from generator output.

    Assigns a fresh set id and a fresh id per item, and freezes a deep copy
    of the brief. Never looks at earlier versions.

    Args:
        brief: Inputs that produced this output
        output: Generator output
        id_factory: Source of unique ids
        clock: Source of the creation timestamp

    Returns:
        New VersionSet with no overrides
    """
    created_at = clock()
    items = tuple(
        ContentItem(
            id=id_factory(),
            key=generated.key,
            title=generated.title or generated.key,
            generated=generated.text,
            attributes=copy.deepcopy(generated.attributes),
            created_at=created_at,
            updated_at=created_at,
        )
        for generated in output.items
    )
    version = VersionSet(
        id=id_factory(),
        created_at=created_at,
        brief_snapshot=copy.deepcopy(dict(brief)),
        items=items,
    )
    logger.info("version_created", version_id=version.id, item_count=len(items))
    return version


def add_version(versions: Versions, version: VersionSet) -> Versions:
    """Append a version set to the collection."""
    return tuple(versions) + (version,)


def get_active(versions: Sequence[VersionSet], active_id: Optional[str]) -> Optional[VersionSet]:
    """
    Resolve the active version set.

    A manual selection (``active_id``) always wins. Without one, or when it
    no longer matches anything, the most recently created set is used.

    Returns:
        Active VersionSet, or None when there are no versions
    """
    if not versions:
        return None
    if active_id:
        for version in versions:
            if version.id == active_id:
                return version
    # Latest created_at wins; later position breaks ties
    return max(enumerate(versions), key=lambda pair: (pair[1].created_at, pair[0]))[1]


def delete_version(versions: Versions, version_id: str) -> Versions:
    """Remove a version set; returns ``versions`` itself when the id is unknown."""
    remaining = tuple(v for v in versions if v.id != version_id)
    if len(remaining) == len(versions):
        logger.info("version_delete_not_found", version_id=version_id)
        return versions
    logger.info("version_deleted", version_id=version_id, remaining=len(remaining))
    return remaining


def clear_active_pointer(active_id: Optional[str], deleted_id: str) -> Optional[str]:
    """Drop the manual selection if it pointed at the deleted set (auto-select resumes)."""
    return None if active_id == deleted_id else active_id


def find_item(versions: Iterable[VersionSet], item_id: str) -> Optional[ContentItem]:
    """Look an item up by id across every version."""
    for version in versions:
        item = version.get_item(item_id)
        if item is not None:
            return item
    return None


def update_item(versions: Versions, item_id: str, mutator: ItemMutator) -> Versions:
    """
    Apply ``mutator`` to the item with ``item_id``, wherever it lives.

    Edits are addressed by item id, never by version and index.

    Args:
        versions: Current collection
        item_id: Target item
        mutator: Returns the replacement item

    Returns:
        New collection, or ``versions`` itself (same object) if the id is not found
    """
    for v_index, version in enumerate(versions):
        for i_index, item in enumerate(version.items):
            if item.id != item_id:
                continue
            updated = mutator(item)
            items = version.items[:i_index] + (updated,) + version.items[i_index + 1:]
            new_version = version.model_copy(update={"items": items})
            return versions[:v_index] + (new_version,) + versions[v_index + 1:]

    logger.debug("item_not_found", item_id=item_id)
    return versions


def rename_item(versions: Versions, item_id: str, new_name: str, *, clock: Clock = utc_now) -> Versions:
    """
    Rename an item (its display name is the overridable text).

    Blank names are ignored (same object returned). Renaming back to the
    generated name clears the override but keeps the ``name`` flag.
    """
    trimmed = new_name.strip()
    if not trimmed:
        return versions

    def _rename(item: ContentItem) -> ContentItem:
        return item.model_copy(update={
            "edited": None if trimmed == item.generated else trimmed,
            "edited_flags": {**item.edited_flags, "name": True},
            "updated_at": clock(),
        })

    return update_item(versions, item_id, _rename)


def toggle_favorite(versions: Versions, item_id: str, *, clock: Clock = utc_now) -> Versions:
    """Flip an item's favorite marker."""

    def _toggle(item: ContentItem) -> ContentItem:
        return item.model_copy(update={
            "favorite": not item.favorite,
            "edited_flags": {**item.edited_flags, "favorite": True},
            "updated_at": clock(),
        })

    return update_item(versions, item_id, _toggle)


class SelectionAction(BaseModel):
    """A bulk-selection change (toggle one id, select all, clear, set/add/remove many)."""

    type: Literal["toggle", "select_all", "clear", "set", "add", "remove"]
    id: Optional[str] = None
    ids: Tuple[str, ...] = Field(default=())


def apply_bulk_selection(selection: Iterable[str], action: SelectionAction) -> SelectionSet:
    """Pure multi-select update; never mutates ``selection``."""
    base = set(selection)

    if action.type == "toggle" and action.id is not None:
        if action.id in base:
            base.discard(action.id)
        else:
            base.add(action.id)
    elif action.type in ("select_all", "set"):
        base = set(action.ids)
    elif action.type == "clear":
        base = set()
    elif action.type == "add":
        base.update(action.ids)
    elif action.type == "remove":
        base.difference_update(action.ids)

    return frozenset(base)


def resolve_selection(version: VersionSet, selection: Optional[Iterable[str]] = None) -> Tuple[ContentItem, ...]:
    """
    Items participating in a bulk action, in canonical order.

    An empty or missing selection means every item of the version.
    Unknown ids are ignored.
    """
    wanted = set(selection or ())
    if not wanted:
        return version.items
    return tuple(item for item in version.items if item.id in wanted)


def sort_for_display(items: Sequence[ContentItem]) -> Tuple[ContentItem, ...]:
    """Favorites first; original order kept within each group."""
    return tuple(sorted(items, key=lambda item: not item.favorite))


def version_status(version: VersionSet) -> Literal["draft", "generated", "edited"]:
    """'draft' when nothing was generated, 'edited' when any item has a visible edit."""
    if not any(item.generated.strip() for item in version.items):
        return "draft"
    if any(item.has_visible_edit for item in version.items):
        return "edited"
    return "generated"


def can_export(version: Optional[VersionSet], required_keys: Iterable[str] = ()) -> Tuple[bool, Optional[str]]:
    """
    Check that a version has something worth exporting.

    Returns:
        (True, None) or (False, reason)
    """
    if version is None:
        return False, "Nothing to export yet."

    seen = set()
    for item in version.items:
        if item.key in seen:
            return False, f"Export data is corrupted (duplicate section: {item.key})."
        seen.add(item.key)

    by_key = {item.key: item for item in version.items}
    for key in required_keys:
        item = by_key.get(key)
        if item is None or not item.effective.strip():
            return False, f"Missing required export section: {key}."

    if not any(item.effective.strip() for item in version.items):
        return False, "Nothing to export yet."

    return True, None
