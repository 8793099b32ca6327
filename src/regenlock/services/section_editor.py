"""Section override engine: generated/edited overlay with a single edit slot.

States per item: clean (no override), overridden (visible override),
editing (the one open session targets it) and comparing (read-only
generated-vs-edited view of an overridden item). At most one session is
open at a time, held in one nullable slot.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Set

from regenlock.models.edit_session import EditSession, SectionState
from regenlock.models.version_set import ContentItem
from regenlock.services.version_store import Versions, find_item, update_item
from regenlock.utils.ids import Clock, utc_now
from regenlock.utils.logging import get_logger


logger = get_logger(__name__)

# Fields where a blank value is invalid rather than "no override"
EMPTY_INVALID_FIELDS = frozenset({"name"})

EMPTY_NAME_MESSAGE = "Name can't be empty, reverted."


class CommitStatus(str, Enum):
    SAVED = "saved"
    REVERTED = "reverted"  # draft equals generated
    CLEARED = "cleared"  # blank draft on a body field
    REJECTED_EMPTY = "rejected_empty"
    NOT_FOUND = "not_found"
    NO_SESSION = "no_session"


@dataclass(frozen=True)
class BeginEditResult:
    accepted: bool
    session: Optional[EditSession] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class CommitResult:
    status: CommitStatus
    versions: Versions
    item: Optional[ContentItem] = None
    message: Optional[str] = None
    changed: bool = False


class SectionEditor:
    """
    Edit-session controller for one tool instance.

    Committed state lives in the version collection (passed in and returned);
    the editor only owns the open session slot and the set of items whose
    compare view is open.

    Example:
        >>> editor = SectionEditor()
        >>> editor.begin_edit(versions, item_id, field="name")
        >>> result = editor.commit(versions, "Sunset Logo")
        >>> versions = result.versions
    """

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self._session: Optional[EditSession] = None
        self._comparing: Set[str] = set()

    @property
    def session(self) -> Optional[EditSession]:
        return self._session

    @property
    def active_item_id(self) -> Optional[str]:
        return self._session.item_id if self._session else None

    def state(self, item: ContentItem) -> SectionState:
        """Current state of an item, derived from values plus the editor slots."""
        if self._session is not None and self._session.item_id == item.id:
            return SectionState.EDITING
        if item.has_visible_edit:
            if item.id in self._comparing:
                return SectionState.COMPARING
            return SectionState.OVERRIDDEN
        return SectionState.CLEAN

    @staticmethod
    def is_edited_visible(item: ContentItem) -> bool:
        """Badge predicate, recomputed from values (edited_flags are not trusted for display)."""
        return item.has_visible_edit

    @staticmethod
    def effective(item: ContentItem) -> str:
        return item.effective

    def begin_edit(self, versions: Versions, item_id: str, field: str = "content") -> BeginEditResult:
        """
        Open an edit session on an item.

        Rejected while another item is being edited. Re-opening the item
        already being edited returns the open session unchanged. A compare
        view on the item is closed first.
        """
        item = find_item(versions, item_id)
        if item is None:
            return BeginEditResult(accepted=False, reason="not_found")

        if self._session is not None:
            if self._session.item_id == item_id:
                return BeginEditResult(accepted=True, session=self._session)
            logger.warning(
                "edit_rejected_busy",
                item_id=item_id,
                editing_item_id=self._session.item_id,
            )
            return BeginEditResult(accepted=False, reason="another_section_editing")

        self._comparing.discard(item_id)
        self._session = EditSession(
            item_id=item_id,
            field=field,
            draft=item.effective,
            prior_state=SectionState.OVERRIDDEN if item.has_visible_edit else SectionState.CLEAN,
        )
        logger.debug("edit_started", item_id=item_id, field=field)
        return BeginEditResult(accepted=True, session=self._session)

    def update_draft(self, text: str) -> bool:
        """Replace the draft buffer; False when no session is open."""
        if self._session is None:
            return False
        self._session.draft = text
        return True

    def commit(self, versions: Versions, draft: Optional[str] = None) -> CommitResult:
        """
        Commit the open session.

        Args:
            versions: Current collection
            draft: Final draft text (defaults to the session buffer)

        Returns:
            CommitResult; on REJECTED_EMPTY the session stays open with the
            draft reverted to the current value
        """
        session = self._session
        if session is None:
            return CommitResult(status=CommitStatus.NO_SESSION, versions=versions)

        item = find_item(versions, session.item_id)
        if item is None:
            self._session = None
            logger.warning("edit_target_missing", item_id=session.item_id)
            return CommitResult(status=CommitStatus.NOT_FOUND, versions=versions)

        text = session.draft if draft is None else draft
        if session.field in EMPTY_INVALID_FIELDS:
            text = text.strip()

        if not text.strip():
            if session.field in EMPTY_INVALID_FIELDS:
                session.draft = item.effective
                logger.warning("edit_rejected_empty", item_id=item.id, field=session.field)
                return CommitResult(
                    status=CommitStatus.REJECTED_EMPTY,
                    versions=versions,
                    item=item,
                    message=EMPTY_NAME_MESSAGE,
                )
            status, new_edited = CommitStatus.CLEARED, None
        elif text == item.generated:
            status, new_edited = CommitStatus.REVERTED, None
        else:
            status, new_edited = CommitStatus.SAVED, text

        self._session = None

        if new_edited == item.edited:
            logger.debug("edit_unchanged", item_id=item.id, status=status.value)
            return CommitResult(status=status, versions=versions, item=item)

        flags = dict(item.edited_flags)
        if status is CommitStatus.SAVED:
            flags[session.field] = True

        updated_versions = update_item(
            versions,
            item.id,
            lambda current: current.model_copy(update={
                "edited": new_edited,
                "edited_flags": flags,
                "updated_at": self._clock(),
            }),
        )
        updated = find_item(updated_versions, item.id)
        logger.info("edit_committed", item_id=item.id, field=session.field, status=status.value)
        return CommitResult(status=status, versions=updated_versions, item=updated, changed=True)

    def cancel(self) -> Optional[SectionState]:
        """Discard the draft and close the session; returns the state restored."""
        if self._session is None:
            return None
        prior = self._session.prior_state
        logger.debug("edit_cancelled", item_id=self._session.item_id)
        self._session = None
        return prior

    def reset(self, versions: Versions, item_id: str, field: Optional[str] = None) -> Versions:
        """
        Drop an item's override and its text edit flags.

        Closes any compare view or open session on the item. Resetting a
        clean item with no text flags returns ``versions`` itself.

        Args:
            versions: Current collection
            item_id: Target item
            field: Clear only this flag (default: every flag except favorite)
        """
        item = find_item(versions, item_id)
        if item is None:
            return versions

        self._comparing.discard(item_id)
        if self._session is not None and self._session.item_id == item_id:
            self._session = None

        if field is None:
            flags = {k: v for k, v in item.edited_flags.items() if k == "favorite"}
        else:
            flags = {k: v for k, v in item.edited_flags.items() if k != field}

        if item.edited is None and flags == item.edited_flags:
            return versions

        logger.info("edit_reset", item_id=item_id)
        return update_item(
            versions,
            item_id,
            lambda current: current.model_copy(update={
                "edited": None,
                "edited_flags": flags,
                "updated_at": self._clock(),
            }),
        )

    def toggle_compare(self, item: ContentItem) -> SectionState:
        """Overridden <-> comparing; any other state is left alone."""
        current = self.state(item)
        if current is SectionState.OVERRIDDEN:
            self._comparing.add(item.id)
        elif current is SectionState.COMPARING:
            self._comparing.discard(item.id)
        return self.state(item)

    def forget(self, item_ids) -> None:
        """Drop editor state for items that no longer exist (e.g. deleted version)."""
        ids = set(item_ids)
        self._comparing -= ids
        if self._session is not None and self._session.item_id in ids:
            self._session = None
