"""Unit tests for the section override engine."""

import pytest

from regenlock.models.edit_session import SectionState
from regenlock.services.section_editor import EMPTY_NAME_MESSAGE, CommitStatus, SectionEditor
from regenlock.services.version_store import find_item


@pytest.fixture
def editor(clock):
    return SectionEditor(clock=clock)


def item_at(versions, index):
    return versions[0].items[index]


class TestBeginEdit:
    """Tests for opening edit sessions."""

    def test_draft_seeded_from_effective(self, editor, logo_versions):
        """Test that the draft starts from the current effective value."""
        target = item_at(logo_versions, 0)

        result = editor.begin_edit(logo_versions, target.id, field="name")

        assert result.accepted is True
        assert result.session.draft == "Sunrise Mark"
        assert result.session.prior_state is SectionState.CLEAN
        assert editor.state(target) is SectionState.EDITING

    def test_only_one_session_at_a_time(self, editor, logo_versions):
        """Test that a second item cannot be edited while one is open."""
        editor.begin_edit(logo_versions, item_at(logo_versions, 0).id)

        result = editor.begin_edit(logo_versions, item_at(logo_versions, 1).id)

        assert result.accepted is False
        assert result.reason == "another_section_editing"
        assert editor.active_item_id == item_at(logo_versions, 0).id

    def test_reopening_same_item_keeps_session(self, editor, logo_versions):
        """Test that begin_edit on the item being edited returns the open session."""
        target = item_at(logo_versions, 0)
        first = editor.begin_edit(logo_versions, target.id)
        editor.update_draft("Work in progress")

        again = editor.begin_edit(logo_versions, target.id)

        assert again.accepted is True
        assert again.session is first.session
        assert again.session.draft == "Work in progress"

    def test_unknown_item(self, editor, logo_versions):
        """Test that an unknown id is reported, not raised."""
        result = editor.begin_edit(logo_versions, "missing")

        assert result.accepted is False
        assert result.reason == "not_found"
        assert editor.session is None

    def test_begin_edit_closes_compare_view(self, editor, logo_versions):
        """Test that editing an item in compare view leaves compare."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id)
        versions = editor.commit(logo_versions, "Dawn Mark").versions
        edited = find_item(versions, target.id)
        editor.toggle_compare(edited)

        editor.begin_edit(versions, target.id)
        editor.cancel()

        assert editor.state(edited) is SectionState.OVERRIDDEN


class TestCommit:
    """Tests for committing drafts."""

    def test_commit_saves_override(self, editor, logo_versions):
        """Test that a different draft becomes the override."""
        target = item_at(logo_versions, 1)
        editor.begin_edit(logo_versions, target.id, field="name")

        result = editor.commit(logo_versions, "Sunset Logo")
        item = find_item(result.versions, target.id)

        assert result.status is CommitStatus.SAVED
        assert result.changed is True
        assert item.effective == "Sunset Logo"
        assert item.edited_flags == {"name": True}
        assert item.updated_at > target.updated_at
        assert editor.session is None
        assert editor.state(item) is SectionState.OVERRIDDEN

    def test_commit_uses_session_draft(self, editor, logo_versions):
        """Test that commit without an argument uses the draft buffer."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id)
        editor.update_draft("Typed text")

        result = editor.commit(logo_versions)

        assert find_item(result.versions, target.id).effective == "Typed text"

    def test_commit_generated_text_round_trips_to_clean(self, editor, logo_versions):
        """Test that committing the generated text leaves no override."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id)
        versions = editor.commit(logo_versions, "Dawn Mark").versions

        editor.begin_edit(versions, target.id)
        result = editor.commit(versions, target.generated)
        item = find_item(result.versions, target.id)

        assert result.status is CommitStatus.REVERTED
        assert item.effective == target.generated
        assert item.edited is None
        assert editor.state(item) is SectionState.CLEAN
        assert SectionEditor.is_edited_visible(item) is False

    def test_commit_unchanged_returns_same_collection(self, editor, logo_versions):
        """Test that committing the generated text on a clean item changes nothing."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id)

        result = editor.commit(logo_versions, target.generated)

        assert result.versions is logo_versions
        assert result.changed is False

    def test_empty_name_rejected_and_session_kept(self, editor, logo_versions):
        """Test that an empty name is rejected with a message, not discarded."""
        target = item_at(logo_versions, 1)
        editor.begin_edit(logo_versions, target.id, field="name")

        result = editor.commit(logo_versions, "   ")

        assert result.status is CommitStatus.REJECTED_EMPTY
        assert result.message == EMPTY_NAME_MESSAGE
        assert result.versions is logo_versions
        assert editor.session is not None
        assert editor.session.draft == "Harbor Light"

    def test_empty_body_clears_override(self, editor, logo_versions):
        """Test that an empty body draft means no override."""
        target = item_at(logo_versions, 2)
        editor.begin_edit(logo_versions, target.id, field="content")
        versions = editor.commit(logo_versions, "Custom copy").versions

        editor.begin_edit(versions, target.id, field="content")
        result = editor.commit(versions, "")

        assert result.status is CommitStatus.CLEARED
        assert find_item(result.versions, target.id).effective == target.generated
        assert editor.session is None

    def test_commit_without_session(self, editor, logo_versions):
        """Test committing when nothing is open."""
        result = editor.commit(logo_versions, "text")

        assert result.status is CommitStatus.NO_SESSION
        assert result.versions is logo_versions

    def test_commit_after_item_disappeared(self, editor, logo_versions):
        """Test that a session whose item is gone closes with not_found."""
        editor.begin_edit(logo_versions, item_at(logo_versions, 0).id)

        result = editor.commit((), "text")

        assert result.status is CommitStatus.NOT_FOUND
        assert editor.session is None


class TestCancel:
    """Tests for cancel."""

    def test_cancel_restores_prior_state(self, editor, logo_versions):
        """Test that cancel discards the draft without touching committed state."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id)
        editor.update_draft("Never saved")

        assert editor.cancel() is SectionState.CLEAN
        assert editor.session is None
        assert find_item(logo_versions, target.id).edited is None

    def test_cancel_without_session(self, editor):
        """Test that cancel with nothing open is a no-op."""
        assert editor.cancel() is None
        assert editor.update_draft("x") is False


class TestReset:
    """Tests for reset."""

    def test_reset_clears_override_and_text_flags(self, editor, logo_versions, clock):
        """Test that reset returns the item to generated but keeps favorite."""
        from regenlock.services.version_store import toggle_favorite

        target = item_at(logo_versions, 1)
        versions = toggle_favorite(logo_versions, target.id, clock=clock)
        editor.begin_edit(versions, target.id, field="name")
        versions = editor.commit(versions, "Sunset Logo").versions

        versions = editor.reset(versions, target.id)
        item = find_item(versions, target.id)

        assert item.edited is None
        assert item.effective == "Harbor Light"
        assert item.edited_flags == {"favorite": True}
        assert item.favorite is True

    def test_reset_is_idempotent(self, editor, logo_versions):
        """Test that a second reset is a no-op."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id)
        versions = editor.commit(logo_versions, "Dawn Mark").versions

        once = editor.reset(versions, target.id)
        twice = editor.reset(once, target.id)

        assert twice is once
        assert find_item(twice, target.id) == find_item(once, target.id)

    def test_reset_closes_open_session(self, editor, logo_versions):
        """Test that resetting the item being edited closes its session."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id)

        editor.reset(logo_versions, target.id)

        assert editor.session is None

    def test_reset_single_flag(self, editor, logo_versions):
        """Test clearing only one flag."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id, field="name")
        versions = editor.commit(logo_versions, "Dawn Mark").versions

        versions = editor.reset(versions, target.id, field="name")

        assert find_item(versions, target.id).edited_flags == {}

    def test_reset_unknown_item(self, editor, logo_versions):
        """Test the not-found signal on reset."""
        assert editor.reset(logo_versions, "missing") is logo_versions


class TestCompare:
    """Tests for the compare view."""

    def test_toggle_compare_on_overridden(self, editor, logo_versions):
        """Test overridden <-> comparing."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id)
        versions = editor.commit(logo_versions, "Dawn Mark").versions
        item = find_item(versions, target.id)

        assert editor.toggle_compare(item) is SectionState.COMPARING
        assert editor.toggle_compare(item) is SectionState.OVERRIDDEN

    def test_toggle_compare_on_clean_is_noop(self, editor, logo_versions):
        """Test that compare is unreachable from clean."""
        assert editor.toggle_compare(item_at(logo_versions, 0)) is SectionState.CLEAN

    def test_toggle_compare_while_editing_is_noop(self, editor, logo_versions):
        """Test that compare is unreachable while editing."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id)

        assert editor.toggle_compare(target) is SectionState.EDITING

    def test_reset_closes_compare(self, editor, logo_versions):
        """Test that reset leaves the compare view."""
        target = item_at(logo_versions, 0)
        editor.begin_edit(logo_versions, target.id)
        versions = editor.commit(logo_versions, "Dawn Mark").versions
        editor.toggle_compare(find_item(versions, target.id))

        versions = editor.reset(versions, target.id)

        assert editor.state(find_item(versions, target.id)) is SectionState.CLEAN
