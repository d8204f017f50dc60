"""Unit tests for the bounded undo/redo History."""

import pytest

from collabtex.contexts.editing.history import DEFAULT_HISTORY_LIMIT, History


@pytest.mark.unit
def test_history_seeded_with_initial_content():
    """A new history holds exactly one snapshot with the cursor on it."""
    history = History("start")

    assert len(history) == 1
    assert history.cursor == 0
    assert history.current == "start"
    assert not history.can_undo()
    assert not history.can_redo()


@pytest.mark.unit
def test_history_rejects_zero_limit():
    with pytest.raises(ValueError, match="at least 1"):
        History(limit=0)


class TestPush:
    """Tests for History.push append semantics."""

    @pytest.mark.unit
    def test_push_appends_and_moves_cursor(self):
        history = History("a")

        assert history.push("b") is True
        assert history.snapshots == ("a", "b")
        assert history.cursor == 1

    @pytest.mark.unit
    def test_push_identical_content_is_noop(self):
        """Recording the content already under the cursor does not grow the history."""
        history = History("a")
        history.push("b")

        assert history.push("b") is False
        assert len(history) == 2
        assert history.cursor == 1

    @pytest.mark.unit
    def test_push_after_undo_truncates_redo_branch(self):
        history = History("a")
        history.push("b")
        history.push("c")
        history.undo()
        history.undo()

        history.push("x")

        assert history.snapshots == ("a", "x")
        assert history.cursor == 1
        assert not history.can_redo()

    @pytest.mark.unit
    def test_push_equal_to_cursor_keeps_redo_branch(self):
        """A no-op push while behind the end must not discard redo."""
        history = History("a")
        history.push("b")
        history.undo()

        assert history.push("a") is False
        assert history.can_redo()
        assert history.redo() == "b"


class TestEviction:
    """Tests for the snapshot cap."""

    @pytest.mark.unit
    def test_default_limit_is_fifty(self):
        assert DEFAULT_HISTORY_LIMIT == 50

    @pytest.mark.unit
    def test_length_never_exceeds_limit(self):
        history = History("e0", limit=5)
        for i in range(1, 20):
            history.push(f"e{i}")
            assert len(history) <= 5

        assert history.snapshots == ("e15", "e16", "e17", "e18", "e19")
        assert history.cursor == 4

    @pytest.mark.unit
    def test_cursor_tracks_same_edit_after_eviction(self):
        history = History("", limit=DEFAULT_HISTORY_LIMIT)
        for i in range(1, 51):
            history.push(f"edit {i}")

        # 51 snapshots were pushed in total; the seed was evicted
        assert len(history) == 50
        assert history.snapshots[0] == "edit 1"
        assert history.current == "edit 50"

    @pytest.mark.unit
    def test_fifty_one_edits_undo_fifty_times(self):
        """After 51 distinct edits, 50 undos stop at the 2nd edit (the 1st was evicted)."""
        history = History("edit 1", limit=50)
        for i in range(2, 52):
            history.push(f"edit {i}")
        assert len(history) == 50

        result = None
        for _ in range(50):
            step = history.undo()
            if step is not None:
                result = step

        assert result == "edit 2"
        assert history.current == "edit 2"
        assert history.cursor == 0


class TestUndoRedo:
    """Tests for cursor movement."""

    @pytest.mark.unit
    def test_undo_at_start_returns_none(self):
        history = History("only")

        assert history.undo() is None
        assert history.cursor == 0

    @pytest.mark.unit
    def test_redo_at_end_returns_none(self):
        history = History("a")
        history.push("b")

        assert history.redo() is None
        assert history.cursor == 1

    @pytest.mark.unit
    @pytest.mark.parametrize("steps", [1, 3, 7])
    def test_undo_then_redo_round_trip(self, steps):
        """N undos followed by N redos return to the latest content."""
        history = History("v0")
        for i in range(1, 8):
            history.push(f"v{i}")

        for _ in range(steps):
            history.undo()
        assert history.current == f"v{7 - steps}"

        for _ in range(steps):
            history.redo()
        assert history.current == "v7"
