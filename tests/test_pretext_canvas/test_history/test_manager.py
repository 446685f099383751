"""Tests for snapshot history with debounced recording."""

import pytest

from pretext_canvas.history import SNAPSHOT_KEY, HistoryManager, HistoryState, Snapshot
from pretext_canvas.shared import HistoryConfig, HistoryUnderflow
from pretext_canvas.sync import VirtualClockScheduler


class FakeViews:
    """Minimal stand-in for the two views of an editing session."""

    def __init__(self, text: str = "v0") -> None:
        self.text = text
        self.modified = False
        self.applied = []

    def capture(self) -> Snapshot:
        return Snapshot(text=self.text, structure=f"<s>{self.text}</s>", modified=self.modified)

    def apply(self, snapshot: Snapshot) -> None:
        self.text = snapshot.text
        self.modified = snapshot.modified
        self.applied.append(snapshot.text)


def make_manager(views: FakeViews, **config_values):
    scheduler = VirtualClockScheduler()
    statuses = []
    availability = []
    manager = HistoryManager(
        capture=views.capture,
        apply=views.apply,
        scheduler=scheduler,
        config=HistoryConfig(**config_values),
        on_status=statuses.append,
        on_change=lambda can_undo, can_redo: availability.append((can_undo, can_redo)),
    )
    manager.reset()
    return manager, scheduler, statuses, availability


def edit(views: FakeViews, manager: HistoryManager, scheduler: VirtualClockScheduler, text: str) -> None:
    views.text = text
    views.modified = True
    manager.schedule_snapshot()
    scheduler.advance(manager.config.debounce_ms)


class TestSnapshot:
    """Test snapshot values."""

    def test_content_equality_ignores_modified_flag(self) -> None:
        """Test the modified flag is not part of content equality."""
        assert Snapshot("t", "s", False).same_content(Snapshot("t", "s", True))
        assert not Snapshot("t", "s").same_content(Snapshot("t", "other"))
        assert not Snapshot("t", "s").same_content(None)

    def test_history_state(self) -> None:
        """Test stack helpers."""
        state = HistoryState(undo_stack=[Snapshot("a", "a")])
        assert not state.can_undo
        assert state.current.text == "a"
        state.undo_stack.append(Snapshot("b", "b"))
        assert state.can_undo
        state.clear()
        assert state.current is None


class TestRecording:
    """Test snapshot recording and debouncing."""

    def test_reset_starts_with_current_state(self) -> None:
        """Test reset leaves exactly one entry."""
        manager, _, _, _ = make_manager(FakeViews())
        assert len(manager.state.undo_stack) == 1
        assert not manager.can_undo
        assert not manager.can_redo

    def test_rapid_edits_coalesce(self) -> None:
        """Test five quick edits produce a single history entry."""
        views = FakeViews()
        manager, scheduler, _, _ = make_manager(views)

        for number in range(1, 6):
            views.text = f"v{number}"
            manager.schedule_snapshot()
            scheduler.advance(100)
        assert manager.has_pending
        assert len(manager.state.undo_stack) == 1

        scheduler.advance(400)
        assert not manager.has_pending
        assert [snapshot.text for snapshot in manager.state.undo_stack] == ["v0", "v5"]

    def test_unchanged_content_is_skipped(self) -> None:
        """Test duplicate snapshots are only recorded when forced."""
        manager, _, _, _ = make_manager(FakeViews())
        assert not manager.record_snapshot()
        assert manager.record_snapshot(force=True)
        assert len(manager.state.undo_stack) == 2

    def test_max_depth_drops_oldest(self) -> None:
        """Test the bounded history."""
        views = FakeViews()
        manager, scheduler, _, _ = make_manager(views, max_depth=3)
        for number in range(1, 6):
            edit(views, manager, scheduler, f"v{number}")
        assert [snapshot.text for snapshot in manager.state.undo_stack] == ["v3", "v4", "v5"]

    def test_no_recording_while_applying(self) -> None:
        """Test snapshots requested during an apply are ignored."""
        views = FakeViews()
        manager, scheduler, _, _ = make_manager(views)
        edit(views, manager, scheduler, "v1")

        recorded = []
        original_apply = views.apply

        def apply_and_record(snapshot):
            original_apply(snapshot)
            recorded.append(manager.record_snapshot(force=True))
            manager.schedule_snapshot()

        manager.apply = apply_and_record
        manager.undo()

        assert recorded == [False]
        assert not scheduler.has_pending(SNAPSHOT_KEY)
        assert not manager.state.applying

    def test_availability_notifications(self) -> None:
        """Test listeners hear about availability changes only."""
        views = FakeViews()
        manager, scheduler, _, availability = make_manager(views)
        edit(views, manager, scheduler, "v1")
        edit(views, manager, scheduler, "v2")
        assert availability == [(True, False)]

        manager.undo()
        assert availability[-1] == (True, True)


class TestUndoRedo:
    """Test moving through the history."""

    def test_undo_redo_are_inverse(self) -> None:
        """Test undo then redo returns to the same state."""
        views = FakeViews()
        manager, scheduler, _, _ = make_manager(views)
        edit(views, manager, scheduler, "v1")
        edit(views, manager, scheduler, "v2")

        assert manager.undo()
        assert views.text == "v1"
        assert manager.undo()
        assert views.text == "v0"
        assert views.modified is False
        assert manager.redo()
        assert manager.redo()
        assert views.text == "v2"
        assert views.modified is True
        assert not manager.can_redo

    def test_new_edit_clears_redo(self) -> None:
        """Test branching discards undone states."""
        views = FakeViews()
        manager, scheduler, _, _ = make_manager(views)
        edit(views, manager, scheduler, "v1")
        manager.undo()
        assert manager.can_redo

        edit(views, manager, scheduler, "other")
        assert not manager.can_redo

    def test_nothing_to_undo(self) -> None:
        """Test underflow is reported through the status callback."""
        manager, _, statuses, _ = make_manager(FakeViews())
        assert not manager.undo()
        assert not manager.redo()
        assert statuses == ["Nothing to undo", "Nothing to redo"]

    def test_underflow_can_raise(self) -> None:
        """Test strict mode."""
        views = FakeViews()
        manager = HistoryManager(
            views.capture, views.apply, VirtualClockScheduler(), raise_on_underflow=True
        )
        manager.reset()
        with pytest.raises(HistoryUnderflow):
            manager.undo()

    def test_undo_flushes_pending_snapshot(self) -> None:
        """Test an edit still waiting for its debounce can be undone."""
        views = FakeViews()
        manager, scheduler, _, _ = make_manager(views)
        views.text = "typed"
        manager.schedule_snapshot()

        assert manager.undo()
        assert views.text == "v0"
        assert manager.state.redo_stack[-1].text == "typed"

    def test_undo_can_discard_pending_snapshot(self) -> None:
        """Test the cancel policy leaves the pending edit out of history."""
        views = FakeViews()
        manager, scheduler, statuses, _ = make_manager(views, flush_pending_on_undo=False)
        views.text = "typed"
        manager.schedule_snapshot()

        assert not manager.undo()
        assert views.text == "typed"
        assert statuses == ["Nothing to undo"]
        assert not manager.has_pending

    def test_on_applied_runs_after_guard(self) -> None:
        """Test the resynchronization hook sees the guard released."""
        views = FakeViews()
        seen = []
        scheduler = VirtualClockScheduler()
        manager = HistoryManager(
            views.capture,
            views.apply,
            scheduler,
            on_applied=lambda snapshot: seen.append((snapshot.text, manager.state.applying)),
        )
        manager.reset()
        edit(views, manager, scheduler, "v1")
        manager.undo()
        assert seen == [("v0", False)]
