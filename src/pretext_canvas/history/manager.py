"""Snapshot-based undo/redo with debounced coalescing.

The manager never inspects the views itself. It obtains the current state
through a ``capture`` callback and writes a state back through an ``apply``
callback, so the same manager works for any front end that can produce and
restore a ``Snapshot``.
"""

from typing import TYPE_CHECKING, Callable, Optional

from pretext_canvas.shared import HistoryConfig, HistoryUnderflow, get_logger

from .snapshot import HistoryState, Snapshot

if TYPE_CHECKING:
    from pretext_canvas.sync.scheduler import Scheduler

SNAPSHOT_KEY = "history.snapshot"

AvailabilityCallback = Callable[[bool, bool], None]
StatusCallback = Callable[[str], None]


class HistoryManager:
    """Undo and redo stacks of whole-document snapshots.

    Rapid edits are coalesced: ``schedule_snapshot`` (re)arms a single
    debounce timer and only the state present when it fires is recorded.
    Explicit operations such as element insertion call
    ``record_snapshot(force=True)`` instead.
    """

    def __init__(
        self,
        capture: Callable[[], Snapshot],
        apply: Callable[[Snapshot], None],
        scheduler: "Scheduler",
        config: Optional[HistoryConfig] = None,
        state: Optional[HistoryState] = None,
        on_applied: Optional[Callable[[Snapshot], None]] = None,
        on_change: Optional[AvailabilityCallback] = None,
        on_status: Optional[StatusCallback] = None,
        raise_on_underflow: bool = False,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize the history manager.

        Args:
            capture: Returns the current state of the views
            apply: Overwrites both views with a snapshot
            scheduler: Timer source for the debounce callback
            config: History configuration
            state: Stacks to operate on, typically owned by an ``EditorContext``
            on_applied: Called once after a snapshot was applied, outside the
                guard, to resynchronize derived state
            on_change: Called with ``(can_undo, can_redo)`` when availability changes
            on_status: Called with transient status messages
            raise_on_underflow: Raise ``HistoryUnderflow`` instead of reporting
            correlation_id: Session identifier for log records
        """
        self.capture = capture
        self.apply = apply
        self.scheduler = scheduler
        self.config = config or HistoryConfig()
        self.state = state if state is not None else HistoryState()
        self.on_applied = on_applied
        self.on_change = on_change
        self.on_status = on_status
        self.raise_on_underflow = raise_on_underflow
        self.logger = get_logger(__name__, correlation_id, "history")
        self._availability = (self.can_undo, self.can_redo)

    @property
    def can_undo(self) -> bool:
        return self.state.can_undo

    @property
    def can_redo(self) -> bool:
        return self.state.can_redo

    @property
    def has_pending(self) -> bool:
        """A debounced snapshot is waiting to be recorded."""
        return self.scheduler.has_pending(SNAPSHOT_KEY)

    def record_snapshot(self, force: bool = False) -> bool:
        """Push the current state onto the undo stack.

        The first snapshot is always pushed. Later ones are skipped when they
        are content-equal to the top of the stack, unless ``force`` is set.
        Any push clears the redo stack.

        Returns:
            True if a snapshot was pushed
        """
        if self.state.applying:
            return False

        snapshot = self.capture()
        undo_stack = self.state.undo_stack
        if undo_stack and not force and snapshot.same_content(undo_stack[-1]):
            self.logger.debug("Snapshot skipped, content unchanged")
            return False

        undo_stack.append(snapshot)
        self.state.redo_stack.clear()
        max_depth = self.config.max_depth
        if max_depth is not None:
            while len(undo_stack) > max_depth:
                undo_stack.pop(0)

        self.logger.debug(
            "Snapshot recorded",
            extra={"undo_depth": len(undo_stack), "forced": force},
        )
        self._notify_availability()
        return True

    def schedule_snapshot(self) -> None:
        """Arm (or re-arm) the debounce timer for a coalesced snapshot."""
        if self.state.applying:
            return
        self.scheduler.schedule_after(
            self.config.debounce_ms, self._record_debounced, key=SNAPSHOT_KEY
        )

    def _record_debounced(self) -> None:
        self.record_snapshot(False)

    def cancel_pending(self) -> bool:
        """Drop the pending debounced snapshot, if any."""
        return self.scheduler.cancel(SNAPSHOT_KEY)

    def flush_pending(self) -> bool:
        """Record the pending debounced snapshot immediately, if any."""
        return self.scheduler.flush(SNAPSHOT_KEY)

    def undo(self) -> bool:
        """Step back to the previous snapshot.

        Returns:
            True if a snapshot was applied; False with a "Nothing to undo"
            status when the current state is the oldest one
        """
        if self.config.flush_pending_on_undo:
            self.flush_pending()
        else:
            self.cancel_pending()

        if not self.state.can_undo:
            return self._underflow("undo")

        self.state.redo_stack.append(self.state.undo_stack.pop())
        self._apply(self.state.undo_stack[-1])
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone snapshot.

        Returns:
            True if a snapshot was applied; False with a "Nothing to redo"
            status when nothing was undone
        """
        if self.config.flush_pending_on_undo:
            self.flush_pending()
        else:
            self.cancel_pending()

        if not self.state.can_redo:
            return self._underflow("redo")

        snapshot = self.state.redo_stack.pop()
        self.state.undo_stack.append(snapshot)
        self._apply(snapshot)
        return True

    def reset(self, snapshot: Optional[Snapshot] = None) -> None:
        """Start a fresh history whose only entry is ``snapshot`` (or the current state)."""
        self.cancel_pending()
        self.state.clear()
        self.state.undo_stack.append(snapshot if snapshot is not None else self.capture())
        self.logger.debug("History reset")
        self._notify_availability()

    def _underflow(self, direction: str) -> bool:
        error = HistoryUnderflow(direction)
        if self.raise_on_underflow:
            raise error
        self.logger.debug(str(error))
        if self.on_status is not None:
            self.on_status(str(error))
        return False

    def _apply(self, snapshot: Snapshot) -> None:
        self.state.applying = True
        try:
            self.apply(snapshot)
        finally:
            self.state.applying = False
        if self.on_applied is not None:
            self.on_applied(snapshot)
        self._notify_availability(force=True)

    def _notify_availability(self, force: bool = False) -> None:
        availability = (self.can_undo, self.can_redo)
        if not force and availability == self._availability:
            return
        self._availability = availability
        if self.on_change is not None:
            self.on_change(*availability)
