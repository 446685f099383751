"""Tests for the command dispatcher, event emitter and schedulers."""

import asyncio

import pytest

from pretext_canvas.sync import (
    AsyncioScheduler,
    CommandDispatcher,
    EditorEvent,
    EventEmitter,
    VirtualClockScheduler,
)


class TestCommandDispatcher:
    """Test the non-reentrant FIFO command queue."""

    def test_immediate_execution(self) -> None:
        """Test a command issued while idle runs at once."""
        dispatcher = CommandDispatcher()
        outcome = dispatcher.dispatch("answer", lambda: 42)

        assert outcome.ok
        assert outcome.result == 42
        assert not dispatcher.busy

    def test_nested_commands_are_deferred(self) -> None:
        """Test commands issued during a command run after it, in order."""
        dispatcher = CommandDispatcher()
        order = []
        nested_outcomes = []

        def outer():
            order.append("outer-start")
            nested_outcomes.append(dispatcher.dispatch("first", lambda: order.append("first")))
            nested_outcomes.append(dispatcher.dispatch("second", lambda: order.append("second")))
            assert dispatcher.pending_count == 2
            order.append("outer-end")

        dispatcher.dispatch("outer", outer)

        assert order == ["outer-start", "outer-end", "first", "second"]
        assert nested_outcomes == [None, None]
        assert dispatcher.pending_count == 0

    def test_failures_are_captured(self) -> None:
        """Test a failing command does not stop the queue."""
        dispatcher = CommandDispatcher()
        ran = []

        def failing():
            dispatcher.dispatch("after", lambda: ran.append(True))
            raise RuntimeError("boom")

        outcome = dispatcher.dispatch("failing", failing)

        assert not outcome.ok
        assert isinstance(outcome.error, RuntimeError)
        assert ran == [True]
        assert not dispatcher.busy

    def test_recent_outcomes_are_bounded(self) -> None:
        """Test the outcome history keeps the latest entries."""
        dispatcher = CommandDispatcher(history_limit=2)
        for number in range(3):
            dispatcher.dispatch(f"cmd-{number}", lambda: None)
        assert [outcome.command.name for outcome in dispatcher.recent] == ["cmd-1", "cmd-2"]


class TestEventEmitter:
    """Test synchronous event delivery."""

    def test_listeners_receive_arguments(self) -> None:
        """Test listeners are called in registration order."""
        emitter = EventEmitter()
        received = []
        emitter.on(EditorEvent.STATUS_CHANGED, lambda message: received.append(("a", message)))
        emitter.on(EditorEvent.STATUS_CHANGED, lambda message: received.append(("b", message)))

        emitter.emit(EditorEvent.STATUS_CHANGED, "Saved")

        assert received == [("a", "Saved"), ("b", "Saved")]

    def test_failing_listener_does_not_block_others(self) -> None:
        """Test listener errors are contained."""
        emitter = EventEmitter()
        received = []

        def failing(_message):
            raise ValueError("listener bug")

        emitter.on(EditorEvent.STATUS_CHANGED, failing)
        emitter.on(EditorEvent.STATUS_CHANGED, received.append)
        emitter.emit(EditorEvent.STATUS_CHANGED, "still delivered")

        assert received == ["still delivered"]

    def test_off(self) -> None:
        """Test listeners can be removed, twice without error."""
        emitter = EventEmitter()
        emitter.on(EditorEvent.TEXT_CHANGED, print)
        emitter.off(EditorEvent.TEXT_CHANGED, print)
        emitter.off(EditorEvent.TEXT_CHANGED, print)
        assert emitter.listener_count(EditorEvent.TEXT_CHANGED) == 0


class TestVirtualClockScheduler:
    """Test the deterministic scheduler."""

    def test_callback_runs_when_due(self) -> None:
        """Test callbacks wait for the clock."""
        scheduler = VirtualClockScheduler()
        calls = []
        scheduler.schedule_after(400, lambda: calls.append("fired"))

        assert scheduler.advance(399) == 0
        assert scheduler.has_pending()
        assert scheduler.advance(1) == 1
        assert calls == ["fired"]
        assert not scheduler.has_pending()

    def test_rescheduling_coalesces(self) -> None:
        """Test only the last of rapid schedules runs."""
        scheduler = VirtualClockScheduler()
        calls = []
        for number in range(5):
            scheduler.schedule_after(400, lambda number=number: calls.append(number))
            scheduler.advance(100)

        scheduler.advance(400)
        assert calls == [4]

    def test_keys_are_independent(self) -> None:
        """Test slots under different keys do not cancel each other."""
        scheduler = VirtualClockScheduler()
        calls = []
        scheduler.schedule_after(10, lambda: calls.append("a"), key="a")
        scheduler.schedule_after(10, lambda: calls.append("b"), key="b")
        scheduler.advance(10)
        assert sorted(calls) == ["a", "b"]

    def test_keep_previous(self) -> None:
        """Test scheduling without cancelling the previous callback."""
        scheduler = VirtualClockScheduler()
        calls = []
        scheduler.schedule_after(10, lambda: calls.append(1))
        scheduler.schedule_after(20, lambda: calls.append(2), cancel_previous=False)
        assert scheduler.run_all() == 2
        assert calls == [1, 2]

    def test_cancel_and_flush(self) -> None:
        """Test explicit cancel and immediate flush."""
        scheduler = VirtualClockScheduler()
        calls = []
        scheduler.schedule_after(10, lambda: calls.append("cancelled"))
        assert scheduler.cancel()
        assert not scheduler.cancel()

        scheduler.schedule_after(10, lambda: calls.append("flushed"))
        assert scheduler.flush()
        assert not scheduler.flush()
        scheduler.advance(100)

        assert calls == ["flushed"]
        assert scheduler.pending_count == 0

    def test_failing_callback_is_contained(self) -> None:
        """Test callback errors do not escape the clock."""
        scheduler = VirtualClockScheduler()

        def failing():
            raise RuntimeError("boom")

        scheduler.schedule_after(0, failing)
        assert scheduler.advance(0) == 1

    def test_clock_cannot_go_backwards(self) -> None:
        """Test negative advances are rejected."""
        with pytest.raises(ValueError):
            VirtualClockScheduler().advance(-1)


class TestAsyncioScheduler:
    """Test the event-loop scheduler on a private loop."""

    def test_debounce_on_event_loop(self) -> None:
        """Test rescheduling cancels the pending loop timer."""
        loop = asyncio.new_event_loop()
        try:
            scheduler = AsyncioScheduler(loop)
            calls = []
            scheduler.schedule_after(10, lambda: calls.append("first"))
            scheduler.schedule_after(10, lambda: calls.append("second"))

            loop.run_until_complete(asyncio.sleep(0.05))

            assert calls == ["second"]
            assert not scheduler.has_pending()
        finally:
            loop.close()

    def test_flush_cancels_loop_timer(self) -> None:
        """Test a flushed callback does not run again when due."""
        loop = asyncio.new_event_loop()
        try:
            scheduler = AsyncioScheduler(loop)
            calls = []
            scheduler.schedule_after(10, lambda: calls.append("ran"))
            assert scheduler.flush()

            loop.run_until_complete(asyncio.sleep(0.05))

            assert calls == ["ran"]
        finally:
            loop.close()
