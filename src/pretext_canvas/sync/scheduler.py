"""Deferred callbacks for debounced work.

``Scheduler.schedule_after`` keeps at most one pending callback per key:
scheduling again under the same key cancels the previous callback first.
Two implementations are provided, a virtual clock advanced explicitly (used
by tests and batch tools) and an asyncio implementation for interactive
front ends running an event loop.
"""

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from pretext_canvas.shared import get_logger

Callback = Callable[[], None]

MS_PER_SECOND = 1000.0
DEFAULT_KEY = "default"


class TimerHandle:
    """Handle of one scheduled callback."""

    def __init__(self, callback: Callback, due_ms: float) -> None:
        self.callback = callback
        self.due_ms = due_ms
        self.cancelled = False
        self.fired = False
        self._on_cancel: Optional[Callable[[], None]] = None

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        """Prevent the callback from running; no effect once it has run."""
        if not self.pending:
            return
        self.cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()

    def run(self) -> None:
        if not self.pending:
            return
        self.fired = True
        self.callback()


class Scheduler(ABC):
    """Base class for deferred callback execution."""

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        self._pending: Dict[str, TimerHandle] = {}
        self.logger = get_logger(__name__, correlation_id, "scheduler")

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        """Run ``callback`` once after ``delay_ms`` milliseconds."""

    def schedule_after(
        self,
        delay_ms: float,
        callback: Callback,
        cancel_previous: bool = True,
        key: str = DEFAULT_KEY,
    ) -> TimerHandle:
        """Schedule ``callback`` under ``key``.

        Args:
            delay_ms: Delay in milliseconds (negative values count as 0)
            callback: Function called without arguments
            cancel_previous: Cancel the callback pending under ``key`` first
            key: Slot name, so independent debouncers can share a scheduler

        Returns:
            Handle of the new callback
        """
        if cancel_previous:
            self.cancel(key)
        handle = self.call_later(max(0.0, delay_ms), callback)
        self._pending[key] = handle
        return handle

    def cancel(self, key: str = DEFAULT_KEY) -> bool:
        """Cancel the callback pending under ``key``; ``True`` if one was pending."""
        handle = self._pending.pop(key, None)
        if handle is None or not handle.pending:
            return False
        handle.cancel()
        return True

    def has_pending(self, key: str = DEFAULT_KEY) -> bool:
        """Check whether a callback is pending under ``key``."""
        handle = self._pending.get(key)
        return handle is not None and handle.pending

    def flush(self, key: str = DEFAULT_KEY) -> bool:
        """Run the callback pending under ``key`` now; ``True`` if one ran."""
        handle = self._pending.pop(key, None)
        if handle is None or not handle.pending:
            return False
        if handle._on_cancel is not None:
            handle._on_cancel()
        self._invoke(handle)
        return True

    def _invoke(self, handle: TimerHandle) -> None:
        try:
            handle.run()
        except Exception:
            self.logger.exception("Scheduled callback failed")


class VirtualClockScheduler(Scheduler):
    """Scheduler driven by an explicit clock.

    Time only moves when ``advance`` is called, which makes debounce
    behavior fully deterministic.

    Example:
        >>> scheduler = VirtualClockScheduler()
        >>> calls = []
        >>> _ = scheduler.schedule_after(400, lambda: calls.append(1))
        >>> scheduler.advance(399)
        0
        >>> scheduler.advance(1)
        1
        >>> calls
        [1]
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        super().__init__(correlation_id)
        self.now_ms = 0.0
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._sequence = itertools.count()

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(callback, self.now_ms + max(0.0, delay_ms))
        heapq.heappush(self._queue, (handle.due_ms, next(self._sequence), handle))
        return handle

    @property
    def pending_count(self) -> int:
        """Number of callbacks that have neither run nor been cancelled."""
        return sum(1 for _, _, handle in self._queue if handle.pending)

    def advance(self, delay_ms: float) -> int:
        """Move the clock forward, running every callback that falls due.

        Returns:
            Number of callbacks run
        """
        if delay_ms < 0:
            raise ValueError("Cannot move the clock backwards")
        target = self.now_ms + delay_ms
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self.now_ms = due
            if handle.pending:
                self._invoke(handle)
                ran += 1
        self.now_ms = target
        return ran

    def run_all(self) -> int:
        """Advance until no callback is pending."""
        ran = 0
        while self._queue:
            ran += self.advance(max(0.0, self._queue[0][0] - self.now_ms))
        return ran


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop."""

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        super().__init__(correlation_id)
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop if self._loop is not None else asyncio.get_running_loop()

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        loop = self.loop
        handle = TimerHandle(callback, loop.time() * MS_PER_SECOND + delay_ms)
        timer = loop.call_later(max(0.0, delay_ms) / MS_PER_SECOND, self._invoke, handle)
        handle._on_cancel = timer.cancel
        return handle
