"""View synchronization: editor state, selection sync, scheduling and dispatch.

Key Components:
    EditorContext: Explicit state of both views, history and guard flags
    SelectionSynchronizer: Caret/selection transfer between the views
    Scheduler: Debounce timers (virtual clock and asyncio implementations)
    CommandDispatcher: Non-reentrant FIFO command queue
    EventEmitter: Notifications to the rendering layer
"""

from .context import EditorContext, Selection, StructureView, TextView, ViewMode
from .dispatcher import Command, CommandDispatcher, CommandOutcome
from .events import EditorEvent, EventEmitter
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle, VirtualClockScheduler
from .selection import SelectionSynchronizer, scroll_ratio_for

__all__ = [
    "AsyncioScheduler",
    "Command",
    "CommandDispatcher",
    "CommandOutcome",
    "EditorContext",
    "EditorEvent",
    "EventEmitter",
    "Scheduler",
    "Selection",
    "SelectionSynchronizer",
    "StructureView",
    "TextView",
    "TimerHandle",
    "ViewMode",
    "VirtualClockScheduler",
    "scroll_ratio_for",
]
