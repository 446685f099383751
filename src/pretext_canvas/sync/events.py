"""Events sent from the engine to the rendering layer."""

from collections import defaultdict
from enum import Enum
from typing import Any, Callable, DefaultDict, List, Optional

from pretext_canvas.shared import get_logger

Listener = Callable[..., None]


class EditorEvent(Enum):
    """Notifications emitted by an editing session."""

    STRUCTURE_CHANGED = "structure_changed"    # (document, selected_path)
    TEXT_CHANGED = "text_changed"              # (text, caret)
    HISTORY_CHANGED = "history_changed"        # (can_undo, can_redo)
    RESOLUTION_FAILED = "resolution_failed"    # (message)
    STATUS_CHANGED = "status_changed"          # (message)
    VALIDATION_CHANGED = "validation_changed"  # (report)
    OUTLINE_CHANGED = "outline_changed"        # (items)


class EventEmitter:
    """Synchronous publish/subscribe hub.

    Listeners run in registration order. A failing listener is logged and
    does not prevent the remaining listeners from running.
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        self._listeners: DefaultDict[EditorEvent, List[Listener]] = defaultdict(list)
        self.logger = get_logger(__name__, correlation_id, "events")

    def on(self, event: EditorEvent, listener: Listener) -> None:
        """Register ``listener`` for ``event``."""
        self._listeners[event].append(listener)

    def off(self, event: EditorEvent, listener: Listener) -> None:
        """Remove a previously registered listener if present."""
        try:
            self._listeners[event].remove(listener)
        except ValueError:
            pass

    def listener_count(self, event: EditorEvent) -> int:
        """Number of listeners registered for ``event``."""
        return len(self._listeners[event])

    def emit(self, event: EditorEvent, *args: Any) -> None:
        """Call every listener of ``event`` with ``args``."""
        for listener in list(self._listeners[event]):
            try:
                listener(*args)
            except Exception:
                self.logger.exception(
                    "Event listener failed", extra={"event": event.value}
                )
