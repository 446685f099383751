"""FIFO command queue for view synchronization.

Every mutation of the views goes through ``CommandDispatcher.dispatch``.
Commands issued while another command runs (for example a text change made
by a structure edit handler) are queued and executed after the current one
finishes, never recursively, so no two synchronization passes overlap.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from pretext_canvas.shared import get_logger


@dataclass
class Command:
    """One queued unit of work."""

    name: str
    action: Callable[[], Any]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CommandOutcome:
    """Result of an executed command."""

    command: Command
    result: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CommandDispatcher:
    """Runs commands one at a time in submission order."""

    def __init__(self, correlation_id: Optional[str] = None, history_limit: int = 100) -> None:
        self._pending: Deque[Command] = deque()
        self._draining = False
        self._history: Deque[CommandOutcome] = deque(maxlen=history_limit)
        self.logger = get_logger(__name__, correlation_id, "dispatcher")

    @property
    def busy(self) -> bool:
        """A command is currently executing."""
        return self._draining

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def recent(self) -> List[CommandOutcome]:
        """Outcomes of recently executed commands, oldest first."""
        return list(self._history)

    def dispatch(
        self, name: str, action: Callable[[], Any], **metadata: Any
    ) -> Optional[CommandOutcome]:
        """Queue a command and drain the queue.

        Returns:
            The outcome when the command ran immediately, ``None`` when it was
            deferred behind the command currently executing
        """
        command = Command(name, action, dict(metadata))
        self._pending.append(command)
        if self._draining:
            self.logger.debug("Command deferred", extra={"command": name})
            return None
        outcomes = self._drain()
        return next((outcome for outcome in outcomes if outcome.command is command), None)

    def _drain(self) -> List[CommandOutcome]:
        if self._draining:
            return []
        self._draining = True
        outcomes: List[CommandOutcome] = []
        try:
            while self._pending:
                outcomes.append(self._execute(self._pending.popleft()))
        finally:
            self._draining = False
        return outcomes

    def _execute(self, command: Command) -> CommandOutcome:
        try:
            outcome = CommandOutcome(command, result=command.action())
        except Exception as e:
            self.logger.exception(
                "Command failed", extra={"command": command.name, **command.metadata}
            )
            outcome = CommandOutcome(command, error=e)
        self._history.append(outcome)
        return outcome
