"""Exception taxonomy for the synchronization engine.

Only ``MalformedMarkupError`` and the configuration errors are raised in
normal operation. ``UnresolvedPathError`` and ``HistoryUnderflow`` describe
soft failures: the engine reports them as ``None`` results or status messages
and raises them only when a caller explicitly asks for strict behavior.
"""

from typing import List, Optional


class CanvasError(Exception):
    """Base exception for all engine errors."""


class MalformedMarkupError(CanvasError):
    """Markup text could not be parsed into a structure."""

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    @property
    def locator(self) -> Optional[str]:
        """Human readable ``line N, column M`` locator when known."""
        if self.line is None:
            return None
        if self.column is None:
            return f"line {self.line}"
        return f"line {self.line}, column {self.column}"


class UnresolvedPathError(CanvasError):
    """A path no longer exists in the current text or tree."""

    def __init__(self, path: object) -> None:
        super().__init__(f"Could not resolve path {path}")
        self.path = path


class HistoryUnderflow(CanvasError):
    """Undo or redo requested with nothing to apply."""

    def __init__(self, direction: str) -> None:
        super().__init__(f"Nothing to {direction}")
        self.direction = direction


class ConfigError(CanvasError):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
    ) -> None:
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []
