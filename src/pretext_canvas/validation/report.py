"""Validation report and error locator parsing."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pretext_canvas.shared import ValidationConfig

VALID_MESSAGE = "Document is valid XML"


def parse_locator(
    message: str, config: Optional[ValidationConfig] = None
) -> Tuple[Optional[int], Optional[int]]:
    """Extract ``(line, column)`` from a parser message.

    The patterns are permissive (``line`` followed by the first number,
    likewise for ``column``) and case-insensitive; either part may be missing.
    """
    config = config or ValidationConfig()
    line_match = re.search(config.line_pattern, message, re.IGNORECASE)
    column_match = re.search(config.column_pattern, message, re.IGNORECASE)
    line = int(line_match.group(1)) if line_match else None
    column = int(column_match.group(1)) if column_match else None
    return line, column


@dataclass
class ValidationReport:
    """Outcome of a well-formedness check."""

    is_valid: bool
    message: str = VALID_MESSAGE
    line: Optional[int] = None
    column: Optional[int] = None
    details: List[str] = field(default_factory=list)

    @classmethod
    def valid(cls) -> "ValidationReport":
        return cls(is_valid=True)

    @classmethod
    def from_message(
        cls, message: str, config: Optional[ValidationConfig] = None
    ) -> "ValidationReport":
        """Failed report whose locator is parsed out of ``message``."""
        line, column = parse_locator(message, config)
        return cls(is_valid=False, message=message, line=line, column=column)

    @property
    def has_locator(self) -> bool:
        return self.line is not None

    def __str__(self) -> str:
        if self.is_valid:
            return self.message
        if self.line is not None and self.column is not None:
            return f"Line {self.line}, Column {self.column}: {self.message}"
        if self.line is not None:
            return f"Line {self.line}: {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to a JSON-friendly dictionary."""
        result: Dict[str, Any] = {"is_valid": self.is_valid, "message": self.message}
        if self.line is not None:
            result["line"] = self.line
        if self.column is not None:
            result["column"] = self.column
        if self.details:
            result["details"] = list(self.details)
        return result
