"""Conversions between character offsets and 1-based line/column positions."""

from typing import Tuple


def line_column_at(text: str, offset: int) -> Tuple[int, int]:
    """Return the 1-based ``(line, column)`` of ``offset``.

    Offsets outside the text are clamped to its bounds.
    """
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset) + 1
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


def offset_for_line_column(text: str, line: int, column: int = 1) -> int:
    """Return the offset of a 1-based line/column position.

    Lines past the end map to the end of the text; columns past the end of a
    line map to the end of that line.
    """
    if line < 1:
        line = 1
    if column < 1:
        column = 1

    line_start = 0
    for _ in range(line - 1):
        newline = text.find("\n", line_start)
        if newline == -1:
            return len(text)
        line_start = newline + 1

    line_end = text.find("\n", line_start)
    if line_end == -1:
        line_end = len(text)
    return min(line_start + column - 1, line_end)


def line_count(text: str) -> int:
    """Number of lines in ``text`` (an empty text has one line)."""
    return text.count("\n") + 1
