"""Explicit editor state shared by the synchronization components.

Everything the engine needs to know about both views lives in one
``EditorContext`` value that is passed to the components operating on it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from pretext_canvas.history.snapshot import HistoryState
from pretext_canvas.indexing import line_column_at
from pretext_canvas.tree import Document, NodePath


class ViewMode(Enum):
    """Which views are visible."""

    VISUAL = "visual"
    SOURCE = "source"
    SPLIT = "split"

    @property
    def shows_structure(self) -> bool:
        return self in (ViewMode.VISUAL, ViewMode.SPLIT)

    @property
    def shows_text(self) -> bool:
        return self in (ViewMode.SOURCE, ViewMode.SPLIT)


@dataclass(frozen=True)
class Selection:
    """Structured-view selection as a pair of element paths."""

    anchor_path: Optional[NodePath] = None
    focus_path: Optional[NodePath] = None

    @classmethod
    def collapsed(cls, path: Optional[NodePath]) -> "Selection":
        """Selection of a single element."""
        return cls(anchor_path=path, focus_path=path)

    @property
    def is_empty(self) -> bool:
        return self.focus_path is None


@dataclass
class TextView:
    """Model of the markup text view."""

    text: str = ""
    selection_start: int = 0
    selection_end: int = 0
    scroll_ratio: float = 0.0
    has_focus: bool = False

    @property
    def caret(self) -> int:
        return self.selection_end

    def set_selection(self, start: int, end: Optional[int] = None) -> None:
        """Set the selection, clamped into the text."""
        length = len(self.text)
        start = max(0, min(start, length))
        end = start if end is None else max(start, min(end, length))
        self.selection_start = start
        self.selection_end = end

    def cursor_position(self) -> str:
        """Status-bar form of the caret position, e.g. ``Line 3, Column 7``."""
        line, column = line_column_at(self.text, self.selection_start)
        return f"Line {line}, Column {column}"


@dataclass
class StructureView:
    """Model of the structured (visual) view."""

    document: Document = field(default_factory=Document)
    selection: Selection = field(default_factory=Selection)
    scrolled_to: Optional[NodePath] = None
    has_focus: bool = False
    is_placeholder: bool = False


@dataclass
class EditorContext:
    """State of one editing session.

    ``sync_in_progress`` is the reentrancy guard for selection
    synchronization; the history guard lives on ``history.applying``.
    """

    text_view: TextView = field(default_factory=TextView)
    structure_view: StructureView = field(default_factory=StructureView)
    history: HistoryState = field(default_factory=HistoryState)
    view_mode: ViewMode = ViewMode.VISUAL
    modified: bool = False
    sync_in_progress: bool = False

    @property
    def applying_history(self) -> bool:
        return self.history.applying

    @property
    def text(self) -> str:
        return self.text_view.text

    @property
    def document(self) -> Document:
        return self.structure_view.document

    def to_dict(self) -> Dict[str, Any]:
        """Summary of the context for logging and inspection."""
        focus = self.structure_view.selection.focus_path
        return {
            "view_mode": self.view_mode.value,
            "modified": self.modified,
            "text_length": len(self.text_view.text),
            "caret": self.text_view.caret,
            "selected_path": str(focus) if focus is not None else None,
            "undo_depth": len(self.history.undo_stack),
            "redo_depth": len(self.history.redo_stack),
        }
