"""Snapshot values and the undo/redo stacks that hold them."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Snapshot:
    """Whole-document state captured at one instant.

    ``structure`` is the serialized presentation tree. Two snapshots are
    content-equal when their text and structure match; the ``modified`` flag
    is carried along but ignored for that comparison.
    """

    text: str
    structure: str
    modified: bool = False

    def same_content(self, other: Optional["Snapshot"]) -> bool:
        """Check text and structure equality with ``other``."""
        return (
            other is not None
            and self.text == other.text
            and self.structure == other.structure
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert snapshot to dictionary representation."""
        return {
            "text_length": len(self.text),
            "structure_length": len(self.structure),
            "modified": self.modified,
        }


@dataclass
class HistoryState:
    """Undo and redo stacks.

    The undo stack runs bottom (oldest) to top (current); once initialized it
    is never empty and its top is the state both views display. ``applying``
    is set while a snapshot is being written back into the views.
    """

    undo_stack: List[Snapshot] = field(default_factory=list)
    redo_stack: List[Snapshot] = field(default_factory=list)
    applying: bool = False

    @property
    def current(self) -> Optional[Snapshot]:
        """Top of the undo stack."""
        return self.undo_stack[-1] if self.undo_stack else None

    @property
    def can_undo(self) -> bool:
        """At least one state below the current one."""
        return len(self.undo_stack) > 1

    @property
    def can_redo(self) -> bool:
        """At least one undone state to move forward to."""
        return bool(self.redo_stack)

    def clear(self) -> None:
        """Drop both stacks."""
        self.undo_stack.clear()
        self.redo_stack.clear()
