"""Undo/redo history of whole-document snapshots.

Key Components:
    Snapshot: Immutable (text, structure, modified) state
    HistoryState: Undo and redo stacks plus the apply guard
    HistoryManager: Debounced recording, undo, redo and reset
"""

from .manager import SNAPSHOT_KEY, HistoryManager
from .snapshot import HistoryState, Snapshot

__all__ = [
    "HistoryManager",
    "HistoryState",
    "SNAPSHOT_KEY",
    "Snapshot",
]
