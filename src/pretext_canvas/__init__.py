"""PreTeXt Canvas synchronization engine.

Keeps a structured (visual) view and a markup (source) view of one PreTeXt
document consistent and addressable, with a snapshot-based undo/redo
history.

Progressive API Disclosure:
- Level 1: Pure functions - text_to_structure(), structure_to_text(), build_index()
- Level 2: Components - Transcoder, LocationIndex, HistoryManager, SelectionSynchronizer
- Level 3: Orchestration - EditorSession with events and configuration
"""

__version__ = "0.1.0"
__author__ = "PreTeXt Canvas Team"

# Progressive API disclosure - Level 1: Pure functions
from .indexing import Location, LocationIndex, build_index

# Progressive API disclosure - Level 2: Components
from .history import HistoryManager, Snapshot
from .shared.config import EditorConfig
from .sync import (
    AsyncioScheduler,
    EditorContext,
    EditorEvent,
    SelectionSynchronizer,
    ViewMode,
    VirtualClockScheduler,
)
from .transcoding import Transcoder, structure_to_text, text_to_structure
from .tree import Document, Node, NodePath, assign_paths

# Progressive API disclosure - Level 3: Orchestration
from .editor import EditorSession
from .edits import InsertNode, RemoveNode, UpdateNode
from .outline import OutlineItem, build_outline
from .validation import LxmlWellFormednessValidator, ValidationReport

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Pure functions
    "assign_paths",
    "build_index",
    "structure_to_text",
    "text_to_structure",

    # Level 2: Components
    "HistoryManager",
    "LocationIndex",
    "SelectionSynchronizer",
    "Transcoder",
    "AsyncioScheduler",
    "VirtualClockScheduler",

    # Level 3: Orchestration
    "EditorSession",
    "EditorContext",
    "EditorEvent",
    "ViewMode",
    "InsertNode",
    "RemoveNode",
    "UpdateNode",

    # Data structures
    "Document",
    "Location",
    "Node",
    "NodePath",
    "OutlineItem",
    "Snapshot",
    "ValidationReport",
    "build_outline",
    "LxmlWellFormednessValidator",

    # Configuration
    "EditorConfig",
]
