"""Document tree model and structural path addressing.

Key Components:
    Node: Element, comment or processing instruction with ElementTree-style text/tail
    Document: Root container with verbatim prolog and epilog
    NodePath: Deterministic ``tag[n]/tag[m]`` address of an element
    assign_paths: Pre-order annotation of every element with its path
"""

from .node import COMMENT_TAG, ENTITY_TAG, PI_TAG, Document, Node
from .paths import NodePath, PathStep, assign_paths, find_by_path, iter_paths

__all__ = [
    "COMMENT_TAG",
    "ENTITY_TAG",
    "Document",
    "Node",
    "NodePath",
    "PI_TAG",
    "PathStep",
    "assign_paths",
    "find_by_path",
    "iter_paths",
]
