"""Structure edits submitted by the structured view.

Edits address their target by path. Paths refer to the structure as it was
when the edit was created; every applied edit triggers a full
resynchronization, after which paths are recomputed.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

from pretext_canvas.tree import Node, NodePath

PathLike = Union[str, NodePath]


@dataclass(frozen=True)
class InsertNode:
    """Insert new content as children of ``parent_path``.

    ``position`` counts element children: the new content is inserted before
    the element currently at that position, or appended when it is ``None``
    or past the end. Content is given either as source ``markup`` (one or
    more sibling elements) or as a ready presentation ``node``.
    """

    parent_path: PathLike
    markup: Optional[str] = None
    node: Optional[Node] = None
    position: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate the insertion."""
        if (self.markup is None) == (self.node is None):
            raise ValueError("Exactly one of markup or node must be given")
        if self.position is not None and self.position < 0:
            raise ValueError("position must be >= 0")


@dataclass(frozen=True)
class UpdateNode:
    """Change the leading text and/or attributes of the node at ``path``.

    An attribute mapped to ``None`` is removed. ``text=None`` leaves the text
    unchanged; an empty string clears it.
    """

    path: PathLike
    text: Optional[str] = None
    attributes: Dict[str, Optional[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate the update."""
        if self.text is None and not self.attributes:
            raise ValueError("UpdateNode changes nothing")


@dataclass(frozen=True)
class RemoveNode:
    """Remove the node at ``path`` with its subtree; its tail text is kept."""

    path: PathLike


StructureEdit = Union[InsertNode, UpdateNode, RemoveNode]

EDIT_TYPES: Tuple[type, ...] = (InsertNode, UpdateNode, RemoveNode)
