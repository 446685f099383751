"""Structural path addressing.

A path is a sequence of ``(tag, occurrence)`` steps from the document root,
where ``occurrence`` is the 1-based position of the node among its siblings
with the same tag. Adding a sibling with a different tag leaves existing
paths untouched; inserting a same-tag sibling before a node shifts that
node's occurrence. The location index counts tags the same way, so a path
computed from the tree and one computed from the text agree.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, NamedTuple, Optional, Sequence, Tuple, Union

from .node import Document, Node

_STEP_PATTERN = re.compile(r"^(?P<tag>[^\[\]/]+)\[(?P<index>\d+)\]$")

Tree = Union[Document, Node, Sequence[Node]]


class PathStep(NamedTuple):
    """One step of a structural path."""

    tag: str
    index: int

    def __str__(self) -> str:
        return f"{self.tag}[{self.index}]"


@dataclass(frozen=True)
class NodePath:
    """Deterministic address of an element node."""

    steps: Tuple[PathStep, ...] = ()

    def __str__(self) -> str:
        return "/".join(str(step) for step in self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[PathStep]:
        return iter(self.steps)

    def __bool__(self) -> bool:
        return bool(self.steps)

    @property
    def tag(self) -> Optional[str]:
        """Tag name of the addressed node."""
        return self.steps[-1].tag if self.steps else None

    @property
    def parent(self) -> "NodePath":
        """Path of the parent node (empty for root-level nodes)."""
        return NodePath(self.steps[:-1])

    def child(self, tag: str, index: int) -> "NodePath":
        """Path of a child step below this path."""
        if index < 1:
            raise ValueError("Occurrence index must be >= 1")
        return NodePath(self.steps + (PathStep(tag, index),))

    def is_ancestor_of(self, other: "NodePath") -> bool:
        """Check whether ``other`` lies strictly below this path."""
        return len(other.steps) > len(self.steps) and (
            other.steps[: len(self.steps)] == self.steps
        )

    @classmethod
    def parse(cls, text: str) -> "NodePath":
        """Parse the ``a[1]/b[2]`` string form.

        Raises:
            ValueError: If a step is not of the form ``tag[n]`` with n >= 1
        """
        text = text.strip().strip("/")
        if not text:
            return cls()
        steps = []
        for segment in text.split("/"):
            match = _STEP_PATTERN.match(segment)
            if match is None:
                raise ValueError(f"Invalid path step: {segment!r}")
            index = int(match.group("index"))
            if index < 1:
                raise ValueError(f"Invalid occurrence index in step: {segment!r}")
            steps.append(PathStep(match.group("tag"), index))
        return cls(tuple(steps))

    @classmethod
    def coerce(cls, value: Union[str, "NodePath"]) -> "NodePath":
        """Accept either a ``NodePath`` or its string form."""
        if isinstance(value, NodePath):
            return value
        return cls.parse(value)


def _roots_of(tree: Tree) -> Sequence[Node]:
    if isinstance(tree, Document):
        return tree.roots
    if isinstance(tree, Node):
        return [tree]
    return tree


def assign_paths(tree: Tree) -> Tree:
    """Annotate every element node of ``tree`` with its path.

    Traversal is pre-order and depth-first. Each sibling list keeps its own
    counter from tag name to occurrences seen so far; comments and processing
    instructions are skipped and get no path.

    Returns:
        The same tree, annotated in place
    """
    _assign_level(_roots_of(tree), NodePath())
    return tree


def _assign_level(siblings: Iterable[Node], parent_path: NodePath) -> None:
    counters: Dict[str, int] = {}
    for node in siblings:
        if not node.is_element:
            node.path = None
            continue
        counters[node.tag] = counters.get(node.tag, 0) + 1
        node.path = parent_path.child(node.tag, counters[node.tag])
        _assign_level(node.children, node.path)


def iter_paths(tree: Tree) -> Iterator[Tuple[NodePath, Node]]:
    """Yield ``(path, node)`` for every annotated element in document order."""
    for root in _roots_of(tree):
        for node in root.iter_elements():
            if node.path is not None:
                yield node.path, node


def find_by_path(tree: Tree, path: Union[str, NodePath]) -> Optional[Node]:
    """Resolve a path by counting same-tag siblings level by level.

    Works on trees that were never annotated. Returns ``None`` when any step
    cannot be matched.
    """
    target = NodePath.coerce(path)
    if not target:
        return None

    siblings: Sequence[Node] = _roots_of(tree)
    found: Optional[Node] = None
    for step in target:
        found = None
        seen = 0
        for node in siblings:
            if node.is_element and node.tag == step.tag:
                seen += 1
                if seen == step.index:
                    found = node
                    break
        if found is None:
            return None
        siblings = found.children
    return found
