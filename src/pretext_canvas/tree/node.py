"""In-memory document tree shared by both views.

``Node`` follows the ElementTree model: an element has a tag, ordered
attributes, optional leading ``text`` and a list of children, and the text
that follows it inside its parent is its ``tail``. Comments and processing
instructions are kept as nodes with reserved tags so that no content is lost
when the structured view is serialized back to markup.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Sequence

if TYPE_CHECKING:
    from .paths import NodePath

COMMENT_TAG = "#comment"
PI_TAG = "#pi"
ENTITY_TAG = "#entity"
_SPECIAL_TAGS = frozenset({COMMENT_TAG, PI_TAG, ENTITY_TAG})


@dataclass(eq=False)
class Node:
    """A single node of the document tree."""

    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    text: Optional[str] = None
    children: List["Node"] = field(default_factory=list)
    tail: Optional[str] = None
    parent: Optional["Node"] = field(default=None, repr=False)
    path: Optional["NodePath"] = None

    def __post_init__(self) -> None:
        """Validate node values and establish parent-child relationships."""
        if not self.tag:
            raise ValueError("Node tag cannot be empty")
        for child in self.children:
            child.parent = self

    @classmethod
    def comment(cls, text: str, tail: Optional[str] = None) -> "Node":
        """Create a comment node."""
        return cls(tag=COMMENT_TAG, text=text, tail=tail)

    @classmethod
    def processing_instruction(
        cls, target: str, data: Optional[str] = None, tail: Optional[str] = None
    ) -> "Node":
        """Create a processing instruction node; ``target`` is kept as text."""
        content = target if not data else f"{target} {data}"
        return cls(tag=PI_TAG, text=content, tail=tail)

    @property
    def is_element(self) -> bool:
        """Check whether this node is an element (not a comment or PI)."""
        return self.tag not in _SPECIAL_TAGS

    @property
    def element_children(self) -> List["Node"]:
        """Direct children that are elements."""
        return [child for child in self.children if child.is_element]

    def add_child(self, child: "Node") -> None:
        """Append a child and establish the parent relationship."""
        if not isinstance(child, Node):
            raise TypeError("Child must be a Node instance")
        child.parent = self
        self.children.append(child)

    def insert_child(self, index: int, child: "Node") -> None:
        """Insert a child at a specific index."""
        if not isinstance(child, Node):
            raise TypeError("Child must be a Node instance")
        if not (0 <= index <= len(self.children)):
            raise IndexError("Child index out of range")
        child.parent = self
        self.children.insert(index, child)

    def remove_child(self, child: "Node") -> bool:
        """Remove a child, keeping its tail text attached to the document."""
        for position, candidate in enumerate(self.children):
            if candidate is child:
                break
        else:
            return False

        if child.tail:
            if position > 0:
                previous = self.children[position - 1]
                previous.tail = (previous.tail or "") + child.tail
            else:
                self.text = (self.text or "") + child.tail
        del self.children[position]
        child.parent = None
        child.tail = None
        return True

    def index_in_parent(self) -> int:
        """Position among the parent's children, -1 for a detached node."""
        if self.parent is None:
            return -1
        for position, candidate in enumerate(self.parent.children):
            if candidate is self:
                return position
        return -1

    def find_child(self, tag: str) -> Optional["Node"]:
        """Find first direct child with matching tag name."""
        for child in self.children:
            if child.tag == tag:
                return child
        return None

    def find_children(self, tag: str) -> List["Node"]:
        """Find all direct children with matching tag name."""
        return [child for child in self.children if child.tag == tag]

    def iter(self) -> Iterator["Node"]:
        """Iterate over this node and its descendants in document order."""
        yield self
        for child in self.children:
            yield from child.iter()

    def iter_elements(self) -> Iterator["Node"]:
        """Iterate over element nodes in document order."""
        return (node for node in self.iter() if node.is_element)

    def ancestors_and_self(self) -> Iterator["Node"]:
        """Walk from this node up to the root."""
        node: Optional[Node] = self
        while node is not None:
            yield node
            node = node.parent

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get attribute value with optional default."""
        return self.attributes.get(name, default)

    def set_attribute(self, name: str, value: str) -> None:
        """Set attribute value."""
        if not isinstance(name, str) or not isinstance(value, str):
            raise TypeError("Attribute name and value must be strings")
        self.attributes[name] = value

    def has_attribute(self, name: str) -> bool:
        """Check if node has specific attribute."""
        return name in self.attributes

    @property
    def text_content(self) -> str:
        """Concatenated character data of this element and its descendants."""
        if not self.is_element:
            return ""
        parts = [self.text or ""]
        for child in self.children:
            parts.append(child.text_content)
            parts.append(child.tail or "")
        return "".join(parts)

    def copy(self) -> "Node":
        """Deep copy without the parent link."""
        return Node(
            tag=self.tag,
            attributes=dict(self.attributes),
            text=self.text,
            children=[child.copy() for child in self.children],
            tail=self.tail,
            path=self.path,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert node to dictionary representation."""
        result: Dict[str, Any] = {"tag": self.tag}
        if self.attributes:
            result["attributes"] = dict(self.attributes)
        if self.text:
            result["text"] = self.text
        if self.tail:
            result["tail"] = self.tail
        if self.path is not None:
            result["path"] = str(self.path)
        if self.children:
            result["children"] = [child.to_dict() for child in self.children]
        return result


@dataclass(eq=False)
class Document:
    """Root container for one view's tree.

    ``prolog`` and ``epilog`` hold the text before the root element (XML
    declaration, comments, whitespace) and after it, verbatim.
    """

    root: Optional[Node] = None
    prolog: str = ""
    epilog: str = ""

    @property
    def roots(self) -> Sequence[Node]:
        """Root-level nodes as a sequence (empty for an empty document)."""
        return [self.root] if self.root is not None else []

    def iter_elements(self) -> List[Node]:
        """All element nodes in document order."""
        if self.root is None:
            return []
        return list(self.root.iter_elements())

    def find_by_attribute(self, name: str, value: Optional[str] = None) -> List[Node]:
        """Find elements by attribute name and optionally value."""
        return [
            node
            for node in self.iter_elements()
            if name in node.attributes
            and (value is None or node.attributes[name] == value)
        ]

    def get_element_by_id(
        self, id_value: str, attributes: Sequence[str] = ("xml:id", "id")
    ) -> Optional[Node]:
        """Find the first element whose identifier attribute equals ``id_value``."""
        for node in self.iter_elements():
            if any(node.attributes.get(name) == id_value for name in attributes):
                return node
        return None

    def path_map(self) -> Dict["NodePath", Node]:
        """Map every annotated path to its node."""
        return {
            node.path: node for node in self.iter_elements() if node.path is not None
        }

    def copy(self) -> "Document":
        """Deep copy of the document."""
        return Document(
            root=self.root.copy() if self.root is not None else None,
            prolog=self.prolog,
            epilog=self.epilog,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert document to dictionary representation."""
        result: Dict[str, Any] = {"element_count": len(self.iter_elements())}
        if self.prolog:
            result["prolog"] = self.prolog
        if self.epilog:
            result["epilog"] = self.epilog
        if self.root is not None:
            result["root"] = self.root.to_dict()
        return result
