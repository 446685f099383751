"""Document outline of the structural divisions.

The outline lists every division element (book, article, chapter, section,
subsection, subsubsection) in document order with its title, identifier,
nesting level and path. Non-division wrappers such as ``pretext`` or
``docinfo`` are walked through without adding a level.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pretext_canvas.shared import MalformedMarkupError, OutlineConfig
from pretext_canvas.transcoding import Transcoder
from pretext_canvas.tree import Document, Node, NodePath

ERROR_TYPE = "error"


@dataclass(frozen=True)
class OutlineItem:
    """One division of the document outline."""

    title: str
    type: str
    id: str = ""
    level: int = 0
    path: Optional[NodePath] = None

    @property
    def is_error(self) -> bool:
        return self.type == ERROR_TYPE

    def to_dict(self) -> Dict[str, Any]:
        """Convert item to a JSON-friendly dictionary."""
        return {
            "title": self.title,
            "type": self.type,
            "id": self.id,
            "level": self.level,
            "path": str(self.path) if self.path is not None else None,
        }


def parse_error_outline() -> List[OutlineItem]:
    """Outline shown while the markup cannot be parsed."""
    return [OutlineItem(title="Parse Error", type=ERROR_TYPE, id=ERROR_TYPE)]


def _title_of(node: Node, config: OutlineConfig) -> str:
    title = node.find_child(config.title_tag)
    if title is None:
        return node.tag
    text = " ".join(title.text_content.split())
    return text or node.tag


def _identifier_of(node: Node, config: OutlineConfig) -> str:
    for name in config.id_attributes:
        value = node.attributes.get(name)
        if value:
            return value
    return ""


def build_outline(
    document: Document, config: Optional[OutlineConfig] = None
) -> List[OutlineItem]:
    """Collect the divisions of a source-vocabulary document."""
    config = config or OutlineConfig()
    items: List[OutlineItem] = []

    def visit(node: Node, level: int) -> None:
        if not node.is_element:
            return
        if node.tag in config.division_tags:
            items.append(
                OutlineItem(
                    title=_title_of(node, config),
                    type=node.tag,
                    id=_identifier_of(node, config),
                    level=level,
                    path=node.path,
                )
            )
            level += 1
        for child in node.children:
            visit(child, level)

    if document.root is not None:
        visit(document.root, 0)
    return items


def outline_for_text(
    text: str,
    transcoder: Optional[Transcoder] = None,
    config: Optional[OutlineConfig] = None,
) -> List[OutlineItem]:
    """Outline of markup text; a single error item when it cannot be parsed."""
    transcoder = transcoder or Transcoder()
    try:
        document = transcoder.parse_source(text)
    except MalformedMarkupError:
        return parse_error_outline()
    return build_outline(document, config)


def render_outline(items: List[OutlineItem], indent: str = "  ") -> str:
    """Plain-text rendering, one indented line per item."""
    lines = []
    for item in items:
        suffix = f" #{item.id}" if item.id and not item.is_error else ""
        lines.append(f"{indent * item.level}{item.type}: {item.title}{suffix}")
    return "\n".join(lines)
