"""Bidirectional conversion between the structured tree and markup text.

The transcoder is stateless: every call builds fresh trees and nothing is
cached between calls. ``text_to_structure`` produces the presentation tree
shown in the structured view; ``structure_to_text`` turns such a tree back
into source markup. For every well-formed text ``t``::

    structure_to_text(text_to_structure(structure_to_text(t))) == structure_to_text(t)
"""

from typing import Iterable, List, Optional

from pretext_canvas.shared import MalformedMarkupError, TranscoderConfig, get_logger
from pretext_canvas.tree import Document, Node, NodePath, assign_paths

from .markup import parse_fragment, parse_markup, serialize_document
from .substitutions import SubstitutionRule, SubstitutionTable, add_class, remove_class


class Transcoder:
    """Converts documents between the source and presentation vocabularies."""

    def __init__(
        self,
        config: Optional[TranscoderConfig] = None,
        rules: Optional[Iterable[SubstitutionRule]] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize the transcoder.

        Args:
            config: Transcoder configuration, defaults when omitted
            rules: Substitution rules replacing the default table
            correlation_id: Session identifier for log records
        """
        self.config = config or TranscoderConfig()
        self.table = SubstitutionTable(rules)
        self.logger = get_logger(__name__, correlation_id, "transcoder")

    # Text -> structure

    def parse_source(self, text: str) -> Document:
        """Parse markup into a source-vocabulary document annotated with paths.

        Raises:
            MalformedMarkupError: If the text is not well-formed
        """
        document = parse_markup(text, huge_tree=self.config.huge_tree)
        assign_paths(document)
        return document

    def text_to_structure(self, text: str) -> Document:
        """Parse markup text into the presentation tree.

        Raises:
            MalformedMarkupError: If the text is not well-formed. Callers show
                ``fallback_structure(error)`` instead.
        """
        structure = self.present(self.parse_source(text))
        self.logger.debug(
            "Markup converted to structure",
            extra={
                "text_length": len(text),
                "element_count": len(structure.iter_elements()),
            },
        )
        return structure

    def present(self, source: Document) -> Document:
        """Apply presentation substitutions and path attributes to a copy."""
        root = self._present_node(source.root) if source.root is not None else None
        return Document(root=root, prolog=source.prolog, epilog=source.epilog)

    def present_nodes(self, nodes: Iterable[Node]) -> List[Node]:
        """Presentation copies of detached source nodes (no paths yet)."""
        return [self._present_node(node) for node in nodes]

    def _present_node(self, node: Node) -> Node:
        if not node.is_element:
            return Node(tag=node.tag, text=node.text, tail=node.tail)

        rule = self._rule_for_source(node.tag)
        result = Node(
            tag=rule.presentation_tag if rule else node.tag,
            attributes={
                name: value
                for name, value in node.attributes.items()
                if name not in self.config.internal_attributes
            },
            text=node.text,
            tail=node.tail,
            path=node.path,
        )
        if rule is not None:
            add_class(result, rule.css_class)
            result.attributes[self.config.source_attribute] = node.tag
        elif self._rule_for_presentation(result) is not None:
            # Source markup that already looks substituted keeps its own tag.
            result.attributes[self.config.source_attribute] = node.tag
        if node.path is not None:
            result.attributes[self.config.path_attribute] = str(node.path)

        for child in node.children:
            result.add_child(self._present_node(child))
        if rule is not None:
            rule.wrap(result)
        return result

    # Structure -> text

    def restore(self, structure: Document) -> Document:
        """Source-vocabulary copy of a presentation tree, with fresh paths."""
        root = self._restore_node(structure.root) if structure.root is not None else None
        document = Document(root=root, prolog=structure.prolog, epilog=structure.epilog)
        assign_paths(document)
        return document

    def _restore_node(self, node: Node) -> Node:
        if not node.is_element:
            return Node(tag=node.tag, text=node.text, tail=node.tail)

        source_tag = node.attributes.get(self.config.source_attribute)
        if source_tag:
            rule = self._rule_for_source(source_tag)
        else:
            rule = self._rule_for_presentation(node)
        tag = source_tag or (rule.source_tag if rule else node.tag)

        result = Node(
            tag=tag,
            attributes={
                name: value
                for name, value in node.attributes.items()
                if name not in self.config.internal_attributes
            },
            text=node.text,
            tail=node.tail,
        )
        if rule is not None:
            remove_class(result, rule.css_class)
        for child in node.children:
            result.add_child(self._restore_node(child))
        if rule is not None:
            rule.unwrap(result)
        return result

    def structure_to_text(self, structure: Document) -> str:
        """Serialize a presentation tree as source markup.

        Internal path-tracking attributes are stripped and substitutions are
        reversed. Output is deterministic: double-quoted attributes in
        insertion order, escaped character data, self-closed empty elements,
        prolog and epilog verbatim.
        """
        return serialize_document(self.restore(structure))

    # Placeholders and snapshots

    def fallback_structure(self, error: MalformedMarkupError) -> Document:
        """Single placeholder node shown while the markup cannot be parsed."""
        message = f"Parse error: {error.message}"
        if error.locator:
            message = f"{message} ({error.locator})"
        placeholder = Node(
            tag=self.config.parse_error_tag,
            attributes={"class": self.config.parse_error_class},
            text=message,
        )
        return Document(root=placeholder)

    def is_fallback(self, structure: Document) -> bool:
        """Check whether ``structure`` is a parse-error placeholder."""
        root = structure.root
        return (
            root is not None
            and root.tag == self.config.parse_error_tag
            and root.attributes.get("class") == self.config.parse_error_class
            and self.config.path_attribute not in root.attributes
        )

    def serialize_structure(self, structure: Document) -> str:
        """Serialize a presentation tree verbatim, internal attributes included."""
        return serialize_document(structure)

    def load_structure(self, markup: str) -> Document:
        """Rebuild a presentation tree written by ``serialize_structure``.

        Node paths are restored from the path attribute.
        """
        if not markup.strip():
            return Document(prolog=markup)
        document = parse_markup(markup, huge_tree=self.config.huge_tree)
        for node in document.iter_elements():
            raw_path = node.attributes.get(self.config.path_attribute)
            if raw_path is None:
                continue
            try:
                node.path = NodePath.parse(raw_path)
            except ValueError:
                node.path = None
        return document

    def parse_fragment(self, markup: str) -> List[Node]:
        """Parse a source snippet into detached source nodes.

        Raises:
            MalformedMarkupError: If the snippet is not well-formed
        """
        return parse_fragment(markup, huge_tree=self.config.huge_tree)

    def source_tag_of(self, node: Node) -> str:
        """Source element name a presentation node serializes as."""
        source_tag = node.attributes.get(self.config.source_attribute)
        if source_tag:
            return source_tag
        rule = self._rule_for_presentation(node)
        return rule.source_tag if rule else node.tag

    def _rule_for_source(self, tag: str) -> Optional[SubstitutionRule]:
        if not self.config.enable_substitutions:
            return None
        return self.table.for_source(tag)

    def _rule_for_presentation(self, node: Node) -> Optional[SubstitutionRule]:
        if not self.config.enable_substitutions:
            return None
        return self.table.for_presentation(node)


def text_to_structure(text: str, config: Optional[TranscoderConfig] = None) -> Document:
    """Parse markup text into the presentation tree with default rules."""
    return Transcoder(config).text_to_structure(text)


def structure_to_text(structure: Document, config: Optional[TranscoderConfig] = None) -> str:
    """Serialize a presentation tree as source markup with default rules."""
    return Transcoder(config).structure_to_text(structure)
