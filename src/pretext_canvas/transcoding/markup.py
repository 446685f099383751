"""Markup parsing and deterministic serialization.

Parsing is delegated to lxml, which is the well-formedness authority for the
text view. The lxml tree is immediately converted into ``Node`` objects with
prefixed names (``xml:id``, ``xmlns:xi``) so the rest of the engine never has
to deal with Clark notation.

Serialization is hand-written because the text view needs a stable output:
attributes are always double-quoted in insertion order, empty elements are
self-closed, and the prolog and epilog are written back verbatim.
"""

import re
from typing import Dict, Iterator, List, Optional, Tuple

from lxml import etree

from pretext_canvas.indexing import TokenType, scan_tags
from pretext_canvas.shared import MalformedMarkupError
from pretext_canvas.tree import COMMENT_TAG, ENTITY_TAG, PI_TAG, Document, Node

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
_FRAGMENT_WRAPPER = "pretext-fragment"

_TEXT_ESCAPES = (("&", "&amp;"), ("<", "&lt;"), (">", "&gt;"), ("\r", "&#13;"))
_ATTRIBUTE_NAME = re.compile(r"""([^\s=/<>"']+)\s*=\s*(?:"[^"]*"|'[^']*')""")
_ATTRIBUTE_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    ('"', "&quot;"),
    ("\n", "&#10;"),
    ("\r", "&#13;"),
    ("\t", "&#9;"),
)


def escape_text(value: str) -> str:
    """Escape character data."""
    for raw, escaped in _TEXT_ESCAPES:
        value = value.replace(raw, escaped)
    return value


def escape_attribute(value: str) -> str:
    """Escape a double-quoted attribute value."""
    for raw, escaped in _ATTRIBUTE_ESCAPES:
        value = value.replace(raw, escaped)
    return value


def _make_parser(huge_tree: bool) -> etree.XMLParser:
    return etree.XMLParser(
        encoding="utf-8",
        resolve_entities=False,
        no_network=True,
        load_dtd=False,
        remove_comments=False,
        remove_pis=False,
        strip_cdata=True,
        huge_tree=huge_tree,
    )


def _syntax_error(error: etree.XMLSyntaxError) -> MalformedMarkupError:
    line: Optional[int] = None
    column: Optional[int] = None
    position = getattr(error, "position", None)
    if position:
        line, column = position
    elif getattr(error, "lineno", None):
        line = error.lineno
    message = getattr(error, "msg", None) or str(error)
    return MalformedMarkupError(message, line, column)


def _element_name(element: "etree._Element") -> str:
    """Element name with the prefix it was written with."""
    local = etree.QName(element).localname
    return f"{element.prefix}:{local}" if element.prefix else local


def _attribute_name(clark_name: str, nsmap: Dict[Optional[str], str]) -> str:
    """Prefixed attribute name looked up in the in-scope namespaces."""
    if not clark_name.startswith("{"):
        return clark_name
    uri, local = clark_name[1:].split("}", 1)
    if uri == XML_NAMESPACE:
        return f"xml:{local}"
    for prefix, candidate in nsmap.items():
        if candidate == uri and prefix is not None:
            return f"{prefix}:{local}"
    return local


def _written_attribute_names(start_tag: str) -> List[str]:
    """Attribute names of a start tag as written, namespace declarations excluded."""
    return [
        name
        for name in _ATTRIBUTE_NAME.findall(start_tag)
        if name != "xmlns" and not name.startswith("xmlns:")
    ]


def _start_tags(text: str) -> Iterator[str]:
    """Raw start tags of ``text`` in document order."""
    for token in scan_tags(text):
        if token.type is not TokenType.END_TAG:
            yield text[token.start : token.end]


def _namespace_declarations(element: "etree._Element") -> List[Tuple[str, str]]:
    parent = element.getparent()
    inherited = parent.nsmap if parent is not None else {}
    declarations = []
    for prefix, uri in element.nsmap.items():
        if inherited.get(prefix) == uri:
            continue
        declarations.append(("xmlns" if prefix is None else f"xmlns:{prefix}", uri))
    return declarations


def _convert(element: "etree._Element", start_tags: Iterator[str]) -> Node:
    """Convert an lxml node; ``start_tags`` yields the raw start tag of each element."""
    if isinstance(element, etree._Comment):
        return Node.comment(element.text or "", tail=element.tail)
    if isinstance(element, etree._ProcessingInstruction):
        return Node.processing_instruction(element.target, element.text, tail=element.tail)
    if isinstance(element, etree._Entity):
        return Node(tag=ENTITY_TAG, text=element.name, tail=element.tail)

    nsmap = element.nsmap
    written = _written_attribute_names(next(start_tags, ""))
    if len(written) != len(element.attrib):
        written = []
    attributes: Dict[str, str] = dict(_namespace_declarations(element))
    for index, (name, value) in enumerate(element.attrib.items()):
        # Two prefixes may share a URI; the written one wins.
        if written and written[index].rpartition(":")[2] == etree.QName(name).localname:
            attributes[written[index]] = value
        else:
            attributes[_attribute_name(name, nsmap)] = value

    node = Node(
        tag=_element_name(element),
        attributes=attributes,
        text=element.text,
        tail=element.tail,
    )
    for child in element:
        node.add_child(_convert(child, start_tags))
    return node


def split_prolog_epilog(text: str) -> Tuple[str, str]:
    """Text before the first and after the last element tag."""
    tokens = scan_tags(text)
    if not tokens:
        return text, ""
    return text[: tokens[0].start], text[tokens[-1].end :]


def parse_markup(text: str, huge_tree: bool = False) -> Document:
    """Parse markup text into a source-vocabulary document.

    Raises:
        MalformedMarkupError: If the text is not well-formed
    """
    if not text.strip():
        raise MalformedMarkupError("Document is empty", 1, 1)
    try:
        root = etree.fromstring(text.encode("utf-8"), _make_parser(huge_tree))
    except etree.XMLSyntaxError as e:
        raise _syntax_error(e) from e
    except ValueError as e:
        raise MalformedMarkupError(str(e)) from e

    prolog, epilog = split_prolog_epilog(text)
    converted = _convert(root, _start_tags(text))
    converted.tail = None
    return Document(root=converted, prolog=prolog, epilog=epilog)


def parse_fragment(markup: str, huge_tree: bool = False) -> List[Node]:
    """Parse a sequence of sibling nodes (for example an element snippet).

    Whitespace before the first node is dropped; everything else is kept.

    Raises:
        MalformedMarkupError: If the fragment is not well-formed
    """
    wrapped = f"<{_FRAGMENT_WRAPPER}>{markup}</{_FRAGMENT_WRAPPER}>"
    try:
        wrapper = etree.fromstring(wrapped.encode("utf-8"), _make_parser(huge_tree))
    except etree.XMLSyntaxError as e:
        raise _syntax_error(e) from e
    start_tags = _start_tags(wrapped)
    next(start_tags, None)
    nodes = [_convert(child, start_tags) for child in wrapper]
    for node in nodes:
        node.parent = None
    return nodes


def _write(node: Node, parts: List[str]) -> None:
    if node.tag == COMMENT_TAG:
        parts.append(f"<!--{node.text or ''}-->")
    elif node.tag == PI_TAG:
        parts.append(f"<?{node.text or ''}?>")
    elif node.tag == ENTITY_TAG:
        parts.append(f"&{node.text};")
    else:
        attributes = "".join(
            f' {name}="{escape_attribute(value)}"'
            for name, value in node.attributes.items()
        )
        if not node.text and not node.children:
            parts.append(f"<{node.tag}{attributes}/>")
        else:
            parts.append(f"<{node.tag}{attributes}>")
            parts.append(escape_text(node.text or ""))
            for child in node.children:
                _write(child, parts)
            parts.append(f"</{node.tag}>")
    if node.tail:
        parts.append(escape_text(node.tail))


def serialize_node(node: Node, include_tail: bool = False) -> str:
    """Serialize one node and its descendants."""
    parts: List[str] = []
    tail = node.tail
    if not include_tail:
        node.tail = None
    try:
        _write(node, parts)
    finally:
        node.tail = tail
    return "".join(parts)


def serialize_document(document: Document) -> str:
    """Serialize a document, writing prolog and epilog verbatim."""
    body = serialize_node(document.root) if document.root is not None else ""
    return f"{document.prolog}{body}{document.epilog}"
