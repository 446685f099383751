"""Tag substitutions between the source and presentation vocabularies.

A handful of source elements are displayed with presentation markup in the
structured view: titles become headings and math elements become spans or
divisions whose text is wrapped in TeX delimiters. Every substituted element
carries its original tag in the source attribute so the reverse mapping is
exact; elements created in the structured view without that attribute are
recognized by tag and class.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from pretext_canvas.tree import Node


@dataclass(frozen=True)
class SubstitutionRule:
    """Mapping of one source element onto presentation markup."""

    source_tag: str
    presentation_tag: str
    css_class: str
    open_delimiter: str = ""
    close_delimiter: str = ""

    def __post_init__(self) -> None:
        """Validate rule values."""
        if not self.source_tag or not self.presentation_tag:
            raise ValueError("Substitution tags cannot be empty")
        if not self.css_class or any(ch.isspace() for ch in self.css_class):
            raise ValueError("css_class must be a single class token")
        if bool(self.open_delimiter) != bool(self.close_delimiter):
            raise ValueError("Delimiters must be given in pairs")

    def matches_presentation(self, node: Node) -> bool:
        """Check whether a presentation node has this rule's tag and class."""
        return node.tag == self.presentation_tag and self.css_class in class_tokens(node)

    def wrap(self, node: Node) -> None:
        """Add the delimiters around the content of ``node``."""
        if not self.open_delimiter:
            return
        node.text = self.open_delimiter + (node.text or "")
        if node.children:
            last = node.children[-1]
            last.tail = (last.tail or "") + self.close_delimiter
        else:
            node.text += self.close_delimiter

    def unwrap(self, node: Node) -> None:
        """Remove the delimiters from the content of ``node`` when present."""
        if not self.open_delimiter:
            return
        if node.text and node.text.startswith(self.open_delimiter):
            node.text = node.text[len(self.open_delimiter) :] or None
        if node.children:
            last = node.children[-1]
            if last.tail and last.tail.endswith(self.close_delimiter):
                last.tail = last.tail[: -len(self.close_delimiter)] or None
        elif node.text and node.text.endswith(self.close_delimiter):
            node.text = node.text[: -len(self.close_delimiter)] or None


DEFAULT_RULES: Sequence[SubstitutionRule] = (
    SubstitutionRule("title", "h2", "pretext-title"),
    SubstitutionRule("m", "span", "math-inline", "\\(", "\\)"),
    SubstitutionRule("me", "div", "math-expression", "\\(", "\\)"),
    SubstitutionRule("md", "div", "math-display", "\\[", "\\]"),
)


def class_tokens(node: Node) -> List[str]:
    """Whitespace separated tokens of the ``class`` attribute."""
    return (node.attributes.get("class") or "").split()


def add_class(node: Node, token: str) -> None:
    """Prepend ``token`` to the class attribute, keeping the existing value verbatim.

    The token is prepended even when already present; ``remove_class`` strips
    exactly that one leading copy.
    """
    existing = node.attributes.get("class")
    node.attributes["class"] = token if existing is None else f"{token} {existing}"


def remove_class(node: Node, token: str) -> None:
    """Remove the leading (or else the first) ``token``, dropping an attribute it alone filled."""
    value = node.attributes.get("class")
    if value is None:
        return
    if value == token:
        del node.attributes["class"]
    elif value.startswith(f"{token} "):
        node.attributes["class"] = value[len(token) + 1 :]
    else:
        tokens = class_tokens(node)
        if token in tokens:
            tokens.remove(token)
        if tokens:
            node.attributes["class"] = " ".join(tokens)
        else:
            del node.attributes["class"]


class SubstitutionTable:
    """Lookup of substitution rules in both directions."""

    def __init__(self, rules: Optional[Iterable[SubstitutionRule]] = None) -> None:
        self.rules = tuple(DEFAULT_RULES if rules is None else rules)
        self._by_source: Dict[str, SubstitutionRule] = {}
        for rule in self.rules:
            if rule.source_tag in self._by_source:
                raise ValueError(f"Duplicate substitution for <{rule.source_tag}>")
            self._by_source[rule.source_tag] = rule

    def __len__(self) -> int:
        return len(self.rules)

    def for_source(self, tag: str) -> Optional[SubstitutionRule]:
        """Rule applied to source elements named ``tag``."""
        return self._by_source.get(tag)

    def for_presentation(self, node: Node) -> Optional[SubstitutionRule]:
        """Rule whose presentation form ``node`` has, by tag and class."""
        for rule in self.rules:
            if rule.matches_presentation(node):
                return rule
        return None
