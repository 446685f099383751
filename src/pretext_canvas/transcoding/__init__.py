"""Conversion between the structured (presentation) tree and markup text.

Key Components:
    Transcoder: Stateless text_to_structure / structure_to_text conversion
    SubstitutionRule: One source element displayed with presentation markup
    parse_markup / serialize_document: lxml parsing and deterministic output
"""

from .markup import (
    escape_attribute,
    escape_text,
    parse_fragment,
    parse_markup,
    serialize_document,
    serialize_node,
    split_prolog_epilog,
)
from .substitutions import DEFAULT_RULES, SubstitutionRule, SubstitutionTable
from .transcoder import Transcoder, structure_to_text, text_to_structure

__all__ = [
    "DEFAULT_RULES",
    "SubstitutionRule",
    "SubstitutionTable",
    "Transcoder",
    "escape_attribute",
    "escape_text",
    "parse_fragment",
    "parse_markup",
    "serialize_document",
    "serialize_node",
    "split_prolog_epilog",
    "structure_to_text",
    "text_to_structure",
]
