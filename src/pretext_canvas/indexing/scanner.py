"""Single-pass tag token scanner.

The scanner is not a parser: it walks the markup once, left to right, and
reports where tags open and close. Comments, CDATA sections, processing
instructions and doctype declarations are recognized only so that tag-like
text inside them is not mistaken for markup. Unterminated comments and CDATA
sections run to the end of the text instead of failing.
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<comment><!--.*?(?:-->|\Z))
  | (?P<cdata><!\[CDATA\[.*?(?:\]\]>|\Z))
  | (?P<pi><\?.*?(?:\?>|\Z))
  | (?P<doctype><!DOCTYPE(?:[^>\[]|\[[^\]]*\])*>?)
  | (?P<tag>
        <(?P<closing>/)?
        (?P<name>[^\W\d][\w.:-]*)
        (?:[^>"']|"[^"]*"|'[^']*')*?
        (?P<selfclosing>/)?>
    )
    """,
    re.DOTALL | re.VERBOSE,
)


class TokenType(Enum):
    """Kinds of tokens reported by the scanner."""

    START_TAG = auto()               # <name ...>
    END_TAG = auto()                 # </name>
    EMPTY_TAG = auto()               # <name ... />
    COMMENT = auto()                 # <!-- ... -->
    CDATA = auto()                   # <![CDATA[ ... ]]>
    PROCESSING_INSTRUCTION = auto()  # <? ... ?>
    DOCTYPE = auto()                 # <!DOCTYPE ...>


_ELEMENT_TYPES = frozenset({TokenType.START_TAG, TokenType.END_TAG, TokenType.EMPTY_TAG})


@dataclass(frozen=True)
class TagToken:
    """A token with its offsets and the 1-based line/column of its start."""

    type: TokenType
    name: str
    start: int
    end: int
    line: int
    column: int

    @property
    def is_element(self) -> bool:
        """Check whether the token opens or closes an element."""
        return self.type in _ELEMENT_TYPES


def iter_tokens(text: str) -> Iterator[TagToken]:
    """Yield tokens in document order.

    Line and column are tracked incrementally, so the whole scan stays linear
    in the length of the text.
    """
    line = 1
    line_start = 0
    counted_to = 0

    for match in _TOKEN_PATTERN.finditer(text):
        start = match.start()
        newlines = text.count("\n", counted_to, start)
        if newlines:
            line += newlines
            line_start = text.rfind("\n", counted_to, start) + 1
        counted_to = start

        kind = match.lastgroup
        name = ""
        if kind == "tag":
            name = match.group("name")
            if match.group("closing"):
                token_type = TokenType.END_TAG
            elif match.group("selfclosing"):
                token_type = TokenType.EMPTY_TAG
            else:
                token_type = TokenType.START_TAG
        elif kind == "comment":
            token_type = TokenType.COMMENT
        elif kind == "cdata":
            token_type = TokenType.CDATA
        elif kind == "pi":
            token_type = TokenType.PROCESSING_INSTRUCTION
        else:
            token_type = TokenType.DOCTYPE

        yield TagToken(
            type=token_type,
            name=name,
            start=start,
            end=match.end(),
            line=line,
            column=start - line_start + 1,
        )


def scan_tags(text: str) -> List[TagToken]:
    """Return the element tokens of ``text`` in document order."""
    return [token for token in iter_tokens(text) if token.is_element]
