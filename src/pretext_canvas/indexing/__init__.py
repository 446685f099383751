"""Location indexing for the markup text view.

Key Components:
    iter_tokens / scan_tags: Single-pass tag token scanner
    build_index: Pure construction of an ``IndexResult`` from one text
    LocationIndex: Memoized index with ``path_at`` and ``location_at`` lookups
    Location: Offset range of one element
"""

from .index import IndexResult, Location, LocationIndex, build_index
from .positions import line_column_at, line_count, offset_for_line_column
from .scanner import TagToken, TokenType, iter_tokens, scan_tags

__all__ = [
    "IndexResult",
    "Location",
    "LocationIndex",
    "TagToken",
    "TokenType",
    "build_index",
    "iter_tokens",
    "line_column_at",
    "line_count",
    "offset_for_line_column",
    "scan_tags",
]
