"""Location index mapping text offsets to structural paths and back.

The index is advisory: it is used to move carets and selections between the
two views, never to decide whether markup is valid. It therefore tolerates
anything the scanner reports. Mismatched closing tags pop the nearest open
element of the same name, stray closing tags are ignored and elements left
open at the end of the text extend to the end of the document.
"""

import time
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from pretext_canvas.shared import IndexConfig, IndexMetrics, get_logger
from pretext_canvas.tree import NodePath

from .scanner import TokenType, scan_tags

MS_PER_SECOND = 1000


@dataclass(frozen=True)
class Location:
    """Offset range of one element in the text view."""

    path: NodePath
    start: int
    end: int
    line: int = 1
    column: int = 1

    def __post_init__(self) -> None:
        """Validate offsets."""
        if self.start < 0:
            raise ValueError("Location start must be >= 0")
        if self.end < self.start:
            raise ValueError("Location end must be >= start")

    @property
    def span(self) -> int:
        """Length of the range in characters."""
        return self.end - self.start

    def contains(self, offset: int) -> bool:
        """Check whether ``offset`` lies in ``[start, end]`` (inclusive)."""
        return self.start <= offset <= self.end


@dataclass
class IndexResult:
    """Index built from one exact text."""

    text: str
    locations_by_path: Dict[NodePath, Location] = field(default_factory=dict)
    ordered_locations: List[Location] = field(default_factory=list)
    unclosed_elements: int = 0
    orphan_closing_tags: int = 0
    build_time_ms: float = 0.0

    def __post_init__(self) -> None:
        self.ordered_locations.sort(key=lambda location: location.start)
        self._starts = [location.start for location in self.ordered_locations]
        self._max_end = max(
            (location.end for location in self.ordered_locations), default=0
        )

    @property
    def location_count(self) -> int:
        """Number of indexed elements."""
        return len(self.ordered_locations)

    def tightest_containing(self, offset: int) -> Optional[Location]:
        """Smallest location containing ``offset``; ties go to the later start."""
        candidates = self.ordered_locations[: bisect_right(self._starts, offset)]
        best: Optional[Location] = None
        for location in candidates:
            if location.end < offset:
                continue
            if best is None or location.span <= best.span:
                best = location
        return best

    def first_starting_after(self, offset: int) -> Optional[Location]:
        """Nearest location whose start is strictly after ``offset``."""
        position = bisect_right(self._starts, offset)
        if position < len(self.ordered_locations):
            return self.ordered_locations[position]
        return None

    def resolve(self, offset: int) -> Optional[Location]:
        """Resolve an offset using the containment, look-ahead, step-back chain.

        1. the tightest location containing ``offset``;
        2. otherwise the nearest location starting after ``offset``;
        3. otherwise, if ``offset > 0``, repeat at ``offset - 1``.

        Step 3 only finds something once the offset has moved back to the
        largest end offset, so the retry jumps there directly.
        """
        if not self.ordered_locations:
            return None
        offset = max(0, min(offset, len(self.text)))
        while True:
            hit = self.tightest_containing(offset)
            if hit is not None:
                return hit
            after = self.first_starting_after(offset)
            if after is not None:
                return after
            if offset <= 0:
                return None
            offset = min(offset - 1, self._max_end)


@dataclass
class _Frame:
    name: str
    path: NodePath
    start: int
    line: int
    column: int
    counters: Dict[str, int] = field(default_factory=dict)


def build_index(text: str) -> IndexResult:
    """Build the location index for ``text`` in one pass over its tags."""
    start_time = time.time()
    locations: List[Location] = []
    frames: List[_Frame] = []
    root_counters: Dict[str, int] = {}
    unclosed = 0
    orphans = 0

    def record(frame: _Frame, end: int) -> None:
        locations.append(
            Location(frame.path, frame.start, end, frame.line, frame.column)
        )

    for token in scan_tags(text):
        if token.type is TokenType.END_TAG:
            match_index = None
            for position in range(len(frames) - 1, -1, -1):
                if frames[position].name == token.name:
                    match_index = position
                    break
            if match_index is None:
                orphans += 1
                continue
            while len(frames) > match_index + 1:
                record(frames.pop(), token.start)
                unclosed += 1
            record(frames.pop(), token.end)
            continue

        if frames:
            parent_path = frames[-1].path
            counters = frames[-1].counters
        else:
            parent_path = NodePath()
            counters = root_counters
        counters[token.name] = counters.get(token.name, 0) + 1
        path = parent_path.child(token.name, counters[token.name])

        if token.type is TokenType.EMPTY_TAG:
            locations.append(
                Location(path, token.start, token.end, token.line, token.column)
            )
        else:
            frames.append(
                _Frame(token.name, path, token.start, token.line, token.column)
            )

    while frames:
        record(frames.pop(), len(text))
        unclosed += 1

    return IndexResult(
        text=text,
        locations_by_path={location.path: location for location in locations},
        ordered_locations=locations,
        unclosed_elements=unclosed,
        orphan_closing_tags=orphans,
        build_time_ms=(time.time() - start_time) * MS_PER_SECOND,
    )


class LocationIndex:
    """Memoized location index.

    The cached result is valid only for the exact text it was built from.
    Every query compares the queried text with the cached one and rebuilds
    on mismatch, so callers never have to invalidate eagerly.
    """

    def __init__(
        self,
        config: Optional[IndexConfig] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.config = config or IndexConfig()
        self.metrics = IndexMetrics()
        self.logger = get_logger(__name__, correlation_id, "location_index")
        self._cached: Optional[IndexResult] = None

    def invalidate(self) -> None:
        """Drop the cached index; the next query rebuilds."""
        self._cached = None

    def get(self, text: str) -> IndexResult:
        """Return the index for ``text``, rebuilding if the text changed."""
        cached = self._cached
        if (
            self.config.enable_caching
            and cached is not None
            and (cached.text is text or cached.text == text)
        ):
            self.metrics.cache_hits += 1
            return cached

        self.metrics.cache_misses += 1
        result = build_index(text)
        self.metrics.builds += 1
        self.metrics.locations_indexed += result.location_count
        self.metrics.last_build_ms = result.build_time_ms
        self._cached = result

        self.logger.debug(
            "Location index rebuilt",
            extra={
                "text_length": len(text),
                "locations": result.location_count,
                "unclosed_elements": result.unclosed_elements,
                "orphan_closing_tags": result.orphan_closing_tags,
                "build_time_ms": result.build_time_ms,
            },
        )
        return result

    def build(self, text: str) -> IndexResult:
        """Build (or reuse) the index for ``text``."""
        return self.get(text)

    def path_at(self, text: str, offset: int) -> Optional[NodePath]:
        """Path of the element at ``offset``, or ``None`` when the text has no tags."""
        location = self.get(text).resolve(offset)
        return location.path if location is not None else None

    def location_at(
        self, text: str, path: Union[str, NodePath]
    ) -> Optional[Location]:
        """Location of ``path`` in ``text``; ``None`` if the element no longer exists."""
        try:
            target = NodePath.coerce(path)
        except ValueError:
            self.logger.debug("Unparseable path lookup", extra={"path": str(path)})
            return None
        return self.get(text).locations_by_path.get(target)

    def locations(self, text: str) -> List[Location]:
        """All locations of ``text`` in document order."""
        return list(self.get(text).ordered_locations)
