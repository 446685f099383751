"""Cross-view caret and selection synchronization.

Both directions share the ``sync_in_progress`` guard of the context: while
one synchronization is running, a second request (typically triggered by the
selection change the first one made) is ignored. Failures are silent: a
method that cannot resolve its target leaves the views unchanged and returns
``None``.
"""

from contextlib import contextmanager
from typing import Iterator, Optional, Union

from pretext_canvas.indexing import (
    Location,
    LocationIndex,
    line_column_at,
    line_count,
    offset_for_line_column,
)
from pretext_canvas.shared import SelectionConfig, get_logger
from pretext_canvas.tree import Node, NodePath

from .context import EditorContext, Selection


def scroll_ratio_for(text: str, offset: int) -> float:
    """Vertical scroll position that brings the line of ``offset`` into view."""
    line, _ = line_column_at(text, offset)
    return (line - 1) / max(line_count(text) - 1, 1)


class SelectionSynchronizer:
    """Moves the caret and selection between the structured and text views."""

    def __init__(
        self,
        index: LocationIndex,
        config: Optional[SelectionConfig] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.index = index
        self.config = config or SelectionConfig()
        self.logger = get_logger(__name__, correlation_id, "selection")

    @contextmanager
    def _guard(self, ctx: EditorContext) -> Iterator[bool]:
        if ctx.sync_in_progress:
            yield False
            return
        ctx.sync_in_progress = True
        try:
            yield True
        finally:
            ctx.sync_in_progress = False

    def from_structure_to_text(self, ctx: EditorContext, node: Node) -> Optional[Location]:
        """Select the text range of ``node`` (or its nearest addressed ancestor)."""
        with self._guard(ctx) as entered:
            if not entered:
                return None
            try:
                return self._structure_to_text(ctx, node)
            except Exception:
                self.logger.exception("Structure to text synchronization failed")
                return None

    def _structure_to_text(self, ctx: EditorContext, node: Node) -> Optional[Location]:
        addressed = next(
            (candidate for candidate in node.ancestors_and_self() if candidate.path is not None),
            None,
        )
        if addressed is None:
            self.logger.debug("Node has no addressed ancestor", extra={"tag": node.tag})
            return None
        ctx.structure_view.selection = Selection.collapsed(addressed.path)
        return self._select_location(ctx, addressed.path)

    def _select_location(self, ctx: EditorContext, path: NodePath) -> Optional[Location]:
        text_view = ctx.text_view
        location = self.index.location_at(text_view.text, path)
        if location is None:
            self.logger.debug("Path not present in text", extra={"path": str(path)})
            return None
        if self.config.collapse_to_start:
            text_view.set_selection(location.start)
        else:
            text_view.set_selection(location.start, location.end)
        text_view.scroll_ratio = scroll_ratio_for(text_view.text, text_view.selection_start)
        return location

    def from_text_to_structure(self, ctx: EditorContext, offset: int) -> Optional[NodePath]:
        """Select the structured node enclosing the text ``offset``."""
        with self._guard(ctx) as entered:
            if not entered:
                return None
            try:
                return self._text_to_structure(ctx, offset)
            except Exception:
                self.logger.exception("Text to structure synchronization failed")
                return None

    def _text_to_structure(self, ctx: EditorContext, offset: int) -> Optional[NodePath]:
        path = self.index.path_at(ctx.text_view.text, offset)
        if path is None:
            return None
        if path not in ctx.structure_view.document.path_map():
            self.logger.debug("Path not present in structure", extra={"path": str(path)})
            return None
        self._select_structure(ctx, path)
        return path

    def _select_structure(self, ctx: EditorContext, path: NodePath) -> None:
        structure_view = ctx.structure_view
        structure_view.selection = Selection.collapsed(path)
        if not structure_view.has_focus or self.config.scroll_focused_structure:
            structure_view.scrolled_to = path

    def select_path(
        self, ctx: EditorContext, path: Union[str, NodePath]
    ) -> Optional[Location]:
        """Select ``path`` in both views (outline and identifier navigation)."""
        with self._guard(ctx) as entered:
            if not entered:
                return None
            try:
                target = NodePath.coerce(path)
            except ValueError:
                self.logger.debug("Unparseable path", extra={"path": str(path)})
                return None
            try:
                location = self._select_location(ctx, target)
                if target in ctx.structure_view.document.path_map():
                    self._select_structure(ctx, target)
                return location
            except Exception:
                self.logger.exception("Path selection failed")
                return None

    def focus_source_position(
        self, ctx: EditorContext, line: int, column: int = 1
    ) -> Optional[NodePath]:
        """Put the caret at ``line``/``column`` and select the enclosing node."""
        text_view = ctx.text_view
        offset = offset_for_line_column(text_view.text, line, column)
        text_view.set_selection(offset)
        text_view.scroll_ratio = scroll_ratio_for(text_view.text, offset)
        text_view.has_focus = True
        return self.from_text_to_structure(ctx, offset)
