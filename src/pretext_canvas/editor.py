"""Editing session orchestrating both views.

``EditorSession`` owns an ``EditorContext`` and wires the transcoder, the
location index, the selection synchronizer, the history manager and the
validator together. The rendering layer calls the public methods and
listens to ``session.events``; it never mutates the context directly.

Every public operation is executed through the command dispatcher, so an
event listener that calls back into the session is served after the current
operation completes. Operations never raise for user-level problems (bad
paths, malformed markup, empty history); they report through events, the
status line and ``session.diagnostics`` and return a neutral value.
"""

import uuid
from typing import Any, Callable, Dict, List, Optional, Union

from pretext_canvas.edits import InsertNode, RemoveNode, StructureEdit, UpdateNode
from pretext_canvas.history import HistoryManager, Snapshot
from pretext_canvas.indexing import Location, LocationIndex
from pretext_canvas.outline import OutlineItem, build_outline, parse_error_outline
from pretext_canvas.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    EditorConfig,
    MalformedMarkupError,
    get_logger,
)
from pretext_canvas.sync import (
    CommandDispatcher,
    EditorContext,
    EditorEvent,
    EventEmitter,
    Scheduler,
    Selection,
    SelectionSynchronizer,
    ViewMode,
    VirtualClockScheduler,
)
from pretext_canvas.templates import DEFAULT_DOCUMENT, element_snippet, get_template
from pretext_canvas.transcoding import Transcoder
from pretext_canvas.tree import Document, Node, NodePath
from pretext_canvas.validation import LxmlWellFormednessValidator, ValidationReport, Validator

COMPONENT = "editor"


class EditorSession:
    """One document edited through a structured view and a text view.

    Example:
        >>> session = EditorSession("<a><b>1</b><b>2</b></a>")
        >>> session.navigate_to_path("a[1]/b[2]").start
        11
        >>> session.apply_text_edit(3, 3, "<b>3</b>")
        True
        >>> str(session.path_at(22))
        'a[1]/b[3]'
    """

    def __init__(
        self,
        text: Optional[str] = None,
        config: Optional[EditorConfig] = None,
        scheduler: Optional[Scheduler] = None,
        validator: Optional[Validator] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize the session and load ``text`` (the default document when omitted).

        Args:
            text: Initial markup
            config: Editor configuration, defaults when omitted
            scheduler: Debounce timer source; a virtual clock when omitted,
                pass an ``AsyncioScheduler`` inside an event loop
            validator: Well-formedness validator, lxml-backed when omitted
            correlation_id: Session identifier for log records
        """
        self.config = config or EditorConfig.default()
        if correlation_id is None and self.config.global_.enable_correlation_tracking:
            correlation_id = uuid.uuid4().hex
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, COMPONENT)

        self.context = EditorContext()
        self.events = EventEmitter(correlation_id)
        self.dispatcher = CommandDispatcher(correlation_id)
        self.scheduler = scheduler or VirtualClockScheduler(correlation_id)
        self.transcoder = Transcoder(self.config.transcoder, correlation_id=correlation_id)
        self.index = LocationIndex(self.config.index, correlation_id)
        self.selection = SelectionSynchronizer(self.index, self.config.selection, correlation_id)
        self.validator = validator or LxmlWellFormednessValidator(
            self.config.validation,
            huge_tree=self.config.transcoder.huge_tree,
            correlation_id=correlation_id,
        )
        self.history = HistoryManager(
            capture=self._capture,
            apply=self._apply_snapshot,
            scheduler=self.scheduler,
            config=self.config.history,
            state=self.context.history,
            on_applied=self._after_history,
            on_change=self._history_changed,
            on_status=self._set_status,
            correlation_id=correlation_id,
        )

        self.diagnostics: List[DiagnosticEntry] = []
        self.outline: List[OutlineItem] = []
        self.validation_report: Optional[ValidationReport] = None
        self.status = ""

        initial = DEFAULT_DOCUMENT if text is None else text
        self._run("load_document", lambda: self._load(initial, "Document loaded"))

    # Read-only views

    @property
    def text(self) -> str:
        return self.context.text_view.text

    @property
    def structure(self) -> Document:
        return self.context.structure_view.document

    @property
    def selected_path(self) -> Optional[NodePath]:
        return self.context.structure_view.selection.focus_path

    @property
    def caret(self) -> int:
        return self.context.text_view.caret

    @property
    def modified(self) -> bool:
        return self.context.modified

    @property
    def view_mode(self) -> ViewMode:
        return self.context.view_mode

    @property
    def cursor_position(self) -> str:
        """Status-bar caret position, e.g. ``Line 3, Column 7``."""
        return self.context.text_view.cursor_position()

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def path_at(self, offset: int) -> Optional[NodePath]:
        """Path of the element at a text offset."""
        return self.index.path_at(self.text, offset)

    def location_of(self, path: Union[str, NodePath]) -> Optional[Location]:
        """Text range of the element at ``path``."""
        return self.index.location_at(self.text, path)

    def source_document(self) -> Optional[Document]:
        """Source-vocabulary tree of the current text, ``None`` while malformed."""
        if self.context.structure_view.is_placeholder:
            return None
        return self.transcoder.restore(self.structure)

    # Text view operations

    def set_text(self, text: str, caret: Optional[int] = None) -> bool:
        """Replace the whole text buffer (one keystroke or paste in the text view)."""
        return self._run("set_text", lambda: self._text_edited(text, caret), False)

    def apply_text_edit(self, start: int, end: int, replacement: str) -> bool:
        """Replace ``text[start:end]`` with ``replacement``; the caret follows it."""

        def action() -> bool:
            current = self.text
            low = max(0, min(start, len(current)))
            high = max(low, min(end, len(current)))
            new_text = current[:low] + replacement + current[high:]
            return self._text_edited(new_text, low + len(replacement))

        return self._run("apply_text_edit", action, False)

    def move_caret(self, start: int, end: Optional[int] = None) -> Optional[NodePath]:
        """Move the text caret/selection and select the enclosing structured node."""

        def action() -> Optional[NodePath]:
            self.context.text_view.set_selection(start, end)
            path = self.selection.from_text_to_structure(self.context, start)
            self._emit_structure()
            return path

        return self._run("move_caret", action)

    def focus_source_position(self, line: int, column: int = 1) -> Optional[NodePath]:
        """Put the caret at ``line``/``column`` (for example a validation error)."""

        def action() -> Optional[NodePath]:
            path = self.selection.focus_source_position(self.context, line, column)
            self._emit_text()
            self._emit_structure()
            return path

        return self._run("focus_source_position", action)

    def focus_validation_error(self) -> Optional[NodePath]:
        """Focus the position of the current validation error, if it has one."""
        report = self.validation_report
        if report is None or report.is_valid or report.line is None:
            return None
        return self.focus_source_position(report.line, report.column or 1)

    # Structured view operations

    def apply_structure_edit(self, edit: StructureEdit) -> Optional[NodePath]:
        """Apply an insert/update/remove edit made in the structured view.

        Returns:
            Path of the inserted or updated node (the parent for removals), or
            ``None`` when the edit could not be applied
        """
        return self._run(
            "apply_structure_edit", lambda: self._structure_edited(edit, force_snapshot=False)
        )

    def select_node(self, path: Union[str, NodePath]) -> Optional[Location]:
        """Select a structured node (a click in the structured view)."""

        def action() -> Optional[Location]:
            node = self._node_at(path)
            if node is None:
                return None
            location = self.selection.from_structure_to_text(self.context, node)
            self._emit_text()
            self._emit_structure()
            return location

        return self._run("select_node", action)

    # Navigation

    def navigate_to_path(self, path: Union[str, NodePath]) -> Optional[Location]:
        """Select ``path`` in both views (outline click)."""

        def action() -> Optional[Location]:
            location = self.selection.select_path(self.context, path)
            if location is None:
                self._resolution_failed(f"Could not locate element at path {path}")
                return None
            self._emit_text()
            self._emit_structure()
            return location

        return self._run("navigate_to_path", action)

    def navigate_to_identifier(self, identifier: str) -> Optional[Location]:
        """Select the element whose ``xml:id`` (or ``id``) is ``identifier``."""

        def action() -> Optional[Location]:
            if not identifier or identifier == "error":
                return None
            node = self.structure.get_element_by_id(
                identifier, self.config.outline.id_attributes
            )
            if node is None or node.path is None:
                self._resolution_failed(
                    f"Could not locate element for identifier {identifier}"
                )
                return None
            location = self.selection.select_path(self.context, node.path)
            if location is None:
                self._resolution_failed(
                    f"Could not locate element for identifier {identifier}"
                )
                return None
            self._emit_text()
            self._emit_structure()
            return location

        return self._run("navigate_to_identifier", action)

    # Palette, documents and history

    def insert_element(self, element_type: str) -> bool:
        """Insert a palette element at the caret (source/split) or after the selection (visual)."""
        return self._run("insert_element", lambda: self._insert_element(element_type), False)

    def new_document(self, template_id: Optional[str] = None, force: bool = False) -> bool:
        """Replace the document with a template (the default document when omitted).

        Refuses, with a status message, when there are unsaved changes and
        ``force`` is not set.
        """

        def action() -> bool:
            if self.context.modified and not force:
                self._set_status("Unsaved changes; save or force a new document")
                return False
            if template_id is None:
                skeleton = DEFAULT_DOCUMENT
            else:
                template = get_template(template_id)
                if template is None:
                    self._set_status(f"Unknown template: {template_id}")
                    return False
                skeleton = template.skeleton
            self._load(skeleton, "New document created")
            return True

        return self._run("new_document", action, False)

    def load_document(self, text: str, name: Optional[str] = None) -> bool:
        """Load ``text`` as a fresh, unmodified document with a new history."""
        status = f"Loaded: {name}" if name else "Document loaded"
        return self._run("load_document", lambda: self._load(text, status), False)

    def mark_saved(self) -> str:
        """Clear the modified flag and return the text to be written."""

        def action() -> str:
            self.context.modified = False
            self._set_status("Document saved")
            return self.text

        return self._run("mark_saved", action, self.text)

    def set_view_mode(self, mode: Union[str, ViewMode]) -> bool:
        """Switch between visual, source and split views."""

        def action() -> bool:
            try:
                self.context.view_mode = ViewMode(mode)
            except ValueError:
                self._set_status(f"Unknown view mode: {mode}")
                return False
            return True

        return self._run("set_view_mode", action, False)

    def set_focus(self, view: Optional[str]) -> None:
        """Record which view has keyboard focus: ``"text"``, ``"structure"`` or ``None``."""
        self.context.text_view.has_focus = view == "text"
        self.context.structure_view.has_focus = view == "structure"

    def request_snapshot(self, force: bool = False) -> bool:
        """Record a history entry now."""
        return self._run("request_snapshot", lambda: self.history.record_snapshot(force), False)

    def undo(self) -> bool:
        return self._run("undo", self.history.undo, False)

    def redo(self) -> bool:
        return self._run("redo", self.history.redo, False)

    # Internals: synchronization

    def _run(self, name: str, action: Callable[[], Any], default: Any = None) -> Any:
        outcome = self.dispatcher.dispatch(name, action)
        if outcome is None:
            return default
        if not outcome.ok:
            self._record(
                DiagnosticSeverity.CRITICAL,
                f"Operation {name} failed: {outcome.error}",
            )
            return default
        return outcome.result

    def _load(self, text: str, status: str) -> bool:
        self.history.cancel_pending()
        self.context.text_view.set_selection(0)
        self._sync_from_text(text)
        self.context.modified = False
        self.context.structure_view.selection = Selection()
        self.context.structure_view.scrolled_to = None
        self.history.reset()
        self._refresh_derived()
        self._emit_text()
        self._emit_structure()
        self._set_status(status)
        return True

    def _text_edited(self, text: str, caret: Optional[int]) -> bool:
        self._sync_from_text(text)
        if caret is not None:
            self.context.text_view.set_selection(caret)
        else:
            self.context.text_view.set_selection(
                self.context.text_view.selection_start, self.context.text_view.selection_end
            )
        self._mark_modified()
        self._refresh_derived()
        self.selection.from_text_to_structure(self.context, self.context.text_view.caret)
        self._emit_text()
        self._emit_structure()
        self.history.schedule_snapshot()
        return True

    def _sync_from_text(self, text: str) -> None:
        """Rebuild the structured view from ``text``."""
        self.context.text_view.text = text
        self.index.invalidate()
        structure_view = self.context.structure_view
        try:
            structure = self.transcoder.text_to_structure(text)
            structure_view.is_placeholder = False
        except MalformedMarkupError as e:
            self.logger.warning(
                "Markup is not well-formed, showing placeholder",
                extra={"line": e.line, "column": e.column},
            )
            self._record(
                DiagnosticSeverity.ERROR,
                e.message,
                position={"line": e.line or 0, "column": e.column or 0},
            )
            structure = self.transcoder.fallback_structure(e)
            structure_view.is_placeholder = True
        structure_view.document = structure
        self._drop_stale_selection()

    def _sync_from_structure(self) -> None:
        """Serialize the structured view and rebuild both views from the result."""
        text = self.transcoder.structure_to_text(self.structure)
        self._sync_from_text(text)

    def _drop_stale_selection(self) -> None:
        structure_view = self.context.structure_view
        paths = structure_view.document.path_map()
        if structure_view.selection.focus_path not in paths:
            structure_view.selection = Selection()
        if structure_view.scrolled_to not in paths:
            structure_view.scrolled_to = None

    def _refresh_derived(self) -> None:
        """Recompute outline and validation for the current text."""
        if self.context.applying_history:
            return
        if self.context.structure_view.is_placeholder:
            self.outline = parse_error_outline()
        else:
            self.outline = build_outline(
                self.transcoder.restore(self.structure), self.config.outline
            )
        self.events.emit(EditorEvent.OUTLINE_CHANGED, list(self.outline))

        if self.config.validation.enabled:
            self.validation_report = self.validator.check(self.text)
            self.events.emit(EditorEvent.VALIDATION_CHANGED, self.validation_report)

    def _mark_modified(self) -> None:
        if not self.context.modified:
            self.context.modified = True
            self._set_status("Document modified")

    # Internals: structure edits

    def _node_at(self, path: Union[str, NodePath]) -> Optional[Node]:
        if self.context.structure_view.is_placeholder:
            self._resolution_failed("Structure is unavailable until the markup is well-formed")
            return None
        try:
            target = NodePath.coerce(path)
        except ValueError:
            self._resolution_failed(f"Could not locate element at path {path}")
            return None
        node = self.structure.path_map().get(target)
        if node is None:
            self._resolution_failed(f"Could not locate element at path {path}")
        return node

    def _structure_edited(
        self, edit: StructureEdit, force_snapshot: bool
    ) -> Optional[NodePath]:
        if isinstance(edit, InsertNode):
            target = self._insert_nodes(edit)
        elif isinstance(edit, UpdateNode):
            target = self._update_node(edit)
        elif isinstance(edit, RemoveNode):
            target = self._remove_node(edit)
        else:
            raise TypeError(f"Unsupported structure edit: {type(edit).__name__}")
        if target is None:
            return None

        self._sync_from_structure()
        self._mark_modified()
        self._refresh_derived()
        if target:
            self.selection.select_path(self.context, target)
        self._emit_text()
        self._emit_structure()
        if force_snapshot:
            self.history.cancel_pending()
            self.history.record_snapshot(force=True)
        else:
            self.history.schedule_snapshot()
        return target

    def _insert_nodes(self, edit: InsertNode) -> Optional[NodePath]:
        parent = self._node_at(edit.parent_path)
        if parent is None or parent.path is None:
            return None
        if edit.node is not None:
            nodes = [edit.node]
        else:
            try:
                nodes = self.transcoder.present_nodes(self.transcoder.parse_fragment(edit.markup or ""))
            except MalformedMarkupError as e:
                self._set_status(f"Cannot insert malformed markup: {e.message}")
                return None
        if not nodes:
            return None

        elements = parent.element_children
        if edit.position is None or edit.position >= len(elements):
            index = len(parent.children)
        else:
            index = parent.children.index(elements[edit.position])
        if index > 0 and nodes[-1].tail is None:
            nodes[-1].tail = parent.children[index - 1].tail

        for offset, node in enumerate(nodes):
            parent.insert_child(index + offset, node)

        first = next((node for node in nodes if node.is_element), None)
        if first is None:
            return parent.path
        tag = self.transcoder.source_tag_of(first)
        occurrence = 0
        for sibling in parent.element_children:
            if self.transcoder.source_tag_of(sibling) == tag:
                occurrence += 1
            if sibling is first:
                break
        return parent.path.child(tag, occurrence)

    def _update_node(self, edit: UpdateNode) -> Optional[NodePath]:
        node = self._node_at(edit.path)
        if node is None:
            return None
        internal = self.config.transcoder.internal_attributes
        for name, value in edit.attributes.items():
            if name in internal:
                continue
            if value is None:
                node.attributes.pop(name, None)
            else:
                node.set_attribute(name, value)
        if edit.text is not None:
            node.text = edit.text or None
        return node.path

    def _remove_node(self, edit: RemoveNode) -> Optional[NodePath]:
        node = self._node_at(edit.path)
        if node is None:
            return None
        parent = node.parent
        if parent is None:
            self._set_status("The root element cannot be removed")
            return None
        parent.remove_child(node)
        return parent.path

    def _insert_element(self, element_type: str) -> bool:
        snippet = element_snippet(element_type)
        if snippet is None:
            self._set_status(f"Unknown element type: {element_type}")
            return False

        use_text = (
            self.context.view_mode.shows_text or self.context.structure_view.is_placeholder
        )
        if use_text:
            self.history.cancel_pending()
            text_view = self.context.text_view
            start, end = text_view.selection_start, text_view.selection_end
            inserted = f"\n{snippet}\n"
            new_text = self.text[:start] + inserted + self.text[end:]
            self._sync_from_text(new_text)
            text_view.set_selection(start + len(inserted))
            text_view.has_focus = True
            self._mark_modified()
            self._refresh_derived()
            self.selection.from_text_to_structure(self.context, start + 1)
            self._emit_text()
            self._emit_structure()
            self.history.record_snapshot(force=True)
        else:
            edit = self._insertion_after_selection(snippet)
            if edit is None or self._structure_edited(edit, force_snapshot=True) is None:
                return False
        self._set_status(f"Inserted {element_type}")
        return True

    def _insertion_after_selection(self, snippet: str) -> Optional[InsertNode]:
        root = self.structure.root
        if root is None or root.path is None:
            return None
        selected = self.selected_path
        node = self.structure.path_map().get(selected) if selected is not None else None
        if node is None or node.parent is None or node.parent.path is None:
            return InsertNode(parent_path=root.path, markup=snippet)
        position = node.parent.element_children.index(node) + 1
        return InsertNode(parent_path=node.parent.path, markup=snippet, position=position)

    # Internals: history

    def _capture(self) -> Snapshot:
        return Snapshot(
            text=self.text,
            structure=self.transcoder.serialize_structure(self.structure),
            modified=self.context.modified,
        )

    def _apply_snapshot(self, snapshot: Snapshot) -> None:
        text_view = self.context.text_view
        structure_view = self.context.structure_view
        text_view.text = snapshot.text
        text_view.set_selection(text_view.selection_start, text_view.selection_end)
        try:
            document = self.transcoder.load_structure(snapshot.structure)
        except MalformedMarkupError as e:
            document = self.transcoder.fallback_structure(e)
        structure_view.document = document
        structure_view.is_placeholder = self.transcoder.is_fallback(document)
        self.context.modified = snapshot.modified
        self._drop_stale_selection()

    def _after_history(self, snapshot: Snapshot) -> None:
        self.index.invalidate()
        self._refresh_derived()
        self._emit_text()
        self._emit_structure()

    def _history_changed(self, can_undo: bool, can_redo: bool) -> None:
        self.events.emit(EditorEvent.HISTORY_CHANGED, can_undo, can_redo)

    # Internals: reporting

    def _emit_text(self) -> None:
        self.events.emit(EditorEvent.TEXT_CHANGED, self.text, self.caret)

    def _emit_structure(self) -> None:
        self.events.emit(EditorEvent.STRUCTURE_CHANGED, self.structure, self.selected_path)

    def _set_status(self, message: str) -> None:
        self.status = message
        self.events.emit(EditorEvent.STATUS_CHANGED, message)

    def _resolution_failed(self, message: str) -> None:
        self.logger.info(message)
        self._record(DiagnosticSeverity.WARNING, message)
        self.events.emit(EditorEvent.RESOLUTION_FAILED, message)

    def _record(
        self,
        severity: DiagnosticSeverity,
        message: str,
        position: Optional[Dict[str, int]] = None,
    ) -> None:
        self.diagnostics.append(
            DiagnosticEntry(
                severity=severity,
                message=message or "Unknown error",
                component=COMPONENT,
                position=position,
                correlation_id=self.correlation_id,
            )
        )
        overflow = len(self.diagnostics) - self.config.global_.max_diagnostics
        if overflow > 0:
            del self.diagnostics[:overflow]
