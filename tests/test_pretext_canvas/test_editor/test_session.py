"""Tests for the editing session orchestrating both views."""

import pytest

from pretext_canvas import EditorSession
from pretext_canvas.edits import InsertNode, RemoveNode, UpdateNode
from pretext_canvas.shared import DiagnosticSeverity, EditorConfig
from pretext_canvas.sync import EditorEvent, ViewMode
from pretext_canvas.templates import get_template
from pretext_canvas.tree import Node, NodePath
from pretext_canvas.validation import Validator

SAMPLE = "<a><b>1</b><b>2</b></a>"
ARTICLE = (
    '<pretext><article xml:id="art"><title>T</title>'
    '<section xml:id="s1"><p>x</p></section></article></pretext>'
)


class Recorder:
    """Collects events emitted by a session."""

    def __init__(self, session: EditorSession) -> None:
        self.events = []
        for event in EditorEvent:
            session.events.on(event, lambda *args, event=event: self.events.append((event, args)))

    def of(self, event: EditorEvent):
        return [args for recorded, args in self.events if recorded is event]


def settle(session: EditorSession) -> None:
    session.scheduler.advance(session.config.history.debounce_ms)


class TestLoading:
    """Test session construction and document loading."""

    def test_initial_state(self) -> None:
        """Test a freshly loaded document."""
        session = EditorSession(SAMPLE)

        assert session.text == SAMPLE
        assert not session.modified
        assert not session.can_undo
        assert session.status == "Document loaded"
        assert session.validation_report.is_valid
        assert session.structure.root.attributes["data-path"] == "a[1]"

    def test_default_document(self) -> None:
        """Test the built-in document and its outline."""
        session = EditorSession()

        assert [(item.type, item.title, item.level) for item in session.outline] == [
            ("book", "New PreTeXt Document", 0),
            ("chapter", "Introduction", 1),
            ("section", "Getting Started", 2),
        ]
        assert session.outline[1].id == "ch-introduction"

    def test_load_document(self) -> None:
        """Test loading replaces text and history."""
        session = EditorSession(SAMPLE)
        session.set_text("<a/>")
        settle(session)

        assert session.load_document(ARTICLE, "notes.ptx")
        assert session.text == ARTICLE
        assert session.status == "Loaded: notes.ptx"
        assert not session.modified
        assert not session.can_undo

    def test_source_document(self) -> None:
        """Test the source-vocabulary view of the structure."""
        session = EditorSession(ARTICLE)
        source = session.source_document()
        assert source.root.find_child("article").find_child("title") is not None

    def test_correlation_tracking(self) -> None:
        """Test session identifiers."""
        assert EditorSession(SAMPLE, correlation_id="abc").correlation_id == "abc"
        assert EditorSession(SAMPLE).correlation_id
        config = EditorConfig().override(global__enable_correlation_tracking=False)
        assert EditorSession(SAMPLE, config=config).correlation_id is None


class TestTextEditing:
    """Test edits made in the text view."""

    def test_scenario_from_sibling_insertion(self) -> None:
        """Test path lookups before and after inserting a same-tag sibling."""
        session = EditorSession(SAMPLE)

        assert session.navigate_to_path("a[1]/b[2]").start == 11
        assert session.apply_text_edit(3, 3, "<b>3</b>")
        assert session.text == "<a><b>3</b><b>1</b><b>2</b></a>"
        assert str(session.path_at(22)) == "a[1]/b[3]"
        assert session.caret == 11

    def test_set_text_updates_structure(self) -> None:
        """Test the structure follows the text."""
        session = EditorSession(SAMPLE)
        recorder = Recorder(session)

        assert session.set_text("<a><c/></a>", caret=4)

        assert session.structure.root.children[0].tag == "c"
        assert session.modified
        assert session.status == "Document modified"
        assert recorder.of(EditorEvent.TEXT_CHANGED)[-1] == ("<a><c/></a>", 4)
        assert str(session.selected_path) == "a[1]/c[1]"

    def test_malformed_text_shows_placeholder(self) -> None:
        """Test malformed markup keeps the text and replaces the structure."""
        session = EditorSession(SAMPLE)
        session.set_text("<a><b>1</b>")

        assert session.text == "<a><b>1</b>"
        assert session.structure.root.attributes == {"class": "parse-error"}
        assert session.structure.root.text.startswith("Parse error: ")
        assert session.source_document() is None
        assert session.outline[0].is_error
        assert not session.validation_report.is_valid
        assert session.diagnostics[-1].severity is DiagnosticSeverity.ERROR

        session.set_text(SAMPLE)
        assert session.structure.root.tag == "a"
        assert session.validation_report.is_valid

    def test_focus_validation_error(self) -> None:
        """Test the caret moves to the reported error line."""
        session = EditorSession(SAMPLE)
        session.set_text("<a>\n<b>\n</a>")

        session.focus_validation_error()

        assert session.validation_report.line == 3
        assert session.cursor_position.startswith("Line 3, ")
        assert session.context.text_view.has_focus

    def test_focus_validation_error_without_error(self) -> None:
        """Test nothing happens for a valid document."""
        assert EditorSession(SAMPLE).focus_validation_error() is None

    def test_move_caret_selects_structure(self) -> None:
        """Test caret moves select the enclosing node."""
        session = EditorSession(SAMPLE)
        assert str(session.move_caret(14)) == "a[1]/b[2]"
        assert session.caret == 14

    def test_listener_reentry_is_deferred(self) -> None:
        """Test a listener editing the text is served after the current operation."""
        session = EditorSession(SAMPLE)
        nested_results = []

        def listener(text, caret):
            if text == "<a><b/></a>" and not nested_results:
                nested_results.append(session.set_text("<a><c/></a>"))

        session.events.on(EditorEvent.TEXT_CHANGED, listener)
        assert session.set_text("<a><b/></a>")

        assert nested_results == [False]
        assert session.text == "<a><c/></a>"

    def test_failing_validator_is_contained(self) -> None:
        """Test unexpected failures become critical diagnostics."""

        class BrokenValidator(Validator):
            def check(self, text):
                raise RuntimeError("validator crashed")

        config = EditorConfig().override(global__max_diagnostics=2)
        session = EditorSession(SAMPLE, config=config, validator=BrokenValidator())

        assert session.set_text("<a/>") is False
        assert session.set_text("<b/>") is False
        assert session.set_text("<c/>") is False
        assert len(session.diagnostics) == 2
        assert session.diagnostics[-1].severity is DiagnosticSeverity.CRITICAL


class TestNavigation:
    """Test outline and identifier navigation."""

    def test_navigate_to_path(self) -> None:
        """Test both views select the element."""
        session = EditorSession(SAMPLE)
        location = session.navigate_to_path("a[1]/b[2]")

        assert (location.start, location.end) == (11, 19)
        assert (session.context.text_view.selection_start, session.caret) == (11, 19)
        assert str(session.selected_path) == "a[1]/b[2]"

    def test_navigate_to_missing_path(self) -> None:
        """Test unresolved paths are reported, not raised."""
        session = EditorSession(SAMPLE)
        recorder = Recorder(session)

        assert session.navigate_to_path("a[1]/b[9]") is None
        assert recorder.of(EditorEvent.RESOLUTION_FAILED) == [
            ("Could not locate element at path a[1]/b[9]",)
        ]
        assert session.diagnostics[-1].severity is DiagnosticSeverity.WARNING

    def test_navigate_to_identifier(self) -> None:
        """Test identifier lookup."""
        session = EditorSession(ARTICLE)
        location = session.navigate_to_identifier("s1")

        assert session.text[location.start :].startswith('<section xml:id="s1">')
        assert str(session.selected_path) == "pretext[1]/article[1]/section[1]"

    def test_navigate_to_ignored_identifiers(self) -> None:
        """Test empty and error identifiers are ignored silently."""
        session = EditorSession(ARTICLE)
        recorder = Recorder(session)

        assert session.navigate_to_identifier("") is None
        assert session.navigate_to_identifier("error") is None
        assert recorder.of(EditorEvent.RESOLUTION_FAILED) == []

        assert session.navigate_to_identifier("missing") is None
        assert recorder.of(EditorEvent.RESOLUTION_FAILED) == [
            ("Could not locate element for identifier missing",)
        ]

    def test_select_node(self) -> None:
        """Test structured clicks select the text range."""
        session = EditorSession(SAMPLE)
        location = session.select_node("a[1]/b[1]")
        assert (location.start, location.end) == (3, 11)


class TestStructureEditing:
    """Test edits made in the structured view."""

    def test_update_text(self) -> None:
        """Test text updates are written back to the markup."""
        session = EditorSession(SAMPLE)
        path = session.apply_structure_edit(UpdateNode("a[1]/b[1]", text="9"))

        assert session.text == "<a><b>9</b><b>2</b></a>"
        assert str(path) == "a[1]/b[1]"
        assert session.modified

    def test_update_text_with_carriage_return(self) -> None:
        """Test a carriage return written from the structured view is kept."""
        session = EditorSession(SAMPLE)
        session.apply_structure_edit(UpdateNode("a[1]/b[1]", text="a\r\nb"))

        assert session.text == "<a><b>a&#13;\nb</b><b>2</b></a>"
        session.set_text(session.text)
        assert session.text == "<a><b>a&#13;\nb</b><b>2</b></a>"

    def test_update_attributes(self) -> None:
        """Test attributes are set and removed; internal ones are protected."""
        session = EditorSession('<a><b x="1">1</b></a>')
        session.apply_structure_edit(
            UpdateNode("a[1]/b[1]", attributes={"x": None, "id": "new", "data-path": "z[1]"})
        )
        assert session.text == '<a><b id="new">1</b></a>'

    def test_remove_node(self) -> None:
        """Test removal selects the parent."""
        session = EditorSession(SAMPLE)
        path = session.apply_structure_edit(RemoveNode("a[1]/b[1]"))

        assert session.text == "<a><b>2</b></a>"
        assert str(path) == "a[1]"

    def test_root_cannot_be_removed(self) -> None:
        """Test the root element is protected."""
        session = EditorSession(SAMPLE)
        assert session.apply_structure_edit(RemoveNode("a[1]")) is None
        assert session.status == "The root element cannot be removed"
        assert session.text == SAMPLE

    def test_insert_markup_at_position(self) -> None:
        """Test inserting a snippet between element children."""
        session = EditorSession(SAMPLE)
        path = session.apply_structure_edit(InsertNode("a[1]", markup="<c>3</c>", position=1))

        assert session.text == "<a><b>1</b><c>3</c><b>2</b></a>"
        assert str(path) == "a[1]/c[1]"
        assert str(session.selected_path) == "a[1]/c[1]"

    def test_insert_presentation_node(self) -> None:
        """Test nodes built in the structured view are restored to source tags."""
        session = EditorSession(SAMPLE)
        node = Node("span", {"class": "math-inline"}, text="\\(x\\)")
        path = session.apply_structure_edit(InsertNode("a[1]", node=node))

        assert session.text == "<a><b>1</b><b>2</b><m>x</m></a>"
        assert str(path) == "a[1]/m[1]"

    def test_insert_malformed_markup(self) -> None:
        """Test malformed snippets are refused."""
        session = EditorSession(SAMPLE)
        assert session.apply_structure_edit(InsertNode("a[1]", markup="<c>")) is None
        assert session.status.startswith("Cannot insert malformed markup")
        assert session.text == SAMPLE

    def test_edit_unknown_path(self) -> None:
        """Test edits on missing nodes are reported."""
        session = EditorSession(SAMPLE)
        recorder = Recorder(session)
        assert session.apply_structure_edit(UpdateNode("a[1]/q[1]", text="x")) is None
        assert recorder.of(EditorEvent.RESOLUTION_FAILED)

    def test_edit_while_placeholder(self) -> None:
        """Test the placeholder cannot be edited."""
        session = EditorSession("<a>")
        assert session.apply_structure_edit(UpdateNode("a[1]", text="x")) is None
        assert session.text == "<a>"

    def test_structure_edit_can_be_undone(self) -> None:
        """Test structure edits enter the history."""
        session = EditorSession(SAMPLE)
        session.apply_structure_edit(RemoveNode("a[1]/b[2]"))

        assert session.undo()
        assert session.text == SAMPLE
        assert not session.modified
        assert session.redo()
        assert session.text == "<a><b>1</b></a>"
        assert session.modified

    def test_invalid_edit_values(self) -> None:
        """Test edit validation."""
        with pytest.raises(ValueError):
            InsertNode("a[1]")
        with pytest.raises(ValueError):
            InsertNode("a[1]", markup="<b/>", position=-1)
        with pytest.raises(ValueError):
            UpdateNode("a[1]")


class TestInsertElement:
    """Test palette insertion."""

    def test_visual_mode_inserts_after_selection(self) -> None:
        """Test insertion after the selected node in the structured view."""
        session = EditorSession(ARTICLE)
        session.select_node("pretext[1]/article[1]/section[1]/p[1]")

        assert session.insert_element("p")

        assert "<p>x</p><p>New paragraph text...</p></section>" in session.text
        assert str(session.selected_path) == "pretext[1]/article[1]/section[1]/p[2]"
        assert session.status == "Inserted p"
        assert session.can_undo

    def test_visual_mode_without_selection_appends_to_root(self) -> None:
        """Test insertion without a selection."""
        session = EditorSession("<a><b/></a>")
        assert session.insert_element("p")
        assert session.text == "<a><b/><p>New paragraph text...</p></a>"

    def test_source_mode_inserts_at_caret(self) -> None:
        """Test insertion into the text at the caret."""
        session = EditorSession("<a></a>")
        session.set_view_mode("source")
        session.move_caret(3)

        assert session.insert_element("p")

        inserted = "\n<p>New paragraph text...</p>\n"
        assert session.text == "<a>" + inserted + "</a>"
        assert session.caret == 3 + len(inserted)
        assert str(session.selected_path) == "a[1]/p[1]"
        assert session.can_undo

    def test_placeholder_inserts_into_text(self) -> None:
        """Test malformed documents fall back to text insertion."""
        session = EditorSession("<a>")
        assert session.insert_element("p")
        assert "<p>New paragraph text...</p>" in session.text

    def test_unknown_element(self) -> None:
        """Test unknown palette entries."""
        session = EditorSession(SAMPLE)
        assert not session.insert_element("widget")
        assert session.status == "Unknown element type: widget"


class TestDocumentsAndModes:
    """Test document lifecycle and view modes."""

    def test_new_document_refuses_unsaved_changes(self) -> None:
        """Test the unsaved-changes guard."""
        session = EditorSession(SAMPLE)
        session.set_text("<a/>")

        assert not session.new_document("concise-article")
        assert session.text == "<a/>"
        assert session.status.startswith("Unsaved changes")

    def test_new_document_from_template(self) -> None:
        """Test forcing a new document from a template."""
        session = EditorSession(SAMPLE)
        session.set_text("<a/>")

        assert session.new_document("concise-article", force=True)
        assert session.text == get_template("concise-article").skeleton
        assert not session.modified
        assert not session.can_undo
        assert session.outline[0].type == "article"

    def test_new_document_unknown_template(self) -> None:
        """Test unknown templates."""
        session = EditorSession(SAMPLE)
        assert not session.new_document("missing")
        assert session.status == "Unknown template: missing"

    def test_mark_saved(self) -> None:
        """Test saving clears the modified flag."""
        session = EditorSession(SAMPLE)
        session.set_text("<a/>")

        assert session.mark_saved() == "<a/>"
        assert not session.modified
        assert session.status == "Document saved"

    def test_view_modes(self) -> None:
        """Test switching view modes."""
        session = EditorSession(SAMPLE)
        assert session.set_view_mode(ViewMode.SPLIT)
        assert session.view_mode is ViewMode.SPLIT
        assert not session.set_view_mode("bogus")
        assert session.view_mode is ViewMode.SPLIT

    def test_set_focus(self) -> None:
        """Test focus bookkeeping."""
        session = EditorSession(SAMPLE)
        session.set_focus("structure")
        assert session.context.structure_view.has_focus
        assert not session.context.text_view.has_focus
        session.set_focus(None)
        assert not session.context.structure_view.has_focus


class TestHistory:
    """Test undo and redo through the session."""

    def test_debounced_typing_is_one_entry(self) -> None:
        """Test rapid edits coalesce into one history entry."""
        session = EditorSession("<a/>")
        for number in range(5):
            session.set_text(f"<a>{number}</a>")
            session.scheduler.advance(100)
        settle(session)

        assert len(session.context.history.undo_stack) == 2
        assert session.undo()
        assert session.text == "<a/>"

    def test_undo_redo_inverse(self) -> None:
        """Test undo followed by redo restores every state."""
        session = EditorSession("<a/>")
        session.set_text("<a><b/></a>")
        settle(session)
        session.set_text("<a><b/><c/></a>")
        settle(session)

        assert session.undo()
        assert session.text == "<a><b/></a>"
        assert session.undo()
        assert session.text == "<a/>"
        assert not session.undo()
        assert session.status == "Nothing to undo"
        assert session.redo()
        assert session.redo()
        assert session.text == "<a><b/><c/></a>"
        assert str(session.path_at(8)) == "a[1]/c[1]"

    def test_undo_restores_structure_paths(self) -> None:
        """Test the structure restored from history is navigable."""
        session = EditorSession(SAMPLE)
        session.set_text("<a><b>1</b></a>")
        session.undo()

        assert session.structure.root.children[1].path == NodePath.parse("a[1]/b[2]")
        assert session.navigate_to_path("a[1]/b[2]").start == 11

    def test_undo_across_placeholder(self) -> None:
        """Test malformed states can be undone and redone."""
        session = EditorSession(SAMPLE)
        session.set_text("<a>")
        settle(session)

        assert session.undo()
        assert session.structure.root.tag == "a"
        assert session.redo()
        assert session.context.structure_view.is_placeholder
        assert session.outline[0].is_error

    def test_history_events(self) -> None:
        """Test availability notifications."""
        session = EditorSession(SAMPLE)
        recorder = Recorder(session)
        session.set_text("<a/>")
        settle(session)
        session.undo()

        assert recorder.of(EditorEvent.HISTORY_CHANGED) == [(True, False), (False, True)]

    def test_request_snapshot(self) -> None:
        """Test explicit snapshots."""
        session = EditorSession(SAMPLE)
        assert not session.request_snapshot()
        assert session.request_snapshot(force=True)
        assert session.can_undo
