"""Unit tests for DocumentStore, CompilationRequest and EditorSession."""

from types import MappingProxyType

import pytest
from omegaconf import OmegaConf

from collabtex.contexts.editing import CompilationRequest, DocumentStore, EditorSession
from collabtex.contexts.editing.defaults import WELCOME_DOCUMENT


@pytest.fixture
def store():
    return DocumentStore(current="main.tex", initial_content="\\section{A}")


class TestDocumentStore:
    """Tests for per-document content, history and dirty state."""

    @pytest.mark.unit
    def test_current_document_is_open(self, store):
        assert store.current == "main.tex"
        assert "main.tex" in store
        assert store.content() == "\\section{A}"
        assert len(store.history()) == 1

    @pytest.mark.unit
    def test_open_unseen_creates_empty_document(self, store):
        assert store.open("intro.tex") == ""
        assert "intro.tex" in store
        assert store.history("intro.tex").snapshots == ("",)

    @pytest.mark.unit
    def test_open_existing_returns_content(self, store):
        store.record_edit("main.tex", "changed")
        assert store.open("main.tex") == "changed"

    @pytest.mark.unit
    def test_set_current_unknown_returns_false(self, store):
        assert store.set_current("missing.tex") is False
        assert store.current == "main.tex"

    @pytest.mark.unit
    def test_set_current_known(self, store):
        store.open("intro.tex")
        assert store.set_current("intro.tex") is True
        assert store.current == "intro.tex"

    @pytest.mark.unit
    def test_record_edit_marks_dirty_and_pushes(self, store):
        assert not store.is_dirty()

        assert store.record_edit("main.tex", "\\section{B}") is True
        assert store.is_dirty()
        assert store.content() == "\\section{B}"
        assert store.can_undo()

    @pytest.mark.unit
    def test_record_identical_edit_does_not_grow_history(self, store):
        store.record_edit("main.tex", "x")
        assert store.record_edit("main.tex", "x") is False
        assert len(store.history()) == 2

    @pytest.mark.unit
    def test_record_edit_opens_on_demand(self, store):
        store.record_edit("new.tex", "hello")
        assert store.content("new.tex") == "hello"
        assert store.history("new.tex").snapshots == ("", "hello")

    @pytest.mark.unit
    def test_save_clears_dirty_without_touching_history(self, store):
        store.record_edit("main.tex", "x")
        before = store.history().snapshots

        store.save()

        assert not store.is_dirty()
        assert store.history().snapshots == before

    @pytest.mark.unit
    def test_undo_redo_restore_content(self, store):
        store.record_edit("main.tex", "one")
        store.record_edit("main.tex", "two")

        assert store.undo() == "one"
        assert store.content() == "one"
        assert store.redo() == "two"
        assert store.content() == "two"

    @pytest.mark.unit
    def test_undo_at_boundary_is_silent(self, store):
        assert store.undo() is None
        assert store.redo() is None
        assert store.content() == "\\section{A}"

    @pytest.mark.unit
    def test_undo_unknown_document_raises_key_error(self, store):
        with pytest.raises(KeyError):
            store.undo("missing.tex")

    @pytest.mark.unit
    def test_add_existing_document_records_edit(self, store):
        store.add("main.tex", "replacement")
        assert store.history().snapshots == ("\\section{A}", "replacement")

    @pytest.mark.unit
    def test_names_in_insertion_order(self, store):
        store.add("b.tex", "")
        store.open("a.tex")
        assert store.names() == ["main.tex", "b.tex", "a.tex"]

    @pytest.mark.unit
    def test_word_count(self, store):
        store.record_edit("main.tex", "Hello  LaTeX\nworld")
        counts = store.word_count()
        assert counts.words == 3
        assert counts.characters == 18


class TestCompilationRequest:
    """Tests for request snapshots."""

    @pytest.mark.unit
    def test_request_contains_current_contents_in_order(self, store):
        store.add("intro.tex", "Intro")
        store.record_edit("main.tex", "\\input{intro}")

        request = store.build_request("main.tex")

        assert request.entry == "main.tex"
        assert list(request.files) == ["main.tex", "intro.tex"]
        assert request.entry_content == "\\input{intro}"

    @pytest.mark.unit
    def test_request_is_immutable_snapshot(self, store):
        request = store.build_request("main.tex")
        store.record_edit("main.tex", "edited after submit")

        assert request.entry_content == "\\section{A}"
        assert isinstance(request.files, MappingProxyType)
        with pytest.raises(TypeError):
            request.files["main.tex"] = "tampered"

    @pytest.mark.unit
    def test_request_opens_missing_entry(self, store):
        request = store.build_request("other.tex")
        assert request.entry_content == ""
        assert "other.tex" in store

    @pytest.mark.unit
    def test_build_rejects_entry_outside_files(self):
        with pytest.raises(ValueError, match="not part of the request"):
            CompilationRequest.build("main.tex", {"other.tex": ""})


class TestEditorSession:
    """Tests for EditorSession construction and snapshots."""

    @pytest.mark.unit
    def test_new_session_seeds_welcome_document(self):
        session = EditorSession.new()

        assert session.entry_file == "main.tex"
        assert session.store.current == "main.tex"
        assert session.store.content() == WELCOME_DOCUMENT
        assert session.store.history().snapshots == (WELCOME_DOCUMENT,)
        assert not session.store.is_dirty()

    @pytest.mark.unit
    def test_new_session_without_welcome(self):
        session = EditorSession.new(entry_file="paper.tex", welcome=False)
        assert session.store.content("paper.tex") == ""

    @pytest.mark.unit
    def test_from_settings(self):
        settings = OmegaConf.create({"editing": {"entry_file": "paper.tex", "history_limit": 3}})
        session = EditorSession.from_settings(settings, welcome=False)

        assert session.entry_file == "paper.tex"
        assert session.store.current == "paper.tex"
        for index in range(5):
            session.store.record_edit("paper.tex", str(index))
        assert len(session.store.history()) == 3

    @pytest.mark.unit
    def test_snapshot_editor_records_into_current(self):
        session = EditorSession.new(welcome=False)
        session.snapshot_editor("typed text")

        assert session.build_request().entry_content == "typed text"

    @pytest.mark.unit
    def test_snapshot_editor_none_is_noop(self):
        session = EditorSession.new(welcome=False)
        session.snapshot_editor(None)
        assert len(session.store.history()) == 1

    @pytest.mark.unit
    def test_from_files_keys_relative_to_entry(self, tmp_path):
        (tmp_path / "chapters").mkdir()
        entry = tmp_path / "main.tex"
        chapter = tmp_path / "chapters" / "one.tex"
        entry.write_text("\\input{chapters/one}", encoding="utf-8")
        chapter.write_text("Chapter one", encoding="utf-8")

        session = EditorSession.from_files(entry, [chapter])

        assert session.entry_file == "main.tex"
        assert session.store.names() == ["main.tex", "chapters/one.tex"]
        assert session.store.content("chapters/one.tex") == "Chapter one"
        assert len(session.store.history("main.tex")) == 1

    @pytest.mark.unit
    def test_from_files_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            EditorSession.from_files(tmp_path / "absent.tex")
