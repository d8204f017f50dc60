"""
Editor session state.

Explicit application state handed to the compilation orchestrator, so the core
can be driven and tested without any rendering surface.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from collabtex.contexts.editing.defaults import DEFAULT_ENTRY_FILE, WELCOME_DOCUMENT
from collabtex.contexts.editing.document_store import DocumentStore
from collabtex.contexts.editing.history import DEFAULT_HISTORY_LIMIT
from collabtex.contexts.editing.logger import _log_info
from collabtex.contexts.editing.request import CompilationRequest


@dataclass
class EditorSession:
    """
    Documents being edited plus the entry file compiled on request.

    Attributes:
        store: Open documents and their histories
        entry_file: Root document handed to the compiler
    """

    store: DocumentStore = field(default_factory=DocumentStore)
    entry_file: str = DEFAULT_ENTRY_FILE

    @classmethod
    def new(
        cls,
        entry_file: str = DEFAULT_ENTRY_FILE,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        welcome: bool = True,
    ) -> "EditorSession":
        """
        Start a session with the entry file open and current.

        Args:
            entry_file: Root document name
            history_limit: Snapshot cap per document history
            welcome: Seed the entry file with the welcome document
        """
        store = DocumentStore(
            history_limit=history_limit,
            current=entry_file,
            initial_content=WELCOME_DOCUMENT if welcome else "",
        )
        return cls(store=store, entry_file=entry_file)

    @classmethod
    def from_settings(cls, settings, welcome: bool = True) -> "EditorSession":
        """Start a session using the editing section of the loaded settings."""
        return cls.new(
            entry_file=settings.editing.entry_file,
            history_limit=int(settings.editing.history_limit),
            welcome=welcome,
        )

    @classmethod
    def from_files(
        cls,
        entry_path: Path,
        extra_paths: Iterable[Path] = (),
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> "EditorSession":
        """
        Load files from disk into a fresh session.

        Documents are keyed by path relative to the entry file's directory
        when possible, otherwise by file name.

        Raises:
            FileNotFoundError: If any path does not exist
        """
        entry_path = Path(entry_path)
        base_dir = entry_path.resolve().parent

        def key_for(path: Path) -> str:
            resolved = path.resolve()
            try:
                return resolved.relative_to(base_dir).as_posix()
            except ValueError:
                return path.name

        paths = [entry_path, *(Path(path) for path in extra_paths)]
        for path in paths:
            if not path.exists():
                raise FileNotFoundError(f"File not found: {path}")

        entry_name = key_for(entry_path)
        store = DocumentStore(
            history_limit=history_limit,
            current=entry_name,
            initial_content=entry_path.read_text(encoding="utf-8"),
        )
        for path in paths[1:]:
            store.add(key_for(path), path.read_text(encoding="utf-8"))

        session = cls(store=store, entry_file=entry_name)

        _log_info(f"Loaded {len(session.store.names())} file(s), entry: {entry_name}")
        return session

    def snapshot_editor(self, editor_content: Optional[str]) -> None:
        """Flush the editor buffer of the current document into the store."""
        if editor_content is not None:
            self.store.record_edit(self.store.current, editor_content)

    def build_request(self) -> CompilationRequest:
        return self.store.build_request(self.entry_file)
