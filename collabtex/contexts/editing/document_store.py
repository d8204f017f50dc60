"""
Document Store

In-memory per-file content plus bounded undo/redo history. Nothing is
persisted; the store lives as long as the editing session.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from collabtex.contexts.editing.history import DEFAULT_HISTORY_LIMIT, History
from collabtex.contexts.editing.logger import _log_debug
from collabtex.contexts.editing.request import CompilationRequest
from collabtex.utils.text_processing import WordCount, count_words


@dataclass
class Document:
    """
    One open file.

    Attributes:
        name: Path-like key, unique within the store
        content: Current editor content
        history: Undo/redo snapshots owned by this document
        dirty: True when content changed since the last save
    """

    name: str
    content: str
    history: History
    dirty: bool = False


class DocumentStore:
    """
    Open documents keyed by name, with exactly one current document.

    Undo/redo at a history boundary is a silent no-op (returns None), never an
    error. Saving only clears the dirty flag; it is not an edit.
    """

    def __init__(
        self,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        current: str = "main.tex",
        initial_content: str = "",
    ):
        self.history_limit = history_limit
        self._documents: Dict[str, Document] = {}
        self.add(current, initial_content)
        self._current = current

    def __contains__(self, name: str) -> bool:
        return name in self._documents

    @property
    def current(self) -> str:
        """Name of the active document."""
        return self._current

    def names(self) -> List[str]:
        """Open document names in the order they were first opened."""
        return list(self._documents)

    def _get(self, name: str) -> Document:
        if name not in self._documents:
            raise KeyError(f"Document not open: {name}")
        return self._documents[name]

    def open(self, name: str) -> str:
        """
        Return a document's content, creating an empty document if unseen.

        Args:
            name: Document name

        Returns:
            Current content of the document
        """
        if name not in self._documents:
            self._documents[name] = Document(
                name=name, content="", history=History("", limit=self.history_limit)
            )
            _log_debug(f"Opened new document: {name}")
        return self._documents[name].content

    def add(self, name: str, content: str) -> None:
        """
        Open a document with initial content.

        A brand-new document gets its history seeded with content. For an
        already-open document the content is recorded as an ordinary edit.
        """
        if name in self._documents:
            self.record_edit(name, content)
            return
        self._documents[name] = Document(
            name=name, content=content, history=History(content, limit=self.history_limit)
        )
        _log_debug(f"Added document: {name} ({len(content)} chars)")

    def set_current(self, name: str) -> bool:
        """
        Switch the active document.

        Returns:
            False (and leaves the current document unchanged) if name is not open
        """
        if name not in self._documents:
            return False
        self._current = name
        return True

    def content(self, name: Optional[str] = None) -> str:
        return self._get(name or self._current).content

    def history(self, name: Optional[str] = None) -> History:
        return self._get(name or self._current).history

    def record_edit(self, name: str, content: str) -> bool:
        """
        Store new content for a document and push it onto its history.

        Opens the document on demand. Marks it dirty whenever content changed.

        Returns:
            True if a new history snapshot was pushed
        """
        self.open(name)
        document = self._documents[name]
        if content != document.content:
            document.dirty = True
        document.content = content
        return document.history.push(content)

    def undo(self, name: Optional[str] = None) -> Optional[str]:
        """Restore the previous snapshot. Returns None at the history start."""
        document = self._get(name or self._current)
        content = document.history.undo()
        if content is not None:
            document.content = content
            document.dirty = True
        return content

    def redo(self, name: Optional[str] = None) -> Optional[str]:
        """Restore the next snapshot. Returns None at the history end."""
        document = self._get(name or self._current)
        content = document.history.redo()
        if content is not None:
            document.content = content
            document.dirty = True
        return content

    def can_undo(self, name: Optional[str] = None) -> bool:
        return self._get(name or self._current).history.can_undo()

    def can_redo(self, name: Optional[str] = None) -> bool:
        return self._get(name or self._current).history.can_redo()

    def save(self, name: Optional[str] = None) -> None:
        """Mark a document clean. History is untouched."""
        self._get(name or self._current).dirty = False

    def is_dirty(self, name: Optional[str] = None) -> bool:
        return self._get(name or self._current).dirty

    def word_count(self, name: Optional[str] = None) -> WordCount:
        return count_words(self._get(name or self._current).content)

    def build_request(self, entry: str) -> CompilationRequest:
        """
        Snapshot current contents of every open document for compilation.

        The entry document is opened on demand so it is always present.
        """
        self.open(entry)
        return CompilationRequest.build(
            entry, {name: document.content for name, document in self._documents.items()}
        )
