"""
Editing Context

Responsibilities:
- Holds open documents and their current contents
- Tracks bounded linear undo/redo history per document
- Tracks unsaved (dirty) state for the UI
- Snapshots contents into compilation requests

Owns: Document contents, histories, the editor session
Never: Compiles or renders documents
"""

from collabtex.contexts.editing.document_store import Document, DocumentStore
from collabtex.contexts.editing.history import DEFAULT_HISTORY_LIMIT, History
from collabtex.contexts.editing.request import CompilationRequest
from collabtex.contexts.editing.session import EditorSession

__all__ = [
    "Document",
    "DocumentStore",
    "History",
    "DEFAULT_HISTORY_LIMIT",
    "CompilationRequest",
    "EditorSession",
]
