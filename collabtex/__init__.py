"""
collabtex - LaTeX editing with pluggable compilation backends

Edits a set of LaTeX documents with per-file undo/redo history and compiles
them through a lazily loaded backend, falling back to an in-process HTML
preview when the backend is unavailable or fails.

Architecture:
- Editing Context: Documents, bounded history, compilation requests
- Rendering Context: Backend lifecycle, engine adapter, fallback renderer, orchestration
"""

__version__ = "0.1.0"
