"""
Rendering Context

Responsibilities:
- Lazily loads the heavyweight compilation backend and probes its call shapes
- Writes sources, compiles, and extracts the artifact through one adapter
- Falls back to an in-process LaTeX-to-HTML preview when the backend path fails
- Reports progress and terminal status for each compilation

Owns: Backend lifecycle, compilation orchestration, fallback rendering
Never: Edits document contents or history
"""

from collabtex.contexts.rendering.compiler import CompilationOrchestrator, OrchestratorState
from collabtex.contexts.rendering.engine import EngineHandle, EngineState, LoadRetryPolicy
from collabtex.contexts.rendering.engine_adapter import EngineAdapter
from collabtex.contexts.rendering.fallback.renderer import FallbackRenderer
from collabtex.contexts.rendering.progress import ProgressLog
from collabtex.contexts.rendering.results import (
    Artifact,
    CompilationOutcome,
    CompilationStatus,
    Failure,
    RenderedDocument,
)

__all__ = [
    "Artifact",
    "CompilationOrchestrator",
    "CompilationOutcome",
    "CompilationStatus",
    "EngineAdapter",
    "EngineHandle",
    "EngineState",
    "Failure",
    "FallbackRenderer",
    "LoadRetryPolicy",
    "OrchestratorState",
    "ProgressLog",
    "RenderedDocument",
]
