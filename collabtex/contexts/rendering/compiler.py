"""
Compilation Orchestrator

Ties the editing session, the lazily loaded backend and the fallback renderer
together:

    IDLE -> COMPILING -> SUCCEEDED | FELL_BACK | FAILED -> IDLE

Only one compilation runs at a time; a request made while one is in flight is
dropped. Every backend-path failure (load, write/compile, artifact extraction,
timeout) falls through to the fallback renderer. Only a fallback failure is
reported as FAILED.
"""

import asyncio
import time
from enum import Enum
from typing import Callable, List, Optional, Sequence

from collabtex.contexts.editing.request import CompilationRequest
from collabtex.contexts.editing.session import EditorSession
from collabtex.contexts.rendering.engine import EngineHandle, EngineState, LoadRetryPolicy
from collabtex.contexts.rendering.engine_adapter import (
    DEFAULT_ENGINE_COMMAND,
    DEFAULT_OUTPUT_NAMES,
    EngineAdapter,
)
from collabtex.contexts.rendering.exceptions import (
    CompileTimeout,
    EngineError,
    FallbackParseError,
    WriteFailure,
)
from collabtex.contexts.rendering.fallback.renderer import FallbackRenderer
from collabtex.contexts.rendering.logger import _log_warning, log_compilation_result, log_compilation_start
from collabtex.contexts.rendering.progress import ProgressLog
from collabtex.contexts.rendering.results import (
    Artifact,
    CompilationOutcome,
    CompilationResult,
    CompilationStatus,
    Failure,
)
from collabtex.utils.event_logging import log_compile_event

PresentationSink = Callable[[CompilationResult], None]

DEFAULT_COMPILE_TIMEOUT_S = 60.0


class OrchestratorState(str, Enum):
    IDLE = "idle"
    COMPILING = "compiling"
    SUCCEEDED = "succeeded"
    FELL_BACK = "fell_back"
    FAILED = "failed"


class CompilationOrchestrator:
    """
    Runs compilations for an editor session.

    Args:
        engine: Handle on the heavyweight backend (loaded on first compile)
        fallback: Renderer used when the backend path fails
        progress: Observability sink receiving one line per transition
        presentation_sink: Called with each terminal CompilationResult
        engine_command: Program name for argv/exec-style backends
        output_names: Conventional artifact names probed after compile
        compile_timeout_s: Limit on the backend path (None or 0 disables)
        artifact_mime_type: MIME type attached to backend artifacts

    Example:
        orchestrator = CompilationOrchestrator.from_settings(load_settings())
        outcome = await orchestrator.compile(session, editor_content=buffer)
    """

    def __init__(
        self,
        engine: EngineHandle,
        fallback: Optional[FallbackRenderer] = None,
        progress: Optional[ProgressLog] = None,
        presentation_sink: Optional[PresentationSink] = None,
        engine_command: str = DEFAULT_ENGINE_COMMAND,
        output_names: Sequence[str] = DEFAULT_OUTPUT_NAMES,
        compile_timeout_s: Optional[float] = DEFAULT_COMPILE_TIMEOUT_S,
        artifact_mime_type: str = "application/pdf",
    ):
        self.engine = engine
        self.fallback = fallback or FallbackRenderer()
        self.progress = progress if progress is not None else ProgressLog()
        self.presentation_sink = presentation_sink
        self.engine_command = engine_command
        self.output_names = tuple(output_names)
        self.compile_timeout_s = compile_timeout_s or None
        self.artifact_mime_type = artifact_mime_type

        self._state = OrchestratorState.IDLE
        self.last_state: Optional[OrchestratorState] = None
        self.last_outcome: Optional[CompilationOutcome] = None

    @classmethod
    def from_settings(
        cls,
        settings,
        progress: Optional[ProgressLog] = None,
        presentation_sink: Optional[PresentationSink] = None,
        engine: Optional[EngineHandle] = None,
    ) -> "CompilationOrchestrator":
        """Build an orchestrator from the rendering section of the loaded settings."""
        rendering = settings.rendering
        if engine is None:
            engine = EngineHandle.from_module(
                rendering.backend_module,
                factory_names=list(rendering.backend_factories),
                retry_policy=LoadRetryPolicy(rendering.backend_load_retry),
            )
        return cls(
            engine=engine,
            fallback=FallbackRenderer.from_settings(settings),
            progress=progress,
            presentation_sink=presentation_sink,
            engine_command=rendering.engine_command,
            output_names=list(rendering.output_names),
            compile_timeout_s=rendering.compile_timeout_s,
            artifact_mime_type=rendering.artifact_mime_type,
        )

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def is_compiling(self) -> bool:
        return self._state is OrchestratorState.COMPILING

    async def compile(
        self, session: EditorSession, editor_content: Optional[str] = None
    ) -> Optional[CompilationOutcome]:
        """
        Compile the session's entry file.

        Args:
            session: Documents to compile
            editor_content: Unflushed editor buffer for the current document;
                recorded into the store before the request is built

        Returns:
            CompilationOutcome, or None if a compilation was already in flight
        """
        if self.is_compiling:
            self.progress.warning("Compilation already in progress; request ignored")
            return None

        self._state = OrchestratorState.COMPILING
        start_time = time.time()
        try:
            session.snapshot_editor(editor_content)
            request = session.build_request()

            self.progress.info(f"Compiling {request.entry} ({len(request)} file(s))")
            log_compilation_start(request.entry, len(request), self.engine.state.value)

            outcome = await self._run(request, start_time)

            self.last_state = OrchestratorState(outcome.status.value)
            self.last_outcome = outcome
            log_compilation_result(request.entry, outcome)

            if self.presentation_sink is not None:
                self.presentation_sink(outcome.result)

            self._record_event(request, outcome)
            return outcome
        finally:
            self._state = OrchestratorState.IDLE

    async def recompile(self, session: EditorSession) -> Optional[CompilationOutcome]:
        """Compile the store's current contents without an editor snapshot."""
        return await self.compile(session)

    def _record_event(self, request: CompilationRequest, outcome: CompilationOutcome) -> None:
        try:
            log_compile_event(
                event_type="compile_finished",
                entry=request.entry,
                source="orchestrator",
                status=outcome.status.value,
                elapsed_s=round(outcome.elapsed_s, 3),
                file_count=len(request),
                backend_state=self.engine.state.value,
                backend_error=outcome.backend_error,
                write_failures=len(outcome.write_failures),
            )
        except OSError as e:
            # Outcome is already final
            _log_warning(f"Could not write compile event: {type(e).__name__}: {e}")

    async def _run(self, request: CompilationRequest, start_time: float) -> CompilationOutcome:
        backend_error: Optional[str] = None
        write_failures: List[WriteFailure] = []
        attempted_load = False

        if self.engine.should_attempt_load() or self.engine.state is EngineState.LOADING:
            attempted_load = True
            self.progress.info(f"Loading backend {self.engine.name}")
            if await self.engine.ensure_loaded():
                self.progress.success("Backend ready")
            else:
                self.progress.warning(f"Backend unavailable: {self.engine.load_error}")

        if self.engine.is_ready:
            try:
                data = await self._compile_with_backend(request, write_failures)
            except EngineError as e:
                backend_error = str(e)
                self.progress.warning(f"Backend compile failed: {e}")
            else:
                self.progress.success(f"Compiled {request.entry} ({len(data)} bytes)")
                return self._outcome(
                    CompilationStatus.SUCCEEDED,
                    Artifact(data=data, mime_type=self.artifact_mime_type),
                    request,
                    start_time,
                    write_failures=write_failures,
                )
        else:
            load_error = self.engine.load_error
            backend_error = str(load_error) if load_error else f"Backend {self.engine.state.value}"
            if not attempted_load:
                self.progress.info("Backend load not retried; skipping to fallback")

        self.progress.info("Rendering preview with fallback renderer")
        try:
            rendered = self.fallback.render(request.entry_content)
        except FallbackParseError as e:
            self.progress.error(f"Fallback renderer failed: {e.message}")
            return self._outcome(
                CompilationStatus.FAILED,
                Failure(message=str(e)),
                request,
                start_time,
                backend_error=backend_error,
                write_failures=write_failures,
            )

        if rendered.warnings:
            self.progress.warning(f"Fallback preview rendered with {len(rendered.warnings)} warning(s)")
        else:
            self.progress.success("Fallback preview rendered")
        return self._outcome(
            CompilationStatus.FELL_BACK,
            rendered,
            request,
            start_time,
            backend_error=backend_error,
            write_failures=write_failures,
        )

    async def _compile_with_backend(
        self, request: CompilationRequest, write_failures: List[WriteFailure]
    ) -> bytes:
        """
        Write, compile and extract, bounded by the compile timeout.

        Raises:
            EngineError: Any backend-path failure, including CompileTimeout
        """
        adapter = EngineAdapter.from_handle(
            self.engine, engine_command=self.engine_command, output_names=self.output_names
        )

        async def backend_path() -> bytes:
            self.progress.info(f"Writing {len(request)} file(s) to backend")
            failures = await adapter.write_source(request.files)
            write_failures.extend(failures)
            for failure in failures:
                self.progress.warning(f"Could not write {failure}")
            self.progress.info(f"Running backend {adapter.capabilities.compile_shape or 'compile'}")
            return await adapter.compile(request.entry)

        if self.compile_timeout_s is None:
            return await backend_path()
        try:
            return await asyncio.wait_for(backend_path(), timeout=self.compile_timeout_s)
        except asyncio.TimeoutError:
            raise CompileTimeout(self.compile_timeout_s) from None

    def _outcome(
        self,
        status: CompilationStatus,
        result: CompilationResult,
        request: CompilationRequest,
        start_time: float,
        backend_error: Optional[str] = None,
        write_failures: Sequence[WriteFailure] = (),
    ) -> CompilationOutcome:
        return CompilationOutcome(
            status=status,
            result=result,
            request=request,
            elapsed_s=time.time() - start_time,
            backend_error=backend_error,
            write_failures=[str(failure) for failure in write_failures],
        )
