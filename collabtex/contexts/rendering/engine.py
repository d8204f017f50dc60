"""
Lazily loaded compilation backend.

The heavyweight backend is acquired on first use and shared for the whole
process. EngineHandle tracks its lifecycle:

    NOT_REQUESTED -> LOADING -> READY
                             -> LOAD_FAILED

Concurrent callers of ensure_loaded() share one in-flight load instead of
starting duplicate loads. After a failure the handle does not retry unless the
retry policy allows it.
"""

import asyncio
import importlib
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from collabtex.contexts.rendering.capabilities import BackendCapabilities, resolve_awaitable
from collabtex.contexts.rendering.exceptions import BackendUnavailable
from collabtex.contexts.rendering.logger import _log_debug, _log_error, _log_info

BackendLoader = Callable[[], Union[Any, Awaitable[Any]]]

DEFAULT_FACTORY_NAMES = ("create_engine", "init", "initialize")


class EngineState(str, Enum):
    NOT_REQUESTED = "not_requested"
    LOADING = "loading"
    READY = "ready"
    LOAD_FAILED = "load_failed"


class LoadRetryPolicy(str, Enum):
    """What to do on a later compile after the backend failed to load."""

    NEVER = "never"
    ONCE = "once"

    @property
    def max_attempts(self) -> int:
        return 1 if self is LoadRetryPolicy.NEVER else 2


def module_loader(
    module_name: str, factory_names: Sequence[str] = DEFAULT_FACTORY_NAMES
) -> BackendLoader:
    """
    Build a loader that imports a backend module and initializes it.

    The first callable found among factory_names on the module is called (sync
    or async) and its return value is the backend. Without a factory, the module
    object itself is the backend.

    Args:
        module_name: Import path (e.g., "collabtex.backends.pdflatex")
        factory_names: Factory attribute names tried in order

    Returns:
        Async callable producing the backend object

    Raises (when the loader runs):
        BackendUnavailable: If the import or the factory call fails
    """

    async def load() -> Any:
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise BackendUnavailable(
                f"Cannot import backend module '{module_name}': {e}", module_name=module_name
            ) from e

        for factory_name in factory_names:
            factory = getattr(module, factory_name, None)
            if callable(factory):
                _log_debug(f"Initializing backend via {module_name}.{factory_name}()")
                try:
                    return await resolve_awaitable(factory())
                except BackendUnavailable:
                    raise
                except Exception as e:
                    # Third-party init code: any failure means the backend is unusable
                    raise BackendUnavailable(
                        f"Backend '{module_name}' failed to initialize: {e}",
                        module_name=module_name,
                    ) from e

        return module

    return load


class EngineHandle:
    """
    Process-wide handle on the heavyweight backend.

    Attributes:
        state: Current lifecycle state
        backend: Loaded backend object (READY only)
        capabilities: Call shapes probed once at load (READY only)
        load_error: Why the last load failed (LOAD_FAILED only)
        attempts: Number of load attempts made so far
    """

    def __init__(
        self,
        loader: BackendLoader,
        retry_policy: LoadRetryPolicy = LoadRetryPolicy.NEVER,
        name: str = "backend",
    ):
        self._loader = loader
        self.retry_policy = LoadRetryPolicy(retry_policy)
        self.name = name
        self.state = EngineState.NOT_REQUESTED
        self.backend: Any = None
        self.capabilities: Optional[BackendCapabilities] = None
        self.load_error: Optional[BackendUnavailable] = None
        self.attempts = 0
        self._load_task: Optional[asyncio.Task] = None

    @classmethod
    def from_module(
        cls,
        module_name: str,
        factory_names: Sequence[str] = DEFAULT_FACTORY_NAMES,
        retry_policy: LoadRetryPolicy = LoadRetryPolicy.NEVER,
    ) -> "EngineHandle":
        return cls(module_loader(module_name, factory_names), retry_policy, name=module_name)

    @property
    def is_ready(self) -> bool:
        return self.state is EngineState.READY

    def should_attempt_load(self) -> bool:
        """True if ensure_loaded() would start a new load attempt."""
        if self.state is EngineState.NOT_REQUESTED:
            return True
        if self.state is EngineState.LOAD_FAILED:
            return self.attempts < self.retry_policy.max_attempts
        return False

    async def ensure_loaded(self) -> bool:
        """
        Load and initialize the backend if it has not been attempted yet.

        Returns:
            True if the backend is READY
        """
        if self.state is EngineState.READY:
            return True
        if self._load_task is not None:
            # Another caller is loading; queue behind it
            await asyncio.shield(self._load_task)
            return self.is_ready
        if not self.should_attempt_load():
            return False

        self._load_task = asyncio.ensure_future(self._load())
        try:
            await asyncio.shield(self._load_task)
        finally:
            self._load_task = None
        return self.is_ready

    async def _load(self) -> None:
        self.state = EngineState.LOADING
        self.attempts += 1
        _log_info(f"Loading backend {self.name} (attempt {self.attempts})")
        try:
            backend = await resolve_awaitable(self._loader())
        except BackendUnavailable as e:
            self._fail(e)
            return
        except Exception as e:
            # Loaders may be arbitrary callables; normalize their failures
            self._fail(BackendUnavailable(f"Backend '{self.name}' failed to load: {e}"))
            return

        self.backend = backend
        self.capabilities = BackendCapabilities.probe(backend)
        self.load_error = None
        self.state = EngineState.READY
        detected = ", ".join(self.capabilities.describe()) or "no capabilities"
        _log_info(f"Backend {self.name} ready: {detected}")

    def _fail(self, error: BackendUnavailable) -> None:
        self.load_error = error
        self.state = EngineState.LOAD_FAILED
        _log_error(f"Backend {self.name} unavailable: {error}")
