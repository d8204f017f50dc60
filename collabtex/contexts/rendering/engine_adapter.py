"""
Engine Adapter

One uniform interface over a backend whose call surface is only known after it
is loaded:

    failures = await adapter.write_source({"main.tex": "..."})
    pdf_bytes = await adapter.compile("main.tex")

Write and compile calls are dispatched to the highest-priority shape in the
backend's probed BackendCapabilities. Artifact extraction probes, in order:

    1. result.pdf                      (attribute or mapping key)
    2. result.files[<output name>]     (conventional output names)
    3. the result itself               (raw byte payload)
    4. backend filesystem read         (conventional output paths)

An empty payload counts as a miss and the next probe is tried.

Backend callables may be plain functions or coroutines.
"""

from pathlib import PurePosixPath
from typing import Any, List, Mapping, Optional, Sequence, Union

from collabtex.contexts.rendering.capabilities import (
    BackendCapabilities,
    resolve_awaitable,
    resolve_reader,
    resolve_writer,
)
from collabtex.contexts.rendering.exceptions import (
    ArtifactNotFound,
    BackendInvocationError,
    CompileInvocationMissing,
    WriteFailure,
)
from collabtex.contexts.rendering.logger import _log_debug, _log_info, _log_warning, log_backend_output
from collabtex.utils.byte_processing import decode_text, encode_source, to_bytes

DEFAULT_ENGINE_COMMAND = "pdflatex"
DEFAULT_OUTPUT_NAMES = ("{stem}.pdf", "output.pdf", "output")

# Result fields that may hold text printed by the backend
OUTPUT_FIELDS = ("log", "stdout", "stderr", "output")


def _field(obj: Any, name: str) -> Any:
    """Read a data field from a mapping or an object, ignoring methods."""
    if isinstance(obj, Mapping):
        value = obj.get(name)
    else:
        value = getattr(obj, name, None)
    return None if callable(value) else value


class EngineAdapter:
    """
    Adapter over a loaded backend.

    Args:
        backend: Loaded backend object
        capabilities: Probed call shapes (probed here if not given)
        engine_command: Program name for run(argv) and exec(command) shapes
        output_names: Conventional artifact names; "{stem}" is the entry file stem
    """

    def __init__(
        self,
        backend: Any,
        capabilities: Optional[BackendCapabilities] = None,
        engine_command: str = DEFAULT_ENGINE_COMMAND,
        output_names: Sequence[str] = DEFAULT_OUTPUT_NAMES,
    ):
        self.backend = backend
        self.capabilities = capabilities or BackendCapabilities.probe(backend)
        self.engine_command = engine_command
        self.output_names = tuple(output_names)

    @classmethod
    def from_handle(cls, handle, **kwargs) -> "EngineAdapter":
        """Build an adapter for a READY EngineHandle, reusing its cached capabilities."""
        if not handle.is_ready:
            raise ValueError(f"Engine handle is not ready (state: {handle.state.value})")
        return cls(handle.backend, handle.capabilities, **kwargs)

    def output_names_for(self, entry: str) -> List[str]:
        """
        Expand conventional output names for an entry file.

        Example:
            >>> EngineAdapter(object()).output_names_for("chapters/main.tex")
            ['chapters/main.pdf', 'output.pdf', 'output']
        """
        entry_path = PurePosixPath(entry)
        stem = str(entry_path.with_suffix("")) if entry_path.suffix else entry
        names = []
        for template in self.output_names:
            name = template.format(stem=stem)
            if name not in names:
                names.append(name)
        return names

    async def write_source(self, files: Mapping[str, Union[str, bytes]]) -> List[WriteFailure]:
        """
        Write every source file into the backend, in mapping order.

        A failed write is logged and recorded; the remaining files are still written.

        Returns:
            One WriteFailure per file that could not be written
        """
        failures: List[WriteFailure] = []
        shape = self.capabilities.write_shape

        for name, content in files.items():
            if shape is None:
                failure = WriteFailure(name, "backend exposes no write call")
            else:
                try:
                    data = encode_source(content)
                    await resolve_awaitable(resolve_writer(self.backend, shape)(name, data))
                    _log_debug(f"Wrote {name} ({len(data)} bytes) via {shape}")
                    continue
                except Exception as e:
                    # Backend code is third-party; record and move on to the next file
                    failure = WriteFailure(name, f"{type(e).__name__}: {e}")

            _log_warning(f"Could not write {failure}")
            failures.append(failure)

        return failures

    async def invoke(self, entry: str) -> Any:
        """
        Run the backend's compile step using the highest-priority shape available.

        Returns:
            Whatever the backend returned

        Raises:
            CompileInvocationMissing: If no known compile shape exists
            BackendInvocationError: If the backend call raised
        """
        shape = self.capabilities.compile_shape
        if shape is None:
            raise CompileInvocationMissing(
                "Backend exposes no compile call (tried compile, run, exec, build)"
            )

        _log_info(f"Invoking backend {shape} for {entry}")
        try:
            if shape == "compile":
                return await resolve_awaitable(self.backend.compile(entry))
            if shape == "run":
                return await resolve_awaitable(self.backend.run([self.engine_command, entry]))
            if shape == "exec":
                return await resolve_awaitable(self.backend.exec(f"{self.engine_command} {entry}"))
            return await resolve_awaitable(self.backend.build())
        except Exception as e:
            raise BackendInvocationError(shape, e) from e

    async def compile(self, entry: str) -> bytes:
        """
        Compile entry and return the artifact bytes.

        Raises:
            CompileInvocationMissing, BackendInvocationError, ArtifactNotFound
        """
        result = await self.invoke(entry)
        return await self.extract_artifact(result, entry)

    async def extract_artifact(self, result: Any, entry: str) -> bytes:
        """
        Locate the artifact bytes among the known output conventions.

        Raises:
            ArtifactNotFound: If no probe yields a non-empty byte payload; the message
                includes any captured backend output
        """
        names = self.output_names_for(entry)

        data = to_bytes(_field(result, "pdf"))
        if data:
            _log_debug("Artifact found in result.pdf")
            return data

        files = _field(result, "files")
        if isinstance(files, Mapping):
            for name in names:
                data = to_bytes(files.get(name))
                if data:
                    _log_debug(f"Artifact found in result.files['{name}']")
                    return data

        data = to_bytes(result)
        if data:
            _log_debug("Artifact returned directly by backend")
            return data

        data = await self._read_from_filesystem(names)
        if data:
            return data

        output = self.captured_output(result)
        log_backend_output(output or "")
        raise ArtifactNotFound(
            f"Backend finished but produced no artifact for {entry} (looked for: {', '.join(names)})",
            backend_output=output,
        )

    async def _read_from_filesystem(self, names: List[str]) -> Optional[bytes]:
        for shape in self.capabilities.read_shapes:
            reader = resolve_reader(self.backend, shape)
            for name in names:
                try:
                    data = to_bytes(await resolve_awaitable(reader(name)))
                except Exception as e:
                    # A missing output file is the expected miss for this probe
                    _log_debug(f"No artifact at {name} via {shape}: {type(e).__name__}: {e}")
                    continue
                if data:
                    _log_debug(f"Artifact read from backend filesystem: {name} via {shape}")
                    return data
        return None

    def captured_output(self, result: Any) -> Optional[str]:
        """Collect text the backend printed, from the result and the backend itself."""
        chunks = []
        for name in OUTPUT_FIELDS:
            text = decode_text(_field(result, name))
            if text and text.strip():
                chunks.append(text.strip())

        backend_log = decode_text(_field(self.backend, "log"))
        if backend_log and backend_log.strip() and backend_log.strip() not in chunks:
            chunks.append(backend_log.strip())

        return "\n".join(chunks) if chunks else None
