"""Exceptions for the rendering context.

Every EngineError is recoverable: the orchestrator answers it by running the
fallback renderer. Only FallbackParseError reaches the caller as a hard failure.
"""

from dataclasses import dataclass
from typing import Optional


class EngineError(Exception):
    """Base class for failures on the heavyweight backend path."""


class BackendUnavailable(EngineError):
    """Backend module could not be imported or initialized."""

    def __init__(self, message: str, module_name: Optional[str] = None):
        self.message = message
        self.module_name = module_name
        super().__init__(message)


class CompileInvocationMissing(EngineError):
    """Backend exposes none of the known compile call shapes."""


class BackendInvocationError(EngineError):
    """A backend call raised.

    Attributes:
        operation: Backend call that failed (e.g., "compile", "run")
        original_error: Exception raised by the backend
    """

    def __init__(self, operation: str, original_error: Exception):
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Backend {operation} call failed: {type(original_error).__name__}: {original_error}"
        )


class ArtifactNotFound(EngineError):
    """
    Compile ran but no byte payload was found by any probe.

    Attributes:
        message: Error description
        backend_output: Text captured from the backend (log, stdout, stderr), if any
    """

    def __init__(self, message: str, backend_output: Optional[str] = None):
        self.message = message
        self.backend_output = backend_output

        parts = [message]
        if backend_output:
            parts.append(f"\nBackend output:\n{backend_output}")
        else:
            parts.append("(backend produced no textual output)")

        super().__init__("\n".join(parts))


class CompileTimeout(EngineError):
    """Backend compile step exceeded the configured timeout."""

    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(f"Backend compile timed out after {timeout_s:g}s")


@dataclass(frozen=True)
class WriteFailure:
    """
    A single source file the adapter could not write. Not raised: the batch continues.

    Attributes:
        name: File name from the request
        reason: Why the write failed
    """

    name: str
    reason: str

    def __str__(self) -> str:
        return f"{self.name}: {self.reason}"


class FallbackParseError(Exception):
    """
    Fallback renderer could not parse the source.

    Attributes:
        message: Error description
        line: 1-based line in the source, if known
        column: 1-based column in the source, if known
        snippet: Source text near the error
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        snippet: Optional[str] = None,
    ):
        self.message = message
        self.line = line
        self.column = column
        self.snippet = snippet

        parts = [message]

        if line is not None:
            location = f"line {line}" if column is None else f"line {line}, column {column}"
            parts[0] = f"{message} ({location})"

        if snippet:
            # Truncate snippet if too long
            snippet = snippet[:200] + "..." if len(snippet) > 200 else snippet
            parts.append(f"\nNear:\n{snippet}")

        super().__init__("\n".join(parts))
