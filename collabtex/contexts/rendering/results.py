"""
Compilation results.

CompilationResult is a tagged union of Artifact, RenderedDocument and Failure;
dispatch on the concrete type (isinstance) or on the `kind` field.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from collabtex.contexts.editing.request import CompilationRequest


@dataclass(frozen=True)
class Artifact:
    """Binary output of the heavyweight backend (e.g., a PDF)."""

    data: bytes
    mime_type: str = "application/pdf"
    kind: str = field(default="artifact", init=False)

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class RenderedDocument:
    """
    HTML approximation produced by the fallback renderer.

    Attributes:
        fragment: Body markup, ready to insert into a page
        page: Complete standalone HTML page wrapping the fragment
        title: Document title, if the source declared one
        warnings: Constructs the renderer could only approximate
    """

    fragment: str
    page: str
    title: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    mime_type: str = "text/html"
    kind: str = field(default="rendered_document", init=False)


@dataclass(frozen=True)
class Failure:
    """Terminal compilation failure with a user-facing message."""

    message: str
    kind: str = field(default="failure", init=False)


CompilationResult = Union[Artifact, RenderedDocument, Failure]


class CompilationStatus(str, Enum):
    """Terminal status reported to the caller."""

    SUCCEEDED = "succeeded"
    FELL_BACK = "fell_back"
    FAILED = "failed"


@dataclass
class CompilationOutcome:
    """
    Everything the caller learns about one compilation.

    Attributes:
        status: Success, degraded success via fallback, or failure
        result: Artifact, RenderedDocument or Failure
        request: Files that were actually submitted
        elapsed_s: Wall time of the whole compilation
        backend_error: Backend-path error that triggered the fallback, if any
        write_failures: Files the backend adapter could not write
    """

    status: CompilationStatus
    result: CompilationResult
    request: CompilationRequest
    elapsed_s: float = 0.0
    backend_error: Optional[str] = None
    write_failures: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status is not CompilationStatus.FAILED
