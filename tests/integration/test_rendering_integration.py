"""
Integration tests for rendering context - tests real LaTeX compilation.
"""

import shutil

import pytest

from collabtex.backends.pdflatex import create_engine
from collabtex.contexts.editing import EditorSession
from collabtex.contexts.rendering import (
    Artifact,
    CompilationOrchestrator,
    CompilationStatus,
    EngineHandle,
    EngineState,
)

# Check if pdflatex is available
PDFLATEX_AVAILABLE = shutil.which("pdflatex") is not None
skip_if_no_pdflatex = pytest.mark.skipif(
    not PDFLATEX_AVAILABLE,
    reason="pdflatex not installed - install TeX Live, MiKTeX, or MacTeX"
)

HELLO = r"""
\documentclass{article}
\begin{document}
Hello World
\end{document}
"""


@pytest.fixture
def engine():
    engine = create_engine()
    yield engine
    engine.close()


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_compile_simple_document(engine):
    """Test a minimal document produces a PDF."""
    engine.write_file("main.tex", HELLO.encode("utf-8"))

    result = await engine.compile("main.tex")

    assert result.returncode == 0, f"Compilation failed with errors: {result.errors}"
    assert result.pdf is not None
    assert result.pdf.startswith(b"%PDF")


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_compile_with_intentional_error(engine):
    """Test that compilation properly detects and reports errors."""
    engine.write_file(
        "broken.tex",
        rb"""
\documentclass{article}
\begin{document}
This has an \undefinedcommand{test} that should fail.
\end{document}
""",
    )

    result = await engine.compile("broken.tex")

    assert result.returncode != 0
    assert len(result.errors) > 0 or "Undefined control sequence" in result.log


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_compile_multipass_compilation(engine):
    """Test multi-pass compilation resolves cross-references."""
    engine.write_file(
        "refs.tex",
        rb"""
\documentclass{article}
\begin{document}
See section \ref{sec:test}.
\section{Test Section}
\label{sec:test}
This is a test.
\end{document}
""",
    )

    result = await engine.compile("refs.tex")

    assert result.pdf is not None, f"Multi-pass compilation failed: {result.errors}"
    assert not any("undefined" in warning.lower() for warning in result.warnings)


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_compile_with_included_file(engine):
    """Test \\input of a second written file from a subdirectory."""
    engine.write_file("chapters/intro.tex", b"Introduction text.")
    engine.write_file(
        "main.tex",
        b"\\documentclass{article}\\begin{document}\\input{chapters/intro}\\end{document}",
    )

    result = await engine.compile("main.tex")

    assert result.pdf is not None, f"Compilation failed: {result.errors}"


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_orchestrator_with_pdflatex_backend():
    """Test the configured backend module end to end through the orchestrator."""
    handle = EngineHandle.from_module("collabtex.backends.pdflatex")
    orchestrator = CompilationOrchestrator(handle)
    session = EditorSession.new()
    session.store.add("intro.tex", "Intro")

    try:
        outcome = await orchestrator.compile(session)
    finally:
        if handle.is_ready:
            handle.backend.close()

    assert handle.state is EngineState.READY
    assert outcome.status is CompilationStatus.SUCCEEDED, outcome.backend_error
    assert isinstance(outcome.result, Artifact)
    assert outcome.result.data.startswith(b"%PDF")


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_orchestrator_falls_back_on_latex_error():
    """Test a document pdflatex rejects still gets an HTML preview."""
    handle = EngineHandle.from_module("collabtex.backends.pdflatex")
    orchestrator = CompilationOrchestrator(handle)
    session = EditorSession.new(welcome=False)

    try:
        outcome = await orchestrator.compile(
            session,
            editor_content=r"\documentclass{article}\begin{document}\undefinedcommand Hello\end{document}",
        )
    finally:
        if handle.is_ready:
            handle.backend.close()

    assert outcome.status is CompilationStatus.FELL_BACK
    assert "Undefined control sequence" in outcome.backend_error
    assert "Hello" in outcome.result.fragment
