#!/usr/bin/env python3
"""
Document Compilation CLI

Compiles LaTeX documents through the configured backend, falling back to an
HTML preview when the backend is unavailable, and inspects backend modules.

Commands:
    compile   - Compile an entry document (plus extra files) to PDF or HTML preview
    probe     - Load a backend module and show the call shapes it exposes
    wordcount - Count words and characters in a document
    events    - Show recent entries of the compile event log

Examples:\n

    compile_document.py compile paper/main.tex                            # Compile with defaults

    compile_document.py compile paper/main.tex -f paper/intro.tex -v      # Extra file, verbose

    compile_document.py compile main.tex --backend my_wasm_engine         # Other backend module

    compile_document.py probe collabtex.backends.pdflatex                 # Show capabilities

    compile_document.py wordcount paper/main.tex                          # Word count

    compile_document.py events -n 5                                       # Recent compile events
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from collabtex.contexts.editing import EditorSession
from collabtex.contexts.rendering import CompilationOrchestrator, CompilationStatus, EngineHandle, ProgressLog
from collabtex.contexts.rendering.logger import setup_rendering_logger
from collabtex.utils.config import load_settings
from collabtex.utils.event_logging import get_events_file, get_recent_events
from collabtex.utils.text_processing import count_words

load_dotenv()


def _close_backend(engine: EngineHandle) -> None:
    """Release backend resources (e.g., the pdflatex working directory)."""
    close = getattr(engine.backend, "close", None)
    if engine.is_ready and callable(close):
        close()


app = typer.Typer(
    help="Compile LaTeX documents with a pluggable backend and HTML fallback",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("compile")
def compile_command(
    entry: Annotated[
        Path,
        typer.Argument(help="Entry .tex document"),
    ],
    files: Annotated[
        Optional[List[Path]],
        typer.Option(
            "--file",
            "-f",
            help="Additional document included by the entry (repeatable)",
        ),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Output path (default: next to the entry; .html when the fallback renders)",
        ),
    ] = None,
    backend: Annotated[
        Optional[str],
        typer.Option(
            "--backend",
            "-b",
            help="Backend module import path (default: rendering.backend_module setting)",
        ),
    ] = None,
    timeout: Annotated[
        Optional[float],
        typer.Option(
            "--timeout",
            "-t",
            help="Backend compile timeout in seconds (0 disables)",
            min=0,
        ),
    ] = None,
    log_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--log-dir",
            help="Also write a DEBUG log file into this directory",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug output and every fallback warning",
        ),
    ] = False,
):
    """
    Compile a LaTeX document.

    Writes the PDF when the backend succeeds, or the fallback HTML preview when
    it does not. Exits 1 only if neither produced a result.

    Examples:\n

        $ compile_document.py compile main.tex                       # main.pdf or main.html

        $ compile_document.py compile main.tex -o out/paper.pdf      # Custom output path

        $ compile_document.py compile main.tex --timeout 10          # Give up on the backend after 10s
    """
    overrides = []
    if backend:
        overrides.append(f"rendering.backend_module={backend}")
    if timeout is not None:
        overrides.append(f"rendering.compile_timeout_s={timeout}")
    settings = load_settings(overrides=overrides)

    setup_rendering_logger(log_dir, backend_module=settings.rendering.backend_module, verbose=verbose)

    try:
        session = EditorSession.from_files(
            entry, files or [], history_limit=settings.editing.history_limit
        )
    except FileNotFoundError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"\nCompiling: {entry}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"Backend: {settings.rendering.backend_module}")
    typer.echo("")

    progress = ProgressLog()
    orchestrator = CompilationOrchestrator.from_settings(settings, progress=progress)
    try:
        outcome = asyncio.run(orchestrator.compile(session))
    finally:
        _close_backend(orchestrator.engine)

    typer.echo(progress.render())
    typer.echo("")

    if outcome.status is CompilationStatus.FAILED:
        typer.secho("✗ Compilation failed", fg=typer.colors.RED, bold=True)
        typer.secho(f"  {outcome.result.message}", fg=typer.colors.RED)
        typer.echo("")
        raise typer.Exit(code=1)

    if outcome.status is CompilationStatus.SUCCEEDED:
        target = output or entry.with_suffix(".pdf")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(outcome.result.data)
        typer.secho("✓ Compilation succeeded", fg=typer.colors.GREEN, bold=True)
        typer.echo(f"  PDF: {target} ({len(outcome.result.data)} bytes)")
    else:
        target = (output or entry).with_suffix(".html")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(outcome.result.page, encoding="utf-8")
        typer.secho("! Backend unavailable: rendered HTML preview", fg=typer.colors.YELLOW, bold=True)
        if outcome.backend_error:
            typer.echo(f"  Backend error: {outcome.backend_error.splitlines()[0]}")
        warnings = outcome.result.warnings
        typer.echo(f"  Preview warnings: {len(warnings)}")
        if verbose:
            for warning in warnings:
                typer.echo(f"  - {warning}")
        typer.echo(f"  HTML: {target}")

    for failure in outcome.write_failures:
        typer.secho(f"  Write failure: {failure}", fg=typer.colors.YELLOW)
    typer.echo(f"  Elapsed: {outcome.elapsed_s:.2f}s")
    typer.echo("")


@app.command("probe")
def probe_command(
    module: Annotated[
        str,
        typer.Argument(help="Backend module import path (e.g., collabtex.backends.pdflatex)"),
    ],
):
    """
    Load a backend module and list the call shapes it exposes.

    Examples:\n

        $ compile_document.py probe collabtex.backends.pdflatex
    """
    settings = load_settings()
    setup_rendering_logger(backend_module=module)

    handle = EngineHandle.from_module(module, factory_names=list(settings.rendering.backend_factories))
    try:
        ready = asyncio.run(handle.ensure_loaded())
        if not ready:
            typer.secho(f"\n✗ Backend unavailable: {handle.load_error}\n", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

        capabilities = handle.capabilities
        typer.secho(f"\n✓ Backend loaded: {module}", fg=typer.colors.GREEN, bold=True)
        typer.echo(f"  Write:   {capabilities.write_shape or 'none'}")
        typer.echo(f"  Compile: {capabilities.compile_shape or 'none'}")
        typer.echo(f"  Read:    {', '.join(capabilities.read_shapes) or 'none'}")
        typer.echo("\nDetected:")
        for name in capabilities.describe():
            typer.echo(f"  - {name}")
        typer.echo("")
    finally:
        _close_backend(handle)


@app.command("wordcount")
def wordcount_command(
    file: Annotated[
        Path,
        typer.Argument(help="Document to count"),
    ],
):
    """
    Count words and characters in a document (source text, whitespace-separated).

    Examples:\n

        $ compile_document.py wordcount main.tex
    """
    if not file.exists():
        typer.secho(f"Error: File not found: {file}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    counts = count_words(file.read_text(encoding="utf-8"))
    typer.echo(f"Words: {counts.words}, Characters: {counts.characters}")


@app.command("events")
def events_command(
    n: Annotated[
        int,
        typer.Option("--num", "-n", help="Number of recent events to show", min=1),
    ] = 10,
    event_type: Annotated[
        Optional[str],
        typer.Option("--event-type", "-e", help="Filter to events of this type"),
    ] = None,
    compact: Annotated[
        bool,
        typer.Option("--compact", "-c", help="Print one event per line (no pretty formatting)"),
    ] = False,
):
    """
    Show the last n events from the compile event log (COLLABTEX_EVENTS_FILE).

    Examples:\n

        $ compile_document.py events                          # Last 10 events

        $ compile_document.py events -n 20 -c                 # Last 20, one line each

        $ compile_document.py events -e compile_finished      # Finished compilations only
    """
    if get_events_file() is None:
        typer.secho("Event logging is disabled (COLLABTEX_EVENTS_FILE is not set)", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    events = get_recent_events(n=n, event_type=event_type)
    if not events:
        typer.secho("No events found", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    if not compact:
        suffix = f" [type={event_type}]" if event_type else ""
        typer.secho(f"\nShowing last {len(events)} event(s){suffix}:", fg=typer.colors.BLUE)
        typer.echo("")

    for event in events:
        if compact:
            typer.echo(json.dumps(event))
        else:
            typer.echo(json.dumps(event, indent=2))
            typer.echo("")


if __name__ == "__main__":
    app()
