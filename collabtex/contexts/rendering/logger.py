"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path
from typing import Optional

from loguru import logger

from collabtex.utils.logger import setup_logger as _setup_logger
from collabtex.utils.text_processing import truncate_display

CONTEXT_PREFIX = "[render]"


def setup_rendering_logger(
    log_dir: Optional[Path] = None, backend_module: Optional[str] = None, verbose: bool = False
) -> Optional[Path]:
    """
    Setup logger for rendering context.

    Configures loguru with provenance tracking and rendering-specific context.

    Args:
        log_dir: Directory for this rendering session (None: console only)
        backend_module: Configured backend module, recorded in the provenance header
        verbose: Also show DEBUG messages on the console

    Returns:
        Path to log file, or None without a log_dir

    Example:
        from collabtex.contexts.rendering.logger import setup_rendering_logger, _log_info

        log_file = setup_rendering_logger(log_dir)
        _log_info("Starting compilation...")
    """
    return _setup_logger(
        context_name="render",
        log_dir=log_dir,
        extra_provenance={"Backend module": backend_module},
        console_level="DEBUG" if verbose else "INFO",
    )


# Wrapper functions with automatic [render] prefix


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level rendering-specific logging helpers


def log_compilation_start(entry: str, file_count: int, backend_state: str) -> None:
    """Log start of compilation with context."""
    _log_info(f"Starting compilation: {entry}")
    _log_debug(f"  Files: {file_count}")
    _log_debug(f"  Backend: {backend_state}")


def log_compilation_result(
    entry: str,
    outcome,  # CompilationOutcome
    verbose: bool = False,
) -> None:
    """
    Log compilation outcome with diagnostics.

    Args:
        entry: Entry document name
        outcome: CompilationOutcome from CompilationOrchestrator.compile()
        verbose: Show every renderer warning (default: first 3)
    """
    status = outcome.status.value
    if status == "succeeded":
        _log_success(f"{entry}: compiled by backend ({outcome.elapsed_s:.2f}s)")
        _log_debug(f"  Artifact: {len(outcome.result.data)} bytes, {outcome.result.mime_type}")
    elif status == "fell_back":
        _log_warning(f"{entry}: rendered by fallback ({outcome.elapsed_s:.2f}s)")
        if outcome.backend_error:
            _log_debug(f"  Backend error: {truncate_display(outcome.backend_error, 300)}")
        warnings = outcome.result.warnings
        if warnings:
            warning_limit = len(warnings) if verbose else 3
            for i, warn in enumerate(warnings[:warning_limit], 1):
                _log_debug(f"  Warning {i}: {warn}")
            if len(warnings) > warning_limit:
                _log_debug(f"  ... and {len(warnings) - warning_limit} more warnings")
    else:
        _log_error(f"{entry}: compilation failed ({outcome.elapsed_s:.2f}s)")
        _log_error(f"  Error: {outcome.result.message}")

    for failure in outcome.write_failures:
        _log_debug(f"  Write failure: {failure}")


def log_backend_output(output: str) -> None:
    """
    Log raw multi-line backend output.

    Uses opt(raw=True) to bypass the format template and preserve original formatting.
    """
    if output:
        logger.opt(raw=True).debug(f"\n{'=' * 80}\nBACKEND OUTPUT:\n{'=' * 80}\n{output}\n")
