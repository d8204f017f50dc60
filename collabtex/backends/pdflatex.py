"""
pdflatex backend

Heavyweight backend wrapping a local pdflatex-compatible binary. Sources are
written into a private temporary working directory and compiled there:

    engine = create_engine()
    engine.write_file("main.tex", b"...")
    result = await engine.compile("main.tex")
    result.pdf  # bytes, or None if no PDF was produced

Loaded by the rendering context through its `create_engine` factory. A missing
binary makes the factory raise, which the loader reports as an unavailable
backend.
"""

import asyncio
import os
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from collabtex.contexts.rendering.logger import _log_debug, _log_info

load_dotenv()

LATEX_COMPILER = os.getenv("LATEX_COMPILER") or "pdflatex"
DEFAULT_NUM_PASSES = 2


@dataclass
class PdfLatexResult:
    """
    Result of one pdflatex run.

    Attributes:
        returncode: Exit status of the last pass
        pdf: Generated PDF (None if no PDF was produced, or the run reported LaTeX errors)
        log: Contents of the .log file
        stdout: Standard output of all passes
        stderr: Standard error of all passes
        output: Parsed errors, one per line (empty on a clean run)
        errors: Parsed LaTeX errors
        warnings: Parsed LaTeX warnings
    """

    returncode: int
    pdf: Optional[bytes] = None
    log: str = ""
    stdout: str = ""
    stderr: str = ""
    output: str = ""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _parse_latex_log(log_content: str) -> Tuple[List[str], List[str]]:
    """
    Parse LaTeX log file for errors and warnings.

    Args:
        log_content: Content of the .log file

    Returns:
        Tuple of (errors, warnings)
    """
    errors = []
    warnings = []

    # "! Error message" and file-line-error style "./main.tex:12: Error message"
    error_patterns = [r"^! (.+)$", r"^\S+\.tex:\d+: (.+)$"]
    for pattern in error_patterns:
        for match in re.finditer(pattern, log_content, re.MULTILINE):
            message = match.group(1).strip()
            if message not in errors:
                errors.append(message)

    for pattern in (r"Emergency stop", r"File ended while scanning use of"):
        match = re.search(rf"({pattern}.*?)$", log_content, re.MULTILINE)
        if match and match.group(1) not in errors:
            errors.append(match.group(1))

    warning_patterns = [
        r"LaTeX Warning: (.+)",
        r"Package \w+ Warning: (.+)",
        r"Overfull \\hbox \((.+)\)",
        r"Underfull \\hbox \((.+)\)",
    ]
    for pattern in warning_patterns:
        for match in re.finditer(pattern, log_content, re.MULTILINE):
            warnings.append(match.group(1).strip())

    return errors, warnings


class PdfLatexEngine:
    """
    pdflatex in a private working directory.

    Args:
        compiler_path: Path to the pdflatex-compatible binary
        num_passes: Passes per compile (2 resolves cross-references)
    """

    def __init__(self, compiler_path: str, num_passes: int = DEFAULT_NUM_PASSES):
        self.compiler_path = compiler_path
        self.num_passes = num_passes
        self._tmp = tempfile.TemporaryDirectory(prefix="collabtex_")
        self.workdir = Path(self._tmp.name)
        self.log = ""

    def _resolve(self, name: str) -> Path:
        """
        Map a document name to a path inside the working directory.

        Raises:
            ValueError: If the name is absolute or escapes the working directory
        """
        relative = PurePosixPath(name)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Invalid document name: {name}")
        return self.workdir.joinpath(*relative.parts)

    def write_file(self, name: str, data: bytes) -> None:
        path = self._resolve(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def read_file(self, name: str) -> bytes:
        return self._resolve(name).read_bytes()

    async def compile(self, entry: str) -> PdfLatexResult:
        """
        Run pdflatex on entry (which must have been written first).

        The PDF lands next to the entry (e.g., chapters/main.tex -> chapters/main.pdf).

        Raises:
            FileNotFoundError: If entry was never written
        """
        tex_path = self._resolve(entry)
        if not tex_path.exists():
            raise FileNotFoundError(f"Entry file not written: {entry}")

        out_dir = tex_path.parent
        pdf_path = out_dir / f"{tex_path.stem}.pdf"
        log_path = out_dir / f"{tex_path.stem}.log"

        # Stale outputs would make a failed run look successful
        for stale in (pdf_path, log_path):
            if stale.exists():
                stale.unlink()

        cmd = [
            self.compiler_path,
            "-interaction=nonstopmode",
            "-file-line-error",
            f"-output-directory={out_dir}",
            str(tex_path),
        ]

        all_stdout = []
        all_stderr = []
        returncode = 0

        # First pass generates .aux, second pass resolves references
        for pass_number in range(1, self.num_passes + 1):
            _log_debug(f"pdflatex pass {pass_number}/{self.num_passes}: {entry}")
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=self.workdir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                stdout, stderr = await process.communicate()
            except asyncio.CancelledError:
                process.kill()
                await process.wait()
                raise

            all_stdout.append(stdout.decode("utf-8", errors="replace"))
            all_stderr.append(stderr.decode("utf-8", errors="replace"))
            returncode = process.returncode

            # Stop on fatal errors
            if returncode != 0:
                break

        errors: List[str] = []
        warnings: List[str] = []
        self.log = ""
        if log_path.exists():
            # pdflatex writes log files in latin-1 (font metadata is not UTF-8)
            self.log = log_path.read_text(encoding="latin-1")
            errors, warnings = _parse_latex_log(self.log)

        pdf = None
        if not pdf_path.exists():
            if not errors:
                errors.append("PDF file was not generated")
        elif returncode == 0 or not errors:
            # A non-zero exit with a clean log happens for warnings only
            pdf = pdf_path.read_bytes()
        else:
            # Partial output of a failed run must not be picked up by read_file
            pdf_path.unlink()

        _log_info(
            f"pdflatex finished {entry}: exit {returncode}, "
            f"{len(errors)} error(s), {len(warnings)} warning(s)"
        )

        return PdfLatexResult(
            returncode=returncode,
            pdf=pdf,
            log=self.log,
            stdout="\n".join(all_stdout),
            stderr="\n".join(all_stderr),
            output="\n".join(errors),
            errors=errors,
            warnings=warnings,
        )

    def close(self) -> None:
        """Remove the working directory."""
        self._tmp.cleanup()


def create_engine() -> PdfLatexEngine:
    """
    Backend factory.

    Raises:
        FileNotFoundError: If the LaTeX compiler (LATEX_COMPILER, default pdflatex) is not installed
    """
    compiler_path = shutil.which(LATEX_COMPILER)
    if compiler_path is None:
        raise FileNotFoundError(f"LaTeX compiler not found on PATH: {LATEX_COMPILER}")
    _log_debug(f"Using LaTeX compiler: {compiler_path}")
    return PdfLatexEngine(compiler_path)
