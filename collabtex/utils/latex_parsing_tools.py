"""
LaTeX Parsing Tools

Low-level helpers shared by the fallback parser and the shipped backends.

Self-contained module with no project dependencies besides text_processing.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from collabtex.utils.text_processing import extract_balanced_delimiters


@dataclass(frozen=True)
class LaTeXPatterns:
    """
    LaTeX pattern templates for parsing.

    Format string templates accept command/environment names.
    """

    # Command patterns (use with .format(command=name))
    COMMAND_START: str = r"\\{command}(?![A-Za-z])\*?\s*"  # Matches \cmd (not \cmdfoo), optional star

    # Environment patterns (use with .format(env=name))
    BEGIN_ENV: str = r"\\begin\s*\{{{env}\}}"  # Matches \begin{envname}
    END_ENV: str = r"\\end\s*\{{{env}\}}"  # Matches \end{envname}

    COMMAND_NAME: str = r"[A-Za-z@]+"  # Letters after a backslash


def strip_comments(latex_str: str) -> str:
    """
    Remove % comments while keeping every newline.

    Escaped percent signs (\\%) are kept. Line numbers of the result match the
    input, so positions in the stripped text can be reported against the source.

    Example:
        >>> strip_comments("50\\\\% done % note\\nnext")
        '50\\\\% done \\nnext'
    """
    out = []
    pos = 0
    length = len(latex_str)

    while pos < length:
        char = latex_str[pos]
        if char == "\\" and pos + 1 < length:
            out.append(latex_str[pos : pos + 2])
            pos += 2
            continue
        if char == "%":
            newline = latex_str.find("\n", pos)
            if newline == -1:
                break
            pos = newline
            continue
        out.append(char)
        pos += 1

    return "".join(out)


def position_to_line_col(text: str, pos: int) -> Tuple[int, int]:
    """Convert a string offset to 1-based (line, column)."""
    line = text.count("\n", 0, pos) + 1
    last_newline = text.rfind("\n", 0, pos)
    return line, pos - last_newline


def find_command(latex_str: str, command: str, start_pos: int = 0) -> Optional[re.Match]:
    """Find the first occurrence of \\command (whole name) at or after start_pos."""
    pattern = re.compile(LaTeXPatterns.COMMAND_START.format(command=re.escape(command)))
    return pattern.search(latex_str, start_pos)


def skip_optional_argument(latex_str: str, pos: int) -> Tuple[Optional[str], int]:
    """
    Read an optional [argument] at pos (after whitespace).

    Returns:
        (content or None, position after the argument)
    """
    probe = pos
    while probe < len(latex_str) and latex_str[probe] in " \t":
        probe += 1
    if probe < len(latex_str) and latex_str[probe] == "[":
        content, end = extract_balanced_delimiters(latex_str, probe + 1, "[", "]")
        return content, end
    return None, pos


def extract_command_argument(latex_str: str, command: str) -> Optional[Tuple[str, int, int]]:
    """
    Extract the mandatory {argument} of the first \\command, skipping an optional [arg].

    Args:
        latex_str: LaTeX source
        command: Command name without backslash (e.g., "title")

    Returns:
        (argument content, command start, position after argument), or None if
        the command is absent or has no braced argument

    Raises:
        ValueError: If the argument braces are unbalanced

    Example:
        >>> extract_command_argument(r"\\title{A {nested} title}", "title")
        ('A {nested} title', 0, 24)
    """
    match = find_command(latex_str, command)
    if match is None:
        return None

    _, pos = skip_optional_argument(latex_str, match.end())
    while pos < len(latex_str) and latex_str[pos].isspace():
        pos += 1
    if pos >= len(latex_str) or latex_str[pos] != "{":
        return None

    content, end = extract_balanced_delimiters(latex_str, pos + 1)
    return content, match.start(), end


def extract_package_names(preamble: str) -> List[str]:
    """
    List packages loaded with \\usepackage, in order.

    Example:
        >>> extract_package_names(r"\\usepackage[utf8]{inputenc}\\usepackage{amsmath, graphicx}")
        ['inputenc', 'amsmath', 'graphicx']
    """
    packages = []
    for match in re.finditer(r"\\usepackage\s*(?:\[[^\]]*\])?\s*\{([^}]*)\}", preamble):
        packages.extend(name.strip() for name in match.group(1).split(",") if name.strip())
    return packages
