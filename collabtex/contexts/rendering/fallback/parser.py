"""
LaTeX Parser (fallback renderer)

Parses a LaTeX document into a lightweight node tree for HTML approximation.
This is not TeX: there is no macro expansion and no catcode handling. The
parser only understands the structure the generator can display, and reports
structural damage (unbalanced braces, unclosed environments, unterminated math)
as FallbackParseError with the source line and column.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from collabtex.contexts.rendering.exceptions import FallbackParseError
from collabtex.utils.latex_parsing_tools import (
    LaTeXPatterns,
    extract_command_argument,
    extract_package_names,
    find_command,
    position_to_line_col,
    skip_optional_argument,
    strip_comments,
)


class NodeKind:
    TEXT = "text"
    COMMAND = "command"
    GROUP = "group"
    ENVIRONMENT = "environment"
    MATH = "math"
    VERBATIM = "verbatim"
    LINEBREAK = "linebreak"
    PARBREAK = "parbreak"
    ALIGN_TAB = "align_tab"


@dataclass
class LatexNode:
    """
    One element of the parsed body.

    Attributes:
        kind: One of NodeKind
        name: Command or environment name (COMMAND, ENVIRONMENT, MATH environments)
        text: Literal text (TEXT, MATH, VERBATIM)
        args: Parsed mandatory arguments (COMMAND)
        optional: Raw optional argument (e.g., \\item[label]), if any
        children: Content (GROUP, ENVIRONMENT)
        starred: True for \\section* style commands and equation* style environments
        display: True for display math
        line: 1-based source line where the node starts
    """

    kind: str
    name: str = ""
    text: str = ""
    args: List[List["LatexNode"]] = field(default_factory=list)
    optional: Optional[str] = None
    children: List["LatexNode"] = field(default_factory=list)
    starred: bool = False
    display: bool = False
    line: int = 0


@dataclass
class ParsedDocument:
    """
    Parsed LaTeX source.

    Attributes:
        document_class: Argument of \\documentclass, None for a bare fragment
        packages: Packages loaded with \\usepackage
        metadata: Parsed \\title, \\author and \\date arguments (only those declared)
        body: Nodes between \\begin{document} and \\end{document} (or the whole fragment)
    """

    document_class: Optional[str]
    packages: List[str]
    metadata: Dict[str, List[LatexNode]]
    body: List[LatexNode]


# Mandatory argument counts for commands whose arguments are content
COMMAND_ARITY = {
    "textbf": 1, "textit": 1, "textsl": 1, "emph": 1, "texttt": 1, "textsf": 1, "textrm": 1,
    "textsc": 1, "textup": 1, "textmd": 1, "underline": 1, "mbox": 1, "fbox": 1, "textnormal": 1,
    "section": 1, "subsection": 1, "subsubsection": 1, "paragraph": 1, "subparagraph": 1,
    "chapter": 1, "part": 1, "footnote": 1, "caption": 1, "centerline": 1,
    "url": 1, "href": 2, "label": 1, "ref": 1, "eqref": 1, "pageref": 1, "cite": 1,
    "includegraphics": 1, "vspace": 1, "hspace": 1, "textcolor": 2, "color": 1,
    "title": 1, "author": 1, "date": 1, "thanks": 1,
    "newcommand": 2, "renewcommand": 2, "setlength": 2, "addtolength": 2, "setcounter": 2,
}

# Arguments of these commands are not content: read them raw
RAW_ARGUMENT_COMMANDS = {
    "url", "href", "label", "ref", "eqref", "pageref", "cite", "includegraphics",
    "vspace", "hspace", "textcolor", "color", "newcommand", "renewcommand",
    "setlength", "addtolength", "setcounter",
}

# Body of these environments is taken verbatim as math source
MATH_ENVIRONMENTS = {
    "equation", "equation*", "align", "align*", "gather", "gather*", "multline", "multline*",
    "eqnarray", "eqnarray*", "displaymath", "math", "flalign", "flalign*",
}

VERBATIM_ENVIRONMENTS = {"verbatim", "verbatim*", "lstlisting", "minted"}

# Environments with mandatory arguments to skip after \begin{env}
ENVIRONMENT_ARITY = {"tabular": 1, "tabular*": 2, "minipage": 1, "minted": 1, "thebibliography": 1}

ESCAPED_CHARACTERS = {
    "%": "%", "$": "$", "&": "&", "_": "_", "#": "#", "{": "{", "}": "}",
    " ": " ", ",": " ", ";": " ", ":": " ", "!": "", "-": "",
    "/": "", "@": "", "\n": " ", "\t": " ",
}

_COMMAND_NAME = re.compile(LaTeXPatterns.COMMAND_NAME)
_BLANK_LINE = re.compile(r"\n[ \t]*\n\s*")


class LatexParser:
    """
    Parser half of the fallback renderer.

    Example:
        parser = LatexParser()
        document = parser.parse(r"\\documentclass{article}\\begin{document}Hi\\end{document}")
        document.body[0].text  # 'Hi'
    """

    def parse(self, source: str) -> ParsedDocument:
        """
        Parse a complete document or a bare body fragment.

        Raises:
            FallbackParseError: On structural errors in the source
        """
        # Offsets in the stripped text map to the same lines as the source
        text = strip_comments(source)

        documentclass = find_command(text, "documentclass")
        begin = re.search(LaTeXPatterns.BEGIN_ENV.format(env="document"), text)

        if begin is None:
            if documentclass is not None:
                line, column = position_to_line_col(text, documentclass.start())
                raise FallbackParseError(
                    "\\documentclass without \\begin{document}", line=line, column=column
                )
            return ParsedDocument(
                document_class=None,
                packages=[],
                metadata={},
                body=_BodyScanner(text, 0, len(text)).parse(),
            )

        end = re.search(LaTeXPatterns.END_ENV.format(env="document"), text[begin.end():])
        if end is None:
            line, column = position_to_line_col(text, begin.start())
            raise FallbackParseError(
                "\\begin{document} is never closed by \\end{document}", line=line, column=column
            )
        body_end = begin.end() + end.start()

        preamble = text[: begin.start()]
        return ParsedDocument(
            document_class=self._read_preamble_argument(preamble, "documentclass"),
            packages=extract_package_names(preamble),
            metadata=self._parse_metadata(preamble),
            body=_BodyScanner(text, begin.end(), body_end).parse(),
        )

    def _read_preamble_argument(self, preamble: str, command: str) -> Optional[str]:
        try:
            found = extract_command_argument(preamble, command)
        except ValueError:
            match = find_command(preamble, command)
            line, column = position_to_line_col(preamble, match.start() if match else 0)
            raise FallbackParseError(
                f"Unbalanced braces in \\{command} argument", line=line, column=column
            )
        return found[0].strip() if found else None

    def _parse_metadata(self, preamble: str) -> Dict[str, List[LatexNode]]:
        metadata = {}
        for command in ("title", "author", "date"):
            try:
                found = extract_command_argument(preamble, command)
            except ValueError:
                match = find_command(preamble, command)
                line, column = position_to_line_col(preamble, match.start() if match else 0)
                raise FallbackParseError(
                    f"Unbalanced braces in \\{command} argument", line=line, column=column
                )
            if found is None:
                continue
            content, _, end = found
            start = end - len(content) - 1
            metadata[command] = _BodyScanner(preamble, start, end - 1).parse()
        return metadata


class _BodyScanner:
    """Recursive-descent scanner over text[start:stop]."""

    def __init__(self, text: str, start: int, stop: int):
        self.text = text
        self.pos = start
        self.stop = stop

    # Position helpers

    def _error(self, message: str, pos: Optional[int] = None) -> FallbackParseError:
        pos = self.pos if pos is None else pos
        line, column = position_to_line_col(self.text, pos)
        snippet = self.text[max(0, pos - 40) : min(self.stop, pos + 40)].strip()
        return FallbackParseError(message, line=line, column=column, snippet=snippet or None)

    def _line(self, pos: Optional[int] = None) -> int:
        return position_to_line_col(self.text, self.pos if pos is None else pos)[0]

    def _peek(self, offset: int = 0) -> str:
        pos = self.pos + offset
        return self.text[pos] if pos < self.stop else ""

    def _skip_spaces(self) -> None:
        while self.pos < self.stop and self.text[self.pos] in " \t\n":
            self.pos += 1

    # Entry point

    def parse(self) -> List[LatexNode]:
        nodes, _ = self._parse_sequence()
        return nodes

    def _parse_sequence(
        self, env: Optional[str] = None, env_pos: int = 0, in_group: bool = False, group_pos: int = 0
    ) -> Tuple[List[LatexNode], bool]:
        """
        Parse nodes until the end of input, a closing brace (in_group), or \\end{env}.

        Returns:
            (nodes, closed) where closed tells whether the terminator was found
        """
        nodes: List[LatexNode] = []
        buffer: List[str] = []
        buffer_pos = self.pos

        def flush() -> None:
            if buffer:
                nodes.append(LatexNode(NodeKind.TEXT, text="".join(buffer), line=self._line(buffer_pos)))
                buffer.clear()

        while self.pos < self.stop:
            char = self.text[self.pos]

            if char == "\\":
                start = self.pos
                node, closed_env = self._parse_backslash(env)
                if closed_env:
                    flush()
                    return nodes, True
                if node is not None and node.kind == NodeKind.TEXT:
                    if not buffer:
                        buffer_pos = start
                    buffer.append(node.text)
                elif node is not None:
                    flush()
                    nodes.append(node)
                continue

            if char == "{":
                flush()
                start = self.pos
                self.pos += 1
                children, _ = self._parse_sequence(in_group=True, group_pos=start)
                nodes.append(LatexNode(NodeKind.GROUP, children=children, line=self._line(start)))
                buffer_pos = self.pos
                continue

            if char == "}":
                if in_group:
                    flush()
                    self.pos += 1
                    return nodes, True
                raise self._error("Unexpected closing brace '}'")

            if char == "$":
                flush()
                nodes.append(self._parse_dollar_math())
                buffer_pos = self.pos
                continue

            if char == "&":
                flush()
                nodes.append(LatexNode(NodeKind.ALIGN_TAB, line=self._line()))
                self.pos += 1
                buffer_pos = self.pos
                continue

            if char == "~":
                if not buffer:
                    buffer_pos = self.pos
                buffer.append(" ")
                self.pos += 1
                continue

            if char == "\n":
                blank = _BLANK_LINE.match(self.text, self.pos, self.stop)
                if blank:
                    flush()
                    nodes.append(LatexNode(NodeKind.PARBREAK, line=self._line()))
                    self.pos = blank.end()
                    buffer_pos = self.pos
                    continue

            if not buffer:
                buffer_pos = self.pos
            buffer.append(char)
            self.pos += 1

        flush()
        if in_group:
            raise self._error("Unbalanced brace: '{' is never closed", pos=group_pos)
        if env is not None:
            raise self._error(f"\\begin{{{env}}} is never closed", pos=env_pos)
        return nodes, False

    def _parse_backslash(self, env: Optional[str]) -> Tuple[Optional[LatexNode], bool]:
        """
        Parse a control sequence at self.pos.

        Returns:
            (node or None, closed) where closed is True when \\end{env} closed the
            enclosing environment
        """
        start = self.pos
        next_char = self.text[self.pos + 1] if self.pos + 1 < self.stop else ""

        if not next_char:
            raise self._error("Lone backslash at end of input")

        match = _COMMAND_NAME.match(self.text, self.pos + 1, self.stop)
        if match is None:
            return self._parse_control_symbol(next_char), False

        name = match.group(0)
        self.pos = match.end()

        if name == "begin":
            return self._parse_environment(start), False
        if name == "end":
            end_name = self._read_raw_group(start, "\\end")
            if env is not None and end_name == env:
                return None, True
            if env is None:
                raise self._error(f"\\end{{{end_name}}} without matching \\begin", pos=start)
            raise self._error(
                f"\\end{{{end_name}}} does not match \\begin{{{env}}}", pos=start
            )

        starred = False
        if self._peek() == "*":
            starred = True
            self.pos += 1

        node = LatexNode(NodeKind.COMMAND, name=name, starred=starred, line=self._line(start))

        if name == "item":
            node.optional = self._read_optional()
            return node, False

        arity = COMMAND_ARITY.get(name, 0)
        if arity:
            node.optional = self._read_optional()
            for _ in range(arity):
                node.args.append(self._read_argument(name, start))
        else:
            # Swallow the space that terminates a control word
            while self.pos < self.stop and self.text[self.pos] in " \t":
                self.pos += 1
        return node, False

    def _parse_control_symbol(self, char: str) -> LatexNode:
        start = self.pos
        if char == "\\":
            self.pos += 2
            self._read_optional()
            return LatexNode(NodeKind.LINEBREAK, line=self._line(start))
        if char == "[":
            return self._parse_delimited_math(start, "\\]", display=True)
        if char == "(":
            return self._parse_delimited_math(start, "\\)", display=False)
        self.pos += 2
        return LatexNode(NodeKind.TEXT, text=ESCAPED_CHARACTERS.get(char, char), line=self._line(start))

    def _parse_environment(self, start: int) -> LatexNode:
        name = self._read_raw_group(start, "\\begin")
        line = self._line(start)

        if name in MATH_ENVIRONMENTS or name in VERBATIM_ENVIRONMENTS:
            if name in VERBATIM_ENVIRONMENTS:
                self._read_optional()
            for _ in range(ENVIRONMENT_ARITY.get(name, 0)):
                self._read_raw_group(start, f"\\begin{{{name}}}")
            end = re.compile(LaTeXPatterns.END_ENV.format(env=re.escape(name)))
            found = end.search(self.text, self.pos, self.stop)
            if found is None:
                raise self._error(f"\\begin{{{name}}} is never closed", pos=start)
            body = self.text[self.pos : found.start()]
            self.pos = found.end()
            if name in VERBATIM_ENVIRONMENTS:
                return LatexNode(NodeKind.VERBATIM, name=name, text=body.strip("\n"), line=line)
            return LatexNode(
                NodeKind.MATH,
                name=name,
                text=body.strip(),
                display=name != "math",
                starred=name.endswith("*"),
                line=line,
            )

        node = LatexNode(NodeKind.ENVIRONMENT, name=name, starred=name.endswith("*"), line=line)
        node.optional = self._read_optional()
        for _ in range(ENVIRONMENT_ARITY.get(name, 0)):
            node.args.append([LatexNode(NodeKind.TEXT, text=self._read_raw_group(start, name))])
        node.children, _ = self._parse_sequence(env=name, env_pos=start)
        return node

    def _parse_dollar_math(self) -> LatexNode:
        start = self.pos
        display = self._peek(1) == "$"
        delimiter = "$$" if display else "$"
        self.pos += len(delimiter)
        content_start = self.pos

        while self.pos < self.stop:
            if self.text[self.pos] == "\\":
                self.pos += 2
                continue
            if self.text.startswith(delimiter, self.pos):
                content = self.text[content_start : self.pos]
                self.pos += len(delimiter)
                return LatexNode(NodeKind.MATH, text=content.strip(), display=display, line=self._line(start))
            self.pos += 1

        raise self._error(f"Unterminated math: '{delimiter}' is never closed", pos=start)

    def _parse_delimited_math(self, start: int, closer: str, display: bool) -> LatexNode:
        content_start = start + 2
        found = self.text.find(closer, content_start, self.stop)
        if found == -1:
            raise self._error(f"Unterminated math: '{closer}' is missing", pos=start)
        self.pos = found + len(closer)
        return LatexNode(
            NodeKind.MATH, text=self.text[content_start:found].strip(), display=display, line=self._line(start)
        )

    # Argument readers

    def _read_optional(self) -> Optional[str]:
        try:
            content, self.pos = skip_optional_argument(self.text[: self.stop], self.pos)
        except ValueError:
            raise self._error("Unbalanced '[' in optional argument")
        return content

    def _read_raw_group(self, command_pos: int, command: str) -> str:
        """Read a {raw} argument without parsing its content."""
        self._skip_spaces()
        if self._peek() != "{":
            raise self._error(f"{command} is missing its {{argument}}", pos=command_pos)
        open_pos = self.pos
        depth = 0
        while self.pos < self.stop:
            char = self.text[self.pos]
            if char == "\\":
                self.pos += 2
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return self.text[open_pos + 1 : self.pos - 1].strip()
            self.pos += 1
        raise self._error("Unbalanced brace: '{' is never closed", pos=open_pos)

    def _read_argument(self, name: str, command_pos: int) -> List[LatexNode]:
        """Read one mandatory argument: a braced group, or a single token."""
        self._skip_spaces()
        if self._peek() != "{":
            if self.pos >= self.stop:
                raise self._error(f"\\{name} is missing its argument", pos=command_pos)
            if self._peek() == "\\":
                node, _ = self._parse_backslash(None)
                return [node] if node is not None else []
            char = self._peek()
            self.pos += 1
            return [LatexNode(NodeKind.TEXT, text=char, line=self._line())]

        if name in RAW_ARGUMENT_COMMANDS:
            return [LatexNode(NodeKind.TEXT, text=self._read_raw_group(command_pos, f"\\{name}"))]

        open_pos = self.pos
        self.pos += 1
        children, _ = self._parse_sequence(in_group=True, group_pos=open_pos)
        return children
