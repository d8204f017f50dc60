"""
HTML Generator (fallback renderer)

Turns a ParsedDocument into an HTML fragment approximating the typeset page.
All source text is escaped with markupsafe before it is placed in markup.

Constructs without an HTML rendering are dropped and reported as warnings,
one per command or environment name.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from markupsafe import Markup, escape

from collabtex.contexts.rendering.fallback.parser import LatexNode, NodeKind, ParsedDocument
from collabtex.utils.text_processing import collapse_whitespace
from collabtex.utils.timestamp import long_date

SECTION_LEVELS = ("part", "chapter", "section", "subsection", "subsubsection", "paragraph", "subparagraph")
NUMBERED_DEPTH = 4  # Through subsubsection
HEADING_TAGS = {
    "part": "h1", "chapter": "h2", "section": "h2", "subsection": "h3",
    "subsubsection": "h4", "paragraph": "h5", "subparagraph": "h6",
}
CHAPTER_CLASSES = {"report", "book"}

INLINE_STYLES = {
    "textbf": ("strong", None),
    "textit": ("em", None),
    "textsl": ("em", None),
    "emph": ("em", None),
    "texttt": ("code", None),
    "underline": ("u", None),
    "textsc": ("span", "smallcaps"),
    "textsf": ("span", "sans"),
    "textrm": ("span", None),
    "textup": ("span", None),
    "textmd": ("span", None),
    "textnormal": ("span", None),
    "mbox": ("span", "nowrap"),
    "fbox": ("span", "framebox"),
}

SYMBOLS = {
    "LaTeX": "LaTeX", "TeX": "TeX", "ldots": "\u2026", "dots": "\u2026", "textbackslash": "\\",
    "textasciitilde": "~", "textasciicircum": "^", "textbar": "|", "textless": "<",
    "textgreater": ">", "copyright": "\u00a9", "S": "\u00a7", "P": "\u00b6",
    "dag": "\u2020", "ddag": "\u2021", "quad": "\u2003", "qquad": "\u2003\u2003",
    "textendash": "\u2013", "textemdash": "\u2014", "ss": "\u00df", "slash": "/",
}

# Layout and font switches with no HTML counterpart worth approximating
IGNORED_COMMANDS = {
    "noindent", "indent", "centering", "raggedright", "raggedleft", "par", "hline", "cline",
    "small", "footnotesize", "scriptsize", "tiny", "large", "Large", "LARGE", "huge", "Huge",
    "normalsize", "bfseries", "itshape", "ttfamily", "rmfamily", "sffamily", "normalfont",
    "newpage", "clearpage", "pagebreak", "linebreak", "smallskip", "medskip", "bigskip",
    "vspace", "hspace", "vfill", "hfill", "label", "protect", "relax", "thispagestyle",
    "pagestyle", "tableofcontents", "toprule", "midrule", "bottomrule", "and", "color",
}

LIST_ENVIRONMENTS = {"itemize": "ul", "enumerate": "ol", "description": "dl"}
BLOCK_ENVIRONMENTS = {
    "quote": "blockquote", "quotation": "blockquote", "center": "div", "flushleft": "div",
    "flushright": "div", "abstract": "div", "minipage": "div", "figure": "figure",
    "table": "figure", "figure*": "figure", "table*": "figure", "document": "div",
}
TABULAR_ENVIRONMENTS = {"tabular", "tabular*", "tabularx", "array"}

# Ordered: longer sequences first
LIGATURES = (
    ("---", "\u2014"),
    ("--", "\u2013"),
    ("!`", "\u00a1"),
    ("?`", "\u00bf"),
    ("``", "\u201c"),
    ("''", "\u201d"),
    ("`", "\u2018"),
    ("'", "\u2019"),
)

_EQUATION_LABEL = re.compile(r"\\label\s*\{([^}]*)\}")
_REF_PLACEHOLDER = re.compile("\x00ref:([^\x00]*)\x00")
_COLUMN_ALIGNMENTS = {"l": "left", "c": "center", "r": "right", "p": "left", "X": "left"}
_URL_SCHEME = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*):")
_COLOR_NAME = re.compile(r"[A-Za-z]+")
SAFE_URL_SCHEMES = {"http", "https", "mailto"}


@dataclass
class GeneratedHtml:
    """Output of HtmlGenerator.generate()."""

    fragment: str
    title: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


def apply_ligatures(text: str) -> str:
    """
    Replace TeX input ligatures with their typographic characters.

    Example:
        >>> apply_ligatures("pages 1--5 ``quoted''")
        'pages 1\u20135 \u201cquoted\u201d'
    """
    for sequence, replacement in LIGATURES:
        text = text.replace(sequence, replacement)
    return text


class HtmlGenerator:
    """
    Generator half of the fallback renderer.

    A generator instance holds per-document state (counters, labels, footnotes),
    so create one per document.

    Args:
        today: Date used for \\today and for \\maketitle without \\date (default: now)
    """

    def __init__(self, today: Optional[datetime] = None):
        self.today = today
        self.counters = [0] * NUMBERED_DEPTH
        self.use_chapters = False
        self.equation_number = 0
        self.footnotes: List[Markup] = []
        self.labels: Dict[str, str] = {}
        self.metadata: Dict[str, List[LatexNode]] = {}
        self.current_anchor = ""
        self._warnings: Dict[str, str] = {}

    def generate(self, document: ParsedDocument) -> GeneratedHtml:
        self.use_chapters = document.document_class in CHAPTER_CLASSES
        self.metadata = dict(document.metadata)

        body = self._render_blocks(document.body)
        if self.footnotes:
            items = Markup("").join(
                Markup('<li id="fn{0}">{1}</li>').format(index, note)
                for index, note in enumerate(self.footnotes, start=1)
            )
            body += Markup('<section class="footnotes"><ol>{0}</ol></section>').format(items)

        fragment = _REF_PLACEHOLDER.sub(self._resolve_ref, str(body))

        title = None
        if "title" in self.metadata:
            title = collapse_whitespace(self._plain_text(self.metadata["title"])).strip() or None

        return GeneratedHtml(fragment=fragment, title=title, warnings=list(self._warnings.values()))

    # Warnings and references

    def _warn(self, key: str, message: str) -> None:
        self._warnings.setdefault(key, message)

    def _resolve_ref(self, match: re.Match) -> str:
        key = match.group(1)
        if key in self.labels:
            return str(escape(self.labels[key]))
        self._warn(f"ref:{key}", f"Reference to undefined label '{key}'")
        return "??"

    # Blocks

    def _render_blocks(self, nodes: List[LatexNode]) -> Markup:
        """Render a node sequence, grouping inline runs into paragraphs."""
        blocks: List[Markup] = []
        paragraph: List[Markup] = []

        def flush() -> None:
            content = Markup("").join(paragraph).strip()
            if content:
                blocks.append(Markup("<p>{0}</p>").format(content))
            paragraph.clear()

        for node in nodes:
            if node.kind == NodeKind.PARBREAK:
                flush()
                continue
            block = self._render_block(node)
            if block is None:
                paragraph.append(self._render_inline_node(node))
            else:
                flush()
                blocks.append(block)

        flush()
        return Markup("\n").join(blocks)

    def _render_block(self, node: LatexNode) -> Optional[Markup]:
        """Render node as a block element, or return None if it is inline content."""
        if node.kind == NodeKind.MATH and node.display:
            return self._render_display_math(node)
        if node.kind == NodeKind.VERBATIM:
            return Markup('<pre class="verbatim">{0}</pre>').format(node.text)
        if node.kind == NodeKind.ENVIRONMENT:
            return self._render_environment(node)
        if node.kind == NodeKind.COMMAND:
            if node.name in SECTION_LEVELS:
                return self._render_heading(node)
            if node.name == "maketitle":
                return self._render_title_block()
            if node.name in ("title", "author", "date"):
                self.metadata[node.name] = node.args[0] if node.args else []
                return Markup("")
        return None

    def _render_heading(self, node: LatexNode) -> Markup:
        level = SECTION_LEVELS.index(node.name)
        tag = HEADING_TAGS[node.name]
        title = self._render_inline(node.args[0] if node.args else [])

        # part and chapter live at index 0 and 1; counters start at chapter
        depth = level - 1
        numbered = not node.starred and 0 <= depth < NUMBERED_DEPTH
        if numbered and not self.use_chapters and node.name == "chapter":
            numbered = False
        if not numbered:
            return Markup("<{0}>{1}</{0}>").format(Markup(tag), title)

        self.counters[depth] += 1
        for deeper in range(depth + 1, NUMBERED_DEPTH):
            self.counters[deeper] = 0
        top = 0 if self.use_chapters else 1
        number = ".".join(str(count) for count in self.counters[top : depth + 1])
        self.current_anchor = number

        return Markup('<{0} id="sec-{1}"><span class="secnum">{1}</span> {2}</{0}>').format(
            Markup(tag), number, title
        )

    def _render_title_block(self) -> Markup:
        if "title" not in self.metadata:
            self._warn("maketitle", "\\maketitle used without \\title; title block skipped")
            return Markup("")

        parts = [Markup('<h1 class="title">{0}</h1>').format(self._render_inline(self.metadata["title"]))]

        authors = _split_on_command(self.metadata.get("author", []), "and")
        author_markup = [self._render_inline(author).strip() for author in authors]
        author_markup = [author for author in author_markup if author]
        if author_markup:
            parts.append(
                Markup('<div class="author">{0}</div>').format(
                    Markup('<span class="sep"> \u00b7 </span>').join(author_markup)
                )
            )

        if "date" in self.metadata:
            date = self._render_inline(self.metadata["date"]).strip()
        else:
            date = Markup(escape(long_date(self.today)))
        if date:
            parts.append(Markup('<div class="date">{0}</div>').format(date))

        return Markup('<header class="titleblock">{0}</header>').format(Markup("").join(parts))

    def _render_environment(self, node: LatexNode) -> Markup:
        name = node.name
        if name in LIST_ENVIRONMENTS:
            return self._render_list(node)
        if name in TABULAR_ENVIRONMENTS:
            return self._render_tabular(node)
        if name == "abstract":
            return Markup('<div class="abstract"><h3>Abstract</h3>{0}</div>').format(
                self._render_blocks(node.children)
            )
        if name in BLOCK_ENVIRONMENTS:
            tag = BLOCK_ENVIRONMENTS[name]
            css_class = name.rstrip("*")
            return Markup('<{0} class="{1}">{2}</{0}>').format(
                Markup(tag), css_class, self._render_blocks(node.children)
            )

        self._warn(f"env:{name}", f"Unsupported environment '{name}' on line {node.line}; content shown unstyled")
        return Markup('<div class="unknown-env">{0}</div>').format(self._render_blocks(node.children))

    def _render_list(self, node: LatexNode) -> Markup:
        tag = LIST_ENVIRONMENTS[node.name]
        items = _split_on_command(node.children, "item")
        labels = [item_label for item_label, _ in _item_labels(node.children)]

        rendered = []
        for index, (label, content) in enumerate(zip(labels, items[1:]), start=1):
            if node.name == "enumerate":
                self.current_anchor = str(index)
            body = self._render_blocks(content)
            if tag == "dl":
                rendered.append(
                    Markup("<dt>{0}</dt><dd>{1}</dd>").format(label or "", body)
                )
            elif label is not None:
                rendered.append(
                    Markup('<li class="labeled"><span class="itemlabel">{0}</span> {1}</li>').format(label, body)
                )
            else:
                rendered.append(Markup("<li>{0}</li>").format(body))

        if _has_content(items[0]):
            self._warn(f"list:{node.line}", f"Text before the first \\item in '{node.name}' on line {node.line} was dropped")
        return Markup("<{0}>{1}</{0}>").format(Markup(tag), Markup("\n").join(rendered))

    def _render_tabular(self, node: LatexNode) -> Markup:
        spec = node.args[-1][0].text if node.args and node.args[-1] else ""
        alignments = [_COLUMN_ALIGNMENTS[char] for char in re.sub(r"\{[^}]*\}", "", spec) if char in _COLUMN_ALIGNMENTS]

        rows = []
        for row in _split_on_kind(node.children, NodeKind.LINEBREAK):
            cells = _split_on_kind(row, NodeKind.ALIGN_TAB)
            if len(cells) == 1 and not _has_content(cells[0]):
                continue
            rendered_cells = []
            for column, cell in enumerate(cells):
                align = alignments[column] if column < len(alignments) else "left"
                rendered_cells.append(
                    Markup('<td style="text-align: {0}">{1}</td>').format(align, self._render_inline(cell).strip())
                )
            rows.append(Markup("<tr>{0}</tr>").format(Markup("").join(rendered_cells)))

        return Markup('<table class="tabular">{0}</table>').format(Markup("\n").join(rows))

    def _render_display_math(self, node: LatexNode) -> Markup:
        source = node.text
        labels = _EQUATION_LABEL.findall(source)
        source = _EQUATION_LABEL.sub("", source).strip()

        numbered = node.name != "" and not node.starred and node.name not in ("displaymath", "math")
        if not numbered:
            return Markup('<div class="math display">\\[{0}\\]</div>').format(source)

        self.equation_number += 1
        number = str(self.equation_number)
        for key in labels:
            self.labels[key] = number
        return Markup(
            '<div class="math display numbered" id="eq-{0}">\\[{1}\\]<span class="eqno">({0})</span></div>'
        ).format(number, source)

    # Inline

    def _render_inline(self, nodes: List[LatexNode]) -> Markup:
        return Markup("").join(self._render_inline_node(node) for node in nodes)

    def _render_inline_node(self, node: LatexNode) -> Markup:
        kind = node.kind
        if kind == NodeKind.TEXT:
            return escape(apply_ligatures(collapse_whitespace(node.text)))
        if kind == NodeKind.GROUP:
            return self._render_inline(node.children)
        if kind == NodeKind.MATH:
            if node.display:
                return self._render_display_math(node)
            return Markup('<span class="math">\\({0}\\)</span>').format(node.text)
        if kind == NodeKind.LINEBREAK:
            return Markup("<br>")
        if kind == NodeKind.ALIGN_TAB:
            return Markup(" ")
        if kind == NodeKind.VERBATIM:
            return Markup("<code>{0}</code>").format(node.text)
        if kind == NodeKind.ENVIRONMENT:
            return self._render_environment(node)
        if kind == NodeKind.PARBREAK:
            return Markup(" ")
        return self._render_command(node)

    def _render_command(self, node: LatexNode) -> Markup:
        name = node.name
        args = node.args

        if name in INLINE_STYLES:
            tag, css_class = INLINE_STYLES[name]
            content = self._render_inline(args[0] if args else [])
            if css_class:
                return Markup('<{0} class="{1}">{2}</{0}>').format(Markup(tag), css_class, content)
            return Markup("<{0}>{1}</{0}>").format(Markup(tag), content)

        if name in SYMBOLS:
            return escape(SYMBOLS[name])
        if name == "today":
            return escape(long_date(self.today))
        if name == "url":
            target = _raw_argument(args, 0)
            if not _is_safe_link(target):
                self._warn(f"link:{target}", f"Link with unsupported scheme on line {node.line} was not linked")
                return Markup('<span class="url">{0}</span>').format(target)
            return Markup('<a href="{0}" class="url">{0}</a>').format(target)
        if name == "href":
            target, text = _raw_argument(args, 0), _raw_argument(args, 1)
            if not _is_safe_link(target):
                self._warn(f"link:{target}", f"Link with unsupported scheme on line {node.line} was not linked")
                return escape(text)
            return Markup('<a href="{0}">{1}</a>').format(target, text)
        if name == "footnote":
            self.footnotes.append(self._render_inline(args[0] if args else []))
            index = len(self.footnotes)
            return Markup('<sup class="footnote"><a href="#fn{0}">{0}</a></sup>').format(index)
        if name == "label":
            key = _raw_argument(args, 0)
            if key:
                self.labels[key] = self.current_anchor
            return Markup("")
        if name in ("ref", "pageref"):
            return Markup("\x00ref:{0}\x00").format(_raw_argument(args, 0))
        if name == "eqref":
            return Markup("(\x00ref:{0}\x00)").format(_raw_argument(args, 0))
        if name == "cite":
            return Markup('<span class="cite">[{0}]</span>').format(_raw_argument(args, 0))
        if name == "textcolor":
            color, text = _raw_argument(args, 0), _raw_argument(args, 1)
            if not _COLOR_NAME.fullmatch(color):
                self._warn(f"color:{color}", f"Unsupported color '{color}' on line {node.line}; text shown uncolored")
                return escape(text)
            return Markup('<span style="color: {0}">{1}</span>').format(color, text)
        if name in ("centerline", "caption"):
            return Markup('<span class="{0}">{1}</span>').format(name, self._render_inline(args[0] if args else []))
        if name == "item":
            self._warn("item", f"\\item outside a list on line {node.line} was ignored")
            return Markup("")
        if name in IGNORED_COMMANDS:
            return Markup("")
        if name in ("title", "author", "date"):
            self.metadata[name] = args[0] if args else []
            return Markup("")

        self._warn(f"cmd:{name}", f"Unsupported command \\{name} on line {node.line} was ignored")
        # Keep argument text visible so content is not silently lost
        return Markup("").join(self._render_inline(arg) for arg in args)

    def _plain_text(self, nodes: List[LatexNode]) -> str:
        """Text content of nodes without markup (used for the page <title>)."""
        parts = []
        for node in nodes:
            if node.kind == NodeKind.TEXT:
                parts.append(apply_ligatures(node.text))
            elif node.kind == NodeKind.GROUP:
                parts.append(self._plain_text(node.children))
            elif node.kind == NodeKind.COMMAND and node.name in SYMBOLS:
                parts.append(SYMBOLS[node.name])
            elif node.kind == NodeKind.COMMAND:
                for arg in node.args:
                    parts.append(self._plain_text(arg))
            elif node.kind in (NodeKind.LINEBREAK, NodeKind.PARBREAK):
                parts.append(" ")
        return "".join(parts)


def _raw_argument(args: List[List[LatexNode]], index: int) -> str:
    if index >= len(args):
        return ""
    return "".join(node.text for node in args[index] if node.kind == NodeKind.TEXT).strip()


def _is_safe_link(target: str) -> bool:
    """
    Accept http, https and mailto links, plus relative ones.

    Example:
        >>> _is_safe_link("https://example.org"), _is_safe_link("javascript:alert(1)")
        (True, False)
    """
    # Browsers drop control characters and spaces when reading the scheme
    compact = re.sub(r"[\x00-\x20]", "", target)
    match = _URL_SCHEME.match(compact)
    return match is None or match.group(1).lower() in SAFE_URL_SCHEMES


def _has_content(nodes: List[LatexNode]) -> bool:
    for node in nodes:
        if node.kind == NodeKind.TEXT and node.text.strip():
            return True
        if node.kind == NodeKind.COMMAND and node.name not in IGNORED_COMMANDS:
            return True
        if node.kind not in (NodeKind.TEXT, NodeKind.COMMAND, NodeKind.PARBREAK):
            return True
    return False


def _split_on_kind(nodes: List[LatexNode], kind: str) -> List[List[LatexNode]]:
    groups: List[List[LatexNode]] = [[]]
    for node in nodes:
        if node.kind == kind:
            groups.append([])
        else:
            groups[-1].append(node)
    return groups


def _split_on_command(nodes: List[LatexNode], name: str) -> List[List[LatexNode]]:
    """Split nodes at each \\name command; the first group holds what precedes the first one."""
    groups: List[List[LatexNode]] = [[]]
    for node in nodes:
        if node.kind == NodeKind.COMMAND and node.name == name:
            groups.append([])
        else:
            groups[-1].append(node)
    return groups


def _item_labels(nodes: List[LatexNode]):
    for node in nodes:
        if node.kind == NodeKind.COMMAND and node.name == "item":
            yield node.optional, node
