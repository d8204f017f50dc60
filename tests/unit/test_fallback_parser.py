"""Unit tests for the fallback renderer's LaTeX parser."""

import pytest

from collabtex.contexts.rendering.exceptions import FallbackParseError
from collabtex.contexts.rendering.fallback.parser import LatexParser, NodeKind


@pytest.fixture
def parser():
    return LatexParser()


def _kinds(nodes):
    return [node.kind for node in nodes]


class TestDocumentStructure:
    """Tests for preamble/body splitting."""

    @pytest.mark.unit
    def test_minimal_document(self, parser):
        document = parser.parse(r"\documentclass{article}\begin{document}Hello\end{document}")

        assert document.document_class == "article"
        assert len(document.body) == 1
        assert document.body[0].kind == NodeKind.TEXT
        assert document.body[0].text == "Hello"

    @pytest.mark.unit
    def test_preamble_packages_and_metadata(self, parser):
        source = "\n".join(
            [
                r"\documentclass[11pt]{report}",
                r"\usepackage[utf8]{inputenc}",
                r"\usepackage{amsmath, graphicx}",
                r"\title{On \emph{Things}}",
                r"\author{Ada \and Grace}",
                r"\begin{document}",
                r"\maketitle",
                r"\end{document}",
            ]
        )
        document = parser.parse(source)

        assert document.document_class == "report"
        assert document.packages == ["inputenc", "amsmath", "graphicx"]
        assert set(document.metadata) == {"title", "author"}
        title = document.metadata["title"]
        assert title[0].text == "On "
        assert title[1].name == "emph"

    @pytest.mark.unit
    def test_bare_fragment_without_preamble(self, parser):
        document = parser.parse(r"Just \textbf{bold} text")

        assert document.document_class is None
        assert _kinds(document.body) == [NodeKind.TEXT, NodeKind.COMMAND, NodeKind.TEXT]

    @pytest.mark.unit
    def test_comments_are_stripped(self, parser):
        document = parser.parse("Visible % hidden \\undefined{\nnext")
        text = "".join(node.text for node in document.body)

        assert "hidden" not in text
        assert "Visible" in text
        assert "next" in text

    @pytest.mark.unit
    def test_escaped_percent_survives(self, parser):
        document = parser.parse(r"50\% done")
        assert document.body[0].text == "50% done"


class TestBodyNodes:
    """Tests for body node kinds."""

    @pytest.mark.unit
    def test_command_arguments(self, parser):
        node = parser.parse(r"\section*{Intro}").body[0]

        assert node.kind == NodeKind.COMMAND
        assert node.name == "section"
        assert node.starred
        assert node.args[0][0].text == "Intro"

    @pytest.mark.unit
    def test_raw_arguments_are_not_parsed(self, parser):
        node = parser.parse(r"\href{https://example.com/a_b#x}{site}").body[0]

        assert node.args[0][0].text == "https://example.com/a_b#x"
        assert node.args[1][0].text == "site"

    @pytest.mark.unit
    def test_environment_children(self, parser):
        node = parser.parse("\\begin{itemize}\n\\item One\n\\item[b)] Two\n\\end{itemize}").body[0]

        assert node.kind == NodeKind.ENVIRONMENT
        assert node.name == "itemize"
        items = [child for child in node.children if child.kind == NodeKind.COMMAND]
        assert [item.name for item in items] == ["item", "item"]
        assert items[1].optional == "b)"

    @pytest.mark.unit
    def test_tabular_column_spec(self, parser):
        node = parser.parse(r"\begin{tabular}{l|r}a & b \\ c & d\end{tabular}").body[0]

        assert node.args[0][0].text == "l|r"
        assert NodeKind.ALIGN_TAB in _kinds(node.children)
        assert NodeKind.LINEBREAK in _kinds(node.children)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "source, display, text",
        [
            (r"$a+b$", False, "a+b"),
            (r"$$a+b$$", True, "a+b"),
            (r"\(x^2\)", False, "x^2"),
            (r"\[x^2\]", True, "x^2"),
        ],
    )
    def test_math_delimiters(self, parser, source, display, text):
        node = parser.parse(source).body[0]

        assert node.kind == NodeKind.MATH
        assert node.display is display
        assert node.text == text

    @pytest.mark.unit
    def test_math_environment_body_is_raw(self, parser):
        node = parser.parse("\\begin{equation}\\label{eq:e} E = mc^2 \\end{equation}").body[0]

        assert node.kind == NodeKind.MATH
        assert node.name == "equation"
        assert node.display
        assert "mc^2" in node.text
        assert "\\label{eq:e}" in node.text

    @pytest.mark.unit
    def test_escaped_dollar_is_text(self, parser):
        document = parser.parse(r"costs \$5")
        assert _kinds(document.body) == [NodeKind.TEXT]
        assert document.body[0].text == "costs $5"

    @pytest.mark.unit
    def test_verbatim_keeps_specials(self, parser):
        node = parser.parse("\\begin{verbatim}\n{ $ \\x %\n\\end{verbatim}").body[0]

        assert node.kind == NodeKind.VERBATIM
        assert node.text == "{ $ \\x "

    @pytest.mark.unit
    def test_paragraph_break(self, parser):
        document = parser.parse("First.\n\nSecond.")
        assert _kinds(document.body) == [NodeKind.TEXT, NodeKind.PARBREAK, NodeKind.TEXT]

    @pytest.mark.unit
    def test_line_numbers(self, parser):
        document = parser.parse("line one\n\\section{Two}\n")
        section = [node for node in document.body if node.kind == NodeKind.COMMAND][0]
        assert section.line == 2


class TestParseErrors:
    """Malformed input raises FallbackParseError with a location."""

    @pytest.mark.unit
    def test_unclosed_brace(self, parser):
        with pytest.raises(FallbackParseError) as exc_info:
            parser.parse("ok\n\\textbf{never closed")

        assert exc_info.value.line == 2
        assert "never closed" in exc_info.value.message

    @pytest.mark.unit
    def test_stray_closing_brace(self, parser):
        with pytest.raises(FallbackParseError, match="Unexpected closing brace"):
            parser.parse("text }")

    @pytest.mark.unit
    def test_unclosed_environment(self, parser):
        with pytest.raises(FallbackParseError) as exc_info:
            parser.parse("\\begin{itemize}\n\\item a\n")

        assert "itemize" in exc_info.value.message
        assert exc_info.value.line == 1

    @pytest.mark.unit
    def test_mismatched_environment(self, parser):
        with pytest.raises(FallbackParseError, match="does not match"):
            parser.parse(r"\begin{center}x\end{quote}")

    @pytest.mark.unit
    def test_end_without_begin(self, parser):
        with pytest.raises(FallbackParseError, match="without matching"):
            parser.parse(r"x \end{center}")

    @pytest.mark.unit
    def test_unterminated_math(self, parser):
        with pytest.raises(FallbackParseError, match="Unterminated math"):
            parser.parse("a $b + c")

    @pytest.mark.unit
    def test_documentclass_without_begin_document(self, parser):
        with pytest.raises(FallbackParseError, match="without \\\\begin\\{document\\}"):
            parser.parse("\\documentclass{article}\nHello")

    @pytest.mark.unit
    def test_missing_end_document(self, parser):
        with pytest.raises(FallbackParseError, match="never closed"):
            parser.parse("\\documentclass{article}\n\\begin{document}\nHello")

    @pytest.mark.unit
    def test_error_message_includes_location(self, parser):
        with pytest.raises(FallbackParseError) as exc_info:
            parser.parse("a\nb\n$c")

        assert "(line 3, column 1)" in str(exc_info.value)
