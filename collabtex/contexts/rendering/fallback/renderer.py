"""
Fallback Renderer

Lightweight LaTeX-to-HTML renderer used when the heavyweight backend cannot
produce an artifact. Pure and stateless between calls: every render() parses
and generates from scratch.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from markupsafe import Markup

from collabtex.contexts.rendering.fallback.generator import HtmlGenerator
from collabtex.contexts.rendering.fallback.parser import LatexParser
from collabtex.contexts.rendering.logger import _log_debug, _log_warning
from collabtex.contexts.rendering.results import RenderedDocument

TEMPLATE_DIR = Path(__file__).parent / "template"
PAGE_TEMPLATE = "preview.html.jinja"


class FallbackRenderer:
    """
    Renders LaTeX source to an HTML approximation.

    Args:
        stylesheet_url: Stylesheet linked from the standalone page (None to omit)
        hyphenate: Enable CSS hyphenation on the page body
        today: Fixed date for \\today (default: the current date at render time)
    """

    def __init__(
        self,
        stylesheet_url: Optional[str] = None,
        hyphenate: bool = False,
        today: Optional[datetime] = None,
    ):
        self.stylesheet_url = stylesheet_url
        self.hyphenate = hyphenate
        self.today = today
        self.parser = LatexParser()
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    @classmethod
    def from_settings(cls, settings) -> "FallbackRenderer":
        """Build from the rendering.fallback section of the loaded settings."""
        fallback = settings.rendering.fallback
        return cls(stylesheet_url=fallback.get("stylesheet_url"), hyphenate=bool(fallback.get("hyphenate", False)))

    def render(self, source: str) -> RenderedDocument:
        """
        Render LaTeX source.

        Args:
            source: Contents of the entry document

        Returns:
            RenderedDocument with the body fragment and a standalone page

        Raises:
            FallbackParseError: If the source cannot be parsed
        """
        document = self.parser.parse(source)
        generated = HtmlGenerator(today=self.today).generate(document)

        for warning in generated.warnings:
            _log_warning(f"Fallback: {warning}")
        _log_debug(f"Fallback rendered {len(generated.fragment)} characters of HTML")

        page = self.env.get_template(PAGE_TEMPLATE).render(
            title=generated.title,
            fragment=Markup(generated.fragment),
            stylesheet_url=self.stylesheet_url,
            hyphenate=self.hyphenate,
        )

        return RenderedDocument(
            fragment=generated.fragment,
            page=page,
            title=generated.title,
            warnings=generated.warnings,
        )
