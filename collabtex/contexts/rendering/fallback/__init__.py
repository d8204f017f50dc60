from collabtex.contexts.rendering.fallback.generator import GeneratedHtml, HtmlGenerator
from collabtex.contexts.rendering.fallback.parser import LatexNode, LatexParser, NodeKind, ParsedDocument
from collabtex.contexts.rendering.fallback.renderer import FallbackRenderer

__all__ = [
    "FallbackRenderer",
    "GeneratedHtml",
    "HtmlGenerator",
    "LatexNode",
    "LatexParser",
    "NodeKind",
    "ParsedDocument",
]
