"""Collaborators used by the build stages."""

from .files import FileEngine
from .graphs import GraphRenderer
from .markdown import ROOT_MARKDOWNS, MarkdownEngine
from .search import SearchIndex
from .templates import TemplateEngine

__all__ = ["FileEngine", "GraphRenderer", "MarkdownEngine", "ROOT_MARKDOWNS", "SearchIndex", "TemplateEngine"]
