"""
Компилятор и вычислитель шаблонов: лексер, парсер, AST и рендерер.
"""

from __future__ import annotations

from .filters import FilterArg, FilterRegistry, create_default_filters
from .lexer import TemplateLexer, tokenize_template
from .parser import TemplateParser, parse_template
from .renderer import TemplateRenderer
from .tokens import LexerError, ParserError

__all__ = [
    "TemplateLexer",
    "TemplateParser",
    "TemplateRenderer",
    "FilterArg",
    "FilterRegistry",
    "create_default_filters",
    "tokenize_template",
    "parse_template",
    "LexerError",
    "ParserError",
]
