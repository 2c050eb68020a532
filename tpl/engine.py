"""
Template engine: the entry point the host program talks to.

The engine parses templates, caches the parse results by name/path and
creates rendering contexts. Rendering itself is delegated to
TemplateRenderer.
"""

from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, TextIO

from .config import EngineConfig
from .context import TemplateContext
from .errors import TemplateNotFoundError, TemplateSyntaxError
from .escape import escaper_by_name
from .loader import FileSystemLoader
from .template.filters import FilterArg, FilterFunc, FilterRegistry, create_default_filters
from .template.lexer import TemplateLexer
from .template.nodes import TemplateAST
from .template.parser import TemplateParser
from .template.renderer import TemplateRenderer
from .template.tokens import LexerError, ParserError

logger = logging.getLogger(__name__)


class Template:
    """
    A parsed template bound to the engine that produced it.

    Immutable after parsing; one Template may be rendered any number of
    times against different contexts.
    """

    def __init__(self, name: str, nodes: TemplateAST, engine: TemplateEngine, path: Optional[Path] = None):
        self.name = name
        self.nodes = nodes
        self.engine = engine
        self.path = path

    def render(self, stream: TextIO, context: TemplateContext) -> None:
        """
        Render into a text stream.

        Raises:
            TemplateRenderError: include/extends/create nesting exceeded max_depth
        """
        self.engine.renderer.render(self, context, stream)

    def render_to_string(self, context: TemplateContext) -> str:
        buffer = io.StringIO()
        self.render(buffer, context)
        return buffer.getvalue()

    def __repr__(self) -> str:
        return f"Template({self.name!r}, nodes={len(self.nodes)})"


@dataclass
class _CacheEntry:
    template: Template
    path: Path
    mtime_ns: int


class TemplateEngine:
    """
    Owns the filter registry, the template cache and the renderer.

    Templates registered via new_template() take precedence over files.
    File-backed templates are cached by resolved path; with auto_reload
    enabled a changed file is re-parsed on the next lookup.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.encoding = self.config.encoding
        self.max_depth = self.config.max_depth
        self.filters: FilterRegistry = create_default_filters()
        self.loader = FileSystemLoader(self.config.search_paths, encoding=self.encoding)
        self.renderer = TemplateRenderer(self)

        self._registered: Dict[str, Template] = {}
        self._file_cache: Dict[str, _CacheEntry] = {}
        self._lock = threading.RLock()

    # ---- Contexts ----

    def create_context(self) -> TemplateContext:
        """Fresh context with an empty scope stack."""
        return TemplateContext(
            output_directory=self.config.output_dir,
            escape_intf=escaper_by_name(self.config.escape),
        )

    # ---- Templates ----

    def new_template(self, name: str, data: str) -> Template:
        """
        Parse template text and register it under name.

        Raises:
            TemplateSyntaxError: The text does not parse
        """
        template = Template(name, self._parse(name, data), self)
        with self._lock:
            if name in self._registered:
                logger.debug(f"Replacing registered template '{name}'")
            self._registered[name] = template
        return template

    def load_by_name(self, path: str | Path) -> Template:
        """
        Registered template by name, otherwise a file found on the search paths.

        Raises:
            TemplateNotFoundError: Neither registered nor found on disk
            TemplateSyntaxError: The file does not parse
        """
        name = str(path)
        with self._lock:
            registered = self._registered.get(name)
            if registered is not None:
                return registered

            found = self.loader.find(name)
            if found is None:
                raise TemplateNotFoundError(name, searched=self.loader.candidates(name))

            key = str(found.resolve())
            entry = self._file_cache.get(key)
            if entry is not None:
                if not self.config.auto_reload or not self.loader.is_stale(entry.path, entry.mtime_ns):
                    return entry.template
                logger.debug(f"Template '{name}' changed on disk, reloading")

            source = self.loader.load(name)
            template = Template(name, self._parse(name, source.text), self, path=source.path)
            self._file_cache[key] = _CacheEntry(template, source.path, source.mtime_ns)
            logger.debug(f"Cached template '{name}' ({key})")
            return template

    def find_template(self, name: str) -> Optional[Template]:
        """Like load_by_name, but None when the template does not exist."""
        try:
            return self.load_by_name(name)
        except TemplateNotFoundError:
            return None

    def clear_cache(self) -> None:
        """Drop file-backed templates; registered ones stay."""
        with self._lock:
            self._file_cache.clear()

    @property
    def template_names(self) -> List[str]:
        with self._lock:
            return sorted(self._registered)

    # ---- Filters ----

    def register_filter(self, name: str, func: FilterFunc, *, arg: FilterArg = FilterArg.NONE) -> None:
        """Add or replace a filter; affects templates parsed afterwards."""
        self.filters.register(name, func, arg=arg)

    # ---- Parsing ----

    def _parse(self, name: str, text: str) -> TemplateAST:
        try:
            tokens = TemplateLexer(text).tokenize()
            nodes = TemplateParser(tokens, self.filters).parse()
        except LexerError as e:
            raise TemplateSyntaxError(e.message, name, e.line, e.column, cause=e) from e
        except ParserError as e:
            raise TemplateSyntaxError(e.message, name, e.line, e.column, cause=e) from e

        logger.debug(f"Parsed template '{name}': {len(nodes)} top-level nodes")
        return nodes


__all__ = ["TemplateEngine", "Template"]
