"""
Base exceptions for user-facing errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from TplUserError.

Programming errors and bugs should NOT inherit from TplUserError:
they will propagate with full tracebacks.

Missing data during rendering is never an error: undefined variables,
failed field lookups and missing include targets render as nothing.
"""

from __future__ import annotations

from typing import Optional


class TplUserError(Exception):
    """
    Base class for all user-facing errors of the template engine.

    These errors indicate problems that the user can fix:
    broken template syntax, missing template files, invalid configuration.
    """
    pass


class TemplateSyntaxError(TplUserError):
    """
    Parse-time failure of a single template.

    No partial node tree is ever returned for a template that raised it.
    """

    def __init__(
        self,
        message: str,
        template_name: str = "",
        line: Optional[int] = None,
        column: Optional[int] = None,
        cause: Optional[Exception] = None,
    ):
        location = f" at {line}:{column}" if line is not None else ""
        super().__init__(f"Syntax error in template '{template_name}'{location}: {message}")
        self.message = message
        self.template_name = template_name
        self.line = line
        self.column = column
        self.cause = cause


class TemplateNotFoundError(TplUserError):
    """Template is neither registered in the engine nor found on disk."""

    def __init__(self, name: str, searched: Optional[list] = None):
        where = ""
        if searched:
            where = " (searched: " + ", ".join(str(p) for p in searched) + ")"
        super().__init__(f"Template not found: {name}{where}")
        self.name = name
        self.searched = list(searched or [])


class TemplateRenderError(TplUserError):
    """Fatal render failure (include/extends/create nesting exceeded the ceiling)."""

    def __init__(self, message: str, template_name: str = ""):
        super().__init__(f"Render error in template '{template_name}': {message}")
        self.template_name = template_name


class ConfigError(TplUserError):
    """Invalid engine configuration file."""
    pass


__all__ = [
    "TplUserError",
    "TemplateSyntaxError",
    "TemplateNotFoundError",
    "TemplateRenderError",
    "ConfigError",
]
