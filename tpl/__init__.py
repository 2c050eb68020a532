"""
Django-style text templating engine.

Публичный API: движок, шаблон, контекст, модель значений и контракты
источников данных.
"""

from __future__ import annotations

from .config import EngineConfig, load_config
from .context import CreateFailure, TemplateContext
from .contracts import TemplateListIntf, TemplateStructIntf
from .datasource import MappingStruct, SequenceList, TemplateList, TemplateStruct, to_variant
from .engine import Template, TemplateEngine
from .errors import (
    ConfigError,
    TemplateNotFoundError,
    TemplateRenderError,
    TemplateSyntaxError,
    TplUserError,
)
from .escape import FunctionEscaper, HtmlEscaper, TemplateEscapeIntf
from .template.filters import FilterArg
from .variant import TemplateVariant, VariantType

__all__ = [
    "TemplateEngine",
    "Template",
    "TemplateContext",
    "CreateFailure",
    "EngineConfig",
    "load_config",
    "TemplateVariant",
    "VariantType",
    "TemplateListIntf",
    "TemplateStructIntf",
    "TemplateList",
    "TemplateStruct",
    "SequenceList",
    "MappingStruct",
    "to_variant",
    "TemplateEscapeIntf",
    "HtmlEscaper",
    "FunctionEscaper",
    "FilterArg",
    "TplUserError",
    "TemplateSyntaxError",
    "TemplateNotFoundError",
    "TemplateRenderError",
    "ConfigError",
]
