"""
Фильтры значений.

Фильтр — именованное преобразование TemplateVariant, применяемое к значению
переменной перед выводом: {{ value|default:"nothing" }}.
Фильтры никогда не бросают исключений на данных неподходящей формы:
результатом в таком случае становится нулевое значение.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional

from ..variant import TemplateVariant, VariantType

logger = logging.getLogger(__name__)

FilterFunc = Callable[[TemplateVariant, Optional[TemplateVariant]], TemplateVariant]


class FilterArg(enum.Enum):
    """Требования фильтра к аргументу."""
    NONE = "none"            # {{ x|length }}
    REQUIRED = "required"    # {{ x|default:"y" }}
    OPTIONAL = "optional"


@dataclass(frozen=True)
class FilterSpec:
    """Зарегистрированный фильтр."""
    name: str
    func: FilterFunc
    arg: FilterArg = FilterArg.NONE


class FilterRegistry:
    """
    Набор фильтров, доступных парсеру и рендереру.

    Каждый движок владеет своей копией реестра, поэтому фильтры,
    зарегистрированные хостом, не влияют на другие движки.
    """

    def __init__(self):
        self._filters: Dict[str, FilterSpec] = {}

    def register(self, name: str, func: FilterFunc, *, arg: FilterArg = FilterArg.NONE) -> None:
        if not name or not name.replace("_", "a").isalnum():
            raise ValueError(f"Invalid filter name: {name!r}")
        if name in self._filters:
            logger.debug(f"Overriding filter '{name}'")
        self._filters[name] = FilterSpec(name=name, func=func, arg=arg)

    def get(self, name: str) -> Optional[FilterSpec]:
        return self._filters.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._filters))

    def copy(self) -> FilterRegistry:
        clone = FilterRegistry()
        clone._filters = dict(self._filters)
        return clone


# ---- Встроенные фильтры ----

def default_filter(value: TemplateVariant, arg: Optional[TemplateVariant]) -> TemplateVariant:
    """Подставляет аргумент, если значение невалидно или пустая строка."""
    if not value.is_valid() or (value.type is VariantType.STRING and value.to_string() == ""):
        return arg if arg is not None else TemplateVariant()
    return value


def length_filter(value: TemplateVariant, arg: Optional[TemplateVariant]) -> TemplateVariant:
    """Длина списка или строки; для прочих значений 0."""
    if value.type is VariantType.LIST:
        return TemplateVariant(value.to_list().count())
    if value.type is VariantType.STRING:
        return TemplateVariant(len(value.to_string()))
    return TemplateVariant(0)


def add_filter(value: TemplateVariant, arg: Optional[TemplateVariant]) -> TemplateVariant:
    """Целочисленное сложение, обе стороны приводятся через to_int()."""
    right = arg.to_int() if arg is not None else 0
    return TemplateVariant(value.to_int() + right)


def safe_filter(value: TemplateVariant, arg: Optional[TemplateVariant]) -> TemplateVariant:
    """Помечает значение как raw: оно выводится без экранирования."""
    return value.with_raw(True)


def create_default_filters() -> FilterRegistry:
    """Реестр со встроенными фильтрами."""
    registry = FilterRegistry()
    registry.register("default", default_filter, arg=FilterArg.REQUIRED)
    registry.register("length", length_filter)
    registry.register("add", add_filter, arg=FilterArg.REQUIRED)
    registry.register("safe", safe_filter)
    return registry


__all__ = [
    "FilterFunc",
    "FilterArg",
    "FilterSpec",
    "FilterRegistry",
    "create_default_filters",
]
