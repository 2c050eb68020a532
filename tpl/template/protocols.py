"""
Протоколы для рендерера.

Определяет интерфейс движка, которым пользуется рендерер, чтобы не
зависеть от конкретного класса TemplateEngine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from .filters import FilterRegistry

if TYPE_CHECKING:
    from ..engine import Template


@runtime_checkable
class TemplateLookupProtocol(Protocol):
    """
    Протокол движка, используемый рендерером для include/extends/create.
    """

    filters: FilterRegistry
    max_depth: int
    encoding: str

    def find_template(self, name: str) -> Optional[Template]:
        """
        Находит шаблон по имени через кэш движка.

        Returns:
            Шаблон или None, если его нет

        Raises:
            TemplateSyntaxError: Если найденный шаблон не разбирается
        """
        ...


__all__ = ["TemplateLookupProtocol"]
