"""
Контракты источников данных.

Абстрактные интерфейсы, через которые движок обращается к данным
вызывающей стороны. Движок хранит только заимствованные ссылки на такие
объекты и никогда их не копирует: вызывающая сторона гарантирует, что
объект живёт дольше любого рендеринга, который до него дотягивается.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .variant import TemplateVariant


class TemplateListIntf(ABC):
    """Абстрактный read-only интерфейс списка, элементы которого — TemplateVariant."""

    class ConstIterator(ABC):
        """
        Двунаправленный итератор по списку.

        Создаётся отдельно на каждый обход (create_iterator), поэтому
        параллельные обходы одного списка не мешают друг другу.
        """

        @abstractmethod
        def to_first(self) -> None:
            """Переходит к первому элементу."""
            pass

        @abstractmethod
        def to_last(self) -> None:
            """Переходит к последнему элементу."""
            pass

        @abstractmethod
        def to_next(self) -> None:
            """Переходит к следующему элементу."""
            pass

        @abstractmethod
        def to_prev(self) -> None:
            """Переходит к предыдущему элементу."""
            pass

        @abstractmethod
        def current(self) -> Optional[TemplateVariant]:
            """
            Возвращает текущий элемент.

            Returns:
                Значение или None, если итератор вышел за границы списка
            """
            pass

    @abstractmethod
    def count(self) -> int:
        """Возвращает количество элементов."""
        pass

    @abstractmethod
    def at(self, index: int) -> TemplateVariant:
        """Возвращает элемент по индексу (невалидный вариант вне диапазона)."""
        pass

    @abstractmethod
    def create_iterator(self) -> TemplateListIntf.ConstIterator:
        """Создаёт новый независимый итератор."""
        pass


class TemplateStructIntf(ABC):
    """Абстрактный интерфейс структуры с именованными полями."""

    @abstractmethod
    def get(self, name: str) -> TemplateVariant:
        """
        Возвращает значение поля.

        Отсутствующее поле — невалидный вариант, а не исключение.
        """
        pass


__all__ = ["TemplateListIntf", "TemplateStructIntf"]
