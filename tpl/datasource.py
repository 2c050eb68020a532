"""
Реализации контрактов источников данных.

- TemplateList / TemplateStruct — реализации по умолчанию, которые
  наполняет сама вызывающая сторона;
- SequenceList / MappingStruct — адаптеры поверх обычных Python-коллекций
  (заимствуют коллекцию, не копируя её);
- to_variant — оборачивает произвольные Python-данные в TemplateVariant.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional

from .contracts import TemplateListIntf, TemplateStructIntf
from .variant import TemplateVariant


class _IndexIterator(TemplateListIntf.ConstIterator):
    """Итератор по индексу для списков с произвольным доступом."""

    def __init__(self, source: TemplateListIntf):
        self._source = source
        self._index = 0

    def to_first(self) -> None:
        self._index = 0

    def to_last(self) -> None:
        self._index = self._source.count() - 1

    def to_next(self) -> None:
        if self._index < self._source.count():
            self._index += 1

    def to_prev(self) -> None:
        if self._index >= 0:
            self._index -= 1

    def current(self) -> Optional[TemplateVariant]:
        if 0 <= self._index < self._source.count():
            return self._source.at(self._index)
        return None


class TemplateList(TemplateListIntf):
    """Список по умолчанию: вызывающая сторона наполняет его через append()."""

    def __init__(self, items: Optional[List[Any]] = None):
        self._items: List[TemplateVariant] = [to_variant(v) for v in items or []]

    def count(self) -> int:
        return len(self._items)

    def at(self, index: int) -> TemplateVariant:
        if 0 <= index < len(self._items):
            return self._items[index]
        return TemplateVariant()

    def create_iterator(self) -> TemplateListIntf.ConstIterator:
        return _IndexIterator(self)

    def append(self, v: Any) -> None:
        """Добавляет элемент в конец списка."""
        self._items.append(to_variant(v))


class TemplateStruct(TemplateStructIntf):
    """Структура по умолчанию: поля задаются через set()."""

    def __init__(self, fields: Optional[Dict[str, Any]] = None):
        self._fields: Dict[str, TemplateVariant] = {}
        for name, value in (fields or {}).items():
            self.set(name, value)

    def get(self, name: str) -> TemplateVariant:
        return self._fields.get(name, TemplateVariant())

    def set(self, name: str, v: Any) -> None:
        """Задаёт значение поля (заменяет существующее)."""
        self._fields[name] = to_variant(v)


class SequenceList(TemplateListIntf):
    """Заимствованный Python-Sequence, видимый движку как список."""

    def __init__(self, items: Sequence[Any]):
        self._items = items

    def count(self) -> int:
        return len(self._items)

    def at(self, index: int) -> TemplateVariant:
        if 0 <= index < len(self._items):
            return to_variant(self._items[index])
        return TemplateVariant()

    def create_iterator(self) -> TemplateListIntf.ConstIterator:
        return _IndexIterator(self)


class MappingStruct(TemplateStructIntf):
    """Заимствованный Python-Mapping, видимый движку как структура."""

    def __init__(self, mapping: Mapping[str, Any]):
        self._mapping = mapping

    def get(self, name: str) -> TemplateVariant:
        if name not in self._mapping:
            return TemplateVariant()
        return to_variant(self._mapping[name])


def to_variant(obj: Any) -> TemplateVariant:
    """
    Оборачивает Python-значение в TemplateVariant без копирования коллекций.

    Mapping -> STRUCT, последовательности (кроме строк) -> LIST,
    вызываемые объекты -> FUNCTION, прочие нескалярные значения
    (float, даты) -> их строковое представление.
    """
    if isinstance(obj, TemplateVariant):
        return obj
    if obj is None or isinstance(obj, (bool, int, str, TemplateStructIntf, TemplateListIntf)):
        return TemplateVariant(obj)
    if isinstance(obj, Mapping):
        return TemplateVariant(MappingStruct(obj))
    if isinstance(obj, Sequence) and not isinstance(obj, (bytes, bytearray)):
        return TemplateVariant(SequenceList(obj))
    if callable(obj):
        return TemplateVariant(obj)
    return TemplateVariant(str(obj))


__all__ = [
    "TemplateList",
    "TemplateStruct",
    "SequenceList",
    "MappingStruct",
    "to_variant",
]
