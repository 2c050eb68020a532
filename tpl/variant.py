"""
Модель значений шаблонизатора.

TemplateVariant — закрытое размеченное объединение: ровно один активный
случай из NONE, BOOL, INTEGER, STRING, STRUCT, LIST, FUNCTION.
Структуры и списки хранятся как заимствованные ссылки, копирование
варианта никогда не копирует их содержимое.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, List, Optional, Sequence

from .contracts import TemplateListIntf, TemplateStructIntf

# Функция-значение: получает упорядоченные аргументы, возвращает строку.
# Захваченный контекст передаётся через замыкание или functools.partial.
FuncType = Callable[[List["TemplateVariant"]], str]


class VariantType(enum.Enum):
    """Типы значений, которые может хранить TemplateVariant."""
    NONE = "none"
    BOOL = "bool"
    INTEGER = "integer"
    STRING = "string"
    STRUCT = "struct"
    LIST = "list"
    FUNCTION = "function"


class TemplateVariant:
    """
    Значение фиксированного набора типов плюс флаг raw.

    Флаг raw означает, что строковое представление выводится без
    экранирования. По умолчанию False (значение экранируется).
    """

    __slots__ = ("_type", "_value", "_raw")

    def __init__(self, value: Any = None, *, raw: bool = False):
        # bool проверяется раньше int: bool является подклассом int
        if value is None:
            self._type = VariantType.NONE
        elif isinstance(value, bool):
            self._type = VariantType.BOOL
        elif isinstance(value, int):
            self._type = VariantType.INTEGER
        elif isinstance(value, str):
            self._type = VariantType.STRING
        elif isinstance(value, TemplateStructIntf):
            self._type = VariantType.STRUCT
        elif isinstance(value, TemplateListIntf):
            self._type = VariantType.LIST
        elif callable(value):
            self._type = VariantType.FUNCTION
        else:
            raise TypeError(f"Unsupported variant value type: {type(value).__name__}")
        self._value = value
        self._raw = bool(raw)

    # ---- Тип и валидность ----

    @property
    def type(self) -> VariantType:
        return self._type

    def is_valid(self) -> bool:
        """False только для варианта по умолчанию (NONE)."""
        return self._type is not VariantType.NONE

    # ---- Приведения (всегда best-effort, без исключений) ----

    def to_string(self) -> str:
        t = self._type
        if t is VariantType.STRING:
            return self._value
        if t is VariantType.INTEGER:
            return str(self._value)
        if t is VariantType.BOOL:
            return "true" if self._value else "false"
        return ""

    def to_bool(self) -> bool:
        t = self._type
        if t is VariantType.NONE:
            return False
        if t in (VariantType.BOOL, VariantType.INTEGER):
            return bool(self._value)
        if t is VariantType.STRING:
            return self._value != ""
        return self._value is not None

    def to_int(self) -> int:
        t = self._type
        if t in (VariantType.BOOL, VariantType.INTEGER):
            return int(self._value)
        if t is VariantType.STRING:
            try:
                return int(self._value.strip(), 10)
            except ValueError:
                return 0
        return 0

    def to_list(self) -> Optional[TemplateListIntf]:
        return self._value if self._type is VariantType.LIST else None

    def to_struct(self) -> Optional[TemplateStructIntf]:
        return self._value if self._type is VariantType.STRUCT else None

    def call(self, args: Optional[Sequence[TemplateVariant]] = None) -> str:
        """
        Вызывает функцию-значение с упорядоченными аргументами.

        Для остальных типов возвращает пустую строку.
        """
        if self._type is not VariantType.FUNCTION:
            return ""
        result = self._value(list(args or []))
        return "" if result is None else str(result)

    # ---- Экранирование ----

    @property
    def raw(self) -> bool:
        return self._raw

    def set_raw(self, b: bool) -> None:
        self._raw = bool(b)

    def with_raw(self, b: bool) -> TemplateVariant:
        """Возвращает копию с указанным флагом raw."""
        copy = self.copy()
        copy._raw = bool(b)
        return copy

    def copy(self) -> TemplateVariant:
        """Дешёвая копия: тег плюс ссылка/скаляр, без копирования содержимого."""
        clone = TemplateVariant.__new__(TemplateVariant)
        clone._type = self._type
        clone._value = self._value
        clone._raw = self._raw
        return clone

    # ---- Сравнение ----

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TemplateVariant):
            return NotImplemented
        if self._type is not other._type:
            return False
        if self._type in (VariantType.STRUCT, VariantType.LIST, VariantType.FUNCTION):
            return self._value is other._value
        return self._value == other._value

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None  # изменяемый флаг raw

    def __repr__(self) -> str:
        raw = ", raw=True" if self._raw else ""
        if self._type in (VariantType.STRUCT, VariantType.LIST, VariantType.FUNCTION):
            return f"TemplateVariant({self._type.name}{raw})"
        return f"TemplateVariant({self._value!r}{raw})"


__all__ = ["VariantType", "TemplateVariant", "FuncType"]
