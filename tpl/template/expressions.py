"""
Выражения с цепочками фильтров.

Грамматика:  base ( '|' filter [':' arg] )*
где base и arg — строка в кавычках, целое число или точечный путь.
Выражения используются в {{ ... }} и в аргументах тегов.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .filters import FilterArg, FilterRegistry

_STRDQ = r'"[^"\\]*(?:\\.[^"\\]*)*"'
_STRSQ = r"'[^'\\]*(?:\\.[^'\\]*)*'"
_CONSTANT = rf"(?:{_STRDQ}|{_STRSQ})"
_NUM = r"[-+]?\d+"
_PATH = r"[A-Za-z_]\w*(?:\.\w+)*"

_EXPRESSION_RE = re.compile(
    rf"""
    ^\s*(?P<constant>{_CONSTANT})|
    ^\s*(?P<num>{_NUM})(?![\w.])|
    ^\s*(?P<var>{_PATH})|
    (?:\s*\|\s*
        (?P<filter_name>\w+)
        (?::
            (?:
             (?P<constant_arg>{_CONSTANT})|
             (?P<num_arg>{_NUM})(?![\w.])|
             (?P<var_arg>{_PATH})
            )
        )?
    )
    """,
    re.VERBOSE,
)

_ESCAPE_RE = re.compile(r"\\(.)")


class ExpressionError(ValueError):
    """Синтаксическая ошибка выражения (без позиции: её добавляет парсер)."""
    pass


class OperandKind(enum.Enum):
    PATH = "path"
    STRING = "string"
    INTEGER = "integer"


@dataclass(frozen=True)
class Operand:
    """Литерал или точечный путь, разрешаемый при рендеринге."""
    kind: OperandKind
    value: Union[str, int]

    def __str__(self) -> str:
        if self.kind is OperandKind.STRING:
            return repr(self.value)
        return str(self.value)


@dataclass(frozen=True)
class FilterCall:
    """Применение фильтра с необязательным аргументом."""
    name: str
    arg: Optional[Operand] = None


@dataclass(frozen=True)
class FilterExpression:
    """Базовый операнд и упорядоченная цепочка фильтров."""
    base: Operand
    filters: Tuple[FilterCall, ...] = ()

    def __str__(self) -> str:
        parts = [str(self.base)]
        for call in self.filters:
            parts.append(call.name if call.arg is None else f"{call.name}:{call.arg}")
        return "|".join(parts)


def unquote(literal: str) -> str:
    """Снимает кавычки и обратные слеши со строкового литерала."""
    return _ESCAPE_RE.sub(r"\1", literal[1:-1])


def _make_operand(constant: Optional[str], num: Optional[str], var: Optional[str]) -> Operand:
    if constant is not None:
        return Operand(OperandKind.STRING, unquote(constant))
    if num is not None:
        return Operand(OperandKind.INTEGER, int(num))
    return Operand(OperandKind.PATH, var)


def parse_expression(text: str, filters: FilterRegistry) -> FilterExpression:
    """
    Разбирает выражение вида name.attr|filter:"arg"|other.

    Args:
        text: Исходный текст выражения
        filters: Реестр для проверки имён и аргументов фильтров

    Returns:
        Разобранное выражение

    Raises:
        ExpressionError: При синтаксической ошибке или неизвестном фильтре
    """
    source = text.strip()
    if not source:
        raise ExpressionError("Empty expression")

    base: Optional[Operand] = None
    calls: List[FilterCall] = []
    upto = 0

    for match in _EXPRESSION_RE.finditer(source):
        start = match.start()
        if upto != start:
            raise ExpressionError(
                f"Could not parse some characters: {source[:upto]}|{source[upto:start]}|{source[start:]}"
            )

        if base is None:
            if match.group("filter_name") is not None:
                raise ExpressionError(f"Could not find variable at start of '{source}'")
            base = _make_operand(match.group("constant"), match.group("num"), match.group("var"))
        else:
            name = match.group("filter_name")
            if name is None:
                raise ExpressionError(f"Could not parse the remainder: '{source[start:]}' from '{source}'")
            arg = None
            if match.group("constant_arg") is not None or match.group("num_arg") is not None \
                    or match.group("var_arg") is not None:
                arg = _make_operand(match.group("constant_arg"), match.group("num_arg"), match.group("var_arg"))
            _check_filter(name, arg, filters)
            calls.append(FilterCall(name=name, arg=arg))
        upto = match.end()

    if base is None:
        raise ExpressionError(f"Could not find variable at start of '{source}'")
    if upto != len(source):
        raise ExpressionError(f"Could not parse the remainder: '{source[upto:]}' from '{source}'")

    return FilterExpression(base=base, filters=tuple(calls))


def _check_filter(name: str, arg: Optional[Operand], filters: FilterRegistry) -> None:
    spec = filters.get(name)
    if spec is None:
        raise ExpressionError(f"Invalid filter: '{name}'")
    if spec.arg is FilterArg.REQUIRED and arg is None:
        raise ExpressionError(f"Filter '{name}' requires an argument")
    if spec.arg is FilterArg.NONE and arg is not None:
        raise ExpressionError(f"Filter '{name}' does not accept an argument")


__all__ = [
    "ExpressionError",
    "OperandKind",
    "Operand",
    "FilterCall",
    "FilterExpression",
    "parse_expression",
    "unquote",
]
