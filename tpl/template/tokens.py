"""
Лексические типы.

Определяет типы токенов и ошибки лексического и синтаксического анализа.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class TokenType(enum.Enum):
    """Типы токенов в шаблоне."""

    # Обычный текст и содержимое конструкций
    TEXT = "TEXT"

    # Разделители переменных
    VAR_START = "VAR_START"              # {{
    VAR_END = "VAR_END"                  # }}

    # Разделители тегов
    TAG_START = "TAG_START"              # {%
    TAG_END = "TAG_END"                  # %}

    # Разделители комментариев
    COMMENT_START = "COMMENT_START"      # {#
    COMMENT_END = "COMMENT_END"          # #}

    EOF = "EOF"


# Открывающий разделитель -> (тип открытия, закрывающая последовательность, тип закрытия)
DELIMITERS = {
    "{{": (TokenType.VAR_START, "}}", TokenType.VAR_END),
    "{%": (TokenType.TAG_START, "%}", TokenType.TAG_END),
    "{#": (TokenType.COMMENT_START, "#}", TokenType.COMMENT_END),
}


@dataclass(frozen=True)
class Token:
    """
    Токен с позиционной информацией для диагностики ошибок.
    """
    type: TokenType
    value: str
    position: int        # Позиция в исходном тексте
    line: int           # Номер строки (начиная с 1)
    column: int         # Номер колонки (начиная с 1)

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class LexerError(Exception):
    """Ошибка лексического анализа."""

    def __init__(self, message: str, line: int, column: int, position: int):
        super().__init__(f"{message} at {line}:{column}")
        self.message = message
        self.line = line
        self.column = column
        self.position = position


class ParserError(Exception):
    """Ошибка синтаксического анализа."""

    def __init__(self, message: str, token: Token):
        super().__init__(f"{message} at {token.line}:{token.column} (token: {token.type.name})")
        self.message = message
        self.token = token
        self.line = token.line
        self.column = token.column


__all__ = [
    "TokenType",
    "DELIMITERS",
    "Token",
    "LexerError",
    "ParserError",
]
