"""
Лексический анализатор шаблонов.

Разбивает исходный текст на плоский поток токенов: обычный текст,
переменные {{ ... }}, теги {% ... %} и комментарии {# ... #}.
Содержимое конструкции выдаётся одним токеном TEXT между открывающим
и закрывающим разделителями.
"""

from __future__ import annotations

import logging
import re
from typing import List

from .tokens import DELIMITERS, LexerError, Token, TokenType

logger = logging.getLogger(__name__)


class TemplateLexer:
    """
    Лексический анализатор шаблонов.

    Разделители не вкладываются друг в друга: внутри {{ ... }} последовательность
    {% — это просто текст. Закрывающие разделители вне конструкций тоже считаются
    обычным текстом.
    """

    _OPENER = re.compile(r"\{[{%#]")

    def __init__(self, text: str):
        self.text = text
        self.position = 0
        self.line = 1
        self.column = 1
        self.length = len(text)

    def tokenize(self) -> List[Token]:
        """
        Токенизирует весь исходный текст и возвращает список токенов.

        Raises:
            LexerError: Если конструкция не закрыта до конца текста
        """
        tokens: List[Token] = []

        while self.position < self.length:
            opener = self.text[self.position:self.position + 2]
            if opener in DELIMITERS:
                tokens.extend(self._read_construct(opener))
            else:
                tokens.append(self._read_text())

        # Добавляем EOF токен
        tokens.append(Token(TokenType.EOF, "", self.position, self.line, self.column))

        logger.debug(f"Tokenized text of length {self.length} into {len(tokens)} tokens")
        return tokens

    def _read_text(self) -> Token:
        """Читает обычный текст до следующего открывающего разделителя."""
        start_pos, start_line, start_column = self.position, self.line, self.column

        match = self._OPENER.search(self.text, self.position)
        end = match.start() if match else self.length

        value = self.text[self.position:end]
        self._advance(len(value))
        return Token(TokenType.TEXT, value, start_pos, start_line, start_column)

    def _read_construct(self, opener: str) -> List[Token]:
        """Читает конструкцию целиком: открытие, содержимое, закрытие."""
        start_type, closer, end_type = DELIMITERS[opener]
        start_pos, start_line, start_column = self.position, self.line, self.column

        close_at = self.text.find(closer, self.position + len(opener))
        if close_at < 0:
            raise LexerError(
                f"Unterminated '{opener}', expected '{closer}'",
                start_line, start_column, start_pos
            )

        tokens = [Token(start_type, opener, start_pos, start_line, start_column)]
        self._advance(len(opener))

        content = self.text[self.position:close_at]
        if content:
            tokens.append(Token(TokenType.TEXT, content, self.position, self.line, self.column))
            self._advance(len(content))

        tokens.append(Token(end_type, closer, self.position, self.line, self.column))
        self._advance(len(closer))
        return tokens

    def _advance(self, count: int) -> None:
        """
        Перемещает позицию на указанное количество символов,
        обновляя номера строк и колонок.
        """
        chunk = self.text[self.position:self.position + count]
        newlines = chunk.count("\n")
        if newlines:
            self.line += newlines
            self.column = len(chunk) - chunk.rfind("\n")
        else:
            self.column += len(chunk)
        self.position += len(chunk)


def tokenize_template(text: str) -> List[Token]:
    """
    Удобная функция для токенизации шаблона.

    Args:
        text: Исходный текст шаблона

    Returns:
        Список токенов

    Raises:
        LexerError: При ошибке лексического анализа
    """
    lexer = TemplateLexer(text)
    return lexer.tokenize()


__all__ = ["TemplateLexer", "tokenize_template"]
