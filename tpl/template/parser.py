"""
Парсер шаблонов.

Преобразует последовательность токенов в AST методом рекурсивного спуска
по ключевым словам тегов: for/empty/endfor, if/else/endif, block/endblock,
extends, include, create. Цепочки фильтров разбираются в выражения.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from .expressions import ExpressionError, FilterExpression, parse_expression
from .filters import FilterRegistry, create_default_filters
from .lexer import TemplateLexer
from .nodes import (
    TemplateNode, TemplateAST, TextNode, VariableNode, ForNode, IfNode,
    BlockNode, ExtendsNode, IncludeNode, CreateNode
)
from .tokens import ParserError, Token, TokenType

logger = logging.getLogger(__name__)

# Разбиение содержимого тега по пробелам с учётом кавычек
_SMART_SPLIT_RE = re.compile(
    r"""(?:[^\s'"]*(?:"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'))+[^\s'"]*|\S+"""
)
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_]\w*$")

# Закрывающие и промежуточные ключевые слова для блочных тегов
_BLOCK_TAGS = {
    "for": ("empty", "endfor"),
    "if": ("else", "endif"),
    "block": ("endblock",),
}
_INNER_KEYWORDS = {"empty", "else", "endfor", "endif", "endblock"}


def smart_split(text: str) -> List[str]:
    """Делит текст по пробелам, не разрывая строки в кавычках."""
    return _SMART_SPLIT_RE.findall(text)


@dataclass(frozen=True)
class TagInfo:
    """Разобранный тег {% keyword args %}."""
    keyword: str
    bits: List[str]
    token: Token


class TemplateParser:
    """
    Рекурсивный парсер для шаблонов.

    Обрабатывает последовательность токенов и строит AST, корректно
    обрабатывая вложенные конструкции. Любая ошибка фатальна для шаблона:
    частичное дерево не возвращается.
    """

    def __init__(self, tokens: List[Token], filters: Optional[FilterRegistry] = None):
        self.tokens = tokens
        self.position = 0
        self.filters = filters if filters is not None else create_default_filters()

        # Стек открытых блочных тегов (ключевое слово, токен открытия)
        self._open_tags: List[Tuple[str, Token]] = []
        self._block_names: Set[str] = set()
        self._extends_seen = False
        self._content_seen = False

    def parse(self) -> TemplateAST:
        """
        Парсит всю последовательность токенов в AST.

        Returns:
            Список корневых узлов AST

        Raises:
            ParserError: При ошибке синтаксического анализа
        """
        nodes, _ = self._parse_nodes(until=())
        logger.debug(f"Parsed {len(self.tokens)} tokens into {len(nodes)} top-level nodes")
        return nodes

    def _parse_nodes(self, until: Tuple[str, ...]) -> Tuple[List[TemplateNode], Optional[TagInfo]]:
        """
        Парсит узлы до одного из тегов until или до конца токенов.

        Returns:
            Узлы и тег, на котором остановился разбор (None при конце токенов)
        """
        nodes: List[TemplateNode] = []

        while not self._is_at_end():
            current = self._current_token()

            if current.type == TokenType.TEXT:
                node = self._parse_text()
            elif current.type == TokenType.VAR_START:
                node = self._parse_variable()
            elif current.type == TokenType.COMMENT_START:
                self._skip_comment()
                continue
            elif current.type == TokenType.TAG_START:
                tag = self._read_tag()
                if tag.keyword in until:
                    return nodes, tag
                node = self._parse_tag(tag)
            else:
                raise ParserError(f"Unexpected token: {current.type.name}", current)

            self._note_content(node)
            nodes.append(node)

        return nodes, None

    def _note_content(self, node: TemplateNode) -> None:
        """Отмечает содержимое, после которого {% extends %} уже недопустим."""
        if isinstance(node, TextNode) and not node.text.strip():
            return
        self._content_seen = True

    # ---- Текст, переменные, комментарии ----

    def _parse_text(self) -> TextNode:
        """Парсит текстовый узел."""
        token = self._consume(TokenType.TEXT)
        return TextNode(text=token.value)

    def _parse_variable(self) -> VariableNode:
        """Парсит подстановку {{ ... }}."""
        start = self._consume(TokenType.VAR_START)
        content = ""
        if self._match(TokenType.TEXT):
            content = self._advance().value
        self._consume(TokenType.VAR_END)

        if not content.strip():
            raise ParserError("Empty variable tag", start)
        return VariableNode(expression=self._parse_expression(content, start))

    def _skip_comment(self) -> None:
        """Пропускает комментарий {# ... #}: в AST он не попадает."""
        self._consume(TokenType.COMMENT_START)
        if self._match(TokenType.TEXT):
            self._advance()
        self._consume(TokenType.COMMENT_END)

    # ---- Теги ----

    def _read_tag(self) -> TagInfo:
        """Потребляет {% ... %} и разбивает содержимое на слова."""
        start = self._consume(TokenType.TAG_START)
        content = ""
        if self._match(TokenType.TEXT):
            content = self._advance().value
        self._consume(TokenType.TAG_END)

        bits = smart_split(content)
        if not bits:
            raise ParserError("Empty tag", start)
        return TagInfo(keyword=bits[0], bits=bits, token=start)

    def _parse_tag(self, tag: TagInfo) -> TemplateNode:
        """Разбирает тег по ключевому слову."""
        keyword = tag.keyword

        if keyword == "extends":
            return self._parse_extends(tag)
        if keyword == "for":
            return self._parse_for(tag)
        if keyword == "if":
            return self._parse_if(tag)
        if keyword == "block":
            return self._parse_block(tag)
        if keyword == "include":
            return self._parse_include(tag)
        if keyword == "create":
            return self._parse_create(tag)
        if keyword in _INNER_KEYWORDS:
            raise ParserError(self._misplaced_message(keyword), tag.token)
        raise ParserError(f"Unknown tag: '{keyword}'", tag.token)

    def _misplaced_message(self, keyword: str) -> str:
        """Сообщение для end*/else/empty, не соответствующего открытому тегу."""
        if self._open_tags:
            open_keyword, _ = self._open_tags[-1]
            expected = " or ".join(f"'{k}'" for k in _BLOCK_TAGS[open_keyword])
            return f"Unexpected '{keyword}' inside '{open_keyword}', expected {expected}"
        return f"'{keyword}' without matching opening tag"

    def _parse_body(self, tag: TagInfo, until: Tuple[str, ...]) -> Tuple[List[TemplateNode], TagInfo]:
        """Парсит тело блочного тега до одного из until."""
        self._open_tags.append((tag.keyword, tag.token))
        try:
            body, end_tag = self._parse_nodes(until)
        finally:
            self._open_tags.pop()

        if end_tag is None:
            expected = " or ".join(f"'{k}'" for k in until)
            raise ParserError(f"Unclosed tag '{tag.keyword}', expected {expected}", tag.token)
        return body, end_tag

    def _parse_for(self, tag: TagInfo) -> ForNode:
        """
        Парсит цикл {% for x in expr [reversed] %} ... [{% empty %}] ... {% endfor %}.
        """
        bits = tag.bits
        if len(bits) < 4 or bits[2] != "in":
            raise ParserError("'for' statements should look like 'for x in items'", tag.token)

        loop_var = bits[1]
        if not _IDENTIFIER_RE.match(loop_var):
            raise ParserError(f"Invalid loop variable name: '{loop_var}'", tag.token)

        rest = bits[3:]
        reverse = False
        if len(rest) > 1 and rest[-1] == "reversed":
            reverse = True
            rest = rest[:-1]
        iterable = self._parse_expression(" ".join(rest), tag.token)

        body, end_tag = self._parse_body(tag, ("empty", "endfor"))
        self._expect_no_args(end_tag)

        empty_body = None
        if end_tag.keyword == "empty":
            empty_body, end_tag = self._parse_body(tag, ("endfor",))
            self._expect_no_args(end_tag)

        return ForNode(
            loop_var=loop_var,
            iterable=iterable,
            body=body,
            empty_body=empty_body,
            reverse=reverse,
        )

    def _parse_if(self, tag: TagInfo) -> IfNode:
        """
        Парсит условную директиву {% if [not] expr %} ... [{% else %}] ... {% endif %}.
        """
        bits = tag.bits[1:]
        negated = False
        if len(bits) > 1 and bits[0] == "not":
            negated = True
            bits = bits[1:]
        if not bits:
            raise ParserError("Missing condition in 'if' tag", tag.token)
        condition = self._parse_expression(" ".join(bits), tag.token)

        body, end_tag = self._parse_body(tag, ("else", "endif"))
        self._expect_no_args(end_tag)

        else_body = None
        if end_tag.keyword == "else":
            else_body, end_tag = self._parse_body(tag, ("endif",))
            self._expect_no_args(end_tag)

        return IfNode(condition=condition, body=body, else_body=else_body, negated=negated)

    def _parse_block(self, tag: TagInfo) -> BlockNode:
        """Парсит {% block name %} ... {% endblock [name] %}."""
        if len(tag.bits) != 2 or not _IDENTIFIER_RE.match(tag.bits[1]):
            raise ParserError("'block' tag takes exactly one name argument", tag.token)

        name = tag.bits[1]
        if name in self._block_names:
            raise ParserError(f"Block '{name}' appears more than once", tag.token)
        self._block_names.add(name)

        body, end_tag = self._parse_body(tag, ("endblock",))
        if len(end_tag.bits) > 2 or (len(end_tag.bits) == 2 and end_tag.bits[1] != name):
            raise ParserError(
                f"Mismatched 'endblock': expected 'endblock {name}', got '{' '.join(end_tag.bits)}'",
                end_tag.token
            )
        return BlockNode(name=name, body=body)

    def _parse_extends(self, tag: TagInfo) -> ExtendsNode:
        """Парсит {% extends expr %}: допустим только первым и только один раз."""
        if self._extends_seen:
            raise ParserError("A template may extend at most one parent", tag.token)
        if self._content_seen or self._open_tags:
            raise ParserError("'extends' must be the first tag in the template", tag.token)
        if len(tag.bits) < 2:
            raise ParserError("'extends' takes one argument", tag.token)

        self._extends_seen = True
        return ExtendsNode(parent=self._parse_expression(" ".join(tag.bits[1:]), tag.token))

    def _parse_include(self, tag: TagInfo) -> IncludeNode:
        """Парсит {% include expr %}; сам шаблон ищется только при рендеринге."""
        if len(tag.bits) < 2:
            raise ParserError("'include' takes one argument", tag.token)
        return IncludeNode(template=self._parse_expression(" ".join(tag.bits[1:]), tag.token))

    def _parse_create(self, tag: TagInfo) -> CreateNode:
        """Парсит {% create filename from template %}."""
        bits = tag.bits[1:]
        try:
            from_at = bits.index("from")
        except ValueError:
            raise ParserError("'create' tag should look like 'create filename from template'", tag.token)

        filename_bits, template_bits = bits[:from_at], bits[from_at + 1:]
        if not filename_bits or not template_bits:
            raise ParserError("'create' tag should look like 'create filename from template'", tag.token)

        return CreateNode(
            filename=self._parse_expression(" ".join(filename_bits), tag.token),
            template=self._parse_expression(" ".join(template_bits), tag.token),
        )

    def _expect_no_args(self, tag: TagInfo) -> None:
        if len(tag.bits) > 1:
            raise ParserError(f"'{tag.keyword}' takes no arguments", tag.token)

    def _parse_expression(self, text: str, token: Token) -> FilterExpression:
        try:
            return parse_expression(text, self.filters)
        except ExpressionError as e:
            raise ParserError(str(e), token) from e

    # ---- Навигация по токенам ----

    def _current_token(self) -> Token:
        """Возвращает текущий токен."""
        if self.position >= len(self.tokens):
            # Возвращаем EOF токен если достигли конца
            last_token = self.tokens[-1] if self.tokens else Token(TokenType.EOF, "", 0, 1, 1)
            return Token(TokenType.EOF, "", last_token.position, last_token.line, last_token.column)
        return self.tokens[self.position]

    def _advance(self) -> Token:
        """Продвигается к следующему токену и возвращает предыдущий."""
        current = self._current_token()
        if not self._is_at_end():
            self.position += 1
        return current

    def _is_at_end(self) -> bool:
        """Проверяет, достигли ли мы конца токенов."""
        return (self.position >= len(self.tokens) or
                self._current_token().type == TokenType.EOF)

    def _match(self, token_type: TokenType) -> bool:
        return self._current_token().type == token_type

    def _consume(self, expected_type: TokenType) -> Token:
        """
        Потребляет токен ожидаемого типа.

        Raises:
            ParserError: Если токен не соответствует ожидаемому типу
        """
        current = self._current_token()
        if current.type != expected_type:
            raise ParserError(
                f"Expected {expected_type.name}, got {current.type.name}",
                current
            )
        return self._advance()


def parse_template(text: str, filters: Optional[FilterRegistry] = None) -> TemplateAST:
    """
    Удобная функция для парсинга шаблона из текста.

    Args:
        text: Исходный текст шаблона
        filters: Реестр фильтров (по умолчанию встроенные)

    Returns:
        AST шаблона

    Raises:
        LexerError: При ошибке лексического анализа
        ParserError: При ошибке синтаксического анализа
    """
    lexer = TemplateLexer(text)
    tokens = lexer.tokenize()

    parser = TemplateParser(tokens, filters)
    return parser.parse()


__all__ = ["TemplateParser", "TagInfo", "ParserError", "parse_template", "smart_split"]
