"""
AST-узлы шаблона.

Неизменяемое представление управляющей структуры и текста одного шаблона.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .expressions import FilterExpression


@dataclass(frozen=True)
class TemplateNode:
    """Базовый класс для всех узлов AST шаблона."""
    pass


@dataclass(frozen=True)
class TextNode(TemplateNode):
    """
    Обычный текстовый контент в шаблоне.

    Выводится в результат как есть.
    """
    text: str


@dataclass(frozen=True)
class VariableNode(TemplateNode):
    """Подстановка переменной {{ path|filter:arg }}."""
    expression: FilterExpression


@dataclass(frozen=True)
class ForNode(TemplateNode):
    """
    Цикл {% for x in items %} ... {% empty %} ... {% endfor %}.

    empty_body равен None, если ветки {% empty %} нет.
    """
    loop_var: str
    iterable: FilterExpression
    body: List[TemplateNode] = field(default_factory=list)
    empty_body: Optional[List[TemplateNode]] = None
    reverse: bool = False


@dataclass(frozen=True)
class IfNode(TemplateNode):
    """Условный блок {% if [not] expr %} ... {% else %} ... {% endif %}."""
    condition: FilterExpression
    body: List[TemplateNode] = field(default_factory=list)
    else_body: Optional[List[TemplateNode]] = None
    negated: bool = False


@dataclass(frozen=True)
class BlockNode(TemplateNode):
    """Именованная область {% block name %}, переопределяемая наследниками."""
    name: str
    body: List[TemplateNode] = field(default_factory=list)


@dataclass(frozen=True)
class ExtendsNode(TemplateNode):
    """Ссылка на родительский шаблон {% extends 'base' %}."""
    parent: FilterExpression


@dataclass(frozen=True)
class IncludeNode(TemplateNode):
    """Включение другого шаблона {% include 'name' %}, разрешается при рендеринге."""
    template: FilterExpression


@dataclass(frozen=True)
class CreateNode(TemplateNode):
    """
    Создание файла {% create 'filename' from 'template' %}.

    Побочный канал: результат пишется в файл, а не в основной вывод.
    """
    filename: FilterExpression
    template: FilterExpression


# Алиас для списка узлов (AST)
TemplateAST = List[TemplateNode]


__all__ = [
    "TemplateNode",
    "TextNode",
    "VariableNode",
    "ForNode",
    "IfNode",
    "BlockNode",
    "ExtendsNode",
    "IncludeNode",
    "CreateNode",
    "TemplateAST",
]
