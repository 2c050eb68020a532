"""
Разрешение цепочек наследования {% extends %} / {% block %}.

Цепочка разрешается заново при каждом рендеринге: переопределения блоков
зависят от того, какой потомок начал цепочку.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from .expressions import FilterExpression
from .nodes import BlockNode, ExtendsNode, ForNode, IfNode, TemplateAST, TemplateNode
from ..errors import TemplateRenderError, TemplateSyntaxError

if TYPE_CHECKING:
    from ..engine import Template

logger = logging.getLogger(__name__)


@dataclass
class ResolvedTemplate:
    """
    Итог разрешения наследования.

    nodes — узлы самого дальнего предка, blocks — тела блоков от ближайшего
    потомка, который их определяет.
    """
    nodes: TemplateAST
    blocks: Dict[str, List[TemplateNode]] = field(default_factory=dict)
    chain: List[str] = field(default_factory=list)


def find_extends(nodes: TemplateAST) -> Optional[ExtendsNode]:
    """Возвращает узел extends верхнего уровня, если он есть."""
    for node in nodes:
        if isinstance(node, ExtendsNode):
            return node
    return None


def collect_blocks(nodes: TemplateAST) -> Dict[str, BlockNode]:
    """Собирает все блоки шаблона, включая вложенные, по имени."""
    blocks: Dict[str, BlockNode] = {}

    def walk(items: Optional[TemplateAST]) -> None:
        for node in items or []:
            if isinstance(node, BlockNode):
                blocks.setdefault(node.name, node)
                walk(node.body)
            elif isinstance(node, ForNode):
                walk(node.body)
                walk(node.empty_body)
            elif isinstance(node, IfNode):
                walk(node.body)
                walk(node.else_body)

    walk(nodes)
    return blocks


def resolve_inheritance(
    template: Template,
    evaluate_name: Callable[[FilterExpression], str],
    lookup: Callable[[str], Optional[Template]],
    max_depth: int = 64,
) -> ResolvedTemplate:
    """
    Разворачивает цепочку наследования начиная с template.

    Args:
        template: Шаблон, с которого начат рендеринг
        evaluate_name: Вычисляет имя родителя из выражения extends
        lookup: Находит шаблон по имени (None, если его нет)
        max_depth: Предельная длина цепочки

    Returns:
        Узлы внешнего предка и карта переопределений блоков.
        Если родитель не найден или не разбирается — пустой результат
        (рендерится ничего).

    Raises:
        TemplateRenderError: Если цепочка замыкается сама на себя
            или длиннее max_depth
    """
    blocks: Dict[str, List[TemplateNode]] = {}
    chain = [template.name]
    current = template

    while True:
        extends = find_extends(current.nodes)
        if extends is None:
            return ResolvedTemplate(nodes=current.nodes, blocks=blocks, chain=chain)

        # Ближайший потомок побеждает: уже заданные имена не перезаписываются
        for name, block in collect_blocks(current.nodes).items():
            blocks.setdefault(name, block.body)

        parent_name = evaluate_name(extends.parent)
        if parent_name in chain:
            raise TemplateRenderError(
                f"Template inheritance cycle: {' -> '.join(chain + [parent_name])}",
                template.name
            )
        if len(chain) >= max_depth:
            raise TemplateRenderError(
                f"Template inheritance chain exceeds maximum depth ({max_depth})",
                template.name
            )

        try:
            parent = lookup(parent_name) if parent_name else None
        except TemplateSyntaxError as e:
            logger.warning(f"Parent template '{parent_name}' of '{current.name}' is broken, rendering nothing: {e}")
            return ResolvedTemplate(nodes=[], chain=chain)
        if parent is None:
            logger.warning(f"Parent template '{parent_name}' of '{current.name}' not found, rendering nothing")
            return ResolvedTemplate(nodes=[], chain=chain)

        chain.append(parent_name)
        current = parent


__all__ = ["ResolvedTemplate", "find_extends", "collect_blocks", "resolve_inheritance"]
