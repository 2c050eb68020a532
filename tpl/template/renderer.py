"""
Рендерер шаблонов.

Однопроходный обход AST в глубину, слева направо, с выводом в текстовый
поток. Отсутствующие данные никогда не прерывают рендеринг: они дают
пустое значение или пропуск узла. Фатальна только чрезмерная вложенность
include/extends/create.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, TextIO, Type

from .expressions import FilterExpression, Operand, OperandKind
from .inheritance import resolve_inheritance
from .nodes import (
    TemplateNode, TextNode, VariableNode, ForNode, IfNode,
    BlockNode, ExtendsNode, IncludeNode, CreateNode
)
from .protocols import TemplateLookupProtocol
from ..context import TemplateContext
from ..datasource import TemplateStruct
from ..errors import TemplateNotFoundError, TemplateRenderError, TemplateSyntaxError
from ..variant import TemplateVariant, VariantType

if TYPE_CHECKING:
    from ..engine import Template

logger = logging.getLogger(__name__)


@dataclass
class RenderState:
    """Состояние одного рендеринга шаблона (без состояния между вызовами)."""
    template_name: str
    depth: int = 0
    blocks: Dict[str, List[TemplateNode]] = field(default_factory=dict)


NodeProcessor = Callable[[TemplateNode, TemplateContext, TextIO, RenderState], None]


class TemplateRenderer:
    """
    Вычислитель AST.

    Обработчики узлов зарегистрированы по типу узла; узел неизвестного
    типа пропускается с предупреждением.
    """

    def __init__(self, engine: TemplateLookupProtocol):
        self.engine = engine
        self._processors: Dict[Type[TemplateNode], NodeProcessor] = {
            TextNode: self._render_text,
            VariableNode: self._render_variable,
            ForNode: self._render_for,
            IfNode: self._render_if,
            BlockNode: self._render_block,
            ExtendsNode: self._render_extends,
            IncludeNode: self._render_include,
            CreateNode: self._render_create,
        }

    # ---- Публичный API ----

    def render(self, template: Template, context: TemplateContext, out: TextIO, depth: int = 0) -> None:
        """
        Рендерит шаблон в поток.

        Raises:
            TemplateRenderError: При превышении предельной вложенности
        """
        if depth > self.engine.max_depth:
            raise TemplateRenderError(
                f"Maximum template nesting depth ({self.engine.max_depth}) exceeded",
                template.name
            )

        resolved = resolve_inheritance(
            template,
            evaluate_name=lambda expr: self.evaluate(expr, context).to_string(),
            lookup=self.engine.find_template,
            max_depth=self.engine.max_depth,
        )
        if len(resolved.chain) > 1:
            logger.debug(f"Resolved inheritance chain: {' -> '.join(resolved.chain)}")

        state = RenderState(template_name=template.name, depth=depth, blocks=resolved.blocks)
        self.render_nodes(resolved.nodes, context, out, state)

    def render_nodes(self, nodes: List[TemplateNode], context: TemplateContext, out: TextIO, state: RenderState) -> None:
        """Рендерит последовательность узлов."""
        for node in nodes:
            processor = self._processors.get(type(node))
            if processor is None:
                logger.warning(f"No processor found for node type: {type(node).__name__}")
                continue
            processor(node, context, out, state)

    def evaluate(self, expression: FilterExpression, context: TemplateContext) -> TemplateVariant:
        """
        Вычисляет выражение: разрешает базовый операнд и применяет фильтры по порядку.
        """
        value = self._resolve_operand(expression.base, context)

        for call in expression.filters:
            spec = self.engine.filters.get(call.name)
            if spec is None:
                logger.warning(f"Filter '{call.name}' is no longer registered, skipping")
                continue
            arg = self._resolve_operand(call.arg, context) if call.arg is not None else None
            try:
                value = spec.func(value, arg)
            except Exception as e:
                logger.warning(f"Filter '{call.name}' failed on {value!r}: {e}")
                value = TemplateVariant()
        return value

    # ---- Обработчики узлов ----

    def _render_text(self, node: TextNode, context: TemplateContext, out: TextIO, state: RenderState) -> None:
        out.write(node.text)

    def _render_variable(self, node: VariableNode, context: TemplateContext, out: TextIO, state: RenderState) -> None:
        value = self.evaluate(node.expression, context)

        if value.type is VariantType.FUNCTION:
            try:
                value = TemplateVariant(value.call([]), raw=value.raw)
            except Exception as e:
                logger.warning(f"Function value '{node.expression}' failed in '{state.template_name}': {e}")
                return

        text = value.to_string()
        if not value.raw:
            text = context.escape(text)
        out.write(text)

    def _render_for(self, node: ForNode, context: TemplateContext, out: TextIO, state: RenderState) -> None:
        values = self.evaluate(node.iterable, context).to_list()
        count = values.count() if values is not None else 0

        if count == 0:
            if node.empty_body is not None:
                with context.scope():
                    self.render_nodes(node.empty_body, context, out, state)
            return

        parent_loop = context.get_ref("forloop")

        # Одна область на весь цикл: переменная цикла перезаписывается на каждой итерации
        with context.scope():
            iterator = values.create_iterator()
            if node.reverse:
                iterator.to_last()
                step = iterator.to_prev
            else:
                iterator.to_first()
                step = iterator.to_next

            index = 0
            item = iterator.current()
            while item is not None:
                context.set(node.loop_var, item)
                context.set("forloop", self._forloop(index, count, parent_loop))
                self.render_nodes(node.body, context, out, state)
                index += 1
                step()
                item = iterator.current()

    @staticmethod
    def _forloop(index: int, count: int, parent_loop: Optional[TemplateVariant]) -> TemplateStruct:
        loop = TemplateStruct({
            "counter": index + 1,
            "counter0": index,
            "revcounter": count - index,
            "revcounter0": count - index - 1,
            "first": index == 0,
            "last": index == count - 1,
        })
        if parent_loop is not None:
            loop.set("parentloop", parent_loop)
        return loop

    def _render_if(self, node: IfNode, context: TemplateContext, out: TextIO, state: RenderState) -> None:
        truth = self.evaluate(node.condition, context).to_bool()
        if node.negated:
            truth = not truth

        if truth:
            self.render_nodes(node.body, context, out, state)
        elif node.else_body is not None:
            self.render_nodes(node.else_body, context, out, state)

    def _render_block(self, node: BlockNode, context: TemplateContext, out: TextIO, state: RenderState) -> None:
        body = state.blocks.get(node.name, node.body)
        with context.scope():
            self.render_nodes(body, context, out, state)

    def _render_extends(self, node: ExtendsNode, context: TemplateContext, out: TextIO, state: RenderState) -> None:
        # Наследование разрешено до обхода: в итоговом дереве extends ничего не выводит
        pass

    def _render_include(self, node: IncludeNode, context: TemplateContext, out: TextIO, state: RenderState) -> None:
        name = self.evaluate(node.template, context).to_string()
        try:
            template = self._find(name, state)
        except TemplateSyntaxError as e:
            # Ошибка разбора фатальна только для самого включаемого шаблона
            logger.warning(f"Included template '{name}' is broken (from '{state.template_name}'), skipping: {e}")
            return
        if template is None:
            logger.warning(f"Included template '{name}' not found (from '{state.template_name}'), skipping")
            return

        with context.scope():
            self.render(template, context, out, depth=state.depth + 1)

    def _render_create(self, node: CreateNode, context: TemplateContext, out: TextIO, state: RenderState) -> None:
        filename = self.evaluate(node.filename, context).to_string()
        template_name = self.evaluate(node.template, context).to_string()

        if not filename:
            self._create_failed(context, filename, template_name, ValueError(f"Empty file name in '{node.filename}'"))
            return

        base = (context.output_directory or Path(".")).resolve()
        target = (base / filename).resolve()
        if not target.is_relative_to(base):
            self._create_failed(
                context, filename, template_name,
                ValueError(f"File name '{filename}' points outside the output directory {base}")
            )
            return

        try:
            template = self._find(template_name, state)
        except TemplateSyntaxError as e:
            self._create_failed(context, filename, template_name, e)
            return
        if template is None:
            self._create_failed(context, filename, template_name, TemplateNotFoundError(template_name))
            return

        buffer = io.StringIO()
        with context.scope():
            self.render(template, context, buffer, depth=state.depth + 1)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(buffer.getvalue(), encoding=self.engine.encoding)
        except OSError as e:
            self._create_failed(context, filename, template_name, e)
            return

        context.created_files.append(target)
        logger.debug(f"Created '{target}' from template '{template_name}'")

    # ---- Вспомогательные методы ----

    def _find(self, name: str, state: RenderState) -> Optional[Template]:
        if not name:
            return None
        if state.depth + 1 > self.engine.max_depth:
            raise TemplateRenderError(
                f"Maximum template nesting depth ({self.engine.max_depth}) exceeded while loading '{name}'",
                state.template_name
            )
        return self.engine.find_template(name)

    @staticmethod
    def _create_failed(context: TemplateContext, filename: str, template_name: str, error: Exception) -> None:
        logger.error(f"Failed to create '{filename}' from template '{template_name}': {error}")
        context.record_create_failure(filename, template_name, error)

    @staticmethod
    def _resolve_operand(operand: Operand, context: TemplateContext) -> TemplateVariant:
        if operand.kind is OperandKind.PATH:
            return context.get(operand.value)
        if operand.kind is OperandKind.STRING:
            # Литералы автора шаблона считаются безопасными
            return TemplateVariant(operand.value, raw=True)
        return TemplateVariant(operand.value)


__all__ = ["TemplateRenderer", "RenderState"]
