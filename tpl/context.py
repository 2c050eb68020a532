"""
Контекст рендеринга шаблонов.

Стек словарей имя -> TemplateVariant: поиск идёт от вершины стека вниз,
что даёт локальные области видимости для циклов и включений.
Кроме стека контекст хранит каталог вывода для {% create %} и
интерфейс экранирования.
"""

from __future__ import annotations

import logging
import warnings
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .datasource import to_variant
from .escape import TemplateEscapeIntf
from .variant import TemplateVariant, VariantType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateFailure:
    """Неудачная попытка {% create %}: рендер продолжается, хост получает запись."""
    filename: str
    template_name: str
    error: Exception


class TemplateContext:
    """
    Стек областей видимости с разрешением точечных путей.

    Экземпляр создаётся через TemplateEngine.create_context(). Использование
    одного контекста из нескольких потоков одновременно не поддерживается.
    """

    def __init__(
        self,
        output_directory: Optional[Path] = None,
        escape_intf: Optional[TemplateEscapeIntf] = None,
    ):
        self._scopes: List[Dict[str, TemplateVariant]] = []
        self._output_directory: Optional[Path] = Path(output_directory) if output_directory else None
        self._escape_intf = escape_intf
        self._enter_depth = 0

        # Побочный канал {% create %}
        self.created_files: List[Path] = []
        self.create_failures: List[CreateFailure] = []

    # ---- Стек областей ----

    def push(self) -> None:
        """Кладёт новую пустую область на вершину стека."""
        self._scopes.append({})

    def pop(self) -> None:
        """
        Снимает текущую область.

        Raises:
            RuntimeError: Если стек пуст (нет соответствующего push)
        """
        if not self._scopes:
            raise RuntimeError("No scope to pop (scope stack is empty)")
        self._scopes.pop()

    @contextmanager
    def scope(self) -> Iterator[TemplateContext]:
        """
        Область на время блока with.

        Восстанавливает исходную глубину стека даже при ошибке внутри блока.
        """
        depth = len(self._scopes)
        self.push()
        try:
            yield self
        finally:
            del self._scopes[depth:]

    @property
    def depth(self) -> int:
        return len(self._scopes)

    def set(self, name: str, value: Any) -> None:
        """
        Записывает значение в текущую (верхнюю) область.

        Args:
            name: Ключ в словаре области
            value: TemplateVariant или Python-значение, понятное to_variant

        Raises:
            RuntimeError: Если ни одной области ещё не создано
        """
        if not self._scopes:
            raise RuntimeError(f"Cannot set '{name}': no scope pushed (call push() first)")
        self._scopes[-1][name] = to_variant(value)

    def get_ref(self, name: str) -> Optional[TemplateVariant]:
        """Возвращает сохранённый объект варианта для простого имени или None."""
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return None

    def get(self, name: str) -> TemplateVariant:
        """
        Разрешает точечный путь вида a.b.0.c.

        Первый сегмент ищется по стеку областей, каждый следующий
        запрашивается у структуры (по имени) или у списка (по индексу).
        При любой неудаче возвращается невалидный вариант, исключения
        не бросаются.
        """
        segments = name.split(".")
        value = self.get_ref(segments[0])
        if value is None:
            return TemplateVariant()

        for segment in segments[1:]:
            value = self._lookup_segment(value, segment)
            if not value.is_valid():
                logger.debug(f"Lookup of '{name}' failed at segment '{segment}'")
                return value
        return value.copy()

    @staticmethod
    def _lookup_segment(value: TemplateVariant, segment: str) -> TemplateVariant:
        if value.type is VariantType.STRUCT:
            return value.to_struct().get(segment)
        if value.type is VariantType.LIST:
            lst = value.to_list()
            try:
                index = int(segment, 10)
            except ValueError:
                return TemplateVariant()
            if 0 <= index < lst.count():
                return lst.at(index)
        return TemplateVariant()

    # ---- Каталог вывода и экранирование ----

    def set_output_directory(self, directory: Path | str) -> None:
        """Файлы, создаваемые {% create %}, пишутся в этот каталог."""
        self._output_directory = Path(directory)

    @property
    def output_directory(self) -> Optional[Path]:
        return self._output_directory

    def set_escape_intf(self, intf: Optional[TemplateEscapeIntf]) -> None:
        """Задаёт интерфейс экранирования результатов подстановки переменных."""
        if intf is not None and not isinstance(intf, TemplateEscapeIntf):
            raise TypeError(f"Escaper must provide escape(text), got {type(intf).__name__}")
        self._escape_intf = intf

    @property
    def escape_intf(self) -> Optional[TemplateEscapeIntf]:
        return self._escape_intf

    def escape(self, text: str) -> str:
        """Экранирует текст; без интерфейса экранирования — как есть."""
        if self._escape_intf is None:
            return text
        return self._escape_intf.escape(text)

    def record_create_failure(self, filename: str, template_name: str, error: Exception) -> None:
        self.create_failures.append(CreateFailure(filename, template_name, error))

    def __enter__(self):
        """Поддержка контекстного менеджера; запоминает глубину стека на входе."""
        self._enter_depth = len(self._scopes)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Предупреждает, если области, открытые внутри блока with, не закрыты."""
        if len(self._scopes) != self._enter_depth:
            warnings.warn(
                f"Template context exiting with {len(self._scopes)} open scopes "
                f"({self._enter_depth} at enter): push() without a matching pop()",
                RuntimeWarning,
                stacklevel=2
            )


__all__ = ["TemplateContext", "CreateFailure"]
