"""
Протокол экранирования и стандартные реализации.

Движок лишь определяет, когда вызывается экранирование (для каждого
не-raw значения переменной); что именно оно делает, решает хост.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class TemplateEscapeIntf(Protocol):
    """Единственная операция: вернуть экранированную форму строки."""

    def escape(self, text: str) -> str:
        ...


class HtmlEscaper:
    """Экранирование спецсимволов HTML."""

    _TABLE = str.maketrans({
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#39;",
    })

    def escape(self, text: str) -> str:
        return text.translate(self._TABLE)


class FunctionEscaper:
    """Адаптер: обычная функция str -> str как TemplateEscapeIntf."""

    def __init__(self, func: Callable[[str], str]):
        self._func = func

    def escape(self, text: str) -> str:
        return self._func(text)


# Имена, допустимые в конфигурации и CLI
ESCAPERS = {
    "none": None,
    "html": HtmlEscaper,
}


def escaper_by_name(name: str) -> TemplateEscapeIntf | None:
    """
    Возвращает экземпляр экранировщика по имени.

    Raises:
        ValueError: Если имя неизвестно
    """
    key = (name or "none").strip().lower()
    if key not in ESCAPERS:
        raise ValueError(f"Unknown escaper '{name}'. Available: {', '.join(ESCAPERS)}")
    factory = ESCAPERS[key]
    return factory() if factory is not None else None


__all__ = ["TemplateEscapeIntf", "HtmlEscaper", "FunctionEscaper", "escaper_by_name"]
