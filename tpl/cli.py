from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys
from importlib import metadata
from pathlib import Path
from typing import Any, Dict, List, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .config import DEFAULT_CFG_FILE, EngineConfig, load_config
from .engine import TemplateEngine
from .errors import TplUserError
from .escape import ESCAPERS

logger = logging.getLogger("tpl")


def _tool_version() -> str:
    """Версия установленного пакета; без установки — 0.0.0."""
    try:
        return metadata.version("tpl-engine")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tpl",
        description="Django-style text template renderer",
        add_help=True,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {_tool_version()}")
    p.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="отладочный вывод в stderr (также TPL_DEBUG=1)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # Общие аргументы для render/check
    def add_common(sp: argparse.ArgumentParser) -> None:
        sp.add_argument(
            "--config",
            metavar="FILE",
            help=f"файл конфигурации (по умолчанию ./{DEFAULT_CFG_FILE}, если есть)",
        )
        sp.add_argument(
            "-I", "--include-dir",
            action="append",
            dest="include_dirs",
            metavar="DIR",
            help="дополнительный каталог поиска шаблонов (можно указать несколько)",
        )

    sp_render = sub.add_parser("render", help="Отрендерить шаблон в stdout")
    sp_render.add_argument("template", help="имя или путь шаблона")
    sp_render.add_argument(
        "--data",
        metavar="FILE",
        help="данные контекста: YAML или JSON со словарём верхнего уровня",
    )
    sp_render.add_argument("--out-dir", metavar="DIR", help="каталог для файлов {% create %}")
    sp_render.add_argument("--escape", choices=sorted(ESCAPERS), help="экранирование подстановок")
    add_common(sp_render)

    sp_check = sub.add_parser("check", help="Только разбор шаблонов, без рендеринга")
    sp_check.add_argument("templates", nargs="+", help="имена или пути шаблонов")
    add_common(sp_check)

    return p


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose or os.environ.get("TPL_DEBUG") else logging.WARNING
    logger.setLevel(level)
    if not logger.handlers:
        h = logging.StreamHandler(sys.stderr)
        h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(h)


def _engine_config(ns: argparse.Namespace) -> EngineConfig:
    """Конфиг из файла с поправками из аргументов командной строки."""
    cfg_path = Path(ns.config) if ns.config else Path.cwd() / DEFAULT_CFG_FILE
    if ns.config and not cfg_path.is_file():
        raise TplUserError(f"Config file not found: {cfg_path}")
    cfg = load_config(cfg_path)

    changes: Dict[str, Any] = {}
    if ns.include_dirs:
        changes["search_paths"] = [Path(d) for d in ns.include_dirs] + list(cfg.search_paths)
    if getattr(ns, "out_dir", None):
        changes["output_dir"] = Path(ns.out_dir)
    if getattr(ns, "escape", None):
        changes["escape"] = ns.escape
    return dataclasses.replace(cfg, **changes) if changes else cfg


def _template_ref(name: str) -> str:
    """Существующий файл относительно cwd берём по абсолютному пути."""
    p = Path(name)
    if not p.is_absolute() and p.is_file():
        return str(p.resolve())
    return name


def _load_data(path: Optional[str]) -> Dict[str, Any]:
    """Читает файл данных; JSON разбирается тем же YAML-загрузчиком."""
    if not path:
        return {}
    p = Path(path)
    if not p.is_file():
        raise TplUserError(f"Data file not found: {p}")
    try:
        with p.open(encoding="utf-8") as f:
            data = YAML(typ="safe").load(f)
    except YAMLError as e:
        raise TplUserError(f"{p}: invalid data file: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TplUserError(f"{p}: top-level mapping expected, got {type(data).__name__}")
    return data


def _run_render(ns: argparse.Namespace) -> int:
    engine = TemplateEngine(_engine_config(ns))
    template = engine.load_by_name(_template_ref(ns.template))
    data = _load_data(ns.data)

    context = engine.create_context()
    with context.scope():
        for key, value in data.items():
            context.set(str(key), value)
        template.render(sys.stdout, context)

    # Ошибки create не прерывают рендер, но отражаются в коде возврата
    for failure in context.create_failures:
        sys.stderr.write(f"Failed to create {failure.filename}: {failure.error}\n")
    return 1 if context.create_failures else 0


def _run_check(ns: argparse.Namespace) -> int:
    engine = TemplateEngine(_engine_config(ns))
    failed: List[str] = []
    for name in ns.templates:
        try:
            engine.load_by_name(_template_ref(name))
        except TplUserError as e:
            sys.stderr.write(str(e).rstrip() + "\n")
            failed.append(name)
            continue
        sys.stdout.write(f"OK {name}\n")
    return 2 if failed else 0


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging(ns.verbose)

    try:
        if ns.cmd == "render":
            return _run_render(ns)
        if ns.cmd == "check":
            return _run_check(ns)
    except TplUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
