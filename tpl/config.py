from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigError
from .escape import ESCAPERS

SCHEMA_VERSION = 1
DEFAULT_CFG_FILE = "tpl.yaml"

# --------------------------------------------------------------------------- #
# ДЕФОЛТЫ
# --------------------------------------------------------------------------- #
_DEFAULT_CFG: Dict[str, Any] = {
    "schema_version": SCHEMA_VERSION,
    "search_paths": ["."],
    "encoding": "utf-8",
    # перечитывать шаблон с диска, если изменился его mtime
    "auto_reload": True,
    # предел вложенности include/extends/create
    "max_depth": 64,
    "output_dir": None,
    "escape": "none",
}

# --------------------------------------------------------------------------- #
# YAML loader
# --------------------------------------------------------------------------- #
_yaml = YAML(typ="safe")


@dataclass(frozen=True)
class EngineConfig:
    """Настройки движка шаблонов."""
    search_paths: List[Path] = field(default_factory=lambda: [Path(".")])
    encoding: str = "utf-8"
    auto_reload: bool = True
    max_depth: int = 64
    output_dir: Optional[Path] = None
    escape: str = "none"


# --------------------------------------------------------------------------- #
# HELPERS
# --------------------------------------------------------------------------- #
def _merge_defaults(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Накладываем значения пользователя поверх дефолтов."""
    cfg = _DEFAULT_CFG.copy()
    cfg.update(raw)                      # пользовательские ключи перекрывают
    return cfg


def _expect(cfg: Dict[str, Any], key: str, kind: type | tuple, path: Path) -> Any:
    value = cfg[key]
    # bool является подклассом int
    if isinstance(value, bool) and kind is int:
        raise ConfigError(f"{path}: '{key}' must be int, got bool")
    if not isinstance(value, kind):
        names = kind.__name__ if isinstance(kind, type) else "/".join(k.__name__ for k in kind)
        raise ConfigError(f"{path}: '{key}' must be {names}, got {type(value).__name__}")
    return value


def _resolve(base: Path, value: str) -> Path:
    p = Path(value).expanduser()
    return p if p.is_absolute() else (base / p)


def config_from_dict(raw: Dict[str, Any], *, base_dir: Path, source: Path = Path("<dict>")) -> EngineConfig:
    """
    Строит EngineConfig из словаря; относительные пути считаются от base_dir.

    Raises:
        ConfigError: При неизвестных ключах или неверных типах
    """
    unknown = set(raw) - set(_DEFAULT_CFG)
    if unknown:
        raise ConfigError(f"{source}: unknown config keys: {', '.join(sorted(unknown))}")

    cfg = _merge_defaults(raw)

    if cfg.get("schema_version", SCHEMA_VERSION) != SCHEMA_VERSION:
        raise ConfigError(
            f"Unsupported config schema {cfg.get('schema_version')} "
            f"(tool expects {SCHEMA_VERSION})"
        )

    search_paths = cfg["search_paths"]
    if isinstance(search_paths, str):
        search_paths = [search_paths]
    if not isinstance(search_paths, list) or not all(isinstance(p, str) for p in search_paths):
        raise ConfigError(f"{source}: 'search_paths' must be a list of strings")

    encoding = _expect(cfg, "encoding", str, source)
    auto_reload = _expect(cfg, "auto_reload", bool, source)
    max_depth = _expect(cfg, "max_depth", int, source)
    if max_depth < 1:
        raise ConfigError(f"{source}: 'max_depth' must be positive, got {max_depth}")

    output_dir = cfg["output_dir"]
    if output_dir is not None and not isinstance(output_dir, str):
        raise ConfigError(f"{source}: 'output_dir' must be a string")

    escape = _expect(cfg, "escape", str, source).strip().lower()
    if escape not in ESCAPERS:
        raise ConfigError(f"{source}: unknown escape '{escape}' (available: {', '.join(ESCAPERS)})")

    return EngineConfig(
        search_paths=[_resolve(base_dir, p) for p in search_paths],
        encoding=encoding,
        auto_reload=auto_reload,
        max_depth=max_depth,
        output_dir=_resolve(base_dir, output_dir) if output_dir else None,
        escape=escape,
    )


# --------------------------------------------------------------------------- #
# PUBLIC API
# --------------------------------------------------------------------------- #
def load_config(path: Path) -> EngineConfig:
    """
    Загрузить tpl.yaml.

    • Если файла нет — вернуть дефолты (пути относительно каталога файла).
    • Если schema_version отсутствует — считаем, что это актуальная версия.
    • Проверяем несовместимость схем и типы значений.
    """
    base_dir = path.parent
    if not path.exists():
        return config_from_dict({}, base_dir=base_dir, source=path)

    try:
        with path.open(encoding="utf-8") as f:
            raw = _yaml.load(f) or {}
    except YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top-level mapping expected, got {type(raw).__name__}")

    return config_from_dict(raw, base_dir=base_dir, source=path)


__all__ = ["EngineConfig", "load_config", "config_from_dict", "DEFAULT_CFG_FILE", "SCHEMA_VERSION"]
