"""
Loading template sources from the file system.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import TemplateNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateSource:
    """Template text together with where it came from."""
    name: str
    path: Path
    text: str
    mtime_ns: int


class FileSystemLoader:
    """
    Resolves template names against an ordered list of search paths.

    Absolute names are used as-is. Relative names are tried against each
    search path in order; the first existing file wins.
    """

    def __init__(self, search_paths: Sequence[Path | str] = (".",), encoding: str = "utf-8"):
        self.search_paths: List[Path] = [Path(p) for p in search_paths]
        self.encoding = encoding

    def candidates(self, name: str) -> List[Path]:
        p = Path(name).expanduser()
        if p.is_absolute():
            return [p]
        return [base / p for base in self.search_paths]

    def find(self, name: str) -> Optional[Path]:
        """First existing file for the name, or None."""
        for candidate in self.candidates(name):
            if candidate.is_file():
                return candidate
        return None

    def load(self, name: str) -> TemplateSource:
        """
        Read the template text.

        Raises:
            TemplateNotFoundError: No search path holds the file
        """
        path = self.find(name)
        if path is None:
            raise TemplateNotFoundError(name, searched=self.candidates(name))

        try:
            mtime_ns = path.stat().st_mtime_ns
            text = path.read_text(encoding=self.encoding)
        except FileNotFoundError as e:
            # file vanished between find() and read
            raise TemplateNotFoundError(name, searched=[path]) from e

        logger.debug(f"Loaded template '{name}' from {path}")
        return TemplateSource(name=name, path=path, text=text, mtime_ns=mtime_ns)

    @staticmethod
    def is_stale(path: Path, mtime_ns: int) -> bool:
        """True when the file changed (or disappeared) since it was read."""
        try:
            return path.stat().st_mtime_ns != mtime_ns
        except OSError:
            return True


__all__ = ["FileSystemLoader", "TemplateSource"]
