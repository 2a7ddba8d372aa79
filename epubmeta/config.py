from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger("epubmeta.config")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def read_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read an ``EPUBMETA_*`` setting.

    A non-blank ``name`` wins; otherwise the first line of the file named by
    ``name_FILE`` is used. An unreadable file is logged and yields ``default``.
    """
    value = (os.getenv(name) or "").strip()
    if value:
        return value

    source = os.getenv(f"{name}_FILE")
    if not source:
        return default

    try:
        lines = Path(source).read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        logger.warning("cannot read %s_FILE=%s: %s", name, source, exc)
        return default
    return lines[0].strip() if lines else default


def read_env_bool(name: str, default: bool) -> bool:
    raw = (read_env(name) or "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    return default


def _log_level(raw: Optional[str]) -> int:
    level = logging.getLevelName((raw or "").strip().upper())
    return level if isinstance(level, int) else logging.WARNING


@dataclass
class Settings:
    book_dir: Path
    log_level: int = logging.WARNING
    pretty_print: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        book_dir = read_env("EPUBMETA_BOOK_DIR")
        return cls(
            book_dir=Path(book_dir) if book_dir else Path.cwd(),
            log_level=_log_level(read_env("EPUBMETA_LOG_LEVEL")),
            pretty_print=read_env_bool("EPUBMETA_PRETTY_PRINT", True),
        )
