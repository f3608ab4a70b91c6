# overmind/io/logging_setup.py
"""
Central logging setup for overmind.

Goals:
- One configurable logging setup for all overmind components.
- Structured output (key-value or JSON lines).
- Idempotent: repeated calls do not stack handlers.
- Per-namespace level control (core/registry/plugins/io/app).

Notes:
- Importing this module changes nothing. The application calls setup_logging(...)
  (see overmind/app/main.py).
- Formatters recognize the extras `tick`, `colony`, `creep` and `role`.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Union

_DEFAULT_FMT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DEFAULT_DATEFMT = "%Y-%m-%dT%H:%M:%S"

_EXTRA_KEYS = ("tick", "colony", "creep", "role")

_NAMESPACES = (
    "overmind", "overmind.core", "overmind.registry", "overmind.plugins",
    "overmind.io", "overmind.app",
)


class KVFormatter(logging.Formatter):
    """Key-value formatter with optional extra fields."""
    def __init__(self, base: str = _DEFAULT_FMT, datefmt: Optional[str] = _DEFAULT_DATEFMT):
        super().__init__(base, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        extras = {k: getattr(record, k) for k in _EXTRA_KEYS if hasattr(record, k)}
        if extras:
            return f"{msg} extras={extras}"
        return msg


class JSONFormatter(logging.Formatter):
    """JSON-lines formatter with base fields and recognized extras."""
    def __init__(self, datefmt: Optional[str] = _DEFAULT_DATEFMT):
        super().__init__(datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "ts": self.formatTime(record, self.datefmt),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        for k in _EXTRA_KEYS:
            if hasattr(record, k):
                data[k] = getattr(record, k)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False, default=str)


def _remove_handlers(logger: logging.Logger) -> None:
    for h in list(logger.handlers):
        logger.removeHandler(h)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    json_lines: bool = False,
    stream: Optional[object] = None,
    include_library_logs: bool = False,
) -> logging.Handler:
    """
    Configure central logging idempotently.

    Args:
      level: Root level (INFO/DEBUG/... or its name)
      json_lines: JSON lines if True, key-value otherwise
      stream: Target stream (default: sys.stdout)
      include_library_logs: If True, third-party loggers are not dampened

    Returns:
      The installed stream handler.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    _remove_handlers(root)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter() if json_lines else KVFormatter())
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NAMESPACES:
        logging.getLogger(name).setLevel(level)

    if not include_library_logs:
        for lib in ("pluggy", "numpy", "yaml"):
            logging.getLogger(lib).setLevel(max(level, logging.WARNING))

    return handler


def set_namespace_levels(levels: Dict[str, Union[int, str]]) -> None:
    """
    Set levels per logger namespace.

    Args:
      levels: e.g. {"overmind.core.objective_group": "DEBUG", "overmind.core.executor": logging.INFO}
    """
    for name, lvl in levels.items():
        if isinstance(lvl, str):
            lvl = getattr(logging, lvl.upper(), logging.INFO)
        logging.getLogger(name).setLevel(int(lvl))


def add_file_handler(
    path: Union[str, Path],
    level: int = logging.INFO,
    json_lines: bool = True,
    mode: str = "a",
) -> logging.Handler:
    """
    Add a file handler to the root logger (long runs).

    Returns:
      The added handler (remove it later with logging.getLogger().removeHandler).
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    fh = logging.FileHandler(str(p), mode=mode, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(JSONFormatter() if json_lines else KVFormatter())
    logging.getLogger().addHandler(fh)
    return fh

