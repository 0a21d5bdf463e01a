"""Project logger: one ``promptgate`` namespace, stderr plus an optional rotating file."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from promptgate.config.settings import Settings, settings


ROOT_LOGGER_NAME = "promptgate"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


def resolve_level(raw: str | None) -> int:
    candidate = str(raw or "").strip().upper()
    candidate = _LEVEL_ALIASES.get(candidate, candidate)
    level = logging.getLevelName(candidate) if candidate else None
    return level if isinstance(level, int) else logging.INFO


def _file_handler(path: str, cfg: Settings) -> RotatingFileHandler | None:
    if not path.strip():
        return None
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            target,
            maxBytes=cfg.log_max_bytes,
            backupCount=cfg.log_backup_count,
            encoding="utf-8",
        )
    except OSError:
        # 目录不可写（只读容器等）时退回仅 stderr
        return None


def configure_logging(cfg: Settings, name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """(Re)build the handlers of logger ``name`` from ``cfg``.

    Handlers installed by an earlier call are closed and replaced, so calling
    this twice never duplicates output.
    """

    configured = logging.getLogger(name)
    for handler in list(configured.handlers):
        configured.removeHandler(handler)
        handler.close()

    level = resolve_level(cfg.log_level)
    configured.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    file_handler = _file_handler(cfg.log_file, cfg)
    if file_handler is not None:
        handlers.append(file_handler)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        configured.addHandler(handler)

    configured.propagate = False
    return configured


logger = logging.getLogger(ROOT_LOGGER_NAME)
if not logger.handlers:
    configure_logging(settings)


def get_logger(name: str) -> logging.Logger:
    return logger.getChild(name)
