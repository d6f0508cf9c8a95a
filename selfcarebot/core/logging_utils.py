# selfcarebot/core/logging_utils.py
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

APP_LOGGER = "selfcarebot"
# Library loggers whose INFO lines belong on the console next to ours
LIBRARY_LOGGERS = ("aiogram", "apscheduler")

LINE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

AUDIT_MAX_BYTES = 2_000_000
AUDIT_BACKUPS = 7


def _console_handler(formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(logging.INFO)
    return handler


def _audit_handler(path: Path, formatter: logging.Formatter) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path, maxBytes=AUDIT_MAX_BYTES, backupCount=AUDIT_BACKUPS, encoding="utf-8"
    )
    handler.setFormatter(formatter)
    handler.setLevel(logging.DEBUG)
    return handler


def _replace_handlers(logger: logging.Logger, *handlers: logging.Handler) -> None:
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    for handler in handlers:
        logger.addHandler(handler)


def setup_logging(cfg: Any) -> logging.Logger:
    """
    Wire the bot's logging and return the "selfcarebot" logger.

    The bot's own tree goes to the audit file at DEBUG (every send, skip and
    day advance) and to stderr at INFO. It does not propagate to the root
    logger, so each line reaches the console exactly once. aiogram and
    APScheduler share the same console handler at INFO and stay out of the
    audit file.
    """
    formatter = logging.Formatter(LINE_FORMAT, TIME_FORMAT)
    console = _console_handler(formatter)
    audit = _audit_handler(Path(cfg.AUDIT_LOG_FILE), formatter)

    app_log = logging.getLogger(APP_LOGGER)
    app_log.setLevel(logging.DEBUG)
    app_log.propagate = False
    _replace_handlers(app_log, audit, console)

    for name in LIBRARY_LOGGERS:
        lib_log = logging.getLogger(name)
        lib_log.setLevel(logging.INFO)
        lib_log.propagate = False
        _replace_handlers(lib_log, console)

    return app_log


def kv(**kwargs: Any) -> str:
    """Render key=value pairs for log lines, e.g. ``user_id=3 slot='morning'``."""
    return " ".join(f"{k}={v!r}" for k, v in kwargs.items())
