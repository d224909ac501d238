# app/utils/logger.py
"""
Logging setup shared by every module: console plus a size-rotated file.
Level, location, format and rotation come from settings (LOG_*).
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from app.config import settings

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
LOG_LEVEL = settings.LOG_LEVEL.upper()
LOG_PATH = os.path.join(ROOT_DIR, settings.LOG_DIR, settings.LOG_FILE)

_configured = False


def _handlers(formatter: logging.Formatter):
    os.makedirs(os.path.dirname(LOG_PATH), exist_ok=True)
    rotating = RotatingFileHandler(
        filename=LOG_PATH,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    for handler in (logging.StreamHandler(), rotating):
        handler.setLevel(LOG_LEVEL)
        handler.setFormatter(formatter)
        yield handler


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    formatter = logging.Formatter(fmt=settings.LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    for handler in _handlers(formatter):
        root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Named logger; configures the root logger on first use."""
    _configure_root_logger()
    return logging.getLogger(name)
