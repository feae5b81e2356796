"""Application-wide logging configuration."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QStandardPaths, QtMsgType, qInstallMessageHandler

from .constants import APP_NAME

LOGGER_NAMES = ("notecanvas", "notebook_store")
LOG_LEVEL_ENV = "NOTECANVAS_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def default_log_dir() -> Path:
    base = QStandardPaths.writableLocation(QStandardPaths.AppDataLocation)
    if not base:
        return Path.home() / f".{APP_NAME.lower()}" / "logs"
    return Path(base) / "logs"


def console_level(default: int = logging.INFO) -> int:
    """Console level, overridable with NOTECANVAS_LOG_LEVEL=DEBUG etc."""
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def setup_logging(log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Configure logging for the notecanvas package and the notebook store.
    Calling it again is a no-op. Returns the package logger.
    """
    logger = logging.getLogger(LOGGER_NAMES[0])
    if logger.handlers:
        return logger

    log_dir = Path(log_dir) if log_dir is not None else default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"{APP_NAME.lower()}.log"

    fmt = logging.Formatter(LOG_FORMAT)

    # File handler (rotating)
    fh = RotatingFileHandler(
        log_path,
        maxBytes=2 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)

    # Console handler
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level())
    ch.setFormatter(fmt)

    for name in LOGGER_NAMES:
        named = logging.getLogger(name)
        named.setLevel(logging.DEBUG)
        named.propagate = False
        named.addHandler(fh)
        named.addHandler(ch)

    logger.info("Logging initialized. log_file=%s", log_path)
    return logger


def install_qt_message_handler(logger: Optional[logging.Logger] = None) -> None:
    """Route Qt's own warnings and errors into the logger."""
    log = logger or logging.getLogger(f"{LOGGER_NAMES[0]}.qt")

    def _qt_message_handler(mode, context, message):
        file = getattr(context, "file", None)
        line = getattr(context, "line", None)
        where = f"{file}:{line}" if file else "unknown"
        log.log(_QT_LEVELS.get(mode, logging.WARNING), "Qt: %s | where=%s", message, where)

    qInstallMessageHandler(_qt_message_handler)
    log.debug("Qt message handler installed")
