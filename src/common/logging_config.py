"""
Logging configuration for the node features engine.

Console output goes to stderr so feature lines on stdout stay clean for
scripts. Records can carry context (e.g. the cpuinfo path being parsed)
set with LogContext, and NodeFeaturesError codes are kept as structured
fields in JSON logs.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import NodeFeaturesError

# Third-party loggers kept at WARNING even when debugging
NOISY_LOGGERS = ("pyudev",)

CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(filename)s:%(lineno)d] %(message)s"


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "extra_data", None) or {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log collectors."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        context = _record_context(record)
        if context:
            log_data["data"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
            error = record.exc_info[1]
            if isinstance(error, NodeFeaturesError):
                log_data["error"] = error.to_dict()

        return json.dumps(log_data, default=str)


class ContextFormatter(logging.Formatter):
    """Appends LogContext fields to the message as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        result = super().format(record)
        context = _record_context(record)
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            result = f"{result} [{pairs}]"
        return result


class ColoredFormatter(ContextFormatter):
    """Colors the level name on terminals."""

    COLORS = {
        logging.DEBUG: "\033[36m",    # Cyan
        logging.INFO: "\033[32m",     # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",    # Red
        logging.CRITICAL: "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        record.levelname = f"{self.COLORS.get(record.levelno, '')}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers see the plain name
            record.levelname = levelname


def setup_logging(
    level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    json_logs: bool = False,
):
    """
    Configure logging for the CLI.

    Args:
        level: Console logging level (default: WARNING)
        log_file: Also log everything, down to DEBUG, to this file
        json_logs: Write the log file as JSON lines
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_file else level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    if sys.stderr.isatty():
        console_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT))
    else:
        console_handler.setFormatter(ContextFormatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter() if json_logs else ContextFormatter(FILE_FORMAT))
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """
    Context manager attaching key/value context to log records.

    Nested contexts merge, inner keys winning.

    Example:
        with LogContext(path="/proc/cpuinfo"):
            logger.warning("Unreadable")  # ... [path=/proc/cpuinfo]
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._old_factory = None

    def __enter__(self):
        self._old_factory = old_factory = logging.getLogRecordFactory()
        context = self.context

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            record.extra_data = {**_record_context(record), **context}
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, *args):
        logging.setLogRecordFactory(self._old_factory)

