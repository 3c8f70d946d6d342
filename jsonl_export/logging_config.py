"""
Logging configuration for export runs.
Provides plain or structured JSON output to the console and optional log files.
"""

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict, Optional

PLAIN_FORMAT = "%(asctime)s - %(threadName)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"

# LogRecord attributes that are not user-supplied extras
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


class StructuredFormatter(logging.Formatter):
    """
    Formats each record as one JSON object per line.
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        if self.include_extra:
            extra_fields = {
                key: value
                for key, value in record.__dict__.items()
                if key not in _RECORD_ATTRIBUTES
            }
            if extra_fields:
                log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str, separators=(",", ":"))


class ThreadSafeFileHandler(logging.FileHandler):
    """File handler that creates its log directory on demand."""

    def __init__(self, filename: str, mode: str = "a", encoding: Optional[str] = "utf-8"):
        log_dir = os.path.dirname(filename)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        super().__init__(filename, mode, encoding)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    structured_logging: bool = False,
) -> logging.Logger:
    """
    Configure the root logger for an export run.

    Records go to stdout; with ``log_file`` they are also written there and
    errors additionally to ``<log_file>_errors.log``.

    Raises:
        ValueError: If the log level is unknown
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logger = logging.getLogger()
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    if structured_logging:
        console_formatter: logging.Formatter = StructuredFormatter()
        file_formatter: logging.Formatter = StructuredFormatter()
    else:
        console_formatter = logging.Formatter(PLAIN_FORMAT)
        file_formatter = logging.Formatter(FILE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = ThreadSafeFileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

        root, ext = os.path.splitext(log_file)
        error_handler = ThreadSafeFileHandler(f"{root}_errors{ext or '.log'}")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(file_formatter)
        logger.addHandler(error_handler)

    return logger
