"""
GPT Compiler - Centralized Logging Configuration
Supports plain text (default) and JSON structured logging
"""

import logging
import sys
import json
import traceback
from datetime import datetime, timezone
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar


LOGGER_NAME = "gpt_compiler"

# Document currently being compiled by this task
document_var: ContextVar[str] = ContextVar('document', default='')

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'taskName', 'document',
}


def get_document() -> str:
    """Get current document path from context"""
    return document_var.get() or ''


def set_document(path: str) -> None:
    """Set current document path in context"""
    document_var.set(path)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the gpt_compiler hierarchy"""
    if not name:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging
    One object per line, easy to ship to log aggregation tools
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        document = get_document()
        if document:
            log_data["document"] = document

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info) if record.exc_info[0] else None
            }

        # Extra fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ContextualFormatter(logging.Formatter):
    """
    Formatter that exposes the current document as %(document)s
    """

    def format(self, record: logging.LogRecord) -> str:
        record.document = get_document() or '-'
        return super().format(record)


def setup_logging(level: str = "INFO",
                  log_file: Optional[str] = None,
                  json_logs: bool = False) -> logging.Logger:
    """Configure the gpt_compiler logger (safe to call more than once)"""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    # Avoid duplicate output when reconfigured
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if json_logs:
        console_formatter: logging.Formatter = JSONFormatter()
        file_formatter: logging.Formatter = console_formatter
    else:
        simple_format = "%(levelname)-8s | %(message)s"
        detailed_format = (
            "%(asctime)s | %(levelname)-8s | [%(document)s] | "
            "%(name)s:%(lineno)d | %(message)s"
        )
        console_formatter = ContextualFormatter(simple_format)
        file_formatter = ContextualFormatter(detailed_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=10485760,  # 10MB
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.WARNING)

    logger.debug(
        "Logging initialized",
        extra={"log_level": level, "json_logging": json_logs}
    )
    return logger


logger = get_logger()


__all__ = [
    'logger',
    'get_logger',
    'setup_logging',
    'get_document',
    'set_document',
    'JSONFormatter',
    'ContextualFormatter',
]
