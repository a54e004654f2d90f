"""
Structured Logging Configuration for the Math Solver AI server
JSON logs for production, coloured one-liners for local development.
"""

import asyncio
import logging
import json
import sys
import os
from datetime import datetime
from typing import Optional
from contextvars import ContextVar

# Request id for the request currently being handled on this task
request_id_var: ContextVar[Optional[int]] = ContextVar('request_id', default=None)

ROOT_LOGGER_NAME = "mathsolver"

# Attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> dict:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    One object per line, easy to ship to a log aggregator.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": "FATAL" if record.levelno >= logging.CRITICAL else record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id is not None:
            log_obj["request_id"] = request_id

        log_obj.update(_extra_fields(record))

        if record.exc_info:
            log_obj["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_obj, default=str)


class PrettyFormatter(logging.Formatter):
    """
    Colored, human-readable formatter for local development.
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        level = "FATAL" if record.levelno >= logging.CRITICAL else record.levelname

        request_id = request_id_var.get()
        prefix = f"[{request_id}] " if request_id is not None else ""

        timestamp = datetime.now().strftime('%H:%M:%S')

        base = f"{color}{timestamp} | {level:8}{self.RESET} | {prefix}{record.getMessage()}"

        if record.exc_info:
            base += f"\n{self.formatException(record.exc_info)}"

        return base


def setup_logging(
    name: str = ROOT_LOGGER_NAME,
    level: str = None,
    json_format: bool = None
) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, use JSON format. If None, auto-detect from environment.

    Returns:
        Configured logger instance
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    level = level.upper()

    # JSON in production or when stdout is not a terminal
    if json_format is None:
        is_production = os.getenv("ENVIRONMENT", "development") == "production"
        is_tty = sys.stdout.isatty()
        json_format = is_production or not is_tty

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level, logging.INFO))

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(PrettyFormatter())

    logger.addHandler(handler)

    logger.propagate = False

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get or create a logger with the given name."""
    return logging.getLogger(name)


def install_fault_handlers(logger: logging.Logger) -> None:
    """
    Route uncaught exceptions to a FATAL log line instead of the default
    stderr dump. The process is left running.
    """

    def _excepthook(exc_type, exc, tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        logger.critical(f"Uncaught exception: {exc}", exc_info=(exc_type, exc, tb))

    sys.excepthook = _excepthook

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return

    def _loop_handler(loop, context):
        exc = context.get("exception")
        logger.critical(
            f"Unhandled async error: {context.get('message', exc)}",
            exc_info=exc,
        )

    loop.set_exception_handler(_loop_handler)
