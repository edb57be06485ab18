"""
Structured Logging Setup

Consistent logging configuration across all supervisor components.
Uses JSON format by default; plain text for interactive use.

Each component receives its logger at construction time instead of
reading a global debug flag.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .result import BootstrapResult

LOGGER_PREFIX = "reddwallet_daemon"

# Record attributes that are not forwarded as extra JSON fields
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "component",
    "message", "taskName",
))

_level_override: int | None = None


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds the component name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["component"] = self.extra.get("component", "unknown")
        return msg, kwargs


def setup_logging(
    component: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Set up structured logging for a component.

    Args:
        component: Name of the component (e.g., "bootstrap", "process")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True) or plain text (False)

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    if _level_override is not None:
        numeric_level = _level_override

    logger = logging.getLogger(f"{LOGGER_PREFIX}.{component}")
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_component_logger(component: str) -> ComponentLoggerAdapter:
    """
    Get a logger adapter with component context.

    Level and format come from REDDWALLET_LOG_LEVEL / REDDWALLET_LOG_FORMAT
    unless set_debug() has forced a level.
    """
    log_level = os.environ.get("REDDWALLET_LOG_LEVEL", "INFO")
    json_format = os.environ.get("REDDWALLET_LOG_FORMAT", "json").lower() == "json"

    logger = setup_logging(component, log_level, json_format)
    return ComponentLoggerAdapter(logger, {"component": component})


def set_debug(enabled: bool) -> None:
    """
    Force DEBUG level for loggers created afterwards (the `debug` setting).

    Passing False drops the override and falls back to the environment.
    """
    global _level_override
    _level_override = logging.DEBUG if enabled else None


def log_bootstrap_result(logger: logging.LoggerAdapter, result: "BootstrapResult") -> None:
    """Log the terminal bootstrap result"""
    if result.success:
        logger.info(
            f"Bootstrap complete: {result.message}",
            extra={"result_code": result.code},
        )
    else:
        logger.error(
            f"Bootstrap failed [{result.code}]: {result.message}",
            extra={"result_code": result.code},
        )


def log_notification(logger: logging.LoggerAdapter, kind: str, line: str) -> None:
    """Log a daemon notification line"""
    logger.info(
        f"[{kind.upper()}] Notification {line}",
        extra={"notification": kind},
    )
