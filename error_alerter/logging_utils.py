#!/usr/bin/env python3
"""
Error Alerter - Logging Utilities

Every diagnostic the pipeline emits goes through ``safe_log`` so that a
broken handler, a closed stream or a misbehaving host logger can never turn
alerting into a new source of exceptions.

Also provides opt-in structured JSON logging (NDJSON) for hosts and for the
``error-alerter`` CLI.

Usage:
    from error_alerter.logging_utils import get_logger, safe_log

    logger = get_logger(settings)
    safe_log(logger, logging.WARNING, "[ErrorAlerter] something went wrong")

Environment Variables:
    LOG_JSON_ENABLED: Enable JSON logging (default: false)
    LOG_LEVEL: Logging level (default: INFO)
"""

import os
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "error_alerter"
LOG_PREFIX = "[ErrorAlerter]"

# LogRecord attributes that are never copied into the JSON "extra" section
_RESERVED_ATTRS = frozenset([
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
])


def get_logger(settings: Any = None, name: Optional[str] = None) -> logging.Logger:
    """
    Resolve the logger the pipeline should write to.

    A logger configured on the settings object wins; otherwise the library's
    own ``error_alerter`` logger hierarchy is used.

    Args:
        settings: Configuration object (may be None)
        name: Optional child logger name (e.g. "deduplicator")

    Returns:
        Logger instance
    """
    configured = getattr(settings, "logger", None) if settings is not None else None
    if configured is not None:
        return configured
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def safe_log(logger: Optional[logging.Logger], level: int, message: str, **kwargs: Any) -> None:
    """
    Emit a log message, discarding any failure raised by the logger itself.

    Args:
        logger: Logger (or logger-like object); None is a no-op
        level: Logging level (logging.WARNING, logging.ERROR, ...)
        message: Fully formatted message
        **kwargs: Passed through to ``logger.log`` (e.g. exc_info, extra)
    """
    if logger is None:
        return
    try:
        logger.log(level, message, **kwargs)
    except Exception:
        pass


def describe_error(error: BaseException) -> str:
    """Render an exception as 'ClassName: message' for log lines."""
    return f"{type(error).__name__}: {error}"


class NDJSONFormatter(logging.Formatter):
    """
    Formatter that outputs each log record as a single JSON object per line.

    Fields: timestamp, level, message, logger, module, function, line,
    thread, service, version, plus any ``extra={}`` fields and an ``error``
    object when exception info is attached.
    """

    def __init__(self, service_name: str, version: str):
        super().__init__()
        self.service_name = service_name
        self.version = version

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": threading.get_ident(),
            "service": self.service_name,
            "version": self.version,
        }

        if record.exc_info:
            log_entry["error"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                log_entry[key] = value
            except (TypeError, ValueError):
                log_entry[key] = str(value)

        try:
            return json.dumps(log_entry, default=str)
        except Exception as e:
            return json.dumps(
                {
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "level": "ERROR",
                    "message": f"Failed to serialize log record: {e}",
                    "service": self.service_name,
                }
            )


def setup_json_logging(
    service_name: str,
    version: str,
    level: str = "INFO",
) -> logging.Logger:
    """
    Configure root logging for a process embedding the alerter.

    Uses NDJSON when LOG_JSON_ENABLED is truthy, plain text otherwise.
    Idempotent: existing root handlers are replaced.

    Args:
        service_name: Name reported in every JSON line
        version: Version reported in every JSON line
        level: Default level, overridden by LOG_LEVEL

    Returns:
        The configured root logger
    """
    json_enabled = os.getenv("LOG_JSON_ENABLED", "false").lower() in (
        "true",
        "1",
        "yes",
        "on",
    )
    log_level = os.getenv("LOG_LEVEL", level).upper()

    logger = logging.getLogger()
    logger.handlers.clear()
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    handler = logging.StreamHandler()
    handler.setLevel(logger.level)

    if json_enabled:
        handler.setFormatter(NDJSONFormatter(service_name=service_name, version=version))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s"))

    logger.addHandler(handler)
    logger.debug(f"Logging configured for service={service_name} json={json_enabled}")
    return logger
