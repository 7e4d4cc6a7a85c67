"""
Logging configuration for the Tubely backend.

Modules log through ``logging.getLogger(__name__)``; this module only decides
where those records go and how they look:

- JSONFormatter: one JSON object per record, for log aggregation
- StandardFormatter: human-readable single-line text for local development
- setup_logging: root handler, uvicorn integration, third-party verbosity
- add_log_context: LoggerAdapter that stamps ``video_id``/``user_id`` on records

Usage:
    from tubely.utils.logger import add_log_context, setup_logging

    setup_logging(log_level="info", json_logs=False)

    log = add_log_context(logging.getLogger(__name__), video_id="abc", user_id="u1")
    log.info("Upload started")
"""

import json
import logging
import sys
import traceback

from datetime import datetime, timezone
from typing import Any, Dict


LOG_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Libraries whose INFO output drowns out the upload pipeline
THIRD_PARTY_LOGGERS: list = [
    "boto3",
    "botocore",
    "s3transfer",
    "urllib3",
    "motor",
    "pymongo",
    "httpx",
    "httpcore",
    "asyncio",
]


class JSONFormatter(logging.Formatter):
    """
    Formatter that renders each LogRecord as a compact JSON object.

    Context attached through ``add_log_context`` or ``extra=`` is collected
    under the ``extra`` key.

    Example output:
        {"timestamp":"2026-01-15T10:30:45.123456+00:00","level":"INFO",
         "logger":"tubely.services.upload_service","message":"Video stored",
         "extra":{"video_id":"abc","user_id":"u1"}}
    """

    # Attributes every LogRecord carries; anything else came in as extra
    RESERVED_ATTRS: set = {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
    }

    def __init__(self, include_source_location: bool = False) -> None:
        super().__init__()
        self.include_source_location = include_source_location

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="microseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_source_location:
            log_entry["source"] = {
                "filename": record.filename,
                "lineno": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc_value) if exc_value else "",
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in self.RESERVED_ATTRS
        }
        if extra:
            log_entry["extra"] = extra

        # default=str keeps records with odd extras (Paths, enums) serializable
        return json.dumps(log_entry, default=str, ensure_ascii=False, separators=(",", ":"))


class StandardFormatter(logging.Formatter):
    """Plain text: ``[TIMESTAMP] LEVEL logger_name: message``."""

    DEFAULT_FORMAT: str = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
    DEFAULT_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.DEFAULT_FORMAT, datefmt=self.DEFAULT_DATE_FORMAT)


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    third_party_level: str = "WARNING",
) -> None:
    """
    Configure application-wide logging.

    Called once at application startup. Replaces the root logger's handlers
    with a single stdout handler, routes uvicorn's loggers through the same
    formatter, and raises the threshold of chatty third-party libraries.

    Args:
        log_level: Application level name (case-insensitive).
        json_logs: JSON output if True, plain text otherwise.
        third_party_level: Level applied to ``THIRD_PARTY_LOGGERS``.
    """
    level = LOG_LEVEL_MAP.get(log_level.upper(), logging.INFO)

    if json_logs:
        formatter: logging.Formatter = JSONFormatter(
            include_source_location=level <= logging.DEBUG
        )
    else:
        formatter = StandardFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = False
        uvicorn_logger.handlers.clear()
        handler = logging.StreamHandler(sys.stderr if name == "uvicorn.error" else sys.stdout)
        handler.setFormatter(formatter)
        uvicorn_logger.addHandler(handler)

    third_party_log_level = LOG_LEVEL_MAP.get(third_party_level.upper(), logging.WARNING)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_log_level)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, json=%s", logging.getLevelName(level), json_logs
    )


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    LoggerAdapter that merges its context into per-call ``extra`` instead of
    replacing it. Per-call keys win over adapter context.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get("extra", {})
        for key, value in self.extra.items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


def add_log_context(logger: logging.Logger, **kwargs: Any) -> logging.LoggerAdapter:
    """Wrap ``logger`` so every record carries ``kwargs`` as extra fields."""
    return ContextLoggerAdapter(logger, kwargs)


__all__ = [
    "JSONFormatter",
    "StandardFormatter",
    "ContextLoggerAdapter",
    "setup_logging",
    "add_log_context",
    "LOG_LEVEL_MAP",
]
