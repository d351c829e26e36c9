"""
Structured logging for the row services.

Keyword arguments passed to logger methods become structured data on the
record:

    logger.info("Entity restored", entity_type="products", entity_id=14, user_id=1)

Row context keys (entity_type, entity_id, user_id) are lifted to the top level
of JSON records so aggregators can index restores and listings per row type.
The request correlation ID is attached by CorrelationIdFilter.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings

# Keys promoted out of the structured data in JSON output
ROW_CONTEXT_KEYS = ("entity_type", "entity_id", "user_id")


def _record_data(record: logging.LogRecord) -> dict[str, Any]:
    return dict(getattr(record, "extra_data", None) or {})


def _record_request_id(record: logging.LogRecord) -> str | None:
    request_id = getattr(record, "request_id", None)
    return request_id if request_id and request_id != "-" else None


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for production log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        data = _record_data(record)
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = _record_request_id(record)
        if request_id:
            entry["request_id"] = request_id

        for key in ROW_CONTEXT_KEYS:
            if key in data:
                entry[key] = data.pop(key)
        if data:
            entry["data"] = data

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if settings.debug:
            entry["source"] = f"{record.filename}:{record.lineno}"

        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Coloured single line output for local runs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        data = _record_data(record)
        color = self.COLORS.get(record.levelname, self.RESET)
        parts = [f"{color}{datetime.now():%H:%M:%S} {record.levelname:8}{self.RESET}"]

        request_id = _record_request_id(record)
        if request_id:
            parts.append(f"{self.DIM}[{request_id[:8]}]{self.RESET}")

        # "products#14" style row tag
        entity_type = data.pop("entity_type", None)
        if entity_type is not None:
            entity_id = data.pop("entity_id", None)
            parts.append(entity_type if entity_id is None else f"{entity_type}#{entity_id}")

        parts.append(f"{record.name}: {record.getMessage()}")
        if data:
            parts.append("(" + ", ".join(f"{k}={v}" for k, v in data.items()) + ")")

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """Logger whose keyword arguments are carried as structured data."""

    def _log_with_data(self, level: int, msg: str, args: tuple, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        exc_info = kwargs.pop("exc_info", None)
        extra = kwargs.pop("extra", None) or {}
        extra["extra_data"] = kwargs or None
        super()._log(level, msg, args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.CRITICAL, msg, args, **kwargs)


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """
    Install the stdout handler on the root logger.
    Call once at application startup.
    """
    # Import here to avoid circular imports
    from shared.infrastructure.correlation import CorrelationIdFilter

    level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        StructuredFormatter() if settings.environment == "production" else DevelopmentFormatter()
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # SQL echo goes through engine.echo, not the root level
    for noisy in ("sqlalchemy.engine", "uvicorn.access", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Usage:
        logger = get_logger(__name__)
        logger.error("Commit callback failed", callback="bump", exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


row_services_logger = get_logger("data_services")
security_audit_logger = get_logger("security.audit")
