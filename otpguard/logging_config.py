"""Structured logging for the otpguard service.

Every line carries the request's correlation ID when one is set, and
keyword fields passed to StructuredLogger. Identities are expected to
be masked by the caller; verification codes are redacted here.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

# Set by CorrelationIdMiddleware for the duration of a request
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Third-party loggers that are too chatty at INFO
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler")


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: timestamp, level, service, message, logger, correlation_id
    (when set), any structured fields, plus exception and location for
    errors.
    """

    def __init__(self, service_name: str = "otpguard-api"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "message": record.getMessage(),
            "logger": record.name,
        }

        correlation_id = correlation_id_ctx.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        log_data.update(getattr(record, "extra_fields", {}))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.ERROR:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for local development.

    ``timestamp - service - LEVEL - [correlation_id] - message key=value ...``
    """

    def __init__(self, service_name: str = "otpguard-api"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        correlation_id = correlation_id_ctx.get() or "-"

        line = (
            f"{timestamp} - {self.service_name} - {record.levelname} - "
            f"[{correlation_id}] - {record.getMessage()}"
        )

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            line += " " + " ".join(f"{k}={v}" for k, v in extra_fields.items())

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


def setup_logging(
    log_format: str = "json",
    log_level: str = "INFO",
    service_name: str = "otpguard-api",
) -> None:
    """Route all logging to stdout through one structured handler.

    Args:
        log_format: 'json' for structured logging, 'text' for human-readable
        log_level: Logging level name; unknown names fall back to INFO
        service_name: Service name to include in logs
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter: logging.Formatter = (
        JsonFormatter(service_name=service_name)
        if log_format.lower() == "json"
        else TextFormatter(service_name=service_name)
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# Extra field names that must never reach a log sink verbatim
REDACTED_FIELDS = frozenset({"code", "candidate", "candidate_code"})
REDACTED = "[redacted]"


def _scrub(extra_fields: dict[str, Any]) -> dict[str, Any]:
    return {
        key: REDACTED if key in REDACTED_FIELDS else value
        for key, value in extra_fields.items()
    }


class StructuredLogger:
    """Logger wrapper that takes structured extra fields as keywords.

    Fields named in REDACTED_FIELDS are replaced before the record is
    created, so no handler or formatter ever sees a raw verification code.
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        msg: str,
        extra_fields: dict[str, Any],
        exc_info: bool = False,
    ) -> None:
        record_extra = {"extra_fields": _scrub(extra_fields)} if extra_fields else {}
        self._logger.log(level, msg, extra=record_extra, exc_info=exc_info)

    def debug(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.DEBUG, msg, extra_fields)

    def info(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.INFO, msg, extra_fields)

    def warning(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.WARNING, msg, extra_fields)

    def error(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.ERROR, msg, extra_fields)

    def exception(self, msg: str, **extra_fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, msg, extra_fields, exc_info=True)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)
    """
    return StructuredLogger(name)
