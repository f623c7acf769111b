import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Optional

from bellwright.core import context
from bellwright.core.settings import settings

AUDIT_LOGGER_NAME = "bellwright.audit"

_CONTEXT_FIELDS = ("request_id", "caller_id", "caller_role")
# Extras with these names are masked before they reach a handler
_SECRET_EXTRAS = frozenset({"password", "code", "card_number", "cvv", "payment_pin", "token"})


class RequestContextFilter(logging.Filter):
    """Stamp the request id and resolved caller onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = context.get_request_id()
        for key, value in context.get_caller_fields().items():
            setattr(record, key, value)
        for key in _SECRET_EXTRAS & record.__dict__.keys():
            setattr(record, key, "***")
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; fields passed via ``extra=`` are kept."""

    _reserved = set(vars(logging.makeLogRecord({})).keys()) | {"message", *_CONTEXT_FIELDS}

    def __init__(self, stream_label: str = "app") -> None:
        super().__init__()
        self.stream_label = stream_label

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "stream": self.stream_label,
        }
        payload.update({key: getattr(record, key, "-") for key in _CONTEXT_FIELDS})
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in self._reserved and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s %(caller_role)s] %(name)s: %(message)s"


def _formatters(log_format: str) -> dict:
    if log_format == "text":
        return {
            "app": {"format": TEXT_FORMAT},
            "audit": {"format": "%(asctime)s AUDIT [%(request_id)s] %(message)s"},
        }
    return {
        "app": {"()": JsonFormatter, "stream_label": "app"},
        "audit": {"()": JsonFormatter, "stream_label": "audit"},
    }


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    log_level = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()

    def handler(formatter: str) -> dict:
        return {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": formatter,
            "filters": ["request_context"],
            "stream": "ext://sys.stdout",
        }

    def logger(*handlers: str) -> dict:
        return {"handlers": list(handlers), "level": log_level, "propagate": False}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_context": {"()": RequestContextFilter}},
            "formatters": _formatters(log_format),
            "handlers": {"default": handler("app"), "audit": handler("audit")},
            "loggers": {
                "": logger("default"),
                AUDIT_LOGGER_NAME: logger("audit"),
                "uvicorn": logger("default"),
                "uvicorn.error": logger("default"),
                "uvicorn.access": logger("default"),
            },
        }
    )
    logging.getLogger(__name__).info(
        "Logging configured for environment=%s level=%s format=%s",
        settings.environment,
        log_level,
        log_format,
    )


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER_NAME)
