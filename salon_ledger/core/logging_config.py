"""
Structured logging configuration.

JSON lines for log aggregation in production, a readable console format in
development. Selected through the LOG_FORMAT ("json" or "console") and
LOG_LEVEL environment variables.
"""

import json
import logging
import logging.config
from datetime import datetime, timezone

_STANDARD_ATTRS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message", "taskName",
})


def get_logging_config(log_level: str = "INFO", log_format: str = "json") -> dict:
    """Build a logging.config.dictConfig mapping."""
    config: dict = {
        "version": 1,
        "disable_existing_loggers": False,
    }

    if log_format == "json":
        config["formatters"] = {
            "json": {"()": "salon_ledger.core.logging_config.JsonFormatter"},
        }
        formatter = "json"
    else:
        config["formatters"] = {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }
        formatter = "verbose"

    config["handlers"] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter,
            "stream": "ext://sys.stdout",
        },
    }

    config["loggers"] = {
        "": {"handlers": ["console"], "level": log_level},
        "salon_ledger": {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        },
        "sqlalchemy.engine": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        "uvicorn.access": {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        },
    }

    return config


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    logging.config.dictConfig(get_logging_config(log_level, log_format))


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter.

    Fields: timestamp, level, logger, message, location, exception and an
    "extra" object carrying anything passed through ``extra=``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_entry["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extras = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extras[key] = value
            except (TypeError, ValueError):
                extras[key] = str(value)

        if extras:
            log_entry["extra"] = extras

        return json.dumps(log_entry, default=str)
