"""
Logging setup for the Spanner repro harness.

The CLI configures the root logger once; every other module just asks for a
named logger. Records carry their context as `extra=` fields, which the JSON
formatter lifts into the payload next to the message.

The Google client stack (gRPC, google-auth, the Spanner client itself) logs
through its own loggers and gets a separate level, so `LOG_LEVEL=DEBUG` shows
the harness's own steps without every channel and credential refresh.

Usage:
    from spanner_repro.utils.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", json_logs=True)
    log = get_logger(__name__)
    log.info("Instance created", extra={"instance": "projects/p/instances/i"})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

CLIENT_LOGGERS = ("google", "grpc", "urllib3")

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


def _json_formatter(record: logging.LogRecord) -> str:
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    for key, value in record.__dict__.items():
        if key not in _RESERVED_ATTRS:
            payload[key] = value
    # Endpoints, paths and exceptions in `extra=` are rendered with str().
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    client_level: str = "WARNING",
) -> None:
    """
    Configure root logging for a CLI run.

    Parameters
    ----------
    level : str
        Level for the harness's own loggers (e.g., "DEBUG", "INFO").
    json_logs : bool
        Emit one JSON object per record instead of the console format.
    client_level : str
        Level for the Google client, gRPC and HTTP loggers (`CLIENT_LOGGERS`).
    """
    formatter_name = "json" if json_logs else "console"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter_name,
                }
            },
            "loggers": {name: {"level": client_level} for name in CLIENT_LOGGERS},
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter", "CLIENT_LOGGERS"]
