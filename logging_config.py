"""Logging setup for the API server and the housekeeping tasks it runs."""

from __future__ import annotations

import datetime as dt
import logging
import time
from logging.config import dictConfig
from typing import Any, Iterable, Sequence

from settings import get_settings

# Fields passed through ``extra=``, rendered in this order after the message.
CONTEXT_FIELDS = (
    "tag_id",
    "external_id",
    "date",
    "cutoff",
    "retention_days",
    "tag_count",
    "day_count",
    "row_count",
    "reason",
)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_configured = False


def render_context_value(value: Any) -> str:
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    if isinstance(value, float):
        return f"{value:g}"
    text = str(value)
    return repr(text) if " " in text else text


class HistoryFormatter(logging.Formatter):
    """Stamps records in UTC and appends their context fields as ``key=value`` pairs."""

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        fields: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt or LOG_FORMAT, datefmt=datefmt or DATE_FORMAT)
        self.fields: Sequence[str] = tuple(fields) if fields is not None else CONTEXT_FIELDS

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{field}={render_context_value(record.__dict__[field])}"
            for field in self.fields
            if record.__dict__.get(field) is not None
        )
        return f"{message} [{context}]" if context else message


def configure_logging(level: str | int | None = None, *, force: bool = False) -> None:
    """Route the root logger through ``HistoryFormatter`` once per process.

    ``level`` defaults to ``LOG_LEVEL``; ``force`` reinstalls the handler.
    """
    global _configured
    if _configured and not force:
        return

    log_level = level if level is not None else get_settings().log_level
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"history": {"()": HistoryFormatter}},
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "history",
                }
            },
            "root": {"handlers": ["stderr"], "level": log_level},
        }
    )
    _configured = True
