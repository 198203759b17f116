# src/reqlog/core/logging/formatters.py

"""
Custom logging formatters.

  - JsonFormatter: one JSON object per record, suitable for log collectors
    (ELK, Fluentd, CloudWatch, ...). The request middlewares put their fields on
    the record through `extra=`; this formatter writes them back out in the
    order they were emitted, after the fixed observability fields.

  - ColorFormatter: a compact, ANSI-coloured line for local development,
    with the structured fields appended as key=value pairs.

Caller location
  Both formatters render the call site as `caller` ("file.py:123") unless the
  record carries the `_omit_caller` flag. The request logger sets that flag by
  default because its own call site says nothing about the request.

Value rendering
  - datetime.timedelta (latency) is written as seconds (float).
  - Values json cannot encode are written with str().
  - A field named like one of the fixed JSON keys (service, level, ...) is
    written as field_<name> so neither is lost.
"""

import json
import logging
import os
from datetime import timedelta
from typing import Any
from logging import LogRecord

from reqlog.utils.project import get_project_version
from .fields import caller_omitted, record_fields

PROJECT_VERSION = get_project_version()


def _render_value(value: Any) -> Any:
    if isinstance(value, timedelta):
        return value.total_seconds()
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


def _caller(record: LogRecord) -> str:
    return f"{os.path.basename(record.pathname)}:{record.lineno}"


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Construction:
      - env: environment name ("development" | "production" | ...); optional.
      - service: logical service name to include in logs.
      - datefmt: optional date format passed to logging.Formatter.

    Output shape:
      {"timestamp": ..., "level": "INFO", "logger": "reqlog.access",
       "message": "Request handled", "caller": "app.py:10",
       "service": ..., "env": ..., "version": ...,
       "proto": "HTTP/1.1", "host": ..., "status": 200, ...}
    """

    def __init__(self, *, env: str | None = None, service: str = "reqlog", datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service

    def format(self, record: LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if not caller_omitted(record):
            log_record["caller"] = _caller(record)
        log_record["service"] = self.service
        log_record["env"] = self.env
        log_record["version"] = PROJECT_VERSION

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)

        # Structured fields keep their emission order. A field named like a fixed
        # key is written as field_<name>, the same rule to_extra() applies.
        for key, value in record_fields(record).items():
            if key in log_record:
                key = f"field_{key}"
            log_record[key] = _render_value(value)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    Development-friendly coloured formatter.

    Line shape:
      TIMESTAMP | LEVEL | LOGGER | MESSAGE key=value key=value [caller]
    """

    COLOR_CODES = {
        "DEBUG": "\033[36m",       # cyan
        "INFO": "\033[32m",        # green
        "WARNING": "\033[33m",     # yellow
        "ERROR": "\033[31m",       # red
        "CRITICAL": "\033[1;41m",  # bold on red background
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_colors: bool = True) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = use_colors

    def format(self, record: LogRecord) -> str:
        level = record.levelname
        if self.use_colors:
            color = self.COLOR_CODES.get(level, "")
            level = f"{color}{level:<8}{self.COLOR_CODES['RESET']}"
        else:
            level = f"{level:<8}"

        parts = [
            self.formatTime(record, self.datefmt),
            level,
            record.name,
            record.getMessage(),
        ]
        line = " | ".join(parts)

        pairs = " ".join(f"{k}={_render_value(v)}" for k, v in record_fields(record).items())
        if pairs:
            line = f"{line} {pairs}"
        if not caller_omitted(record):
            line = f"{line} [{_caller(record)}]"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line
