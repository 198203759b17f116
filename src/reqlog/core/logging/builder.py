# src/reqlog/core/logging/builder.py
"""
Logging builder: create and apply a dictConfig logging configuration and optionally
wire a background QueueListener to decouple log IO from the request path.

This module:
 - builds a dictConfig-compatible mapping from Settings
 - routes the middleware loggers ("reqlog.access", "reqlog.recover") to the
   configured handlers and quiets uvicorn's own access log, which would
   otherwise duplicate every request line
 - in queue mode (LOG_USE_QUEUE) moves the real handlers onto a QueueListener
   thread and stamps producer-side filters (RequestIdFilter, RedactFilter) on the
   QueueHandler so contextvars and redaction run in the request's own context
 - exposes stop_queue_logging() to flush & stop the background listener at shutdown.

Configuration knobs (on the Settings object):
 - LOG_LEVEL, LOG_FORMAT, LOG_TO_STDOUT, LOG_DIR, LOG_MAX_BYTES, LOG_BACKUP_COUNT
 - LOG_USE_QUEUE, LOG_QUEUE_MAX_SIZE (0 -> unbounded)
 - LOG_REDACT_KEYS, ENV, SERVICE_NAME
"""

from __future__ import annotations

from pathlib import Path
import logging
import logging.config
import queue as _queue
from typing import Optional

from logging.handlers import QueueHandler, QueueListener

from .formatters import JsonFormatter, ColorFormatter
from .filters import RequestIdFilter, RedactFilter, DEFAULT_REDACT_KEYS
from .handlers import (
    get_console_handler,
    get_file_handler,
    get_error_file_handler,
)

# Settings type only; get_settings() is not called here to avoid import-time side effects.
from reqlog.config.settings import Settings

MIDDLEWARE_LOGGERS = ("reqlog.access", "reqlog.recover", "reqlog.request_id")

_QUEUE_LISTENER: Optional[QueueListener] = None


def _file_logging_enabled(settings: Settings) -> bool:
    return (not settings.LOG_TO_STDOUT) and bool(settings.LOG_DIR)


def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping using the provided settings.

    The returned mapping includes:
      - formatters: "standard" (ColorFormatter) and "json" (JsonFormatter)
      - filters: "request_id", "redact"
      - handlers: console, plus file/error_file when writing to LOG_DIR
      - loggers: root, the reqlog middleware loggers, uvicorn.error, uvicorn.access
    """
    formatters = {
        "standard": {
            "()": ColorFormatter,
            "use_colors": settings.ENV == "development",
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": getattr(settings, "SERVICE_NAME", "reqlog"),
        },
    }

    filters = {
        "request_id": {"()": RequestIdFilter},
        "redact": {
            "()": RedactFilter,
            "keys": list(getattr(settings, "LOG_REDACT_KEYS", DEFAULT_REDACT_KEYS)),
        },
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}
    if _file_logging_enabled(settings):
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)

    loggers: dict[str, dict] = {
        "": {
            "handlers": list(handlers.keys()),
            "level": settings.LOG_LEVEL,
        },
        "uvicorn.error": {
            "level": settings.LOG_LEVEL,
            "handlers": list(handlers.keys()),
            "propagate": False,
        },
        # The access middleware replaces uvicorn's access line.
        "uvicorn.access": {
            "level": "WARNING",
            "handlers": ["console"],
            "propagate": False,
        },
    }
    # Middleware loggers propagate to root; they only need a level of their own.
    for name in MIDDLEWARE_LOGGERS:
        loggers[name] = {"level": settings.LOG_LEVEL, "propagate": True}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": filters,
        "handlers": handlers,
        "loggers": loggers,
    }


def setup_logging(settings: Settings) -> None:
    """
    Initialize logging using settings and optionally switch to queue-backed logging.

    Steps:
      1. Ensure LOG_DIR exists when writing files.
      2. Apply dictConfig(make_dict_config(settings)).
      3. If settings.LOG_USE_QUEUE: move the root handlers onto a QueueListener and
         attach a QueueHandler carrying the producer-side filters.
    """
    global _QUEUE_LISTENER

    if _file_logging_enabled(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    # A previous queue listener would keep writing to handlers dictConfig is about to close.
    stop_queue_logging()

    logging.config.dictConfig(make_dict_config(settings))

    if not getattr(settings, "LOG_USE_QUEUE", False):
        return

    root_logger = logging.getLogger()
    real_handlers = list(root_logger.handlers)
    if not real_handlers:
        return
    for handler in real_handlers:
        root_logger.removeHandler(handler)

    max_size = int(getattr(settings, "LOG_QUEUE_MAX_SIZE", 0) or 0)
    log_queue: _queue.Queue = _queue.Queue(max_size)

    listener = QueueListener(log_queue, *real_handlers, respect_handler_level=True)
    listener.start()

    queue_handler = QueueHandler(log_queue)
    queue_handler.addFilter(RequestIdFilter())
    queue_handler.addFilter(
        RedactFilter(keys=getattr(settings, "LOG_REDACT_KEYS", DEFAULT_REDACT_KEYS))
    )
    root_logger.addHandler(queue_handler)

    _QUEUE_LISTENER = listener


def stop_queue_logging() -> None:
    """
    Stop the QueueListener (flushing queued records) and clear the module reference.
    """
    global _QUEUE_LISTENER
    listener = _QUEUE_LISTENER
    if listener is None:
        return
    try:
        listener.stop()
    finally:
        _QUEUE_LISTENER = None
