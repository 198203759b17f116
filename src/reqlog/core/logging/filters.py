# src/reqlog/core/logging/filters.py
"""
Logging filters

Request ID filter and helpers for logging.

This module attaches a per-request identifier (request_id) to Python
`logging.LogRecord`s in an async-friendly way, and masks sensitive record
attributes before they reach a handler.

How it is intended to be used
------------------------------
1. Install the filters into the logging configuration (see builder.py):

     "filters": {
         "request_id": {"()": RequestIdFilter},
         "redact": {"()": RedactFilter, "keys": settings.LOG_REDACT_KEYS},
     },

2. RequestIDMiddleware calls `set_request_id(rid)` at the start of each
   request and `reset_request_id(token)` when it finishes.

3. Any record logged in the same context without its own `request_id` gets
   the contextvar value.

Design notes
------------
- `contextvars.ContextVar` keeps the id correct across awaits and concurrent
  asyncio tasks, unlike `threading.local()`.
- No sentinel is written when no id is known. Records produced by the request
  logger carry `request_id` only when one was found on the request or the
  response, and the filter must not turn "absent" into a placeholder value.
- Filters return `True`: they annotate records, they never drop them.
"""

import logging
from logging import LogRecord
import contextvars
from typing import Iterable

from .fields import is_middleware_record

# Request id for the current execution context (async task / logical flow).
_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: str | None) -> contextvars.Token:
    """
    Set the request id in the current context and return the token to allow reset.
    """
    return _request_id_ctx.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    """
    Reset the contextvar to the previously saved token returned by set_request_id().
    """
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    """
    Retrieve the current context's request id, or None if none is set.
    """
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Add `request_id` from the contextvar to records that do not carry one.

    - An explicit `extra={"request_id": ...}` always wins.
    - Records built by the reqlog middlewares are left untouched: their field
      set is final, and `omit_request_id` must keep the id out.
    - With no explicit id and no contextvar value the record is left untouched.
    """

    def filter(self, record: LogRecord) -> bool:
        if is_middleware_record(record) or getattr(record, "request_id", None):
            return True
        rid = get_request_id()
        if rid:
            record.request_id = rid
        return True


DEFAULT_REDACT_KEYS = frozenset(
    {"authorization", "cookie", "set_cookie", "password", "secret", "token", "access_token", "refresh_token"}
)


class RedactFilter(logging.Filter):
    """
    Mask record attributes whose (lower-cased) name is sensitive.

    Structured fields end up as record attributes, so an `additional_fields`
    callback returning {"authorization": ...} is masked here before formatting.
    """

    MASK = "***REDACTED***"

    def __init__(self, keys: Iterable[str] | None = None, name: str = ""):
        super().__init__(name)
        self.keys = frozenset(k.lower() for k in keys) if keys is not None else DEFAULT_REDACT_KEYS

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.keys:
                record.__dict__[key] = self.MASK
        return True
