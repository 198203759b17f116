# src/reqlog/core/logging/fields.py
"""
Structured fields on top of stdlib logging.

A field set is an ordered mapping of name -> typed value. It travels to the
logging backend as `extra=`, which makes every field an attribute of the
LogRecord. Formatters read them back with `record_fields()`.
"""

import logging
from typing import Any, Iterable, Mapping, Tuple, Union

Fields = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]

# Attribute names a LogRecord already owns; `extra` may not overwrite them.
RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

# Record flag set by the middlewares when caller location must not be rendered.
OMIT_CALLER_ATTR = "_omit_caller"

# Record flag marking a field set built by a reqlog middleware. Such a record
# already carries exactly the fields it should; filters must not add any.
MIDDLEWARE_RECORD_ATTR = "_reqlog_fields"


def as_field_dict(fields: Fields | None) -> dict[str, Any]:
    """Accept a mapping, an iterable of pairs or None."""
    if fields is None:
        return {}
    return dict(fields)


def to_extra(fields: Mapping[str, Any], *, include_caller: bool = True) -> dict[str, Any]:
    """
    Build the `extra=` mapping for a log call.

    Reserved names are stored as `field_<name>` so a user-supplied field called
    "name" or "message" never makes `Logger.makeRecord` raise. The record is
    flagged as a middleware record so filters leave its field set alone.
    """
    extra: dict[str, Any] = {}
    for key, value in fields.items():
        if key in RESERVED_ATTRS:
            key = f"field_{key}"
        extra[key] = value
    extra[MIDDLEWARE_RECORD_ATTR] = True
    if not include_caller:
        extra[OMIT_CALLER_ATTR] = True
    return extra


def record_fields(record: logging.LogRecord, exclude: Iterable[str] = ()) -> dict[str, Any]:
    """Return the structured fields of a record, in emission order."""
    skip = set(exclude)
    return {
        k: v
        for k, v in record.__dict__.items()
        if k not in RESERVED_ATTRS and not k.startswith("_") and k not in skip
    }


def caller_omitted(record: logging.LogRecord) -> bool:
    return bool(getattr(record, OMIT_CALLER_ATTR, False))


def is_middleware_record(record: logging.LogRecord) -> bool:
    return bool(getattr(record, MIDDLEWARE_RECORD_ATTR, False))
