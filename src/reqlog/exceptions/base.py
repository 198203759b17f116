# src/reqlog/exceptions/base.py
"""
Exceptions used by the recovery middleware.

Python has no separate "panic" channel: anything unexpected raised by an
endpoint is an exception. `Panic` exists so code can still raise an arbitrary
value (a string, a dict, an existing exception) the way a panic would, and
`normalize_panic()` turns whatever was caught into the error value the
recovery middleware logs and hands to its error handler.
"""

from typing import Any


class Panic(Exception):
    """
    Raised with an arbitrary value.

    - value: the raised payload; `str(Panic(v)) == str(v)`.

    Example:
        raise Panic("intentional.")
    """

    def __init__(self, value: Any):
        super().__init__(value)
        self.value = value

    def __str__(self) -> str:
        return str(self.value)

    def __repr__(self) -> str:
        return f"Panic({self.value!r})"


def normalize_panic(exc: BaseException) -> BaseException:
    """
    Return the error value for a caught exception.

    - Panic wrapping an exception -> that exception (keeps identity for error handlers).
    - Panic wrapping anything else -> the Panic itself.
    - Any other exception -> unchanged.
    """
    if isinstance(exc, Panic) and isinstance(exc.value, BaseException):
        return exc.value
    return exc


__all__ = ["Panic", "normalize_panic"]
