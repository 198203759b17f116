# src/reqlog/middleware/recover.py
"""
Recovery middleware: the single boundary that turns an unexpected exception
raised by the downstream app into a logged, ordinary 500 response.

Per request:

    Running --(no exception)--> done, nothing to do
    Running --(exception)--> Caught --> Reported --> ResponseFinalized

On an exception:
  1. normalize it (reqlog.exceptions.normalize_panic)
  2. optionally capture the traceback, bounded to stack_trace_size bytes
  3. log one ERROR record: error, method, path, client_ip, request_id?,
     stacktrace?, then additional_fields(ctx, err)
  4. call error_handler(ctx, err)
  5. send ctx.pending_response, or a plain 500, unless a response already started;
     a started response whose body is still open is ended with an empty final
     chunk (the client sees a truncated body with the original status)

Nothing here may raise while handling the exception: every field is built
defensively, and a failing error_handler is reported at WARNING level.
`BaseException`s that are not `Exception` (task cancellation, KeyboardInterrupt)
pass through untouched.
"""

import logging
import traceback
from typing import Any, Callable, Optional

from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from reqlog.core.logging.fields import as_field_dict, to_extra
from reqlog.exceptions import normalize_panic
from .config import RecoverConfig
from .context import RequestContext
from .logger import LoggerLike

RECOVER_LOGGER_NAME = "reqlog.recover"


def truncate_stack(stack: str, limit: int) -> str:
    """
    Keep at most `limit` bytes of a traceback.

    Python prints the innermost frame (where the exception was raised) last,
    so the end of the text is kept.
    """
    encoded = stack.encode("utf-8")
    if len(encoded) <= limit:
        return stack
    return encoded[-limit:].decode("utf-8", errors="ignore")


def _internal_server_error() -> Response:
    return PlainTextResponse("Internal Server Error", status_code=500)


class RecoverMiddleware:
    """
    Pure ASGI middleware catching exceptions from the downstream app.

    Args:
        app: the downstream ASGI application.
        logger: destination logger (default: logging.getLogger("reqlog.recover")).
        config: RecoverConfig.
    """

    def __init__(
        self,
        app: ASGIApp,
        logger: Optional[LoggerLike] = None,
        config: Optional[RecoverConfig] = None,
    ) -> None:
        self.app = app
        self.logger = logger if logger is not None else logging.getLogger(RECOVER_LOGGER_NAME)
        self.config = config if config is not None else RecoverConfig()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = RequestContext.from_scope(scope, receive)
        send = ctx.observe(send)
        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            err = normalize_panic(exc)
            stack = truncate_stack(traceback.format_exc(), self.config.stack_limit) if self.config.stack_trace else None
            self._report(ctx, err, stack)
            self._call_error_handler(ctx, err)
            if not ctx.response.committed:
                response = ctx.pending_response or _internal_server_error()
                await response(scope, receive, send)
            elif not ctx.response.finished:
                # status and headers are already out; close the open body
                await send({"type": "http.response.body", "body": b"", "more_body": False})

    def _report(self, ctx: RequestContext, err: BaseException, stack: Optional[str]) -> None:
        fields = self.build_fields(ctx, err, stack)
        self.logger.error(self.config.message, extra=to_extra(fields, include_caller=True))

    def build_fields(self, ctx: RequestContext, err: BaseException, stack: Optional[str]) -> dict[str, Any]:
        """Field set for the panic record; any field that cannot be built is left out."""
        config = self.config
        fields: dict[str, Any] = {}

        _put(fields, "error", lambda: str(err))
        _put(fields, "method", lambda: ctx.request.method)
        _put(fields, "path", ctx.request_uri)
        _put(fields, "client_ip", ctx.real_ip)
        _put(fields, "request_id", lambda: ctx.request_id(config.custom_request_id_header), keep_empty=False)
        if stack is not None:
            fields["stacktrace"] = stack

        if config.additional_fields is not None:
            try:
                fields.update(as_field_dict(config.additional_fields(ctx, err)))
            except Exception as field_exc:
                # recovery must not raise; the record goes out without the extra fields
                fields["additional_fields_error"] = repr(field_exc)

        return fields

    def _call_error_handler(self, ctx: RequestContext, err: BaseException) -> None:
        handler = self.config.error_handler
        if handler is None:
            return
        try:
            handler(ctx, err)
        except Exception:
            self.logger.warning("Recovery error handler failed", exc_info=True)


def _put(fields: dict[str, Any], name: str, getter: Callable[[], Any], keep_empty: bool = True) -> None:
    try:
        value = getter()
    except Exception:
        return
    if value or keep_empty:
        fields[name] = value
