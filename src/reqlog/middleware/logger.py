# src/reqlog/middleware/logger.py
"""
Request logging middleware for Starlette / FastAPI.

Purpose
-------
Emit exactly one structured record per HTTP request, after the downstream
application has answered, describing the request and its response.

How it works (high level)
-------------------------
1. Record the start time and call the downstream app with an observed `send`
   (see context.py), so status, headers and body size are known afterwards.
2. If the downstream raises, remember the exception. The record is still
   written (status 500 when nothing was sent yet, which is what Starlette's
   ServerErrorMiddleware will answer) and the exception is re-raised so the
   framework's own error reporting runs as usual. If a callback fails while
   that record is built, the failure is logged at WARNING and the original
   exception is still the one re-raised.
3. `skip_request` and `error_only` may drop the record. Both are evaluated
   after the downstream ran, so they can look at the response.
4. The record carries:
     always:      proto, host, method, status, response_size, latency
     omittable:   status_text, client_ip, user_agent, path, request_id, referer
     then:        whatever `additional_fields(ctx)` returns
5. Level follows the final status: >= 500 ERROR, >= 400 WARNING, else INFO.

Registration
------------
Starlette wraps middlewares in reverse registration order (the last
`add_middleware` call is the outermost). Register RecoverMiddleware *before*
LoggerMiddleware so the logger sees the 500 that recovery produces:

    app.add_middleware(RecoverMiddleware, logger=log)
    app.add_middleware(LoggerMiddleware, logger=log, config=LoggerConfig(...))

or use `reqlog.install_middleware(app, ...)`.
"""

import logging
import time
from datetime import timedelta
from typing import Any, Optional, Union

from starlette.types import ASGIApp, Receive, Scope, Send

from reqlog.core.logging.fields import as_field_dict, to_extra
from .config import LoggerConfig
from .context import RequestContext, status_text

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]

ACCESS_LOGGER_NAME = "reqlog.access"


def level_for_status(status: int) -> int:
    """Map a response status to a logging level."""
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class LoggerMiddleware:
    """
    Pure ASGI middleware writing one access record per HTTP request.

    Args:
        app: the downstream ASGI application.
        logger: destination logger (default: logging.getLogger("reqlog.access")).
        config: LoggerConfig; the defaults log every request with every field.
    """

    def __init__(
        self,
        app: ASGIApp,
        logger: Optional[LoggerLike] = None,
        config: Optional[LoggerConfig] = None,
    ) -> None:
        self.app = app
        self.logger = logger if logger is not None else logging.getLogger(ACCESS_LOGGER_NAME)
        self.config = config if config is not None else LoggerConfig()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = RequestContext.from_scope(scope, receive)
        start = time.perf_counter()
        try:
            await self.app(scope, receive, ctx.observe(send))
        except Exception as exc:
            if not ctx.response.committed:
                ctx.response.status = 500
            try:
                self._log(ctx, start, exc)
            except Exception:
                # the downstream exception still propagates
                self.logger.warning("Request logging failed", exc_info=True)
            raise exc
        self._log(ctx, start, None)

    def _log(self, ctx: RequestContext, start: float, error: Optional[BaseException]) -> None:
        config = self.config

        if config.skip_request is not None and config.skip_request(ctx):
            return

        status = ctx.response.status
        if config.error_only and status < 300 and error is None:
            return

        latency = timedelta(seconds=time.perf_counter() - start)
        fields = self.build_fields(ctx, latency)

        self.logger.log(
            level_for_status(status),
            config.message,
            extra=to_extra(fields, include_caller=config.include_caller),
        )

    def build_fields(self, ctx: RequestContext, latency: timedelta) -> dict[str, Any]:
        """Assemble the field set for one record, in emission order."""
        config = self.config
        request = ctx.request
        status = ctx.response.status

        fields: dict[str, Any] = {
            "proto": ctx.http_proto(),
            "host": ctx.host(),
            "method": request.method,
            "status": status,
            "response_size": ctx.response.size,
            "latency": latency,
        }

        if not config.omit_status_text:
            fields["status_text"] = status_text(status)

        if not config.omit_client_ip:
            fields["client_ip"] = ctx.real_ip()

        if not config.omit_user_agent:
            fields["user_agent"] = request.headers.get("user-agent", "")

        if not config.omit_path:
            fields["path"] = ctx.request_uri()

        if not config.omit_request_id:
            request_id = ctx.request_id(config.custom_request_id_header)
            if request_id:
                fields["request_id"] = request_id

        if not config.omit_referer:
            referer = ctx.referer()
            if referer:
                fields["referer"] = referer

        if config.additional_fields is not None:
            fields.update(as_field_dict(config.additional_fields(ctx)))

        return fields
