# src/reqlog/middleware/request_id.py
"""
Request ID middleware for Starlette / FastAPI.

Purpose
-------
Make sure every request has a correlation id that the access and recovery
records can report, that the client sees on the response, and that every other
log record emitted while the request is handled carries (via RequestIdFilter).

How it works (high level)
-------------------------
1. Look for an incoming id in the configured header (default `X-Request-ID`).
   - If present, reuse it (a client or upstream proxy already chose one).
   - Otherwise generate a new one (`uuid4().hex` by default).
2. Put the id on `ctx.response.headers`. It is merged into the response when the
   downstream starts answering, and the request logger finds it there through
   its response-header fallback.
3. Store the id in the `request_id` contextvar for the duration of the request
   and reset it afterwards.

Register it outermost (after LoggerMiddleware / RecoverMiddleware, because
Starlette's last registered middleware runs first).

Security & validation
---------------------
- Incoming ids are written to logs verbatim. Put a proxy in front that strips or
  normalises the header if clients are not trusted.
- Do not derive ids from sensitive data; the generator should produce opaque values.
"""

import uuid
from typing import Callable, Optional

from starlette.types import ASGIApp, Receive, Scope, Send

from reqlog.core.logging.filters import set_request_id, reset_request_id
from .context import DEFAULT_REQUEST_ID_HEADER, RequestContext


def _new_id() -> str:
    return uuid.uuid4().hex


class RequestIDMiddleware:
    """
    ASGI middleware that assigns a request id to every HTTP request.

    Args:
        app: the downstream ASGI application.
        header: header carrying the id (default X-Request-ID).
        generator: zero-argument callable producing new ids.
    """

    def __init__(
        self,
        app: ASGIApp,
        header: Optional[str] = None,
        generator: Optional[Callable[[], str]] = None,
    ) -> None:
        self.app = app
        self.header = header or DEFAULT_REQUEST_ID_HEADER
        self.generator = generator or _new_id

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = RequestContext.from_scope(scope, receive)
        # 1) Prefer an incoming id; otherwise generate an opaque one.
        rid = ctx.request.headers.get(self.header) or self.generator()

        # 2) Preset on the response; merged when the downstream starts its response.
        ctx.response.headers[self.header] = rid

        # 3) Expose to RequestIdFilter for the lifetime of this request.
        token = set_request_id(rid)
        try:
            await self.app(scope, receive, ctx.observe(send))
        finally:
            reset_request_id(token)
