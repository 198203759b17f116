# src/reqlog/middleware/context.py
"""
Per-request context shared by the reqlog middlewares.

Starlette hands each middleware the raw ASGI triple (scope, receive, send).
The logger needs to know what the downstream *answered* (status, headers,
bytes written), and the recovery middleware needs to know whether a response
was already started. RequestContext holds that state for one request:

  - request:  a Starlette Request over the shared scope
  - response: ResponseState (status, size, headers, committed, finished)

How it works
------------
1. The first reqlog middleware that sees a request creates the context and
   stores it in the scope (`RequestContext.from_scope`). Inner reqlog
   middlewares find it there, so they all share one instance.
2. Only that first middleware wraps `send` (`RequestContext.observe`); every
   message sent further down the stack passes through the wrapper exactly once,
   so the byte count is not doubled.
3. Headers placed on `ctx.response.headers` before the response starts are
   merged into the `http.response.start` message, unless the downstream set the
   same header itself. Upstream middleware uses this to put a request id on the
   response before the endpoint runs.

Handlers reach the context with `RequestContext.of(request)`.
"""

from http import HTTPStatus
from typing import Optional

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Message, Receive, Scope, Send

CONTEXT_SCOPE_KEY = "reqlog.context"

DEFAULT_REQUEST_ID_HEADER = "X-Request-ID"


async def _empty_receive() -> Message:
    return {"type": "http.disconnect"}


def status_text(status: int) -> str:
    """Reason phrase for a status code, "" when the code is unknown."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


class ResponseState:
    """What the downstream has answered so far."""

    def __init__(self) -> None:
        self.status: int = 200
        self.size: int = 0
        self.headers = MutableHeaders()
        self.committed: bool = False
        self.finished: bool = False

    def start(self, message: Message) -> Message:
        """Record an http.response.start message and return it with preset headers merged."""
        raw = list(message.get("headers", []))
        sent = {key.lower() for key, _ in raw}
        for key, value in self.headers.raw:
            if key not in sent:
                raw.append((key, value))

        self.status = int(message["status"])
        self.headers = MutableHeaders(raw=raw)
        self.committed = True
        return {**message, "headers": raw}


class RequestContext:
    """
    Request/response accessors for one HTTP request.

    Attributes:
        scope: the ASGI scope (shared with the downstream app).
        request: Starlette Request built over `scope`.
        response: ResponseState filled in as the downstream sends messages.
    """

    def __init__(self, scope: Scope, receive: Receive = _empty_receive) -> None:
        self.scope = scope
        self.request = Request(scope, receive)
        self.response = ResponseState()
        self._pending_response: Optional[Response] = None
        self._observing = False

    # --------------------
    # Lookup / creation
    # --------------------

    @classmethod
    def from_scope(cls, scope: Scope, receive: Receive = _empty_receive) -> "RequestContext":
        """Return the context stored in `scope`, creating it on first use."""
        ctx = scope.get(CONTEXT_SCOPE_KEY)
        if ctx is None:
            ctx = cls(scope, receive)
            scope[CONTEXT_SCOPE_KEY] = ctx
        return ctx

    @classmethod
    def of(cls, request: Request) -> "RequestContext":
        """Return the context of a request handled behind a reqlog middleware."""
        try:
            return request.scope[CONTEXT_SCOPE_KEY]
        except KeyError:
            raise LookupError("no reqlog middleware is installed for this request") from None

    def observe(self, send: Send) -> Send:
        """
        Wrap `send` so response messages update `self.response`.

        Only the first call wraps; later calls (from inner middlewares) return
        `send` unchanged because their `send` already goes through the wrapper.
        """
        if self._observing:
            return send
        self._observing = True

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                message = self.response.start(message)
            elif message["type"] == "http.response.body":
                self.response.size += len(message.get("body", b""))
                if not message.get("more_body", False):
                    self.response.finished = True
            await send(message)

        return send_wrapper

    # --------------------
    # Request accessors
    # --------------------

    def param(self, name: str, default: str = "") -> str:
        """Path parameter captured by the router (available once routing ran)."""
        return self.request.path_params.get(name, default)

    def http_proto(self) -> str:
        return f"HTTP/{self.scope.get('http_version', '1.1')}"

    def host(self) -> str:
        return self.request.headers.get("host", "")

    def request_uri(self) -> str:
        """
        The request target as received: raw path plus query string.

        `scope["path"]` is percent-decoded, so "/a%2Fb" and "/a/b" would log
        the same. The raw path keeps them apart.
        """
        raw_path = self.scope.get("raw_path")
        if raw_path:
            target = raw_path.split(b"?", 1)[0].decode("latin-1")
        else:
            target = self.scope.get("root_path", "") + self.scope.get("path", "")
        query = self.scope.get("query_string", b"")
        if query:
            target = f"{target}?{query.decode('latin-1')}"
        return target

    def real_ip(self) -> str:
        """
        Best-effort client address.

        Order: first X-Forwarded-For entry, X-Real-IP, then the socket peer.
        """
        headers = self.request.headers
        forwarded = headers.get("x-forwarded-for", "")
        if forwarded:
            first = forwarded.split(",", 1)[0].strip()
            if first:
                return first.strip("[]")
        real_ip = headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip.strip("[]")
        client = self.request.client
        return client.host if client else ""

    # --------------------
    # Correlation headers
    # --------------------

    def request_id(self, header: str = DEFAULT_REQUEST_ID_HEADER) -> str:
        """Request header first, then the response header; "" when neither has it."""
        header = header or DEFAULT_REQUEST_ID_HEADER
        return self.request.headers.get(header) or self.response.headers.get(header) or ""

    def referer(self) -> str:
        """Response header first, then the request header; "" when neither has it."""
        return self.response.headers.get("referer") or self.request.headers.get("referer") or ""

    # --------------------
    # Response override (recovery error handlers)
    # --------------------

    def set_response(self, response: Response) -> None:
        """Ask the recovery middleware to send `response` instead of the generic 500."""
        self._pending_response = response

    @property
    def pending_response(self) -> Optional[Response]:
        return self._pending_response
