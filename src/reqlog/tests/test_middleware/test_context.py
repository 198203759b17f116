# src/reqlog/tests/test_middleware/test_context.py
import asyncio

import pytest
from starlette.requests import Request

from reqlog.exceptions import Panic, normalize_panic
from reqlog.middleware.context import CONTEXT_SCOPE_KEY, RequestContext, ResponseState, status_text


def make_scope(headers=None, client=("192.0.2.1", 4242), raw_path=b"/a%2Fb", query=b""):
    return {
        "type": "http",
        "http_version": "1.1",
        "method": "GET",
        "path": "/a/b",
        "raw_path": raw_path,
        "root_path": "",
        "query_string": query,
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({"X-Forwarded-For": "203.0.113.1, 10.0.0.1"}, "203.0.113.1"),
        ({"X-Forwarded-For": "[2001:db8::1]"}, "2001:db8::1"),
        ({"X-Real-IP": "198.51.100.2"}, "198.51.100.2"),
        ({"X-Forwarded-For": "203.0.113.1", "X-Real-IP": "198.51.100.2"}, "203.0.113.1"),
        ({}, "192.0.2.1"),
    ],
)
def test_real_ip(headers, expected):
    ctx = RequestContext(make_scope(headers))
    assert ctx.real_ip() == expected


def test_real_ip_without_client():
    assert RequestContext(make_scope(client=None)).real_ip() == ""


def test_request_uri_uses_raw_path():
    ctx = RequestContext(make_scope(query=b"q=1&r=2"))
    assert ctx.request_uri() == "/a%2Fb?q=1&r=2"


def test_request_uri_strips_query_from_raw_path():
    ctx = RequestContext(make_scope(raw_path=b"/a%2Fb?q=1", query=b"q=1"))
    assert ctx.request_uri() == "/a%2Fb?q=1"


def test_request_uri_without_raw_path():
    scope = make_scope()
    del scope["raw_path"]
    assert RequestContext(scope).request_uri() == "/a/b"


def test_http_proto_and_host():
    ctx = RequestContext(make_scope({"Host": "example.com:8080"}))
    assert ctx.http_proto() == "HTTP/1.1"
    assert ctx.host() == "example.com:8080"


@pytest.mark.parametrize(
    "status, text",
    [(200, "OK"), (404, "Not Found"), (500, "Internal Server Error"), (599, "")],
)
def test_status_text(status, text):
    assert status_text(status) == text


def test_response_state_merges_preset_headers():
    state = ResponseState()
    state.headers["X-Request-ID"] = "preset"
    state.headers["X-Extra"] = "1"

    message = state.start(
        {"type": "http.response.start", "status": 201, "headers": [(b"x-request-id", b"downstream")]}
    )

    assert state.status == 201
    assert state.committed is True
    assert message["headers"] == [(b"x-request-id", b"downstream"), (b"x-extra", b"1")]
    assert state.headers["x-request-id"] == "downstream"


def test_request_id_lookup_order():
    ctx = RequestContext(make_scope({"X-Request-ID": "from-request"}))
    ctx.response.headers["X-Request-ID"] = "from-response"
    assert ctx.request_id() == "from-request"

    ctx = RequestContext(make_scope())
    ctx.response.headers["X-Request-ID"] = "from-response"
    assert ctx.request_id() == "from-response"
    assert ctx.request_id("Other") == ""


def test_referer_lookup_order():
    ctx = RequestContext(make_scope({"Referer": "http://request"}))
    assert ctx.referer() == "http://request"
    ctx.response.headers["Referer"] = "http://response"
    assert ctx.referer() == "http://response"


def test_from_scope_shares_one_context():
    scope = make_scope()
    first = RequestContext.from_scope(scope)
    assert scope[CONTEXT_SCOPE_KEY] is first
    assert RequestContext.from_scope(scope) is first


def test_of_without_middleware():
    with pytest.raises(LookupError):
        RequestContext.of(Request(make_scope()))


def test_observe_wraps_once():
    sent = []

    async def send(message):
        sent.append(message)

    ctx = RequestContext(make_scope())
    outer = ctx.observe(send)
    inner = ctx.observe(outer)
    assert inner is outer

    async def respond():
        await inner({"type": "http.response.start", "status": 404, "headers": []})
        await inner({"type": "http.response.body", "body": b"abc", "more_body": True})
        assert not ctx.response.finished
        await inner({"type": "http.response.body", "body": b"de"})

    asyncio.run(respond())

    assert ctx.response.status == 404
    assert ctx.response.size == 5
    assert ctx.response.finished is True
    assert len(sent) == 3


def test_set_response():
    ctx = RequestContext(make_scope())
    assert ctx.pending_response is None
    marker = object()
    ctx.set_response(marker)
    assert ctx.pending_response is marker


def test_panic_value():
    assert str(Panic("boom")) == "boom"
    assert str(Panic(42)) == "42"
    assert Panic(42).value == 42


def test_normalize_panic():
    inner = ValueError("x")
    assert normalize_panic(Panic(inner)) is inner

    plain = Panic("text")
    assert normalize_panic(plain) is plain

    other = RuntimeError("y")
    assert normalize_panic(other) is other
