"""
Core pytest configuration for the test suite.

Fixtures here are shared by the middleware and logging tests:

- `log`:          the logger handed to the middlewares under test, with caplog
                  capturing everything from DEBUG up.
- `records`:      returns the captured records of one logger (default: `log`).
- `restore_logging`: puts the root logger back after a test ran setup_logging().
- `make_client`:  builds a Starlette app from routes + middleware and returns a
                  TestClient for it.
- `faker`:        provided by Faker's pytest plugin (seeded, so values are stable).
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

# Quiet noisy third-party loggers before anything else imports them.
NOISY_LOGGERS = ("faker", "faker.factory", "asyncio", "httpx", "httpcore")
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import BaseRoute
from starlette.testclient import TestClient

TEST_LOGGER = "reqlog.tests"


@pytest.fixture
def log(caplog: pytest.LogCaptureFixture) -> logging.Logger:
    """Logger passed to the middlewares; caplog captures it at every level."""
    caplog.set_level(logging.DEBUG)
    logger = logging.getLogger(TEST_LOGGER)
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def records(caplog: pytest.LogCaptureFixture) -> Callable[..., list[logging.LogRecord]]:
    def _records(name: str = TEST_LOGGER) -> list[logging.LogRecord]:
        return [r for r in caplog.records if r.name == name]

    return _records


@pytest.fixture
def restore_logging():
    """Undo setup_logging(): root handlers/level and the middleware logger levels."""
    from reqlog.core.logging.builder import MIDDLEWARE_LOGGERS, stop_queue_logging

    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    names = MIDDLEWARE_LOGGERS + ("uvicorn.error", "uvicorn.access")
    saved_levels = {name: logging.getLogger(name).level for name in names}

    yield

    stop_queue_logging()
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)
    for name, level in saved_levels.items():
        logging.getLogger(name).setLevel(level)


@pytest.fixture
def make_client() -> Callable[..., TestClient]:
    """
    Build a TestClient around a Starlette app.

    `middleware` is listed outermost first, as Starlette's `middleware=` argument expects.
    Server exceptions are not re-raised by default so 500 responses can be asserted.
    """

    def _make(
        routes: Sequence[BaseRoute],
        middleware: Sequence[Middleware] = (),
        raise_server_exceptions: bool = False,
    ) -> TestClient:
        app = Starlette(routes=list(routes), middleware=list(middleware))
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    return _make
