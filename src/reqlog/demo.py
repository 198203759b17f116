# src/reqlog/demo.py
"""
Demo application wiring every reqlog option.

Run it with any ASGI server, e.g.:

    uvicorn --factory reqlog.demo:create_app --port 8000

and try:

    curl http://127.0.0.1:8000
    curl http://127.0.0.1:8000/greet/John
    curl http://127.0.0.1:8000/nolog
    curl http://127.0.0.1:8000/panic
    curl -H 'My-Request-Id: 31337' http://127.0.0.1:8000
"""

import logging

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from reqlog.config.settings import get_settings
from reqlog.core.logging import setup_logging
from reqlog.exceptions import Panic
from reqlog.middleware import (
    LoggerConfig,
    RecoverConfig,
    RequestContext,
    install_middleware,
)

REQUEST_ID_HEADER = "My-Request-Id"

logger = logging.getLogger("reqlog.demo")


def skip_nolog(ctx: RequestContext) -> bool:
    return ctx.request.url.path == "/nolog"


def name_field(ctx: RequestContext) -> dict | None:
    name = ctx.param("name")
    if name:
        return {"name": name}
    return None


def report_panic(ctx: RequestContext, err: BaseException) -> None:
    logger.info("Panic reported to the error handler: %s", err)


LOGGER_CONFIG = LoggerConfig(
    skip_request=skip_nolog,
    custom_message="Request received!",
    include_caller=True,
    custom_request_id_header=REQUEST_ID_HEADER,
    additional_fields=name_field,
)

RECOVER_CONFIG = RecoverConfig(
    custom_message="Panic happened!",
    stack_trace=True,
    stack_trace_size=4 << 10,  # 4 KiB
    custom_request_id_header=REQUEST_ID_HEADER,
    error_handler=report_panic,
)


def create_app(configure_logging: bool = True) -> FastAPI:
    if configure_logging:
        setup_logging(get_settings())

    app = FastAPI(title="reqlog demo")

    @app.get("/", response_class=PlainTextResponse)
    def index() -> str:
        return "Hello!\n"

    @app.get("/greet/{name}", response_class=PlainTextResponse)
    def greet(name: str) -> str:
        return f"Greetings {name}.\n"

    @app.get("/nolog", response_class=PlainTextResponse)
    def nolog() -> str:
        return "This will not be logged.\n"

    @app.get("/panic")
    def panic() -> None:
        raise Panic("intentional.")

    install_middleware(
        app,
        logging.getLogger("reqlog.access"),
        logger_config=LOGGER_CONFIG,
        recover_config=RECOVER_CONFIG,
        request_id=True,
    )
    return app
