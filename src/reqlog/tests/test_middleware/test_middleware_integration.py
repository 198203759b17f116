# src/reqlog/tests/test_middleware/test_middleware_integration.py
import json
import logging
from types import SimpleNamespace

from fastapi import FastAPI
from starlette.testclient import TestClient

from reqlog.core.logging.builder import setup_logging
from reqlog.demo import create_app
from reqlog.middleware import LoggerConfig, RecoverConfig, install_middleware


def test_demo_app(caplog):
    caplog.set_level(logging.DEBUG)
    for name in ("reqlog.access", "reqlog.demo"):
        caplog.set_level(logging.DEBUG, logger=name)
    client = TestClient(create_app(configure_logging=False), raise_server_exceptions=False)

    resp = client.get("/", headers={"My-Request-Id": "31337"})
    assert resp.text == "Hello!\n"
    assert resp.headers["My-Request-Id"] == "31337"

    assert client.get("/greet/John").text == "Greetings John.\n"
    assert client.get("/nolog").status_code == 200
    assert client.get("/panic").status_code == 500

    access = [r for r in caplog.records if r.name == "reqlog.access"]
    messages = [r.getMessage() for r in access]
    # /nolog is skipped; the panic is logged by recovery and then by the logger
    assert messages == ["Request received!", "Request received!", "Panic happened!", "Request received!"]

    index, greet, panic, handled = access
    assert index.request_id == "31337"
    assert greet.field_name == "John"
    assert len(greet.request_id) == 32
    assert not hasattr(index, "_omit_caller")
    assert "stacktrace" in panic.__dict__
    assert panic.error == "intentional."
    assert handled.status == 500

    reported = [r for r in caplog.records if r.name == "reqlog.demo"]
    assert [r.getMessage() for r in reported] == ["Panic reported to the error handler: intentional."]


def test_request_id_in_response_and_log_file(tmp_path, restore_logging):
    settings = SimpleNamespace(
        ENV="production",
        SERVICE_NAME="svc",
        LOG_FORMAT="json",
        LOG_LEVEL="INFO",
        LOG_TO_STDOUT=False,
        LOG_DIR=tmp_path,
        LOG_MAX_BYTES=100_000,
        LOG_BACKUP_COUNT=1,
        LOG_USE_QUEUE=False,
        LOG_REDACT_KEYS=["authorization"],
    )
    setup_logging(settings)

    app = FastAPI()
    install_middleware(app, logger_config=LoggerConfig(), recover_config=RecoverConfig(), request_id=True)

    @app.get("/hello")
    async def hello():
        logging.getLogger("reqlog.tests").info("handling hello")
        return {"ok": True}

    client = TestClient(app)
    resp = client.get("/hello")
    assert resp.status_code == 200
    rid = resp.headers["X-Request-ID"]

    lines = [json.loads(line) for line in (tmp_path / "access.log").read_text().splitlines()]
    by_message = {r["message"]: r for r in lines}

    # the handler's own record gets the id through RequestIdFilter
    assert by_message["handling hello"]["request_id"] == rid

    access = by_message["Request handled"]
    assert access["logger"] == "reqlog.access"
    assert access["request_id"] == rid
    assert access["status"] == 200
    assert access["status_text"] == "OK"
    assert isinstance(access["latency"], float)
    assert "caller" not in access


def test_omitted_request_id_stays_out_of_log_file(tmp_path, restore_logging):
    settings = SimpleNamespace(
        ENV="production",
        SERVICE_NAME="svc",
        LOG_FORMAT="json",
        LOG_LEVEL="INFO",
        LOG_TO_STDOUT=False,
        LOG_DIR=tmp_path,
        LOG_MAX_BYTES=100_000,
        LOG_BACKUP_COUNT=1,
        LOG_USE_QUEUE=False,
        LOG_REDACT_KEYS=["authorization"],
    )
    setup_logging(settings)

    app = FastAPI()
    install_middleware(
        app,
        logger_config=LoggerConfig(
            omit_request_id=True,
            additional_fields=lambda ctx: {"service": "billing", "level": "gold"},
        ),
        request_id=True,
    )

    @app.get("/hello")
    async def hello():
        logging.getLogger("reqlog.tests").info("handling hello")
        return {"ok": True}

    resp = TestClient(app).get("/hello")
    rid = resp.headers["X-Request-ID"]

    lines = [json.loads(line) for line in (tmp_path / "access.log").read_text().splitlines()]
    by_message = {r["message"]: r for r in lines}

    # other records of the request still get the id from the contextvar
    assert by_message["handling hello"]["request_id"] == rid

    access = by_message["Request handled"]
    assert "request_id" not in access
    assert access["service"] == "svc"
    assert access["field_service"] == "billing"
    assert access["field_level"] == "gold"
