"""Tests for FastAPI app lifecycle helpers."""

from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from transit_insights import main


def test_request_id_middleware_respects_existing_header(monkeypatch):
    app = FastAPI()
    main._install_request_id_middleware(app)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    client = TestClient(app)
    response = client.get("/ping", headers={main.REQUEST_ID_HEADER: "external-id"})
    assert response.headers[main.REQUEST_ID_HEADER] == "external-id"

    monkeypatch.setattr(main, "uuid4", lambda: "generated-id")
    response = client.get("/ping")
    assert response.headers[main.REQUEST_ID_HEADER] == "generated-id"


def test_configure_logging_sets_root_level():
    root = logging.getLogger()
    original = root.level
    try:
        main._configure_logging("WARNING")
        assert root.level == logging.WARNING
    finally:
        root.setLevel(original)


class _FakeStore:
    def __init__(self, readable: bool) -> None:
        self.readable = readable
        self.pings = 0

    async def ping(self) -> bool:
        self.pings += 1
        return self.readable


@pytest.mark.asyncio
@pytest.mark.parametrize("readable", [True, False])
async def test_lifespan_pings_store(monkeypatch, caplog, readable):
    store = _FakeStore(readable)
    fake_settings = SimpleNamespace(environment="test", data_store_path="/tmp/db.json")
    monkeypatch.setattr(main, "get_settings", lambda: fake_settings)
    monkeypatch.setattr(main, "get_record_store", lambda: store)

    with caplog.at_level(logging.WARNING, logger="transit_insights.main"):
        async with main.lifespan(FastAPI()):
            pass

    assert store.pings == 1
    warned = any("not readable" in record.message for record in caplog.records)
    assert warned is not readable


def test_cors_exposes_request_id_and_etag(monkeypatch, settings):
    cors_settings = settings.model_copy(
        update={"cors_allow_origins": ["https://ops.example.com"]}
    )
    monkeypatch.setattr(main, "get_settings", lambda: cors_settings)

    app = main.create_app()
    client = TestClient(app)
    response = client.get(
        "/api/v1/health", headers={"Origin": "https://ops.example.com"}
    )

    assert response.headers["access-control-allow-origin"] == "https://ops.example.com"
    exposed = response.headers["access-control-expose-headers"]
    assert "X-Request-Id" in exposed
    assert "ETag" in exposed
