"""
Unit tests for middleware — RequestIDMiddleware and RequestTimingMiddleware.

Uses httpx.AsyncClient against a lightweight FastAPI test app to exercise
both middleware classes through their full dispatch cycle, and checks that
the request id reaches log records.
"""

import json
import logging
import uuid

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from backoffice.core.logging import (
    ERROR_LOG_FILE,
    LOG_FILE,
    JSONFormatter,
    RequestIDFilter,
    request_id_ctx,
    setup_logging,
)
from backoffice.middleware import REQUEST_ID_HEADER, RequestIDMiddleware, RequestTimingMiddleware


def _make_test_app() -> FastAPI:
    """Create a minimal FastAPI app with both middleware classes."""
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RequestTimingMiddleware)

    @app.get("/test")
    async def test_endpoint():
        return {"ok": True}

    @app.get("/context")
    async def context_endpoint():
        return {"request_id": request_id_ctx.get()}

    return app


@pytest.fixture()
def test_app():
    return _make_test_app()


# ────────────────────────────────────────────────────────────────────────────
# RequestIDMiddleware tests
# ────────────────────────────────────────────────────────────────────────────


class TestRequestIDMiddleware:
    """Tests for X-Request-ID header injection."""

    @pytest.mark.asyncio
    async def test_generates_request_id_when_absent(self, test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/test")

        assert REQUEST_ID_HEADER in resp.headers
        # Should be a valid UUID4
        request_id = resp.headers[REQUEST_ID_HEADER]
        uuid.UUID(request_id)  # raises if invalid

    @pytest.mark.asyncio
    async def test_honours_existing_request_id(self, test_app):
        custom_id = "my-trace-id-12345"
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/test", headers={REQUEST_ID_HEADER: custom_id})

        assert resp.headers[REQUEST_ID_HEADER] == custom_id


# ────────────────────────────────────────────────────────────────────────────
# RequestTimingMiddleware tests
# ────────────────────────────────────────────────────────────────────────────


class TestRequestTimingMiddleware:
    """Tests for X-Process-Time header injection."""

    @pytest.mark.asyncio
    async def test_adds_process_time_header(self, test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/test")

        assert "X-Process-Time" in resp.headers
        # Should end with "ms"
        assert resp.headers["X-Process-Time"].endswith("ms")

    @pytest.mark.asyncio
    async def test_process_time_is_positive(self, test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/test")

        time_str = resp.headers["X-Process-Time"].replace("ms", "")
        assert float(time_str) >= 0

    @pytest.mark.asyncio
    async def test_slow_request_logged_as_warning(self, test_app, monkeypatch, caplog):
        from backoffice.core.config import settings

        monkeypatch.setattr(settings, "SLOW_REQUEST_MS", -1)
        transport = ASGITransport(app=test_app)
        with caplog.at_level(logging.WARNING, logger="backoffice.middleware"):
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                await client.get("/test")

        (record,) = [r for r in caplog.records if r.name == "backoffice.middleware"]
        assert "GET /test -> 200" in record.getMessage()
        assert record.status_code == 200


# ────────────────────────────────────────────────────────────────────────────
# Request-id log correlation
# ────────────────────────────────────────────────────────────────────────────


class TestRequestIDCorrelation:
    @pytest.mark.asyncio
    async def test_request_id_visible_inside_the_request(self, test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/context", headers={REQUEST_ID_HEADER: "trace-42"})

        assert resp.json() == {"request_id": "trace-42"}
        assert request_id_ctx.get() is None

    def test_filter_copies_request_id_onto_records(self):
        record = logging.LogRecord("backoffice", logging.INFO, __file__, 1, "hello", None, None)
        token = request_id_ctx.set("trace-42")
        try:
            RequestIDFilter().filter(record)
        finally:
            request_id_ctx.reset(token)

        assert record.request_id == "trace-42"
        payload = json.loads(JSONFormatter().format(record))
        assert payload["request_id"] == "trace-42"
        assert payload["message"] == "hello"

    def test_json_formatter_includes_upstream_source(self):
        record = logging.LogRecord("backoffice", logging.ERROR, __file__, 1, "read failed", None, None)
        record.source = "investments"

        payload = json.loads(JSONFormatter().format(record))

        assert payload["level"] == "ERROR"
        assert payload["source"] == "investments"
        assert "request_id" not in payload


class TestSetupLogging:
    def test_installs_console_and_rotating_files(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        root.handlers.clear()

        setup_logging(str(tmp_path))
        installed = root.handlers[:]
        try:
            assert len(installed) == 3
            assert [h.level for h in installed[1:]] == [root.level, logging.ERROR]
            assert (tmp_path / LOG_FILE).exists()
            assert (tmp_path / ERROR_LOG_FILE).exists()

            setup_logging(str(tmp_path))
            assert len(root.handlers) == 3
        finally:
            for handler in installed:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
