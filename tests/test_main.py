"""
Tests for application start-up and the health probe.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from backoffice import main


class _UnreachableEngine:
    def begin(self):
        raise OperationalError("CONNECT", {}, Exception("connection refused"))


class TestCreateTables:
    @pytest.mark.asyncio
    async def test_creates_tables_on_sqlite(self):
        assert await main.create_tables(attempts=1, backoff=0) is True
        await main.engine.dispose()

    @pytest.mark.asyncio
    async def test_backs_off_then_gives_up(self, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr(main, "engine", _UnreachableEngine())
        monkeypatch.setattr(main.asyncio, "sleep", fake_sleep)

        assert await main.create_tables(attempts=3, backoff=0.5) is False
        assert delays == [0.5, 1.0]


class TestHealth:
    @pytest.mark.asyncio
    async def test_reports_components(self):
        transport = ASGITransport(app=main.create_app())
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["database"] is True
        assert body["waiting_period_days"] == 60
        assert body["circuit_breaker"]["state"] == "closed"
        assert "X-Request-ID" in resp.headers
