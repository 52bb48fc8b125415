"""Unit tests for the HTTP status surface."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from httpx import AsyncClient, ASGITransport

from commandbot.adapters.web.server import create_app
from commandbot.config import AppConfig
from commandbot.domain.models import ConnectionState, Identity, Session
from commandbot.domain.status import StatusReporter


@pytest.fixture
def session():
    return Session()


@pytest.fixture
def restart():
    return MagicMock()


@pytest.fixture
def config():
    return AppConfig(port=8080, restart_secret="s3cret", service_name="test-bot")


@pytest.fixture
def transport(session, config, restart):
    app = create_app(StatusReporter(session), config, restart)
    return ASGITransport(app=app)


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_while_connecting(self, transport, session):
        session.state = ConnectionState.CONNECTING
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["service"] == "test-bot"
        assert data["uptime"] >= 0
        parsed = datetime.fromisoformat(data["timestamp"])
        assert parsed.tzinfo is not None

    @pytest.mark.asyncio
    async def test_health_while_terminal(self, transport, session):
        session.state = ConnectionState.TERMINAL
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/health")
        assert resp.json()["status"] == "healthy"


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_snapshot(self, transport, session):
        session.state = ConnectionState.CONNECTED
        session.identity = Identity(id="1", name="HelperBot")
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/status")
        data = resp.json()
        assert data["state"] == "connected"
        assert data["connected"] is True
        assert data["identity"] == "HelperBot"
        assert data["pairingPending"] is False
        assert data["credentialsHealthy"] is True


class TestPairing:
    @pytest.mark.asyncio
    async def test_qr_instructions(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/qr")
        assert resp.status_code == 200
        assert "SCAN THIS QR CODE" in resp.text

    @pytest.mark.asyncio
    async def test_qrcode_placeholder(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/qrcode")
        assert resp.status_code == 200
        assert resp.text == "No QR code available. Check logs."

    @pytest.mark.asyncio
    async def test_qrcode_renders_payload_escaped(self, transport, session):
        session.pairing_payload = "https://example.test/pair?a=1&b=<2>"
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/qrcode")
        assert "<pre>https://example.test/pair?a=1&amp;b=&lt;2&gt;</pre>" in resp.text


class TestRestart:
    @pytest.mark.asyncio
    async def test_restart_authorized(self, transport, restart):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/restart", params={"secret": "s3cret"})
        assert resp.status_code == 200
        assert resp.text == "Restarting bot..."
        restart.assert_called_once()

    @pytest.mark.asyncio
    async def test_restart_wrong_secret(self, transport, restart):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/restart", params={"secret": "guess"})
        assert resp.status_code == 403
        assert resp.text == "Unauthorized"
        restart.assert_not_called()

    @pytest.mark.asyncio
    async def test_restart_missing_secret(self, transport, restart):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/restart")
        assert resp.status_code == 403
        restart.assert_not_called()

    @pytest.mark.asyncio
    async def test_restart_disabled_without_configured_secret(self, session, restart):
        app = create_app(StatusReporter(session), AppConfig(restart_secret=None), restart)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            resp = await ac.get("/restart", params={"secret": ""})
        assert resp.status_code == 403
        restart.assert_not_called()


class TestDashboard:
    @pytest.mark.asyncio
    async def test_root_page(self, transport, session):
        session.state = ConnectionState.CONNECTED
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/")
        assert resp.status_code == 200
        assert "Port: 8080" in resp.text
        assert "Connected" in resp.text
        assert 'href="/health"' in resp.text

    @pytest.mark.asyncio
    async def test_root_page_warns_on_credential_failure(self, transport, session):
        session.credentials_healthy = False
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/")
        assert "Credential storage failed" in resp.text
