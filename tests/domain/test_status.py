"""Tests for StatusReporter — read-only view over Session."""

from commandbot.domain.models import ConnectionState, Identity, Session
from commandbot.domain.status import StatusReporter


def test_defaults():
    session = Session()
    reporter = StatusReporter(session)
    assert reporter.connected is False
    assert reporter.state == "disconnected"
    assert reporter.identity_name is None
    assert reporter.pairing_payload is None
    assert reporter.credentials_healthy is True


def test_uptime_uses_clock():
    session = Session(started_at=100.0)
    reporter = StatusReporter(session, clock=lambda: 130.5)
    assert reporter.uptime() == 30.5


def test_uptime_never_negative():
    session = Session(started_at=100.0)
    reporter = StatusReporter(session, clock=lambda: 50.0)
    assert reporter.uptime() == 0.0


def test_reflects_session_changes():
    session = Session()
    reporter = StatusReporter(session)
    session.state = ConnectionState.CONNECTED
    session.identity = Identity(id="42", name="Bot")
    session.pairing_payload = "pair-me"
    assert reporter.connected is True
    assert reporter.identity_name == "Bot"
    assert reporter.identity_id == "42"
    assert reporter.pairing_payload == "pair-me"


def test_snapshot():
    session = Session(state=ConnectionState.CONNECTING, retry_count=2, last_disconnect=408, started_at=10.0)
    snap = StatusReporter(session, clock=lambda: 11.0).snapshot()
    assert snap == {
        "state": "connecting",
        "connected": False,
        "identity": None,
        "last_disconnect": 408,
        "retry_count": 2,
        "pairing_pending": False,
        "credentials_healthy": True,
        "uptime": 1.0,
    }


def test_snapshot_does_not_mutate():
    session = Session(pairing_payload="code")
    reporter = StatusReporter(session)
    reporter.snapshot()
    reporter.snapshot()
    assert session.pairing_payload == "code"
