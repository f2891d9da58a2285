"""Pytest fixtures.

Tests build the app through ``create_app`` with in-memory backends and a
recording notifier, and do not enter the lifespan (no Redis, no network).
"""
import sys
from pathlib import Path
import pytest
from fastapi.testclient import TestClient

# Ensure project root on sys.path so 'invite_request' resolves without installation
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from invite_request.config import Settings  # noqa: E402
from invite_request.main import create_app  # noqa: E402
from invite_request.session import MemorySessionStore  # noqa: E402
from invite_request.utils.ratelimiter import InMemoryRateLimiter  # noqa: E402

JANE = {
    "kind": "plus#person",
    "displayName": "Jane Doe",
    "emails": [{"value": "jane@x.com", "type": "account"}],
    "url": "https://plus.google.com/1001",
    "image": {"url": "https://lh3.googleusercontent.com/jane.jpg"},
}


class RecordingNotifier:
    """Stands in for SlackNotifier; keeps every message instead of posting it."""

    def __init__(self):
        self.messages = []
        self.request_ids = []

    async def send(self, message, *, request_id=None):
        self.messages.append(message)
        self.request_ids.append(request_id)
        return True

    @property
    def payloads(self):
        return [m.to_payload() for m in self.messages]


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def settings(tmp_path):
    (tmp_path / "public").mkdir()
    return Settings(
        ga_token="UA-TEST-1",
        slack_webhook_url="https://hooks.slack.test/services/T000/B000/XXXX",
        google_client_id="client-123.apps.googleusercontent.com",
        slack_channel="#invites",
        session_backend="memory",
        rate_limit_backend="memory",
        rate_limit_max=3,
        rate_limit_window_seconds=60,
        public_dir=tmp_path / "public",
    )


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def rate_limiter(clock):
    return InMemoryRateLimiter(clock=clock)


@pytest.fixture()
def session_store():
    return MemorySessionStore()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def app(settings, session_store, rate_limiter, notifier):
    return create_app(settings, session_store=session_store, rate_limiter=rate_limiter, notifier=notifier)


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def identity_payload():
    return {**JANE, "emails": [dict(e) for e in JANE["emails"]], "image": dict(JANE["image"])}


@pytest.fixture()
def signed_in_client(client, identity_payload):
    r = client.post("/signin", json={"user": identity_payload})
    assert r.status_code == 200, r.text
    return client
