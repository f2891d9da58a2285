import asyncio

import aiohttp
import pytest

from invite_request.models.schemas.notification import Attachment, NotificationMessage
from invite_request.services import notifier as notifier_module
from invite_request.services.notifier import SlackNotifier

WEBHOOK = "https://hooks.slack.test/services/T000/B000/XXXX"


def _message():
    return NotificationMessage(
        channel="#invites",
        username="SIR",
        attachments=[Attachment(fallback="Jane Doe wants to join Slack")],
    )


class FakeResponse:
    def __init__(self, status, body="ok"):
        self.status = status
        self._body = body

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeClientSession:
    """Replaces aiohttp.ClientSession; records posts and answers with ``outcome``."""
    posts = []
    outcome = None

    def __init__(self, timeout=None):
        self.timeout = timeout

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def post(self, url, json=None):
        FakeClientSession.posts.append((url, json))
        if isinstance(FakeClientSession.outcome, BaseException):
            raise FakeClientSession.outcome
        return FakeResponse(FakeClientSession.outcome)


@pytest.fixture()
def fake_session(monkeypatch):
    FakeClientSession.posts = []
    FakeClientSession.outcome = 200
    monkeypatch.setattr(notifier_module.aiohttp, "ClientSession", FakeClientSession)
    return FakeClientSession


def test_successful_post(fake_session):
    ok = asyncio.run(SlackNotifier(WEBHOOK).send(_message(), request_id="req-1"))
    assert ok is True
    ((url, payload),) = fake_session.posts
    assert url == WEBHOOK
    assert payload == {
        "channel": "#invites",
        "username": "SIR",
        "attachments": [{"fallback": "Jane Doe wants to join Slack", "fields": []}],
    }


@pytest.mark.parametrize("outcome", [
    500,
    404,
    asyncio.TimeoutError(),
    aiohttp.ClientConnectionError("connection refused"),
])
def test_failures_are_swallowed(fake_session, outcome):
    fake_session.outcome = outcome
    assert asyncio.run(SlackNotifier(WEBHOOK).send(_message())) is False
    assert len(fake_session.posts) == 1


def test_timeout_is_configured():
    assert SlackNotifier(WEBHOOK, timeout_seconds=2.5).timeout.total == 2.5
