import asyncio

import pytest

from app.services import realtime
from app.utils.messaging import build_push_payload, send_email_via_ses, send_invitation_email, send_push_notification
from app.utils.messaging import email as email_module


@pytest.fixture
def calls(monkeypatch):
    recorded = {"publish": [], "push": []}

    async def fake_publish(session_id, event, data, exclude_user_id=None):
        recorded["publish"].append((session_id, event, data))

    async def fake_push(user_id, event, data, session_id=None):
        recorded["push"].append((user_id, event, data, session_id))
        return True

    monkeypatch.setattr(realtime, "publish_session_event", fake_publish)
    monkeypatch.setattr(realtime, "send_push_notification", fake_push)
    return recorded


def set_presence(monkeypatch, present: bool):
    async def fake_present(session_id, user_id):
        return present

    monkeypatch.setattr(realtime, "is_user_present", fake_present)


def test_present_partner_gets_publish_not_push(monkeypatch, calls):
    set_presence(monkeypatch, True)
    path = asyncio.run(realtime.notify_partner("s1", 7, "partner.advanced", {"stage": 1}))
    assert path == "publish"
    assert calls["publish"] == [("s1", "partner.advanced", {"stage": 1})]
    assert calls["push"] == []


def test_absent_partner_gets_push_not_publish(monkeypatch, calls):
    set_presence(monkeypatch, False)
    path = asyncio.run(realtime.notify_partner("s1", 7, "session.paused", {}))
    assert path == "push"
    assert calls["push"] == [(7, "session.paused", {}, "s1")]
    assert calls["publish"] == []


class BrokenRedis:
    async def smembers(self, key):
        raise ConnectionError("redis down")


class FakeRedis:
    def __init__(self, members):
        self.members = members

    async def smembers(self, key):
        assert key == "beheard:session:s1:presence"
        return self.members


def test_presence_error_degrades_to_push(monkeypatch, calls):
    async def broken():
        return BrokenRedis()

    monkeypatch.setattr(realtime, "get_redis", broken)
    assert asyncio.run(realtime.is_user_present("s1", 7)) is False
    assert asyncio.run(realtime.notify_partner("s1", 7, "partner.signed_compact", {})) == "push"
    assert calls["publish"] == []


def test_presence_reads_the_session_presence_set(monkeypatch):
    async def fake():
        return FakeRedis({"7", "9"})

    monkeypatch.setattr(realtime, "get_redis", fake)
    assert asyncio.run(realtime.is_user_present("s1", 7)) is True
    assert asyncio.run(realtime.is_user_present("s1", 8)) is False


def test_mock_mode_nobody_is_present():
    # REDIS_URL is unset in the test environment
    assert asyncio.run(realtime.is_user_present("s1", 7)) is False
    asyncio.run(realtime.publish_session_event("s1", "partner.advanced", {"stage": 2}))


def test_publish_failure_is_raised(monkeypatch):
    class FailingRedis:
        async def publish(self, channel, message):
            raise ConnectionError("redis down")

    async def failing():
        return FailingRedis()

    monkeypatch.setattr(realtime, "get_redis", failing)
    with pytest.raises(ConnectionError):
        asyncio.run(realtime.publish_session_event("s1", "partner.advanced", {}))


def test_dispatch_never_fails_the_caller(monkeypatch):
    async def exploding(*args):
        raise RuntimeError("boom")

    monkeypatch.setattr(realtime, "notify_partner", exploding)
    asyncio.run(realtime.dispatch_partner_event("s1", 7, "partner.advanced", {}))


def test_event_message_shape():
    message = realtime.build_event_message("s1", "partner.advanced", {"stage": 2}, exclude_user_id=3)
    assert message["event"] == "partner.advanced"
    assert message["data"]["sessionId"] == "s1"
    assert message["data"]["excludeUserId"] == 3
    assert message["data"]["stage"] == 2
    assert isinstance(message["data"]["timestamp"], int)
    assert realtime.get_session_channel_name("s1") == "beheard:session:s1"


def test_push_payload_and_mock_delivery():
    payload = build_push_payload("partner.signed_compact", {"userId": 1}, "s1")
    assert payload["title"] == "Your partner signed the compact"
    assert payload["data"]["event"] == "partner.signed_compact"
    assert payload["url"] == "/session/s1"

    unknown = build_push_payload("something.else", {})
    assert unknown["title"] == "BeHeard"

    # VAPID keys are unset: logged, reported as sent
    assert asyncio.run(send_push_notification(1, "session.paused", {}, "s1")) is True


def test_email_mock_mode():
    result = send_email_via_ses("someone@example.com", "Hi", "<p>Hi</p>", "Hi")
    assert result["success"] is True
    assert result["mocked"] is True
    assert result["message_id"].startswith("mock-")


def test_invitation_email_escapes_inviter_name(monkeypatch):
    sent = {}

    def capture(to_email, subject, body_html, body_text):
        sent.update(subject=subject, html=body_html, text=body_text)
        return {"success": True}

    monkeypatch.setattr(email_module, "send_email_via_ses", capture)
    send_invitation_email("partner@example.com", "<a href=x>Sam</a>", "https://app.test/invitation/1")

    assert "<a href=x>" not in sent["html"]
    assert "&lt;a href=x&gt;Sam&lt;/a&gt; wants to talk" in sent["html"]
    assert 'href="https://app.test/invitation/1"' in sent["html"]
