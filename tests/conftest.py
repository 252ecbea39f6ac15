import os
import sys
import tempfile
import uuid
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

tmp_dir = tempfile.mkdtemp()
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{os.path.join(tmp_dir, 'test.db')}"
os.environ["ENV"] = "test"
os.environ["SECRET_KEY"] = "test-secret"
for key in ("REDIS_URL", "VAPID_PRIVATE_KEY", "SES_SENDER", "FROM_EMAIL"):
    os.environ.pop(key, None)

from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.services import realtime  # noqa: E402


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(client):
    """Registers a fresh user and returns ``(user_id, auth_headers, email)``."""

    def _make(name: str = "Alex"):
        email = f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com"
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": email, "password": "correct-horse", "name": name},
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        # drop the auth cookie so each request authenticates with its own header
        client.cookies.clear()
        return data["user"]["id"], {"Authorization": f"Bearer {data['accessToken']}"}, email

    return _make


@pytest.fixture
def events(monkeypatch):
    """Captures partner notifications instead of routing them."""
    sent = []

    async def fake_notify(session_id, partner_id, event, data):
        sent.append({"session_id": session_id, "partner_id": partner_id, "event": event, "data": data})
        return "publish"

    monkeypatch.setattr(realtime, "notify_partner", fake_notify)
    return sent


@pytest.fixture
def invited(client, make_user):
    """A session created by one user with a pending invitation for another."""
    a_id, a_headers, _ = make_user("Alex")
    b_id, b_headers, b_email = make_user("Blair")
    resp = client.post(
        "/api/v1/sessions",
        json={"inviteEmail": b_email, "inviteName": "Blair", "context": "Chores"},
        headers=a_headers,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    return {
        "session_id": data["session"]["id"],
        "invitation_id": data["invitation"]["id"],
        "a_id": a_id,
        "a": a_headers,
        "b_id": b_id,
        "b": b_headers,
        "create": data,
    }


@pytest.fixture
def active(client, invited):
    """Both partners joined; the session is ACTIVE."""
    resp = client.post(f"/api/v1/invitations/{invited['invitation_id']}/accept", headers=invited["b"])
    assert resp.status_code == 200, resp.text
    return invited
