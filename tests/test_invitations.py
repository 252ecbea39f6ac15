import asyncio
from datetime import datetime, timedelta, timezone

from app.db.models import Invitation
from app.db.session import SessionLocal


def expire(invitation_id):
    async def _expire():
        async with SessionLocal() as db:
            invitation = await db.get(Invitation, invitation_id)
            invitation.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
            await db.commit()

    asyncio.run(_expire())


def test_create_session_sends_invitation(client, invited):
    data = invited["create"]
    assert data["session"]["status"] == "INVITED"
    assert data["session"]["myStage"] == 0
    assert data["session"]["partner"] is None
    assert data["invitation"]["status"] == "PENDING"
    assert data["invitation"]["invitedBy"]["id"] == invited["a_id"]
    assert data["invitationUrl"].endswith(f"/invitation/{invited['invitation_id']}")

    created = datetime.fromisoformat(data["invitation"]["createdAt"])
    expires = datetime.fromisoformat(data["invitation"]["expiresAt"])
    assert timedelta(days=6, hours=23) < expires - created <= timedelta(days=7, minutes=1)


def test_cannot_invite_yourself(client, make_user):
    _, headers, email = make_user("Sam")
    resp = client.post("/api/v1/sessions", json={"inviteEmail": email}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_invitation_is_public(client, invited):
    resp = client.get(f"/api/v1/invitations/{invited['invitation_id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["invitation"]["recipientName"] == "Blair"

    assert client.get("/api/v1/invitations/nope").status_code == 404


def test_accept_activates_session(client, invited, events):
    resp = client.post(f"/api/v1/invitations/{invited['invitation_id']}/accept", headers=invited["b"])
    assert resp.status_code == 200
    session = resp.json()["data"]["session"]
    assert session["status"] == "ACTIVE"
    assert session["partner"]["id"] == invited["a_id"]
    assert session["myStage"] == 0
    assert session["myStageStatus"] == "IN_PROGRESS"

    assert [e["event"] for e in events] == ["invitation.accepted"]
    assert events[0]["partner_id"] == invited["a_id"]

    detail = client.get(f"/api/v1/sessions/{invited['session_id']}", headers=invited["a"]).json()["data"]
    assert detail["session"]["partner"]["name"] == "Blair"


def test_accepting_twice_is_a_conflict(client, active, make_user):
    url = f"/api/v1/invitations/{active['invitation_id']}/accept"
    resp = client.post(url, headers=active["b"])
    assert resp.status_code == 409
    error = resp.json()["error"]
    assert error["code"] == "CONFLICT"
    assert error["details"] == {"status": "ACCEPTED"}

    _, other, _ = make_user("Casey")
    assert client.post(url, headers=other).status_code == 409


def test_inviter_cannot_accept_own_invitation(client, invited):
    resp = client.post(f"/api/v1/invitations/{invited['invitation_id']}/accept", headers=invited["a"])
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"


def test_decline_abandons_session(client, invited, events):
    url = f"/api/v1/invitations/{invited['invitation_id']}"
    resp = client.post(f"{url}/decline", json={"reason": "Not now"}, headers=invited["b"])
    assert resp.status_code == 200
    assert resp.json()["data"]["declined"] is True
    assert [e["event"] for e in events] == ["invitation.declined"]

    session = client.get(f"/api/v1/sessions/{invited['session_id']}", headers=invited["a"]).json()["data"]["session"]
    assert session["status"] == "ABANDONED"

    resp = client.post(f"{url}/accept", headers=invited["b"])
    assert resp.status_code == 409
    assert resp.json()["error"]["details"]["status"] == "DECLINED"


def test_expired_invitation_conflicts_until_resent(client, invited):
    url = f"/api/v1/invitations/{invited['invitation_id']}"
    expire(invited["invitation_id"])

    assert client.get(url).json()["data"]["invitation"]["status"] == "EXPIRED"

    resp = client.post(f"{url}/accept", headers=invited["b"])
    assert resp.status_code == 409
    assert resp.json()["error"]["details"]["status"] == "EXPIRED"

    resp = client.post(f"{url}/resend", headers=invited["a"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["sent"] is True
    assert datetime.fromisoformat(data["expiresAt"]) > datetime.fromisoformat(data["sentAt"])

    assert client.get(url).json()["data"]["invitation"]["status"] == "PENDING"
    assert client.post(f"{url}/accept", headers=invited["b"]).status_code == 200


def test_only_inviter_can_resend(client, invited):
    resp = client.post(f"/api/v1/invitations/{invited['invitation_id']}/resend", headers=invited["b"])
    assert resp.status_code == 403


def test_resend_after_accept_is_a_conflict(client, active):
    resp = client.post(f"/api/v1/invitations/{active['invitation_id']}/resend", headers=active["a"])
    assert resp.status_code == 409
