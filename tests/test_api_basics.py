from fastapi.testclient import TestClient

from app.main import app


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["status"] == "ok"


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.json() == {
        "success": False,
        "error": {"code": "NOT_FOUND", "message": "Route GET /api/v1/nope not found"},
    }


def test_register_login_and_me(client, make_user):
    user_id, headers, email = make_user("Robin")

    dup = client.post("/api/v1/auth/register", json={"email": email, "password": "another-pass"})
    assert dup.status_code == 409
    assert dup.json()["error"]["code"] == "CONFLICT"

    bad = client.post("/api/v1/auth/login", json={"email": email, "password": "wrong-password"})
    assert bad.status_code == 401
    assert bad.json()["error"]["code"] == "UNAUTHORIZED"

    good = client.post("/api/v1/auth/login", json={"email": email, "password": "correct-horse"})
    assert good.status_code == 200
    assert good.json()["data"]["user"]["id"] == user_id
    client.cookies.clear()

    me = client.get("/api/v1/me", headers=headers).json()["data"]
    assert me["user"]["email"] == email
    assert me["activeSessions"] == 0
    assert me["pushNotificationsEnabled"] is False

    renamed = client.patch("/api/v1/me", json={"name": "Rob"}, headers=headers).json()["data"]
    assert renamed["user"]["name"] == "Rob"


def test_short_password_is_rejected(client):
    resp = client.post("/api/v1/auth/register", json={"email": "short@example.com", "password": "123"})
    assert resp.status_code == 400
    assert "password" in resp.json()["error"]["details"]


def test_invalid_token_is_unauthorized(client):
    resp = client.get("/api/v1/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


def test_push_subscription_roundtrip(client, make_user):
    _, headers, _ = make_user("Jordan")
    subscription = {"endpoint": "https://push.example.com/abc", "keys": {"p256dh": "key", "auth": "secret"}}

    resp = client.post("/api/v1/me/push-subscription", json=subscription, headers=headers)
    assert resp.json()["data"] == {"registered": True}
    # registering the same endpoint again keeps one subscription
    client.post("/api/v1/me/push-subscription", json=subscription, headers=headers)
    assert client.get("/api/v1/me", headers=headers).json()["data"]["pushNotificationsEnabled"] is True

    resp = client.post(
        "/api/v1/me/push-subscription/unregister",
        json={"endpoint": subscription["endpoint"]},
        headers=headers,
    )
    assert resp.json()["data"] == {"unregistered": True}
    assert client.get("/api/v1/me", headers=headers).json()["data"]["pushNotificationsEnabled"] is False


def test_list_sessions_filters_by_status(client, active, make_user):
    items = client.get("/api/v1/sessions", headers=active["a"]).json()["data"]
    assert items["total"] == 1
    assert items["items"][0]["id"] == active["session_id"]
    assert items["items"][0]["partner"]["id"] == active["b_id"]

    none = client.get("/api/v1/sessions?status=RESOLVED", headers=active["a"]).json()["data"]
    assert none == {"items": [], "total": 0}

    assert client.get("/api/v1/sessions?limit=0", headers=active["a"]).status_code == 400


def test_pause_notifies_partner(client, active, events):
    resp = client.post(f"/api/v1/sessions/{active['session_id']}/pause", json={"reason": "Need a break"}, headers=active["a"])
    assert resp.status_code == 200
    assert resp.json()["data"]["paused"] is True
    assert events[-1]["event"] == "session.paused"
    assert events[-1]["partner_id"] == active["b_id"]
    assert events[-1]["data"]["reason"] == "Need a break"

    again = client.post(f"/api/v1/sessions/{active['session_id']}/pause", json={}, headers=active["a"])
    assert again.status_code == 400
    assert again.json()["error"]["code"] == "SESSION_NOT_ACTIVE"


def test_unhandled_errors_hide_details(monkeypatch, active):
    from app.api import sessions as sessions_api

    async def broken(*args, **kwargs):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(sessions_api, "build_session_detail", broken)
    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.get(f"/api/v1/sessions/{active['session_id']}", headers=active["a"])
    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"},
    }
