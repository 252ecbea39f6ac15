def url(session_id, path):
    return f"/api/v1/sessions/{session_id}/{path}"


def advance(client, ctx, who, force=False):
    resp = client.post(url(ctx["session_id"], "stages/advance"), json={"force": force}, headers=ctx[who])
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def both(client, ctx, path, body):
    for who in ("a", "b"):
        resp = client.post(url(ctx["session_id"], path), json=body, headers=ctx[who])
        assert resp.status_code == 200, resp.text


def test_compact_can_be_signed_before_partner_joins(client, invited):
    resp = client.post(url(invited["session_id"], "compact/sign"), json={"agreed": True}, headers=invited["a"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["signed"] is True
    assert data["partnerSigned"] is False
    assert data["canAdvance"] is False

    blocked = advance(client, invited, "a")
    assert blocked["advanced"] is False
    assert blocked["blockedReason"] == "Partner has not joined the session"
    assert blocked["newStatus"] == "GATE_PENDING"


def test_compact_requires_agreement(client, invited):
    resp = client.post(url(invited["session_id"], "compact/sign"), json={"agreed": False}, headers=invited["a"])
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_progress_lists_gates(client, active):
    resp = client.get(url(active["session_id"], "stages/progress"), headers=active["a"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["stage"] == 0
    assert data["status"] == "IN_PROGRESS"
    assert data["partnerStage"] == 0
    assert data["canAdvance"] is False
    assert data["advanceBlockedReason"] == "You signed the compact"
    assert [g["id"] for g in data["gates"]] == ["compact_signed", "partner_signed_compact"]
    assert {"id", "description", "satisfied", "requiredForAdvance"} <= set(data["gates"][0])


def test_force_skips_partner_gate_but_not_own(client, active):
    hard = advance(client, active, "a", force=True)
    assert hard["advanced"] is False
    assert hard["blockedReason"] == "You signed the compact"

    client.post(url(active["session_id"], "compact/sign"), json={"agreed": True}, headers=active["a"])
    assert advance(client, active, "a")["blockedReason"] == "Partner signed the compact"

    forced = advance(client, active, "a", force=True)
    assert forced["advanced"] is True
    assert forced["newStage"] == 1
    assert forced["newStatus"] == "IN_PROGRESS"


def test_stage_actions_require_current_stage(client, active):
    resp = client.post(url(active["session_id"], "feel-heard"), json={"confirmed": True}, headers=active["a"])
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "GATE_NOT_SATISFIED"


def test_stage_actions_require_active_session(client, active):
    assert client.post(url(active["session_id"], "pause"), json={}, headers=active["a"]).status_code == 200
    resp = client.post(url(active["session_id"], "compact/sign"), json={"agreed": True}, headers=active["a"])
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "SESSION_NOT_ACTIVE"

    resumed = client.post(url(active["session_id"], "resume"), headers=active["a"])
    assert resumed.status_code == 200
    assert resumed.json()["data"]["resumed"] is True
    resp = client.post(url(active["session_id"], "compact/sign"), json={"agreed": True}, headers=active["a"])
    assert resp.status_code == 200


def test_full_session_reaches_resolution(client, active, events):
    sid = active["session_id"]

    # Stage 0
    both(client, active, "compact/sign", {"agreed": True})
    assert advance(client, active, "a")["newStage"] == 1
    assert advance(client, active, "b")["newStage"] == 1

    # Stage 1
    resp = client.post(url(sid, "feel-heard"), json={"confirmed": True, "feedback": "Thanks"}, headers=active["a"])
    assert resp.json()["data"]["canAdvance"] is True
    client.post(url(sid, "feel-heard"), json={"confirmed": True}, headers=active["b"])
    assert advance(client, active, "a")["newStage"] == 2
    assert advance(client, active, "b")["newStage"] == 2

    # Stage 2
    waiting = client.get(url(sid, "empathy/partner"), headers=active["a"]).json()["data"]
    assert waiting["waitingForPartner"] is True
    assert waiting["attempt"] is None

    resp = client.post(url(sid, "empathy/draft"), json={"content": "You felt unseen.", "readyToShare": True}, headers=active["a"])
    assert resp.json()["data"]["draft"]["version"] == 1
    resp = client.post(url(sid, "empathy/draft"), json={"content": "You felt unseen and tired.", "readyToShare": True}, headers=active["a"])
    assert resp.json()["data"]["draft"]["version"] == 2
    assert client.get(url(sid, "empathy/draft"), headers=active["a"]).json()["data"]["canConsent"] is True

    resp = client.post(url(sid, "empathy/validate"), json={"validated": True}, headers=active["a"])
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "CONSENT_REQUIRED"

    shared = client.post(url(sid, "empathy/consent"), json={"consent": True}, headers=active["a"]).json()["data"]
    assert shared["consented"] is True
    assert shared["waitingForPartner"] is True

    resp = client.post(url(sid, "empathy/draft"), json={"content": "Edited"}, headers=active["a"])
    assert resp.status_code == 409

    client.post(url(sid, "empathy/draft"), json={"content": "You felt rushed.", "readyToShare": True}, headers=active["b"])
    shared = client.post(url(sid, "empathy/consent"), json={"consent": True}, headers=active["b"]).json()["data"]
    assert shared["partnerAttempt"]["content"] == "You felt unseen and tired."

    partner = client.get(url(sid, "empathy/partner"), headers=active["a"]).json()["data"]
    assert partner["attempt"]["content"] == "You felt rushed."
    assert partner["validated"] is False

    assert advance(client, active, "a")["blockedReason"] == "Partner validated your empathy statement"
    both(client, active, "empathy/validate", {"validated": True})
    assert advance(client, active, "a")["newStage"] == 3
    assert advance(client, active, "b")["newStage"] == 3

    # Stage 3
    for who in ("a", "b"):
        resp = client.post(
            url(sid, "needs"),
            json={"needs": [{"category": "Rest", "description": "Time to recharge"}]},
            headers=active[who],
        )
        needs = resp.json()["data"]["needs"]
        assert len(needs) == 1 and needs[0]["confirmed"] is False
        resp = client.post(url(sid, "needs/confirm"), json={"needIds": [needs[0]["id"]]}, headers=active[who])
        assert resp.status_code == 200, resp.text

    listed = client.get(url(sid, "needs"), headers=active["a"]).json()["data"]
    assert listed["partnerConfirmed"] is True
    assert listed["partnerNeeds"][0]["description"] == "Time to recharge"

    assert advance(client, active, "a")["newStage"] == 4
    assert advance(client, active, "b")["newStage"] == 4

    # Stage 4
    resp = client.post(
        url(sid, "strategies"),
        json={"description": "Alternate who cooks on weekdays", "needsAddressed": ["Rest"], "duration": "2 weeks"},
        headers=active["a"],
    )
    assert resp.status_code == 200, resp.text
    strategy_id = resp.json()["data"]["strategy"]["id"]

    strategies = client.get(url(sid, "strategies"), headers=active["b"]).json()["data"]["strategies"]
    assert [s["id"] for s in strategies] == [strategy_id]
    assert "proposedById" not in strategies[0]

    resp = client.post(url(sid, "agreement/confirm"), json={"confirmed": True}, headers=active["a"])
    assert resp.json()["error"]["code"] == "GATE_NOT_SATISFIED"

    both(client, active, "strategies/rank", {"rankedIds": [strategy_id]})
    assert advance(client, active, "a")["blockedReason"] == "Final stage reached"

    first = client.post(url(sid, "agreement/confirm"), json={"confirmed": True}, headers=active["a"]).json()["data"]
    assert first == {"confirmed": True, "partnerConfirmed": False, "sessionResolved": False}
    second = client.post(url(sid, "agreement/confirm"), json={"confirmed": True}, headers=active["b"]).json()["data"]
    assert second["sessionResolved"] is True

    session = client.get(f"/api/v1/sessions/{sid}", headers=active["a"]).json()["data"]["session"]
    assert session["status"] == "RESOLVED"
    assert session["resolvedAt"]
    assert session["myStageStatus"] == "COMPLETED"

    sent = {e["event"] for e in events}
    assert {
        "partner.signed_compact",
        "partner.stage_completed",
        "partner.advanced",
        "partner.empathy_shared",
        "partner.needs_shared",
        "agreement.proposed",
        "partner.ranking_submitted",
        "agreement.confirmed",
        "session.resolved",
    } <= sent

    resp = client.post(url(sid, "stages/advance"), json={}, headers=active["a"])
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "SESSION_NOT_ACTIVE"


def test_rank_rejects_unknown_or_duplicate_ids(client, active):
    ctx = active
    sid = ctx["session_id"]
    both(client, ctx, "compact/sign", {"agreed": True})
    for _ in range(4):
        for who in ("a", "b"):
            advance(client, ctx, who, force=True)
            stage = client.get(url(sid, "stages/progress"), headers=ctx[who]).json()["data"]["stage"]
            if stage == 1:
                client.post(url(sid, "feel-heard"), json={"confirmed": True}, headers=ctx[who])
            elif stage == 2:
                client.post(url(sid, "empathy/draft"), json={"content": "Seen", "readyToShare": True}, headers=ctx[who])
                client.post(url(sid, "empathy/consent"), json={"consent": True}, headers=ctx[who])
            elif stage == 3:
                needs = client.post(
                    url(sid, "needs"),
                    json={"needs": [{"category": "Safety", "description": "Calm talks"}]},
                    headers=ctx[who],
                ).json()["data"]["needs"]
                client.post(url(sid, "needs/confirm"), json={"needIds": [needs[0]["id"]]}, headers=ctx[who])

    assert client.get(url(sid, "stages/progress"), headers=ctx["a"]).json()["data"]["stage"] == 4

    resp = client.post(url(sid, "strategies/rank"), json={"rankedIds": ["missing"]}, headers=ctx["a"])
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    strategy = client.post(
        url(sid, "strategies"),
        json={"description": "Weekly check-in on Sundays", "needsAddressed": ["Safety"]},
        headers=ctx["b"],
    ).json()["data"]["strategy"]
    resp = client.post(url(sid, "strategies/rank"), json={"rankedIds": [strategy["id"], strategy["id"]]}, headers=ctx["a"])
    assert resp.status_code == 400

    resp = client.post(url(sid, "strategies"), json={"description": "short", "needsAddressed": []}, headers=ctx["a"])
    assert resp.status_code == 400
    assert set(resp.json()["error"]["details"]) == {"description", "needsAddressed"}
