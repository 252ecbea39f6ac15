import pytest


def emotions_url(session_id):
    return f"/api/v1/sessions/{session_id}/emotions"


@pytest.mark.parametrize("intensity", [0, 11, 5.5, "5"])
def test_intensity_outside_range_or_not_integer_is_rejected(client, invited, intensity):
    resp = client.post(emotions_url(invited["session_id"]), json={"intensity": intensity}, headers=invited["a"])
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert "intensity" in body["error"]["details"]


def test_context_longer_than_500_is_rejected(client, invited):
    resp = client.post(
        emotions_url(invited["session_id"]),
        json={"intensity": 4, "context": "x" * 501},
        headers=invited["a"],
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.parametrize("intensity,suggest", [(1, False), (7, False), (8, True), (10, True)])
def test_high_intensity_suggests_exercise(client, invited, intensity, suggest):
    resp = client.post(emotions_url(invited["session_id"]), json={"intensity": intensity}, headers=invited["a"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["suggestExercise"] is suggest
    assert data["reading"]["intensity"] == intensity
    assert data["reading"]["id"]
    assert data["reading"]["timestamp"]


def test_readings_are_private_and_newest_first(client, active):
    url = emotions_url(active["session_id"])
    for value in (3, 6, 9):
        assert client.post(url, json={"intensity": value, "context": f"at {value}"}, headers=active["a"]).status_code == 200
    client.post(url, json={"intensity": 2}, headers=active["b"])

    readings = client.get(url, headers=active["a"]).json()["data"]["readings"]
    assert [r["intensity"] for r in readings] == [9, 6, 3]
    assert readings[0]["context"] == "at 9"
    assert readings[0]["stage"] == 0

    partner = client.get(url, headers=active["b"]).json()["data"]["readings"]
    assert [r["intensity"] for r in partner] == [2]


def test_non_participant_gets_not_found(client, invited, make_user):
    _, outsider, _ = make_user("Casey")
    resp = client.post(emotions_url(invited["session_id"]), json={"intensity": 5}, headers=outsider)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"

    resp = client.get(emotions_url("does-not-exist"), headers=invited["a"])
    assert resp.status_code == 404


def test_requires_authentication(client, invited):
    resp = client.get(emotions_url(invited["session_id"]))
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


def test_exercise_completion_reports_delta(client, invited):
    url = f"/api/v1/sessions/{invited['session_id']}/exercises/complete"
    resp = client.post(
        url,
        json={"type": "BREATHING_EXERCISE", "intensityBefore": 9, "intensityAfter": 5},
        headers=invited["a"],
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["logged"] is True
    assert data["completion"]["type"] == "BREATHING_EXERCISE"
    assert data["completion"]["intensityDelta"] == 4
    assert data["completion"]["completedAt"]

    resp = client.post(url, json={"type": "GROUNDING", "intensityBefore": 6}, headers=invited["a"])
    assert resp.json()["data"]["completion"]["intensityDelta"] is None


def test_exercise_type_must_be_known(client, invited):
    url = f"/api/v1/sessions/{invited['session_id']}/exercises/complete"
    resp = client.post(url, json={"type": "JOGGING"}, headers=invited["a"])
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_whole_number_float_intensity_is_accepted(client, invited):
    resp = client.post(emotions_url(invited["session_id"]), json={"intensity": 5.0}, headers=invited["a"])
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["reading"]["intensity"] == 5


def test_reading_keeps_stage_while_advance_is_blocked(client, active):
    sid = active["session_id"]
    for who in ("a", "b"):
        resp = client.post(f"/api/v1/sessions/{sid}/compact/sign", json={"agreed": True}, headers=active[who])
        assert resp.status_code == 200, resp.text
    resp = client.post(f"/api/v1/sessions/{sid}/stages/advance", json={}, headers=active["a"])
    assert resp.json()["data"]["newStage"] == 1
    client.post(emotions_url(sid), json={"intensity": 4}, headers=active["a"])

    blocked = client.post(f"/api/v1/sessions/{sid}/stages/advance", json={}, headers=active["a"]).json()["data"]
    assert blocked["advanced"] is False
    assert blocked["newStatus"] == "GATE_PENDING"
    client.post(emotions_url(sid), json={"intensity": 5}, headers=active["a"])

    readings = client.get(emotions_url(sid), headers=active["a"]).json()["data"]["readings"]
    assert [(r["intensity"], r["stage"]) for r in readings] == [(5, 1), (4, 1)]
