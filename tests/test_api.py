"""End-to-end flows through the HTTP API with in-memory storage."""

from tests.conftest import TEST_USER_ID

HEADERS = {"X-User-Id": TEST_USER_ID}

SQUAT_DAY = {
    "name": "Leg Day",
    "emoji": "🦵",
    "category": "Push Pull Legs",
    "exercises": [{"name": "Squat", "sets": [{"reps": "5", "weight": "225"}, {"reps": "5", "weight": "225"}]}],
}


def _create_template(client, payload=None, headers=HEADERS) -> dict:
    response = client.post("/api/v1/templates", json=payload or SQUAT_DAY, headers=headers)
    assert response.status_code == 201
    return response.json()


def _start(client, template_id) -> dict:
    response = client.post("/api/v1/session/start", json={"template_id": template_id}, headers=HEADERS)
    assert response.status_code == 201
    return response.json()


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "ok"
    assert client.get("/api/v1/health").json() == {"status": "ok"}
    ready = client.get("/api/v1/health/ready").json()
    assert ready == {"status": "ok", "storage": "InMemoryKeyValueStore"}


def test_template_crud(client):
    template = _create_template(client)
    assert template["id"]
    assert all(s["id"] for s in template["exercises"][0]["sets"])

    listed = client.get("/api/v1/templates", headers=HEADERS).json()
    assert [t["id"] for t in listed] == [template["id"]]
    assert client.get("/api/v1/templates?category=Other", headers=HEADERS).json() == []

    patched = client.patch(f"/api/v1/templates/{template['id']}", json={"name": "Legs"}, headers=HEADERS)
    assert patched.status_code == 200
    assert patched.json()["name"] == "Legs"
    assert patched.json()["exercises"][0]["name"] == "Squat"

    assert client.delete(f"/api/v1/templates/{template['id']}", headers=HEADERS).status_code == 204
    missing = client.get(f"/api/v1/templates/{template['id']}", headers=HEADERS)
    assert missing.status_code == 404
    assert missing.json()["error"] == "TemplateNotFoundError"


def test_categories(client):
    assert client.get("/api/v1/templates/categories", headers=HEADERS).json() == ["Push Pull Legs"]
    added = client.post("/api/v1/templates/categories/Upper Lower", headers=HEADERS)
    assert added.status_code == 201
    assert added.json() == ["Push Pull Legs", "Upper Lower"]
    assert client.post("/api/v1/templates/categories/Upper Lower", headers=HEADERS).status_code == 409
    remaining = client.delete("/api/v1/templates/categories/Push Pull Legs", headers=HEADERS)
    assert remaining.json() == ["Upper Lower"]


def test_users_are_isolated(client):
    _create_template(client)
    assert client.get("/api/v1/templates", headers={"X-User-Id": "someone-else"}).json() == []
    assert client.get("/api/v1/templates").json() == []


def test_validation_errors(client):
    assert client.post("/api/v1/templates", json={"name": ""}, headers=HEADERS).status_code == 422
    template = _create_template(client)
    _start(client, template["id"])
    assert client.post("/api/v1/session/exercises", json={"name": ""}, headers=HEADERS).status_code == 422


def test_session_lifecycle_with_drift(client, clock):
    template = _create_template(client)
    assert client.post("/api/v1/session/start", json={"template_id": "nope"}, headers=HEADERS).status_code == 404

    started = _start(client, template["id"])
    assert started["status"]["state"] == "active"
    assert started["events"][0]["type"] == "session_started"
    again = client.post("/api/v1/session/start", json={"template_id": template["id"]}, headers=HEADERS)
    assert again.status_code == 409

    session = started["status"]["session"]
    squat = session["exercises"][0]
    first_set = squat["sets"][0]["id"]
    toggled = client.post(
        f"/api/v1/session/exercises/{squat['id']}/sets/{first_set}/toggle", headers=HEADERS
    ).json()
    types = [e["type"] for e in toggled["events"]]
    assert types[0] == "set_completed"
    assert "pr_achieved" in types
    assert "rest_timer_armed" in types

    timer = client.get("/api/v1/rest-timer", headers=HEADERS).json()
    assert timer["state"]["active"] is True
    assert timer["state"]["remaining_seconds"] == 180

    added = client.post("/api/v1/session/exercises", json={"name": "leg curl"}, headers=HEADERS).json()
    curl = added["status"]["session"]["exercises"][1]
    assert curl["name"] == "Leg Curl"
    blank = client.post(f"/api/v1/session/exercises/{curl['id']}/sets/{curl['sets'][0]['id']}/toggle", headers=HEADERS)
    assert blank.status_code == 422
    assert blank.json()["error"] == "IncompleteSetError"

    clock.advance(50 * 60)
    finished = client.post("/api/v1/session/finish", json={"force_complete": True}, headers=HEADERS)
    assert finished.status_code == 200
    body = finished.json()
    assert body["record"]["duration"] == 50
    assert body["summary"]["total_sets"] == 2
    assert body["comparison"]["is_first_workout"] is True
    assert body["drift"] == ["Added 1 exercise"]
    assert [e["type"] for e in body["events"]][-1] == "session_finished"

    status = client.get("/api/v1/session", headers=HEADERS).json()
    assert status["state"] == "drift_check"
    assert status["pending_template_changes"] == ["Added 1 exercise"]

    accepted = client.post("/api/v1/session/template-drift", json={"accept": True}, headers=HEADERS).json()
    assert accepted["status"]["state"] == "idle"
    assert accepted["events"] == [{"type": "template_updated", "template_id": template["id"], "structural": True}]
    updated = client.get(f"/api/v1/templates/{template['id']}", headers=HEADERS).json()
    assert [e["name"] for e in updated["exercises"]] == ["Squat", "Leg Curl"]

    again = client.post("/api/v1/session/template-drift", json={"accept": True}, headers=HEADERS)
    assert again.status_code == 409

    history = client.get("/api/v1/history", headers=HEADERS).json()
    assert len(history) == 1
    assert client.get(f"/api/v1/history/{history[0]['id']}", headers=HEADERS).status_code == 200
    assert client.get("/api/v1/history/missing", headers=HEADERS).status_code == 404

    stats = client.get("/api/v1/pr/stats?period=all", headers=HEADERS).json()
    assert stats["total_workouts"] == 1
    assert stats["total_sets"] == 2
    records = client.get("/api/v1/pr", headers=HEADERS).json()
    assert [r["exercise_name"] for r in records] == ["Squat"]


def test_delete_and_undo(client):
    template = _create_template(client)
    session = _start(client, template["id"])["status"]["session"]
    squat = session["exercises"][0]
    second = squat["sets"][1]["id"]

    deleted = client.delete(f"/api/v1/session/exercises/{squat['id']}/sets/{second}", headers=HEADERS).json()
    assert deleted["events"][0]["type"] == "set_deleted"
    assert len(deleted["status"]["session"]["exercises"][0]["sets"]) == 1

    restored = client.post("/api/v1/session/undo", headers=HEADERS).json()
    assert restored["events"][0] == {"type": "set_restored", "exercise_id": squat["id"], "set_id": second, "index": 1}
    assert [s["id"] for s in restored["status"]["session"]["exercises"][0]["sets"]] == [s["id"] for s in squat["sets"]]

    assert client.post("/api/v1/session/undo", headers=HEADERS).json()["events"] == []


def test_set_editing(client):
    template = _create_template(client)
    session = _start(client, template["id"])["status"]["session"]
    squat = session["exercises"][0]
    base = f"/api/v1/session/exercises/{squat['id']}/sets/{squat['sets'][0]['id']}"

    response = client.patch(base, json={"field": "weight", "value": "230"}, headers=HEADERS).json()
    assert response["status"]["session"]["exercises"][0]["sets"][0]["weight"] == "230"

    response = client.post(f"{base}/adjust-weight", json={"delta": 5}, headers=HEADERS).json()
    assert response["status"]["session"]["exercises"][0]["sets"][0]["weight"] == "235"

    response = client.put(f"{base}/note", json={"text": "felt easy"}, headers=HEADERS).json()
    assert response["status"]["session"]["exercises"][0]["sets"][0]["notes"] == "felt easy"

    assert client.get("/api/v1/session/incomplete-sets", headers=HEADERS).json() == [
        {"exercise_name": "Squat", "set_number": 1},
        {"exercise_name": "Squat", "set_number": 2},
    ]
    missing = client.patch(
        f"/api/v1/session/exercises/{squat['id']}/sets/nope", json={"field": "reps", "value": "5"}, headers=HEADERS
    )
    assert missing.status_code == 404


def test_cancel_without_session(client):
    response = client.post("/api/v1/session/cancel", headers=HEADERS)
    assert response.status_code == 409
    assert response.json()["error"] == "NoActiveSessionError"


def test_rest_timer_endpoints(client, clock):
    started = client.post(
        "/api/v1/rest-timer/start", json={"exercise_name": "Bicep Curl"}, headers=HEADERS
    ).json()
    assert started["state"]["duration_seconds"] == 90

    adjusted = client.post("/api/v1/rest-timer/adjust", json={"delta_seconds": 15}, headers=HEADERS).json()
    assert adjusted["state"]["remaining_seconds"] == 105

    clock.advance(200)
    done = client.get("/api/v1/rest-timer", headers=HEADERS).json()
    assert [e["type"] for e in done["events"]] == ["rest_complete"]
    assert client.get("/api/v1/rest-timer", headers=HEADERS).json()["events"] == []

    default = client.get("/api/v1/rest-timer/default?exercise_name=Plank", headers=HEADERS).json()
    assert default == {"exercise_name": "Plank", "seconds": 60}


def test_preferences(client):
    assert client.get("/api/v1/preferences", headers=HEADERS).json()["rest_timer_enabled"] is True

    patched = client.patch(
        "/api/v1/preferences", json={"custom_default_rest_seconds": 75, "unit_system": "kg"}, headers=HEADERS
    ).json()
    assert patched["custom_default_rest_seconds"] == 75
    assert patched["unit_system"] == "kg"
    assert patched["primary_goal"] == "muscle_gain"

    default = client.get("/api/v1/rest-timer/default?exercise_name=Squat", headers=HEADERS).json()
    assert default["seconds"] == 75
    assert client.patch("/api/v1/preferences", json={"custom_default_rest_seconds": 9000}, headers=HEADERS).status_code == 422
