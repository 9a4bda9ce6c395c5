import pathlib
import sys
import uuid

from fastapi.testclient import TestClient

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from wellness_api.main import app  # noqa: E402


client = TestClient(app)


def _headers() -> dict:
    return {"X-User-Id": f"student-{uuid.uuid4().hex[:8]}"}


def _create_habit(headers: dict, **overrides) -> dict:
    payload = {"name": "Drink water", "category": "water", "target": {"value": 8, "unit": "glasses"}}
    payload.update(overrides)
    res = client.post("/api/habits", json=payload, headers=headers)
    assert res.status_code == 201
    return res.json()["habit"]


def test_health_endpoint():
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_requests_without_identity_are_rejected():
    res = client.get("/api/habits")
    assert res.status_code == 401
    assert res.json()["reason"] == "unauthorized"


def test_create_habit_applies_defaults():
    habit = _create_habit(_headers(), name="  Morning run  ", category="exercise", target={"value": 30, "unit": "minutes"})
    assert habit["name"] == "Morning run"
    assert habit["target"]["frequency"] == "daily"
    assert habit["isActive"] is True
    assert habit["streak"] == {"current": 0, "longest": 0, "lastCompleted": None}
    assert habit["reminder"]["time"] == "09:00"


def test_create_habit_validation_errors():
    headers = _headers()
    res = client.post("/api/habits", json={"name": "Nap", "category": "napping", "target": {"value": 1, "unit": "hours"}}, headers=headers)
    assert res.status_code == 400
    body = res.json()
    assert body["reason"] == "validation_error"
    assert body["errors"]

    res = client.post("/api/habits", json={"name": "Sleep", "category": "sleep", "target": {"value": "lots", "unit": "hours"}}, headers=headers)
    assert res.status_code == 400


def test_list_filters_by_category_and_active_flag():
    headers = _headers()
    water = _create_habit(headers)
    study = _create_habit(headers, name="Flashcards", category="study", target={"value": 20, "unit": "times"})
    client.post(f"/api/habits/{study['id']}/toggle", headers=headers)

    everything = client.get("/api/habits", headers=headers).json()["habits"]
    assert [habit["id"] for habit in everything] == [study["id"], water["id"]]

    only_water = client.get("/api/habits", params={"category": "water"}, headers=headers).json()["habits"]
    assert [habit["id"] for habit in only_water] == [water["id"]]

    inactive = client.get("/api/habits", params={"isActive": "false"}, headers=headers).json()["habits"]
    assert [habit["id"] for habit in inactive] == [study["id"]]


def test_habits_are_scoped_to_their_owner():
    owner = _headers()
    habit = _create_habit(owner)
    res = client.get(f"/api/habits/{habit['id']}", headers=_headers())
    assert res.status_code == 404
    assert res.json() == {"message": "Habit not found", "reason": "not_found"}
    assert client.get("/api/habits", headers=_headers()).json()["habits"] == []


def test_update_merges_target_and_ignores_streak():
    headers = _headers()
    habit = _create_habit(headers)
    res = client.put(
        f"/api/habits/{habit['id']}",
        json={"target": {"value": 10}, "description": "Stay hydrated", "streak": {"current": 99, "longest": 99}},
        headers=headers,
    )
    assert res.status_code == 200
    updated = res.json()["habit"]
    assert updated["target"] == {"value": 10, "unit": "glasses", "frequency": "daily"}
    assert updated["description"] == "Stay hydrated"
    assert updated["streak"]["current"] == 0


def test_toggle_flips_active_flag():
    headers = _headers()
    habit = _create_habit(headers)
    res = client.post(f"/api/habits/{habit['id']}/toggle", headers=headers)
    assert res.json()["message"] == "Habit deactivated successfully"
    assert res.json()["habit"]["isActive"] is False
    res = client.post(f"/api/habits/{habit['id']}/toggle", headers=headers)
    assert res.json()["habit"]["isActive"] is True


def test_delete_cascades_to_progress():
    headers = _headers()
    habit = _create_habit(headers)
    for day in ("2025-03-10", "2025-03-11", "2025-03-12"):
        res = client.post(
            "/api/progress",
            json={"habit": habit["id"], "value": 8, "unit": "glasses", "date": f"{day}T09:00:00Z"},
            headers=headers,
        )
        assert res.status_code == 201
    assert len(client.get(f"/api/habits/{habit['id']}/progress", headers=headers).json()["progress"]) == 3

    res = client.delete(f"/api/habits/{habit['id']}", headers=headers)
    assert res.status_code == 200
    assert res.json()["deletedProgress"] == 3
    assert client.get("/api/progress", params={"habit": habit["id"]}, headers=headers).json()["progress"] == []
    assert client.get(f"/api/habits/{habit['id']}", headers=headers).status_code == 404


def test_habit_progress_date_range():
    headers = _headers()
    habit = _create_habit(headers)
    for day in ("2025-03-08", "2025-03-10", "2025-03-12"):
        client.post("/api/progress", json={"habit": habit["id"], "value": 2, "unit": "glasses", "date": f"{day}T12:00:00Z"}, headers=headers)
    res = client.get(
        f"/api/habits/{habit['id']}/progress",
        params={"startDate": "2025-03-09T00:00:00Z", "endDate": "2025-03-12T00:00:00Z"},
        headers=headers,
    )
    assert [entry["dayKey"] for entry in res.json()["progress"]] == ["2025-03-12", "2025-03-10"]
