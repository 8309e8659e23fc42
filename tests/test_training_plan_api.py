"""Integration tests for profile and training plan API endpoints."""
from __future__ import annotations

from datetime import date, timedelta

from fastapi.testclient import TestClient

from tests.conftest import USER_ID, profile_payload

HEADERS = {"X-User-Id": USER_ID}


def _create_profile(client: TestClient, **overrides) -> dict:
    response = client.post("/api/profile", json=profile_payload(**overrides), headers=HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


def _generate(client: TestClient, **body):
    return client.post("/api/training/plans/generate", json=body or None, headers=HEADERS)


def test_missing_user_header(test_client: TestClient):
    """Every user-scoped endpoint needs the caller identity."""
    response = test_client.get("/api/training/plans/current")

    assert response.status_code == 400
    assert "X-User-Id" in response.json()["detail"]


def test_get_current_plan_no_active_plan(test_client: TestClient):
    """Test getting current plan when no active plan exists."""
    response = test_client.get("/api/training/plans/current", headers=HEADERS)

    # Should return 404 when no active plan
    assert response.status_code == 404
    assert "detail" in response.json()


def test_create_and_fetch_profile(test_client: TestClient):
    created = _create_profile(test_client)

    assert created["user_id"] == USER_ID
    assert created["schedule"]["weekdays"] == [0, 2, 4]
    assert created["goals"][0]["goal_type"] == "hyrox_race"
    assert created["background"]["training_years"] == 3

    fetched = test_client.get("/api/profile", headers=HEADERS)
    assert fetched.status_code == 200
    assert fetched.json()["id"] == created["id"]


def test_duplicate_profile(test_client: TestClient):
    _create_profile(test_client)

    response = test_client.post("/api/profile", json=profile_payload(), headers=HEADERS)

    assert response.status_code == 409
    assert response.json()["error"] == "ConflictError"


def test_goal_in_the_past_is_rejected(test_client: TestClient):
    payload = profile_payload()
    payload["goals"][0]["target_date"] = (date.today() - timedelta(days=1)).isoformat()

    response = test_client.post("/api/profile", json=payload, headers=HEADERS)

    assert response.status_code == 400


def test_invalid_weekday_is_rejected(test_client: TestClient):
    response = test_client.post("/api/profile", json=profile_payload(weekdays=(0, 2, 9)), headers=HEADERS)

    # Pydantic validation error
    assert response.status_code == 422


def test_validate_plan_parameters(test_client: TestClient):
    missing = test_client.get("/api/training/plans/validate", headers=HEADERS)
    assert missing.json() == {"valid": False, "issues": ["Profile is missing"]}

    _create_profile(test_client)
    ready = test_client.get("/api/training/plans/validate", headers=HEADERS)
    assert ready.json() == {"valid": True, "issues": []}


def test_generate_training_plan(test_client: TestClient):
    """Test generating a new training plan."""
    _create_profile(test_client)

    response = _generate(test_client)

    assert response.status_code == 201
    data = response.json()

    # Validate response structure
    assert data["status"] == "active"
    assert data["revision"] == 1
    assert data["total_weeks"] == 8
    assert data["start_date"] == date.today().isoformat()
    assert data["name"].startswith("HYROX Race Plan")
    assert [week["week_number"] for week in data["weeks"]] == list(range(1, 9))
    assert data["weeks"][-1]["phase"] == "recovery"
    for week in data["weeks"]:
        assert len(week["workouts"]) == 3
        assert sum(1 for workout in week["workouts"] if workout["is_key_workout"]) == 1
    first_workout = data["weeks"][0]["workouts"][0]
    assert first_workout["exercises"]
    assert first_workout["exercises"][0]["exercise_name"]


def test_generate_without_profile(test_client: TestClient):
    response = _generate(test_client)

    assert response.status_code == 404


def test_second_generation_conflicts(test_client: TestClient):
    _create_profile(test_client)
    _generate(test_client)

    response = _generate(test_client)

    assert response.status_code == 409
    assert response.json()["retry_guidance"]


def test_insufficient_availability(test_client: TestClient):
    _create_profile(test_client, weekdays=(0, 1), minimum=3)

    response = _generate(test_client)

    assert response.status_code == 400
    assert response.json()["reason"] == "insufficient_availability"


def test_generate_with_overrides(test_client: TestClient):
    _create_profile(test_client)
    start = date.today() + timedelta(days=3)

    response = _generate(
        test_client, total_weeks=6, training_days_per_week=2, start_date=start.isoformat()
    )

    assert response.status_code == 201
    data = response.json()
    assert data["total_weeks"] == 6
    assert data["training_days_per_week"] == 2
    assert data["start_date"] == start.isoformat()


def test_get_plan_by_id_and_week(test_client: TestClient):
    _create_profile(test_client)
    plan = _generate(test_client).json()

    by_id = test_client.get(f"/api/training/plans/{plan['id']}", headers=HEADERS)
    assert by_id.status_code == 200
    assert by_id.json()["id"] == plan["id"]

    week = test_client.get(f"/api/training/plans/{plan['id']}/weeks/2", headers=HEADERS)
    assert week.status_code == 200
    assert week.json()["week_number"] == 2

    missing_week = test_client.get(f"/api/training/plans/{plan['id']}/weeks/99", headers=HEADERS)
    assert missing_week.status_code == 404


def test_plan_of_another_user_is_hidden(test_client: TestClient):
    _create_profile(test_client)
    plan = _generate(test_client).json()

    response = test_client.get(f"/api/training/plans/{plan['id']}", headers={"X-User-Id": "intruder"})

    assert response.status_code == 404


def test_regenerate_replaces_active_plan(test_client: TestClient):
    _create_profile(test_client)
    first = _generate(test_client).json()

    response = test_client.post("/api/training/plans/regenerate", headers=HEADERS)

    assert response.status_code == 201
    second = response.json()
    assert second["id"] != first["id"]
    current = test_client.get("/api/training/plans/current", headers=HEADERS).json()
    assert current["id"] == second["id"]


def test_delete_plan(test_client: TestClient):
    """Test soft deleting a plan."""
    _create_profile(test_client)
    plan = _generate(test_client).json()

    response = test_client.delete(f"/api/training/plans/{plan['id']}", headers=HEADERS)

    assert response.status_code == 200
    assert "deleted" in response.json()["message"]
    assert test_client.get("/api/training/plans/current", headers=HEADERS).status_code == 404
    assert test_client.get(f"/api/training/plans/{plan['id']}", headers=HEADERS).status_code == 404


def test_update_schedule_and_add_goal(test_client: TestClient):
    _create_profile(test_client)

    schedule = test_client.put(
        "/api/profile/schedule",
        json={"weekdays": [1, 3, 5, 6], "minimum_sessions_per_week": 2, "maximum_sessions_per_week": 4},
        headers=HEADERS,
    )
    assert schedule.status_code == 200
    assert schedule.json()["schedule"]["weekdays"] == [1, 3, 5, 6]

    goal = test_client.post(
        "/api/profile/goals",
        json={"goal_type": "running_distance", "description": "Sub-45 10K", "priority": 2},
        headers=HEADERS,
    )
    assert goal.status_code == 201
    assert goal.json()["status"] == "active"


def test_health_endpoints(test_client: TestClient):
    assert test_client.get("/health").json() == {"status": "ok"}
    assert test_client.get("/api/health/status").json() == {"status": "online"}

    catalog = test_client.get("/api/health/catalog-status").json()
    assert catalog == {"exercises": 78, "progressions": 49, "needs_seed": False}
