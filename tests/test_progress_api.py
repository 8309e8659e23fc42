"""Integration tests for the progress API endpoints."""
from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from tests.conftest import USER_ID, profile_payload

HEADERS = {"X-User-Id": USER_ID}


@pytest.fixture
def past_workouts(test_client: TestClient) -> list[dict]:
    """Workouts of a plan that started two weeks ago, oldest first."""
    test_client.post("/api/profile", json=profile_payload(), headers=HEADERS)
    start = date.today() - timedelta(days=14)
    plan = test_client.post(
        "/api/training/plans/generate", json={"start_date": start.isoformat()}, headers=HEADERS
    ).json()
    workouts = [workout for week in plan["weeks"] for workout in week["workouts"]]
    return sorted(
        (w for w in workouts if w["scheduled_date"] < date.today().isoformat()),
        key=lambda w: w["scheduled_date"],
    )


def test_complete_workout(test_client: TestClient, past_workouts):
    """Test marking a workout complete."""
    workout = past_workouts[0]

    response = test_client.put(
        f"/api/progress/workouts/{workout['id']}/complete",
        json={"actual_duration_minutes": 55, "notes": "Felt good"},
        headers=HEADERS,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["workout"]["completion_status"] == "completed"
    assert data["history_id"] is not None
    assert data["streak"]["current_streak"] == 1
    assert data["streak"]["next_milestone"] == 7
    assert data["milestones_reached"] == []


def test_complete_twice_conflicts(test_client: TestClient, past_workouts):
    url = f"/api/progress/workouts/{past_workouts[0]['id']}/complete"
    test_client.put(url, headers=HEADERS)

    response = test_client.put(url, headers=HEADERS)

    assert response.status_code == 409


def test_complete_in_the_future(test_client: TestClient, past_workouts):
    future = (datetime.utcnow() + timedelta(days=2)).isoformat()

    response = test_client.put(
        f"/api/progress/workouts/{past_workouts[0]['id']}/complete",
        json={"completed_at": future},
        headers=HEADERS,
    )

    assert response.status_code == 400


def test_complete_unknown_workout(test_client: TestClient, past_workouts):
    response = test_client.put("/api/progress/workouts/999999/complete", headers=HEADERS)

    assert response.status_code == 404


def test_undo_and_skip(test_client: TestClient, past_workouts):
    first, second = past_workouts[0], past_workouts[1]
    test_client.put(f"/api/progress/workouts/{first['id']}/complete", headers=HEADERS)

    undone = test_client.put(f"/api/progress/workouts/{first['id']}/undo", headers=HEADERS)
    assert undone.status_code == 200
    assert undone.json()["completion_status"] == "not_started"
    assert test_client.get("/api/progress/streak", headers=HEADERS).json()["current_streak"] == 0

    skipped = test_client.put(f"/api/progress/workouts/{second['id']}/skip", headers=HEADERS)
    assert skipped.status_code == 200
    assert skipped.json()["completion_status"] == "skipped"


def test_stats_and_history(test_client: TestClient, past_workouts):
    first, second, third = past_workouts[:3]
    for workout in (first, second):
        completed_at = f"{workout['scheduled_date']}T18:00:00"
        test_client.put(
            f"/api/progress/workouts/{workout['id']}/complete",
            json={"completed_at": completed_at},
            headers=HEADERS,
        )
    test_client.put(f"/api/progress/workouts/{third['id']}/skip", headers=HEADERS)

    start = date.fromisoformat(first["scheduled_date"])
    end = date.fromisoformat(third["scheduled_date"])
    stats = test_client.get(
        "/api/progress/stats", params={"start": start.isoformat(), "end": end.isoformat()}, headers=HEADERS
    ).json()
    assert stats["completed_count"] == 2
    assert stats["skipped_count"] == 1
    assert stats["total_scheduled"] == 3
    assert stats["completion_percentage"] == 66.67

    overall = test_client.get("/api/progress/stats/overall", headers=HEADERS).json()
    assert overall["total_workouts_completed"] == 2
    assert overall["total_training_days"] == 2
    assert overall["overall_plan_completion_percentage"] == 8.33

    history = test_client.get("/api/progress/history", headers=HEADERS).json()
    assert [record["workout_id"] for record in history] == [first["id"], second["id"]]


def test_reversed_stats_range(test_client: TestClient):
    today = date.today()

    response = test_client.get(
        "/api/progress/stats",
        params={"start": today.isoformat(), "end": (today - timedelta(days=3)).isoformat()},
        headers=HEADERS,
    )

    assert response.status_code == 400


def test_streak_without_history(test_client: TestClient):
    response = test_client.get("/api/progress/streak", headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["current_streak"] == 0
    assert response.json()["days_until_next_milestone"] == 7
