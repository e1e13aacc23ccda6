"""Integration tests for daily study goals."""

from fastapi.testclient import TestClient

from conftest import auth, register


def test_missing_goal_is_404_envelope(client: TestClient, token: str):
    resp = client.get("/api/goals/2024-05-01", headers=auth(token))
    assert resp.status_code == 404
    body = resp.json()
    assert body["error_code"] == "not_found"
    assert body["details"] == {"date": "2024-05-01"}


def test_put_then_get_goal(client: TestClient, token: str):
    resp = client.put(
        "/api/goals/2024-05-01",
        json={"target_study_time": 30, "actual_study_time": 10, "topics": ["Cells"]},
        headers=auth(token),
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["completed"] is False

    fetched = client.get("/api/goals/2024-05-01", headers=auth(token)).json()
    assert fetched["date"] == "2024-05-01"
    assert fetched["topics"] == ["Cells"]


def test_goal_completed_needs_both_targets(client: TestClient, token: str):
    body = {
        "target_study_time": 30,
        "actual_study_time": 45,
        "target_quizzes": 2,
        "completed_quizzes": 1,
    }
    resp = client.put("/api/goals/2024-05-02", json=body, headers=auth(token))
    assert resp.json()["completed"] is False

    body["completed_quizzes"] = 2
    resp = client.put("/api/goals/2024-05-02", json=body, headers=auth(token))
    assert resp.json()["completed"] is True


def test_goals_are_per_user(client: TestClient, token: str):
    client.put("/api/goals/2024-05-03", json={}, headers=auth(token))
    other = register(client)
    resp = client.get("/api/goals/2024-05-03", headers=auth(other))
    assert resp.status_code == 404
