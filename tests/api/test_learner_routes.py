from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from progress_service.models.learner import Learner
from progress_service.models.lesson import Lesson
from tests.conftest import auth, mint_token


def _complete(client: TestClient, token: str, lesson: Lesson) -> None:
    resp = client.post(
        f"/v1/progress/{lesson.id}",
        json={"watch_time": 60, "total_duration": 60, "position": 60},
        headers=auth(token),
    )
    assert resp.json()["completed"] is True


# ---- activity ----


def test_activity_provisions_learner(client: TestClient) -> None:
    user_id = uuid4()
    resp = client.post("/v1/learners/me/activity", headers=auth(mint_token(user_id)))
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == str(user_id)
    assert body["level"] == 1
    assert body["streak_days"] == 0


def test_activity_requires_uuid_subject(client: TestClient) -> None:
    resp = client.post("/v1/learners/me/activity", headers=auth(mint_token("not-a-uuid")))
    assert resp.status_code == 401


# ---- statistics ----


def test_stats_shape(client: TestClient, token: str, lesson: Lesson) -> None:
    _complete(client, token, lesson)
    resp = client.get("/v1/learners/me/stats", headers=auth(token))
    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {
        "total_lessons",
        "completed_lessons",
        "in_progress_lessons",
        "completion_rate",
        "total_watch_time",
        "average_rating",
        "category_stats",
        "difficulty_stats",
        "weekly_progress",
        "total_points_from_lessons",
    }
    assert body["completed_lessons"] == 1
    assert body["completion_rate"] == 100
    assert body["category_stats"]["coding"]["completed"] == 1
    assert body["difficulty_stats"]["medium"] == 1
    assert len(body["weekly_progress"]) == 7
    assert body["weekly_progress"][-1]["lessons_completed"] == 1


def test_stats_refresh_after_write(client: TestClient, token: str, lesson: Lesson) -> None:
    _complete(client, token, lesson)
    assert client.get("/v1/learners/me/stats", headers=auth(token)).json()["average_rating"] == 0
    client.put(f"/v1/progress/{lesson.id}/rating", json={"rating": 4}, headers=auth(token))
    assert client.get("/v1/learners/me/stats", headers=auth(token)).json()["average_rating"] == 4


def test_read_views(
    client: TestClient, token: str, lesson: Lesson, learner: Learner
) -> None:
    _complete(client, token, lesson)
    client.put(f"/v1/progress/{lesson.id}/bookmark", json={"bookmarked": True}, headers=auth(token))
    base = f"/v1/learners/{learner.id}"

    progress = client.get(f"{base}/progress", headers=auth(token)).json()
    assert [p["lesson_id"] for p in progress] == [str(lesson.id)]

    assert len(client.get(f"{base}/bookmarks", headers=auth(token)).json()) == 1
    assert client.get(f"{base}/overview", headers=auth(token)).json()["completed_lessons"] == 1

    (category,) = client.get(f"{base}/categories", headers=auth(token)).json()
    assert category["category"] == "coding"
    assert category["completion_rate"] == 100

    summary = client.get(f"{base}/summary?days=3", headers=auth(token)).json()
    assert summary[-1]["lessons_completed"] == 1


def test_summary_days_bounds(client: TestClient, token: str) -> None:
    resp = client.get("/v1/learners/me/summary?days=0", headers=auth(token))
    assert resp.status_code == 422


# ---- achievements ----


def test_unlock_and_list_achievements(client: TestClient, token: str, learner: Learner) -> None:
    url = f"/v1/learners/{learner.id}/achievements"
    payload = {"name": "Week Warrior", "type": "streak", "points": 100}

    first = client.post(url, json=payload, headers=auth(token)).json()
    assert first == {"unlocked": True, "leveled_up": True, "level": 2, "total_points": 100}

    again = client.post(url, json=payload, headers=auth(token)).json()
    assert again["unlocked"] is False

    held = client.get(url, headers=auth(token)).json()
    assert [a["name"] for a in held["achievements"]] == ["Week Warrior"]
    assert held["total_points"] == 100


def test_unknown_achievement_type_is_422(client: TestClient, token: str) -> None:
    resp = client.post(
        "/v1/learners/me/achievements",
        json={"name": "Brave", "type": "bravery"},
        headers=auth(token),
    )
    assert resp.status_code == 422


def test_achievements_for_missing_learner_is_404(client: TestClient) -> None:
    resp = client.get("/v1/learners/me/achievements", headers=auth(mint_token(uuid4())))
    assert resp.status_code == 404
