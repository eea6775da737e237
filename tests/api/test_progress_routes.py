from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from progress_service.models.learner import Learner
from progress_service.models.lesson import Lesson
from tests.conftest import auth

# ---- 401: unauthenticated ----


def test_progress_requires_token(client: TestClient, lesson: Lesson) -> None:
    resp = client.post(
        f"/v1/progress/{lesson.id}", json={"watch_time": 10, "total_duration": 60}
    )
    assert resp.status_code == 401


def test_invalid_token_rejected(client: TestClient, lesson: Lesson) -> None:
    resp = client.post(
        f"/v1/progress/{lesson.id}/sessions", json={}, headers=auth("not-a-jwt")
    )
    assert resp.status_code == 401


# ---- sessions ----


def test_start_and_end_session(client: TestClient, token: str, lesson: Lesson) -> None:
    resp = client.post(
        f"/v1/progress/{lesson.id}/sessions",
        json={"start_position": 12},
        headers=auth(token),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["start_position"] == 12
    assert body["end_time"] is None

    resp = client.post(
        f"/v1/progress/{lesson.id}/sessions/end",
        json={"end_position": 30},
        headers=auth(token),
    )
    assert resp.status_code == 204


def test_second_open_session_is_409(client: TestClient, token: str, lesson: Lesson) -> None:
    url = f"/v1/progress/{lesson.id}/sessions"
    assert client.post(url, json={}, headers=auth(token)).status_code == 201
    resp = client.post(url, json={}, headers=auth(token))
    assert resp.status_code == 409
    assert resp.json()["detail"]["error"] == "invalid_state"


def test_unknown_lesson_is_404(client: TestClient, token: str) -> None:
    resp = client.post(f"/v1/progress/{uuid4()}/sessions", json={}, headers=auth(token))
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "not_found"


def test_end_without_record_is_404(client: TestClient, token: str, lesson: Lesson) -> None:
    resp = client.post(
        f"/v1/progress/{lesson.id}/sessions/end",
        json={"end_position": 5},
        headers=auth(token),
    )
    assert resp.status_code == 404


# ---- progress ----


def test_record_progress_completes(
    client: TestClient, token: str, lesson: Lesson, learner: Learner
) -> None:
    url = f"/v1/progress/{lesson.id}"
    first = client.post(
        url, json={"watch_time": 79, "total_duration": 100, "position": 79}, headers=auth(token)
    )
    assert first.status_code == 200
    assert first.json()["completed"] is False

    second = client.post(
        url, json={"watch_time": 80, "total_duration": 100, "position": 80}, headers=auth(token)
    )
    body = second.json()
    assert body["completed"] is True
    assert body["first_time"] is True
    assert body["points_earned"] > 0
    assert body["level"] == 1


def test_negative_watch_time_is_422(client: TestClient, token: str, lesson: Lesson) -> None:
    resp = client.post(
        f"/v1/progress/{lesson.id}",
        json={"watch_time": -1, "total_duration": 100},
        headers=auth(token),
    )
    assert resp.status_code == 422
    assert resp.json()["detail"]["error"] == "invalid_input"


@pytest.mark.parametrize(
    "body",
    [
        '{"watch_time": Infinity, "total_duration": 100}',
        '{"watch_time": 10, "total_duration": NaN}',
        '{"watch_time": 10, "total_duration": 100, "position": -Infinity}',
    ],
)
def test_non_finite_numbers_are_422(
    client: TestClient, token: str, lesson: Lesson, body: str
) -> None:
    resp = client.post(
        f"/v1/progress/{lesson.id}",
        content=body,
        headers={**auth(token), "Content-Type": "application/json"},
    )
    assert resp.status_code == 422
    assert resp.json()["detail"]["error"] == "invalid_input"


# ---- edits ----


def _touch(client: TestClient, token: str, lesson: Lesson) -> None:
    client.post(
        f"/v1/progress/{lesson.id}",
        json={"watch_time": 10, "total_duration": 60},
        headers=auth(token),
    )


def test_rating(client: TestClient, token: str, lesson: Lesson) -> None:
    _touch(client, token, lesson)
    resp = client.put(f"/v1/progress/{lesson.id}/rating", json={"rating": 5}, headers=auth(token))
    assert resp.status_code == 200
    assert resp.json()["rating"] == 5


def test_rating_out_of_range(client: TestClient, token: str, lesson: Lesson) -> None:
    _touch(client, token, lesson)
    resp = client.put(f"/v1/progress/{lesson.id}/rating", json={"rating": 6}, headers=auth(token))
    assert resp.status_code == 422


def test_bookmark(client: TestClient, token: str, lesson: Lesson) -> None:
    _touch(client, token, lesson)
    resp = client.put(
        f"/v1/progress/{lesson.id}/bookmark", json={"bookmarked": True}, headers=auth(token)
    )
    assert resp.json()["bookmarked"] is True
    assert resp.json()["bookmarked_at"] is not None


def test_engagement(client: TestClient, token: str, lesson: Lesson) -> None:
    _touch(client, token, lesson)
    resp = client.put(
        f"/v1/progress/{lesson.id}/engagement",
        json={"attention_level": 4},
        headers=auth(token),
    )
    assert resp.json()["engagement"] == {
        "attention_level": 4,
        "enjoyment_level": 3,
        "confidence_level": 3,
    }


def test_notes_too_long(client: TestClient, token: str, lesson: Lesson) -> None:
    _touch(client, token, lesson)
    resp = client.put(
        f"/v1/progress/{lesson.id}/notes", json={"notes": "x" * 501}, headers=auth(token)
    )
    assert resp.status_code == 422


def test_edit_before_any_progress_is_404(client: TestClient, token: str, lesson: Lesson) -> None:
    resp = client.put(f"/v1/progress/{lesson.id}/rating", json={"rating": 3}, headers=auth(token))
    assert resp.status_code == 404


def test_analytics(client: TestClient, token: str, lesson: Lesson) -> None:
    _touch(client, token, lesson)
    resp = client.get(f"/v1/progress/{lesson.id}/analytics", headers=auth(token))
    assert resp.status_code == 200
    assert resp.json()["completion_percentage"] == 17
