from __future__ import annotations

from datetime import UTC, datetime

from progress_service.models.achievement import Achievement
from progress_service.models.progress import ChildEngagement, LastWatch
from progress_service.models.watch_session import WatchSession
from progress_service.repos.serialization import (
    achievement_from_json,
    achievement_to_json,
    engagement_from_json,
    last_watch_from_json,
    session_from_json,
    session_to_json,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def test_open_session_keeps_missing_end() -> None:
    session = WatchSession(start_time=T0, start_position=3, end_position=3)
    data = session_to_json(session)
    assert data["end_time"] is None
    assert session_from_json(data) == session


def test_achievement_datetime_is_iso() -> None:
    data = achievement_to_json(Achievement("Explorer", "engagement", T0, points=5))
    assert data["unlocked_at"] == "2026-03-02T09:00:00+00:00"
    assert achievement_from_json(data).points == 5


def test_empty_json_columns_give_defaults() -> None:
    assert last_watch_from_json({}) == LastWatch()
    assert engagement_from_json({}) == ChildEngagement()
