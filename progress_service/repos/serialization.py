"""JSON shapes for the value objects embedded in JSONB columns."""

from __future__ import annotations

from datetime import datetime

from progress_service.models.achievement import Achievement
from progress_service.models.progress import ChildEngagement, LastWatch
from progress_service.models.watch_session import WatchSession


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def achievement_to_json(a: Achievement) -> dict:
    return {
        "name": a.name,
        "type": a.type,
        "unlocked_at": _ts(a.unlocked_at),
        "description": a.description,
        "points": a.points,
    }


def achievement_from_json(data: dict) -> Achievement:
    return Achievement(
        name=data["name"],
        type=data["type"],
        unlocked_at=_parse_ts(data["unlocked_at"]),  # type: ignore[arg-type]
        description=data.get("description"),
        points=data.get("points", 0),
    )


def session_to_json(s: WatchSession) -> dict:
    return {
        "start_time": _ts(s.start_time),
        "end_time": _ts(s.end_time),
        "duration": s.duration,
        "start_position": s.start_position,
        "end_position": s.end_position,
        "completed": s.completed,
    }


def session_from_json(data: dict) -> WatchSession:
    return WatchSession(
        start_time=_parse_ts(data["start_time"]),  # type: ignore[arg-type]
        end_time=_parse_ts(data.get("end_time")),
        duration=data.get("duration"),
        start_position=data.get("start_position", 0),
        end_position=data.get("end_position", 0),
        completed=data.get("completed", False),
    )


def last_watch_to_json(lw: LastWatch) -> dict:
    return {"position": lw.position, "timestamp": _ts(lw.timestamp)}


def last_watch_from_json(data: dict) -> LastWatch:
    return LastWatch(
        position=data.get("position", 0), timestamp=_parse_ts(data.get("timestamp"))
    )


def engagement_to_json(e: ChildEngagement) -> dict:
    return {
        "attention_level": e.attention_level,
        "enjoyment_level": e.enjoyment_level,
        "confidence_level": e.confidence_level,
    }


def engagement_from_json(data: dict) -> ChildEngagement:
    return ChildEngagement(
        attention_level=data.get("attention_level", 3),
        enjoyment_level=data.get("enjoyment_level", 3),
        confidence_level=data.get("confidence_level", 3),
    )
