"""Response bodies shared by the progress and learner routers."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from progress_service.models.achievement import Achievement
from progress_service.models.progress import ProgressRecord
from progress_service.models.watch_session import WatchSession


class WatchSessionOut(BaseModel):
    start_time: datetime
    start_position: float
    end_position: float
    end_time: datetime | None
    duration: int | None
    completed: bool

    @staticmethod
    def of(session: WatchSession) -> WatchSessionOut:
        return WatchSessionOut(**asdict(session))


class AchievementOut(BaseModel):
    name: str
    type: str
    unlocked_at: datetime
    description: str | None = None
    points: int = 0

    @staticmethod
    def of(achievement: Achievement) -> AchievementOut:
        return AchievementOut(**asdict(achievement))


class EngagementOut(BaseModel):
    attention_level: int
    enjoyment_level: int
    confidence_level: int


class ProgressOut(BaseModel):
    id: UUID
    user_id: UUID
    lesson_id: UUID
    status: str
    watch_time: float
    completion_percentage: int
    is_completed: bool
    started_at: datetime | None
    completed_at: datetime | None
    last_position: float
    last_watched_at: datetime | None
    session_count: int
    rating: int | None
    feedback: str | None
    notes: str | None
    parent_notes: str | None
    perceived_difficulty: str
    points_earned: int
    attempts: int
    bookmarked: bool
    bookmarked_at: datetime | None
    time_spent: int
    streak_count: int
    achievements: list[AchievementOut]
    engagement: EngagementOut
    updated_at: datetime | None

    @staticmethod
    def of(r: ProgressRecord) -> ProgressOut:
        return ProgressOut(
            id=r.id,
            user_id=r.user_id,
            lesson_id=r.lesson_id,
            status=r.status,
            watch_time=r.watch_time,
            completion_percentage=r.completion_percentage,
            is_completed=r.is_completed,
            started_at=r.started_at,
            completed_at=r.completed_at,
            last_position=r.last_watch.position,
            last_watched_at=r.last_watch.timestamp,
            session_count=len(r.watch_sessions) + r.compacted_sessions,
            rating=r.rating,
            feedback=r.feedback,
            notes=r.notes,
            parent_notes=r.parent_notes,
            perceived_difficulty=r.perceived_difficulty,
            points_earned=r.points_earned,
            attempts=r.attempts,
            bookmarked=r.bookmarked,
            bookmarked_at=r.bookmarked_at,
            time_spent=r.time_spent,
            streak_count=r.streak_count,
            achievements=[AchievementOut.of(a) for a in r.achievements],
            engagement=EngagementOut(**asdict(r.engagement)),
            updated_at=r.updated_at,
        )
