"""Per-lesson progress routes for the calling learner.

All writes are rate limited.  The record for (caller, lesson) is created
by the first session start or progress report.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from progress_service.api.dependencies import current_user_id, get_progress_service
from progress_service.api.errors import domain_errors
from progress_service.api.ratelimit import require_rate_limit
from progress_service.api.schemas import ProgressOut, WatchSessionOut
from progress_service.services.progress_service import ProgressService

router = APIRouter(prefix="/v1/progress", tags=["progress"])

UserId = Annotated[UUID, Depends(current_user_id)]
Service = Annotated[ProgressService, Depends(get_progress_service)]


class SessionStartIn(BaseModel):
    start_position: float = 0


class SessionEndIn(BaseModel):
    end_position: float
    completed: bool = False


class ProgressIn(BaseModel):
    watch_time: float
    total_duration: float
    position: float = 0


class ProgressOutcomeOut(BaseModel):
    completed: bool
    first_time: bool
    points_earned: int = 0
    leveled_up: bool = False
    level: int | None = None


class RatingIn(BaseModel):
    rating: int


class BookmarkIn(BaseModel):
    bookmarked: bool


class EngagementIn(BaseModel):
    attention_level: int | None = None
    enjoyment_level: int | None = None
    confidence_level: int | None = None


class NotesIn(BaseModel):
    notes: str | None = None
    feedback: str | None = None
    parent_notes: str | None = None
    perceived_difficulty: str | None = None


class AnalyticsOut(BaseModel):
    total_watch_time: float
    total_time_spent: int
    completion_percentage: int
    attempts: int
    average_session_duration: int
    actual_completion_rate: int
    learning_efficiency: int
    engagement_score: int
    achievements_count: int
    streak_count: int
    last_watched_at: datetime | None
    is_bookmarked: bool


# ---------------------------------------------------------------------------
# Watch sessions
# ---------------------------------------------------------------------------


@router.post(
    "/{lesson_id}/sessions",
    response_model=WatchSessionOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit())],
)
async def start_session(
    lesson_id: UUID, body: SessionStartIn, user_id: UserId, service: Service
) -> WatchSessionOut:
    with domain_errors():
        session = await service.start_session(user_id, lesson_id, body.start_position)
    return WatchSessionOut.of(session)


@router.post(
    "/{lesson_id}/sessions/end",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_rate_limit())],
)
async def end_session(
    lesson_id: UUID, body: SessionEndIn, user_id: UserId, service: Service
) -> Response:
    with domain_errors():
        await service.end_session(user_id, lesson_id, body.end_position, body.completed)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@router.post(
    "/{lesson_id}",
    response_model=ProgressOutcomeOut,
    dependencies=[Depends(require_rate_limit())],
)
async def record_progress(
    lesson_id: UUID, body: ProgressIn, user_id: UserId, service: Service
) -> ProgressOutcomeOut:
    with domain_errors():
        outcome = await service.record_progress(
            user_id, lesson_id, body.watch_time, body.total_duration, body.position
        )
    return ProgressOutcomeOut(**asdict(outcome))


@router.get("/{lesson_id}/analytics", response_model=AnalyticsOut)
async def learning_analytics(
    lesson_id: UUID, user_id: UserId, service: Service
) -> AnalyticsOut:
    with domain_errors():
        analytics = await service.learning_analytics(user_id, lesson_id)
    return AnalyticsOut(**asdict(analytics))


# ---------------------------------------------------------------------------
# Learner-editable fields
# ---------------------------------------------------------------------------


@router.put(
    "/{lesson_id}/rating",
    response_model=ProgressOut,
    dependencies=[Depends(require_rate_limit())],
)
async def rate_lesson(
    lesson_id: UUID, body: RatingIn, user_id: UserId, service: Service
) -> ProgressOut:
    with domain_errors():
        record = await service.rate(user_id, lesson_id, body.rating)
    return ProgressOut.of(record)


@router.put(
    "/{lesson_id}/bookmark",
    response_model=ProgressOut,
    dependencies=[Depends(require_rate_limit())],
)
async def bookmark_lesson(
    lesson_id: UUID, body: BookmarkIn, user_id: UserId, service: Service
) -> ProgressOut:
    with domain_errors():
        record = await service.bookmark(user_id, lesson_id, body.bookmarked)
    return ProgressOut.of(record)


@router.put(
    "/{lesson_id}/engagement",
    response_model=ProgressOut,
    dependencies=[Depends(require_rate_limit())],
)
async def update_engagement(
    lesson_id: UUID, body: EngagementIn, user_id: UserId, service: Service
) -> ProgressOut:
    with domain_errors():
        record = await service.update_engagement(
            user_id,
            lesson_id,
            attention_level=body.attention_level,
            enjoyment_level=body.enjoyment_level,
            confidence_level=body.confidence_level,
        )
    return ProgressOut.of(record)


@router.put(
    "/{lesson_id}/notes",
    response_model=ProgressOut,
    dependencies=[Depends(require_rate_limit())],
)
async def update_notes(
    lesson_id: UUID, body: NotesIn, user_id: UserId, service: Service
) -> ProgressOut:
    with domain_errors():
        record = await service.update_notes(
            user_id,
            lesson_id,
            notes=body.notes,
            feedback=body.feedback,
            parent_notes=body.parent_notes,
            perceived_difficulty=body.perceived_difficulty,
        )
    return ProgressOut.of(record)
