"""Learner-level routes: activity, achievements and statistics.

``{user_id}`` accepts ``me``.  A caller may read or act on their own
learner, an admin on anyone's.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from progress_service.api.dependencies import (
    current_user_id,
    get_progress_service,
    resolve_learner,
)
from progress_service.api.errors import domain_errors
from progress_service.api.ratelimit import require_rate_limit
from progress_service.api.schemas import AchievementOut, ProgressOut
from progress_service.services.progress_service import ProgressService

router = APIRouter(prefix="/v1/learners", tags=["learners"])

LearnerId = Annotated[UUID, Depends(resolve_learner)]
Service = Annotated[ProgressService, Depends(get_progress_service)]


class LearnerOut(BaseModel):
    id: UUID
    total_points: int
    level: int
    streak_days: int
    last_active_date: datetime | None


class CategoryStatOut(BaseModel):
    completed: int
    total: int
    points: int


class DailyProgressOut(BaseModel):
    date: str
    lessons_completed: int
    points_earned: int


class StatisticsOut(BaseModel):
    total_lessons: int
    completed_lessons: int
    in_progress_lessons: int
    completion_rate: int
    total_watch_time: int
    average_rating: float
    category_stats: dict[str, CategoryStatOut]
    difficulty_stats: dict[str, int]
    weekly_progress: list[DailyProgressOut]
    total_points_from_lessons: int


class OverallProgressOut(BaseModel):
    total_lessons: int
    completed_lessons: int
    total_watch_time: float
    total_time_spent: int
    total_points: int
    average_rating: float
    total_achievements: int
    bookmarked_lessons: int


class CategoryProgressOut(BaseModel):
    category: str
    total_lessons: int
    completed_lessons: int
    completion_rate: float
    average_progress: float
    total_points: int


class DailySummaryOut(BaseModel):
    date: str
    lessons_watched: int
    lessons_completed: int
    total_watch_time: float
    average_engagement: float


class AchievementsOut(BaseModel):
    achievements: list[AchievementOut]
    total_points: int
    level: int


class AchievementIn(BaseModel):
    name: str
    type: str
    description: str | None = None
    points: int = 0


class AchievementOutcomeOut(BaseModel):
    unlocked: bool
    leveled_up: bool
    level: int
    total_points: int


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


@router.post(
    "/me/activity",
    response_model=LearnerOut,
    dependencies=[Depends(require_rate_limit())],
)
async def record_activity(
    user_id: Annotated[UUID, Depends(current_user_id)], service: Service
) -> LearnerOut:
    with domain_errors():
        learner = await service.record_activity(user_id)
    return LearnerOut(
        id=learner.id,
        total_points=learner.total_points,
        level=learner.level,
        streak_days=learner.streak_days,
        last_active_date=learner.last_active_date,
    )


@router.post(
    "/{user_id}/achievements",
    response_model=AchievementOutcomeOut,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_rate_limit())],
)
async def unlock_achievement(
    body: AchievementIn, learner_id: LearnerId, service: Service
) -> AchievementOutcomeOut:
    with domain_errors():
        outcome = await service.unlock_user_achievement(
            learner_id,
            body.name,
            body.type,
            description=body.description,
            points=body.points,
        )
    return AchievementOutcomeOut(**asdict(outcome))


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("/{user_id}/stats", response_model=StatisticsOut)
async def statistics(learner_id: LearnerId, service: Service) -> StatisticsOut:
    with domain_errors():
        report = await service.compute_statistics(learner_id)
    return StatisticsOut.model_validate(asdict(report))


@router.get("/{user_id}/progress", response_model=list[ProgressOut])
async def list_progress(learner_id: LearnerId, service: Service) -> list[ProgressOut]:
    with domain_errors():
        records = await service.list_progress(learner_id)
    return [ProgressOut.of(r) for r in records]


@router.get("/{user_id}/bookmarks", response_model=list[ProgressOut])
async def list_bookmarks(learner_id: LearnerId, service: Service) -> list[ProgressOut]:
    with domain_errors():
        records = await service.list_bookmarks(learner_id)
    return [ProgressOut.of(r) for r in records]


@router.get("/{user_id}/achievements", response_model=AchievementsOut)
async def achievements(learner_id: LearnerId, service: Service) -> AchievementsOut:
    with domain_errors():
        held = await service.get_achievements(learner_id)
    return AchievementsOut(
        achievements=[AchievementOut.of(a) for a in held.achievements],
        total_points=held.total_points,
        level=held.level,
    )


@router.get("/{user_id}/overview", response_model=OverallProgressOut)
async def overview(learner_id: LearnerId, service: Service) -> OverallProgressOut:
    with domain_errors():
        overall = await service.overall_progress(learner_id)
    return OverallProgressOut(**asdict(overall))


@router.get("/{user_id}/categories", response_model=list[CategoryProgressOut])
async def categories(learner_id: LearnerId, service: Service) -> list[CategoryProgressOut]:
    with domain_errors():
        rows = await service.progress_by_category(learner_id)
    return [CategoryProgressOut(**asdict(c)) for c in rows]


@router.get("/{user_id}/summary", response_model=list[DailySummaryOut])
async def daily_summary(
    learner_id: LearnerId,
    service: Service,
    days: Annotated[int, Query(ge=1, le=90)] = 7,
) -> list[DailySummaryOut]:
    with domain_errors():
        days_out = await service.daily_summary(learner_id, days)
    return [DailySummaryOut(**asdict(d)) for d in days_out]
