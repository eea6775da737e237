"""Progress operations: the read-modify-write layer over the aggregates.

Each method loads what it needs through the repositories, applies pure
state transitions (ProgressRecord, Learner, calculate_points,
update_streak, StatisticsAggregator) and saves the whole aggregate back.
The service itself is stateless; one instance per request is fine.

Records are created on the first watch-session start or the first
progress update for a (user, lesson) pair.  Every other per-lesson
operation requires the record to exist.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime
from typing import TypeVar
from uuid import UUID

from progress_service.core.clock import utcnow
from progress_service.core.errors import ConflictError, NotFoundError
from progress_service.core.metrics import (
    ACHIEVEMENTS_UNLOCKED,
    LESSONS_COMPLETED,
    LEVEL_UPS,
    POINTS_AWARDED,
    STATISTICS_CACHE,
    WATCH_SESSIONS,
)
from progress_service.models.achievement import Achievement, AchievementRegistry
from progress_service.models.learner import Learner, PointsAward
from progress_service.models.lesson import Lesson
from progress_service.models.progress import (
    CompletionResult,
    LearningAnalytics,
    ProgressRecord,
)
from progress_service.models.watch_session import WatchSession
from progress_service.repos.learner_repo import LearnerRepo
from progress_service.repos.lesson_repo import LessonRepo
from progress_service.repos.progress_repo import ProgressRepo
from progress_service.services.cache import CacheService
from progress_service.services.points import PointsInput, calculate_points
from progress_service.services.statistics import (
    CategoryProgress,
    CategoryStat,
    DailyProgress,
    DailySummary,
    OverallProgress,
    StatisticsAggregator,
    StatisticsReport,
)
from progress_service.services.streaks import update_streak

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass(frozen=True, slots=True)
class ProgressOutcome:
    completed: bool
    first_time: bool
    points_earned: int = 0
    leveled_up: bool = False
    level: int | None = None


@dataclass(frozen=True, slots=True)
class AchievementOutcome:
    unlocked: bool
    leveled_up: bool
    level: int
    total_points: int


@dataclass(frozen=True, slots=True)
class LearnerAchievements:
    achievements: tuple[Achievement, ...]
    total_points: int
    level: int


def stats_cache_key(user_id: UUID, today: date) -> str:
    # The weekly window ends today, so a report is only valid for its UTC day.
    return f"stats:{user_id}:{today.isoformat()}"


def _report_to_json(report: StatisticsReport) -> str:
    return json.dumps(asdict(report))


def _report_from_json(raw: str) -> StatisticsReport:
    data = json.loads(raw)
    data["category_stats"] = {
        name: CategoryStat(**stat) for name, stat in data["category_stats"].items()
    }
    data["weekly_progress"] = [DailyProgress(**day) for day in data["weekly_progress"]]
    return StatisticsReport(**data)


class ProgressService:
    def __init__(
        self,
        progress_repo: ProgressRepo,
        lesson_repo: LessonRepo,
        learner_repo: LearnerRepo,
        *,
        session_retention: int = 50,
        cache: CacheService | None = None,
        stats_cache_ttl: int = 300,
    ) -> None:
        self._progress = progress_repo
        self._lessons = lesson_repo
        self._learners = learner_repo
        self._retention = session_retention
        self._cache = cache
        self._stats_ttl = stats_cache_ttl
        self._aggregator = StatisticsAggregator()

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    async def _active_lesson(self, lesson_id: UUID) -> Lesson:
        lesson = await self._lessons.get(lesson_id)
        if lesson is None or not lesson.is_active:
            raise NotFoundError(f"lesson {lesson_id} not found")
        return lesson

    async def _learner(self, user_id: UUID) -> Learner:
        learner = await self._learners.get(user_id)
        if learner is None:
            raise NotFoundError(f"learner {user_id} not found")
        return learner

    async def _record(self, user_id: UUID, lesson_id: UUID) -> ProgressRecord:
        record = await self._progress.get(user_id, lesson_id)
        if record is None:
            raise NotFoundError(f"no progress for user={user_id} lesson={lesson_id}")
        return record

    async def _apply(
        self,
        user_id: UUID,
        lesson_id: UUID,
        now: datetime,
        transition: Callable[[ProgressRecord], tuple[ProgressRecord, _T]],
    ) -> tuple[ProgressRecord, _T]:
        """Run `transition` on the pair's record, creating it on first touch.

        If another request creates the record between our read and our
        insert, the transition is re-applied once to the stored record so
        the other writer's changes are kept.
        """
        record = await self._progress.get(user_id, lesson_id)
        if record is not None:
            updated, result = transition(record)
            await self._progress.save(updated)
            return updated, result

        fresh = ProgressRecord.new(user_id=user_id, lesson_id=lesson_id, now=now)
        updated, result = transition(fresh)
        try:
            await self._progress.add(updated)
        except ConflictError:
            logger.info(
                "Progress record created concurrently; re-applying",
                extra={"user_id": str(user_id), "lesson_id": str(lesson_id)},
            )
            updated, result = transition(await self._record(user_id, lesson_id))
            await self._progress.save(updated)
        return updated, result

    async def _invalidate(self, user_id: UUID) -> None:
        if self._cache is not None:
            await self._cache.delete_pattern(f"stats:{user_id}:*")

    # ------------------------------------------------------------------
    # Watch sessions
    # ------------------------------------------------------------------

    async def start_session(
        self,
        user_id: UUID,
        lesson_id: UUID,
        start_position: float = 0,
        *,
        now: datetime | None = None,
    ) -> WatchSession:
        now = now or utcnow()
        await self._active_lesson(lesson_id)
        await self._learner(user_id)

        _, session = await self._apply(
            user_id,
            lesson_id,
            now,
            lambda record: record.start_session(start_position, now=now),
        )
        await self._invalidate(user_id)

        WATCH_SESSIONS.labels(event="started").inc()
        logger.debug(
            "Watch session started at %.1fs",
            start_position,
            extra={"user_id": str(user_id), "lesson_id": str(lesson_id)},
        )
        return session

    async def end_session(
        self,
        user_id: UUID,
        lesson_id: UUID,
        end_position: float,
        completed: bool = False,
        *,
        now: datetime | None = None,
    ) -> WatchSession | None:
        now = now or utcnow()
        record = await self._record(user_id, lesson_id)
        record, closed = record.end_session(
            end_position, completed, now=now, retention=self._retention
        )
        if closed is None:
            logger.debug(
                "No open watch session to end",
                extra={"user_id": str(user_id), "lesson_id": str(lesson_id)},
            )
            return None

        await self._progress.save(record)
        await self._invalidate(user_id)

        WATCH_SESSIONS.labels(event="ended").inc()
        logger.debug(
            "Watch session ended after %ss",
            closed.duration,
            extra={"user_id": str(user_id), "lesson_id": str(lesson_id)},
        )
        return closed

    # ------------------------------------------------------------------
    # Progress and completion
    # ------------------------------------------------------------------

    async def record_progress(
        self,
        user_id: UUID,
        lesson_id: UUID,
        watch_time: float,
        total_duration: float,
        position: float = 0,
        *,
        now: datetime | None = None,
    ) -> ProgressOutcome:
        now = now or utcnow()
        lesson = await self._active_lesson(lesson_id)
        learner = await self._learner(user_id)

        def transition(record: ProgressRecord) -> tuple[ProgressRecord, CompletionResult]:
            record, result = record.record_progress(
                watch_time, total_duration, position, now=now
            )
            if result.first_time:
                record = record.with_streak(learner.streak_days)
                points = calculate_points(PointsInput.for_record(record, lesson))
                record = record.award_points(points, now=now)
            return record, result

        record, result = await self._apply(user_id, lesson_id, now, transition)
        if not result.first_time:
            await self._invalidate(user_id)
            return ProgressOutcome(completed=result.completed, first_time=False)

        points = record.points_earned
        award = await self._learners.add_points(user_id, points)
        await self._invalidate(user_id)
        self._observe_award(user_id, points, award)

        LESSONS_COMPLETED.inc()
        ACHIEVEMENTS_UNLOCKED.labels(scope="lesson", type="completion").inc()
        logger.info(
            "Lesson completed: %d points (streak %d)",
            points,
            record.streak_count,
            extra={"user_id": str(user_id), "lesson_id": str(lesson_id)},
        )
        return ProgressOutcome(
            completed=True,
            first_time=True,
            points_earned=points,
            leveled_up=award.leveled_up,
            level=award.level,
        )

    def _observe_award(self, user_id: UUID, points: int, award: PointsAward) -> None:
        POINTS_AWARDED.inc(points)
        if award.leveled_up:
            LEVEL_UPS.inc()
            logger.info(
                "Level up: now level %d with %d points",
                award.level,
                award.total_points,
                extra={"user_id": str(user_id)},
            )

    # ------------------------------------------------------------------
    # Learner-editable fields
    # ------------------------------------------------------------------

    async def rate(
        self, user_id: UUID, lesson_id: UUID, value: int, *, now: datetime | None = None
    ) -> ProgressRecord:
        record = (await self._record(user_id, lesson_id)).rate(value, now=now)
        await self._progress.save(record)
        await self._invalidate(user_id)
        return record

    async def bookmark(
        self, user_id: UUID, lesson_id: UUID, flag: bool, *, now: datetime | None = None
    ) -> ProgressRecord:
        record = (await self._record(user_id, lesson_id)).set_bookmark(flag, now=now)
        await self._progress.save(record)
        await self._invalidate(user_id)
        return record

    async def update_engagement(
        self,
        user_id: UUID,
        lesson_id: UUID,
        *,
        attention_level: int | None = None,
        enjoyment_level: int | None = None,
        confidence_level: int | None = None,
        now: datetime | None = None,
    ) -> ProgressRecord:
        record = (await self._record(user_id, lesson_id)).update_engagement(
            attention_level=attention_level,
            enjoyment_level=enjoyment_level,
            confidence_level=confidence_level,
            now=now,
        )
        await self._progress.save(record)
        await self._invalidate(user_id)
        return record

    async def update_notes(
        self,
        user_id: UUID,
        lesson_id: UUID,
        *,
        notes: str | None = None,
        feedback: str | None = None,
        parent_notes: str | None = None,
        perceived_difficulty: str | None = None,
        now: datetime | None = None,
    ) -> ProgressRecord:
        record = (await self._record(user_id, lesson_id)).update_notes(
            notes=notes,
            feedback=feedback,
            parent_notes=parent_notes,
            perceived_difficulty=perceived_difficulty,
            now=now,
        )
        await self._progress.save(record)
        await self._invalidate(user_id)
        return record

    # ------------------------------------------------------------------
    # Learner profile
    # ------------------------------------------------------------------

    async def record_activity(self, user_id: UUID, *, now: datetime | None = None) -> Learner:
        """Qualifying activity (a successful login): advance the streak.

        The first activity seen for a user provisions their learner profile.
        """
        now = now or utcnow()
        learner = await self._learners.get(user_id)
        if learner is None:
            learner = Learner(id=user_id, last_active_date=now)
            try:
                await self._learners.add(learner)
            except ConflictError:
                learner = await self._learner(user_id)
            else:
                logger.info("Learner profile created", extra={"user_id": str(user_id)})
                return learner

        learner = update_streak(learner, now=now)
        await self._learners.save(learner)
        await self._invalidate(user_id)
        return learner

    async def unlock_user_achievement(
        self,
        user_id: UUID,
        name: str,
        type: str,
        *,
        description: str | None = None,
        points: int = 0,
        now: datetime | None = None,
    ) -> AchievementOutcome:
        learner = await self._learner(user_id)
        registry = AchievementRegistry(learner.achievements)
        if not registry.add(name, type, now=now, description=description, points=points):
            return AchievementOutcome(
                unlocked=False,
                leveled_up=False,
                level=learner.level,
                total_points=learner.total_points,
            )

        learner = replace(learner, achievements=registry.snapshot())
        await self._learners.save(learner)
        ACHIEVEMENTS_UNLOCKED.labels(scope="profile", type=type).inc()
        logger.info("Achievement unlocked: %s", name, extra={"user_id": str(user_id)})

        level, total, leveled_up = learner.level, learner.total_points, False
        if points > 0:
            award = await self._learners.add_points(user_id, points)
            self._observe_award(user_id, points, award)
            level, total, leveled_up = award.level, award.total_points, award.leveled_up

        await self._invalidate(user_id)
        return AchievementOutcome(
            unlocked=True, leveled_up=leveled_up, level=level, total_points=total
        )

    async def get_achievements(self, user_id: UUID) -> LearnerAchievements:
        learner = await self._learner(user_id)
        return LearnerAchievements(
            achievements=learner.achievements,
            total_points=learner.total_points,
            level=learner.level,
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def compute_statistics(
        self, user_id: UUID, *, now: datetime | None = None
    ) -> StatisticsReport:
        await self._learner(user_id)
        today = (now or utcnow()).date()
        key = stats_cache_key(user_id, today)
        if self._cache is not None:
            cached = await self._cache.get(key)
            if cached is not None:
                STATISTICS_CACHE.labels(result="hit").inc()
                return _report_from_json(cached)
            STATISTICS_CACHE.labels(result="miss").inc()

        records = await self._progress.list_for_user(user_id)
        lessons = await self._lessons.get_many(r.lesson_id for r in records)
        report = self._aggregator.compute(
            records,
            lessons,
            total_active_lessons=await self._lessons.count_active(),
            today=today,
        )

        if self._cache is not None:
            await self._cache.set(key, _report_to_json(report), self._stats_ttl)
        return report

    async def list_progress(self, user_id: UUID) -> list[ProgressRecord]:
        await self._learner(user_id)
        records = await self._progress.list_for_user(user_id)
        return sorted(records, key=_last_touched, reverse=True)

    async def list_bookmarks(self, user_id: UUID) -> list[ProgressRecord]:
        await self._learner(user_id)
        records = [r for r in await self._progress.list_for_user(user_id) if r.bookmarked]
        return sorted(records, key=lambda r: r.bookmarked_at or r.created_at, reverse=True)

    async def overall_progress(self, user_id: UUID) -> OverallProgress:
        await self._learner(user_id)
        return self._aggregator.overall_progress(await self._progress.list_for_user(user_id))

    async def progress_by_category(self, user_id: UUID) -> list[CategoryProgress]:
        await self._learner(user_id)
        records = await self._progress.list_for_user(user_id)
        lessons = await self._lessons.get_many(r.lesson_id for r in records)
        return self._aggregator.progress_by_category(records, lessons)

    async def daily_summary(
        self, user_id: UUID, days: int = 7, *, now: datetime | None = None
    ) -> list[DailySummary]:
        await self._learner(user_id)
        records = await self._progress.list_for_user(user_id)
        return self._aggregator.daily_summary(
            records, today=(now or utcnow()).date(), days=days
        )

    async def learning_analytics(self, user_id: UUID, lesson_id: UUID) -> LearningAnalytics:
        record = await self._record(user_id, lesson_id)
        lesson = await self._lessons.get(lesson_id)
        duration = lesson.duration if lesson is not None else None
        return record.learning_analytics(duration or None)


def _last_touched(record: ProgressRecord) -> datetime:
    return record.updated_at or record.created_at  # type: ignore[return-value]
