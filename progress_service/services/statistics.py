"""Read-side aggregation over a learner's progress records.

Everything here is a pure function of the records and lesson metadata
handed in: no repository access, no clock reads (callers pass `today`).
A report therefore reflects exactly one observed snapshot; it may race
with in-flight writes, but is internally consistent.

Records whose lesson no longer resolves are skipped by the per-lesson
breakdowns instead of failing the report.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from uuid import UUID

from progress_service.core.rounding import round_half_up, round_to
from progress_service.models.lesson import Lesson
from progress_service.models.progress import ProgressRecord

DIFFICULTIES = ("easy", "medium", "hard")
WEEK_DAYS = 7


@dataclass(slots=True)
class CategoryStat:
    completed: int = 0
    total: int = 0
    points: int = 0


@dataclass(frozen=True, slots=True)
class DailyProgress:
    date: str  # yyyy-mm-dd
    lessons_completed: int
    points_earned: int


@dataclass(frozen=True, slots=True)
class StatisticsReport:
    total_lessons: int
    completed_lessons: int
    in_progress_lessons: int
    completion_rate: int
    total_watch_time: int  # minutes
    average_rating: float
    category_stats: dict[str, CategoryStat]
    difficulty_stats: dict[str, int]
    weekly_progress: list[DailyProgress]
    total_points_from_lessons: int


@dataclass(frozen=True, slots=True)
class OverallProgress:
    total_lessons: int = 0
    completed_lessons: int = 0
    total_watch_time: float = 0
    total_time_spent: int = 0
    total_points: int = 0
    average_rating: float = 0
    total_achievements: int = 0
    bookmarked_lessons: int = 0


@dataclass(frozen=True, slots=True)
class CategoryProgress:
    category: str
    total_lessons: int
    completed_lessons: int
    completion_rate: float
    average_progress: float
    total_points: int


@dataclass(frozen=True, slots=True)
class DailySummary:
    date: str
    lessons_watched: int
    lessons_completed: int
    total_watch_time: float
    average_engagement: float


def _day(ts: datetime) -> date:
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(UTC).date()


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0


class StatisticsAggregator:
    def compute(
        self,
        records: Iterable[ProgressRecord],
        lessons: Mapping[UUID, Lesson],
        *,
        total_active_lessons: int,
        today: date,
    ) -> StatisticsReport:
        records = list(records)

        completed = sum(1 for r in records if r.is_completed)
        in_progress = sum(1 for r in records if r.status == "in_progress")
        ratings = [r.rating for r in records if r.rating is not None]

        category_stats: dict[str, CategoryStat] = {}
        difficulty_stats = dict.fromkeys(DIFFICULTIES, 0)
        points_from_lessons = 0

        for r in records:
            lesson = lessons.get(r.lesson_id)
            if lesson is None:
                continue
            stat = category_stats.setdefault(lesson.category, CategoryStat())
            stat.total += 1
            if r.is_completed:
                stat.completed += 1
                stat.points += r.points_earned
                if lesson.difficulty in difficulty_stats:
                    difficulty_stats[lesson.difficulty] += 1
                points_from_lessons += r.points_earned

        return StatisticsReport(
            total_lessons=total_active_lessons,
            completed_lessons=completed,
            in_progress_lessons=in_progress,
            completion_rate=(
                round_half_up(completed / total_active_lessons * 100)
                if total_active_lessons > 0
                else 0
            ),
            total_watch_time=round_half_up(sum(r.watch_time for r in records) / 60),
            average_rating=round_to(_mean(ratings), 1),
            category_stats=category_stats,
            difficulty_stats=difficulty_stats,
            weekly_progress=self.weekly_progress(records, today=today),
            total_points_from_lessons=points_from_lessons,
        )

    def weekly_progress(
        self, records: Iterable[ProgressRecord], *, today: date
    ) -> list[DailyProgress]:
        """Seven days, oldest first, ending today; empty days are zero."""
        window = [today - timedelta(days=offset) for offset in range(WEEK_DAYS - 1, -1, -1)]
        counts = dict.fromkeys(window, 0)
        points = dict.fromkeys(window, 0)

        for r in records:
            if not r.is_completed or r.completed_at is None:
                continue
            day = _day(r.completed_at)
            if day in counts:
                counts[day] += 1
                points[day] += r.points_earned

        return [
            DailyProgress(
                date=day.isoformat(),
                lessons_completed=counts[day],
                points_earned=points[day],
            )
            for day in window
        ]

    def overall_progress(self, records: Iterable[ProgressRecord]) -> OverallProgress:
        records = list(records)
        if not records:
            return OverallProgress()
        ratings = [r.rating for r in records if r.rating is not None]
        return OverallProgress(
            total_lessons=len(records),
            completed_lessons=sum(1 for r in records if r.is_completed),
            total_watch_time=sum(r.watch_time for r in records),
            total_time_spent=sum(r.time_spent for r in records),
            total_points=sum(r.points_earned for r in records),
            average_rating=_mean(ratings),
            total_achievements=sum(len(r.achievements) for r in records),
            bookmarked_lessons=sum(1 for r in records if r.bookmarked),
        )

    def progress_by_category(
        self, records: Iterable[ProgressRecord], lessons: Mapping[UUID, Lesson]
    ) -> list[CategoryProgress]:
        groups: dict[str, list[ProgressRecord]] = {}
        for r in records:
            lesson = lessons.get(r.lesson_id)
            if lesson is not None:
                groups.setdefault(lesson.category, []).append(r)

        result = []
        for category, group in groups.items():
            done = sum(1 for r in group if r.is_completed)
            result.append(
                CategoryProgress(
                    category=category,
                    total_lessons=len(group),
                    completed_lessons=done,
                    completion_rate=round_to(done / len(group) * 100, 2),
                    average_progress=round_to(
                        _mean([r.completion_percentage for r in group]), 2
                    ),
                    total_points=sum(r.points_earned for r in group),
                )
            )
        return result

    def daily_summary(
        self, records: Iterable[ProgressRecord], *, today: date, days: int = WEEK_DAYS
    ) -> list[DailySummary]:
        """Per-day activity for the parent dashboard, by last update day."""
        start = today - timedelta(days=days - 1)
        buckets: dict[date, list[ProgressRecord]] = {}
        for r in records:
            if r.updated_at is None:
                continue
            day = _day(r.updated_at)
            if start <= day <= today:
                buckets.setdefault(day, []).append(r)

        return [
            DailySummary(
                date=day.isoformat(),
                lessons_watched=len(bucket),
                lessons_completed=sum(1 for r in bucket if r.is_completed),
                total_watch_time=sum(r.watch_time for r in bucket),
                average_engagement=round_to(
                    _mean([r.engagement.total for r in bucket]), 2
                ),
            )
            for day, bucket in sorted(buckets.items())
        ]
