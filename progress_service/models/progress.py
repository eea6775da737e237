"""ProgressRecord: the per-(user, lesson) aggregate.

The record is a frozen value.  Every operation is a state transition that
returns a NEW record (plus whatever the caller needs to know about the
transition); the caller persists the whole aggregate in one save.  Watch
sessions and achievements are embedded value tuples managed through
WatchSessionTracker and AchievementRegistry, never mutated in place.

    not_started --start_session / progress > 0--> in_progress
    in_progress --progress >= 80%--------------> completed

`completed` is terminal for the completion flag only: rating, bookmark,
notes and engagement stay writable.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

from progress_service.core.clock import utcnow
from progress_service.core.errors import InvalidInputError, InvalidStateError
from progress_service.core.rounding import round_half_up
from progress_service.models.achievement import (
    LESSON_COMPLETED,
    Achievement,
    AchievementRegistry,
)
from progress_service.models.watch_session import WatchSession, WatchSessionTracker

ProgressStatus = Literal["not_started", "in_progress", "completed"]
PerceivedDifficulty = Literal["too_easy", "just_right", "too_hard"]

COMPLETION_THRESHOLD = 80  # percent watched
MAX_TEXT_LENGTH = 500


def _check_level(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise InvalidInputError(f"{name} must be an integer between 1 and 5 (got {value!r})")
    return value


def _check_text(name: str, value: str) -> str:
    if len(value) > MAX_TEXT_LENGTH:
        raise InvalidInputError(f"{name} cannot be more than {MAX_TEXT_LENGTH} characters")
    return value


@dataclass(frozen=True, slots=True)
class LastWatch:
    position: float = 0
    timestamp: datetime | None = None


@dataclass(frozen=True, slots=True)
class ChildEngagement:
    """Caregiver- or self-reported levels, each 1..5."""

    attention_level: int = 3
    enjoyment_level: int = 3
    confidence_level: int = 3

    def __post_init__(self) -> None:
        _check_level("attention_level", self.attention_level)
        _check_level("enjoyment_level", self.enjoyment_level)
        _check_level("confidence_level", self.confidence_level)

    @property
    def total(self) -> int:
        return self.attention_level + self.enjoyment_level + self.confidence_level

    @property
    def score(self) -> int:
        return round_half_up(self.total / 3)


@dataclass(frozen=True, slots=True)
class CompletionResult:
    completed: bool
    first_time: bool


@dataclass(frozen=True, slots=True)
class LearningAnalytics:
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


@dataclass(frozen=True, slots=True)
class ProgressRecord:
    id: UUID
    user_id: UUID
    lesson_id: UUID
    status: ProgressStatus = "not_started"
    watch_time: float = 0  # seconds, never decreases
    completion_percentage: int = 0
    is_completed: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_watch: LastWatch = field(default_factory=LastWatch)
    watch_sessions: tuple[WatchSession, ...] = ()
    compacted_sessions: int = 0
    rating: int | None = None
    feedback: str | None = None
    notes: str | None = None
    parent_notes: str | None = None
    perceived_difficulty: PerceivedDifficulty = "just_right"
    points_earned: int = 0
    attempts: int = 1
    bookmarked: bool = False
    bookmarked_at: datetime | None = None
    time_spent: int = 0  # sum of closed session durations
    streak_count: int = 0
    achievements: tuple[Achievement, ...] = ()
    engagement: ChildEngagement = field(default_factory=ChildEngagement)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def new(*, user_id: UUID, lesson_id: UUID, now: datetime | None = None) -> ProgressRecord:
        now = now or utcnow()
        return ProgressRecord(
            id=uuid4(),
            user_id=user_id,
            lesson_id=lesson_id,
            created_at=now,
            updated_at=now,
        )

    # ------------------------------------------------------------------
    # Watch sessions
    # ------------------------------------------------------------------

    @property
    def open_session(self) -> WatchSession | None:
        return WatchSessionTracker(self.watch_sessions).current

    def start_session(
        self, start_position: float = 0, *, now: datetime | None = None
    ) -> tuple[ProgressRecord, WatchSession]:
        now = now or utcnow()
        tracker = WatchSessionTracker(self.watch_sessions, self.compacted_sessions)
        session = tracker.start(start_position, now=now)

        updated = replace(self, watch_sessions=tracker.sessions, updated_at=now)
        if self.status == "not_started":
            updated = replace(updated, status="in_progress", started_at=now)
        return updated, session

    def end_session(
        self,
        end_position: float,
        completed: bool = False,
        *,
        now: datetime | None = None,
        retention: int | None = None,
    ) -> tuple[ProgressRecord, WatchSession | None]:
        now = now or utcnow()
        tracker = WatchSessionTracker(self.watch_sessions, self.compacted_sessions)
        closed = tracker.end(end_position, completed, now=now)
        if closed is None:
            return self, None

        if retention is not None:
            tracker.compact(retention)

        return (
            replace(
                self,
                watch_sessions=tracker.sessions,
                compacted_sessions=tracker.compacted,
                time_spent=self.time_spent + (closed.duration or 0),
                last_watch=LastWatch(position=end_position, timestamp=now),
                updated_at=now,
            ),
            closed,
        )

    # ------------------------------------------------------------------
    # Progress and completion
    # ------------------------------------------------------------------

    def record_progress(
        self,
        watch_time: float,
        total_duration: float,
        position: float = 0,
        *,
        now: datetime | None = None,
    ) -> tuple[ProgressRecord, CompletionResult]:
        if not math.isfinite(watch_time) or watch_time < 0:
            raise InvalidInputError(
                f"watch time must be a finite number >= 0 (got {watch_time})"
            )
        if not math.isfinite(total_duration) or total_duration <= 0:
            raise InvalidInputError(
                f"total duration must be a finite number > 0 (got {total_duration})"
            )
        if not math.isfinite(position) or position < 0:
            raise InvalidInputError(
                f"playback position must be a finite number >= 0 (got {position})"
            )

        now = now or utcnow()
        best = max(self.watch_time, watch_time)
        percentage = min(100, round_half_up(best / total_duration * 100))

        updated = replace(
            self,
            watch_time=best,
            completion_percentage=percentage,
            last_watch=LastWatch(position=position, timestamp=now),
            updated_at=now,
        )
        if percentage > 0 and updated.status == "not_started":
            updated = replace(
                updated, status="in_progress", started_at=self.started_at or now
            )

        if percentage >= COMPLETION_THRESHOLD and not self.is_completed:
            registry = AchievementRegistry(updated.achievements)
            registry.add(LESSON_COMPLETED, "completion", now=now)
            updated = replace(
                updated,
                is_completed=True,
                status="completed",
                completed_at=now,
                started_at=updated.started_at or now,
                achievements=registry.snapshot(),
            )
            return updated, CompletionResult(completed=True, first_time=True)

        return updated, CompletionResult(completed=False, first_time=False)

    def award_points(self, points: int, *, now: datetime | None = None) -> ProgressRecord:
        if not self.is_completed:
            raise InvalidStateError("points are only awarded for completed lessons")
        if points < 0:
            raise InvalidInputError("points must be >= 0")
        return replace(self, points_earned=points, updated_at=now or utcnow())

    def with_streak(self, streak_count: int) -> ProgressRecord:
        return replace(self, streak_count=max(0, streak_count))

    def unlock_achievement(
        self, name: str, type: str, *, now: datetime | None = None
    ) -> tuple[ProgressRecord, bool]:
        now = now or utcnow()
        registry = AchievementRegistry(self.achievements)
        if not registry.add(name, type, now=now):
            return self, False
        return replace(self, achievements=registry.snapshot(), updated_at=now), True

    # ------------------------------------------------------------------
    # Learner-editable fields (writable after completion too)
    # ------------------------------------------------------------------

    def rate(self, value: int, *, now: datetime | None = None) -> ProgressRecord:
        _check_level("rating", value)
        return replace(self, rating=value, updated_at=now or utcnow())

    def set_bookmark(self, flag: bool, *, now: datetime | None = None) -> ProgressRecord:
        now = now or utcnow()
        if flag == self.bookmarked:
            return replace(self, updated_at=now)
        return replace(
            self,
            bookmarked=flag,
            bookmarked_at=now if flag else None,
            updated_at=now,
        )

    def update_engagement(
        self,
        *,
        attention_level: int | None = None,
        enjoyment_level: int | None = None,
        confidence_level: int | None = None,
        now: datetime | None = None,
    ) -> ProgressRecord:
        current = self.engagement
        engagement = ChildEngagement(
            attention_level=current.attention_level
            if attention_level is None
            else attention_level,
            enjoyment_level=current.enjoyment_level
            if enjoyment_level is None
            else enjoyment_level,
            confidence_level=current.confidence_level
            if confidence_level is None
            else confidence_level,
        )
        return replace(self, engagement=engagement, updated_at=now or utcnow())

    def update_notes(
        self,
        *,
        notes: str | None = None,
        feedback: str | None = None,
        parent_notes: str | None = None,
        perceived_difficulty: str | None = None,
        now: datetime | None = None,
    ) -> ProgressRecord:
        changes: dict[str, object] = {}
        if notes is not None:
            changes["notes"] = _check_text("notes", notes)
        if feedback is not None:
            changes["feedback"] = _check_text("feedback", feedback)
        if parent_notes is not None:
            changes["parent_notes"] = _check_text("parent_notes", parent_notes)
        if perceived_difficulty is not None:
            if perceived_difficulty not in ("too_easy", "just_right", "too_hard"):
                raise InvalidInputError(
                    "perceived difficulty must be too_easy|just_right|too_hard "
                    f"(got {perceived_difficulty!r})"
                )
            changes["perceived_difficulty"] = perceived_difficulty
        return replace(self, updated_at=now or utcnow(), **changes)  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    # Read-side
    # ------------------------------------------------------------------

    def learning_analytics(self, lesson_duration: float | None = None) -> LearningAnalytics:
        # Compacted sessions still count; their durations live in time_spent.
        session_count = len(self.watch_sessions) + self.compacted_sessions
        watched = self.time_spent

        actual_rate = 0
        if session_count and lesson_duration:
            actual_rate = min(100, round_half_up(watched / lesson_duration * 100))

        efficiency = 0
        if self.time_spent:
            ideal = lesson_duration if lesson_duration else self.watch_time
            efficiency = round_half_up(ideal / self.time_spent * 100)

        return LearningAnalytics(
            total_watch_time=self.watch_time,
            total_time_spent=self.time_spent,
            completion_percentage=self.completion_percentage,
            attempts=self.attempts,
            average_session_duration=(
                round_half_up(self.time_spent / session_count) if session_count else 0
            ),
            actual_completion_rate=actual_rate,
            learning_efficiency=efficiency,
            engagement_score=self.engagement.score,
            achievements_count=len(self.achievements),
            streak_count=self.streak_count,
            last_watched_at=self.last_watch.timestamp,
            is_bookmarked=self.bookmarked,
        )
