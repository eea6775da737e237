from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID, uuid4

from progress_service.core.errors import InvalidInputError
from progress_service.models.achievement import Achievement

MAX_LEVEL = 10
POINTS_PER_LEVEL = 100


def level_for(total_points: int) -> int:
    return min(MAX_LEVEL, total_points // POINTS_PER_LEVEL + 1)


@dataclass(frozen=True, slots=True)
class PointsAward:
    total_points: int
    level: int
    leveled_up: bool


@dataclass(frozen=True, slots=True)
class Learner:
    """The slice of a user profile the gamification core reads and writes."""

    id: UUID
    name: str = ""
    total_points: int = 0
    level: int = 1  # 1..10, never lowered
    streak_days: int = 0
    last_active_date: datetime | None = None
    achievements: tuple[Achievement, ...] = ()

    @staticmethod
    def new(*, name: str = "", now: datetime | None = None) -> Learner:
        return Learner(id=uuid4(), name=name, last_active_date=now)

    def add_points(self, points: int) -> tuple[Learner, PointsAward]:
        if points < 0:
            raise InvalidInputError(f"points must be >= 0 (got {points})")
        total = self.total_points + points
        new_level = level_for(total)
        leveled_up = new_level > self.level
        updated = replace(
            self,
            total_points=total,
            level=new_level if leveled_up else self.level,
        )
        return updated, PointsAward(
            total_points=updated.total_points,
            level=updated.level,
            leveled_up=leveled_up,
        )
