"""Lesson completion scoring.

`calculate_points` is a pure function.  The order of the steps and the
rounding are part of the contract:

  1. base x difficulty multiplier (easy 1, medium 1.2, hard 1.5)
  2. + floor(25% of base)   first attempt
  3. + floor(15% of base)   watched in under twice the lesson duration
  4. + 10 for a 5 rating, else + 5 for a 4 rating
  5. + 5                    enjoyment >= 4 and attention >= 4
  6. + floor(10% of base)   streak of 7+ days
  7. round once, at the end

Percentage bonuses are floored individually; the multiplied base is not
rounded until step 7.  Rounding each step, or reordering, changes totals.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from progress_service.core.rounding import round_half_up
from progress_service.models.lesson import Lesson
from progress_service.models.progress import ChildEngagement, ProgressRecord

DIFFICULTY_MULTIPLIER: dict[str, float] = {
    "easy": 1,
    "medium": 1.2,
    "hard": 1.5,
}

FIRST_ATTEMPT_BONUS = 0.25
SPEED_BONUS = 0.15
STREAK_BONUS = 0.1
STREAK_BONUS_DAYS = 7
ENGAGEMENT_BONUS = 5


@dataclass(frozen=True, slots=True)
class PointsInput:
    base_points: int
    difficulty: str
    attempts: int
    time_spent: int
    lesson_duration: int | None
    rating: int | None
    engagement: ChildEngagement
    streak_count: int
    completed: bool

    @staticmethod
    def for_record(record: ProgressRecord, lesson: Lesson) -> PointsInput:
        return PointsInput(
            base_points=lesson.points,
            difficulty=lesson.difficulty,
            attempts=record.attempts,
            time_spent=record.time_spent,
            lesson_duration=lesson.duration or None,
            rating=record.rating,
            engagement=record.engagement,
            streak_count=record.streak_count,
            completed=record.is_completed,
        )


def calculate_points(inp: PointsInput) -> int:
    if not inp.completed:
        return 0

    base = inp.base_points
    points: float = base * DIFFICULTY_MULTIPLIER.get(inp.difficulty, 1)

    if inp.attempts == 1:
        points += math.floor(base * FIRST_ATTEMPT_BONUS)

    if inp.lesson_duration and inp.time_spent < inp.lesson_duration * 2:
        points += math.floor(base * SPEED_BONUS)

    if inp.rating is not None:
        if inp.rating >= 5:
            points += 10
        elif inp.rating >= 4:
            points += 5

    if inp.engagement.enjoyment_level >= 4 and inp.engagement.attention_level >= 4:
        points += ENGAGEMENT_BONUS

    if inp.streak_count >= STREAK_BONUS_DAYS:
        points += math.floor(base * STREAK_BONUS)

    return round_half_up(points)
