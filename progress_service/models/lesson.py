from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

Difficulty = Literal["easy", "medium", "hard"]


@dataclass(frozen=True, slots=True)
class Lesson:
    """Read-only lesson metadata the core consumes.

    Lesson authoring lives elsewhere; this service only reads the fields
    that drive scoring and statistics.
    """

    id: UUID
    title: str
    category: str  # basics|coding|logic|projects|games
    difficulty: Difficulty = "easy"
    duration: int = 0  # seconds
    points: int = 10  # base points, 5..50
    is_active: bool = True

    @staticmethod
    def new(
        *,
        title: str,
        category: str,
        difficulty: Difficulty = "easy",
        duration: int = 0,
        points: int = 10,
        is_active: bool = True,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            title=title,
            category=category.lower(),
            difficulty=difficulty,
            duration=duration,
            points=points,
            is_active=is_active,
        )
