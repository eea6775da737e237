from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from progress_service.core.clock import utcnow
from progress_service.core.errors import InvalidInputError

AchievementType = Literal["completion", "speed", "understanding", "streak", "engagement"]

ACHIEVEMENT_TYPES: frozenset[str] = frozenset(
    ("completion", "speed", "understanding", "streak", "engagement")
)

LESSON_COMPLETED = "Lesson Completed"


@dataclass(frozen=True, slots=True)
class Achievement:
    name: str  # unique within its scope
    type: AchievementType
    unlocked_at: datetime
    description: str | None = None
    points: int = 0


class AchievementRegistry:
    """Idempotent unlock tracking over one scope's achievements.

    A scope is either one progress record (lesson achievements) or one
    learner profile.  The two are separate registries: unlocking
    "Lesson Completed" on one record says nothing about any other record
    or about the profile.

    Insertion order is preserved so the stored tuple reads oldest first.
    """

    def __init__(self, achievements: Iterable[Achievement] = ()) -> None:
        self._by_name: dict[str, Achievement] = {}
        for a in achievements:
            self._by_name.setdefault(a.name, a)

    def add(
        self,
        name: str,
        type: str,
        *,
        now: datetime | None = None,
        description: str | None = None,
        points: int = 0,
    ) -> bool:
        """Unlock `name`.  Returns False, changing nothing, if already held."""
        if not name or not name.strip():
            raise InvalidInputError("achievement name must be non-empty")
        if type not in ACHIEVEMENT_TYPES:
            raise InvalidInputError(f"unknown achievement type {type!r}")
        if points < 0:
            raise InvalidInputError("achievement points must be >= 0")

        if name in self._by_name:
            return False

        self._by_name[name] = Achievement(
            name=name,
            type=type,  # type: ignore[arg-type]
            unlocked_at=now or utcnow(),
            description=description,
            points=points,
        )
        return True

    def get(self, name: str) -> Achievement | None:
        return self._by_name.get(name)

    def snapshot(self) -> tuple[Achievement, ...]:
        return tuple(self._by_name.values())

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Achievement]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)
