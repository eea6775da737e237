from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from progress_service.core.errors import ConflictError
from progress_service.models.lesson import Lesson


class LessonRepo(Protocol):
    async def get(self, lesson_id: UUID) -> Lesson | None: ...
    async def get_many(self, lesson_ids: Iterable[UUID]) -> dict[UUID, Lesson]: ...
    async def count_active(self) -> int: ...
    async def add(self, lesson: Lesson) -> None: ...


class InMemoryLessonRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Lesson] = {}

    async def get(self, lesson_id: UUID) -> Lesson | None:
        return self._by_id.get(lesson_id)

    async def get_many(self, lesson_ids: Iterable[UUID]) -> dict[UUID, Lesson]:
        return {lid: self._by_id[lid] for lid in set(lesson_ids) if lid in self._by_id}

    async def count_active(self) -> int:
        return sum(1 for lesson in self._by_id.values() if lesson.is_active)

    async def add(self, lesson: Lesson) -> None:
        if lesson.id in self._by_id:
            raise ConflictError(f"lesson {lesson.id} already exists")
        self._by_id[lesson.id] = lesson
