"""PostgreSQL implementation of LessonRepo (read side of the lesson store)."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from progress_service.db.tables import LessonRow
from progress_service.models.lesson import Lesson


class PgLessonRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, lesson_id: UUID) -> Lesson | None:
        row = await self._session.get(LessonRow, lesson_id)
        return _row_to_lesson(row) if row is not None else None

    async def get_many(self, lesson_ids: Iterable[UUID]) -> dict[UUID, Lesson]:
        ids = list(set(lesson_ids))
        if not ids:
            return {}
        stmt = select(LessonRow).where(LessonRow.id.in_(ids))
        rows = (await self._session.execute(stmt)).scalars().all()
        return {row.id: _row_to_lesson(row) for row in rows}

    async def count_active(self) -> int:
        stmt = select(func.count()).select_from(LessonRow).where(LessonRow.is_active)
        return (await self._session.execute(stmt)).scalar_one()

    async def add(self, lesson: Lesson) -> None:
        self._session.add(
            LessonRow(
                id=lesson.id,
                title=lesson.title,
                category=lesson.category,
                difficulty=lesson.difficulty,
                duration=lesson.duration,
                points=lesson.points,
                is_active=lesson.is_active,
            )
        )
        await self._session.flush()


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        title=row.title,
        category=row.category,
        difficulty=row.difficulty,  # type: ignore[arg-type]
        duration=row.duration,
        points=row.points,
        is_active=row.is_active,
    )
