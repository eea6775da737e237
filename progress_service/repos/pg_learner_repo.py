"""PostgreSQL implementation of LearnerRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from progress_service.core.errors import NotFoundError
from progress_service.db.tables import LearnerRow
from progress_service.models.learner import Learner, PointsAward
from progress_service.repos.serialization import (
    achievement_from_json,
    achievement_to_json,
)


class PgLearnerRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID) -> Learner | None:
        row = await self._session.get(LearnerRow, user_id)
        return _row_to_learner(row) if row is not None else None

    async def add(self, learner: Learner) -> None:
        self._session.add(LearnerRow(id=learner.id, **_learner_values(learner)))
        await self._session.flush()

    async def save(self, learner: Learner) -> None:
        stmt = (
            update(LearnerRow)
            .where(LearnerRow.id == learner.id)
            .values(**_learner_values(learner))
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError(f"learner {learner.id} not found")

    async def add_points(self, user_id: UUID, points: int) -> PointsAward:
        # Row lock so two completions landing together both count.
        stmt = select(LearnerRow).where(LearnerRow.id == user_id).with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"learner {user_id} not found")

        updated, award = _row_to_learner(row).add_points(points)
        row.total_points = updated.total_points
        row.level = updated.level
        await self._session.flush()
        return award


def _learner_values(learner: Learner) -> dict:
    return {
        "name": learner.name,
        "total_points": learner.total_points,
        "level": learner.level,
        "streak_days": learner.streak_days,
        "last_active_date": learner.last_active_date,
        "achievements": [achievement_to_json(a) for a in learner.achievements],
    }


def _row_to_learner(row: LearnerRow) -> Learner:
    return Learner(
        id=row.id,
        name=row.name or "",
        total_points=row.total_points,
        level=row.level,
        streak_days=row.streak_days,
        last_active_date=row.last_active_date,
        achievements=tuple(achievement_from_json(a) for a in row.achievements or ()),
    )
