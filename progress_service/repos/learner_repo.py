from __future__ import annotations

from typing import Protocol
from uuid import UUID

from progress_service.core.errors import ConflictError, NotFoundError
from progress_service.models.learner import Learner, PointsAward


class LearnerRepo(Protocol):
    async def get(self, user_id: UUID) -> Learner | None: ...
    async def add(self, learner: Learner) -> None: ...
    async def save(self, learner: Learner) -> None: ...
    async def add_points(self, user_id: UUID, points: int) -> PointsAward: ...


class InMemoryLearnerRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Learner] = {}

    async def get(self, user_id: UUID) -> Learner | None:
        return self._by_id.get(user_id)

    async def add(self, learner: Learner) -> None:
        if learner.id in self._by_id:
            raise ConflictError(f"learner {learner.id} already exists")
        self._by_id[learner.id] = learner

    async def save(self, learner: Learner) -> None:
        if learner.id not in self._by_id:
            raise NotFoundError(f"learner {learner.id} not found")
        self._by_id[learner.id] = learner

    async def add_points(self, user_id: UUID, points: int) -> PointsAward:
        learner = self._by_id.get(user_id)
        if learner is None:
            raise NotFoundError(f"learner {user_id} not found")
        updated, award = learner.add_points(points)
        self._by_id[user_id] = updated
        return award
