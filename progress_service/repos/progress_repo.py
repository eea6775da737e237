from __future__ import annotations

from typing import Protocol
from uuid import UUID

from progress_service.core.errors import ConflictError, NotFoundError
from progress_service.models.progress import ProgressRecord


class ProgressRepo(Protocol):
    async def get(self, user_id: UUID, lesson_id: UUID) -> ProgressRecord | None: ...
    async def add(self, record: ProgressRecord) -> None: ...
    async def save(self, record: ProgressRecord) -> None: ...
    async def list_for_user(self, user_id: UUID) -> list[ProgressRecord]: ...


class InMemoryProgressRepo:
    """One record per (user, lesson).  `save` replaces the whole aggregate."""

    def __init__(self) -> None:
        self._by_key: dict[tuple[UUID, UUID], ProgressRecord] = {}

    async def get(self, user_id: UUID, lesson_id: UUID) -> ProgressRecord | None:
        return self._by_key.get((user_id, lesson_id))

    async def add(self, record: ProgressRecord) -> None:
        key = (record.user_id, record.lesson_id)
        if key in self._by_key:
            raise ConflictError(
                f"progress already exists for user={record.user_id} "
                f"lesson={record.lesson_id}"
            )
        self._by_key[key] = record

    async def save(self, record: ProgressRecord) -> None:
        key = (record.user_id, record.lesson_id)
        if key not in self._by_key:
            raise NotFoundError(
                f"no progress for user={record.user_id} lesson={record.lesson_id}"
            )
        self._by_key[key] = record

    async def list_for_user(self, user_id: UUID) -> list[ProgressRecord]:
        return [r for (uid, _), r in self._by_key.items() if uid == user_id]
