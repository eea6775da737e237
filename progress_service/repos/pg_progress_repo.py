"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from progress_service.core.errors import ConflictError, NotFoundError
from progress_service.db.tables import ProgressRecordRow
from progress_service.models.progress import ProgressRecord
from progress_service.repos.serialization import (
    achievement_from_json,
    achievement_to_json,
    engagement_from_json,
    engagement_to_json,
    last_watch_from_json,
    last_watch_to_json,
    session_from_json,
    session_to_json,
)


class PgProgressRepo:
    """Satisfies the ProgressRepo Protocol.

    The (user_id, lesson_id) unique constraint is the uniqueness guard:
    a concurrent first touch from two requests loses on insert and
    surfaces as ConflictError.  `save` is a whole-row update, so the last
    successful write wins.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID, lesson_id: UUID) -> ProgressRecord | None:
        stmt = select(ProgressRecordRow).where(
            ProgressRecordRow.user_id == user_id,
            ProgressRecordRow.lesson_id == lesson_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_record(row)

    async def add(self, record: ProgressRecord) -> None:
        # Savepoint: a duplicate insert rolls back only itself, not the
        # rest of the request's transaction.
        try:
            async with self._session.begin_nested():
                self._session.add(
                    ProgressRecordRow(id=record.id, **_record_values(record))
                )
        except IntegrityError:
            raise ConflictError(
                f"progress already exists for user={record.user_id} "
                f"lesson={record.lesson_id}"
            ) from None

    async def save(self, record: ProgressRecord) -> None:
        stmt = (
            update(ProgressRecordRow)
            .where(
                ProgressRecordRow.user_id == record.user_id,
                ProgressRecordRow.lesson_id == record.lesson_id,
            )
            .values(**_record_values(record))
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError(
                f"no progress for user={record.user_id} lesson={record.lesson_id}"
            )

    async def list_for_user(self, user_id: UUID) -> list[ProgressRecord]:
        stmt = select(ProgressRecordRow).where(ProgressRecordRow.user_id == user_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_record(row) for row in rows]


def _record_values(r: ProgressRecord) -> dict:
    return {
        "user_id": r.user_id,
        "lesson_id": r.lesson_id,
        "status": r.status,
        "watch_time": r.watch_time,
        "completion_percentage": r.completion_percentage,
        "is_completed": r.is_completed,
        "started_at": r.started_at,
        "completed_at": r.completed_at,
        "last_watch": last_watch_to_json(r.last_watch),
        "watch_sessions": [session_to_json(s) for s in r.watch_sessions],
        "compacted_sessions": r.compacted_sessions,
        "rating": r.rating,
        "feedback": r.feedback,
        "notes": r.notes,
        "parent_notes": r.parent_notes,
        "perceived_difficulty": r.perceived_difficulty,
        "points_earned": r.points_earned,
        "attempts": r.attempts,
        "bookmarked": r.bookmarked,
        "bookmarked_at": r.bookmarked_at,
        "time_spent": r.time_spent,
        "streak_count": r.streak_count,
        "achievements": [achievement_to_json(a) for a in r.achievements],
        "engagement": engagement_to_json(r.engagement),
        "created_at": r.created_at,
        "updated_at": r.updated_at,
    }


def _row_to_record(row: ProgressRecordRow) -> ProgressRecord:
    return ProgressRecord(
        id=row.id,
        user_id=row.user_id,
        lesson_id=row.lesson_id,
        status=row.status,  # type: ignore[arg-type]
        watch_time=row.watch_time,
        completion_percentage=row.completion_percentage,
        is_completed=row.is_completed,
        started_at=row.started_at,
        completed_at=row.completed_at,
        last_watch=last_watch_from_json(row.last_watch or {}),
        watch_sessions=tuple(session_from_json(s) for s in row.watch_sessions or ()),
        compacted_sessions=row.compacted_sessions,
        rating=row.rating,
        feedback=row.feedback,
        notes=row.notes,
        parent_notes=row.parent_notes,
        perceived_difficulty=row.perceived_difficulty,  # type: ignore[arg-type]
        points_earned=row.points_earned,
        attempts=row.attempts,
        bookmarked=row.bookmarked,
        bookmarked_at=row.bookmarked_at,
        time_spent=row.time_spent,
        streak_count=row.streak_count,
        achievements=tuple(achievement_from_json(a) for a in row.achievements or ()),
        engagement=engagement_from_json(row.engagement or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
