"""SQLAlchemy table rows.

Rows are the persistence shape only; repositories convert them to and
from the frozen domain dataclasses in progress_service/models/.

A progress record's watch sessions, achievements, last-watch marker and
engagement levels are stored as JSONB on the record's own row, so saving
the aggregate is a single-row write.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from progress_service.db.engine import Base


class LearnerRow(Base):
    __tablename__ = "learners"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    streak_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_active_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    achievements: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)


class LessonRow(Base):
    __tablename__ = "lessons"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # basics|coding|logic|projects|games
    difficulty: Mapped[str] = mapped_column(
        String(16), nullable=False, default="easy"
    )  # easy|medium|hard
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ProgressRecordRow(Base):
    __tablename__ = "progress_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("learners.id"), nullable=False, index=True
    )
    lesson_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lessons.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="not_started"
    )  # not_started|in_progress|completed
    watch_time: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    completion_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_watch: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    watch_sessions: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    compacted_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating: Mapped[int | None] = mapped_column(Integer)
    feedback: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    parent_notes: Mapped[str | None] = mapped_column(Text)
    perceived_difficulty: Mapped[str] = mapped_column(
        String(16), nullable=False, default="just_right"
    )  # too_easy|just_right|too_hard
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    bookmarked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bookmarked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    achievements: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    engagement: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_progress_user_lesson"),
    )
