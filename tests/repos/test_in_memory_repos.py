from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from progress_service.core.errors import ConflictError, NotFoundError
from progress_service.models.learner import Learner
from progress_service.models.lesson import Lesson
from progress_service.models.progress import ProgressRecord
from progress_service.repos.learner_repo import InMemoryLearnerRepo
from progress_service.repos.lesson_repo import InMemoryLessonRepo
from progress_service.repos.progress_repo import InMemoryProgressRepo

# ---- progress ----


def test_progress_add_get_save() -> None:
    repo = InMemoryProgressRepo()
    record = ProgressRecord.new(user_id=uuid4(), lesson_id=uuid4())
    asyncio.run(repo.add(record))
    assert asyncio.run(repo.get(record.user_id, record.lesson_id)) == record

    rated = record.rate(4)
    asyncio.run(repo.save(rated))
    stored = asyncio.run(repo.get(record.user_id, record.lesson_id))
    assert stored is not None
    assert stored.rating == 4


def test_progress_pair_is_unique() -> None:
    repo = InMemoryProgressRepo()
    user_id, lesson_id = uuid4(), uuid4()
    asyncio.run(repo.add(ProgressRecord.new(user_id=user_id, lesson_id=lesson_id)))
    with pytest.raises(ConflictError):
        asyncio.run(repo.add(ProgressRecord.new(user_id=user_id, lesson_id=lesson_id)))


def test_progress_save_unknown() -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(
            InMemoryProgressRepo().save(ProgressRecord.new(user_id=uuid4(), lesson_id=uuid4()))
        )


def test_progress_list_for_user() -> None:
    repo = InMemoryProgressRepo()
    me, other = uuid4(), uuid4()
    for user_id in (me, me, other):
        asyncio.run(repo.add(ProgressRecord.new(user_id=user_id, lesson_id=uuid4())))
    assert len(asyncio.run(repo.list_for_user(me))) == 2


# ---- lessons ----


def test_lessons_count_active_and_get_many() -> None:
    repo = InMemoryLessonRepo()
    live = Lesson.new(title="a", category="Logic")
    retired = Lesson.new(title="b", category="logic", is_active=False)
    asyncio.run(repo.add(live))
    asyncio.run(repo.add(retired))

    assert live.category == "logic"
    assert asyncio.run(repo.count_active()) == 1
    found = asyncio.run(repo.get_many([live.id, uuid4()]))
    assert list(found) == [live.id]


def test_lessons_duplicate_id() -> None:
    repo = InMemoryLessonRepo()
    lesson = Lesson.new(title="a", category="games")
    asyncio.run(repo.add(lesson))
    with pytest.raises(ConflictError):
        asyncio.run(repo.add(lesson))


# ---- learners ----


def test_learner_add_points() -> None:
    repo = InMemoryLearnerRepo()
    learner = Learner(id=uuid4(), total_points=95)
    asyncio.run(repo.add(learner))

    award = asyncio.run(repo.add_points(learner.id, 10))
    assert award.total_points == 105
    assert award.leveled_up is True
    stored = asyncio.run(repo.get(learner.id))
    assert stored is not None
    assert stored.level == 2


def test_learner_add_points_unknown() -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(InMemoryLearnerRepo().add_points(uuid4(), 10))
