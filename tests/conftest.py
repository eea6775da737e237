from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import progress_service` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from progress_service.api.dependencies import (  # noqa: E402
    learner_repo,
    lesson_repo,
    progress_repo,
)
from progress_service.api.ratelimit import rate_limiter  # noqa: E402
from progress_service.main import app  # noqa: E402
from progress_service.models.learner import Learner  # noqa: E402
from progress_service.models.lesson import Lesson  # noqa: E402
from progress_service.services import token_service  # noqa: E402
from progress_service.services.cache import cache_service  # noqa: E402


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Clear the in-memory stores between tests."""
    progress_repo._by_key.clear()
    lesson_repo._by_id.clear()
    learner_repo._by_id.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    if hasattr(rate_limiter, "clear"):
        rate_limiter.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(user_id: UUID | str, roles: list[str] | None = None) -> str:
    """Create a valid ES256 access token for testing."""
    return token_service.create_access_token(sub=str(user_id), roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def learner() -> Learner:
    """A learner profile present in the in-memory store."""
    learner = Learner(id=uuid4(), name="Ada")
    asyncio.run(learner_repo.add(learner))
    return learner


@pytest.fixture
def lesson() -> Lesson:
    """An active medium lesson: 10 base points, 60 seconds long."""
    lesson = Lesson.new(
        title="Loops with a robot",
        category="Coding",
        difficulty="medium",
        duration=60,
        points=10,
    )
    asyncio.run(lesson_repo.add(lesson))
    return lesson


@pytest.fixture
def token(learner: Learner) -> str:
    return mint_token(learner.id)


@pytest.fixture
def admin_token() -> str:
    return mint_token(uuid4(), roles=["admin"])
