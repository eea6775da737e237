from __future__ import annotations

from datetime import UTC, datetime

import pytest

from progress_service.core.errors import InvalidInputError
from progress_service.models.achievement import AchievementRegistry

T0 = datetime(2026, 3, 2, tzinfo=UTC)


def test_add_returns_true_once_per_name() -> None:
    registry = AchievementRegistry()
    assert registry.add("First Steps", "completion", now=T0) is True
    assert registry.add("First Steps", "completion", now=T0) is False
    assert len(registry) == 1


def test_duplicate_leaves_original_untouched() -> None:
    registry = AchievementRegistry()
    registry.add("Streaker", "streak", now=T0, points=5)
    registry.add("Streaker", "engagement", points=50)
    held = registry.get("Streaker")
    assert held is not None
    assert held.type == "streak"
    assert held.points == 5
    assert held.unlocked_at == T0


def test_snapshot_preserves_insertion_order() -> None:
    registry = AchievementRegistry()
    for name in ("b", "a", "c"):
        registry.add(name, "understanding", now=T0)
    assert [a.name for a in registry.snapshot()] == ["b", "a", "c"]


def test_scopes_are_independent() -> None:
    lesson_scope = AchievementRegistry()
    profile_scope = AchievementRegistry()
    assert lesson_scope.add("Lesson Completed", "completion") is True
    assert profile_scope.add("Lesson Completed", "completion") is True
    assert "Lesson Completed" in lesson_scope
    assert "Lesson Completed" in profile_scope


def test_registry_built_from_existing_tuple() -> None:
    first = AchievementRegistry()
    first.add("Explorer", "engagement", now=T0)
    second = AchievementRegistry(first.snapshot())
    assert second.add("Explorer", "engagement") is False


@pytest.mark.parametrize(
    ("name", "type_", "points"),
    [("", "completion", 0), ("   ", "completion", 0), ("x", "bravery", 0), ("x", "speed", -1)],
)
def test_add_rejects_invalid_input(name, type_, points) -> None:
    with pytest.raises(InvalidInputError):
        AchievementRegistry().add(name, type_, points=points)
