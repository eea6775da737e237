from __future__ import annotations

import asyncio

from progress_service.services.cache import InMemoryCacheService


def test_set_then_get() -> None:
    cache = InMemoryCacheService()
    asyncio.run(cache.set("stats:u1:report", "{}", 60))
    assert asyncio.run(cache.get("stats:u1:report")) == "{}"


def test_expired_entry_is_gone(monkeypatch) -> None:
    import progress_service.services.cache as cache_module

    now = [1000.0]
    monkeypatch.setattr(cache_module.time, "monotonic", lambda: now[0])
    cache = InMemoryCacheService()
    asyncio.run(cache.set("k", "v", 10))
    now[0] += 10
    assert asyncio.run(cache.get("k")) is None
    assert "k" not in cache._store


def test_zero_ttl_is_not_stored() -> None:
    cache = InMemoryCacheService()
    asyncio.run(cache.set("k", "v", 0))
    assert asyncio.run(cache.get("k")) is None


def test_delete_pattern_scopes_to_prefix() -> None:
    cache = InMemoryCacheService()
    asyncio.run(cache.set("stats:u1:report", "a", 60))
    asyncio.run(cache.set("stats:u2:report", "b", 60))
    asyncio.run(cache.delete_pattern("stats:u1:*"))
    assert asyncio.run(cache.get("stats:u1:report")) is None
    assert asyncio.run(cache.get("stats:u2:report")) == "b"
