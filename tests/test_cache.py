"""Tests for the TTL cache."""

from datetime import UTC, datetime, timedelta

from portrait_analysis.services.cache import TTLCache


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def test_entry_expires_after_ttl() -> None:
    clock = _Clock()
    cache = TTLCache(clock=clock)
    cache.set("prompt:a", "value", ttl_seconds=300)

    clock.advance(299)
    assert cache.get("prompt:a") == "value"

    clock.advance(1)
    assert cache.get("prompt:a") is None
    assert len(cache) == 0


def test_evict_expired_drops_only_stale_entries() -> None:
    clock = _Clock()
    cache = TTLCache(clock=clock)
    cache.set("short", 1, ttl_seconds=10)
    cache.set("long", 2, ttl_seconds=100)

    clock.advance(50)

    assert cache.evict_expired() == 1
    assert cache.get("long") == 2
    assert len(cache) == 1


def test_oldest_entry_evicted_when_full() -> None:
    cache = TTLCache(max_entries=2)
    cache.set("a", 1, ttl_seconds=60)
    cache.set("b", 2, ttl_seconds=60)
    cache.set("c", 3, ttl_seconds=60)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_invalidate_removes_entry() -> None:
    cache = TTLCache()
    cache.set("a", 1, ttl_seconds=60)
    cache.invalidate("a")
    assert cache.get("a") is None
