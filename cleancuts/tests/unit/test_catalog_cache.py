"""
Unit tests for the per-app TTL cache used by the catalog routes.
A fake clock drives expiry; nothing sleeps.
"""

from __future__ import annotations

import pytest

from cleancuts.app.cache import TTLCache


class FakeClock:

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(ttl=60, clock=clock)


def test_get_missing_key_returns_none(cache):
    assert cache.get("items:all") is None


def test_value_served_until_ttl(cache, clock):
    cache.set("items:all", [{"title": "Cooked"}])
    clock.advance(60)
    assert cache.get("items:all") == [{"title": "Cooked"}]


def test_value_expires_after_ttl(cache, clock):
    cache.set("items:all", ["x"])
    clock.advance(60.1)
    assert cache.get("items:all") is None
    assert len(cache) == 0


def test_per_entry_ttl_override(cache, clock):
    cache.set("search:chicken", ["x"], ttl=5)
    clock.advance(6)
    assert cache.get("search:chicken") is None


def test_empty_list_is_a_cacheable_value(cache):
    cache.set("search:zz", [])
    assert cache.get("search:zz") == []


def test_clear_everything(cache):
    cache.set("items:all", 1)
    cache.set("search:a", 2)
    assert cache.clear() == 2
    assert len(cache) == 0


def test_clear_by_prefix(cache):
    cache.set("items:all", 1)
    cache.set("search:chicken", 2)
    cache.set("search:mutton", 3)

    assert cache.clear("search:") == 2
    assert cache.get("items:all") == 1
    assert cache.get("search:chicken") is None


def test_set_prunes_expired_entries_under_other_keys(cache, clock):
    for query in ("chicken", "mutton", "prawns"):
        cache.set(f"search:{query}", [query])
    clock.advance(61)

    cache.set("search:fish", ["fish"])

    assert len(cache) == 1
    assert cache.get("search:fish") == ["fish"]


def test_size_cap_evicts_oldest_write(clock):
    cache = TTLCache(ttl=60, max_entries=2, clock=clock)
    cache.set("search:a", 1)
    cache.set("search:b", 2)
    cache.set("search:c", 3)

    assert len(cache) == 2
    assert cache.get("search:a") is None
    assert cache.get("search:b") == 2
    assert cache.get("search:c") == 3


def test_rewriting_a_key_refreshes_its_position(clock):
    cache = TTLCache(ttl=60, max_entries=2, clock=clock)
    cache.set("items:all", 1)
    cache.set("search:a", 2)
    cache.set("items:all", 10)
    cache.set("search:b", 3)

    assert cache.get("items:all") == 10
    assert cache.get("search:a") is None
