"""
Unit tests for the in-memory TTL cache.

Tests cover:
- get / set, defaults and membership
- expiry driven by an injected clock
- eviction of the least recently set key
- key building and entity-based invalidation
- disabled mode and statistics
"""

import pytest

from backoffice.core.cache import LIST_SCOPE, TTLCache, cache_key

INVESTOR_A = "9b2c0000-0000-0000-0000-00000000000a"
INVESTOR_B = "9b2c0000-0000-0000-0000-00000000000b"


class FakeClock:
    def __init__(self):
        self.now = 500.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def timed_cache(clock):
    return TTLCache(ttl=30.0, max_size=3, enabled=True, clock=clock)


class TestGetSet:
    def test_set_and_get(self, test_cache: TTLCache):
        test_cache.set("investors:1", {"name": "Asha"})
        assert test_cache.get("investors:1") == {"name": "Asha"}

    def test_miss_returns_default(self, test_cache: TTLCache):
        assert test_cache.get("investors:missing") is None
        assert test_cache.get("investors:missing", default=[]) == []

    def test_overwrite(self, test_cache: TTLCache):
        test_cache.set("k", "old")
        test_cache.set("k", "new")
        assert test_cache.get("k") == "new"
        assert len(test_cache) == 1

    def test_cached_none_is_a_hit(self, test_cache: TTLCache):
        test_cache.set("k", None)
        assert "k" in test_cache
        assert test_cache.get("k", default="miss") is None


class TestExpiry:
    def test_live_until_ttl(self, timed_cache, clock):
        timed_cache.set("k", "v")
        clock.now += 29.9
        assert timed_cache.get("k") == "v"

    def test_expired_at_ttl_and_removed(self, timed_cache, clock):
        timed_cache.set("k", "v")
        clock.now += 30.0

        assert "k" not in timed_cache
        assert timed_cache.get("k") is None
        assert len(timed_cache) == 0

    def test_reset_restarts_the_ttl(self, timed_cache, clock):
        timed_cache.set("k", "v1")
        clock.now += 20
        timed_cache.set("k", "v2")
        clock.now += 20
        assert timed_cache.get("k") == "v2"


class TestEviction:
    def test_evicts_oldest_when_full(self, timed_cache):
        for key in ("a", "b", "c", "d"):
            timed_cache.set(key, key)

        assert timed_cache.get("a") is None
        assert [timed_cache.get(k) for k in ("b", "c", "d")] == ["b", "c", "d"]

    def test_updating_a_key_evicts_nothing_and_moves_it_back(self, timed_cache):
        for key in ("a", "b", "c"):
            timed_cache.set(key, key)

        timed_cache.set("a", "A")
        timed_cache.set("d", "d")

        assert timed_cache.get("a") == "A"
        assert timed_cache.get("b") is None


class TestCacheKey:
    def test_joins_parts(self):
        assert cache_key("investors", LIST_SCOPE, "active", 0, 100) == "investors:list:active:0:100"

    def test_none_parts_are_kept(self):
        assert cache_key("investors", LIST_SCOPE, None, None, 0, 100) == (
            "investors:list:None:None:0:100"
        )

    def test_entity_and_id(self):
        assert cache_key("investors", INVESTOR_A) == f"investors:{INVESTOR_A}"


class TestInvalidation:
    def _fill(self, test_cache: TTLCache):
        test_cache.set(cache_key("investors", LIST_SCOPE, None, None, 0, 100), ["all"])
        test_cache.set(cache_key("investors", LIST_SCOPE, "active", None, 0, 100), ["active"])
        test_cache.set(cache_key("investors", INVESTOR_A), "a")
        test_cache.set(cache_key("investors", INVESTOR_B), "b")
        test_cache.set(cache_key("trading_accounts", LIST_SCOPE), ["desk"])

    def test_one_entity_drops_its_key_and_lists(self, test_cache: TTLCache):
        self._fill(test_cache)

        assert test_cache.invalidate_entity("investors", INVESTOR_A) == 3
        assert test_cache.get(cache_key("investors", INVESTOR_A)) is None
        assert test_cache.get(cache_key("investors", INVESTOR_B)) == "b"
        assert test_cache.get(cache_key("trading_accounts", LIST_SCOPE)) == ["desk"]

    def test_whole_entity_type(self, test_cache: TTLCache):
        self._fill(test_cache)

        assert test_cache.invalidate_entity("investors") == 4
        assert test_cache.get(cache_key("trading_accounts", LIST_SCOPE)) == ["desk"]

    def test_unknown_entity(self, test_cache: TTLCache):
        self._fill(test_cache)
        assert test_cache.invalidate_entity("monthly_returns") == 0

    def test_clear(self, test_cache: TTLCache):
        self._fill(test_cache)
        test_cache.clear()
        assert len(test_cache) == 0


class TestDisabled:
    def test_everything_is_a_noop(self, disabled_cache: TTLCache):
        disabled_cache.set("k", "v")

        assert len(disabled_cache) == 0
        assert disabled_cache.get("k", default="miss") == "miss"
        assert disabled_cache.invalidate_entity("investors") == 0
        assert disabled_cache.get_stats()["enabled"] is False


class TestStats:
    def test_initial(self, test_cache: TTLCache):
        stats = test_cache.get_stats()
        assert (stats["size"], stats["hits"], stats["misses"]) == (0, 0, 0)
        assert stats["hit_rate"] == "N/A"

    def test_counts_hits_and_misses(self, test_cache: TTLCache):
        test_cache.set("k", "v")
        test_cache.get("k")
        test_cache.get("missing")

        stats = test_cache.get_stats()
        assert stats["size"] == 1
        assert (stats["hits"], stats["misses"]) == (1, 1)
        assert stats["hit_rate"] == "50.0%"

    def test_expiry_counts_as_miss(self, timed_cache, clock):
        timed_cache.set("k", "v")
        clock.now += 31
        timed_cache.get("k")
        assert timed_cache.get_stats()["misses"] == 1
