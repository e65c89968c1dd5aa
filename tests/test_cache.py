"""Unit tests for the namespaced TTL/LRU cache."""

import pytest

from fakes import FakeClock
from riftwatch.cache import CacheNamespace, CacheStore, NamespaceConfig, MISSING


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheStore(
        namespaces={CacheNamespace.PROFILE: NamespaceConfig(capacity=3, ttl=60.0)},
        clock=clock,
    )


class TestCacheExpiry:
    """TTL behaviour."""

    def test_get_after_set_returns_value(self, cache):
        cache.set(CacheNamespace.PROFILE, "k", {"puuid": "abc"})
        assert cache.get(CacheNamespace.PROFILE, "k") == {"puuid": "abc"}

    def test_entry_absent_once_ttl_elapsed(self, cache, clock):
        cache.set(CacheNamespace.PROFILE, "k", "v")
        clock.advance(59.9)
        assert cache.get(CacheNamespace.PROFILE, "k") == "v"
        clock.advance(0.1)
        assert cache.get(CacheNamespace.PROFILE, "k") is None

    def test_ttl_override_is_shorter(self, cache, clock):
        cache.set(CacheNamespace.PROFILE, "k", "v", ttl=5)
        clock.advance(5)
        assert cache.get(CacheNamespace.PROFILE, "k") is None

    def test_ttl_override_never_exceeds_namespace_ttl(self, cache, clock):
        cache.set(CacheNamespace.PROFILE, "k", "v", ttl=3600)
        clock.advance(60)
        assert cache.get(CacheNamespace.PROFILE, "k") is None

    def test_cached_none_distinguishable_with_sentinel(self, cache):
        cache.set(CacheNamespace.PROFILE, "k", None)
        assert cache.get(CacheNamespace.PROFILE, "k", MISSING) is None
        assert cache.get(CacheNamespace.PROFILE, "other", MISSING) is MISSING


class TestCacheEviction:
    """LRU eviction per namespace."""

    def test_overflow_evicts_least_recently_used(self, cache):
        for key in ("a", "b", "c"):
            cache.set(CacheNamespace.PROFILE, key, key)
        # Touch "a" so that "b" becomes the oldest
        cache.get(CacheNamespace.PROFILE, "a")
        cache.set(CacheNamespace.PROFILE, "d", "d")

        assert cache.get(CacheNamespace.PROFILE, "b") is None
        for key in ("a", "c", "d"):
            assert cache.get(CacheNamespace.PROFILE, key) == key

    def test_replacing_key_does_not_evict(self, cache):
        for key in ("a", "b", "c"):
            cache.set(CacheNamespace.PROFILE, key, key)
        cache.set(CacheNamespace.PROFILE, "a", "A")

        assert cache.stats()["profile"]["size"] == 3
        assert cache.get(CacheNamespace.PROFILE, "a") == "A"
        assert cache.get(CacheNamespace.PROFILE, "b") == "b"

    def test_namespaces_are_independent(self, cache):
        for key in ("a", "b", "c", "d"):
            cache.set(CacheNamespace.PROFILE, key, key)
        cache.set(CacheNamespace.RANKED, "a", "ranked")

        assert cache.get(CacheNamespace.RANKED, "a") == "ranked"
        assert cache.get(CacheNamespace.PROFILE, "a") is None


class TestCacheOperations:
    """Invalidation, stats, enable flag and isolation."""

    def test_delete(self, cache):
        cache.set(CacheNamespace.PROFILE, "k", "v")
        cache.delete(CacheNamespace.PROFILE, "k")
        cache.delete(CacheNamespace.PROFILE, "missing")
        assert cache.get(CacheNamespace.PROFILE, "k") is None

    def test_clear_single_namespace(self, cache):
        cache.set(CacheNamespace.PROFILE, "k", "v")
        cache.set(CacheNamespace.RANKED, "k", "v")
        cache.clear(CacheNamespace.PROFILE)

        assert cache.get(CacheNamespace.PROFILE, "k") is None
        assert cache.get(CacheNamespace.RANKED, "k") == "v"

    def test_clear_all(self, cache):
        cache.set(CacheNamespace.PROFILE, "k", "v")
        cache.set(CacheNamespace.MATCH_DETAIL, "k", "v")
        cache.clear()

        assert all(s["size"] == 0 for s in cache.stats().values())

    def test_stats_report_size_and_capacity(self, cache):
        cache.set(CacheNamespace.PROFILE, "k", "v")
        stats = cache.stats()

        assert stats["profile"] == {"size": 1, "capacity": 3}
        assert stats["match-detail"] == {"size": 0, "capacity": 100}
        assert set(stats) == {ns.value for ns in CacheNamespace}

    def test_disabled_cache_misses_and_ignores_writes(self, cache):
        cache.set(CacheNamespace.PROFILE, "before", "v")
        cache.enabled = False

        cache.set(CacheNamespace.PROFILE, "during", "v")
        assert cache.get(CacheNamespace.PROFILE, "before") is None

        cache.enabled = True
        assert cache.get(CacheNamespace.PROFILE, "before") == "v"
        assert cache.get(CacheNamespace.PROFILE, "during") is None

    def test_values_are_copied(self, cache):
        original = {"entries": [1, 2]}
        cache.set(CacheNamespace.PROFILE, "k", original)
        original["entries"].append(3)

        fetched = cache.get(CacheNamespace.PROFILE, "k")
        fetched["entries"].append(4)

        assert cache.get(CacheNamespace.PROFILE, "k") == {"entries": [1, 2]}

    def test_string_namespace_accepted(self, cache):
        cache.set("profile", "k", "v")
        assert cache.get(CacheNamespace.PROFILE, "k") == "v"

    def test_unknown_namespace_rejected(self, cache):
        with pytest.raises(ValueError):
            cache.get("nope", "k")


class TestNamespaceConfig:
    """Namespace bounds are validated on construction."""

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_capacity_below_one_rejected(self, capacity):
        with pytest.raises(ValueError):
            NamespaceConfig(capacity=capacity, ttl=60.0)

    def test_non_positive_ttl_rejected(self):
        with pytest.raises(ValueError):
            NamespaceConfig(capacity=10, ttl=0)

    def test_capacity_one_keeps_latest_entry(self, clock):
        cache = CacheStore(
            namespaces={CacheNamespace.LIVE_GAME: NamespaceConfig(capacity=1, ttl=30.0)},
            clock=clock,
        )
        cache.set("live-game", "a", 1)
        cache.set("live-game", "b", 2)

        assert cache.get("live-game", "a") is None
        assert cache.get("live-game", "b") == 2
