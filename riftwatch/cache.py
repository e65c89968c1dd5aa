# riftwatch/cache.py
# ============================================================================
# In-process cache: one LRU partition per namespace, TTL-bounded entries
# ============================================================================

from __future__ import annotations

import copy
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

log = logging.getLogger(__name__)


class CacheNamespace(str, Enum):
    """Cache partitions, one per category of upstream data."""
    REFERENCE_DATA = "reference-data"
    PROFILE = "profile"
    RANKED = "ranked"
    MATCH_DETAIL = "match-detail"
    MATCH_IDS = "match-ids"
    LIVE_GAME = "live-game"
    MASTERY = "mastery"


@dataclass(frozen=True)
class NamespaceConfig:
    capacity: int
    ttl: float  # seconds

    def __post_init__(self):
        if self.capacity < 1:
            raise ValueError(f"Namespace capacity must be at least 1, got {self.capacity}")
        if self.ttl <= 0:
            raise ValueError(f"Namespace TTL must be positive, got {self.ttl}")


MINUTE = 60.0
HOUR = 60 * MINUTE
DAY = 24 * HOUR

# Completed matches never change, live games change every few seconds
DEFAULT_NAMESPACES: Dict[CacheNamespace, NamespaceConfig] = {
    CacheNamespace.REFERENCE_DATA: NamespaceConfig(capacity=50, ttl=DAY),
    CacheNamespace.PROFILE: NamespaceConfig(capacity=50, ttl=5 * MINUTE),
    CacheNamespace.RANKED: NamespaceConfig(capacity=50, ttl=5 * MINUTE),
    CacheNamespace.MATCH_DETAIL: NamespaceConfig(capacity=100, ttl=7 * DAY),
    CacheNamespace.MATCH_IDS: NamespaceConfig(capacity=50, ttl=2 * MINUTE),
    CacheNamespace.LIVE_GAME: NamespaceConfig(capacity=20, ttl=30.0),
    CacheNamespace.MASTERY: NamespaceConfig(capacity=50, ttl=10 * MINUTE),
}

NamespaceLike = Union[CacheNamespace, str]

# Default for lookups where a cached None is a meaningful value
MISSING = object()


@dataclass
class CacheEntry:
    __slots__ = ("key", "value", "inserted_at", "ttl")

    key: str
    value: Any
    inserted_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl


class CacheStore:
    """
    Multi-namespace key/value store.

    Each namespace is an ``OrderedDict`` kept in access order: a hit moves the
    entry to the end, a write into a full namespace pops from the front.
    Expired entries are dropped lazily when read. Values are deep-copied on the
    way in and on the way out so callers never share state with the store.
    """

    def __init__(
        self,
        namespaces: Optional[Dict[CacheNamespace, NamespaceConfig]] = None,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._configs: Dict[CacheNamespace, NamespaceConfig] = dict(DEFAULT_NAMESPACES)
        if namespaces:
            self._configs.update(namespaces)
        self._stores: Dict[CacheNamespace, "OrderedDict[str, CacheEntry]"] = {
            ns: OrderedDict() for ns in self._configs
        }
        self._enabled = enabled
        self._clock = clock

    # ------------------------------------------------------------------ #
    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = bool(value)
        log.info(f"Cache {'enabled' if self._enabled else 'disabled'}")

    def _resolve(self, namespace: NamespaceLike) -> CacheNamespace:
        ns = CacheNamespace(namespace)
        if ns not in self._configs:
            raise ValueError(f"Namespace {ns.value!r} is not configured")
        return ns

    # ------------------------------------------------------------------ #
    def get(self, namespace: NamespaceLike, key: str, default: Any = None) -> Any:
        """
        Return a copy of the cached value, or ``default`` when the key is
        missing, expired, or the cache is disabled.
        """
        if not self._enabled:
            return default

        ns = self._resolve(namespace)
        store = self._stores[ns]
        entry = store.get(key)
        if entry is None:
            return default

        if entry.expired(self._clock()):
            del store[key]
            log.debug(f"Cache expired: {ns.value}:{key}")
            return default

        store.move_to_end(key)
        log.debug(f"Cache hit: {ns.value}:{key}")
        return copy.deepcopy(entry.value)

    def set(self, namespace: NamespaceLike, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Insert or replace ``key``. ``ttl`` overrides the namespace default but
        is clamped to it. A full namespace evicts its least recently used entry.
        """
        if not self._enabled:
            return

        ns = self._resolve(namespace)
        config = self._configs[ns]
        store = self._stores[ns]
        lifetime = config.ttl if ttl is None else min(ttl, config.ttl)

        if key in store:
            del store[key]
        while len(store) >= config.capacity:
            evicted, _ = store.popitem(last=False)
            log.debug(f"Cache evict: {ns.value}:{evicted}")

        store[key] = CacheEntry(key, copy.deepcopy(value), self._clock(), lifetime)
        log.debug(f"Cache set: {ns.value}:{key}")

    def delete(self, namespace: NamespaceLike, key: str) -> None:
        ns = self._resolve(namespace)
        self._stores[ns].pop(key, None)

    def clear(self, namespace: Optional[NamespaceLike] = None) -> None:
        """Clear one namespace, or every namespace when none is given."""
        if namespace is not None:
            ns = self._resolve(namespace)
            self._stores[ns].clear()
            log.info(f"Cache cleared: {ns.value}")
            return

        for store in self._stores.values():
            store.clear()
        log.info("All caches cleared")

    def stats(self) -> Dict[str, Dict[str, int]]:
        """Size and capacity per namespace. Sizes may include not-yet-purged expired entries."""
        return {
            ns.value: {"size": len(self._stores[ns]), "capacity": config.capacity}
            for ns, config in self._configs.items()
        }

