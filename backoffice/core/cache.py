"""
In-memory TTL cache keyed by entity type and id.

Keys always have the shape ``<entity>:<id-or-scope>[:<extra>...]`` and are
built with :func:`cache_key`, for example ``investors:list:active:0:100`` or
``investors:9b2c...``.  Every mutating service call invalidates by entity
(and id where known) through :meth:`TTLCache.invalidate_entity`, so there are
no free-form string tags to keep in sync.

Only plain entity reads are cached.  Derived capital figures depend on the
current time (waiting-period maturation) and are always computed fresh.

Entries expire ``ttl`` seconds after they are set.  When ``max_size`` is
reached the least recently set key is evicted.  The event loop is
single-threaded, so the store needs no locking.
"""

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, NamedTuple, Optional

from backoffice.core.config import settings

logger = logging.getLogger(__name__)

LIST_SCOPE = "list"


def cache_key(entity: str, scope: Any, *parts: Any) -> str:
    """Build a cache key ``entity:scope:part1:part2``."""
    return ":".join(str(p) for p in (entity, scope, *parts))


class CacheEntry(NamedTuple):
    value: Any
    expires_at: float


class TTLCache:
    """
    Entity-keyed cache with per-entry expiry and FIFO eviction.

    Parameters
    ----------
    ttl : float
        Seconds an entry stays valid after it is set.
    max_size : int
        Entry limit; the oldest entry makes room for a new key.
    enabled : bool
        When False every read misses and every write is dropped.
    clock : callable
        Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        ttl: float = 30.0,
        max_size: int = 1000,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._ttl = ttl
        self._max_size = max_size
        self._enabled = enabled
        self._clock = clock
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        entry = self._store.get(key)
        return entry is not None and entry.expires_at > self._clock()

    def get(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        """Return the live value for ``key``, or ``default`` on a miss."""
        if not self._enabled:
            return default

        entry = self._store.get(key)
        if entry is not None and entry.expires_at <= self._clock():
            del self._store[key]
            logger.debug("Cache EXPIRED: %s", key)
            entry = None

        if entry is None:
            self._misses += 1
            return default

        self._hits += 1
        logger.debug("Cache HIT: %s", key)
        return entry.value

    def set(self, key: str, value: Any) -> None:
        if not self._enabled:
            return

        if key in self._store:
            del self._store[key]
        elif len(self._store) >= self._max_size:
            evicted, _ = self._store.popitem(last=False)
            logger.debug("Cache EVICTED (max_size): %s", evicted)

        self._store[key] = CacheEntry(value, self._clock() + self._ttl)
        logger.debug("Cache SET: %s", key)

    def invalidate_entity(self, entity: str, entity_id: Any = None) -> int:
        """
        Drop cached reads that a mutation of ``entity`` may have made stale.

        Always drops the entity's list keys.  With ``entity_id`` only that
        entity's own keys are dropped as well; without it every key of the
        entity type goes.  Returns the number of evicted entries.
        """
        if not self._enabled:
            return 0

        if entity_id is None:
            prefixes = (f"{entity}:",)
        else:
            prefixes = (cache_key(entity, LIST_SCOPE) + ":", cache_key(entity, entity_id))

        stale = [k for k in self._store if k.startswith(prefixes)]
        for k in stale:
            del self._store[k]

        if stale:
            logger.debug(
                "Cache INVALIDATED %d entries for %s (id=%s)", len(stale), entity, entity_id
            )
        return len(stale)

    def clear(self) -> None:
        self._store.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Counters for the health endpoint."""
        lookups = self._hits + self._misses
        return {
            "enabled": self._enabled,
            "size": len(self._store),
            "max_size": self._max_size,
            "ttl_seconds": self._ttl,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": f"{self._hits / lookups:.1%}" if lookups else "N/A",
        }


cache = TTLCache(
    ttl=settings.CACHE_TTL,
    max_size=settings.CACHE_MAX_SIZE,
    enabled=settings.CACHE_ENABLED,
)
