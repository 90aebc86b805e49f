"""Query-result cache adapters.

Implements the CachePort used by the search client to avoid repeating
identical queries against the breastcancertrials.org endpoint.

Architecture:
    - Keys are SHA-256 digests of the serialized request body, so patient
      data is never kept as a dictionary key
    - Entries expire after a TTL and the store is bounded (least recently
      used entries are evicted first)
    - An asyncio.Lock serializes access so overlapping requests can read and
      write concurrently
"""

import asyncio
import copy
import hashlib
import logging
import time
from collections import OrderedDict
from typing import Any, Optional

from trial_lookup.domain.ports import CachePort, NullCache

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0
DEFAULT_MAX_ENTRIES = 256


def cache_key(body: str) -> str:
    """Derive the cache key for a request body."""
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


class MemoryCache(CachePort):
    """Bounded in-process TTL cache.

    Example Usage:
        ```python
        cache = MemoryCache(ttl=600, max_entries=100)
        summaries = await send_query(endpoint, body, cache)
        ```
    """

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, max_entries: int = DEFAULT_MAX_ENTRIES):
        """Initialize MemoryCache.

        Parameters:
            ttl: Seconds an entry stays valid
            max_entries: Maximum number of entries kept
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl = ttl
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    async def get(self, key: str) -> Optional[Any]:
        digest = cache_key(key)
        async with self._lock:
            item = self._entries.get(digest)
            if item is None:
                self.misses += 1
                return None
            expires_at, value = item
            if expires_at <= time.monotonic():
                del self._entries[digest]
                self.misses += 1
                return None
            self._entries.move_to_end(digest)
            self.hits += 1
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any) -> None:
        digest = cache_key(key)
        stored = copy.deepcopy(value)
        async with self._lock:
            self._entries[digest] = (time.monotonic() + self.ttl, stored)
            self._entries.move_to_end(digest)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry {evicted[:12]}")

    def __len__(self) -> int:
        return len(self._entries)

    def get_statistics(self) -> dict:
        return {
            "enabled": True,
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "ttl": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
        }


def create_cache(enabled: bool, ttl: float = DEFAULT_TTL_SECONDS, max_entries: int = DEFAULT_MAX_ENTRIES) -> CachePort:
    """Factory for the configured cache implementation."""
    if not enabled:
        logger.info("Query cache disabled")
        return NullCache()
    logger.info(f"Query cache enabled (ttl={ttl}s, max_entries={max_entries})")
    return MemoryCache(ttl=ttl, max_entries=max_entries)
