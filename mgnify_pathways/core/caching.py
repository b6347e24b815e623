"""
Lookup Caching

In-memory TTL/LRU cache and a caching wrapper around a pathway lookup.
The selector itself never caches; callers opt in by wrapping their lookup.
"""

import time
import asyncio
import logging
from typing import Any, Dict, FrozenSet, Optional

logger = logging.getLogger(__name__)


class CacheKey:
    """Generate consistent cache keys for KEGG link queries."""

    @staticmethod
    def module_pathways(module_id: str) -> str:
        return f"kegg:link:pathway:{module_id}"

    @staticmethod
    def pathway_modules(pathway_id: str) -> str:
        return f"kegg:link:module:{pathway_id}"


class MemoryCache:
    """In-memory cache with TTL expiry and LRU eviction."""

    def __init__(self, max_size: int = 5000, default_ttl: int = 3600):
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.cache: Dict[str, Dict[str, Any]] = {}
        self.access_times: Dict[str, float] = {}
        self.lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache, or None when absent or expired."""
        async with self.lock:
            if key not in self.cache:
                self._misses += 1
                return None

            entry = self.cache[key]
            if time.time() > entry['expires_at']:
                del self.cache[key]
                self.access_times.pop(key, None)
                self._misses += 1
                return None

            self.access_times[key] = time.time()
            self._hits += 1
            return entry['value']

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Set value in cache."""
        async with self.lock:
            ttl = ttl or self.default_ttl

            if len(self.cache) >= self.max_size and key not in self.cache:
                self._evict_lru()

            now = time.time()
            self.cache[key] = {
                'value': value,
                'expires_at': now + ttl,
                'created_at': now
            }
            self.access_times[key] = now

    async def delete(self, key: str) -> bool:
        async with self.lock:
            if key in self.cache:
                del self.cache[key]
                self.access_times.pop(key, None)
                return True
            return False

    async def clear(self) -> None:
        async with self.lock:
            self.cache.clear()
            self.access_times.clear()

    def _evict_lru(self) -> None:
        """Evict least recently used entry (caller holds the lock)."""
        if not self.access_times:
            return

        lru_key = min(self.access_times, key=self.access_times.get)
        self.cache.pop(lru_key, None)
        self.access_times.pop(lru_key, None)

    async def stats(self) -> Dict[str, Any]:
        async with self.lock:
            current_time = time.time()
            expired_count = sum(
                1 for entry in self.cache.values()
                if current_time > entry['expires_at']
            )
            total = self._hits + self._misses

            return {
                'size': len(self.cache),
                'max_size': self.max_size,
                'expired_entries': expired_count,
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': self._hits / total if total else 0.0
            }


class CachedPathwayLookup:
    """
    Memoise a pathway lookup's two operations.

    Failed lookups propagate and are not stored, so a later call retries them.
    Cached sets are frozen to keep callers from mutating shared entries.
    """

    def __init__(self, lookup, cache: Optional[MemoryCache] = None):
        self.lookup = lookup
        self.cache = cache or MemoryCache()

    async def _cached(self, key: str, fetch, identifier: str) -> FrozenSet[str]:
        value = await self.cache.get(key)
        if value is not None:
            return value
        value = frozenset(await fetch(identifier))
        await self.cache.set(key, value)
        return value

    async def pathways_for_module(self, module_id: str) -> FrozenSet[str]:
        return await self._cached(
            CacheKey.module_pathways(module_id), self.lookup.pathways_for_module, module_id
        )

    async def modules_for_pathway(self, pathway_id: str) -> FrozenSet[str]:
        return await self._cached(
            CacheKey.pathway_modules(pathway_id), self.lookup.modules_for_pathway, pathway_id
        )
