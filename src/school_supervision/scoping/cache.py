"""
Memo cache for scoped views.

Views are keyed on everything they depend on (collection revision plus the
session identity), so entries never go stale; they are only evicted for space.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Represents a cached view with access metadata."""
    key: Hashable
    value: Any
    created_at: float
    access_count: int = 0
    last_accessed: Optional[float] = None


class ViewCache:
    """
    In-memory cache with LRU-like eviction.

    Features:
    - Size-based eviction (least recently used first)
    - Hit/miss counters for diagnostics
    """

    def __init__(self, max_size: int = 64):
        self.max_size = max_size
        self._cache: Dict[Hashable, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._cache.get(key)
        if entry is None:
            self.misses += 1
            return None
        entry.access_count += 1
        entry.last_accessed = time.time()
        self.hits += 1
        return entry.value

    def set(self, key: Hashable, value: Any) -> None:
        if key not in self._cache:
            self._ensure_space()
        now = time.time()
        self._cache[key] = CacheEntry(key=key, value=value, created_at=now, last_accessed=now)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def get_cache_stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "total_entries": len(self._cache),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0,
        }

    def _ensure_space(self) -> None:
        """Evict the least recently used fifth when full."""
        if len(self._cache) < self.max_size:
            return
        lru_keys = sorted(self._cache, key=lambda k: self._cache[k].last_accessed or 0)
        keys_to_remove = lru_keys[:max(1, len(lru_keys) // 5)]
        for key in keys_to_remove:
            del self._cache[key]
        logger.debug(f"Evicted {len(keys_to_remove)} cached view(s)")
