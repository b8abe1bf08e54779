"""
In-memory caching for analysis results and editing configs.

The cache is an explicit object handed to whoever needs it (the
orchestrator in particular), keyed by a hash of the image content so the
same photo uploaded twice is analyzed once. Entries expire after a TTL
and the least recently used entry is evicted once the cache is full.
"""

import hashlib
import json
import logging
import threading
import time
from typing import Any, Callable, Dict, NamedTuple, Optional

import cachetools

logger = logging.getLogger(__name__)


def content_hash(data: bytes) -> str:
    """SHA-256 hex digest of raw image bytes."""
    return hashlib.sha256(data).hexdigest()


class _Entry(NamedTuple):
    value: Any
    ttl: float


class _EvictionCountingCache(cachetools.TLRUCache):
    """TLRUCache that counts entries dropped to make room."""

    def __init__(self, maxsize, ttu, timer):
        super().__init__(maxsize, ttu, timer=timer)
        self.evictions = 0

    def popitem(self):
        key, entry = super().popitem()
        self.evictions += 1
        logger.debug(f"Evicted cache entry {key}")
        return key, entry


class TTLCache:
    """
    Bounded, time-expiring, thread-safe cache.

    Storage and expiry are handled by cachetools.TLRUCache, which lets
    every entry carry its own TTL while evicting the least recently used
    entry once the cache is full. Values are stored as given; callers
    must store immutable objects or copies.
    """

    # Cache key prefixes for different data types
    PREFIXES = {
        'analysis': 'vc:analysis:',
        'config': 'vc:config:',
        'quality': 'vc:quality:',
    }

    def __init__(self, max_entries: int = 256, default_ttl: float = 3600.0,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            max_entries: Maximum number of live entries
            default_ttl: Default TTL in seconds
            clock: Monotonic time source
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._cache = _EvictionCountingCache(max_entries, self._expires_at, clock)
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def _expires_at(key: str, entry: _Entry, now: float) -> float:
        return now + entry.ttl

    @property
    def evictions(self) -> int:
        return self._cache.evictions

    @classmethod
    def from_config(cls, config: Optional[Dict]) -> 'TTLCache':
        config = config or {}
        return cls(max_entries=config.get('max_entries', 256),
                   default_ttl=config.get('ttl_seconds', 3600.0))

    def _generate_key(self, prefix: str, identifier: str,
                      params: Optional[Dict] = None) -> str:
        """Generate cache key with optional parameter hashing."""
        base_key = f"{self.PREFIXES[prefix]}{identifier}"
        if params:
            param_str = json.dumps(params, sort_keys=True, default=str)
            param_hash = hashlib.md5(param_str.encode()).hexdigest()[:8]
            base_key += f":{param_hash}"
        return base_key

    def get(self, prefix: str, identifier: str, params: Optional[Dict] = None) -> Optional[Any]:
        """Get a live cached value, or None."""
        key = self._generate_key(prefix, identifier, params)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def set(self, prefix: str, identifier: str, value: Any,
            ttl: Optional[float] = None, params: Optional[Dict] = None) -> None:
        """Store a value, evicting the least recently used entry when full."""
        key = self._generate_key(prefix, identifier, params)
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._cache[key] = _Entry(value, ttl)

    def delete(self, prefix: str, identifier: str, params: Optional[Dict] = None) -> bool:
        key = self._generate_key(prefix, identifier, params)
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self):
        with self._lock:
            self._cache.clear()

    def __len__(self):
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def get_analysis_result(self, image_hash: str) -> Optional[Any]:
        return self.get('analysis', image_hash)

    def set_analysis_result(self, image_hash: str, result: Any, ttl: Optional[float] = None):
        self.set('analysis', image_hash, result, ttl)

    def get_config(self, image_hash: str, preferences: Optional[Dict] = None) -> Optional[Any]:
        return self.get('config', image_hash, preferences)

    def set_config(self, image_hash: str, config: Any, preferences: Optional[Dict] = None,
                   ttl: Optional[float] = None):
        self.set('config', image_hash, config, ttl, preferences)

    def get_stats(self) -> Dict:
        """Get cache statistics."""
        with self._lock:
            self._cache.expire()
            return {
                'entries': len(self._cache),
                'max_entries': self.max_entries,
                'hits': self.hits,
                'misses': self.misses,
                'evictions': self.evictions,
                'hit_rate': self._calculate_hit_rate(self.hits, self.misses),
            }

    @staticmethod
    def _calculate_hit_rate(hits: int, misses: int) -> float:
        total = hits + misses
        return (hits / total * 100) if total > 0 else 0.0
