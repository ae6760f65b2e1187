"""Multi-variant response cache.

Architecture:
    - keys.py: Deterministic cache keys (method, normalized path, canonical shape)
    - entry.py: Per-key variant queue, deadlines and refill state
    - store.py: VariantCacheStore (get_or_fetch, refill, expiration, eviction)
    - telemetry.py: Structured logging and events
"""

from __future__ import annotations

from .entry import CacheEntry
from .keys import CacheKey, compute_cache_key, normalize_path
from .store import CacheStatistics, VariantCacheStore

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheStatistics",
    "VariantCacheStore",
    "compute_cache_key",
    "normalize_path",
]
