"""Runtime orchestration components."""

from .cache import CacheEntry, CacheKey, CacheStatistics, VariantCacheStore, compute_cache_key
from .chunking import (
    ChunkOrchestrator,
    ChunkPlan,
    ChunkPlanner,
    ChunkResult,
    ContinuationContext,
    estimate_tokens_per_item,
)
from .router import PayloadRequest, PayloadResponse, PayloadRouter

__all__ = [
    "PayloadRouter",
    "PayloadRequest",
    "PayloadResponse",
    "ChunkPlan",
    "ChunkPlanner",
    "ChunkOrchestrator",
    "ChunkResult",
    "ContinuationContext",
    "estimate_tokens_per_item",
    "CacheEntry",
    "CacheKey",
    "CacheStatistics",
    "VariantCacheStore",
    "compute_cache_key",
]
