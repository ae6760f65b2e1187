"""llmock payload - Token-budget chunking and multi-variant caching for generated payloads."""

from .api import PayloadAPI
from .core import (
    CacheError,
    CachePriority,
    ChunkGenerationError,
    Clock,
    EventListener,
    GeneratorError,
    MonotonicClock,
    OrchestratorState,
    PayloadError,
    PayloadEvent,
    PayloadEventType,
    PayloadOptions,
    RouteKind,
    ShapeError,
)
from .generators import Generator, GeneratorFn, HTTPClient, OpenAICompatibleGenerator, bind_generator
from .runtime import (
    CacheKey,
    CacheStatistics,
    ChunkOrchestrator,
    ChunkPlan,
    ChunkPlanner,
    ChunkResult,
    ContinuationContext,
    PayloadRequest,
    PayloadResponse,
    PayloadRouter,
    VariantCacheStore,
    compute_cache_key,
    estimate_tokens_per_item,
)
from .shapes import ShapeDescriptor, extract_json

__version__ = "0.1.0"

__all__ = [
    # Facade
    "PayloadAPI",
    # Configuration
    "PayloadOptions",
    "Clock",
    "MonotonicClock",
    # Enums
    "CachePriority",
    "OrchestratorState",
    "RouteKind",
    # Events
    "EventListener",
    "PayloadEvent",
    "PayloadEventType",
    # Exceptions
    "PayloadError",
    "ShapeError",
    "GeneratorError",
    "ChunkGenerationError",
    "CacheError",
    # Generators
    "Generator",
    "GeneratorFn",
    "HTTPClient",
    "OpenAICompatibleGenerator",
    "bind_generator",
    # Shapes
    "ShapeDescriptor",
    "extract_json",
    # Chunking
    "ChunkPlan",
    "ChunkPlanner",
    "ChunkOrchestrator",
    "ChunkResult",
    "ContinuationContext",
    "estimate_tokens_per_item",
    # Cache
    "CacheKey",
    "CacheStatistics",
    "VariantCacheStore",
    "compute_cache_key",
    # Routing
    "PayloadRouter",
    "PayloadRequest",
    "PayloadResponse",
]
