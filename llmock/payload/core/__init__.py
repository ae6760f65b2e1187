"""Core components."""

from .clock import Clock, MonotonicClock
from .enums import CachePriority, OrchestratorState, RouteKind
from .events import EventListener, PayloadEvent, PayloadEventType, emit_event
from .exceptions import (
    CacheError,
    ChunkGenerationError,
    GeneratorError,
    PayloadError,
    ShapeError,
)
from .options import PayloadOptions

__all__ = [
    "Clock",
    "MonotonicClock",
    "CachePriority",
    "OrchestratorState",
    "RouteKind",
    "EventListener",
    "PayloadEvent",
    "PayloadEventType",
    "emit_event",
    "PayloadError",
    "ShapeError",
    "GeneratorError",
    "ChunkGenerationError",
    "CacheError",
    "PayloadOptions",
]
