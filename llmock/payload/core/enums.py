"""Core enumerations shared by the chunking and caching runtimes.

Key Types:
    - CachePriority: Eviction tiers for cache entries
    - RouteKind: Which path a request took through the router
    - OrchestratorState: Lifecycle of one orchestrated request
"""

from enum import Enum

_PRIORITY_RANKS = {
    "low": 0,
    "normal": 1,
    "high": 2,
    "never": 3,
}


class CachePriority(str, Enum):
    """Eviction priority of a cache entry.

    Lower ranks are evicted first under memory pressure. ``NEVER`` entries
    are exempt from absolute expiration and are only evicted when no other
    entry can free enough room.
    """

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    NEVER = "never"

    @property
    def rank(self) -> int:
        """Numeric eviction rank (lower evicts first)."""
        return _PRIORITY_RANKS[self.value]

    @property
    def pinned(self) -> bool:
        return self is CachePriority.NEVER

    @classmethod
    def from_str(cls, value: str) -> "CachePriority":
        """Parse a priority name case-insensitively."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid cache priority: {value}") from None


class RouteKind(str, Enum):
    """Path a request was routed through."""

    DIRECT = "direct"
    CHUNKED = "chunked"
    CACHED = "cached"


class OrchestratorState(str, Enum):
    """States of a single orchestrated request."""

    PLANNING = "planning"
    EXECUTING = "executing"
    COMBINING = "combining"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (OrchestratorState.DONE, OrchestratorState.FAILED)
