"""Structured events emitted by the planning, execution and cache layers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class PayloadEventType(Enum):
    """Types of payload events."""

    PLAN_CREATED = "plan_created"
    ROUTE_SELECTED = "route_selected"
    CHUNK_STARTED = "chunk_started"
    CHUNK_COMPLETED = "chunk_completed"
    CHUNK_RETRY = "chunk_retry"
    CHUNK_FAILED = "chunk_failed"
    EXECUTION_COMPLETE = "execution_complete"
    CACHE_HIT = "cache_hit"
    CACHE_COLD_FILL = "cache_cold_fill"
    CACHE_REFILL_STARTED = "cache_refill_started"
    CACHE_REFILL_COMPLETED = "cache_refill_completed"
    CACHE_REFILL_FAILED = "cache_refill_failed"
    CACHE_EXPIRED = "cache_expired"
    CACHE_EVICTED = "cache_evicted"
    CACHE_CLEARED = "cache_cleared"


@dataclass(frozen=True)
class PayloadEvent:
    """Structured event for observability integrations."""

    event_type: PayloadEventType
    timestamp: datetime
    key: Optional[str] = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            object.__setattr__(self, "metadata", {})

    @classmethod
    def create(
        cls,
        event_type: PayloadEventType,
        key: Optional[str] = None,
        **metadata: Any,
    ) -> PayloadEvent:
        """Create an event stamped with the current time."""
        return cls(
            event_type=event_type,
            timestamp=datetime.now(UTC),
            key=key,
            metadata=metadata,
        )


EventListener = Callable[[PayloadEvent], None]


def emit_event(listener: EventListener | None, event: PayloadEvent) -> None:
    """Forward an event to a listener.

    Listener failures are logged and never reach the request path.
    """
    if listener is None:
        return
    try:
        listener(event)
    except Exception as e:
        logger.error(
            f"Event listener failed for {event.event_type.value}: {e}",
            exc_info=True,
        )
