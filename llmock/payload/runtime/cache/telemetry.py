"""Structured logging and events for the variant cache."""

from __future__ import annotations

import logging
from typing import Any

from ...core.events import EventListener, PayloadEvent, PayloadEventType, emit_event
from .keys import CacheKey

logger = logging.getLogger(__name__)


def _emit(
    listener: EventListener | None,
    event_type: PayloadEventType,
    key: CacheKey | None,
    fields: dict[str, Any],
) -> None:
    emit_event(
        listener,
        PayloadEvent.create(event_type, str(key) if key is not None else None, **fields),
    )


def log_cache_hit(
    *,
    key: CacheKey,
    remaining: int,
    listener: EventListener | None = None,
) -> None:
    """Log a variant served from the queue.

    Args:
        key: Cache key
        remaining: Variants left in the queue after the pop
        listener: Optional event listener
    """
    fields = {"cache_key": str(key), "path": key.path, "remaining": remaining}
    logger.debug("cache_hit", extra=fields)
    _emit(listener, PayloadEventType.CACHE_HIT, key, fields)


def log_cache_cold_fill(
    *,
    key: CacheKey,
    requested: int,
    stored: int,
    failures: int,
    latency_ms: float | None = None,
    listener: EventListener | None = None,
) -> None:
    """Log a synchronous fill of an empty entry.

    Args:
        key: Cache key
        requested: Variants requested from the generator
        stored: Variants actually queued (after duplicate suppression)
        failures: Generator calls that raised
        latency_ms: Fill latency in milliseconds (optional)
        listener: Optional event listener
    """
    fields = {
        "cache_key": str(key),
        "path": key.path,
        "requested": requested,
        "stored": stored,
        "failures": failures,
        "latency_ms": latency_ms,
    }
    logger.info("cache_cold_fill", extra=fields)
    _emit(listener, PayloadEventType.CACHE_COLD_FILL, key, fields)


def log_cache_refill_started(
    *,
    key: CacheKey,
    remaining: int,
    target: int,
    listener: EventListener | None = None,
) -> None:
    fields = {"cache_key": str(key), "remaining": remaining, "target": target}
    logger.info("cache_refill_started", extra=fields)
    _emit(listener, PayloadEventType.CACHE_REFILL_STARTED, key, fields)


def log_cache_refill_completed(
    *,
    key: CacheKey,
    added: int,
    queued: int,
    listener: EventListener | None = None,
) -> None:
    fields = {"cache_key": str(key), "added": added, "queued": queued}
    logger.info("cache_refill_completed", extra=fields)
    _emit(listener, PayloadEventType.CACHE_REFILL_COMPLETED, key, fields)


def log_cache_refill_failed(
    *,
    key: CacheKey,
    added: int,
    error_type: str,
    error_message: str,
    listener: EventListener | None = None,
) -> None:
    """Log a background refill that stopped on a generator failure.

    Args:
        key: Cache key
        added: Variants queued before the failure
        error_type: Exception class name
        error_message: Exception message
        listener: Optional event listener
    """
    fields = {
        "cache_key": str(key),
        "added": added,
        "error_type": error_type,
        "error_message": error_message,
    }
    logger.warning("cache_refill_failed", extra=fields)
    _emit(listener, PayloadEventType.CACHE_REFILL_FAILED, key, fields)


def log_cache_expired(
    *,
    key: CacheKey,
    discarded: int,
    listener: EventListener | None = None,
) -> None:
    fields = {"cache_key": str(key), "path": key.path, "discarded": discarded}
    logger.debug("cache_expired", extra=fields)
    _emit(listener, PayloadEventType.CACHE_EXPIRED, key, fields)


def log_cache_evicted(
    *,
    key: CacheKey,
    priority: str,
    discarded: int,
    total_variants: int,
    max_items: int,
    listener: EventListener | None = None,
) -> None:
    """Log an entry evicted to enforce the global variant bound.

    Args:
        key: Cache key of the evicted entry
        priority: Priority of the evicted entry
        discarded: Variants dropped with the entry
        total_variants: Total variants remaining after the eviction
        max_items: Configured global bound
        listener: Optional event listener
    """
    fields = {
        "cache_key": str(key),
        "priority": priority,
        "discarded": discarded,
        "total_variants": total_variants,
        "max_items": max_items,
    }
    logger.info("cache_evicted", extra=fields)
    _emit(listener, PayloadEventType.CACHE_EVICTED, key, fields)


def log_cache_cleared(
    *,
    entries: int,
    listener: EventListener | None = None,
) -> None:
    fields = {"entries": entries}
    logger.info("cache_cleared", extra=fields)
    _emit(listener, PayloadEventType.CACHE_CLEARED, None, fields)
