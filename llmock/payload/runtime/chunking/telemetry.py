"""Structured logging and events for chunking operations.

Every hook logs an event-named record with structured ``extra`` fields and
forwards an equivalent PayloadEvent to the optional listener.
"""

from __future__ import annotations

import logging

from ...core.events import EventListener, PayloadEvent, PayloadEventType, emit_event
from .definitions import ChunkPlan, ChunkResult

logger = logging.getLogger(__name__)


def log_chunk_plan(
    *,
    plan: ChunkPlan,
    tokens_per_item: int,
    available_tokens: int,
    chunking_enabled: bool = True,
    listener: EventListener | None = None,
) -> None:
    """Log the planning decision.

    Args:
        plan: Plan produced by the planner
        tokens_per_item: Estimated tokens per item used for the plan
        available_tokens: Payload tokens available per backend call
        chunking_enabled: Whether multi-chunk plans were allowed
        listener: Optional event listener
    """
    fields = {
        "total_requested": plan.total_requested,
        "effective_total": plan.effective_total,
        "items_per_chunk": plan.items_per_chunk,
        "total_chunks": plan.chunk_count,
        "tokens_per_item": tokens_per_item,
        "available_tokens": available_tokens,
        "chunking_enabled": chunking_enabled,
        "capped": plan.capped,
    }
    logger.info("chunk_plan_created", extra=fields)
    if plan.capped:
        logger.warning(
            "chunk_plan_capped",
            extra={"total_requested": plan.total_requested, "effective_total": plan.effective_total},
        )
    emit_event(listener, PayloadEvent.create(PayloadEventType.PLAN_CREATED, **fields))


def log_chunk_started(
    *,
    chunk_index: int,
    total_chunks: int,
    item_start: int,
    item_end: int,
    attempt: int,
    listener: EventListener | None = None,
) -> None:
    """Log the start of a chunk attempt.

    Args:
        chunk_index: Zero-based index of the chunk
        total_chunks: Chunks in the plan
        item_start: First item number (one-based) covered by the chunk
        item_end: Last item number (one-based) covered by the chunk
        attempt: One-based attempt number
        listener: Optional event listener
    """
    fields = {
        "chunk_index": chunk_index,
        "total_chunks": total_chunks,
        "item_start": item_start,
        "item_end": item_end,
        "attempt": attempt,
    }
    logger.info("chunk_started", extra=fields)
    emit_event(listener, PayloadEvent.create(PayloadEventType.CHUNK_STARTED, **fields))


def log_chunk_completed(
    *,
    chunk_index: int,
    rows_aggregated: int,
    attempts: int,
    latency_ms: float | None = None,
    listener: EventListener | None = None,
) -> None:
    """Log completion of a single chunk.

    Args:
        chunk_index: Zero-based index of the chunk
        rows_aggregated: Number of items aggregated from this chunk
        attempts: Backend calls the chunk needed
        latency_ms: Latency in milliseconds (optional)
        listener: Optional event listener
    """
    fields = {
        "chunk_index": chunk_index,
        "rows_aggregated": rows_aggregated,
        "attempts": attempts,
        "latency_ms": latency_ms,
    }
    logger.info("chunk_completed", extra=fields)
    emit_event(listener, PayloadEvent.create(PayloadEventType.CHUNK_COMPLETED, **fields))


def log_chunk_retry(
    *,
    chunk_index: int,
    attempt: int,
    max_attempts: int,
    error_message: str,
    preview: str,
    listener: EventListener | None = None,
) -> None:
    """Log a chunk attempt whose output was unusable."""
    fields = {
        "chunk_index": chunk_index,
        "attempt": attempt,
        "max_attempts": max_attempts,
        "error_message": error_message,
        "preview": preview,
    }
    logger.warning("chunk_retry", extra=fields)
    emit_event(listener, PayloadEvent.create(PayloadEventType.CHUNK_RETRY, **fields))


def log_chunk_error(
    *,
    chunk_index: int,
    item_start: int,
    item_end: int,
    error_type: str,
    error_message: str,
    listener: EventListener | None = None,
) -> None:
    """Log chunk execution error.

    Args:
        chunk_index: Zero-based index of the chunk that failed
        item_start: First item number (one-based) of the failed chunk
        item_end: Last item number (one-based) of the failed chunk
        error_type: Type of error (e.g., "ChunkGenerationError", "GeneratorError")
        error_message: Error message
        listener: Optional event listener
    """
    fields = {
        "chunk_index": chunk_index,
        "item_start": item_start,
        "item_end": item_end,
        "error_type": error_type,
        "error_message": error_message,
    }
    logger.error("chunk_error", extra=fields)
    emit_event(listener, PayloadEvent.create(PayloadEventType.CHUNK_FAILED, **fields))


def log_chunk_execution_complete(
    *,
    result: ChunkResult,
    listener: EventListener | None = None,
) -> None:
    """Log completion of chunk execution.

    Args:
        result: ChunkResult from execution
        listener: Optional event listener
    """
    fields = {**result.metadata(), "total_latency_ms": result.latency_ms}
    logger.info("chunk_execution_complete", extra=fields)
    emit_event(listener, PayloadEvent.create(PayloadEventType.EXECUTION_COMPLETE, **fields))
