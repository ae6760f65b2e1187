"""Chunk orchestration: sequential multi-call generation with continuity.

This module provides the ChunkOrchestrator class that plans a request,
generates each chunk in order while passing a continuation context built
from the previous chunks, validates every chunk's JSON, and combines the
chunks into one array.
"""

from __future__ import annotations

import json
import logging
from time import perf_counter
from typing import TYPE_CHECKING, Any

from ...core.enums import OrchestratorState
from ...core.events import EventListener
from ...core.exceptions import ChunkGenerationError
from ...core.options import PayloadOptions
from ...shapes.descriptor import ShapeDescriptor
from ...shapes.json_extract import extract_json
from .definitions import ChunkPlan, ChunkResult, ContinuationContext
from .estimator import estimate_tokens_per_item
from .planners import ChunkPlanner
from .telemetry import (
    log_chunk_completed,
    log_chunk_error,
    log_chunk_execution_complete,
    log_chunk_retry,
    log_chunk_started,
)

if TYPE_CHECKING:
    from ...generators.base import Generator

logger = logging.getLogger(__name__)

_PREVIEW_LENGTH = 200


class _UnusableChunk(ValueError):
    """Chunk output that cannot be used as-is (retryable)."""


def _preview(text: str) -> str:
    if len(text) > _PREVIEW_LENGTH:
        return text[:_PREVIEW_LENGTH] + "..."
    return text


class ChunkOrchestrator:
    """Coordinates one request's chunked generation.

    The orchestrator walks ``PLANNING -> EXECUTING -> COMBINING`` and ends in
    ``DONE`` or ``FAILED``. Chunks run strictly one after another because
    each chunk's context depends on the output of the chunk before it.
    Instances hold per-request state and are not shared between requests.
    """

    def __init__(
        self,
        generator: Generator,
        options: PayloadOptions | None = None,
        *,
        planner: ChunkPlanner | None = None,
        listener: EventListener | None = None,
        base_context: str | None = None,
    ) -> None:
        """Initialize chunk orchestrator.

        Args:
            generator: Backend used for every chunk
            options: Budget and retry configuration
            planner: Optional planner (built from options if omitted)
            listener: Optional event listener for progress events
            base_context: Caller context (e.g. conversation history) sent with every chunk
        """
        self._generator = generator
        self._options = options or PayloadOptions()
        self._listener = listener
        self._base_context = base_context
        self._planner = planner or ChunkPlanner(self._options, listener=listener)
        self._state = OrchestratorState.PLANNING

    @property
    def state(self) -> OrchestratorState:
        return self._state

    def plan(
        self,
        shape: ShapeDescriptor,
        requested_count: int,
        *,
        chunking_enabled: bool = True,
    ) -> ChunkPlan:
        """Estimate the shape's size and plan chunks for ``requested_count`` items."""
        self._state = OrchestratorState.PLANNING
        tokens_per_item = estimate_tokens_per_item(shape)
        return self._planner.plan(
            requested_count,
            tokens_per_item,
            chunking_enabled=chunking_enabled,
        )

    async def run(
        self,
        shape: ShapeDescriptor,
        requested_count: int,
        *,
        chunking_enabled: bool = True,
    ) -> ChunkResult:
        """Plan and execute a request in one call."""
        plan = self.plan(shape, requested_count, chunking_enabled=chunking_enabled)
        return await self.execute(plan, shape)

    async def execute(self, plan: ChunkPlan, shape: ShapeDescriptor) -> ChunkResult:
        """Execute a chunk plan and combine the results.

        Args:
            plan: Plan to execute
            shape: Original (unchunked) response shape

        Returns:
            ChunkResult holding exactly ``plan.effective_total`` items

        Raises:
            ChunkGenerationError: If a chunk is still unusable after all attempts
            Exception: Generator failures propagate unchanged
        """
        self._state = OrchestratorState.EXECUTING
        started = perf_counter()
        chunks: list[list[Any]] = []
        attempts: list[int] = []
        context = ContinuationContext(chunk_count=plan.chunk_count)

        for chunk_index, size in enumerate(plan.chunk_sizes):
            item_start, item_end = plan.item_range(chunk_index)
            try:
                items, used = await self._generate_chunk(
                    plan=plan,
                    chunk_index=chunk_index,
                    shape=shape.with_count(size),
                    size=size,
                    context=context,
                )
            except Exception as e:
                self._state = OrchestratorState.FAILED
                log_chunk_error(
                    chunk_index=chunk_index,
                    item_start=item_start,
                    item_end=item_end,
                    error_type=type(e).__name__,
                    error_message=str(e),
                    listener=self._listener,
                )
                raise

            chunks.append(items)
            attempts.append(used)
            context = context.advance(items)

        self._state = OrchestratorState.COMBINING
        combined = [item for chunk in chunks for item in chunk]

        result = ChunkResult(
            items=combined,
            plan=plan,
            attempts=attempts,
            latency_ms=(perf_counter() - started) * 1000.0,
        )
        self._state = OrchestratorState.DONE
        log_chunk_execution_complete(result=result, listener=self._listener)
        return result

    async def _generate_chunk(
        self,
        *,
        plan: ChunkPlan,
        chunk_index: int,
        shape: ShapeDescriptor,
        size: int,
        context: ContinuationContext,
    ) -> tuple[list[Any], int]:
        """Generate one chunk, retrying unusable output.

        Returns:
            The chunk's items and the number of attempts used
        """
        item_start, item_end = plan.item_range(chunk_index)
        max_attempts = self._options.max_chunk_attempts
        last_error = ""

        for attempt in range(1, max_attempts + 1):
            log_chunk_started(
                chunk_index=chunk_index,
                total_chunks=plan.chunk_count,
                item_start=item_start,
                item_end=item_end,
                attempt=attempt,
                listener=self._listener,
            )
            chunk_started = perf_counter()
            text = await self._generator.generate(
                shape,
                self._chunk_context(context, size, strict=attempt > 1),
            )

            try:
                items = self._parse_items(text, size)
            except _UnusableChunk as e:
                last_error = str(e)
                log_chunk_retry(
                    chunk_index=chunk_index,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error_message=last_error,
                    preview=_preview(text or ""),
                    listener=self._listener,
                )
                continue

            log_chunk_completed(
                chunk_index=chunk_index,
                rows_aggregated=len(items),
                attempts=attempt,
                latency_ms=(perf_counter() - chunk_started) * 1000.0,
                listener=self._listener,
            )
            return items, attempt

        raise ChunkGenerationError(
            f"Chunk {chunk_index + 1}/{plan.chunk_count} (items {item_start}-{item_end}) "
            f"could not be generated after {max_attempts} attempts: {last_error}",
            chunk_index=chunk_index,
            item_start=item_start,
            item_end=item_end,
            attempts=max_attempts,
        )

    def _parse_items(self, text: str | None, size: int) -> list[Any]:
        """Parse chunk output into exactly ``size`` items."""
        cleaned = extract_json(text)
        try:
            value = json.loads(cleaned)
        except ValueError as e:
            raise _UnusableChunk(f"invalid JSON: {e}") from e

        if isinstance(value, list):
            items = value
        elif isinstance(value, dict):
            items = [value]
        else:
            raise _UnusableChunk(f"expected a JSON array, got {type(value).__name__}")

        if len(items) < size:
            raise _UnusableChunk(f"expected {size} items, got {len(items)}")
        if len(items) > size:
            logger.debug(
                "chunk_truncated",
                extra={"expected_items": size, "received_items": len(items)},
            )
            items = items[:size]
        return items

    def _chunk_context(
        self,
        context: ContinuationContext,
        size: int,
        *,
        strict: bool,
    ) -> str | None:
        parts = [self._base_context, context.render(size, strict=strict)]
        joined = "\n".join(part for part in parts if part)
        return joined or None
