"""Chunk planning logic for splitting item counts across backend calls.

This module provides the ChunkPlanner class that determines how many items
fit in one backend call and how a request's item count is divided into
chunks that each respect the output-token budget.
"""

from __future__ import annotations

import math

from ...core.events import EventListener
from ...core.options import PayloadOptions
from .definitions import ChunkPlan
from .telemetry import log_chunk_plan


class ChunkPlanner:
    """Plans chunk sizes for generation requests.

    The planner is pure: the same inputs always yield the same plan, and it
    never raises. Degenerate counts produce an empty plan.
    """

    def __init__(
        self,
        options: PayloadOptions | None = None,
        *,
        listener: EventListener | None = None,
    ) -> None:
        """Initialize chunk planner.

        Args:
            options: Token budget and item cap configuration
            listener: Optional event listener for planning decisions
        """
        self._options = options or PayloadOptions()
        self._listener = listener

    @property
    def available_tokens(self) -> int:
        """Payload tokens available per backend call."""
        return self._options.available_output_tokens

    def items_per_chunk(self, tokens_per_item: int) -> int:
        """Items that fit in one backend call (at least 1)."""
        return max(1, self.available_tokens // max(1, tokens_per_item))

    def plan(
        self,
        requested_count: int,
        tokens_per_item: int,
        *,
        chunking_enabled: bool = True,
    ) -> ChunkPlan:
        """Plan chunks for a request.

        Args:
            requested_count: Total number of items requested
            tokens_per_item: Estimated output tokens per item
            chunking_enabled: False forces a single-chunk plan for this request

        Returns:
            ChunkPlan whose chunk sizes sum to the capped item count
        """
        chunking_enabled = chunking_enabled and self._options.enable_auto_chunking
        requested_count = max(0, requested_count)
        effective_total = min(requested_count, self._options.max_items_cap)
        per_chunk = self.items_per_chunk(tokens_per_item)

        if effective_total == 0:
            chunk_sizes: tuple[int, ...] = ()
        elif per_chunk >= effective_total:
            chunk_sizes = (effective_total,)
        elif not chunking_enabled:
            # Single call regardless of budget; keep len(chunk_sizes) == ceil(total / per_chunk)
            per_chunk = effective_total
            chunk_sizes = (effective_total,)
        else:
            chunk_count = math.ceil(effective_total / per_chunk)
            remainder = effective_total - per_chunk * (chunk_count - 1)
            chunk_sizes = (per_chunk,) * (chunk_count - 1) + (remainder,)

        plan = ChunkPlan(
            total_requested=requested_count,
            effective_total=effective_total,
            items_per_chunk=per_chunk,
            chunk_sizes=chunk_sizes,
        )

        log_chunk_plan(
            plan=plan,
            tokens_per_item=tokens_per_item,
            available_tokens=self.available_tokens,
            chunking_enabled=chunking_enabled,
            listener=self._listener,
        )
        return plan
