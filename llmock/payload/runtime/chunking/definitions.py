"""Chunk plan, continuation context and result structures.

This module defines the data structures that describe how a request is
split into chunks, what each chunk is told about the chunks before it, and
what the orchestrator hands back once all chunks are combined.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

# Item fields used to identify boundary items in continuation summaries
SUMMARY_FIELDS = ("id", "name", "email")

_COMPACT = (",", ":")


@dataclass(frozen=True)
class ChunkPlan:
    """Plan for one request.

    Attributes:
        total_requested: Item count the caller asked for
        effective_total: Item count after applying the item cap
        items_per_chunk: Items that fit in one backend call
        chunk_sizes: Item count of each chunk, in execution order
    """

    total_requested: int
    effective_total: int
    items_per_chunk: int
    chunk_sizes: tuple[int, ...] = ()

    @property
    def chunk_count(self) -> int:
        return len(self.chunk_sizes)

    @property
    def capped(self) -> bool:
        """Whether the item cap reduced the requested count."""
        return self.effective_total < self.total_requested

    @property
    def is_chunked(self) -> bool:
        """Whether the plan needs more than one backend call."""
        return self.chunk_count > 1

    @property
    def is_empty(self) -> bool:
        return self.chunk_count == 0

    def item_range(self, chunk_index: int) -> tuple[int, int]:
        """One-based inclusive item range covered by a zero-based chunk index."""
        start = sum(self.chunk_sizes[:chunk_index]) + 1
        return start, start + self.chunk_sizes[chunk_index] - 1

    def ranges(self) -> list[tuple[int, int]]:
        return [self.item_range(i) for i in range(self.chunk_count)]


def summarize_item(item: Any) -> str:
    """Short identifying description of a generated item."""
    if isinstance(item, dict):
        parts = [
            f"{name}={json.dumps(item[name], ensure_ascii=False)}"
            for name in SUMMARY_FIELDS
            if name in item
        ]
        if parts:
            return ", ".join(parts)
    return "item"


def _summarize_chunk(items: list[Any]) -> str:
    if not items:
        return "0 items"
    if len(items) == 1:
        return f"1 item ({summarize_item(items[0])})"
    return (
        f"{len(items)} items (first: {summarize_item(items[0])}, "
        f"last: {summarize_item(items[-1])})"
    )


@dataclass(frozen=True)
class ContinuationContext:
    """Boundary summary of the chunks generated so far.

    A fresh context is built after every chunk via ``advance``.

    Attributes:
        chunk_index: One-based index of the chunk about to be generated
        chunk_count: Total chunks in the plan
        items_so_far: Running count of items generated by prior chunks
        first_item: First item of the first chunk (None before chunk 1 completes)
        last_item: Last item of the most recent chunk
        summaries: One summary line per completed chunk
    """

    chunk_index: int = 1
    chunk_count: int = 1
    items_so_far: int = 0
    first_item: Any = None
    last_item: Any = None
    summaries: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_history(self) -> bool:
        return self.items_so_far > 0

    def advance(self, items: list[Any]) -> ContinuationContext:
        """Context for the next chunk after ``items`` were generated."""
        first_item = self.first_item
        if first_item is None and items:
            first_item = items[0]
        return ContinuationContext(
            chunk_index=self.chunk_index + 1,
            chunk_count=self.chunk_count,
            items_so_far=self.items_so_far + len(items),
            first_item=first_item,
            last_item=items[-1] if items else self.last_item,
            summaries=self.summaries + (_summarize_chunk(items),),
        )

    def render(self, expected_items: int, *, strict: bool = False) -> str | None:
        """Text passed to the generator alongside the chunk shape.

        Args:
            expected_items: Items the current chunk must contain
            strict: Append the stricter instruction used when retrying

        Returns:
            Context text, or None for a single-item first chunk
        """
        lines: list[str] = []
        if self.has_history:
            lines.append(
                f"IMPORTANT CONTEXT - Multi-part Response "
                f"(Part {self.chunk_index}/{self.chunk_count}):"
            )
            lines.append("This is a continuation of a larger request. Previous parts have generated:")
            for number, summary in enumerate(self.summaries, start=1):
                lines.append(f"  Part {number}: {summary}")
            lines.append(f"Items generated so far: {self.items_so_far}")
            lines.append(f"First item overall: {json.dumps(self.first_item, separators=_COMPACT, ensure_ascii=False)}")
            lines.append(f"Last item so far: {json.dumps(self.last_item, separators=_COMPACT, ensure_ascii=False)}")
            lines.append("Ensure consistency with the above data (IDs, names, relationships, style).")
            lines.append(
                "Continue numbering, IDs, and patterns logically from where the previous part left off."
            )
        if self.chunk_count > 1 or expected_items > 1 or strict:
            lines.append(
                f"CRITICAL: Output MUST be a valid JSON array of exactly {expected_items} items "
                f"starting with [ and ending with ]."
            )
        if strict:
            lines.append(
                "Your previous answer could not be parsed. Return ONLY valid JSON with no "
                "commentary or markdown, and keep every item as short as the shape allows."
            )
        if not lines:
            return None
        return "\n".join(lines)


@dataclass
class ChunkResult:
    """Result of orchestrated execution.

    Attributes:
        items: Combined items from all chunks, in order
        plan: Plan the result was produced from
        attempts: Backend calls made per chunk
        latency_ms: Total execution latency in milliseconds
    """

    items: list[Any]
    plan: ChunkPlan
    attempts: list[int] = field(default_factory=list)
    latency_ms: float | None = None

    @property
    def chunk_count(self) -> int:
        return self.plan.chunk_count

    @property
    def items_per_chunk(self) -> int:
        return self.plan.items_per_chunk

    @property
    def capped(self) -> bool:
        return self.plan.capped

    @property
    def total_items(self) -> int:
        return len(self.items)

    def to_json(self) -> str:
        return json.dumps(self.items, separators=_COMPACT, ensure_ascii=False)

    def metadata(self) -> dict[str, Any]:
        return {
            "chunk_count": self.chunk_count,
            "items_per_chunk": self.items_per_chunk,
            "capped": self.capped,
            "total_requested": self.plan.total_requested,
            "effective_total": self.plan.effective_total,
            "total_items": self.total_items,
        }
