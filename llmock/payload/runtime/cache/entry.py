"""Cache entry holding a depleting queue of response variants."""

from __future__ import annotations

import asyncio
import hashlib
from collections import deque
from dataclasses import dataclass, field

from ...core.enums import CachePriority
from .keys import CacheKey


def _content_hash(variant: str) -> str:
    return hashlib.blake2b(variant.encode("utf-8"), digest_size=8).hexdigest()


@dataclass(eq=False)
class CacheEntry:
    """Pre-generated variants for one cache key.

    Variants are served FIFO and consumed once. All mutation happens while
    ``lock`` is held; the lock and refill task live and die with the entry.

    Attributes:
        key: Key this entry belongs to
        created_at: Clock time the entry was created
        sliding_window: Idle lifetime in seconds, reset by ``touch``
        absolute_window: Hard lifetime in seconds
        priority: Eviction priority
    """

    key: CacheKey
    created_at: float
    sliding_window: float
    absolute_window: float
    priority: CachePriority = CachePriority.NORMAL
    variants: deque[str] = field(default_factory=deque)
    last_access_at: float = field(init=False)
    sliding_deadline: float = field(init=False)
    absolute_deadline: float = field(init=False)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    refill_task: asyncio.Task[None] | None = field(default=None, repr=False)
    _hashes: set[str] = field(default_factory=set, repr=False)

    def __post_init__(self) -> None:
        self.last_access_at = self.created_at
        self.sliding_deadline = self.created_at + self.sliding_window
        self.absolute_deadline = self.created_at + self.absolute_window

    @property
    def refill_in_flight(self) -> bool:
        return self.refill_task is not None and not self.refill_task.done()

    def __len__(self) -> int:
        return len(self.variants)

    def touch(self, now: float) -> None:
        """Record an access and push the sliding deadline forward."""
        self.last_access_at = now
        self.sliding_deadline = now + self.sliding_window

    def is_expired(self, now: float) -> bool:
        """Whether either deadline has passed.

        ``NEVER`` entries are exempt from the absolute deadline.
        """
        if now > self.sliding_deadline:
            return True
        return not self.priority.pinned and now > self.absolute_deadline

    def pop(self) -> str | None:
        """Remove and return the oldest variant."""
        if not self.variants:
            return None
        variant = self.variants.popleft()
        self._hashes.discard(_content_hash(variant))
        return variant

    def append(self, variant: str, capacity: int) -> bool:
        """Queue a variant unless full, empty or already queued.

        Returns:
            True if the variant was queued
        """
        if not variant or len(self.variants) >= capacity:
            return False
        digest = _content_hash(variant)
        if digest in self._hashes:
            return False
        self._hashes.add(digest)
        self.variants.append(variant)
        return True

    def cancel_refill(self) -> None:
        if self.refill_in_flight:
            self.refill_task.cancel()
        self.refill_task = None
