"""Multi-variant response cache with single-flight background refill.

The VariantCacheStore keeps, per cache key, a FIFO queue of pre-generated
responses. Each hit consumes one variant so repeated identical requests get
different payloads, and a background task tops the queue back up before it
runs dry.

Architecture:
    - Per-key state (queue, deadlines, refill task) lives in a CacheEntry and
      is only mutated while that entry's lock is held. Unrelated keys never
      contend; the entry map itself is only touched between awaits.
    - Cold fills run under the entry lock, so concurrent callers for a cold
      key wait for the one fill in progress and then consume its queue.
    - Refills run as store-owned tasks. They outlive the request that
      triggered them and are cancelled only by remove/clear/eviction/close.
    - Expired entries are dropped lazily on access and by an optional
      periodic sweep. Removing an entry releases its lock and refill task.
    - When total queued variants exceed ``max_items``, entries are evicted by
      (priority, last access); ``NEVER`` entries go last.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from time import perf_counter
from typing import TYPE_CHECKING, Any

from ...core.clock import Clock, MonotonicClock
from ...core.enums import CachePriority
from ...core.events import EventListener
from ...core.exceptions import CacheError
from ...core.options import PayloadOptions
from .entry import CacheEntry
from .keys import CacheKey
from .telemetry import (
    log_cache_cleared,
    log_cache_cold_fill,
    log_cache_evicted,
    log_cache_expired,
    log_cache_hit,
    log_cache_refill_completed,
    log_cache_refill_failed,
    log_cache_refill_started,
)

if TYPE_CHECKING:
    from ...generators.base import GeneratorFn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStatistics:
    """Point-in-time cache statistics."""

    total_entries: int
    total_variants: int
    max_items: int
    max_variants_per_key: int
    refills_in_flight: int

    @property
    def utilization_percent(self) -> float:
        if self.max_items <= 0:
            return 0.0
        return self.total_variants / self.max_items * 100


class VariantCacheStore:
    """Keyed, bounded, expiring store of response variant queues.

    Example:
        >>> async with VariantCacheStore(options) as store:
        ...     body = await store.get_or_fetch(key, 5, fetch)
    """

    def __init__(
        self,
        options: PayloadOptions | None = None,
        *,
        clock: Clock | None = None,
        listener: EventListener | None = None,
    ) -> None:
        """Initialize the cache store.

        Args:
            options: Cache sizing, expiration and refill configuration
            clock: Time source for deadlines (defaults to a monotonic clock)
            listener: Optional event listener for cache decisions
        """
        self._options = options or PayloadOptions()
        self._clock = clock or MonotonicClock()
        self._listener = listener
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._refill_tasks: set[asyncio.Task[None]] = set()
        self._sweeper: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def options(self) -> PayloadOptions:
        return self._options

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_or_fetch(
        self,
        key: CacheKey,
        variant_count: int,
        generator_fn: GeneratorFn,
        *,
        priority: CachePriority | None = None,
    ) -> str:
        """Serve one variant for ``key``, generating variants when needed.

        Args:
            key: Cache key of the request
            variant_count: Variants to keep for this key (capped at max_cache_per_key);
                values <= 0 bypass the cache
            generator_fn: Zero-argument coroutine function producing one variant
            priority: Eviction priority for the entry (defaults to the configured one)

        Returns:
            A JSON response variant

        Raises:
            CacheError: If the store has been closed
            Exception: Generator failures during a cold fill that produced nothing
        """
        if self._closed:
            raise CacheError("Cache store is closed")
        if variant_count <= 0:
            return await generator_fn()

        target = min(variant_count, self._options.max_cache_per_key)

        while True:
            now = self._clock.now()
            entry = self._entry_for(key, now, priority)
            waiting_on: asyncio.Task[None] | None = None

            async with entry.lock:
                if self._entries.get(key) is not entry:
                    # Removed while we waited for the lock
                    continue

                entry.touch(self._clock.now())
                if not entry.variants:
                    if entry.refill_in_flight:
                        waiting_on = entry.refill_task
                    else:
                        await self._cold_fill(entry, target, generator_fn)

                if waiting_on is None:
                    variant = entry.pop()
                    remaining = len(entry)
                    log_cache_hit(key=key, remaining=remaining, listener=self._listener)
                    if remaining <= self.refill_threshold(target) and not entry.refill_in_flight:
                        self._start_refill(entry, target, generator_fn)

            if waiting_on is None:
                self._enforce_bound()
                return variant

            # Queue is dry but a refill is running: wait for it without owning it
            await asyncio.wait({waiting_on})

    def refill_threshold(self, variant_count: int) -> int:
        """Remaining-variant level at or below which a refill starts."""
        return math.ceil(variant_count * self._options.refresh_threshold_percent / 100)

    def remaining(self, key: CacheKey) -> int:
        """Variants currently queued for ``key``."""
        entry = self._entries.get(key)
        return len(entry) if entry is not None else 0

    def refill_in_flight(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.refill_in_flight

    def remove(self, key: CacheKey) -> bool:
        """Drop the entry for ``key`` and cancel its refill.

        Returns:
            True if an entry was removed
        """
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        entry.cancel_refill()
        logger.debug("cache_entry_removed", extra={"cache_key": str(key), "path": key.path})
        return True

    def clear(self) -> None:
        """Drop every entry and cancel all refills."""
        count = len(self._entries)
        for entry in self._entries.values():
            entry.cancel_refill()
        self._entries.clear()
        log_cache_cleared(entries=count, listener=self._listener)

    def sweep_expired(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock.now()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            self._expire(key)
        return len(expired)

    def statistics(self) -> CacheStatistics:
        return CacheStatistics(
            total_entries=len(self._entries),
            total_variants=self.total_variants,
            max_items=self._options.max_items,
            max_variants_per_key=self._options.max_cache_per_key,
            refills_in_flight=sum(1 for e in self._entries.values() if e.refill_in_flight),
        )

    @property
    def total_variants(self) -> int:
        return sum(len(entry) for entry in self._entries.values())

    async def wait_for_refills(self) -> None:
        """Wait until no background refill is running."""
        while self._refill_tasks:
            await asyncio.gather(*list(self._refill_tasks), return_exceptions=True)

    def start(self) -> None:
        """Start the periodic expiration sweep (no-op without a sweep interval)."""
        if self._closed:
            raise CacheError("Cache store is closed")
        interval = self._options.sweep_interval
        if interval is None or self._sweeper is not None:
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(interval.total_seconds()))

    async def close(self) -> None:
        """Stop the sweep, cancel refills and drop all entries."""
        if self._closed:
            return
        self._closed = True

        tasks = list(self._refill_tasks)
        if self._sweeper is not None:
            tasks.append(self._sweeper)
            self._sweeper = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._refill_tasks.clear()

        self._entries.clear()
        logger.info("VariantCacheStore closed")

    async def __aenter__(self) -> VariantCacheStore:
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _entry_for(
        self,
        key: CacheKey,
        now: float,
        priority: CachePriority | None,
    ) -> CacheEntry:
        entry = self._entries.get(key)
        if entry is not None and entry.is_expired(now):
            self._expire(key)
            entry = None

        if entry is None:
            entry = CacheEntry(
                key=key,
                created_at=now,
                sliding_window=self._options.sliding_window.total_seconds(),
                absolute_window=self._options.absolute_window.total_seconds(),
                priority=priority or self._options.default_priority,
            )
            self._entries[key] = entry
        elif priority is not None:
            entry.priority = priority
        return entry

    def _expire(self, key: CacheKey) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        entry.cancel_refill()
        log_cache_expired(key=key, discarded=len(entry), listener=self._listener)

    async def _cold_fill(
        self,
        entry: CacheEntry,
        target: int,
        generator_fn: GeneratorFn,
    ) -> None:
        """Synchronously generate ``target`` variants into an empty entry.

        Runs with the entry lock held. Individual failures are tolerated as
        long as at least one variant is produced; otherwise the first error
        propagates.
        """
        started = perf_counter()
        first_error: Exception | None = None
        failures = 0

        for _ in range(target):
            try:
                variant = await generator_fn()
            except Exception as e:
                failures += 1
                if first_error is None:
                    first_error = e
                logger.warning(
                    "cache_cold_fill_fetch_failed",
                    extra={"cache_key": str(entry.key), "error_message": str(e)},
                )
                continue
            entry.append(variant, self._options.max_cache_per_key)

        log_cache_cold_fill(
            key=entry.key,
            requested=target,
            stored=len(entry),
            failures=failures,
            latency_ms=(perf_counter() - started) * 1000.0,
            listener=self._listener,
        )

        if not entry.variants:
            if first_error is not None:
                raise first_error
            raise CacheError(f"Generator produced no usable variant for {entry.key.path or entry.key}")

    def _start_refill(
        self,
        entry: CacheEntry,
        target: int,
        generator_fn: GeneratorFn,
    ) -> None:
        log_cache_refill_started(
            key=entry.key,
            remaining=len(entry),
            target=target,
            listener=self._listener,
        )
        task = asyncio.create_task(self._refill(entry, target, generator_fn))
        entry.refill_task = task
        self._refill_tasks.add(task)
        task.add_done_callback(self._refill_tasks.discard)

    async def _refill(
        self,
        entry: CacheEntry,
        target: int,
        generator_fn: GeneratorFn,
    ) -> None:
        """Append up to ``target`` new variants to ``entry``.

        Generator failures stop the refill and are logged; the queue stays
        short until the next depletion schedules another refill.
        """
        capacity = self._options.max_cache_per_key
        added = 0

        for _ in range(target):
            if self._entries.get(entry.key) is not entry or len(entry) >= capacity:
                break
            try:
                variant = await generator_fn()
            except Exception as e:
                log_cache_refill_failed(
                    key=entry.key,
                    added=added,
                    error_type=type(e).__name__,
                    error_message=str(e),
                    listener=self._listener,
                )
                return

            async with entry.lock:
                if self._entries.get(entry.key) is not entry:
                    return
                if entry.append(variant, capacity):
                    added += 1
            self._enforce_bound()

        log_cache_refill_completed(
            key=entry.key,
            added=added,
            queued=len(entry),
            listener=self._listener,
        )

    def _enforce_bound(self) -> None:
        """Evict entries until total variants fit ``max_items``. Never raises."""
        max_items = self._options.max_items
        if max_items <= 0:
            return
        total = self.total_variants
        if total <= max_items:
            return

        self.sweep_expired()
        total = self.total_variants

        ordered = sorted(
            self._entries.values(),
            key=lambda e: (e.priority.pinned, e.priority.rank, e.last_access_at),
        )
        for entry in ordered:
            if total <= max_items:
                break
            if self._entries.get(entry.key) is not entry:
                continue
            self._entries.pop(entry.key)
            entry.cancel_refill()
            total -= len(entry)
            log_cache_evicted(
                key=entry.key,
                priority=entry.priority.value,
                discarded=len(entry),
                total_variants=total,
                max_items=max_items,
                listener=self._listener,
            )

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                removed = self.sweep_expired()
            except Exception as e:
                logger.error(f"Cache sweep error: {e}", exc_info=True)
                continue
            if removed:
                logger.debug("cache_sweep", extra={"removed": removed})
