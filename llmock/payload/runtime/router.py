"""Payload router deciding between chunked generation and the variant cache.

The PayloadRouter is the single place where a request's path is chosen:
1. Estimate tokens per item and plan chunks
2. Pick exactly one route: chunked, cached, or direct
3. Invoke the orchestrator, the cache store, or the generator

Routing Rules:
    - Plan with more than one chunk -> ChunkOrchestrator (cache never consulted)
    - Single-chunk plan with a variant count > 0 -> VariantCacheStore
    - Anything else -> one direct generator call

    A cached variant must be one complete, consistently shaped response, so
    chunk fragments are never stored and cached responses are never chunked.
    The decision is made once, after planning and before any backend call.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..core.enums import CachePriority, RouteKind
from ..core.events import EventListener, PayloadEvent, PayloadEventType, emit_event
from ..core.exceptions import GeneratorError
from ..core.options import PayloadOptions
from ..generators.base import bind_generator
from ..shapes.descriptor import ShapeDescriptor
from ..shapes.json_extract import extract_json, is_valid_json
from .cache.keys import CacheKey, compute_cache_key
from .chunking.definitions import ChunkPlan, ContinuationContext
from .chunking.estimator import estimate_tokens_per_item
from .chunking.orchestrator import ChunkOrchestrator
from .chunking.planners import ChunkPlanner

if TYPE_CHECKING:
    from ..generators.base import Generator
    from .cache.store import VariantCacheStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayloadRequest:
    """One generation request as seen by the router.

    Attributes:
        method: HTTP method of the originating request
        path: Request path including the query string
        shape: Desired response shape
        requested_count: Items requested (before the item cap)
        disable_chunking: Force a single backend call for this request
        cache_variants: Variants to keep cached for this request (0 = no caching)
        priority: Eviction priority for a cached entry (None = configured default)
        context: Caller context passed to the generator (e.g. conversation history)
    """

    method: str
    path: str
    shape: ShapeDescriptor
    requested_count: int = 1
    disable_chunking: bool = False
    cache_variants: int = 0
    priority: CachePriority | None = None
    context: str | None = None


@dataclass
class PayloadResponse:
    """Routed response.

    Attributes:
        body: JSON response text
        route: Route the request took
        plan: Chunk plan computed for the request
        cache_key: Cache key used (cached route only)
        warnings: Human-readable warnings (e.g. item cap applied)
    """

    body: str
    route: RouteKind
    plan: ChunkPlan
    cache_key: CacheKey | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def capped(self) -> bool:
        return self.plan.capped

    @property
    def chunk_count(self) -> int:
        return self.plan.chunk_count

    def json(self) -> Any:
        return json.loads(self.body)

    def metadata(self) -> dict[str, Any]:
        return {
            "route": self.route.value,
            "chunk_count": self.chunk_count,
            "items_per_chunk": self.plan.items_per_chunk,
            "capped": self.capped,
            "total_requested": self.plan.total_requested,
            "effective_total": self.plan.effective_total,
        }


class PayloadRouter:
    """Routes requests to the orchestrator, the cache store or the generator."""

    def __init__(
        self,
        generator: Generator,
        *,
        options: PayloadOptions | None = None,
        cache_store: VariantCacheStore | None = None,
        listener: EventListener | None = None,
    ) -> None:
        """Initialize the router.

        Args:
            generator: Backend shared by every route
            options: Planning configuration (defaults to the cache store's options)
            cache_store: Optional cache store (cached route disabled without one)
            listener: Optional event listener
        """
        if options is None:
            options = cache_store.options if cache_store is not None else PayloadOptions()
        self._generator = generator
        self._options = options
        self._cache_store = cache_store
        self._listener = listener
        self._planner = ChunkPlanner(options, listener=listener)

    def plan(self, request: PayloadRequest) -> ChunkPlan:
        """Plan chunks for a request (no backend calls)."""
        tokens_per_item = estimate_tokens_per_item(request.shape)
        return self._planner.plan(
            request.requested_count,
            tokens_per_item,
            chunking_enabled=not request.disable_chunking,
        )

    def select_route(self, request: PayloadRequest, plan: ChunkPlan) -> RouteKind:
        """Pick the single route a planned request takes."""
        if plan.is_chunked:
            return RouteKind.CHUNKED
        if plan.is_empty:
            return RouteKind.DIRECT
        if request.cache_variants > 0 and self._cache_store is not None:
            return RouteKind.CACHED
        return RouteKind.DIRECT

    async def route(self, request: PayloadRequest) -> PayloadResponse:
        """Route a request and return its response.

        Raises:
            ChunkGenerationError: If a chunk of an orchestrated request fails
            CacheError: If the cache store is closed
            GeneratorError: If a single-call response holds no usable JSON
            Exception: Generator failures propagate
        """
        plan = self.plan(request)
        route = self.select_route(request, plan)
        warnings: list[str] = []
        if plan.capped:
            warnings.append(
                f"Requested {plan.total_requested} items exceeds the limit of "
                f"{plan.effective_total}; returning {plan.effective_total}."
            )

        logger.debug(
            "route_selected",
            extra={
                "method": request.method,
                "path": request.path,
                "route": route.value,
                "total_chunks": plan.chunk_count,
                "cache_variants": request.cache_variants,
            },
        )
        emit_event(
            self._listener,
            PayloadEvent.create(
                PayloadEventType.ROUTE_SELECTED,
                route=route.value,
                path=request.path,
                total_chunks=plan.chunk_count,
            ),
        )

        if plan.is_empty:
            return PayloadResponse(body="[]", route=route, plan=plan, warnings=warnings)

        if route is RouteKind.CHUNKED:
            orchestrator = ChunkOrchestrator(
                self._generator,
                self._options,
                planner=self._planner,
                listener=self._listener,
                base_context=request.context,
            )
            result = await orchestrator.execute(plan, request.shape)
            return PayloadResponse(
                body=result.to_json(),
                route=route,
                plan=plan,
                warnings=warnings,
            )

        # Shapes without a count field only learn the item count from the context
        shape = request.shape.with_count(plan.effective_total)
        parts = [request.context, ContinuationContext().render(plan.effective_total)]
        context = "\n".join(part for part in parts if part) or None

        generate = bind_generator(self._generator, shape, context)

        async def fetch() -> str:
            text = extract_json(await generate())
            if not is_valid_json(text):
                raise GeneratorError(f"Generator returned no usable JSON for {request.path}")
            return text

        if route is RouteKind.CACHED:
            key = compute_cache_key(
                request.method,
                request.path,
                shape,
                item_count=plan.effective_total,
            )
            body = await self._cache_store.get_or_fetch(
                key,
                request.cache_variants,
                fetch,
                priority=request.priority,
            )
            return PayloadResponse(
                body=body,
                route=route,
                plan=plan,
                cache_key=key,
                warnings=warnings,
            )

        return PayloadResponse(body=await fetch(), route=route, plan=plan, warnings=warnings)
