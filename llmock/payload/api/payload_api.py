"""Ergonomic PayloadAPI facade for shape-driven payload generation.

The PayloadAPI wraps the PayloadRouter and offers a single ``generate``
method that accepts a raw request (method, path, shape text) and resolves
the per-request hints before routing.

Architecture:
    This module implements the Facade pattern to hide the planner,
    orchestrator and cache store behind one call. PayloadAPI handles:
    - Shape parsing (text, parsed JSON or ShapeDescriptor)
    - Hint resolution (item count, ``autoChunk=false``, cache variant count)
    - Request construction (PayloadRequest) and delegation to PayloadRouter
    - Lifecycle of the cache store and generator it created itself

Design Decisions:
    - Explicit arguments override hints found in the query or the shape
    - Cache store and generator injection allow testing with fakes
    - Context manager pattern ensures background refills are stopped

See Also:
    - PayloadRouter: Route selection and execution
    - VariantCacheStore: Multi-variant cache
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs, urlsplit

from ..core.enums import CachePriority
from ..core.events import EventListener
from ..core.exceptions import PayloadError
from ..core.options import PayloadOptions
from ..generators.base import Generator
from ..generators.http import OpenAICompatibleGenerator
from ..runtime.cache.store import VariantCacheStore
from ..runtime.router import PayloadRequest, PayloadResponse, PayloadRouter
from ..shapes.descriptor import ShapeDescriptor
from ..shapes.hints import chunking_disabled, extract_cache_count, extract_requested_count

logger = logging.getLogger(__name__)


class PayloadAPI:
    """High-level facade for generating payloads from response shapes.

    Example:
        >>> async with PayloadAPI(generator=my_generator) as api:
        ...     response = await api.generate(
        ...         "GET",
        ...         "/api/users?count=100",
        ...         '{"id": 1, "name": "string", "email": "string"}',
        ...     )
        ...     print(response.route, response.chunk_count)
    """

    def __init__(
        self,
        options: PayloadOptions | None = None,
        generator: Generator | None = None,
        cache_store: VariantCacheStore | None = None,
        on_event: EventListener | None = None,
    ) -> None:
        """Initialize the PayloadAPI.

        Args:
            options: Planning and cache configuration (default: PayloadOptions())
            generator: Backend (default: OpenAICompatibleGenerator against a local server)
            cache_store: Optional VariantCacheStore (creates one if not provided)
            on_event: Optional listener receiving every PayloadEvent

        Note:
            Only resources created here are closed by ``close()``; injected
            generators and cache stores stay owned by the caller.
        """
        self._options = options or (cache_store.options if cache_store is not None else PayloadOptions())
        self._owns_generator = generator is None
        self._generator = generator or OpenAICompatibleGenerator()
        self._owns_cache_store = cache_store is None
        self._cache_store = cache_store or VariantCacheStore(self._options, listener=on_event)
        self._router = PayloadRouter(
            self._generator,
            options=self._options,
            cache_store=self._cache_store,
            listener=on_event,
        )
        self._closed = False

    @property
    def options(self) -> PayloadOptions:
        return self._options

    @property
    def cache_store(self) -> VariantCacheStore:
        return self._cache_store

    @property
    def router(self) -> PayloadRouter:
        return self._router

    async def generate(
        self,
        method: str,
        path: str,
        shape: ShapeDescriptor | str | Any,
        *,
        query: Mapping[str, Any] | None = None,
        requested_count: int | None = None,
        disable_chunking: bool = False,
        cache_variants: int | None = None,
        priority: CachePriority | str | None = None,
        context: str | None = None,
        strict_shape: bool = False,
    ) -> PayloadResponse:
        """Generate a payload for one request.

        Args:
            method: HTTP method of the request
            path: Request path, optionally including a query string
            shape: Shape text, an already parsed JSON value, or a ShapeDescriptor
            query: Query parameters (parsed from ``path`` if omitted)
            requested_count: Items to generate (default: from query, then shape, then 1)
            disable_chunking: Force a single backend call (also set by ``autoChunk=false``)
            cache_variants: Variants to cache (default: ``?cache=`` or the shape's directive)
            priority: Eviction priority for a cached entry
            context: Caller context forwarded to the generator
            strict_shape: Reject empty or malformed shape text instead of
                generating from a flat-object estimate

        Returns:
            PayloadResponse with the body and the route taken

        Raises:
            PayloadError: If the API has been closed
            ShapeError: If ``strict_shape`` is set and the shape text is unusable
            ChunkGenerationError: If a chunk could not be generated
            Exception: Generator failures propagate
        """
        if self._closed:
            raise PayloadError("PayloadAPI is closed")

        descriptor = self._resolve_shape(shape, strict=strict_shape)
        if query is None:
            query = self._parse_query(path)

        if requested_count is None:
            requested_count = extract_requested_count(query, descriptor)
        if cache_variants is None:
            cache_variants = extract_cache_count(query, descriptor)
        if isinstance(priority, str):
            priority = CachePriority.from_str(priority)

        request = PayloadRequest(
            method=method,
            path=path,
            shape=descriptor,
            requested_count=requested_count,
            disable_chunking=disable_chunking or chunking_disabled(query),
            cache_variants=cache_variants,
            priority=priority,
            context=context,
        )
        logger.debug(
            "Generating payload",
            extra={
                "method": method,
                "path": path,
                "requested_count": requested_count,
                "cache_variants": cache_variants,
            },
        )
        return await self._router.route(request)

    @staticmethod
    def _resolve_shape(shape: ShapeDescriptor | str | Any, *, strict: bool = False) -> ShapeDescriptor:
        if isinstance(shape, ShapeDescriptor):
            return shape
        if strict and (shape is None or isinstance(shape, str)):
            return ShapeDescriptor.parse_strict(shape)
        if shape is None or isinstance(shape, str):
            return ShapeDescriptor.parse(shape)
        return ShapeDescriptor.from_value(shape)

    @staticmethod
    def _parse_query(path: str) -> dict[str, list[str]]:
        return parse_qs(urlsplit(path).query, keep_blank_values=True)

    async def close(self) -> None:
        """Close the API and the resources it created."""
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing PayloadAPI")
        if self._owns_cache_store:
            await self._cache_store.close()
        if self._owns_generator:
            await self._generator.close()

    async def __aenter__(self) -> PayloadAPI:
        """Async context manager entry."""
        if self._owns_cache_store:
            self._cache_store.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
