"""Per-request hints read from query parameters and shapes."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .descriptor import ShapeDescriptor

logger = logging.getLogger(__name__)

# Query parameters checked, in order, for an explicit item count
QUERY_COUNT_KEYS = ("count", "limit", "size", "items", "per_page", "pageSize", "top")

# Query parameter that opts a single request out of chunking
AUTO_CHUNK_PARAM = "autoChunk"

QueryParams = Mapping[str, Any]


def _first(value: Any) -> Any:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return value[0] if value else None
    return value


def _positive_int(value: Any) -> int | None:
    value = _first(value)
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def extract_requested_count(
    query: QueryParams | None,
    shape: ShapeDescriptor | None,
    default: int = 1,
) -> int:
    """Resolve how many items a request asks for.

    Resolution order:
        1. First positive value among QUERY_COUNT_KEYS
        2. Root-level count field of the shape
        3. ``default``

    The value is not capped here; the planner applies the item cap.
    """
    if query:
        for key in QUERY_COUNT_KEYS:
            if key in query:
                count = _positive_int(query[key])
                if count is not None:
                    logger.debug("Found explicit count in query parameter", extra={"key": key, "count": count})
                    return count

    if shape is not None:
        count = shape.requested_count()
        if count is not None:
            return count

    return default


def chunking_disabled(query: QueryParams | None) -> bool:
    """Whether the request opted out of chunking with ``autoChunk=false``."""
    if not query or AUTO_CHUNK_PARAM not in query:
        return False
    value = _first(query[AUTO_CHUNK_PARAM])
    return str(value).strip().lower() == "false"


def extract_cache_count(query: QueryParams | None, shape: ShapeDescriptor | None) -> int:
    """Requested cache variant count from ``?cache=`` or the shape directive (0 = none)."""
    if query and "cache" in query:
        count = _positive_int(query["cache"])
        if count is not None:
            return count
    if shape is not None:
        return shape.cache_count
    return 0
