"""Deterministic cache keys for generation requests."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode

from ...shapes.descriptor import ShapeDescriptor

# Query parameters that never distinguish one cached response from another
IGNORED_QUERY_PARAMS = frozenset({"cache"})

_REPEATED_SLASHES = re.compile(r"/{2,}")


@dataclass(frozen=True)
class CacheKey:
    """Fingerprint of ``(method, normalized path+query, canonical shape)``.

    Only the fingerprint takes part in equality and hashing; method and path
    are kept for logging.
    """

    fingerprint: str
    method: str = field(default="", compare=False)
    path: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.fingerprint


def normalize_path(path_with_query: str) -> str:
    """Normalize a request path and query string.

    Repeated slashes collapse, a trailing slash is dropped (except for the
    root), query parameters are sorted and cache directives are removed.
    """
    path, _, query = (path_with_query or "/").partition("?")
    query = query.split("#", 1)[0]
    path = _REPEATED_SLASHES.sub("/", path or "/")
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    if not path.startswith("/"):
        path = "/" + path

    params = [
        (name, value)
        for name, value in parse_qsl(query, keep_blank_values=True)
        if name.lower() not in IGNORED_QUERY_PARAMS
    ]
    if not params:
        return path
    return f"{path}?{urlencode(sorted(params))}"


def compute_cache_key(
    method: str,
    path_with_query: str,
    shape: ShapeDescriptor | str | None = None,
    *,
    item_count: int | None = None,
) -> CacheKey:
    """Compute the cache key of a request.

    Args:
        method: HTTP method (case-insensitive)
        path_with_query: Request path including the query string
        shape: Response shape; its cache directive and whitespace are ignored
        item_count: Items each cached response holds; requests for different
            counts never share a key

    Returns:
        CacheKey shared by every request differing only in cache directive,
        shape whitespace, key order or query parameter order
    """
    if not isinstance(shape, ShapeDescriptor):
        shape = ShapeDescriptor.parse(shape)
    method = method.upper()
    path = normalize_path(path_with_query)
    parts = [method, path, shape.canonical()]
    if item_count is not None:
        parts.append(f"items={item_count}")
    digest = hashlib.blake2b(
        "\x1f".join(parts).encode("utf-8"),
        digest_size=16,
    ).hexdigest()
    return CacheKey(fingerprint=digest, method=method, path=path)
