"""Shape descriptor model.

A shape is the JSON template a caller sends to describe the payload it wants
back. The descriptor wraps the parsed template and derives everything the
planner, orchestrator and cache need from it: structural complexity, the
cache directive, count-like fields and a canonical serialization.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import cached_property
from typing import Any

from ..core.exceptions import ShapeError

# Root-level keys carrying the requested number of cached variants
CACHE_DIRECTIVE_KEYS = frozenset({"$cache", "$cachecount", "cache"})

# Keys whose numeric value is treated as an item count
COUNT_FIELDS = frozenset({"count", "limit", "size", "length"})

_COMPACT = (",", ":")


@dataclass(frozen=True)
class ShapeComplexity:
    """Structural measurements of a shape.

    Attributes:
        depth: Deepest container nesting below the root (root = 0)
        array_count: Number of arrays, following the first element of each
        property_count: Total properties across all objects
    """

    depth: int = 0
    array_count: int = 0
    property_count: int = 0

    @property
    def multiplier(self) -> float:
        """Output-size multiplier relative to the raw shape length."""
        return (
            1.0
            + 0.5 * max(0, self.depth - 2)
            + 0.3 * self.array_count
            + 0.05 * max(0, self.property_count - 5)
        )


def _analyze(value: Any, depth: int) -> ShapeComplexity:
    if isinstance(value, dict):
        max_depth = depth
        arrays = 0
        properties = len(value)
        for child in value.values():
            sub = _analyze(child, depth + 1)
            max_depth = max(max_depth, sub.depth)
            arrays += sub.array_count
            properties += sub.property_count
        return ShapeComplexity(max_depth, arrays, properties)

    if isinstance(value, list):
        if not value:
            return ShapeComplexity(depth, 1, 0)
        sub = _analyze(value[0], depth + 1)
        return ShapeComplexity(max(depth, sub.depth), 1 + sub.array_count, sub.property_count)

    return ShapeComplexity(depth, 0, 0)


def _parse_directive(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value > 0 else 0
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return 0
        return parsed if parsed > 0 else 0
    return 0


def _rewrite_counts(value: Any, count: int) -> Any:
    if isinstance(value, dict):
        rewritten = {}
        for name, child in value.items():
            if (
                name.lower() in COUNT_FIELDS
                and isinstance(child, (int, float))
                and not isinstance(child, bool)
            ):
                rewritten[name] = count
            else:
                rewritten[name] = _rewrite_counts(child, count)
        return rewritten
    if isinstance(value, list):
        return [_rewrite_counts(item, count) for item in value]
    return value


class ShapeDescriptor:
    """Parsed, read-only response shape.

    Construction never fails: text that is not valid JSON yields an invalid
    descriptor that keeps the raw text and reports a flat structure.
    """

    def __init__(
        self,
        value: Any = None,
        *,
        raw: str | None = None,
        valid: bool = True,
        cache_count: int = 0,
    ) -> None:
        self._value = value
        self._raw = raw
        self._valid = valid
        self._cache_count = cache_count

    @classmethod
    def parse(cls, text: str | None) -> ShapeDescriptor:
        """Parse shape text and strip any cache directive from its root."""
        if text is None or not text.strip():
            return cls(None, raw=text or "", valid=False)
        try:
            value = json.loads(text)
        except ValueError:
            return cls(None, raw=text, valid=False)
        return cls.from_value(value, raw=text)

    @classmethod
    def parse_strict(cls, text: str | None) -> ShapeDescriptor:
        """Parse shape text, rejecting empty or malformed input.

        Raises:
            ShapeError: If the text is empty or not valid JSON
        """
        if text is None or not text.strip():
            raise ShapeError("Shape is empty")
        try:
            value = json.loads(text)
        except ValueError as e:
            raise ShapeError(f"Shape is not valid JSON: {e}") from e
        return cls.from_value(value, raw=text)

    @classmethod
    def from_value(cls, value: Any, *, raw: str | None = None) -> ShapeDescriptor:
        """Wrap an already parsed shape, stripping any cache directive."""
        cache_count = 0
        if isinstance(value, dict):
            stripped = {}
            for name, child in value.items():
                if name.lower() in CACHE_DIRECTIVE_KEYS:
                    cache_count = _parse_directive(child) or cache_count
                    continue
                stripped[name] = child
            value = stripped
        return cls(value, raw=raw, valid=True, cache_count=cache_count)

    @property
    def value(self) -> Any:
        """Parsed shape with the cache directive removed (None if invalid)."""
        return self._value

    @property
    def raw(self) -> str:
        """Original shape text as received."""
        if self._raw is None:
            return self.to_text()
        return self._raw

    @property
    def is_valid(self) -> bool:
        return self._valid

    @property
    def is_empty(self) -> bool:
        if not self._valid:
            return not self.raw.strip()
        return self._value in (None, {}, [])

    @property
    def cache_count(self) -> int:
        """Variant count requested through the shape's cache directive (0 = none)."""
        return self._cache_count

    @property
    def is_array(self) -> bool:
        return isinstance(self._value, list)

    def to_text(self) -> str:
        """Compact serialization in original key order."""
        if not self._valid:
            return self._raw or ""
        return json.dumps(self._value, separators=_COMPACT, ensure_ascii=False)

    def canonical(self) -> str:
        """Whitespace- and key-order-independent serialization."""
        if not self._valid:
            return (self._raw or "").strip()
        return json.dumps(self._value, separators=_COMPACT, sort_keys=True, ensure_ascii=False)

    @cached_property
    def serialized_length(self) -> int:
        return len(self.to_text())

    @cached_property
    def complexity(self) -> ShapeComplexity:
        if not self._valid:
            return ShapeComplexity()
        return _analyze(self._value, 0)

    @property
    def depth(self) -> int:
        return self.complexity.depth

    @property
    def array_count(self) -> int:
        return self.complexity.array_count

    @property
    def property_count(self) -> int:
        return self.complexity.property_count

    def requested_count(self) -> int | None:
        """Positive item count declared by a root-level count field, if any."""
        if not isinstance(self._value, dict):
            return None
        for name, child in self._value.items():
            if name.lower() in COUNT_FIELDS and isinstance(child, int) and not isinstance(child, bool):
                if child > 0:
                    return child
        return None

    def with_count(self, count: int) -> ShapeDescriptor:
        """Copy of this shape with every numeric count-like field set to ``count``."""
        if not self._valid:
            return self
        return ShapeDescriptor(
            _rewrite_counts(self._value, count),
            valid=True,
            cache_count=self._cache_count,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ShapeDescriptor):
            return NotImplemented
        return self.canonical() == other.canonical()

    def __hash__(self) -> int:
        return hash(self.canonical())

    def __repr__(self) -> str:
        text = self.to_text()
        if len(text) > 60:
            text = text[:57] + "..."
        return f"ShapeDescriptor({text!r})"
