"""Runtime configuration for chunk planning and the variant cache."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import CachePriority

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class PayloadOptions(BaseModel):
    """Options shared by the planner, orchestrator and cache store.

    Attributes:
        max_output_tokens: Output token budget of a single backend call
        output_reserve_ratio: Fraction of the budget usable for payload
        max_items_cap: Upper bound on items generated for one request
        enable_auto_chunking: Global switch for multi-chunk orchestration
        max_chunk_attempts: Attempts per chunk before the request fails
        max_cache_per_key: Maximum variants queued per cache key
        sliding_window: Idle lifetime of a cache entry, reset on every access
        absolute_window: Hard lifetime of a cache entry
        refresh_threshold_percent: Refill once remaining variants drop to this
            share of the requested variant count
        default_priority: Priority assigned to new cache entries
        max_items: Bound on total variants across all keys (0 = unbounded)
        sweep_interval: Period of the background expiration sweep (None = lazy)
    """

    max_output_tokens: int = Field(default=2048, gt=0)
    output_reserve_ratio: float = Field(default=0.75, gt=0, le=1)
    max_items_cap: int = Field(default=1000, ge=1)
    enable_auto_chunking: bool = True
    max_chunk_attempts: int = Field(default=3, ge=1)
    max_cache_per_key: int = Field(default=5, ge=1)
    sliding_window: timedelta = timedelta(minutes=15)
    absolute_window: timedelta = timedelta(minutes=60)
    refresh_threshold_percent: float = Field(default=0, ge=0, le=100)
    default_priority: CachePriority = CachePriority.NORMAL
    max_items: int = Field(default=1000, ge=0)
    sweep_interval: timedelta | None = timedelta(seconds=60)

    model_config = ConfigDict(frozen=True)

    @field_validator("default_priority", mode="before")
    @classmethod
    def parse_priority(cls, v: Any) -> Any:
        if isinstance(v, str) and not isinstance(v, CachePriority):
            return CachePriority.from_str(v)
        return v

    @field_validator("sliding_window", "absolute_window", "sweep_interval")
    @classmethod
    def validate_positive_window(cls, v: timedelta | None) -> timedelta | None:
        if v is not None and v <= timedelta(0):
            raise ValueError("time windows must be positive")
        return v

    @model_validator(mode="after")
    def validate_windows(self) -> PayloadOptions:
        if self.sliding_window > self.absolute_window:
            raise ValueError("sliding_window must not exceed absolute_window")
        if 0 < self.max_items < self.max_cache_per_key:
            raise ValueError("max_items must be 0 or at least max_cache_per_key")
        return self

    @property
    def available_output_tokens(self) -> int:
        """Tokens per call usable for payload items."""
        return int(self.max_output_tokens * self.output_reserve_ratio)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> PayloadOptions:
        """Build options from a configuration mapping.

        Keys may be snake_case or camel/PascalCase (``MaxCachePerKey``,
        ``maxOutputTokens``). Numeric windows are read as seconds.
        """
        normalized: dict[str, Any] = {}
        for name, value in values.items():
            field = _to_snake(name)
            if field not in cls.model_fields:
                raise ValueError(f"Unknown option: {name}")
            if field.endswith(("_window", "_interval")) and isinstance(value, (int, float)):
                value = timedelta(seconds=value)
            normalized[field] = value
        return cls.model_validate(normalized)
