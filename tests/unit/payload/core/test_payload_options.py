"""Unit tests for PayloadOptions."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from llmock.payload.core import CachePriority, PayloadOptions


class TestPayloadOptionsDefaults:
    """Test default configuration."""

    def test_defaults(self):
        """Defaults match the documented configuration."""
        options = PayloadOptions()

        assert options.max_output_tokens == 2048
        assert options.output_reserve_ratio == 0.75
        assert options.max_items_cap == 1000
        assert options.enable_auto_chunking is True
        assert options.max_chunk_attempts == 3
        assert options.max_cache_per_key == 5
        assert options.sliding_window == timedelta(minutes=15)
        assert options.absolute_window == timedelta(minutes=60)
        assert options.refresh_threshold_percent == 0
        assert options.default_priority == CachePriority.NORMAL
        assert options.max_items == 1000
        assert options.sweep_interval == timedelta(seconds=60)

    def test_available_output_tokens(self):
        """Available tokens apply the reserve ratio."""
        assert PayloadOptions().available_output_tokens == 1536
        assert PayloadOptions(max_output_tokens=1000, output_reserve_ratio=0.5).available_output_tokens == 500

    def test_options_are_frozen(self):
        """Options cannot be mutated after construction."""
        options = PayloadOptions()
        with pytest.raises(ValidationError):
            options.max_items = 5


class TestPayloadOptionsValidation:
    """Test field validation."""

    @pytest.mark.parametrize("ratio", [0, -0.1, 1.5])
    def test_invalid_reserve_ratio(self, ratio):
        with pytest.raises(ValidationError):
            PayloadOptions(output_reserve_ratio=ratio)

    def test_reserve_ratio_of_one_is_allowed(self):
        assert PayloadOptions(output_reserve_ratio=1).available_output_tokens == 2048

    def test_non_positive_output_tokens_rejected(self):
        with pytest.raises(ValidationError):
            PayloadOptions(max_output_tokens=0)

    def test_refresh_threshold_range(self):
        with pytest.raises(ValidationError):
            PayloadOptions(refresh_threshold_percent=101)
        assert PayloadOptions(refresh_threshold_percent=100).refresh_threshold_percent == 100

    def test_priority_parsed_from_string(self):
        """String priorities are parsed case-insensitively."""
        assert PayloadOptions(default_priority="HIGH").default_priority == CachePriority.HIGH

    def test_invalid_priority_rejected(self):
        with pytest.raises(ValidationError):
            PayloadOptions(default_priority="urgent")

    def test_sliding_window_cannot_exceed_absolute(self):
        with pytest.raises(ValidationError):
            PayloadOptions(sliding_window=timedelta(hours=2), absolute_window=timedelta(hours=1))

    def test_non_positive_window_rejected(self):
        with pytest.raises(ValidationError):
            PayloadOptions(sliding_window=timedelta(0))

    def test_max_items_below_per_key_cap_rejected(self):
        """A bound smaller than one key's variants would evict every fill."""
        with pytest.raises(ValidationError, match="max_items"):
            PayloadOptions(max_items=2, max_cache_per_key=3)

    @pytest.mark.parametrize("max_items", [0, 3, 10])
    def test_max_items_accepted(self, max_items):
        assert PayloadOptions(max_items=max_items, max_cache_per_key=3).max_items == max_items

    def test_sweep_interval_may_be_disabled(self):
        assert PayloadOptions(sweep_interval=None).sweep_interval is None


class TestPayloadOptionsFromMapping:
    """Test construction from configuration mappings."""

    def test_pascal_and_camel_case_keys(self):
        """Configuration-file style keys map onto fields."""
        options = PayloadOptions.from_mapping(
            {
                "MaxCachePerKey": 3,
                "maxOutputTokens": 4096,
                "RefreshThresholdPercent": 20,
                "DefaultPriority": "low",
            }
        )

        assert options.max_cache_per_key == 3
        assert options.max_output_tokens == 4096
        assert options.refresh_threshold_percent == 20
        assert options.default_priority == CachePriority.LOW

    def test_numeric_windows_are_seconds(self):
        options = PayloadOptions.from_mapping({"sliding_window": 60, "AbsoluteWindow": 120, "SweepInterval": 5})

        assert options.sliding_window == timedelta(seconds=60)
        assert options.absolute_window == timedelta(seconds=120)
        assert options.sweep_interval == timedelta(seconds=5)

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown option"):
            PayloadOptions.from_mapping({"MaxTurbo": 1})
