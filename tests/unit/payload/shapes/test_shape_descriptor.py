"""Unit tests for ShapeDescriptor."""

from __future__ import annotations

import pytest

from llmock.payload.core import ShapeError
from llmock.payload.shapes import ShapeComplexity, ShapeDescriptor


class TestShapeParsing:
    """Test parsing and cache directive handling."""

    def test_parse_valid(self):
        shape = ShapeDescriptor.parse('{"id": 1, "name": "string"}')

        assert shape.is_valid
        assert not shape.is_empty
        assert shape.value == {"id": 1, "name": "string"}
        assert shape.cache_count == 0

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_parse_empty(self, text):
        shape = ShapeDescriptor.parse(text)

        assert not shape.is_valid
        assert shape.is_empty

    def test_parse_malformed_keeps_raw(self):
        """Malformed text never raises and keeps the raw text."""
        shape = ShapeDescriptor.parse('{"id": 1,')

        assert not shape.is_valid
        assert not shape.is_empty
        assert shape.raw == '{"id": 1,'
        assert shape.complexity == ShapeComplexity()

    @pytest.mark.parametrize("directive", ["$cache", "$cacheCount", "Cache"])
    def test_cache_directive_stripped(self, directive):
        shape = ShapeDescriptor.parse(f'{{"{directive}": 5, "id": 1}}')

        assert shape.cache_count == 5
        assert shape.value == {"id": 1}

    def test_string_cache_directive(self):
        assert ShapeDescriptor.parse('{"$cache": "3", "id": 1}').cache_count == 3

    @pytest.mark.parametrize("value", ["0", "-2", "true", '"many"'])
    def test_unusable_cache_directive_ignored(self, value):
        shape = ShapeDescriptor.parse(f'{{"$cache": {value}, "id": 1}}')

        assert shape.cache_count == 0
        assert shape.value == {"id": 1}

    def test_nested_directive_kept(self):
        """Only root-level directives are stripped."""
        shape = ShapeDescriptor.parse('{"meta": {"$cache": 2}}')

        assert shape.cache_count == 0
        assert shape.value == {"meta": {"$cache": 2}}

    def test_parse_strict_rejects_malformed(self):
        with pytest.raises(ShapeError):
            ShapeDescriptor.parse_strict("not json")

    def test_parse_strict_rejects_empty(self):
        with pytest.raises(ShapeError, match="empty"):
            ShapeDescriptor.parse_strict("  ")

    def test_parse_strict_accepts_valid(self):
        assert ShapeDescriptor.parse_strict('{"$cache": 2, "id": 1}').cache_count == 2


class TestShapeSerialization:
    """Test text and canonical forms."""

    def test_to_text_is_compact(self):
        shape = ShapeDescriptor.parse('{ "b": 1,\n  "a": [1, 2] }')
        assert shape.to_text() == '{"b":1,"a":[1,2]}'

    def test_canonical_ignores_whitespace_and_key_order(self):
        first = ShapeDescriptor.parse('{"a": 1, "b": {"d": 2, "c": 3}}')
        second = ShapeDescriptor.parse('{"b":{"c":3,"d":2},\n "a":1}')

        assert first.canonical() == second.canonical()
        assert first == second
        assert hash(first) == hash(second)

    def test_canonical_ignores_directive(self):
        assert ShapeDescriptor.parse('{"$cache": 4, "id": 1}') == ShapeDescriptor.parse('{"id": 1}')

    def test_serialized_length(self):
        shape = ShapeDescriptor.parse('{ "id" : 1 }')
        assert shape.serialized_length == len('{"id":1}')


class TestShapeComplexity:
    """Test structural analysis."""

    def test_flat_object(self):
        shape = ShapeDescriptor.parse('{"id": 1, "name": "x", "email": "y"}')

        assert shape.depth == 1
        assert shape.array_count == 0
        assert shape.property_count == 3
        assert shape.complexity.multiplier == 1.0

    def test_nested_arrays(self):
        """Arrays count once and recurse into their first element only."""
        shape = ShapeDescriptor.parse(
            '{"orders": [{"items": [{"sku": "a", "qty": 1}], "total": 1}, {"ignored": true}]}'
        )

        assert shape.array_count == 2
        assert shape.property_count == 5
        assert shape.depth == 5

    def test_multiplier(self):
        complexity = ShapeComplexity(depth=4, array_count=2, property_count=9)
        assert complexity.multiplier == pytest.approx(1 + 1.0 + 0.6 + 0.2)

    def test_scalar_root(self):
        shape = ShapeDescriptor.parse("42")

        assert shape.depth == 0
        assert shape.complexity.multiplier == 1.0


class TestShapeCounts:
    """Test count extraction and rewriting."""

    def test_requested_count(self):
        assert ShapeDescriptor.parse('{"count": 25, "id": 1}').requested_count() == 25
        assert ShapeDescriptor.parse('{"Limit": 7}').requested_count() == 7

    def test_requested_count_missing(self):
        assert ShapeDescriptor.parse('{"id": 1}').requested_count() is None
        assert ShapeDescriptor.parse('{"count": 0}').requested_count() is None
        assert ShapeDescriptor.parse('[{"count": 3}]').requested_count() is None

    def test_with_count_rewrites_nested_counts(self):
        shape = ShapeDescriptor.parse('{"count": 100, "page": {"size": 100, "label": "x"}, "flag": true}')
        rewritten = shape.with_count(10)

        assert rewritten.value == {"count": 10, "page": {"size": 10, "label": "x"}, "flag": True}
        assert shape.value["count"] == 100

    def test_with_count_keeps_non_numeric_fields(self):
        shape = ShapeDescriptor.parse('{"count": "many", "size": true}')
        assert shape.with_count(3).value == {"count": "many", "size": True}

    def test_with_count_on_invalid_shape(self):
        shape = ShapeDescriptor.parse("nope")
        assert shape.with_count(3) is shape
