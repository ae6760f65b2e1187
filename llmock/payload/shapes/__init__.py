"""Shape parsing, request hints and JSON extraction."""

from .descriptor import (
    CACHE_DIRECTIVE_KEYS,
    COUNT_FIELDS,
    ShapeComplexity,
    ShapeDescriptor,
)
from .hints import (
    QUERY_COUNT_KEYS,
    chunking_disabled,
    extract_cache_count,
    extract_requested_count,
)
from .json_extract import extract_json, is_valid_json

__all__ = [
    "CACHE_DIRECTIVE_KEYS",
    "COUNT_FIELDS",
    "QUERY_COUNT_KEYS",
    "ShapeComplexity",
    "ShapeDescriptor",
    "chunking_disabled",
    "extract_cache_count",
    "extract_requested_count",
    "extract_json",
    "is_valid_json",
]
