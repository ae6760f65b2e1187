"""Token-per-item estimation from shape complexity."""

from __future__ import annotations

import logging
import math
from typing import Any

from ...shapes.descriptor import ShapeComplexity, ShapeDescriptor

logger = logging.getLogger(__name__)

# Rough estimate: 1 token per 4 characters of serialized shape
CHARS_PER_TOKEN = 4

# Serialized length assumed for an empty or malformed shape (a small flat object)
FLAT_OBJECT_LENGTH = 400


def estimate_tokens_per_item(shape: ShapeDescriptor | str | Any | None) -> int:
    """Estimate output tokens for one generated item.

    ``base = serialized_length / 4`` scaled by the shape's complexity
    multiplier. Empty and malformed shapes are estimated as a flat object
    with a multiplier of 1.0. Never raises.

    Args:
        shape: Shape descriptor, raw shape text, or an already parsed shape

    Returns:
        Estimated tokens per item, at least 1
    """
    descriptor = _coerce(shape)

    if descriptor.is_empty or not descriptor.is_valid:
        length = FLAT_OBJECT_LENGTH
        complexity = ShapeComplexity()
    else:
        length = descriptor.serialized_length
        complexity = descriptor.complexity

    base = length / CHARS_PER_TOKEN
    tokens = max(1, math.ceil(base * complexity.multiplier))

    logger.debug(
        "tokens_per_item_estimated",
        extra={
            "tokens_per_item": tokens,
            "shape_length": length,
            "depth": complexity.depth,
            "array_count": complexity.array_count,
            "property_count": complexity.property_count,
            "multiplier": round(complexity.multiplier, 2),
            "valid_shape": descriptor.is_valid,
        },
    )
    return tokens


def _coerce(shape: ShapeDescriptor | str | Any | None) -> ShapeDescriptor:
    if isinstance(shape, ShapeDescriptor):
        return shape
    if shape is None or isinstance(shape, str):
        return ShapeDescriptor.parse(shape)
    return ShapeDescriptor.from_value(shape)
