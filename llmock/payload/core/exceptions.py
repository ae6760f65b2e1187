"""Custom exception hierarchy."""

from __future__ import annotations


class PayloadError(Exception):
    """Base exception for all library errors."""

    pass


class ShapeError(PayloadError):
    """Shape text could not be used where a valid shape is required."""

    pass


class GeneratorError(PayloadError):
    """Error from the generative backend."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChunkGenerationError(PayloadError):
    """A chunk of an orchestrated request could not be generated.

    Raised when a chunk's output is still unparsable after all retry attempts,
    or when it yields fewer items than the plan assigned to it. The whole
    request fails; no partial result is returned.
    """

    def __init__(
        self,
        message: str,
        *,
        chunk_index: int,
        item_start: int,
        item_end: int,
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        self.chunk_index = chunk_index
        self.item_start = item_start
        self.item_end = item_end
        self.attempts = attempts


class CacheError(PayloadError):
    """Cache store misuse (e.g. access after close)."""

    pass
