"""Generator protocol consumed by the orchestrator and the cache store.

A generator turns a shape (plus optional continuation context) into JSON
text. Concrete backends own their own retry and circuit-breaker policies;
this library only ever sees ``generate``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..shapes.descriptor import ShapeDescriptor

# Zero-argument fetch used by the cache store for one variant
GeneratorFn = Callable[[], Awaitable[str]]


@runtime_checkable
class Generator(Protocol):
    """Protocol for generative backends."""

    async def generate(self, shape: ShapeDescriptor, context: str | None = None) -> str:
        """Generate JSON text for ``shape``.

        Args:
            shape: Desired response shape
            context: Continuation or conversation context (None for a fresh request)

        Raises:
            Exception: Backend failures propagate to the caller
        """
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


def bind_generator(
    generator: Generator,
    shape: ShapeDescriptor,
    context: str | None = None,
) -> GeneratorFn:
    """Bind a generator to a fixed shape, producing a cache fetch function."""

    async def fetch() -> str:
        return await generator.generate(shape, context)

    return fetch
