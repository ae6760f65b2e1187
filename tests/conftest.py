"""Shared fixtures: fake clock, scripted generators and event recording."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from llmock.payload.core.events import PayloadEvent, PayloadEventType
from llmock.payload.shapes.descriptor import ShapeDescriptor


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


class ScriptedGenerator:
    """Generator returning scripted responses and recording every call.

    ``responses`` items may be strings, exceptions (raised) or callables
    taking ``(shape, context)``. Once the script runs out, ``default`` is used.
    """

    def __init__(
        self,
        responses: list[Any] | None = None,
        default: Callable[[ShapeDescriptor, str | None], str] | None = None,
    ) -> None:
        self._responses = list(responses or [])
        self._default = default
        self.calls: list[tuple[ShapeDescriptor, str | None]] = []
        self.closed = False

    async def generate(self, shape: ShapeDescriptor, context: str | None = None) -> str:
        self.calls.append((shape, context))
        if self._responses:
            response = self._responses.pop(0)
        elif self._default is not None:
            response = self._default
        else:
            raise AssertionError("generator called more times than scripted")
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(shape, context)
        return response

    async def close(self) -> None:
        self.closed = True


def items_for(shape: ShapeDescriptor, start: int = 1) -> str:
    """JSON array of ``shape``'s count of items with sequential ids."""
    count = shape.requested_count() or 1
    return json.dumps([{"id": start + i, "name": f"user-{start + i}"} for i in range(count)])


class SequentialItems:
    """Default response producing consecutive ids across calls."""

    def __init__(self) -> None:
        self.next_id = 1

    def __call__(self, shape: ShapeDescriptor, context: str | None) -> str:
        body = items_for(shape, self.next_id)
        self.next_id += shape.requested_count() or 1
        return body


class CountingFetch:
    """Zero-argument fetch producing distinct variants ``v1``, ``v2``, ..."""

    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        return json.dumps({"variant": self.calls})


class EventRecorder:
    """Listener collecting emitted events."""

    def __init__(self) -> None:
        self.events: list[PayloadEvent] = []

    def __call__(self, event: PayloadEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: PayloadEventType) -> list[PayloadEvent]:
        return [e for e in self.events if e.event_type == event_type]


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def events() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def counting_fetch() -> CountingFetch:
    return CountingFetch()


@pytest.fixture
def make_generator() -> type[ScriptedGenerator]:
    return ScriptedGenerator


@pytest.fixture
def sequential_items() -> SequentialItems:
    return SequentialItems()
