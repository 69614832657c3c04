"""Shared fixtures: an in-memory sink that records batches."""

import asyncio
from typing import Sequence

import pytest

from courier.dispatch import BatchingDispatcher, DeliveryError
from courier.events.models import EventRecord


class RecordingSink:
    """Sink double. Optionally blocks on `gate`, raises `fail` on every send,
    or fails the next `fail_times` sends."""

    def __init__(self, fail: Exception | None = None) -> None:
        self.batches: list[list[EventRecord]] = []
        self.attempts = 0
        self.fail = fail
        self.fail_times = 0
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()

    async def send(self, events: Sequence[EventRecord]) -> None:
        self.attempts += 1
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail is not None:
            raise self.fail
        if self.fail_times > 0:
            self.fail_times -= 1
            raise DeliveryError("HTTP 503: Service Unavailable", 503)
        self.batches.append(list(events))

    def types(self, index: int) -> list[str]:
        return [e.event_type for e in self.batches[index]]


async def pile_up(dispatcher: BatchingDispatcher, sink: RecordingSink, count: int) -> None:
    """Leave `count` events e0..e{count-1} queued past batch_size.

    One full batch is held in flight while the events are recorded, then
    delivered; the sink's batches and attempts are reset afterwards."""
    sink.gate = asyncio.Event()
    for i in range(dispatcher.config.batch_size - 1):
        await dispatcher.record(f"held{i}", "u1")
    held = asyncio.create_task(dispatcher.record("held_last", "u1"))
    await sink.started.wait()
    for i in range(count):
        await dispatcher.record(f"e{i}", "u1")
    sink.gate.set()
    await held
    sink.gate = None
    sink.batches.clear()
    sink.attempts = 0


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
