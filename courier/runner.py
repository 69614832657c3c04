"""Entry point: forward newline-delimited JSON events from stdin through a BatchingDispatcher.

Each input line is an object {"event_type": ..., "subject_id": ..., "properties": {...}}.
At end of input the dispatcher drains its queue and, if runner.metrics_file is set,
writes a metrics snapshot."""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, TextIO

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from courier.dispatch import BatchingDispatcher, DeliveryError, DispatcherConfig
from courier.logging_config import setup_logging
from courier.settings import load_settings

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

ENDPOINT_ENV = "COURIER_API_ENDPOINT"


class IncomingEvent(BaseModel):
    """One line of input."""

    event_type: str = Field(min_length=1)
    subject_id: str = Field(min_length=1)
    properties: dict[str, Any] = Field(default_factory=dict)


def parse_line(line: str) -> IncomingEvent | None:
    """Parse one input line. None for blank lines; raises ValidationError on bad input."""
    line = line.strip()
    if not line:
        return None
    return IncomingEvent.model_validate_json(line)


def build_config(settings: dict[str, Any]) -> DispatcherConfig:
    """Dispatcher config from settings; COURIER_API_ENDPOINT overrides the endpoint."""
    config = DispatcherConfig.from_settings(settings)
    endpoint = os.environ.get(ENDPOINT_ENV)
    if endpoint:
        config = config.with_overrides({"api_endpoint": endpoint})
    return config


async def forward(dispatcher: BatchingDispatcher, stream: TextIO) -> int:
    """Record every valid line until EOF. Returns the number of events recorded."""
    count = 0
    line_no = 0
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            break
        line_no += 1
        try:
            incoming = parse_line(line)
        except ValidationError as e:
            logger.warning("Skipping invalid event on line %d: %s", line_no, e)
            continue
        if incoming is None:
            continue
        try:
            await dispatcher.record(
                incoming.event_type, incoming.subject_id, incoming.properties
            )
        except (httpx.HTTPError, DeliveryError) as e:
            # The batch is already counted as failed; keep reading
            logger.warning("Continuing after failed flush: %s", e)
        count += 1
    return count


async def drain(dispatcher: BatchingDispatcher) -> int:
    """Shut down, retrying the drain after each dropped batch. Returns events left queued.

    Every failed shutdown drops exactly one batch, so the loop ends once the queue
    is empty or a call makes no progress."""
    while True:
        remaining = dispatcher.queue_length
        try:
            await dispatcher.shutdown()
            break
        except (httpx.HTTPError, DeliveryError) as e:
            logger.error("Drain flush failed, batch dropped: %s", e)
        if dispatcher.queue_length == remaining:
            break
    if dispatcher.queue_length:
        logger.error("%d events left undelivered", dispatcher.queue_length)
    return dispatcher.queue_length


async def run_forwarder(
    dispatcher: BatchingDispatcher,
    stream: TextIO,
    metrics_file: Path | None = None,
) -> int:
    """Start dispatcher, forward stream, drain on EOF. Returns events recorded."""
    await dispatcher.start()
    try:
        count = await forward(dispatcher, stream)
    finally:
        await drain(dispatcher)
        if metrics_file is not None:
            await dispatcher.save_metrics(metrics_file)
    snapshot = dispatcher.metrics()
    logger.info(
        "Forwarded %d events: %d batches delivered, %d failed",
        count,
        snapshot.successful_flushes,
        snapshot.failed_flushes,
    )
    return count


async def main_async() -> int:
    """Bootstrap: settings -> logging -> dispatcher -> forward stdin."""
    settings = load_settings()
    setup_logging(_PROJECT_ROOT, settings)
    dispatcher = BatchingDispatcher(build_config(settings))
    metrics_setting = settings["runner"].get("metrics_file")
    metrics_file = _PROJECT_ROOT / metrics_setting if metrics_setting else None
    return await run_forwarder(dispatcher, sys.stdin, metrics_file)


def main() -> None:
    """Synchronous entry for python -m courier."""
    load_dotenv(_PROJECT_ROOT / ".env")
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        pass


__all__ = ["main"]
