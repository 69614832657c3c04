"""Batching dispatcher: queue events, flush bounded batches to a sink.

Runs on one asyncio loop. The in-progress flag is the only guard between the
periodic flush, the batch-size flush and explicit flush() calls: a second flush
while one is in flight returns 0 instead of waiting.

A batch whose delivery fails after all retry attempts is dropped, not re-queued."""

import asyncio
import json
import logging
import time
from collections import deque
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from courier.dispatch.config import DispatcherConfig
from courier.dispatch.delivery import HttpSink, Sink
from courier.dispatch.errors import DispatcherClosedError
from courier.dispatch.metrics import DeliveryMetrics, MetricsSnapshot
from courier.events.emitter import EventEmitter
from courier.events.models import EventRecord, Notification
from courier.events.topics import DispatcherTopics

logger = logging.getLogger(__name__)


class BatchingDispatcher:
    """Buffer event records and deliver them in batches of at most config.batch_size."""

    def __init__(
        self,
        config: DispatcherConfig,
        sink: Sink | None = None,
        emitter: EventEmitter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._owned_sink: HttpSink | None = None
        if sink is None:
            self._owned_sink = HttpSink(
                config.api_endpoint,
                retry_attempts=config.retry_attempts,
                backoff_unit=config.backoff_unit,
                timeout=config.request_timeout,
            )
        self._sink: Sink = sink if sink is not None else self._owned_sink
        self._emitter = emitter or EventEmitter()
        self._clock = clock
        self._queue: deque[EventRecord] = deque()
        self._metrics = DeliveryMetrics()
        self._flush_in_progress = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._stop_timer = asyncio.Event()
        self._timer_task: asyncio.Task[None] | None = None
        self._closed = False
        self._shutdown_done = False
        self._emitter.subscribe(DispatcherTopics.ERROR, self._log_error, "dispatcher.log")

    @property
    def config(self) -> DispatcherConfig:
        return self._config

    @property
    def emitter(self) -> EventEmitter:
        return self._emitter

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def is_flushing(self) -> bool:
        return self._flush_in_progress

    async def __aenter__(self) -> "BatchingDispatcher":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    async def start(self) -> None:
        """Start the periodic flush loop. No-op if already running."""
        if self._closed:
            raise DispatcherClosedError("Dispatcher is shut down")
        if self._timer_task is not None and not self._timer_task.done():
            return
        self._stop_timer.clear()
        self._timer_task = asyncio.create_task(self._flush_loop())
        logger.info(
            "Dispatcher started: endpoint=%s batch_size=%d flush_interval=%.1fs",
            self._config.api_endpoint,
            self._config.batch_size,
            self._config.flush_interval,
        )

    async def record(
        self,
        event_type: str,
        subject_id: str,
        properties: dict[str, Any] | None = None,
    ) -> None:
        """Queue an event; flush immediately once the queue reaches batch_size."""
        if self._closed:
            raise DispatcherClosedError("Dispatcher is shut down")
        event = EventRecord(
            event_type=event_type,
            subject_id=subject_id,
            properties=dict(properties or {}),
            timestamp=datetime.now(timezone.utc),
        )
        self._queue.append(event)
        self._metrics.record_event()
        await self._emitter.emit(DispatcherTopics.EVENT_TRACKED, {"event": event})

        if len(self._queue) >= self._config.batch_size:
            await self.flush()

    async def flush(self) -> int:
        """Deliver up to batch_size oldest events. Returns the number delivered.

        Returns 0 without doing anything when the queue is empty or another flush
        is in flight. Re-raises the last delivery error after counting the failure."""
        if self._flush_in_progress or not self._queue:
            return 0

        self._flush_in_progress = True
        self._idle.clear()
        started = self._clock()
        size = min(self._config.batch_size, len(self._queue))
        batch = [self._queue.popleft() for _ in range(size)]
        failure: Exception | None = None
        try:
            await self._sink.send(batch)
        except Exception as e:
            failure = e
        finally:
            self._flush_in_progress = False
            self._idle.set()

        # Handlers run after the flag is released, so they may flush or shut down
        if failure is not None:
            self._metrics.record_failure()
            logger.error(
                "Dropped batch of %d events after delivery failure: %s", size, failure
            )
            await self._emitter.emit(
                DispatcherTopics.FLUSH_FAILED, {"count": size, "error": failure}
            )
            raise failure

        duration = self._clock() - started
        self._metrics.record_success(duration)
        logger.debug("Flushed %d events in %.3fs", size, duration)
        await self._emitter.emit(
            DispatcherTopics.FLUSH_COMPLETED, {"count": size, "duration": duration}
        )
        return size

    def metrics(self) -> MetricsSnapshot:
        return self._metrics.snapshot()

    async def save_metrics(self, path: str | Path) -> None:
        """Write current metrics, queue length and an ISO-8601 timestamp as JSON."""
        target = Path(path)
        data = {
            **asdict(self._metrics.snapshot()),
            "queue_length": len(self._queue),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        await asyncio.to_thread(
            target.write_text, json.dumps(data, indent=2), encoding="utf-8"
        )
        await self._emitter.emit(DispatcherTopics.METRICS_SAVED, {"path": str(target)})

    async def shutdown(self) -> None:
        """Stop the periodic flush, drain the queue, release the sink.

        Draining stops at the first failed flush and its error propagates."""
        if self._shutdown_done:
            return
        self._closed = True
        await self._cancel_timer()
        try:
            while self._queue:
                if await self.flush() == 0:
                    # Someone else's flush is in flight; wait for it instead of spinning
                    await self._idle.wait()
        finally:
            if self._owned_sink is not None:
                await self._owned_sink.aclose()
        if self._shutdown_done:
            # A notification handler finished the shutdown during the drain
            return
        self._shutdown_done = True
        logger.info("Dispatcher stopped")
        await self._emitter.emit(DispatcherTopics.SHUTDOWN, {})

    async def _cancel_timer(self) -> None:
        """Stop the flush loop. A timer-triggered flush already in flight completes first."""
        self._stop_timer.set()
        if self._timer_task is not None:
            await self._timer_task
            self._timer_task = None

    async def _flush_loop(self) -> None:
        while not self._stop_timer.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_timer.wait(),
                    timeout=self._config.flush_interval,
                )
            except asyncio.TimeoutError:
                pass
            if self._stop_timer.is_set():
                break
            if not self._queue:
                continue
            try:
                await self.flush()
            except Exception as e:
                await self._emitter.emit(DispatcherTopics.ERROR, {"error": e})

    @staticmethod
    def _log_error(notification: Notification) -> None:
        error = notification.payload.get("error")
        logger.error("Periodic flush failed: %s", error, exc_info=error)


def create_dispatcher(
    overrides: dict[str, Any] | None = None,
    *,
    sink: Sink | None = None,
    emitter: EventEmitter | None = None,
) -> BatchingDispatcher:
    """Dispatcher with default configuration plus overrides."""
    return BatchingDispatcher(
        DispatcherConfig().with_overrides(overrides), sink=sink, emitter=emitter
    )
