"""Batching dispatcher: queue, flush, retry, metrics."""

from courier.dispatch.config import DEFAULT_ENDPOINT, DispatcherConfig
from courier.dispatch.delivery import HttpSink, Sink, backoff_delay
from courier.dispatch.dispatcher import BatchingDispatcher, create_dispatcher
from courier.dispatch.errors import DeliveryError, DispatcherClosedError
from courier.dispatch.metrics import DeliveryMetrics, MetricsSnapshot

__all__ = [
    "BatchingDispatcher",
    "DEFAULT_ENDPOINT",
    "DeliveryError",
    "DeliveryMetrics",
    "DispatcherClosedError",
    "DispatcherConfig",
    "HttpSink",
    "MetricsSnapshot",
    "Sink",
    "backoff_delay",
    "create_dispatcher",
]
