"""Delivery counters and their read-only snapshot."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time copy of dispatcher counters."""

    total_events: int = 0
    successful_flushes: int = 0
    failed_flushes: int = 0
    average_flush_time: float = 0.0  # seconds, successful flushes only


class DeliveryMetrics:
    """Mutable counters owned by one dispatcher."""

    def __init__(self) -> None:
        self.total_events = 0
        self.successful_flushes = 0
        self.failed_flushes = 0
        self.average_flush_time = 0.0

    def record_event(self) -> None:
        self.total_events += 1

    def record_success(self, duration: float) -> None:
        """Count a delivered batch and fold its duration into the running average."""
        self.successful_flushes += 1
        count = self.successful_flushes
        self.average_flush_time = (
            self.average_flush_time * (count - 1) + duration
        ) / count

    def record_failure(self) -> None:
        self.failed_flushes += 1

    def snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            total_events=self.total_events,
            successful_flushes=self.successful_flushes,
            failed_flushes=self.failed_flushes,
            average_flush_time=self.average_flush_time,
        )
