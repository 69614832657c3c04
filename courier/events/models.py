"""Event and notification models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

__all__ = ["EventRecord", "Notification"]


@dataclass(frozen=True)
class EventRecord:
    """Immutable tracked event waiting in the dispatcher queue."""

    event_type: str
    subject_id: str
    properties: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Wire form sent to the sink."""
        return {
            "event_type": self.event_type,
            "subject_id": self.subject_id,
            "properties": dict(self.properties),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Notification:
    """Passed to emitter handlers."""

    topic: str
    payload: dict
    created_at: float
