"""In-process publish/subscribe for dispatcher notifications.

Delivery is immediate and in emit order. Nothing is persisted."""

import inspect
import logging
import time
from collections import defaultdict
from typing import Any, Awaitable, Callable

from courier.events.models import Notification

logger = logging.getLogger(__name__)

Handler = Callable[[Notification], Awaitable[None] | None]


class EventEmitter:
    """Fan out notifications to handlers registered per topic."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[tuple[Handler, str]]] = defaultdict(list)

    def subscribe(
        self,
        topic: str,
        handler: Handler,
        subscriber_id: str | None = None,
    ) -> None:
        """Register handler for topic. Sync and async handlers are both accepted."""
        sid = subscriber_id or getattr(handler, "__qualname__", repr(handler))
        self._subscribers[topic].append((handler, sid))

    def unsubscribe(self, topic: str, subscriber_id: str) -> bool:
        """Remove every handler registered under subscriber_id. Returns True if any was removed."""
        handlers = self._subscribers.get(topic)
        if not handlers:
            return False
        kept = [(h, sid) for h, sid in handlers if sid != subscriber_id]
        removed = len(kept) != len(handlers)
        self._subscribers[topic] = kept
        return removed

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    async def emit(self, topic: str, payload: dict[str, Any] | None = None) -> int:
        """Deliver to all handlers of topic. Returns how many handlers succeeded.

        A failing handler is logged and skipped; it never affects the caller."""
        handlers = list(self._subscribers.get(topic, []))
        if not handlers:
            return 0

        notification = Notification(
            topic=topic,
            payload=payload or {},
            created_at=time.time(),
        )
        delivered = 0
        for handler, subscriber_id in handlers:
            try:
                result = handler(notification)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.exception(
                    "Emitter handler %s failed for %s: %s",
                    subscriber_id,
                    topic,
                    e,
                )
        return delivered
