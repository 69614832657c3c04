"""In-process notifications published by the dispatcher."""

from courier.events.emitter import EventEmitter
from courier.events.models import EventRecord, Notification
from courier.events.topics import DispatcherTopics

__all__ = ["DispatcherTopics", "EventEmitter", "EventRecord", "Notification"]
