"""Notification topics emitted by BatchingDispatcher."""


class DispatcherTopics:
    """Topics a subscriber can listen to on the dispatcher's emitter."""

    # An event was appended to the pending queue
    EVENT_TRACKED = "dispatcher.event.tracked"

    # A batch was delivered
    FLUSH_COMPLETED = "dispatcher.flush.completed"

    # A batch was dropped after all delivery attempts failed
    FLUSH_FAILED = "dispatcher.flush.failed"

    # Metrics snapshot written to disk
    METRICS_SAVED = "dispatcher.metrics.saved"

    # Queue drained and timer stopped
    SHUTDOWN = "dispatcher.shutdown"

    # Error raised on the periodic flush path
    ERROR = "dispatcher.error"


# Payload contracts: keys each topic carries
EVENT_TRACKED_PAYLOAD = {"event": "EventRecord"}
FLUSH_COMPLETED_PAYLOAD = {"count": "int", "duration": "float"}
FLUSH_FAILED_PAYLOAD = {"count": "int", "error": "Exception"}
METRICS_SAVED_PAYLOAD = {"path": "str"}
SHUTDOWN_PAYLOAD: dict = {}
ERROR_PAYLOAD = {"error": "Exception"}

PAYLOAD_CONTRACTS: dict[str, dict] = {
    DispatcherTopics.EVENT_TRACKED: EVENT_TRACKED_PAYLOAD,
    DispatcherTopics.FLUSH_COMPLETED: FLUSH_COMPLETED_PAYLOAD,
    DispatcherTopics.FLUSH_FAILED: FLUSH_FAILED_PAYLOAD,
    DispatcherTopics.METRICS_SAVED: METRICS_SAVED_PAYLOAD,
    DispatcherTopics.SHUTDOWN: SHUTDOWN_PAYLOAD,
    DispatcherTopics.ERROR: ERROR_PAYLOAD,
}
