"""Dispatcher exceptions."""


class DeliveryError(Exception):
    """Sink rejected a batch (non-2xx response)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DispatcherClosedError(Exception):
    """record() called after shutdown() began."""
