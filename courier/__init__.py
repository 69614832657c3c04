"""courier: batched event delivery to an HTTP analytics endpoint."""

from courier.dispatch import BatchingDispatcher, DispatcherConfig, create_dispatcher

__all__ = ["BatchingDispatcher", "DispatcherConfig", "create_dispatcher"]
