"""HTTP delivery of event batches with exponential backoff."""

import asyncio
import logging
from typing import Awaitable, Callable, Protocol, Sequence

import httpx

from courier.dispatch.errors import DeliveryError
from courier.events.models import EventRecord

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


class Sink(Protocol):
    """Accepts one batch per call. Raises when the batch was not delivered."""

    async def send(self, events: Sequence[EventRecord]) -> None: ...


def backoff_delay(attempt: int, unit: float = 1.0) -> float:
    """Seconds to wait after failed attempt number `attempt` (1-based)."""
    return (2**attempt) * unit


class HttpSink:
    """POST batches as {"events": [...]} to a JSON endpoint, retrying failed attempts."""

    def __init__(
        self,
        endpoint: str,
        *,
        retry_attempts: int = 3,
        backoff_unit: float = 1.0,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        self._endpoint = endpoint
        self._retry_attempts = retry_attempts
        self._backoff_unit = backoff_unit
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this sink created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(self, events: Sequence[EventRecord]) -> None:
        """Deliver one batch. Raises the last error once every attempt has failed."""
        payload = {"events": [e.to_dict() for e in events]}
        last_error: Exception | None = None

        for attempt in range(1, self._retry_attempts + 1):
            try:
                await self._post(payload)
                return
            except (httpx.HTTPError, DeliveryError) as e:
                last_error = e
                logger.warning(
                    "Delivery of %d events to %s failed (attempt %d/%d): %s",
                    len(events),
                    self._endpoint,
                    attempt,
                    self._retry_attempts,
                    e,
                )
                if attempt < self._retry_attempts:
                    await self._sleep(backoff_delay(attempt, self._backoff_unit))

        raise last_error or DeliveryError("Failed to send events after all retry attempts")

    async def _post(self, payload: dict) -> None:
        client = self._ensure_client()
        response = await client.post(
            self._endpoint,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        if not response.is_success:
            raise DeliveryError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )
