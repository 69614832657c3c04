"""Dispatcher configuration: validated once, immutable afterwards."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ENDPOINT = "https://analytics.example.com/events"


class DispatcherConfig(BaseModel):
    """Construction-time settings for BatchingDispatcher."""

    model_config = ConfigDict(frozen=True)

    api_endpoint: str = DEFAULT_ENDPOINT
    batch_size: int = Field(default=10, ge=1)
    flush_interval: float = Field(default=30.0, gt=0)  # seconds
    retry_attempts: int = Field(default=3, ge=1)
    # Wait after failed attempt n is 2**n * backoff_unit seconds
    backoff_unit: float = Field(default=1.0, ge=0)
    request_timeout: float = Field(default=15.0, gt=0)

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> "DispatcherConfig":
        """Build from the 'dispatcher' section of loaded settings. Missing keys keep defaults."""
        section = settings.get("dispatcher") or {}
        known = {k: v for k, v in section.items() if k in cls.model_fields and v is not None}
        return cls.model_validate(known)

    def with_overrides(self, overrides: dict[str, Any] | None) -> "DispatcherConfig":
        """Return a new validated config with overrides applied."""
        if not overrides:
            return self
        return type(self).model_validate({**self.model_dump(), **overrides})
