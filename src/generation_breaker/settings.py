from __future__ import annotations

from pydantic import ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from generation_breaker.breaker import (
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_GENERATION_INTERVAL,
    DEFAULT_HALF_OPEN_REQUEST_LIMIT,
    DEFAULT_OPEN_STATE_EXPIRY,
    DEFAULT_SUCCESS_THRESHOLD,
    CircuitBreakerConfig,
)
from generation_breaker.logging import get_log_level_value
from generation_breaker.trip import TripPolicy

ENV_PREFIX = "CIRCUIT_BREAKER_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Environment-driven circuit breaker settings.

    Every field maps to ``CIRCUIT_BREAKER_<FIELD>``. Zero keeps the library
    default, matching ``CircuitBreakerConfig``.
    """

    model_config = prefixed_settings_config(ENV_PREFIX)

    name: str = "default"
    generation_interval_seconds: float = DEFAULT_GENERATION_INTERVAL
    open_state_expiry_seconds: float = DEFAULT_OPEN_STATE_EXPIRY
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    success_threshold: int = DEFAULT_SUCCESS_THRESHOLD
    half_open_request_limit: int = DEFAULT_HALF_OPEN_REQUEST_LIMIT
    log_level: str = "INFO"

    @field_validator(
        "generation_interval_seconds",
        "open_state_expiry_seconds",
        "failure_threshold",
        "success_threshold",
        "half_open_request_limit",
    )
    @classmethod
    def _validate_non_negative(
        cls, value: float | int, info: ValidationInfo
    ) -> float | int:
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        normalized = value.strip()
        if not normalized:
            raise ValueError("name must be non-empty")
        return normalized

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            get_log_level_value(value)
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _validate_half_open_limit(self) -> BreakerSettings:
        success_threshold = self.success_threshold or DEFAULT_SUCCESS_THRESHOLD
        limit = self.half_open_request_limit or DEFAULT_HALF_OPEN_REQUEST_LIMIT
        if limit < success_threshold:
            raise ValueError("half_open_request_limit must be >= success_threshold")
        return self

    def to_config(
        self, *, trip_policy: TripPolicy | None = None
    ) -> CircuitBreakerConfig:
        """Build the breaker configuration described by these settings."""
        return CircuitBreakerConfig(
            generation_interval=self.generation_interval_seconds,
            open_state_expiry=self.open_state_expiry_seconds,
            failure_threshold=self.failure_threshold,
            success_threshold=self.success_threshold,
            half_open_request_limit=self.half_open_request_limit,
            trip_policy=trip_policy,
        )
