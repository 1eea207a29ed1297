"""Thread-safe circuit breaker with generation-scoped counting.

This package implements the circuit breaker pattern from *Release It!*.

Key behavior notes:
  - Counts live in a "generation": a time window that starts on every state
    transition and rolls over when ``CLOSED``/``HALF_OPEN`` windows expire.
  - An outcome is attributed only to the generation that admitted its call.
    Calls finishing after a transition or rollover are not counted.
  - A single failed probe while ``HALF_OPEN`` reopens the breaker.
  - The breaker lock is never held while the protected operation runs.
    Listeners, however, run while it is held and must stay cheap.
"""

from generation_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from generation_breaker.exceptions import (
    CircuitBreakerConfigError,
    CircuitBreakerError,
    CircuitOpenError,
    HalfOpenLimitExceededError,
)
from generation_breaker.listeners import (
    FunctionListener,
    LoggingListener,
    StateChangeListener,
)
from generation_breaker.settings import BreakerSettings
from generation_breaker.state import (
    BreakerSnapshot,
    CircuitState,
    Counts,
    StateChangeEvent,
    TransitionReason,
)
from generation_breaker.trip import FailureRatio, FailureThreshold, TripPolicy

__all__ = [
    "BreakerSettings",
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerConfigError",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "Counts",
    "FailureRatio",
    "FailureThreshold",
    "FunctionListener",
    "HalfOpenLimitExceededError",
    "LoggingListener",
    "StateChangeEvent",
    "StateChangeListener",
    "TransitionReason",
    "TripPolicy",
]
