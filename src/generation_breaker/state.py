"""Circuit breaker state primitives."""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class TransitionReason(StrEnum):
    """Why a breaker moved from one state to another."""

    MANUALLY_RESET = "manually-reset"
    OPEN_EXPIRED = "open-expired"
    THRESHOLD_REACHED = "threshold-reached"
    FAILED_ON_HALF_OPEN = "failed-on-half-open"


@dataclass(frozen=True, slots=True)
class Counts:
    """Outcome counters scoped to one generation.

    Attributes:
        requests: Calls admitted in the current generation.
        successes: Admitted calls that completed without raising.
        failures: Admitted calls that raised.
    """

    requests: int = 0
    successes: int = 0
    failures: int = 0

    def with_request(self) -> "Counts":
        return replace(self, requests=self.requests + 1)

    def with_success(self) -> "Counts":
        return replace(self, successes=self.successes + 1)

    def with_failure(self) -> "Counts":
        return replace(self, failures=self.failures + 1)

    @property
    def failure_ratio(self) -> float:
        """Failures per admitted request, ``0.0`` when nothing was admitted."""
        if self.requests == 0:
            return 0.0
        return self.failures / self.requests

    def __str__(self) -> str:
        return (
            f"requests: {self.requests}, successes: {self.successes}, "
            f"failures: {self.failures}"
        )


@dataclass(frozen=True, slots=True)
class StateChangeEvent:
    """Notification payload emitted on every state transition.

    Attributes:
        when: UTC timestamp of the transition.
        breaker_name: Name of the breaker that changed state.
        from_state: State before the transition.
        to_state: State after the transition.
        reason: Why the transition happened.
    """

    when: datetime
    breaker_name: str
    from_state: CircuitState
    to_state: CircuitState
    reason: TransitionReason


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time view of breaker internals useful for metrics/logging.

    Attributes:
        name: Breaker name.
        state: Current breaker state.
        counts: Counters of the current generation.
        generation: Token identifying the current generation.
        generation_expires_at: When the current generation stops being valid.
    """

    name: str
    state: CircuitState
    counts: Counts
    generation: int
    generation_expires_at: datetime
