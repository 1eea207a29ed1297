"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open.
  - A call being rejected because the half-open probe quota is used up.
  - A breaker being built from an invalid configuration.
"""


class CircuitBreakerError(Exception):
    """Base exception for the generation_breaker package."""


class CircuitOpenError(CircuitBreakerError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        retry_after: Seconds until the open state expires and probing resumes.
    """

    def __init__(self, breaker_name: str, retry_after: float) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            breaker_name: Breaker rejecting the call.
            retry_after: Seconds until the next probe window opens.
        """
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        super().__init__(f"circuit_open: {breaker_name} retry_after={retry_after:g}s")


class HalfOpenLimitExceededError(CircuitBreakerError):
    """Raised when a half-open breaker has already admitted its probe quota.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        limit: Probe calls admitted per half-open generation.
    """

    def __init__(self, breaker_name: str, limit: int) -> None:
        self.breaker_name = breaker_name
        self.limit = limit
        super().__init__(
            f"circuit_half_open_limit_exceeded: {breaker_name} limit={limit}"
        )


class CircuitBreakerConfigError(CircuitBreakerError, ValueError):
    """Raised at construction time for configurations that can never close."""
