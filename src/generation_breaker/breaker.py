"""Core circuit breaker implementation."""

import asyncio
import threading
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import ParamSpec, TypeVar, cast

from generation_breaker.exceptions import (
    CircuitBreakerConfigError,
    CircuitOpenError,
    HalfOpenLimitExceededError,
)
from generation_breaker.listeners import StateChangeListener
from generation_breaker.logging import (
    AnyLogger,
    get_logger,
    log_debug,
    log_exception,
    log_info,
)
from generation_breaker.state import (
    BreakerSnapshot,
    CircuitState,
    Counts,
    StateChangeEvent,
    TransitionReason,
)
from generation_breaker.trip import FailureThreshold, TripPolicy

T = TypeVar("T")
P = ParamSpec("P")

DEFAULT_GENERATION_INTERVAL = 10.0
DEFAULT_OPEN_STATE_EXPIRY = 60.0
DEFAULT_FAILURE_THRESHOLD = 100
DEFAULT_SUCCESS_THRESHOLD = 100
DEFAULT_HALF_OPEN_REQUEST_LIMIT = 200


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Zero-valued fields are replaced by the module-level ``DEFAULT_*``
    constants, which are deliberately lenient. Instances are immutable.

    Attributes:
        generation_interval: Seconds a ``CLOSED``/``HALF_OPEN`` counting
            window lasts before counts roll over.
        open_state_expiry: Seconds to stay ``OPEN`` before probing.
        failure_threshold: Failures while ``CLOSED`` that trip the default
            policy.
        success_threshold: Successes while ``HALF_OPEN`` required to close.
        half_open_request_limit: Probe calls admitted per ``HALF_OPEN``
            generation.
        trip_policy: Predicate over counts deciding when ``CLOSED`` opens.
            Defaults to ``FailureThreshold(failure_threshold)``.
    """

    generation_interval: float = DEFAULT_GENERATION_INTERVAL
    open_state_expiry: float = DEFAULT_OPEN_STATE_EXPIRY
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    success_threshold: int = DEFAULT_SUCCESS_THRESHOLD
    half_open_request_limit: int = DEFAULT_HALF_OPEN_REQUEST_LIMIT
    trip_policy: TripPolicy | None = None

    def __post_init__(self) -> None:
        if self.generation_interval < 0:
            raise ValueError("generation_interval must be >= 0")
        if self.open_state_expiry < 0:
            raise ValueError("open_state_expiry must be >= 0")
        if self.failure_threshold < 0:
            raise ValueError("failure_threshold must be >= 0")
        if self.success_threshold < 0:
            raise ValueError("success_threshold must be >= 0")
        if self.half_open_request_limit < 0:
            raise ValueError("half_open_request_limit must be >= 0")

        if self.generation_interval == 0:
            object.__setattr__(self, "generation_interval", DEFAULT_GENERATION_INTERVAL)
        if self.open_state_expiry == 0:
            object.__setattr__(self, "open_state_expiry", DEFAULT_OPEN_STATE_EXPIRY)
        if self.failure_threshold == 0:
            object.__setattr__(self, "failure_threshold", DEFAULT_FAILURE_THRESHOLD)
        if self.success_threshold == 0:
            object.__setattr__(self, "success_threshold", DEFAULT_SUCCESS_THRESHOLD)
        if self.half_open_request_limit == 0:
            object.__setattr__(
                self, "half_open_request_limit", DEFAULT_HALF_OPEN_REQUEST_LIMIT
            )

        if self.half_open_request_limit < self.success_threshold:
            raise CircuitBreakerConfigError(
                "half_open_request_limit must be >= success_threshold"
            )
        if self.trip_policy is None:
            object.__setattr__(
                self, "trip_policy", FailureThreshold(self.failure_threshold)
            )


class CircuitBreaker:
    """Thread-safe proxy around a dangerous operation.

    All bookkeeping (state, counts, generation) is serialized by one lock
    that is never held while the protected operation runs.
    """

    def __init__(
        self,
        name: str = "default",
        *,
        config: CircuitBreakerConfig | None = None,
        listeners: Sequence[StateChangeListener] | None = None,
        logger: AnyLogger | None = None,
    ) -> None:
        """Build a circuit breaker and start its first generation.

        Args:
            name: Breaker name used in events, errors and logs.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            listeners: Optional listeners notified on every transition.
            logger: Structured logger. Defaults to this module's structlog
                logger.
        """
        self.name = name
        self._config = CircuitBreakerConfig() if config is None else config
        self._listeners = tuple(listeners) if listeners is not None else ()
        self._logger = get_logger(__name__) if logger is None else logger
        self._trip_policy = cast(TripPolicy, self._config.trip_policy)
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._counts = Counts()
        self._generation = 0
        self._expires_at = _utcnow()
        self._next_generation(self._expires_at)

    @property
    def config(self) -> CircuitBreakerConfig:
        """Validated configuration, fixed at construction."""
        return self._config

    @property
    def state(self) -> CircuitState:
        """Current state, without re-evaluating expiry."""
        with self._lock:
            return self._state

    @property
    def counts(self) -> Counts:
        """Counters of the current generation."""
        with self._lock:
            return self._counts

    def snapshot(self) -> BreakerSnapshot:
        """Return a consistent view of state, counts and generation."""
        with self._lock:
            return BreakerSnapshot(
                name=self.name,
                state=self._state,
                counts=self._counts,
                generation=self._generation,
                generation_expires_at=self._expires_at,
            )

    def reset(self) -> None:
        """Force the breaker back to ``CLOSED`` from any state."""
        with self._lock:
            self._change_state(
                _utcnow(), CircuitState.CLOSED, TransitionReason.MANUALLY_RESET
            )

    def call(
        self,
        func: Callable[P, T],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke a callable under circuit breaker protection.

        Args:
            func: Dangerous callable to execute.
            *args: Positional arguments forwarded to ``func``.
            **kwargs: Keyword arguments forwarded to ``func``.

        Returns:
            The result of ``func`` when admitted and successful.

        Raises:
            CircuitOpenError: When the circuit is open.
            HalfOpenLimitExceededError: When the half-open probe quota is
                used up for the current generation.
            BaseException: Whatever ``func`` raised, after it was counted as
                a failure.
        """
        generation = self._before_call()
        try:
            result = func(*args, **kwargs)
        except BaseException:
            self._after_call(generation, success=False)
            raise
        self._after_call(generation, success=True)
        return result

    async def call_async(
        self,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke an async callable under circuit breaker protection.

        Same contract as :meth:`call`. Cancellation of the awaited call is
        counted as a failure and propagated.
        """
        task = asyncio.current_task()
        if task is not None:
            callable_name = getattr(func, "__qualname__", None)
            if callable_name is None:
                callable_name = getattr(func, "__name__", None)
            if callable_name is None:
                callable_name = func.__class__.__qualname__
            task.set_name(f"circuit_breaker:{self.name}:{str(callable_name)}")

        generation = self._before_call()
        try:
            result = await func(*args, **kwargs)
        except BaseException:
            self._after_call(generation, success=False)
            raise
        self._after_call(generation, success=True)
        return result

    def _before_call(self) -> int:
        """Decide admission and return the generation token of the call."""
        with self._lock:
            now = _utcnow()
            if self._state == CircuitState.OPEN:
                if now > self._expires_at:
                    self._change_state(
                        now, CircuitState.HALF_OPEN, TransitionReason.OPEN_EXPIRED
                    )
            elif self._state == CircuitState.HALF_OPEN:
                if self._counts.successes >= self._config.success_threshold:
                    self._change_state(
                        now, CircuitState.CLOSED, TransitionReason.THRESHOLD_REACHED
                    )
            elif self._trip_policy.should_trip(self._counts):
                self._change_state(
                    now, CircuitState.OPEN, TransitionReason.THRESHOLD_REACHED
                )

            if now > self._expires_at:
                self._next_generation(now)

            if self._state == CircuitState.OPEN:
                retry_after = max((self._expires_at - now).total_seconds(), 0.0)
                log_debug(
                    self._logger,
                    "circuit_breaker.call_rejected",
                    breaker=self.name,
                    state=self._state.value,
                    retry_after=retry_after,
                )
                raise CircuitOpenError(self.name, retry_after=retry_after)

            limit = self._config.half_open_request_limit
            if self._state == CircuitState.HALF_OPEN and self._counts.requests >= limit:
                log_debug(
                    self._logger,
                    "circuit_breaker.call_rejected",
                    breaker=self.name,
                    state=self._state.value,
                    limit=limit,
                )
                raise HalfOpenLimitExceededError(self.name, limit=limit)

            self._counts = self._counts.with_request()
            return self._generation

    def _after_call(self, generation: int, *, success: bool) -> None:
        """Attribute one outcome to ``generation`` if it is still current."""
        with self._lock:
            if generation != self._generation:
                log_debug(
                    self._logger,
                    "circuit_breaker.outcome_discarded",
                    breaker=self.name,
                    generation=generation,
                    current_generation=self._generation,
                    success=success,
                )
                return

            if success:
                self._counts = self._counts.with_success()
            else:
                self._counts = self._counts.with_failure()

            now = _utcnow()
            if self._state == CircuitState.HALF_OPEN:
                if not success:
                    self._change_state(
                        now, CircuitState.OPEN, TransitionReason.FAILED_ON_HALF_OPEN
                    )
                elif self._counts.successes >= self._config.success_threshold:
                    self._change_state(
                        now, CircuitState.CLOSED, TransitionReason.THRESHOLD_REACHED
                    )
            elif self._state == CircuitState.CLOSED and not success:
                if self._trip_policy.should_trip(self._counts):
                    self._change_state(
                        now, CircuitState.OPEN, TransitionReason.THRESHOLD_REACHED
                    )

    def _change_state(
        self, now: datetime, new: CircuitState, reason: TransitionReason
    ) -> None:
        old = self._state
        self._state = new
        self._next_generation(now)
        log_info(
            self._logger,
            "circuit_breaker.state_changed",
            breaker=self.name,
            from_state=old.value,
            to_state=new.value,
            reason=reason.value,
        )
        self._emit_state_change(
            StateChangeEvent(
                when=now,
                breaker_name=self.name,
                from_state=old,
                to_state=new,
                reason=reason,
            )
        )

    def _emit_state_change(self, event: StateChangeEvent) -> None:
        for listener in self._listeners:
            try:
                listener.on_state_change(event)
            except Exception:
                log_exception(
                    self._logger,
                    "circuit_breaker.listener_failed",
                    breaker=self.name,
                    listener=type(listener).__qualname__,
                )
                continue

    def _next_generation(self, now: datetime) -> None:
        """Zero the counts and open a new counting window for the state."""
        self._counts = Counts()
        self._generation += 1
        if self._state == CircuitState.OPEN:
            window = self._config.open_state_expiry
        else:
            window = self._config.generation_interval
        self._expires_at = now + timedelta(seconds=window)
