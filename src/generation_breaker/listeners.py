"""Observability hooks for circuit breakers."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from generation_breaker.logging import AnyLogger, LogMethod, get_logger, log_event
from generation_breaker.state import StateChangeEvent


class StateChangeListener(Protocol):
    """Listener protocol for circuit breaker transitions.

    Notes:
        Listeners run synchronously while the breaker holds its lock, so a
        slow listener delays every admission decision on that breaker.
        Exceptions raised here are logged and otherwise ignored.
    """

    def on_state_change(self, event: StateChangeEvent) -> None:
        """Handle a circuit state transition."""


@dataclass(frozen=True, slots=True)
class FunctionListener:
    """Adapt a plain callable to the listener protocol."""

    func: Callable[[StateChangeEvent], None]

    def on_state_change(self, event: StateChangeEvent) -> None:
        self.func(event)


@dataclass(slots=True)
class LoggingListener:
    """Write every transition as one structured log record."""

    logger: AnyLogger = field(default_factory=lambda: get_logger(__name__))
    level: LogMethod = "info"

    def on_state_change(self, event: StateChangeEvent) -> None:
        log_event(
            self.logger,
            self.level,
            "circuit_breaker.transition",
            breaker=event.breaker_name,
            from_state=event.from_state.value,
            to_state=event.to_state.value,
            reason=event.reason.value,
            when=event.when.isoformat(),
        )
