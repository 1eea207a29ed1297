"""Replay a short failure/recovery story against one breaker.

Run with ``python -m generation_breaker.demo``. Settings are read from
``CIRCUIT_BREAKER_*`` environment variables on top of the demo defaults.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from typing import Any, cast

from generation_breaker.breaker import CircuitBreaker
from generation_breaker.exceptions import CircuitBreakerError
from generation_breaker.listeners import LoggingListener
from generation_breaker.logging import (
    AnyLogger,
    configure_structlog,
    log_info,
    log_warning,
)
from generation_breaker.settings import ENV_PREFIX, BreakerSettings

_DEMO_DEFAULTS: dict[str, object] = {
    "name": "demo",
    "generation_interval_seconds": 2.0,
    "open_state_expiry_seconds": 2.0,
    "failure_threshold": 3,
    "success_threshold": 5,
    "half_open_request_limit": 10,
}


class DemoFailure(RuntimeError):
    """Failure raised on purpose by the demo operation."""


def _operation(success: bool, attempt: int) -> None:
    if not success:
        raise DemoFailure(f"manual error times: {attempt}")


def _run_batch(
    breaker: CircuitBreaker,
    logger: AnyLogger,
    *,
    success: bool,
    times: int,
) -> None:
    for attempt in range(1, times + 1):
        error: BaseException | None = None
        try:
            breaker.call(_operation, success, attempt)
        except (DemoFailure, CircuitBreakerError) as exc:
            error = exc
        snapshot = breaker.snapshot()
        fields: dict[str, object] = {
            "attempt": attempt,
            "counts": str(snapshot.counts),
            "state": snapshot.state.value,
        }
        if error is None:
            log_info(logger, "demo.call", **fields)
        else:
            log_warning(logger, "demo.call", error=str(error), **fields)


def run_demo(
    breaker: CircuitBreaker,
    logger: AnyLogger,
    *,
    sleep: Callable[[float], None] = time.sleep,
    pause_seconds: float = 2.0,
) -> None:
    """Drive ``breaker`` through open, half-open and closed states."""
    _run_batch(breaker, logger, success=False, times=10)
    log_info(logger, "demo.sleep", seconds=pause_seconds)
    sleep(pause_seconds)
    _run_batch(breaker, logger, success=True, times=2)
    _run_batch(breaker, logger, success=False, times=1)
    _run_batch(breaker, logger, success=True, times=2)
    log_info(logger, "demo.sleep", seconds=pause_seconds)
    sleep(pause_seconds)
    _run_batch(breaker, logger, success=True, times=6)


def build_settings() -> BreakerSettings:
    """Load demo settings, letting the environment override demo defaults."""
    present = {name.lower() for name in os.environ}
    overrides = {
        key: value
        for key, value in _DEMO_DEFAULTS.items()
        if f"{ENV_PREFIX}{key}".lower() not in present
    }
    return BreakerSettings(**cast(Any, overrides))


def main() -> None:
    settings = build_settings()
    logger = configure_structlog(log_level=settings.log_level)
    breaker = CircuitBreaker(
        settings.name,
        config=settings.to_config(),
        listeners=[LoggingListener(logger=logger)],
        logger=logger,
    )
    # Sleep slightly past the window so the expiry check is strictly exceeded.
    run_demo(
        breaker,
        logger,
        pause_seconds=settings.open_state_expiry_seconds + 0.05,
    )


if __name__ == "__main__":
    main()
