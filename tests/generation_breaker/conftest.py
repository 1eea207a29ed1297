from __future__ import annotations

import pytest

import generation_breaker.breaker as breaker_mod
from tests.generation_breaker.support.fakes import (
    FakeClock,
    FakeLogger,
    RecordingListener,
)


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Freeze breaker time and let the test advance it explicitly."""
    fake = FakeClock()
    monkeypatch.setattr(breaker_mod, "_utcnow", fake.now)
    return fake


@pytest.fixture
def listener() -> RecordingListener:
    """Provide a listener recording every transition."""
    return RecordingListener()
