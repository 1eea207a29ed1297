from __future__ import annotations

import pytest

from generation_breaker import Counts, FailureRatio, FailureThreshold


def test_counts_producers_return_new_instances() -> None:
    counts = Counts()

    updated = counts.with_request().with_request().with_success().with_failure()

    assert counts == Counts()
    assert updated == Counts(requests=2, successes=1, failures=1)
    assert str(updated) == "requests: 2, successes: 1, failures: 1"


def test_counts_failure_ratio() -> None:
    assert Counts().failure_ratio == 0.0
    assert Counts(requests=4, failures=1).failure_ratio == 0.25


def test_failure_threshold_trips_at_threshold() -> None:
    policy = FailureThreshold(3)

    assert policy.should_trip(Counts(requests=5, failures=2)) is False
    assert policy.should_trip(Counts(requests=5, failures=3)) is True


def test_failure_ratio_waits_for_min_requests() -> None:
    policy = FailureRatio(0.5, min_requests=4)

    assert policy.should_trip(Counts(requests=2, failures=2)) is False
    assert policy.should_trip(Counts(requests=4, failures=1)) is False
    assert policy.should_trip(Counts(requests=4, failures=2)) is True


@pytest.mark.parametrize(
    ("factory", "match"),
    [
        (lambda: FailureThreshold(0), "threshold"),
        (lambda: FailureRatio(0.0), "ratio"),
        (lambda: FailureRatio(1.5), "ratio"),
        (lambda: FailureRatio(0.5, min_requests=0), "min_requests"),
    ],
)
def test_trip_policies_validate_parameters(factory, match: str) -> None:
    with pytest.raises(ValueError, match=match):
        factory()
