"""Trip policies deciding when a closed breaker opens."""

from dataclasses import dataclass
from typing import Protocol

from generation_breaker.state import Counts


class TripPolicy(Protocol):
    """Strategy deciding whether a closed breaker should open."""

    def should_trip(self, counts: Counts) -> bool:
        """Return ``True`` when ``counts`` warrant opening the breaker."""


@dataclass(frozen=True, slots=True)
class FailureThreshold:
    """Trip once the generation has seen ``threshold`` failures."""

    threshold: int

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise ValueError("threshold must be >= 1")

    def should_trip(self, counts: Counts) -> bool:
        return counts.failures >= self.threshold


@dataclass(frozen=True, slots=True)
class FailureRatio:
    """Trip once failures make up at least ``ratio`` of admitted requests.

    Attributes:
        ratio: Failure share in ``(0, 1]`` that trips the breaker.
        min_requests: Requests the generation must admit before the ratio
            is considered, so a single early failure does not trip.
    """

    ratio: float
    min_requests: int = 1

    def __post_init__(self) -> None:
        if not 0.0 < self.ratio <= 1.0:
            raise ValueError("ratio must be in (0, 1]")
        if self.min_requests < 1:
            raise ValueError("min_requests must be >= 1")

    def should_trip(self, counts: Counts) -> bool:
        if counts.requests < self.min_requests:
            return False
        return counts.failure_ratio >= self.ratio
