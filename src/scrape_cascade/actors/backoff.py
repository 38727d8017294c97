"""Poll-loop timing policy.

The interval before status check *k + 1* is ``min(base × factor^k, cap)``,
so the sequence is non-decreasing and never exceeds the cap.  A loop is
bounded both by ``max_attempts`` and by ``budget_seconds``; whichever runs
out first ends it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class PollPolicy:
    """Backoff and budget for polling one backend run.

    Attributes:
        base_interval: Seconds before the second status check.
        factor: Multiplier applied after every check (>= 1).
        max_interval: Cap for a single interval.
        max_attempts: Maximum number of status checks.
        budget_seconds: Wall-clock budget for the whole loop.
    """

    base_interval: float = 3.0
    factor: float = 1.1
    max_interval: float = 8.0
    max_attempts: int = 40
    budget_seconds: float = 120.0

    def __post_init__(self) -> None:
        if self.base_interval <= 0 or self.max_interval <= 0:
            raise ValueError("poll intervals must be positive")
        if self.factor < 1.0:
            raise ValueError("backoff factor must be >= 1.0")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def interval(self, attempt: int) -> float:
        """Interval in seconds after zero-based status check *attempt*."""
        return min(self.base_interval * self.factor**attempt, self.max_interval)


def poll_intervals(policy: PollPolicy) -> Iterator[float]:
    """Yield the ``max_attempts`` successive poll intervals of *policy*."""
    for attempt in range(policy.max_attempts):
        yield policy.interval(attempt)
