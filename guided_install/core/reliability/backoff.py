"""
Poll schedule — delay between bounded retry attempts.

Exponential backoff with an upper bound and optional jitter. A
multiplier of 1.0 yields a fixed interval, which is what validation
polling uses by default.
"""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class PollSchedule:
    """Delay policy for attempt N → N+1.

    Args:
        interval: Delay after the first attempt, in seconds.
        multiplier: Growth factor per attempt (1.0 = fixed).
        max_interval: Upper bound for any single delay.
        jitter: Fraction of the delay added at random (0 = none).
    """

    interval: float
    multiplier: float = 1.0
    max_interval: float = 60.0
    jitter: float = 0.0

    def delay(self, attempt: int) -> float:
        """Seconds to wait after ``attempt`` (1-based) before the next one."""
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        delay = min(self.interval * (self.multiplier ** (attempt - 1)), self.max_interval)
        if self.jitter:
            delay += random.uniform(0, delay * self.jitter)
        return max(delay, 0.0)
