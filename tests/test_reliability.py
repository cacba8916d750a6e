"""
Tests for reliability — the validation poll schedule.
"""

import pytest

from guided_install.core.reliability.backoff import PollSchedule


class TestPollSchedule:
    def test_fixed_interval(self):
        s = PollSchedule(interval=5)
        assert [s.delay(n) for n in (1, 2, 10)] == [5, 5, 5]

    def test_exponential_growth(self):
        s = PollSchedule(interval=1, multiplier=2, max_interval=100)
        assert [s.delay(n) for n in (1, 2, 3, 4)] == [1, 2, 4, 8]

    def test_capped(self):
        s = PollSchedule(interval=1, multiplier=10, max_interval=30)
        assert s.delay(3) == 30

    def test_jitter_bounds(self):
        s = PollSchedule(interval=10, jitter=0.5)
        for _ in range(50):
            d = s.delay(1)
            assert 10 <= d <= 15

    def test_zero_interval(self):
        assert PollSchedule(interval=0).delay(3) == 0

    def test_attempt_must_be_positive(self):
        with pytest.raises(ValueError):
            PollSchedule(interval=1).delay(0)
