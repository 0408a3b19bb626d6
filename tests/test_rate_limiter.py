"""
Test Rate Limiter Module
========================

Unit tests for per-address fixed-window throttling.
"""

from pathlib import Path

# Add parent directory to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.rate_limiter import RateLimiter


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_thirty_allowed_then_refused(self):
        """The 31st request inside one window is refused."""
        limiter = RateLimiter(clock=FakeClock())

        results = [limiter.check_and_record("10.0.0.1") for _ in range(31)]

        assert all(r.allowed for r in results[:30])
        assert results[29].remaining == 0
        assert results[30].allowed is False
        assert results[30].retry_after == 60.0

    def test_refused_requests_still_count(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        for _ in range(35):
            limiter.check_and_record("10.0.0.1")

        assert limiter.get_status("10.0.0.1")["count"] == 35

    def test_addresses_are_independent(self):
        limiter = RateLimiter(max_requests=1, clock=FakeClock())

        assert limiter.check_and_record("10.0.0.1").allowed
        assert limiter.check_and_record("10.0.0.2").allowed
        assert not limiter.check_and_record("10.0.0.1").allowed

    def test_spread_out_requests_all_pass(self):
        """Thirty-one requests spread over more than a minute all pass."""
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)

        allowed = []
        for _ in range(31):
            allowed.append(limiter.check_and_record("10.0.0.1").allowed)
            clock.advance(2.1)

        assert all(allowed)

    def test_window_resets_only_strictly_after(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, clock=clock)

        assert limiter.check_and_record("10.0.0.1").allowed
        clock.advance(60.0)
        assert not limiter.check_and_record("10.0.0.1").allowed
        clock.advance(0.5)
        assert limiter.check_and_record("10.0.0.1").allowed

    def test_address_table_is_bounded(self):
        """Least recently seen addresses are evicted beyond the cap."""
        limiter = RateLimiter(max_requests=1, max_tracked_addresses=2, clock=FakeClock())

        limiter.check_and_record("a")
        limiter.check_and_record("b")
        limiter.check_and_record("a")
        limiter.check_and_record("c")

        assert limiter.tracked_addresses == 2
        assert limiter.get_status("b")["count"] == 0
        assert limiter.get_status("a")["count"] == 2

    def test_reset(self):
        limiter = RateLimiter(max_requests=1, clock=FakeClock())
        limiter.check_and_record("10.0.0.1")
        limiter.check_and_record("10.0.0.2")

        limiter.reset("10.0.0.1")
        assert limiter.check_and_record("10.0.0.1").allowed

        limiter.reset()
        assert limiter.tracked_addresses == 0
