import pytest

from fitting_portal.services.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
class TestRateLimiter:
    def test_allows_up_to_limit_then_blocks(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=clock)

        assert [limiter.check("1.1.1.1") for _ in range(4)] == [True, True, True, False]

    def test_keys_are_independent(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        assert limiter.check("a") is True
        assert limiter.check("a") is False
        assert limiter.check("b") is True

    def test_window_resets(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        assert limiter.check("a") is True
        assert limiter.check("a") is False

        clock.now += 61
        assert limiter.check("a") is True

    def test_sweep_drops_expired_windows(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
        limiter.check("a")
        limiter.check("b")
        clock.now += 30
        limiter.check("c")

        clock.now += 31
        assert limiter.sweep() == 2
        assert len(limiter) == 1

    def test_lazy_sweep_inside_check(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=10, sweep_interval=100, clock=clock)
        for key in ("a", "b", "c"):
            limiter.check(key)

        clock.now += 50
        limiter.check("d")
        assert len(limiter) == 4  # 아직 sweep 주기 전

        clock.now += 60
        limiter.check("e")
        assert len(limiter) == 1

    def test_reset(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.check("a")
        limiter.reset()
        assert len(limiter) == 0
        assert limiter.check("a") is True
