"""Fixed-window rate limiter tests with an injected clock."""

from browserscan.ratelimit import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def allowed(limiter, key):
    return limiter.hit(key)[0]


class TestRateLimiter:

    def test_allows_up_to_limit(self):
        limiter = RateLimiter(max_requests=3, window_seconds=60, time_func=FakeClock())
        assert [allowed(limiter, "a") for _ in range(4)] == [True, True, True, False]

    def test_window_resets(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, time_func=clock)
        assert allowed(limiter, "a") is True
        assert allowed(limiter, "a") is False
        clock.now = 60.0
        assert allowed(limiter, "a") is True

    def test_clients_independent(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, time_func=FakeClock())
        assert allowed(limiter, "a") is True
        assert allowed(limiter, "b") is True
        assert allowed(limiter, "a") is False

    def test_remaining_and_reset(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=2, window_seconds=600, time_func=clock)
        assert limiter.hit("a") == (True, 1, 600)
        clock.now = 100.0
        assert limiter.hit("a") == (True, 0, 500)
        assert limiter.hit("a") == (False, 0, 500)

    def test_disabled(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, enabled=False, time_func=FakeClock())
        assert all(allowed(limiter, "a") for _ in range(10))


class TestWindowExpiry:
    """Per-client windows are forgotten once they end"""

    def test_expired_clients_dropped(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, time_func=clock)
        for n in range(50):
            limiter.hit(f"10.0.0.{n}")
        assert len(limiter._windows) == 50

        clock.now = 61.0
        limiter.hit("10.0.1.1")
        assert list(limiter._windows) == ["10.0.1.1"]

    def test_live_windows_kept(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, time_func=clock)
        limiter.hit("old")
        clock.now = 30.0
        limiter.hit("recent")
        clock.now = 65.0
        assert allowed(limiter, "recent") is False
        assert set(limiter._windows) == {"recent"}

    def test_dropped_client_starts_fresh(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, time_func=clock)
        assert allowed(limiter, "a") is True
        assert allowed(limiter, "a") is False
        clock.now = 120.0
        assert limiter.hit("a") == (True, 0, 60)
