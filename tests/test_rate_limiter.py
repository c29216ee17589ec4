from clinicaflow.services.rate_limiter import InMemoryRateLimiter


class ManualClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_allows_up_to_limit_then_blocks():
    clock = ManualClock()
    limiter = InMemoryRateLimiter(clock=clock)

    for expected_remaining in (2, 1, 0):
        decision = limiter.check("ip", limit=3, window_seconds=60)
        assert decision.allowed
        assert decision.remaining == expected_remaining

    blocked = limiter.check("ip", limit=3, window_seconds=60)
    assert not blocked.allowed
    assert blocked.retry_after == 60


def test_window_slides():
    clock = ManualClock()
    limiter = InMemoryRateLimiter(clock=clock)
    assert limiter.allow("ip", 1, 60)

    clock.now += 30
    decision = limiter.check("ip", 1, 60)
    assert not decision.allowed
    assert decision.retry_after == 30

    clock.now += 30
    assert limiter.allow("ip", 1, 60)


def test_keys_are_independent_and_reset_clears():
    limiter = InMemoryRateLimiter(clock=ManualClock())
    assert limiter.allow("a", 1, 60)
    assert limiter.allow("b", 1, 60)
    assert not limiter.allow("a", 1, 60)

    limiter.reset()
    assert limiter.allow("a", 1, 60)


def test_idle_buckets_are_dropped():
    clock = ManualClock()
    limiter = InMemoryRateLimiter(clock=clock)
    limiter.allow("idle-ip", 5, 60)
    limiter.allow("hourly-ip", 5, 3600)

    clock.now += 120
    limiter.allow("busy-ip", 5, 60)

    assert "idle-ip" not in limiter._buckets
    assert "hourly-ip" in limiter._buckets
    assert "busy-ip" in limiter._buckets
