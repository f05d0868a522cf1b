"""Unit tests for the in-memory rate limiter."""

from localguide.utils import RateLimiter


class FakeClock:
    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class TestRateLimiter:
    """Tests for RateLimiter windows and counters."""

    def setup_method(self) -> None:
        self.clock = FakeClock()
        self.limiter = RateLimiter(clock=self.clock)

    def test_allows_up_to_max_attempts(self) -> None:
        results = [self.limiter.is_allowed("review:u1", 5, 60_000) for _ in range(5)]
        assert results == [True] * 5

    def test_blocks_attempt_after_max(self) -> None:
        for _ in range(5):
            self.limiter.is_allowed("review:u1", 5, 60_000)
        assert self.limiter.is_allowed("review:u1", 5, 60_000) is False

    def test_blocked_attempts_do_not_extend_window(self) -> None:
        for _ in range(5):
            self.limiter.is_allowed("k", 5, 60_000)
        self.clock.advance(30_000)
        assert self.limiter.is_allowed("k", 5, 60_000) is False
        assert self.limiter.get_remaining_time("k") == 30_000

    def test_window_resets_after_elapsed(self) -> None:
        for _ in range(5):
            self.limiter.is_allowed("k", 5, 60_000)
        self.clock.advance(60_001)
        assert self.limiter.is_allowed("k", 5, 60_000) is True

    def test_boundary_is_still_inside_window(self) -> None:
        self.limiter.is_allowed("k", 1, 1_000)
        self.clock.advance(1_000)
        assert self.limiter.is_allowed("k", 1, 1_000) is False

    def test_keys_are_independent(self) -> None:
        self.limiter.is_allowed("a", 1, 1_000)
        assert self.limiter.is_allowed("a", 1, 1_000) is False
        assert self.limiter.is_allowed("b", 1, 1_000) is True

    def test_remaining_time_without_record_is_zero(self) -> None:
        assert self.limiter.get_remaining_time("unknown") == 0

    def test_remaining_time_counts_down(self) -> None:
        self.limiter.is_allowed("k", 3, 10_000)
        self.clock.advance(4_000)
        assert self.limiter.get_remaining_time("k") == 6_000

    def test_remaining_time_never_negative(self) -> None:
        self.limiter.is_allowed("k", 3, 10_000)
        self.clock.advance(50_000)
        assert self.limiter.get_remaining_time("k") == 0

    def test_reset_clears_key(self) -> None:
        self.limiter.is_allowed("k", 1, 10_000)
        self.limiter.reset("k")
        assert self.limiter.get_remaining_time("k") == 0
        assert self.limiter.is_allowed("k", 1, 10_000) is True

    def test_reset_unknown_key_is_noop(self) -> None:
        self.limiter.reset("nothing")
        assert len(self.limiter) == 0

    def test_prune_drops_only_expired_records(self) -> None:
        self.limiter.is_allowed("old", 1, 1_000)
        self.clock.advance(500)
        self.limiter.is_allowed("new", 1, 10_000)
        self.clock.advance(1_000)

        removed = self.limiter.prune()

        assert removed == 1
        assert len(self.limiter) == 1
        assert self.limiter.get_remaining_time("new") > 0
