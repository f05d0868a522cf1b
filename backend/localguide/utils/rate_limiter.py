"""In-memory attempt limiter with per-key time windows.

Used to bound sensitive or costly operations (review submissions,
helpful votes). Records are cleaned lazily on the next access for the
same key; call ``prune()`` to drop expired records for keys that are
never seen again.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class RateLimitRecord:
    count: int
    reset_at: int


class RateLimiter:
    """Counts attempts per key inside a window of ``window_ms``."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._attempts: dict[str, RateLimitRecord] = {}
        self._clock = clock

    def is_allowed(self, key: str, max_attempts: int, window_ms: int) -> bool:
        now = self._clock()
        record = self._attempts.get(key)

        if record is None or now > record.reset_at:
            self._attempts[key] = RateLimitRecord(count=1, reset_at=now + window_ms)
            return True

        if record.count >= max_attempts:
            return False

        record.count += 1
        return True

    def get_remaining_time(self, key: str) -> int:
        """Milliseconds until the key's window resets, 0 without a record."""
        record = self._attempts.get(key)
        if record is None:
            return 0
        return max(0, record.reset_at - self._clock())

    def reset(self, key: str) -> None:
        self._attempts.pop(key, None)

    def prune(self) -> int:
        """Drop every record whose window has elapsed. Returns the count removed."""
        now = self._clock()
        expired = [key for key, record in self._attempts.items() if now > record.reset_at]
        for key in expired:
            del self._attempts[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._attempts)


rate_limiter = RateLimiter()
