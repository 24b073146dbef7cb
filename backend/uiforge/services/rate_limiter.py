"""Rate limiter: token bucket per client for starting validation runs."""

import time
from collections import defaultdict
from typing import Callable, Optional

from uiforge.config import get_settings


class TokenBucketRateLimiter:
    """In-memory token bucket rate limiter.

    Buckets refill continuously at `max_tokens / refill_seconds` tokens per second.
    """

    def __init__(
        self,
        max_tokens: Optional[int] = None,
        refill_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings()
        self.max_tokens = max_tokens or settings.RATE_LIMIT_MAX_RUNS
        self.refill_seconds = refill_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        self._clock = clock
        self._buckets: dict = defaultdict(
            lambda: {"tokens": float(self.max_tokens), "last_refill": self._clock()}
        )

    def _refill(self, bucket: dict) -> None:
        now = self._clock()
        elapsed = now - bucket["last_refill"]
        if elapsed > 0:
            rate = self.max_tokens / self.refill_seconds
            bucket["tokens"] = min(float(self.max_tokens), bucket["tokens"] + elapsed * rate)
            bucket["last_refill"] = now

    def allow_request(self, key: str = "global") -> bool:
        """Consume a token for `key` if one is available."""
        bucket = self._buckets[key]
        self._refill(bucket)
        if bucket["tokens"] >= 1:
            bucket["tokens"] -= 1
            return True
        return False

    def remaining_tokens(self, key: str = "global") -> int:
        bucket = self._buckets.get(key)
        if bucket is None:
            return self.max_tokens
        self._refill(bucket)
        return int(bucket["tokens"])

    def reset_time(self, key: str = "global") -> float:
        """Seconds until `key` has a whole token again."""
        bucket = self._buckets.get(key)
        if bucket is None:
            return 0.0
        self._refill(bucket)
        missing = 1 - bucket["tokens"]
        if missing <= 0:
            return 0.0
        return missing * self.refill_seconds / self.max_tokens


# Module-level singleton
rate_limiter = TokenBucketRateLimiter()
