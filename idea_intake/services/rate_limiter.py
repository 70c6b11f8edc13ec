"""
Admission control for idea submissions.

Two token-bucket gates guard the pipeline: one global bucket shared by
everyone and one bucket per submitter, created the first time that
submitter is seen. Both refill continuously at quota/hour and start full.

State lives for the lifetime of the process only.
"""

import threading
import time
from typing import Callable, Dict

SECONDS_PER_HOUR = 3600.0


class TokenBucket:
    """
    Thread-safe token bucket.

    Args:
        capacity: Maximum number of tokens (burst size).
        refill_per_second: Tokens added per second.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(self, capacity: int, refill_per_second: float, clock: Callable[[], float] = time.monotonic):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.refill_per_second = refill_per_second
        self._clock = clock
        self._tokens = float(capacity)
        self._updated = clock()
        self.last_used = self._updated
        self._lock = threading.Lock()

    @classmethod
    def hourly(cls, quota: int, clock: Callable[[], float] = time.monotonic) -> "TokenBucket":
        """Bucket holding `quota` tokens that refills `quota` tokens per hour."""
        return cls(quota, quota / SECONDS_PER_HOUR, clock)

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_per_second)
        self._updated = now

    def allow(self) -> bool:
        """Take one token if available."""
        with self._lock:
            now = self._clock()
            self._refill(now)
            self.last_used = now
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    @property
    def tokens(self) -> float:
        """Tokens currently available."""
        with self._lock:
            self._refill(self._clock())
            return self._tokens


class RateLimiter:
    """
    Global plus per-submitter hourly quotas.

    The global bucket is checked first. Its token is spent even when the
    per-submitter check then fails; callers rely on this conservative
    behaviour, so do not refund it.

    Usage:
        limiter = RateLimiter(per_user=5, global_limit=50)
        if not limiter.allow(user_id):
            ...
    """

    def __init__(self, per_user: int, global_limit: int, clock: Callable[[], float] = time.monotonic):
        self.per_user = per_user
        self.global_limit = global_limit
        self._clock = clock
        self._global = TokenBucket.hourly(global_limit, clock)
        self._users: Dict[int, TokenBucket] = {}
        self._lock = threading.Lock()

    def _bucket_for(self, user_id: int) -> TokenBucket:
        with self._lock:
            bucket = self._users.get(user_id)
            if bucket is None:
                bucket = TokenBucket.hourly(self.per_user, self._clock)
                self._users[user_id] = bucket
            return bucket

    def allow(self, user_id: int) -> bool:
        """Return True if a submission from this user may proceed now."""
        if not self._global.allow():
            return False
        return self._bucket_for(user_id).allow()

    def reset(self) -> None:
        """Forget all per-submitter state. The global bucket is kept."""
        with self._lock:
            self._users = {}

    def evict_idle(self, max_idle_seconds: float) -> int:
        """
        Drop per-submitter buckets not used for `max_idle_seconds`.

        A bucket idle for a full hour has refilled completely, so evicting
        it after that long does not change anyone's quota.

        Returns:
            Number of buckets removed.
        """
        cutoff = self._clock() - max_idle_seconds
        with self._lock:
            idle = [uid for uid, bucket in self._users.items() if bucket.last_used < cutoff]
            for uid in idle:
                del self._users[uid]
        return len(idle)

    @property
    def tracked_users(self) -> int:
        """Number of submitters with a bucket."""
        with self._lock:
            return len(self._users)
