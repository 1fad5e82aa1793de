"""
Sliding Window Rate Limiting

Per-key throttling for the waitlist endpoint. The production backend keeps
the window in Redis so every API replica shares the same count; the
in-memory backend is for local development and tests.

Both backends answer with a RateLimitDecision:
- allowed: whether this request fits in the window
- limit: maximum requests per window
- remaining: requests left in the current window
- reset: epoch milliseconds at which the oldest counted request expires
"""

import asyncio
import logging
import time
import uuid
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Protocol

import redis.asyncio as redis

from config.waitlist_config import DEFAULT_RATE_LIMIT_MAX_REQUESTS, DEFAULT_RATE_LIMIT_WINDOW_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset: int


class RateLimiter(Protocol):
    async def limit(self, key: str) -> RateLimitDecision:
        ...


class RedisSlidingWindowRateLimiter:
    """
    Sliding window limiter backed by a Redis sorted set per key.

    Each request is a member scored by its timestamp. Trimming, recording
    and counting run in a single MULTI/EXEC so concurrent requests from
    different replicas see a consistent count.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS,
        window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        prefix: str = "ratelimit:waitlist",
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize limiter

        Args:
            redis_client: Async Redis client instance
            max_requests: Requests allowed per window
            window_seconds: Window length in seconds
            prefix: Key namespace in Redis
            clock: Source of the current epoch time in seconds
        """
        self.redis = redis_client
        self.max_requests = max_requests
        self.window_ms = int(window_seconds * 1000)
        self.prefix = prefix
        self.clock = clock

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def limit(self, key: str) -> RateLimitDecision:
        redis_key = self._key(key)
        now_ms = int(self.clock() * 1000)
        member = f"{now_ms}:{uuid.uuid4().hex}"

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(redis_key, 0, now_ms - self.window_ms)
            pipe.zadd(redis_key, {member: now_ms})
            pipe.zcard(redis_key)
            pipe.zrange(redis_key, 0, 0, withscores=True)
            pipe.pexpire(redis_key, self.window_ms)
            _, _, count, oldest, _ = await pipe.execute()

        oldest_ms = int(oldest[0][1]) if oldest else now_ms
        reset = oldest_ms + self.window_ms

        if count > self.max_requests:
            # Rejected attempts do not occupy a slot
            await self.redis.zrem(redis_key, member)
            logger.debug(f"Rate limit hit for {key} ({count - 1}/{self.max_requests})")
            return RateLimitDecision(allowed=False, limit=self.max_requests, remaining=0, reset=reset)

        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - count,
            reset=reset,
        )


class InMemorySlidingWindowRateLimiter:
    """
    Sliding window limiter holding timestamps in process memory.

    Counts are per process, so this is only correct for a single worker.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS,
        window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        # Store request timestamps: {key: deque([ts, ...])}
        self.request_times: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = clock()
        self._lock = asyncio.Lock()

    async def limit(self, key: str) -> RateLimitDecision:
        async with self._lock:
            now = self.clock()
            cutoff_time = now - self.window_seconds

            # Once per window, drop keys that have gone idle
            if now - self._last_sweep >= self.window_seconds:
                self.cleanup_old_entries()
                self._last_sweep = now

            # Clean old entries for this key
            timestamps = self.request_times[key]
            while timestamps and timestamps[0] <= cutoff_time:
                timestamps.popleft()

            if len(timestamps) >= self.max_requests:
                reset = int((timestamps[0] + self.window_seconds) * 1000)
                return RateLimitDecision(allowed=False, limit=self.max_requests, remaining=0, reset=reset)

            # Record this request
            timestamps.append(now)
            reset = int((timestamps[0] + self.window_seconds) * 1000)
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - len(timestamps),
                reset=reset,
            )

    def cleanup_old_entries(self):
        """Drop keys whose timestamps have all left the window"""
        cutoff_time = self.clock() - self.window_seconds
        for key in list(self.request_times.keys()):
            timestamps = self.request_times[key]
            while timestamps and timestamps[0] <= cutoff_time:
                timestamps.popleft()
            if not timestamps:
                del self.request_times[key]
