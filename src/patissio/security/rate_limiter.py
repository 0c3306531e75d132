"""Per-client throttling of route groups.

A request counts against one named bucket for the caller's IP, under the
key ``{bucket}:{client_ip}``. Going over the bucket limit blocks that key
for the bucket's block duration. Counters live in process memory, or in
Redis when several API instances must share them.
"""

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import structlog
from redis.asyncio import Redis

from patissio.security.config import RateLimitBucket, get_bucket
from patissio.utils.exceptions import PatissioError

if TYPE_CHECKING:
    from starlette.requests import Request

logger = structlog.get_logger()


class RateLimitExceeded(PatissioError):
    """A client went over a bucket limit or is still blocked from it.

    Rendered as a 429 carrying the X-RateLimit-* and Retry-After headers.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: int = 60,
        limit: int = 60,
        remaining: int = 0,
        reset_time: float = 0.0,
        bucket: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.retry_after = retry_after
        self.limit = limit
        self.remaining = remaining
        self.reset_time = reset_time
        self.bucket = bucket

    def headers(self) -> dict[str, str]:
        """Build the rate limit headers for a 429 response."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_time)),
            "Retry-After": str(self.retry_after),
        }


@dataclass
class RateLimitResult:
    """Outcome of counting one request.

    ``reset_time`` is a Unix timestamp: the end of the window, or of the
    block when the key is blocked. ``retry_after`` is only set on refusals.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after: int = 0


@dataclass
class SlidingWindowCounter:
    """Two fixed windows blended into an approximate sliding one.

    The previous window counts in proportion to the part of it the
    sliding window still covers. ``blocked_until`` is 0 for keys that
    were never blocked.
    """

    current_count: int = 0
    previous_count: int = 0
    window_start: float = 0.0
    window_size: int = 60
    blocked_until: float = 0.0

    def roll(self, now: float) -> None:
        """Advance the window if it has elapsed."""
        if now - self.window_start < self.window_size:
            return
        windows_passed = int((now - self.window_start) / self.window_size)
        if windows_passed == 1:
            self.previous_count = self.current_count
            self.window_start += self.window_size
        else:
            # Multiple windows passed, reset everything
            self.previous_count = 0
            self.window_start = now
        self.current_count = 0

    def get_weighted_count(self, now: float) -> float:
        """Requests seen over the last ``window_size`` seconds, approximately."""
        time_in_window = now - self.window_start
        if time_in_window >= self.window_size:
            return float(self.current_count)
        weight = 1.0 - (time_in_window / self.window_size)
        return self.current_count + (self.previous_count * weight)


class RateLimitStore(Protocol):
    """Where counters are kept. ``backend`` names the store in health checks."""

    backend: str

    async def check_and_increment(
        self, key: str, limit: int, window_size: int, block_seconds: int = 0
    ) -> RateLimitResult:
        """Count one request for ``key`` unless it is over ``limit`` or blocked.

        Args:
            key: ``{bucket}:{client_ip}``
            limit: Requests allowed per window
            window_size: Window length in seconds
            block_seconds: Block applied on the refused request; 0 disables
        """
        ...

    async def reset(self, key: str) -> None:
        """Forget all state for a key."""
        ...

    async def ping(self) -> None:
        """Raise if the backend cannot be reached."""
        ...


class InMemoryRateLimitStore(RateLimitStore):
    """Counters in a dict of this process. The default store.

    Limits are per instance, so N instances admit up to N times a bucket limit.
    """

    backend = "memory"

    def __init__(self, cleanup_interval: int = 300) -> None:
        """Start with no counters.

        Args:
            cleanup_interval: Seconds between sweeps of stale counters
        """
        self._counters: dict[str, SlidingWindowCounter] = {}
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.time()

    async def check_and_increment(
        self, key: str, limit: int, window_size: int, block_seconds: int = 0
    ) -> RateLimitResult:
        now = time.time()

        if now - self._last_cleanup > self._cleanup_interval:
            self._cleanup(now)

        counter = self._counters.get(key)
        if counter is None:
            counter = SlidingWindowCounter(window_start=now, window_size=window_size)
            self._counters[key] = counter

        if counter.blocked_until > now:
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_time=counter.blocked_until,
                retry_after=max(1, int(counter.blocked_until - now)),
            )

        counter.roll(now)
        weighted_count = counter.get_weighted_count(now)
        reset_time = counter.window_start + window_size

        if weighted_count >= limit:
            if block_seconds > 0:
                counter.blocked_until = now + block_seconds
                reset_time = counter.blocked_until
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_time=reset_time,
                retry_after=max(1, int(reset_time - now)),
            )

        counter.current_count += 1
        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, int(limit - weighted_count - 1)),
            reset_time=reset_time,
        )

    async def reset(self, key: str) -> None:
        self._counters.pop(key, None)

    async def ping(self) -> None:
        return None

    def _cleanup(self, now: float) -> None:
        """Drop counters that are more than two windows old and not blocked."""
        self._last_cleanup = now
        expired_keys = [
            key
            for key, counter in self._counters.items()
            if now - counter.window_start > counter.window_size * 2 and counter.blocked_until <= now
        ]
        for key in expired_keys:
            del self._counters[key]


class RedisRateLimitStore(RateLimitStore):
    """Counters shared by every API instance through Redis.

    Uses a sorted set per key for the sliding window and a separate
    expiring key for blocks.
    """

    backend = "redis"

    def __init__(self, client: Redis, prefix: str = "ratelimit") -> None:
        self._client = client
        self.prefix = prefix

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def check_and_increment(
        self, key: str, limit: int, window_size: int, block_seconds: int = 0
    ) -> RateLimitResult:
        window_key = self._make_key(key)
        block_key = f"{window_key}:blocked"
        now = time.time()

        blocked_ttl = await self._client.ttl(block_key)
        if blocked_ttl and blocked_ttl > 0:
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_time=now + blocked_ttl,
                retry_after=blocked_ttl,
            )

        pipe = self._client.pipeline()
        # Remove old entries outside window
        pipe.zremrangebyscore(window_key, 0, now - window_size)
        pipe.zcard(window_key)
        request_id = f"{now}"
        pipe.zadd(window_key, {request_id: now})
        pipe.expire(window_key, window_size)
        results = await pipe.execute()
        current_count = results[1]

        if current_count >= limit:
            # Over limit - remove the request we just added
            await self._client.zrem(window_key, request_id)
            if block_seconds > 0:
                await self._client.set(block_key, "1", ex=block_seconds)
                retry_after = block_seconds
            else:
                retry_after = window_size
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_time=now + retry_after,
                retry_after=retry_after,
            )

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - current_count - 1),
            reset_time=now + window_size,
        )

    async def reset(self, key: str) -> None:
        window_key = self._make_key(key)
        await self._client.delete(window_key, f"{window_key}:blocked")

    async def ping(self) -> None:
        await self._client.ping()


class RateLimiter:
    """Bucketed rate limiter with configurable storage backend.

    Example:
        limiter = RateLimiter(InMemoryRateLimitStore())
        await limiter.check_or_raise("api", "192.168.1.1")
    """

    def __init__(self, store: RateLimitStore, enabled: bool = True) -> None:
        self.store = store
        self.enabled = enabled

    @staticmethod
    def build_key(bucket: RateLimitBucket, client_ip: str) -> str:
        return f"{bucket.name}:{client_ip}"

    async def check(self, bucket_name: str, client_ip: str) -> RateLimitResult:
        """Record a request against a bucket and report whether it is allowed."""
        bucket = get_bucket(bucket_name)
        if not self.enabled:
            return RateLimitResult(
                allowed=True,
                limit=bucket.limit,
                remaining=bucket.limit,
                reset_time=time.time() + bucket.window_seconds,
            )
        return await self.store.check_and_increment(
            key=self.build_key(bucket, client_ip),
            limit=bucket.limit,
            window_size=bucket.window_seconds,
            block_seconds=bucket.block_seconds,
        )

    async def check_or_raise(self, bucket_name: str, client_ip: str) -> RateLimitResult:
        """Check a bucket and raise if the client is over its limit.

        Raises:
            RateLimitExceeded: If rate limit is exceeded or the client is blocked
        """
        result = await self.check(bucket_name, client_ip)
        if not result.allowed:
            logger.warning(
                "rate_limit_exceeded",
                bucket=bucket_name,
                client_ip=client_ip,
                retry_after=result.retry_after,
            )
            raise RateLimitExceeded(
                message="Too many requests, please retry later",
                retry_after=result.retry_after,
                limit=result.limit,
                remaining=result.remaining,
                reset_time=result.reset_time,
                bucket=bucket_name,
            )
        return result


def get_client_ip(request: "Request") -> str:
    """Extract the client IP from proxy headers or the socket peer.

    Order: CF-Connecting-IP, X-Real-IP, first X-Forwarded-For entry,
    then the direct client address.
    """
    for header in ("cf-connecting-ip", "x-real-ip"):
        value = request.headers.get(header, "").strip()
        if value:
            return value
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client:
        return request.client.host
    return "unknown"
