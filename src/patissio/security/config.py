"""Rate limit bucket definitions.

Each route group draws from one named bucket. A client that exceeds a
bucket's limit inside its window is blocked from that bucket for the
bucket's block duration.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RateLimitBucket:
    """Configuration for one rate limit bucket.

    Attributes:
        name: Bucket identifier, used as the key prefix
        limit: Requests allowed per window
        window_seconds: Sliding window size
        block_seconds: How long a client stays blocked after exceeding the limit
    """

    name: str
    limit: int
    window_seconds: int
    block_seconds: int


THROTTLE_BUCKETS: dict[str, RateLimitBucket] = {
    "auth": RateLimitBucket("auth", limit=10, window_seconds=60, block_seconds=15 * 60),
    "authStrict": RateLimitBucket("authStrict", limit=5, window_seconds=60, block_seconds=30 * 60),
    "api": RateLimitBucket("api", limit=100, window_seconds=60, block_seconds=60),
    "publicSubmit": RateLimitBucket(
        "publicSubmit", limit=10, window_seconds=60, block_seconds=5 * 60
    ),
    "uploads": RateLimitBucket("uploads", limit=20, window_seconds=3600, block_seconds=30 * 60),
    "webhooks": RateLimitBucket("webhooks", limit=100, window_seconds=60, block_seconds=60),
    "global": RateLimitBucket("global", limit=1000, window_seconds=60, block_seconds=60),
}


def get_bucket(name: str) -> RateLimitBucket:
    """Look up a bucket by name.

    Raises:
        KeyError: If the bucket is not defined
    """
    return THROTTLE_BUCKETS[name]
