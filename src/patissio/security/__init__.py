"""Security module: rate limiting, passwords and access tokens."""

from .config import THROTTLE_BUCKETS, RateLimitBucket, get_bucket
from .passwords import hash_password, verify_password
from .rate_limiter import (
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitExceeded,
    RateLimitResult,
    RateLimitStore,
    RedisRateLimitStore,
    SlidingWindowCounter,
    get_client_ip,
)
from .tokens import TOKEN_PREFIX, generate_token, hash_token

__all__ = [
    # Config
    "THROTTLE_BUCKETS",
    "RateLimitBucket",
    "get_bucket",
    # Rate limiting
    "InMemoryRateLimitStore",
    "RateLimiter",
    "RateLimitExceeded",
    "RateLimitResult",
    "RateLimitStore",
    "RedisRateLimitStore",
    "SlidingWindowCounter",
    "get_client_ip",
    # Credentials
    "TOKEN_PREFIX",
    "generate_token",
    "hash_password",
    "hash_token",
    "verify_password",
]
