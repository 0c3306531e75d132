"""Opaque bearer tokens.

Tokens are random strings prefixed with ``pat_``. Only their SHA-256
digest is persisted.
"""

import hashlib
import secrets

TOKEN_PREFIX = "pat_"


def generate_token() -> str:
    """Create a new random bearer token."""
    return f"{TOKEN_PREFIX}{secrets.token_urlsafe(32)}"


def hash_token(token: str) -> str:
    """Digest a token for storage and lookup."""
    return hashlib.sha256(token.encode()).hexdigest()
