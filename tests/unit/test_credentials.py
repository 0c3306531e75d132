"""Unit tests for password hashing and bearer tokens."""

import pytest

from patissio.security.passwords import hash_password, verify_password
from patissio.security.tokens import TOKEN_PREFIX, generate_token, hash_token


class TestPasswords:
    """Tests for scrypt password hashes."""

    def test_hash_and_verify(self):
        stored = hash_password("s3cret-password")

        assert stored.startswith("scrypt$")
        assert verify_password("s3cret-password", stored)
        assert not verify_password("wrong-password", stored)

    def test_salted(self):
        assert hash_password("s3cret-password") != hash_password("s3cret-password")

    @pytest.mark.parametrize(
        "stored",
        ["", "not-a-hash", "bcrypt$1$2$3$00$00", "scrypt$16384$8$1$zz"],
    )
    def test_malformed_hash_is_rejected(self, stored: str):
        assert verify_password("s3cret-password", stored) is False


class TestTokens:
    """Tests for opaque bearer tokens."""

    def test_generate_token(self):
        first, second = generate_token(), generate_token()

        assert first.startswith(TOKEN_PREFIX)
        assert first != second

    def test_hash_token_is_stable(self):
        token = generate_token()

        assert hash_token(token) == hash_token(token)
        assert len(hash_token(token)) == 64
        assert token not in hash_token(token)
