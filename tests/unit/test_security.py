"""Tests for petochania.core.security: password hashing and tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from petochania.core.security import InvalidTokenError, PasswordHasher, TokenService


class TestPasswordHasher:
    """Verify bcrypt hashing and verification."""

    def test_hash_is_not_plaintext(self, hasher: PasswordHasher):
        hashed = hasher.hash("admin")
        assert hashed != "admin"
        assert hashed.startswith("$2")

    def test_verify_correct_password(self, hasher: PasswordHasher):
        assert hasher.verify("admin", hasher.hash("admin")) is True

    def test_verify_wrong_password(self, hasher: PasswordHasher):
        assert hasher.verify("wrong", hasher.hash("admin")) is False

    def test_verify_malformed_hash_is_false(self, hasher: PasswordHasher):
        """A stored value that is not a hash should fail verification quietly."""
        assert hasher.verify("admin", "not-a-hash") is False
        assert hasher.verify("admin", "") is False

    def test_verifies_2a_prefix_hashes(self, hasher: PasswordHasher):
        """Hashes with the $2a$ prefix used by bcryptjs must still verify."""
        hashed = hasher.hash("admin").replace("$2b$", "$2a$", 1)
        assert hasher.verify("admin", hashed) is True


class TestTokenService:
    """Verify token issue and decode."""

    def test_round_trip_identity(self):
        tokens = TokenService("secret")
        identity = tokens.decode(tokens.issue(1, "admin"))
        assert identity.id == 1
        assert identity.username == "admin"

    def test_expiry_is_24_hours_by_default(self):
        tokens = TokenService("secret")
        now = datetime.now(timezone.utc)
        claims = jwt.get_unverified_claims(tokens.issue(1, "admin", now=now))
        assert claims["exp"] - claims["iat"] == 24 * 3600

    def test_expired_token_rejected(self):
        tokens = TokenService("secret", expire_hours=1)
        issued = datetime.now(timezone.utc) - timedelta(hours=2)
        with pytest.raises(InvalidTokenError):
            tokens.decode(tokens.issue(1, "admin", now=issued))

    def test_wrong_secret_rejected(self):
        token = TokenService("secret").issue(1, "admin")
        with pytest.raises(InvalidTokenError):
            TokenService("other-secret").decode(token)

    def test_garbage_rejected(self):
        with pytest.raises(InvalidTokenError):
            TokenService("secret").decode("not.a.token")

    def test_missing_identity_claims_rejected(self):
        """A correctly signed token without id/username is still invalid."""
        token = jwt.encode({"sub": "1"}, "secret", algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            TokenService("secret").decode(token)
