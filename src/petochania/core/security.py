"""Password hashing and bearer-token helpers.

Passwords are hashed with bcrypt through passlib.  Hashes carrying the
``$2a$`` prefix, as written by bcryptjs and older bcrypt libraries, keep
verifying.  Tokens are HMAC-signed JWTs issued by python-jose.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Raised when a bearer token fails signature, expiry or claim checks."""


@dataclass(frozen=True)
class TokenIdentity:
    """Identity carried by a verified token."""

    id: int
    username: str


class PasswordHasher:
    """bcrypt password hashing with a configurable cost factor."""

    def __init__(self, rounds: int = 10):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Check *password* against a stored hash.

        A stored value that is not a recognisable hash counts as a mismatch
        rather than an error, so a damaged user record cannot be used to
        distinguish accounts by response.
        """
        try:
            return self._context.verify(password, password_hash)
        except (ValueError, TypeError) as e:
            logger.warning(f"Stored password hash could not be verified: {e}")
            return False

    def dummy_verify(self) -> None:
        """Spend roughly the time of a real verification."""
        self._context.dummy_verify()


class TokenService:
    """Issue and verify signed, time-limited bearer tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_hours: int = 24):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_hours = expire_hours

    def issue(self, user_id: int, username: str, *, now: datetime | None = None) -> str:
        """Sign a token for the given user.

        Args:
            user_id: Id of the authenticated user.
            username: Username at the time of login.
            now: Issue time; defaults to the current UTC time.

        Returns:
            Encoded JWT string.
        """
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "id": user_id,
            "username": username,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(hours=self.expire_hours)).timestamp()),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> TokenIdentity:
        """Verify *token* and return the identity it carries.

        Raises:
            InvalidTokenError: If the signature is wrong, the token has
                expired, or the identity claims are missing.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e

        user_id = payload.get("id")
        username = payload.get("username")
        if not isinstance(user_id, int) or not isinstance(username, str):
            raise InvalidTokenError("Token is missing identity claims")
        return TokenIdentity(id=user_id, username=username)
