"""Password hashing and JWT session token issuance/verification."""

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt
from pydantic import ValidationError

from userhub.schemas.auth import SessionClaims

if TYPE_CHECKING:
    from userhub.core.config import Settings

logger = logging.getLogger(__name__)

# Bcrypt cost (rounds); overridable via BCRYPT_ROUNDS.
BCRYPT_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of input.
BCRYPT_MAX_BYTES = 72


class HashingError(Exception):
    """Raised when the hashing backend fails or a stored digest is malformed."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidTokenError(Exception):
    """Raised when a session token is malformed, tampered with, or expired."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")
    except (ValueError, TypeError) as e:
        logger.error("Error hashing password: %s", e)
        raise HashingError("Error hashing password") from e


def verify_password(plain_password: str, hashed: str) -> bool:
    """
    Verify a plain password against a stored hash.

    A mismatch returns False; a digest bcrypt cannot parse raises HashingError.
    """
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError) as e:
        logger.error("Error comparing password: %s", e)
        raise HashingError("Error comparing password") from e


class TokenService:
    """Signs and verifies session tokens with a symmetric secret injected at construction."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expire_minutes: int = 1440,
    ) -> None:
        if not secret:
            raise ValueError("Token secret must be non-empty")
        self._secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TokenService":
        return cls(
            secret=settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
            expire_minutes=settings.JWT_EXPIRE_MINUTES,
        )

    @property
    def max_age_seconds(self) -> int:
        return self.expire_minutes * 60

    def issue(self, claims: SessionClaims, now: datetime | None = None) -> str:
        """Create a signed token with sub (user id), email, role, iat and exp."""
        issued_at = now or datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(claims.id),
            "email": claims.email,
            "role": claims.role,
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> SessionClaims:
        """
        Decode and validate a token; return its claims.
        Raises InvalidTokenError on bad signature, malformed or expired token,
        or a payload missing the identity claims.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except jwt.PyJWTError as e:
            raise InvalidTokenError("Invalid token") from e
        try:
            return SessionClaims(
                id=int(payload["sub"]),
                email=payload.get("email"),
                role=payload.get("role"),
            )
        except (TypeError, ValueError, ValidationError) as e:
            raise InvalidTokenError("Invalid token payload") from e
