"""
Bearer tokens — issue and verify signed JWTs carrying the caller identity.

Once a token verifies, its user id, tenant id and email are trusted
verbatim; account status is re-checked against the store on every request
by the API dependencies.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import jwt

from tenantvault.errors import AuthenticationError
from tenantvault.models import Identity, User

logger = logging.getLogger(__name__)


class TokenService:
    def __init__(self, secret: str, *, expire_hours: int = 24, algorithm: str = "HS256") -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self._expire = timedelta(hours=expire_hours)
        self._algorithm = algorithm

    def issue(self, user: User, *, now: datetime | None = None) -> tuple[str, datetime]:
        """Return (token, expires_at) for a user."""
        issued_at = now or datetime.now(UTC)
        expires_at = issued_at + self._expire
        claims = {
            "user_id": user.id,
            "tenant_id": user.tenant_id,
            "email": user.email,
            "sub": user.email,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(claims, self._secret, algorithm=self._algorithm)
        return token, expires_at

    def verify(self, token: str) -> Identity:
        """Decode and validate a token. Raises AuthenticationError."""
        if not token:
            raise AuthenticationError("authorization token required")
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "user_id", "tenant_id"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("token expired") from None
        except jwt.PyJWTError as e:
            logger.info("Rejected bearer token: %s", e)
            raise AuthenticationError("invalid token") from None

        try:
            return Identity(
                user_id=int(claims["user_id"]),
                tenant_id=int(claims["tenant_id"]),
                email=str(claims.get("email", "")),
            )
        except (TypeError, ValueError):
            raise AuthenticationError("invalid token") from None
