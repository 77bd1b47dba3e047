"""
auth/tokens.py -- Session token issue and validation (JWT, HS256).

Security design decisions:
  Tokens are python-jose HS256 JWTs carrying user_id, email, iat and exp.
  exp = iat + Settings.token_expire_seconds (24h by default).

  Sessions are stateless: the server never stores issued tokens, so logout
  cannot revoke one. A token stays valid until its natural expiry or until
  SECRET_KEY is rotated, which invalidates every outstanding token at once.

  validate() raises InvalidToken for every failure mode (bad signature,
  malformed structure, missing claims, expiry). Callers never learn which
  check failed.

  Expiry is checked here against an injectable clock instead of inside
  jwt.decode(), so the 24h boundary can be exercised deterministically.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import InvalidToken
from auth.models import SessionClaims
from core.config import get_settings

logger = logging.getLogger("taskflow.auth")

_ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionIssuer:
    """Issues and validates signed, time-limited session tokens.

    Usage:
        sessions = SessionIssuer(secret_key)
        token = sessions.issue(user.id, user.email)
        claims = sessions.validate(token)
    """

    def __init__(
        self,
        secret_key: str,
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret_key = secret_key
        self.ttl = ttl
        self._clock = clock

    @classmethod
    def from_settings(cls) -> SessionIssuer:
        settings = get_settings()
        return cls(settings.secret_key, ttl=timedelta(seconds=settings.token_expire_seconds))

    def issue(self, user_id: int, email: str, now: datetime | None = None) -> str:
        """Encode a signed JWT for the given identity."""
        issued_at = (now or self._clock()).replace(microsecond=0)
        payload = {
            "sub": email,
            "user_id": user_id,
            "email": email,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def validate(self, token: str, now: datetime | None = None) -> SessionClaims:
        """Verify signature, structure and expiry. Raises InvalidToken on any failure."""
        if not token:
            raise InvalidToken()
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidToken() from exc

        user_id = payload.get("user_id")
        email = payload.get("email")
        iat = payload.get("iat")
        exp = payload.get("exp")
        if not isinstance(user_id, int) or not isinstance(email, str):
            raise InvalidToken()
        if not isinstance(iat, (int, float)) or not isinstance(exp, (int, float)):
            raise InvalidToken()

        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
        current = now or self._clock()
        if current >= expires_at:
            logger.debug("Rejected expired token for user_id=%s", user_id)
            raise InvalidToken()

        return SessionClaims(
            user_id=user_id,
            email=email,
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=expires_at,
        )
