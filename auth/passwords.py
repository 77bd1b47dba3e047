"""
auth/passwords.py -- Password hashing and verification (bcrypt).

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection feeds bcrypt 4.x a >72-byte password, which it now rejects.

The work factor comes from Settings.bcrypt_rounds (12 in production). Tests
lower it through the BCRYPT_ROUNDS env var before any auth import.

Plaintext passwords are never logged or stored.
"""

from __future__ import annotations

import bcrypt

from core.config import get_settings

# bcrypt reads at most 72 bytes of input; bcrypt 5 rejects anything longer.
MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Callers reject passwords over MAX_PASSWORD_BYTES (UTF-8) first, so
    bcrypt never truncates and no two accepted passwords collide.
    """
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash counts
    as a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. login() runs verify_password() against this
# hash when the email does not exist, so response time does not reveal
# whether an account exists.
DUMMY_HASH: str = hash_password("taskflow_timing_dummy")


def burn_dummy_check(plain: str) -> None:
    """Spend the same bcrypt cost as a real check and discard the result."""
    verify_password(plain, DUMMY_HASH)
