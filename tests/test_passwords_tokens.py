"""Unit tests for auth/passwords.py and auth/tokens.py.

Covers:
- bcrypt hash/verify round trip, salting, malformed stored hashes
- token validity window: accepted at T+23h59m, rejected at T+24h01m
- key rotation invalidates every outstanding token
- tampered, truncated and foreign tokens are all InvalidToken
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import InvalidToken
from auth.passwords import DUMMY_HASH, hash_password, password_too_long, verify_password
from auth.tokens import SessionIssuer

KEY_1 = "k1-" + "a" * 40
KEY_2 = "k2-" + "b" * 40
T0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Password Verifier
# ---------------------------------------------------------------------------


class TestPasswords:
    def test_verify_matches_original(self) -> None:
        hashed = hash_password("correct horse")
        assert verify_password("correct horse", hashed)
        assert not verify_password("correct horsE", hashed)

    def test_hash_is_salted(self) -> None:
        """Two hashes of the same password differ but both verify."""
        a = hash_password("same-password")
        b = hash_password("same-password")
        assert a != b
        assert verify_password("same-password", a)
        assert verify_password("same-password", b)

    def test_plaintext_not_in_hash(self) -> None:
        assert "hunter22" not in hash_password("hunter22")

    def test_malformed_hash_is_mismatch(self) -> None:
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_length_limit_counts_utf8_bytes(self) -> None:
        assert not password_too_long("a" * 72)
        assert password_too_long("a" * 73)
        assert not password_too_long("\u00e9" * 36)
        assert password_too_long("\u00e9" * 37)

    def test_dummy_hash_never_matches_user_input(self) -> None:
        assert verify_password("password", DUMMY_HASH) is False


# ---------------------------------------------------------------------------
# Session Issuer
# ---------------------------------------------------------------------------


class TestSessionIssuer:
    def test_claims_round_trip(self) -> None:
        issuer = SessionIssuer(KEY_1)
        token = issuer.issue(7, "bob@x.com", now=T0)
        claims = issuer.validate(token, now=T0 + timedelta(minutes=1))
        assert claims.user_id == 7
        assert claims.email == "bob@x.com"
        assert claims.issued_at == T0
        assert claims.expires_at == T0 + timedelta(hours=24)

    def test_accepted_just_before_expiry(self) -> None:
        issuer = SessionIssuer(KEY_1)
        token = issuer.issue(1, "a@x.com", now=T0)
        claims = issuer.validate(token, now=T0 + timedelta(hours=23, minutes=59))
        assert claims.user_id == 1

    def test_rejected_just_after_expiry(self) -> None:
        issuer = SessionIssuer(KEY_1)
        token = issuer.issue(1, "a@x.com", now=T0)
        with pytest.raises(InvalidToken):
            issuer.validate(token, now=T0 + timedelta(hours=24, minutes=1))

    def test_rejected_exactly_at_expiry(self) -> None:
        issuer = SessionIssuer(KEY_1)
        token = issuer.issue(1, "a@x.com", now=T0)
        with pytest.raises(InvalidToken):
            issuer.validate(token, now=T0 + timedelta(hours=24))

    def test_ttl_is_configurable(self) -> None:
        issuer = SessionIssuer(KEY_1, ttl=timedelta(minutes=5))
        token = issuer.issue(1, "a@x.com", now=T0)
        issuer.validate(token, now=T0 + timedelta(minutes=4))
        with pytest.raises(InvalidToken):
            issuer.validate(token, now=T0 + timedelta(minutes=6))

    def test_injected_clock_is_used(self) -> None:
        current = [T0]
        issuer = SessionIssuer(KEY_1, clock=lambda: current[0])
        token = issuer.issue(3, "c@x.com")
        issuer.validate(token)
        current[0] = T0 + timedelta(days=2)
        with pytest.raises(InvalidToken):
            issuer.validate(token)

    def test_key_rotation_invalidates_tokens(self) -> None:
        token = SessionIssuer(KEY_1).issue(1, "a@x.com", now=T0)
        with pytest.raises(InvalidToken):
            SessionIssuer(KEY_2).validate(token, now=T0)

    def test_tampered_payload_rejected(self) -> None:
        issuer = SessionIssuer(KEY_1)
        token = issuer.issue(1, "a@x.com", now=T0)
        header, payload, signature = token.split(".")
        forged = jwt.encode({"user_id": 1, "email": "a@x.com", "iat": 0, "exp": 9999999999}, KEY_2)
        forged_payload = forged.split(".")[1]
        with pytest.raises(InvalidToken):
            issuer.validate(f"{header}.{forged_payload}.{signature}", now=T0)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b", "a.b.c"])
    def test_malformed_tokens_rejected(self, token: str) -> None:
        with pytest.raises(InvalidToken):
            SessionIssuer(KEY_1).validate(token, now=T0)

    def test_missing_user_id_rejected(self) -> None:
        """A correctly signed token without our claims is still not a session."""
        token = jwt.encode({"sub": "x", "iat": T0, "exp": T0 + timedelta(hours=1)}, KEY_1, algorithm="HS256")
        with pytest.raises(InvalidToken):
            SessionIssuer(KEY_1).validate(token, now=T0)

    def test_all_failures_share_one_message(self) -> None:
        issuer = SessionIssuer(KEY_1)
        expired = issuer.issue(1, "a@x.com", now=T0 - timedelta(days=3))
        messages = set()
        for bad in ("garbage", expired, SessionIssuer(KEY_2).issue(1, "a@x.com", now=T0)):
            with pytest.raises(InvalidToken) as exc_info:
                issuer.validate(bad, now=T0)
            messages.add(exc_info.value.message)
        assert messages == {"Authentication required."}
