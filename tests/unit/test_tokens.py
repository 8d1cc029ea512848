"""
Unit tests for the session token issuer.

Tests verify signed tokens carry identity, role and a 24-hour expiry,
and that tampered, expired or foreign tokens are rejected.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from agilehive.domain.ports import Role
from agilehive.domain.tokens import TokenError, TokenIssuer

SECRET = "unit-test-secret"


class TestIssue:
    """Tests for token issuance."""

    def test_issued_token_round_trips(self) -> None:
        """Decoding returns the id and role that were issued."""
        issuer = TokenIssuer(secret=SECRET)

        claims = issuer.decode(issuer.issue("acc-1", Role.MANAGER))

        assert claims.account_id == "acc-1"
        assert claims.role == Role.MANAGER

    def test_expiry_is_24_hours(self) -> None:
        """Default expiry is 24 hours after issuance."""
        issuer = TokenIssuer(secret=SECRET)
        before = datetime.now(timezone.utc)

        claims = issuer.decode(issuer.issue("acc-1", Role.MEMBER))

        expected = before + timedelta(hours=24)
        assert abs((claims.expires_at - expected).total_seconds()) < 5

    def test_payload_fields(self) -> None:
        """Payload holds sub, role, iat and exp."""
        issuer = TokenIssuer(secret=SECRET)

        token = issuer.issue("acc-1", Role.ADMIN)
        payload = jwt.decode(token, SECRET, algorithms=["HS256"])

        assert payload["sub"] == "acc-1"
        assert payload["role"] == "admin"
        assert payload["exp"] - payload["iat"] == 24 * 3600

    def test_role_accepts_plain_string(self) -> None:
        """Role values given as strings are accepted."""
        issuer = TokenIssuer(secret=SECRET)

        claims = issuer.decode(issuer.issue("acc-1", "member"))

        assert claims.role == Role.MEMBER

    def test_missing_secret_refuses_to_sign(self) -> None:
        """An empty secret raises TokenError instead of signing."""
        with pytest.raises(TokenError):
            TokenIssuer(secret="").issue("acc-1", Role.MEMBER)


class TestDecode:
    """Tests for token verification."""

    def test_expired_token_rejected(self) -> None:
        """A token past its expiry is rejected."""
        issuer = TokenIssuer(secret=SECRET, ttl=timedelta(seconds=-10))

        with pytest.raises(TokenError, match="expired"):
            issuer.decode(issuer.issue("acc-1", Role.MEMBER))

    def test_wrong_secret_rejected(self) -> None:
        """A token signed with another secret is rejected."""
        token = TokenIssuer(secret="other-secret").issue("acc-1", Role.MEMBER)

        with pytest.raises(TokenError):
            TokenIssuer(secret=SECRET).decode(token)

    def test_tampered_payload_rejected(self) -> None:
        """Changing the payload invalidates the signature."""
        issuer = TokenIssuer(secret=SECRET)
        header, _, signature = issuer.issue("acc-1", Role.MEMBER).split(".")
        forged_payload = jwt.encode(
            {"sub": "acc-1", "role": "admin", "exp": 9999999999}, "x", algorithm="HS256"
        ).split(".")[1]

        with pytest.raises(TokenError):
            issuer.decode(f"{header}.{forged_payload}.{signature}")

    def test_garbage_rejected(self) -> None:
        """Non-JWT strings are rejected."""
        with pytest.raises(TokenError):
            TokenIssuer(secret=SECRET).decode("not-a-token")

    def test_empty_token_rejected(self) -> None:
        """Empty tokens are rejected."""
        with pytest.raises(TokenError):
            TokenIssuer(secret=SECRET).decode("")

    def test_unknown_role_rejected(self) -> None:
        """A correctly signed token with an unknown role is rejected."""
        token = jwt.encode(
            {"sub": "acc-1", "role": "superuser", "exp": 9999999999}, SECRET, algorithm="HS256"
        )

        with pytest.raises(TokenError, match="role"):
            TokenIssuer(secret=SECRET).decode(token)

    def test_missing_subject_rejected(self) -> None:
        """Tokens without a subject are rejected."""
        token = jwt.encode({"role": "member", "exp": 9999999999}, SECRET, algorithm="HS256")

        with pytest.raises(TokenError):
            TokenIssuer(secret=SECRET).decode(token)

    def test_none_algorithm_rejected(self) -> None:
        """Unsigned tokens are rejected."""
        token = jwt.encode(
            {"sub": "acc-1", "role": "admin", "exp": 9999999999}, None, algorithm="none"
        )

        with pytest.raises(TokenError):
            TokenIssuer(secret=SECRET).decode(token)
