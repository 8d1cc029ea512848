"""
Session token issuer.

Issues and verifies signed JWTs that carry an account id and role.
Tokens are stateless: validity depends only on signature and expiry.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from .ports import Role


class TokenError(ValueError):
    pass


@dataclass(frozen=True)
class TokenClaims:
    account_id: str
    role: Role
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TokenIssuer:
    """Signs and verifies session tokens with a shared secret."""

    secret: str
    algorithm: str = "HS256"
    ttl: timedelta = timedelta(hours=24)

    def issue(self, account_id: str, role: Role) -> str:
        if not self.secret:
            raise TokenError("JWT secret is not configured")
        now = _utcnow()
        expires_at = now + self.ttl
        payload = {
            "sub": str(account_id),
            "role": Role(role).value,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> TokenClaims:
        if not token:
            raise TokenError("Token is missing")
        if not self.secret:
            raise TokenError("JWT secret is not configured")
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenError("Invalid token") from exc

        try:
            role = Role(payload.get("role"))
        except ValueError as exc:
            raise TokenError("Invalid token role") from exc

        return TokenClaims(
            account_id=payload["sub"],
            role=role,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
