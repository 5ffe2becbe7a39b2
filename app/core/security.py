"""
Password hashing (bcrypt) and JWT issue / verification.

Tokens carry ``sub`` (principal id), ``type`` (``access`` or ``reset``),
``jti``, ``iat`` and ``exp``.  A token minted for one purpose is never
accepted for the other.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError
from passlib.context import CryptContext

from app.core.config import Settings, settings
from app.schemas.token import TokenPayload

ACCESS_TOKEN = "access"
RESET_TOKEN = "reset"
_REQUIRED_CLAIMS = frozenset({"sub", "type", "iat", "exp"})

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


# ── JWT tokens ──────────────────────────────────────────────────────
class TokenError(Exception):
    """Base class for every token verification failure."""

    reason = "invalid"


class MalformedTokenError(TokenError):
    reason = "malformed"


class TokenSignatureError(TokenError):
    reason = "bad signature"


class TokenExpiredError(TokenError):
    reason = "expired"


@dataclass(frozen=True)
class TokenConfig:
    secret_key: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=60)
    reset_ttl: timedelta = timedelta(minutes=60)

    @classmethod
    def from_settings(cls, s: Settings) -> TokenConfig:
        return cls(
            secret_key=s.SECRET_KEY,
            algorithm=s.ALGORITHM,
            access_ttl=timedelta(minutes=s.ACCESS_TOKEN_EXPIRE_MINUTES),
            reset_ttl=timedelta(minutes=s.RESET_TOKEN_EXPIRE_MINUTES),
        )


class TokenService:
    """Signs and verifies time-limited bearer and password-reset tokens."""

    def __init__(self, config: TokenConfig) -> None:
        self.config = config

    def issue(
        self,
        subject: str | Any,
        ttl: timedelta | None = None,
        token_type: str = ACCESS_TOKEN,
    ) -> str:
        now = datetime.now(timezone.utc)
        if ttl is None:
            ttl = self.config.reset_ttl if token_type == RESET_TOKEN else self.config.access_ttl
        claims = {
            "sub": str(subject),
            "type": token_type,
            "jti": secrets.token_hex(8),
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(claims, self.config.secret_key, algorithm=self.config.algorithm)

    def issue_access_token(self, subject: str | Any) -> str:
        return self.issue(subject, self.config.access_ttl, ACCESS_TOKEN)

    def issue_reset_token(self, subject: str | Any) -> str:
        return self.issue(subject, self.config.reset_ttl, RESET_TOKEN)

    def verify(self, token: str, token_type: str = ACCESS_TOKEN) -> TokenPayload:
        """Return the decoded claims or raise a :class:`TokenError` subclass.

        The subclass tells *why* verification failed; callers facing a
        client must collapse all of them into a single "invalid or
        expired" answer.
        """
        try:
            unverified = jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise MalformedTokenError(str(exc)) from exc
        missing = _REQUIRED_CLAIMS - unverified.keys()
        if missing:
            raise MalformedTokenError(f"missing claims: {sorted(missing)}")

        try:
            claims = jwt.decode(token, self.config.secret_key, algorithms=[self.config.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpiredError(str(exc)) from exc
        except JWTClaimsError as exc:
            raise MalformedTokenError(str(exc)) from exc
        except JWTError as exc:
            raise TokenSignatureError(str(exc)) from exc

        if claims.get("type") != token_type:
            raise MalformedTokenError(
                f"expected a {token_type} token, got {claims.get('type')!r}"
            )
        return TokenPayload.model_validate(claims)


token_service = TokenService(TokenConfig.from_settings(settings))
