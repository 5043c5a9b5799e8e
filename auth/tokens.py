"""
auth/tokens.py -- Session token issue, verification, and header parsing.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the user id as "sub", the role and
       enterprise ids denormalized at login, "iat", and an "exp" of exactly
       iat + TTL. Verification returns None on any failure -- the resolver
       turns that into Unauthenticated and the route layer into a 401.

  Self-contained: verify() never touches the database. Whether the account is
       still active, and which role it holds now, is re-checked by
       auth/resolver.py on every request. The role/enterprise claims are not
       used for authorization.

  Configuration: TokenService is built once from Settings at startup and
       holds the secret and TTL for the process lifetime. Nothing here calls
       get_settings() -- tests construct a TokenService with their own key.

  Revocation: none. A token stays valid until it expires; logout is a
       client-side discard.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import JWTError, jwt

from auth.models import TokenClaims

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("orgadmin.auth")

_ALGORITHM = "HS256"
_BEARER_PREFIX = "Bearer "


class TokenService:
    """Issues and verifies signed, time-bounded session tokens.

    Usage:
        tokens = TokenService(secret_key=settings.secret_key, ttl_seconds=settings.token_expire_seconds)
        token = tokens.issue(subject=user.id, role_id=user.role_id, enterprise_id=user.enterprise_id)
        claims = tokens.verify(token)  # TokenClaims or None
    """

    def __init__(self, secret_key: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._secret_key = secret_key
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenService:
        return cls(secret_key=settings.secret_key, ttl_seconds=settings.token_expire_seconds)

    def issue(
        self,
        subject: int,
        role_id: int | None,
        enterprise_id: int | None,
        username: str = "",
        issued_at: datetime | None = None,
    ) -> str:
        """Encode a signed JWT for the given identity claims.

        issued_at defaults to now. It is a parameter so tests can mint tokens
        that sit just inside or just outside the TTL window.
        """
        iat = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": str(subject),
            "role_id": role_id,
            "enterprise_id": enterprise_id,
            "username": username,
            "iat": iat,
            "exp": iat + timedelta(seconds=self.ttl_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims | None:
        """Check signature and expiry. Returns the claims, or None on any failure.

        Malformed tokens, foreign signatures, expired tokens, and tokens whose
        claims are missing or of the wrong type all come back as None. A token
        is either fully trusted or not trusted at all.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError:
            return None
        try:
            return TokenClaims(
                subject=int(payload["sub"]),
                role_id=_optional_int(payload.get("role_id")),
                enterprise_id=_optional_int(payload.get("enterprise_id")),
                issued_at=int(payload["iat"]),
                expires_at=int(payload["exp"]),
                username=str(payload.get("username") or ""),
            )
        except (KeyError, TypeError, ValueError):
            logger.warning("Rejected signed token with malformed claims")
            return None


def extract_bearer_token(header: str | None) -> str | None:
    """Return the token from an "Authorization: Bearer <token>" header value.

    None when the header is absent, uses another scheme, or carries an empty
    token. Pure parsing -- no verification happens here.
    """
    if not header or not header.startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def _optional_int(value) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("boolean is not a valid id")
    return int(value)
