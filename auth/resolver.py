"""
auth/resolver.py -- Turn an Authorization header into the current Identity.

Each call runs three checks in order and returns a value, never raises for
an auth failure:

  1. A Bearer token must be present          -> "Access token required"
  2. It must verify (signature + expiry)     -> "Invalid or expired token"
  3. Its subject must be an ACTIVE user now  -> "User not found or inactive"

Step 3 reads the user store on every request. Token claims say who the user
was at login; only the store says whether the account is still active and
which role it holds today. A locked account is reported with the same
generic message as a deleted one.

Storage errors propagate unchanged -- the catch-all handler in api/main.py
turns them into a 500.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

import logging
from typing import Protocol

from auth.models import Identity, Unauthenticated
from auth.tokens import TokenService, extract_bearer_token

logger = logging.getLogger("orgadmin.auth")

MISSING_TOKEN = "Access token required"
INVALID_TOKEN = "Invalid or expired token"
INACTIVE_USER = "User not found or inactive"


class IdentityLookup(Protocol):
    def get_active_identity(self, user_id: int) -> Identity | None: ...


class IdentityResolver:
    """Authenticate one request. Stateless apart from its two collaborators."""

    def __init__(self, tokens: TokenService, users: IdentityLookup) -> None:
        self._tokens = tokens
        self._users = users

    def resolve(self, authorization: str | None) -> Identity | Unauthenticated:
        token = extract_bearer_token(authorization)
        if token is None:
            return Unauthenticated(MISSING_TOKEN)

        claims = self._tokens.verify(token)
        if claims is None:
            return Unauthenticated(INVALID_TOKEN)

        identity = self._users.get_active_identity(claims.subject)
        if identity is None:
            logger.info("Token for user id=%s rejected: account missing or not active", claims.subject)
            return Unauthenticated(INACTIVE_USER)
        return identity
