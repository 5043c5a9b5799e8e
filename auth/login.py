"""
auth/login.py -- Password login and password reset flows.

login() outcomes:
  - missing username or password  -> 400 "Username and password are required"
                                      (no store access)
  - unknown username              -> 401 "Invalid credentials"
  - wrong password                -> 401 "Invalid credentials"
  - right password, account not
    active                        -> 401 "Account is locked or inactive"
  - success                       -> token + Identity, last_login stamped

Unknown username and wrong password are indistinguishable, in message and in
timing: an unknown username still pays for one bcrypt verification against
a dummy digest. The account-state message is only given after the password
has verified, so it cannot be used to probe which usernames are locked.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from auth.models import LoginFailure, LoginSuccess, UserStatus
from auth.passwords import DEFAULT_ROUNDS, MAX_PASSWORD_BYTES, equalize_timing, hash_password, password_too_long, verify_password

if TYPE_CHECKING:
    from auth.store import UserStore
    from auth.tokens import TokenService

logger = logging.getLogger("orgadmin.auth")

MISSING_FIELDS = LoginFailure("bad_request", "Username and password are required", status=400)
BAD_CREDENTIALS = LoginFailure("bad_credentials", "Invalid credentials")
ACCOUNT_INACTIVE = LoginFailure("account_inactive", "Account is locked or inactive")


def login(store: UserStore, tokens: TokenService, username: str | None, password: str | None) -> LoginSuccess | LoginFailure:
    """Verify credentials and issue a session token."""
    if not username or not password:
        return MISSING_FIELDS

    user = store.get_by_username(username)
    if user is None:
        equalize_timing(password)
        logger.info("Login failed for unknown username")
        return BAD_CREDENTIALS

    if not verify_password(password, user.hashed_password):
        logger.info("Login failed for username=%s: bad password", username)
        return BAD_CREDENTIALS

    if user.status != UserStatus.active.value:
        logger.info("Login refused for username=%s: account %s", username, user.status)
        return ACCOUNT_INACTIVE

    store.update_last_login(user.id)
    token = tokens.issue(
        subject=user.id,
        role_id=user.role_id,
        enterprise_id=user.enterprise_id,
        username=user.username,
    )
    refreshed = store.get_by_id(user.id) or user
    logger.info("Login succeeded for username=%s", username)
    return LoginSuccess(token=token, identity=refreshed.to_identity(), expires_in=tokens.ttl_seconds)


def reset_password(store: UserStore, email: str | None, new_password: str | None, rounds: int = DEFAULT_ROUNDS) -> LoginFailure | None:
    """Re-hash new_password and overwrite the digest of the account with this email.

    Returns None on success, or a LoginFailure describing why nothing changed.
    """
    if not email or not new_password:
        return LoginFailure("bad_request", "Email and new password are required", status=400)
    if password_too_long(new_password):
        return LoginFailure("bad_request", f"Password must be at most {MAX_PASSWORD_BYTES} bytes", status=400)
    if not store.set_password_by_email(email, hash_password(new_password, rounds=rounds)):
        return LoginFailure("not_found", "User not found", status=404)
    logger.info("Password reset for account with email on file")
    return None
