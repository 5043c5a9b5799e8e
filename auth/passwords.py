"""
auth/passwords.py -- bcrypt password hashing and verification.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler and has no
compatibility shim.

Both functions are pure: no I/O, no configuration reads. The cost factor is
passed in by the caller (Settings.bcrypt_rounds, default 12).

bcrypt only accepts plaintext up to 72 bytes of UTF-8. The API models reject
longer passwords with a 422 before they get here; the CLI prompt checks the
same limit.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

import logging

import bcrypt

logger = logging.getLogger("orgadmin.auth")

DEFAULT_ROUNDS = 12
MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    """True if bcrypt would refuse this plaintext."""
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt digest of the given plaintext password.

    Every call draws a fresh salt, so hashing the same password twice yields
    two different digests; both verify.

    Raises ValueError for a plaintext over MAX_PASSWORD_BYTES; callers
    validate the length first.
    """
    if password_too_long(plain):
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt digest.

    A wrong password is an ordinary False, and so is a plaintext too long to
    ever have been hashed. A digest that is not a bcrypt string at all is also
    False, but logged: it points at corrupt data, not at the person logging in.
    """
    if password_too_long(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        logger.warning("Stored password digest is malformed; treating as mismatch")
        return False


# Timing equalization dummy hash.
# Computed once at import so the first login attempt is not measurably slower
# than later ones. The login flow verifies against this digest when the
# username does not exist, so "unknown user" costs the same bcrypt work as
# "wrong password".
_DUMMY_HASH: str = hash_password("orgadmin_timing_dummy")


def equalize_timing(plain: str) -> None:
    """Burn one bcrypt verification so a failed lookup is not faster than a bad password."""
    verify_password(plain, _DUMMY_HASH)
