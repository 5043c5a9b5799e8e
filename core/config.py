"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for OrgAdmin happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  Explicit injection: only the composition roots (api/main.py lifespan and
      the main.py CLI) call get_settings(). Everything below them -- the token
      service, the login flow, the stores -- receives the values it needs as
      constructor or function arguments, so nothing reads config ad hoc.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Dev mode generates a SECRET_KEY with a
      warning; production mode refuses to start without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT HS256 signing
  relies on key entropy -- a short key makes forged session tokens feasible.

  BCRYPT_ROUNDS defaults to 12. The test suite lowers it to 4 (bcrypt's
  minimum) through the environment; production deployments should not.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or org/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("orgadmin.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'orgadmin.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `token_expire_seconds` reads from
    TOKEN_EXPIRE_SECONDS.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Session tokens live exactly this long after issue (default 24h).
    token_expire_seconds: int = 24 * 3600
    bcrypt_rounds: int = 12
    login_rate_limit: str = "10/minute"

    # Bootstrap account used by `python main.py create-admin` and
    # `regenerate-admin-password`.
    admin_username: str = "admin"
    admin_email: str = "admin@example.com"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="before")
    @classmethod
    def generate_dev_secret(cls, data):
        """Fill in a random SECRET_KEY in debug mode before the model freezes.

        The frozen model cannot be mutated in an after-validator, so the dev
        key is injected into the raw input instead. Production mode is left
        alone here and rejected by validate_secret_key() below.
        """
        if not isinstance(data, dict):
            return data
        debug = str(data.get("debug", "")).strip().lower() in ("1", "true", "yes", "on")
        if debug and not data.get("secret_key"):
            data = {**data, "secret_key": secrets.token_hex(32)}
            logger.warning("WARNING: Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
        return data

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY and hashing policy.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing. A missing key in production means sessions
            would be invalidated on every restart, which breaks auth silently.

        Both modes: reject keys shorter than 32 characters, a non-positive
            token lifetime, and bcrypt cost factors outside 4..31.
        """
        if not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required in production mode. "
                "Set SECRET_KEY in your environment or .env file. "
                "To run in development mode, set DEBUG=true."
            )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.token_expire_seconds <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be positive.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    Only composition roots call this; components receive Settings (or the
    values derived from it) explicitly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
