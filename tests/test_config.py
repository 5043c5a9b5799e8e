"""Unit tests for core/config.py -- Settings validation.

Covers:
- debug mode generates a SECRET_KEY when none is set
- production mode without SECRET_KEY refuses to start
- short keys, non-positive TTLs and out-of-range bcrypt costs are rejected
- environment variables map onto fields
"""

import pytest
from pydantic import ValidationError

from core.config import Settings

GOOD_KEY = "p" * 32


def _settings(**kwargs) -> Settings:
    # _env_file=None keeps a developer's .env out of the test.
    return Settings(_env_file=None, **kwargs)


def test_debug_generates_secret(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    settings = _settings(debug=True)
    assert len(settings.secret_key) >= 32


def test_production_requires_secret(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.setenv("DEBUG", "false")
    with pytest.raises(ValidationError):
        _settings()


def test_short_secret_rejected():
    with pytest.raises(ValidationError):
        _settings(secret_key="too-short")


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_range(rounds):
    with pytest.raises(ValidationError):
        _settings(secret_key=GOOD_KEY, bcrypt_rounds=rounds)


def test_non_positive_ttl_rejected():
    with pytest.raises(ValidationError):
        _settings(secret_key=GOOD_KEY, token_expire_seconds=0)


def test_env_mapping(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
    monkeypatch.setenv("TOKEN_EXPIRE_SECONDS", "120")
    monkeypatch.setenv("LOGIN_RATE_LIMIT", "3/minute")
    settings = _settings()
    assert settings.secret_key == GOOD_KEY
    assert settings.token_expire_seconds == 120
    assert settings.login_rate_limit == "3/minute"


def test_settings_are_frozen():
    settings = _settings(secret_key=GOOD_KEY)
    with pytest.raises(ValidationError):
        settings.debug = True
