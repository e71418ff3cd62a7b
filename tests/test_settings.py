"""Tests for environment-backed settings."""

import pytest
from pydantic import ValidationError

from FetchKit.network import policy
from FetchKit.settings import (
    FetchSettings,
    LoggingConfiguration,
    get_settings,
    invalidate_settings_cache,
)


def test_defaults_mirror_policy_constants():
    settings = FetchSettings()
    assert settings.user_agent == policy.DEFAULT_USER_AGENT
    assert settings.max_redirect_hops == policy.MAX_REDIRECT_HOPS == 5
    assert settings.async_workers == policy.ASYNC_WORKERS
    assert settings.max_connections == policy.MAX_CONNECTIONS
    assert settings.verify_tls is True
    assert settings.logging.level == "WARNING"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("FETCHKIT_USER_AGENT", "custom-agent/9")
    monkeypatch.setenv("FETCHKIT_MAX_REDIRECT_HOPS", "3")
    monkeypatch.setenv("FETCHKIT_VERIFY_TLS", "false")
    monkeypatch.setenv("FETCHKIT_LOGGING__LEVEL", "debug")

    settings = FetchSettings()
    assert settings.user_agent == "custom-agent/9"
    assert settings.max_redirect_hops == 3
    assert settings.verify_tls is False
    assert settings.logging.level == "DEBUG"


def test_invalid_values_rejected(monkeypatch):
    monkeypatch.setenv("FETCHKIT_MAX_REDIRECT_HOPS", "0")
    with pytest.raises(ValidationError):
        FetchSettings()


def test_invalid_log_level():
    with pytest.raises(ValidationError):
        LoggingConfiguration(level="LOUD")


def test_settings_are_memoised_until_invalidated(monkeypatch):
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("FETCHKIT_ASYNC_WORKERS", "3")
    assert get_settings().async_workers == policy.ASYNC_WORKERS

    invalidate_settings_cache()
    assert get_settings().async_workers == 3
