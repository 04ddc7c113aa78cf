from __future__ import annotations

import pytest

import config
from core.exceptions import ConfigurationError


def test_session_profiles() -> None:
    assert config.resolve_session_ttl("standard") == 172800
    assert config.resolve_session_ttl("extended") == 604800


def test_override_wins_over_profile() -> None:
    assert config.resolve_session_ttl("standard", "3600") == 3600


@pytest.mark.parametrize("override", ["abc", "0", "-5"])
def test_invalid_override(override: str) -> None:
    with pytest.raises(ConfigurationError):
        config.resolve_session_ttl("standard", override)


def test_unknown_profile() -> None:
    with pytest.raises(ConfigurationError, match="standard, extended"):
        config.resolve_session_ttl("forever")


def test_loaded_defaults() -> None:
    assert config.SESSION_TTL_SECONDS == 172800
    assert config.RETENTION_WINDOW_SECONDS == 86400
    assert config.JWT_ALGORITHM == "HS256"
    assert config.APP_TAG == "access-gate"
