# tests/unit/test_config.py
"""Unit tests for pydantic-settings based configuration."""

import pytest
from pydantic import ValidationError

from pagebuilder.config import Settings, get_settings


def test_defaults(monkeypatch):
    for name in ("PAGEBUILDER_DROP_BEFORE_RATIO", "PAGEBUILDER_DROP_AFTER_RATIO", "PAGEBUILDER_DEBUG"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.drop_before_ratio == 0.25
    assert settings.drop_after_ratio == 0.75
    assert settings.default_instance_width == "200px"
    assert settings.default_column_span == 4
    assert settings.debug is False


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("PAGEBUILDER_DROP_BEFORE_RATIO", "0.3")
    monkeypatch.setenv("PAGEBUILDER_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("PAGEBUILDER_DEBUG", "true")

    settings = Settings(_env_file=None)

    assert settings.drop_before_ratio == 0.3
    assert settings.log_level == "DEBUG"
    assert settings.debug is True


def test_ratios_must_be_ordered():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, drop_before_ratio=0.8, drop_after_ratio=0.2)


def test_ratio_bounds():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, drop_before_ratio=0.0)


def test_get_settings_is_cached():
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()


def test_unknown_keys_are_ignored():
    settings = Settings(_env_file=None, environment="production")

    assert not hasattr(settings, "environment")
