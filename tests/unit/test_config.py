"""Unit tests for environment-driven configuration."""

from __future__ import annotations

from jwt_whitelist.core.config import (
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    env_bool,
    env_int,
    env_list,
    get_config,
    settings_from_config,
)


def test_get_config_follows_app_env(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    assert get_config() is ProductionConfig

    monkeypatch.setenv("APP_ENV", "Testing ")
    assert get_config() is TestingConfig

    monkeypatch.setenv("APP_ENV", "unknown")
    assert get_config() is DevelopmentConfig


def test_env_helpers(monkeypatch) -> None:
    monkeypatch.setenv("FLAG", "Yes")
    monkeypatch.setenv("NUM", " 42 ")
    monkeypatch.setenv("NONE_NUM", "none")
    monkeypatch.setenv("ITEMS", "role, tenant,,scope ")
    monkeypatch.delenv("MISSING", raising=False)

    assert env_bool("FLAG") is True
    assert env_bool("MISSING", True) is True
    assert env_int("NUM", 0) == 42
    assert env_int("NONE_NUM", 60) is None
    assert env_int("MISSING", 7) == 7
    assert env_list("ITEMS") == ("role", "tenant", "scope")
    assert env_list("MISSING", ("sub",)) == ("sub",)


def test_settings_from_config_class() -> None:
    settings = settings_from_config(TestingConfig)

    assert settings.grace_period_seconds == TestingConfig.WHITELIST_GRACE_PERIOD
    assert settings.refresh_window_minutes == TestingConfig.JWT_REFRESH_TTL_MINUTES
    assert settings.registry_key_claim == TestingConfig.WHITELIST_KEY_CLAIM


def test_settings_from_mapping_falls_back_to_defaults() -> None:
    settings = settings_from_config(
        {
            "WHITELIST_GRACE_PERIOD": 15,
            "WHITELIST_KEY_CLAIM": "sid",
            "JWT_PERSISTENT_CLAIMS": ["role"],
            "JWT_TTL_MINUTES": None,
            "JWT_REFRESH_TTL_MINUTES": 30,
        }
    )

    assert settings.grace_period_seconds == 15
    assert settings.registry_key_claim == "sid"
    assert settings.persistent_claims == ("role",)
    assert settings.ttl_minutes is None
    assert settings.refresh_window_minutes == 30
    assert settings.required_claims == tuple(TestingConfig.JWT_REQUIRED_CLAIMS)
