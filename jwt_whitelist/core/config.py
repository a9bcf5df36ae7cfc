"""Token lifecycle settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Final

from dotenv import load_dotenv

from jwt_whitelist.services.tokens.dto import LifecycleSettings

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env during development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int | None) -> int | None:
    """Parse an integer from an environment variable.

    An empty value or the literal ``none`` yields ``None``; an unset
    variable yields ``default``.
    """
    val = os.getenv(name)
    if val is None:
        return default
    val = val.strip()
    if val == "" or val.lower() == "none":
        return None
    return int(val)


def env_list(name: str, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    """Parse a comma-separated list from an environment variable."""
    val = os.getenv(name)
    if val is None:
        return default
    return tuple(item.strip() for item in val.split(",") if item.strip())


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    JWT_SECRET_KEY: str
        Key used by ``flask-jwt-extended`` for signing tokens.
    JWT_ALGORITHM: str
        Signing algorithm (``HS256`` by default).
    JWT_TTL_MINUTES: int | None
        Lifetime of minted tokens; ``None`` mints tokens without ``exp``.
    JWT_REFRESH_TTL_MINUTES: int
        Minutes after ``iat`` during which a token may be refreshed.
    JWT_PERSISTENT_CLAIMS: tuple[str, ...]
        Claims carried forward on refresh besides ``sub`` and ``iat``.
    JWT_REQUIRED_CLAIMS: tuple[str, ...]
        Claims every claim set must hold.
    JWT_LEEWAY: int
        Clock skew tolerated on time-based claims, in seconds.
    JWT_ISSUER: str | None
        Optional ``iss`` stamped on minted tokens.
    WHITELIST_GRACE_PERIOD: int
        Seconds before a newly whitelisted token is in force.
    WHITELIST_KEY_CLAIM: str
        Claim identifying a whitelist entry.
    WHITELIST_PREFIX: str
        Redis key namespace for whitelist entries.
    REDIS_URL: str | None
        Redis connection string; the in-memory store is used when unset.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    # Secrets / signing
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

    # Lifetimes
    JWT_TTL_MINUTES = env_int("JWT_TTL_MINUTES", 60)
    JWT_REFRESH_TTL_MINUTES = env_int("JWT_REFRESH_TTL_MINUTES", 20160)

    # Claims
    JWT_PERSISTENT_CLAIMS = env_list("JWT_PERSISTENT_CLAIMS")
    JWT_REQUIRED_CLAIMS = env_list("JWT_REQUIRED_CLAIMS", ("sub", "iat", "jti"))
    JWT_LEEWAY = env_int("JWT_LEEWAY", 0)
    JWT_ISSUER = os.getenv("JWT_ISSUER") or None

    # Whitelist
    WHITELIST_GRACE_PERIOD = env_int("WHITELIST_GRACE_PERIOD", 0)
    WHITELIST_KEY_CLAIM = os.getenv("WHITELIST_KEY_CLAIM", "jti")
    WHITELIST_PREFIX = os.getenv("WHITELIST_PREFIX", "whitelist:")
    REDIS_URL = os.getenv("REDIS_URL") or None

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode.
    - Never talks to Redis; the in-memory store is used.
    - Uses a fixed signing key so tokens are reproducible across fixtures.
    """

    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = "testing-secret-key-with-enough-length-for-hs256"
    REDIS_URL = None
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def _read(config: Any, name: str) -> Any:
    if isinstance(config, Mapping):
        return config[name] if name in config else getattr(BaseConfig, name)
    return getattr(config, name, getattr(BaseConfig, name))


def settings_from_config(config: Any) -> LifecycleSettings:
    """Build :class:`LifecycleSettings` from a config class, object or mapping.

    Parameters
    ----------
    config: Any
        A config class (``BaseConfig`` subclass), an instance, or a mapping
        such as ``flask.Flask.config``. Missing keys fall back to
        :class:`BaseConfig`.
    """
    return LifecycleSettings(
        grace_period_seconds=int(_read(config, "WHITELIST_GRACE_PERIOD") or 0),
        refresh_window_minutes=int(_read(config, "JWT_REFRESH_TTL_MINUTES")),
        registry_key_claim=str(_read(config, "WHITELIST_KEY_CLAIM")),
        persistent_claims=tuple(_read(config, "JWT_PERSISTENT_CLAIMS")),
        ttl_minutes=_read(config, "JWT_TTL_MINUTES"),
        leeway_seconds=int(_read(config, "JWT_LEEWAY") or 0),
        required_claims=tuple(_read(config, "JWT_REQUIRED_CLAIMS")),
        issuer=_read(config, "JWT_ISSUER"),
    )
