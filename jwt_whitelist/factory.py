"""Factories wiring the token manager to its collaborators."""

from __future__ import annotations

from typing import Any

from flask import Flask

from jwt_whitelist.core.config import BaseConfig, get_config, settings_from_config
from jwt_whitelist.core.logger import configure_logging
from jwt_whitelist.services._shared.ports import InMemoryKeyValueStore, KeyValueStore
from jwt_whitelist.services._shared.timeutils import Clock, now_utc
from jwt_whitelist.services.tokens.claims import ClaimSetFactory
from jwt_whitelist.services.tokens.manager import TokenManager
from jwt_whitelist.services.whitelist.registry import WhitelistRegistry

EXTENSION_KEY = "jwt_whitelist"


def create_app(config: str | type[BaseConfig] | object | None = None) -> Flask:
    """Build the Flask application that holds the JWT signing settings."""

    app = Flask(__name__)
    app.config.from_object(get_config() if config is None else config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from jwt_whitelist.core import extensions

    extensions.init_app(app)

    return app


def create_manager(
    config: str | type[BaseConfig] | object | None = None,
    *,
    app: Flask | None = None,
    store: KeyValueStore | None = None,
    clock: Clock = now_utc,
) -> TokenManager:
    """
    Build a :class:`TokenManager` from configuration.

    :param config: Config class/object; defaults to the ``APP_ENV`` selection.
        Ignored when ``app`` is given.
    :param app: Existing Flask app whose config and JWT settings to use.
    :param store: Whitelist store; defaults to Redis when ``REDIS_URL`` is
        configured, otherwise an in-memory store.
    :param clock: Callable returning an aware "now".
    :returns: Configured manager (also registered in ``app.extensions``).
    """
    from jwt_whitelist.infra.jwt.flask_jwt_signer import FlaskJWTSigner

    if app is None:
        app = create_app(config)

    settings = settings_from_config(app.config)
    store = store or _default_store(app, clock=clock)

    registry = WhitelistRegistry(
        store,
        grace_period=settings.grace_period_seconds,
        key=settings.registry_key_claim,
        refresh_ttl=settings.refresh_window_minutes,
        clock=clock,
    )
    manager = TokenManager(
        signer=FlaskJWTSigner(app),
        registry=registry,
        claim_builder=ClaimSetFactory(settings, clock=clock),
        persistent_claims=settings.persistent_claims,
    )
    app.extensions[EXTENSION_KEY] = manager
    return manager


def _default_store(app: Flask, *, clock: Clock) -> KeyValueStore:
    client: Any = app.extensions.get("redis_client")
    if client is None:
        return InMemoryKeyValueStore(clock=clock)

    from jwt_whitelist.infra.redis.redis_kv_store import RedisKeyValueStore

    return RedisKeyValueStore(r=client, prefix=app.config.get("WHITELIST_PREFIX", "whitelist:"))
