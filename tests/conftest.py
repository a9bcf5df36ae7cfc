"""Pytest fixtures wiring the token lifecycle to in-memory doubles.

Time is driven by :class:`tests.helpers.clock.FakeClock`, shared by the
store, registry, signer and claim factory of each test.
"""

from __future__ import annotations

import pytest
from jwt_whitelist.core.config import TestingConfig
from jwt_whitelist.factory import create_app
from jwt_whitelist.services._shared.ports import InMemoryKeyValueStore, StubTokenSigner
from jwt_whitelist.services.tokens.claims import ClaimSetFactory
from jwt_whitelist.services.tokens.dto import LifecycleSettings
from jwt_whitelist.services.tokens.manager import TokenManager
from jwt_whitelist.services.whitelist.registry import WhitelistRegistry

from tests.helpers.clock import FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    """Fresh clock pinned to 2026-01-01 12:00 UTC."""
    return FakeClock()


@pytest.fixture()
def store(clock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture()
def registry(store, clock) -> WhitelistRegistry:
    """Registry with no grace period and the default two-week refresh window."""
    return WhitelistRegistry(store, clock=clock)


@pytest.fixture()
def settings() -> LifecycleSettings:
    return LifecycleSettings()


@pytest.fixture()
def claim_factory(settings, clock) -> ClaimSetFactory:
    return ClaimSetFactory(settings, clock=clock)


@pytest.fixture()
def signer(clock) -> StubTokenSigner:
    return StubTokenSigner(clock=clock)


@pytest.fixture()
def manager(signer, registry, claim_factory) -> TokenManager:
    """
    Build a TokenManager wired to in-memory doubles.

    .. note::
       Signer, registry and claim factory all share the ``clock`` fixture.
    """
    return TokenManager(signer=signer, registry=registry, claim_builder=claim_factory)


@pytest.fixture()
def app():
    """Flask application holding the testing JWT settings."""
    return create_app(TestingConfig)
