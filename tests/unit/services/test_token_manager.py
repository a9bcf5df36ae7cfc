# tests/unit/services/test_token_manager.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from jwt_whitelist.services._shared.errors import (
    InvalidSignature,
    InvalidToken,
    SignatureError,
    StoreUnavailable,
    TokenExpired,
    TokenNotWhitelisted,
)
from jwt_whitelist.services.tokens.claims import ClaimSetFactory
from jwt_whitelist.services.tokens.dto import LifecycleSettings, OperationContext, Token
from jwt_whitelist.services.tokens.manager import TokenManager
from jwt_whitelist.services.whitelist.registry import FOREVER, WhitelistRegistry


def _issue_claims(manager, clock, jti: str = "jti-a", **extra):
    claims = {"sub": "user-1", "iat": clock.ts(), "exp": clock.ts(minutes=60), "jti": jti}
    claims.update(extra)
    return manager.claim_builder.build(claims)


# ------------------------------- encode ----------------------------------- #


def test_encode_whitelists_the_token(manager, clock, store):
    claims = _issue_claims(manager, clock)
    token = manager.encode(claims)

    assert isinstance(token, Token)
    assert manager.registry.has(claims) is True
    assert store.get("jti-a") == {"valid_until": clock.ts()}


def test_decode_round_trip(manager, clock):
    claims = _issue_claims(manager, clock, role="admin")
    assert manager.decode(manager.encode(claims)) == claims


def test_issue_mints_a_fresh_claim_set(manager, clock):
    token = manager.issue(42, custom_claims={"scope": "read"})
    claims = manager.decode(token)

    assert claims["sub"] == "42"
    assert claims["scope"] == "read"
    assert claims["iat"] == clock.ts()
    assert claims["exp"] == clock.ts(minutes=60)
    assert manager.registry.has(claims) is True


def test_encode_propagates_signature_errors(manager):
    with pytest.raises(SignatureError):
        manager.encode({})


def test_token_value_must_not_be_empty():
    with pytest.raises(InvalidToken):
        Token("")


# ------------------------------- decode ----------------------------------- #


def test_decode_removed_token_is_not_whitelisted(manager, clock):
    """A revoked token fails authorization, never the signature check."""
    claims = _issue_claims(manager, clock)
    token = manager.encode(claims)
    manager.registry.remove(claims)

    # signature itself is still fine
    assert manager.raw_decode(token) == claims
    with pytest.raises(TokenNotWhitelisted):
        manager.decode(token)


def test_decode_unknown_token_fails_signature(manager):
    with pytest.raises(InvalidSignature):
        manager.decode(Token("stub.forged.token.1"))


def test_decode_expired_token(manager, clock):
    token = manager.encode(_issue_claims(manager, clock))
    clock.advance(minutes=61)
    with pytest.raises(TokenExpired):
        manager.decode(token)


def test_grace_period_blocks_decode_right_after_encode(manager, clock):
    manager.registry.set_grace_period(5)
    token = manager.encode(_issue_claims(manager, clock))

    with pytest.raises(TokenNotWhitelisted):
        manager.decode(token)
    clock.advance(seconds=5)
    assert manager.decode(token)["jti"] == "jti-a"


# ------------------------------ validate ---------------------------------- #


def test_validate_authorizes_a_signed_but_unregistered_token(manager, clock, signer):
    claims = _issue_claims(manager, clock)
    token = Token(signer.sign(claims))

    with pytest.raises(TokenNotWhitelisted):
        manager.decode(token)
    assert manager.validate(token) is True
    assert manager.decode(token) == claims


def test_token_without_exp_is_whitelisted_forever(signer, registry, store, clock):
    factory = ClaimSetFactory(LifecycleSettings(ttl_minutes=None), clock=clock)
    manager = TokenManager(signer=signer, registry=registry, claim_builder=factory)

    token = manager.issue("user-1")
    claims = manager.decode(token)

    assert "exp" not in claims
    assert store.get(claims["jti"]) == FOREVER
    clock.advance(days=400)
    assert manager.decode(token) == claims


# ----------------------------- invalidate --------------------------------- #


def test_invalidate_removes_the_entry(manager, clock):
    claims = _issue_claims(manager, clock)
    token = manager.encode(claims)

    assert manager.invalidate(token) is True
    assert manager.registry.has(claims) is False
    with pytest.raises(TokenNotWhitelisted):
        manager.decode(token)


def test_invalidate_twice_fails_authorization(manager, clock):
    token = manager.encode(_issue_claims(manager, clock))
    manager.invalidate(token)
    with pytest.raises(TokenNotWhitelisted):
        manager.invalidate(token)


# ------------------------------- refresh ---------------------------------- #


def test_refresh_scenario_with_two_week_window(manager, clock, store):
    """exp = iat + 60min, refresh window 20160: TTL 20161, old out, new in."""
    claims_a = _issue_claims(manager, clock)
    token_a = manager.encode(claims_a)
    assert manager.registry.minutes_until_expired(claims_a) == 20161
    assert manager.registry.has(claims_a) is True

    token_b = manager.refresh(token_a)
    claims_b = manager.decode(token_b)

    assert token_b != token_a
    assert claims_b["sub"] == claims_a["sub"]
    assert claims_b["iat"] == claims_a["iat"]
    assert claims_b["jti"] != claims_a["jti"]
    assert manager.registry.has(claims_a) is False
    assert manager.registry.has(claims_b) is True
    assert store.get(claims_a["jti"]) is None


def test_refreshed_token_cannot_be_refreshed_again(manager, clock):
    token_a = manager.encode(_issue_claims(manager, clock))
    manager.refresh(token_a)
    with pytest.raises(TokenNotWhitelisted):
        manager.refresh(token_a)


def test_refresh_carries_persistent_and_custom_claims(manager, clock):
    manager.set_persistent_claims(["role", "tenant"])
    token = manager.encode(_issue_claims(manager, clock, role="admin", tenant="t-1", scratch="x"))

    refreshed = manager.decode(manager.refresh(token, custom_claims={"device": "d-1"}))

    assert refreshed["role"] == "admin"
    assert refreshed["tenant"] == "t-1"
    assert refreshed["device"] == "d-1"
    assert "scratch" not in refreshed


def test_persistent_claims_win_over_custom_claims(manager, clock):
    token = manager.encode(_issue_claims(manager, clock))
    refreshed = manager.decode(manager.refresh(token, custom_claims={"sub": "intruder"}))
    assert refreshed["sub"] == "user-1"


def test_build_refresh_claims_is_an_explicit_selection(manager, clock):
    manager.set_persistent_claims(["role", "missing"])
    claims = _issue_claims(manager, clock, role="admin")

    built = manager.build_refresh_claims(claims, {"device": "d-1"})

    assert built == {"device": "d-1", "role": "admin", "sub": "user-1", "iat": claims["iat"]}


def test_refresh_accepts_expired_token_inside_window(manager, clock):
    claims_a = _issue_claims(manager, clock)
    token_a = manager.encode(claims_a)
    clock.advance(hours=5)

    claims_b = manager.decode(manager.refresh(token_a))

    assert claims_b["iat"] == claims_a["iat"]
    assert claims_b["exp"] == clock.ts(minutes=60)


def test_refresh_after_window_is_rejected(manager, clock):
    claims = _issue_claims(manager, clock)
    token = manager.encode(claims)
    manager.registry.add_forever(claims)
    clock.advance(minutes=20160, seconds=1)

    with pytest.raises(TokenExpired):
        manager.refresh(token)
    # nothing was invalidated
    assert manager.registry.has(claims) is True


def test_refresh_failure_after_invalidate_revokes_everything(manager, clock, monkeypatch):
    """decode -> invalidate -> encode: a failing encode leaves no live token."""
    claims = _issue_claims(manager, clock)
    token = manager.encode(claims)

    def _boom(_claims):
        raise SignatureError("signer down")

    monkeypatch.setattr(manager.signer, "sign", _boom)

    with pytest.raises(SignatureError):
        manager.refresh(token)
    assert manager.registry.has(claims) is False


def test_store_failure_propagates_from_refresh(manager, clock, store, monkeypatch):
    token = manager.encode(_issue_claims(manager, clock))

    def _down(_key):
        raise StoreUnavailable("redis gone")

    monkeypatch.setattr(store, "get", _down)
    with pytest.raises(StoreUnavailable):
        manager.refresh(token)


def test_custom_key_claim_round_trip(signer, store, clock):
    registry = WhitelistRegistry(store, key="sid", clock=clock)
    manager = TokenManager(signer=signer, registry=registry, claim_builder=ClaimSetFactory(clock=clock))

    token = manager.issue("user-1", custom_claims={"sid": "session-1"})
    assert store.get("session-1") is not None
    assert manager.invalidate(token) is True
    assert store.get("session-1") is None


# ----------------------------- concurrency -------------------------------- #


def test_concurrent_refreshes_keep_their_own_context(manager):
    """Custom claims of one refresh never leak into another running in parallel."""
    tokens = {f"user-{i}": manager.issue(f"user-{i}") for i in range(16)}

    def _refresh(item):
        sub, token = item
        return sub, manager.refresh(token, custom_claims={"device": f"dev-{sub}"})

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_refresh, tokens.items()))

    for sub, new_token in results:
        claims = manager.decode(new_token)
        assert claims["sub"] == sub
        assert claims["device"] == f"dev-{sub}"


def test_decode_context_is_not_shared(manager, clock):
    token = manager.encode(_issue_claims(manager, clock))
    clock.advance(minutes=61)

    # an expired token is only tolerated when the caller asks for the refresh flow
    assert manager.decode(token, context=OperationContext.for_refresh())["jti"] == "jti-a"
    with pytest.raises(TokenExpired):
        manager.decode(token)


def test_interleaved_refreshes_leave_a_single_live_token(manager, clock, monkeypatch):
    """Two refreshes authorize the same token; only the one whose delete wins mints."""
    token_a = manager.encode(_issue_claims(manager, clock))
    real_remove = manager.registry.remove
    competing = []

    def _remove_after_competing_refresh(claims):
        monkeypatch.setattr(manager.registry, "remove", real_remove)
        competing.append(manager.refresh(token_a))
        return real_remove(claims)

    monkeypatch.setattr(manager.registry, "remove", _remove_after_competing_refresh)

    with pytest.raises(TokenNotWhitelisted):
        manager.refresh(token_a)

    assert len(competing) == 1
    assert manager.decode(competing[0])["sub"] == "user-1"
    with pytest.raises(TokenNotWhitelisted):
        manager.decode(token_a, context=OperationContext.for_refresh())


# ---------------------------- refresh window ------------------------------ #


def test_set_refresh_window_updates_registry_and_builder(manager, clock):
    assert manager.set_refresh_window(43200) is manager
    assert manager.refresh_window == 43200
    assert manager.registry.refresh_ttl == 43200
    assert manager.claim_builder.settings.refresh_window_minutes == 43200


def test_widened_refresh_window_allows_late_refresh(manager, clock):
    manager.set_refresh_window(43200)
    claims_a = _issue_claims(manager, clock)
    token_a = manager.encode(claims_a)
    clock.advance(days=15)

    assert manager.registry.has(claims_a) is True
    claims_b = manager.decode(manager.refresh(token_a))
    assert claims_b["iat"] == claims_a["iat"]


def test_narrowed_refresh_window_rejects_refresh(manager, clock):
    manager.set_refresh_window(120)
    claims = _issue_claims(manager, clock)
    token = manager.encode(claims)
    clock.advance(minutes=121)

    with pytest.raises(TokenExpired, match="can no longer be refreshed"):
        manager.refresh(token)
