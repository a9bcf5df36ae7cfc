# jwt_whitelist/services/tokens/manager.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from jwt_whitelist.core.logger import operation_scope
from jwt_whitelist.services._shared.errors import TokenNotWhitelisted
from jwt_whitelist.services._shared.ports.claim_builder import ClaimSetBuilder
from jwt_whitelist.services._shared.ports.token_signer import TokenSigner
from jwt_whitelist.services.tokens.dto import ClaimSet, OperationContext, Token
from jwt_whitelist.services.whitelist.registry import WhitelistRegistry

log = logging.getLogger(__name__)

# Always carried forward on refresh
BASE_PERSISTENT_CLAIMS = ("sub", "iat")


class TokenManager:
    """
    Token lifecycle orchestrator (encode / decode / refresh / invalidate / validate).

    The manager is the only component that sees both the signer and the
    whitelist registry. Decoding is the single enforcement point: a token
    decodes successfully only while the registry holds a live entry for it.

    The manager keeps no per-operation state. The refresh flag and custom
    claims travel in an :class:`OperationContext` created for each call, so
    one instance can serve concurrent callers once configured.
    """

    def __init__(
        self,
        *,
        signer: TokenSigner,
        registry: WhitelistRegistry,
        claim_builder: ClaimSetBuilder,
        persistent_claims: Iterable[str] = (),
    ) -> None:
        """
        Initialize the manager with its collaborators.

        :param signer: Adapter turning claims into signed tokens and back.
        :param registry: Whitelist backing the authorization state.
        :param claim_builder: Builder assembling/validating claim sets.
        :param persistent_claims: Claims to carry forward on refresh.
        """
        self.signer = signer
        self.registry = registry
        self.claim_builder = claim_builder
        self._persistent_claims: tuple[str, ...] = tuple(persistent_claims)

    # ------------------------------------------------------------------ #
    # Issue / encode
    # ------------------------------------------------------------------ #

    def issue(self, subject: int | str, *, custom_claims: Mapping[str, Any] | None = None) -> Token:
        """
        Mint a brand-new claim set for ``subject`` and encode it.

        :param subject: Value of the ``sub`` claim.
        :param custom_claims: Extra claims merged into the new claim set.
        :returns: Whitelisted token.
        """
        with operation_scope():
            claims = self.claim_builder.build(
                {"sub": str(subject)}, extra_claims=custom_claims, fresh=True
            )
            token = self.encode(claims)
            log.info(
                "token issued",
                extra={"operation": "issue", "jti": claims.get("jti"), "sub": claims.get("sub")},
            )
            return token

    def encode(self, claims: Mapping[str, Any], *, context: OperationContext | None = None) -> Token:
        """
        Sign ``claims`` and whitelist the resulting token.

        Every successful encode also registers the token; an unregistered
        token is never returned.

        :raises SignatureError: If the signer cannot sign the claims.
        :raises StoreUnavailable: If the registry cannot be written.
        """
        with operation_scope():
            token = Token(self.signer.sign(dict(claims)))
            self.validate(token, context=context)
            return token

    # ------------------------------------------------------------------ #
    # Decode
    # ------------------------------------------------------------------ #

    def decode(self, token: Token, *, context: OperationContext | None = None) -> ClaimSet:
        """
        Verify ``token`` and check that it is whitelisted.

        :raises TokenNotWhitelisted: If the registry holds no live entry.
        :raises InvalidSignature: If the signer rejects the token.
        :raises TokenExpired: If the token (or its refresh window) has expired.
        """
        with operation_scope():
            claims = self.raw_decode(token, context=context)
            if not self.registry.has(claims):
                log.warning(
                    "token not whitelisted",
                    extra={"operation": "decode", "jti": claims.get("jti"), "sub": claims.get("sub")},
                )
                raise TokenNotWhitelisted("The token has not been stored")
            return claims

    def raw_decode(self, token: Token, *, context: OperationContext | None = None) -> ClaimSet:
        """Verify ``token`` and build its claim set without consulting the registry."""
        ctx = context or OperationContext()
        raw = self.signer.verify(token.value, allow_expired=ctx.refresh_flow)
        return self.claim_builder.build(raw, refresh_flow=ctx.refresh_flow)

    # ------------------------------------------------------------------ #
    # Refresh
    # ------------------------------------------------------------------ #

    def refresh(self, token: Token, *, custom_claims: Mapping[str, Any] | None = None) -> Token:
        """
        Re-issue ``token``, carrying forward its persistent claims.

        Order: decode and authorize the old token, remove it from the
        whitelist, then encode and register the new one. A failure after the
        removal leaves the subject with no authorized token.

        Only the caller whose removal actually deleted the old entry goes on
        to mint; a concurrent refresh of the same token loses the race.

        :param custom_claims: Extra claims for the new token.
        :raises TokenNotWhitelisted: If the old token is not whitelisted, or
            another refresh removed it first.
        """
        with operation_scope():
            ctx = OperationContext.for_refresh(custom_claims)

            old_claims = self.decode(token, context=ctx)
            refresh_claims = self.build_refresh_claims(old_claims, ctx.custom_claims)

            if not self.invalidate(token, context=ctx):
                log.warning(
                    "token already refreshed",
                    extra={
                        "operation": "refresh",
                        "jti": old_claims.get("jti"),
                        "sub": old_claims.get("sub"),
                    },
                )
                raise TokenNotWhitelisted("The token has not been stored")

            new_claims = self.claim_builder.build(refresh_claims, mint=True)
            new_token = self.encode(new_claims)
            log.info(
                "token refreshed",
                extra={
                    "operation": "refresh",
                    "jti": new_claims.get("jti"),
                    "sub": new_claims.get("sub"),
                },
            )
            return new_token

    def build_refresh_claims(
        self, claims: ClaimSet, custom_claims: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Claims for the refreshed token: custom claims, then the persistent
        subset of ``claims`` (``sub`` and ``iat`` included).
        """
        names = (*self._persistent_claims, *BASE_PERSISTENT_CLAIMS)
        merged: dict[str, Any] = dict(custom_claims or {})
        merged.update(claims.select(names))
        return merged

    # ------------------------------------------------------------------ #
    # Whitelist transitions
    # ------------------------------------------------------------------ #

    def invalidate(self, token: Token, *, context: OperationContext | None = None) -> bool:
        """
        Remove a whitelisted token from the registry.

        :raises TokenNotWhitelisted: If the token is not whitelisted.
        """
        with operation_scope():
            claims = self.decode(token, context=context)
            removed = self.registry.remove(claims)
            log.info(
                "token invalidated",
                extra={"operation": "invalidate", "jti": claims.get("jti"), "sub": claims.get("sub")},
            )
            return removed

    def validate(self, token: Token, *, context: OperationContext | None = None) -> bool:
        """Add ``token`` to the registry (this is how a new token becomes authorized)."""
        with operation_scope():
            return self.registry.add(self.raw_decode(token, context=context))

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def persistent_claims(self) -> tuple[str, ...]:
        return self._persistent_claims

    def set_persistent_claims(self, claims: Iterable[str]) -> TokenManager:
        """Set the claims to be persisted when refreshing a token."""
        self._persistent_claims = tuple(claims)
        return self

    @property
    def refresh_window(self) -> int:
        return self.registry.refresh_ttl

    def set_refresh_window(self, minutes: int) -> TokenManager:
        """
        Set the minutes after ``iat`` during which a token may be refreshed.

        Updates both the registry's storage TTL and the builder's refresh
        check so the two never disagree.
        """
        self.registry.set_refresh_ttl(minutes)
        self.claim_builder.set_refresh_window(minutes)
        return self
