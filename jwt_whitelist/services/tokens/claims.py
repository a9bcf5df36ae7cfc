# jwt_whitelist/services/tokens/claims.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

from jwt_whitelist.services._shared.errors import InvalidClaims, TokenExpired
from jwt_whitelist.services._shared.ports.claim_builder import ClaimSetBuilder
from jwt_whitelist.services._shared.timeutils import (
    Clock,
    is_future,
    is_past,
    now_utc,
    to_datetime,
    to_timestamp,
)
from jwt_whitelist.services.tokens.dto import ClaimSet, LifecycleSettings

# Claims holding unix timestamps
TIME_CLAIMS = ("iat", "nbf", "exp")


class ClaimSetFactory(ClaimSetBuilder):
    """
    Default claim-set builder.

    Minting rules
    -------------
    - ``fresh=True`` always assigns a new ``jti`` and ``iat``.
    - ``mint=True`` assigns them only when missing, which keeps the
      ``sub``/``iat`` carried forward by a refresh.
    - ``exp``, ``nbf`` and ``iss`` defaults are only added while minting;
      decoded claim sets (``mint=False``) are never extended.

    Validation
    ----------
    - Required claims must be present.
    - ``iat``/``nbf`` must not lie in the future (beyond leeway).
    - Outside a refresh flow an elapsed ``exp`` raises :class:`TokenExpired`.
    - Inside a refresh flow ``exp`` is ignored and the refresh window
      (``iat + refresh_window_minutes``) is enforced instead.
    """

    def __init__(self, settings: LifecycleSettings | None = None, *, clock: Clock = now_utc) -> None:
        self.settings = settings or LifecycleSettings()
        self._clock = clock

    def build(
        self,
        raw_claims: Mapping[str, Any],
        *,
        refresh_flow: bool = False,
        extra_claims: Mapping[str, Any] | None = None,
        mint: bool = False,
        fresh: bool = False,
    ) -> ClaimSet:
        claims: dict[str, Any] = dict(raw_claims)
        if extra_claims:
            claims.update(extra_claims)

        if mint or fresh:
            self._mint(claims, now=self._clock(), fresh=fresh)

        self._validate(claims, refresh_flow=refresh_flow)
        return ClaimSet(claims)

    def set_refresh_window(self, minutes: int) -> ClaimSetFactory:
        self.settings = replace(self.settings, refresh_window_minutes=int(minutes))
        return self

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _mint(self, claims: dict[str, Any], *, now: datetime, fresh: bool) -> None:
        ts = to_timestamp(now)
        if fresh or "jti" not in claims:
            claims["jti"] = uuid4().hex
        if fresh or "iat" not in claims:
            claims["iat"] = ts
        if "nbf" not in claims:
            claims["nbf"] = ts
        if "exp" not in claims and self.settings.ttl_minutes is not None:
            claims["exp"] = to_timestamp(now + timedelta(minutes=self.settings.ttl_minutes))
        if "iss" not in claims and self.settings.issuer:
            claims["iss"] = self.settings.issuer

    def _validate(self, claims: Mapping[str, Any], *, refresh_flow: bool) -> None:
        for name in self.settings.required_claims:
            if claims.get(name) in (None, ""):
                raise InvalidClaims(name, "required claim is missing")

        for name in TIME_CLAIMS:
            if name in claims:
                try:
                    to_datetime(claims[name])
                except (TypeError, ValueError, OverflowError, OSError) as exc:
                    raise InvalidClaims(name, "must be a unix timestamp") from exc

        now = self._clock()
        leeway = self.settings.leeway_seconds

        if "iat" in claims and is_future(claims["iat"], now=now, leeway=leeway):
            raise InvalidClaims("iat", "issued-at lies in the future")
        if "nbf" in claims and is_future(claims["nbf"], now=now, leeway=leeway):
            raise InvalidClaims("nbf", "token is not yet valid")
        if "exp" in claims and "iat" in claims:
            if to_datetime(claims["exp"]) < to_datetime(claims["iat"]):
                raise InvalidClaims("exp", "expires before it was issued")

        if refresh_flow:
            if "iat" in claims:
                window_end = to_datetime(claims["iat"]) + timedelta(
                    minutes=self.settings.refresh_window_minutes
                )
                if is_past(window_end, now=now, leeway=leeway):
                    raise TokenExpired("Token has expired and can no longer be refreshed")
        elif "exp" in claims and is_past(claims["exp"], now=now, leeway=leeway):
            raise TokenExpired("Token has expired")
