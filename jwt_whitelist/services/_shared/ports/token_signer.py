from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from jwt_whitelist.services._shared.errors import InvalidSignature, SignatureError, TokenExpired
from jwt_whitelist.services._shared.timeutils import Clock, is_past, now_utc


class TokenSigner(Protocol):
    """Port turning a claim set into an opaque signed string and back."""

    def sign(self, claims: Mapping[str, Any]) -> str:
        """
        Sign ``claims``.

        :raises SignatureError: If the claim set cannot be signed.
        """
        ...

    def verify(self, token: str, *, allow_expired: bool = False) -> dict[str, Any]:
        """
        Verify ``token`` and return its raw claims.

        :param allow_expired: Skip the ``exp`` check (used by the refresh flow).
        :raises InvalidSignature: If the token cannot be verified.
        :raises TokenExpired: If ``exp`` has passed and ``allow_expired`` is False.
        """
        ...


class StubTokenSigner(TokenSigner):
    """Deterministic signer used in unit tests."""

    def __init__(self, *, clock: Clock = now_utc) -> None:
        self._clock = clock
        self._seq = 0
        self._issued: dict[str, dict[str, Any]] = {}

    def sign(self, claims: Mapping[str, Any]) -> str:
        if not claims:
            raise SignatureError("Cannot sign an empty claim set.")
        self._seq += 1
        token = f"stub.{claims.get('sub', '-')}.{claims.get('jti', '-')}.{self._seq}"
        self._issued[token] = dict(claims)
        return token

    def verify(self, token: str, *, allow_expired: bool = False) -> dict[str, Any]:
        try:
            claims = self._issued[token]
        except KeyError:
            raise InvalidSignature("Token signature could not be verified.") from None
        if not allow_expired and "exp" in claims and is_past(claims["exp"], now=self._clock()):
            raise TokenExpired("Token has expired.")
        return dict(claims)
