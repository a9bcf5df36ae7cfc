from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from jwt_whitelist.services.tokens.dto import ClaimSet


class ClaimSetBuilder(Protocol):
    """Port assembling a :class:`ClaimSet` from raw claims."""

    def build(
        self,
        raw_claims: Mapping[str, Any],
        *,
        refresh_flow: bool = False,
        extra_claims: Mapping[str, Any] | None = None,
        mint: bool = False,
        fresh: bool = False,
    ) -> ClaimSet:
        """
        Build and validate a claim set.

        :param raw_claims: Decoded or caller-supplied claims.
        :param refresh_flow: True when called while decoding inside a refresh.
        :param extra_claims: Custom claims merged over ``raw_claims``.
        :param mint: Fill missing default claims (``jti``, ``iat``, ``exp``...).
            Decoded claim sets are built with ``mint=False`` and never extended.
        :param fresh: Assign a new ``jti``/``iat`` even when present (implies
            ``mint``). With ``mint`` alone, carried-forward ``sub``/``iat`` survive.
        """
        ...

    def set_refresh_window(self, minutes: int) -> ClaimSetBuilder:
        """Set the minutes after ``iat`` during which a refresh is accepted."""
        ...
