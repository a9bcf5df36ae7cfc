# jwt_whitelist/services/tokens/dto.py
from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from jwt_whitelist.services._shared.errors import InvalidToken

# ------------------------------ Claims ------------------------------------ #


class ClaimSet(Mapping[str, Any]):
    """
    Immutable, ordered mapping of claim name to value.

    Standard claims are ``sub``, ``iat``, ``exp`` (optional, absence means the
    token never expires) and ``jti``. Equality is plain mapping equality, so a
    :class:`ClaimSet` compares equal to a ``dict`` holding the same claims.
    """

    __slots__ = ("_claims",)

    def __init__(self, claims: Mapping[str, Any] | None = None) -> None:
        self._claims: dict[str, Any] = dict(claims or {})

    def __getitem__(self, name: str) -> Any:
        return self._claims[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._claims)

    def __len__(self) -> int:
        return len(self._claims)

    def __repr__(self) -> str:
        return f"ClaimSet({self._claims!r})"

    def select(self, names: Iterable[str]) -> dict[str, Any]:
        """
        Pick the named claims that are present, in the order given.

        :param names: Claim names; duplicates are ignored.
        :returns: New ordered dict.
        """
        picked: dict[str, Any] = {}
        for name in names:
            if name in self._claims and name not in picked:
                picked[name] = self._claims[name]
        return picked


@dataclass(frozen=True, slots=True)
class Token:
    """
    Opaque signed token string.

    :param value: Signed representation produced by the signer.
    :type value: str
    :raises InvalidToken: If ``value`` is not a non-empty string.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise InvalidToken("Token value must be a non-empty string.")

    def __str__(self) -> str:
        return self.value


# --------------------------- Per-call context ------------------------------ #


@dataclass(frozen=True, slots=True)
class OperationContext:
    """
    State scoped to one logical token operation.

    Each call into the manager builds its own context and threads it into the
    claim builder, so concurrent callers never observe each other's flags.

    :param refresh_flow: True while decoding inside a refresh.
    :type refresh_flow: bool
    :param custom_claims: Extra claims for the token minted by a refresh;
        other operations mint nothing and ignore them.
    :type custom_claims: Mapping[str, Any]
    """

    refresh_flow: bool = False
    custom_claims: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def for_refresh(cls, custom_claims: Mapping[str, Any] | None = None) -> OperationContext:
        return cls(refresh_flow=True, custom_claims=MappingProxyType(dict(custom_claims or {})))


# ------------------------------ Settings ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LifecycleSettings:
    """
    Token lifecycle configuration.

    :param grace_period_seconds: Delay before a whitelisted entry is in force.
    :param refresh_window_minutes: Minutes after ``iat`` a token stays refreshable.
    :param registry_key_claim: Claim identifying the registry entry.
    :param persistent_claims: Claims carried forward on refresh (``sub`` and
        ``iat`` are always carried).
    :param ttl_minutes: Lifetime of minted tokens; ``None`` mints tokens
        without ``exp``.
    :param leeway_seconds: Clock skew tolerated on time-based claims.
    :param required_claims: Claims every built claim set must hold.
    :param issuer: Optional ``iss`` stamped on minted claim sets.
    """

    grace_period_seconds: int = 0
    refresh_window_minutes: int = 20160
    registry_key_claim: str = "jti"
    persistent_claims: tuple[str, ...] = ()
    ttl_minutes: int | None = 60
    leeway_seconds: int = 0
    required_claims: tuple[str, ...] = ("sub", "iat", "jti")
    issuer: str | None = None
