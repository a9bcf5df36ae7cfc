# jwt_whitelist/services/whitelist/registry.py
from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from jwt_whitelist.services._shared.errors import InvalidClaims
from jwt_whitelist.services._shared.ports.kv_store import KeyValueStore
from jwt_whitelist.services._shared.timeutils import (
    Clock,
    is_future,
    now_utc,
    to_datetime,
    to_timestamp,
)

log = logging.getLogger(__name__)

# Value stored for entries that never expire
FOREVER = "FOREVER"


class WhitelistRegistry:
    """
    Allow-list answering "is this claim set's token currently authorized?".

    Entries are keyed by a configurable claim (``jti`` by default). A token
    with an ``exp`` claim is stored as ``{"valid_until": <unix seconds>}``
    with a storage TTL covering both its own expiry and the refresh window;
    a token without ``exp`` is stored forever.

    The ``valid_until`` stamp implements a grace period: a freshly added
    entry is not in force until ``grace_period`` seconds have elapsed.

    Store failures (:class:`~jwt_whitelist.services._shared.errors.StoreUnavailable`)
    are never retried here; they propagate to the caller.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        grace_period: int = 0,
        key: str = "jti",
        refresh_ttl: int = 20160,
        clock: Clock = now_utc,
    ) -> None:
        """
        :param store: Backing key-value store.
        :param grace_period: Seconds before a new entry is in force.
        :param key: Claim holding the entry key.
        :param refresh_ttl: Minutes after ``iat`` during which a token is refreshable.
        :param clock: Callable returning an aware "now".
        """
        self.store = store
        self._grace_period = int(grace_period)
        self._key = key
        self._refresh_ttl = int(refresh_ttl)
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Entry lifecycle
    # ------------------------------------------------------------------ #

    def add(self, claims: Mapping[str, Any]) -> bool:
        """Add the token to the whitelist (forever when it carries no ``exp``)."""
        if "exp" not in claims:
            return self.add_forever(claims)

        key = self.entry_key(claims)
        ttl = self.minutes_until_expired(claims)
        valid_until = self._grace_timestamp()
        self.store.put(key, {"valid_until": valid_until}, ttl)
        log.debug("whitelist add: key=%s ttl_minutes=%s valid_until=%s", key, ttl, valid_until)
        return True

    def add_forever(self, claims: Mapping[str, Any]) -> bool:
        """Add the token to the whitelist with no expiry."""
        key = self.entry_key(claims)
        self.store.put_forever(key, FOREVER)
        log.debug("whitelist add_forever: key=%s", key)
        return True

    def has(self, claims: Mapping[str, Any]) -> bool:
        """
        Determine whether the token is whitelisted and in force.

        :returns: True for ``FOREVER`` entries, or for entries whose
            ``valid_until`` is not in the future.
        """
        val = self.store.get(self.entry_key(claims))

        if val == FOREVER:
            return True

        if not isinstance(val, Mapping) or "valid_until" not in val:
            return False

        try:
            return not is_future(val["valid_until"], now=self._clock())
        except (TypeError, ValueError, OverflowError, OSError):
            # garbled entry
            return False

    def remove(self, claims: Mapping[str, Any]) -> bool:
        """Remove the token from the whitelist."""
        key = self.entry_key(claims)
        removed = self.store.delete(key)
        log.debug("whitelist remove: key=%s removed=%s", key, removed)
        return bool(removed)

    def clear(self) -> bool:
        """Remove every token from the whitelist."""
        self.store.flush()
        log.info("whitelist cleared")
        return True

    # ------------------------------------------------------------------ #
    # TTL arithmetic
    # ------------------------------------------------------------------ #

    def minutes_until_expired(self, claims: Mapping[str, Any]) -> int:
        """
        Minutes until the entry may be dropped from storage.

        Takes the later of ``exp`` and ``iat + refresh_ttl``, adds one minute so
        a refresh arriving at the very end of the window still finds the
        entry, and returns whole minutes (rounded up) from now.
        """
        exp = to_datetime(claims["exp"])
        candidate = exp
        if "iat" in claims:
            candidate = max(exp, to_datetime(claims["iat"]) + timedelta(minutes=self._refresh_ttl))
        remaining = (candidate + timedelta(minutes=1)) - self._clock()
        return max(0, math.ceil(remaining.total_seconds() / 60))

    def _grace_timestamp(self) -> int:
        return to_timestamp(self._clock() + timedelta(seconds=self._grace_period))

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    def entry_key(self, claims: Mapping[str, Any]) -> str:
        """
        Return the registry key for ``claims``.

        :raises InvalidClaims: If the key claim is missing or empty.
        """
        value = claims.get(self._key)
        if value is None or value == "":
            raise InvalidClaims(self._key, "registry key claim is missing")
        return str(value)

    @property
    def grace_period(self) -> int:
        return self._grace_period

    def set_grace_period(self, seconds: int) -> WhitelistRegistry:
        self._grace_period = int(seconds)
        return self

    @property
    def key(self) -> str:
        return self._key

    def set_key(self, key: str) -> WhitelistRegistry:
        self._key = key
        return self

    @property
    def refresh_ttl(self) -> int:
        return self._refresh_ttl

    def set_refresh_ttl(self, minutes: int) -> WhitelistRegistry:
        self._refresh_ttl = int(minutes)
        return self
