from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Any, Protocol

from jwt_whitelist.services._shared.timeutils import Clock, now_utc


class KeyValueStore(Protocol):
    """
    Abstraction for the durable store behind the whitelist.

    Every call is a single-key operation; implementations own their own
    timeout/retry policy and raise
    :class:`~jwt_whitelist.services._shared.errors.StoreUnavailable` on failure.
    """

    def put(self, key: str, value: Any, ttl_minutes: int) -> None: ...
    def put_forever(self, key: str, value: Any) -> None: ...
    def get(self, key: str) -> Any | None: ...
    def delete(self, key: str) -> bool: ...
    def flush(self) -> None: ...


class InMemoryKeyValueStore(KeyValueStore):
    """
    In-memory store with per-key TTL.

    .. note::
       Uses a threading lock so concurrent callers see single-key atomicity.
       Expired entries are evicted lazily on read.
    """

    def __init__(self, *, clock: Clock = now_utc) -> None:
        self._clock = clock
        self._data: dict[str, tuple[Any, datetime | None]] = {}
        self._lock = threading.Lock()

    def put(self, key: str, value: Any, ttl_minutes: int) -> None:
        expires_at = self._clock() + timedelta(minutes=max(1, int(ttl_minutes)))
        with self._lock:
            self._data[key] = (value, expires_at)

    def put_forever(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = (value, None)

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and expires_at <= self._clock():
                del self._data[key]
                return None
            return value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def flush(self) -> None:
        with self._lock:
            self._data.clear()

    def ttl(self, key: str) -> timedelta | None:
        """Remaining lifetime of ``key`` (``None`` when absent or stored forever)."""
        with self._lock:
            item = self._data.get(key)
        if item is None or item[1] is None:
            return None
        return item[1] - self._clock()
