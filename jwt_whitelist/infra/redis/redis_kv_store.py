# comments in English; reST docstrings
from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, cast

import redis  # type: ignore[import-untyped]

from jwt_whitelist.services._shared.errors import StoreUnavailable
from jwt_whitelist.services._shared.ports import KeyValueStore

# Keys deleted per round-trip when flushing
FLUSH_BATCH = 500


@contextmanager
def _unavailable_on_error(op: str) -> Iterator[None]:
    try:
        yield
    except redis.RedisError as exc:
        raise StoreUnavailable(f"Redis {op} failed: {exc}") from exc


@dataclass(slots=True)
class RedisKeyValueStore(KeyValueStore):
    """
    Redis-backed whitelist store.

    Values are JSON-encoded. Keys are namespaced with ``prefix`` so
    :meth:`flush` only drops whitelist entries, never the whole database.

    :param r: A Redis client (already connected).
    :param prefix: Namespace prepended to every key.
    """

    r: redis.Redis
    prefix: str = "whitelist:"

    # -------------------- helpers --------------------

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @staticmethod
    def _dump(value: Any) -> str:
        return json.dumps(value, separators=(",", ":"))

    @staticmethod
    def _load(raw: bytes | str) -> Any:
        text = raw.decode() if isinstance(raw, bytes | bytearray) else str(raw)
        try:
            return json.loads(text)
        except ValueError:
            # written by something else; hand back the plain string
            return text

    # -------------------- API ------------------------

    def put(self, key: str, value: Any, ttl_minutes: int) -> None:
        """Store ``value`` expiring after ``ttl_minutes`` (at least one minute)."""
        ttl = max(1, int(ttl_minutes)) * 60
        with _unavailable_on_error("put"):
            self.r.set(self._k(key), self._dump(value), ex=ttl)

    def put_forever(self, key: str, value: Any) -> None:
        with _unavailable_on_error("put_forever"):
            self.r.set(self._k(key), self._dump(value))

    def get(self, key: str) -> Any | None:
        with _unavailable_on_error("get"):
            raw = self.r.get(self._k(key))
        if raw is None:
            return None
        return self._load(raw)

    def delete(self, key: str) -> bool:
        with _unavailable_on_error("delete"):
            return cast(int, self.r.delete(self._k(key))) > 0

    def flush(self) -> None:
        """Delete every key under ``prefix``."""
        with _unavailable_on_error("flush"):
            batch: list[Any] = []
            for k in self.r.scan_iter(match=f"{self.prefix}*", count=FLUSH_BATCH):
                batch.append(k)
                if len(batch) >= FLUSH_BATCH:
                    self.r.delete(*batch)
                    batch.clear()
            if batch:
                self.r.delete(*batch)
