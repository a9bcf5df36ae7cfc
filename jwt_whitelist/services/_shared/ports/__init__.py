"""
jwt_whitelist.services._shared.ports
====================================

Collection of *ports* (hexagonal interfaces) that define the contracts the
token lifecycle depends on.

Modules
-------
- :mod:`token_signer`:
    Defines :class:`~.TokenSigner` — turns claims into an opaque token and back.

- :mod:`kv_store`:
    Defines :class:`~.KeyValueStore` — single-key store with TTL and
    "store forever" semantics backing the whitelist.

- :mod:`claim_builder`:
    Defines :class:`~.ClaimSetBuilder` — assembles validated claim sets.

Design Notes
------------
Concrete adapters (Redis, Flask-JWT-Extended) live under
``jwt_whitelist.infra``; the in-memory doubles here are used by unit tests
and as the default store when no Redis URL is configured.
"""

from __future__ import annotations

from .claim_builder import ClaimSetBuilder
from .kv_store import InMemoryKeyValueStore, KeyValueStore
from .token_signer import StubTokenSigner, TokenSigner

__all__ = [
    "TokenSigner",
    "KeyValueStore",
    "ClaimSetBuilder",
    "InMemoryKeyValueStore",
    "StubTokenSigner",
]
