"""Bearer token lifecycle backed by a whitelist registry.

Expose the manager factory and the public types at package level so callers
can ``from jwt_whitelist import create_manager, Token`` without traversing the
package structure.
"""

from __future__ import annotations

from .factory import create_manager
from .services._shared.errors import (
    InvalidClaims,
    InvalidSignature,
    InvalidToken,
    RegistryUnavailable,
    SignatureError,
    StoreUnavailable,
    TokenError,
    TokenExpired,
    TokenNotWhitelisted,
)
from .services.tokens.dto import ClaimSet, LifecycleSettings, OperationContext, Token
from .services.tokens.manager import TokenManager
from .services.whitelist.registry import FOREVER, WhitelistRegistry

__all__ = [
    "create_manager",
    "TokenManager",
    "WhitelistRegistry",
    "FOREVER",
    "ClaimSet",
    "Token",
    "OperationContext",
    "LifecycleSettings",
    "TokenError",
    "TokenNotWhitelisted",
    "InvalidSignature",
    "TokenExpired",
    "SignatureError",
    "StoreUnavailable",
    "RegistryUnavailable",
    "InvalidClaims",
    "InvalidToken",
]
