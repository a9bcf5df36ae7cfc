from __future__ import annotations

from .claims import ClaimSetFactory
from .dto import ClaimSet, LifecycleSettings, OperationContext, Token
from .manager import TokenManager

__all__ = ["ClaimSetFactory", "ClaimSet", "LifecycleSettings", "OperationContext", "Token", "TokenManager"]
