from __future__ import annotations

from .registry import FOREVER, WhitelistRegistry

__all__ = ["FOREVER", "WhitelistRegistry"]
