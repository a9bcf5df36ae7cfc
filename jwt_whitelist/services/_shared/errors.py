"""
Domain-level exceptions raised by the token lifecycle.

These exceptions are **framework-agnostic**: adapters (Redis, Flask-JWT-Extended)
translate their own failures into one of these types and chain the original
cause with ``raise ... from exc``. Nothing in the service layer retries or
swallows them; they propagate to the immediate caller.
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class TokenError(Exception):
    """
    Base class for all token lifecycle errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - Callers may catch :class:`TokenError` to handle every failure kind at once.
    """

    pass


# --------------------------------------------------------------------------- #
# Authorization
# --------------------------------------------------------------------------- #


class TokenNotWhitelisted(TokenError):
    """
    Raised when a decoded token has no authorized registry entry.

    Covers revoked, never-registered, expired-from-storage and
    still-in-grace-period tokens alike.
    """

    def __init__(self, message: str = "The token has not been stored") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Signer
# --------------------------------------------------------------------------- #


class InvalidSignature(TokenError):
    """Raised by the signer when a token cannot be verified."""


class TokenExpired(TokenError):
    """Raised when a token (or its refresh window) has expired."""


class SignatureError(TokenError):
    """Raised by the signer when a claim set cannot be signed."""


# --------------------------------------------------------------------------- #
# Claims / token shape
# --------------------------------------------------------------------------- #


class InvalidToken(TokenError):
    """Raised when a token value is malformed before it reaches the signer."""


@dataclass(slots=True)
class InvalidClaims(TokenError):
    """
    Raised when a claim set violates its structural rules.

    :param claim: Offending claim name.
    :type claim: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    claim: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Invalid claim '{self.claim}': {self.detail}"


# --------------------------------------------------------------------------- #
# Storage
# --------------------------------------------------------------------------- #


class StoreUnavailable(TokenError):
    """Raised when the backing key-value store cannot serve a request."""


# The registry surfaces store failures unchanged.
RegistryUnavailable = StoreUnavailable
