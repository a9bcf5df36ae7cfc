# jwt_whitelist/infra/jwt/flask_jwt_signer.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

import jwt
from flask import Flask
from flask_jwt_extended.exceptions import JWTExtendedException

from jwt_whitelist.services._shared.errors import InvalidSignature, SignatureError, TokenExpired
from jwt_whitelist.services._shared.ports import TokenSigner


@dataclass(slots=True)
class FlaskJWTSigner(TokenSigner):
    """
    Adapter for Flask-JWT-Extended.

    Every call runs inside ``app``'s context so the JWT settings
    (``JWT_SECRET_KEY``, ``JWT_ALGORITHM``...) of that app apply.

    .. note::
       The claim set is passed as ``additional_claims``, which Flask-JWT-Extended
       applies *after* its own defaults, so ``sub``/``iat``/``jti``/``exp``
       are always the caller's. Library-added claims (``type``, ``fresh``,
       ``nbf``) are returned by :meth:`verify` alongside them.
    """

    app: Flask

    def sign(self, claims: Mapping[str, Any]) -> str:
        from flask_jwt_extended import create_access_token

        if "sub" not in claims:
            raise SignatureError("Cannot sign a claim set without a 'sub' claim.")

        with self.app.app_context():
            try:
                return cast(
                    str,
                    create_access_token(
                        identity=claims["sub"],
                        additional_claims=dict(claims),
                        # 'exp' comes from the claim set itself (absent = never expires)
                        expires_delta=False,
                    ),
                )
            except (TypeError, ValueError, jwt.PyJWTError, JWTExtendedException) as exc:
                raise SignatureError(f"Unable to sign token: {exc}") from exc

    def verify(self, token: str, *, allow_expired: bool = False) -> dict[str, Any]:
        from flask_jwt_extended import decode_token

        with self.app.app_context():
            try:
                return cast(dict[str, Any], decode_token(token, allow_expired=allow_expired))
            except jwt.ExpiredSignatureError as exc:
                raise TokenExpired("Token has expired.") from exc
            except (jwt.InvalidTokenError, JWTExtendedException) as exc:
                raise InvalidSignature(f"Token could not be verified: {exc}") from exc
