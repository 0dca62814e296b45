"""Short-lived, purpose-bound signed tokens."""

from __future__ import annotations

from datetime import timedelta

from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from services.errors import TokenExpired, TokenInvalid

PASSWORD_RESET = 'password_reset'


class ResetTokenIssuer:
    """Mints and checks JWTs carrying ``sub`` and a ``purpose`` claim.

    Tokens are signed with JWT_SECRET_KEY and never stored; validity is the
    embedded expiry. Session tokens carry no purpose and are rejected here.
    """

    def __init__(self, *, default_ttl_seconds: int = 300):
        self.default_ttl_seconds = default_ttl_seconds

    def mint(self, user_id: str, purpose: str = PASSWORD_RESET, ttl_seconds: int | None = None) -> str:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        return create_access_token(
            identity=str(user_id),
            additional_claims={'purpose': purpose},
            expires_delta=timedelta(seconds=ttl),
        )

    def verify(self, token: str, expected_purpose: str = PASSWORD_RESET) -> dict:
        """Return the decoded payload or raise TokenInvalid/TokenExpired."""
        if not token or not isinstance(token, str):
            raise TokenInvalid('Token missing')
        try:
            payload = decode_token(token)
        except ExpiredSignatureError as e:
            raise TokenExpired(str(e)) from e
        except (InvalidTokenError, JWTExtendedException) as e:
            raise TokenInvalid(str(e)) from e

        if payload.get('purpose') != expected_purpose:
            raise TokenInvalid(f"Token purpose {payload.get('purpose')!r} != {expected_purpose!r}")
        if not payload.get('sub'):
            raise TokenInvalid('Token has no subject')
        return payload
