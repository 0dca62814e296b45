"""Error taxonomy for the verification flow.

Every error carries the message key used for the localized client copy and
the HTTP status the request handler should answer with.
"""

from __future__ import annotations


class VerificationError(Exception):
    key = 'service_unavailable'
    status_code = 500

    def __init__(self, detail: str | None = None, *, key: str | None = None, **params):
        super().__init__(detail or key or self.key)
        if key:
            self.key = key
        self.detail = detail
        self.params = params


class ValidationError(VerificationError):
    key = 'missing_fields'
    status_code = 400


class InvalidOrExpiredCode(VerificationError):
    key = 'invalid_code'
    status_code = 400


class CodeExpired(InvalidOrExpiredCode):
    key = 'code_expired'


class UserNotFound(VerificationError):
    key = 'user_not_found'
    status_code = 404


class AmbiguousUser(VerificationError):
    key = 'ambiguous_user'
    status_code = 409


class PhoneAlreadyInUse(VerificationError):
    key = 'phone_in_use'
    status_code = 409


class TokenInvalid(VerificationError):
    key = 'token_invalid'
    status_code = 403


class TokenExpired(TokenInvalid):
    key = 'token_expired'


class Unauthorized(VerificationError):
    key = 'unauthorized'
    status_code = 401


class DependencyFailure(VerificationError):
    """SMS provider or database failure. ``detail`` is logged, never returned."""
    key = 'service_unavailable'
    status_code = 500
