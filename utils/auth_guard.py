"""Session guards for customer routes.

Session tokens are Flask-JWT-Extended access tokens whose identity is the
auth identity id. Purpose-bound tokens (password reset) are JWTs signed with
the same key, so they must be refused explicitly here.
"""

from __future__ import annotations

from functools import wraps

from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from utils.responses import error_body

CUSTOMER_ROLE = 'customer'


def current_auth_id() -> str | None:
    identity = get_jwt_identity()
    return str(identity) if identity else None


def customer_required(fn):
    """Require a customer session token.

    Replaces @jwt_required() on customer routes.
    """

    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        claims = get_jwt() or {}
        if claims.get('purpose') or claims.get('role') != CUSTOMER_ROLE:
            return error_body('unauthorized'), 401
        return fn(*args, **kwargs)

    return wrapper
