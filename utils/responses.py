"""JSON response helpers shared by every blueprint.

Success bodies carry ``success: true``; failures carry ``success: false``,
a localized ``error`` string and a stable ``error_code``.
"""

from __future__ import annotations

from flask import current_app, jsonify

from utils.messages import translate


def error_body(key: str, **params):
    return jsonify({
        'success': False,
        'error': translate(key, **params),
        'error_code': key,
    })


def error_response(err, context: str | None = None):
    """Render a VerificationError as ``(body, status)``.

    Server-side detail (provider and database errors) goes to the log only.
    """
    if err.status_code >= 500:
        current_app.logger.error("%s failed: %s", context or 'Request', err.detail or err.key)
    elif err.detail:
        current_app.logger.info("%s rejected (%s): %s", context or 'Request', err.key, err.detail)
    return error_body(err.key, **err.params), err.status_code


def success_response(message_key: str | None = None, status: int = 200, **payload):
    body = {'success': True}
    if message_key:
        body['message'] = translate(message_key)
    body.update(payload)
    return jsonify(body), status
