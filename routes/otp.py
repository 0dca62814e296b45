"""
Phone OTP routes - send, verify (identity) and verify for password reset
"""
from flask import Blueprint, current_app, request
from extensions import db
from services import get_verification_service
from services.errors import VerificationError
from utils.activity_logger import log_activity
from utils.phone import mask_phone
from utils.responses import error_body, error_response, success_response

otp_bp = Blueprint('otp', __name__)


@otp_bp.route('/send', methods=['POST'])
def send_code():
    """
    Send a 6-digit code by SMS, invalidating any earlier code

    Request body:
    {
        "phone_number": "string"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        service = get_verification_service()
        row = service.send_code(data.get('phone_number'))

        log_activity(
            customer_id=None,
            action='otp_sent',
            entity_type='otp_code',
            entity_id=row.id,
            details={'phone': mask_phone(row.phone_number)},
        )
        return success_response('otp_sent')

    except VerificationError as e:
        return error_response(e, 'OTP send')
    except Exception:
        db.session.rollback()
        current_app.logger.exception('OTP send error')
        return error_body('service_unavailable'), 500


@otp_bp.route('/verify', methods=['POST'])
def verify_code():
    """
    Verify a code and mark the customer's phone as verified

    Request body:
    {
        "phone_number": "string",
        "code": "string"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        service = get_verification_service()
        result = service.verify_identity(data.get('phone_number'), data.get('code'))
        customer = result.customer

        log_activity(
            customer_id=customer.id,
            action='phone_verified',
            entity_type='customer',
            entity_id=customer.id,
            details={
                'identity_confirmed': result.identity_confirmed,
                'secondary_error': result.secondary_error,
            },
        )
        return success_response(
            'phone_verified',
            user={'id': customer.id, 'auth_id': customer.auth_id},
            identity_confirmed=result.identity_confirmed,
        )

    except VerificationError as e:
        return error_response(e, 'OTP verify')
    except Exception:
        db.session.rollback()
        current_app.logger.exception('OTP verify error')
        return error_body('service_unavailable'), 500


@otp_bp.route('/verify-reset', methods=['POST'])
def verify_code_for_reset():
    """
    Verify a code and hand out a 5-minute password reset token

    Request body:
    {
        "phone_number": "string",
        "code": "string"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        service = get_verification_service()
        reset_token = service.verify_for_reset(data.get('phone_number'), data.get('code'))

        log_activity(
            customer_id=None,
            action='password_reset_token_issued',
            entity_type='otp_code',
            details={'phone': mask_phone(data.get('phone_number'))},
        )
        return success_response(resetToken=reset_token)

    except VerificationError as e:
        return error_response(e, 'Reset verify')
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Reset verify error')
        return error_body('service_unavailable'), 500
