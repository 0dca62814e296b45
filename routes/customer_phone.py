"""
Customer phone number change - request a code, then confirm it
"""
from flask import Blueprint, current_app, request
from extensions import db
from services import get_verification_service
from services.errors import VerificationError
from utils.activity_logger import log_activity
from utils.auth_guard import current_auth_id, customer_required
from utils.phone import mask_phone
from utils.responses import error_body, error_response, success_response

customer_phone_bp = Blueprint('customer_phone', __name__)


@customer_phone_bp.route('/request-update', methods=['POST'])
@customer_required
def request_phone_update():
    """
    Send a code to the new number, unless another account already owns it

    Request body:
    {
        "phone_number": "string"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        customer, row = get_verification_service().request_phone_update(
            current_auth_id(),
            data.get('phone_number'),
        )

        log_activity(
            customer_id=customer.id,
            action='phone_change_requested',
            entity_type='customer',
            entity_id=customer.id,
            details={'phone': mask_phone(row.phone_number)},
        )
        return success_response('otp_sent')

    except VerificationError as e:
        return error_response(e, 'Phone update request')
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Phone update request error')
        return error_body('service_unavailable'), 500


@customer_phone_bp.route('/confirm-update', methods=['POST'])
@customer_required
def confirm_phone_update():
    """
    Confirm the code and move login and profile to the new number

    Request body:
    {
        "phone_number": "string",
        "code": "string"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        customer = get_verification_service().confirm_phone_update(
            current_auth_id(),
            data.get('phone_number'),
            data.get('code'),
        )

        log_activity(
            customer_id=customer.id,
            action='phone_changed',
            entity_type='customer',
            entity_id=customer.id,
            details={'phone': mask_phone(customer.phone_number)},
        )
        return success_response('phone_updated', user=customer.to_dict())

    except VerificationError as e:
        return error_response(e, 'Phone update confirm')
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Phone update confirm error')
        return error_body('service_unavailable'), 500
