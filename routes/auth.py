"""
Authentication routes - registration, login, tokens, account recovery
"""
import re
from flask import Blueprint, current_app, request
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    get_jwt,
    get_jwt_identity,
    jwt_required,
)
from sqlalchemy.exc import IntegrityError
from extensions import db
from models.auth_identity import AuthIdentity
from models.customer import Customer
from services import get_verification_service
from services.errors import PhoneAlreadyInUse, ValidationError, VerificationError
from utils.activity_logger import log_activity
from utils.auth_guard import CUSTOMER_ROLE, current_auth_id, customer_required
from utils.clock import utcnow
from utils.responses import error_body, error_response, success_response

auth_bp = Blueprint('auth', __name__)


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _is_valid_email(value: str) -> bool:
    value = (value or "").strip()
    return len(value) <= 254 and bool(_EMAIL_RE.match(value))


def _session_tokens(identity, customer):
    claims = {
        'role': CUSTOMER_ROLE,
        'customer_id': customer.id if customer else None,
    }
    return (
        create_access_token(identity=identity.id, additional_claims=claims),
        create_refresh_token(identity=identity.id, additional_claims={'role': CUSTOMER_ROLE}),
    )


@auth_bp.route('/register', methods=['POST'])
def register():
    """
    Register a customer account (unconfirmed until the phone is verified)

    Request body:
    {
        "first_name": "string",
        "last_name": "string",
        "email": "string",
        "password": "string",
        "phone_number": "string" (optional),
        "language_preference": "it" | "en" | ... (optional),
        "gdpr_consent": true
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        service = get_verification_service()

        required = ['first_name', 'last_name', 'email', 'password']
        missing = [
            f for f in required
            if not isinstance(data.get(f), str) or not data[f].strip()
        ]
        if missing:
            return error_body('missing_fields', fields=', '.join(missing)), 400

        email = data['email'].strip().lower()
        password = data['password']
        if not _is_valid_email(email):
            return error_body('invalid_email'), 400

        if data.get('gdpr_consent') is not True:
            return error_body('gdpr_required'), 422

        min_length = current_app.config.get('PASSWORD_MIN_LENGTH', 6)
        if len(password) < min_length:
            return error_body('weak_password', min_length=min_length), 400

        if AuthIdentity.query.filter_by(email=email).first():
            return error_body('email_taken'), 409

        phone = None
        raw_phone = str(data.get('phone_number') or '').strip()
        if raw_phone:
            phone = service.directory.canonical(raw_phone)
            if service.directory.phone_taken_by_other(raw_phone, None):
                raise PhoneAlreadyInUse()

        language = str(data.get('language_preference') or '').strip().lower()
        if language not in current_app.config.get('SUPPORTED_LOCALES', ()):
            language = current_app.config.get('DEFAULT_LOCALE', 'it')

        identity = AuthIdentity(email=email, password=password, phone=phone)
        db.session.add(identity)
        db.session.flush()

        customer = Customer(
            auth_id=identity.id,
            first_name=data['first_name'].strip(),
            last_name=data['last_name'].strip(),
            email=email,
            phone_number=phone,
            language_preference=language,
            gdpr_consent_at=utcnow(),
        )
        db.session.add(customer)
        db.session.commit()

        log_activity(
            customer_id=customer.id,
            action='customer_registered',
            entity_type='customer',
            entity_id=customer.id,
        )
        return success_response('registered', status=201, user_id=customer.id, user=customer.to_dict())

    except VerificationError as e:
        db.session.rollback()
        return error_response(e, 'Registration')
    except IntegrityError:
        db.session.rollback()
        return error_body('email_taken'), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Registration error')
        return error_body('service_unavailable'), 500


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Login with email and password

    Request body:
    {
        "email": "string",
        "password": "string"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        email = str(data.get('email') or '').strip().lower()
        password = data.get('password')

        if not email or not password or not isinstance(password, str):
            return error_body('missing_fields', fields='email, password'), 400

        identity = AuthIdentity.query.filter_by(email=email).first()
        if not identity or not identity.check_password(password):
            return error_body('invalid_credentials'), 401

        customer = identity.customer
        if customer is not None and not customer.is_active:
            return error_body('account_inactive'), 403

        if not identity.is_email_confirmed:
            return error_body('email_not_confirmed'), 403

        identity.last_sign_in_at = utcnow()
        db.session.commit()

        access_token, refresh_token = _session_tokens(identity, customer)
        return success_response(
            'login_ok',
            data={
                'access_token': access_token,
                'refresh_token': refresh_token,
                'customer': customer.to_dict() if customer else None,
            },
        )

    except Exception:
        db.session.rollback()
        current_app.logger.exception('Login error')
        return error_body('service_unavailable'), 500


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    """Refresh access token"""
    try:
        if (get_jwt() or {}).get('role') != CUSTOMER_ROLE:
            return error_body('unauthorized'), 401

        identity = db.session.get(AuthIdentity, get_jwt_identity())
        if not identity:
            return error_body('user_not_found'), 404

        customer = identity.customer
        if customer is not None and not customer.is_active:
            return error_body('account_inactive'), 403

        access_token, _ = _session_tokens(identity, customer)
        return success_response(data={'access_token': access_token})

    except Exception:
        current_app.logger.exception('Token refresh error')
        return error_body('service_unavailable'), 500


@auth_bp.route('/me', methods=['GET'])
@customer_required
def get_current_customer():
    """Get the signed-in customer"""
    try:
        identity = db.session.get(AuthIdentity, current_auth_id())
        if not identity:
            return error_body('user_not_found'), 404

        data = identity.customer.to_dict() if identity.customer else {}
        data['identity'] = identity.to_dict()
        return success_response(data=data)

    except Exception:
        current_app.logger.exception('Get current customer error')
        return error_body('service_unavailable'), 500


@auth_bp.route('/lookup-user', methods=['POST'])
def lookup_user():
    """
    Find the account email registered for a phone number

    Request body:
    {
        "phone": "string"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        phone = data.get('phone') or data.get('phone_number')
        if not str(phone or '').strip():
            raise ValidationError(key='missing_phone')

        email = get_verification_service().lookup_email(phone)
        return success_response(email=email)

    except VerificationError as e:
        return error_response(e, 'Lookup user')
    except Exception:
        current_app.logger.exception('Lookup user error')
        return error_body('service_unavailable'), 500


@auth_bp.route('/password-reset/complete', methods=['POST'])
def complete_password_reset():
    """
    Set a new password using the token from /otp/verify-reset

    Request body:
    {
        "resetToken": "string",
        "newPassword": "string"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        identity = get_verification_service().complete_reset(
            data.get('resetToken'),
            data.get('newPassword'),
        )

        customer = identity.customer
        log_activity(
            customer_id=customer.id if customer else None,
            action='password_reset_completed',
            entity_type='auth_identity',
            entity_id=identity.id,
        )
        return success_response('password_updated')

    except VerificationError as e:
        return error_response(e, 'Password reset')
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Password reset error')
        return error_body('service_unavailable'), 500
