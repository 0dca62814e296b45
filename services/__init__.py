"""
Service layer package

Services are built once per application in ``init_services`` and looked up
by request handlers through ``get_verification_service``.
"""
from flask import current_app

from extensions import db
from .customers import CustomerDirectory
from .otp_store import OtpStore, generate_code
from .sms import build_sms_dispatcher
from .tokens import ResetTokenIssuer
from .verification import VerificationResult, VerificationService

EXTENSION_KEY = 'verification'

__all__ = [
    'CustomerDirectory',
    'OtpStore',
    'ResetTokenIssuer',
    'VerificationResult',
    'VerificationService',
    'generate_code',
    'get_verification_service',
    'init_services',
]


def init_services(app, sms=None):
    """Wire the verification flow for ``app``"""
    config = app.config
    country_code = config.get('PHONE_DEFAULT_COUNTRY_CODE', '39')
    national_digits = int(config.get('PHONE_MAX_NATIONAL_DIGITS', 10))

    store = OtpStore(
        db.session,
        ttl_seconds=int(config.get('OTP_TTL_SECONDS', 600)),
        default_country_code=country_code,
        max_national_digits=national_digits,
    )
    service = VerificationService(
        db.session,
        store=store,
        directory=CustomerDirectory(
            db.session,
            default_country_code=country_code,
            max_national_digits=national_digits,
        ),
        sms=sms or build_sms_dispatcher(config),
        tokens=ResetTokenIssuer(default_ttl_seconds=int(config.get('RESET_TOKEN_TTL_SECONDS', 300))),
        otp_message_template=config.get('OTP_MESSAGE_TEMPLATE', '{code}'),
        phone_change_message_template=config.get('PHONE_CHANGE_MESSAGE_TEMPLATE'),
        password_min_length=int(config.get('PASSWORD_MIN_LENGTH', 6)),
    )
    app.extensions[EXTENSION_KEY] = service
    return service


def get_verification_service() -> VerificationService:
    return current_app.extensions[EXTENSION_KEY]
