"""Phone verification and credential recovery.

A code moves Pending -> Valid -> Consumed, or stays put as Expired/Invalid:

1. look up the row by exact (code, canonical phone); none -> InvalidOrExpiredCode
2. row older than the TTL -> CodeExpired, row is left for the next issue()
3. otherwise run the purpose branch and delete the row in the same commit
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.auth_identity import AuthIdentity
from models.customer import Customer
from models.otp_code import OtpCode
from services.customers import CustomerDirectory
from services.errors import (
    CodeExpired,
    DependencyFailure,
    InvalidOrExpiredCode,
    PhoneAlreadyInUse,
    Unauthorized,
    UserNotFound,
    ValidationError,
)
from services.otp_store import OtpStore, generate_code
from services.sms import SmsDispatcher
from services.tokens import PASSWORD_RESET, ResetTokenIssuer
from utils.phone import is_phone_like, mask_phone

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    """Outcome of identity verification.

    The customer flag is authoritative; confirming the auth identity is a
    secondary effect whose failure is reported here instead of raised.
    """
    customer: Customer
    identity_confirmed: bool = False
    secondary_error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.secondary_error is None


class VerificationService:
    def __init__(
        self,
        session,
        *,
        store: OtpStore,
        directory: CustomerDirectory,
        sms: SmsDispatcher,
        tokens: ResetTokenIssuer,
        otp_message_template: str = '{code}',
        phone_change_message_template: Optional[str] = None,
        password_min_length: int = 6,
        code_generator: Callable[[], str] = generate_code,
    ):
        self.session = session
        self.store = store
        self.directory = directory
        self.sms = sms
        self.tokens = tokens
        self.otp_message_template = otp_message_template
        self.phone_change_message_template = phone_change_message_template or otp_message_template
        self.password_min_length = password_min_length
        self.code_generator = code_generator

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def _require_phone(self, phone: str) -> str:
        phone = str(phone or '').strip()
        if not phone:
            raise ValidationError(key='missing_phone')
        if not is_phone_like(phone):
            raise ValidationError(key='invalid_phone')
        return phone

    def send_code(self, phone: str, template: Optional[str] = None) -> OtpCode:
        """Issue a fresh code for ``phone`` and text it."""
        phone = self._require_phone(phone)
        code = self.code_generator()
        row = self.store.issue(phone, code)

        body = (template or self.otp_message_template).replace('{code}', code)
        result = self.sms.send(row.phone_number, body)
        if not result.success:
            raise DependencyFailure(f'Failed to send SMS: {result.error}')
        return row

    # ------------------------------------------------------------------
    # Checking
    # ------------------------------------------------------------------

    def check_code(self, phone: str, code: str) -> OtpCode:
        phone = str(phone or '').strip()
        code = str(code or '').strip()
        if not phone or not code:
            raise ValidationError(key='missing_phone_code')
        if not is_phone_like(phone):
            raise ValidationError(key='invalid_phone')

        row = self.store.lookup(code, phone)
        if row is None:
            raise InvalidOrExpiredCode()
        if self.store.is_expired(row):
            raise CodeExpired(f'OTP {row.id} created at {row.created_at.isoformat()}')
        return row

    def _commit(self, what: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyFailure(f'{what}: {e}') from e

    def verify_identity(self, phone: str, code: str) -> VerificationResult:
        row = self.check_code(phone, code)
        customer = self.directory.find_by_phone(phone)

        customer.is_verified = True
        self.store.consume(row)
        self._commit('Failed to update verification status')
        logger.info("Customer %s verified phone %s", customer.id, mask_phone(customer.phone_number))

        result = VerificationResult(customer=customer)
        if customer.auth_id:
            self._confirm_identity(customer, result)
        return result

    def _confirm_identity(self, customer: Customer, result: VerificationResult) -> None:
        try:
            identity = self.session.get(AuthIdentity, customer.auth_id)
            if identity is None:
                result.secondary_error = f'Auth identity {customer.auth_id} not found'
            else:
                if not identity.phone:
                    identity.phone = customer.phone_number
                identity.confirm(email=True, phone=True)
                self.session.commit()
                result.identity_confirmed = True
        except SQLAlchemyError as e:
            self.session.rollback()
            result.secondary_error = str(e)

        if result.secondary_error:
            logger.warning(
                "Customer %s verified but auth identity not confirmed: %s",
                customer.id,
                result.secondary_error,
            )

    def verify_for_reset(self, phone: str, code: str) -> str:
        """Consume the code and return a password-reset token."""
        row = self.check_code(phone, code)
        owner = self.directory.find_by_phone(phone, columns=('auth_id', 'id'))
        if not owner['auth_id']:
            raise UserNotFound(f"Customer {owner['id']} has no login")

        token = self.tokens.mint(owner['auth_id'], PASSWORD_RESET)
        self.store.consume(row)
        self._commit('Failed to consume verification code')
        return token

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def complete_reset(self, reset_token: str, new_password: str) -> AuthIdentity:
        if not reset_token or not new_password or not isinstance(new_password, str):
            raise ValidationError(key='missing_reset_fields')

        payload = self.tokens.verify(reset_token, PASSWORD_RESET)

        if len(new_password) < self.password_min_length:
            raise ValidationError(key='weak_password', min_length=self.password_min_length)

        identity = self.session.get(AuthIdentity, payload['sub'])
        if identity is None:
            raise UserNotFound(f"Auth identity {payload['sub']} not found")

        identity.set_password(new_password)
        self._commit('Failed to update password')
        logger.info("Password reset completed for identity %s", identity.id)
        return identity

    def request_phone_update(self, auth_id: Optional[str], phone: str) -> tuple[Customer, OtpCode]:
        """Text a code to the new number; returns the caller and the issued row."""
        if not auth_id:
            raise Unauthorized()
        phone = self._require_phone(phone)
        customer = self.directory.get_by_auth_id(auth_id)
        if self.directory.phone_taken_by_other(phone, auth_id):
            raise PhoneAlreadyInUse()
        row = self.send_code(phone, template=self.phone_change_message_template)
        return customer, row

    def confirm_phone_update(self, auth_id: Optional[str], phone: str, code: str) -> Customer:
        """Move the caller's login and profile to ``phone`` atomically."""
        if not auth_id:
            raise Unauthorized()
        row = self.check_code(phone, code)

        # Someone may have claimed the number since the code was requested.
        if self.directory.phone_taken_by_other(phone, auth_id):
            raise PhoneAlreadyInUse()

        identity = self.session.get(AuthIdentity, auth_id)
        if identity is None:
            raise UserNotFound(f'Auth identity {auth_id} not found')
        customer = self.directory.get_by_auth_id(auth_id)

        canonical = self.store.canonical(phone)
        now = self.store.clock()
        try:
            identity.phone = canonical
            identity.phone_confirmed_at = now
            customer.phone_number = canonical
            customer.is_verified = True
            self.store.consume(row)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise PhoneAlreadyInUse(str(e)) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyFailure(f'Failed to update phone number: {e}') from e

        logger.info("Customer %s moved to phone %s", customer.id, mask_phone(canonical))
        return customer

    def lookup_email(self, phone: str) -> Optional[str]:
        phone = self._require_phone(phone)
        customer = self.directory.find_by_phone(phone)
        if customer.email:
            return customer.email
        return customer.identity.email if customer.identity else None
