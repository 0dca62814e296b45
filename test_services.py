"""
Service layer tests: phone canonicalization, OTP store, tokens and the
verification state machine

Run with: pytest test_services.py -v
"""

import logging
import re

import pytest

from conftest import BrokenCommitSession, FailingSmsDispatcher, make_customer
from extensions import db
from models import AuthIdentity, Customer, OtpCode
from services.errors import (
    AmbiguousUser,
    CodeExpired,
    DependencyFailure,
    InvalidOrExpiredCode,
    PhoneAlreadyInUse,
    TokenExpired,
    TokenInvalid,
    UserNotFound,
    ValidationError,
)
from services.otp_store import generate_code
from services.sms import ConsoleSmsDispatcher
from services.tokens import PASSWORD_RESET
from utils.phone import is_phone_like, mask_phone, normalize_phone, phone_variants


class TestPhoneNormalizer:
    """Canonical phone form"""

    @pytest.mark.parametrize('raw', [
        '3331234567',
        '333 123 4567',
        '+39 333 123 4567',
        '+39-333-1234567',
        '(+39) 333.123.4567',
        '393331234567',
        '00393331234567',
    ])
    def test_italian_mobile_forms_share_one_canonical_form(self, raw):
        assert normalize_phone(raw) == '+393331234567'

    def test_foreign_number_keeps_its_country_code(self):
        assert normalize_phone('+33 6 12 34 56 78') == '+33612345678'
        assert normalize_phone('0033612345678') == '+33612345678'

    def test_other_default_country(self):
        assert normalize_phone('612345678', default_country_code='33') == '+33612345678'

    def test_empty_input(self):
        assert normalize_phone('') == ''
        assert normalize_phone(None) == ''
        assert normalize_phone('   ') == ''

    def test_is_phone_like(self):
        assert is_phone_like('3331234567')
        assert is_phone_like('+39 333 123 4567')
        assert not is_phone_like('')
        assert not is_phone_like('12345')
        assert not is_phone_like('call me maybe')
        assert not is_phone_like('+39 333 123 4567 890 1234')

    def test_variants_cover_legacy_forms(self):
        variants = phone_variants('+39 333 123 4567')
        for form in ['+393331234567', '393331234567', '3331234567', '00393331234567']:
            assert form in variants

    def test_mask_phone(self):
        assert mask_phone('+393331234567') == '**********567'

    def test_country_with_short_national_numbers(self):
        # Iceland: 7-digit national numbers, so 10 bare digits already carry 354.
        assert normalize_phone('3545551234', default_country_code='354', max_national_digits=7) == '+3545551234'
        assert normalize_phone('5551234', default_country_code='354', max_national_digits=7) == '+3545551234'
        assert '+3545551234' in phone_variants('5551234', default_country_code='354', max_national_digits=7)


class TestCustomerDirectory:
    """Phone lookups over canonical and legacy rows"""

    def test_finds_customer_stored_in_legacy_form(self, service):
        legacy = make_customer(phone='3331234567')

        assert service.directory.find_by_phone('+39 333 123 4567').id == legacy.id
        assert service.directory.find_by_phone('3331234567', columns=('email',)) == {
            'email': 'mario.rossi@example.com',
        }

    def test_legacy_form_counts_as_taken(self, service, verified_customer):
        make_customer(phone='393331234567')

        assert service.directory.phone_taken_by_other('+393331234567', verified_customer.auth_id)
        assert service.directory.phone_taken_by_other('3331234567', None)

    def test_same_number_in_two_forms_is_ambiguous(self, service):
        make_customer(email='a@example.com', phone='3409999999')
        make_customer(email='b@example.com', phone='+393409999999')

        with pytest.raises(AmbiguousUser):
            service.directory.find_by_phone('3409999999')

    def test_inactive_customer_is_not_found(self, service, customer):
        customer.is_active = False
        db.session.commit()

        with pytest.raises(UserNotFound):
            service.directory.find_by_phone('3331234567')

    def test_invalid_phone(self, service):
        with pytest.raises(ValidationError):
            service.directory.find_by_phone('not a phone')


class TestOtpStore:
    """OTP persistence"""

    def test_generate_code_is_six_digits(self):
        for _ in range(200):
            assert re.fullmatch(r'\d{6}', generate_code())

    def test_issue_stores_canonical_phone(self, service, clock):
        row = service.store.issue('333 123 4567', '123456')

        assert row.phone_number == '+393331234567'
        assert row.created_at == clock.now

    def test_issue_replaces_every_equivalent_row(self, service, clock):
        # Rows written before canonicalization.
        db.session.add_all([
            OtpCode(phone_number='3331234567', code='000001', created_at=clock.now),
            OtpCode(phone_number='393331234567', code='000002', created_at=clock.now),
            OtpCode(phone_number='+393331234567', code='000003', created_at=clock.now),
            OtpCode(phone_number='+393409999999', code='000004', created_at=clock.now),
        ])
        db.session.commit()

        service.store.issue('+393331234567', '123456')

        rows = OtpCode.query.order_by(OtpCode.phone_number).all()
        assert [(r.phone_number, r.code) for r in rows] == [
            ('+393331234567', '123456'),
            ('+393409999999', '000004'),
        ]

    def test_lookup_matches_code_and_phone(self, service, clock):
        service.store.issue('3331234567', '123456')

        assert service.store.lookup('123456', '+39 333 123 4567') is not None
        assert service.store.lookup('654321', '3331234567') is None
        assert service.store.lookup('123456', '3339999999') is None

    def test_expiry_boundary(self, service, clock):
        row = service.store.issue('3331234567', '123456')

        clock.advance(minutes=10)
        assert not service.store.is_expired(row)

        clock.advance(seconds=1)
        assert service.store.is_expired(row)

    def test_purge_stale(self, service, clock):
        service.store.issue('3331234567', '111111')
        clock.advance(minutes=11)
        service.store.issue('3409999999', '222222')

        assert service.store.purge_stale() == 1
        assert [r.code for r in OtpCode.query.all()] == ['222222']

    def test_issue_database_failure_rolls_back(self, service, clock):
        service.store.issue('3331234567', '111111')

        service.store.session = BrokenCommitSession(db.session)
        with pytest.raises(DependencyFailure):
            service.store.issue('3331234567', '222222')
        service.store.session = db.session

        # The delete was rolled back together with the insert.
        assert [r.code for r in OtpCode.query.all()] == ['111111']


class TestResetTokens:
    """Purpose-bound signed tokens"""

    def test_round_trip(self, service):
        token = service.tokens.mint('identity-1', PASSWORD_RESET)
        payload = service.tokens.verify(token, PASSWORD_RESET)

        assert payload['sub'] == 'identity-1'
        assert payload['purpose'] == PASSWORD_RESET

    def test_expires_after_five_minutes(self, service):
        token = service.tokens.mint('identity-1', PASSWORD_RESET)
        payload = service.tokens.verify(token, PASSWORD_RESET)

        assert payload['exp'] - payload['iat'] == 300

    def test_wrong_purpose_is_rejected(self, service):
        token = service.tokens.mint('identity-1', 'email_change')

        with pytest.raises(TokenInvalid) as excinfo:
            service.tokens.verify(token, PASSWORD_RESET)
        assert not isinstance(excinfo.value, TokenExpired)

    def test_session_token_is_rejected(self, service):
        from flask_jwt_extended import create_access_token

        token = create_access_token(identity='identity-1', additional_claims={'role': 'customer'})
        with pytest.raises(TokenInvalid):
            service.tokens.verify(token, PASSWORD_RESET)

    def test_expired_token(self, service):
        token = service.tokens.mint('identity-1', PASSWORD_RESET, ttl_seconds=-5)

        with pytest.raises(TokenExpired):
            service.tokens.verify(token, PASSWORD_RESET)

    def test_tampered_token(self, service):
        token = service.tokens.mint('identity-1', PASSWORD_RESET)
        header, payload, signature = token.split('.')
        tampered = '.'.join([header, payload, signature[::-1]])

        with pytest.raises(TokenInvalid):
            service.tokens.verify(tampered, PASSWORD_RESET)

    def test_garbage_token(self, service):
        with pytest.raises(TokenInvalid):
            service.tokens.verify('not-a-token', PASSWORD_RESET)


class TestVerificationFlow:
    """Verification state machine"""

    def test_only_the_latest_code_verifies(self, service, customer, clock, codes, sms):
        service.send_code('3331234567')
        service.send_code('3331234567')

        assert sms.sent[-1] == ('+393331234567', 'Il tuo codice di verifica Baraka è: 222222')

        with pytest.raises(InvalidOrExpiredCode):
            service.verify_identity('3331234567', '111111')

        result = service.verify_identity('3331234567', '222222')
        assert result.customer.is_verified is True
        assert OtpCode.query.count() == 0

    def test_code_valid_until_window_end(self, service, customer, clock, codes):
        service.send_code('3331234567')
        clock.advance(minutes=9, seconds=59)

        result = service.verify_identity('3331234567', '111111')
        assert result.customer.id == customer.id

    def test_code_expired_after_window(self, service, customer, clock, codes):
        service.send_code('3331234567')
        clock.advance(minutes=10, seconds=1)

        with pytest.raises(CodeExpired):
            service.verify_identity('3331234567', '111111')

        # Expired rows are left for the next send to clean up.
        assert OtpCode.query.count() == 1
        assert db.session.get(Customer, customer.id).is_verified is False

    def test_expired_is_an_invalid_or_expired_code(self):
        assert issubclass(CodeExpired, InvalidOrExpiredCode)

    @pytest.mark.parametrize('sent_to,verified_with', [
        ('3331234567', '+393331234567'),
        ('+393331234567', '3331234567'),
        ('+39 333 123 4567', '00393331234567'),
    ])
    def test_phone_variants_are_the_same_identity(self, service, customer, clock, codes, sent_to, verified_with):
        service.send_code(sent_to)

        result = service.verify_identity(verified_with, '111111')
        assert result.customer.id == customer.id

    def test_code_cannot_be_used_twice(self, service, customer, clock, codes):
        service.send_code('3331234567')
        service.verify_identity('3331234567', '111111')

        with pytest.raises(InvalidOrExpiredCode):
            service.verify_identity('3331234567', '111111')

    def test_identity_is_confirmed(self, service, customer, clock, codes):
        service.send_code('3331234567')
        result = service.verify_identity('3331234567', '111111')

        identity = db.session.get(AuthIdentity, customer.auth_id)
        assert result.identity_confirmed is True
        assert result.complete
        assert identity.email_confirmed_at is not None
        assert identity.phone_confirmed_at is not None

    def test_identity_confirmation_failure_is_not_fatal(self, service, clock, codes):
        orphan = Customer(
            auth_id='00000000-0000-0000-0000-000000000000',
            first_name='Luca',
            last_name='Verdi',
            phone_number='+393335550000',
        )
        db.session.add(orphan)
        db.session.commit()

        service.send_code('3335550000')
        result = service.verify_identity('3335550000', '111111')

        assert result.customer.is_verified is True
        assert result.identity_confirmed is False
        assert not result.complete
        assert 'not found' in result.secondary_error
        assert OtpCode.query.count() == 0

    def test_unknown_customer(self, service, clock, codes):
        service.send_code('3339999999')

        with pytest.raises(UserNotFound):
            service.verify_identity('3339999999', '111111')
        # Nothing consumed on failure.
        assert OtpCode.query.count() == 1

    def test_missing_fields(self, service):
        with pytest.raises(ValidationError):
            service.verify_identity('', '123456')
        with pytest.raises(ValidationError):
            service.verify_identity('3331234567', '')
        with pytest.raises(ValidationError):
            service.send_code(None)

    def test_sms_failure_is_a_dependency_failure(self, service, customer, clock):
        service.sms = FailingSmsDispatcher()

        with pytest.raises(DependencyFailure) as excinfo:
            service.send_code('3331234567')
        assert 'invalid To number' in excinfo.value.detail


class TestPasswordReset:
    """Reset token issue and password change"""

    def test_reset_flow(self, service, customer, clock, codes):
        service.send_code('3331234567')
        token = service.verify_for_reset('+393331234567', '111111')

        identity = service.complete_reset(token, 'new-password')

        assert identity.id == customer.auth_id
        assert identity.check_password('new-password')
        assert OtpCode.query.count() == 0
        # The verified flag is not touched by the reset path.
        assert db.session.get(Customer, customer.id).is_verified is False

    def test_weak_password(self, service, customer, clock, codes):
        service.send_code('3331234567')
        token = service.verify_for_reset('3331234567', '111111')

        with pytest.raises(ValidationError) as excinfo:
            service.complete_reset(token, '123')
        assert excinfo.value.params == {'min_length': 6}

    def test_unknown_identity(self, service):
        token = service.tokens.mint('00000000-0000-0000-0000-000000000000', PASSWORD_RESET)

        with pytest.raises(UserNotFound):
            service.complete_reset(token, 'new-password')

    @pytest.mark.parametrize('password', [12345678, ['secret123'], {'password': 'secret123'}])
    def test_non_string_password(self, service, customer, password):
        token = service.tokens.mint(customer.auth_id, PASSWORD_RESET)

        with pytest.raises(ValidationError) as excinfo:
            service.complete_reset(token, password)
        assert excinfo.value.key == 'missing_reset_fields'


class TestPhoneChange:
    """Authenticated phone number change"""

    def test_uniqueness_guard_runs_before_issue(self, service, customer, verified_customer, sms):
        with pytest.raises(PhoneAlreadyInUse):
            service.request_phone_update(verified_customer.auth_id, '3331234567')

        assert OtpCode.query.count() == 0
        assert sms.sent == []

    def test_own_number_is_not_taken(self, service, customer):
        assert not service.directory.phone_taken_by_other('3331234567', customer.auth_id)

    def test_guard_sees_number_stored_in_legacy_form(self, service, verified_customer, sms):
        make_customer(phone='3331234567')

        with pytest.raises(PhoneAlreadyInUse):
            service.request_phone_update(verified_customer.auth_id, '+393331234567')
        assert OtpCode.query.count() == 0
        assert sms.sent == []

    def test_request_returns_caller_and_code(self, service, verified_customer):
        caller, row = service.request_phone_update(verified_customer.auth_id, '3470001111')

        assert caller.id == verified_customer.id
        assert row.phone_number == '+393470001111'

    def test_confirm_updates_login_and_profile(self, service, verified_customer, clock, codes):
        service.request_phone_update(verified_customer.auth_id, '3470001111')
        updated = service.confirm_phone_update(verified_customer.auth_id, '+393470001111', '111111')

        identity = db.session.get(AuthIdentity, verified_customer.auth_id)
        assert updated.phone_number == '+393470001111'
        assert identity.phone == '+393470001111'
        assert identity.phone_confirmed_at == clock.now
        assert OtpCode.query.count() == 0

    def test_failed_commit_changes_nothing(self, service, verified_customer, clock, codes):
        service.request_phone_update(verified_customer.auth_id, '3470001111')

        service.session = BrokenCommitSession(db.session)
        with pytest.raises(DependencyFailure):
            service.confirm_phone_update(verified_customer.auth_id, '3470001111', '111111')
        service.session = db.session

        identity = db.session.get(AuthIdentity, verified_customer.auth_id)
        assert db.session.get(Customer, verified_customer.id).phone_number == '+393407654321'
        assert identity.phone == '+393407654321'
        assert OtpCode.query.count() == 1

    def test_number_claimed_between_request_and_confirm(self, service, verified_customer, clock, codes):
        service.request_phone_update(verified_customer.auth_id, '3470001111')
        make_customer(email='late@example.com', phone='+393470001111')

        with pytest.raises(PhoneAlreadyInUse):
            service.confirm_phone_update(verified_customer.auth_id, '3470001111', '111111')


class TestConsoleSms:
    """Development SMS dispatcher"""

    def test_code_stays_out_of_info_logs(self, caplog):
        caplog.set_level(logging.INFO, logger='services.sms')

        result = ConsoleSmsDispatcher().send('+393331234567', 'Il tuo codice di verifica Baraka è: 482913')

        assert result.success
        assert '482913' not in caplog.text
        assert '**********567' in caplog.text

    def test_code_logged_at_debug(self, caplog):
        caplog.set_level(logging.DEBUG, logger='services.sms')

        ConsoleSmsDispatcher().send('+393331234567', 'Il tuo codice di verifica Baraka è: 482913')

        assert '482913' in caplog.text
