"""
Phone maintenance CLI tests

Run with: pytest test_maintenance.py -v
"""

from conftest import make_customer
from extensions import db
from models import AuthIdentity, Customer, OtpCode
from phone_maintenance import normalize_phones


def seed_legacy_phones(clock):
    mario = make_customer(email='mario.rossi@example.com', phone='3331234567')
    mario.identity.phone = '393331234567'

    # Two accounts on the same number in different shapes.
    first = make_customer(email='a@example.com', phone='3409999999', first_name='A')
    second = make_customer(email='b@example.com', phone='+393409999999', first_name='B')

    broken = make_customer(email='c@example.com', phone='n/a', first_name='C')

    db.session.add_all([
        OtpCode(phone_number='3331234567', code='000001', created_at=clock.now),
        OtpCode(phone_number='+393407654321', code='000002', created_at=clock.now),
    ])
    db.session.commit()
    return mario, first, second, broken


class TestNormalizePhones:
    """Test rewriting stored phones to canonical form"""

    def test_normalize(self, app, clock):
        """Test legacy numbers are rewritten and collisions reported"""
        mario, first, second, broken = seed_legacy_phones(clock)

        result = normalize_phones()

        assert db.session.get(Customer, mario.id).phone_number == '+393331234567'
        assert db.session.get(AuthIdentity, mario.auth_id).phone == '+393331234567'
        assert result['collisions'] == {'+393409999999': sorted([first.id, second.id])}
        assert result['invalid'] == [broken.id]
        assert result['otp_dropped'] == 1
        assert [r.phone_number for r in OtpCode.query.all()] == ['+393407654321']

        # Colliding accounts are left for an operator to merge.
        assert db.session.get(Customer, first.id).phone_number == '3409999999'

    def test_normalize_is_idempotent(self, app, clock):
        """Test a second run changes nothing"""
        seed_legacy_phones(clock)

        normalize_phones()
        result = normalize_phones()

        assert result['rewritten'] == 0
        assert result['otp_dropped'] == 0

    def test_dry_run(self, app, clock):
        """Test --dry-run reports without saving"""
        mario, *_ = seed_legacy_phones(clock)

        result = normalize_phones(dry_run=True)

        assert result['rewritten'] >= 1
        assert db.session.get(Customer, mario.id).phone_number == '3331234567'
        assert OtpCode.query.count() == 2

    def test_normalize_command(self, app, clock):
        """Test the flask phones normalize command"""
        seed_legacy_phones(clock)

        result = app.test_cli_runner().invoke(args=['phones', 'normalize'])

        assert result.exit_code == 0
        assert 'Rewritten: 2' in result.output
        assert 'Collision on +393409999999' in result.output


class TestPurgeOtps:
    """Test deleting stale verification codes"""

    def test_purge_command(self, app, service, clock):
        """Test codes past the validity window are deleted"""
        service.store.issue('3331234567', '111111')
        clock.advance(minutes=30)
        service.store.issue('3407654321', '222222')

        result = app.test_cli_runner().invoke(args=['phones', 'purge-otps'])

        assert result.exit_code == 0
        assert 'Deleted 1 stale verification codes' in result.output
        assert [r.code for r in OtpCode.query.all()] == ['222222']

    def test_purge_custom_age(self, app, service, clock):
        """Test --minutes overrides the threshold"""
        service.store.issue('3331234567', '111111')
        clock.advance(minutes=5)

        result = app.test_cli_runner().invoke(args=['phones', 'purge-otps', '--minutes', '1'])

        assert result.exit_code == 0
        assert OtpCode.query.count() == 0
