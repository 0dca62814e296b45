"""Phone data maintenance jobs.

Exposed as ``flask phones normalize`` and ``flask phones purge-otps``;
designed to be run from cron as well.

- normalize: rewrite customer and auth identity phones to canonical E.164.
  Numbers whose canonical form would collide with another customer are left
  untouched and reported, so an operator can merge the accounts.
- purge-otps: delete verification codes past their validity window.

Both jobs are idempotent and safe to run multiple times.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import timedelta

import click
from flask import current_app
from flask.cli import AppGroup

from extensions import db
from models.auth_identity import AuthIdentity
from models.customer import Customer
from models.otp_code import OtpCode
from services import get_verification_service
from utils.phone import is_phone_like, normalize_phone

phones_cli = AppGroup('phones', help='Phone number maintenance.')


def normalize_phones(dry_run: bool = False) -> dict[str, object]:
    cc = current_app.config.get('PHONE_DEFAULT_COUNTRY_CODE', '39')
    national_digits = int(current_app.config.get('PHONE_MAX_NATIONAL_DIGITS', 10))

    rewritten = 0
    invalid: list[int] = []
    collisions: dict[str, list[int]] = {}

    # 1) Customers: group by canonical form to find accounts sharing a number.
    by_canonical: dict[str, list[Customer]] = defaultdict(list)
    for customer in Customer.query.filter(Customer.phone_number.isnot(None)).all():
        if not is_phone_like(customer.phone_number):
            invalid.append(customer.id)
            continue
        by_canonical[normalize_phone(customer.phone_number, cc, national_digits)].append(customer)

    for canonical, customers in by_canonical.items():
        if len(customers) > 1:
            collisions[canonical] = sorted(c.id for c in customers)
            continue
        customer = customers[0]
        if customer.phone_number != canonical:
            customer.phone_number = canonical
            rewritten += 1

    # 2) Auth identities follow their customer's number.
    for identity in AuthIdentity.query.filter(AuthIdentity.phone.isnot(None)).all():
        if is_phone_like(identity.phone):
            canonical = normalize_phone(identity.phone, cc, national_digits)
            if identity.phone != canonical and canonical not in collisions:
                identity.phone = canonical
                rewritten += 1

    # 3) Codes are short-lived: drop non-canonical rows instead of rewriting.
    dropped = 0
    for row in OtpCode.query.all():
        if row.phone_number != normalize_phone(row.phone_number, cc, national_digits):
            db.session.delete(row)
            dropped += 1

    if dry_run:
        db.session.rollback()
    else:
        db.session.commit()

    return {
        'rewritten': rewritten,
        'otp_dropped': dropped,
        'invalid': invalid,
        'collisions': collisions,
    }


@phones_cli.command('normalize')
@click.option('--dry-run', is_flag=True, help='Report changes without saving them.')
def normalize_command(dry_run):
    """Rewrite stored phone numbers to canonical form."""
    result = normalize_phones(dry_run=dry_run)
    click.echo(f"Rewritten: {result['rewritten']}{' (dry run)' if dry_run else ''}")
    click.echo(f"Stale-format OTP rows dropped: {result['otp_dropped']}")
    if result['invalid']:
        click.echo(f"Customers with unparseable phones: {result['invalid']}")
    for canonical, ids in result['collisions'].items():
        click.echo(f"Collision on {canonical}: customers {ids}")


@phones_cli.command('purge-otps')
@click.option('--minutes', type=int, default=None, help='Age threshold; defaults to the OTP validity window.')
def purge_otps_command(minutes):
    """Delete verification codes past their validity window."""
    store = get_verification_service().store
    older_than = timedelta(minutes=minutes) if minutes is not None else None
    deleted = store.purge_stale(older_than)
    click.echo(f"Deleted {deleted} stale verification codes")
