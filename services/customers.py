"""Customer lookup by phone number."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from models.customer import Customer
from services.errors import AmbiguousUser, DependencyFailure, UserNotFound, ValidationError
from utils.phone import is_phone_like, normalize_phone, phone_variants


class CustomerDirectory:
    """Resolves phone numbers to customer records.

    New rows are canonical, but rows written before canonicalization may hold
    the bare, ``39``- or ``0039``-prefixed form until ``flask phones
    normalize`` rewrites them, so every lookup matches all equivalent forms.
    """

    def __init__(self, session, *, default_country_code: str = '39', max_national_digits: int = 10):
        self.session = session
        self.default_country_code = default_country_code
        self.max_national_digits = max_national_digits

    def canonical(self, phone: str) -> str:
        if not is_phone_like(phone):
            raise ValidationError(key='invalid_phone')
        return normalize_phone(phone, self.default_country_code, self.max_national_digits)

    def variants(self, phone: str) -> list[str]:
        self.canonical(phone)
        return phone_variants(phone, self.default_country_code, self.max_national_digits)

    def find_by_phone(
        self,
        phone: str,
        columns: Optional[Iterable[str]] = None,
    ) -> Union[Customer, dict[str, Any]]:
        """Return the active customer owning ``phone``.

        With ``columns`` (e.g. ``('auth_id', 'id')``) a dict projection is
        returned instead of the model.
        """
        variants = self.variants(phone)
        try:
            matches = (
                self.session.query(Customer)
                .filter(Customer.phone_number.in_(variants), Customer.is_active.is_(True))
                .limit(2)
                .all()
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyFailure(f'Customer lookup failed: {e}') from e

        if not matches:
            raise UserNotFound()
        if len(matches) > 1:
            raise AmbiguousUser(f'Customers {[c.id for c in matches]} share {variants[0]}')

        customer = matches[0]
        if columns is None:
            return customer
        return {col: getattr(customer, col) for col in columns}

    def get_by_auth_id(self, auth_id: str) -> Customer:
        try:
            customer = self.session.query(Customer).filter_by(auth_id=auth_id).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyFailure(f'Customer lookup failed: {e}') from e
        if not customer:
            raise UserNotFound()
        return customer

    def phone_taken_by_other(self, phone: str, auth_id: Optional[str]) -> bool:
        """True if a customer other than ``auth_id`` holds ``phone`` in any form."""
        query = self.session.query(Customer.id).filter(Customer.phone_number.in_(self.variants(phone)))
        if auth_id is not None:
            query = query.filter(
                (Customer.auth_id != auth_id) | (Customer.auth_id.is_(None))
            )
        try:
            return query.first() is not None
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyFailure(f'Customer lookup failed: {e}') from e
