"""Persisted one-time codes, one live code per phone."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from models.otp_code import OtpCode
from services.errors import DependencyFailure
from utils.clock import utcnow
from utils.phone import mask_phone, normalize_phone, phone_variants

logger = logging.getLogger(__name__)


def generate_code() -> str:
    # 6-digit numeric code, 000000-999999.
    return f'{secrets.randbelow(1_000_000):06d}'


class OtpStore:
    def __init__(
        self,
        session,
        *,
        ttl_seconds: int = 600,
        default_country_code: str = '39',
        max_national_digits: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.ttl_seconds = ttl_seconds
        self.default_country_code = default_country_code
        self.max_national_digits = max_national_digits
        self.clock = clock

    def canonical(self, phone: str) -> str:
        return normalize_phone(phone, self.default_country_code, self.max_national_digits)

    def issue(self, phone: str, code: str) -> OtpCode:
        """Replace every code for ``phone`` with ``code`` in one transaction.

        A concurrent lookup sees either the old row or the new one, never a
        window where a superseded code is still live after commit.
        """
        canonical = self.canonical(phone)
        variants = phone_variants(phone, self.default_country_code, self.max_national_digits)
        try:
            self.session.query(OtpCode).filter(
                OtpCode.phone_number.in_(variants)
            ).delete(synchronize_session=False)

            row = OtpCode(phone_number=canonical, code=code, created_at=self.clock())
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyFailure(f'Failed to store verification code: {e}') from e

        logger.info("Issued OTP id=%s for %s", row.id, mask_phone(canonical))
        return row

    def lookup(self, code: str, phone: str) -> Optional[OtpCode]:
        canonical = self.canonical(phone)
        code = str(code or '').strip()
        if not canonical or not code:
            return None
        try:
            return (
                self.session.query(OtpCode)
                .filter(OtpCode.phone_number == canonical, OtpCode.code == code)
                .order_by(OtpCode.created_at.desc(), OtpCode.id.desc())
                .first()
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyFailure(f'Failed to read verification code: {e}') from e

    def is_expired(self, row: OtpCode) -> bool:
        return row.is_expired(self.clock(), self.ttl_seconds)

    def consume(self, row: OtpCode) -> None:
        """Stage deletion of ``row``; the caller's unit of work commits it."""
        self.session.delete(row)

    def purge_stale(self, older_than: Optional[timedelta] = None) -> int:
        cutoff = self.clock() - (older_than or timedelta(seconds=self.ttl_seconds))
        try:
            deleted = (
                self.session.query(OtpCode)
                .filter(OtpCode.created_at < cutoff)
                .delete(synchronize_session=False)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyFailure(f'Failed to purge verification codes: {e}') from e
        return int(deleted or 0)
