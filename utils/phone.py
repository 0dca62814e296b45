"""Phone number canonicalization.

Customers and OTP rows store phones in one canonical E.164 form
(``+<country code><national number>``). Inputs arrive in many shapes
("333 123 4567", "+39 333-1234567", "0039333...", "39333..."), so every
write and every lookup goes through :func:`normalize_phone`.
"""

from __future__ import annotations

import re

DEFAULT_COUNTRY_CODE = '39'
# Longest national number of the default country (Italy: 10). Bare digits
# that start with the country code and are longer than this already carry it.
DEFAULT_MAX_NATIONAL_DIGITS = 10

_PHONE_INPUT_RE = re.compile(r'^\+?[\d\s().\-/]+$')
_MIN_DIGITS = 7
_MAX_DIGITS = 15


def _strip(raw: str) -> str:
    # Keep digits and '+' so "+39 (333) 123-4567" -> "+393331234567".
    return re.sub(r'[^\d+]', '', str(raw or '').strip())


def normalize_phone(
    raw: str,
    default_country_code: str = DEFAULT_COUNTRY_CODE,
    max_national_digits: int = DEFAULT_MAX_NATIONAL_DIGITS,
) -> str:
    """Return the canonical E.164 form of ``raw``, or '' for empty input.

    ``max_national_digits`` belongs to the default country: with another
    country code, set it to that country's longest national number.

    Examples (default country 39):
      - 3331234567      -> +393331234567
      - +39 333 1234567 -> +393331234567
      - 00393331234567  -> +393331234567
      - 393331234567    -> +393331234567
    """

    cleaned = _strip(raw)
    if not cleaned:
        return ''

    has_plus = cleaned.startswith('+')
    digits = cleaned.replace('+', '')
    if not digits:
        return ''

    if has_plus:
        return f'+{digits}'

    if digits.startswith('00'):
        return f'+{digits[2:]}'

    cc = (default_country_code or '').strip().lstrip('+')
    if not cc:
        return f'+{digits}'

    if digits.startswith(cc) and len(digits) > max_national_digits:
        return f'+{digits}'

    return f'+{cc}{digits}'


def is_phone_like(raw: str) -> bool:
    value = str(raw or '').strip()
    if not value or not _PHONE_INPUT_RE.match(value):
        return False
    digits = re.sub(r'\D', '', value)
    if digits.startswith('00'):
        digits = digits[2:]
    return _MIN_DIGITS <= len(digits) <= _MAX_DIGITS


def phone_variants(
    raw: str,
    default_country_code: str = DEFAULT_COUNTRY_CODE,
    max_national_digits: int = DEFAULT_MAX_NATIONAL_DIGITS,
) -> list[str]:
    """Every stored form equivalent to ``raw``.

    Rows written by this service are canonical; the other forms exist in
    legacy data written before canonicalization (bare national number,
    country code without '+', '00' prefix, the raw input itself).
    """

    canonical = normalize_phone(raw, default_country_code, max_national_digits)
    if not canonical:
        return []

    variants: set[str] = {canonical, _strip(raw)}
    raw_value = str(raw or '').strip()
    if raw_value:
        variants.add(raw_value)

    digits = canonical[1:]
    variants.add(digits)
    variants.add(f'00{digits}')

    cc = (default_country_code or '').strip().lstrip('+')
    if cc and digits.startswith(cc):
        national = digits[len(cc):]
        if national:
            variants.add(national)

    return sorted(v for v in variants if v)


def mask_phone(phone: str, visible_digits: int = 3) -> str:
    """Mask all but the last digits, for logs."""
    value = _strip(phone)
    if len(value) <= visible_digits:
        return value
    return '*' * (len(value) - visible_digits) + value[-visible_digits:]
