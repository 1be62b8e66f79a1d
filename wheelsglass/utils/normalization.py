"""Contact normalization — pure functions used for customer matching.

  - Emails: "  Jane@Example.COM " → "jane@example.com"
  - Phones: "(555) 123-4567" → "5551234567"
  - ZIP codes: "98101-1234" → "98101"

Return "" (not None) for blank input so callers can test truthiness.
"""

import re

_NON_DIGIT = re.compile(r"\D")
_ZIP5 = re.compile(r"^\s*(\d{5})")


def normalize_email(email: str | None) -> str:
    if not email:
        return ""
    return email.strip().lower()


def normalize_phone(phone: str | None) -> str:
    """Strip everything but digits. No country-code handling."""
    if not phone:
        return ""
    return _NON_DIGIT.sub("", phone)


def normalize_zip(zip_code: str | None) -> str:
    """First five digits of a US ZIP, or the stripped input if it has none."""
    if not zip_code:
        return ""
    m = _ZIP5.match(zip_code)
    return m.group(1) if m else zip_code.strip()


def normalize_vin(vin: str | None) -> str:
    if not vin:
        return ""
    return vin.strip().upper()
