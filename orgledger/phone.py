"""
Phone Number Normalization

Wraps the phonenumbers library (a port of Google's libphonenumber).

A number is accepted only if it passes the number-plan validity check
for its region. Accepted numbers are canonicalized to E.164
("+14045551234"), so the same subscriber always stores as the same string
and the canonical form re-validates to itself.
"""

from functools import lru_cache
from typing import Optional

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from orgledger.config import get_settings


INVALID_PHONE_MESSAGE = "Invalid phone number, include the country code (e.g. +1)"


class InvalidPhoneNumberError(ValueError):
    """Raised when a phone number fails the number-plan check."""
    pass


class PhoneNormalizer:
    """
    Validates and canonicalizes phone numbers.

    Args:
        default_region: ISO 3166 region used when the number has no
            leading '+'. With no default region, only international
            numbers are accepted.
    """

    def __init__(self, default_region: Optional[str] = None):
        self._default_region = default_region

    def is_valid(self, raw: str) -> bool:
        try:
            self.normalize(raw)
        except InvalidPhoneNumberError:
            return False
        return True

    def normalize(self, raw: str) -> str:
        """
        Return the E.164 form of ``raw``.

        Raises:
            InvalidPhoneNumberError: If the number cannot be parsed or is
                not a valid number for its region.
        """
        try:
            parsed = phonenumbers.parse(raw.strip(), self._default_region)
        except NumberParseException as e:
            raise InvalidPhoneNumberError(INVALID_PHONE_MESSAGE) from e

        if not phonenumbers.is_valid_number(parsed):
            raise InvalidPhoneNumberError(INVALID_PHONE_MESSAGE)

        return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)

    def normalize_optional(self, raw: Optional[str]) -> Optional[str]:
        """Like normalize(), but None and blank strings mean 'absent'."""
        if raw is None or not raw.strip():
            return None
        return self.normalize(raw)


@lru_cache()
def get_phone_normalizer() -> PhoneNormalizer:
    """Normalizer configured with the application's default region (cached)."""
    return PhoneNormalizer(default_region=get_settings().app.default_phone_region)
