"""Local phone number handling.

Operators type numbers in whatever shape they're used to (08…, 8…, 628…,
+62…). Everything sent to the platform is in international form; national
number fields show the number without the country prefix.
"""

import re

from beautydesk.config import settings

NATIONAL_PHONE_REGEX = re.compile(r"^8\d{7,11}$")  # national significant number

_PHONE_SEPARATORS = re.compile(r"[\s\-().]")


def country_prefix(country_code: str | None = None) -> str:
    return "+" + (country_code or settings.default_country_code)


def normalize_phone(value: str | int | None, country_code: str | None = None) -> str:
    """Normalise a free-form local number to international form.

    - 08xxx   -> +628xxx
    - 8xxx    -> +628xxx
    - 628xxx  -> +628xxx
    - +628xxx -> unchanged
    Anything else is returned with separators removed.
    """
    if value is None or value == "":
        return ""
    code = country_code or settings.default_country_code
    cleaned = _PHONE_SEPARATORS.sub("", str(value).strip())

    if re.match(r"^0\d+", cleaned):
        return f"+{code}{cleaned[1:]}"
    if re.match(r"^8\d+", cleaned):
        return f"+{code}{cleaned}"
    if re.match(rf"^{code}\d+", cleaned):
        return "+" + cleaned
    return cleaned


def to_international(national: str | None, country_code: str | None = None) -> str:
    """Prepend the country code to a national significant number."""
    digits = re.sub(r"\D", "", national or "")
    if not digits:
        return ""
    return country_prefix(country_code) + digits


def to_national(value: str | None, country_code: str | None = None) -> str:
    """Strip the country prefix for display in a national-number field."""
    if not value:
        return ""
    prefix = country_prefix(country_code)
    if value.startswith(prefix):
        return value[len(prefix):]
    return value


def validate_local_phone(value: str | None, country_code: str | None = None) -> str:
    """Validate a local mobile number and return it in international form.

    Accepts either the national number (``81234567890``) or an already
    prefixed value (``+6281234567890``).

    Raises:
        ValueError: If the number is missing or does not match the local
            mobile pattern (starts with 8, 8-12 digits after the country code).
    """
    if not value or not value.strip():
        raise ValueError("Phone number is required")

    international = normalize_phone(value, country_code)
    prefix = country_prefix(country_code)
    if not international.startswith(prefix):
        raise ValueError(f"Must be a local number ({prefix})")

    national = international[len(prefix):]
    if not NATIONAL_PHONE_REGEX.match(national):
        raise ValueError(
            f"Phone number must start with 8 and have 8-12 digits after {prefix}"
        )
    return international
