"""Reusable validators for console forms.

Provides the checks every form shares:
- Email validation
- URL validation
- Password policy
- Time-of-day and hex colour formats

Local phone checks live in ``beautydesk.phone`` and are re-exported here.
All validators raise ValueError with an operator-facing message, so they can
be used directly inside Pydantic field validators or collected into a
per-field error map by the step forms.
"""

import re
from typing import Callable

from beautydesk.phone import normalize_phone, validate_local_phone  # noqa: F401

# Regex patterns
EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
URL_REGEX = re.compile(
    r"^(?:https?://)?"
    r"(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,63}\.?|"  # domain
    r"localhost|"  # localhost
    r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})"  # IP
    r"(?::\d+)?"  # optional port
    r"(?:/?|[/?]\S+)$",
    re.IGNORECASE,
)
TIME_REGEX = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(?::[0-5]\d)?$")
HEX_COLOR_REGEX = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def validate_email(value: str) -> str:
    """Validate email address.

    Returns:
        The trimmed email address

    Raises:
        ValueError: If email is missing or malformed
    """
    if not value or not value.strip():
        raise ValueError("Email is required")

    value = value.strip()

    if len(value) > 254:  # RFC 5321
        raise ValueError("Email address too long")

    if not EMAIL_REGEX.match(value):
        raise ValueError("Invalid email address format")

    return value


def validate_url(value: str) -> str:
    """Validate a website URL (scheme optional)."""
    if not value:
        raise ValueError("URL is required")

    value = value.strip()

    if not URL_REGEX.match(value):
        raise ValueError("Invalid URL format")

    return value


def validate_password(value: str, min_length: int = 8) -> str:
    """Enforce the admin password policy."""
    if not value:
        raise ValueError("Password is required")
    if len(value) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain a lowercase letter")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain a number")
    return value


def validate_time(value: str) -> str:
    if not value or not TIME_REGEX.match(value):
        raise ValueError("Time must use HH:MM format")
    return value


def validate_hex_color(value: str) -> str:
    if not value or not HEX_COLOR_REGEX.match(value):
        raise ValueError("Color must be a hex value like #8B5CF6")
    return value


def slugify(name: str) -> str:
    """Generate a URL slug from a display name."""
    slug = name.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def collect_errors(checks: dict[str, Callable[[], object]]) -> dict[str, str]:
    """Run each check and return ``{field: message}`` for the failures.

    Example:
        errors = collect_errors({
            "email": lambda: validate_email(form.email),
            "phone": lambda: validate_local_phone(form.phone),
        })
    """
    errors: dict[str, str] = {}
    for field, check in checks.items():
        try:
            check()
        except ValueError as e:
            errors[field] = str(e)
    return errors


def errors_from_validation(exc) -> dict[str, str]:
    """Flatten a pydantic ValidationError into ``{field: message}``."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "__root__"
        errors.setdefault(field, error["msg"])
    return errors
