"""Self-registration of a new business and its first admin."""

import logging

from beautydesk.errors import FieldValidationError, PlatformRejection
from beautydesk.phone import normalize_phone, validate_local_phone
from beautydesk.platform.client import PlatformClient
from beautydesk.schemas.auth import RegistrationRequest
from beautydesk.schemas.validators import collect_errors, validate_password

logger = logging.getLogger(__name__)


def validate_registration(request: RegistrationRequest) -> dict[str, str]:
    def required(value: str, message: str):
        def check():
            if not value.strip():
                raise ValueError(message)
        return check

    def phone():
        if not request.business_phone.strip():
            raise ValueError("Business phone is required")
        validate_local_phone(request.business_phone)

    def confirm_password():
        if request.confirm_password != request.password:
            raise ValueError("Passwords do not match")

    def terms():
        if not request.terms_accepted:
            raise ValueError("You must accept the terms of service")

    def privacy():
        if not request.privacy_accepted:
            raise ValueError("You must accept the privacy policy")

    return collect_errors({
        "business_name": required(request.business_name, "Business name is required"),
        "business_phone": phone,
        "admin_name": required(request.admin_name, "Admin name is required"),
        "password": lambda: validate_password(request.password),
        "confirm_password": confirm_password,
        "terms_accepted": terms,
        "privacy_accepted": privacy,
    })


def registration_payload(request: RegistrationRequest) -> dict:
    return {
        "business_name": request.business_name.strip(),
        "business_type": request.business_type,
        "business_phone": normalize_phone(request.business_phone),
        "admin_name": request.admin_name.strip(),
        "admin_email": str(request.admin_email),
        "password": request.password,
        "terms_accepted": request.terms_accepted,
        "privacy_accepted": request.privacy_accepted,
    }


async def register(request: RegistrationRequest, platform: PlatformClient | None = None) -> dict:
    """Register a business on the platform.

    Uses an unauthenticated client unless one is given; the caller's client is
    left open.

    Raises:
        FieldValidationError: local checks failed, or the platform rejected
            specific fields.
        PlatformRejection: the platform refused the registration outright.
        PlatformUnavailable: the platform could not be reached.
    """
    errors = validate_registration(request)
    if errors:
        raise FieldValidationError(errors)

    owned = platform is None
    client = platform or PlatformClient()
    try:
        data = await client.register(registration_payload(request))
    except PlatformRejection as e:
        if e.field_errors:
            raise FieldValidationError(e.field_errors, message=e.message) from e
        raise
    finally:
        if owned:
            await client.close()

    logger.info(f"Registered business {request.business_name.strip()!r}")
    return data or {}
