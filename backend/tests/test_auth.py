"""Business self-registration tests."""

import pytest

from beautydesk.auth import register, registration_payload, validate_registration
from beautydesk.errors import FieldValidationError, PlatformRejection
from beautydesk.schemas.auth import RegistrationRequest


def make_request(**overrides) -> RegistrationRequest:
    values = {
        "business_name": "Glow Clinic",
        "business_phone": "0812-3456-7890",
        "admin_name": "Dewi Lestari",
        "admin_email": "dewi@glow.id",
        "password": "Secret123",
        "confirm_password": "Secret123",
        "terms_accepted": True,
        "privacy_accepted": True,
    }
    values.update(overrides)
    return RegistrationRequest(**values)


@pytest.mark.unit
class TestRegistrationValidation:

    def test_valid_request(self):
        assert validate_registration(make_request()) == {}

    @pytest.mark.parametrize("password,message", [
        ("Sh0rt", "at least 8"),
        ("alllower123", "uppercase"),
        ("ALLUPPER123", "lowercase"),
        ("NoDigitsHere", "number"),
    ])
    def test_password_policy(self, password, message):
        errors = validate_registration(make_request(password=password, confirm_password=password))
        assert message in errors["password"]

    def test_mismatched_confirmation(self):
        errors = validate_registration(make_request(confirm_password="Secret124"))
        assert set(errors) == {"confirm_password"}

    def test_consents_required(self):
        errors = validate_registration(make_request(terms_accepted=False, privacy_accepted=False))
        assert set(errors) == {"terms_accepted", "privacy_accepted"}

    def test_blank_fields(self):
        errors = validate_registration(make_request(business_name=" ", admin_name="", business_phone="phone"))
        assert set(errors) == {"business_name", "admin_name", "business_phone"}

    @pytest.mark.parametrize("phone", ["021-5551234", "+1 415 555 0100", "0812"])
    def test_business_phone_must_be_local_mobile(self, phone):
        errors = validate_registration(make_request(business_phone=phone))
        assert set(errors) == {"business_phone"}

    def test_payload_normalizes_phone(self):
        payload = registration_payload(make_request())
        assert payload["business_phone"] == "+6281234567890"
        assert payload["business_type"] == "beauty-clinic"
        assert "confirm_password" not in payload


@pytest.mark.asyncio
class TestRegister:

    async def test_register(self, platform, fake_platform):
        data = await register(make_request(), platform)
        assert data["tenant_id"] == "tenant-new"
        assert fake_platform.registrations[0]["admin_email"] == "dewi@glow.id"

    async def test_invalid_request_is_not_sent(self, platform, fake_platform):
        with pytest.raises(FieldValidationError):
            await register(make_request(terms_accepted=False), platform)
        assert fake_platform.registrations == []

    async def test_field_rejection(self, platform, fake_platform):
        fake_platform.fail(
            "POST", "/api/auth/register", status_code=409,
            body={"detail": [{"loc": ["body", "admin_email"], "msg": "Email already registered"}]},
        )
        with pytest.raises(FieldValidationError) as exc_info:
            await register(make_request(), platform)
        assert exc_info.value.errors == {"admin_email": "Email already registered"}

    async def test_plain_rejection(self, platform, fake_platform):
        fake_platform.fail("POST", "/api/auth/register", status_code=403, body={"detail": "Registration closed"})
        with pytest.raises(PlatformRejection) as exc_info:
            await register(make_request(), platform)
        assert exc_info.value.message == "Registration closed"
