"""Per-tenant settings.

All sections live in one versioned document under
``tenant-settings-{tenant_id}``. Saving a section re-reads the document and
replaces only that section, so a failed save (validation or storage) never
touches the others.

Older consoles wrote each section under its own key with camelCase fields;
those are folded into the document the first time it is loaded.
"""

import base64
import logging
import re

from pydantic import BaseModel, ValidationError

from beautydesk.config import settings
from beautydesk.errors import FieldValidationError, StorageError
from beautydesk.schemas.settings import (
    CURRENCY_CHOICES,
    DATE_FORMAT_CHOICES,
    LANGUAGE_CHOICES,
    SECTION_MODELS,
    THEME_CHOICES,
    TIME_FORMAT_CHOICES,
    TIMEZONE_CHOICES,
    BrandingSettings,
    BusinessInfo,
    PolicySettings,
    RegionalSettings,
    SecuritySettings,
    TenantSettingsDocument,
)
from beautydesk.schemas.validators import (
    collect_errors,
    errors_from_validation,
    validate_email,
    validate_hex_color,
    validate_local_phone,
    validate_url,
)
from beautydesk.storage import Storage

logger = logging.getLogger(__name__)

SETTINGS_VERSION = 2

_LEGACY_RENAMES = {
    "session_timeout": "session_timeout_minutes",
    "password_expiry": "password_expiry_days",
}


def settings_key(tenant_id: str) -> str:
    return f"tenant-settings-{tenant_id}"


def legacy_keys(tenant_id: str, tenant_slug: str | None) -> dict[str, list[str]]:
    slug = tenant_slug or tenant_id
    return {
        "business_info": [f"businessInfo-{tenant_id}", "businessInfo"],
        "notifications": ["notificationSettings"],
        "policies": ["policySettings"],
        "security": ["securitySettings"],
        "regional": ["regionalSettings"],
        "logo": [f"logo-{slug}"],
        "theme": [f"theme-{slug}"],
    }


def snake_case(data: dict) -> dict:
    converted = {}
    for key, value in data.items():
        name = re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()
        converted[_LEGACY_RENAMES.get(name, name)] = value
    return converted


# ── Section validation ──────────────────────────────────────

def _validate_business_info(info: BusinessInfo) -> dict[str, str]:
    def clinic_name():
        if not info.clinic_name.strip():
            raise ValueError("Clinic name is required")

    def phone_number():
        if not info.phone_number.strip():
            raise ValueError("Phone number is required")
        validate_local_phone(info.phone_number)

    return collect_errors({
        "clinic_name": clinic_name,
        "phone_number": phone_number,
        "email": lambda: validate_email(info.email) if info.email.strip() else None,
        "website": lambda: validate_url(info.website) if info.website.strip() else None,
    })


def _validate_policies(policies: PolicySettings) -> dict[str, str]:
    errors = {}
    if policies.no_show_fee_enabled and not (policies.no_show_fee_amount or 0) > 0:
        errors["no_show_fee_amount"] = "Please enter a valid no-show fee amount."
    if policies.deposit_required and not (policies.deposit_amount or 0) > 0:
        errors["deposit_amount"] = "Please enter a valid deposit amount."
    if policies.advance_booking_days <= 0:
        errors["advance_booking_days"] = "Advance booking days must be greater than 0."
    return errors


def _validate_security(security: SecuritySettings) -> dict[str, str]:
    errors = {}
    if security.session_timeout_minutes <= 0:
        errors["session_timeout_minutes"] = "Session timeout must be a positive number of minutes."
    if security.password_expiry_days <= 0:
        errors["password_expiry_days"] = "Password expiry must be a positive number of days."
    return errors


def _validate_regional(regional: RegionalSettings) -> dict[str, str]:
    choices = {
        "currency": CURRENCY_CHOICES,
        "timezone": TIMEZONE_CHOICES,
        "date_format": DATE_FORMAT_CHOICES,
        "time_format": TIME_FORMAT_CHOICES,
        "language": LANGUAGE_CHOICES,
    }
    return {
        field: f"Must be one of: {', '.join(allowed)}"
        for field, allowed in choices.items()
        if getattr(regional, field) not in allowed
    }


def logo_size(data_url: str) -> int:
    """Decoded size in bytes of a base64 data URL."""
    encoded = data_url.split(",", 1)[1] if "," in data_url else data_url
    padding = encoded.count("=", -2) if encoded.endswith("=") else 0
    return len(encoded) * 3 // 4 - padding


def _validate_branding(branding: BrandingSettings) -> dict[str, str]:
    def theme():
        if branding.theme not in THEME_CHOICES:
            raise ValueError(f"Theme must be one of: {', '.join(THEME_CHOICES)}")

    def logo():
        if branding.logo_data_url and logo_size(branding.logo_data_url) > settings.max_logo_bytes:
            raise ValueError("Please upload an image smaller than 2MB.")

    return collect_errors({
        "theme": theme,
        "primary_color": lambda: validate_hex_color(branding.primary_color),
        "secondary_color": lambda: validate_hex_color(branding.secondary_color),
        "logo_data_url": logo,
    })


SECTION_VALIDATORS = {
    "business_info": _validate_business_info,
    "notifications": lambda section: {},
    "policies": _validate_policies,
    "security": _validate_security,
    "regional": _validate_regional,
    "branding": _validate_branding,
}


class TenantSettingsStore:

    def __init__(self, storage: Storage, tenant_id: str, tenant_slug: str | None = None):
        self.storage = storage
        self.tenant_id = tenant_id
        self.tenant_slug = tenant_slug
        self.key = settings_key(tenant_id)

    async def _migrate_legacy(self) -> TenantSettingsDocument | None:
        found: dict = {}
        consumed: list[str] = []
        for section, keys in legacy_keys(self.tenant_id, self.tenant_slug).items():
            for key in keys:
                value = await self.storage.get_json(key)
                if value is not None:
                    found[section] = value
                    consumed.append(key)
                    break
        if not found:
            return None

        document = TenantSettingsDocument(version=SETTINGS_VERSION)
        updates = {}
        for section in ("business_info", "notifications", "policies", "security", "regional"):
            raw = found.get(section)
            if not isinstance(raw, dict):
                continue
            try:
                updates[section] = SECTION_MODELS[section].model_validate(snake_case(raw))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable legacy {section} settings: {e}")

        branding = document.branding.model_copy()
        if isinstance(found.get("logo"), str):
            branding.logo_data_url = found["logo"]
        theme = found.get("theme")
        if isinstance(theme, str):
            branding.theme = theme
        elif isinstance(theme, dict):
            branding.primary_color = theme.get("primaryColor", branding.primary_color)
            branding.secondary_color = theme.get("secondaryColor", branding.secondary_color)
            branding.use_custom_colors = True
        updates["branding"] = branding

        document = document.model_copy(update=updates)
        try:
            await self.storage.set_json(self.key, document.model_dump(mode="json"))
            await self.storage.delete(*consumed)
            logger.info(f"Migrated legacy settings for tenant {self.tenant_id}")
        except StorageError as e:
            logger.warning(f"Legacy settings migration not persisted: {e}")
        return document

    async def load(self) -> TenantSettingsDocument:
        raw = await self.storage.get_json(self.key)
        if raw is not None:
            try:
                return TenantSettingsDocument.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Discarding unreadable settings for tenant {self.tenant_id}: {e}")
                return TenantSettingsDocument()
        return await self._migrate_legacy() or TenantSettingsDocument()

    async def load_section(self, section: str) -> BaseModel:
        self._check_section(section)
        return getattr(await self.load(), section)

    @staticmethod
    def _check_section(section: str) -> None:
        if section not in SECTION_MODELS:
            raise FieldValidationError({"section": f"Unknown settings section: {section}"})

    async def save_section(self, section: str, values: dict | BaseModel) -> BaseModel:
        """Validate and persist one section.

        Raises:
            FieldValidationError: the section failed validation; nothing is written.
            StorageError: the write failed; stored settings are unchanged.
        """
        self._check_section(section)
        if isinstance(values, BaseModel):
            values = values.model_dump()
        try:
            model = SECTION_MODELS[section].model_validate(values)
        except ValidationError as e:
            raise FieldValidationError(errors_from_validation(e)) from e

        errors = SECTION_VALIDATORS[section](model)
        if errors:
            raise FieldValidationError(errors)

        document = await self.load()
        document = document.model_copy(update={section: model, "version": SETTINGS_VERSION})
        await self.storage.set_json(self.key, document.model_dump(mode="json"))
        logger.info(f"Saved {section} settings for tenant {self.tenant_id}")
        return model

    async def upload_logo(self, content: bytes, content_type: str) -> BrandingSettings:
        if not content_type.startswith("image/"):
            raise FieldValidationError({"logo": "Logo must be an image file."})
        if len(content) > settings.max_logo_bytes:
            raise FieldValidationError({"logo": "Please upload an image smaller than 2MB."})

        branding = (await self.load()).branding
        encoded = base64.b64encode(content).decode("ascii")
        branding = branding.model_copy(update={"logo_data_url": f"data:{content_type};base64,{encoded}"})
        return await self.save_section("branding", branding)
