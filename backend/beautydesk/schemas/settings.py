"""Tenant settings sections.

Each section is saved on its own; `TenantSettingsDocument` is the one
versioned record that holds all of them for a tenant.
"""

from pydantic import BaseModel

CURRENCY_CHOICES = ("IDR", "USD", "EUR", "SGD", "MYR")
TIMEZONE_CHOICES = ("Asia/Jakarta", "Asia/Makassar", "Asia/Jayapura", "Asia/Singapore", "Asia/Tokyo")
DATE_FORMAT_CHOICES = ("dd/mm/yyyy", "mm/dd/yyyy", "yyyy-mm-dd")
TIME_FORMAT_CHOICES = ("12h", "24h")
LANGUAGE_CHOICES = ("en", "id", "zh", "ja")
THEME_CHOICES = ("original", "pink", "blue", "green", "purple", "gold")


class BusinessInfo(BaseModel):
    clinic_name: str = ""
    phone_number: str = ""
    email: str = ""
    address: str = ""
    operating_hours: str = "09:00 - 18:00"
    website: str = ""
    tax_id: str = ""


class NotificationSettings(BaseModel):
    booking_confirmations: bool = True
    day_before_reminders: bool = True
    three_hour_reminders: bool = False
    no_show_notifications: bool = True
    marketing_emails: bool = True
    system_alerts: bool = True


class PolicySettings(BaseModel):
    no_show_fee_enabled: bool = False
    no_show_fee_amount: int | None = 100000
    cancellation_policy: str = (
        "Appointments must be cancelled at least 24 hours in advance to avoid charges."
    )
    deposit_required: bool = False
    deposit_amount: int | None = 50000
    advance_booking_days: int = 30


class SecuritySettings(BaseModel):
    two_factor_auth: bool = False
    session_timeout_minutes: int = 30
    password_expiry_days: int = 90
    ip_whitelist: bool = False


class RegionalSettings(BaseModel):
    currency: str = "IDR"
    timezone: str = "Asia/Jakarta"
    date_format: str = "dd/mm/yyyy"
    time_format: str = "24h"
    language: str = "id"


class BrandingSettings(BaseModel):
    theme: str = "original"
    use_custom_colors: bool = False
    primary_color: str = "#8B5CF6"
    secondary_color: str = "#EC4899"
    logo_data_url: str | None = None


class TenantSettingsDocument(BaseModel):
    version: int = 2
    business_info: BusinessInfo = BusinessInfo()
    notifications: NotificationSettings = NotificationSettings()
    policies: PolicySettings = PolicySettings()
    security: SecuritySettings = SecuritySettings()
    regional: RegionalSettings = RegionalSettings()
    branding: BrandingSettings = BrandingSettings()


SECTION_MODELS: dict[str, type[BaseModel]] = {
    "business_info": BusinessInfo,
    "notifications": NotificationSettings,
    "policies": PolicySettings,
    "security": SecuritySettings,
    "regional": RegionalSettings,
    "branding": BrandingSettings,
}
