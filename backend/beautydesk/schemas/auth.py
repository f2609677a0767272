from pydantic import BaseModel, EmailStr


# ── Console session ─────────────────────────────────────────

class SessionUser(BaseModel):
    id: str
    email: str
    name: str = ""
    role: str = "admin"


class SessionTenant(BaseModel):
    id: str
    name: str = ""
    slug: str = ""


class SignInRequest(BaseModel):
    """Register a console session for a token issued by the platform."""
    access_token: str
    user: SessionUser
    tenant: SessionTenant


class SessionOut(BaseModel):
    user: SessionUser
    tenant: SessionTenant


# ── Self-registration (new business + first admin) ──────────

class RegistrationRequest(BaseModel):
    business_name: str
    business_type: str = "beauty-clinic"  # beauty-clinic | salon | spa | ...
    business_phone: str
    admin_name: str
    admin_email: EmailStr
    password: str
    confirm_password: str
    terms_accepted: bool = False
    privacy_accepted: bool = False
