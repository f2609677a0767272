"""Tenant settings.

Endpoints:
  GET  /console/settings/             → every section
  GET  /console/settings/{section}    → one section
  PUT  /console/settings/{section}    → validate and save one section
  POST /console/settings/branding/logo → upload a logo (≤ max_logo_bytes)

Sections: business_info, notifications, policies, security, regional,
branding. Saving one section never touches the others.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, File, UploadFile

from beautydesk.schemas.settings import BrandingSettings, TenantSettingsDocument
from beautydesk.session import ConsoleSession, get_session

router = APIRouter()


@router.get("/", response_model=TenantSettingsDocument)
async def get_settings(session: ConsoleSession = Depends(get_session)):
    return await session.settings.load()


@router.post("/branding/logo", response_model=BrandingSettings)
async def upload_logo(
    logo: UploadFile = File(...),
    session: ConsoleSession = Depends(get_session),
):
    content = await logo.read()
    return await session.settings.upload_logo(content, logo.content_type or "")


@router.get("/{section}")
async def get_section(section: str, session: ConsoleSession = Depends(get_session)):
    return await session.settings.load_section(section)


@router.put("/{section}")
async def save_section(
    section: str,
    values: dict[str, Any] = Body(...),
    session: ConsoleSession = Depends(get_session),
):
    return await session.settings.save_section(section, values)
