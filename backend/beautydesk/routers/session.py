"""Console session lifecycle and business self-registration.

Endpoints:
  POST   /console/session        → register a session for a platform token
  GET    /console/session        → who the current session belongs to
  DELETE /console/session        → sign out, tearing the session down
  POST   /console/auth/register  → register a new business + first admin
"""

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials

from beautydesk import auth
from beautydesk.errors import SessionRequired
from beautydesk.platform.client import PlatformClient
from beautydesk.schemas.auth import RegistrationRequest, SessionOut, SignInRequest
from beautydesk.session import (
    ConsoleSession,
    SessionRegistry,
    bearer_scheme,
    get_registry,
    get_session,
)

router = APIRouter()


@router.post("/session", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def sign_in(
    body: SignInRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    session = await registry.sign_in(body)
    return SessionOut(user=session.user, tenant=session.tenant)


@router.get("/session", response_model=SessionOut)
async def current_session(session: ConsoleSession = Depends(get_session)):
    return SessionOut(user=session.user, tenant=session.tenant)


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    registry: SessionRegistry = Depends(get_registry),
):
    if credentials is None or not await registry.sign_out(credentials.credentials):
        raise SessionRequired()


@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegistrationRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    platform = PlatformClient(transport=registry.transport)
    try:
        return await auth.register(body, platform)
    finally:
        await platform.close()
