"""Console sessions.

A `ConsoleSession` is built when an admin signs in and torn down when they
sign out. It owns everything with state: the platform client, the
tenant-scoped storage, the onboarding store and wizard, undo windows and
debounced lookups. Nothing stateful lives at module level.

Dependencies:
  get_registry   -> the app's SessionRegistry
  get_session    -> the ConsoleSession for the request's bearer token
"""

import logging

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from beautydesk.customers.service import CustomerService
from beautydesk.errors import SessionRequired
from beautydesk.onboarding.gate import OnboardingGate
from beautydesk.onboarding.store import OnboardingStore
from beautydesk.onboarding.wizard import OnboardingWizard
from beautydesk.platform.client import PlatformClient
from beautydesk.products.service import ProductService
from beautydesk.schemas.auth import SessionTenant, SessionUser, SignInRequest
from beautydesk.schemas.onboarding import GateDecision
from beautydesk.search import CustomerLookup, Debouncer
from beautydesk.settings_store import TenantSettingsStore
from beautydesk.storage import ScopedStorage, Storage
from beautydesk.undo import UndoManager
from beautydesk.walkin import WalkInBooking

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class ConsoleSession:

    def __init__(
        self,
        token: str,
        user: SessionUser,
        tenant: SessionTenant,
        storage: Storage,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.user = user
        self.tenant = tenant
        self.platform = PlatformClient(token, transport=transport)
        self.storage = ScopedStorage(storage, f"{tenant.id}:{user.id}")

        self.store = OnboardingStore(self.storage, self.platform, tenant.id)
        self.gate = OnboardingGate(self.store, self.platform)
        self._wizard: OnboardingWizard | None = None
        self._wizard_from_gate = False

        self.customers = CustomerService(self.platform, self.storage, UndoManager("customers"))
        self.products = ProductService(self.platform, UndoManager("products"))
        self.lookup = CustomerLookup(self.platform, Debouncer())
        self.walk_in = WalkInBooking(
            self.platform, self.storage, CustomerLookup(self.platform, Debouncer())
        )
        self.settings = TenantSettingsStore(self.storage, tenant.id, tenant.slug)

    async def start(self) -> None:
        await self.storage.set_json("tenant", self.tenant.model_dump())
        await self.store.open()

    # ── Onboarding ──────────────────────────────────────────

    def open_wizard(self, start_step: int | None = None) -> OnboardingWizard:
        self._wizard_from_gate = start_step is not None
        self._wizard = OnboardingWizard(
            self.store,
            self.platform,
            self.storage,
            initial_step=start_step,
            on_complete=self.reload_tenant,
        )
        return self._wizard

    @property
    def wizard(self) -> OnboardingWizard:
        return self._wizard or self.open_wizard()

    async def evaluate_gate(self, path: str) -> GateDecision:
        """Run the gate; a wizard it has not seeded yet is reopened at its resume step."""
        decision = await self.gate.evaluate(path, self.user)
        if decision.show_wizard and (
            self._wizard is None or not self._wizard_from_gate or self.store.progress.is_completed
        ):
            self.open_wizard(decision.start_step)
        return decision

    async def reload_tenant(self) -> None:
        """Pick up tenant data written by onboarding; drops the finished wizard."""
        await self.store.open()
        self._wizard = None
        self._wizard_from_gate = False
        logger.info(f"Reloaded tenant {self.tenant.id} after onboarding")

    async def close(self) -> None:
        await self.lookup.close()
        await self.walk_in.lookup.close()
        await self.customers.close()
        await self.products.close()
        await self.platform.close()
        logger.debug(f"Closed session for user {self.user.id}")


class SessionRegistry:
    """Live sessions keyed by platform access token."""

    def __init__(self, storage: Storage, transport: httpx.AsyncBaseTransport | None = None):
        self.storage = storage
        self.transport = transport
        self._sessions: dict[str, ConsoleSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def sign_in(self, request: SignInRequest) -> ConsoleSession:
        await self.sign_out(request.access_token)
        session = ConsoleSession(
            request.access_token,
            request.user,
            request.tenant,
            self.storage,
            transport=self.transport,
        )
        try:
            await session.start()
        except Exception:
            await session.close()
            raise
        self._sessions[request.access_token] = session
        logger.info(f"Signed in {request.user.email} for tenant {request.tenant.id}")
        return session

    def get(self, token: str) -> ConsoleSession:
        session = self._sessions.get(token)
        if session is None:
            raise SessionRequired()
        return session

    async def sign_out(self, token: str) -> bool:
        session = self._sessions.pop(token, None)
        if session is None:
            return False
        await session.close()
        logger.info(f"Signed out {session.user.email}")
        return True

    async def close(self) -> None:
        sessions, self._sessions = list(self._sessions.values()), {}
        for session in sessions:
            await session.close()


# ── Dependencies ────────────────────────────────────────────

def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


async def get_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    registry: SessionRegistry = Depends(get_registry),
) -> ConsoleSession:
    if credentials is None:
        raise SessionRequired()
    return registry.get(credentials.credentials)
