"""Pytest configuration and fixtures for BeautyDesk console tests.

The booking platform is replaced by `FakePlatform`, an in-memory REST API
served through `httpx.MockTransport`; console endpoints are exercised with
`httpx.ASGITransport`.
"""

import asyncio
import itertools
import json
import re
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient

from beautydesk.config import settings
from beautydesk.main import create_app
from beautydesk.onboarding.store import OnboardingStore
from beautydesk.onboarding.wizard import OnboardingWizard
from beautydesk.platform.client import PlatformClient
from beautydesk.storage import MemoryStorage

TENANT = {"id": "tenant-1", "name": "Glow Clinic", "slug": "glow-clinic"}
ADMIN = {"id": "user-1", "email": "owner@glow.id", "name": "Dewi Lestari", "role": "admin"}

COLLECTIONS = ("outlets", "users", "services", "staff", "customers", "availability")


# ── Fake platform ────────────────────────────────────────────────

class FakePlatform:
    """In-memory stand-in for the booking platform REST API."""

    def __init__(self):
        self.records: dict[str, list[dict]] = {name: [] for name in COLLECTIONS}
        self.deleted: set[str] = set()
        self.onboarding_status = {"operationalOnboardingCompleted": False, "completedAt": None}
        self.subscription: dict = {"plan": {"limits": {}}}
        self.usage: dict = {}
        self.position_templates = ["Therapist", "Receptionist"]
        self.category_templates = ["Facial", "Massage"]
        self.statistics = {"total_customers": 0, "active_customers": 0}
        self.grid: dict = {}
        self.check_result: dict = {"available": True}
        self.tenant_updates: list[dict] = []
        self.registrations: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.delay = 0.0
        self._failures: dict[tuple[str, str], object] = {}
        self._ids = itertools.count(1)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # ── Test controls ────────────────────────────────────────────

    def seed(self, collection: str, *records: dict) -> list[dict]:
        stored = [{"_id": f"{collection}-{next(self._ids)}", **r} for r in records]
        self.records[collection].extend(stored)
        return stored

    def fail(self, method: str, path: str, status_code: int = 500, body=None, exc: Exception | None = None):
        """Make `method path` fail with a response or a transport exception."""
        self._failures[(method, path)] = exc or httpx.Response(status_code, json=body or {"error": "boom"})

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def live(self, collection: str) -> list[dict]:
        return [r for r in self.records[collection] if r["_id"] not in self.deleted]

    # ── Routing ──────────────────────────────────────────────────

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)

        failure = self._failures.get((request.method, request.url.path))
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return failure

        parts = request.url.path.strip("/").split("/")[1:]
        params = request.url.params
        body = json.loads(request.content) if request.content else None
        method = request.method

        if parts == ["settings", "operational-onboarding"]:
            if method == "POST":
                self.onboarding_status = dict(body)
            return httpx.Response(200, json=self.onboarding_status)
        if parts == ["subscription"]:
            return httpx.Response(200, json=self.subscription)
        if parts == ["subscription", "usage"]:
            return httpx.Response(200, json=self.usage)
        if parts == ["staff", "positions", "templates"]:
            return httpx.Response(200, json={"positions": [{"name": n} for n in self.position_templates]})
        if parts == ["services", "categories", "templates"]:
            return httpx.Response(200, json={"categories": self.category_templates})
        if parts == ["customers", "statistics", "summary"]:
            return httpx.Response(200, json=self.statistics)
        if parts == ["availability", "grid"]:
            return httpx.Response(200, json=self.grid)
        if parts == ["availability", "check"]:
            return httpx.Response(200, json=self.check_result)
        if parts == ["auth", "register"]:
            self.registrations.append(body)
            return httpx.Response(201, json={"tenant_id": "tenant-new", "message": "Registered"})
        if parts[0] == "tenants" and method == "PUT":
            self.tenant_updates.append({"id": parts[1], **body})
            return httpx.Response(200, json={"_id": parts[1], **body})

        collection = parts[0]
        if collection not in self.records:
            return httpx.Response(404, json={"detail": "Not found"})

        if len(parts) == 1 and method == "GET":
            return self._list(collection, params)
        if len(parts) == 1 and method == "POST":
            record = self.seed(collection, body)[0]
            return httpx.Response(201, json=record)
        if len(parts) == 2 and method == "PUT":
            record = self._find(collection, parts[1])
            if record is None:
                return httpx.Response(404, json={"detail": "Not found"})
            record.update(body)
            return httpx.Response(200, json=record)
        if len(parts) == 2 and method == "DELETE":
            self.deleted.add(parts[1])
            return httpx.Response(200, json={"message": "Deleted"})
        if len(parts) == 3 and parts[2] == "restore" and method == "POST":
            self.deleted.discard(parts[1])
            return httpx.Response(200, json=self._find(collection, parts[1]) or {})
        return httpx.Response(405, json={"detail": "Method not allowed"})

    def _find(self, collection: str, record_id: str) -> dict | None:
        for record in self.records[collection]:
            if record["_id"] == record_id:
                return record
        return None

    def _list(self, collection: str, params: httpx.QueryParams) -> httpx.Response:
        items = self.live(collection)
        search = params.get("search")
        if search:
            needle = search.lower()
            items = [
                r for r in items
                if needle in re.sub(r"\D", "", str(r.get("phone", "")))
                or needle in f"{r.get('first_name', '')} {r.get('last_name', '')}".lower()
            ]
        page = int(params.get("page", 1))
        size = int(params.get("size", 20))
        chunk = items[(page - 1) * size:page * size]
        pages = (len(items) + size - 1) // size
        return httpx.Response(200, json={"items": chunk, "total": len(items), "pages": pages})


# ── Core fixtures ────────────────────────────────────────────────

@pytest.fixture
def fake_platform() -> FakePlatform:
    return FakePlatform()


@pytest_asyncio.fixture
async def storage() -> MemoryStorage:
    """Storage holding the signed-in tenant, as the console writes it at sign-in."""
    storage = MemoryStorage()
    await storage.set_json("tenant", TENANT)
    return storage


@pytest_asyncio.fixture
async def platform(fake_platform: FakePlatform) -> AsyncGenerator[PlatformClient, None]:
    client = PlatformClient(token="test-token", transport=fake_platform.transport)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def store(storage: MemoryStorage, platform: PlatformClient) -> OnboardingStore:
    store = OnboardingStore(storage, platform, TENANT["id"])
    await store.open()
    return store


@pytest.fixture
def wizard(store: OnboardingStore, platform: PlatformClient, storage: MemoryStorage) -> OnboardingWizard:
    return OnboardingWizard(store, platform, storage)


# ── Console app ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(fake_platform: FakePlatform, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    monkeypatch.setattr(settings, "search_debounce_seconds", 0.05)
    app = create_app(storage=MemoryStorage(), platform_transport=fake_platform.transport)
    transport = httpx.ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await app.state.sessions.close()


@pytest_asyncio.fixture
async def auth_headers(client: AsyncClient) -> dict:
    """Sign in and return authorization headers for the new session."""
    resp = await client.post(
        "/console/session",
        json={"access_token": "test-token", "user": ADMIN, "tenant": TENANT},
    )
    assert resp.status_code == 201
    return {"Authorization": "Bearer test-token"}


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: Console endpoint tests")
    config.addinivalue_line("markers", "slow: Tests that wait on real timers")
