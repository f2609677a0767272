"""Console endpoint tests.

Tests the HTTP surface end to end: session lifecycle, the error envelope,
and the onboarding, customer, settings and walk-in flows against the fake
platform.
"""

import asyncio

import pytest
from httpx import AsyncClient

TENANT_ID = "tenant-1"
ADMIN_EMAIL = "owner@glow.id"

OUTLET = {"name": "Jakarta Pusat", "street": "Jl. M.H. Thamrin 1", "city": "Jakarta", "phone": "81234567890"}


# ── Session ──────────────────────────────────────────────────────

@pytest.mark.api
@pytest.mark.asyncio
class TestSession:

    async def test_health(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

        ready = await client.get("/health/ready")
        assert ready.json()["checks"]["storage"] == "ok"

    async def test_requires_session(self, client: AsyncClient):
        resp = await client.get("/console/customers/")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "SESSION_REQUIRED"
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    async def test_unknown_token(self, client: AsyncClient):
        resp = await client.get("/console/session", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    async def test_sign_in_and_out(self, client: AsyncClient, auth_headers: dict):
        resp = await client.get("/console/session", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["tenant"]["id"] == TENANT_ID
        assert resp.json()["user"]["email"] == ADMIN_EMAIL

        resp = await client.delete("/console/session", headers=auth_headers)
        assert resp.status_code == 204

        resp = await client.get("/console/session", headers=auth_headers)
        assert resp.status_code == 401

    async def test_register_business(self, client: AsyncClient, fake_platform):
        resp = await client.post("/console/auth/register", json={
            "business_name": "Glow Clinic",
            "business_phone": "0812-3456-7890",
            "admin_name": "Dewi Lestari",
            "admin_email": "dewi@glow.id",
            "password": "Secret123",
            "confirm_password": "Secret123",
            "terms_accepted": True,
            "privacy_accepted": True,
        })
        assert resp.status_code == 201
        assert fake_platform.registrations[0]["business_phone"] == "+6281234567890"
        assert "Authorization" not in fake_platform.calls("POST", "/api/auth/register")[0].headers


# ── Onboarding ───────────────────────────────────────────────────

@pytest.mark.api
@pytest.mark.asyncio
class TestOnboardingEndpoints:

    async def test_gate_for_new_tenant(self, client: AsyncClient, auth_headers: dict):
        resp = await client.get("/console/onboarding/gate", params={"path": "/dashboard"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json() == {"show_wizard": True, "start_step": 1, "reason": "missing_outlets"}

        snapshot = (await client.get("/console/onboarding/", headers=auth_headers)).json()
        assert snapshot["current_step"] == 1
        assert snapshot["state"]["kind"] == "outlet"
        assert snapshot["can_proceed"] is False

    async def test_gate_resumes_wizard_fetched_before_it(self, client: AsyncClient, auth_headers: dict, fake_platform):
        fake_platform.seed("outlets", {"name": "Jakarta Pusat"})
        fake_platform.seed("users", {"email": "rina@glow.id"})
        await client.get("/console/onboarding/", headers=auth_headers)

        resp = await client.get("/console/onboarding/gate", params={"path": "/dashboard"}, headers=auth_headers)
        assert resp.json()["start_step"] == 3

        snapshot = (await client.get("/console/onboarding/", headers=auth_headers)).json()
        assert snapshot["current_step"] == 3
        assert snapshot["state"]["kind"] == "products"

    async def test_invalid_outlet_renders_field_errors(self, client: AsyncClient, auth_headers: dict):
        await client.patch("/console/onboarding/steps/outlet/form", json={"name": ""}, headers=auth_headers)
        resp = await client.post("/console/onboarding/steps/outlet/add", headers=auth_headers)

        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "name" in error["details"]["fields"]

    async def test_add_then_next(self, client: AsyncClient, auth_headers: dict, fake_platform):
        await client.patch("/console/onboarding/steps/outlet/form", json=OUTLET, headers=auth_headers)
        resp = await client.post("/console/onboarding/steps/outlet/add", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["can_proceed"] is True
        assert len(resp.json()["state"]["outlets"]) == 1
        assert len(fake_platform.live("outlets")) == 1

        resp = await client.post("/console/onboarding/next", headers=auth_headers)
        assert resp.json()["current_step"] == 2

        resp = await client.post("/console/onboarding/next", headers=auth_headers)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "NAVIGATION_BLOCKED"

    async def test_plan_limit(self, client: AsyncClient, auth_headers: dict, fake_platform):
        fake_platform.usage = {"usage_summary": {"outlets": {"used": 1, "limit": 1}}}
        await client.patch("/console/onboarding/steps/outlet/form", json=OUTLET, headers=auth_headers)
        await client.post("/console/onboarding/steps/outlet/add", headers=auth_headers)

        await client.patch("/console/onboarding/steps/outlet/form", json={**OUTLET, "name": "Bandung"}, headers=auth_headers)
        resp = await client.post("/console/onboarding/steps/outlet/add", headers=auth_headers)

        assert resp.status_code == 402
        details = resp.json()["error"]["details"]
        assert details["resource"] == "outlets"
        assert details["upgrade_url"]
        assert len(fake_platform.calls("POST", "/api/outlets")) == 1

    async def test_unknown_step(self, client: AsyncClient, auth_headers: dict):
        resp = await client.post("/console/onboarding/steps/billing/add", headers=auth_headers)
        assert resp.status_code == 409

    async def test_clear_needs_confirmation(self, client: AsyncClient, auth_headers: dict):
        await client.patch("/console/onboarding/steps/outlet/form", json=OUTLET, headers=auth_headers)
        await client.post("/console/onboarding/steps/outlet/add", headers=auth_headers)

        resp = await client.post("/console/onboarding/clear", json={}, headers=auth_headers)
        assert resp.status_code == 409

        resp = await client.post("/console/onboarding/clear", json={"confirmed": True}, headers=auth_headers)
        assert resp.json()["state"]["outlets"] == []

    async def test_dismiss_and_resume(self, client: AsyncClient, auth_headers: dict):
        resp = await client.post("/console/onboarding/dismiss", headers=auth_headers)
        assert resp.json() == {"is_dismissed": True}
        resp = await client.post("/console/onboarding/resume", headers=auth_headers)
        assert resp.json() == {"is_dismissed": False}

    async def test_setup_status_after_dismiss(self, client: AsyncClient, auth_headers: dict, fake_platform):
        fake_platform.seed("outlets", {"name": "Jakarta Pusat"})
        await client.post("/console/onboarding/dismiss", headers=auth_headers)

        resp = await client.get("/console/onboarding/setup-status", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json() == {"incomplete_steps": [2, 3, 4], "is_dismissed": True, "is_completed": False}


# ── Customers ────────────────────────────────────────────────────

@pytest.mark.api
@pytest.mark.asyncio
class TestCustomerEndpoints:

    async def test_create_delete_undo(self, client: AsyncClient, auth_headers: dict, fake_platform):
        resp = await client.post(
            "/console/customers/",
            json={"first_name": "Siti", "last_name": "Rahayu", "phone": "0812-3456-7890"},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        customer_id = resp.json()["id"]
        assert fake_platform.live("customers")[0]["tenant_id"] == TENANT_ID

        resp = await client.delete(f"/console/customers/{customer_id}", headers=auth_headers)
        assert resp.json()["undo_until"]
        assert fake_platform.live("customers") == []

        resp = await client.post("/console/customers/undo", headers=auth_headers)
        assert resp.json() == {"restored": customer_id}
        assert len(fake_platform.live("customers")) == 1

        resp = await client.post("/console/customers/undo", headers=auth_headers)
        assert resp.status_code == 410
        assert resp.json()["error"]["code"] == "UNDO_EXPIRED"

    async def test_invalid_form(self, client: AsyncClient, auth_headers: dict):
        resp = await client.post("/console/customers/", json={"first_name": "", "phone": "12"}, headers=auth_headers)
        assert resp.status_code == 422
        assert set(resp.json()["error"]["details"]["fields"]) == {"first_name", "phone"}

    async def test_malformed_body(self, client: AsyncClient, auth_headers: dict):
        resp = await client.post("/console/customers/", json={"first_name": 5}, headers=auth_headers)
        assert resp.status_code == 422
        assert "first_name" in resp.json()["error"]["details"]["fields"]

    async def test_quick_lookups_reach_platform_once(self, client: AsyncClient, auth_headers: dict, fake_platform):
        fake_platform.seed("customers", {"first_name": "Siti", "last_name": "Rahayu", "phone": "+62812345678"})

        first, second = await asyncio.gather(
            client.get("/console/customers/lookup", params={"q": "Sit"}, headers=auth_headers),
            client.get("/console/customers/lookup", params={"q": "Siti"}, headers=auth_headers),
        )

        lookups = fake_platform.calls("GET", "/api/customers")
        assert len(lookups) == 1
        searched = lookups[0].url.params["search"]
        assert first.json()["query"] == second.json()["query"] == searched
        assert "found" in {first.json()["status"], second.json()["status"]}

    async def test_list_with_filter(self, client: AsyncClient, auth_headers: dict, fake_platform):
        fake_platform.seed("customers", {"first_name": "Siti", "loyalty_points": 900}, {"first_name": "Ayu"})
        resp = await client.get("/console/customers/", params={"status": "vip"}, headers=auth_headers)
        items = resp.json()["items"]
        assert [row["customer"]["first_name"] for row in items] == ["Siti"]
        assert items[0]["status"] == "vip"

    async def test_platform_down(self, client: AsyncClient, auth_headers: dict, fake_platform):
        fake_platform.fail("GET", "/api/customers", status_code=503)
        resp = await client.get("/console/customers/", headers=auth_headers)
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "PLATFORM_UNAVAILABLE"

    async def test_statistics_failure_is_null(self, client: AsyncClient, auth_headers: dict, fake_platform):
        fake_platform.fail("GET", "/api/customers/statistics/summary", status_code=500)
        resp = await client.get("/console/customers/statistics", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json() is None


# ── Settings ─────────────────────────────────────────────────────

@pytest.mark.api
@pytest.mark.asyncio
class TestSettingsEndpoints:

    async def test_save_section(self, client: AsyncClient, auth_headers: dict):
        resp = await client.put(
            "/console/settings/business_info",
            json={"clinic_name": "Glow Clinic", "phone_number": "0812 555 0101"},
            headers=auth_headers,
        )
        assert resp.status_code == 200

        resp = await client.get("/console/settings/", headers=auth_headers)
        document = resp.json()
        assert document["business_info"]["clinic_name"] == "Glow Clinic"
        assert document["regional"]["currency"] == "IDR"

    async def test_invalid_section(self, client: AsyncClient, auth_headers: dict):
        resp = await client.put("/console/settings/regional", json={"language": "fr"}, headers=auth_headers)
        assert resp.status_code == 422
        assert "language" in resp.json()["error"]["details"]["fields"]

    async def test_logo_upload(self, client: AsyncClient, auth_headers: dict):
        resp = await client.post(
            "/console/settings/branding/logo",
            files={"logo": ("logo.png", b"\x89PNG\r\n", "image/png")},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["logo_data_url"].startswith("data:image/png;base64,")


# ── Walk-in ──────────────────────────────────────────────────────

@pytest.mark.api
@pytest.mark.asyncio
class TestWalkInEndpoints:

    async def test_unknown_customer_needs_confirmation(self, client: AsyncClient, auth_headers: dict, fake_platform):
        resp = await client.post("/console/walk-in/search", json={"phone": "+62812345678"}, headers=auth_headers)
        state = resp.json()
        assert state["lookup"]["status"] == "not_found"
        assert state["confirmed"] is False
        assert fake_platform.calls("POST", "/api/customers") == []

        await client.put(
            "/console/walk-in/new-customer",
            json={"name": "Siti Rahayu", "phone": "0812345678"},
            headers=auth_headers,
        )
        resp = await client.post("/console/walk-in/confirm", headers=auth_headers)

        assert resp.json()["confirmed"] is True
        record = fake_platform.live("customers")[0]
        assert record["registration_source"] == "staff_portal"
        assert record["tenant_id"] == TENANT_ID


# ── Availability ─────────────────────────────────────────────────

@pytest.mark.api
@pytest.mark.asyncio
class TestAvailabilityEndpoints:

    async def test_weekly_remaps_days(self, client: AsyncClient, auth_headers: dict, fake_platform):
        resp = await client.post(
            "/console/availability/weekly",
            json={"staff_id": "staff-1", "outlet_id": "outlet-1", "days": [0, 1]},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        days = sorted(r["recurrence_days"][0] for r in fake_platform.live("availability"))
        assert days == [0, 6]

    async def test_check_failure_is_unavailable(self, client: AsyncClient, auth_headers: dict, fake_platform):
        fake_platform.fail("GET", "/api/availability/check", status_code=503)
        resp = await client.get(
            "/console/availability/check",
            params={
                "staff_id": "staff-1",
                "service_id": "svc-1",
                "date": "2025-06-02",
                "start_time": "10:00",
                "end_time": "11:00",
            },
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["available"] is False
