"""Onboarding wizard tests: step gating, navigation and the full walk-through."""

import asyncio

import pytest
import pytest_asyncio

from beautydesk.errors import (
    FieldValidationError,
    NavigationBlocked,
    PlanLimitError,
    PlatformRejection,
    PlatformUnavailable,
)
from beautydesk.onboarding.gate import OnboardingGate
from beautydesk.onboarding.store import ONBOARDING_KEY
from beautydesk.onboarding.wizard import OnboardingWizard
from beautydesk.routers.onboarding import _staff_step
from beautydesk.schemas.auth import SessionTenant, SessionUser
from beautydesk.session import ConsoleSession
from beautydesk.storage import MemoryStorage

OUTLET = {"name": "Jakarta Pusat", "street": "Jl. M.H. Thamrin 1", "city": "Jakarta", "phone": "81234567890"}
USER = {"first_name": "Rina", "last_name": "Wati", "email": "rina@glow.id", "password": "secret1"}
PRODUCT = {"name": "Facial", "category": "Facial", "duration_minutes": 60, "price": 150000}
STAFF = {"first_name": "Siti", "last_name": "Rahayu", "email": "siti@glow.id"}


async def add(wizard: OnboardingWizard, kind: str, values: dict):
    step = wizard.step_for(kind)
    step.update_form(values)
    return await step.add()


@pytest.mark.asyncio
class TestStepGating:

    async def test_next_blocked_until_step_is_valid(self, wizard):
        assert wizard.current_step == 1
        assert wizard.can_proceed is False
        with pytest.raises(NavigationBlocked):
            await wizard.next()

        await add(wizard, "outlet", OUTLET)

        assert wizard.is_valid(1)
        assert wizard.can_proceed is True
        assert await wizard.next() == 2

    async def test_validation_errors_block_the_add(self, wizard, fake_platform):
        with pytest.raises(FieldValidationError) as exc_info:
            await add(wizard, "outlet", {"name": "", "phone": "7123"})

        assert {"name", "street", "city", "phone"} <= set(exc_info.value.errors)
        assert wizard.step_for("outlet").errors == exc_info.value.errors
        assert fake_platform.calls("POST", "/api/outlets") == []
        assert wizard.can_proceed is False

    async def test_optional_phones_must_be_local_mobile(self, wizard, fake_platform):
        await add(wizard, "outlet", OUTLET)
        await wizard.next()

        with pytest.raises(FieldValidationError) as exc_info:
            await add(wizard, "users", {**USER, "phone": "021-5551234"})
        assert set(exc_info.value.errors) == {"phone"}

        await add(wizard, "users", {**USER, "phone": "0812-3456-7890"})
        assert len(fake_platform.live("users")) == 1

    async def test_platform_field_errors_land_on_the_form(self, wizard, fake_platform):
        fake_platform.fail(
            "POST", "/api/outlets", status_code=422,
            body={"error": [{"loc": ["body", "name"], "msg": "Outlet name already exists"}]},
        )
        with pytest.raises(PlatformRejection):
            await add(wizard, "outlet", OUTLET)

        step = wizard.step_for("outlet")
        assert step.errors == {"name": "Outlet name already exists"}
        assert step.busy is False
        assert wizard.store.progress.outlets == []

    async def test_plan_limit_short_circuits_before_post(self, wizard, fake_platform):
        fake_platform.usage = {"usage_summary": {"outlets": {"used": 1, "limit": 1}}}
        await add(wizard, "outlet", OUTLET)

        with pytest.raises(PlanLimitError) as exc_info:
            await add(wizard, "outlet", {**OUTLET, "name": "Bandung"})

        assert exc_info.value.upgrade_url
        assert len(fake_platform.calls("POST", "/api/outlets")) == 1

    async def test_navigation_blocked_while_busy(self, wizard, fake_platform):
        await add(wizard, "outlet", OUTLET)
        fake_platform.delay = 0.05
        step = wizard.step_for("outlet")
        step.update_form({**OUTLET, "name": "Bandung"})

        task = asyncio.create_task(step.add())
        while not step.busy:
            await asyncio.sleep(0)

        assert wizard.busy
        assert wizard.can_proceed is False
        with pytest.raises(NavigationBlocked):
            await wizard.next()
        await task
        assert await wizard.next() == 2

    async def test_second_add_refused_while_busy(self, wizard, fake_platform):
        fake_platform.delay = 0.05
        step = wizard.step_for("outlet")
        step.update_form(OUTLET)

        task = asyncio.create_task(step.add())
        while not step.busy:
            await asyncio.sleep(0)

        with pytest.raises(NavigationBlocked):
            await step.add()
        await task

        assert len(fake_platform.calls("POST", "/api/outlets")) == 1
        assert len(wizard.store.progress.outlets) == 1

    async def test_validity_survives_going_back(self, wizard):
        await add(wizard, "outlet", OUTLET)
        await wizard.next()
        assert await wizard.back() == 1
        assert wizard.can_proceed is True

    async def test_back_blocked_on_first_step(self, wizard):
        with pytest.raises(NavigationBlocked):
            await wizard.back()

    async def test_complete_only_from_last_step(self, wizard):
        await add(wizard, "outlet", OUTLET)
        with pytest.raises(NavigationBlocked):
            await wizard.complete()

    async def test_initial_step_is_clamped(self, store, platform, storage):
        wizard = OnboardingWizard(store, platform, storage, initial_step=9)
        assert wizard.current_step == 4


@pytest.mark.asyncio
class TestStaffStep:

    async def test_availability_tab_needs_staff(self, wizard):
        with pytest.raises(NavigationBlocked):
            wizard.step_for("staff").set_tab("availability")

    async def test_adding_staff_switches_to_availability(self, wizard):
        await add(wizard, "outlet", OUTLET)
        draft = await add(wizard, "staff", STAFF)

        step = wizard.step_for("staff")
        assert step.tab == "availability"
        assert step.availability_form.staff_id == draft.id
        assert step.availability_form.outlet_id == wizard.store.progress.outlets[0].id
        assert not wizard.is_valid(4)

    async def test_failed_availability_keeps_staff(self, wizard, fake_platform):
        await add(wizard, "staff", STAFF)
        fake_platform.fail("POST", "/api/availability", status_code=503)
        step = wizard.step_for("staff")
        step.update_availability_form({"recurrence_days": [1]})

        with pytest.raises(PlatformUnavailable):
            await step.add_availability()

        assert len(wizard.store.progress.staff) == 1
        assert wizard.store.progress.availabilities == []
        assert step.busy is False


@pytest.mark.asyncio
class TestClearAll:

    async def test_requires_confirmation(self, wizard):
        await add(wizard, "outlet", OUTLET)
        with pytest.raises(NavigationBlocked):
            await wizard.clear_all(confirmed=False)
        assert wizard.store.progress.outlets

    async def test_resets_progress_and_validity(self, wizard, storage):
        await add(wizard, "outlet", OUTLET)
        await wizard.clear_all(confirmed=True)

        assert wizard.store.progress.outlets == []
        assert wizard.can_proceed is False
        assert await storage.get_json(ONBOARDING_KEY) is None

    async def test_only_on_first_step(self, wizard):
        await add(wizard, "outlet", OUTLET)
        await wizard.next()
        with pytest.raises(NavigationBlocked):
            await wizard.clear_all(confirmed=True)


@pytest.mark.asyncio
class TestWalkThrough:

    async def test_new_tenant_completes_onboarding(self, store, platform, storage, fake_platform):
        admin = SessionUser(id="user-1", email="owner@glow.id", role="admin")
        decision = await OnboardingGate(store, platform).evaluate("/dashboard", admin)
        assert decision.show_wizard and decision.start_step == 1

        reloaded = []

        async def on_complete():
            reloaded.append(True)

        wizard = OnboardingWizard(
            store, platform, storage, initial_step=decision.start_step, on_complete=on_complete
        )

        await add(wizard, "outlet", {**OUTLET, "phone": "+6281234567890"})
        assert wizard.can_proceed
        assert await wizard.next() == 2

        await add(wizard, "users", USER)
        assert await wizard.next() == 3

        await add(wizard, "products", PRODUCT)
        assert wizard.is_valid(3)
        assert await wizard.next() == 4
        assert wizard.snapshot().primary_action == "complete"

        await add(wizard, "staff", STAFF)
        staff_step = wizard.step_for("staff")
        assert staff_step.tab == "availability"
        staff_step.update_availability_form({"recurrence_days": [1, 3, 5], "start_time": "09:00", "end_time": "17:00"})
        await staff_step.add_availability()
        assert wizard.can_proceed

        await wizard.complete()

        assert store.progress.is_completed
        document = await storage.get_json(ONBOARDING_KEY)
        assert document["completion"]["completed"] is True
        assert document["progress"] is None
        assert reloaded == [True]

        outlet = fake_platform.live("outlets")[0]
        assert outlet["contact"]["phone"] == "+6281234567890"
        service = fake_platform.live("services")[0]
        assert service["pricing"]["base_price"] == 150000
        assert len(fake_platform.live("availability")) == 3


@pytest.mark.asyncio
class TestConsoleSession:

    @pytest_asyncio.fixture
    async def session(self, fake_platform):
        session = ConsoleSession(
            "test-token",
            SessionUser(id="user-1", email="owner@glow.id", role="admin"),
            SessionTenant(id="tenant-1", name="Glow Clinic", slug="glow"),
            MemoryStorage(),
            transport=fake_platform.transport,
        )
        await session.start()
        yield session
        await session.close()

    async def test_gate_reseeds_wizard_opened_before_it(self, session, fake_platform):
        fake_platform.seed("outlets", {"name": "Jakarta Pusat"})
        fake_platform.seed("users", {"email": "rina@glow.id"})
        assert session.wizard.current_step == 1

        decision = await session.evaluate_gate("/dashboard")

        assert decision.start_step == 3
        assert session.wizard.current_step == 3

    async def test_later_gate_keeps_wizard_position(self, session):
        await session.evaluate_gate("/dashboard")
        await add(session.wizard, "outlet", OUTLET)

        decision = await session.evaluate_gate("/dashboard")

        assert decision.start_step == 2
        assert session.wizard.current_step == 1
        assert session.wizard.can_proceed

    async def test_reload_after_completion_drops_staged_drafts(self, session):
        await session.evaluate_gate("/dashboard")
        await add(session.wizard, "outlet", OUTLET)
        assert session.store.progress.outlets

        await session.store.complete_onboarding()
        await session.reload_tenant()

        assert session.store.progress.is_completed
        assert session.store.progress.outlets == []
        snapshot = session.wizard.snapshot()
        assert snapshot.state.outlets == []
        assert snapshot.can_proceed is False

    async def test_staff_routes_refuse_a_foreign_step(self, session, monkeypatch):
        monkeypatch.setattr(session.wizard, "step_for", lambda kind: session.wizard.steps[0])
        with pytest.raises(NavigationBlocked):
            _staff_step(session)
