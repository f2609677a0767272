"""Operational onboarding wizard.

Endpoints:
  GET   /console/onboarding/gate?path=…                 → show the wizard? resume where?
  GET   /console/onboarding/                            → wizard snapshot (active step state)
  PATCH /console/onboarding/steps/{kind}/form           → update the step's form
  POST  /console/onboarding/steps/{kind}/add            → create the record, stage the draft
  GET   /console/onboarding/steps/{kind}/plan-limit     → refresh plan usage for the step
  GET   /console/onboarding/steps/{kind}/templates      → fetch templates (products, staff)
  PUT   /console/onboarding/steps/{kind}/templates      → store the selected templates
  PUT   /console/onboarding/steps/staff/tab             → switch staff / availability tab
  PATCH /console/onboarding/steps/staff/availability-form
  POST  /console/onboarding/steps/staff/availability    → create weekly availability
  POST  /console/onboarding/next | back | complete
  POST  /console/onboarding/clear                       → reset all staged data (step 1 only)
  POST  /console/onboarding/dismiss | resume
  GET   /console/onboarding/setup-status                → steps without platform records
| resume

Design:
  - Every record is created on the platform at "add" time; the wizard only
    stages drafts for its summary lists.
  - Transitions are refused with 409 while any step action is in flight or
    the active step is not satisfied.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from beautydesk.errors import NavigationBlocked
from beautydesk.onboarding.steps import StaffStep, Step
from beautydesk.schemas.common import PlanLimit
from beautydesk.schemas.onboarding import (
    ClearRequest,
    GateDecision,
    SetupStatus,
    TabRequest,
    TemplateSelection,
    WizardSnapshot,
)
from beautydesk.session import ConsoleSession, get_session

router = APIRouter()


def _step(session: ConsoleSession, kind: str) -> Step:
    return session.wizard.step_for(kind)


def _staff_step(session: ConsoleSession) -> StaffStep:
    step = _step(session, "staff")
    if not isinstance(step, StaffStep):
        raise NavigationBlocked("The staff step is not available")
    return step


@router.get("/gate", response_model=GateDecision)
async def gate(
    path: str = Query("/dashboard"),
    session: ConsoleSession = Depends(get_session),
):
    return await session.evaluate_gate(path)


@router.get("/", response_model=WizardSnapshot)
async def get_wizard(session: ConsoleSession = Depends(get_session)):
    return session.wizard.snapshot()


# ── Step actions ─────────────────────────────────────────────

@router.patch("/steps/{kind}/form", response_model=WizardSnapshot)
async def update_form(
    kind: str,
    values: dict[str, Any] = Body(...),
    session: ConsoleSession = Depends(get_session),
):
    _step(session, kind).update_form(values)
    return session.wizard.snapshot()


@router.post("/steps/{kind}/add", response_model=WizardSnapshot)
async def add_record(kind: str, session: ConsoleSession = Depends(get_session)):
    await _step(session, kind).add()
    return session.wizard.snapshot()


@router.get("/steps/{kind}/plan-limit", response_model=PlanLimit | None)
async def plan_limit(kind: str, session: ConsoleSession = Depends(get_session)):
    return await _step(session, kind).refresh_plan_limit()


@router.get("/steps/{kind}/templates", response_model=list[str])
async def get_templates(kind: str, session: ConsoleSession = Depends(get_session)):
    step = _step(session, kind)
    if not hasattr(step, "load_templates"):
        raise NavigationBlocked(f"The {kind} step has no templates")
    return await step.load_templates()


@router.put("/steps/{kind}/templates", response_model=WizardSnapshot)
async def select_templates(
    kind: str,
    body: TemplateSelection,
    session: ConsoleSession = Depends(get_session),
):
    step = _step(session, kind)
    if not hasattr(step, "select_templates"):
        raise NavigationBlocked(f"The {kind} step has no templates")
    await step.select_templates(body.names)
    return session.wizard.snapshot()


@router.put("/steps/staff/tab", response_model=WizardSnapshot)
async def set_tab(body: TabRequest, session: ConsoleSession = Depends(get_session)):
    _staff_step(session).set_tab(body.tab)
    return session.wizard.snapshot()


@router.patch("/steps/staff/availability-form", response_model=WizardSnapshot)
async def update_availability_form(
    values: dict[str, Any] = Body(...),
    session: ConsoleSession = Depends(get_session),
):
    _staff_step(session).update_availability_form(values)
    return session.wizard.snapshot()


@router.post("/steps/staff/availability", response_model=WizardSnapshot)
async def add_availability(session: ConsoleSession = Depends(get_session)):
    await _staff_step(session).add_availability()
    return session.wizard.snapshot()


# ── Navigation ───────────────────────────────────────────────

@router.post("/next", response_model=WizardSnapshot)
async def next_step(session: ConsoleSession = Depends(get_session)):
    await session.wizard.next()
    return session.wizard.snapshot()


@router.post("/back", response_model=WizardSnapshot)
async def previous_step(session: ConsoleSession = Depends(get_session)):
    await session.wizard.back()
    return session.wizard.snapshot()


@router.post("/complete")
async def complete(session: ConsoleSession = Depends(get_session)):
    wizard = session.wizard
    await wizard.complete()
    return {"completed": True, "completed_at": wizard.store.completion.completed_at}


@router.post("/clear", response_model=WizardSnapshot)
async def clear_all(body: ClearRequest, session: ConsoleSession = Depends(get_session)):
    await session.wizard.clear_all(body.confirmed)
    return session.wizard.snapshot()


@router.post("/dismiss")
async def dismiss(session: ConsoleSession = Depends(get_session)):
    await session.store.dismiss_wizard()
    return {"is_dismissed": True}


@router.post("/resume")
async def resume(session: ConsoleSession = Depends(get_session)):
    await session.store.resume_wizard()
    return {"is_dismissed": False}


@router.get("/setup-status", response_model=SetupStatus)
async def setup_status(session: ConsoleSession = Depends(get_session)):
    store = session.store
    if store.progress.is_completed:
        return SetupStatus(is_dismissed=store.progress.is_dismissed, is_completed=True)
    return SetupStatus(
        incomplete_steps=await store.incomplete_steps(),
        is_dismissed=store.progress.is_dismissed,
    )
