"""Pydantic schemas for the 4-step operational onboarding wizard.

Drafts are records that the platform has already created; the wizard only
keeps them for its summary lists. Forms hold what the operator is typing.
Each step renders as one variant of the `StepState` union, tagged by `kind`.
"""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from beautydesk.schemas.common import PlanLimit


# ── Drafts ──────────────────────────────────────────────────

class OutletDraft(BaseModel):
    id: str | None = None
    name: str
    address: str
    phone: str
    timezone: str | None = None


class UserDraft(BaseModel):
    id: str | None = None
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    role: str


class ProductDraft(BaseModel):
    id: str | None = None
    name: str
    duration_minutes: int
    price: float
    category: str
    description: str | None = None


class StaffDraft(BaseModel):
    id: str | None = None
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    position: str
    service_ids: list[str] = []


class AvailabilityDraft(BaseModel):
    staff_id: str
    outlet_id: str | None = None
    date: str
    start_time: str
    end_time: str
    recurrence_type: str | None = "weekly"
    recurrence_days: list[int] = []  # UI weekdays, 0=Sunday


class TemplateData(BaseModel):
    id: str
    name: str
    description: str | None = None
    is_default: bool = False
    is_selected: bool = False


# ── Progress / persisted document ───────────────────────────

class OnboardingProgress(BaseModel):
    outlets: list[OutletDraft] = []
    users: list[UserDraft] = []
    products: list[ProductDraft] = []
    staff: list[StaffDraft] = []
    availabilities: list[AvailabilityDraft] = []
    staff_position_templates: list[TemplateData] = []
    service_category_templates: list[TemplateData] = []
    current_step: int = 1
    is_completed: bool = False
    is_dismissed: bool = False

    @property
    def has_staged_data(self) -> bool:
        return bool(
            self.outlets or self.users or self.products
            or self.staff or self.availabilities
        )


class OnboardingCompletion(BaseModel):
    completed: bool = True
    completed_at: datetime | None = None


class OnboardingDocument(BaseModel):
    """The single persisted record for a tenant's onboarding.

    `progress` is the working snapshot; `completion` the completion marker.
    Completing onboarding writes the marker and drops the snapshot in one
    write.
    """
    version: int = 2
    progress: OnboardingProgress | None = None
    completion: OnboardingCompletion | None = None


# ── Forms ───────────────────────────────────────────────────

class OutletForm(BaseModel):
    name: str = ""
    description: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = "ID"
    phone: str = ""  # national number, the country code is prepended on submit
    email: str = ""
    timezone: str = "Asia/Jakarta"


class UserForm(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    role: str = "staff"
    password: str = ""


class ProductForm(BaseModel):
    name: str = ""
    slug: str = ""
    category: str = ""
    duration_minutes: int = 60
    price: float = 0
    currency: str = "IDR"
    description: str = ""
    image_url: str = ""
    preparation_minutes: int = 0
    cleanup_minutes: int = 0
    max_advance_booking_days: int = 30
    min_advance_booking_hours: int = 2
    requires_staff: bool = True
    required_staff_count: int = 1
    allow_parallel_bookings: bool = False
    max_parallel_bookings: int = 1
    tags: list[str] = []


class StaffForm(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    position: str = "Therapist"
    service_ids: list[str] = []


class AvailabilityForm(BaseModel):
    staff_id: str = ""
    outlet_id: str = ""
    start_time: str = "09:00"
    end_time: str = "17:00"
    recurrence_days: list[int] = []  # UI weekdays, 0=Sunday .. 6=Saturday


# ── Step states ─────────────────────────────────────────────

class _StepStateBase(BaseModel):
    valid: bool = False
    busy: bool = False
    errors: dict[str, str] = {}
    plan_limit: PlanLimit | None = None


class OutletStepState(_StepStateBase):
    kind: Literal["outlet"] = "outlet"
    form: OutletForm
    outlets: list[OutletDraft] = []


class UserStepState(_StepStateBase):
    kind: Literal["users"] = "users"
    form: UserForm
    users: list[UserDraft] = []


class ProductStepState(_StepStateBase):
    kind: Literal["products"] = "products"
    form: ProductForm
    products: list[ProductDraft] = []
    category_templates: list[str] = []


class StaffStepState(_StepStateBase):
    kind: Literal["staff"] = "staff"
    tab: Literal["staff", "availability"] = "staff"
    form: StaffForm
    availability_form: AvailabilityForm
    staff: list[StaffDraft] = []
    availabilities: list[AvailabilityDraft] = []
    position_templates: list[str] = []


StepState = Annotated[
    Union[OutletStepState, UserStepState, ProductStepState, StaffStepState],
    Field(discriminator="kind"),
]


# ── Wizard / gate output ────────────────────────────────────

class WizardStepInfo(BaseModel):
    number: int
    title: str
    description: str
    status: Literal["active", "completed", "pending"]


class WizardSnapshot(BaseModel):
    current_step: int
    total_steps: int
    steps: list[WizardStepInfo]
    can_proceed: bool
    can_go_back: bool
    can_clear: bool
    busy: bool
    primary_action: Literal["next", "complete"]
    is_completed: bool
    state: StepState


class GateDecision(BaseModel):
    show_wizard: bool
    start_step: int = 1
    reason: str = ""


class SetupStatus(BaseModel):
    """Setup reminder for users who dismissed the wizard."""
    incomplete_steps: list[int] = []
    is_dismissed: bool = False
    is_completed: bool = False


class OnboardingStatus(BaseModel):
    operationalOnboardingCompleted: bool = False
    completedAt: datetime | None = None


# ── Request bodies ──────────────────────────────────────────

class TabRequest(BaseModel):
    tab: Literal["staff", "availability"]


class TemplateSelection(BaseModel):
    names: list[str]


class ClearRequest(BaseModel):
    confirmed: bool = False
