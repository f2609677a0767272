"""Onboarding wizard steps.

Each step owns one form, the list it has staged so far, a per-field error
map and a busy flag. Adding a record always runs the same pipeline:

    validate -> plan-limit check -> POST to the platform -> stage the draft

Nothing is staged unless the platform accepted the record. A step reports
whether it is complete through `on_valid_change`, once when mounted and
again after every add.
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable

from pydantic import BaseModel

from beautydesk import availability
from beautydesk.errors import (
    ConsoleError,
    FieldValidationError,
    NavigationBlocked,
    PlanLimitError,
    PlatformRejection,
    SessionRequired,
)
from beautydesk.onboarding.store import OnboardingStore
from beautydesk.phone import normalize_phone, validate_local_phone
from beautydesk.platform.client import PlatformClient, item_id
from beautydesk.schemas.common import PlanLimit
from beautydesk.schemas.onboarding import (
    AvailabilityForm,
    OutletDraft,
    OutletForm,
    OutletStepState,
    ProductDraft,
    ProductForm,
    ProductStepState,
    StaffDraft,
    StaffForm,
    StaffStepState,
    TemplateData,
    UserDraft,
    UserForm,
    UserStepState,
)
from beautydesk.schemas.validators import (
    collect_errors,
    slugify,
    validate_email,
)
from beautydesk.storage import Storage

logger = logging.getLogger(__name__)

USER_ROLES = ("staff", "manager", "receptionist")
MIN_USER_PASSWORD_LENGTH = 6

DEFAULT_BUSINESS_HOURS = [
    {"day": 0, "is_open": False},
    *(
        {"day": day, "is_open": True, "open_time": "09:00", "close_time": "18:00"}
        for day in range(1, 6)
    ),
    {"day": 6, "is_open": False},
]

DEFAULT_OUTLET_SETTINGS = {
    "accepts_online_booking": True,
    "requires_appointment": True,
    "walk_ins_allowed": True,
    "advance_booking_days": 30,
    "cancellation_hours": 24,
    "auto_confirm_bookings": False,
    "payment_required_upfront": False,
    "timezone": "Asia/Jakarta",
    "default_service_buffer_minutes": 15,
    "accepts_online_payment": True,
    "accepts_cash_payment": True,
    "payment_on_arrival": False,
}


def _required(value: str, message: str) -> Callable[[], None]:
    def check():
        if not value or not value.strip():
            raise ValueError(message)
    return check


def _optional(value: str, validator: Callable[[str], object]) -> Callable[[], object]:
    return lambda: validator(value) if value and value.strip() else None


class Step:
    """Base class for one wizard step."""

    number: int
    kind: str
    title: str
    description: str
    resource: str  # platform collection / plan-limit resource
    form_class: type[BaseModel]

    def __init__(self, store: OnboardingStore, platform: PlatformClient, storage: Storage):
        self.store = store
        self.platform = platform
        self.storage = storage
        self.form = self.form_class()
        self.errors: dict[str, str] = {}
        self.busy = False
        self.plan_limit: PlanLimit | None = None
        self._on_valid_change: Callable[[bool], None] | None = None
        self._last_valid: bool | None = None

    # ── Validity ────────────────────────────────────────────

    def is_complete(self) -> bool:
        raise NotImplementedError

    def mount(self, on_valid_change: Callable[[bool], None]) -> None:
        self._on_valid_change = on_valid_change
        self._last_valid = None
        self._notify_validity()

    def _notify_validity(self) -> None:
        valid = self.is_complete()
        if valid != self._last_valid:
            logger.debug(f"Step {self.number} ({self.kind}) valid={valid}")
        self._last_valid = valid
        if self._on_valid_change is not None:
            self._on_valid_change(valid)

    # ── Form ────────────────────────────────────────────────

    def update_form(self, values: dict) -> BaseModel:
        self.form = self.form_class.model_validate({**self.form.model_dump(), **values})
        return self.form

    def reset_form(self) -> None:
        self.form = self.form_class()

    def validate(self) -> dict[str, str]:
        raise NotImplementedError

    # ── Context ─────────────────────────────────────────────

    async def tenant_id(self) -> str:
        tenant = await self.storage.get_json("tenant")
        tenant_id = tenant.get("id") or tenant.get("_id") if isinstance(tenant, dict) else None
        if not tenant_id:
            raise SessionRequired("Tenant information not found. Please sign in again.")
        return str(tenant_id)

    def outlet_id(self) -> str | None:
        outlets = self.store.progress.outlets
        return outlets[0].id if outlets else None

    def staged_count(self) -> int:
        return len(getattr(self.store.progress, self.resource))

    async def refresh_plan_limit(self) -> PlanLimit | None:
        try:
            self.plan_limit = await self.platform.plan_limit(self.resource)
        except ConsoleError as e:
            logger.warning(f"Failed to fetch plan limits for {self.resource}: {e.message}")
            self.plan_limit = None
        return self.plan_limit

    async def _check_plan_limit(self) -> None:
        limit = await self.refresh_plan_limit()
        if limit is not None and self.staged_count() >= limit.max:
            raise PlanLimitError(self.resource, limit.max)

    def _ensure_idle(self) -> None:
        if self.busy:
            raise NavigationBlocked(f"Step {self.number} is still saving")

    @asynccontextmanager
    async def _action(self):
        self._ensure_idle()
        self.busy = True
        try:
            yield
        except PlatformRejection as e:
            self.errors = dict(e.field_errors)
            raise
        finally:
            self.busy = False

    # ── Add pipeline ────────────────────────────────────────

    async def _submit(self) -> BaseModel:
        raise NotImplementedError

    async def _stage(self, draft: BaseModel) -> None:
        raise NotImplementedError

    async def add(self) -> BaseModel:
        self._ensure_idle()
        errors = self.validate()
        self.errors = errors
        if errors:
            raise FieldValidationError(errors)
        async with self._action():
            await self._check_plan_limit()
            draft = await self._submit()

        await self._stage(draft)
        self.reset_form()
        self.errors = {}
        self._notify_validity()
        return draft

    def state(self):
        raise NotImplementedError

    def _base_state(self) -> dict:
        return {
            "valid": self.is_complete(),
            "busy": self.busy,
            "errors": dict(self.errors),
            "plan_limit": self.plan_limit,
        }


# ── Step 1: Outlet ──────────────────────────────────────────

class OutletStep(Step):
    number = 1
    kind = "outlet"
    title = "Outlet Management"
    description = "Add at least one outlet where customers are served"
    resource = "outlets"
    form_class = OutletForm

    def is_complete(self) -> bool:
        return len(self.store.progress.outlets) > 0

    def validate(self) -> dict[str, str]:
        f = self.form
        return collect_errors({
            "name": _required(f.name, "Outlet name is required"),
            "street": _required(f.street, "Street address is required"),
            "city": _required(f.city, "City is required"),
            "phone": lambda: validate_local_phone(f.phone),
            "email": _optional(f.email, validate_email),
        })

    async def _submit(self) -> OutletDraft:
        f = self.form
        tenant_id = await self.tenant_id()
        phone = normalize_phone(f.phone)
        contact = {"phone": phone}
        if f.email.strip():
            contact["email"] = f.email.strip()

        payload = {
            "tenant_id": tenant_id,
            "name": f.name.strip(),
            "slug": slugify(f.name),
            "description": f.description.strip() or None,
            "address": {
                "street": f.street.strip(),
                "city": f.city.strip(),
                "state": f.state.strip() or f.city.strip(),
                "postal_code": f.postal_code.strip() or "00000",
                "country": f.country,
            },
            "contact": contact,
            "status": "active",
            "business_hours": DEFAULT_BUSINESS_HOURS,
            "settings": {**DEFAULT_OUTLET_SETTINGS, "timezone": f.timezone},
        }
        data = await self.platform.create_outlet(payload)
        return OutletDraft(
            id=item_id(data),
            name=f.name.strip(),
            address=f"{f.street.strip()}, {f.city.strip()}",
            phone=phone,
            timezone=f.timezone,
        )

    async def _stage(self, draft: OutletDraft) -> None:
        await self.store.add_outlet(draft)

    def state(self) -> OutletStepState:
        return OutletStepState(
            form=self.form, outlets=list(self.store.progress.outlets), **self._base_state()
        )


# ── Step 2: Users ───────────────────────────────────────────

class UserStep(Step):
    number = 2
    kind = "users"
    title = "User Management"
    description = "Invite the people who run daily operations"
    resource = "users"
    form_class = UserForm

    def is_complete(self) -> bool:
        return len(self.store.progress.users) > 0

    def validate(self) -> dict[str, str]:
        f = self.form

        def password():
            if not f.password.strip():
                raise ValueError("Password is required")
            if len(f.password) < MIN_USER_PASSWORD_LENGTH:
                raise ValueError(
                    f"Password must be at least {MIN_USER_PASSWORD_LENGTH} characters"
                )

        def role():
            if f.role not in USER_ROLES:
                raise ValueError(f"Role must be one of: {', '.join(USER_ROLES)}")

        return collect_errors({
            "first_name": _required(f.first_name, "First name is required"),
            "last_name": _required(f.last_name, "Last name is required"),
            "email": lambda: validate_email(f.email),
            "password": password,
            "role": role,
            "phone": _optional(f.phone, validate_local_phone),
        })

    async def _submit(self) -> UserDraft:
        f = self.form
        payload = {
            "tenant_id": await self.tenant_id(),
            "first_name": f.first_name.strip(),
            "last_name": f.last_name.strip(),
            "email": f.email.strip(),
            "phone": normalize_phone(f.phone) or None,
            "role": f.role,
            "password": f.password,
            "is_active": True,
        }
        if self.outlet_id():
            payload["outlet_ids"] = [self.outlet_id()]
        data = await self.platform.create_user(payload)
        return UserDraft(
            id=item_id(data),
            first_name=payload["first_name"],
            last_name=payload["last_name"],
            email=payload["email"],
            phone=payload["phone"],
            role=f.role,
        )

    async def _stage(self, draft: UserDraft) -> None:
        await self.store.add_user(draft)

    def state(self) -> UserStepState:
        return UserStepState(
            form=self.form, users=list(self.store.progress.users), **self._base_state()
        )


# ── Step 3: Products ────────────────────────────────────────

class ProductStep(Step):
    number = 3
    kind = "products"
    title = "Products / Services"
    description = "List the treatments customers can book"
    resource = "services"
    form_class = ProductForm

    def __init__(self, store: OnboardingStore, platform: PlatformClient, storage: Storage):
        super().__init__(store, platform, storage)
        self.category_templates: list[str] = []

    def staged_count(self) -> int:
        return len(self.store.progress.products)

    def is_complete(self) -> bool:
        return len(self.store.progress.products) > 0

    async def load_templates(self) -> list[str]:
        try:
            self.category_templates = await self.platform.service_category_templates()
        except ConsoleError as e:
            logger.warning(f"Failed to fetch category templates: {e.message}")
        return self.category_templates

    async def select_templates(self, names: list[str]) -> None:
        await self.store.set_service_category_templates([
            TemplateData(id=slugify(name), name=name, is_selected=True) for name in names
        ])

    def validate(self) -> dict[str, str]:
        f = self.form

        def positive(value: float, message: str):
            def check():
                if value is None or value <= 0:
                    raise ValueError(message)
            return check

        return collect_errors({
            "name": _required(f.name, "Service name is required"),
            "category": _required(f.category, "Category is required"),
            "duration_minutes": positive(f.duration_minutes, "Duration must be greater than 0"),
            "price": positive(f.price, "Price must be greater than 0"),
        })

    async def _submit(self) -> ProductDraft:
        f = self.form
        payload = {
            "tenant_id": await self.tenant_id(),
            "name": f.name.strip(),
            "slug": f.slug.strip() or slugify(f.name),
            "category": f.category,
            "description": f.description.strip() or None,
            "duration_minutes": f.duration_minutes,
            "preparation_minutes": f.preparation_minutes or None,
            "cleanup_minutes": f.cleanup_minutes or None,
            "max_advance_booking_days": f.max_advance_booking_days or 30,
            "min_advance_booking_hours": f.min_advance_booking_hours or 2,
            "requires_staff": f.requires_staff,
            "required_staff_count": f.required_staff_count or 1,
            "allow_parallel_bookings": f.allow_parallel_bookings,
            "max_parallel_bookings": f.max_parallel_bookings or 1,
            "pricing": {"base_price": f.price, "currency": f.currency or "IDR"},
            "tags": list(f.tags),
            "image_url": f.image_url or None,
            "is_active": True,
            "status": "active",
        }
        if self.outlet_id():
            payload["outlet_ids"] = [self.outlet_id()]
        data = await self.platform.create_service(payload)
        return ProductDraft(
            id=item_id(data),
            name=payload["name"],
            duration_minutes=f.duration_minutes,
            price=f.price,
            category=f.category,
            description=payload["description"],
        )

    async def _stage(self, draft: ProductDraft) -> None:
        await self.store.add_product(draft)

    def state(self) -> ProductStepState:
        return ProductStepState(
            form=self.form,
            products=list(self.store.progress.products),
            category_templates=list(self.category_templates),
            **self._base_state(),
        )


# ── Step 4: Staff & availability ────────────────────────────

class StaffStep(Step):
    number = 4
    kind = "staff"
    title = "Staff + Availability"
    description = "Add staff and the hours they can be booked"
    resource = "staff"
    form_class = StaffForm

    def __init__(self, store: OnboardingStore, platform: PlatformClient, storage: Storage):
        super().__init__(store, platform, storage)
        self.tab = "staff"
        self.position_templates: list[str] = []
        self.availability_form = AvailabilityForm(outlet_id=self.outlet_id() or "")

    def is_complete(self) -> bool:
        progress = self.store.progress
        return len(progress.staff) > 0 and len(progress.availabilities) > 0

    async def load_templates(self) -> list[str]:
        try:
            self.position_templates = await self.platform.staff_position_templates()
        except ConsoleError as e:
            logger.warning(f"Failed to fetch staff position templates: {e.message}")
        return self.position_templates

    async def select_templates(self, names: list[str]) -> None:
        await self.store.set_staff_position_templates([
            TemplateData(id=slugify(name), name=name, is_selected=True) for name in names
        ])

    def set_tab(self, tab: str) -> None:
        if tab == "availability" and not self.store.progress.staff:
            raise NavigationBlocked("Add a staff member before setting availability")
        if tab not in ("staff", "availability"):
            raise NavigationBlocked(f"Unknown tab: {tab}")
        self.tab = tab

    def update_availability_form(self, values: dict) -> AvailabilityForm:
        self.availability_form = AvailabilityForm.model_validate(
            {**self.availability_form.model_dump(), **values}
        )
        return self.availability_form

    def validate(self) -> dict[str, str]:
        f = self.form
        return collect_errors({
            "first_name": _required(f.first_name, "First name is required"),
            "last_name": _required(f.last_name, "Last name is required"),
            "email": lambda: validate_email(f.email),
            "phone": _optional(f.phone, validate_local_phone),
            "position": _required(f.position, "Position is required"),
        })

    async def _submit(self) -> StaffDraft:
        f = self.form
        payload = {
            "tenant_id": await self.tenant_id(),
            "first_name": f.first_name.strip(),
            "last_name": f.last_name.strip(),
            "email": f.email.strip(),
            "phone": normalize_phone(f.phone) or None,
            "position": f.position,
            "is_bookable": True,
            "accepts_online_booking": True,
            "is_active": True,
            "status": "active",
            "skills": {"service_ids": list(f.service_ids)},
        }
        if self.outlet_id():
            payload["outlet_ids"] = [self.outlet_id()]
        data = await self.platform.create_staff(payload)
        return StaffDraft(
            id=item_id(data),
            first_name=payload["first_name"],
            last_name=payload["last_name"],
            email=payload["email"],
            phone=payload["phone"],
            position=f.position,
            service_ids=list(f.service_ids),
        )

    async def _stage(self, draft: StaffDraft) -> None:
        await self.store.add_staff(draft)
        self.update_availability_form({
            "staff_id": draft.id or "",
            "outlet_id": self.availability_form.outlet_id or self.outlet_id() or "",
        })
        self.tab = "availability"

    async def add_availability(self):
        """Create weekly availability for the selected staff member.

        Independent of staff creation: a failure here leaves the staff
        record staged.
        """
        a = self.availability_form
        errors = availability.validate_weekly(a.staff_id, a.recurrence_days, a.start_time, a.end_time)
        self.errors = errors
        if errors:
            raise FieldValidationError(errors)

        async with self._action():
            draft = await availability.create_weekly(
                self.platform,
                staff_id=a.staff_id,
                outlet_id=a.outlet_id or self.outlet_id(),
                days=a.recurrence_days,
                start_time=a.start_time,
                end_time=a.end_time,
            )

        await self.store.add_availability(draft)
        self.availability_form = AvailabilityForm(outlet_id=self.outlet_id() or "")
        self.errors = {}
        self.tab = "staff"
        self._notify_validity()
        return draft

    def state(self) -> StaffStepState:
        return StaffStepState(
            tab=self.tab,
            form=self.form,
            availability_form=self.availability_form,
            staff=list(self.store.progress.staff),
            availabilities=list(self.store.progress.availabilities),
            position_templates=list(self.position_templates),
            **self._base_state(),
        )


STEP_CLASSES: tuple[type[Step], ...] = (OutletStep, UserStep, ProductStep, StaffStep)
