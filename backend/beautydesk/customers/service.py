"""Customer management.

Listing is paged by the platform; status, spending and visit bands are
derived here and filtered client-side because the platform cannot filter on
them. Deletes are soft and open an undo window.
"""

from __future__ import annotations

import logging
from datetime import date

from beautydesk.config import settings
from beautydesk.errors import ConsoleError, FieldValidationError, PlatformRejection, SessionRequired
from beautydesk.phone import normalize_phone, validate_local_phone
from beautydesk.platform.client import PlatformClient
from beautydesk.schemas.customers import (
    Customer,
    CustomerFilters,
    CustomerForm,
    CustomerPage,
    CustomerRow,
    StatisticsSummary,
)
from beautydesk.schemas.validators import collect_errors, validate_email
from beautydesk.storage import Storage
from beautydesk.undo import UndoManager

logger = logging.getLogger(__name__)

VIP_LOYALTY_POINTS = 500
ACTIVE_APPOINTMENTS = 3
LOW_SPENDING_LIMIT = 1_000_000
MEDIUM_SPENDING_LIMIT = 5_000_000
NEW_VISITS_MAX = 1
REGULAR_VISITS_MAX = 5


def customer_status(customer: Customer) -> str:
    if customer.loyalty_points > VIP_LOYALTY_POINTS:
        return "vip"
    if customer.total_appointments > ACTIVE_APPOINTMENTS:
        return "active"
    return "new"


def spending_band(total_spent: float) -> str:
    if total_spent < LOW_SPENDING_LIMIT:
        return "low"
    if total_spent < MEDIUM_SPENDING_LIMIT:
        return "medium"
    return "high"


def visit_band(visits: int) -> str:
    if visits <= NEW_VISITS_MAX:
        return "new"
    if visits <= REGULAR_VISITS_MAX:
        return "regular"
    return "frequent"


def with_stats(customer: Customer) -> CustomerRow:
    return CustomerRow(
        customer=customer,
        status=customer_status(customer),
        spending=spending_band(customer.total_spent),
        visits=visit_band(customer.total_appointments),
    )


def matches(row: CustomerRow, filters: CustomerFilters) -> bool:
    return (
        filters.status in ("all", row.status)
        and filters.spending in ("all", row.spending)
        and filters.visits in ("all", row.visits)
    )


def validate_customer(form: CustomerForm) -> dict[str, str]:
    def first_name():
        if not form.first_name.strip():
            raise ValueError("First name is required")

    return collect_errors({
        "first_name": first_name,
        "phone": lambda: validate_local_phone(form.phone),
        "email": lambda: validate_email(form.email) if form.email.strip() else None,
    })


def customer_payload(form: CustomerForm) -> dict:
    payload = {
        "first_name": form.first_name.strip(),
        "phone": normalize_phone(form.phone),
    }
    for name in ("last_name", "email", "gender", "date_of_birth", "address", "notes"):
        value = getattr(form, name).strip()
        if value:
            payload[name] = value
    return payload


class CustomerService:

    def __init__(
        self,
        platform: PlatformClient,
        storage: Storage,
        undo: UndoManager | None = None,
        page_size: int | None = None,
    ):
        self.platform = platform
        self.storage = storage
        self.undo = undo or UndoManager("customers")
        self.page_size = page_size or settings.customer_page_size

    async def _tenant_id(self) -> str:
        tenant = await self.storage.get_json("tenant") or {}
        tenant_id = tenant.get("id") or tenant.get("_id")
        if not tenant_id:
            raise SessionRequired("Tenant ID not found. Please sign in again.")
        return str(tenant_id)

    async def list(
        self,
        page: int = 1,
        search: str | None = None,
        created_from: date | None = None,
        created_to: date | None = None,
        filters: CustomerFilters | None = None,
    ) -> CustomerPage:
        data = await self.platform.list_customers(
            page=page,
            size=self.page_size,
            search=search.strip() if search else None,
            created_from=created_from.isoformat() if created_from else None,
            created_to=created_to.isoformat() if created_to else None,
        )
        rows = [with_stats(Customer.model_validate(item)) for item in data.get("items") or []]
        if filters is not None:
            rows = [row for row in rows if matches(row, filters)]
        return CustomerPage(items=rows, total=data.get("total") or 0, pages=data.get("pages") or 0)

    async def statistics_summary(self) -> StatisticsSummary | None:
        try:
            data = await self.platform.customer_statistics_summary()
        except ConsoleError as e:
            logger.warning(f"Failed to load customer statistics: {e.message}")
            return None
        return StatisticsSummary.model_validate(data)

    async def _save(self, form: CustomerForm, customer_id: str | None = None) -> Customer:
        errors = validate_customer(form)
        if errors:
            raise FieldValidationError(errors)

        payload = customer_payload(form)
        try:
            if customer_id is None:
                payload["tenant_id"] = await self._tenant_id()
                data = await self.platform.create_customer(payload)
            else:
                data = await self.platform.update_customer(customer_id, payload)
        except PlatformRejection as e:
            if e.field_errors:
                raise FieldValidationError(e.field_errors, message=e.message) from e
            raise
        return Customer.model_validate(data or payload)

    async def create(self, form: CustomerForm) -> Customer:
        customer = await self._save(form)
        logger.info(f"Created customer {customer.key}")
        return customer

    async def update(self, customer_id: str, form: CustomerForm) -> Customer:
        return await self._save(form, customer_id)

    async def delete(self, customer_id: str) -> None:
        """Soft-delete and open an undo window for the customer."""
        await self.platform.delete_customer(customer_id, permanent=False)

        async def restore():
            await self.platform.restore_customer(customer_id)

        await self.undo.begin(customer_id, restore)
        logger.info(f"Soft-deleted customer {customer_id}")

    async def undo_delete(self) -> str:
        """Restore the most recently deleted customer; returns its id."""
        return await self.undo.undo()

    async def close(self) -> None:
        await self.undo.close()
