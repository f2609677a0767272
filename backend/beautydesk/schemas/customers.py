"""Pydantic schemas for customer management and walk-in lookup."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

CustomerStatus = Literal["vip", "active", "new"]
SpendingBand = Literal["low", "medium", "high"]
VisitBand = Literal["new", "regular", "frequent"]


class Customer(BaseModel):
    """Customer record as returned by the platform (extra fields ignored)."""
    id: str | None = Field(default=None, validation_alias="_id")
    customer_id: str | None = None
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str = ""
    date_of_birth: str | None = None
    gender: str | None = None
    address: str | None = None
    tags: list[str] = []
    is_active: bool = True
    total_appointments: int = 0
    total_spent: float = 0
    loyalty_points: int = 0
    last_appointment_date: str | None = None
    created_at: datetime | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def key(self) -> str | None:
        return self.id or self.customer_id

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class CustomerRow(BaseModel):
    """A customer with the statistics the list view derives client-side."""
    customer: Customer
    status: CustomerStatus
    spending: SpendingBand
    visits: VisitBand


class CustomerFilters(BaseModel):
    status: CustomerStatus | Literal["all"] = "all"
    spending: SpendingBand | Literal["all"] = "all"
    visits: VisitBand | Literal["all"] = "all"


class CustomerForm(BaseModel):
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str = ""
    date_of_birth: str = ""
    gender: str = ""
    address: str = ""
    notes: str = ""


class CustomerPage(BaseModel):
    items: list[CustomerRow]
    total: int = 0
    pages: int = 0


class StatisticsSummary(BaseModel):
    total_customers: int = 0
    active_customers: int = 0
    new_customers_this_month: int = 0
    total_revenue: float = 0

    model_config = {"extra": "allow"}


class WalkInCustomer(BaseModel):
    name: str
    phone: str
    email: str = ""
    date_of_birth: str = ""
    gender: str = ""
    notes: str = ""


class LookupResult(BaseModel):
    query: str
    status: Literal["idle", "searching", "found", "not_found", "error"]
    customers: list[Customer] = []
    message: str | None = None


class WalkInState(BaseModel):
    """Where a walk-in booking stands before an appointment is made."""
    lookup: LookupResult
    customer: Customer | None = None  # selected existing or newly created profile
    new_customer: WalkInCustomer | None = None  # details pending confirmation
    confirmed: bool = False
