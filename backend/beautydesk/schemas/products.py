"""Pydantic schemas for product (service) management."""

from pydantic import BaseModel, Field


class Pricing(BaseModel):
    base_price: float = 0
    currency: str = "IDR"
    outlet_prices: dict[str, float] = {}
    promotional_price: float | None = None
    promotional_valid_until: str | None = None


class Product(BaseModel):
    """Service record as returned by the platform."""
    id: str | None = Field(default=None, validation_alias="_id")
    name: str
    slug: str | None = None
    category: str = ""
    description: str | None = None
    duration_minutes: int = 60
    pricing: Pricing = Pricing()
    is_active: bool = True
    status: str = "active"
    tags: list[str] = []

    model_config = {"populate_by_name": True, "extra": "ignore"}


class ProductPayload(BaseModel):
    """Create/update body; `price` is folded into `pricing.base_price`."""
    name: str = ""
    slug: str = ""
    category: str = ""
    description: str = ""
    duration_minutes: int = 60
    price: float = 0
    currency: str = "IDR"
    outlet_prices: dict[str, float] = {}
    promotional_price: float | None = None
    promotional_valid_until: str | None = None
    preparation_minutes: int = 0
    cleanup_minutes: int = 0
    max_advance_booking_days: int = 30
    min_advance_booking_hours: int = 2
    requires_staff: bool = True
    required_staff_count: int = 1
    allow_parallel_bookings: bool = False
    max_parallel_bookings: int = 1
    tags: list[str] = []
    image_url: str = ""
    is_active: bool = True


class ProductPage(BaseModel):
    items: list[Product]
    total: int = 0
    pages: int = 0
