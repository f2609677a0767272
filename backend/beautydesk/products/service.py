"""Product (service) management with nested pricing and undoable deletes."""

from __future__ import annotations

import logging

from beautydesk.errors import ConsoleError, FieldValidationError, PlatformRejection
from beautydesk.platform.client import PlatformClient
from beautydesk.schemas.products import Product, ProductPage, ProductPayload
from beautydesk.schemas.validators import collect_errors, slugify
from beautydesk.undo import UndoManager

logger = logging.getLogger(__name__)

MAX_DURATION_MINUTES = 480


def validate_product(payload: ProductPayload) -> dict[str, str]:
    def required(value: str, message: str):
        def check():
            if not value.strip():
                raise ValueError(message)
        return check

    def duration():
        if payload.duration_minutes <= 0:
            raise ValueError("Duration must be greater than 0")
        if payload.duration_minutes > MAX_DURATION_MINUTES:
            raise ValueError(f"Duration cannot exceed {MAX_DURATION_MINUTES} minutes")

    def price():
        if payload.price <= 0:
            raise ValueError("Price must be greater than 0")

    def promotional_price():
        promo = payload.promotional_price
        if promo is not None and (promo <= 0 or promo >= payload.price):
            raise ValueError("Promotional price must be between 0 and the base price")

    return collect_errors({
        "name": required(payload.name, "Service name is required"),
        "category": required(payload.category, "Category is required"),
        "duration_minutes": duration,
        "price": price,
        "promotional_price": promotional_price,
    })


def service_body(payload: ProductPayload) -> dict:
    """Platform body; the flat `price` lands in ``pricing.base_price``."""
    pricing = {
        "base_price": payload.price,
        "currency": payload.currency or "IDR",
        "outlet_prices": dict(payload.outlet_prices),
    }
    if payload.promotional_price is not None:
        pricing["promotional_price"] = payload.promotional_price
    if payload.promotional_valid_until:
        pricing["promotional_valid_until"] = payload.promotional_valid_until

    return {
        "name": payload.name.strip(),
        "slug": payload.slug.strip() or slugify(payload.name),
        "category": payload.category,
        "description": payload.description.strip(),
        "duration_minutes": payload.duration_minutes,
        "preparation_minutes": payload.preparation_minutes,
        "cleanup_minutes": payload.cleanup_minutes,
        "max_advance_booking_days": payload.max_advance_booking_days,
        "min_advance_booking_hours": payload.min_advance_booking_hours,
        "requires_staff": payload.requires_staff,
        "required_staff_count": payload.required_staff_count,
        "allow_parallel_bookings": payload.allow_parallel_bookings,
        "max_parallel_bookings": payload.max_parallel_bookings,
        "pricing": pricing,
        "tags": list(payload.tags),
        "image_url": payload.image_url,
        "is_active": payload.is_active,
        "status": "active" if payload.is_active else "inactive",
    }


class ProductService:

    def __init__(self, platform: PlatformClient, undo: UndoManager | None = None):
        self.platform = platform
        self.undo = undo or UndoManager("products")

    async def list(
        self,
        page: int = 1,
        size: int = 100,
        category: str | None = None,
        status: str | None = "active",
        search: str | None = None,
    ) -> ProductPage:
        data = await self.platform.list_services(
            page=page, size=size, category=category, status=status, search=search
        )
        items = [Product.model_validate(item) for item in data.get("items") or []]
        return ProductPage(items=items, total=data.get("total") or len(items), pages=data.get("pages") or 0)

    async def category_templates(self) -> list[str]:
        try:
            return await self.platform.service_category_templates()
        except ConsoleError as e:
            logger.warning(f"Failed to fetch category templates: {e.message}")
            return []

    async def _save(self, payload: ProductPayload, service_id: str | None = None) -> Product:
        errors = validate_product(payload)
        if errors:
            raise FieldValidationError(errors)
        body = service_body(payload)
        try:
            if service_id is None:
                data = await self.platform.create_service(body)
            else:
                data = await self.platform.update_service(service_id, body)
        except PlatformRejection as e:
            if e.field_errors:
                raise FieldValidationError(e.field_errors, message=e.message) from e
            raise
        return Product.model_validate(data or body)

    async def create(self, payload: ProductPayload) -> Product:
        return await self._save(payload)

    async def update(self, service_id: str, payload: ProductPayload) -> Product:
        return await self._save(payload, service_id)

    async def delete(self, service_id: str) -> None:
        await self.platform.delete_service(service_id, permanent=False)

        async def restore():
            await self.platform.restore_service(service_id)

        await self.undo.begin(service_id, restore)
        logger.info(f"Soft-deleted service {service_id}")

    async def undo_delete(self) -> str:
        return await self.undo.undo()

    async def close(self) -> None:
        await self.undo.close()
