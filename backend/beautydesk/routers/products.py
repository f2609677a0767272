"""Product (service) management.

Endpoints:
  GET    /console/products/                     → list
  GET    /console/products/category-templates   → category names for the form
  POST   /console/products/                     → create (flat price → nested pricing)
  PUT    /console/products/{id}                 → update
  DELETE /console/products/{id}                 → soft delete, opens the undo window
  POST   /console/products/undo                 → restore the last deleted product
"""

from fastapi import APIRouter, Depends, Query, status

from beautydesk.schemas.products import Product, ProductPage, ProductPayload
from beautydesk.session import ConsoleSession, get_session

router = APIRouter()


@router.get("/", response_model=ProductPage)
async def list_products(
    page: int = Query(1, ge=1),
    size: int = Query(100, ge=1, le=200),
    category: str | None = None,
    status_filter: str | None = Query("active", alias="status"),
    search: str | None = None,
    session: ConsoleSession = Depends(get_session),
):
    return await session.products.list(
        page=page, size=size, category=category, status=status_filter, search=search
    )


@router.get("/category-templates", response_model=list[str])
async def category_templates(session: ConsoleSession = Depends(get_session)):
    return await session.products.category_templates()


@router.post("/", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(body: ProductPayload, session: ConsoleSession = Depends(get_session)):
    return await session.products.create(body)


@router.post("/undo")
async def undo_delete(session: ConsoleSession = Depends(get_session)):
    restored = await session.products.undo_delete()
    return {"restored": restored}


@router.put("/{service_id}", response_model=Product)
async def update_product(
    service_id: str,
    body: ProductPayload,
    session: ConsoleSession = Depends(get_session),
):
    return await session.products.update(service_id, body)


@router.delete("/{service_id}")
async def delete_product(service_id: str, session: ConsoleSession = Depends(get_session)):
    await session.products.delete(service_id)
    window = session.products.undo.window
    return {"deleted": service_id, "undo_until": window.expires_at if window else None}
