"""Customer management.

Endpoints:
  GET    /console/customers/              → paged list with derived stats + filters
  GET    /console/customers/statistics    → summary cards (best effort, null on failure)
  GET    /console/customers/lookup?q=…    → debounced search by name or phone
  POST   /console/customers/              → create
  PUT    /console/customers/{id}          → update
  DELETE /console/customers/{id}          → soft delete, opens the undo window
  POST   /console/customers/undo          → restore the last deleted customer
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from beautydesk.schemas.customers import (
    Customer,
    CustomerFilters,
    CustomerForm,
    CustomerPage,
    LookupResult,
    StatisticsSummary,
)
from beautydesk.session import ConsoleSession, get_session

router = APIRouter()


@router.get("/", response_model=CustomerPage)
async def list_customers(
    page: int = Query(1, ge=1),
    search: str | None = None,
    created_from: date | None = None,
    created_to: date | None = None,
    status_filter: str = Query("all", alias="status"),
    spending: str = "all",
    visits: str = "all",
    session: ConsoleSession = Depends(get_session),
):
    filters = CustomerFilters(status=status_filter, spending=spending, visits=visits)
    return await session.customers.list(
        page=page,
        search=search,
        created_from=created_from,
        created_to=created_to,
        filters=filters,
    )


@router.get("/statistics", response_model=StatisticsSummary | None)
async def statistics(session: ConsoleSession = Depends(get_session)):
    return await session.customers.statistics_summary()


@router.get("/lookup", response_model=LookupResult)
async def lookup(q: str = "", session: ConsoleSession = Depends(get_session)):
    return await session.lookup.lookup(q)


@router.post("/", response_model=Customer, status_code=status.HTTP_201_CREATED)
async def create_customer(body: CustomerForm, session: ConsoleSession = Depends(get_session)):
    return await session.customers.create(body)


@router.post("/undo")
async def undo_delete(session: ConsoleSession = Depends(get_session)):
    restored = await session.customers.undo_delete()
    return {"restored": restored}


@router.put("/{customer_id}", response_model=Customer)
async def update_customer(
    customer_id: str,
    body: CustomerForm,
    session: ConsoleSession = Depends(get_session),
):
    return await session.customers.update(customer_id, body)


@router.delete("/{customer_id}")
async def delete_customer(customer_id: str, session: ConsoleSession = Depends(get_session)):
    await session.customers.delete(customer_id)
    window = session.customers.undo.window
    return {"deleted": customer_id, "undo_until": window.expires_at if window else None}
