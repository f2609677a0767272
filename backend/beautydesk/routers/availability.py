"""Staff availability.

Endpoints:
  GET  /console/availability/grid    → bookable slots per date
  GET  /console/availability/check   → is one slot free? (failures → unavailable)
  POST /console/availability/weekly  → weekly working hours for a staff member
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from beautydesk import availability
from beautydesk.schemas.availability import AvailabilityCheck, AvailabilityGrid, WeeklyAvailabilityRequest
from beautydesk.schemas.onboarding import AvailabilityDraft
from beautydesk.session import ConsoleSession, get_session

router = APIRouter()


@router.get("/grid", response_model=AvailabilityGrid)
async def grid(
    service_id: str,
    outlet_id: str,
    start_date: date,
    staff_id: str | None = None,
    num_days: int = Query(7, ge=1, le=31),
    slot_interval_minutes: int = Query(30, ge=5, le=240),
    session: ConsoleSession = Depends(get_session),
):
    return await availability.get_grid(
        session.platform,
        service_id=service_id,
        outlet_id=outlet_id,
        start_date=start_date,
        staff_id=staff_id,
        num_days=num_days,
        slot_interval_minutes=slot_interval_minutes,
    )


@router.get("/check", response_model=AvailabilityCheck)
async def check(
    staff_id: str,
    service_id: str,
    on_date: date = Query(..., alias="date"),
    start_time: str = Query(...),
    end_time: str = Query(...),
    session: ConsoleSession = Depends(get_session),
):
    return await availability.check(
        session.platform,
        staff_id=staff_id,
        service_id=service_id,
        on_date=on_date,
        start_time=start_time,
        end_time=end_time,
    )


@router.post("/weekly", response_model=AvailabilityDraft, status_code=status.HTTP_201_CREATED)
async def create_weekly(body: WeeklyAvailabilityRequest, session: ConsoleSession = Depends(get_session)):
    return await availability.create_weekly(
        session.platform,
        staff_id=body.staff_id,
        outlet_id=body.outlet_id,
        days=body.days,
        start_time=body.start_time,
        end_time=body.end_time,
        effective_date=body.effective_date,
    )
