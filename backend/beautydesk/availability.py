"""Staff availability helpers.

The console numbers weekdays 0=Sunday .. 6=Saturday; the platform numbers
them 0=Monday .. 6=Sunday. Every day crossing the boundary goes through
`ui_to_api_day` / `api_to_ui_day`.
"""

import asyncio
import logging
from datetime import date

from beautydesk.errors import ConsoleError, FieldValidationError
from beautydesk.platform.client import PlatformClient
from beautydesk.schemas.availability import AvailabilityCheck, AvailabilityGrid
from beautydesk.schemas.onboarding import AvailabilityDraft
from beautydesk.schemas.validators import collect_errors, validate_time

logger = logging.getLogger(__name__)


def ui_to_api_day(day: int) -> int:
    return (day + 6) % 7


def api_to_ui_day(day: int) -> int:
    return (day + 1) % 7


def to_api_time(value: str) -> str:
    """``09:00`` -> ``09:00:00``; values that already carry seconds pass through."""
    return value if value.count(":") == 2 else f"{value}:00"


def validate_weekly(staff_id: str, days: list[int], start_time: str, end_time: str) -> dict[str, str]:
    errors = collect_errors({
        "start_time": lambda: validate_time(start_time),
        "end_time": lambda: validate_time(end_time),
    })
    if not staff_id:
        errors["staff_id"] = "Select a staff member first"
    if not days:
        errors["recurrence_days"] = "Select at least one working day"
    elif any(d not in range(7) for d in days):
        errors["recurrence_days"] = "Weekdays must be between 0 and 6"
    if not errors and to_api_time(start_time) >= to_api_time(end_time):
        errors["end_time"] = "End time must be after start time"
    return errors


async def create_weekly(
    platform: PlatformClient,
    staff_id: str,
    outlet_id: str | None,
    days: list[int],
    start_time: str,
    end_time: str,
    effective_date: date | None = None,
) -> AvailabilityDraft:
    """Create one weekly working-hours entry per selected UI weekday.

    Raises:
        FieldValidationError: invalid staff, days or times.
        PlatformRejection / PlatformUnavailable: the first failed POST.
    """
    errors = validate_weekly(staff_id, days, start_time, end_time)
    if errors:
        raise FieldValidationError(errors)

    on_date = (effective_date or date.today()).isoformat()
    start, end = to_api_time(start_time), to_api_time(end_time)

    payloads = [
        {
            "staff_id": staff_id,
            "outlet_id": outlet_id,
            "date": on_date,
            "start_time": start,
            "end_time": end,
            "availability_type": "working_hours",
            "recurrence_type": "weekly",
            "recurrence_days": [ui_to_api_day(day)],
            "is_available": True,
        }
        for day in days
    ]
    await asyncio.gather(*(platform.create_availability(p) for p in payloads))

    return AvailabilityDraft(
        staff_id=staff_id,
        outlet_id=outlet_id,
        date=on_date,
        start_time=start,
        end_time=end,
        recurrence_type="weekly",
        recurrence_days=list(days),
    )


async def get_grid(
    platform: PlatformClient,
    service_id: str,
    outlet_id: str,
    start_date: date,
    staff_id: str | None = None,
    num_days: int = 7,
    slot_interval_minutes: int = 30,
) -> AvailabilityGrid:
    data = await platform.availability_grid(
        service_id=service_id,
        outlet_id=outlet_id,
        staff_id=staff_id,
        start_date=start_date.isoformat(),
        num_days=num_days,
        slot_interval_minutes=slot_interval_minutes,
    )
    return AvailabilityGrid.model_validate(data)


async def check(
    platform: PlatformClient,
    staff_id: str,
    service_id: str,
    on_date: date,
    start_time: str,
    end_time: str,
) -> AvailabilityCheck:
    """Ask whether a slot is free; any failure counts as unavailable."""
    try:
        data = await platform.availability_check(
            staff_id=staff_id,
            date=on_date.isoformat(),
            start_time=start_time,
            end_time=end_time,
            service_id=service_id,
        )
    except ConsoleError as e:
        logger.warning(f"Availability check failed for staff {staff_id}: {e.message}")
        return AvailabilityCheck(available=False, reason=e.message)

    if not data:
        return AvailabilityCheck(available=True)
    return AvailabilityCheck(
        available=bool(data.get("available", False)),
        reason=data.get("reason") or data.get("message"),
    )
