from datetime import date

from pydantic import BaseModel


class WeeklyAvailabilityRequest(BaseModel):
    staff_id: str
    outlet_id: str
    start_time: str = "09:00"
    end_time: str = "17:00"
    days: list[int]  # UI weekdays, 0=Sunday
    effective_date: date | None = None


class AvailabilityCheck(BaseModel):
    available: bool
    reason: str | None = None


class AvailabilitySlot(BaseModel):
    start_time: str
    end_time: str
    is_available: bool = False


class AvailabilityGrid(BaseModel):
    """Bookable slots per date; extra keys (metadata) are passed through."""
    start_date: str | None = None
    end_date: str | None = None
    num_days: int = 7
    slot_interval_minutes: int = 30
    availability_grid: dict[str, list[AvailabilitySlot]] = {}

    model_config = {"extra": "allow"}

    def available_slots(self, on_date: str) -> list[AvailabilitySlot]:
        return [slot for slot in self.availability_grid.get(on_date, []) if slot.is_available]
