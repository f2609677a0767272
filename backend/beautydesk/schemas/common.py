"""Common schemas used across the console."""

from pydantic import BaseModel


class PlanLimit(BaseModel):
    """Usage against the tenant's plan ceiling for one resource type."""
    current: int = 0
    max: int = 999

    @property
    def reached(self) -> bool:
        return self.current >= self.max
