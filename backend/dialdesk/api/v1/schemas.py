"""
Request Schemas
Request bodies shared by the campaign and call endpoints.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from dialdesk.domain.models.lead import Lead
from dialdesk.domain.models.schedule import ScheduleWindow
from dialdesk.domain.services import lead_set_builder
from dialdesk.domain.services.schedule_window import ScheduleWindowCalculator


class CustomerIn(BaseModel):
    """Customer as sent by the dashboard"""
    number: str
    name: Optional[str] = None
    email: Optional[str] = None


class LocalScheduleRequest(BaseModel):
    """Wall-clock schedule picked in the dashboard"""
    date: str = Field(..., description="YYYY-MM-DD in the given timezone")
    hour: int = Field(..., description="1-12")
    minute: int = 0
    am_pm: str = Field(..., alias="amPm")
    timezone: str

    model_config = {"populate_by_name": True}

    def to_window(self, calculator: ScheduleWindowCalculator) -> ScheduleWindow:
        return calculator.compute_window(
            self.date, self.hour, self.minute, self.am_pm, self.timezone
        )


def resolve_schedule(
    calculator: ScheduleWindowCalculator,
    schedule_plan: Optional[Dict[str, Any]],
    schedule: Optional[LocalScheduleRequest]
) -> Optional[ScheduleWindow]:
    """An explicit schedulePlan wins over a wall-clock schedule."""
    if schedule_plan:
        return calculator.normalize_schedule_plan(schedule_plan)
    if schedule:
        return schedule.to_window(calculator)
    return None


def customers_to_leads(customers: List[CustomerIn]) -> List[Lead]:
    return lead_set_builder.build([c.model_dump() for c in customers])
