"""
Schedule Domain Models
"""
from pydantic import BaseModel
from typing import Dict
from datetime import datetime

from dialdesk.utils.time_utils import to_iso_z


class ScheduleWindow(BaseModel):
    """UTC window in which the voice platform may place a scheduled call"""
    earliest_at_utc: datetime
    latest_at_utc: datetime

    model_config = {"frozen": True}

    def to_schedule_plan(self) -> Dict[str, str]:
        """Schedule plan object understood by the voice platform."""
        return {
            "earliestAt": to_iso_z(self.earliest_at_utc),
            "latestAt": to_iso_z(self.latest_at_utc),
        }
