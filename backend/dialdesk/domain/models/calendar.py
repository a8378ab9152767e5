"""
Calendar Domain Models
"""
from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime

from dialdesk.utils.time_utils import to_iso_z


class TimeRange(BaseModel):
    """Candidate range offered by the caller"""
    start_utc: datetime
    end_utc: datetime

    model_config = {"frozen": True}


class BusyInterval(BaseModel):
    """Busy period reported by the calendar provider. Never cached."""
    start_utc: datetime
    end_utc: datetime

    model_config = {"frozen": True}

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Strict overlap: touching endpoints do not overlap."""
        return start < self.end_utc and end > self.start_utc

    def to_dict(self) -> Dict[str, str]:
        return {"start": to_iso_z(self.start_utc), "end": to_iso_z(self.end_utc)}


class CandidateSlot(BaseModel):
    """Free fixed-duration slot"""
    start_utc: datetime
    end_utc: datetime

    model_config = {"frozen": True}

    def to_dict(self) -> Dict[str, str]:
        return {"start": to_iso_z(self.start_utc), "end": to_iso_z(self.end_utc)}


class CalendarAccount(BaseModel):
    """Stored calendar credential (calendar_accounts table)"""
    id: Optional[str] = None
    email: str
    provider: str = "google"
    access_token: str
    token_type: str = "Bearer"
    expiry_date: Optional[datetime] = None

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "provider": self.provider,
            "tokenType": self.token_type,
            "expiryDate": to_iso_z(self.expiry_date) if self.expiry_date else None,
        }
