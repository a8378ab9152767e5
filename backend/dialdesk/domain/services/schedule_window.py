"""
Schedule Window Calculator
Converts a local wall-clock choice into the UTC window the voice platform
accepts for scheduled calls.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Union

import pytz

from dialdesk.domain.errors import ValidationCode, ValidationError
from dialdesk.domain.models.schedule import ScheduleWindow
from dialdesk.utils.time_utils import parse_iso_datetime, utc_now

logger = logging.getLogger(__name__)

DEFAULT_MAX_WINDOW_MINUTES = 60


def to_24_hour(hour12: int, am_pm: str) -> int:
    """12 AM -> 0, 12 PM -> 12, 1 PM -> 13."""
    period = (am_pm or "").strip().upper()
    if period not in ("AM", "PM"):
        raise ValidationError(ValidationCode.INVALID_SCHEDULE, "amPm must be AM or PM")
    if not isinstance(hour12, int) or not 1 <= hour12 <= 12:
        raise ValidationError(ValidationCode.INVALID_SCHEDULE, "hour must be between 1 and 12")
    if period == "AM":
        return 0 if hour12 == 12 else hour12
    return 12 if hour12 == 12 else hour12 + 12


def localize(naive: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """
    Attach a pytz zone to a wall-clock time.

    Times skipped by a DST jump are moved forward; ambiguous times
    resolve to the first occurrence.
    """
    try:
        return tz.localize(naive, is_dst=None)
    except pytz.exceptions.NonExistentTimeError:
        return tz.normalize(tz.localize(naive, is_dst=False))
    except pytz.exceptions.AmbiguousTimeError:
        return tz.localize(naive, is_dst=True)


class ScheduleWindowCalculator:
    """
    Computes (earliestAt, latestAt) in UTC.

    latestAt is always earliestAt plus the platform's maximum window.
    """

    def __init__(self, max_window_minutes: int = DEFAULT_MAX_WINDOW_MINUTES):
        self.max_window = timedelta(minutes=max_window_minutes)

    def compute_window(
        self,
        local_date: Union[str, date],
        hour12: int,
        minute: int,
        am_pm: str,
        iana_timezone: str,
        now: Optional[datetime] = None
    ) -> ScheduleWindow:
        """
        Compute the UTC window for a local date/time in an IANA zone.

        Raises:
            ValidationError: INVALID_SCHEDULE for bad inputs,
                PAST_SCHEDULE if the time is not strictly in the future
        """
        try:
            tz = pytz.timezone(iana_timezone)
        except pytz.exceptions.UnknownTimeZoneError:
            raise ValidationError(
                ValidationCode.INVALID_SCHEDULE,
                f"Unknown timezone: {iana_timezone}"
            )

        if isinstance(local_date, str):
            try:
                local_date = date.fromisoformat(local_date.strip())
            except ValueError:
                raise ValidationError(
                    ValidationCode.INVALID_SCHEDULE,
                    "date must be in YYYY-MM-DD format"
                )

        if not isinstance(minute, int) or not 0 <= minute <= 59:
            raise ValidationError(ValidationCode.INVALID_SCHEDULE, "minute must be between 0 and 59")

        hour24 = to_24_hour(hour12, am_pm)
        wall_clock = datetime(local_date.year, local_date.month, local_date.day, hour24, minute)
        earliest = localize(wall_clock, tz).astimezone(pytz.UTC)

        now = now or utc_now()
        if earliest <= now:
            raise ValidationError(
                ValidationCode.PAST_SCHEDULE,
                "Scheduled time must be in the future"
            )

        logger.debug(f"Schedule window {wall_clock} {iana_timezone} -> {earliest.isoformat()}")
        return ScheduleWindow(
            earliest_at_utc=earliest,
            latest_at_utc=earliest + self.max_window
        )

    def normalize_schedule_plan(
        self,
        plan: Optional[Dict[str, Any]],
        now: Optional[datetime] = None
    ) -> Optional[ScheduleWindow]:
        """
        Validate a caller-supplied {earliestAt, latestAt?} plan.

        A missing latestAt is filled with earliestAt plus the max window.
        Returns None when no plan was supplied.
        """
        if not plan:
            return None

        earliest = parse_iso_datetime(plan.get("earliestAt"))
        if earliest is None:
            raise ValidationError(
                ValidationCode.INVALID_SCHEDULE,
                "schedulePlan.earliestAt must be an ISO-8601 timestamp"
            )

        now = now or utc_now()
        if earliest <= now:
            raise ValidationError(
                ValidationCode.PAST_SCHEDULE,
                "Scheduled time must be in the future"
            )

        raw_latest = plan.get("latestAt")
        if raw_latest:
            latest = parse_iso_datetime(raw_latest)
            if latest is None:
                raise ValidationError(
                    ValidationCode.INVALID_SCHEDULE,
                    "schedulePlan.latestAt must be an ISO-8601 timestamp"
                )
            if latest <= earliest:
                raise ValidationError(
                    ValidationCode.INVALID_SCHEDULE,
                    "schedulePlan.latestAt must be after earliestAt"
                )
            if latest - earliest > self.max_window:
                raise ValidationError(
                    ValidationCode.INVALID_SCHEDULE,
                    f"Schedule window cannot exceed {int(self.max_window.total_seconds() // 60)} minutes"
                )
        else:
            latest = earliest + self.max_window

        return ScheduleWindow(earliest_at_utc=earliest, latest_at_utc=latest)
