"""
Slot Finder
Earliest free fixed-duration slot across candidate ranges.
"""
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from dialdesk.domain.errors import ValidationCode, ValidationError
from dialdesk.domain.models.calendar import BusyInterval, CandidateSlot, TimeRange
from dialdesk.utils.time_utils import parse_iso_datetime

DEFAULT_SLOT_DURATION = timedelta(minutes=30)

RangeInput = Union[TimeRange, Dict[str, Any]]


def parse_time_ranges(ranges: Iterable[RangeInput]) -> List[TimeRange]:
    """
    Keep ranges with parseable bounds and start < end, in input order.

    Raises:
        ValidationError: NO_VALID_RANGES if none survive
    """
    valid: List[TimeRange] = []
    for item in ranges or []:
        if isinstance(item, TimeRange):
            candidate = item
        elif isinstance(item, dict):
            start = parse_iso_datetime(item.get("startTime"))
            end = parse_iso_datetime(item.get("endTime"))
            if start is None or end is None:
                continue
            candidate = TimeRange(start_utc=start, end_utc=end)
        else:
            continue

        if candidate.start_utc < candidate.end_utc:
            valid.append(candidate)

    if not valid:
        raise ValidationError(ValidationCode.NO_VALID_RANGES, "No valid time slots provided")
    return valid


def find_earliest_slot(
    ranges: Iterable[RangeInput],
    busy: Sequence[BusyInterval],
    slot_duration: timedelta = DEFAULT_SLOT_DURATION
) -> Optional[CandidateSlot]:
    """
    Tile each range into back-to-back slots and return the first one that
    does not overlap any busy interval. Partial tail tiles are dropped.
    """
    for time_range in parse_time_ranges(ranges):
        slot_start = time_range.start_utc
        while slot_start + slot_duration <= time_range.end_utc:
            slot_end = slot_start + slot_duration
            if not any(interval.overlaps(slot_start, slot_end) for interval in busy):
                return CandidateSlot(start_utc=slot_start, end_utc=slot_end)
            slot_start = slot_end
    return None
