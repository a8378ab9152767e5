"""
Lead Set Builder
Turns uploaded tabular rows into an ordered list of callable leads.
"""
import csv
import io
import logging
from typing import Any, Dict, Iterable, List, Optional

from dialdesk.domain.errors import ValidationCode, ValidationError
from dialdesk.domain.models.lead import Lead
from dialdesk.utils.phone_numbers import try_normalize_phone_number

logger = logging.getLogger(__name__)

NAME_HEADERS = ("name", "full_name", "fullname")
PHONE_HEADERS = ("phone", "number", "phone_number", "phonenumber")
EMAIL_HEADERS = ("email", "e-mail")

DEFAULT_LEAD_NAME = "Unknown"


def _pick(row: Dict[str, Any], aliases: Iterable[str]) -> Optional[str]:
    for alias in aliases:
        value = row.get(alias)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return None


def build(rows: Iterable[Dict[str, Any]]) -> List[Lead]:
    """
    Build leads from rows, preserving input order.

    Rows whose phone is missing, blank or not a phone number are dropped.
    Header matching is case-insensitive.

    Raises:
        ValidationError: EMPTY_LEAD_SET when no row survives
    """
    leads: List[Lead] = []
    dropped = 0

    for row in rows:
        if not isinstance(row, dict):
            dropped += 1
            continue

        lowered = {str(k).strip().lower(): v for k, v in row.items() if k is not None}
        phone = try_normalize_phone_number(_pick(lowered, PHONE_HEADERS))
        if not phone:
            dropped += 1
            continue

        leads.append(Lead(
            name=_pick(lowered, NAME_HEADERS) or DEFAULT_LEAD_NAME,
            phone_e164=phone,
            email=_pick(lowered, EMAIL_HEADERS)
        ))

    if dropped:
        logger.info(f"Dropped {dropped} row(s) without a usable phone number")

    if not leads:
        raise ValidationError(
            ValidationCode.EMPTY_LEAD_SET,
            "No valid leads found. Each row needs a phone number."
        )

    return leads


def parse_csv(content: bytes) -> List[Dict[str, str]]:
    """
    Decode an uploaded CSV file into header-keyed rows.

    Raises:
        ValidationError: INVALID_REQUEST if the bytes cannot be decoded
    """
    text_content = None
    for encoding in ['utf-8-sig', 'latin-1', 'cp1252']:
        try:
            text_content = content.decode(encoding)
            break
        except UnicodeDecodeError:
            continue

    if text_content is None:
        raise ValidationError(
            ValidationCode.INVALID_REQUEST,
            "Unable to decode CSV file. Please use UTF-8 encoding."
        )

    reader = csv.DictReader(io.StringIO(text_content))
    return [dict(row) for row in reader]
