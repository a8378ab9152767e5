"""
Phone Number Utilities
E.164 normalization shared by lead parsing, inbound settings and phone import.
"""
import re
from typing import Optional


def normalize_phone_number(phone: str) -> str:
    """
    Normalize phone number to E.164 format.

    Handles common formats:
    - (555) 123-4567 -> +15551234567 (assumes US if no country code)
    - 555.123.4567 -> +15551234567
    - +44 20 7946 0958 -> +442079460958

    Raises:
        ValueError: If the value has no digits or an impossible length
    """
    if phone is None:
        raise ValueError("Invalid phone number")

    stripped = phone.strip()

    # Letters mean this is not a phone number at all ("bad-phone", "n/a")
    if re.search(r'[A-Za-z]', stripped):
        raise ValueError("Invalid phone number")

    has_plus = stripped.startswith('+')
    cleaned = re.sub(r'[^\d]', '', stripped)

    if not cleaned:
        raise ValueError("Invalid phone number")

    # International minimum is 7 digits
    if len(cleaned) < 7:
        raise ValueError("Phone number too short (minimum 7 digits)")

    # E.164 max is 15 digits
    if len(cleaned) > 15:
        raise ValueError("Phone number too long (maximum 15 digits)")

    if has_plus:
        return f"+{cleaned}"

    # US/Canada without country code
    if len(cleaned) == 10:
        return f"+1{cleaned}"

    if len(cleaned) == 11 and cleaned.startswith('1'):
        return f"+{cleaned}"

    return f"+{cleaned}"


def try_normalize_phone_number(phone: Optional[str]) -> Optional[str]:
    """Return the E.164 form of ``phone`` or None if it cannot be normalized."""
    if not phone or not phone.strip():
        return None
    try:
        return normalize_phone_number(phone)
    except ValueError:
        return None
