"""Shared validation utilities"""

import re
from datetime import date
from typing import Optional


def normalize_zip_code(zip_code: Optional[str]) -> str:
    """
    Normalize a postal code for comparison.

    Args:
        zip_code: ZIP / postal code as entered ("  02139 ", "k1a 0b1")

    Returns:
        Stripped, upper-cased code ("" for None)
    """
    return (zip_code or "").strip().upper()


def validate_zip_code(zip_code: str) -> str:
    """
    Validate a ZIP code used in a zone rule.

    Raises:
        ValueError: If the code is empty or contains unexpected characters
    """
    normalized = normalize_zip_code(zip_code)
    if not normalized:
        raise ValueError("ZIP code cannot be empty")

    # US 5 / ZIP+4 plus alphanumeric codes like Canadian FSAs
    if not re.match(r"^[A-Z0-9][A-Z0-9 \-]{1,9}$", normalized):
        raise ValueError(f"Invalid ZIP code: {zip_code}")

    return normalized


def validate_time_of_day(value: Optional[str]) -> Optional[str]:
    """Validate a 24h "HH:MM" clock time"""
    if value is None:
        return value

    if not re.match(r"^([01]\d|2[0-3]):[0-5]\d$", value):
        raise ValueError("Time must be in HH:MM 24-hour format")

    return value


def validate_iso_date(value: Optional[str]) -> Optional[str]:
    """Validate a YYYY-MM-DD date string"""
    if value is None:
        return value

    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError("Date must be in YYYY-MM-DD format")

    return value
