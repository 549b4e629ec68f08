"""
Data validators for blood request fields.

Bag count, hemoglobin level, request date window, time-of-day format.
Pure predicates: they return a bool and never extract or mutate.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

from bloodlink.intake.extractors import DATE_FORMAT

MIN_BAGS = 1
MAX_BAGS = 10

MIN_HEMOGLOBIN = 7.0   # g/dL, below is severe anaemia
MAX_HEMOGLOBIN = 20.0  # g/dL, above is extremely rare

DATE_WINDOW_DAYS = 30

_TIME_24H_RE = re.compile(r"([01]?[0-9]|2[0-3]):([0-5][0-9])")
_TIME_12H_RE = re.compile(r"(1[0-2]|0?[1-9]):([0-5][0-9])\s?(AM|PM)", re.IGNORECASE)


def validate_blood_bags(bags: str) -> bool:
    """A single request is for 1-10 bags."""
    try:
        count = int(str(bags).strip())
    except (TypeError, ValueError):
        return False
    return MIN_BAGS <= count <= MAX_BAGS


def validate_hemoglobin(level: str) -> bool:
    """Hemoglobin must be a number within 7.0-20.0 g/dL inclusive."""
    try:
        value = float(str(level).strip())
    except (TypeError, ValueError):
        return False
    return MIN_HEMOGLOBIN <= value <= MAX_HEMOGLOBIN


def validate_date(date_str: str, today: date | None = None) -> bool:
    """
    Validate a DD/MM/YYYY request date.

    Must be a real calendar date, not in the past, and no more than
    30 days after today (both ends inclusive).
    """
    try:
        parsed = datetime.strptime(str(date_str).strip(), DATE_FORMAT).date()
    except (TypeError, ValueError):
        return False

    today = today or date.today()
    return today <= parsed <= today + timedelta(days=DATE_WINDOW_DAYS)


def validate_time(time_str: str) -> bool:
    """Accept 24-hour HH:MM or 12-hour H:MM AM/PM."""
    if _TIME_24H_RE.fullmatch(time_str):
        return True
    return _TIME_12H_RE.fullmatch(time_str) is not None
