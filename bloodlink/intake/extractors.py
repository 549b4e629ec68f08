"""
Field extractors: pattern-based, no LLM.

Every extractor is a pure function ``(message) -> str | None``: it returns
the candidate value for one field, or None when nothing usable is found.
``extract_opportunistic`` runs the keyword patterns used to backfill
several fields from a single verbose message.
"""

from __future__ import annotations

import re
from datetime import date, timedelta

BLOOD_TYPES = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")

DATE_FORMAT = "%d/%m/%Y"

# AB is tried before A/B so "AB+" never collapses to "B+"
_BLOOD_TOKEN_RE = re.compile(r"(?<![A-Z0-9])(AB|A|B|O)([+-])")
_BLOOD_VERBOSE_RE = re.compile(
    r"(?<![A-Z0-9])(AB|A|B|O)\s+(?:(POSITIVE|NEGATIVE)|([+-])VE)\b"
)

_DATE_RE = re.compile(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})")
_INTEGER_RE = re.compile(r"\d+")
_DECIMAL_RE = re.compile(r"\d+(?:\.\d+)?")

# Opportunistic patterns
_HOSPITAL_RE = re.compile(
    r"\b(?:at|in|for)\s+([A-Za-z\s]+(?:Hospital|Medical|Clinic))", re.IGNORECASE
)
_LOCATION_RE = re.compile(
    r"\b(?:in|at)\s+([A-Za-z\s,]+?)(?:\.|,|\bfor\b|\bblood\b|\s+need|\s+hospital|$)",
    re.IGNORECASE,
)
_ZONE_KEYWORDS = ("zone", "area", "district")
_PROBLEM_KEYWORDS = ("problem", "condition", "diagnosis", "patient has", "suffering from")
_BAGS_RE = re.compile(r"(\d+)\s+(?:bags?|units?)\b", re.IGNORECASE)


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def extract_blood_type(message: str) -> str | None:
    """Canonical token first (A+, AB-, ...), then "A POSITIVE" / "A +VE" forms."""
    upper = message.upper()

    m = _BLOOD_TOKEN_RE.search(upper)
    if m:
        return m.group(1) + m.group(2)

    m = _BLOOD_VERBOSE_RE.search(upper)
    if m:
        if m.group(2):
            sign = "+" if m.group(2) == "POSITIVE" else "-"
        else:
            sign = m.group(3)
        return m.group(1) + sign

    return None


def extract_date(message: str, today: date | None = None) -> str | None:
    """
    Resolve "today" / "tomorrow", or a D/M/YYYY (or D-M-YYYY) date.

    Always returns DD/MM/YYYY with zero-padded day and month.
    """
    today = today or date.today()
    lowered = message.lower()

    if "today" in lowered:
        return format_date(today)
    if "tomorrow" in lowered:
        return format_date(today + timedelta(days=1))

    m = _DATE_RE.search(message)
    if m:
        day, month, year = m.groups()
        return f"{int(day):02d}/{int(month):02d}/{year}"
    return None


def extract_bag_count(message: str) -> str | None:
    m = _INTEGER_RE.search(message)
    return m.group(0) if m else None


def extract_hemoglobin(message: str) -> str | None:
    m = _DECIMAL_RE.search(message)
    return m.group(0) if m else None


def extract_free_text(message: str, min_length: int) -> str | None:
    """Accept the trimmed message verbatim if it is longer than ``min_length``."""
    text = message.strip()
    if len(text) > min_length:
        return text
    return None


def extract_hospital_name(message: str) -> str | None:
    return extract_free_text(message, 3)


def extract_location(message: str) -> str | None:
    return extract_free_text(message, 3)


def extract_zone(message: str) -> str | None:
    return extract_free_text(message, 2)


def extract_patient_problem(message: str) -> str | None:
    return extract_free_text(message, 3)


def _keyword_value(message: str, keywords: tuple[str, ...]) -> str | None:
    for keyword in keywords:
        m = re.search(
            rf"\b{keyword}\s+([A-Za-z\s]+?)(?:\.|,|\s+|$)", message, re.IGNORECASE
        )
        if m:
            return m.group(1).strip() or None
    return None


def extract_opportunistic(message: str) -> dict[str, str]:
    """
    Pull every field we can recognise out of a free-form message.

    Used for cross-stage backfill, so the patterns are keyword-anchored
    ("at X Hospital", "zone Gulshan", "3 bags") rather than whole-message.
    """
    found: dict[str, str] = {}

    blood_type = extract_blood_type(message)
    if blood_type:
        found["blood_type"] = blood_type

    m = _HOSPITAL_RE.search(message)
    if m and m.group(1).strip():
        found["hospital"] = m.group(1).strip()

    m = _LOCATION_RE.search(message)
    if m and m.group(1).strip():
        found["location"] = m.group(1).strip()

    zone = _keyword_value(message, _ZONE_KEYWORDS)
    if zone:
        found["zone"] = zone

    problem = _keyword_value(message, _PROBLEM_KEYWORDS)
    if problem:
        found["patient_problem"] = problem

    m = _BAGS_RE.search(message)
    if m:
        found["bag_needed"] = m.group(1)

    return found
