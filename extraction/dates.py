"""
extraction.dates — Calendar dates and clock times found in receipt text.

Date formats are tried in a fixed order; the first pattern whose match
is a real calendar date wins.  Numeric ``a/b/y`` dates are read
month-first and fall back to day-first when that is not a valid date
(e.g. ``25/12/2024``).  Two-digit years below 50 map to 20xx, the rest
to 19xx.  No range restriction is applied here; future or very old
dates are the validator's concern.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Callable, List, Optional, Pattern, Tuple

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_MON = r"(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?"


def normalize_year(raw: str) -> Optional[int]:
    if len(raw) == 2:
        yy = int(raw)
        return 2000 + yy if yy < 50 else 1900 + yy
    if len(raw) == 4:
        return int(raw)
    return None


def _safe_date(year: Optional[int], month: int, day: int) -> Optional[date]:
    if year is None:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _iso(m: "re.Match[str]") -> Optional[date]:
    return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def _numeric(m: "re.Match[str]") -> Optional[date]:
    a, b = int(m.group(1)), int(m.group(2))
    year = normalize_year(m.group(3))
    return _safe_date(year, a, b) or _safe_date(year, b, a)


def _day_month(m: "re.Match[str]") -> Optional[date]:
    month = MONTHS[m.group(2).lower()[:3]]
    return _safe_date(normalize_year(m.group(3)), month, int(m.group(1)))


def _month_day(m: "re.Match[str]") -> Optional[date]:
    month = MONTHS[m.group(1).lower()[:3]]
    return _safe_date(normalize_year(m.group(3)), month, int(m.group(2)))


DATE_PATTERNS: List[Tuple[Pattern[str], Callable[["re.Match[str]"], Optional[date]]]] = [
    (re.compile(r"(?<!\d)(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})(?!\d)"), _iso),
    (re.compile(r"(?<!\d)(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4}|\d{2})(?!\d)"), _numeric),
    (re.compile(r"(?<!\d)(\d{1,2})(?:st|nd|rd|th)?[\s\-]*" + _MON + r"[\s\-,]*(\d{4}|\d{2})(?!\d)", re.IGNORECASE), _day_month),
    (re.compile(r"\b" + _MON + r"\s*(\d{1,2})(?:st|nd|rd|th)?,?\s*(\d{4}|\d{2})(?!\d)", re.IGNORECASE), _month_day),
]


def find_date(text: str) -> Optional[Tuple[date, str]]:
    """Return ``(date, matched_text)`` for the first valid date in *text*."""
    for pat, build in DATE_PATTERNS:
        for m in pat.finditer(text):
            d = build(m)
            if d is not None:
                return d, m.group(0)
    return None


# -----------------------------
# Time of day
# -----------------------------

_TIME_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"(?<![\d:])(\d{1,2}):(\d{2})(?::(\d{2}))?\s?([AaPp][Mm])\b"),
    re.compile(r"(?<![\d:])(\d{1,2}):(\d{2}):(\d{2})(?![\d:])"),
    re.compile(r"(?<![\d:])(\d{1,2}):(\d{2})(?![\d:])"),
)


def find_time(text: str) -> Optional[str]:
    """Return the first valid clock time in *text*, e.g. ``"14:32"`` or ``"2:32 PM"``."""
    for pat in _TIME_PATTERNS:
        for m in pat.finditer(text):
            hour, minute = int(m.group(1)), int(m.group(2))
            groups = m.groups()
            second = groups[2] if len(groups) > 2 else None
            meridiem = groups[3] if len(groups) > 3 else None
            if minute > 59 or (second is not None and int(second) > 59):
                continue
            if meridiem:
                if not 1 <= hour <= 12:
                    continue
                out = f"{hour}:{m.group(2)}"
                if second is not None:
                    out += f":{second}"
                return f"{out} {meridiem.upper()}"
            if hour > 23:
                continue
            return m.group(0)
    return None
