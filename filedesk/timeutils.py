"""
filedesk/timeutils.py

12-hour clock helpers and period (month) helpers used by the diary and log-book.

Stored times use the literal grammar "HH:MM AM|PM". Older log-book rows were
saved as 24-hour "HH:MM" and are converted on read (see from24h).

duration() is a display helper: unparseable input yields "N/A" instead of an
error, and arrival <= departure is read as the next day. It does not enforce
the arrival-after-departure form rule (see validators).
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import NamedTuple, Optional

PERIODS = ("AM", "PM")
HOURS_12 = tuple(range(1, 13))
MINUTES = tuple(range(60))

MINUTES_PER_DAY = 24 * 60

_TIME_12H_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)
_TIME_24H_RE = re.compile(r"^\d{2}:\d{2}$")
_PERIOD_RE = re.compile(r"^\d{4}-\d{2}$")


class ClockTime(NamedTuple):
    hour: int
    minute: int
    period: str


# ---------------------------------------------------------------------
# 12-hour clock
# ---------------------------------------------------------------------
def to12h(hour, minute, period: str) -> str:
    """Format a 12-hour time as "HH:MM AM|PM". The caller guarantees the ranges."""
    return f"{int(hour):02d}:{int(minute):02d} {period}"


def parse12h(text: Optional[str]) -> Optional[ClockTime]:
    """Inverse of to12h(). Returns None when the text does not match the grammar."""
    if not text:
        return None
    match = _TIME_12H_RE.match(str(text).strip())
    if not match:
        return None
    return ClockTime(int(match.group(1)), int(match.group(2)), match.group(3).upper())


def minutes_since_midnight(hour12: int, minute: int, period: str) -> int:
    """12 AM -> 0, 12 PM -> 720, otherwise hour*60 + minute (+720 for PM)."""
    hour = int(hour12) % 12
    total = hour * 60 + int(minute)
    if str(period).upper() == "PM":
        total += 12 * 60
    return total


def _clock_minutes(text: Optional[str]) -> Optional[int]:
    parsed = parse12h(text)
    if parsed is None:
        return None
    return minutes_since_midnight(*parsed)


def duration(departure: Optional[str], arrival: Optional[str]) -> str:
    """
    Trip duration as "Nh Mm".

    If arrival is not after departure on the same clock it is taken to fall on
    the next calendar day (+1440 minutes). Unparseable input returns "N/A".
    """
    start = _clock_minutes(departure)
    end = _clock_minutes(arrival)
    if start is None or end is None:
        return "N/A"

    diff = end - start
    if diff <= 0:
        diff += MINUTES_PER_DAY
    return f"{diff // 60}h {diff % 60}m"


def arrival_follows(departure: Optional[str], arrival: Optional[str], *, allow_overnight: bool) -> bool:
    """
    True when arrival resolves to a later instant than departure.

    allow_overnight=True applies the same next-day rule as duration(), so any
    pair of parseable times qualifies. allow_overnight=False compares clock
    minutes on the same day.
    """
    start = _clock_minutes(departure)
    end = _clock_minutes(arrival)
    if start is None or end is None:
        return False
    if allow_overnight:
        return True
    return end > start


def from24h(text: Optional[str]) -> Optional[str]:
    """Convert legacy "HH:MM" (24-hour) to "HH:MM AM|PM"; other input is returned unchanged."""
    if not text or not _TIME_24H_RE.match(text):
        return text
    hour, minute = (int(part) for part in text.split(":"))
    period = "PM" if hour >= 12 else "AM"
    hour = hour % 12 or 12
    return to12h(hour, minute, period)


def to24h(hour, minute, period: str) -> str:
    """Convert a 12-hour time to "HH:MM" (24-hour)."""
    total = minutes_since_midnight(int(hour), int(minute), period)
    return f"{total // 60:02d}:{total % 60:02d}"


# ---------------------------------------------------------------------
# Dates and periods
# ---------------------------------------------------------------------
def parse_date(text) -> Optional[date]:
    """Parse an ISO calendar day (YYYY-MM-DD). Returns None when missing or invalid."""
    if isinstance(text, datetime):
        return text.date()
    if isinstance(text, date):
        return text
    raw = (text or "").strip() if isinstance(text, str) else ""
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def period_key(value) -> str:
    """Return the "YYYY-MM" period of a stored date string ("" when absent)."""
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m")
    return (value or "")[:7]


def current_period(today: Optional[date] = None) -> str:
    return (today or date.today()).strftime("%Y-%m")


def is_period(value: Optional[str]) -> bool:
    return bool(value and _PERIOD_RE.match(value))


def format_period(period: str) -> str:
    """"2024-03" -> "03/2024"."""
    year, _, month = period.partition("-")
    return f"{month}/{year}"


def format_short_date(value) -> str:
    """"2024-03-05" -> "05 Mar" (report rows)."""
    parsed = parse_date(value)
    return parsed.strftime("%d %b") if parsed else ""


def format_day(value) -> str:
    """"2024-03-05" -> "Tue" (report rows)."""
    parsed = parse_date(value)
    return parsed.strftime("%a") if parsed else ""


def format_long_date(value) -> str:
    """Record dates: "05 Mar 2024", or "N/A" when missing."""
    parsed = parse_date(value)
    return parsed.strftime("%d %b %Y") if parsed else "N/A"
