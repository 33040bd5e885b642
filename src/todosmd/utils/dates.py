"""
Date and duration parsing utilities.

Pure functions, no external dependencies. Everything that depends on the
current day takes an optional ``today`` so callers (and tests) can pin it.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_RELATIVE_RE = re.compile(r"^\+(\d+)([dw])$", re.IGNORECASE)


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days."""

    start: date
    end: date

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end


def parse_date(date_str: str) -> Optional[date]:
    """Parse a strict YYYY-MM-DD string. Returns None for anything else, including Feb 30."""
    if not date_str or not _ISO_DATE_RE.match(date_str):
        return None
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        return None


def format_date(day: date) -> str:
    return day.isoformat()


def _start_of_week(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def parse_date_spec(spec: str, today: Optional[date] = None) -> Optional[DateRange]:
    """
    Resolve a symbolic date spec into an inclusive DateRange.

    Supports:
    - "today", "yesterday", "tomorrow"
    - "this-week", "next-week", "last-week" (Monday to Sunday)
    - "last-7d", "last-30d" (the trailing window ending today)
    - "YYYY-MM-DD" exact day
    - "YYYY-MM-DD:YYYY-MM-DD" inclusive range

    Returns:
        DateRange, or None if the spec is not recognized
    """
    if not spec:
        return None
    today = today or date.today()
    key = spec.strip().lower()

    if key == "today":
        return DateRange(today, today)
    if key == "yesterday":
        day = today - timedelta(days=1)
        return DateRange(day, day)
    if key == "tomorrow":
        day = today + timedelta(days=1)
        return DateRange(day, day)

    week = _start_of_week(today)
    if key == "this-week":
        return DateRange(week, week + timedelta(days=6))
    if key == "next-week":
        start = week + timedelta(days=7)
        return DateRange(start, start + timedelta(days=6))
    if key == "last-week":
        start = week - timedelta(days=7)
        return DateRange(start, start + timedelta(days=6))

    if key == "last-7d":
        return DateRange(today - timedelta(days=6), today)
    if key == "last-30d":
        return DateRange(today - timedelta(days=29), today)

    if ":" in key:
        start_str, _, end_str = key.partition(":")
        start, end = parse_date(start_str), parse_date(end_str)
        if start is None or end is None:
            return None
        return DateRange(start, end)

    day = parse_date(key)
    if day is not None:
        return DateRange(day, day)
    return None


def is_date_in_range(date_str: Optional[str], date_range: DateRange) -> bool:
    day = parse_date(date_str or "")
    return day is not None and day in date_range


def is_overdue(date_str: Optional[str], today: Optional[date] = None) -> bool:
    """True when ``date_str`` is a valid date strictly before today."""
    day = parse_date(date_str or "")
    if day is None:
        return False
    return day < (today or date.today())


def parse_relative_date(spec: str, today: Optional[date] = None) -> str:
    """
    Resolve "today", "tomorrow", "+3d" or "+2w" into YYYY-MM-DD.

    Anything else is returned unchanged, so literal dates pass through.
    """
    today = today or date.today()
    m = _RELATIVE_RE.match(spec.strip())
    if m:
        amount = int(m.group(1))
        days = amount * 7 if m.group(2).lower() == "w" else amount
        return format_date(today + timedelta(days=days))

    key = spec.strip().lower()
    if key == "today":
        return format_date(today)
    if key == "tomorrow":
        return format_date(today + timedelta(days=1))
    return spec


def duration_to_minutes(duration_str: str) -> Optional[int]:
    """
    Parse duration string into total minutes.

    Supports: "2h", "30m", "2d", "2h30m", "2.5h", "2 hours", "45 minutes"
    """
    if not duration_str:
        return None

    s = duration_str.strip().lower()
    total = 0

    days = re.search(r'(\d+(?:\.\d+)?)\s*(?:d|days?)', s)
    if days:
        total += int(float(days.group(1)) * 24 * 60)

    hours = re.search(r'(\d+(?:\.\d+)?)\s*(?:h|hours?)', s)
    if hours:
        total += int(float(hours.group(1)) * 60)

    minutes = re.search(r'(\d+)\s*(?:m|mins?|minutes?)', s)
    if minutes:
        total += int(minutes.group(1))

    return total if total > 0 else None


def minutes_to_duration(total_minutes: int) -> Optional[str]:
    """Format minutes as a compact duration string (e.g. "2h30m", "3d")."""
    if not total_minutes:
        return None

    days, remainder = divmod(total_minutes, 24 * 60)
    hours, mins = divmod(remainder, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if mins:
        parts.append(f"{mins}m")

    return "".join(parts) if parts else None
