"""Calendar helpers for sprint metrics."""

from datetime import date, datetime, timedelta
from typing import Optional

WORKING_DAYS_DEFAULT = 10
HOURS_PER_DAY = 8


def parse_date(date_str: Optional[str]) -> Optional[datetime]:
    """Parse a Jira date string.

    Jira formats: "2024-10-31T12:11:56.289-0400", "2024-10-31T12:11:56.289Z"
    or a bare "2024-10-31" for due dates.
    """
    if not date_str:
        return None
    if isinstance(date_str, datetime):
        return date_str
    if isinstance(date_str, date):
        return datetime(date_str.year, date_str.month, date_str.day)

    value = date_str.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+0000"

    formats = [
        "%Y-%m-%dT%H:%M:%S.%f%z",
        "%Y-%m-%dT%H:%M:%S%z",
        "%Y-%m-%dT%H:%M:%S.%f",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d"
    ]

    for fmt in formats:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue

    return None


def to_day(value) -> Optional[date]:
    """Bucket a timestamp (datetime, date or Jira string) to its calendar day."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date(value)
    return parsed.date() if parsed else None


def seconds_to_hours(seconds) -> float:
    """Convert Jira seconds to hours rounded to one decimal."""
    if not seconds:
        return 0.0
    return round(seconds / 3600, 1)


def is_working_day(day: date) -> bool:
    return day.weekday() < 5  # Monday = 0, Friday = 4


def iter_days(start: date, end: date):
    """Yield every calendar day in [start, end]."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def count_working_days(start: date, end: date, default: int = WORKING_DAYS_DEFAULT) -> int:
    """Count Mon-Fri days between two dates, both inclusive.

    Falls back to ``default`` when the range holds no working day.
    """
    working_days = sum(1 for day in iter_days(start, end) if is_working_day(day))
    return working_days if working_days > 0 else default


def working_days_elapsed(start: date, day: date) -> int:
    """Working days in (start, day]. The start day itself counts as 0."""
    if day <= start:
        return 0
    return sum(
        1 for d in iter_days(start + timedelta(days=1), day) if is_working_day(d)
    )


def clamp_day(day: date, start: date, end: date) -> date:
    return max(start, min(day, end))


def format_day(day: Optional[date]) -> Optional[str]:
    return day.isoformat() if day else None
