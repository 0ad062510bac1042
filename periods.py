import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date


def day_period(day: date) -> Period:
    return Period("day", day, day)


def week_period(start: date) -> Period:
    return Period("week", start, start + timedelta(days=6))


def month_period(year: int, month: int) -> Period:
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12")
    if not 1 <= year <= 9999:
        raise ValueError("Invalid year")
    last_day = calendar.monthrange(year, month)[1]
    return Period("month", date(year, month, 1), date(year, month, last_day))


def parse_day(value: str) -> date:
    """Accepts ``YYYY-MM-DD`` or a full ISO timestamp; time of day is dropped."""
    value = value.strip()
    try:
        return date.fromisoformat(value[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid date: {value}") from exc


def resolve_range(
    start: Optional[date], end: Optional[date]
) -> tuple[Optional[date], Optional[date]]:
    if start and end and start > end:
        raise ValueError("Start date must be before end date")
    return start, end
