"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timedelta, timezone

QUARTER_END_MONTHS = (3, 6, 9, 12)
FRIDAY = 4


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_past_due(due: datetime | date | None, now: datetime) -> int:
    """Whole days elapsed since the due date (floor, negative if not yet due)"""
    if due is None:
        return 0
    if not isinstance(due, datetime):
        due = datetime(due.year, due.month, due.day, tzinfo=timezone.utc)
    return (as_utc(now) - as_utc(due)) // timedelta(days=1)


def first_friday_of_month(year: int, month: int) -> date:
    first = date(year, month, 1)
    offset = (FRIDAY - first.weekday()) % 7
    return first + timedelta(days=offset)


def is_first_friday_of_month(day: date) -> bool:
    return day == first_friday_of_month(day.year, day.month)


def is_quarter_end(day: date) -> bool:
    """True anywhere in a quarter-end month (Mar, Jun, Sep, Dec)"""
    return day.month in QUARTER_END_MONTHS


def subtract_months(moment: datetime, months: int) -> datetime:
    """Calendar month subtraction, clamping the day to the target month's length"""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
