"""Monday-start week windows."""

from datetime import date, timedelta

DAYS_PER_WEEK = 7


def week_start_for(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())


def week_interval(week_start: date) -> tuple[date, date]:
    """Inclusive (start, end) of the seven-day window starting at `week_start`."""
    return week_start, week_start + timedelta(days=DAYS_PER_WEEK - 1)


def shift_week(week_start: date, weeks: int) -> date:
    """Move a week start forward (or back, for negative `weeks`)."""
    return week_start + timedelta(days=DAYS_PER_WEEK * weeks)


def week_key(week_start: date) -> str:
    """yyyy-MM-dd key used in storage keys and payloads."""
    return week_start.isoformat()


def parse_week_start(value: str | None, today: date | None = None) -> date:
    """
    Parse a yyyy-MM-dd week start.

    Missing or unparseable input falls back to the current week. The parsed
    day is used as given, so a non-Monday start yields a window starting on
    that day.
    """
    fallback = week_start_for(today or date.today())
    if not value:
        return fallback
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return fallback
