"""Calendar period helpers for bucket keys."""

from datetime import date, timedelta

DECEMBER = 12
DAYS_PER_WEEK = 7


def start_of_week(day: date) -> date:
    """Return the Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def start_of_month(day: date) -> date:
    """Return the first day of the month containing ``day``."""
    return day.replace(day=1)


def next_month_start(day: date) -> date:
    """Return the first day of the month after the one containing ``day``."""
    start = start_of_month(day)
    if start.month == DECEMBER:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def week_bounds(day: date) -> tuple[date, date]:
    """Return the half-open ``[start, end)`` window of the week for ``day``."""
    start = start_of_week(day)
    return start, start + timedelta(days=DAYS_PER_WEEK)


def month_bounds(day: date) -> tuple[date, date]:
    """Return the half-open ``[start, end)`` window of the month for ``day``."""
    return start_of_month(day), next_month_start(day)
