"""Expected occurrence dates of recurring expenses within a calendar month."""

import calendar
from datetime import date, timedelta

from ledger_sync.errors import ValidationError
from ledger_sync.models import RecurrenceInterval, RecurringExpense


def clamp_day(year: int, month: int, day_of_month: int) -> date:
    """Return ``day_of_month`` in the given month, clamped to 1..month length."""
    last_day = calendar.monthrange(year, month)[1]
    day = min(max(day_of_month, 1), 31)
    return date(year, month, min(day, last_day))


def _months_between(start: date, year: int, month: int) -> int:
    return (year - start.year) * 12 + (month - start.month)


def _weekly_dates(start: date, year: int, month: int) -> list[date]:
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    if last < start:
        return []

    # First occurrence on or after the start of the month.
    if start >= first:
        current = start
    else:
        weeks = -(-(first - start).days // 7)
        current = start + timedelta(weeks=weeks)

    dates = []
    while current <= last:
        dates.append(current)
        current += timedelta(weeks=1)
    return dates


def expected_dates(definition: RecurringExpense, year: int, month: int) -> list[date]:
    """Dates on which ``definition`` is due in the given month, ascending.

    Start and end dates are not applied here except as the anchor of weekly
    and quarterly cycles; callers filter the result against them.
    """
    interval = definition.interval
    if interval == RecurrenceInterval.MONTHLY:
        return [clamp_day(year, month, definition.day_of_month)]

    if interval == RecurrenceInterval.WEEKLY:
        return _weekly_dates(definition.start_date, year, month)

    if interval == RecurrenceInterval.QUARTERLY:
        elapsed = _months_between(definition.start_date, year, month)
        if elapsed >= 0 and elapsed % 3 == 0:
            return [clamp_day(year, month, definition.day_of_month)]
        return []

    if interval == RecurrenceInterval.YEARLY:
        if month == definition.start_date.month:
            return [clamp_day(year, month, definition.day_of_month)]
        return []

    raise ValidationError(f"Unknown recurrence interval: {interval!r}")
