"""Service for building the Monday-first 6x7 month grid."""

from __future__ import annotations

import datetime as dt

from dateutil.relativedelta import relativedelta

from booking_timeline.domain.models import CalendarDay

DAYS_PER_WEEK = 7
WEEKS_PER_GRID = 6
GRID_SIZE = DAYS_PER_WEEK * WEEKS_PER_GRID


def build_month_grid(reference: dt.date) -> list[CalendarDay]:
    """Return the 42 days shown for the month containing *reference*.

    Leading days come from the previous month so the grid starts on a
    Monday; trailing days from the next month fill it up to six weeks.
    """
    if isinstance(reference, dt.datetime):
        reference = reference.date()

    first = reference.replace(day=1)
    next_first = first + relativedelta(months=1)
    offset = first.isoweekday()  # Monday = 1, Sunday = 7

    days: list[CalendarDay] = []
    for back in range(offset - 1, 0, -1):
        day = first - dt.timedelta(days=back)
        days.append(CalendarDay(date=day, is_current_month=False, day_number=day.day))

    day = first
    while day < next_first:
        days.append(CalendarDay(date=day, is_current_month=True, day_number=day.day))
        day += dt.timedelta(days=1)

    day = next_first
    while len(days) < GRID_SIZE:
        days.append(CalendarDay(date=day, is_current_month=False, day_number=day.day))
        day += dt.timedelta(days=1)

    return days


def split_weeks(days: list[CalendarDay]) -> list[list[CalendarDay]]:
    return [days[i : i + DAYS_PER_WEEK] for i in range(0, len(days), DAYS_PER_WEEK)]
