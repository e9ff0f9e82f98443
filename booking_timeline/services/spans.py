"""Service for cutting stays into per-week span segments."""

from __future__ import annotations

import datetime as dt
from typing import Iterable

from booking_timeline.domain.models import CalendarDay, SpanSegment, Stay
from booking_timeline.services.grid import DAYS_PER_WEEK


def resolve_spans(
    weeks: list[list[CalendarDay]],
    stays: Iterable[Stay],
    clip_to_current_month: bool = True,
) -> dict[int, list[SpanSegment]]:
    """Map each week index to the segments of the stays visible in that week.

    A stay yields one segment per week it touches, none when it lies
    entirely outside the grid or has zero nights.
    """
    rows: dict[int, list[SpanSegment]] = {index: [] for index in range(len(weeks))}
    for stay in stays:
        if stay.nights <= 0:
            continue
        for week_index, week in enumerate(weeks):
            segment = segment_for_week(stay, week, week_index, clip_to_current_month)
            if segment is not None:
                rows[week_index].append(segment)
    return rows


def segment_for_week(
    stay: Stay,
    week: list[CalendarDay],
    week_index: int,
    clip_to_current_month: bool = True,
) -> SpanSegment | None:
    """Return the part of *stay* drawn in *week*, or ``None``.

    The stay occupies ``[start, end)``: the departure day is not drawn.
    With clipping on, days of neighbouring months do not count, so a stay
    running over a month boundary is anchored at the first (or last)
    current-month day of the week.
    """
    week_start = week[0].date
    week_end = week_start + dt.timedelta(days=DAYS_PER_WEEK)
    if not (stay.start < week_end and week_start < stay.end):
        return None

    occupied = [
        index
        for index, day in enumerate(week)
        if stay.start <= day.date < stay.end
        and (day.is_current_month or not clip_to_current_month)
    ]
    if not occupied:
        return None

    first, last = occupied[0], occupied[-1]
    return SpanSegment(
        reservation_id=stay.id,
        source=stay.source,
        week_index=week_index,
        start_day_index=first,
        span=last - first + 1,
        is_start=week[first].date == stay.start,
        is_end=week[last].date == stay.end - dt.timedelta(days=1),
    )
