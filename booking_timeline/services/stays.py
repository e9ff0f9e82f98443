"""Normalise reservation dates to timezone-naive calendar days."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable

from dateutil.parser import isoparse

from booking_timeline.domain.errors import (
    InvertedRangeError,
    MalformedDateError,
    TimelineError,
)
from booking_timeline.domain.models import Diagnostic, Reservation, Stay

logger = logging.getLogger(__name__)


def to_day(value: object) -> dt.date:
    """Reduce a date, datetime or ISO-8601 string to its calendar day.

    Any other value, ``None`` and numbers included, raises
    ``MalformedDateError``.

    Time-of-day and UTC offsets are dropped without conversion: the day as
    written is the day the booking occupies.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError) as exc:
            raise MalformedDateError(value) from exc
    raise MalformedDateError(value)


def resolve_stay(reservation: Reservation) -> Stay:
    """Normalise one reservation.

    Raises ``MalformedDateError`` or ``InvertedRangeError``. A zero-night
    stay is valid and simply occupies no day.
    """
    start = to_day(reservation.start)
    end = to_day(reservation.end)
    if end < start:
        raise InvertedRangeError(start, end)
    return Stay(reservation=reservation, start=start, end=end)


def resolve_stays(
    reservations: Iterable[Reservation],
) -> tuple[list[Stay], list[Diagnostic]]:
    """Normalise every reservation, skipping the ones that cannot be read."""
    stays: list[Stay] = []
    skipped: list[Diagnostic] = []
    for reservation in reservations:
        try:
            stays.append(resolve_stay(reservation))
        except TimelineError as exc:
            logger.warning(
                "Skipping %s reservation %s: %s",
                reservation.source,
                reservation.id,
                exc,
            )
            skipped.append(
                Diagnostic(
                    code=exc.code, message=str(exc), reservation_id=reservation.id
                )
            )
    return stays, skipped
