"""Service for detecting double-bookings across manual and synced reservations."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from booking_timeline.config import NO_REFERENCE
from booking_timeline.domain.models import (
    ConflictReport,
    Diagnostic,
    ExternalReservation,
    ManualReservation,
    Stay,
)
from booking_timeline.services.stays import resolve_stays

logger = logging.getLogger(__name__)


def _usable_reference(code: str | None, sentinel: str) -> str | None:
    if code is None:
        return None
    code = code.strip()
    if not code or code == sentinel:
        return None
    return code


def references_match(
    first: str | None,
    second: str | None,
    sentinel: str = NO_REFERENCE,
) -> bool:
    """True when two reference codes name the same booking.

    Codes match when equal or when one contains the other, since feeds
    often add a prefix or suffix to the host's code.
    """
    a = _usable_reference(first, sentinel)
    b = _usable_reference(second, sentinel)
    if a is None or b is None:
        return False
    return a == b or a in b or b in a


def is_same_booking(first: Stay, second: Stay, sentinel: str = NO_REFERENCE) -> bool:
    """True when two stays are one booking recorded twice.

    Across sources a fuzzy reference match or identical dates count, since a
    synced entry shadows the host's own record. Within one source only an
    exactly equal reference does.
    """
    a = first.reservation.reference_code
    b = second.reservation.reference_code
    if first.source == second.source:
        code = _usable_reference(a, sentinel)
        return code is not None and code == _usable_reference(b, sentinel)
    if references_match(a, b, sentinel):
        return True
    return first.start == second.start and first.end == second.end


def stays_overlap(first: Stay, second: Stay) -> bool:
    """Overlap rule: first.start < second.end AND second.start < first.end.

    Exact boundary touches (checkout day == check-in day) are NOT conflicts,
    and zero-night stays overlap nothing.
    """
    if first.nights <= 0 or second.nights <= 0:
        return False
    return first.start < second.end and second.start < first.end


def find_overlaps(stay: Stay, others: Iterable[Stay]) -> list[Stay]:
    """Return the stays in *others* that share at least one night with *stay*."""
    return [other for other in others if stays_overlap(stay, other)]


def find_stay_conflicts(
    stays: Sequence[Stay],
    skipped: Sequence[Diagnostic] = (),
    sentinel: str = NO_REFERENCE,
) -> ConflictReport:
    """Cross-reference already normalised stays.

    Pairs that are the same booking are set aside first; the remaining
    overlapping pairs are reported only when both sides are validated.
    """
    ordered = sorted(stays, key=lambda s: (s.id, s.source, s.start, s.end))
    conflict_ids: set[str] = set()
    pairs: set[tuple[str, str]] = set()
    matched: set[str] = set()

    for index, first in enumerate(ordered):
        distinct: list[Stay] = []
        for second in ordered[index + 1 :]:
            if first.id == second.id:
                continue
            if not is_same_booking(first, second, sentinel):
                distinct.append(second)
            elif first.source != second.source:
                matched.update((first.id, second.id))

        for second in find_overlaps(first, distinct):
            if not (first.validated and second.validated):
                logger.debug(
                    "Ignoring overlap %s/%s: not both validated", first.id, second.id
                )
                continue
            low, high = sorted((first.id, second.id))
            pairs.add((low, high))
            conflict_ids.update((first.id, second.id))

    if conflict_ids:
        logger.info("Detected %d conflicting reservations", len(conflict_ids))

    return ConflictReport(
        conflict_ids=sorted(conflict_ids),
        pairs=sorted(pairs),
        matched_ids=sorted(matched),
        skipped=list(skipped),
    )


def detect_conflicts(
    manual: Iterable[ManualReservation],
    external: Iterable[ExternalReservation],
    sentinel: str = NO_REFERENCE,
) -> ConflictReport:
    """Return the reservations that are genuinely double-booked.

    Reservations with unreadable dates are skipped and listed in
    ``ConflictReport.skipped``.
    """
    stays, skipped = resolve_stays([*manual, *external])
    return find_stay_conflicts(stays, skipped, sentinel)
