"""Service for assembling the per-week render list of a month view.

``compute_month_layout`` is the entry point: it builds the grid, resolves
spans, layers every week, detects conflicts and merges it all into a
``MonthLayout``. Nothing is cached between calls; callers that recompute
on every change should memoise on the input lists themselves.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Iterable, Mapping, Sequence

from booking_timeline.config import LayoutSettings
from booking_timeline.domain.errors import DiagnosticCode
from booking_timeline.domain.models import (
    BookingStatus,
    ConflictReport,
    Diagnostic,
    DisplayToken,
    ExternalReservation,
    LayoutEntry,
    LayoutStats,
    ManualReservation,
    MonthLayout,
    Reservation,
    SpanSegment,
)
from booking_timeline.services.conflicts import find_stay_conflicts
from booking_timeline.services.grid import WEEKS_PER_GRID, build_month_grid, split_weeks
from booking_timeline.services.labels import booking_label, guest_initials
from booking_timeline.services.layers import assign_layers
from booking_timeline.services.spans import resolve_spans
from booking_timeline.services.stays import resolve_stays

logger = logging.getLogger(__name__)

Classifier = Callable[[Reservation, frozenset[str], frozenset[str]], str]


def default_classifier(
    reservation: Reservation,
    matched_ids: frozenset[str],
    conflict_ids: frozenset[str],
) -> str:
    """Conflicts first, then host bookings confirmed by the feed, else pending."""
    if reservation.id in conflict_ids:
        return DisplayToken.CONFLICT
    if reservation.is_manual and (
        reservation.status == BookingStatus.COMPLETED or reservation.id in matched_ids
    ):
        return DisplayToken.COMPLETED
    return DisplayToken.PENDING


def _render_order(segment: SpanSegment) -> tuple:
    return (
        segment.layer,
        segment.start_day_index,
        segment.reservation_id,
        segment.source,
    )


def assemble_layout(
    week_segments: Mapping[int, Sequence[SpanSegment]],
    classification: Mapping[str, str],
    reservations: Mapping[str, Reservation] | None = None,
    week_count: int = WEEKS_PER_GRID,
) -> list[list[LayoutEntry]]:
    """Order each week's segments by layer then column and attach display tokens.

    *reservations* maps reservation ids to reservations for caption text; bars
    without an entry get no caption.
    """
    reservations = reservations or {}
    weeks: list[list[LayoutEntry]] = []
    for week_index in range(week_count):
        entries: list[LayoutEntry] = []
        for segment in sorted(week_segments.get(week_index, ()), key=_render_order):
            reservation = reservations.get(segment.reservation_id)
            entries.append(
                LayoutEntry(
                    **segment.model_dump(),
                    display=classification.get(
                        segment.reservation_id, DisplayToken.PENDING
                    ),
                    label=(
                        booking_label(reservation, segment.is_start)
                        if reservation
                        else ""
                    ),
                    initials=guest_initials(reservation) if reservation else "",
                )
            )
        weeks.append(entries)
    return weeks


def summarize(
    manual: Iterable[ManualReservation],
    external: Iterable[ExternalReservation],
    report: ConflictReport,
) -> LayoutStats:
    matched = set(report.matched_ids)
    manual = list(manual)
    completed = sum(
        1 for r in manual if r.id in matched and r.status == BookingStatus.COMPLETED
    )
    pending = sum(1 for r in manual if r.status != BookingStatus.COMPLETED)
    pending += sum(1 for r in external if r.id not in matched)
    return LayoutStats(
        completed=completed, pending=pending, conflicts=len(report.conflict_ids)
    )


def compute_month_layout(
    reference: dt.date,
    manual: Iterable[ManualReservation],
    external: Iterable[ExternalReservation],
    classify: Classifier | None = None,
    settings: LayoutSettings | None = None,
) -> MonthLayout:
    """Lay out both reservation sources over the month containing *reference*."""
    settings = settings or LayoutSettings()
    classify = classify or default_classifier
    manual = list(manual)
    external = list(external)

    days = build_month_grid(reference)
    weeks = split_weeks(days)

    stays, skipped = resolve_stays([*manual, *external])
    report = find_stay_conflicts(stays, skipped, settings.no_reference_sentinel)
    matched_ids = frozenset(report.matched_ids)
    conflict_ids = frozenset(report.conflict_ids)

    # A matched synced entry is drawn through its host booking instead.
    visible = [
        stay
        for stay in stays
        if stay.reservation.is_manual
        or not (settings.hide_matched_external and stay.id in matched_ids)
    ]

    spans = resolve_spans(weeks, visible, settings.clip_to_current_month)

    warnings: list[Diagnostic] = []
    layered: dict[int, tuple[SpanSegment, ...]] = {}
    for week_index, segments in spans.items():
        assignment = assign_layers(segments, settings)
        layered[week_index] = assignment.segments
        for reservation_id in assignment.overflowed:
            warnings.append(
                Diagnostic(
                    code=DiagnosticCode.LAYER_OVERFLOW,
                    message=(
                        f"more than {settings.max_layer} concurrent layers needed; "
                        f"placed on layer {settings.max_layer}"
                    ),
                    reservation_id=reservation_id,
                    week_index=week_index,
                )
            )

    reservations = {
        stay.id: stay.reservation
        for stay in sorted(visible, key=lambda s: (s.id, s.source))
    }
    classification = {
        reservation_id: classify(reservation, matched_ids, conflict_ids)
        for reservation_id, reservation in reservations.items()
    }

    logger.debug(
        "Laid out %d stays for %s (%d skipped, %d conflicts)",
        len(visible),
        reference,
        len(skipped),
        len(conflict_ids),
    )

    return MonthLayout(
        days=days,
        weeks=assemble_layout(layered, classification, reservations, len(weeks)),
        conflicts=report,
        warnings=warnings,
        skipped_count=len(skipped),
        stats=summarize(manual, external, report),
    )
