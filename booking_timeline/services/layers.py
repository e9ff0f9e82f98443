"""Service for stacking span segments into non-overlapping layers.

Layering runs as a pipeline of pure phases, each returning a new tuple of
frozen segments:

1. ``sort_segments`` orders a week's segments by start column, longest
   first, Manual before External, then reservation id.
2. ``place_greedily`` puts every segment on the first layer where it does
   not overlap anything already placed.
3. ``compact_layers`` lets segments above layer 0 drop into holes left
   below them.
4. ``apply_gap_offsets`` marks back-to-back bars on the same layer so the
   renderer can inset the later one.

This is a greedy first-fit, not a minimum colouring solver.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field

from booking_timeline.config import LayoutSettings
from booking_timeline.domain.models import ReservationSource, SpanSegment

logger = logging.getLogger(__name__)

DEFAULT_MAX_LAYER = 15
DEFAULT_GAP_OFFSET_PERCENT = 12.0

_SOURCE_RANK = {ReservationSource.MANUAL: 0, ReservationSource.EXTERNAL: 1}


class LayerAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    segments: tuple[SpanSegment, ...] = ()
    overflowed: tuple[str, ...] = Field(
        default=(), description="Reservation ids force-placed on the last layer."
    )


def segments_overlap(first: SpanSegment, second: SpanSegment) -> bool:
    """Half-open column overlap. Touching segments do not overlap."""
    return (
        first.start_day_index < second.end_day_index
        and second.start_day_index < first.end_day_index
    )


def _placement_key(segment: SpanSegment) -> tuple:
    return (
        segment.start_day_index,
        -segment.span,
        _SOURCE_RANK[segment.source],
        segment.reservation_id,
    )


def sort_segments(segments: Iterable[SpanSegment]) -> tuple[SpanSegment, ...]:
    return tuple(sorted(segments, key=_placement_key))


def _first_free_layer(
    segment: SpanSegment,
    settled: Sequence[SpanSegment],
    candidates: Iterable[int],
) -> int | None:
    for layer in candidates:
        if not any(
            other.layer == layer and segments_overlap(segment, other)
            for other in settled
        ):
            return layer
    return None


def place_greedily(
    segments: Iterable[SpanSegment],
    max_layer: int = DEFAULT_MAX_LAYER,
) -> LayerAssignment:
    """First-fit placement over layers ``0..max_layer-1``.

    A segment that fits nowhere is forced onto ``max_layer`` and its
    reservation id is recorded in ``overflowed``.
    """
    placed: list[SpanSegment] = []
    overflowed: list[str] = []
    for segment in sort_segments(segments):
        layer = _first_free_layer(segment, placed, range(max_layer))
        if layer is None:
            layer = max_layer
            overflowed.append(segment.reservation_id)
            logger.warning(
                "Week %d needs more than %d layers; forcing %s onto layer %d",
                segment.week_index,
                max_layer,
                segment.reservation_id,
                max_layer,
            )
        placed.append(segment.model_copy(update={"layer": layer}))
    return LayerAssignment(segments=tuple(placed), overflowed=tuple(overflowed))


def compact_layers(assignment: LayerAssignment) -> LayerAssignment:
    """Move segments down into lower layers that have room for them.

    Segments are visited by ascending layer then start column, and each is
    checked only against segments already settled, so nothing placed
    earlier is reordered.
    """
    ordered = sorted(
        assignment.segments,
        key=lambda s: (s.layer,) + _placement_key(s),
    )
    settled: list[SpanSegment] = []
    for segment in ordered:
        if segment.layer > 0:
            lower = _first_free_layer(segment, settled, range(segment.layer))
            if lower is not None:
                logger.debug(
                    "Compacting %s from layer %d to %d",
                    segment.reservation_id,
                    segment.layer,
                    lower,
                )
                segment = segment.model_copy(update={"layer": lower})
        settled.append(segment)
    return LayerAssignment(segments=tuple(settled), overflowed=assignment.overflowed)


def apply_gap_offsets(
    segments: Sequence[SpanSegment],
    gap_percent: float = DEFAULT_GAP_OFFSET_PERCENT,
) -> tuple[SpanSegment, ...]:
    """Flag starting segments that begin where a same-layer segment ends."""
    result: list[SpanSegment] = []
    for index, segment in enumerate(segments):
        follows = segment.is_start and any(
            other.layer == segment.layer
            and other.end_day_index == segment.start_day_index
            for other_index, other in enumerate(segments)
            if other_index != index
        )
        result.append(
            segment.model_copy(
                update={"gap_offset_percent": gap_percent if follows else None}
            )
        )
    return tuple(result)


def assign_layers(
    segments: Iterable[SpanSegment],
    settings: LayoutSettings | None = None,
) -> LayerAssignment:
    """Run the full layering pipeline for one week."""
    settings = settings or LayoutSettings()
    placed = place_greedily(segments, max_layer=settings.max_layer)
    compacted = compact_layers(placed)
    return LayerAssignment(
        segments=apply_gap_offsets(compacted.segments, settings.gap_offset_percent),
        overflowed=compacted.overflowed,
    )
