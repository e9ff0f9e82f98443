"""Tests for the full month layout pipeline."""

from __future__ import annotations

from datetime import date

from booking_timeline.config import LayoutSettings
from booking_timeline.domain.errors import DiagnosticCode
from booking_timeline.domain.models import (
    BookingStatus,
    ExternalReservation,
    ManualReservation,
    SpanSegment,
)
from booking_timeline.services.layout import (
    assemble_layout,
    compute_month_layout,
    default_classifier,
)

_JUNE = date(2024, 6, 1)


def _manual(id: str, start, end, **overrides) -> ManualReservation:
    defaults = dict(id=id, start=start, end=end, validated=True)
    defaults.update(overrides)
    return ManualReservation(**defaults)


def _external(id: str, start, end, **overrides) -> ExternalReservation:
    defaults = dict(id=id, start=start, end=end, validated=True)
    defaults.update(overrides)
    return ExternalReservation(**defaults)


def _entries(layout):
    return {(e.week_index, e.reservation_id): e for week in layout.weeks for e in week}


def test_empty_input():
    layout = compute_month_layout(_JUNE, [], [])

    assert len(layout.days) == 42
    assert layout.weeks == [[] for _ in range(6)]
    assert layout.conflicts.conflict_ids == []
    assert layout.warnings == []
    assert layout.skipped_count == 0


def test_back_to_back_bookings_share_a_layer():
    a = _manual("A", date(2024, 6, 6), date(2024, 6, 8), reference_code="X")
    b = _external("B", date(2024, 6, 8), date(2024, 6, 10), reference_code="Y")

    layout = compute_month_layout(_JUNE, [a], [b])

    week = layout.weeks[1]
    assert [e.reservation_id for e in week] == ["A", "B"]
    assert [e.layer for e in week] == [0, 0]
    assert week[0].gap_offset_percent is None
    assert week[1].gap_offset_percent == 12.0
    assert layout.conflicts.conflict_ids == []


def test_overlapping_validated_bookings_are_red():
    a = _manual("A", date(2024, 6, 5), date(2024, 6, 12))
    b = _external("B", date(2024, 6, 8), date(2024, 6, 15))

    layout = compute_month_layout(_JUNE, [a], [b])

    assert layout.conflicts.conflict_ids == ["A", "B"]
    assert {e.display for week in layout.weeks for e in week} == {"conflict"}
    assert layout.stats.conflicts == 2


def test_matched_external_is_hidden_behind_manual_booking():
    a = _manual("A", date(2024, 6, 5), date(2024, 6, 12), reference_code="HM123")
    b = _external("B", date(2024, 6, 8), date(2024, 6, 15), reference_code="HM123")

    layout = compute_month_layout(_JUNE, [a], [b])

    ids = {e.reservation_id for week in layout.weeks for e in week}
    assert ids == {"A"}
    assert {e.display for week in layout.weeks for e in week} == {"completed"}
    assert layout.conflicts.conflict_ids == []


def test_matched_external_can_be_shown():
    a = _manual("A", date(2024, 6, 5), date(2024, 6, 12), reference_code="HM123")
    b = _external("B", date(2024, 6, 5), date(2024, 6, 12), reference_code="HM123")

    layout = compute_month_layout(
        _JUNE, [a], [b], settings=LayoutSettings(hide_matched_external=False)
    )

    entries = _entries(layout)
    assert entries[(1, "A")].layer == 0
    assert entries[(1, "B")].layer == 1
    assert entries[(1, "B")].display == "pending"


def test_three_overlapping_bookings_stack():
    reservations = [
        _manual("A", date(2024, 6, 3), date(2024, 6, 6)),
        _manual("B", date(2024, 6, 4), date(2024, 6, 7)),
        _external("C", date(2024, 6, 5), date(2024, 6, 8)),
    ]

    layout = compute_month_layout(_JUNE, reservations[:2], reservations[2:])

    assert sorted(e.layer for e in layout.weeks[1]) == [0, 1, 2]
    assert layout.conflicts.conflict_ids == ["A", "B", "C"]


def test_long_stay_spans_two_rows():
    a = _manual("A", date(2024, 6, 5), date(2024, 6, 15))

    layout = compute_month_layout(_JUNE, [a], [])

    entries = _entries(layout)
    assert set(entries) == {(1, "A"), (2, "A")}
    assert entries[(1, "A")].is_start and not entries[(1, "A")].is_end
    assert entries[(2, "A")].is_end and not entries[(2, "A")].is_start
    assert entries[(2, "A")].span == 5


def test_entries_are_ordered_by_layer_then_column():
    reservations = [
        _manual("late", date(2024, 6, 7), date(2024, 6, 9)),
        _manual("long", date(2024, 6, 3), date(2024, 6, 10)),
        _manual("early", date(2024, 6, 4), date(2024, 6, 6)),
    ]

    layout = compute_month_layout(_JUNE, reservations, [])

    week = layout.weeks[1]
    assert [(e.reservation_id, e.layer) for e in week] == [
        ("long", 0),
        ("early", 1),
        ("late", 1),
    ]


def test_result_is_repeatable():
    manual = [
        _manual("A", date(2024, 6, 5), date(2024, 6, 12), guest_names=["Ana Lima"]),
        _manual("B", "2024-06-10", "2024-06-20", validated=False),
    ]
    external = [_external("C", "2024-06-11T14:00:00Z", "2024-06-13T10:00:00Z")]

    first = compute_month_layout(_JUNE, manual, external)
    second = compute_month_layout(_JUNE, list(reversed(manual)), external)

    assert first.model_dump_json() == second.model_dump_json()


def test_malformed_reservation_is_skipped_not_fatal():
    good = _manual("A", date(2024, 6, 5), date(2024, 6, 8))
    broken = _external("B", "31/31/2024", date(2024, 6, 9))

    layout = compute_month_layout(_JUNE, [good], [broken])

    assert layout.skipped_count == 1
    assert layout.conflicts.skipped[0].reservation_id == "B"
    assert [e.reservation_id for e in layout.weeks[1]] == ["A"]


def test_layer_overflow_is_a_warning():
    reservations = [
        _manual(f"R{i}", date(2024, 6, 3), date(2024, 6, 10), validated=False)
        for i in range(4)
    ]

    layout = compute_month_layout(
        _JUNE, reservations, [], settings=LayoutSettings(max_layer=2)
    )

    assert layout.overflowed
    assert [(w.code, w.reservation_id, w.week_index) for w in layout.warnings] == [
        (DiagnosticCode.LAYER_OVERFLOW, "R2", 1),
        (DiagnosticCode.LAYER_OVERFLOW, "R3", 1),
    ]
    assert sorted(e.layer for e in layout.weeks[1]) == [0, 1, 2, 2]


def test_custom_classifier_receives_matches_and_conflicts():
    calls = []

    def classify(reservation, matched_ids, conflict_ids):
        calls.append((reservation.id, sorted(matched_ids), sorted(conflict_ids)))
        return f"token-{reservation.id}"

    a = _manual("A", date(2024, 6, 5), date(2024, 6, 12), reference_code="HM1")
    b = _external("B", date(2024, 6, 5), date(2024, 6, 12), reference_code="HM1")
    c = _external("C", date(2024, 6, 10), date(2024, 6, 11))

    layout = compute_month_layout(_JUNE, [a], [b, c], classify=classify)

    # B is hidden behind A, but still conflicts with C.
    assert sorted(calls) == [
        ("A", ["A", "B"], ["A", "B", "C"]),
        ("C", ["A", "B"], ["A", "B", "C"]),
    ]
    assert _entries(layout)[(2, "C")].display == "token-C"


def test_labels_and_initials():
    a = _manual(
        "A",
        date(2024, 6, 5),
        date(2024, 6, 15),
        guest_names=["Marie Dupont", "Jean Dupont"],
    )

    layout = compute_month_layout(_JUNE, [a], [])

    entries = _entries(layout)
    assert entries[(1, "A")].label == "Marie + 1"
    assert entries[(2, "A")].label == ""
    assert entries[(2, "A")].initials == "MD"


def test_stats():
    manual = [
        _manual(
            "A", date(2024, 6, 5), date(2024, 6, 8), status=BookingStatus.COMPLETED
        ),
        _manual("B", date(2024, 6, 20), date(2024, 6, 22)),
    ]
    external = [
        _external("C", date(2024, 6, 5), date(2024, 6, 8)),
        _external("D", date(2024, 6, 25), date(2024, 6, 27)),
    ]

    stats = compute_month_layout(_JUNE, manual, external).stats

    assert (stats.completed, stats.pending, stats.conflicts) == (1, 2, 0)


# ---------------------------------------------------------------------------
# default_classifier / assemble_layout
# ---------------------------------------------------------------------------


def test_default_classifier():
    manual = _manual("A", date(2024, 6, 5), date(2024, 6, 8))
    external = _external("B", date(2024, 6, 5), date(2024, 6, 8))
    none = frozenset()

    both = frozenset({"A"})
    assert default_classifier(manual, both, both) == "conflict"
    assert default_classifier(manual, frozenset({"A"}), none) == "completed"
    assert default_classifier(manual, none, none) == "pending"
    assert default_classifier(external, frozenset({"B"}), none) == "pending"
    completed = _manual("D", date(2024, 6, 5), date(2024, 6, 8), status="completed")
    assert default_classifier(completed, none, none) == "completed"


def test_assemble_layout_defaults_to_pending():
    segment = SpanSegment(
        reservation_id="X",
        source="external",
        week_index=2,
        start_day_index=0,
        span=3,
        is_start=True,
        is_end=False,
        layer=1,
    )

    weeks = assemble_layout({2: [segment]}, {})

    assert len(weeks) == 6
    assert weeks[2][0].display == "pending"
    assert weeks[2][0].label == ""
