"""Domain models for the booking timeline engine."""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from booking_timeline.config import LayoutSettings
from booking_timeline.domain.errors import DiagnosticCode, StrEnum

# Reservation dates are kept exactly as received, null and numbers included,
# and normalised lazily so one unreadable value skips only its reservation.
DateLike = Any


class ReservationSource(StrEnum):
    MANUAL = "manual"
    EXTERNAL = "external"


class BookingStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class DisplayToken(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    CONFLICT = "conflict"


# ---------------------------------------------------------------------------
# Reservations
# ---------------------------------------------------------------------------


class _ReservationBase(BaseModel):
    id: str
    start: DateLike
    end: DateLike
    reference_code: str | None = None
    validated: bool = False
    status: BookingStatus = BookingStatus.PENDING
    guest_names: list[str] = Field(default_factory=list)

    @property
    def is_manual(self) -> bool:
        return self.source == ReservationSource.MANUAL


class ManualReservation(_ReservationBase):
    """A booking entered directly by the host."""

    source: Literal["manual"] = "manual"


class ExternalReservation(_ReservationBase):
    """An entry ingested from an outside calendar feed."""

    source: Literal["external"] = "external"


Reservation = Union[ManualReservation, ExternalReservation]


class Stay(BaseModel):
    """A reservation with its dates normalised to calendar days."""

    model_config = ConfigDict(frozen=True)

    reservation: Reservation = Field(discriminator="source")
    start: dt.date
    end: dt.date

    @property
    def id(self) -> str:
        return self.reservation.id

    @property
    def source(self) -> ReservationSource:
        return self.reservation.source

    @property
    def validated(self) -> bool:
        return self.reservation.validated

    @property
    def nights(self) -> int:
        return (self.end - self.start).days


class Diagnostic(BaseModel):
    code: DiagnosticCode
    message: str
    reservation_id: str | None = None
    week_index: int | None = None


# ---------------------------------------------------------------------------
# Grid and layout
# ---------------------------------------------------------------------------


class CalendarDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    is_current_month: bool
    day_number: int


class SpanSegment(BaseModel):
    """The part of one reservation drawn inside a single week row."""

    model_config = ConfigDict(frozen=True)

    reservation_id: str
    source: ReservationSource
    week_index: int = Field(ge=0)
    start_day_index: int = Field(ge=0, le=6)
    span: int = Field(ge=1, le=7)
    is_start: bool
    is_end: bool
    layer: int = Field(default=0, ge=0)
    gap_offset_percent: float | None = None

    @property
    def end_day_index(self) -> int:
        """Exclusive end column."""
        return self.start_day_index + self.span


class LayoutEntry(SpanSegment):
    display: str
    label: str = ""
    initials: str = ""


class ConflictReport(BaseModel):
    conflict_ids: list[str] = Field(default_factory=list)
    pairs: list[tuple[str, str]] = Field(default_factory=list)
    matched_ids: list[str] = Field(default_factory=list)
    skipped: list[Diagnostic] = Field(default_factory=list)


class LayoutStats(BaseModel):
    completed: int = 0
    pending: int = 0
    conflicts: int = 0


class MonthLayout(BaseModel):
    days: list[CalendarDay]
    weeks: list[list[LayoutEntry]]
    conflicts: ConflictReport
    warnings: list[Diagnostic] = Field(default_factory=list)
    skipped_count: int = 0
    stats: LayoutStats = Field(default_factory=LayoutStats)

    @property
    def overflowed(self) -> bool:
        return any(w.code == DiagnosticCode.LAYER_OVERFLOW for w in self.warnings)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class LayoutRequest(BaseModel):
    month: dt.date
    manual: list[ManualReservation] = Field(default_factory=list)
    external: list[ExternalReservation] = Field(default_factory=list)
    settings: LayoutSettings | None = None


class LayoutResponse(MonthLayout):
    new_warnings: list[Diagnostic] = Field(default_factory=list)


class ConflictRequest(BaseModel):
    manual: list[ManualReservation] = Field(default_factory=list)
    external: list[ExternalReservation] = Field(default_factory=list)
