"""FastAPI application: entry point for the booking timeline service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException

from booking_timeline.config import LayoutSettings
from booking_timeline.domain.errors import MalformedDateError
from booking_timeline.domain.models import (
    CalendarDay,
    ConflictReport,
    ConflictRequest,
    LayoutRequest,
    LayoutResponse,
)
from booking_timeline.repos.memory import NoticeLedger
from booking_timeline.services.conflicts import detect_conflicts
from booking_timeline.services.grid import build_month_grid
from booking_timeline.services.layout import compute_month_layout
from booking_timeline.services.stays import to_day

logger = logging.getLogger(__name__)

app = FastAPI(title="Booking Timeline Service")

# ── Singletons (created at import time for simplicity) ────────────────
settings = LayoutSettings.from_env()
notice_ledger = NoticeLedger()


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/layout", response_model=LayoutResponse)
def layout_month(payload: LayoutRequest) -> LayoutResponse:
    """Lay out manual and synced reservations over a month grid.

    ``new_warnings`` lists only the diagnostics not reported before for the
    same month; ``warnings`` always carries all of them.
    """
    layout = compute_month_layout(
        payload.month,
        payload.manual,
        payload.external,
        settings=payload.settings or settings,
    )
    scope = payload.month.strftime("%Y-%m")
    diagnostics = [*layout.conflicts.skipped, *layout.warnings]
    fresh = notice_ledger.take_new(scope, diagnostics)
    for diagnostic in fresh:
        logger.info(
            "%s: %s (%s)", scope, diagnostic.message, diagnostic.reservation_id
        )
    return LayoutResponse(**dict(layout), new_warnings=fresh)


@app.post("/conflicts", response_model=ConflictReport)
def list_conflicts(payload: ConflictRequest) -> ConflictReport:
    """Return the ids of validated reservations that are double-booked."""
    return detect_conflicts(
        payload.manual, payload.external, sentinel=settings.no_reference_sentinel
    )


@app.get("/grid/{month}", response_model=list[CalendarDay])
def month_grid(month: str) -> list[CalendarDay]:
    """Return the 42 days shown for ``YYYY-MM`` or any ISO date in the month."""
    try:
        reference = to_day(month)
    except MalformedDateError:
        raise HTTPException(status_code=400, detail=f"Invalid month: {month}")
    return build_month_grid(reference)
