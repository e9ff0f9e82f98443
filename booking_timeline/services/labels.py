"""Short captions drawn on reservation bars."""

from __future__ import annotations

from booking_timeline.domain.models import Reservation

_MANUAL_FALLBACK = "Client"
_EXTERNAL_FALLBACK = "Airbnb"


def _first_name(full_name: str) -> str:
    parts = full_name.split()
    return parts[0] if parts else ""


def booking_label(reservation: Reservation, is_start: bool) -> str:
    """Caption for a bar; only the segment holding the check-in gets text."""
    if not is_start:
        return ""

    names = [name for name in reservation.guest_names if name.strip()]
    if not reservation.is_manual:
        return _first_name(names[0]) if names else _EXTERNAL_FALLBACK

    first = _first_name(names[0]) if names else _MANUAL_FALLBACK
    if len(names) > 1:
        return f"{first} + {len(names) - 1}"
    return first


def guest_initials(reservation: Reservation) -> str:
    names = [name for name in reservation.guest_names if name.strip()]
    if not names:
        return "CL" if reservation.is_manual else "AB"
    return "".join(part[0] for part in names[0].split()).upper()[:2]
