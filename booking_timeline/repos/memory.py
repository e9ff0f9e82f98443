"""In-memory store for warnings that have already been surfaced."""

from __future__ import annotations

from typing import Iterable

from booking_timeline.domain.models import Diagnostic


def notice_key(scope: str, diagnostic: Diagnostic) -> str:
    return ":".join(
        (
            scope,
            diagnostic.code,
            "" if diagnostic.week_index is None else str(diagnostic.week_index),
            diagnostic.reservation_id or "",
        )
    )


class NoticeLedger:
    """Set-backed record of diagnostics the user has already been told about.

    The engine is stateless and reports every diagnostic on every call; the
    ledger is how a caller avoids repeating the same warning on each
    re-render. *scope* usually names the month being viewed.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def has(self, scope: str, diagnostic: Diagnostic) -> bool:
        return notice_key(scope, diagnostic) in self._seen

    def add(self, scope: str, diagnostic: Diagnostic) -> None:
        self._seen.add(notice_key(scope, diagnostic))

    def take_new(
        self, scope: str, diagnostics: Iterable[Diagnostic]
    ) -> list[Diagnostic]:
        """Return the diagnostics not yet seen in *scope* and mark them seen."""
        fresh: list[Diagnostic] = []
        for diagnostic in diagnostics:
            if self.has(scope, diagnostic):
                continue
            self.add(scope, diagnostic)
            fresh.append(diagnostic)
        return fresh

    def clear(self) -> None:
        self._seen.clear()
