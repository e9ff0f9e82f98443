"""Error types and diagnostic codes for the timeline engine.

The engine never raises these to its callers: they are caught at the
reservation boundary and turned into ``Diagnostic`` records so that a
partial layout can still be rendered.
"""

from __future__ import annotations

from enum import Enum

try:
    from enum import StrEnum
except ImportError:  # pragma: no cover - fallback for older Python runtimes

    class StrEnum(str, Enum):
        pass


class DiagnosticCode(StrEnum):
    MALFORMED_DATE = "malformed_date"
    INVERTED_RANGE = "inverted_range"
    LAYER_OVERFLOW = "layer_overflow"


class TimelineError(Exception):
    """Base class for timeline engine errors."""

    code: DiagnosticCode


class MalformedDateError(TimelineError, ValueError):
    """A reservation date could not be read as a calendar day."""

    code = DiagnosticCode.MALFORMED_DATE

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"unparseable date: {value!r}")


class InvertedRangeError(TimelineError, ValueError):
    """A reservation ends before it starts."""

    code = DiagnosticCode.INVERTED_RANGE

    def __init__(self, start: object, end: object) -> None:
        self.start = start
        self.end = end
        super().__init__(f"end {end} is before start {start}")
