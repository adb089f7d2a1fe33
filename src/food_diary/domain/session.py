"""Domain models for the in-memory diary session."""

from dataclasses import dataclass
from enum import StrEnum

from food_diary.domain.nutrition import DailyReport


class SlotStatus(StrEnum):
    """Analysis state of a meal slot."""

    IDLE = "idle"
    LOADING = "loading"


class ReportStatus(StrEnum):
    """Lifecycle of the daily report."""

    NO_REPORT = "no_report"
    GENERATING = "generating"
    READY = "ready"


@dataclass(frozen=True)
class Notice:
    """User-facing, dismissable error message."""

    message: str
    code: str | None = None


@dataclass
class SlotState:
    """Loading flag for one slot plus a ticket for discarding stale results."""

    status: SlotStatus = SlotStatus.IDLE
    ticket: int = 0


@dataclass(frozen=True)
class ReportState:
    """Current daily report state."""

    status: ReportStatus = ReportStatus.NO_REPORT
    report: DailyReport | None = None
