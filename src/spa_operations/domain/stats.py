"""Domain models for derived statistics."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID


@dataclass(frozen=True)
class DashboardStats:
    """Live totals shown on the operations dashboard."""

    total_slips: int
    total_revenue: float
    total_payouts: float
    total_discounts: float
    total_expenses: float
    shop_revenue: float
    walk_out_count: int


@dataclass(frozen=True)
class WorkingHours:
    """Time worked between check-in and departure (or now)."""

    hours: int
    minutes: int
    total_minutes: int

    @property
    def formatted(self) -> str:
        if self.hours > 0:
            return f"{self.hours}h {self.minutes}m"
        return f"{self.minutes}m"


@dataclass(frozen=True)
class TherapistSummary:
    """Per-therapist line of the closing report."""

    therapist_id: UUID
    name: str
    status: str
    total_sessions: int
    total_earnings: float
    total_expenses: float
    net_payout: float
    working_hours: WorkingHours | None


@dataclass(frozen=True)
class ClosingStats:
    """End-of-day totals including payout breakdowns."""

    totals: DashboardStats
    completed_sessions: int
    gross_shop_revenue: float
    net_shop_revenue: float
    total_all_payouts: float
    remaining_payouts: float
    therapists: list[TherapistSummary]


@dataclass(frozen=True)
class DailyStats:
    """Persisted daily closing row."""

    day: date
    total_slips: int
    total_revenue: float
    total_payouts: float
    total_discounts: float
    shop_revenue: float
    walk_out_count: int
    completed_sessions: int = 0


@dataclass(frozen=True)
class MonthlySummary:
    """Per-day closing rows for a calendar month with totals and averages."""

    year: int
    month: int
    daily: list[DailyStats]
    days_reported: int
    total_slips: int
    total_revenue: float
    total_payouts: float
    total_discounts: float
    shop_revenue: float
    walk_out_count: int
    avg_revenue: float
    avg_slips: float
