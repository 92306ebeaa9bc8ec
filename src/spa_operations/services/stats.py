"""Derived statistics for the dashboard and closing reports."""

import calendar
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from spa_operations.domain.models import (
    Session,
    SessionStatus,
    Therapist,
    TherapistStatus,
    WalkOut,
)
from spa_operations.domain.stats import (
    ClosingStats,
    DailyStats,
    DashboardStats,
    MonthlySummary,
    TherapistSummary,
    WorkingHours,
)
from spa_operations.domain.records import daily_stats_to_row
from spa_operations.services.outbox import IntentOperation, Outbox, RemoteIntent
from spa_operations.services.store import Store

logger = logging.getLogger(__name__)


class DailyStatsRepository(Protocol):
    """Read interface for closed-out days."""

    def list_between(self, start: date, end: date) -> list[DailyStats]:
        """Return rows with ``start <= day <= end`` ordered by day."""


def billable_sessions(sessions: Iterable[Session]) -> list[Session]:
    """Return sessions that count towards revenue (not cancelled or no-show)."""
    return [session for session in sessions if session.status.is_billable]


def calculate_session_revenue(sessions: Iterable[Session]) -> float:
    return sum(session.total_price for session in sessions)


def calculate_gross_shop_revenue(sessions: Iterable[Session]) -> float:
    """Shop share per session after the discount, never below zero."""
    return sum(
        max(0.0, session.service.shop_revenue - session.discount)
        for session in sessions
    )


def count_walk_outs(walk_outs: Iterable[WalkOut]) -> int:
    """Batched entries count ``count`` people; single entries count one."""
    return sum(walk_out.count or 1 for walk_out in walk_outs)


def compute_dashboard_stats(
    sessions: Iterable[Session],
    roster: Iterable[Therapist],
    walk_outs: Iterable[WalkOut],
) -> DashboardStats:
    """Aggregate the live dashboard totals.

    Every session passed in is counted; callers filter out cancelled and
    no-show sessions with :func:`billable_sessions`. Therapist expenses are
    shop income, so they are added to the shop revenue.
    """
    sessions = list(sessions)
    total_expenses = sum(therapist.total_expenses for therapist in roster)
    gross_shop = calculate_gross_shop_revenue(sessions)
    return DashboardStats(
        total_slips=len(sessions),
        total_revenue=calculate_session_revenue(sessions),
        total_payouts=sum(session.service.lady_payout for session in sessions),
        total_discounts=sum(session.discount for session in sessions),
        total_expenses=total_expenses,
        shop_revenue=max(0.0, gross_shop + total_expenses),
        walk_out_count=count_walk_outs(walk_outs),
    )


def calculate_working_hours(
    check_in_time: datetime | None,
    departure_time: datetime | None,
    now: datetime,
) -> WorkingHours | None:
    """Return time worked, or None when the therapist never checked in."""
    if check_in_time is None:
        return None
    end = departure_time or now
    total_minutes = max(0, int((end - check_in_time).total_seconds() // 60))
    return WorkingHours(
        hours=total_minutes // 60,
        minutes=total_minutes % 60,
        total_minutes=total_minutes,
    )


def summarize_therapist(therapist: Therapist, now: datetime) -> TherapistSummary:
    return TherapistSummary(
        therapist_id=therapist.id,
        name=therapist.name,
        status=therapist.status.value,
        total_sessions=therapist.total_sessions,
        total_earnings=therapist.total_earnings,
        total_expenses=therapist.total_expenses,
        net_payout=therapist.net_payout,
        working_hours=calculate_working_hours(
            therapist.check_in_time, therapist.departure_time, now
        ),
    )


def compute_closing_stats(
    sessions: Iterable[Session],
    roster: Iterable[Therapist],
    walk_outs: Iterable[WalkOut],
    now: datetime,
) -> ClosingStats:
    """Aggregate the end-of-day report, including payout breakdowns."""
    sessions = list(sessions)
    roster = list(roster)
    totals = compute_dashboard_stats(sessions, roster, walk_outs)
    gross_shop = calculate_gross_shop_revenue(sessions)
    return ClosingStats(
        totals=totals,
        completed_sessions=sum(
            1 for session in sessions if session.status is SessionStatus.COMPLETED
        ),
        gross_shop_revenue=gross_shop,
        net_shop_revenue=totals.shop_revenue,
        total_all_payouts=sum(therapist.net_payout for therapist in roster),
        remaining_payouts=sum(
            therapist.net_payout
            for therapist in roster
            if therapist.status is TherapistStatus.AVAILABLE
        ),
        therapists=[summarize_therapist(therapist, now) for therapist in roster],
    )


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class StatsService:
    """Computes live statistics from the store and persists closed days."""

    repository: DailyStatsRepository
    store: Store
    outbox: Outbox
    timezone_name: str = "Asia/Bangkok"
    clock: Callable[[], datetime] = field(default=_utcnow)

    def dashboard(self) -> DashboardStats:
        state = self.store.state
        return compute_dashboard_stats(
            billable_sessions(state.sessions), state.roster, state.walk_outs
        )

    def closing(self) -> ClosingStats:
        state = self.store.state
        return compute_closing_stats(
            billable_sessions(state.sessions),
            state.roster,
            state.walk_outs,
            self.clock(),
        )

    def today(self) -> date:
        """Return the business date in the configured timezone."""
        return business_date(self.clock(), self.timezone_name)

    def close_out_day(self) -> DailyStats:
        """Queue today's closing totals for the database and return them.

        The row is upserted on its date, so closing the same day again
        replaces the earlier totals.
        """
        closing = self.closing()
        totals = closing.totals
        row = DailyStats(
            day=self.today(),
            total_slips=totals.total_slips,
            total_revenue=totals.total_revenue,
            total_payouts=totals.total_payouts,
            total_discounts=totals.total_discounts,
            shop_revenue=totals.shop_revenue,
            walk_out_count=totals.walk_out_count,
            completed_sessions=closing.completed_sessions,
        )
        synced = self.outbox.submit(
            RemoteIntent(
                table="daily_stats",
                operation=IntentOperation.UPSERT,
                record_id=row.day.isoformat(),
                payload=daily_stats_to_row(row),
                on_conflict="date",
            )
        )
        logger.info(
            "Closed out %s: %s slips, revenue %.2f%s",
            row.day,
            row.total_slips,
            row.total_revenue,
            "" if synced else " (queued for sync)",
        )
        return row

    def get_month(self, year: int, month: int) -> MonthlySummary:
        """Return one row per calendar day with month totals and averages."""
        days_in_month = calendar.monthrange(year, month)[1]
        start = date(year, month, 1)
        end = date(year, month, days_in_month)
        by_day = {row.day: row for row in self.repository.list_between(start, end)}
        return _aggregate_month(year, month, days_in_month, by_day)


def _empty_day(day: date) -> DailyStats:
    return DailyStats(
        day=day,
        total_slips=0,
        total_revenue=0.0,
        total_payouts=0.0,
        total_discounts=0.0,
        shop_revenue=0.0,
        walk_out_count=0,
    )


def _aggregate_month(
    year: int, month: int, days_in_month: int, by_day: dict[date, DailyStats]
) -> MonthlySummary:
    daily = []
    for offset in range(days_in_month):
        day = date(year, month, offset + 1)
        daily.append(by_day.get(day) or _empty_day(day))

    days_reported = len(by_day)
    divisor = max(days_reported, 1)
    total_revenue = sum(entry.total_revenue for entry in daily)
    total_slips = sum(entry.total_slips for entry in daily)
    return MonthlySummary(
        year=year,
        month=month,
        daily=daily,
        days_reported=days_reported,
        total_slips=total_slips,
        total_revenue=total_revenue,
        total_payouts=sum(entry.total_payouts for entry in daily),
        total_discounts=sum(entry.total_discounts for entry in daily),
        shop_revenue=sum(entry.shop_revenue for entry in daily),
        walk_out_count=sum(entry.walk_out_count for entry in daily),
        avg_revenue=total_revenue / divisor,
        avg_slips=total_slips / divisor,
    )


def business_date(now: datetime, timezone_name: str) -> date:
    """Return the calendar date of ``now`` in the business timezone."""
    return now.astimezone(ZoneInfo(timezone_name)).date()


def day_bounds(day: date, timezone_name: str) -> tuple[datetime, datetime]:
    """Return the UTC start and end of a business day."""
    tz = ZoneInfo(timezone_name)
    start = datetime(day.year, day.month, day.day, tzinfo=tz)
    return start.astimezone(UTC), (start + timedelta(days=1)).astimezone(UTC)
