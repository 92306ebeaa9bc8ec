"""Tests for stats aggregation and the closing reports."""

from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest

from spa_operations.domain.models import (
    Expense,
    ExpenseType,
    SessionStatus,
    Therapist,
    TherapistStatus,
    WalkOut,
    WalkOutReason,
)
from spa_operations.domain.state import Action, ActionType
from spa_operations.domain.stats import DailyStats
from spa_operations.services.outbox import IntentOperation, Outbox
from spa_operations.services.stats import (
    StatsService,
    billable_sessions,
    business_date,
    calculate_working_hours,
    compute_closing_stats,
    compute_dashboard_stats,
    count_walk_outs,
    day_bounds,
)
from spa_operations.services.store import Store
from tests.conftest import (
    START,
    InMemoryDailyStatsRepository,
    RecordingTableWriter,
    make_service,
    make_session,
)


def _walk_out(count: int | None) -> WalkOut:
    return WalkOut(
        id=uuid4(), reason=WalkOutReason.NO_ROOMS, timestamp=START, count=count
    )


def _therapist_with_expenses(*amounts: float, **kwargs: object) -> Therapist:
    therapist_id = uuid4()
    expenses = tuple(
        Expense(
            id=uuid4(),
            therapist_id=therapist_id,
            amount=amount,
            type=ExpenseType.LUBE,
        )
        for amount in amounts
    )
    return Therapist(id=therapist_id, name="Am", expenses=expenses, **kwargs)


def test_discount_reduces_revenue_and_shop_share_but_not_payout() -> None:
    service = make_service(price=1000, lady_payout=400, shop_revenue=600)
    session = make_session(service, discount=200)

    stats = compute_dashboard_stats([session], [], [])

    assert session.total_price == 800
    assert stats.total_revenue == 800
    assert stats.total_payouts == 400
    assert stats.total_discounts == 200
    assert stats.shop_revenue == 400
    assert stats.total_slips == 1


def test_shop_revenue_never_negative() -> None:
    service = make_service(price=1000, lady_payout=400, shop_revenue=600)
    sessions = [make_session(service, discount=900), make_session(service)]

    stats = compute_dashboard_stats(sessions, [], [])

    # 600 - 900 clamps to 0 before summation
    assert stats.shop_revenue == 600
    assert stats.total_payouts == 800
    assert stats.total_revenue == 100 + 1000


def test_expenses_are_added_to_shop_revenue() -> None:
    service = make_service(price=1000, lady_payout=400, shop_revenue=600)
    roster = [_therapist_with_expenses(50, 150), _therapist_with_expenses(100)]

    stats = compute_dashboard_stats([make_session(service)], roster, [])

    assert stats.total_expenses == 300
    assert stats.shop_revenue == 900


def test_walk_out_count_sums_counts_defaulting_to_one() -> None:
    walk_outs = [_walk_out(1), _walk_out(2), _walk_out(None)]

    assert count_walk_outs(walk_outs) == 4
    assert compute_dashboard_stats([], [], walk_outs).walk_out_count == 4


def test_empty_day_is_all_zero() -> None:
    stats = compute_dashboard_stats([], [], [])

    assert stats.total_slips == 0
    assert stats.total_revenue == 0
    assert stats.shop_revenue == 0
    assert stats.walk_out_count == 0


def test_billable_sessions_skip_cancelled_and_no_show() -> None:
    service = make_service()
    sessions = [
        make_session(service, status=SessionStatus.COMPLETED),
        make_session(service, status=SessionStatus.IN_PROGRESS),
        make_session(service, status=SessionStatus.CANCELLED),
        make_session(service, status=SessionStatus.NO_SHOW),
    ]

    assert len(billable_sessions(sessions)) == 2


def test_working_hours_from_check_in_to_departure_or_now() -> None:
    check_in = START
    now = START + timedelta(hours=2, minutes=5, seconds=59)

    running = calculate_working_hours(check_in, None, now)
    departed = calculate_working_hours(check_in, START + timedelta(minutes=45), now)

    assert running is not None
    assert (running.hours, running.minutes, running.formatted) == (2, 5, "2h 5m")
    assert departed is not None
    assert departed.formatted == "45m"
    assert calculate_working_hours(None, None, now) is None


def test_closing_stats_payout_breakdown() -> None:
    service = make_service(price=1000, lady_payout=400, shop_revenue=600)
    available = _therapist_with_expenses(
        100,
        status=TherapistStatus.AVAILABLE,
        total_earnings=800,
        total_sessions=2,
        check_in_time=START,
    )
    departed = _therapist_with_expenses(
        status=TherapistStatus.DEPARTED, total_earnings=400, total_sessions=1
    )
    sessions = [
        make_session(service, status=SessionStatus.COMPLETED),
        make_session(service, status=SessionStatus.COMPLETED, discount=100),
        make_session(service, status=SessionStatus.IN_PROGRESS),
    ]

    closing = compute_closing_stats(
        sessions, [available, departed], [], START + timedelta(hours=3)
    )

    assert closing.completed_sessions == 2
    assert closing.gross_shop_revenue == 600 + 500 + 600
    assert closing.net_shop_revenue == 1700 + 100
    assert closing.total_all_payouts == 700 + 400
    assert closing.remaining_payouts == 700
    summary = closing.therapists[0]
    assert summary.net_payout == 700
    assert summary.working_hours is not None
    assert summary.working_hours.total_minutes == 180


def test_business_date_uses_local_timezone() -> None:
    late_evening_utc = datetime(2026, 3, 10, 18, 30, tzinfo=UTC)

    assert business_date(late_evening_utc, "Asia/Bangkok") == date(2026, 3, 11)
    start, end = day_bounds(date(2026, 3, 11), "Asia/Bangkok")
    assert start == datetime(2026, 3, 10, 17, 0, tzinfo=UTC)
    assert end - start == timedelta(days=1)


def test_stats_service_ignores_cancelled_sessions(
    store: Store, stats_service: StatsService
) -> None:
    service = make_service(price=1000, lady_payout=400, shop_revenue=600)
    store.dispatch(
        Action(
            ActionType.LOAD_SESSIONS,
            {
                "sessions": [
                    make_session(service, status=SessionStatus.COMPLETED),
                    make_session(service, status=SessionStatus.CANCELLED),
                ]
            },
        )
    )

    stats = stats_service.dashboard()

    assert stats.total_slips == 1
    assert stats.total_revenue == 1000


def _one_completed_session(store: Store) -> None:
    service = make_service(price=1000, lady_payout=400, shop_revenue=600)
    store.dispatch(
        Action(
            ActionType.LOAD_SESSIONS,
            {"sessions": [make_session(service, status=SessionStatus.COMPLETED)]},
        )
    )
    store.dispatch(Action(ActionType.ADD_WALK_OUT, {"walk_out": _walk_out(3)}))


def test_close_out_day_upserts_totals_on_date(
    store: Store, stats_service: StatsService, writer: RecordingTableWriter
) -> None:
    _one_completed_session(store)

    row = stats_service.close_out_day()

    assert row.day == date(2026, 3, 10)
    assert row.total_revenue == 1000
    assert row.walk_out_count == 3
    assert row.completed_sessions == 1
    [intent] = writer.applied
    assert intent.table == "daily_stats"
    assert intent.operation is IntentOperation.UPSERT
    assert intent.on_conflict == "date"
    assert intent.payload["date"] == "2026-03-10"
    assert intent.payload["total_revenue"] == 1000


def test_close_out_day_while_database_is_down_queues_totals(
    store: Store,
    stats_service: StatsService,
    outbox: Outbox,
    writer: RecordingTableWriter,
) -> None:
    _one_completed_session(store)
    writer.failing = True

    row = stats_service.close_out_day()

    assert row.total_revenue == 1000
    [pending] = outbox.pending()
    assert pending.table == "daily_stats"
    writer.failing = False
    assert outbox.flush().applied == 1
    assert writer.tables() == [("daily_stats", "upsert")]


def test_monthly_summary_fills_missing_days_and_averages_reported_days(
    stats_service: StatsService,
) -> None:
    repository = stats_service.repository
    assert isinstance(repository, InMemoryDailyStatsRepository)
    for day, revenue, slips in [(1, 3000.0, 3), (15, 5000.0, 5)]:
        repository.add(
            DailyStats(
                day=date(2026, 2, day),
                total_slips=slips,
                total_revenue=revenue,
                total_payouts=revenue * 0.4,
                total_discounts=0.0,
                shop_revenue=revenue * 0.6,
                walk_out_count=1,
            )
        )
    repository.add(
        DailyStats(
            day=date(2026, 3, 1),
            total_slips=9,
            total_revenue=9000.0,
            total_payouts=0.0,
            total_discounts=0.0,
            shop_revenue=0.0,
            walk_out_count=0,
        )
    )

    summary = stats_service.get_month(2026, 2)

    assert len(summary.daily) == 28
    assert summary.daily[1].total_revenue == 0
    assert summary.days_reported == 2
    assert summary.total_revenue == 8000
    assert summary.total_slips == 8
    assert summary.walk_out_count == 2
    assert summary.avg_revenue == pytest.approx(4000)
    assert summary.avg_slips == pytest.approx(4)


def test_monthly_summary_without_rows(stats_service: StatsService) -> None:
    summary = stats_service.get_month(2026, 4)

    assert len(summary.daily) == 30
    assert summary.days_reported == 0
    assert summary.avg_revenue == 0
