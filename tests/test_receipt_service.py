"""Tests for receipt rendering and printing."""

import asyncio
from datetime import UTC, datetime
from uuid import UUID, uuid4

import httpx
import pytest

from spa_operations.domain.models import (
    ExpenseType,
    Service,
    ServiceCategory,
    Therapist,
)
from spa_operations.errors import ExternalServiceError, NetworkError, NotFoundError
from spa_operations.services.attendance import AttendanceService
from spa_operations.services.receipts import (
    ReceiptService,
    print_copies,
    round_up_to_five,
)
from spa_operations.services.roster import RosterService
from spa_operations.services.sessions import BookingRequest, SessionService
from spa_operations.services.store import Store
from tests.conftest import FakeClock, FakePrintNodeClient, room_named


@pytest.mark.parametrize(
    ("minute", "second", "expected"),
    [(0, 0, (10, 0)), (2, 30, (10, 5)), (5, 59, (10, 5)), (58, 0, (11, 0))],
)
def test_round_up_to_five(minute: int, second: int, expected: tuple[int, int]) -> None:
    rounded = round_up_to_five(datetime(2026, 3, 10, 10, minute, second, tzinfo=UTC))

    assert (rounded.hour, rounded.minute, rounded.second) == (*expected, 0)


def test_copies_by_category() -> None:
    assert print_copies(ServiceCategory.SINGLE) == 2
    assert print_copies(ServiceCategory.DOUBLE) == 4
    assert print_copies(ServiceCategory.COUPLE) == 2


def _book(
    store: Store,
    session_service: SessionService,
    service: Service,
    therapist: Therapist,
) -> UUID:
    session = session_service.start_session(
        BookingRequest(
            service_id=service.id,
            therapist_ids=(therapist.id,),
            room_id=room_named(store, "Room 1").id,
            discount=200,
        )
    )
    return session.id


def test_session_receipt_text(  # noqa: PLR0913
    store: Store,
    clock: FakeClock,
    session_service: SessionService,
    single_service: Service,
    on_duty: list[Therapist],
) -> None:
    clock.advance(minutes=2)
    session_id = _book(store, session_service, single_service, on_duty[0])
    receipts = ReceiptService(store=store)

    text = receipts.render_session_receipt(session_service.get(session_id))

    assert "Start: 10:05  End: 11:05" in text
    assert "Room: Room 1 (Shower)" in text
    assert "Therapist(s): Am" in text
    assert "Service: Thai Massage 60 (60 min)" in text
    assert "-200 THB" in text
    assert "800 THB" in text


def test_departure_summary_shows_net_payout(  # noqa: PLR0913
    store: Store,
    clock: FakeClock,
    roster_service: RosterService,
    attendance_service: AttendanceService,
    on_duty: list[Therapist],
) -> None:
    therapist_id = on_duty[1].id
    roster_service.update_stats(therapist_id, 1200, 3)
    roster_service.add_expense(therapist_id, ExpenseType.LUBE, 50)
    clock.advance(hours=8, minutes=20)
    attendance_service.depart(therapist_id)

    text = ReceiptService(store=store).render_departure_summary(
        roster_service.get_on_roster(therapist_id)
    )

    assert "Therapist: Bee" in text
    assert "Check-in: 10:00" in text
    assert "Check-out: 18:20" in text
    assert "Worked: 8h 20m" in text
    assert "-50 THB" in text
    assert text.splitlines()[-1].startswith("FINAL PAYOUT")
    assert text.splitlines()[-1].endswith("1,150 THB")


def test_print_session_receipt_sends_copies(
    store: Store,
    session_service: SessionService,
    single_service: Service,
    on_duty: list[Therapist],
) -> None:
    session_id = _book(store, session_service, single_service, on_duty[0])
    client = FakePrintNodeClient()
    receipts = ReceiptService(store=store, client=client)

    result = asyncio.run(receipts.print_session_receipt(session_id))

    assert (result.job_id, result.copies) == (1, 2)
    title, content, copies = client.jobs[0]
    assert title == f"Session Receipt - {session_id}"
    assert "TOTAL" in content
    assert copies == 2


def test_printing_errors(store: Store, on_duty: list[Therapist]) -> None:
    class _Unreachable:
        async def submit_job(self, title: str, content: str, copies: int = 1) -> int:
            raise httpx.ConnectError("no route")

    with pytest.raises(ExternalServiceError):
        asyncio.run(ReceiptService(store=store).print_departure_summary(on_duty[0].id))
    with pytest.raises(NetworkError):
        asyncio.run(
            ReceiptService(store=store, client=_Unreachable()).print_departure_summary(
                on_duty[0].id
            )
        )
    with pytest.raises(NotFoundError):
        asyncio.run(
            ReceiptService(
                store=store, client=FakePrintNodeClient()
            ).print_session_receipt(uuid4())
        )
