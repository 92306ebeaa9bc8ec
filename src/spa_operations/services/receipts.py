"""Thermal receipts for sessions and therapist departures."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

from spa_operations.adapters.printnode_client import PrintNodeClient
from spa_operations.domain.models import ServiceCategory, Session, Therapist
from spa_operations.errors import ExternalServiceError, NotFoundError, classify_error
from spa_operations.services.stats import calculate_working_hours
from spa_operations.services.store import Store

logger = logging.getLogger(__name__)

RECEIPT_WIDTH = 32
ROUNDING_MINUTES = 5

_COPIES = {
    ServiceCategory.SINGLE: 2,
    ServiceCategory.DOUBLE: 4,
    ServiceCategory.COUPLE: 2,
}


def round_up_to_five(moment: datetime) -> datetime:
    """Round the minute up to the next five-minute mark, dropping seconds."""
    floored = moment.replace(second=0, microsecond=0)
    remainder = floored.minute % ROUNDING_MINUTES
    if remainder == 0:
        return floored
    return floored + timedelta(minutes=ROUNDING_MINUTES - remainder)


def print_copies(category: ServiceCategory) -> int:
    return _COPIES.get(category, 1)


def _money(amount: float) -> str:
    return f"{amount:,.0f} THB"


def _line(label: str, value: str) -> str:
    gap = max(1, RECEIPT_WIDTH - len(label) - len(value))
    return f"{label}{' ' * gap}{value}"


@dataclass(frozen=True)
class PrintResult:
    job_id: int
    copies: int


@dataclass
class ReceiptService:
    """Renders receipts as plain text and sends them to PrintNode."""

    store: Store
    client: PrintNodeClient | None = None
    business_name: str = "Spa Operations"
    timezone_name: str = "Asia/Bangkok"

    def _local(self, moment: datetime) -> datetime:
        return moment.astimezone(ZoneInfo(self.timezone_name))

    def _header(self, title: str) -> list[str]:
        rule = "=" * RECEIPT_WIDTH
        return [
            rule,
            self.business_name.upper().center(RECEIPT_WIDTH),
            title.center(RECEIPT_WIDTH),
            rule,
        ]

    def render_session_receipt(self, session: Session) -> str:
        state = self.store.state
        room = next((r for r in state.rooms if r.id == session.room_id), None)
        names = [t.name for t in state.roster if t.id in session.therapist_ids]
        started = self._local(session.start_time or self.store.now())
        start = round_up_to_five(started)
        end = start + timedelta(minutes=session.service.duration)
        service = session.service
        lines = self._header("Receipt")
        lines += [
            f"Session: {str(session.id)[:8]}",
            f"Date: {started:%Y-%m-%d}",
            f"Start: {start:%H:%M}  End: {end:%H:%M}",
            f"Room: {room.name} ({room.type})" if room else "Room: -",
            f"Therapist(s): {', '.join(names) or '-'}",
            f"Service: {service.name} ({service.duration} min)",
            "-" * RECEIPT_WIDTH,
        ]
        if session.discount > 0:
            lines += [
                _line("Service price", _money(service.price)),
                _line("Discount", f"-{_money(session.discount)}"),
            ]
        lines += [
            _line("TOTAL", _money(session.total_price)),
            _line("Lady payout", _money(service.lady_payout)),
            _line(
                "Shop revenue",
                _money(max(0.0, service.shop_revenue - session.discount)),
            ),
        ]
        return "\n".join(lines) + "\n"

    def render_departure_summary(self, therapist: Therapist) -> str:
        now = self.store.now()
        departed = therapist.departure_time or now
        worked = calculate_working_hours(therapist.check_in_time, departed, now)
        lines = self._header("Daily Summary")
        lines += [
            f"Therapist: {therapist.name}",
            f"Date: {self._local(departed):%Y-%m-%d}",
            "-" * RECEIPT_WIDTH,
        ]
        if therapist.check_in_time is not None:
            lines.append(f"Check-in: {self._local(therapist.check_in_time):%H:%M}")
        lines += [
            f"Check-out: {self._local(departed):%H:%M}",
            f"Worked: {worked.formatted if worked else '0m'}",
            "-" * RECEIPT_WIDTH,
            _line("Sessions", str(therapist.total_sessions)),
            _line("Earnings", _money(therapist.total_earnings)),
        ]
        if therapist.total_expenses > 0:
            lines.append(_line("Expenses", f"-{_money(therapist.total_expenses)}"))
        lines += [
            "=" * RECEIPT_WIDTH,
            _line("FINAL PAYOUT", _money(therapist.net_payout)),
        ]
        return "\n".join(lines) + "\n"

    async def print_session_receipt(self, session_id: UUID) -> PrintResult:
        session = next(
            (s for s in self.store.state.sessions if s.id == session_id), None
        )
        if session is None:
            raise NotFoundError("Session", session_id)
        copies = print_copies(session.service.category)
        return await self._submit(
            f"Session Receipt - {session.id}",
            self.render_session_receipt(session),
            copies,
        )

    async def print_departure_summary(self, therapist_id: UUID) -> PrintResult:
        therapist = next(
            (t for t in self.store.state.roster if t.id == therapist_id), None
        )
        if therapist is None:
            raise NotFoundError("Therapist on roster", therapist_id)
        return await self._submit(
            f"Departure Summary - {therapist.name}",
            self.render_departure_summary(therapist),
            1,
        )

    async def _submit(self, title: str, content: str, copies: int) -> PrintResult:
        if self.client is None:
            raise ExternalServiceError("Printing is not configured", retryable=False)
        try:
            job_id = await self.client.submit_job(title, content, copies)
        except Exception as exc:
            raise classify_error(exc) from exc
        logger.info("Print job %s submitted: %s (%s copies)", job_id, title, copies)
        return PrintResult(job_id=job_id, copies=copies)
