"""Conversion between domain models and database rows.

Rows use the snake_case column names of the hosted tables. Timestamps are
written as ISO-8601 strings and parsed back into aware datetimes.
"""

from datetime import UTC, date, datetime
from uuid import UUID, uuid5

from spa_operations.domain.models import (
    AttendanceRecord,
    Expense,
    ExpenseType,
    Room,
    RoomStatus,
    RoomType,
    RosterEntry,
    Service,
    ServiceCategory,
    Session,
    SessionStatus,
    Therapist,
    TherapistStatus,
    WalkOut,
    WalkOutReason,
)
from spa_operations.domain.stats import DailyStats

Row = dict[str, object]


def to_iso(value: datetime | None) -> str | None:
    """Serialize a datetime for storage."""
    return value.isoformat() if value else None


def parse_datetime(raw: object) -> datetime | None:
    """Parse a stored timestamp, assuming UTC when no offset is present."""
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, str) and raw:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _uuid(raw: object) -> UUID | None:
    if raw is None or raw == "":
        return None
    return raw if isinstance(raw, UUID) else UUID(str(raw))


def _uuids(raw: object) -> tuple[UUID, ...]:
    if not isinstance(raw, list | tuple):
        return ()
    return tuple(UUID(str(value)) for value in raw)


def therapist_from_row(row: Row) -> Therapist:
    return Therapist(
        id=UUID(str(row["id"])),
        name=str(row["name"]),
        status=TherapistStatus(row.get("status") or TherapistStatus.INACTIVE),
        total_earnings=float(row.get("total_earnings") or 0.0),
        total_sessions=int(row.get("total_sessions") or 0),
        check_in_time=parse_datetime(row.get("check_in_time")),
        departure_time=parse_datetime(row.get("departure_time")),
        current_session_id=_uuid(row.get("current_session_id")),
    )


def therapist_to_row(therapist: Therapist) -> Row:
    return {
        "id": str(therapist.id),
        "name": therapist.name,
        "status": therapist.status.value,
        "total_earnings": therapist.total_earnings,
        "total_sessions": therapist.total_sessions,
        "check_in_time": to_iso(therapist.check_in_time),
        "departure_time": to_iso(therapist.departure_time),
        "current_session_id": (
            str(therapist.current_session_id) if therapist.current_session_id else None
        ),
    }


def service_to_row(service: Service) -> Row:
    return {
        "id": str(service.id),
        "name": service.name,
        "category": service.category.value,
        "room_type": service.room_type.value,
        "duration": service.duration,
        "price": service.price,
        "lady_payout": service.lady_payout,
        "shop_revenue": service.shop_revenue,
        "description": service.description,
    }


def service_from_row(row: Row) -> Service:
    return Service(
        id=UUID(str(row["id"])),
        name=str(row.get("name") or row.get("description") or ""),
        category=ServiceCategory(row["category"]),
        room_type=RoomType(row["room_type"]),
        duration=int(row["duration"]),
        price=float(row["price"]),
        lady_payout=float(row["lady_payout"]),
        shop_revenue=float(row["shop_revenue"]),
        description=str(row.get("description") or ""),
    )


def room_from_row(row: Row) -> Room:
    return Room(
        id=UUID(str(row["id"])),
        name=str(row["name"]),
        type=RoomType(row["type"]),
        status=RoomStatus(row.get("status") or RoomStatus.AVAILABLE),
    )


def room_to_row(room: Room) -> Row:
    return {
        "id": str(room.id),
        "name": room.name,
        "type": room.type.value,
        "status": room.status.value,
    }


def session_to_row(session: Session) -> Row:
    return {
        "id": str(session.id),
        "therapist_ids": [str(therapist_id) for therapist_id in session.therapist_ids],
        "service_id": str(session.service.id),
        "room_id": str(session.room_id),
        "status": session.status.value,
        "discount": session.discount,
        "total_price": session.total_price,
        "start_time": to_iso(session.start_time),
        "end_time": to_iso(session.end_time),
        "prep_start_time": to_iso(session.prep_start_time),
        "session_start_time": to_iso(session.session_start_time),
        "is_in_prep_phase": session.is_in_prep_phase,
        "actual_end_time": to_iso(session.actual_end_time),
        "actual_duration": session.actual_duration,
    }


def session_from_row(row: Row, services: dict[UUID, Service]) -> Session | None:
    """Build a session, or None when its service is unknown."""
    service = services.get(UUID(str(row["service_id"])))
    if service is None:
        return None
    actual_duration = row.get("actual_duration")
    return Session(
        id=UUID(str(row["id"])),
        therapist_ids=_uuids(row.get("therapist_ids")),
        service=service,
        room_id=UUID(str(row["room_id"])),
        status=SessionStatus(row.get("status") or SessionStatus.SCHEDULED),
        discount=float(row.get("discount") or 0.0),
        total_price=float(row.get("total_price") or 0.0),
        start_time=parse_datetime(row.get("start_time")),
        end_time=parse_datetime(row.get("end_time")),
        prep_start_time=parse_datetime(row.get("prep_start_time")),
        session_start_time=parse_datetime(row.get("session_start_time")),
        is_in_prep_phase=bool(row.get("is_in_prep_phase")),
        actual_end_time=parse_datetime(row.get("actual_end_time")),
        actual_duration=int(actual_duration) if actual_duration is not None else None,
    )


def walk_out_to_row(walk_out: WalkOut) -> Row:
    return {
        "id": str(walk_out.id),
        "reason": walk_out.reason.value,
        "timestamp": to_iso(walk_out.timestamp),
        "count": walk_out.count,
        "service_id": str(walk_out.service.id) if walk_out.service else None,
        "therapist_ids": [str(therapist_id) for therapist_id in walk_out.therapist_ids],
        "total_amount": walk_out.total_amount,
        "session_id": str(walk_out.session_id) if walk_out.session_id else None,
    }


def walk_out_from_row(row: Row, services: dict[UUID, Service]) -> WalkOut:
    service_id = _uuid(row.get("service_id"))
    count = row.get("count")
    return WalkOut(
        id=UUID(str(row["id"])),
        reason=WalkOutReason(row["reason"]),
        timestamp=parse_datetime(row.get("timestamp")) or datetime.now(tz=UTC),
        count=int(count) if count is not None else None,
        service=services.get(service_id) if service_id else None,
        therapist_ids=_uuids(row.get("therapist_ids")),
        total_amount=float(row.get("total_amount") or 0.0),
        session_id=_uuid(row.get("session_id")),
    )


def expense_to_row(expense: Expense) -> Row:
    return {
        "id": str(expense.id),
        "therapist_id": str(expense.therapist_id),
        "expense_type": expense.type.value,
        "amount": expense.amount,
        "description": expense.description or None,
        "date": expense.created_at.date().isoformat() if expense.created_at else None,
        "created_at": to_iso(expense.created_at),
    }


def expense_from_row(row: Row) -> Expense:
    return Expense(
        id=UUID(str(row["id"])),
        therapist_id=UUID(str(row["therapist_id"])),
        amount=float(row["amount"]),
        type=ExpenseType(row.get("expense_type") or ExpenseType.OTHER),
        description=str(row.get("description") or ""),
        created_at=parse_datetime(row.get("created_at")),
    )


def daily_stats_to_row(stats: DailyStats) -> Row:
    return {
        "date": stats.day.isoformat(),
        "total_slips": stats.total_slips,
        "total_revenue": stats.total_revenue,
        "total_payouts": stats.total_payouts,
        "total_discounts": stats.total_discounts,
        "shop_revenue": stats.shop_revenue,
        "walk_out_count": stats.walk_out_count,
        "completed_sessions": stats.completed_sessions,
    }


def daily_stats_from_row(row: Row) -> DailyStats:
    return DailyStats(
        day=date.fromisoformat(str(row["date"])[:10]),
        total_slips=int(row.get("total_slips") or 0),
        total_revenue=float(row.get("total_revenue") or 0.0),
        total_payouts=float(row.get("total_payouts") or 0.0),
        total_discounts=float(row.get("total_discounts") or 0.0),
        shop_revenue=float(row.get("shop_revenue") or 0.0),
        walk_out_count=int(row.get("walk_out_count") or 0),
        completed_sessions=int(row.get("completed_sessions") or 0),
    )


_ROSTER_NAMESPACE = UUID("6f1c0d4e-5b7a-4c39-9a51-2a7f3c8e9b10")


def roster_row_id(therapist_id: UUID, day: date) -> UUID:
    """Stable row id so that roster writes for the same day are idempotent."""
    return uuid5(_ROSTER_NAMESPACE, f"{therapist_id}:{day.isoformat()}")


def roster_entry_to_row(entry: RosterEntry) -> Row:
    return {
        "id": str(roster_row_id(entry.therapist_id, entry.day)),
        "therapist_id": str(entry.therapist_id),
        "date": entry.day.isoformat(),
        "status": entry.status.value,
        "total_earnings": entry.total_earnings,
        "total_sessions": entry.total_sessions,
        "current_session_id": (
            str(entry.current_session_id) if entry.current_session_id else None
        ),
    }


def roster_entry_from_row(row: Row) -> RosterEntry:
    return RosterEntry(
        therapist_id=UUID(str(row["therapist_id"])),
        day=date.fromisoformat(str(row["date"])[:10]),
        status=TherapistStatus(row.get("status") or TherapistStatus.INACTIVE),
        total_earnings=float(row.get("total_earnings") or 0.0),
        total_sessions=int(row.get("total_sessions") or 0),
        current_session_id=_uuid(row.get("current_session_id")),
    )


def attendance_to_row(record: AttendanceRecord) -> Row:
    return {
        "therapist_id": str(record.therapist_id),
        "name": record.name,
        "date": record.day.isoformat(),
        "check_in_time": to_iso(record.check_in_time),
        "departure_time": to_iso(record.departure_time),
        "working_minutes": record.working_minutes,
    }


def attendance_from_row(row: Row) -> AttendanceRecord | None:
    check_in_time = parse_datetime(row.get("check_in_time"))
    if check_in_time is None:
        return None
    working_minutes = row.get("working_minutes")
    return AttendanceRecord(
        therapist_id=UUID(str(row["therapist_id"])),
        name=str(row.get("name") or ""),
        day=date.fromisoformat(str(row["date"])),
        check_in_time=check_in_time,
        departure_time=parse_datetime(row.get("departure_time")),
        working_minutes=int(working_minutes) if working_minutes is not None else None,
    )
