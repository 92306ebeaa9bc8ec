"""Day-to-day dashboard operations: phases, roster, bookings, walk-outs."""

from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from spa_operations.api.auth import get_container, require_dashboard
from spa_operations.api.schemas import (
    BookingCreate,
    CancelRequest,
    ExpenseCreate,
    ManualSessionCreate,
    PhaseChange,
    SessionUpdate,
    StatsCorrection,
    StatusChange,
    UndoRequest,
    WalkOutCreate,
    completion_view,
    session_view,
    state_view,
    therapist_view,
)
from spa_operations.containers import AppContainer
from spa_operations.domain.models import SessionStatus
from spa_operations.services.sessions import BookingRequest

router = APIRouter(prefix="/api", dependencies=[Depends(require_dashboard)])


@router.get("/state")
def get_state(container: AppContainer = Depends(get_container)) -> dict[str, object]:
    """Return the whole day state as the dashboard renders it."""
    return state_view(container.store.state)


@router.post("/day/load")
def load_day(container: AppContainer = Depends(get_container)) -> dict[str, object]:
    """Reload reference data and today's activity from the database."""
    container.day_service.load()
    return state_view(container.store.state)


@router.post("/day/start")
def start_day(container: AppContainer = Depends(get_container)) -> dict[str, str]:
    return {"phase": container.day_service.start().value}


@router.put("/day/phase")
def set_phase(
    body: PhaseChange, container: AppContainer = Depends(get_container)
) -> dict[str, str]:
    return {"phase": container.day_service.set_phase(body.phase).value}


@router.post("/day/close-out")
def close_out_day(
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Enter the closing phase and store today's totals."""
    return {"daily_stats": jsonable_encoder(container.day_service.close_out())}


@router.post("/day/reset")
def reset_day(container: AppContainer = Depends(get_container)) -> dict[str, str]:
    container.day_service.reset()
    return {"phase": container.store.state.phase.value}


@router.get("/roster")
def get_roster(container: AppContainer = Depends(get_container)) -> dict[str, object]:
    return {"roster": [therapist_view(t) for t in container.store.state.roster]}


@router.post("/roster/{therapist_id}")
def add_to_roster(
    therapist_id: UUID, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    therapist = container.roster_service.add_to_roster(therapist_id)
    return {"therapist": therapist_view(therapist)}


@router.delete("/roster/{therapist_id}")
def remove_from_roster(
    therapist_id: UUID, container: AppContainer = Depends(get_container)
) -> dict[str, str]:
    container.roster_service.remove_from_roster(therapist_id)
    return {"status": "ok"}


@router.delete("/roster")
def clear_roster(container: AppContainer = Depends(get_container)) -> dict[str, int]:
    return {"removed": container.roster_service.clear_roster()}


@router.post("/roster/{therapist_id}/check-in")
def check_in(
    therapist_id: UUID, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    therapist = container.attendance_service.check_in(therapist_id)
    return {"therapist": therapist_view(therapist)}


@router.post("/roster/{therapist_id}/depart")
def depart(
    therapist_id: UUID, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    """Mark a therapist as departed; the response carries the day record."""
    record = container.attendance_service.depart(therapist_id)
    therapist = container.roster_service.get_on_roster(therapist_id)
    return {
        "therapist": therapist_view(therapist),
        "attendance": jsonable_encoder(record),
    }


@router.put("/roster/{therapist_id}/status")
def update_status(
    therapist_id: UUID,
    body: StatusChange,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    therapist = container.roster_service.update_status(therapist_id, body.status)
    return {"therapist": therapist_view(therapist)}


@router.put("/roster/{therapist_id}/stats")
def update_stats(
    therapist_id: UUID,
    body: StatsCorrection,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    therapist = container.roster_service.update_stats(
        therapist_id, body.earnings, body.sessions
    )
    return {"therapist": therapist_view(therapist)}


@router.post("/roster/{therapist_id}/expenses")
def add_expense(
    therapist_id: UUID,
    body: ExpenseCreate,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    expense = container.roster_service.add_expense(
        therapist_id, body.type, body.amount, body.description
    )
    return {"expense": jsonable_encoder(expense)}


@router.delete("/roster/{therapist_id}/expenses/{expense_id}")
def remove_expense(
    therapist_id: UUID,
    expense_id: UUID,
    container: AppContainer = Depends(get_container),
) -> dict[str, str]:
    container.roster_service.remove_expense(therapist_id, expense_id)
    return {"status": "ok"}


@router.get("/rooms")
def list_rooms(
    service_id: UUID | None = None, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    """Return all rooms, or the free rooms that fit ``service_id``."""
    if service_id is None:
        return {"rooms": jsonable_encoder(container.store.state.rooms)}
    service = next(
        (s for s in container.store.state.services if s.id == service_id), None
    )
    rooms = container.room_service.available_for(service) if service else []
    return {"rooms": jsonable_encoder(rooms)}


@router.get("/sessions")
def list_sessions(
    status: SessionStatus | None = None,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    sessions = container.session_service.list_sessions(status)
    return {"sessions": [session_view(s) for s in sessions]}


@router.post("/sessions")
def start_session(
    body: BookingCreate, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    """Book a session; it starts in the preparation phase."""
    session = container.session_service.start_session(
        BookingRequest(
            service_id=body.service_id,
            therapist_ids=tuple(body.therapist_ids),
            room_id=body.room_id,
            discount=body.discount,
        )
    )
    return {"session": session_view(session)}


@router.post("/sessions/manual")
def manual_add_session(
    body: ManualSessionCreate, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    session = container.session_service.manual_add_session(
        body.service_id,
        tuple(body.therapist_ids),
        body.room_id,
        body.start_time,
        discount=body.discount,
        end_time=body.end_time,
    )
    return {"session": session_view(session)}


@router.patch("/sessions/{session_id}")
def update_session(
    session_id: UUID,
    body: SessionUpdate,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    session = container.session_service.update_session(
        session_id,
        discount=body.discount,
        start_time=body.start_time,
        end_time=body.end_time,
    )
    return {"session": session_view(session)}


@router.post("/sessions/{session_id}/timer")
def start_timer(
    session_id: UUID, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    session = container.session_service.start_timer(session_id)
    return {"session": session_view(session)}


@router.get("/sessions/{session_id}/timer")
def read_timer(
    session_id: UUID, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    return jsonable_encoder(container.session_service.timer(session_id))


@router.post("/sessions/{session_id}/complete")
def complete_session(
    session_id: UUID, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    summary = container.session_service.complete_session(session_id)
    return completion_view(summary)


@router.post("/sessions/{session_id}/cancel")
def cancel_session(
    session_id: UUID,
    body: CancelRequest | None = None,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    no_show = body.no_show if body else False
    session = container.session_service.cancel_session(session_id, no_show=no_show)
    return {"session": session_view(session)}


@router.get("/walk-outs")
def list_walk_outs(
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    service = container.walk_out_service
    walk_outs = sorted(
        container.store.state.walk_outs, key=lambda w: w.timestamp, reverse=True
    )
    return {
        "walk_outs": jsonable_encoder(walk_outs),
        "total": service.total_count(),
        "by_reason": service.by_reason(),
    }


@router.post("/walk-outs")
def record_walk_out(
    body: WalkOutCreate, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    walk_out = container.walk_out_service.record(
        body.reason,
        count=body.count,
        service_id=body.service_id,
        therapist_ids=tuple(body.therapist_ids),
        total_amount=body.total_amount,
    )
    return {"walk_out": jsonable_encoder(walk_out)}


@router.get("/undo")
def peek_undo(container: AppContainer = Depends(get_container)) -> dict[str, object]:
    item = container.store.peek_undo()
    if item is None:
        return {"available": False}
    return {
        "available": True,
        "description": item.description,
        "modifies_database": item.modifies_database,
        "timestamp": item.timestamp.isoformat(),
    }


@router.post("/undo")
def undo(
    body: UndoRequest | None = None, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    """Revert the latest action; database actions need ``confirmed``."""
    result = container.store.undo(confirmed=body.confirmed if body else False)
    return {
        "status": result.status.value,
        "description": result.description,
        "modifies_database": result.modifies_database,
    }
