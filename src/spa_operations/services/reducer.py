"""Pure reducer for the application state.

``reduce`` never mutates its input: every handler returns a new ``AppState``
built with ``dataclasses.replace``. Timestamps travel in the action payload
under ``"at"`` so that reductions are deterministic.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import UUID

from spa_operations.domain.models import (
    Expense,
    Room,
    RoomStatus,
    Service,
    Session,
    SessionStatus,
    Therapist,
    TherapistStatus,
    WalkOut,
)
from spa_operations.domain.state import Action, ActionType, AppState, Phase

logger = logging.getLogger(__name__)

Handler = Callable[[AppState, dict[str, object]], AppState]


def reduce(state: AppState, action: Action) -> AppState:
    """Return the state that results from applying ``action``."""
    handler = _HANDLERS.get(action.type)
    if handler is None:
        logger.warning("No reducer for action %s", action.type)
        return state
    return handler(state, action.payload)


def individual_payout(session: Session) -> float:
    """Split a session's fixed payout evenly between its therapists."""
    count = len(session.therapist_ids)
    return session.service.lady_payout / count if count else 0.0


def _at(payload: dict[str, object]) -> datetime:
    at = payload.get("at")
    return at if isinstance(at, datetime) else datetime.now(tz=UTC)


def _update_roster(
    state: AppState, therapist_id: object, update: Callable[[Therapist], Therapist]
) -> AppState:
    if not any(t.id == therapist_id for t in state.roster):
        return state
    roster = tuple(
        update(therapist) if therapist.id == therapist_id else therapist
        for therapist in state.roster
    )
    return replace(state, roster=roster)


def _update_session(
    state: AppState, session_id: object, update: Callable[[Session], Session]
) -> AppState:
    sessions = tuple(
        update(session) if session.id == session_id else session
        for session in state.sessions
    )
    return replace(state, sessions=sessions)


def _find_session(state: AppState, session_id: object) -> Session | None:
    return next((s for s in state.sessions if s.id == session_id), None)


def _set_rooms(
    state: AppState, room_id: UUID, status: RoomStatus, session_id: UUID | None
) -> AppState:
    rooms = tuple(
        replace(room, status=status, current_session_id=session_id)
        if room.id == room_id
        else room
        for room in state.rooms
    )
    return replace(state, rooms=rooms)


def _release(state: AppState, session: Session) -> AppState:
    """Free the room and therapists bound to ``session``."""
    state = _set_rooms(state, session.room_id, RoomStatus.AVAILABLE, None)
    roster = tuple(
        replace(t, status=TherapistStatus.AVAILABLE, current_session_id=None)
        if t.id in session.therapist_ids and t.current_session_id == session.id
        else t
        for t in state.roster
    )
    return replace(state, roster=roster)


def _load_data(state: AppState, payload: dict[str, object]) -> AppState:
    therapists = payload.get("therapists", state.therapists)
    services = payload.get("services", state.services)
    rooms = payload.get("rooms", state.rooms)
    occupied = {
        room.id: room for room in state.rooms if room.current_session_id is not None
    }
    merged_rooms = tuple(
        replace(
            room,
            status=RoomStatus.OCCUPIED,
            current_session_id=occupied[room.id].current_session_id,
        )
        if room.id in occupied
        else room
        for room in rooms
    )
    return replace(
        state,
        therapists=tuple(therapists),
        services=tuple(services),
        rooms=merged_rooms,
    )


def _load_roster(state: AppState, payload: dict[str, object]) -> AppState:
    roster = payload.get("roster", ())
    return replace(state, roster=tuple(roster))


def _load_sessions(state: AppState, payload: dict[str, object]) -> AppState:
    loaded: list[Session] = list(payload.get("sessions", ()))
    loaded_ids = {session.id for session in loaded}
    kept = [s for s in state.sessions if s.id not in loaded_ids]
    merged = kept + loaded
    merged.sort(key=lambda s: s.start_time or datetime.min.replace(tzinfo=UTC))
    active_by_room = {
        s.room_id: s.id for s in merged if s.status is SessionStatus.IN_PROGRESS
    }
    rooms = tuple(
        replace(
            room,
            status=RoomStatus.OCCUPIED
            if room.id in active_by_room
            else RoomStatus.AVAILABLE,
            current_session_id=active_by_room.get(room.id),
        )
        for room in state.rooms
    )
    return replace(state, sessions=tuple(merged), rooms=rooms)


def _load_walk_outs(state: AppState, payload: dict[str, object]) -> AppState:
    return replace(state, walk_outs=tuple(payload.get("walk_outs", ())))


def _set_phase(state: AppState, payload: dict[str, object]) -> AppState:
    return replace(state, phase=Phase(payload["phase"]))


def _start_day(state: AppState, _payload: dict[str, object]) -> AppState:
    return replace(state, phase=Phase.DAILY_OPERATIONS)


def _close_out_day(state: AppState, _payload: dict[str, object]) -> AppState:
    return replace(state, phase=Phase.CLOSING_OUT)


def _reset_day(state: AppState, _payload: dict[str, object]) -> AppState:
    return AppState(
        therapists=state.therapists,
        services=state.services,
        rooms=tuple(
            replace(room, status=RoomStatus.AVAILABLE, current_session_id=None)
            for room in state.rooms
        ),
    )


def _add_to_roster(state: AppState, payload: dict[str, object]) -> AppState:
    therapist_id = payload["therapist_id"]
    master = next((t for t in state.therapists if t.id == therapist_id), None)
    if master is None or any(t.id == therapist_id for t in state.roster):
        return state
    added = replace(
        master,
        status=TherapistStatus.INACTIVE,
        total_earnings=0.0,
        total_sessions=0,
        expenses=(),
        check_in_time=None,
        departure_time=None,
        current_session_id=None,
    )
    return replace(state, roster=(*state.roster, added))


def _remove_from_roster(state: AppState, payload: dict[str, object]) -> AppState:
    therapist_id = payload["therapist_id"]
    return replace(
        state, roster=tuple(t for t in state.roster if t.id != therapist_id)
    )


def _clear_roster(state: AppState, _payload: dict[str, object]) -> AppState:
    return replace(state, roster=())


def _check_in(state: AppState, payload: dict[str, object]) -> AppState:
    at = _at(payload)
    return _update_roster(
        state,
        payload["therapist_id"],
        lambda t: replace(
            t, status=TherapistStatus.AVAILABLE, check_in_time=at, departure_time=None
        ),
    )


def _depart(state: AppState, payload: dict[str, object]) -> AppState:
    at = _at(payload)
    return _update_roster(
        state,
        payload["therapist_id"],
        lambda t: replace(
            t,
            status=TherapistStatus.DEPARTED,
            departure_time=at,
            current_session_id=None,
        ),
    )


def _update_therapist_status(state: AppState, payload: dict[str, object]) -> AppState:
    status = TherapistStatus(payload["status"])
    session_id = payload.get("current_session_id")
    return _update_roster(
        state,
        payload["therapist_id"],
        lambda t: replace(t, status=status, current_session_id=session_id),
    )


def _update_therapist_stats(state: AppState, payload: dict[str, object]) -> AppState:
    earnings = float(payload["earnings"])
    sessions = int(payload["sessions"])
    return _update_roster(
        state,
        payload["therapist_id"],
        lambda t: replace(t, total_earnings=earnings, total_sessions=sessions),
    )


def _add_expense(state: AppState, payload: dict[str, object]) -> AppState:
    expense: Expense = payload["expense"]
    return _update_roster(
        state,
        expense.therapist_id,
        lambda t: replace(t, expenses=(*t.expenses, expense)),
    )


def _remove_expense(state: AppState, payload: dict[str, object]) -> AppState:
    expense_id = payload["expense_id"]
    return _update_roster(
        state,
        payload["therapist_id"],
        lambda t: replace(
            t, expenses=tuple(e for e in t.expenses if e.id != expense_id)
        ),
    )


def _start_session(state: AppState, payload: dict[str, object]) -> AppState:
    session: Session = payload["session"]
    if not session.therapist_ids or _find_session(state, session.id):
        return state
    at = _at(payload)
    started = replace(
        session,
        status=SessionStatus.SCHEDULED,
        start_time=at,
        end_time=at + _minutes(session.service),
        prep_start_time=at,
        session_start_time=None,
        is_in_prep_phase=True,
    )
    roster = tuple(
        replace(t, status=TherapistStatus.IN_SESSION, current_session_id=session.id)
        if t.id in session.therapist_ids
        else t
        for t in state.roster
    )
    return replace(state, sessions=(*state.sessions, started), roster=roster)


def _start_session_timer(state: AppState, payload: dict[str, object]) -> AppState:
    session = _find_session(state, payload["session_id"])
    if session is None or session.status is not SessionStatus.SCHEDULED:
        return state
    at = _at(payload)
    state = _update_session(
        state,
        session.id,
        lambda s: replace(
            s,
            status=SessionStatus.IN_PROGRESS,
            start_time=at,
            session_start_time=at,
            end_time=at + _minutes(s.service),
            is_in_prep_phase=False,
        ),
    )
    return _set_rooms(state, session.room_id, RoomStatus.OCCUPIED, session.id)


def _complete_session(state: AppState, payload: dict[str, object]) -> AppState:
    session = _find_session(state, payload["session_id"])
    if session is None or not session.status.is_active:
        return state
    at = _at(payload)
    started = session.session_start_time or session.start_time or at
    duration = max(0, int((at - started).total_seconds() // 60))
    state = _update_session(
        state,
        session.id,
        lambda s: replace(
            s,
            status=SessionStatus.COMPLETED,
            is_in_prep_phase=False,
            actual_end_time=at,
            actual_duration=duration,
        ),
    )
    return _release(_credit(state, session), session)


def _cancel_session(state: AppState, payload: dict[str, object]) -> AppState:
    session = _find_session(state, payload["session_id"])
    if session is None or not session.status.is_active:
        return state
    status = SessionStatus(payload.get("status", SessionStatus.CANCELLED))
    state = _update_session(
        state,
        session.id,
        lambda s: replace(s, status=status, is_in_prep_phase=False),
    )
    return _release(state, session)


def _manual_add_session(state: AppState, payload: dict[str, object]) -> AppState:
    session: Session = payload["session"]
    if _find_session(state, session.id):
        return state
    state = replace(state, sessions=(*state.sessions, session))
    if session.status is not SessionStatus.COMPLETED:
        return state
    return _credit(state, session)


def _credit(state: AppState, session: Session) -> AppState:
    payout = individual_payout(session)
    roster = tuple(
        replace(
            t,
            total_earnings=t.total_earnings + payout,
            total_sessions=t.total_sessions + 1,
        )
        if t.id in session.therapist_ids
        else t
        for t in state.roster
    )
    return replace(state, roster=roster)


def _update_session_details(state: AppState, payload: dict[str, object]) -> AppState:
    updates = dict(payload.get("updates", {}))
    return _update_session(
        state, payload["session_id"], lambda s: replace(s, **updates)
    )


def _add_walk_out(state: AppState, payload: dict[str, object]) -> AppState:
    walk_out: WalkOut = payload["walk_out"]
    return replace(state, walk_outs=(*state.walk_outs, walk_out))


def _minutes(service: Service) -> timedelta:
    return timedelta(minutes=service.duration)


def rooms_for(state: AppState, service: Service) -> list[Room]:
    """Return rooms compatible with ``service`` that are free right now."""
    return [
        room
        for room in state.rooms
        if room.type == service.room_type and room.status is RoomStatus.AVAILABLE
    ]


_HANDLERS: dict[ActionType, Handler] = {
    ActionType.LOAD_DATA: _load_data,
    ActionType.LOAD_ROSTER: _load_roster,
    ActionType.LOAD_SESSIONS: _load_sessions,
    ActionType.LOAD_WALK_OUTS: _load_walk_outs,
    ActionType.SET_PHASE: _set_phase,
    ActionType.START_DAY: _start_day,
    ActionType.CLOSE_OUT_DAY: _close_out_day,
    ActionType.RESET_DAY: _reset_day,
    ActionType.ADD_TO_ROSTER: _add_to_roster,
    ActionType.REMOVE_FROM_ROSTER: _remove_from_roster,
    ActionType.CLEAR_ROSTER: _clear_roster,
    ActionType.CHECK_IN_THERAPIST: _check_in,
    ActionType.DEPART_THERAPIST: _depart,
    ActionType.UPDATE_THERAPIST_STATUS: _update_therapist_status,
    ActionType.UPDATE_THERAPIST_STATS: _update_therapist_stats,
    ActionType.ADD_EXPENSE: _add_expense,
    ActionType.REMOVE_EXPENSE: _remove_expense,
    ActionType.START_SESSION: _start_session,
    ActionType.START_SESSION_TIMER: _start_session_timer,
    ActionType.COMPLETE_SESSION: _complete_session,
    ActionType.CANCEL_SESSION: _cancel_session,
    ActionType.MANUAL_ADD_SESSION: _manual_add_session,
    ActionType.UPDATE_SESSION: _update_session_details,
    ActionType.ADD_WALK_OUT: _add_walk_out,
}
