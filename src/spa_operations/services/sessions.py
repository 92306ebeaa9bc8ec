"""Booking validation and the session lifecycle."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID, uuid4

from spa_operations.domain.models import (
    Room,
    RoomStatus,
    Service,
    Session,
    SessionStatus,
    Therapist,
    TherapistStatus,
)
from spa_operations.domain.records import session_from_row, session_to_row
from spa_operations.domain.state import Action, ActionType, AppState
from spa_operations.errors import BusinessRuleError, NotFoundError, ValidationError
from spa_operations.services.local_store import LocalStore, read_through
from spa_operations.services.outbox import IntentOperation, Outbox, RemoteIntent
from spa_operations.services.retry import RetryPolicy
from spa_operations.services.roster import RosterService
from spa_operations.services.rooms import RoomService
from spa_operations.services.stats import business_date, day_bounds
from spa_operations.services.store import Store
from spa_operations.services.timers import (
    format_countdown,
    is_warning,
    remaining_seconds,
)

logger = logging.getLogger(__name__)

SESSIONS_KEY = "sessions"


class SessionRepository(Protocol):
    """Persistence interface for sessions."""

    def list_sessions(
        self, start: datetime, end: datetime, services: dict[UUID, Service]
    ) -> list[Session]:
        """Return sessions starting in ``[start, end)`` ordered by start time."""


@dataclass(frozen=True)
class BookingRequest:
    """What the front desk picked for a new session."""

    service_id: UUID
    therapist_ids: tuple[UUID, ...]
    room_id: UUID
    discount: float = 0.0


@dataclass(frozen=True)
class CompletionSummary:
    session: Session
    actual_duration: int
    early: bool
    already_completed: bool = False


@dataclass(frozen=True)
class TimerReadout:
    session_id: UUID
    remaining_seconds: int
    display: str
    warning: bool
    in_prep: bool


def _find_service(state: AppState, service_id: UUID) -> Service:
    service = next((s for s in state.services if s.id == service_id), None)
    if service is None:
        raise NotFoundError("Service", service_id)
    return service


def _find_room(state: AppState, room_id: UUID) -> Room:
    room = next((r for r in state.rooms if r.id == room_id), None)
    if room is None:
        raise NotFoundError("Room", room_id)
    return room


def _roster_members(
    state: AppState, therapist_ids: tuple[UUID, ...]
) -> list[Therapist]:
    roster = {therapist.id: therapist for therapist in state.roster}
    members = []
    for therapist_id in therapist_ids:
        therapist = roster.get(therapist_id)
        if therapist is None:
            raise NotFoundError("Therapist on roster", therapist_id)
        members.append(therapist)
    return members


def _check_pricing(
    service: Service, therapist_ids: tuple[UUID, ...], discount: float
) -> None:
    if len(set(therapist_ids)) != len(therapist_ids):
        raise ValidationError("A therapist can only be booked once per session")
    required = service.category.therapist_count
    if len(therapist_ids) != required:
        raise ValidationError(
            f"{service.category} services need {required} therapist(s), "
            f"got {len(therapist_ids)}"
        )
    if discount < 0 or discount > service.price:
        raise ValidationError(f"Discount must be between 0 and {service.price:g}")


def validate_booking(
    state: AppState, request: BookingRequest
) -> tuple[Service, Room]:
    """Check a booking against the current state; return its service and room."""
    service = _find_service(state, request.service_id)
    _check_pricing(service, request.therapist_ids, request.discount)
    for therapist in _roster_members(state, request.therapist_ids):
        if therapist.status is not TherapistStatus.AVAILABLE:
            raise BusinessRuleError(f"{therapist.name} is not available")
    room = _find_room(state, request.room_id)
    if room.type != service.room_type:
        raise ValidationError(
            f"{service.name} needs a {service.room_type} room, "
            f"{room.name} is {room.type}"
        )
    held = any(
        s.room_id == room.id and s.status.is_active for s in state.sessions
    )
    if room.status is not RoomStatus.AVAILABLE or held:
        raise BusinessRuleError(f"Room {room.name} is not available")
    return service, room


def session_intent(session: Session, operation: IntentOperation) -> RemoteIntent:
    return RemoteIntent(
        table="sessions",
        operation=operation,
        record_id=str(session.id),
        payload=session_to_row(session),
    )


@dataclass
class SessionService:
    """Starts, times, completes and corrects sessions."""

    repository: SessionRepository
    store: Store
    outbox: Outbox
    local_store: LocalStore
    roster_service: RosterService
    room_service: RoomService
    timezone_name: str = "Asia/Bangkok"
    retry_policy: RetryPolicy | None = None

    def get(self, session_id: UUID) -> Session:
        session = next(
            (s for s in self.store.state.sessions if s.id == session_id), None
        )
        if session is None:
            raise NotFoundError("Session", session_id)
        return session

    def list_sessions(self, status: SessionStatus | None = None) -> list[Session]:
        sessions = self.store.state.sessions
        if status is None:
            return list(sessions)
        return [session for session in sessions if session.status is status]

    def load_today(self) -> list[Session]:
        """Merge today's stored sessions into the state."""
        day = business_date(self.store.now(), self.timezone_name)
        start, end = day_bounds(day, self.timezone_name)
        services = {service.id: service for service in self.store.state.services}
        sessions = read_through(
            lambda: self.repository.list_sessions(start, end, services),
            self.local_store,
            f"{SESSIONS_KEY}:{day.isoformat()}",
            session_to_row,
            lambda row: session_from_row(row, services),
            self.retry_policy,
        )
        self.store.dispatch(Action(ActionType.LOAD_SESSIONS, {"sessions": sessions}))
        return list(self.store.state.sessions)

    def start_session(self, request: BookingRequest) -> Session:
        """Book a session; it starts in the preparation phase."""
        service, room = validate_booking(self.store.state, request)
        session = Session(
            id=uuid4(),
            therapist_ids=request.therapist_ids,
            service=service,
            room_id=room.id,
            discount=request.discount,
            total_price=max(0.0, service.price - request.discount),
        )
        self.store.dispatch(
            Action(
                ActionType.START_SESSION,
                {"session": session, "at": self.store.now()},
            )
        )
        started = self.get(session.id)
        self.outbox.submit(session_intent(started, IntentOperation.INSERT))
        self._sync_therapists(started)
        logger.info(
            "Session %s booked: %s in %s", started.id, service.name, room.name
        )
        return started

    def start_timer(self, session_id: UUID) -> Session:
        """End the preparation phase and start the countdown."""
        session = self.get(session_id)
        if session.status is not SessionStatus.SCHEDULED:
            raise BusinessRuleError(f"Session is {session.status}, not scheduled")
        self.store.dispatch(
            Action(
                ActionType.START_SESSION_TIMER,
                {"session_id": session_id, "at": self.store.now()},
            )
        )
        running = self.get(session_id)
        self.outbox.submit(session_intent(running, IntentOperation.UPDATE))
        self.room_service.mark_occupied(running.room_id, running.id)
        return running

    def complete_session(self, session_id: UUID) -> CompletionSummary:
        """Complete a session; completing it again returns the same summary.

        The timer sweep and a manual completion may race, so the status check
        and the dispatch happen under the store lock.
        """
        with self.store.lock:
            session = self.get(session_id)
            if session.status is SessionStatus.COMPLETED:
                return self._summary(session, already_completed=True)
            if not session.status.is_active:
                raise BusinessRuleError(
                    f"Cannot complete a {session.status} session"
                )
            self.store.dispatch(
                Action(
                    ActionType.COMPLETE_SESSION,
                    {"session_id": session_id, "at": self.store.now()},
                )
            )
            completed = self.get(session_id)
        self.outbox.submit(session_intent(completed, IntentOperation.UPDATE))
        self.room_service.mark_available(completed.room_id)
        self._sync_therapists(completed)
        summary = self._summary(completed)
        logger.info(
            "Session %s completed after %s min%s",
            session_id,
            summary.actual_duration,
            " (early)" if summary.early else "",
        )
        return summary

    def _summary(
        self, session: Session, *, already_completed: bool = False
    ) -> CompletionSummary:
        duration = session.actual_duration or 0
        return CompletionSummary(
            session=session,
            actual_duration=duration,
            early=duration < session.service.duration,
            already_completed=already_completed,
        )

    def cancel_session(self, session_id: UUID, *, no_show: bool = False) -> Session:
        session = self.get(session_id)
        if not session.status.is_active:
            raise BusinessRuleError(f"Cannot cancel a {session.status} session")
        status = SessionStatus.NO_SHOW if no_show else SessionStatus.CANCELLED
        self.store.dispatch(
            Action(
                ActionType.CANCEL_SESSION,
                {"session_id": session_id, "status": status},
            )
        )
        cancelled = self.get(session_id)
        self.outbox.submit(session_intent(cancelled, IntentOperation.UPDATE))
        if session.status is SessionStatus.IN_PROGRESS:
            self.room_service.mark_available(session.room_id)
        self._sync_therapists(cancelled)
        return cancelled

    def manual_add_session(  # noqa: PLR0913
        self,
        service_id: UUID,
        therapist_ids: tuple[UUID, ...],
        room_id: UUID,
        start_time: datetime,
        *,
        discount: float = 0.0,
        end_time: datetime | None = None,
    ) -> Session:
        """Record a session that already took place; it counts as completed."""
        state = self.store.state
        service = _find_service(state, service_id)
        _check_pricing(service, therapist_ids, discount)
        _roster_members(state, therapist_ids)
        room = _find_room(state, room_id)
        end_time = end_time or start_time + timedelta(minutes=service.duration)
        if end_time < start_time:
            raise ValidationError("End time must not be before start time")
        duration = int((end_time - start_time).total_seconds() // 60)
        session = Session(
            id=uuid4(),
            therapist_ids=therapist_ids,
            service=service,
            room_id=room.id,
            status=SessionStatus.COMPLETED,
            discount=discount,
            total_price=max(0.0, service.price - discount),
            start_time=start_time,
            end_time=end_time,
            session_start_time=start_time,
            actual_end_time=end_time,
            actual_duration=duration,
        )
        self.store.dispatch(
            Action(ActionType.MANUAL_ADD_SESSION, {"session": session})
        )
        self.outbox.submit(session_intent(session, IntentOperation.INSERT))
        self._sync_therapists(session)
        return session

    def update_session(
        self,
        session_id: UUID,
        *,
        discount: float | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> Session:
        """Correct a session's discount or times."""
        session = self.get(session_id)
        updates: dict[str, object] = {}
        if discount is not None:
            _check_pricing(session.service, session.therapist_ids, discount)
            updates["discount"] = discount
            updates["total_price"] = max(0.0, session.service.price - discount)
        if start_time is not None:
            updates["start_time"] = start_time
        if end_time is not None:
            updates["end_time"] = end_time
        if not updates:
            return session
        self.store.dispatch(
            Action(
                ActionType.UPDATE_SESSION,
                {"session_id": session_id, "updates": updates},
            )
        )
        updated = self.get(session_id)
        self.outbox.submit(session_intent(updated, IntentOperation.UPDATE))
        return updated

    def timer(self, session_id: UUID) -> TimerReadout:
        session = self.get(session_id)
        remaining = remaining_seconds(session, self.store.now())
        if not session.status.is_active:
            remaining = 0
        return TimerReadout(
            session_id=session.id,
            remaining_seconds=remaining,
            display=format_countdown(remaining),
            warning=is_warning(remaining),
            in_prep=session.is_in_prep_phase,
        )

    def _sync_therapists(self, session: Session) -> None:
        on_roster = {therapist.id for therapist in self.store.state.roster}
        for therapist_id in session.therapist_ids:
            if therapist_id in on_roster:
                self.roster_service.sync_therapist(therapist_id)
