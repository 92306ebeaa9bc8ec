"""Session countdowns, the attendance sweep and background loops."""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from uuid import UUID

from spa_operations.domain.models import Session, SessionStatus
from spa_operations.domain.stats import WorkingHours
from spa_operations.services.stats import calculate_working_hours
from spa_operations.services.store import Store

logger = logging.getLogger(__name__)

WARNING_THRESHOLD_SECONDS = 300


def format_countdown(seconds: int) -> str:
    """Format seconds as ``MM:SS``."""
    seconds = max(0, seconds)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def is_warning(seconds: int) -> bool:
    """True during the last five minutes of a session."""
    return seconds <= WARNING_THRESHOLD_SECONDS


def remaining_seconds(session: Session, now: datetime) -> int:
    """Seconds left for ``session``; the full duration until it starts."""
    total = session.service.duration * 60
    if session.session_start_time is None:
        return total
    elapsed = int((now - session.session_start_time).total_seconds())
    return max(0, total - elapsed)


class SessionTimer:
    """Countdown for one session that completes it when time runs out."""

    def __init__(
        self,
        session: Session,
        on_complete: Callable[[UUID], object],
        now: datetime,
    ) -> None:
        self.session_id = session.id
        self.remaining = remaining_seconds(session, now)
        self._session = session
        self._on_complete = on_complete
        self._fired = False

    @property
    def running(self) -> bool:
        return (
            self._session.status is SessionStatus.IN_PROGRESS
            and not self._session.is_in_prep_phase
        )

    @property
    def display(self) -> str:
        return format_countdown(self.remaining)

    @property
    def warning(self) -> bool:
        return is_warning(self.remaining)

    def tick(self) -> int:
        """Advance by one second and return the remaining time."""
        self.remaining = max(0, self.remaining - 1)
        self._maybe_complete()
        return self.remaining

    def advance_to(self, now: datetime) -> int:
        """Resynchronize with the wall clock."""
        self.remaining = remaining_seconds(self._session, now)
        self._maybe_complete()
        return self.remaining

    def _maybe_complete(self) -> None:
        if self.remaining > 0 or self._fired or not self.running:
            return
        self._fired = True
        logger.info("Session %s reached zero, completing", self.session_id)
        self._on_complete(self.session_id)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class AttendanceTracker:
    """Periodic sweep over the roster and running sessions.

    Each sweep refreshes working hours for every therapist on the roster and
    advances the countdown of every in-progress session, completing those
    that have expired when auto-completion is enabled.
    """

    def __init__(
        self,
        store: Store,
        complete_session: Callable[[UUID], object],
        *,
        on_error: Callable[[BaseException], object] | None = None,
        auto_complete: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._complete_session = complete_session
        self._on_error = on_error
        self._auto_complete = auto_complete
        self._clock = clock
        self._timers: dict[UUID, SessionTimer] = {}
        self.working_hours: dict[UUID, WorkingHours] = {}

    def timer_for(self, session_id: UUID) -> SessionTimer | None:
        return self._timers.get(session_id)

    def sweep(self) -> None:
        """Run one pass. Failures are logged and never raised."""
        now = self._clock()
        try:
            self._refresh_working_hours(now)
            self._advance_sessions(now)
        except Exception as exc:
            if self._on_error is None:
                logger.exception("Attendance sweep failed")
            else:
                self._on_error(exc)

    def _refresh_working_hours(self, now: datetime) -> None:
        hours = {}
        for therapist in self._store.state.roster:
            worked = calculate_working_hours(
                therapist.check_in_time, therapist.departure_time, now
            )
            if worked is not None:
                hours[therapist.id] = worked
        self.working_hours = hours

    def _advance_sessions(self, now: datetime) -> None:
        running = {
            session.id: session
            for session in self._store.state.sessions
            if session.status is SessionStatus.IN_PROGRESS
        }
        for session_id in list(self._timers):
            if session_id not in running:
                del self._timers[session_id]
        for session_id, session in running.items():
            timer = self._timers.get(session_id)
            if timer is None:
                timer = SessionTimer(session, self._on_timer_expired, now)
                self._timers[session_id] = timer
            timer.advance_to(now)

    def _on_timer_expired(self, session_id: UUID) -> None:
        if not self._auto_complete:
            logger.info("Session %s expired; auto-completion disabled", session_id)
            return
        try:
            self._complete_session(session_id)
        except Exception as exc:
            if self._on_error is None:
                logger.exception("Auto-completion of %s failed", session_id)
            else:
                self._on_error(exc)


class PeriodicTask:
    """Runs a blocking callable on a fixed interval in a worker thread."""

    def __init__(
        self, name: str, interval_seconds: float, func: Callable[[], object]
    ) -> None:
        self.name = name
        self.interval_seconds = interval_seconds
        self._func = func
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> None:
        try:
            await asyncio.to_thread(self._func)
        except Exception:
            logger.exception("Periodic task %s failed", self.name)

    async def _run(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            logger.warning("Periodic task %s already running", self.name)
            return
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.info("Started %s every %.0fs", self.name, self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stopped %s", self.name)
