"""Business day lifecycle: load, start, close out and reset."""

import logging
from dataclasses import dataclass

from spa_operations.domain.state import Action, ActionType, Phase
from spa_operations.domain.stats import DailyStats
from spa_operations.errors import BusinessRuleError
from spa_operations.services.rooms import RoomService
from spa_operations.services.roster import RosterService
from spa_operations.services.sessions import SessionService
from spa_operations.services.stats import StatsService
from spa_operations.services.store import Store
from spa_operations.services.walkouts import WalkOutService

logger = logging.getLogger(__name__)


@dataclass
class DayService:
    """Moves the dashboard between roster setup, operations and closing."""

    store: Store
    roster_service: RosterService
    room_service: RoomService
    session_service: SessionService
    walk_out_service: WalkOutService
    stats_service: StatsService

    def load(self) -> None:
        """Load reference data first, then today's roster and activity."""
        self.roster_service.load_reference_data()
        self.room_service.list_rooms()
        self.roster_service.load_roster()
        self.session_service.load_today()
        self.walk_out_service.list_today()
        state = self.store.state
        logger.info(
            "Loaded day: %s on roster, %s sessions, %s walk-outs",
            len(state.roster),
            len(state.sessions),
            len(state.walk_outs),
        )

    def start(self) -> Phase:
        self.roster_service.start_day()
        return self.store.state.phase

    def set_phase(self, phase: Phase) -> Phase:
        if phase is Phase.DAILY_OPERATIONS:
            return self.start()
        self.store.dispatch(Action(ActionType.SET_PHASE, {"phase": phase}))
        return self.store.state.phase

    def close_out(self) -> DailyStats:
        """Enter the closing phase and persist today's totals."""
        running = [s for s in self.store.state.sessions if s.status.is_active]
        if running:
            raise BusinessRuleError(
                f"{len(running)} session(s) still running, finish them first"
            )
        self.store.dispatch(Action(ActionType.CLOSE_OUT_DAY))
        return self.stats_service.close_out_day()

    def reset(self) -> None:
        """Clear today's state and free every room."""
        self.roster_service.reset_day()
        self.room_service.reset_all()
