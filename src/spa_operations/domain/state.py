"""Application state, actions and undo records."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from spa_operations.domain.models import Room, Service, Session, Therapist, WalkOut


class Phase(StrEnum):
    """Which part of the business day the dashboard is in."""

    ROSTER_SETUP = "roster-setup"
    DAILY_OPERATIONS = "daily-operations"
    CLOSING_OUT = "closing-out"


class ActionType(StrEnum):
    """All state transitions understood by the reducer."""

    LOAD_DATA = "LOAD_DATA"
    LOAD_ROSTER = "LOAD_ROSTER"
    LOAD_SESSIONS = "LOAD_SESSIONS"
    LOAD_WALK_OUTS = "LOAD_WALK_OUTS"
    SET_PHASE = "SET_PHASE"
    START_DAY = "START_DAY"
    CLOSE_OUT_DAY = "CLOSE_OUT_DAY"
    RESET_DAY = "RESET_DAY"
    ADD_TO_ROSTER = "ADD_TO_ROSTER"
    REMOVE_FROM_ROSTER = "REMOVE_FROM_ROSTER"
    CLEAR_ROSTER = "CLEAR_ROSTER"
    CHECK_IN_THERAPIST = "CHECK_IN_THERAPIST"
    DEPART_THERAPIST = "DEPART_THERAPIST"
    UPDATE_THERAPIST_STATUS = "UPDATE_THERAPIST_STATUS"
    UPDATE_THERAPIST_STATS = "UPDATE_THERAPIST_STATS"
    ADD_EXPENSE = "ADD_EXPENSE"
    REMOVE_EXPENSE = "REMOVE_EXPENSE"
    START_SESSION = "START_SESSION"
    START_SESSION_TIMER = "START_SESSION_TIMER"
    COMPLETE_SESSION = "COMPLETE_SESSION"
    CANCEL_SESSION = "CANCEL_SESSION"
    MANUAL_ADD_SESSION = "MANUAL_ADD_SESSION"
    UPDATE_SESSION = "UPDATE_SESSION"
    ADD_WALK_OUT = "ADD_WALK_OUT"


DATABASE_ACTIONS = frozenset(
    {
        ActionType.ADD_TO_ROSTER,
        ActionType.REMOVE_FROM_ROSTER,
        ActionType.CLEAR_ROSTER,
        ActionType.CHECK_IN_THERAPIST,
        ActionType.DEPART_THERAPIST,
        ActionType.UPDATE_THERAPIST_STATUS,
        ActionType.UPDATE_THERAPIST_STATS,
        ActionType.ADD_EXPENSE,
        ActionType.REMOVE_EXPENSE,
        ActionType.START_SESSION,
        ActionType.START_SESSION_TIMER,
        ActionType.COMPLETE_SESSION,
        ActionType.CANCEL_SESSION,
        ActionType.MANUAL_ADD_SESSION,
        ActionType.UPDATE_SESSION,
        ActionType.ADD_WALK_OUT,
    }
)

NON_UNDOABLE_ACTIONS = frozenset(
    {
        ActionType.LOAD_DATA,
        ActionType.LOAD_ROSTER,
        ActionType.LOAD_SESSIONS,
        ActionType.LOAD_WALK_OUTS,
        ActionType.RESET_DAY,
    }
)

_DESCRIPTIONS = {
    ActionType.ADD_TO_ROSTER: "Add therapist to roster",
    ActionType.REMOVE_FROM_ROSTER: "Remove therapist from roster",
    ActionType.CLEAR_ROSTER: "Clear roster",
    ActionType.CHECK_IN_THERAPIST: "Check in therapist",
    ActionType.DEPART_THERAPIST: "Mark therapist as departed",
    ActionType.UPDATE_THERAPIST_STATUS: "Update therapist status",
    ActionType.UPDATE_THERAPIST_STATS: "Update therapist stats",
    ActionType.ADD_EXPENSE: "Add expense",
    ActionType.REMOVE_EXPENSE: "Remove expense",
    ActionType.START_SESSION: "Start session",
    ActionType.START_SESSION_TIMER: "Start session timer",
    ActionType.COMPLETE_SESSION: "Complete session",
    ActionType.CANCEL_SESSION: "Cancel session",
    ActionType.MANUAL_ADD_SESSION: "Add manual session",
    ActionType.UPDATE_SESSION: "Update session details",
    ActionType.ADD_WALK_OUT: "Add walk-out incident",
    ActionType.START_DAY: "Start day",
    ActionType.CLOSE_OUT_DAY: "Close out day",
}


@dataclass(frozen=True)
class Action:
    """A dispatched state change."""

    type: ActionType
    payload: dict[str, object] = field(default_factory=dict)

    @property
    def modifies_database(self) -> bool:
        return self.type in DATABASE_ACTIONS

    @property
    def undoable(self) -> bool:
        return self.type not in NON_UNDOABLE_ACTIONS

    @property
    def description(self) -> str:
        return _DESCRIPTIONS.get(
            self.type, self.type.value.replace("_", " ").lower()
        )


@dataclass(frozen=True)
class HistoryEntry:
    """Human-readable record of a dispatched action."""

    action_type: ActionType
    timestamp: datetime
    description: str


@dataclass(frozen=True)
class AppState:
    """Everything the dashboard knows about the current business day."""

    phase: Phase = Phase.ROSTER_SETUP
    therapists: tuple[Therapist, ...] = ()
    roster: tuple[Therapist, ...] = ()
    rooms: tuple[Room, ...] = ()
    services: tuple[Service, ...] = ()
    sessions: tuple[Session, ...] = ()
    walk_outs: tuple[WalkOut, ...] = ()
    history: tuple[HistoryEntry, ...] = ()
    undo_stack: tuple["UndoStackItem", ...] = ()


@dataclass(frozen=True)
class UndoStackItem:
    """An undoable action with the state it replaced."""

    action: Action
    timestamp: datetime
    description: str
    modifies_database: bool
    snapshot: AppState
