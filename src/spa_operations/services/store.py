"""Single owner of the in-memory application state."""

import logging
import threading
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import StrEnum

from spa_operations.domain.state import (
    Action,
    ActionType,
    AppState,
    HistoryEntry,
    UndoStackItem,
)
from spa_operations.services.reducer import reduce

logger = logging.getLogger(__name__)

DEFAULT_UNDO_LIMIT = 10


class UndoStatus(StrEnum):
    """Outcome of an undo request."""

    NOTHING_TO_UNDO = "nothing_to_undo"
    CONFIRMATION_REQUIRED = "confirmation_required"
    APPLIED = "applied"


@dataclass(frozen=True)
class UndoResult:
    """What happened on undo, and which action it concerned."""

    status: UndoStatus
    description: str | None = None
    modifies_database: bool = False


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class Store:
    """Applies actions through the reducer and keeps history and undo records.

    Dispatches are serialized with a lock because request handlers and the
    background timer loops share one store.
    """

    def __init__(
        self,
        state: AppState | None = None,
        *,
        undo_limit: int = DEFAULT_UNDO_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._state = state or AppState()
        self._undo_limit = undo_limit
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def lock(self) -> AbstractContextManager[bool]:
        """Re-entrant lock for read-check-dispatch sequences."""
        return self._lock

    def now(self) -> datetime:
        return self._clock()

    def dispatch(self, action: Action) -> AppState:
        """Apply ``action`` and return the new state.

        An action that leaves the state unchanged is not recorded in history
        or on the undo stack.
        """
        with self._lock:
            previous = self._state
            reduced = reduce(previous, action)
            if reduced == previous:
                logger.debug("Ignored %s: state unchanged", action.type)
                return previous
            if action.type is ActionType.RESET_DAY or not action.undoable:
                self._state = reduced
                return reduced

            timestamp = self._clock()
            item = UndoStackItem(
                action=action,
                timestamp=timestamp,
                description=action.description,
                modifies_database=action.modifies_database,
                snapshot=replace(previous, history=(), undo_stack=()),
            )
            undo_stack = (*previous.undo_stack, item)[-self._undo_limit :]
            history = (
                *previous.history,
                HistoryEntry(action.type, timestamp, action.description),
            )
            self._state = replace(reduced, history=history, undo_stack=undo_stack)
            logger.debug("Dispatched %s", action.type)
            return self._state

    def peek_undo(self) -> UndoStackItem | None:
        stack = self._state.undo_stack
        return stack[-1] if stack else None

    def undo(self, *, confirmed: bool = False) -> UndoResult:
        """Revert the most recent undoable action.

        Actions that were mirrored to the database need ``confirmed=True``;
        the remote copy is not rolled back.
        """
        with self._lock:
            item = self.peek_undo()
            if item is None:
                return UndoResult(UndoStatus.NOTHING_TO_UNDO)
            if item.modifies_database and not confirmed:
                return UndoResult(
                    UndoStatus.CONFIRMATION_REQUIRED,
                    item.description,
                    modifies_database=True,
                )

            entry = HistoryEntry(
                item.action.type, self._clock(), f"Undo: {item.description}"
            )
            self._state = replace(
                item.snapshot,
                history=(*self._state.history, entry),
                undo_stack=self._state.undo_stack[:-1],
            )
            logger.info("Undid %s", item.description)
            return UndoResult(
                UndoStatus.APPLIED,
                item.description,
                modifies_database=item.modifies_database,
            )
