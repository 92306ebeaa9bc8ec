"""Master therapist list, today's roster and therapist expenses."""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Protocol
from uuid import UUID, uuid4

from spa_operations.domain.models import (
    Expense,
    ExpenseType,
    RosterEntry,
    Service,
    Therapist,
    TherapistStatus,
)
from spa_operations.domain.records import (
    expense_from_row,
    expense_to_row,
    roster_entry_from_row,
    roster_entry_to_row,
    roster_row_id,
    service_from_row,
    service_to_row,
    therapist_from_row,
    therapist_to_row,
)
from spa_operations.domain.state import Action, ActionType
from spa_operations.errors import BusinessRuleError, NotFoundError, ValidationError
from spa_operations.services.local_store import LocalStore, read_through
from spa_operations.services.outbox import IntentOperation, Outbox, RemoteIntent
from spa_operations.services.retry import RetryPolicy
from spa_operations.services.stats import business_date
from spa_operations.services.store import Store

logger = logging.getLogger(__name__)

THERAPISTS_KEY = "therapists"
SERVICES_KEY = "services"
ROSTER_KEY = "roster"
EXPENSES_KEY = "expenses"


class TherapistRepository(Protocol):
    """Persistence interface for the master therapist list."""

    def list_therapists(self) -> list[Therapist]:
        """Return all therapists ordered by name."""


class ServiceRepository(Protocol):
    """Persistence interface for the service catalog."""

    def list_services(self) -> list[Service]:
        """Return all services."""


class RosterRepository(Protocol):
    """Persistence interface for daily roster rows."""

    def list_roster(self, day: date) -> list[RosterEntry]:
        """Return roster entries for ``day``."""


class ExpenseRepository(Protocol):
    """Persistence interface for therapist expenses."""

    def list_expenses(self, day: date) -> list[Expense]:
        """Return expenses recorded on ``day`` ordered by creation time."""


def roster_intent(therapist: Therapist, day: date) -> RemoteIntent:
    """Upsert the roster row mirroring ``therapist``'s day totals."""
    entry = RosterEntry(
        therapist_id=therapist.id,
        day=day,
        status=therapist.status,
        total_earnings=therapist.total_earnings,
        total_sessions=therapist.total_sessions,
        current_session_id=therapist.current_session_id,
    )
    row = roster_entry_to_row(entry)
    return RemoteIntent(
        table="daily_rosters",
        operation=IntentOperation.UPSERT,
        record_id=str(row["id"]),
        payload=row,
    )


@dataclass
class RosterService:
    """Builds today's roster and records therapist expenses."""

    therapist_repository: TherapistRepository
    service_repository: ServiceRepository
    roster_repository: RosterRepository
    expense_repository: ExpenseRepository
    store: Store
    outbox: Outbox
    local_store: LocalStore
    timezone_name: str = "Asia/Bangkok"
    retry_policy: RetryPolicy | None = None

    def today(self) -> date:
        return business_date(self.store.now(), self.timezone_name)

    def load_reference_data(self) -> None:
        """Load the master therapist list and the service catalog."""
        therapists = read_through(
            self.therapist_repository.list_therapists,
            self.local_store,
            THERAPISTS_KEY,
            therapist_to_row,
            therapist_from_row,
            self.retry_policy,
        )
        services = read_through(
            self.service_repository.list_services,
            self.local_store,
            SERVICES_KEY,
            service_to_row,
            service_from_row,
            self.retry_policy,
        )
        self.store.dispatch(
            Action(
                ActionType.LOAD_DATA,
                {
                    "therapists": sorted(therapists, key=lambda t: t.name),
                    "services": services,
                },
            )
        )
        logger.info(
            "Loaded %s therapists and %s services", len(therapists), len(services)
        )

    def load_roster(self) -> list[Therapist]:
        """Rebuild today's roster from stored entries and expenses."""
        day = self.today()
        entries = read_through(
            lambda: self.roster_repository.list_roster(day),
            self.local_store,
            f"{ROSTER_KEY}:{day.isoformat()}",
            roster_entry_to_row,
            roster_entry_from_row,
            self.retry_policy,
        )
        expenses = read_through(
            lambda: self.expense_repository.list_expenses(day),
            self.local_store,
            f"{EXPENSES_KEY}:{day.isoformat()}",
            expense_to_row,
            expense_from_row,
            self.retry_policy,
        )
        masters = {t.id: t for t in self.store.state.therapists}
        roster = []
        for entry in entries:
            master = masters.get(entry.therapist_id)
            if master is None:
                logger.warning(
                    "Roster entry for unknown therapist %s", entry.therapist_id
                )
                continue
            roster.append(
                replace(
                    master,
                    status=entry.status,
                    check_in_time=self._same_day(master.check_in_time, day),
                    departure_time=self._same_day(master.departure_time, day),
                    total_earnings=entry.total_earnings,
                    total_sessions=entry.total_sessions,
                    current_session_id=entry.current_session_id,
                    expenses=tuple(
                        e for e in expenses if e.therapist_id == entry.therapist_id
                    ),
                )
            )
        roster.sort(key=lambda t: t.name)
        self.store.dispatch(Action(ActionType.LOAD_ROSTER, {"roster": roster}))
        return roster

    def _same_day(self, moment: datetime | None, day: date) -> datetime | None:
        if moment is None or business_date(moment, self.timezone_name) != day:
            return None
        return moment

    def get_on_roster(self, therapist_id: UUID) -> Therapist:
        therapist = next(
            (t for t in self.store.state.roster if t.id == therapist_id), None
        )
        if therapist is None:
            raise NotFoundError("Therapist on roster", therapist_id)
        return therapist

    def add_to_roster(self, therapist_id: UUID) -> Therapist:
        state = self.store.state
        if not any(t.id == therapist_id for t in state.therapists):
            raise NotFoundError("Therapist", therapist_id)
        if any(t.id == therapist_id for t in state.roster):
            raise BusinessRuleError("Therapist is already on today's roster")
        self.store.dispatch(
            Action(ActionType.ADD_TO_ROSTER, {"therapist_id": therapist_id})
        )
        therapist = self.get_on_roster(therapist_id)
        self.outbox.submit(roster_intent(therapist, self.today()))
        return therapist

    def remove_from_roster(self, therapist_id: UUID) -> None:
        therapist = self.get_on_roster(therapist_id)
        if therapist.status is TherapistStatus.IN_SESSION:
            raise BusinessRuleError("Cannot remove a therapist who is in a session")
        self.store.dispatch(
            Action(ActionType.REMOVE_FROM_ROSTER, {"therapist_id": therapist_id})
        )
        self._delete_entry(therapist_id)

    def clear_roster(self) -> int:
        roster = self.store.state.roster
        if any(t.status is TherapistStatus.IN_SESSION for t in roster):
            raise BusinessRuleError("Cannot clear the roster while sessions run")
        self.store.dispatch(Action(ActionType.CLEAR_ROSTER))
        for therapist in roster:
            self._delete_entry(therapist.id)
        return len(roster)

    def _delete_entry(self, therapist_id: UUID) -> None:
        self.outbox.submit(
            RemoteIntent(
                table="daily_rosters",
                operation=IntentOperation.DELETE,
                record_id=str(roster_row_id(therapist_id, self.today())),
            )
        )

    def sync_therapist(self, therapist_id: UUID) -> bool:
        """Mirror a roster therapist's status and totals to the database."""
        therapist = self.get_on_roster(therapist_id)
        return self.outbox.submit(roster_intent(therapist, self.today()))

    def update_status(
        self, therapist_id: UUID, status: TherapistStatus
    ) -> Therapist:
        current = self.get_on_roster(therapist_id)
        self.store.dispatch(
            Action(
                ActionType.UPDATE_THERAPIST_STATUS,
                {
                    "therapist_id": therapist_id,
                    "status": status,
                    "current_session_id": current.current_session_id
                    if status is TherapistStatus.IN_SESSION
                    else None,
                },
            )
        )
        self.sync_therapist(therapist_id)
        return self.get_on_roster(therapist_id)

    def update_stats(
        self, therapist_id: UUID, earnings: float, sessions: int
    ) -> Therapist:
        """Overwrite a therapist's day totals (manual correction)."""
        self.get_on_roster(therapist_id)
        if earnings < 0 or sessions < 0:
            raise ValidationError("Earnings and session count must not be negative")
        self.store.dispatch(
            Action(
                ActionType.UPDATE_THERAPIST_STATS,
                {
                    "therapist_id": therapist_id,
                    "earnings": earnings,
                    "sessions": sessions,
                },
            )
        )
        self.sync_therapist(therapist_id)
        return self.get_on_roster(therapist_id)

    def add_expense(
        self,
        therapist_id: UUID,
        expense_type: ExpenseType,
        amount: float,
        description: str = "",
    ) -> Expense:
        self.get_on_roster(therapist_id)
        if amount <= 0:
            raise ValidationError("Expense amount must be positive")
        expense = Expense(
            id=uuid4(),
            therapist_id=therapist_id,
            amount=amount,
            type=expense_type,
            description=description,
            created_at=self.store.now(),
        )
        self.store.dispatch(Action(ActionType.ADD_EXPENSE, {"expense": expense}))
        self.outbox.submit(
            RemoteIntent(
                table="expenses",
                operation=IntentOperation.INSERT,
                record_id=str(expense.id),
                payload={
                    **expense_to_row(expense),
                    "date": self.today().isoformat(),
                },
            )
        )
        return expense

    def remove_expense(self, therapist_id: UUID, expense_id: UUID) -> None:
        therapist = self.get_on_roster(therapist_id)
        if not any(expense.id == expense_id for expense in therapist.expenses):
            raise NotFoundError("Expense", expense_id)
        self.store.dispatch(
            Action(
                ActionType.REMOVE_EXPENSE,
                {"therapist_id": therapist_id, "expense_id": expense_id},
            )
        )
        self.outbox.submit(
            RemoteIntent(
                table="expenses",
                operation=IntentOperation.DELETE,
                record_id=str(expense_id),
            )
        )

    def start_day(self) -> None:
        if not self.store.state.roster:
            raise BusinessRuleError(
                "Add at least one therapist before starting the day"
            )
        self.store.dispatch(Action(ActionType.START_DAY))

    def reset_day(self) -> None:
        """Forget today's operational state; reference data is kept.

        Every known therapist is set back to inactive in the database with
        its check-in and departure times cleared.
        """
        state = self.store.state
        therapist_ids = dict.fromkeys(
            [t.id for t in state.therapists] + [t.id for t in state.roster]
        )
        self.store.dispatch(Action(ActionType.RESET_DAY))
        for therapist_id in therapist_ids:
            self.outbox.submit(
                RemoteIntent(
                    table="therapists",
                    operation=IntentOperation.UPDATE,
                    record_id=str(therapist_id),
                    payload={
                        "status": TherapistStatus.INACTIVE.value,
                        "check_in_time": None,
                        "departure_time": None,
                    },
                )
            )
        logger.info("Day reset, %s therapists set to inactive", len(therapist_ids))
