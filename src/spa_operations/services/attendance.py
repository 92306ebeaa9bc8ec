"""Therapist check-in and departure."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from spa_operations.domain.models import AttendanceRecord, Therapist, TherapistStatus
from spa_operations.domain.records import (
    attendance_from_row,
    attendance_to_row,
    to_iso,
)
from spa_operations.domain.state import Action, ActionType
from spa_operations.domain.stats import WorkingHours
from spa_operations.errors import BusinessRuleError
from spa_operations.services.local_store import LocalStore
from spa_operations.services.outbox import IntentOperation, Outbox, RemoteIntent
from spa_operations.services.roster import RosterService
from spa_operations.services.stats import business_date, calculate_working_hours
from spa_operations.services.store import Store

logger = logging.getLogger(__name__)

ATTENDANCE_KEY = "attendance"


@dataclass
class AttendanceService:
    """Records arrivals and departures locally first, then remotely."""

    store: Store
    roster_service: RosterService
    outbox: Outbox
    local_store: LocalStore
    timezone_name: str = "Asia/Bangkok"

    def _key(self, day: date) -> str:
        return f"{ATTENDANCE_KEY}:{day.isoformat()}"

    def records(self, day: date | None = None) -> list[AttendanceRecord]:
        """Return the local attendance records for ``day`` (default today)."""
        day = day or business_date(self.store.now(), self.timezone_name)
        raw = self.local_store.get(self._key(day))
        if not isinstance(raw, list):
            return []
        decoded = (attendance_from_row(row) for row in raw)
        return [record for record in decoded if record is not None]

    def _save(self, record: AttendanceRecord) -> None:
        others = [
            r for r in self.records(record.day) if r.therapist_id != record.therapist_id
        ]
        self.local_store.set(
            self._key(record.day),
            [attendance_to_row(r) for r in [*others, record]],
        )

    def check_in(self, therapist_id: UUID) -> Therapist:
        therapist = self.roster_service.get_on_roster(therapist_id)
        if therapist.status in {TherapistStatus.AVAILABLE, TherapistStatus.IN_SESSION}:
            raise BusinessRuleError(f"{therapist.name} is already checked in")
        now = self.store.now()
        self.store.dispatch(
            Action(
                ActionType.CHECK_IN_THERAPIST,
                {"therapist_id": therapist_id, "at": now},
            )
        )
        self._save(
            AttendanceRecord(
                therapist_id=therapist_id,
                name=therapist.name,
                day=business_date(now, self.timezone_name),
                check_in_time=now,
            )
        )
        self._sync_times(therapist_id, TherapistStatus.AVAILABLE, now, None)
        logger.info("%s checked in", therapist.name)
        return self.roster_service.get_on_roster(therapist_id)

    def depart(self, therapist_id: UUID) -> AttendanceRecord:
        """Mark a therapist as departed and return the day's record."""
        therapist = self.roster_service.get_on_roster(therapist_id)
        if therapist.check_in_time is None:
            raise BusinessRuleError(f"{therapist.name} has not checked in")
        if therapist.status is TherapistStatus.IN_SESSION:
            raise BusinessRuleError(f"{therapist.name} is still in a session")
        if therapist.status is TherapistStatus.DEPARTED:
            raise BusinessRuleError(f"{therapist.name} has already departed")
        now = self.store.now()
        self.store.dispatch(
            Action(
                ActionType.DEPART_THERAPIST,
                {"therapist_id": therapist_id, "at": now},
            )
        )
        worked = calculate_working_hours(therapist.check_in_time, now, now)
        record = AttendanceRecord(
            therapist_id=therapist_id,
            name=therapist.name,
            day=business_date(therapist.check_in_time, self.timezone_name),
            check_in_time=therapist.check_in_time,
            departure_time=now,
            working_minutes=worked.total_minutes if worked else 0,
        )
        self._save(record)
        self._sync_times(
            therapist_id, TherapistStatus.DEPARTED, therapist.check_in_time, now
        )
        logger.info(
            "%s departed after %s, net payout %.2f",
            therapist.name,
            worked.formatted if worked else "0m",
            therapist.net_payout,
        )
        return record

    def _sync_times(
        self,
        therapist_id: UUID,
        status: TherapistStatus,
        check_in_time: datetime,
        departure_time: datetime | None,
    ) -> None:
        self.outbox.submit(
            RemoteIntent(
                table="therapists",
                operation=IntentOperation.UPDATE,
                record_id=str(therapist_id),
                payload={
                    "status": status.value,
                    "check_in_time": to_iso(check_in_time),
                    "departure_time": to_iso(departure_time),
                },
            )
        )
        self.roster_service.sync_therapist(therapist_id)

    def working_hours(self) -> dict[UUID, WorkingHours]:
        """Current working hours for every checked-in therapist."""
        now = self.store.now()
        hours = {}
        for therapist in self.store.state.roster:
            worked = calculate_working_hours(
                therapist.check_in_time, therapist.departure_time, now
            )
            if worked is not None:
                hours[therapist.id] = worked
        return hours

