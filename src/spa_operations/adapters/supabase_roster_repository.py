"""Supabase repository for daily roster rows."""

from dataclasses import dataclass
from datetime import date

from supabase import Client

from spa_operations.domain.models import RosterEntry
from spa_operations.domain.records import roster_entry_from_row
from spa_operations.services.roster import RosterRepository


@dataclass
class SupabaseRosterRepository(RosterRepository):
    """Supabase implementation for the daily roster."""

    client: Client

    def list_roster(self, day: date) -> list[RosterEntry]:
        """Return roster entries for a day."""
        response = (
            self.client.table("daily_rosters")
            .select(
                "therapist_id, date, status, total_earnings, total_sessions, "
                "current_session_id"
            )
            .eq("date", day.isoformat())
            .execute()
        )
        return [roster_entry_from_row(row) for row in response.data or []]
