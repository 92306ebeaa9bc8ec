"""Supabase repository for the master therapist list."""

from dataclasses import dataclass

from supabase import Client

from spa_operations.domain.models import Therapist
from spa_operations.domain.records import therapist_from_row
from spa_operations.services.roster import TherapistRepository


@dataclass
class SupabaseTherapistRepository(TherapistRepository):
    """Supabase implementation for therapists."""

    client: Client

    def list_therapists(self) -> list[Therapist]:
        """Return all therapists ordered by name."""
        response = (
            self.client.table("therapists")
            .select(
                "id, name, status, total_earnings, total_sessions, "
                "check_in_time, departure_time, current_session_id"
            )
            .order("name", desc=False)
            .execute()
        )
        return [therapist_from_row(row) for row in response.data or []]
