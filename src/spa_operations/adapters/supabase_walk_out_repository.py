"""Supabase repository for walk-outs."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from spa_operations.domain.models import Service, WalkOut
from spa_operations.domain.records import walk_out_from_row
from spa_operations.services.walkouts import WalkOutRepository


@dataclass
class SupabaseWalkOutRepository(WalkOutRepository):
    """Supabase implementation for walk-outs."""

    client: Client

    def list_walk_outs(
        self, start: datetime, end: datetime, services: dict[UUID, Service]
    ) -> list[WalkOut]:
        """Return walk-outs in the time range, newest first."""
        response = (
            self.client.table("walk_outs")
            .select("*")
            .gte("timestamp", start.isoformat())
            .lt("timestamp", end.isoformat())
            .order("timestamp", desc=True)
            .execute()
        )
        return [walk_out_from_row(row, services) for row in response.data or []]
