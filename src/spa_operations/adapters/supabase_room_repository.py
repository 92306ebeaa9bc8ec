"""Supabase repository for rooms."""

from dataclasses import dataclass

from supabase import Client

from spa_operations.domain.models import Room
from spa_operations.domain.records import room_from_row
from spa_operations.services.rooms import RoomRepository


@dataclass
class SupabaseRoomRepository(RoomRepository):
    """Supabase implementation for rooms."""

    client: Client

    def list_rooms(self) -> list[Room]:
        """Return all rooms ordered by name."""
        response = (
            self.client.table("rooms")
            .select("id, name, type, status")
            .order("name", desc=False)
            .execute()
        )
        return [room_from_row(row) for row in response.data or []]
