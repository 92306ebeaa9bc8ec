"""Supabase repository for the service catalog."""

from dataclasses import dataclass

from supabase import Client

from spa_operations.domain.models import Service
from spa_operations.domain.records import service_from_row
from spa_operations.services.roster import ServiceRepository


@dataclass
class SupabaseServiceRepository(ServiceRepository):
    """Supabase implementation for services."""

    client: Client

    def list_services(self) -> list[Service]:
        """Return all services ordered by category and price."""
        response = (
            self.client.table("services")
            .select(
                "id, category, room_type, duration, price, lady_payout, "
                "shop_revenue, description"
            )
            .order("category", desc=False)
            .order("price", desc=False)
            .execute()
        )
        return [service_from_row(row) for row in response.data or []]
