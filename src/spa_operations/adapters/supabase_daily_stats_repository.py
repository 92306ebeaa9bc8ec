"""Supabase repository for closed-out days."""

from dataclasses import dataclass
from datetime import date

from supabase import Client

from spa_operations.domain.records import daily_stats_from_row
from spa_operations.domain.stats import DailyStats
from spa_operations.services.stats import DailyStatsRepository


@dataclass
class SupabaseDailyStatsRepository(DailyStatsRepository):
    """Supabase implementation for daily stats."""

    client: Client

    def list_between(self, start: date, end: date) -> list[DailyStats]:
        """Return rows between two dates inclusive, ordered by date."""
        response = (
            self.client.table("daily_stats")
            .select("*")
            .gte("date", start.isoformat())
            .lte("date", end.isoformat())
            .order("date", desc=False)
            .execute()
        )
        return [daily_stats_from_row(row) for row in response.data or []]
