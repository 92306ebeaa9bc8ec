"""Supabase repository for therapist expenses."""

from dataclasses import dataclass
from datetime import date

from supabase import Client

from spa_operations.domain.models import Expense
from spa_operations.domain.records import expense_from_row
from spa_operations.services.roster import ExpenseRepository


@dataclass
class SupabaseExpenseRepository(ExpenseRepository):
    """Supabase implementation for expenses."""

    client: Client

    def list_expenses(self, day: date) -> list[Expense]:
        """Return expenses recorded on a day, oldest first."""
        response = (
            self.client.table("expenses")
            .select("id, therapist_id, expense_type, amount, description, created_at")
            .eq("date", day.isoformat())
            .order("created_at", desc=False)
            .execute()
        )
        return [expense_from_row(row) for row in response.data or []]
