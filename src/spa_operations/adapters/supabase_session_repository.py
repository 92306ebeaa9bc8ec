"""Supabase repository for sessions."""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from spa_operations.domain.models import Service, Session
from spa_operations.domain.records import session_from_row
from spa_operations.services.sessions import SessionRepository

logger = logging.getLogger(__name__)


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for sessions."""

    client: Client

    def list_sessions(
        self, start: datetime, end: datetime, services: dict[UUID, Service]
    ) -> list[Session]:
        """Return sessions starting in the time range."""
        response = (
            self.client.table("sessions")
            .select("*")
            .gte("start_time", start.isoformat())
            .lt("start_time", end.isoformat())
            .order("start_time", desc=False)
            .execute()
        )
        sessions = []
        for row in response.data or []:
            session = session_from_row(row, services)
            if session is None:
                logger.warning("Skipping session %s with unknown service", row["id"])
                continue
            sessions.append(session)
        return sessions
