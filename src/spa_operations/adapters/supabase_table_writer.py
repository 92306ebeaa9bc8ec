"""Applies queued remote intents to Supabase tables."""

import logging
from dataclasses import dataclass

from supabase import Client

from spa_operations.services.outbox import IntentOperation, RemoteIntent, TableWriter

logger = logging.getLogger(__name__)


@dataclass
class SupabaseTableWriter(TableWriter):
    """Generic insert, update, upsert and delete by id."""

    client: Client

    def apply(self, intent: RemoteIntent) -> None:
        """Perform the write described by ``intent``."""
        table = self.client.table(intent.table)
        if intent.operation is IntentOperation.INSERT:
            table.insert(intent.payload).execute()
        elif intent.operation is IntentOperation.UPSERT:
            if intent.on_conflict:
                table.upsert(intent.payload, on_conflict=intent.on_conflict).execute()
            else:
                table.upsert(intent.payload).execute()
        elif intent.operation is IntentOperation.UPDATE:
            table.update(intent.payload).eq("id", intent.record_id).execute()
        elif intent.operation is IntentOperation.DELETE:
            table.delete().eq("id", intent.record_id).execute()
        logger.debug(
            "Applied %s on %s %s", intent.operation, intent.table, intent.record_id
        )
