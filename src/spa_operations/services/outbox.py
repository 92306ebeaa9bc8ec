"""Queue of pending remote writes and the worker that replays them.

Local state always changes first. The matching database write is recorded as
a ``RemoteIntent`` and applied best-effort; intents that fail stay queued in
the local store until the sync worker succeeds or gives up on them.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Protocol
from uuid import UUID, uuid4

from spa_operations.domain.records import parse_datetime
from spa_operations.errors import classify_error
from spa_operations.services.local_store import LocalStore

logger = logging.getLogger(__name__)

OUTBOX_KEY = "outbox"
DEFAULT_MAX_ATTEMPTS = 3


class IntentOperation(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class RemoteIntent:
    """A database write waiting to be applied."""

    table: str
    operation: IntentOperation
    record_id: str | None = None
    payload: dict[str, object] = field(default_factory=dict)
    # Upserts match on the primary key unless a unique column is named here
    on_conflict: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    attempts: int = 0
    last_error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": str(self.id),
            "table": self.table,
            "operation": self.operation.value,
            "record_id": self.record_id,
            "payload": self.payload,
            "on_conflict": self.on_conflict,
            "created_at": self.created_at.isoformat(),
            "attempts": self.attempts,
            "last_error": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "RemoteIntent":
        return cls(
            id=UUID(str(data["id"])),
            table=str(data["table"]),
            operation=IntentOperation(data["operation"]),
            record_id=data.get("record_id"),  # type: ignore[arg-type]
            payload=dict(data.get("payload") or {}),  # type: ignore[arg-type]
            on_conflict=data.get("on_conflict"),  # type: ignore[arg-type]
            created_at=parse_datetime(data.get("created_at")) or datetime.now(tz=UTC),
            attempts=int(data.get("attempts") or 0),  # type: ignore[arg-type]
            last_error=data.get("last_error"),  # type: ignore[arg-type]
        )


@dataclass(frozen=True)
class SyncResult:
    """Counts from one pass over the outbox."""

    applied: int = 0
    failed: int = 0
    dropped: int = 0
    pending: int = 0


class TableWriter(Protocol):
    """Applies a single intent to the hosted database."""

    def apply(self, intent: RemoteIntent) -> None:
        """Perform the write or raise."""


class Outbox:
    """Ordered, persisted queue of pending writes."""

    def __init__(
        self,
        writer: TableWriter,
        local_store: LocalStore,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._writer = writer
        self._local_store = local_store
        self.max_attempts = max_attempts
        self.online = True
        self._lock = threading.RLock()
        self._pending = self._restore()

    def _restore(self) -> list[RemoteIntent]:
        raw = self._local_store.get(OUTBOX_KEY)
        if not isinstance(raw, list):
            return []
        return [RemoteIntent.from_dict(item) for item in raw]

    def _persist(self) -> None:
        self._local_store.set(
            OUTBOX_KEY, [intent.to_dict() for intent in self._pending]
        )

    def pending(self) -> list[RemoteIntent]:
        return list(self._pending)

    def submit(self, intent: RemoteIntent) -> bool:
        """Queue ``intent`` and try to apply it right away.

        Returns True when the write reached the database. The intent is only
        applied immediately when nothing older is waiting, so writes to the
        same record keep their order.
        """
        with self._lock:
            backlog = bool(self._pending)
            self._pending.append(intent)
            self._persist()
            if backlog or not self.online:
                logger.info(
                    "Queued %s %s for later sync", intent.operation, intent.table
                )
                return False
            return self._attempt(intent)

    def flush(self) -> SyncResult:
        """Apply pending intents oldest first.

        A failure stops the pass so later writes never overtake earlier ones,
        unless the failing intent was dropped for exceeding its attempts.
        Nothing is attempted while offline, so an outage never uses up
        attempts.
        """
        applied = failed = dropped = 0
        with self._lock:
            if not self.online:
                return SyncResult(pending=len(self._pending))
            for intent in list(self._pending):
                try:
                    self._writer.apply(intent)
                except Exception as exc:
                    if self._record_failure(intent, classify_error(exc).message):
                        dropped += 1
                        continue
                    failed += 1
                    break
                self._remove(intent)
                applied += 1
            return SyncResult(
                applied=applied,
                failed=failed,
                dropped=dropped,
                pending=len(self._pending),
            )

    def _attempt(self, intent: RemoteIntent) -> bool:
        try:
            self._writer.apply(intent)
        except Exception as exc:
            error = classify_error(exc)
            self._record_failure(intent, error.message)
            return False
        self._remove(intent)
        return True

    def _remove(self, intent: RemoteIntent) -> None:
        self._pending = [item for item in self._pending if item.id != intent.id]
        self._persist()

    def _record_failure(self, intent: RemoteIntent, message: str) -> bool:
        """Count a failed attempt; return True if the intent was dropped."""
        failed = replace(intent, attempts=intent.attempts + 1, last_error=message)
        if failed.attempts >= self.max_attempts:
            logger.error(
                "Dropping %s %s %s after %s attempts: %s",
                failed.operation,
                failed.table,
                failed.record_id,
                failed.attempts,
                message,
            )
            self._remove(intent)
            return True
        logger.warning(
            "Sync of %s %s failed (attempt %s/%s): %s",
            failed.operation,
            failed.table,
            failed.attempts,
            self.max_attempts,
            message,
        )
        self._pending = [
            failed if item.id == intent.id else item for item in self._pending
        ]
        self._persist()
        return False


@dataclass(frozen=True)
class SyncStatus:
    online: bool
    pending: int
    last_sync_at: datetime | None
    last_result: SyncResult | None


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class SyncWorker:
    """Replays pending intents in order."""

    def __init__(
        self, outbox: Outbox, *, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._outbox = outbox
        self._clock = clock
        self._last_sync_at: datetime | None = None
        self._last_result: SyncResult | None = None

    def reconcile(self) -> SyncResult:
        """Replay the outbox and remember the outcome; a no-op while offline."""
        if not self._outbox.online:
            pending = len(self._outbox.pending())
            logger.debug("Offline, %s writes waiting for connectivity", pending)
            return SyncResult(pending=pending)
        result = self._outbox.flush()
        self._last_sync_at = self._clock()
        self._last_result = result
        if result.applied or result.failed or result.dropped:
            logger.info(
                "Sync pass: %s applied, %s failed, %s dropped, %s pending",
                result.applied,
                result.failed,
                result.dropped,
                result.pending,
            )
        return result

    def set_online(self, online: bool) -> SyncResult | None:
        """Record connectivity; reconcile immediately when it comes back."""
        was_online = self._outbox.online
        self._outbox.online = online
        if online and not was_online:
            logger.info("Connectivity restored, syncing pending writes")
            return self.reconcile()
        if not online:
            logger.warning("Connectivity lost, queuing writes locally")
        return None

    def status(self) -> SyncStatus:
        return SyncStatus(
            online=self._outbox.online,
            pending=len(self._outbox.pending()),
            last_sync_at=self._last_sync_at,
            last_result=self._last_result,
        )
