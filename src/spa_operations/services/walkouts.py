"""Walk-out logging."""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID, uuid4

from spa_operations.domain.models import Service, WalkOut, WalkOutReason
from spa_operations.domain.records import walk_out_from_row, walk_out_to_row
from spa_operations.domain.state import Action, ActionType
from spa_operations.errors import NotFoundError, ValidationError
from spa_operations.services.local_store import LocalStore, read_through
from spa_operations.services.outbox import IntentOperation, Outbox, RemoteIntent
from spa_operations.services.retry import RetryPolicy
from spa_operations.services.stats import business_date, count_walk_outs, day_bounds
from spa_operations.services.store import Store

logger = logging.getLogger(__name__)

WALK_OUTS_KEY = "walk_outs"


class WalkOutRepository(Protocol):
    """Persistence interface for walk-outs."""

    def list_walk_outs(
        self, start: datetime, end: datetime, services: dict[UUID, Service]
    ) -> list[WalkOut]:
        """Return walk-outs in ``[start, end)`` newest first."""


@dataclass
class WalkOutService:
    """Records customers who left without a session."""

    repository: WalkOutRepository
    store: Store
    outbox: Outbox
    local_store: LocalStore
    timezone_name: str = "Asia/Bangkok"
    retry_policy: RetryPolicy | None = None

    def _services(self) -> dict[UUID, Service]:
        return {service.id: service for service in self.store.state.services}

    def record(  # noqa: PLR0913
        self,
        reason: WalkOutReason,
        *,
        count: int | None = None,
        service_id: UUID | None = None,
        therapist_ids: tuple[UUID, ...] = (),
        total_amount: float | None = None,
    ) -> WalkOut:
        """Log a walk-out; ``count`` records several people at once."""
        if count is not None and count < 1:
            raise ValidationError("Walk-out count must be at least 1")
        service = None
        if service_id is not None:
            service = self._services().get(service_id)
            if service is None:
                raise NotFoundError("Service", service_id)
        if total_amount is None:
            total_amount = service.price * (count or 1) if service else 0.0
        walk_out = WalkOut(
            id=uuid4(),
            reason=reason,
            timestamp=self.store.now(),
            count=count,
            service=service,
            therapist_ids=therapist_ids,
            total_amount=total_amount,
        )
        self.store.dispatch(Action(ActionType.ADD_WALK_OUT, {"walk_out": walk_out}))
        self.outbox.submit(
            RemoteIntent(
                table="walk_outs",
                operation=IntentOperation.INSERT,
                record_id=str(walk_out.id),
                payload=walk_out_to_row(walk_out),
            )
        )
        logger.info("Walk-out recorded: %s x%s", reason, count or 1)
        return walk_out

    def list_today(self) -> list[WalkOut]:
        """Load today's walk-outs, newest first, with local fallback."""
        day = business_date(self.store.now(), self.timezone_name)
        start, end = day_bounds(day, self.timezone_name)
        services = self._services()
        walk_outs = read_through(
            lambda: self.repository.list_walk_outs(start, end, services),
            self.local_store,
            f"{WALK_OUTS_KEY}:{day.isoformat()}",
            walk_out_to_row,
            lambda row: walk_out_from_row(row, services),
            self.retry_policy,
        )
        walk_outs = sorted(walk_outs, key=lambda w: w.timestamp, reverse=True)
        self.store.dispatch(
            Action(ActionType.LOAD_WALK_OUTS, {"walk_outs": walk_outs})
        )
        return walk_outs

    def total_count(self) -> int:
        return count_walk_outs(self.store.state.walk_outs)

    def by_reason(self) -> dict[str, int]:
        counts: Counter[str] = Counter()
        for walk_out in self.store.state.walk_outs:
            counts[walk_out.reason.value] += walk_out.count or 1
        return dict(counts)
