"""Room availability and remote room status."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from spa_operations.domain.models import Room, RoomStatus, Service
from spa_operations.domain.records import room_from_row, room_to_row
from spa_operations.domain.state import Action, ActionType
from spa_operations.errors import NotFoundError
from spa_operations.services.local_store import LocalStore, read_through
from spa_operations.services.outbox import IntentOperation, Outbox, RemoteIntent
from spa_operations.services.reducer import rooms_for
from spa_operations.services.retry import RetryPolicy
from spa_operations.services.store import Store

logger = logging.getLogger(__name__)

ROOMS_KEY = "rooms"


class RoomRepository(Protocol):
    """Persistence interface for rooms."""

    def list_rooms(self) -> list[Room]:
        """Return all rooms ordered by name."""


def room_status_intent(
    room_id: UUID, status: RoomStatus, session_id: UUID | None = None
) -> RemoteIntent:
    return RemoteIntent(
        table="rooms",
        operation=IntentOperation.UPDATE,
        record_id=str(room_id),
        payload={
            "status": status.value,
            "current_session_id": str(session_id) if session_id else None,
        },
    )


@dataclass
class RoomService:
    """Reads rooms with local fallback and mirrors status changes."""

    repository: RoomRepository
    store: Store
    outbox: Outbox
    local_store: LocalStore
    retry_policy: RetryPolicy | None = None

    def list_rooms(self) -> list[Room]:
        """Load rooms, falling back to the last cached list."""
        rooms = read_through(
            self.repository.list_rooms,
            self.local_store,
            ROOMS_KEY,
            room_to_row,
            room_from_row,
            self.retry_policy,
        )
        rooms = sorted(rooms, key=lambda room: room.name)
        self.store.dispatch(Action(ActionType.LOAD_DATA, {"rooms": rooms}))
        return list(self.store.state.rooms)

    def get_room(self, room_id: UUID) -> Room:
        room = next((r for r in self.store.state.rooms if r.id == room_id), None)
        if room is None:
            raise NotFoundError("Room", room_id)
        return room

    def available_for(self, service: Service) -> list[Room]:
        """Free rooms whose type matches the service."""
        return rooms_for(self.store.state, service)

    def mark_occupied(self, room_id: UUID, session_id: UUID) -> bool:
        return self.outbox.submit(
            room_status_intent(room_id, RoomStatus.OCCUPIED, session_id)
        )

    def mark_available(self, room_id: UUID) -> bool:
        return self.outbox.submit(room_status_intent(room_id, RoomStatus.AVAILABLE))

    def reset_all(self) -> int:
        """Mark every room available remotely; returns the number queued."""
        rooms = self.store.state.rooms
        for room in rooms:
            self.mark_available(room.id)
        logger.info("Reset %s rooms to available", len(rooms))
        return len(rooms)
