"""Tests for queued remote writes, the sync worker and local persistence."""

from pathlib import Path

from spa_operations.services.local_store import InMemoryLocalStore, JsonFileStore
from spa_operations.services.outbox import (
    OUTBOX_KEY,
    IntentOperation,
    Outbox,
    RemoteIntent,
    SyncWorker,
)
from tests.conftest import START, FakeClock, RecordingTableWriter


def _intent(
    record_id: str, operation: IntentOperation = IntentOperation.UPDATE
) -> RemoteIntent:
    return RemoteIntent(
        table="rooms",
        operation=operation,
        record_id=record_id,
        payload={"status": "available"},
    )


def test_submit_applies_immediately_when_online(
    outbox: Outbox, writer: RecordingTableWriter
) -> None:
    assert outbox.submit(_intent("a"))

    assert [intent.record_id for intent in writer.applied] == ["a"]
    assert outbox.pending() == []


def test_failed_write_stays_queued_and_blocks_later_ones(
    outbox: Outbox, writer: RecordingTableWriter
) -> None:
    writer.failing = True
    assert not outbox.submit(_intent("a"))
    writer.failing = False

    assert not outbox.submit(_intent("b"))

    assert writer.applied == []
    pending = outbox.pending()
    assert [intent.record_id for intent in pending] == ["a", "b"]
    assert pending[0].attempts == 1
    assert pending[0].last_error == "database unreachable"


def test_offline_submit_queues_and_reconnect_replays_in_order(
    outbox: Outbox, writer: RecordingTableWriter
) -> None:
    worker = SyncWorker(outbox, clock=FakeClock())
    worker.set_online(False)

    for record_id in ("a", "b", "c"):
        outbox.submit(_intent(record_id))

    assert worker.status().pending == 3
    result = worker.set_online(True)

    assert result is not None
    assert result.applied == 3
    assert [intent.record_id for intent in writer.applied] == ["a", "b", "c"]
    status = worker.status()
    assert status.online
    assert status.pending == 0
    assert status.last_sync_at == START


def test_reconcile_while_offline_keeps_writes_for_reconnect(
    outbox: Outbox, writer: RecordingTableWriter
) -> None:
    worker = SyncWorker(outbox, clock=FakeClock())
    worker.set_online(False)
    writer.failing = True
    outbox.submit(_intent("w1", IntentOperation.INSERT))

    for _ in range(outbox.max_attempts + 1):
        result = worker.reconcile()
        assert (result.applied, result.failed, result.dropped) == (0, 0, 0)

    [waiting] = outbox.pending()
    assert waiting.attempts == 0
    assert worker.status().last_sync_at is None

    writer.failing = False
    restored = worker.set_online(True)

    assert restored is not None
    assert restored.applied == 1
    assert [intent.record_id for intent in writer.applied] == ["w1"]
    assert outbox.pending() == []


def test_flush_stops_at_first_failure(
    local_store: InMemoryLocalStore, writer: RecordingTableWriter
) -> None:
    outbox = Outbox(writer, local_store, max_attempts=5)
    outbox.online = False
    outbox.submit(_intent("a"))
    outbox.submit(_intent("b"))
    writer.failing = True
    outbox.online = True

    result = outbox.flush()

    assert (result.applied, result.failed, result.pending) == (0, 1, 2)
    assert outbox.pending()[1].attempts == 0


def test_intent_is_dropped_after_max_attempts(
    local_store: InMemoryLocalStore, writer: RecordingTableWriter
) -> None:
    outbox = Outbox(writer, local_store, max_attempts=2)
    outbox.online = False
    outbox.submit(_intent("a"))
    outbox.submit(_intent("b"))
    writer.failing = True
    outbox.online = True
    outbox.flush()

    result = outbox.flush()

    # "a" is dropped on its second failure, then "b" fails once
    assert result.dropped == 1
    assert result.failed == 1
    assert [intent.record_id for intent in outbox.pending()] == ["b"]


def test_pending_intents_survive_restart(
    local_store: InMemoryLocalStore, writer: RecordingTableWriter
) -> None:
    outbox = Outbox(writer, local_store)
    outbox.online = False
    outbox.submit(_intent("a", IntentOperation.DELETE))

    restored = Outbox(writer, local_store)

    [intent] = restored.pending()
    assert intent.record_id == "a"
    assert intent.operation is IntentOperation.DELETE
    assert restored.flush().applied == 1
    assert local_store.get(OUTBOX_KEY) == []


def test_json_file_store_persists_between_instances(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    first = JsonFileStore(path)
    first.set("rooms", [{"id": "1", "name": "Room 1"}])
    first.set("gone", 1)
    first.delete("gone")

    second = JsonFileStore(path)

    assert second.get("rooms") == [{"id": "1", "name": "Room 1"}]
    assert second.get("gone") is None


def test_json_file_store_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")

    store = JsonFileStore(path)

    assert store.get("rooms") is None
    store.set("rooms", [])
    assert JsonFileStore(path).get("rooms") == []
