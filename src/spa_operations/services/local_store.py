"""Local key-value persistence used when the hosted database is unreachable."""

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, TypeVar

from spa_operations.domain.records import Row
from spa_operations.services.retry import (
    RetryPolicy,
    compose,
    with_fallback,
    with_retry,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LocalStore(Protocol):
    """Durable key-value storage for JSON-compatible values."""

    def get(self, key: str) -> object | None:
        """Return the stored value or None."""

    def set(self, key: str, value: object) -> None:
        """Store a JSON-compatible value."""

    def delete(self, key: str) -> None:
        """Remove a key if present."""


@dataclass
class InMemoryLocalStore(LocalStore):
    """Process-local store for tests and ephemeral deployments."""

    _values: dict[str, object]

    def __init__(self) -> None:
        self._values = {}

    def get(self, key: str) -> object | None:
        return self._values.get(key)

    def set(self, key: str, value: object) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStore(LocalStore):
    """Store backed by a single JSON document on disk.

    The whole document is rewritten on every change through a temporary file
    and an atomic rename.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._values = self._load()

    def _load(self) -> dict[str, object]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable local store %s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._values), encoding="utf-8")
        tmp_path.replace(self._path)

    def get(self, key: str) -> object | None:
        return self._values.get(key)

    def set(self, key: str, value: object) -> None:
        with self._lock:
            self._values[key] = value
            self._flush()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._values.pop(key, None) is not None:
                self._flush()


def read_through(
    fetch: Callable[[], list[T]],
    local_store: LocalStore,
    key: str,
    encode: Callable[[T], Row],
    decode: Callable[[Row], T | None],
    policy: RetryPolicy | None = None,
) -> list[T]:
    """Fetch remotely and cache the rows; serve the cached rows on failure."""

    def remote() -> list[T]:
        items = fetch()
        local_store.set(key, [encode(item) for item in items])
        return items

    def cached() -> list[T]:
        raw = local_store.get(key)
        if not isinstance(raw, list):
            return []
        logger.info("Serving %s %s from local store", len(raw), key)
        decoded = (decode(row) for row in raw)
        return [item for item in decoded if item is not None]

    wrappers = [with_retry(policy)] if policy is not None else []
    load = compose(*wrappers, with_fallback(cached))(remote)
    return load()  # type: ignore[return-value]
