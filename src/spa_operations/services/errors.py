"""Error reporting: classify, log and surface failures as notifications."""

import itertools
import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from spa_operations.errors import AppError, ErrorSeverity, classify_error

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class NotificationKind(StrEnum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A toast message for the dashboard."""

    id: int
    kind: NotificationKind
    message: str
    created_at: datetime


class NotificationCenter:
    """Bounded queue of recent notifications, newest last."""

    def __init__(self, limit: int = 50) -> None:
        self._items: deque[Notification] = deque(maxlen=limit)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def push(self, kind: NotificationKind, message: str) -> Notification:
        with self._lock:
            notification = Notification(
                id=next(self._ids),
                kind=kind,
                message=message,
                created_at=datetime.now(tz=UTC),
            )
            self._items.append(notification)
            return notification

    def list(self) -> list[Notification]:
        return list(self._items)

    def dismiss(self, notification_id: int) -> bool:
        with self._lock:
            for item in self._items:
                if item.id == notification_id:
                    self._items.remove(item)
                    return True
            return False

    def clear(self) -> None:
        self._items.clear()


@dataclass
class ErrorHandler:
    """Turns exceptions into logged, user-visible errors."""

    notifications: NotificationCenter

    def handle(
        self, exc: BaseException, *, context: str = "", notify: bool = True
    ) -> AppError:
        """Classify ``exc``, log it by severity and optionally raise a toast."""
        error = classify_error(exc)
        level = _LOG_LEVELS.get(error.severity, logging.ERROR)
        logger.log(
            level,
            "%s%s error: %s",
            f"{context}: " if context else "",
            error.category.value,
            error.message,
            exc_info=error is not exc,
        )
        if notify:
            self.notifications.push(NotificationKind.ERROR, error.message)
        return error

    def guard(self, context: str) -> Callable[[BaseException], AppError]:
        """Return a log-only handler for timer-driven work."""
        return lambda exc: self.handle(exc, context=context, notify=False)
