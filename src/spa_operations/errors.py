"""Application error taxonomy.

Every failure that reaches a service boundary is expressed as an ``AppError``
carrying a category, a severity and a retry hint. ``classify_error`` turns
third-party exceptions (httpx, PostgREST) into the matching category so that
callers can decide whether to retry, fall back or surface a notification.
"""

from enum import StrEnum

import httpx
from postgrest.exceptions import APIError

_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_TOO_MANY_REQUESTS = 429
_HTTP_SERVER_ERROR = 500


class ErrorCategory(StrEnum):
    """Broad classes of failure."""

    NETWORK = "network"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    DATABASE = "database"
    BUSINESS_RULE = "business_rule"
    EXTERNAL_SERVICE = "external_service"
    UNKNOWN = "unknown"


class ErrorSeverity(StrEnum):
    """How loudly an error should be reported."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AppError(Exception):
    """Base error with category, severity and retry hints."""

    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.MEDIUM
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        severity: ErrorSeverity | None = None,
        retryable: bool | None = None,
        retry_after: float | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if severity is not None:
            self.severity = severity
        if retryable is not None:
            self.retryable = retryable
        self.retry_after = retry_after
        self.context = context or {}

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly description of the error."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "retryable": self.retryable,
            "retry_after": self.retry_after,
        }


class NetworkError(AppError):
    """Remote store unreachable or timed out."""

    category = ErrorCategory.NETWORK
    severity = ErrorSeverity.HIGH
    retryable = True

    def __init__(self, message: str, **kwargs) -> None:  # type: ignore[no-untyped-def]
        kwargs.setdefault("retry_after", 5.0)
        super().__init__(message, **kwargs)


class AuthenticationError(AppError):
    """Credentials rejected by a remote service."""

    category = ErrorCategory.AUTHENTICATION
    severity = ErrorSeverity.HIGH


class ValidationError(AppError):
    """Input failed validation."""

    category = ErrorCategory.VALIDATION


class DatabaseError(AppError):
    """The hosted database rejected a query."""

    category = ErrorCategory.DATABASE
    severity = ErrorSeverity.HIGH


class BusinessRuleError(AppError):
    """A requested action conflicts with the current operational state."""

    category = ErrorCategory.BUSINESS_RULE


class NotFoundError(BusinessRuleError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: object | None = None) -> None:
        detail = f"{entity} not found"
        if entity_id is not None:
            detail = f"{entity} {entity_id} not found"
        super().__init__(detail, context={"entity": entity, "entity_id": entity_id})


class ExternalServiceError(AppError):
    """A third-party API (printing, hosted store) failed."""

    category = ErrorCategory.EXTERNAL_SERVICE
    severity = ErrorSeverity.HIGH


def classify_error(exc: BaseException) -> AppError:
    """Return an AppError describing ``exc``."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, httpx.TimeoutException | httpx.NetworkError):
        return NetworkError(str(exc) or "Network request failed")
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status in {_HTTP_UNAUTHORIZED, _HTTP_FORBIDDEN}:
            return AuthenticationError(
                f"Remote service rejected credentials ({status})"
            )
        retryable = status == _HTTP_TOO_MANY_REQUESTS or status >= _HTTP_SERVER_ERROR
        return ExternalServiceError(
            f"Remote service returned {status}", retryable=retryable
        )
    if isinstance(exc, APIError):
        return DatabaseError(exc.message or "Database request failed")
    if isinstance(exc, ConnectionError | TimeoutError):
        return NetworkError(str(exc) or "Connection failed")
    return AppError(str(exc) or exc.__class__.__name__)
