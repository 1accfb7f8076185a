"""Error Hierarchy — typed, categorized exceptions for every subscription failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Validation errors (400-level) are reported to the caller and never retried
    - Storage errors (500-level) all derive from StorageError
    - to_response() produces the REST error envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with SubscribeError base: one FastAPI handler maps all of them
    - ErrorContext as dataclass: carries observability fields without touching logging
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    STORAGE = "storage"
    EXTERNAL_LOOKUP = "external_lookup"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Context attached to an error for logs and the response envelope."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    subscription_id: int | None = None
    email_domain: str | None = None
    operation: str | None = None
    debug_info: dict[str, Any] | None = None


class SubscribeError(Exception):
    """Base exception for all email-subscribe errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "subscription_id": self.context.subscription_id,
                    "email_domain": self.context.email_domain,
                    "operation": self.context.operation,
                },
            }
        }


# ─── Validation Errors (400-level) ──────────────────────────────

class InvalidFormatError(SubscribeError):
    """Email address is not syntactically valid."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid email address: {reason}",
            "INVALID_FORMAT", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.reason = reason


class UnreachableDomainError(SubscribeError):
    """Email domain does not accept mail (no usable mail exchange)."""
    def __init__(
        self, domain: str, reason: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.email_domain = domain
        super().__init__(
            f"Domain '{domain}' does not accept email: {reason}",
            "UNREACHABLE_DOMAIN", ErrorCategory.EXTERNAL_LOOKUP,
            ErrorSeverity.WARNING, ctx, 400,
        )
        self.domain = domain
        self.reason = reason


class SubscriptionNotFoundError(SubscribeError):
    """No subscription is stored under the requested id."""
    def __init__(self, subscription_id: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.subscription_id = subscription_id
        super().__init__(
            f"Subscription '{subscription_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )
        self.subscription_id = subscription_id


class ConflictError(SubscribeError):
    """Concurrent modification detected. Reserved for compare-and-swap writes."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


# ─── Storage Errors (500-level) ─────────────────────────────────

class StorageError(SubscribeError):
    """Base for every failure of the backing record store."""


class StorageUnavailableError(StorageError):
    """Backing file cannot be opened or read."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Store {operation} failed: {message}",
            "STORAGE_UNAVAILABLE", ErrorCategory.STORAGE,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.operation = operation


class WriteFailureError(StorageError):
    """Write transaction could not commit."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Store {operation} failed: {message}",
            "WRITE_FAILURE", ErrorCategory.STORAGE,
            ErrorSeverity.CRITICAL, ctx, 500,
        )
        self.operation = operation


class CorruptRecordError(StorageError):
    """Stored value could not be decoded into a Subscription."""
    def __init__(self, key: int, reason: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.subscription_id = key
        ctx.operation = "decode"
        super().__init__(
            f"Stored record {key} is unreadable: {reason}",
            "CORRUPT_RECORD", ErrorCategory.STORAGE,
            ErrorSeverity.CRITICAL, ctx, 500,
        )
        self.key = key
