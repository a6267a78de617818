"""Error Hierarchy — typed, categorized exceptions for all network engine failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Placement rejections (404/409) are recoverable; integrity errors are fatal for the event
    - ConcurrentUpdateConflictError is the only transient error (retried at one ancestor)
    - to_response() produces the REST envelope; no internal details in user-facing messages

Design Decisions:
    - Single hierarchy with NetworkError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - PLACEMENT_REJECTION_CODES lists the codes the orchestrator reports as a
      rejected network attachment instead of failing the whole registration
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
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTEGRITY = "integrity"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    member_code: str | None = None
    ancestor_code: str | None = None
    event_code: str | None = None
    attempt: int | None = None
    debug_info: dict[str, Any] | None = None


class NetworkError(Exception):
    """Base exception for all network engine errors."""

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

    @property
    def recoverable(self) -> bool:
        return self.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING)

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
                    "member_code": self.context.member_code,
                    "ancestor_code": self.context.ancestor_code,
                    "event_code": self.context.event_code,
                    "attempt": self.context.attempt,
                },
            }
        }


# ─── Placement Errors (400-level) ───────────────────────────────

class UplineNotFoundError(NetworkError):
    """Explicit upline code does not resolve to a member."""
    def __init__(self, upline_code: str, context: ErrorContext | None = None):
        super().__init__(
            f"Upline '{upline_code}' not found",
            "UPLINE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.upline_code = upline_code


class ReferrerNotFoundError(NetworkError):
    """Referrer code does not resolve (only raised under strict_referrer)."""
    def __init__(self, referrer_code: str, context: ErrorContext | None = None):
        super().__init__(
            f"Referrer '{referrer_code}' not found",
            "REFERRER_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.referrer_code = referrer_code


class MemberNotFoundError(NetworkError):
    """Requested member does not exist."""
    def __init__(self, referral_code: str, context: ErrorContext | None = None):
        super().__init__(
            f"Member '{referral_code}' not found",
            "MEMBER_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.referral_code = referral_code


class SlotOccupiedError(NetworkError):
    """Explicitly requested slot is already filled."""
    def __init__(
        self, upline_code: str, side: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"The {side} slot under '{upline_code}' is already occupied",
            "SLOT_OCCUPIED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 409,
        )
        self.upline_code = upline_code
        self.side = side


class AlreadyPlacedError(NetworkError):
    """Member already occupies a slot; placement happens once."""
    def __init__(self, referral_code: str, context: ErrorContext | None = None):
        super().__init__(
            f"Member '{referral_code}' is already placed in the network",
            "ALREADY_PLACED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 409,
        )
        self.referral_code = referral_code


class DuplicateReferralCodeError(NetworkError):
    """Referral code is already assigned to another member."""
    def __init__(self, referral_code: str, context: ErrorContext | None = None):
        super().__init__(
            f"Referral code '{referral_code}' is already in use",
            "DUPLICATE_REFERRAL_CODE", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.referral_code = referral_code


class InvalidPlacementRequestError(NetworkError):
    """Manual placement needs both an upline and a side."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_PLACEMENT_REQUEST", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


# ─── Integrity Errors (fatal for the event) ─────────────────────

class MaxDepthExceededError(NetworkError):
    """Tree search, recount or ancestor walk went past the depth bound."""
    def __init__(
        self, max_depth: int, start_code: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Traversal from '{start_code}' exceeded max depth {max_depth}",
            "MAX_DEPTH_EXCEEDED", ErrorCategory.INTEGRITY,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.max_depth = max_depth
        self.start_code = start_code


class TreeIntegrityError(NetworkError):
    """Slot pointers and upline codes disagree."""
    def __init__(
        self, message: str, code: str = "TREE_INTEGRITY",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.INTEGRITY,
            ErrorSeverity.CRITICAL, context, 500,
        )


class CycleDetectedError(TreeIntegrityError):
    """A member was reached twice while walking the tree."""
    def __init__(self, referral_code: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cycle detected at member '{referral_code}'",
            "CYCLE_DETECTED", context,
        )
        self.referral_code = referral_code


# ─── Infrastructure Errors (transient / 500-level) ──────────────

class ConcurrentUpdateConflictError(NetworkError):
    """Optimistic update kept losing to concurrent writers."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENT_UPDATE_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class DatabaseError(NetworkError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


PLACEMENT_REJECTION_CODES = frozenset({
    "UPLINE_NOT_FOUND",
    "SLOT_OCCUPIED",
    "ALREADY_PLACED",
    "MAX_DEPTH_EXCEEDED",
    "CYCLE_DETECTED",
    "TREE_INTEGRITY",
    "CONCURRENT_UPDATE_CONFLICT",
})
