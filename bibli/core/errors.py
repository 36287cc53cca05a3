"""Error Hierarchy — typed, categorized exceptions for every Bibli failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Every error maps 1:1 to an HTTP status (http_status)
    - Conflict errors carry a diagnostic payload in `details` (e.g. HasVolumes count)
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with LibraryError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
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
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"
    INVALID = "invalid"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class LibraryError(Exception):
    """Base exception for all Bibli errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.details = details or {}

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "details": self.details,
            }
        }


# ─── Not Found (404) ────────────────────────────────────────────

class ResourceNotFoundError(LibraryError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: object, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
            {"resource_type": resource_type, "resource_id": str(resource_id)},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class TitleNotFoundError(ResourceNotFoundError):
    """Referenced title does not exist."""
    def __init__(self, title_id: object, context: ErrorContext | None = None):
        super().__init__("Title", title_id, context)
        self.code = "TITLE_NOT_FOUND"


class ParentNotFoundError(ResourceNotFoundError):
    """Referenced parent location does not exist."""
    def __init__(self, parent_id: object, context: ErrorContext | None = None):
        super().__init__("Location", parent_id, context)
        self.code = "PARENT_NOT_FOUND"


# ─── Conflict (409) ─────────────────────────────────────────────

class ConflictError(LibraryError):
    """An invariant would be violated by the requested operation."""
    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409, details,
        )


class HasVolumesError(ConflictError):
    """Title still owns volumes and cannot be deleted."""
    def __init__(self, title_id: object, count: int, context: ErrorContext | None = None):
        super().__init__(
            f"Title '{title_id}' still has {count} volume(s)",
            "HAS_VOLUMES", {"title_id": str(title_id), "count": count}, context,
        )
        self.count = count


class CurrentlyLoanedError(ConflictError):
    """Volume is referenced by an active loan."""
    def __init__(self, volume_id: object, loan_id: object | None = None,
                 context: ErrorContext | None = None):
        super().__init__(
            f"Volume '{volume_id}' is currently loaned",
            "CURRENTLY_LOANED",
            {"volume_id": str(volume_id),
             "loan_id": str(loan_id) if loan_id else None},
            context,
        )


class VolumeUnavailableError(ConflictError):
    """Scanned volume is not in the Available state."""
    def __init__(self, volume_id: object, state: str, context: ErrorContext | None = None):
        super().__init__(
            f"Volume '{volume_id}' is not available (state: {state})",
            "VOLUME_UNAVAILABLE", {"volume_id": str(volume_id), "state": state}, context,
        )


class AlreadyReturnedError(ConflictError):
    """Loan has already been closed."""
    def __init__(self, loan_id: object, context: ErrorContext | None = None):
        super().__init__(
            f"Loan '{loan_id}' has already been returned",
            "ALREADY_RETURNED", {"loan_id": str(loan_id)}, context,
        )


class AlreadyExtendedError(ConflictError):
    """Loan used its single extension."""
    def __init__(self, loan_id: object, extension_count: int,
                 context: ErrorContext | None = None):
        super().__init__(
            f"Maximum extensions reached ({extension_count}/1)",
            "ALREADY_EXTENDED",
            {"loan_id": str(loan_id), "extension_count": extension_count},
            context,
        )


class CycleDetectedError(ConflictError):
    """Location hierarchy would contain (or contains) a cycle."""
    def __init__(self, location_id: object, parent_id: object | None = None,
                 context: ErrorContext | None = None):
        super().__init__(
            f"Location '{location_id}' cannot be placed under '{parent_id}': cycle detected",
            "CYCLE_DETECTED",
            {"location_id": str(location_id),
             "parent_id": str(parent_id) if parent_id else None},
            context,
        )


class DuplicateBarcodeError(ConflictError):
    """Barcode already assigned to another volume."""
    def __init__(self, barcode: str, context: ErrorContext | None = None):
        super().__init__(
            f"Barcode '{barcode}' already exists",
            "DUPLICATE_BARCODE", {"barcode": barcode}, context,
        )


class CandidateResolvedError(ConflictError):
    """Duplicate candidate already reached a terminal resolution."""
    def __init__(self, candidate_id: object, resolution: str,
                 context: ErrorContext | None = None):
        super().__init__(
            f"Duplicate candidate '{candidate_id}' is already {resolution}",
            "CANDIDATE_RESOLVED",
            {"candidate_id": str(candidate_id), "resolution": resolution},
            context,
        )


class ConcurrencyError(ConflictError):
    """Concurrent modification detected at commit time."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(message, "CONCURRENCY_CONFLICT", None, context)


# ─── Unavailable ────────────────────────────────────────────────

class NoVolumeAvailableError(LibraryError):
    """No eligible volume can fulfill a title-level loan request."""
    def __init__(self, title_id: object, context: ErrorContext | None = None):
        super().__init__(
            f"No volume of title '{title_id}' is available",
            "NO_VOLUME_AVAILABLE", ErrorCategory.UNAVAILABLE,
            ErrorSeverity.WARNING, context, 409, {"title_id": str(title_id)},
        )


class ExhaustedSequenceError(LibraryError):
    """Barcode counter no longer fits the configured width."""
    def __init__(self, sequence: str, width: int, context: ErrorContext | None = None):
        super().__init__(
            f"Sequence '{sequence}' exhausted for width {width}",
            "EXHAUSTED_SEQUENCE", ErrorCategory.UNAVAILABLE,
            ErrorSeverity.CRITICAL, context, 503,
            {"sequence": sequence, "width": width},
        )


# ─── Invalid (400) ──────────────────────────────────────────────

class InvalidCodeError(LibraryError):
    """Malformed barcode or ISBN."""
    def __init__(self, code_value: str, expected: str = "barcode or ISBN",
                 context: ErrorContext | None = None):
        super().__init__(
            f"'{code_value}' is not a valid {expected}",
            "INVALID_CODE", ErrorCategory.INVALID,
            ErrorSeverity.ERROR, context, 400,
            {"value": code_value, "expected": expected},
        )


class InvalidFieldError(LibraryError):
    """Field value rejected by a domain rule."""
    def __init__(self, field_name: str, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_FIELD", ErrorCategory.INVALID,
            ErrorSeverity.ERROR, context, 400, {"field": field_name},
        )
        self.field = field_name


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(LibraryError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
