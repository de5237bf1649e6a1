"""Error Hierarchy - typed, categorized exceptions for every database-core failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Caller errors (400-level) are recoverable; engine/store errors (500-level) are critical
    - to_response() produces the REST envelope
    - No internal details (SQL text, file paths) leaked in user-facing messages

Design Decisions:
    - Single hierarchy with FinoraError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - DatabaseImportError instead of ImportError: never shadow the builtin
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
    STORE = "store"
    ENGINE = "engine"
    MIGRATION = "migration"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    operation: str | None = None
    migration_version: int | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class FinoraError(Exception):
    """Base exception for all database-core errors."""

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
                    "operation": self.context.operation,
                    "migration_version": self.context.migration_version,
                },
            }
        }


# ─── Caller Errors (400-level) ──────────────────────────────────

class InvalidBackupFileError(FinoraError):
    """Backup file name rejected before reaching the engine."""
    def __init__(self, filename: str, context: ErrorContext | None = None):
        super().__init__(
            f"'{filename}' is not a .db backup file",
            "INVALID_BACKUP_FILE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.filename = filename


# ─── Engine Errors ──────────────────────────────────────────────

class EngineError(FinoraError):
    """Base for failures of the embedded SQL engine session."""


class RuntimeLoadError(EngineError):
    """The SQL engine runtime could not be loaded. Fatal for the session."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"SQL engine runtime unavailable: {message}",
            "RUNTIME_LOAD_FAILED", ErrorCategory.ENGINE,
            ErrorSeverity.CRITICAL, context, 503,
        )


class CorruptImageError(EngineError):
    """The persisted database image could not be opened."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Persisted database image is unreadable: {message}",
            "CORRUPT_IMAGE", ErrorCategory.ENGINE,
            ErrorSeverity.CRITICAL, context, 503,
        )


class NotInitializedError(EngineError):
    """Operation attempted before the engine session reached READY."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Database not initialized; cannot {operation}",
            "NOT_INITIALIZED", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ctx, 409,
        )
        self.operation = operation


class DatabaseImportError(EngineError):
    """Supplied bytes are not a valid database image."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = ctx.operation or "import"
        super().__init__(
            f"Import rejected: {message}",
            "IMPORT_FAILED", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )


# ─── Store Errors ───────────────────────────────────────────────

class StoreError(FinoraError):
    """Durable store read/write failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Durable store {operation} failed: {message}",
            "STORE_ERROR", ErrorCategory.STORE,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.operation = operation


# ─── Migration Errors ───────────────────────────────────────────

class MigrationError(FinoraError):
    """A migration descriptor failed; the rest of the batch was not attempted."""
    def __init__(
        self, version: int, name: str, message: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.migration_version = version
        super().__init__(
            f"Migration {version} ({name}) failed: {message}",
            "MIGRATION_FAILED", ErrorCategory.MIGRATION,
            ErrorSeverity.CRITICAL, ctx, 500,
        )
        self.version = version
        self.name = name


class MigrationRegistryError(MigrationError):
    """Registry descriptors are not unique, positive and strictly increasing."""
    def __init__(self, version: int, name: str, message: str):
        super().__init__(version, name, message)
        self.code = "MIGRATION_REGISTRY_INVALID"
