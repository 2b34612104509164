"""
Structured error records for observability.

Provides:
- Structured error models with codes and contexts
- Error classification and categorization
- Recovery guidance attached to per-product batch failures
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from backend.app.infrastructure.datetime_utils import utc_now


class ErrorCategory(str, PyEnum):
    """High-level error categories for classification."""

    VALIDATION = "VALIDATION"
    GENERATION = "GENERATION"
    PERSISTENCE = "PERSISTENCE"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    CANCELLATION = "CANCELLATION"
    CONFIGURATION = "CONFIGURATION"
    UNKNOWN = "UNKNOWN"


class ErrorSeverity(str, PyEnum):
    """Error severity levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RecoveryAction(str, PyEnum):
    """Suggested recovery actions."""

    RETRY = "RETRY"
    SKIP = "SKIP"
    MANUAL_INTERVENTION = "MANUAL_INTERVENTION"
    CONTACT_SUPPORT = "CONTACT_SUPPORT"
    NONE = "NONE"


class StructuredError(BaseModel):
    """
    Structured error with full context for debugging and observability.

    Designed to be:
    - Understandable without reading code
    - Queryable for patterns
    - Actionable with recovery guidance
    """

    code: str = Field(description="Unique error code for identification")
    category: ErrorCategory
    severity: ErrorSeverity
    message: str = Field(description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict, description="Additional error context")

    correlation_id: str | None = None
    batch_id: str | None = None
    entity_id: str | None = None

    recovery_action: RecoveryAction = RecoveryAction.NONE
    recovery_hint: str | None = None
    is_retryable: bool = False

    occurred_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(from_attributes=True)

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to dictionary suitable for logging."""
        return {
            "error_code": self.code,
            "error_category": self.category.value,
            "error_severity": self.severity.value,
            "error_message": self.message,
            "error_details": self.details,
            "correlation_id": self.correlation_id,
            "batch_id": self.batch_id,
            "entity_id": self.entity_id,
            "recovery_action": self.recovery_action.value,
            "is_retryable": self.is_retryable,
        }


class GenerationFailureError(StructuredError):
    """Error when the description generator fails for one product."""

    def __init__(
        self,
        entity_id: str,
        reason: str,
        batch_id: str | None = None,
        correlation_id: str | None = None,
    ):
        super().__init__(
            code="GENERATION_FAILURE",
            category=ErrorCategory.GENERATION,
            severity=ErrorSeverity.MEDIUM,
            message=f"Description generation failed: {reason}",
            details={"reason": reason},
            entity_id=entity_id,
            batch_id=batch_id,
            correlation_id=correlation_id,
            recovery_action=RecoveryAction.RETRY,
            recovery_hint="Retry the product in a later batch",
            is_retryable=True,
        )


class GenerationTimeoutError(StructuredError):
    """Error when the description generator does not answer in time."""

    def __init__(
        self,
        entity_id: str,
        timeout_seconds: float,
        batch_id: str | None = None,
        correlation_id: str | None = None,
    ):
        super().__init__(
            code="GENERATION_TIMEOUT",
            category=ErrorCategory.GENERATION,
            severity=ErrorSeverity.MEDIUM,
            message=f"Description generation timed out after {timeout_seconds:g}s",
            details={"timeout_seconds": timeout_seconds},
            entity_id=entity_id,
            batch_id=batch_id,
            correlation_id=correlation_id,
            recovery_action=RecoveryAction.RETRY,
            recovery_hint="Retry the product in a later batch",
            is_retryable=True,
        )


class PersistFailureError(StructuredError):
    """Error when a generated description could not be stored."""

    def __init__(
        self,
        entity_id: str,
        reason: str,
        batch_id: str | None = None,
        correlation_id: str | None = None,
    ):
        super().__init__(
            code="PERSIST_FAILURE",
            category=ErrorCategory.PERSISTENCE,
            severity=ErrorSeverity.MEDIUM,
            message=f"Failed to store generated description: {reason}",
            details={"reason": reason},
            entity_id=entity_id,
            batch_id=batch_id,
            correlation_id=correlation_id,
            recovery_action=RecoveryAction.RETRY,
            recovery_hint="The description was generated but not stored; regenerate the product",
            is_retryable=True,
        )


class StoreUnavailableError(StructuredError):
    """Error when the product store itself is unreachable."""

    def __init__(
        self,
        entity_id: str,
        reason: str,
        batch_id: str | None = None,
        correlation_id: str | None = None,
    ):
        super().__init__(
            code="STORE_UNAVAILABLE",
            category=ErrorCategory.INFRASTRUCTURE,
            severity=ErrorSeverity.HIGH,
            message=f"Product store unavailable: {reason}",
            details={"reason": reason},
            entity_id=entity_id,
            batch_id=batch_id,
            correlation_id=correlation_id,
            recovery_action=RecoveryAction.CONTACT_SUPPORT,
            recovery_hint="Check database connectivity before resubmitting the batch",
            is_retryable=False,
        )

