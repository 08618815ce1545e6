"""
Audit Models for Expense Tracker

Every significant action in the system is recorded as an audit event.
This provides:
1. Traceability of every write to the store
2. Debugging information when things go wrong
3. Ability to reconstruct what the user did and what the system answered

DESIGN DECISION: Audit events are emitted to the structured log only.
They are never stored in the transaction database.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Persistence
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_DELETED = "transaction_deleted"
    SAVE_FAILED = "save_failed"
    DELETE_FAILED = "delete_failed"

    # Input checks
    VALIDATION_FAILED = "validation_failed"

    # Exchange rates
    RATES_FETCHED = "rates_fetched"
    RATES_FETCH_FAILED = "rates_fetch_failed"
    RATE_NOT_FOUND = "rate_not_found"

    # Dashboard
    DASHBOARD_RELOADED = "dashboard_reloaded"
    DASHBOARD_RELOAD_FAILED = "dashboard_reload_failed"
    STALE_RELOAD_DISCARDED = "stale_reload_discarded"

    # Reports
    EXPORT_GENERATED = "export_generated"
    EXPORT_FAILED = "export_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (local time)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'dashboard', 'export')"
    )
    entity_id: Optional[int] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one save attempt)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_saved(transaction_id, "EUR", "12.00", correlation_id)
        event = AuditEventBuilder.export_generated("csv", 42)
    """

    @staticmethod
    def transaction_saved(
        transaction_id: int,
        currency_code: str,
        amount_usd: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {transaction_id} saved",
            details={
                "currency_code": currency_code,
                "amount_usd": amount_usd,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: int,
        existed: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction {transaction_id} deleted",
            details={"existed": existed},
            is_user_action=True,
        )

    @staticmethod
    def operation_failed(
        event_type: AuditEventType,
        error_type: str,
        error_message: str,
        entity_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{event_type.value}: {error_type}",
            error_code=error_type,
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="draft",
            correlation_id=correlation_id,
            description=f"Transaction input rejected with {len(issues)} issue(s)",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def rates_fetched(currency_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_FETCHED,
            severity=AuditSeverity.DEBUG,
            entity_type="rates",
            description=f"Fetched {currency_count} exchange rates",
            details={"currency_count": currency_count},
        )

    @staticmethod
    def rates_fetch_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_FETCH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="rates",
            description="Exchange rate fetch failed, using default currencies",
            error_message=error_message,
        )

    @staticmethod
    def dashboard_reloaded(
        filter_value: str,
        page: int,
        row_count: int,
        generation: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DASHBOARD_RELOADED,
            severity=AuditSeverity.DEBUG,
            entity_type="dashboard",
            description=f"Dashboard page {page} loaded with {row_count} row(s)",
            details={
                "filter": filter_value,
                "page": page,
                "row_count": row_count,
                "generation": generation,
            },
        )

    @staticmethod
    def stale_reload_discarded(generation: int, latest_generation: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RELOAD_DISCARDED,
            severity=AuditSeverity.DEBUG,
            entity_type="dashboard",
            description="Discarded result of a superseded dashboard load",
            details={
                "generation": generation,
                "latest_generation": latest_generation,
            },
        )

    @staticmethod
    def export_generated(
        export_format: str,
        transaction_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            entity_type="export",
            description=f"{export_format.upper()} report generated",
            details={
                "format": export_format,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )
