"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.transaction import (
    AMOUNT_QUANTUM,
    AMOUNT_SCALE,
    BASE_CURRENCY,
    MAX_AMOUNT,
    AddTransactionState,
    DashboardFilter,
    DashboardState,
    DateRange,
    ExportData,
    ExportFormat,
    RateSnapshot,
    Transaction,
    TransactionDraft,
    now_epoch_millis,
    to_epoch_millis,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "AMOUNT_QUANTUM",
    "AMOUNT_SCALE",
    "BASE_CURRENCY",
    "MAX_AMOUNT",
    "AddTransactionState",
    "DashboardFilter",
    "DashboardState",
    "DateRange",
    "ExportData",
    "ExportFormat",
    "RateSnapshot",
    "Transaction",
    "TransactionDraft",
    "now_epoch_millis",
    "to_epoch_millis",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
