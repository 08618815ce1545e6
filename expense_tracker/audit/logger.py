"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of writes to the store
2. Debugging capability for rate and export failures
3. A record of which dashboard loads were committed or discarded

The audit logger:
- Writes structured JSON through structlog
- Gracefully handles failures (never breaks the calling flow)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and so structlog output) to stderr at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("expense_tracker").setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Events are written to the structured local log at the
    severity they carry.
    """

    def __init__(self, logger_name: str = "expense_tracker.audit"):
        self._logger = structlog.get_logger(logger_name)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written. Never raises.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Audit logging must not break the main flow
            logging.getLogger(__name__).warning("Failed to write audit event %s: %s", event.event_id, e)
            return False

        return True

    async def log_transaction_saved(
        self,
        transaction_id: int,
        currency_code: str,
        amount_usd: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            currency_code=currency_code,
            amount_usd=amount_usd,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(self, transaction_id: int, existed: bool) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(transaction_id, existed))

    async def log_validation_failed(
        self,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(issues, correlation_id))

    async def log_rates_fetched(self, currency_count: int) -> None:
        await self.log(AuditEventBuilder.rates_fetched(currency_count))

    async def log_rates_fetch_failed(self, error_message: str) -> None:
        await self.log(AuditEventBuilder.rates_fetch_failed(error_message))

    async def log_dashboard_reloaded(
        self,
        filter_value: str,
        page: int,
        row_count: int,
        generation: int,
    ) -> None:
        await self.log(AuditEventBuilder.dashboard_reloaded(
            filter_value=filter_value,
            page=page,
            row_count=row_count,
            generation=generation,
        ))

    async def log_stale_reload_discarded(self, generation: int, latest_generation: int) -> None:
        await self.log(AuditEventBuilder.stale_reload_discarded(generation, latest_generation))

    async def log_export_generated(self, export_format: str, transaction_count: int) -> None:
        await self.log(AuditEventBuilder.export_generated(export_format, transaction_count))

    async def log_failure(
        self,
        event_type: AuditEventType,
        error: Exception,
        entity_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed operation with the exception that caused it."""
        await self.log(AuditEventBuilder.operation_failed(
            event_type=event_type,
            error_type=type(error).__name__,
            error_message=str(error),
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
