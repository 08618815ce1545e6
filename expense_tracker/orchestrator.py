"""
Main Orchestrator for Expense Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Dashboard (filter/page -> store queries -> consolidated view)
2. Add transaction (input -> validate -> convert to USD -> store -> reload)
3. Export (drain every page of the current filter -> CSV / PDF)

DESIGN DECISION: Each flow owns its state and replaces it wholesale.
Observers never see a half-updated view.

CRITICAL: The most recently started dashboard load is the one that gets
committed. Every load takes a generation number; results of a load that
has been superseded are thrown away.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional, Sequence
from uuid import UUID

from expense_tracker.audit import AuditLogger, configure_logging, create_correlation_id
from expense_tracker.config import get_settings
from expense_tracker.conversion import (
    DEFAULT_CURRENCIES,
    CurrencyConverter,
    RateNotFoundError,
)
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.transaction import (
    AddTransactionState,
    DashboardFilter,
    DashboardState,
    DateRange,
    ExportData,
    ExportFormat,
    Transaction,
    TransactionDraft,
)
from expense_tracker.services.export import ReportExporter
from expense_tracker.services.rates import (
    ExchangeRateApiProvider,
    NetworkError,
    RateProviderInterface,
)
from expense_tracker.services.storage import (
    SQLiteTransactionStorage,
    StorageError,
    TransactionStorageInterface,
)
from expense_tracker.validation import TransactionValidator, ValidationError


PAGE_SIZE = 10

StateListener = Callable[[DashboardState], None]
SavedHook = Callable[[Transaction], Awaitable[None]]


def _local_now() -> datetime:
    return datetime.now().astimezone()


class DashboardFlow:
    """
    Orchestrates the dashboard.

    State machine over (filter, page):
    - set_filter  -> page 0, full reload, list replaced
    - load_more   -> next page appended, only while the last page was full
    - delete      -> store delete, then full reload at page 0
    - export_*    -> every page of the current filter, handed to the exporter

    Totals always come from the store, never from patching the list.
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        exporter: Optional[ReportExporter] = None,
        audit_logger: Optional[AuditLogger] = None,
        page_size: int = PAGE_SIZE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if page_size <= 0:
            raise ValueError("page_size must be positive")

        self._storage = storage
        self._exporter = exporter or ReportExporter()
        self._audit_logger = audit_logger
        self._page_size = page_size
        self._clock = clock or _local_now

        self._state = DashboardState()
        self._generation = 0
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def page_size(self) -> int:
        return self._page_size

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener called with every new state.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, state: DashboardState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _update(self, **changes) -> None:
        self._publish(self._state.model_copy(update=changes))

    def current_range(self) -> DateRange:
        """Date range of the active filter, evaluated now."""
        return DateRange.for_filter(self._state.filter, self._clock())

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def _load(self, page: int, append: bool) -> bool:
        """
        Fetch one page plus both totals and commit them in one state change.

        Returns True if this load's result was committed.
        """
        self._generation += 1
        generation = self._generation
        date_range = self.current_range()

        self._update(is_loading=True, error_message=None)

        try:
            rows, income, expense = await asyncio.gather(
                self._storage.list_paged(date_range, self._page_size, page * self._page_size),
                self._storage.sum_income_usd(date_range),
                self._storage.sum_expense_usd(date_range),
            )
        except StorageError as e:
            return await self._fail_load(generation, e, AuditEventType.DASHBOARD_RELOAD_FAILED)
        except Exception as e:
            # Any other failure still clears the loading flag
            return await self._fail_load(generation, e, AuditEventType.SYSTEM_ERROR)

        if generation != self._generation:
            await self._discard(generation)
            return False

        transactions = list(self._state.transactions) + rows if append else rows
        self._update(
            page=page,
            transactions=transactions,
            total_income_usd=income,
            total_expense_usd=expense,
            can_load_more=len(rows) == self._page_size,
            is_loading=False,
            error_message=None,
        )

        if self._audit_logger:
            await self._audit_logger.log_dashboard_reloaded(
                filter_value=self._state.filter.value,
                page=page,
                row_count=len(rows),
                generation=generation,
            )
        return True

    async def _fail_load(
        self,
        generation: int,
        error: Exception,
        event_type: AuditEventType,
    ) -> bool:
        """Report a failed load, keeping the list and totals already on screen."""
        if generation != self._generation:
            await self._discard(generation)
            return False

        self._update(is_loading=False, error_message=str(error) or type(error).__name__)
        if self._audit_logger:
            await self._audit_logger.log_failure(event_type, error)
        return False

    async def _discard(self, generation: int) -> None:
        if self._audit_logger:
            await self._audit_logger.log_stale_reload_discarded(generation, self._generation)

    async def refresh(self) -> bool:
        """Reload the first page of the current filter, replacing the list."""
        return await self._load(page=0, append=False)

    async def set_filter(self, dashboard_filter: DashboardFilter) -> bool:
        """
        Switch filter, reset to page 0 and reload.

        Always reloads, even when the page was already 0.
        """
        self._update(filter=dashboard_filter, page=0, can_load_more=False)
        return await self._load(page=0, append=False)

    async def load_more(self) -> bool:
        """
        Append the next page.

        No-op (no query, no state change) once a short page has been seen
        or while another load is running.
        """
        if not self._state.can_load_more or self._state.is_loading:
            return False
        return await self._load(page=self._state.page + 1, append=True)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def delete_transaction(self, transaction_id: int) -> bool:
        """
        Delete a transaction and reload from page 0.

        Returns False if the delete itself failed.
        """
        try:
            existed = await self._storage.delete_transaction(transaction_id)
        except StorageError as e:
            self._update(error_message=str(e))
            if self._audit_logger:
                await self._audit_logger.log_failure(
                    AuditEventType.DELETE_FAILED, e, entity_id=transaction_id
                )
            return False

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(transaction_id, existed)

        await self._load(page=0, append=False)
        return True

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    async def collect_all(self) -> list[Transaction]:
        """
        Every transaction of the current filter, in store order.

        Pages through the store until a short page comes back. There is
        no size cap: this reads every matching row.
        """
        date_range = self.current_range()
        collected: list[Transaction] = []
        offset = 0

        while True:
            rows = await self._storage.list_paged(date_range, self._page_size, offset)
            collected.extend(rows)
            if len(rows) < self._page_size:
                break
            offset += self._page_size

        return collected

    async def _export(self, export_format: ExportFormat) -> Optional[ExportData]:
        label = export_format.value.upper()
        self._update(is_exporting=True, error_message=None, export_data=None)

        try:
            transactions = await self.collect_all()
            if export_format == ExportFormat.CSV:
                export_data = ExportData(
                    export_format=export_format,
                    csv_content=self._exporter.to_csv(transactions),
                    transaction_count=len(transactions),
                )
            else:
                export_data = ExportData(
                    export_format=export_format,
                    pdf_content=self._exporter.to_pdf(transactions),
                    transaction_count=len(transactions),
                )
        except Exception as e:
            # Any failure here is reported through state
            self._update(is_exporting=False, error_message=f"Failed to export {label}: {e}")
            if self._audit_logger:
                await self._audit_logger.log_failure(AuditEventType.EXPORT_FAILED, e)
            return None

        self._update(is_exporting=False, export_data=export_data)
        if self._audit_logger:
            await self._audit_logger.log_export_generated(export_format.value, len(transactions))
        return export_data

    async def export_csv(self) -> Optional[ExportData]:
        return await self._export(ExportFormat.CSV)

    async def export_pdf(self) -> Optional[ExportData]:
        return await self._export(ExportFormat.PDF)

    def clear_export_data(self) -> None:
        self._update(export_data=None)


class AddTransactionFlow:
    """
    Orchestrates adding a transaction.

    Flow:
    1. Validate raw input (no I/O on failure)
    2. Convert the amount to USD (fetches rates for non-USD currencies)
    3. Insert into the store
    4. Notify the dashboard so it reloads from page 0

    Any failure stops the flow, is reported in state, and leaves
    the store untouched.
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        converter: CurrencyConverter,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        on_saved: Optional[SavedHook] = None,
        default_currencies: Sequence[str] = DEFAULT_CURRENCIES,
    ):
        self._storage = storage
        self._converter = converter
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger
        self._on_saved = on_saved
        self._default_currencies = list(default_currencies)

        self._state = AddTransactionState()
        self._currencies = list(default_currencies)

    @property
    def state(self) -> AddTransactionState:
        return self._state

    @property
    def currencies(self) -> list[str]:
        return list(self._currencies)

    async def load_currencies(self) -> list[str]:
        """
        Refresh the currency list from live rates.

        Keeps the default list when rates can't be fetched.
        """
        self._currencies = await self._converter.available_currencies(self._default_currencies)
        return self.currencies

    async def save(
        self,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        """
        Validate, convert and store a draft.

        Returns the stored transaction (with its id), or None if any
        step failed - see state.error_message for why.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            result = self._validator.validate_or_raise(draft)
        except ValidationError as e:
            self._state = AddTransactionState(error_message=str(e))
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    issues=[issue.model_dump() for issue in e.result.issues],
                    correlation_id=correlation_id,
                )
            return None

        self._state = AddTransactionState(is_saving=True)

        try:
            amount_usd = await self._converter.to_usd(result.amount, draft.currency_code)
            transaction = Transaction(
                category=draft.category,
                amount_original=result.amount,
                currency_code=draft.currency_code,
                amount_usd=amount_usd,
                is_income=draft.is_income,
                date_epoch_millis=draft.date_epoch_millis,
                receipt_uri=draft.receipt_uri,
            )
            transaction_id = await self._storage.insert_transaction(transaction)
        except (RateNotFoundError, NetworkError, StorageError) as e:
            self._state = AddTransactionState(error_message=str(e) or "Failed to save transaction")
            if self._audit_logger:
                await self._audit_logger.log_failure(
                    AuditEventType.SAVE_FAILED, e, correlation_id=correlation_id
                )
            return None

        saved = transaction.model_copy(update={"id": transaction_id})
        self._state = AddTransactionState(saved=True, saved_transaction_id=transaction_id)

        if self._audit_logger:
            await self._audit_logger.log_transaction_saved(
                transaction_id=transaction_id,
                currency_code=saved.currency_code,
                amount_usd=str(saved.amount_usd),
                correlation_id=correlation_id,
            )

        if self._on_saved:
            await self._on_saved(saved)

        return saved

    def reset(self) -> None:
        """Clear the outcome of the last save."""
        self._state = AddTransactionState()


def create_app_components(
    storage: Optional[TransactionStorageInterface] = None,
    rate_provider: Optional[RateProviderInterface] = None,
) -> tuple[DashboardFlow, AddTransactionFlow, TransactionStorageInterface]:
    """
    Factory function to create all application components.

    Args:
        storage: Transaction store. Defaults to SQLite from settings.
        rate_provider: Rate source. Defaults to the remote exchange rate API.

    Returns:
        (dashboard_flow, add_transaction_flow, storage)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    storage = storage or SQLiteTransactionStorage()
    rate_provider = rate_provider or ExchangeRateApiProvider()
    audit_logger = AuditLogger()

    dashboard_flow = DashboardFlow(
        storage=storage,
        audit_logger=audit_logger,
    )

    async def reload_dashboard(_saved: Transaction) -> None:
        await dashboard_flow.refresh()

    add_transaction_flow = AddTransactionFlow(
        storage=storage,
        converter=CurrencyConverter(rate_provider, audit_logger=audit_logger),
        audit_logger=audit_logger,
        on_saved=reload_dashboard,
        default_currencies=settings.app.default_currencies_list,
    )

    return dashboard_flow, add_transaction_flow, storage
