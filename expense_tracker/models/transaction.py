"""
Core Data Models for Expense Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be immutable once built, so state changes are whole-object replacements

DESIGN DECISION: Amounts are Decimal everywhere. The USD amount is
computed once when a transaction is created and stored alongside the
original amount, so reports stay stable when rates move later.
"""

import time
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


BASE_CURRENCY = "USD"

# Stored amounts keep 18 digits, 6 of them after the point
AMOUNT_SCALE = 6
AMOUNT_QUANTUM = Decimal("0.000001")
MAX_AMOUNT = Decimal(10) ** (18 - AMOUNT_SCALE)

# Rate snapshot: currency code -> units of that currency per 1 USD
RateSnapshot = dict[str, Decimal]


def now_epoch_millis() -> int:
    """Current instant in milliseconds since the epoch."""
    return int(time.time() * 1000)


def to_epoch_millis(moment: datetime) -> int:
    """Convert a datetime (naive = local time) to epoch milliseconds."""
    return int(moment.timestamp() * 1000)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class DashboardFilter(str, Enum):
    """Date filters offered on the dashboard."""
    ALL = "all"
    THIS_MONTH = "this_month"
    LAST_7_DAYS = "last_7_days"


class ExportFormat(str, Enum):
    """Supported report formats."""
    CSV = "csv"
    PDF = "pdf"


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense entry.

    CRITICAL: amount_usd is computed ONCE at creation time.
    It is never recomputed on read.

    The model is frozen: the store hands back a copy carrying the
    assigned id, and that id never changes afterwards.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: Optional[int] = Field(
        default=None,
        description="Store-assigned identifier (None for a new transaction)"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text category label"
    )
    amount_original: Decimal = Field(
        ...,
        gt=0,
        description="Amount in the transaction's own currency"
    )
    currency_code: str = Field(
        ...,
        min_length=3,
        max_length=3,
        description="3-letter currency code, stored uppercase"
    )
    amount_usd: Decimal = Field(
        ...,
        ge=0,
        description="USD equivalent computed at creation time"
    )
    is_income: bool = Field(
        default=False,
        description="True for credits, False for debits"
    )
    date_epoch_millis: int = Field(
        ...,
        description="Instant of the transaction in epoch milliseconds"
    )
    receipt_uri: Optional[str] = Field(
        default=None,
        description="Opaque reference to an attached receipt"
    )

    @field_validator('id')
    @classmethod
    def zero_id_means_new(cls, v: Optional[int]) -> Optional[int]:
        """An id of 0 marks a transaction that hasn't been stored yet."""
        if v is not None and v <= 0:
            return None
        return v

    @field_validator('currency_code')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator('receipt_uri')
    @classmethod
    def blank_receipt_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def is_new(self) -> bool:
        return self.id is None

    @property
    def transaction_type(self) -> str:
        """Human-readable type label used in reports."""
        return "Income" if self.is_income else "Expense"

    @property
    def occurred_at(self) -> datetime:
        """Local datetime of the transaction."""
        return datetime.fromtimestamp(self.date_epoch_millis / 1000)


# =============================================================================
# QUERY MODELS
# =============================================================================

class DateRange(BaseModel):
    """
    Optional bounds on date_epoch_millis.

    start is inclusive, end is exclusive. None leaves that side unbounded.
    """
    model_config = ConfigDict(frozen=True)

    start: Optional[int] = None
    end: Optional[int] = None

    @model_validator(mode='after')
    def validate_bounds(self) -> 'DateRange':
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValueError("Range end cannot be before range start")
        return self

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, epoch_millis: int) -> bool:
        if self.start is not None and epoch_millis < self.start:
            return False
        if self.end is not None and epoch_millis >= self.end:
            return False
        return True

    @classmethod
    def for_filter(cls, dashboard_filter: DashboardFilter, now: datetime) -> 'DateRange':
        """
        Map a dashboard filter to a range, relative to `now`.

        THIS_MONTH starts at local midnight on the first day of the month.
        LAST_7_DAYS starts exactly 7x24h before `now`.
        """
        if dashboard_filter == DashboardFilter.THIS_MONTH:
            month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
            return cls(start=to_epoch_millis(month_start))
        if dashboard_filter == DashboardFilter.LAST_7_DAYS:
            return cls(start=to_epoch_millis(now - timedelta(days=7)))
        return cls()


# =============================================================================
# FLOW STATE MODELS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    Raw user input for a new transaction.

    Amount is kept as text: it is parsed and checked by the validator,
    not by the model, so a bad value becomes a validation issue instead
    of a schema crash.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    category: str = "General"
    amount: str = ""
    currency_code: str = BASE_CURRENCY
    is_income: bool = False
    date_epoch_millis: int = Field(default_factory=now_epoch_millis)
    receipt_uri: Optional[str] = None


class AddTransactionState(BaseModel):
    """Observable state of the add-transaction flow."""
    model_config = ConfigDict(frozen=True)

    is_saving: bool = False
    error_message: Optional[str] = None
    saved: bool = False
    saved_transaction_id: Optional[int] = None


class ExportData(BaseModel):
    """
    A finished report, ready to be written or shared by the caller.
    """
    model_config = ConfigDict(frozen=True)

    export_format: ExportFormat
    csv_content: Optional[str] = None
    pdf_content: Optional[bytes] = None
    created_at: datetime = Field(default_factory=datetime.now)
    transaction_count: int = Field(default=0, ge=0)

    @model_validator(mode='after')
    def validate_content(self) -> 'ExportData':
        if self.export_format == ExportFormat.CSV and self.csv_content is None:
            raise ValueError("CSV export requires csv_content")
        if self.export_format == ExportFormat.PDF and self.pdf_content is None:
            raise ValueError("PDF export requires pdf_content")
        return self

    @property
    def mime_type(self) -> str:
        if self.export_format == ExportFormat.CSV:
            return "text/csv"
        return "application/pdf"

    @property
    def suggested_filename(self) -> str:
        stamp = self.created_at.strftime("%Y%m%d_%H%M%S")
        if self.export_format == ExportFormat.CSV:
            return f"expenses_{stamp}.csv"
        return f"expense_report_{stamp}.pdf"

    @property
    def content_bytes(self) -> bytes:
        """Report content as bytes (CSV is UTF-8 encoded)."""
        if self.export_format == ExportFormat.CSV:
            return self.csv_content.encode("utf-8")
        return self.pdf_content


class DashboardState(BaseModel):
    """
    Consolidated dashboard view.

    CRITICAL: Never mutated in place. Every change publishes a new instance.
    """
    model_config = ConfigDict(frozen=True)

    filter: DashboardFilter = DashboardFilter.ALL
    page: int = Field(default=0, ge=0)
    transactions: list[Transaction] = Field(default_factory=list)
    total_income_usd: Decimal = Decimal("0")
    total_expense_usd: Decimal = Decimal("0")
    can_load_more: bool = False
    is_loading: bool = False
    error_message: Optional[str] = None
    is_exporting: bool = False
    export_data: Optional[ExportData] = None

    @property
    def balance_usd(self) -> Decimal:
        return self.total_income_usd - self.total_expense_usd
