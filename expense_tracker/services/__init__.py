"""Services package."""

from expense_tracker.services.export import (
    ReportExporter,
)
from expense_tracker.services.rates import (
    ExchangeRateApiProvider,
    NetworkError,
    RateProviderInterface,
    StaticRateProvider,
)
from expense_tracker.services.storage import (
    ConnectionError,
    SQLiteTransactionStorage,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    # Export services
    "ReportExporter",
    # Rate services
    "ExchangeRateApiProvider",
    "NetworkError",
    "RateProviderInterface",
    "StaticRateProvider",
    # Storage services
    "ConnectionError",
    "SQLiteTransactionStorage",
    "StorageError",
    "TransactionStorageInterface",
]
