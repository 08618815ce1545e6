"""
SQLite Storage Implementation

DESIGN DECISION: SQLite through SQLAlchemy is the storage backend because:
1. The tracker is single-user and local - no server to run
2. Date-range filters, ordering and sums run in SQL, not in Python
3. An in-memory database gives fast, isolated tests

TRADEOFFS:
- Numeric columns round-trip through floats on SQLite (6 decimal places kept)
- Calls run on the event loop thread; the store is small and local

The implementation follows the abstract interface, so business logic
never touches SQLAlchemy directly.
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError
from sqlalchemy import (
    BigInteger,
    Boolean,
    Integer,
    Numeric,
    String,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from expense_tracker.config import get_settings
from expense_tracker.models.transaction import (
    AMOUNT_QUANTUM,
    AMOUNT_SCALE,
    MAX_AMOUNT,
    DateRange,
    Transaction,
)
from expense_tracker.services.storage.interface import (
    ConnectionError,
    StorageError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


class TransactionRow(Base):
    """ORM row for one transaction. Columns mirror the Transaction model."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    amount_original: Mapped[Decimal] = mapped_column(Numeric(18, AMOUNT_SCALE), nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    amount_usd: Mapped[Decimal] = mapped_column(Numeric(18, AMOUNT_SCALE), nullable=False)
    is_income: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    date_epoch_millis: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    receipt_uri: Mapped[Optional[str]] = mapped_column(String, nullable=True)


def _is_in_memory(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def create_store_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Build the SQLAlchemy engine for the transaction store.

    In-memory databases share one connection (StaticPool), otherwise
    every connection would see its own empty database.
    """
    connect_args = {"check_same_thread": False}

    if _is_in_memory(database_url):
        return create_engine(
            database_url,
            connect_args=connect_args,
            poolclass=StaticPool,
            echo=echo,
        )

    # Folder for the SQLite file (created on startup if missing)
    path = database_url.split("///", 1)[1]
    if path:
        Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)

    return create_engine(database_url, connect_args=connect_args, echo=echo)


def _range_conditions(date_range: DateRange) -> list:
    """The one date predicate shared by the paged list and both sums."""
    conditions = []
    if date_range.start is not None:
        conditions.append(TransactionRow.date_epoch_millis >= date_range.start)
    if date_range.end is not None:
        conditions.append(TransactionRow.date_epoch_millis < date_range.end)
    return conditions


class SQLiteTransactionStorage(TransactionStorageInterface):
    """
    SQLite implementation of transaction storage.

    One row per transaction in the `transactions` table.
    """

    def __init__(self, engine: Optional[Engine] = None):
        if engine is None:
            settings = get_settings().store
            engine = create_store_engine(settings.database_url, echo=settings.echo_sql)

        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine,
            autoflush=False,
            expire_on_commit=False,
        )

        try:
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            raise ConnectionError(f"Failed to open transaction store: {e}") from e

    def _row_to_transaction(self, row: TransactionRow) -> Transaction:
        """
        Convert a database row to a Transaction.

        Raises:
            StorageError: If the stored values no longer form a valid transaction
        """
        try:
            return Transaction(
                id=row.id,
                category=row.category,
                amount_original=Decimal(row.amount_original),
                currency_code=row.currency_code,
                amount_usd=Decimal(row.amount_usd),
                is_income=row.is_income,
                date_epoch_millis=row.date_epoch_millis,
                receipt_uri=row.receipt_uri,
            )
        except ValidationError as e:
            raise StorageError(f"Stored transaction {row.id} is unreadable: {e}") from e

    def _transaction_to_row(self, transaction: Transaction) -> TransactionRow:
        """Convert a Transaction to a database row."""
        return TransactionRow(
            id=transaction.id,
            category=transaction.category,
            amount_original=transaction.amount_original,
            currency_code=transaction.currency_code,
            amount_usd=transaction.amount_usd,
            is_income=transaction.is_income,
            date_epoch_millis=transaction.date_epoch_millis,
            receipt_uri=transaction.receipt_uri,
        )

    async def insert_transaction(self, transaction: Transaction) -> int:
        """
        Insert a transaction, replacing the row if the id already exists.

        Amounts must fit the column precision so they read back unchanged
        in sign and magnitude.
        """
        if not (AMOUNT_QUANTUM <= transaction.amount_original < MAX_AMOUNT):
            raise StorageError(
                f"Amount {transaction.amount_original} is outside the storable range"
            )
        if transaction.amount_usd >= MAX_AMOUNT:
            raise StorageError(
                f"USD amount {transaction.amount_usd} is outside the storable range"
            )

        try:
            with self._session_factory() as session:
                row = self._transaction_to_row(transaction)
                if transaction.id is None:
                    session.add(row)
                else:
                    row = session.merge(row)
                session.flush()
                transaction_id = row.id
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save transaction: {e}") from e

        logger.debug("transaction_inserted", transaction_id=transaction_id)
        return transaction_id

    async def delete_transaction(self, transaction_id: int) -> bool:
        """Delete a transaction. Missing ids are ignored."""
        try:
            with self._session_factory() as session:
                result = session.execute(
                    delete(TransactionRow).where(TransactionRow.id == transaction_id)
                )
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete transaction {transaction_id}: {e}") from e

        return result.rowcount > 0

    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Retrieve a transaction by its id."""
        try:
            with self._session_factory() as session:
                row = session.get(TransactionRow, transaction_id)
                return self._row_to_transaction(row) if row is not None else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get transaction {transaction_id}: {e}") from e

    async def list_paged(
        self,
        date_range: DateRange,
        limit: int,
        offset: int = 0,
    ) -> list[Transaction]:
        """List transactions in range, newest first."""
        if limit <= 0:
            return []

        query = (
            select(TransactionRow)
            .where(*_range_conditions(date_range))
            .order_by(TransactionRow.date_epoch_millis.desc(), TransactionRow.id.desc())
            .limit(limit)
            .offset(max(offset, 0))
        )

        try:
            with self._session_factory() as session:
                rows = session.execute(query).scalars().all()
                return [self._row_to_transaction(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list transactions: {e}") from e

    async def _sum_usd(self, date_range: DateRange, is_income: bool) -> Decimal:
        query = select(
            func.coalesce(func.sum(TransactionRow.amount_usd), 0)
        ).where(
            TransactionRow.is_income == is_income,
            *_range_conditions(date_range),
        )

        try:
            with self._session_factory() as session:
                total = session.execute(query).scalar_one()
        except SQLAlchemyError as e:
            kind = "income" if is_income else "expense"
            raise StorageError(f"Failed to sum {kind}: {e}") from e

        return Decimal(str(total)) if total is not None else Decimal("0")

    async def sum_income_usd(self, date_range: DateRange) -> Decimal:
        """Total USD income in range."""
        return await self._sum_usd(date_range, is_income=True)

    async def sum_expense_usd(self, date_range: DateRange) -> Decimal:
        """Total USD expenses in range."""
        return await self._sum_usd(date_range, is_income=False)

    def close(self) -> None:
        """Release pooled database connections."""
        self._engine.dispose()
