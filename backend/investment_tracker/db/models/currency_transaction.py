"""
Investment Tracker - Currency Transaction Model
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey, Enum as SQLEnum
import enum

from investment_tracker.db.database import Base


class CurrencyTransactionType(str, enum.Enum):
    """Currency ledger entry kind."""
    EXCHANGE_BUY = "exchange_buy"
    EXCHANGE_SELL = "exchange_sell"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    INTEREST = "interest"
    SPEND = "spend"
    INITIAL_BALANCE = "initial_balance"
    OTHER_INCOME = "other_income"
    OTHER_EXPENSE = "other_expense"


@dataclass(frozen=True)
class ManualEntry:
    """Entry created directly by the ledger owner."""


@dataclass(frozen=True)
class DerivedFromTrade:
    """Entry created and owned by a stock trade."""
    trade_id: int


TransactionOrigin = Union[ManualEntry, DerivedFromTrade]


class CurrencyTransaction(Base):
    """Single entry in a currency ledger. Amounts are stored positive."""

    __tablename__ = "currency_transactions"

    id = Column(Integer, primary_key=True, index=True)
    currency_ledger_id = Column(
        Integer,
        ForeignKey("currency_ledgers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    transaction_date = Column(Date, nullable=False, index=True)
    transaction_type = Column(SQLEnum(CurrencyTransactionType), nullable=False)

    # Amounts
    foreign_amount = Column(Numeric(18, 4), nullable=False)
    home_amount = Column(Numeric(18, 2), nullable=True)
    exchange_rate = Column(Numeric(18, 6), nullable=True)

    # Set only by the trade orchestrator
    related_stock_transaction_id = Column(
        Integer,
        ForeignKey("stock_transactions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def origin(self) -> TransactionOrigin:
        if self.related_stock_transaction_id is not None:
            return DerivedFromTrade(self.related_stock_transaction_id)
        return ManualEntry()

    @property
    def is_locked(self) -> bool:
        return isinstance(self.origin, DerivedFromTrade)

    @property
    def home_value(self) -> Optional[Decimal]:
        """Home-currency value, from the stored amount or foreign x rate."""
        if self.home_amount is not None:
            return Decimal(self.home_amount)
        if self.exchange_rate is not None:
            return Decimal(self.foreign_amount) * Decimal(self.exchange_rate)
        return None

    def __repr__(self):
        return f"<CurrencyTransaction {self.transaction_type.value} {self.foreign_amount} on {self.transaction_date}>"
