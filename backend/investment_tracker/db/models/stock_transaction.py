"""
Investment Tracker - Stock Transaction Model
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey, Enum as SQLEnum
import enum

from investment_tracker.db.database import Base
from investment_tracker.utils.currency import MARKET_CURRENCIES, guess_market_code, trade_subtotal


class StockTransactionType(str, enum.Enum):
    """Stock trade side."""
    BUY = "buy"
    SELL = "sell"


class StockMarket(str, enum.Enum):
    """Listing market."""
    US = "us"
    TW = "tw"
    UK = "uk"
    EU = "eu"

    @classmethod
    def guess(cls, ticker: str) -> "StockMarket":
        return cls(guess_market_code(ticker))

    @property
    def default_currency(self) -> str:
        return MARKET_CURRENCIES[self.value]


class BalanceAction(str, enum.Enum):
    """How a trade treats the bound ledger balance."""
    NONE = "none"
    MARGIN = "margin"


class StockTransaction(Base):
    """Executed stock trade."""

    __tablename__ = "stock_transactions"

    id = Column(Integer, primary_key=True, index=True)
    portfolio_id = Column(
        Integer,
        ForeignKey("portfolios.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    transaction_date = Column(Date, nullable=False, index=True)
    ticker = Column(String(20), nullable=False, index=True)
    transaction_type = Column(SQLEnum(StockTransactionType), nullable=False)

    # Quantities and prices (trade currency)
    shares = Column(Numeric(18, 4), nullable=False)
    price_per_share = Column(Numeric(18, 4), nullable=False)
    fees = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))

    # Trade currency -> home currency
    exchange_rate = Column(Numeric(18, 6), nullable=True)
    currency = Column(String(3), nullable=False)
    market = Column(SQLEnum(StockMarket), nullable=False, default=StockMarket.US)
    balance_action = Column(SQLEnum(BalanceAction), nullable=False, default=BalanceAction.NONE)

    # P&L (for sells)
    realized_pnl_home = Column(Numeric(18, 2), nullable=True)

    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # ==================== DERIVED VALUES ====================

    @property
    def subtotal(self) -> Decimal:
        return trade_subtotal(self.shares, self.price_per_share, self.ticker)

    @property
    def total_cost_source(self) -> Decimal:
        return self.subtotal + Decimal(self.fees or 0)

    @property
    def total_cost_home(self) -> Optional[Decimal]:
        if self.exchange_rate is None:
            return None
        return self.total_cost_source * Decimal(self.exchange_rate)

    @property
    def net_proceeds(self) -> Decimal:
        return self.subtotal - Decimal(self.fees or 0)

    def __repr__(self):
        return f"<StockTransaction {self.transaction_type.value} {self.ticker} x {self.shares}>"
