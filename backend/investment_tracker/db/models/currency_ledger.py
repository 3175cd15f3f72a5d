"""
Investment Tracker - Currency Ledger Model

A ledger is the append-only cash log of one currency. It never stores a
balance; balances are folded from its transactions on every read.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean

from investment_tracker.db.database import Base


class CurrencyLedger(Base):
    """Cash ledger bound to a portfolio."""

    __tablename__ = "currency_ledgers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)

    currency_code = Column(String(3), nullable=False)
    name = Column(String(100), nullable=False)
    home_currency = Column(String(3), nullable=False, default="TWD")

    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_home_currency(self) -> bool:
        return self.currency_code == self.home_currency

    def __repr__(self):
        return f"<CurrencyLedger {self.name} ({self.currency_code})>"
