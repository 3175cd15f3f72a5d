"""
Investment Tracker - Portfolio Model
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean

from investment_tracker.db.database import Base


class Portfolio(Base):
    """Portfolio model. Bound to exactly one currency ledger for life."""

    __tablename__ = "portfolios"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)

    # Portfolio info
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)

    # Currencies
    base_currency = Column(String(3), nullable=False, default="USD")
    home_currency = Column(String(3), nullable=False, default="TWD")

    # Bound ledger (set at creation, never re-bound)
    bound_currency_ledger_id = Column(
        Integer,
        ForeignKey("currency_ledgers.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )

    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Portfolio {self.name} ({self.base_currency}->{self.home_currency})>"
