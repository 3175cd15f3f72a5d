"""
Investment Tracker - Stock Transaction Repository

Repository for trade history queries.
"""
from datetime import date
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from investment_tracker.db.models.stock_transaction import StockTransaction
from investment_tracker.db.models.portfolio import Portfolio


class StockTransactionRepository:
    """Database operations for stock trades."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== CREATE ====================

    async def create(self, transaction: StockTransaction) -> StockTransaction:
        """Create a new trade record."""
        self.db.add(transaction)
        await self.db.flush()
        await self.db.refresh(transaction)
        return transaction

    # ==================== READ ====================

    async def get_by_id(self, transaction_id: int) -> Optional[StockTransaction]:
        """Get trade by ID."""
        result = await self.db.execute(
            select(StockTransaction).where(StockTransaction.id == transaction_id)
        )
        return result.scalar_one_or_none()

    async def get_owned(self, transaction_id: int, user_id: int) -> Optional[StockTransaction]:
        """Get trade by ID only if its portfolio belongs to the user."""
        result = await self.db.execute(
            select(StockTransaction)
            .join(Portfolio, Portfolio.id == StockTransaction.portfolio_id)
            .where(
                StockTransaction.id == transaction_id,
                Portfolio.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_portfolio(
        self,
        portfolio_id: int,
        ticker: Optional[str] = None,
        end_date: Optional[date] = None,
    ) -> List[StockTransaction]:
        """
        Get trades of a portfolio sorted by date, then insertion order.

        Args:
            portfolio_id: Portfolio ID
            ticker: Optional ticker filter
            end_date: Optional inclusive upper bound on trade date
        """
        query = select(StockTransaction).where(StockTransaction.portfolio_id == portfolio_id)
        if ticker:
            query = query.where(StockTransaction.ticker == ticker.strip().upper())
        if end_date is not None:
            query = query.where(StockTransaction.transaction_date <= end_date)
        result = await self.db.execute(
            query.order_by(StockTransaction.transaction_date, StockTransaction.id)
        )
        return list(result.scalars().all())

    # ==================== DELETE ====================

    async def delete(self, transaction: StockTransaction) -> None:
        """Delete a trade."""
        await self.db.delete(transaction)
        await self.db.flush()
