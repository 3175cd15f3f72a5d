"""
Investment Tracker - Portfolio Repository
"""
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from investment_tracker.db.models.portfolio import Portfolio


class PortfolioRepository:
    """Database operations for portfolios."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== CREATE ====================

    async def create(self, portfolio: Portfolio) -> Portfolio:
        """Create a new portfolio record."""
        self.db.add(portfolio)
        await self.db.flush()
        await self.db.refresh(portfolio)
        return portfolio

    # ==================== READ ====================

    async def get_by_id(self, portfolio_id: int) -> Optional[Portfolio]:
        """Get portfolio by ID."""
        result = await self.db.execute(
            select(Portfolio).where(Portfolio.id == portfolio_id)
        )
        return result.scalar_one_or_none()

    async def get_owned(self, portfolio_id: int, user_id: int) -> Optional[Portfolio]:
        """Get portfolio by ID only if it belongs to the user."""
        result = await self.db.execute(
            select(Portfolio).where(
                Portfolio.id == portfolio_id,
                Portfolio.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: int, active_only: bool = False) -> List[Portfolio]:
        """Get all portfolios of a user, oldest first."""
        query = select(Portfolio).where(Portfolio.user_id == user_id)
        if active_only:
            query = query.where(Portfolio.is_active.is_(True))
        result = await self.db.execute(query.order_by(Portfolio.id))
        return list(result.scalars().all())

    async def get_by_ledger(self, ledger_id: int) -> Optional[Portfolio]:
        """Get the portfolio bound to a ledger."""
        result = await self.db.execute(
            select(Portfolio).where(Portfolio.bound_currency_ledger_id == ledger_id)
        )
        return result.scalar_one_or_none()
