"""
Investment Tracker - Currency Ledger Repository
"""
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from investment_tracker.db.models.currency_ledger import CurrencyLedger


class CurrencyLedgerRepository:
    """Database operations for currency ledgers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== CREATE ====================

    async def create(self, ledger: CurrencyLedger) -> CurrencyLedger:
        """Create a new ledger record."""
        self.db.add(ledger)
        await self.db.flush()
        await self.db.refresh(ledger)
        return ledger

    # ==================== READ ====================

    async def get_by_id(self, ledger_id: int) -> Optional[CurrencyLedger]:
        """Get ledger by ID."""
        result = await self.db.execute(
            select(CurrencyLedger).where(CurrencyLedger.id == ledger_id)
        )
        return result.scalar_one_or_none()

    async def get_owned(self, ledger_id: int, user_id: int) -> Optional[CurrencyLedger]:
        """Get ledger by ID only if it belongs to the user."""
        result = await self.db.execute(
            select(CurrencyLedger).where(
                CurrencyLedger.id == ledger_id,
                CurrencyLedger.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, ledger_id: int) -> Optional[CurrencyLedger]:
        """
        Get ledger by ID and take a row lock until the transaction ends.

        Serializes concurrent writers of the same ledger at the storage
        level (SELECT ... FOR UPDATE; ignored by SQLite).
        """
        result = await self.db.execute(
            select(CurrencyLedger)
            .where(CurrencyLedger.id == ledger_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: int) -> List[CurrencyLedger]:
        """Get all ledgers of a user."""
        result = await self.db.execute(
            select(CurrencyLedger)
            .where(CurrencyLedger.user_id == user_id)
            .order_by(CurrencyLedger.id)
        )
        return list(result.scalars().all())
