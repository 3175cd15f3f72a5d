"""
Investment Tracker - Currency Transaction Repository

Ledger entries are always returned in replay order: date ascending,
ties in insertion order.
"""
from datetime import date
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from investment_tracker.db.models.currency_transaction import CurrencyTransaction


class CurrencyTransactionRepository:
    """Database operations for currency ledger entries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== CREATE ====================

    async def create(self, transaction: CurrencyTransaction) -> CurrencyTransaction:
        """Append an entry to its ledger."""
        self.db.add(transaction)
        await self.db.flush()
        await self.db.refresh(transaction)
        return transaction

    # ==================== READ ====================

    async def get_by_id(self, transaction_id: int) -> Optional[CurrencyTransaction]:
        """Get entry by ID."""
        result = await self.db.execute(
            select(CurrencyTransaction).where(CurrencyTransaction.id == transaction_id)
        )
        return result.scalar_one_or_none()

    async def get_by_ledger(
        self,
        ledger_id: int,
        end_date: Optional[date] = None,
    ) -> List[CurrencyTransaction]:
        """
        Get entries of a ledger in replay order.

        Args:
            ledger_id: Ledger ID
            end_date: Optional inclusive upper bound on transaction date

        Returns:
            Entries sorted by date, then insertion order
        """
        query = select(CurrencyTransaction).where(
            CurrencyTransaction.currency_ledger_id == ledger_id
        )
        if end_date is not None:
            query = query.where(CurrencyTransaction.transaction_date <= end_date)
        result = await self.db.execute(
            query.order_by(CurrencyTransaction.transaction_date, CurrencyTransaction.id)
        )
        return list(result.scalars().all())

    # ==================== DELETE ====================

    async def delete(self, transaction: CurrencyTransaction) -> None:
        """Delete a single entry."""
        await self.db.delete(transaction)
        await self.db.flush()

    async def delete_by_stock_transaction(self, stock_transaction_id: int) -> int:
        """Delete every entry derived from a trade. Returns rows removed."""
        result = await self.db.execute(
            delete(CurrencyTransaction).where(
                CurrencyTransaction.related_stock_transaction_id == stock_transaction_id
            )
        )
        return result.rowcount or 0
