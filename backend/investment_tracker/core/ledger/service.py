"""
Currency Ledger Service

Manual ledger entries and ledger read models. Entries derived from trades
are owned by the trade orchestrator and are read-only here.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from investment_tracker.core.ledger.balance import LedgerSummary, calculate_balance, summarize_ledger
from investment_tracker.core.ledger.locks import LedgerLockRegistry, get_ledger_locks
from investment_tracker.core.ledger import policy
from investment_tracker.db.models.currency_ledger import CurrencyLedger
from investment_tracker.db.models.currency_transaction import CurrencyTransaction, CurrencyTransactionType
from investment_tracker.db.repositories.currency_ledger import CurrencyLedgerRepository
from investment_tracker.db.repositories.currency_transaction import CurrencyTransactionRepository
from investment_tracker.services.change_notifier import (
    ChangeEvent,
    ChangeKind,
    ChangeNotifier,
    get_change_notifier,
)
from investment_tracker.utils.exceptions import (
    CurrencyLedgerNotFoundError,
    LockedTransactionError,
    TransactionNotFoundError,
    ValidationError,
)


@dataclass
class CurrencyTransactionRequest:
    """Manual ledger entry request."""
    currency_ledger_id: int
    transaction_date: date
    transaction_type: CurrencyTransactionType
    foreign_amount: Decimal
    home_amount: Optional[Decimal] = None
    exchange_rate: Optional[Decimal] = None
    notes: Optional[str] = None
    # Only trades may link entries; any value here is rejected
    related_stock_transaction_id: Optional[int] = None


class CurrencyLedgerService:
    """
    Service for manual currency ledger operations.

    Usage:
        service = CurrencyLedgerService(db_session)
        entry = await service.create_transaction(request, user_id=1)
        summary = await service.get_summary(ledger_id=1, user_id=1)
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[ChangeNotifier] = None,
        locks: Optional[LedgerLockRegistry] = None,
    ):
        self.db = db
        self.ledgers = CurrencyLedgerRepository(db)
        self.transactions = CurrencyTransactionRepository(db)
        self.notifier = notifier or get_change_notifier()
        self.locks = locks or get_ledger_locks()

    # ==================== READ ====================

    async def get_owned_ledger(self, ledger_id: int, user_id: int) -> CurrencyLedger:
        ledger = await self.ledgers.get_owned(ledger_id, user_id)
        if ledger is None:
            raise CurrencyLedgerNotFoundError(ledger_id)
        return ledger

    async def get_transactions(self, ledger_id: int, user_id: int) -> List[CurrencyTransaction]:
        await self.get_owned_ledger(ledger_id, user_id)
        return await self.transactions.get_by_ledger(ledger_id)

    async def get_balance(self, ledger_id: int, user_id: int) -> Decimal:
        return calculate_balance(await self.get_transactions(ledger_id, user_id))

    async def get_summary(self, ledger_id: int, user_id: int) -> LedgerSummary:
        ledger = await self.get_owned_ledger(ledger_id, user_id)
        entries = await self.transactions.get_by_ledger(ledger_id)
        return summarize_ledger(entries, currency_code=ledger.currency_code, ledger_id=ledger.id)

    async def _get_owned_transaction(self, transaction_id: int, user_id: int) -> CurrencyTransaction:
        transaction = await self.transactions.get_by_id(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError("Currency transaction", transaction_id)
        ledger = await self.ledgers.get_owned(transaction.currency_ledger_id, user_id)
        if ledger is None:
            raise TransactionNotFoundError("Currency transaction", transaction_id)
        return transaction

    # ==================== WRITE ====================

    async def create_transaction(
        self,
        request: CurrencyTransactionRequest,
        user_id: int,
    ) -> CurrencyTransaction:
        """
        Append a manual entry to a ledger.

        Raises:
            ValidationError: related trade id supplied, or bad amounts
            CurrencyLedgerNotFoundError: ledger unknown or not owned
            BusinessRuleError: type not allowed for the ledger currency
        """
        if request.related_stock_transaction_id is not None:
            raise ValidationError(
                policy.RELATED_TRADE_NOT_ALLOWED,
                field="related_stock_transaction_id",
            )
        transaction_date = policy.ensure_transaction_date(request.transaction_date)
        amounts = policy.normalize_amounts(
            request.transaction_type,
            request.foreign_amount,
            request.home_amount,
            request.exchange_rate,
        )
        notes = policy.normalize_notes(request.notes)

        ledger = await self.get_owned_ledger(request.currency_ledger_id, user_id)
        policy.ensure_allowed_for_ledger(
            ledger.currency_code, ledger.home_currency, request.transaction_type
        )

        async with self.locks.hold(ledger.id):
            try:
                await self.ledgers.get_for_update(ledger.id)
                entry = await self.transactions.create(CurrencyTransaction(
                    currency_ledger_id=ledger.id,
                    transaction_date=transaction_date,
                    transaction_type=request.transaction_type,
                    foreign_amount=amounts.foreign_amount,
                    home_amount=amounts.home_amount,
                    exchange_rate=amounts.exchange_rate,
                    notes=notes,
                ))
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info(
            f"Ledger {ledger.id}: {entry.transaction_type.value} {entry.foreign_amount} "
            f"{ledger.currency_code} on {entry.transaction_date}"
        )
        self.notifier.publish(ChangeEvent(
            kind=ChangeKind.LEDGER_ENTRY_CREATED,
            user_id=user_id,
            ledger_id=ledger.id,
            transaction_id=entry.id,
            transaction_date=entry.transaction_date,
        ))
        return entry

    async def update_notes(
        self,
        transaction_id: int,
        notes: Optional[str],
        user_id: int,
    ) -> CurrencyTransaction:
        """
        Edit the note of a manual entry. Financial fields are immutable.

        Raises:
            LockedTransactionError: entry belongs to a trade
        """
        transaction = await self._get_owned_transaction(transaction_id, user_id)
        if transaction.is_locked:
            raise LockedTransactionError(policy.EDIT_LOCKED_MESSAGE)

        transaction.notes = policy.normalize_notes(notes)
        await self.db.flush()
        await self.db.commit()
        await self.db.refresh(transaction)

        self.notifier.publish(ChangeEvent(
            kind=ChangeKind.LEDGER_ENTRY_UPDATED,
            user_id=user_id,
            ledger_id=transaction.currency_ledger_id,
            transaction_id=transaction.id,
        ))
        return transaction

    async def delete_transaction(self, transaction_id: int, user_id: int) -> None:
        """
        Delete a manual entry.

        Raises:
            LockedTransactionError: entry belongs to a trade; delete the
                trade instead
        """
        transaction = await self._get_owned_transaction(transaction_id, user_id)
        if transaction.is_locked:
            raise LockedTransactionError(policy.DELETE_LOCKED_MESSAGE)

        ledger_id = transaction.currency_ledger_id
        transaction_date = transaction.transaction_date
        async with self.locks.hold(ledger_id):
            try:
                await self.ledgers.get_for_update(ledger_id)
                await self.transactions.delete(transaction)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info(f"Ledger {ledger_id}: deleted entry {transaction_id}")
        self.notifier.publish(ChangeEvent(
            kind=ChangeKind.LEDGER_ENTRY_DELETED,
            user_id=user_id,
            ledger_id=ledger_id,
            transaction_id=transaction_id,
            transaction_date=transaction_date,
        ))
