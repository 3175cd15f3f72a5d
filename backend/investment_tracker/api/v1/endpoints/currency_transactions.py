"""
Investment Tracker - Currency Transaction Endpoints

Manual ledger entries. Entries created by trades are read-only here.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from investment_tracker.core.ledger.locks import LedgerLockRegistry
from investment_tracker.core.ledger.service import CurrencyLedgerService, CurrencyTransactionRequest
from investment_tracker.db.models.currency_transaction import CurrencyTransactionType
from investment_tracker.dependencies import get_current_user_id, get_db, get_locks, get_notifier
from investment_tracker.services.change_notifier import ChangeNotifier

router = APIRouter()


# ==================== SCHEMAS ====================

class CurrencyTransactionCreate(BaseModel):
    """Request to append a manual ledger entry."""
    currency_ledger_id: int = Field(..., description="Ledger ID")
    transaction_date: date = Field(..., description="Entry date")
    transaction_type: CurrencyTransactionType = Field(..., description="Entry kind")
    foreign_amount: Decimal = Field(..., description="Amount in ledger currency")
    home_amount: Optional[Decimal] = Field(None, description="Amount in home currency")
    exchange_rate: Optional[Decimal] = Field(None, description="Ledger currency -> home rate")
    notes: Optional[str] = Field(None, description="Notes")
    related_stock_transaction_id: Optional[int] = Field(
        None, description="Not accepted: only trades create linked entries"
    )


class CurrencyTransactionUpdate(BaseModel):
    """Editable fields of a manual entry."""
    notes: Optional[str] = Field(None, description="Notes")


class CurrencyTransactionResponse(BaseModel):
    """Ledger entry."""
    id: int
    currency_ledger_id: int
    transaction_date: date
    transaction_type: CurrencyTransactionType
    foreign_amount: Decimal
    home_amount: Optional[Decimal]
    exchange_rate: Optional[Decimal]
    related_stock_transaction_id: Optional[int]
    is_locked: bool
    notes: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


# ==================== ENDPOINTS ====================

@router.post("/", response_model=CurrencyTransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_currency_transaction(
    payload: CurrencyTransactionCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    notifier: ChangeNotifier = Depends(get_notifier),
    locks: LedgerLockRegistry = Depends(get_locks),
):
    """Append a manual entry (deposit, exchange, interest, ...) to a ledger."""
    service = CurrencyLedgerService(db, notifier=notifier, locks=locks)
    entry = await service.create_transaction(
        CurrencyTransactionRequest(**payload.model_dump()),
        user_id,
    )
    return CurrencyTransactionResponse.model_validate(entry)


@router.patch("/{transaction_id}", response_model=CurrencyTransactionResponse)
async def update_currency_transaction(
    transaction_id: int,
    payload: CurrencyTransactionUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    notifier: ChangeNotifier = Depends(get_notifier),
    locks: LedgerLockRegistry = Depends(get_locks),
):
    """Edit the notes of a manual entry."""
    service = CurrencyLedgerService(db, notifier=notifier, locks=locks)
    entry = await service.update_notes(transaction_id, payload.notes, user_id)
    return CurrencyTransactionResponse.model_validate(entry)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_currency_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    notifier: ChangeNotifier = Depends(get_notifier),
    locks: LedgerLockRegistry = Depends(get_locks),
):
    """Delete a manual entry. Trade-linked entries go with their trade."""
    service = CurrencyLedgerService(db, notifier=notifier, locks=locks)
    await service.delete_transaction(transaction_id, user_id)
