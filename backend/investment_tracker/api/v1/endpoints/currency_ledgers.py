"""
Investment Tracker - Currency Ledger Endpoints
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from investment_tracker.api.v1.endpoints.currency_transactions import CurrencyTransactionResponse
from investment_tracker.core.ledger.service import CurrencyLedgerService
from investment_tracker.db.repositories.currency_ledger import CurrencyLedgerRepository
from investment_tracker.dependencies import get_current_user_id, get_db

router = APIRouter()


# ==================== SCHEMAS ====================

class CurrencyLedgerResponse(BaseModel):
    """Currency ledger."""
    id: int
    currency_code: str
    name: str
    home_currency: str
    is_active: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class RunningBalanceResponse(BaseModel):
    """Balance right after one entry."""
    transaction_id: int
    transaction_date: date
    change: Decimal
    balance: Decimal


class LedgerSummaryResponse(BaseModel):
    """Balance and moving-average cost of a ledger."""
    ledger_id: int
    currency_code: str
    balance: Decimal
    average_cost: Decimal
    total_cost_home: Decimal
    realized_pnl_home: Decimal
    total_exchanged_home: Decimal
    total_spent_on_stocks: Decimal
    total_interest: Decimal
    running_balances: List[RunningBalanceResponse]


# ==================== ENDPOINTS ====================

@router.get("/", response_model=List[CurrencyLedgerResponse])
async def list_currency_ledgers(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """List the caller's ledgers."""
    ledgers = await CurrencyLedgerRepository(db).get_by_user(user_id)
    return [CurrencyLedgerResponse.model_validate(ledger) for ledger in ledgers]


@router.get("/{ledger_id}/transactions", response_model=List[CurrencyTransactionResponse])
async def list_ledger_transactions(
    ledger_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Ledger log in replay order."""
    entries = await CurrencyLedgerService(db).get_transactions(ledger_id, user_id)
    return [CurrencyTransactionResponse.model_validate(entry) for entry in entries]


@router.get("/{ledger_id}/summary", response_model=LedgerSummaryResponse)
async def get_ledger_summary(
    ledger_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """
    Balance, cost basis and running balances.

    Always recomputed from the ledger log.
    """
    summary = await CurrencyLedgerService(db).get_summary(ledger_id, user_id)
    return LedgerSummaryResponse(
        **summary.to_dict(),
        running_balances=[
            RunningBalanceResponse(
                transaction_id=point.transaction.id,
                transaction_date=point.transaction_date,
                change=point.change,
                balance=point.balance,
            )
            for point in summary.running_balances
        ],
    )
