"""
Investment Tracker - Stock Transaction Endpoints

Trade recording with the bound ledger entry written in the same unit.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from investment_tracker.core.ledger.locks import LedgerLockRegistry
from investment_tracker.core.portfolio.service import PortfolioService
from investment_tracker.core.trading.orchestrator import TradeOrchestrator, TradeRequest, TradeResult
from investment_tracker.db.models.stock_transaction import BalanceAction, StockMarket, StockTransactionType
from investment_tracker.db.repositories.stock_transaction import StockTransactionRepository
from investment_tracker.dependencies import get_current_user_id, get_db, get_locks, get_notifier
from investment_tracker.api.v1.endpoints.currency_transactions import CurrencyTransactionResponse
from investment_tracker.services.change_notifier import ChangeNotifier

router = APIRouter()


# ==================== SCHEMAS ====================

class StockTransactionCreate(BaseModel):
    """Request to record a trade."""
    portfolio_id: int = Field(..., description="Portfolio ID")
    transaction_date: date = Field(..., description="Trade date")
    ticker: str = Field(..., min_length=1, max_length=20, description="Ticker symbol")
    transaction_type: StockTransactionType = Field(..., description="buy or sell")
    shares: Decimal = Field(..., description="Number of shares")
    price_per_share: Decimal = Field(..., description="Price in trade currency")
    fees: Decimal = Field(default=Decimal("0"), description="Fees in trade currency")
    currency: Optional[str] = Field(None, description="Trade currency (defaults from market)")
    exchange_rate: Optional[Decimal] = Field(None, description="Trade currency -> home rate")
    market: Optional[StockMarket] = Field(None, description="Market (guessed from ticker)")
    balance_action: BalanceAction = Field(default=BalanceAction.NONE, description="none or margin")
    notes: Optional[str] = Field(None, description="Notes")
    skip_ledger: bool = Field(default=False, description="Record the trade without a ledger entry")

    def to_request(self) -> TradeRequest:
        return TradeRequest(
            portfolio_id=self.portfolio_id,
            transaction_date=self.transaction_date,
            ticker=self.ticker,
            transaction_type=self.transaction_type,
            shares=self.shares,
            price_per_share=self.price_per_share,
            fees=self.fees,
            currency=self.currency,
            exchange_rate=self.exchange_rate,
            market=self.market,
            balance_action=self.balance_action,
            notes=self.notes,
            skip_ledger=self.skip_ledger,
        )


class StockTransactionResponse(BaseModel):
    """Recorded trade."""
    id: int
    portfolio_id: int
    transaction_date: date
    ticker: str
    transaction_type: StockTransactionType
    shares: Decimal
    price_per_share: Decimal
    fees: Decimal
    exchange_rate: Optional[Decimal]
    currency: str
    market: StockMarket
    balance_action: BalanceAction
    realized_pnl_home: Optional[Decimal]
    notes: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class TradeResponse(BaseModel):
    """Trade together with its ledger effect."""
    stock_transaction: StockTransactionResponse
    currency_transaction: Optional[CurrencyTransactionResponse]
    currency_ledger_id: int
    ledger_balance: Decimal


def _trade_response(result: TradeResult) -> TradeResponse:
    return TradeResponse(
        stock_transaction=StockTransactionResponse.model_validate(result.stock_transaction),
        currency_transaction=(
            CurrencyTransactionResponse.model_validate(result.currency_transaction)
            if result.currency_transaction is not None else None
        ),
        currency_ledger_id=result.currency_ledger_id,
        ledger_balance=result.ledger_balance,
    )


# ==================== ENDPOINTS ====================

@router.get("/", response_model=List[StockTransactionResponse])
async def list_stock_transactions(
    portfolio_id: int = Query(..., description="Portfolio ID"),
    ticker: Optional[str] = Query(None, description="Filter by ticker"),
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """List trades of a portfolio in replay order."""
    await PortfolioService(db).get_portfolio(portfolio_id, user_id)
    trades = await StockTransactionRepository(db).get_by_portfolio(
        portfolio_id, ticker=ticker.strip().upper() if ticker else None
    )
    return [StockTransactionResponse.model_validate(t) for t in trades]


@router.post("/", response_model=TradeResponse, status_code=status.HTTP_201_CREATED)
async def create_stock_transaction(
    payload: StockTransactionCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    notifier: ChangeNotifier = Depends(get_notifier),
    locks: LedgerLockRegistry = Depends(get_locks),
):
    """
    Record a trade.

    A Buy writes a Spend entry to the bound ledger, a Sell an OtherIncome
    entry of its net proceeds. Both rows are committed together.
    """
    orchestrator = TradeOrchestrator(db, notifier=notifier, locks=locks)
    result = await orchestrator.execute_trade(payload.to_request(), user_id)
    return _trade_response(result)


@router.put("/{transaction_id}", response_model=TradeResponse)
async def replace_stock_transaction(
    transaction_id: int,
    payload: StockTransactionCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    notifier: ChangeNotifier = Depends(get_notifier),
    locks: LedgerLockRegistry = Depends(get_locks),
):
    """Replace a trade and its ledger entry."""
    orchestrator = TradeOrchestrator(db, notifier=notifier, locks=locks)
    result = await orchestrator.replace_trade(transaction_id, payload.to_request(), user_id)
    return _trade_response(result)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_stock_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    notifier: ChangeNotifier = Depends(get_notifier),
    locks: LedgerLockRegistry = Depends(get_locks),
):
    """Delete a trade together with its ledger entry."""
    orchestrator = TradeOrchestrator(db, notifier=notifier, locks=locks)
    await orchestrator.delete_trade(transaction_id, user_id)
