"""
Model factories for calculator tests.

Build unsaved ORM instances with every column the pure calculators read.
"""
from datetime import date
from decimal import Decimal
from itertools import count
from typing import Optional

from investment_tracker.db.models.currency_transaction import CurrencyTransaction, CurrencyTransactionType
from investment_tracker.db.models.stock_transaction import (
    BalanceAction,
    StockMarket,
    StockTransaction,
    StockTransactionType,
)


_ids = count(1)


def make_trade(
    ticker: str = "AAPL",
    transaction_type: StockTransactionType = StockTransactionType.BUY,
    shares="10",
    price="50",
    fees="0",
    transaction_date: date = date(2024, 1, 10),
    exchange_rate=None,
    currency: str = "USD",
    market: StockMarket = StockMarket.US,
    portfolio_id: int = 1,
    id: Optional[int] = None,
) -> StockTransaction:
    """Unsaved trade with every column the calculators read."""
    return StockTransaction(
        id=id if id is not None else next(_ids),
        portfolio_id=portfolio_id,
        transaction_date=transaction_date,
        ticker=ticker,
        transaction_type=transaction_type,
        shares=Decimal(shares),
        price_per_share=Decimal(price),
        fees=Decimal(fees),
        exchange_rate=Decimal(exchange_rate) if exchange_rate is not None else None,
        currency=currency,
        market=market,
        balance_action=BalanceAction.NONE,
    )


def make_entry(
    transaction_type: CurrencyTransactionType,
    amount,
    transaction_date: date = date(2024, 1, 1),
    home_amount=None,
    exchange_rate=None,
    related_stock_transaction_id: Optional[int] = None,
    ledger_id: int = 1,
    id: Optional[int] = None,
) -> CurrencyTransaction:
    """Unsaved ledger entry."""
    return CurrencyTransaction(
        id=id if id is not None else next(_ids),
        currency_ledger_id=ledger_id,
        transaction_date=transaction_date,
        transaction_type=transaction_type,
        foreign_amount=Decimal(amount),
        home_amount=Decimal(home_amount) if home_amount is not None else None,
        exchange_rate=Decimal(exchange_rate) if exchange_rate is not None else None,
        related_stock_transaction_id=related_stock_transaction_id,
    )
