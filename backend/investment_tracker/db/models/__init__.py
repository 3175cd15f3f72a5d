"""
Investment Tracker - Database Models
"""
from investment_tracker.db.models.currency_ledger import CurrencyLedger
from investment_tracker.db.models.portfolio import Portfolio
from investment_tracker.db.models.stock_transaction import (
    StockTransaction,
    StockTransactionType,
    StockMarket,
    BalanceAction,
)
from investment_tracker.db.models.currency_transaction import (
    CurrencyTransaction,
    CurrencyTransactionType,
    ManualEntry,
    DerivedFromTrade,
    TransactionOrigin,
)

__all__ = [
    "CurrencyLedger",
    "Portfolio",
    "StockTransaction",
    "StockTransactionType",
    "StockMarket",
    "BalanceAction",
    "CurrencyTransaction",
    "CurrencyTransactionType",
    "ManualEntry",
    "DerivedFromTrade",
    "TransactionOrigin",
]
