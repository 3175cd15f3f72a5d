"""
Investment Tracker - Repositories
"""
from investment_tracker.db.repositories.portfolio import PortfolioRepository
from investment_tracker.db.repositories.currency_ledger import CurrencyLedgerRepository
from investment_tracker.db.repositories.currency_transaction import CurrencyTransactionRepository
from investment_tracker.db.repositories.stock_transaction import StockTransactionRepository

__all__ = [
    "PortfolioRepository",
    "CurrencyLedgerRepository",
    "CurrencyTransactionRepository",
    "StockTransactionRepository",
]
