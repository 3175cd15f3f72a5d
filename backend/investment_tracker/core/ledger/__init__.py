"""
Currency Ledger Module

Provides:
- Balance and cost-basis folds over the ledger log
- Manual ledger entry rules and service
- Per-ledger write locks
"""
from investment_tracker.core.ledger.balance import (
    INCREASING_TYPES,
    DECREASING_TYPES,
    CostBasis,
    LedgerBalancePoint,
    LedgerSummary,
    balance_as_of,
    balance_change,
    calculate_balance,
    calculate_cost_basis,
    running_balances,
    signed_amount,
    summarize_ledger,
)
from investment_tracker.core.ledger.locks import LedgerLockRegistry, get_ledger_locks
from investment_tracker.core.ledger.service import CurrencyLedgerService, CurrencyTransactionRequest

__all__ = [
    "INCREASING_TYPES",
    "DECREASING_TYPES",
    "CostBasis",
    "LedgerBalancePoint",
    "LedgerSummary",
    "balance_as_of",
    "balance_change",
    "calculate_balance",
    "calculate_cost_basis",
    "running_balances",
    "signed_amount",
    "summarize_ledger",
    "LedgerLockRegistry",
    "get_ledger_locks",
    "CurrencyLedgerService",
    "CurrencyTransactionRequest",
]
