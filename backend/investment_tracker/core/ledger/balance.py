"""
Ledger Balance Accumulator

Replays an append-only currency transaction log into balances and a
moving-average cost basis. All functions are pure folds: callers pass
entries already sorted by date ascending with ties in insertion order,
and nothing here re-sorts.

Balance rule:
- Increase: ExchangeBuy, InitialBalance, Deposit, Interest, OtherIncome
- Decrease: ExchangeSell, Spend, Withdraw, OtherExpense
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from investment_tracker.db.models.currency_transaction import (
    CurrencyTransaction,
    CurrencyTransactionType,
)
from investment_tracker.utils.currency import round_money, round_rate, to_decimal
from investment_tracker.utils.exceptions import UnknownTransactionTypeError


INCREASING_TYPES = frozenset({
    CurrencyTransactionType.EXCHANGE_BUY,
    CurrencyTransactionType.INITIAL_BALANCE,
    CurrencyTransactionType.DEPOSIT,
    CurrencyTransactionType.INTEREST,
    CurrencyTransactionType.OTHER_INCOME,
})

DECREASING_TYPES = frozenset({
    CurrencyTransactionType.EXCHANGE_SELL,
    CurrencyTransactionType.SPEND,
    CurrencyTransactionType.WITHDRAW,
    CurrencyTransactionType.OTHER_EXPENSE,
})

# Inflows that carry a home-currency cost when one is recorded
_COSTED_INFLOWS = frozenset({
    CurrencyTransactionType.EXCHANGE_BUY,
    CurrencyTransactionType.INITIAL_BALANCE,
    CurrencyTransactionType.DEPOSIT,
    CurrencyTransactionType.OTHER_INCOME,
})


def _coerce_type(transaction_type) -> CurrencyTransactionType:
    if isinstance(transaction_type, CurrencyTransactionType):
        return transaction_type
    try:
        return CurrencyTransactionType(transaction_type)
    except ValueError:
        raise UnknownTransactionTypeError(transaction_type) from None


def signed_amount(transaction_type, amount) -> Decimal:
    """
    Apply the balance rule to a positive amount.

    Raises:
        UnknownTransactionTypeError: kind outside the supported set
    """
    kind = _coerce_type(transaction_type)
    value = to_decimal(amount)
    if kind in INCREASING_TYPES:
        return value
    if kind in DECREASING_TYPES:
        return -value
    raise UnknownTransactionTypeError(transaction_type)


def balance_change(transaction: CurrencyTransaction) -> Decimal:
    """Signed effect of one entry on its ledger balance."""
    return signed_amount(transaction.transaction_type, transaction.foreign_amount)


@dataclass
class LedgerBalancePoint:
    """Ledger balance right after one entry."""
    transaction: CurrencyTransaction
    change: Decimal
    balance: Decimal

    @property
    def transaction_date(self) -> date:
        return self.transaction.transaction_date


def running_balances(transactions: Iterable[CurrencyTransaction]) -> List[LedgerBalancePoint]:
    """Balance after each entry, in the order given."""
    points = []
    balance = Decimal("0")
    for tx in transactions:
        change = balance_change(tx)
        balance += change
        points.append(LedgerBalancePoint(transaction=tx, change=change, balance=balance))
    return points


def calculate_balance(transactions: Iterable[CurrencyTransaction]) -> Decimal:
    """Current ledger balance. May be negative."""
    return sum((balance_change(tx) for tx in transactions), Decimal("0"))


def balance_as_of(transactions: Iterable[CurrencyTransaction], as_of: date) -> Decimal:
    """Ledger balance at the end of a day."""
    return calculate_balance(tx for tx in transactions if tx.transaction_date <= as_of)


@dataclass
class CostBasis:
    """Moving-average cost of the foreign units held in a ledger."""
    balance: Decimal = Decimal("0")
    total_cost_home: Decimal = Decimal("0")
    average_cost: Decimal = Decimal("0")
    realized_pnl_home: Decimal = Decimal("0")
    total_exchanged_home: Decimal = Decimal("0")
    total_spent_on_stocks: Decimal = Decimal("0")
    total_interest: Decimal = Decimal("0")


def calculate_cost_basis(transactions: Iterable[CurrencyTransaction]) -> CostBasis:
    """
    Fold the log into a moving-average cost basis (home currency per unit).

    ExchangeBuy and costed inflows add their home amount to cost; Interest
    adds units at zero cost. Every decrease removes cost at the running
    average; ExchangeSell also realizes proceeds minus that cost.
    """
    units = Decimal("0")
    cost = Decimal("0")
    realized = Decimal("0")
    exchanged = Decimal("0")
    spent_on_stocks = Decimal("0")
    interest = Decimal("0")

    for tx in transactions:
        kind = _coerce_type(tx.transaction_type)
        amount = to_decimal(tx.foreign_amount)
        change = signed_amount(kind, amount)

        if change >= 0:
            if kind in _COSTED_INFLOWS:
                home = tx.home_value
                if home is not None:
                    cost += home
                    if kind == CurrencyTransactionType.EXCHANGE_BUY:
                        exchanged += home
            elif kind == CurrencyTransactionType.INTEREST:
                interest += amount
            units += amount
            continue

        if units > 0:
            removed_cost = cost / units * min(amount, units)
            if kind == CurrencyTransactionType.EXCHANGE_SELL:
                proceeds = tx.home_value or Decimal("0")
                realized += proceeds - removed_cost
            cost -= removed_cost
        if kind == CurrencyTransactionType.SPEND and tx.related_stock_transaction_id is not None:
            spent_on_stocks += amount
        units -= amount
        if units <= 0:
            cost = Decimal("0")

    average = round_rate(cost / units) if units > 0 else Decimal("0")
    return CostBasis(
        balance=units,
        total_cost_home=round_money(cost),
        average_cost=average,
        realized_pnl_home=round_money(realized),
        total_exchanged_home=round_money(exchanged),
        total_spent_on_stocks=spent_on_stocks,
        total_interest=interest,
    )


@dataclass
class LedgerSummary:
    """Balance, cost basis and running balances of a ledger."""
    ledger_id: Optional[int]
    currency_code: str
    balance: Decimal
    cost_basis: CostBasis
    running_balances: List[LedgerBalancePoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "ledger_id": self.ledger_id,
            "currency_code": self.currency_code,
            "balance": self.balance,
            "average_cost": self.cost_basis.average_cost,
            "total_cost_home": self.cost_basis.total_cost_home,
            "realized_pnl_home": self.cost_basis.realized_pnl_home,
            "total_exchanged_home": self.cost_basis.total_exchanged_home,
            "total_spent_on_stocks": self.cost_basis.total_spent_on_stocks,
            "total_interest": self.cost_basis.total_interest,
        }


def summarize_ledger(
    transactions: Sequence[CurrencyTransaction],
    currency_code: str,
    ledger_id: Optional[int] = None,
) -> LedgerSummary:
    """Full read model of a ledger from its log."""
    points = running_balances(transactions)
    balance = points[-1].balance if points else Decimal("0")
    return LedgerSummary(
        ledger_id=ledger_id,
        currency_code=currency_code,
        balance=balance,
        cost_basis=calculate_cost_basis(transactions),
        running_balances=points,
    )
