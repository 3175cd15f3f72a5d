"""
External Cash Flow Classification

Only money crossing the portfolio boundary counts as a cash flow for
return calculations. Two sources:

- Bound ledger (default): InitialBalance, Deposit, OtherIncome (+),
  Withdraw, OtherExpense (-), plus ExchangeBuy (+) / ExchangeSell (-)
  on a ledger not denominated in the home currency. Trade-linked
  entries, Interest and manual Spend stay inside the portfolio. Trades
  that never touched the ledger were funded from outside, so a Buy
  without a linked entry counts as a contribution and a Sell as a
  withdrawal.
- Trades (portfolio without an active ledger): every Buy is a
  contribution of its total cost, every Sell a withdrawal of its net
  proceeds.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional, Sequence

from investment_tracker.db.models.currency_transaction import CurrencyTransaction, CurrencyTransactionType
from investment_tracker.db.models.stock_transaction import StockTransaction, StockTransactionType
from investment_tracker.utils.currency import to_decimal

# currency -> home rate on a date
FxLookup = Callable[[date], Optional[Decimal]]


ALWAYS_EXTERNAL = frozenset({
    CurrencyTransactionType.INITIAL_BALANCE,
    CurrencyTransactionType.DEPOSIT,
    CurrencyTransactionType.WITHDRAW,
    CurrencyTransactionType.OTHER_INCOME,
    CurrencyTransactionType.OTHER_EXPENSE,
})

EXCHANGE_EXTERNAL = frozenset({
    CurrencyTransactionType.EXCHANGE_BUY,
    CurrencyTransactionType.EXCHANGE_SELL,
})

OUTFLOW_TYPES = frozenset({
    CurrencyTransactionType.WITHDRAW,
    CurrencyTransactionType.OTHER_EXPENSE,
    CurrencyTransactionType.EXCHANGE_SELL,
})


@dataclass(frozen=True)
class ExternalCashFlow:
    """Signed flow in source and (when known) home currency."""
    transaction_date: date
    amount_source: Decimal
    amount_home: Optional[Decimal]
    source: str
    transaction_id: Optional[int] = None


def is_external_ledger_flow(transaction: CurrencyTransaction, ledger_is_home_currency: bool) -> bool:
    if transaction.related_stock_transaction_id is not None:
        return False
    kind = transaction.transaction_type
    if kind in ALWAYS_EXTERNAL:
        return True
    if kind in EXCHANGE_EXTERNAL:
        return not ledger_is_home_currency
    return False


def ledger_flow_sign(transaction_type: CurrencyTransactionType) -> int:
    return -1 if transaction_type in OUTFLOW_TYPES else 1


def _home_amount(
    amount_source: Decimal,
    recorded_home: Optional[Decimal],
    currency: str,
    home_currency: str,
    on_date: date,
    fx_lookup: Optional[FxLookup],
) -> Optional[Decimal]:
    if recorded_home is not None:
        return recorded_home
    if currency == home_currency:
        return amount_source
    rate = fx_lookup(on_date) if fx_lookup else None
    return amount_source * rate if rate is not None else None


class CashFlowStrategy(ABC):
    """Source of external cash-flow events for a portfolio."""

    name: str = "base"

    @abstractmethod
    def get_cash_flows(
        self,
        period_start: date,
        period_end: date,
        currency: str,
        home_currency: str,
        stock_transactions: Sequence[StockTransaction],
        ledger_transactions: Sequence[CurrencyTransaction],
        fx_lookup: Optional[FxLookup] = None,
    ) -> List[ExternalCashFlow]:
        ...


class CurrencyLedgerCashFlowStrategy(CashFlowStrategy):
    """External flows recorded in the bound ledger."""

    name = "currency_ledger"

    def get_cash_flows(
        self,
        period_start,
        period_end,
        currency,
        home_currency,
        stock_transactions,
        ledger_transactions,
        fx_lookup=None,
    ):
        ledger_is_home = currency == home_currency
        linked_trade_ids = {
            tx.related_stock_transaction_id
            for tx in ledger_transactions
            if tx.related_stock_transaction_id is not None
        }

        flows = []
        for tx in ledger_transactions:
            if not (period_start <= tx.transaction_date <= period_end):
                continue
            if not is_external_ledger_flow(tx, ledger_is_home):
                continue
            sign = ledger_flow_sign(tx.transaction_type)
            amount = to_decimal(tx.foreign_amount) * sign
            home_value = tx.home_value
            flows.append(ExternalCashFlow(
                transaction_date=tx.transaction_date,
                amount_source=amount,
                amount_home=_home_amount(
                    amount,
                    home_value * sign if home_value is not None else None,
                    currency,
                    home_currency,
                    tx.transaction_date,
                    fx_lookup,
                ),
                source=self.name,
                transaction_id=tx.id,
            ))

        for trade in stock_transactions:
            if trade.id in linked_trade_ids:
                continue
            if not (period_start <= trade.transaction_date <= period_end):
                continue
            flow = _trade_flow(trade, currency, home_currency, fx_lookup)
            if flow is not None:
                flows.append(flow)

        flows.sort(key=lambda f: f.transaction_date)
        return flows


class StockTransactionCashFlowStrategy(CashFlowStrategy):
    """Every trade is an external flow."""

    name = "stock_transaction"

    def get_cash_flows(
        self,
        period_start,
        period_end,
        currency,
        home_currency,
        stock_transactions,
        ledger_transactions,
        fx_lookup=None,
    ):
        flows = []
        for trade in stock_transactions:
            if not (period_start <= trade.transaction_date <= period_end):
                continue
            flow = _trade_flow(trade, currency, home_currency, fx_lookup)
            if flow is not None:
                flows.append(flow)
        return flows


def _trade_flow(
    trade: StockTransaction,
    currency: str,
    home_currency: str,
    fx_lookup: Optional[FxLookup],
) -> Optional[ExternalCashFlow]:
    if trade.transaction_type == StockTransactionType.BUY:
        amount = trade.total_cost_source
    else:
        amount = -trade.net_proceeds
    if amount == 0:
        return None
    recorded_home = amount * to_decimal(trade.exchange_rate) if trade.exchange_rate is not None else None
    return ExternalCashFlow(
        transaction_date=trade.transaction_date,
        amount_source=amount,
        amount_home=_home_amount(amount, recorded_home, currency, home_currency, trade.transaction_date, fx_lookup),
        source="stock_transaction",
        transaction_id=trade.id,
    )


def select_cash_flow_strategy(has_active_ledger: bool) -> CashFlowStrategy:
    if has_active_ledger:
        return CurrencyLedgerCashFlowStrategy()
    return StockTransactionCashFlowStrategy()
