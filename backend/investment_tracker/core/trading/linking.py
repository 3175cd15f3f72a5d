"""
Trade / Ledger Linking Rules

Shared rules between a stock trade and the ledger entry it derives:
- the trade currency must equal the bound ledger currency
- Buy -> Spend of subtotal + fees
- Sell -> OtherIncome of subtotal - fees, only when positive
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from investment_tracker.db.models.currency_ledger import CurrencyLedger
from investment_tracker.db.models.currency_transaction import CurrencyTransaction, CurrencyTransactionType
from investment_tracker.db.models.stock_transaction import StockTransaction, StockTransactionType
from investment_tracker.utils.currency import normalize_currency, round_amount, round_money
from investment_tracker.utils.exceptions import CurrencyMismatchError


@dataclass
class LinkedEntrySpec:
    """Ledger entry a trade will write."""
    transaction_type: CurrencyTransactionType
    amount: Decimal
    notes: str


def ensure_currency_matches_ledger(trade_currency: str, ledger: CurrencyLedger) -> None:
    """
    Raises:
        CurrencyMismatchError: message names both currencies
    """
    if normalize_currency(trade_currency) != normalize_currency(ledger.currency_code):
        raise CurrencyMismatchError(trade_currency, ledger.currency_code)


def _format_shares(shares) -> str:
    return format(Decimal(shares).normalize(), "f")


def build_linked_entry_spec(trade: StockTransaction) -> Optional[LinkedEntrySpec]:
    """Ledger entry for a trade, or None when a sell nets nothing."""
    shares = _format_shares(trade.shares)
    if trade.transaction_type == StockTransactionType.BUY:
        return LinkedEntrySpec(
            transaction_type=CurrencyTransactionType.SPEND,
            amount=round_amount(trade.total_cost_source),
            notes=f"Stock purchase: {trade.ticker} x {shares}",
        )

    net_proceeds = trade.net_proceeds
    if net_proceeds > 0:
        return LinkedEntrySpec(
            transaction_type=CurrencyTransactionType.OTHER_INCOME,
            amount=round_amount(net_proceeds),
            notes=f"Stock sale: {trade.ticker} x {shares}",
        )
    return None


def build_linked_entry(
    trade: StockTransaction,
    ledger: CurrencyLedger,
) -> Optional[CurrencyTransaction]:
    """Unsaved ledger entry derived from a saved trade."""
    spec = build_linked_entry_spec(trade)
    if spec is None:
        return None

    home_amount = None
    exchange_rate = None
    if trade.exchange_rate is not None:
        exchange_rate = Decimal(trade.exchange_rate)
        home_amount = round_money(spec.amount * exchange_rate)

    return CurrencyTransaction(
        currency_ledger_id=ledger.id,
        transaction_date=trade.transaction_date,
        transaction_type=spec.transaction_type,
        foreign_amount=spec.amount,
        home_amount=home_amount,
        exchange_rate=exchange_rate,
        related_stock_transaction_id=trade.id,
        notes=spec.notes,
    )
