"""
Position Calculator

Derives per-ticker positions from the trade history using the moving
average cost method, in both trade (source) and home currency. Positions
are never stored.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from investment_tracker.db.models.stock_transaction import StockTransaction, StockTransactionType
from investment_tracker.utils.currency import round_money, to_decimal


ZERO = Decimal("0")


@dataclass
class StockPosition:
    """Open position of one ticker."""
    ticker: str
    total_shares: Decimal = ZERO
    total_cost_source: Decimal = ZERO
    total_cost_home: Decimal = ZERO
    realized_pnl_home: Decimal = ZERO

    @property
    def average_cost_source(self) -> Decimal:
        if self.total_shares <= 0:
            return ZERO
        return self.total_cost_source / self.total_shares

    @property
    def average_cost_home(self) -> Decimal:
        if self.total_shares <= 0:
            return ZERO
        return self.total_cost_home / self.total_shares

    @property
    def is_open(self) -> bool:
        return self.total_shares > 0

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "total_shares": self.total_shares,
            "total_cost_source": round_money(self.total_cost_source),
            "total_cost_home": round_money(self.total_cost_home),
            "average_cost_source": self.average_cost_source,
            "average_cost_home": self.average_cost_home,
            "realized_pnl_home": round_money(self.realized_pnl_home),
        }


@dataclass
class UnrealizedPnl:
    current_value_home: Decimal
    unrealized_pnl_home: Decimal
    percentage: Decimal


def calculate_realized_pnl(
    position_before_sell: StockPosition,
    sell: StockTransaction,
) -> Optional[Decimal]:
    """
    Realized P&L (home currency) of a sell at the position's average cost.

    Proceeds are (subtotal - fees) x exchange rate; without a rate the
    result is unknown and None is returned.
    """
    if sell.transaction_type != StockTransactionType.SELL:
        raise ValueError("Transaction must be a sell transaction")
    if sell.exchange_rate is None:
        return None
    cost_basis = to_decimal(sell.shares) * position_before_sell.average_cost_home
    proceeds = sell.net_proceeds * to_decimal(sell.exchange_rate)
    return proceeds - cost_basis


def apply_transaction(position: StockPosition, transaction: StockTransaction) -> StockPosition:
    """Fold one trade into a position (in place) and return it."""
    shares = to_decimal(transaction.shares)
    if transaction.transaction_type == StockTransactionType.BUY:
        position.total_shares += shares
        position.total_cost_source += transaction.total_cost_source
        position.total_cost_home += transaction.total_cost_home or ZERO
    elif transaction.transaction_type == StockTransactionType.SELL:
        if position.total_shares > 0:
            realized = calculate_realized_pnl(position, transaction)
            if realized is not None:
                position.realized_pnl_home += realized
            avg_source = position.average_cost_source
            avg_home = position.average_cost_home
            position.total_cost_source -= shares * avg_source
            position.total_cost_home -= shares * avg_home
            position.total_shares -= shares
        # Clamp rounding residue and oversells
        position.total_shares = max(ZERO, position.total_shares)
        position.total_cost_source = max(ZERO, position.total_cost_source)
        position.total_cost_home = max(ZERO, position.total_cost_home)
        if position.total_shares == 0:
            position.total_cost_source = ZERO
            position.total_cost_home = ZERO
    return position


def calculate_position(
    ticker: str,
    transactions: Iterable[StockTransaction],
    as_of: Optional[date] = None,
) -> StockPosition:
    """
    Position of one ticker from trades sorted by date, then insertion.

    Args:
        ticker: Ticker symbol
        transactions: Trade history (other tickers are ignored)
        as_of: Optional inclusive cutoff date
    """
    symbol = ticker.strip().upper()
    position = StockPosition(ticker=symbol)
    for tx in transactions:
        if tx.ticker != symbol:
            continue
        if as_of is not None and tx.transaction_date > as_of:
            continue
        apply_transaction(position, tx)
    return position


def calculate_positions(
    transactions: Iterable[StockTransaction],
    as_of: Optional[date] = None,
    open_only: bool = False,
) -> Dict[str, StockPosition]:
    """All positions by ticker, in first-trade order."""
    positions: Dict[str, StockPosition] = {}
    for tx in transactions:
        if as_of is not None and tx.transaction_date > as_of:
            continue
        position = positions.get(tx.ticker)
        if position is None:
            position = positions[tx.ticker] = StockPosition(ticker=tx.ticker)
        apply_transaction(position, tx)
    if open_only:
        return {ticker: p for ticker, p in positions.items() if p.is_open}
    return positions


def calculate_unrealized_pnl(
    position: StockPosition,
    current_price: Decimal,
    exchange_rate: Decimal,
) -> UnrealizedPnl:
    if position.total_shares == 0:
        return UnrealizedPnl(ZERO, ZERO, ZERO)
    value_home = position.total_shares * to_decimal(current_price) * to_decimal(exchange_rate)
    pnl = value_home - position.total_cost_home
    percentage = pnl / position.total_cost_home * 100 if position.total_cost_home > 0 else ZERO
    return UnrealizedPnl(value_home, pnl, percentage)


def held_tickers(transactions: Iterable[StockTransaction], as_of: date) -> List[str]:
    """Tickers with shares held at the end of a day."""
    return list(calculate_positions(transactions, as_of=as_of, open_only=True).keys())
