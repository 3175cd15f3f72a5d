"""
Portfolio Valuation

Market value of a portfolio at a date: open positions x price plus the
bound ledger cash balance, in source currency and converted to home
currency.

Snapshot valuations (year start / year end) require caller-supplied
prices; a held ticker without one is reported as a MissingPrice and left
out of the value rather than valued at zero. Intra-year estimates used
to split time-weighted sub-periods fall back through the price source,
the last trade price and the snapshots.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from investment_tracker.core.performance.price_source import (
    FX_MARKET,
    MissingPrice,
    PriceQuote,
    PriceSource,
    PriceType,
)
from investment_tracker.core.trading.positions import StockPosition
from investment_tracker.db.models.stock_transaction import StockTransaction

ZERO = Decimal("0")
ONE = Decimal("1")


@dataclass
class Valuation:
    """Portfolio value at a date."""
    as_of: date
    holdings_source: Decimal = ZERO
    holdings_home: Decimal = ZERO
    cash_source: Decimal = ZERO
    cash_home: Decimal = ZERO
    missing_prices: List[MissingPrice] = field(default_factory=list)

    @property
    def value_source(self) -> Decimal:
        return self.holdings_source + self.cash_source

    @property
    def value_home(self) -> Decimal:
        return self.holdings_home + self.cash_home

    @property
    def is_complete(self) -> bool:
        return not self.missing_prices


def value_snapshot(
    as_of: date,
    positions: Mapping[str, StockPosition],
    markets: Mapping[str, str],
    cash_balance: Decimal,
    currency: str,
    home_currency: str,
    prices: Mapping[str, PriceQuote],
    fx_rate: Optional[Decimal],
    price_type: PriceType,
) -> Valuation:
    """
    Value a portfolio from a required price snapshot.

    Args:
        as_of: Valuation date
        positions: Open positions by ticker
        markets: Market code by ticker (reported with missing prices)
        cash_balance: Bound ledger balance at the date
        currency: Portfolio (ledger) currency
        home_currency: Reporting currency
        prices: Snapshot quotes by ticker
        fx_rate: Portfolio currency -> home rate, if supplied
        price_type: Snapshot being valued
    """
    valuation = Valuation(as_of=as_of)
    same_currency = currency == home_currency
    fallback_rate = ONE if same_currency else fx_rate
    fx_missing = False

    for ticker, position in positions.items():
        if not position.is_open:
            continue
        quote = prices.get(ticker)
        if quote is None:
            valuation.missing_prices.append(
                MissingPrice(ticker=ticker, price_type=price_type, market=markets.get(ticker))
            )
            continue
        value_source = position.total_shares * quote.price
        valuation.holdings_source += value_source

        rate = quote.exchange_rate if quote.exchange_rate is not None else fallback_rate
        if rate is None:
            fx_missing = True
            continue
        valuation.holdings_home += value_source * rate
        if fallback_rate is None:
            fallback_rate = rate

    valuation.cash_source = cash_balance
    if cash_balance != 0:
        if fallback_rate is None:
            fx_missing = True
        else:
            valuation.cash_home = cash_balance * fallback_rate

    if fx_missing:
        valuation.missing_prices.append(
            MissingPrice(ticker=currency, price_type=price_type, market=FX_MARKET)
        )
    return valuation


class IntraYearPricer:
    """
    Best-effort prices for dates between the snapshots.

    Price order: price source, last trade price on or before the date,
    year-start snapshot, year-end snapshot.
    FX order: quote rate, price source, year-end rate, year-start rate,
    last trade rate.
    """

    def __init__(
        self,
        currency: str,
        home_currency: str,
        stock_transactions: Sequence[StockTransaction],
        price_source: Optional[PriceSource] = None,
        start_prices: Optional[Mapping[str, PriceQuote]] = None,
        end_prices: Optional[Mapping[str, PriceQuote]] = None,
        start_fx: Optional[Decimal] = None,
        end_fx: Optional[Decimal] = None,
    ):
        self.currency = currency
        self.home_currency = home_currency
        self.stock_transactions = stock_transactions
        self.price_source = price_source
        self.start_prices = start_prices or {}
        self.end_prices = end_prices or {}
        self.start_fx = start_fx
        self.end_fx = end_fx

    def _last_trade(self, ticker: str, on_date: date) -> Optional[StockTransaction]:
        last = None
        for trade in self.stock_transactions:
            if trade.transaction_date > on_date:
                break
            if trade.ticker == ticker:
                last = trade
        return last

    def _last_trade_rate(self, on_date: date) -> Optional[Decimal]:
        rate = None
        for trade in self.stock_transactions:
            if trade.transaction_date > on_date:
                break
            if trade.exchange_rate is not None:
                rate = Decimal(trade.exchange_rate)
        return rate

    def price(self, ticker: str, on_date: date) -> Optional[PriceQuote]:
        if self.price_source is not None:
            quote = self.price_source.get_price(ticker, on_date)
            if quote is not None:
                return quote
        trade = self._last_trade(ticker, on_date)
        if trade is not None:
            return PriceQuote(
                price=Decimal(trade.price_per_share),
                exchange_rate=Decimal(trade.exchange_rate) if trade.exchange_rate is not None else None,
            )
        return self.start_prices.get(ticker) or self.end_prices.get(ticker)

    def fx_rate(self, on_date: date, quote: Optional[PriceQuote] = None) -> Optional[Decimal]:
        if self.currency == self.home_currency:
            return ONE
        if quote is not None and quote.exchange_rate is not None:
            return quote.exchange_rate
        if self.price_source is not None:
            rate = self.price_source.get_exchange_rate(self.currency, self.home_currency, on_date)
            if rate is not None:
                return rate
        for rate in (self.end_fx, self.start_fx, self._last_trade_rate(on_date)):
            if rate is not None:
                return rate
        return None

    def value(
        self,
        on_date: date,
        positions: Mapping[str, StockPosition],
        cash_balance: Decimal,
    ) -> Dict[str, Decimal]:
        """Estimated {'source', 'home'} value at the end of a day."""
        source = ZERO
        home = ZERO
        for ticker, position in positions.items():
            if not position.is_open:
                continue
            quote = self.price(ticker, on_date)
            if quote is None:
                continue
            value = position.total_shares * quote.price
            source += value
            rate = self.fx_rate(on_date, quote)
            if rate is not None:
                home += value * rate
        source += cash_balance
        cash_rate = self.fx_rate(on_date)
        if cash_rate is not None:
            home += cash_balance * cash_rate
        return {"source": source, "home": home}
