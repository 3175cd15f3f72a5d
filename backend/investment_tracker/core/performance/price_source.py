"""
Price & FX Inputs

Performance calculations never fetch market data. Callers supply:
- year-start / year-end / current price snapshots per ticker
- year-start / year-end exchange rates per currency (to home currency)
- optionally a PriceSource for intra-year valuations
"""
import bisect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from investment_tracker.utils.currency import normalize_currency, to_decimal


class PriceType(str, Enum):
    """Which required valuation snapshot a price belongs to."""
    YEAR_START = "year_start"
    YEAR_END = "year_end"


FX_MARKET = "FX"


@dataclass(frozen=True)
class PriceQuote:
    """Price in trade currency, with an optional rate to home currency."""
    price: Decimal
    exchange_rate: Optional[Decimal] = None


@dataclass(frozen=True)
class MissingPrice:
    """A required valuation input the caller has to provide."""
    ticker: str
    price_type: PriceType
    market: Optional[str] = None

    @property
    def key(self) -> Tuple[str, PriceType]:
        return (self.ticker, self.price_type)

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "price_type": self.price_type.value,
            "market": self.market,
        }


def merge_missing_prices(*groups) -> List[MissingPrice]:
    """Concatenate gap lists keeping the first entry per (ticker, price type)."""
    seen = set()
    merged = []
    for group in groups:
        for missing in group:
            if missing.key in seen:
                continue
            seen.add(missing.key)
            merged.append(missing)
    return merged


class PriceSource(ABC):
    """Historical prices and exchange rates for intra-year valuations."""

    @abstractmethod
    def get_price(self, ticker: str, on_date: date) -> Optional[PriceQuote]:
        """Latest quote on or before the date."""

    @abstractmethod
    def get_exchange_rate(self, currency: str, home_currency: str, on_date: date) -> Optional[Decimal]:
        """Latest currency -> home rate on or before the date."""


class StaticPriceSource(PriceSource):
    """
    In-memory price source built from caller-supplied series.

    Usage:
        source = StaticPriceSource(
            prices={"AAPL": {date(2024, 3, 1): PriceQuote(Decimal("180"))}},
            exchange_rates={"USD": {date(2024, 3, 1): Decimal("31.5")}},
        )
    """

    def __init__(
        self,
        prices: Optional[Mapping[str, Mapping[date, PriceQuote]]] = None,
        exchange_rates: Optional[Mapping[str, Mapping[date, Decimal]]] = None,
    ):
        self._prices: Dict[str, Tuple[List[date], List[PriceQuote]]] = {}
        self._rates: Dict[str, Tuple[List[date], List[Decimal]]] = {}
        for ticker, series in (prices or {}).items():
            dates = sorted(series)
            self._prices[ticker.strip().upper()] = (dates, [series[d] for d in dates])
        for currency, series in (exchange_rates or {}).items():
            dates = sorted(series)
            self._rates[normalize_currency(currency)] = (dates, [to_decimal(series[d]) for d in dates])

    @staticmethod
    def _latest(series, on_date: date):
        if series is None:
            return None
        dates, values = series
        index = bisect.bisect_right(dates, on_date)
        if index == 0:
            return None
        return values[index - 1]

    def get_price(self, ticker: str, on_date: date) -> Optional[PriceQuote]:
        return self._latest(self._prices.get(ticker.strip().upper()), on_date)

    def get_exchange_rate(self, currency: str, home_currency: str, on_date: date) -> Optional[Decimal]:
        if normalize_currency(currency) == normalize_currency(home_currency):
            return Decimal("1")
        return self._latest(self._rates.get(normalize_currency(currency)), on_date)


@dataclass
class PerformancePriceInputs:
    """Caller-supplied valuation inputs for one performance request."""
    year_start_prices: Dict[str, PriceQuote] = field(default_factory=dict)
    year_end_prices: Dict[str, PriceQuote] = field(default_factory=dict)
    current_prices: Dict[str, PriceQuote] = field(default_factory=dict)
    year_start_exchange_rates: Dict[str, Decimal] = field(default_factory=dict)
    year_end_exchange_rates: Dict[str, Decimal] = field(default_factory=dict)
    price_source: Optional[PriceSource] = None

    def __post_init__(self):
        self.year_start_prices = _normalize_quotes(self.year_start_prices)
        self.year_end_prices = _normalize_quotes(self.year_end_prices)
        self.current_prices = _normalize_quotes(self.current_prices)
        self.year_start_exchange_rates = _normalize_rates(self.year_start_exchange_rates)
        self.year_end_exchange_rates = _normalize_rates(self.year_end_exchange_rates)

    def end_prices(self, use_current: bool) -> Dict[str, PriceQuote]:
        """Year-end snapshot; for a running year current prices fill gaps."""
        if not use_current:
            return self.year_end_prices
        merged = dict(self.current_prices)
        merged.update(self.year_end_prices)
        return merged

    def fingerprint(self) -> str:
        """Stable text form used for cache keys."""
        parts = []
        for name in ("year_start_prices", "year_end_prices", "current_prices"):
            quotes = getattr(self, name)
            parts.append(name + ":" + ",".join(
                f"{t}={q.price}/{q.exchange_rate}" for t, q in sorted(quotes.items())
            ))
        for name in ("year_start_exchange_rates", "year_end_exchange_rates"):
            rates = getattr(self, name)
            parts.append(name + ":" + ",".join(f"{c}={r}" for c, r in sorted(rates.items())))
        return "|".join(parts)


def _normalize_quotes(quotes: Mapping) -> Dict[str, PriceQuote]:
    normalized = {}
    for ticker, quote in (quotes or {}).items():
        if not isinstance(quote, PriceQuote):
            quote = PriceQuote(
                price=to_decimal(quote["price"]),
                exchange_rate=to_decimal(quote["exchange_rate"]) if quote.get("exchange_rate") is not None else None,
            )
        normalized[ticker.strip().upper()] = quote
    return normalized


def _normalize_rates(rates: Mapping) -> Dict[str, Decimal]:
    return {normalize_currency(c): to_decimal(r) for c, r in (rates or {}).items()}
