"""
Year Performance Calculator

Builds a year model for one portfolio (start/end valuations, external
cash flows, intra-year value estimates) and derives XIRR, Modified Dietz
and time-weighted returns from it, in home and source currency.

The same metric derivation runs for a single portfolio and for a merged
multi-portfolio model, so a merge of one portfolio reproduces that
portfolio's result exactly.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from itertools import groupby
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from investment_tracker.core.ledger.balance import balance_as_of
from investment_tracker.core.performance.cash_flows import ExternalCashFlow, select_cash_flow_strategy
from investment_tracker.core.performance.price_source import (
    FX_MARKET,
    MissingPrice,
    PerformancePriceInputs,
    PriceQuote,
    PriceType,
    merge_missing_prices,
)
from investment_tracker.core.performance.returns import (
    PeriodCashFlow,
    ValuationPoint,
    modified_dietz,
    time_weighted_return,
    to_percentage,
    total_return,
)
from investment_tracker.core.performance.valuation import IntraYearPricer, value_snapshot
from investment_tracker.core.performance.xirr import CashFlow, xirr_percentage
from investment_tracker.core.trading.positions import calculate_positions
from investment_tracker.db.models.currency_transaction import CurrencyTransaction
from investment_tracker.db.models.stock_transaction import StockTransaction, StockTransactionType
from investment_tracker.utils.currency import round_money
from investment_tracker.utils.exceptions import ValidationError

ZERO = Decimal("0")

# date -> {"source": value or None, "home": value}
ValueLookup = Callable[[date], Dict[str, Optional[Decimal]]]


@dataclass
class PortfolioHistory:
    """Everything needed to evaluate one portfolio, sorted for replay."""
    portfolio_id: int
    currency: str
    home_currency: str
    stock_transactions: List[StockTransaction] = field(default_factory=list)
    ledger_transactions: List[CurrencyTransaction] = field(default_factory=list)
    has_active_ledger: bool = True
    name: Optional[str] = None


@dataclass
class YearModel:
    """Valuations and flows of one portfolio (or a merge) over a period."""
    year: int
    period_start: date
    period_end: date
    home_currency: str
    source_currency: Optional[str]
    start_value_home: Decimal
    end_value_home: Decimal
    start_value_source: Optional[Decimal]
    end_value_source: Optional[Decimal]
    cash_flows: List[ExternalCashFlow]
    value_at: ValueLookup
    missing_prices: List[MissingPrice] = field(default_factory=list)
    transaction_count: int = 0
    earliest_transaction_date: Optional[date] = None
    portfolio_ids: List[int] = field(default_factory=list)
    is_active: bool = True


@dataclass
class YearPerformance:
    """Performance of a portfolio (or aggregate) over one calendar year."""
    year: int
    period_start: date
    period_end: date
    home_currency: str
    source_currency: Optional[str]

    start_value_home: Decimal
    end_value_home: Decimal
    net_contributions_home: Decimal
    start_value_source: Optional[Decimal]
    end_value_source: Optional[Decimal]
    net_contributions_source: Optional[Decimal]

    xirr_percentage: Optional[float]
    modified_dietz_percentage: Optional[float]
    time_weighted_return_percentage: Optional[float]
    total_return_percentage: Optional[float]
    xirr_percentage_source: Optional[float]
    modified_dietz_percentage_source: Optional[float]
    time_weighted_return_percentage_source: Optional[float]
    total_return_percentage_source: Optional[float]

    transaction_count: int
    cash_flow_count: int
    earliest_transaction_date_in_year: Optional[date]
    missing_prices: List[MissingPrice] = field(default_factory=list)
    portfolio_ids: List[int] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing_prices

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "home_currency": self.home_currency,
            "source_currency": self.source_currency,
            "start_value_home": self.start_value_home,
            "end_value_home": self.end_value_home,
            "net_contributions_home": self.net_contributions_home,
            "start_value_source": self.start_value_source,
            "end_value_source": self.end_value_source,
            "net_contributions_source": self.net_contributions_source,
            "xirr_percentage": self.xirr_percentage,
            "modified_dietz_percentage": self.modified_dietz_percentage,
            "time_weighted_return_percentage": self.time_weighted_return_percentage,
            "total_return_percentage": self.total_return_percentage,
            "xirr_percentage_source": self.xirr_percentage_source,
            "modified_dietz_percentage_source": self.modified_dietz_percentage_source,
            "time_weighted_return_percentage_source": self.time_weighted_return_percentage_source,
            "total_return_percentage_source": self.total_return_percentage_source,
            "transaction_count": self.transaction_count,
            "cash_flow_count": self.cash_flow_count,
            "earliest_transaction_date_in_year": (
                self.earliest_transaction_date_in_year.isoformat()
                if self.earliest_transaction_date_in_year else None
            ),
            "missing_prices": [m.to_dict() for m in self.missing_prices],
            "portfolio_ids": list(self.portfolio_ids),
            "is_complete": self.is_complete,
        }


def year_period(year: int, today: date) -> tuple[date, date]:
    """Jan 1 to Dec 31, or to today for the running year."""
    if year > today.year:
        raise ValidationError(f"Year {year} is in the future", field="year")
    start = date(year, 1, 1)
    end = today if year == today.year else date(year, 12, 31)
    return start, end


# ==================== YEAR MODEL ====================

def build_year_model(
    history: PortfolioHistory,
    year: int,
    inputs: PerformancePriceInputs,
    today: Optional[date] = None,
) -> YearModel:
    """Valuations, flows and intra-year lookup of one portfolio."""
    today = today or date.today()
    period_start, period_end = year_period(year, today)
    opening = period_start - timedelta(days=1)
    currency = history.currency
    home = history.home_currency

    trades = [t for t in history.stock_transactions if t.transaction_date <= period_end]
    entries = history.ledger_transactions if history.has_active_ledger else []
    markets = {t.ticker: t.market.value if t.market else None for t in trades}

    start_fx = inputs.year_start_exchange_rates.get(currency)
    end_fx = inputs.year_end_exchange_rates.get(currency)
    end_prices = inputs.end_prices(use_current=year == today.year)

    start_positions = calculate_positions(trades, as_of=opening, open_only=True)
    end_positions = calculate_positions(trades, as_of=period_end, open_only=True)
    start_cash = balance_as_of(entries, opening)
    end_cash = balance_as_of(entries, period_end)

    start = value_snapshot(
        period_start, start_positions, markets, start_cash, currency, home,
        inputs.year_start_prices, start_fx, PriceType.YEAR_START,
    )
    end = value_snapshot(
        period_end, end_positions, markets, end_cash, currency, home,
        end_prices, end_fx, PriceType.YEAR_END,
    )

    pricer = IntraYearPricer(
        currency, home, trades,
        price_source=inputs.price_source,
        start_prices=inputs.year_start_prices,
        end_prices=end_prices,
        start_fx=start_fx,
        end_fx=end_fx,
    )
    strategy = select_cash_flow_strategy(history.has_active_ledger)
    flows = strategy.get_cash_flows(
        period_start, period_end, currency, home, trades, entries, fx_lookup=pricer.fx_rate,
    )

    missing = merge_missing_prices(start.missing_prices, end.missing_prices)
    if any(f.amount_home is None for f in flows):
        missing = merge_missing_prices(
            missing, [MissingPrice(ticker=currency, price_type=PriceType.YEAR_END, market=FX_MARKET)]
        )
    if missing:
        logger.warning(
            f"Portfolio {history.portfolio_id} {year}: missing "
            + ", ".join(f"{m.ticker}/{m.price_type.value}" for m in missing)
        )

    def value_at(on_date: date) -> Dict[str, Optional[Decimal]]:
        positions = calculate_positions(trades, as_of=on_date, open_only=True)
        return pricer.value(on_date, positions, balance_as_of(entries, on_date))

    trades_in_year = [t for t in trades if t.transaction_date >= period_start]
    entries_in_year = [e for e in entries if period_start <= e.transaction_date <= period_end]
    dates_in_year = [t.transaction_date for t in trades_in_year] + [e.transaction_date for e in entries_in_year]

    return YearModel(
        year=year,
        period_start=period_start,
        period_end=period_end,
        home_currency=home,
        source_currency=currency,
        start_value_home=start.value_home,
        end_value_home=end.value_home,
        start_value_source=start.value_source,
        end_value_source=end.value_source,
        cash_flows=flows,
        value_at=value_at,
        missing_prices=missing,
        transaction_count=len(trades_in_year),
        earliest_transaction_date=min(dates_in_year) if dates_in_year else None,
        portfolio_ids=[history.portfolio_id],
        is_active=bool(start_positions) or start_cash != 0 or bool(dates_in_year),
    )


def combine_year_models(models: Sequence[YearModel]) -> YearModel:
    """
    Merge portfolio models into one home-currency model.

    Values and flows are summed in home currency; the flow timelines are
    merged (stable by date). Source-currency fields survive only when all
    models share one source currency.
    """
    if not models:
        raise ValueError("At least one year model is required")
    first = models[0]
    currencies = {m.source_currency for m in models}
    source_currency = first.source_currency if len(currencies) == 1 else None

    def total(values) -> Decimal:
        return sum(values, ZERO)

    flows = sorted(
        (flow for m in models for flow in m.cash_flows),
        key=lambda f: f.transaction_date,
    )

    def value_at(on_date: date) -> Dict[str, Optional[Decimal]]:
        values = [m.value_at(on_date) for m in models]
        return {
            "home": total(v["home"] for v in values),
            "source": total(v["source"] for v in values) if source_currency else None,
        }

    earliest = [m.earliest_transaction_date for m in models if m.earliest_transaction_date]
    return YearModel(
        year=first.year,
        period_start=first.period_start,
        period_end=first.period_end,
        home_currency=first.home_currency,
        source_currency=source_currency,
        start_value_home=total(m.start_value_home for m in models),
        end_value_home=total(m.end_value_home for m in models),
        start_value_source=total(m.start_value_source for m in models) if source_currency else None,
        end_value_source=total(m.end_value_source for m in models) if source_currency else None,
        cash_flows=flows,
        value_at=value_at,
        missing_prices=merge_missing_prices(*(m.missing_prices for m in models)),
        transaction_count=sum(m.transaction_count for m in models),
        earliest_transaction_date=min(earliest) if earliest else None,
        portfolio_ids=[pid for m in models for pid in m.portfolio_ids],
        is_active=any(m.is_active for m in models),
    )


# ==================== METRICS ====================

def _period_flows(model: YearModel, key: str) -> List[PeriodCashFlow]:
    flows = []
    for flow in model.cash_flows:
        amount = flow.amount_home if key == "home" else flow.amount_source
        if amount is not None:
            flows.append(PeriodCashFlow(date=flow.transaction_date, amount=amount))
    return flows


def _valuation_points(
    model: YearModel,
    flows: Sequence[PeriodCashFlow],
    key: str,
    end_value: Decimal,
) -> List[ValuationPoint]:
    points = []
    for flow_date, group in groupby(flows, key=lambda f: f.date):
        net = sum((Decimal(f.amount) for f in group), ZERO)
        if flow_date == model.period_end:
            value_after = end_value
        else:
            value_after = model.value_at(flow_date)[key]
        points.append(ValuationPoint(date=flow_date, value_after_flow=value_after, cash_flow=net))
    return points


def _xirr_flows(
    model: YearModel,
    flows: Sequence[PeriodCashFlow],
    start_value: Decimal,
    end_value: Decimal,
) -> List[CashFlow]:
    # Investor perspective: money in is negative, value out is positive
    xirr_flows = []
    if start_value != 0:
        xirr_flows.append(CashFlow(date=model.period_start, amount=-float(start_value)))
    for flow in flows:
        xirr_flows.append(CashFlow(date=flow.date, amount=-float(flow.amount)))
    if end_value != 0:
        xirr_flows.append(CashFlow(date=model.period_end, amount=float(end_value)))
    return xirr_flows


def _metrics(
    model: YearModel,
    key: str,
    start_value: Decimal,
    end_value: Decimal,
    complete: bool = True,
) -> dict:
    flows = _period_flows(model, key)
    net_contributions = sum((Decimal(f.amount) for f in flows), ZERO)
    if not complete:
        # A valuation with excluded holdings would read as a loss
        return {
            "net_contributions": net_contributions,
            "xirr": None,
            "modified_dietz": None,
            "twr": None,
            "total_return": None,
        }
    points = _valuation_points(model, flows, key, end_value)
    return {
        "net_contributions": net_contributions,
        "xirr": xirr_percentage(_xirr_flows(model, flows, start_value, end_value)),
        "modified_dietz": to_percentage(modified_dietz(
            start_value, end_value, model.period_start, model.period_end, flows
        )),
        "twr": to_percentage(time_weighted_return(start_value, end_value, points)),
        "total_return": to_percentage(total_return(start_value, end_value, net_contributions)),
    }


def compute_year_performance(model: YearModel) -> YearPerformance:
    """
    Derive every return metric from a year model.

    Returns are withheld (None) while valuation inputs are missing: any gap
    voids the home metrics, a price gap also voids the source metrics. FX
    gaps alone leave the source metrics intact.
    """
    price_gap = any(m.market != FX_MARKET for m in model.missing_prices)
    home = _metrics(
        model, "home", model.start_value_home, model.end_value_home,
        complete=not model.missing_prices,
    )

    source = None
    if model.source_currency is not None:
        source = _metrics(
            model, "source", model.start_value_source, model.end_value_source,
            complete=not price_gap,
        )

    return YearPerformance(
        year=model.year,
        period_start=model.period_start,
        period_end=model.period_end,
        home_currency=model.home_currency,
        source_currency=model.source_currency,
        start_value_home=round_money(model.start_value_home),
        end_value_home=round_money(model.end_value_home),
        net_contributions_home=round_money(home["net_contributions"]),
        start_value_source=round_money(model.start_value_source) if source else None,
        end_value_source=round_money(model.end_value_source) if source else None,
        net_contributions_source=round_money(source["net_contributions"]) if source else None,
        xirr_percentage=home["xirr"],
        modified_dietz_percentage=home["modified_dietz"],
        time_weighted_return_percentage=home["twr"],
        total_return_percentage=home["total_return"],
        xirr_percentage_source=source["xirr"] if source else None,
        modified_dietz_percentage_source=source["modified_dietz"] if source else None,
        time_weighted_return_percentage_source=source["twr"] if source else None,
        total_return_percentage_source=source["total_return"] if source else None,
        transaction_count=model.transaction_count,
        cash_flow_count=len(model.cash_flows),
        earliest_transaction_date_in_year=model.earliest_transaction_date,
        missing_prices=list(model.missing_prices),
        portfolio_ids=list(model.portfolio_ids),
    )


def calculate_year_performance(
    history: PortfolioHistory,
    year: int,
    inputs: PerformancePriceInputs,
    today: Optional[date] = None,
) -> YearPerformance:
    """Year performance of a single portfolio."""
    return compute_year_performance(build_year_model(history, year, inputs, today))


# ==================== LIFETIME XIRR ====================

@dataclass
class LifetimeXirr:
    """Money-weighted return of a portfolio's whole trade history."""
    as_of: date
    xirr_percentage: Optional[float]
    current_value_home: Decimal
    cash_flow_count: int
    skipped_transaction_ids: List[int] = field(default_factory=list)
    missing_prices: List[MissingPrice] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "as_of": self.as_of.isoformat(),
            "xirr_percentage": self.xirr_percentage,
            "current_value_home": self.current_value_home,
            "cash_flow_count": self.cash_flow_count,
            "skipped_transaction_ids": list(self.skipped_transaction_ids),
            "missing_prices": [m.to_dict() for m in self.missing_prices],
        }


def calculate_lifetime_xirr(
    history: PortfolioHistory,
    current_prices: Dict[str, PriceQuote],
    as_of: Optional[date] = None,
) -> LifetimeXirr:
    """
    Home-currency XIRR of all trades up to a date, with the current market
    value of open positions as the terminal flow.

    Trades without an exchange rate cannot be expressed in home currency
    and are skipped (their ids are reported).
    """
    as_of = as_of or date.today()
    same_currency = history.currency == history.home_currency
    trades = [t for t in history.stock_transactions if t.transaction_date <= as_of]

    flows: List[CashFlow] = []
    skipped: List[int] = []
    last_rate: Optional[Decimal] = Decimal("1") if same_currency else None
    for trade in trades:
        if trade.exchange_rate is None and not same_currency:
            skipped.append(trade.id)
            continue
        rate = Decimal("1") if trade.exchange_rate is None else Decimal(trade.exchange_rate)
        last_rate = rate
        if trade.transaction_type == StockTransactionType.BUY:
            flows.append(CashFlow(date=trade.transaction_date, amount=-float(trade.total_cost_source * rate)))
        else:
            flows.append(CashFlow(date=trade.transaction_date, amount=float(trade.net_proceeds * rate)))

    if skipped:
        logger.warning(
            f"Portfolio {history.portfolio_id}: {len(skipped)} trades without exchange rate skipped in XIRR"
        )

    skipped_ids = set(skipped)
    priced = [t for t in trades if t.id not in skipped_ids]
    positions = calculate_positions(priced, as_of=as_of, open_only=True)
    markets = {t.ticker: t.market.value if t.market else None for t in priced}
    quotes = {ticker.strip().upper(): quote for ticker, quote in (current_prices or {}).items()}

    current_value = ZERO
    missing: List[MissingPrice] = []
    for ticker, position in positions.items():
        quote = quotes.get(ticker)
        if quote is None:
            missing.append(MissingPrice(ticker=ticker, price_type=PriceType.YEAR_END, market=markets.get(ticker)))
            continue
        rate = quote.exchange_rate if quote.exchange_rate is not None else last_rate
        if rate is None:
            missing.append(MissingPrice(ticker=history.currency, price_type=PriceType.YEAR_END, market=FX_MARKET))
            continue
        current_value += position.total_shares * quote.price * rate

    if current_value > 0:
        flows.append(CashFlow(date=as_of, amount=float(current_value)))

    return LifetimeXirr(
        as_of=as_of,
        xirr_percentage=xirr_percentage(flows),
        current_value_home=round_money(current_value),
        cash_flow_count=len(flows),
        skipped_transaction_ids=skipped,
        missing_prices=merge_missing_prices(missing),
    )
