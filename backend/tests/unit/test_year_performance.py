"""
Unit Tests - Year Performance
Tests for single-portfolio year models, aggregation and lifetime XIRR.
"""
import pytest
from datetime import date
from decimal import Decimal

from investment_tracker.core.performance.aggregate import PerformanceAggregator, available_years
from investment_tracker.core.performance.calculator import (
    PortfolioHistory,
    build_year_model,
    calculate_lifetime_xirr,
    calculate_year_performance,
    year_period,
)
from investment_tracker.core.performance.price_source import (
    FX_MARKET,
    PerformancePriceInputs,
    PriceQuote,
    PriceType,
)
from investment_tracker.db.models.currency_transaction import CurrencyTransactionType as T
from investment_tracker.utils.exceptions import BusinessRuleError, ValidationError

from factories import make_entry, make_trade

TODAY = date(2025, 6, 1)


def usd_history(portfolio_id=1):
    """Deposit 1000 USD at 30, buy 10 AAPL @ 50 + 5 fees through the ledger."""
    trade = make_trade(
        shares="10", price="50", fees="5", exchange_rate="30",
        transaction_date=date(2024, 1, 10), portfolio_id=portfolio_id,
    )
    entries = [
        make_entry(T.DEPOSIT, "1000", transaction_date=date(2024, 1, 2), home_amount="30000", exchange_rate="30"),
        make_entry(
            T.SPEND, "505", transaction_date=date(2024, 1, 10),
            home_amount="15150", exchange_rate="30", related_stock_transaction_id=trade.id,
        ),
    ]
    return PortfolioHistory(
        portfolio_id=portfolio_id,
        currency="USD",
        home_currency="TWD",
        stock_transactions=[trade],
        ledger_transactions=entries,
    )


def twd_history(portfolio_id=2, home_currency="TWD"):
    return PortfolioHistory(
        portfolio_id=portfolio_id,
        currency="TWD",
        home_currency=home_currency,
        ledger_transactions=[
            make_entry(T.DEPOSIT, "10000", transaction_date=date(2024, 1, 2)),
        ],
    )


def year_end_inputs():
    return PerformancePriceInputs(
        year_end_prices={"AAPL": PriceQuote(Decimal("60"))},
        year_end_exchange_rates={"USD": Decimal("32")},
    )


class TestYearPeriod:
    """Tests for period bounds."""

    def test_past_year(self):
        assert year_period(2024, TODAY) == (date(2024, 1, 1), date(2024, 12, 31))

    def test_running_year_ends_today(self):
        assert year_period(2025, TODAY) == (date(2025, 1, 1), TODAY)

    def test_future_year_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            year_period(2026, TODAY)
        assert exc_info.value.field == "year"


class TestSinglePortfolioYear:
    """Tests for one portfolio over a closed year."""

    def test_values_and_contributions(self):
        result = calculate_year_performance(usd_history(), 2024, year_end_inputs(), today=TODAY)

        assert result.start_value_home == Decimal("0.00")
        # (10 x 60 + 495 cash) x 32
        assert result.end_value_home == Decimal("35040.00")
        assert result.net_contributions_home == Decimal("30000.00")
        assert result.end_value_source == Decimal("1095.00")
        assert result.net_contributions_source == Decimal("1000.00")
        assert result.source_currency == "USD"
        assert result.transaction_count == 1
        assert result.cash_flow_count == 1
        assert result.earliest_transaction_date_in_year == date(2024, 1, 2)
        assert result.is_complete

    def test_return_metrics(self):
        result = calculate_year_performance(usd_history(), 2024, year_end_inputs(), today=TODAY)

        assert result.total_return_percentage == pytest.approx(16.8)
        assert result.modified_dietz_percentage == pytest.approx(5040 / (30000 * 364 / 365) * 100)
        assert result.time_weighted_return_percentage == pytest.approx(9.5)
        assert result.total_return_percentage_source == pytest.approx(9.5)
        assert result.time_weighted_return_percentage_source == pytest.approx(9.5)
        assert result.xirr_percentage is not None
        assert result.xirr_percentage > 0

    def test_missing_year_end_price_reported(self):
        inputs = PerformancePriceInputs(year_end_exchange_rates={"USD": Decimal("32")})
        result = calculate_year_performance(usd_history(), 2024, inputs, today=TODAY)

        assert not result.is_complete
        assert [(m.ticker, m.price_type, m.market) for m in result.missing_prices] == [
            ("AAPL", PriceType.YEAR_END, "us"),
        ]
        assert result.end_value_source == Decimal("495.00")

    def test_missing_price_withholds_returns(self):
        """An unpriced holding must not show up as a loss."""
        history = usd_history()
        history.ledger_transactions.append(
            make_entry(T.DEPOSIT, "100", transaction_date=date(2024, 3, 1), home_amount="3000", exchange_rate="30"),
        )
        inputs = PerformancePriceInputs(year_end_exchange_rates={"USD": Decimal("32")})

        result = calculate_year_performance(history, 2024, inputs, today=TODAY)

        assert result.xirr_percentage is None
        assert result.modified_dietz_percentage is None
        assert result.time_weighted_return_percentage is None
        assert result.total_return_percentage is None
        assert result.xirr_percentage_source is None
        assert result.modified_dietz_percentage_source is None
        assert result.time_weighted_return_percentage_source is None
        assert result.total_return_percentage_source is None
        assert result.end_value_source == Decimal("595.00")
        assert result.net_contributions_home == Decimal("33000.00")
        assert [m.ticker for m in result.missing_prices] == ["AAPL"]

    def test_missing_fx_keeps_source_returns(self):
        inputs = PerformancePriceInputs(year_end_prices={"AAPL": PriceQuote(Decimal("60"))})

        result = calculate_year_performance(usd_history(), 2024, inputs, today=TODAY)

        assert [(m.ticker, m.market) for m in result.missing_prices] == [("USD", FX_MARKET)]
        assert result.time_weighted_return_percentage is None
        assert result.total_return_percentage is None
        assert result.time_weighted_return_percentage_source == pytest.approx(9.5)
        assert result.total_return_percentage_source == pytest.approx(9.5)

    def test_running_year_uses_current_prices(self):
        inputs = PerformancePriceInputs(
            current_prices={"AAPL": PriceQuote(Decimal("70"), exchange_rate=Decimal("31"))},
            year_end_exchange_rates={"USD": Decimal("31")},
        )
        result = calculate_year_performance(usd_history(), 2024, inputs, today=date(2024, 6, 30))

        assert result.period_end == date(2024, 6, 30)
        assert result.end_value_source == Decimal("1195.00")
        assert result.is_complete

    def test_opening_position_needs_year_start_price(self):
        history = usd_history()
        result = calculate_year_performance(history, 2025, PerformancePriceInputs(), today=TODAY)

        kinds = {(m.ticker, m.price_type) for m in result.missing_prices}
        assert ("AAPL", PriceType.YEAR_START) in kinds
        assert ("AAPL", PriceType.YEAR_END) in kinds

    def test_quiet_portfolio_is_inactive(self):
        model = build_year_model(twd_history(), 2023, PerformancePriceInputs(), today=TODAY)
        assert not model.is_active


class TestAggregateYear:
    """Tests for multi-portfolio aggregation."""

    def setup_method(self):
        self.aggregator = PerformanceAggregator()

    def test_single_active_portfolio_matches_its_own_result(self):
        single = calculate_year_performance(usd_history(), 2024, year_end_inputs(), today=TODAY)
        idle = PortfolioHistory(portfolio_id=9, currency="USD", home_currency="TWD")

        aggregate = self.aggregator.aggregate_year_performance(
            2024, [usd_history(), idle], year_end_inputs(), today=TODAY,
        )
        assert aggregate.to_dict() == single.to_dict()

    def test_sums_values_and_merges_flows(self):
        aggregate = self.aggregator.aggregate_year_performance(
            2024, [usd_history(1), twd_history(2)], year_end_inputs(), today=TODAY,
        )
        assert aggregate.end_value_home == Decimal("45040.00")
        assert aggregate.net_contributions_home == Decimal("40000.00")
        assert aggregate.total_return_percentage == pytest.approx(5040 / 40000 * 100)
        assert aggregate.cash_flow_count == 2
        assert sorted(aggregate.portfolio_ids) == [1, 2]

    def test_mixed_source_currencies_drop_source_fields(self):
        aggregate = self.aggregator.aggregate_year_performance(
            2024, [usd_history(1), twd_history(2)], year_end_inputs(), today=TODAY,
        )
        assert aggregate.source_currency is None
        assert aggregate.end_value_source is None
        assert aggregate.xirr_percentage_source is None

    def test_missing_price_reported_once(self):
        inputs = PerformancePriceInputs(year_end_exchange_rates={"USD": Decimal("32")})
        aggregate = self.aggregator.aggregate_year_performance(
            2024, [usd_history(1), usd_history(2)], inputs, today=TODAY,
        )
        missing = [m for m in aggregate.missing_prices if m.ticker == "AAPL"]
        assert len(missing) == 1
        assert missing[0].price_type == PriceType.YEAR_END

    def test_home_currency_mismatch(self):
        with pytest.raises(BusinessRuleError) as exc_info:
            self.aggregator.aggregate_year_performance(
                2024, [usd_history(1), twd_history(2, home_currency="USD")], year_end_inputs(), today=TODAY,
            )
        assert exc_info.value.code == "HOME_CURRENCY_MISMATCH"

    def test_no_active_portfolios(self):
        result = self.aggregator.aggregate_year_performance(
            2020, [usd_history()], PerformancePriceInputs(), today=TODAY,
        )
        assert result.end_value_home == Decimal("0")
        assert result.xirr_percentage is None
        assert result.home_currency == "TWD"

    def test_available_years_newest_first(self):
        history = usd_history()
        history.stock_transactions[0].transaction_date = date(2022, 3, 1)
        assert available_years([history], today=TODAY) == [2025, 2024, 2023, 2022]
        assert available_years([], today=TODAY) == [2025]


class TestLifetimeXirr:
    """Tests for the whole-history money-weighted return."""

    def test_terminal_value_from_current_prices(self):
        history = usd_history()
        history.stock_transactions[0].transaction_date = date(2023, 1, 1)
        result = calculate_lifetime_xirr(
            history,
            {"aapl": PriceQuote(Decimal("60"), exchange_rate=Decimal("32"))},
            as_of=date(2024, 1, 1),
        )
        assert result.current_value_home == Decimal("19200.00")
        assert result.xirr_percentage == pytest.approx((19200 / 15150 - 1) * 100, abs=1e-4)
        assert result.cash_flow_count == 2

    def test_trades_without_rate_skipped(self):
        history = usd_history()
        unrated = make_trade(ticker="MSFT", shares="1", price="300", transaction_date=date(2024, 2, 1))
        history.stock_transactions.append(unrated)

        result = calculate_lifetime_xirr(history, {"AAPL": PriceQuote(Decimal("60"))}, as_of=date(2024, 12, 31))
        assert result.skipped_transaction_ids == [unrated.id]
        assert result.missing_prices == []

    def test_missing_current_price(self):
        result = calculate_lifetime_xirr(usd_history(), {}, as_of=date(2024, 12, 31))
        assert result.xirr_percentage is None
        assert [(m.ticker, m.price_type) for m in result.missing_prices] == [("AAPL", PriceType.YEAR_END)]
