"""
Performance Aggregator

Combines the year performance of all portfolios of a user into a single
home-currency view. Values and flows are summed in home currency and the
merged cash-flow timeline is run through the same metric derivation as a
single portfolio; percentages are never averaged.
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence

from loguru import logger

from investment_tracker.config import settings
from investment_tracker.core.performance.calculator import (
    PortfolioHistory,
    YearPerformance,
    build_year_model,
    combine_year_models,
    compute_year_performance,
    year_period,
)
from investment_tracker.core.performance.price_source import PerformancePriceInputs
from investment_tracker.utils.exceptions import BusinessRuleError

ZERO = Decimal("0")


class PerformanceAggregator:
    """Multi-portfolio year performance."""

    def aggregate_year_performance(
        self,
        year: int,
        histories: Sequence[PortfolioHistory],
        inputs: PerformancePriceInputs,
        today: Optional[date] = None,
    ) -> YearPerformance:
        """
        Aggregate year performance over portfolios.

        Portfolios without holdings, cash or transactions in the period
        are left out. With a single active portfolio the result is that
        portfolio's own result.
        """
        today = today or date.today()
        models = [build_year_model(history, year, inputs, today) for history in histories]
        active = [model for model in models if model.is_active]

        if not active:
            home = histories[0].home_currency if histories else settings.DEFAULT_HOME_CURRENCY
            return self.empty_result(year, home, today)

        home_currencies = {model.home_currency for model in active}
        if len(home_currencies) > 1:
            raise BusinessRuleError(
                f"Portfolios report in different home currencies: {', '.join(sorted(home_currencies))}",
                code="HOME_CURRENCY_MISMATCH",
            )

        logger.debug(
            f"Aggregating {year} over {len(active)} of {len(models)} portfolios"
        )
        if len(active) == 1:
            return compute_year_performance(active[0])
        return compute_year_performance(combine_year_models(active))

    @staticmethod
    def empty_result(year: int, home_currency: str, today: Optional[date] = None) -> YearPerformance:
        period_start, period_end = year_period(year, today or date.today())
        return YearPerformance(
            year=year,
            period_start=period_start,
            period_end=period_end,
            home_currency=home_currency,
            source_currency=None,
            start_value_home=ZERO,
            end_value_home=ZERO,
            net_contributions_home=ZERO,
            start_value_source=None,
            end_value_source=None,
            net_contributions_source=None,
            xirr_percentage=None,
            modified_dietz_percentage=None,
            time_weighted_return_percentage=None,
            total_return_percentage=None,
            xirr_percentage_source=None,
            modified_dietz_percentage_source=None,
            time_weighted_return_percentage_source=None,
            total_return_percentage_source=None,
            transaction_count=0,
            cash_flow_count=0,
            earliest_transaction_date_in_year=None,
        )


def available_years(histories: Sequence[PortfolioHistory], today: Optional[date] = None) -> List[int]:
    """Years from the earliest transaction to the current year, newest first."""
    today = today or date.today()
    dates = [
        tx.transaction_date
        for history in histories
        for tx in (*history.stock_transactions, *history.ledger_transactions)
    ]
    first_year = min(dates).year if dates else today.year
    return list(range(today.year, first_year - 1, -1))
