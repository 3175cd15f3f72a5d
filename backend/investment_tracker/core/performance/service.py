"""
Performance Service

Loads portfolio histories from the database and hands them to the pure
year-performance calculators.
"""
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from investment_tracker.core.performance.aggregate import PerformanceAggregator, available_years
from investment_tracker.core.performance.calculator import (
    LifetimeXirr,
    PortfolioHistory,
    YearPerformance,
    calculate_lifetime_xirr,
    calculate_year_performance,
)
from investment_tracker.core.performance.price_source import PerformancePriceInputs, PriceQuote
from investment_tracker.db.models.portfolio import Portfolio
from investment_tracker.db.repositories.currency_ledger import CurrencyLedgerRepository
from investment_tracker.db.repositories.currency_transaction import CurrencyTransactionRepository
from investment_tracker.db.repositories.portfolio import PortfolioRepository
from investment_tracker.db.repositories.stock_transaction import StockTransactionRepository
from investment_tracker.utils.exceptions import PortfolioNotFoundError


class PerformanceService:
    """
    Service for historical performance queries.

    Usage:
        service = PerformanceService(db_session)
        result = await service.calculate_portfolio_year(1, 2024, inputs, user_id=1)
        combined = await service.calculate_aggregate_year(2024, inputs, user_id=1)
    """

    def __init__(self, db: AsyncSession, aggregator: Optional[PerformanceAggregator] = None):
        self.db = db
        self.portfolios = PortfolioRepository(db)
        self.ledgers = CurrencyLedgerRepository(db)
        self.stock_transactions = StockTransactionRepository(db)
        self.currency_transactions = CurrencyTransactionRepository(db)
        self.aggregator = aggregator or PerformanceAggregator()

    # ==================== LOADING ====================

    async def _get_owned_portfolio(self, portfolio_id: int, user_id: int) -> Portfolio:
        portfolio = await self.portfolios.get_owned(portfolio_id, user_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    async def load_history(self, portfolio: Portfolio) -> PortfolioHistory:
        ledger = await self.ledgers.get_by_id(portfolio.bound_currency_ledger_id)
        has_ledger = ledger is not None and ledger.is_active
        trades = await self.stock_transactions.get_by_portfolio(portfolio.id)
        entries = await self.currency_transactions.get_by_ledger(ledger.id) if has_ledger else []
        return PortfolioHistory(
            portfolio_id=portfolio.id,
            name=portfolio.name,
            currency=ledger.currency_code if ledger is not None else portfolio.base_currency,
            home_currency=portfolio.home_currency,
            stock_transactions=trades,
            ledger_transactions=entries,
            has_active_ledger=has_ledger,
        )

    async def load_user_histories(self, user_id: int) -> List[PortfolioHistory]:
        portfolios = await self.portfolios.get_by_user(user_id, active_only=True)
        return [await self.load_history(portfolio) for portfolio in portfolios]

    # ==================== QUERIES ====================

    async def calculate_portfolio_year(
        self,
        portfolio_id: int,
        year: int,
        inputs: PerformancePriceInputs,
        user_id: int,
        today: Optional[date] = None,
    ) -> YearPerformance:
        portfolio = await self._get_owned_portfolio(portfolio_id, user_id)
        history = await self.load_history(portfolio)
        return calculate_year_performance(history, year, inputs, today)

    async def calculate_aggregate_year(
        self,
        year: int,
        inputs: PerformancePriceInputs,
        user_id: int,
        today: Optional[date] = None,
    ) -> YearPerformance:
        histories = await self.load_user_histories(user_id)
        return self.aggregator.aggregate_year_performance(year, histories, inputs, today)

    async def available_years(self, user_id: int, today: Optional[date] = None) -> List[int]:
        return available_years(await self.load_user_histories(user_id), today)

    async def calculate_portfolio_xirr(
        self,
        portfolio_id: int,
        current_prices: Dict[str, PriceQuote],
        user_id: int,
        as_of: Optional[date] = None,
    ) -> LifetimeXirr:
        portfolio = await self._get_owned_portfolio(portfolio_id, user_id)
        history = await self.load_history(portfolio)
        return calculate_lifetime_xirr(history, current_prices, as_of)
