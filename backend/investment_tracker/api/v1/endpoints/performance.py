"""
Investment Tracker - Performance Endpoints

Year performance per portfolio and across all portfolios. Prices are
supplied by the caller; results are cached in Redis per input set and
dropped whenever the user's trades or ledger entries change.
"""
import hashlib
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, Path
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from investment_tracker.config import settings
from investment_tracker.core.performance.price_source import PerformancePriceInputs, PriceQuote
from investment_tracker.core.performance.service import PerformanceService
from investment_tracker.db.redis_client import redis_client
from investment_tracker.dependencies import get_current_user_id, get_db
from investment_tracker.services.change_notifier import performance_cache_key

router = APIRouter()


# ==================== SCHEMAS ====================

class PriceQuoteInput(BaseModel):
    """Price in trade currency with an optional rate to home currency."""
    price: Decimal = Field(..., ge=0)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)


class PerformanceRequest(BaseModel):
    """Caller-supplied valuation inputs."""
    year_start_prices: Dict[str, PriceQuoteInput] = Field(default_factory=dict)
    year_end_prices: Dict[str, PriceQuoteInput] = Field(default_factory=dict)
    current_prices: Dict[str, PriceQuoteInput] = Field(default_factory=dict)
    year_start_exchange_rates: Dict[str, Decimal] = Field(default_factory=dict)
    year_end_exchange_rates: Dict[str, Decimal] = Field(default_factory=dict)

    def to_inputs(self) -> PerformancePriceInputs:
        def quotes(values: Dict[str, PriceQuoteInput]) -> Dict[str, PriceQuote]:
            return {
                ticker: PriceQuote(price=q.price, exchange_rate=q.exchange_rate)
                for ticker, q in values.items()
            }

        return PerformancePriceInputs(
            year_start_prices=quotes(self.year_start_prices),
            year_end_prices=quotes(self.year_end_prices),
            current_prices=quotes(self.current_prices),
            year_start_exchange_rates=dict(self.year_start_exchange_rates),
            year_end_exchange_rates=dict(self.year_end_exchange_rates),
        )


class XirrRequest(BaseModel):
    current_prices: Dict[str, PriceQuoteInput] = Field(default_factory=dict)
    as_of: Optional[date] = None


class MissingPriceResponse(BaseModel):
    ticker: str
    price_type: str
    market: Optional[str]


class YearPerformanceResponse(BaseModel):
    """Year performance in home and source currency."""
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
    missing_prices: List[MissingPriceResponse]
    portfolio_ids: List[int]
    is_complete: bool


class LifetimeXirrResponse(BaseModel):
    as_of: date
    xirr_percentage: Optional[float]
    current_value_home: Decimal
    cash_flow_count: int
    skipped_transaction_ids: List[int]
    missing_prices: List[MissingPriceResponse]


class AvailableYearsResponse(BaseModel):
    years: List[int]
    current_year: int


# ==================== CACHE ====================

def _fingerprint(inputs: PerformancePriceInputs) -> str:
    return hashlib.sha256(inputs.fingerprint().encode("utf-8")).hexdigest()[:16]


async def _cached(key: str, compute: Callable[[], Awaitable[dict]]) -> dict:
    """Serve from Redis when possible; cache failures never fail the request."""
    if redis_client.is_available:
        try:
            cached = await redis_client.get_json(key)
            if cached is not None:
                return cached
        except Exception as e:
            logger.warning(f"Performance cache read failed for {key}: {e}")

    result = await compute()

    if redis_client.is_available:
        try:
            await redis_client.set_json(key, result, ttl=settings.PERFORMANCE_CACHE_TTL)
        except Exception as e:
            logger.warning(f"Performance cache write failed for {key}: {e}")
    return result


# ==================== ENDPOINTS ====================

@router.post("/portfolios/{portfolio_id}/years/{year}", response_model=YearPerformanceResponse)
async def get_portfolio_year_performance(
    portfolio_id: int,
    payload: PerformanceRequest,
    year: int = Path(..., ge=1900),
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """
    Year performance of one portfolio.

    Held tickers without a required year-start/year-end price are listed
    in missing_prices and left out of the valuation.
    """
    inputs = payload.to_inputs()
    key = performance_cache_key(user_id, f"portfolio:{portfolio_id}", year, _fingerprint(inputs))

    async def compute() -> dict:
        result = await PerformanceService(db).calculate_portfolio_year(portfolio_id, year, inputs, user_id)
        return result.to_dict()

    return await _cached(key, compute)


@router.post("/aggregate/years/{year}", response_model=YearPerformanceResponse)
async def get_aggregate_year_performance(
    payload: PerformanceRequest,
    year: int = Path(..., ge=1900),
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Year performance over all of the caller's portfolios, in home currency."""
    inputs = payload.to_inputs()
    key = performance_cache_key(user_id, "aggregate", year, _fingerprint(inputs))

    async def compute() -> dict:
        result = await PerformanceService(db).calculate_aggregate_year(year, inputs, user_id)
        return result.to_dict()

    return await _cached(key, compute)


@router.get("/aggregate/years", response_model=AvailableYearsResponse)
async def get_available_years(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Years with data, newest first."""
    years = await PerformanceService(db).available_years(user_id)
    return AvailableYearsResponse(years=years, current_year=date.today().year)


@router.post("/portfolios/{portfolio_id}/xirr", response_model=LifetimeXirrResponse)
async def get_portfolio_xirr(
    portfolio_id: int,
    payload: XirrRequest,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Lifetime XIRR of a portfolio's trades valued at current prices."""
    prices = {
        ticker: PriceQuote(price=q.price, exchange_rate=q.exchange_rate)
        for ticker, q in payload.current_prices.items()
    }
    result = await PerformanceService(db).calculate_portfolio_xirr(
        portfolio_id, prices, user_id, as_of=payload.as_of
    )
    return result.to_dict()
