"""
Performance Module

Provides:
- XIRR solver with an ordered fallback chain
- Modified Dietz and time-weighted returns
- Single-portfolio and aggregate year performance
- Missing price detection
"""
from investment_tracker.core.performance.aggregate import PerformanceAggregator, available_years
from investment_tracker.core.performance.calculator import (
    LifetimeXirr,
    PortfolioHistory,
    YearModel,
    YearPerformance,
    build_year_model,
    calculate_lifetime_xirr,
    calculate_year_performance,
    combine_year_models,
    compute_year_performance,
)
from investment_tracker.core.performance.price_source import (
    MissingPrice,
    PerformancePriceInputs,
    PriceQuote,
    PriceSource,
    PriceType,
    StaticPriceSource,
)
from investment_tracker.core.performance.returns import modified_dietz, time_weighted_return
from investment_tracker.core.performance.service import PerformanceService
from investment_tracker.core.performance.xirr import CashFlow, xirr, xirr_percentage

__all__ = [
    "PerformanceAggregator",
    "available_years",
    "LifetimeXirr",
    "PortfolioHistory",
    "YearModel",
    "YearPerformance",
    "build_year_model",
    "calculate_lifetime_xirr",
    "calculate_year_performance",
    "combine_year_models",
    "compute_year_performance",
    "MissingPrice",
    "PerformancePriceInputs",
    "PriceQuote",
    "PriceSource",
    "PriceType",
    "StaticPriceSource",
    "modified_dietz",
    "time_weighted_return",
    "PerformanceService",
    "CashFlow",
    "xirr",
    "xirr_percentage",
]
