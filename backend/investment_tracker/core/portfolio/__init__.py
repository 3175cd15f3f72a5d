"""
Portfolio Management Module
"""
from investment_tracker.core.portfolio.service import PortfolioService

__all__ = ["PortfolioService"]
