"""
Investment Tracker - API v1 Router
"""
from fastapi import APIRouter

from investment_tracker.api.v1.endpoints import (
    currency_ledgers, currency_transactions, performance, portfolios, stock_transactions
)

api_router = APIRouter()


# API v1 root endpoint
@api_router.get("/", tags=["API Info"])
async def api_root():
    """API v1 root - returns version info."""
    return {
        "api": "Investment Tracker",
        "version": "v1",
        "status": "operational"
    }


# Include all endpoint routers
api_router.include_router(portfolios.router, prefix="/portfolios", tags=["Portfolios"])
api_router.include_router(stock_transactions.router, prefix="/stock-transactions", tags=["Stock Transactions"])
api_router.include_router(currency_transactions.router, prefix="/currency-transactions", tags=["Currency Transactions"])
api_router.include_router(currency_ledgers.router, prefix="/currency-ledgers", tags=["Currency Ledgers"])
api_router.include_router(performance.router, prefix="/performance", tags=["Performance"])
