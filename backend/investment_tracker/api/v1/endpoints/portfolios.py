"""
Investment Tracker - Portfolio Endpoints
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from investment_tracker.core.portfolio.service import PortfolioService
from investment_tracker.dependencies import get_current_user_id, get_db

router = APIRouter()


# ==================== SCHEMAS ====================

class PortfolioCreate(BaseModel):
    """Request to create a portfolio with its bound ledger."""
    name: str = Field(..., min_length=1, max_length=100, description="Portfolio name")
    description: Optional[str] = Field(None, max_length=500)
    base_currency: str = Field(default="USD", min_length=3, max_length=3, description="Ledger currency")
    home_currency: Optional[str] = Field(None, min_length=3, max_length=3, description="Reporting currency")
    ledger_name: Optional[str] = Field(None, max_length=100)


class PortfolioResponse(BaseModel):
    """Portfolio."""
    id: int
    name: str
    description: Optional[str]
    base_currency: str
    home_currency: str
    bound_currency_ledger_id: int
    is_active: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


# ==================== ENDPOINTS ====================

@router.post("/", response_model=PortfolioResponse, status_code=status.HTTP_201_CREATED)
async def create_portfolio(
    payload: PortfolioCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Create a portfolio bound to a new ledger in its base currency."""
    portfolio = await PortfolioService(db).create_portfolio(user_id=user_id, **payload.model_dump())
    return PortfolioResponse.model_validate(portfolio)


@router.get("/", response_model=List[PortfolioResponse])
async def list_portfolios(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    portfolios = await PortfolioService(db).list_portfolios(user_id, active_only=active_only)
    return [PortfolioResponse.model_validate(p) for p in portfolios]


@router.get("/{portfolio_id}", response_model=PortfolioResponse)
async def get_portfolio(
    portfolio_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    portfolio = await PortfolioService(db).get_portfolio(portfolio_id, user_id)
    return PortfolioResponse.model_validate(portfolio)
