"""
Portfolio Service

Creates portfolios together with their bound currency ledger and lists
a user's portfolios.
"""
from typing import List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from investment_tracker.config import settings
from investment_tracker.db.models.currency_ledger import CurrencyLedger
from investment_tracker.db.models.portfolio import Portfolio
from investment_tracker.db.repositories.currency_ledger import CurrencyLedgerRepository
from investment_tracker.db.repositories.portfolio import PortfolioRepository
from investment_tracker.utils.currency import normalize_currency
from investment_tracker.utils.exceptions import PortfolioNotFoundError, ValidationError


class PortfolioService:
    """
    Service for portfolio management operations.

    Usage:
        service = PortfolioService(db_session)
        portfolio = await service.create_portfolio(user_id=1, name="US", base_currency="USD")
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.portfolios = PortfolioRepository(db)
        self.ledgers = CurrencyLedgerRepository(db)

    async def create_portfolio(
        self,
        user_id: int,
        name: str,
        base_currency: str = "USD",
        home_currency: Optional[str] = None,
        description: Optional[str] = None,
        ledger_name: Optional[str] = None,
    ) -> Portfolio:
        """
        Create a portfolio and its bound ledger in one transaction.

        The ledger currency is the portfolio's base currency and can never
        be re-bound.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Portfolio name is required", field="name")
        base = normalize_currency(base_currency)
        home = normalize_currency(home_currency) or settings.DEFAULT_HOME_CURRENCY
        if not base or len(base) != 3:
            raise ValidationError("Base currency must be a 3-letter code", field="base_currency")
        if len(home) != 3:
            raise ValidationError("Home currency must be a 3-letter code", field="home_currency")

        try:
            ledger = await self.ledgers.create(CurrencyLedger(
                user_id=user_id,
                currency_code=base,
                name=ledger_name or f"{name} {base}",
                home_currency=home,
            ))
            portfolio = await self.portfolios.create(Portfolio(
                user_id=user_id,
                name=name,
                description=description,
                base_currency=base,
                home_currency=home,
                bound_currency_ledger_id=ledger.id,
            ))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Created portfolio {portfolio.id} ({base}) bound to ledger {ledger.id} for user {user_id}")
        return portfolio

    async def get_portfolio(self, portfolio_id: int, user_id: int) -> Portfolio:
        portfolio = await self.portfolios.get_owned(portfolio_id, user_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    async def list_portfolios(self, user_id: int, active_only: bool = False) -> List[Portfolio]:
        return await self.portfolios.get_by_user(user_id, active_only=active_only)
