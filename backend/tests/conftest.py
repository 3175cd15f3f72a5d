"""
Investment Tracker - Test Configuration
Shared fixtures and test configuration.
"""
import os
import sys
from typing import AsyncGenerator

import pytest
import pytest_asyncio

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment before any app module reads settings
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key"
os.environ["ENABLE_CACHE_INVALIDATION"] = "false"
os.environ["ENFORCE_CASH_CHECK"] = "false"
os.environ["DEFAULT_HOME_CURRENCY"] = "TWD"

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from investment_tracker.core.ledger.locks import LedgerLockRegistry
from investment_tracker.core.ledger.service import CurrencyLedgerService
from investment_tracker.core.portfolio.service import PortfolioService
from investment_tracker.core.trading.orchestrator import TradeOrchestrator
from investment_tracker.db.database import Base
from investment_tracker.db import models  # noqa: F401
from investment_tracker.services.change_notifier import ChangeNotifier


# =========================
# Database Fixtures
# =========================

@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


# =========================
# Collaborator Fixtures
# =========================

@pytest.fixture
def notifier() -> ChangeNotifier:
    """Notifier without listeners."""
    return ChangeNotifier([])


@pytest.fixture
def locks() -> LedgerLockRegistry:
    return LedgerLockRegistry()


# =========================
# Portfolio Fixtures
# =========================

@pytest_asyncio.fixture
async def usd_portfolio(db_session):
    """USD portfolio of user 1 reporting in TWD, with its bound USD ledger."""
    return await PortfolioService(db_session).create_portfolio(
        user_id=1,
        name="US Stocks",
        base_currency="USD",
        home_currency="TWD",
    )


@pytest_asyncio.fixture
async def ledger_service(db_session, notifier, locks) -> CurrencyLedgerService:
    return CurrencyLedgerService(db_session, notifier=notifier, locks=locks)


@pytest_asyncio.fixture
async def orchestrator(db_session, notifier, locks) -> TradeOrchestrator:
    return TradeOrchestrator(db_session, notifier=notifier, locks=locks, enforce_cash_check=False)
