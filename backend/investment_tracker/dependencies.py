"""
Investment Tracker - Dependencies
Dependency injection for FastAPI endpoints
"""
from typing import AsyncGenerator

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from investment_tracker.config import settings
from investment_tracker.core.ledger.locks import LedgerLockRegistry, get_ledger_locks
from investment_tracker.core.security import verify_token
from investment_tracker.db.database import async_session_maker
from investment_tracker.services.change_notifier import ChangeNotifier, get_change_notifier
from investment_tracker.utils.exceptions import raise_unauthorized


# OAuth2 scheme for token authentication
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/token"
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency.

    Services commit their own units of work; the session is only closed here.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> int:
    """
    Get the caller's user id from the bearer JWT.

    Raises:
        HTTPException: If the token is invalid or carries no numeric subject
    """
    subject = verify_token(token, token_type="access")
    if subject is None:
        raise_unauthorized("Could not validate credentials")

    try:
        return int(subject)
    except (ValueError, TypeError):
        raise_unauthorized("Could not validate credentials")


def get_notifier() -> ChangeNotifier:
    return get_change_notifier()


def get_locks() -> LedgerLockRegistry:
    return get_ledger_locks()
