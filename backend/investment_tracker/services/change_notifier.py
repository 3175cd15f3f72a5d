"""
Investment Tracker - Change Notifier

Fire-and-forget notifications after a ledger or trade write commits:
- Performance cache invalidation (Redis)
- Audit logging

Listener failures are logged and never propagate to the writer; the
write has already committed when listeners run.
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional, Set

from loguru import logger

from investment_tracker.config import settings
from investment_tracker.db.redis_client import RedisClient, redis_client


class ChangeKind(str, Enum):
    """What was written."""
    TRADE_CREATED = "trade_created"
    TRADE_DELETED = "trade_deleted"
    TRADE_REPLACED = "trade_replaced"
    LEDGER_ENTRY_CREATED = "ledger_entry_created"
    LEDGER_ENTRY_UPDATED = "ledger_entry_updated"
    LEDGER_ENTRY_DELETED = "ledger_entry_deleted"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed write affecting a user's portfolios."""
    kind: ChangeKind
    user_id: int
    ledger_id: Optional[int] = None
    portfolio_id: Optional[int] = None
    transaction_id: Optional[int] = None
    transaction_date: Optional[date] = None


class ChangeListener(ABC):
    """Receives committed change events."""

    @abstractmethod
    async def on_change(self, event: ChangeEvent) -> None:
        ...


class PerformanceCacheInvalidator(ChangeListener):
    """Drops cached performance results of the affected user."""

    def __init__(self, client: RedisClient = redis_client):
        self.client = client

    async def on_change(self, event: ChangeEvent) -> None:
        if not self.client.is_available:
            return
        deleted = await self.client.delete_pattern(performance_cache_pattern(event.user_id))
        logger.debug(f"Invalidated {deleted} performance cache entries for user {event.user_id}")


class AuditLogListener(ChangeListener):
    """Writes one log line per change."""

    async def on_change(self, event: ChangeEvent) -> None:
        logger.info(
            f"{event.kind.value}: user={event.user_id} portfolio={event.portfolio_id} "
            f"ledger={event.ledger_id} tx={event.transaction_id} date={event.transaction_date}"
        )


def performance_cache_key(user_id: int, scope: str, year: int, fingerprint: str) -> str:
    return f"performance:{user_id}:{scope}:{year}:{fingerprint}"


def performance_cache_pattern(user_id: int) -> str:
    return f"performance:{user_id}:*"


class ChangeNotifier:
    """
    Dispatches change events to listeners as background tasks.

    Usage:
        notifier = get_change_notifier()
        notifier.publish(ChangeEvent(kind=ChangeKind.TRADE_CREATED, user_id=1))
    """

    def __init__(self, listeners: Optional[List[ChangeListener]] = None):
        self.listeners: List[ChangeListener] = list(listeners or [])
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, listener: ChangeListener) -> None:
        self.listeners.append(listener)

    def publish(self, event: ChangeEvent) -> None:
        """Schedule every listener without awaiting it."""
        for listener in self.listeners:
            task = asyncio.create_task(self._deliver(listener, event))
            # Keep a strong reference until the task finishes
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, listener: ChangeListener, event: ChangeEvent) -> None:
        try:
            await listener.on_change(event)
        except Exception as e:
            logger.warning(
                f"Change listener {type(listener).__name__} failed for {event.kind.value}: {e}"
            )

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def pending_count(self) -> int:
        return len(self._pending)


_change_notifier: Optional[ChangeNotifier] = None


def get_change_notifier() -> ChangeNotifier:
    """Get or create global change notifier."""
    global _change_notifier
    if _change_notifier is None:
        listeners: List[ChangeListener] = [AuditLogListener()]
        if settings.ENABLE_CACHE_INVALIDATION:
            listeners.append(PerformanceCacheInvalidator())
        _change_notifier = ChangeNotifier(listeners)
    return _change_notifier
