"""
Ledger Write Locks

In-process single-writer lock per ledger. Every write that appends to or
removes from a ledger holds the ledger's lock for the whole database
transaction, so concurrent trades on one ledger never interleave.
Cross-process writers are serialized by the row lock taken in
CurrencyLedgerRepository.get_for_update.

A ledger's lock only lives while some writer holds or waits for it.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional


class LedgerLockRegistry:
    """Lazily created asyncio locks keyed by ledger id."""

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        # Holders plus waiters per ledger
        self._users: Dict[int, int] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def get_lock(self, ledger_id: int) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            # Locks are bound to the loop that first waits on them
            self._locks = {}
            self._users = {}
            self._loop = loop
        lock = self._locks.get(ledger_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[ledger_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, ledger_id: int) -> AsyncIterator[None]:
        lock = self.get_lock(ledger_id)
        self._users[ledger_id] = self._users.get(ledger_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._release(ledger_id, lock)

    def _release(self, ledger_id: int, lock: asyncio.Lock) -> None:
        remaining = self._users.get(ledger_id, 1) - 1
        if remaining > 0:
            self._users[ledger_id] = remaining
            return
        self._users.pop(ledger_id, None)
        if self._locks.get(ledger_id) is lock:
            del self._locks[ledger_id]

    def __len__(self) -> int:
        return len(self._locks)


_ledger_locks: Optional[LedgerLockRegistry] = None


def get_ledger_locks() -> LedgerLockRegistry:
    """Get or create global ledger lock registry."""
    global _ledger_locks
    if _ledger_locks is None:
        _ledger_locks = LedgerLockRegistry()
    return _ledger_locks
