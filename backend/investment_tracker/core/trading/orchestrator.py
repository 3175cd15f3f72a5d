"""
Investment Tracker - Trade Orchestrator

Writes a stock trade and the ledger entry it derives as one unit.

ATOMICITY:
- The per-ledger lock is held from the first read to the commit
- The bound ledger row is locked (SELECT ... FOR UPDATE)
- Trade and ledger entry are flushed in one database transaction;
  any failure rolls both back
- Change listeners run only after the commit and cannot undo it
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from investment_tracker.config import settings
from investment_tracker.core.ledger.balance import calculate_balance
from investment_tracker.core.ledger.locks import LedgerLockRegistry, get_ledger_locks
from investment_tracker.core.trading.linking import build_linked_entry, ensure_currency_matches_ledger
from investment_tracker.core.trading.positions import calculate_position, calculate_realized_pnl
from investment_tracker.db.models.currency_ledger import CurrencyLedger
from investment_tracker.db.models.currency_transaction import CurrencyTransaction
from investment_tracker.db.models.portfolio import Portfolio
from investment_tracker.db.models.stock_transaction import (
    BalanceAction,
    StockMarket,
    StockTransaction,
    StockTransactionType,
)
from investment_tracker.db.repositories.currency_ledger import CurrencyLedgerRepository
from investment_tracker.db.repositories.currency_transaction import CurrencyTransactionRepository
from investment_tracker.db.repositories.portfolio import PortfolioRepository
from investment_tracker.db.repositories.stock_transaction import StockTransactionRepository
from investment_tracker.services.change_notifier import (
    ChangeEvent,
    ChangeKind,
    ChangeNotifier,
    get_change_notifier,
)
from investment_tracker.utils.currency import (
    normalize_currency,
    round_amount,
    round_money,
    round_rate,
    to_decimal,
)
from investment_tracker.utils.exceptions import (
    CurrencyLedgerNotFoundError,
    InsufficientFundsError,
    PortfolioNotFoundError,
    TransactionNotFoundError,
    ValidationError,
)

MAX_TICKER_LENGTH = 20
MAX_NOTES_LENGTH = 500


@dataclass
class TradeRequest:
    """Trade request data."""
    portfolio_id: int
    transaction_date: date
    ticker: str
    transaction_type: StockTransactionType
    shares: Decimal
    price_per_share: Decimal
    fees: Decimal = Decimal("0")
    currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    market: Optional[StockMarket] = None
    balance_action: BalanceAction = BalanceAction.NONE
    notes: Optional[str] = None
    # Record the trade without touching the bound ledger
    skip_ledger: bool = False

    def __post_init__(self):
        """Validate and normalize the request."""
        self.ticker = (self.ticker or "").strip().upper()
        if not self.ticker:
            raise ValidationError("Ticker is required", field="ticker")
        if len(self.ticker) > MAX_TICKER_LENGTH:
            raise ValidationError(
                f"Ticker cannot exceed {MAX_TICKER_LENGTH} characters", field="ticker"
            )
        if self.transaction_date is None:
            raise ValidationError("Transaction date is required", field="transaction_date")

        self.transaction_type = StockTransactionType(self.transaction_type)
        self.balance_action = BalanceAction(self.balance_action or BalanceAction.NONE)

        if self.shares is None or to_decimal(self.shares) <= 0:
            raise ValidationError("Shares must be positive", field="shares")
        if self.price_per_share is None or to_decimal(self.price_per_share) < 0:
            raise ValidationError("Price per share cannot be negative", field="price_per_share")
        if self.fees is None or to_decimal(self.fees) < 0:
            raise ValidationError("Fees cannot be negative", field="fees")
        if self.exchange_rate is not None and to_decimal(self.exchange_rate) <= 0:
            raise ValidationError("Exchange rate must be positive", field="exchange_rate")

        self.shares = round_amount(self.shares)
        self.price_per_share = round_amount(self.price_per_share)
        self.fees = round_money(self.fees)
        if self.exchange_rate is not None:
            self.exchange_rate = round_rate(self.exchange_rate)

        self.market = StockMarket(self.market) if self.market else StockMarket.guess(self.ticker)
        self.currency = normalize_currency(self.currency) or self.market.default_currency

        if self.notes is not None:
            self.notes = self.notes.strip() or None
            if self.notes and len(self.notes) > MAX_NOTES_LENGTH:
                raise ValidationError(
                    f"Notes cannot exceed {MAX_NOTES_LENGTH} characters", field="notes"
                )


@dataclass
class TradeResult:
    """Committed trade and its ledger effect."""
    stock_transaction: StockTransaction
    currency_transaction: Optional[CurrencyTransaction]
    currency_ledger_id: int
    ledger_balance: Decimal


class TradeOrchestrator:
    """
    Trade Orchestrator

    Responsible for:
    - Trade validation against the portfolio and its bound ledger
    - Writing trade + derived ledger entry atomically
    - Cascading trade deletion to the derived entry
    - Publishing change events after commit

    Usage:
        orchestrator = TradeOrchestrator(db_session)
        result = await orchestrator.execute_trade(request, user_id=1)
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[ChangeNotifier] = None,
        locks: Optional[LedgerLockRegistry] = None,
        enforce_cash_check: Optional[bool] = None,
    ):
        self.db = db
        self.portfolios = PortfolioRepository(db)
        self.ledgers = CurrencyLedgerRepository(db)
        self.stock_transactions = StockTransactionRepository(db)
        self.currency_transactions = CurrencyTransactionRepository(db)
        self.notifier = notifier or get_change_notifier()
        self.locks = locks or get_ledger_locks()
        self.enforce_cash_check = (
            settings.ENFORCE_CASH_CHECK if enforce_cash_check is None else enforce_cash_check
        )

    # ==================== LOOKUPS ====================

    async def _get_portfolio(self, portfolio_id: int, user_id: int) -> Portfolio:
        portfolio = await self.portfolios.get_owned(portfolio_id, user_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    async def _get_bound_ledger(self, portfolio: Portfolio) -> CurrencyLedger:
        ledger = await self.ledgers.get_by_id(portfolio.bound_currency_ledger_id)
        if ledger is None:
            raise CurrencyLedgerNotFoundError(portfolio.bound_currency_ledger_id)
        return ledger

    async def _get_trade(self, trade_id: int, user_id: int) -> StockTransaction:
        trade = await self.stock_transactions.get_owned(trade_id, user_id)
        if trade is None:
            raise TransactionNotFoundError("Stock transaction", trade_id)
        return trade

    # ==================== EXECUTE ====================

    async def execute_trade(self, request: TradeRequest, user_id: int) -> TradeResult:
        """
        Record a trade and its derived ledger entry.

        Raises:
            PortfolioNotFoundError: portfolio unknown or owned by another user
            CurrencyMismatchError: trade currency differs from the bound ledger
            InsufficientFundsError: cash checks enforced and balance would go
                negative without Margin
        """
        portfolio = await self._get_portfolio(request.portfolio_id, user_id)
        ledger = await self._get_bound_ledger(portfolio)
        ensure_currency_matches_ledger(request.currency, ledger)

        async with self.locks.hold(ledger.id):
            try:
                await self.ledgers.get_for_update(ledger.id)
                trade, entry = await self._write_trade(request, portfolio, ledger)
                balance = await self._check_balance(ledger, request)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info(
            f"Trade {trade.id}: {trade.transaction_type.value} {trade.ticker} "
            f"{trade.shares} @ {trade.price_per_share} {trade.currency} "
            f"(portfolio {portfolio.id}, ledger {ledger.id} balance {balance})"
        )
        self._publish(ChangeKind.TRADE_CREATED, user_id, portfolio, trade)
        return TradeResult(
            stock_transaction=trade,
            currency_transaction=entry,
            currency_ledger_id=ledger.id,
            ledger_balance=balance,
        )

    async def _write_trade(
        self,
        request: TradeRequest,
        portfolio: Portfolio,
        ledger: CurrencyLedger,
    ) -> tuple[StockTransaction, Optional[CurrencyTransaction]]:
        """Flush trade + entry inside the caller's transaction."""
        exchange_rate = request.exchange_rate
        if exchange_rate is None and request.currency == normalize_currency(portfolio.home_currency):
            exchange_rate = Decimal("1")

        trade = StockTransaction(
            portfolio_id=portfolio.id,
            transaction_date=request.transaction_date,
            ticker=request.ticker,
            transaction_type=request.transaction_type,
            shares=request.shares,
            price_per_share=request.price_per_share,
            fees=request.fees,
            exchange_rate=exchange_rate,
            currency=request.currency,
            market=request.market,
            balance_action=request.balance_action,
            notes=request.notes,
        )

        if trade.transaction_type == StockTransactionType.SELL:
            history = await self.stock_transactions.get_by_portfolio(
                portfolio.id, ticker=trade.ticker, end_date=trade.transaction_date
            )
            position = calculate_position(trade.ticker, history)
            if position.total_shares < trade.shares:
                logger.warning(
                    f"Sell of {trade.shares} {trade.ticker} exceeds held {position.total_shares} "
                    f"in portfolio {portfolio.id}"
                )
            realized = calculate_realized_pnl(position, trade) if position.is_open else None
            trade.realized_pnl_home = round_money(realized) if realized is not None else None

        trade = await self.stock_transactions.create(trade)

        entry = None
        if not request.skip_ledger:
            entry = build_linked_entry(trade, ledger)
            if entry is not None:
                entry = await self.currency_transactions.create(entry)
        return trade, entry

    async def _check_balance(self, ledger: CurrencyLedger, request: TradeRequest) -> Decimal:
        balance = calculate_balance(await self.currency_transactions.get_by_ledger(ledger.id))
        if (
            balance < 0
            and self.enforce_cash_check
            and request.balance_action != BalanceAction.MARGIN
            and not request.skip_ledger
        ):
            raise InsufficientFundsError(
                f"Insufficient balance in {ledger.currency_code} ledger: "
                f"balance after trade would be {balance}"
            )
        return balance

    # ==================== DELETE ====================

    async def delete_trade(self, trade_id: int, user_id: int) -> None:
        """Delete a trade and its derived ledger entry together."""
        trade = await self._get_trade(trade_id, user_id)
        portfolio = await self._get_portfolio(trade.portfolio_id, user_id)
        ledger_id = portfolio.bound_currency_ledger_id

        async with self.locks.hold(ledger_id):
            try:
                await self.ledgers.get_for_update(ledger_id)
                removed = await self._remove_trade(trade)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info(f"Trade {trade_id} deleted with {removed} linked ledger entries")
        self._publish(ChangeKind.TRADE_DELETED, user_id, portfolio, trade)

    async def _remove_trade(self, trade: StockTransaction) -> int:
        removed = await self.currency_transactions.delete_by_stock_transaction(trade.id)
        await self.stock_transactions.delete(trade)
        return removed

    # ==================== REPLACE ====================

    async def replace_trade(
        self,
        trade_id: int,
        request: TradeRequest,
        user_id: int,
    ) -> TradeResult:
        """
        Replace a trade (and its ledger entry) with a new one in one unit.

        Trades are immutable; this is the only way to correct one.
        """
        old_trade = await self._get_trade(trade_id, user_id)
        if request.portfolio_id != old_trade.portfolio_id:
            raise ValidationError(
                "A trade cannot be moved to another portfolio", field="portfolio_id"
            )
        portfolio = await self._get_portfolio(old_trade.portfolio_id, user_id)
        ledger = await self._get_bound_ledger(portfolio)
        ensure_currency_matches_ledger(request.currency, ledger)

        async with self.locks.hold(ledger.id):
            try:
                await self.ledgers.get_for_update(ledger.id)
                await self._remove_trade(old_trade)
                trade, entry = await self._write_trade(request, portfolio, ledger)
                balance = await self._check_balance(ledger, request)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info(f"Trade {trade_id} replaced by trade {trade.id}")
        self._publish(ChangeKind.TRADE_REPLACED, user_id, portfolio, trade)
        return TradeResult(
            stock_transaction=trade,
            currency_transaction=entry,
            currency_ledger_id=ledger.id,
            ledger_balance=balance,
        )

    def _publish(
        self,
        kind: ChangeKind,
        user_id: int,
        portfolio: Portfolio,
        trade: StockTransaction,
    ) -> None:
        self.notifier.publish(ChangeEvent(
            kind=kind,
            user_id=user_id,
            ledger_id=portfolio.bound_currency_ledger_id,
            portfolio_id=portfolio.id,
            transaction_id=trade.id,
            transaction_date=trade.transaction_date,
        ))
