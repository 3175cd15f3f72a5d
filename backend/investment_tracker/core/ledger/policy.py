"""
Currency Transaction Policy

Field rules shared by every path that writes a manual ledger entry.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from investment_tracker.db.models.currency_transaction import CurrencyTransactionType
from investment_tracker.utils.currency import round_amount, round_money, round_rate, to_decimal
from investment_tracker.utils.exceptions import BusinessRuleError, ValidationError

MAX_NOTES_LENGTH = 500

EXCHANGE_TYPES = frozenset({
    CurrencyTransactionType.EXCHANGE_BUY,
    CurrencyTransactionType.EXCHANGE_SELL,
})

RELATED_TRADE_NOT_ALLOWED = (
    "RelatedStockTransactionId cannot be provided when creating currency transactions."
)
EDIT_LOCKED_MESSAGE = (
    "Cannot edit transactions linked to stock purchases. Edit the stock transaction instead."
)
DELETE_LOCKED_MESSAGE = (
    "Cannot delete transactions linked to stock purchases. Delete the stock transaction instead."
)


@dataclass
class NormalizedAmounts:
    foreign_amount: Decimal
    home_amount: Optional[Decimal]
    exchange_rate: Optional[Decimal]


def is_allowed_for_ledger(
    ledger_currency: str,
    home_currency: str,
    transaction_type: CurrencyTransactionType,
) -> bool:
    """A home-currency ledger has nothing to exchange into."""
    if ledger_currency.upper() == home_currency.upper():
        return transaction_type not in EXCHANGE_TYPES
    return True


def ensure_allowed_for_ledger(
    ledger_currency: str,
    home_currency: str,
    transaction_type: CurrencyTransactionType,
) -> None:
    if not is_allowed_for_ledger(ledger_currency, home_currency, transaction_type):
        raise BusinessRuleError(
            f"{ledger_currency} ledger cannot use ExchangeBuy/ExchangeSell; "
            f"choose a transaction type allowed for this ledger."
        )


def normalize_amounts(
    transaction_type: CurrencyTransactionType,
    foreign_amount,
    home_amount=None,
    exchange_rate=None,
) -> NormalizedAmounts:
    """
    Validate and round entry amounts.

    Raises:
        ValidationError: non-positive amount, negative home amount or
            rate, or an exchange entry without its home amount and rate
    """
    if foreign_amount is None or to_decimal(foreign_amount) <= 0:
        raise ValidationError("Foreign amount must be positive", field="foreign_amount")
    if home_amount is not None and to_decimal(home_amount) < 0:
        raise ValidationError("Home amount cannot be negative", field="home_amount")
    if exchange_rate is not None and to_decimal(exchange_rate) <= 0:
        raise ValidationError("Exchange rate must be positive", field="exchange_rate")

    if transaction_type in EXCHANGE_TYPES and (home_amount is None or exchange_rate is None):
        raise ValidationError(
            "Exchange transactions require both home amount and exchange rate",
            field="home_amount" if home_amount is None else "exchange_rate",
        )

    return NormalizedAmounts(
        foreign_amount=round_amount(foreign_amount),
        home_amount=round_money(home_amount) if home_amount is not None else None,
        exchange_rate=round_rate(exchange_rate) if exchange_rate is not None else None,
    )


def normalize_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    notes = notes.strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(
            f"Notes cannot exceed {MAX_NOTES_LENGTH} characters", field="notes"
        )
    return notes or None


def ensure_transaction_date(transaction_date: Optional[date]) -> date:
    if transaction_date is None:
        raise ValidationError("Transaction date is required", field="transaction_date")
    return transaction_date
