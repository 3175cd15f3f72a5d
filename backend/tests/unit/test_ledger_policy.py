"""
Unit Tests - Currency Transaction Policy
Tests for manual entry field rules and ledger type restrictions.
"""
import pytest
from datetime import date
from decimal import Decimal

from investment_tracker.core.ledger.policy import (
    ensure_allowed_for_ledger,
    ensure_transaction_date,
    is_allowed_for_ledger,
    normalize_amounts,
    normalize_notes,
    MAX_NOTES_LENGTH,
)
from investment_tracker.db.models.currency_transaction import CurrencyTransactionType as T
from investment_tracker.utils.exceptions import BusinessRuleError, ValidationError


class TestLedgerTypeRestrictions:
    """Tests for exchange kinds on home-currency ledgers."""

    def test_home_ledger_rejects_exchange_kinds(self):
        assert not is_allowed_for_ledger("TWD", "TWD", T.EXCHANGE_BUY)
        assert not is_allowed_for_ledger("twd", "TWD", T.EXCHANGE_SELL)

    def test_home_ledger_allows_other_kinds(self):
        assert is_allowed_for_ledger("TWD", "TWD", T.DEPOSIT)
        assert is_allowed_for_ledger("TWD", "TWD", T.INTEREST)

    def test_foreign_ledger_allows_everything(self):
        for kind in T:
            assert is_allowed_for_ledger("USD", "TWD", kind)

    def test_ensure_raises_business_rule(self):
        with pytest.raises(BusinessRuleError) as exc_info:
            ensure_allowed_for_ledger("TWD", "TWD", T.EXCHANGE_BUY)
        assert exc_info.value.status_code == 422


class TestAmountNormalization:
    """Tests for amount validation and rounding."""

    def test_rounds_to_storage_precision(self):
        amounts = normalize_amounts(T.EXCHANGE_BUY, "100.123456", "3100.555", "31.0000049")
        assert amounts.foreign_amount == Decimal("100.1235")
        assert amounts.home_amount == Decimal("3100.56")
        assert amounts.exchange_rate == Decimal("31.000005")

    @pytest.mark.parametrize("amount", [None, "0", "-1"])
    def test_foreign_amount_must_be_positive(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            normalize_amounts(T.DEPOSIT, amount)
        assert exc_info.value.field == "foreign_amount"

    def test_negative_home_amount_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_amounts(T.DEPOSIT, "10", home_amount="-1")
        assert exc_info.value.field == "home_amount"

    def test_non_positive_rate_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_amounts(T.DEPOSIT, "10", exchange_rate="0")
        assert exc_info.value.field == "exchange_rate"

    def test_exchange_requires_home_amount_and_rate(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_amounts(T.EXCHANGE_SELL, "10", exchange_rate="31")
        assert exc_info.value.field == "home_amount"

        with pytest.raises(ValidationError) as exc_info:
            normalize_amounts(T.EXCHANGE_BUY, "10", home_amount="310")
        assert exc_info.value.field == "exchange_rate"

    def test_optional_fields_stay_empty(self):
        amounts = normalize_amounts(T.INTEREST, "1.5")
        assert amounts.home_amount is None
        assert amounts.exchange_rate is None


class TestNotesAndDate:
    """Tests for notes and date rules."""

    def test_notes_trimmed(self):
        assert normalize_notes("  salary  ") == "salary"

    def test_blank_notes_become_none(self):
        assert normalize_notes("   ") is None
        assert normalize_notes(None) is None

    def test_notes_length_limit(self):
        assert normalize_notes("x" * MAX_NOTES_LENGTH) == "x" * MAX_NOTES_LENGTH
        with pytest.raises(ValidationError):
            normalize_notes("x" * (MAX_NOTES_LENGTH + 1))

    def test_date_required(self):
        assert ensure_transaction_date(date(2024, 3, 1)) == date(2024, 3, 1)
        with pytest.raises(ValidationError):
            ensure_transaction_date(None)
