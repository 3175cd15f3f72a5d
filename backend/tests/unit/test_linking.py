"""
Unit Tests - Trade Linking Rules
Tests for the ledger entry a trade derives and the currency check.
"""
import pytest
from decimal import Decimal

from investment_tracker.core.trading.linking import (
    build_linked_entry,
    build_linked_entry_spec,
    ensure_currency_matches_ledger,
)
from investment_tracker.db.models.currency_ledger import CurrencyLedger
from investment_tracker.db.models.currency_transaction import CurrencyTransactionType
from investment_tracker.db.models.stock_transaction import StockMarket, StockTransactionType
from investment_tracker.utils.exceptions import BusinessRuleError, CurrencyMismatchError

from factories import make_trade


def usd_ledger():
    return CurrencyLedger(id=3, user_id=1, currency_code="USD", name="USD", home_currency="TWD")


class TestLinkedEntrySpec:
    """Tests for Spend / OtherIncome derivation."""

    def test_buy_spends_subtotal_plus_fees(self):
        spec = build_linked_entry_spec(make_trade(shares="10", price="50", fees="5"))
        assert spec.transaction_type == CurrencyTransactionType.SPEND
        assert spec.amount == Decimal("505.0000")
        assert "AAPL" in spec.notes
        assert "10" in spec.notes

    def test_sell_earns_subtotal_minus_fees(self):
        spec = build_linked_entry_spec(
            make_trade(transaction_type=StockTransactionType.SELL, shares="5", price="60", fees="5")
        )
        assert spec.transaction_type == CurrencyTransactionType.OTHER_INCOME
        assert spec.amount == Decimal("295.0000")

    def test_sell_netting_nothing_writes_no_entry(self):
        trade = make_trade(transaction_type=StockTransactionType.SELL, shares="1", price="5", fees="5")
        assert build_linked_entry_spec(trade) is None
        assert build_linked_entry(trade, usd_ledger()) is None

    def test_taiwan_subtotal_floored(self):
        spec = build_linked_entry_spec(
            make_trade(ticker="2330", shares="3", price="100.5", fees="20", currency="TWD", market=StockMarket.TW)
        )
        assert spec.amount == Decimal("321.0000")

    def test_fractional_shares_in_notes(self):
        spec = build_linked_entry_spec(make_trade(shares="0.5000", price="100"))
        assert spec.notes.endswith("0.5")


class TestLinkedEntry:
    """Tests for the unsaved ledger entry."""

    def test_entry_links_trade_and_converts_home_amount(self):
        trade = make_trade(shares="10", price="50", fees="5", exchange_rate="31.5", id=42)
        entry = build_linked_entry(trade, usd_ledger())

        assert entry.currency_ledger_id == 3
        assert entry.related_stock_transaction_id == 42
        assert entry.transaction_date == trade.transaction_date
        assert entry.home_amount == Decimal("15907.50")
        assert entry.exchange_rate == Decimal("31.5")
        assert entry.is_locked

    def test_entry_without_rate_has_no_home_amount(self):
        entry = build_linked_entry(make_trade(), usd_ledger())
        assert entry.home_amount is None
        assert entry.exchange_rate is None


class TestCurrencyCheck:
    """Tests for trade currency against the bound ledger."""

    def test_matching_currency_passes(self):
        ensure_currency_matches_ledger("usd", usd_ledger())

    def test_mismatch_names_both_currencies(self):
        ledger = CurrencyLedger(id=1, user_id=1, currency_code="TWD", name="TWD", home_currency="TWD")
        with pytest.raises(CurrencyMismatchError) as exc_info:
            ensure_currency_matches_ledger("USD", ledger)

        assert isinstance(exc_info.value, BusinessRuleError)
        assert "USD" in exc_info.value.message
        assert "TWD" in exc_info.value.message
        assert "不符" in exc_info.value.message
