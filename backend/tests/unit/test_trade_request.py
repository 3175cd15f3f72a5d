"""
Unit Tests - Trade Requests & Currency Helpers
Tests for trade request validation, market detection and rounding.
"""
import pytest
from datetime import date
from decimal import Decimal

from investment_tracker.core.trading.orchestrator import TradeRequest
from investment_tracker.db.models.stock_transaction import BalanceAction, StockMarket, StockTransactionType
from investment_tracker.utils.currency import (
    guess_market_code,
    is_taiwan_ticker,
    normalize_currency,
    round_amount,
    round_money,
    round_rate,
    trade_subtotal,
)
from investment_tracker.utils.exceptions import ValidationError


def request(**overrides):
    data = dict(
        portfolio_id=1,
        transaction_date=date(2024, 1, 10),
        ticker="aapl",
        transaction_type=StockTransactionType.BUY,
        shares=Decimal("10"),
        price_per_share=Decimal("50"),
        fees=Decimal("5"),
    )
    data.update(overrides)
    return TradeRequest(**data)


class TestTradeRequest:
    """Tests for request normalization."""

    def test_normalizes_ticker_market_and_currency(self):
        trade = request()
        assert trade.ticker == "AAPL"
        assert trade.market == StockMarket.US
        assert trade.currency == "USD"
        assert trade.balance_action == BalanceAction.NONE

    def test_taiwan_ticker_defaults(self):
        trade = request(ticker="2330")
        assert trade.market == StockMarket.TW
        assert trade.currency == "TWD"

    def test_explicit_currency_kept(self):
        assert request(ticker="VWRA.L", currency=" usd ").currency == "USD"

    def test_string_enums_accepted(self):
        trade = request(transaction_type="sell", balance_action="margin")
        assert trade.transaction_type == StockTransactionType.SELL
        assert trade.balance_action == BalanceAction.MARGIN

    def test_amounts_rounded(self):
        trade = request(shares=Decimal("1.123456"), fees=Decimal("0.125"), exchange_rate=Decimal("31.1234567"))
        assert trade.shares == Decimal("1.1235")
        assert trade.fees == Decimal("0.13")
        assert trade.exchange_rate == Decimal("31.123457")

    @pytest.mark.parametrize("overrides,field", [
        ({"ticker": "  "}, "ticker"),
        ({"ticker": "X" * 21}, "ticker"),
        ({"shares": Decimal("0")}, "shares"),
        ({"price_per_share": Decimal("-1")}, "price_per_share"),
        ({"fees": Decimal("-0.01")}, "fees"),
        ({"exchange_rate": Decimal("0")}, "exchange_rate"),
        ({"transaction_date": None}, "transaction_date"),
        ({"notes": "x" * 501}, "notes"),
    ])
    def test_invalid_fields(self, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            request(**overrides)
        assert exc_info.value.field == field

    def test_blank_notes_dropped(self):
        assert request(notes="   ").notes is None


class TestCurrencyHelpers:
    """Tests for rounding and market detection."""

    def test_rounding_half_up(self):
        assert round_amount("1.00005") == Decimal("1.0001")
        assert round_money("2.005") == Decimal("2.01")
        assert round_rate(0.1234565) == Decimal("0.123457")

    def test_market_detection(self):
        assert guess_market_code("0050") == "tw"
        assert guess_market_code("vwra.l") == "uk"
        assert guess_market_code("MSFT") == "us"
        assert is_taiwan_ticker("00878")
        assert not is_taiwan_ticker("")

    def test_subtotal_floor_only_for_taiwan(self):
        assert trade_subtotal("3", "100.5", "2330") == Decimal("301")
        assert trade_subtotal("3", "100.5", "AAPL") == Decimal("301.5")

    def test_normalize_currency(self):
        assert normalize_currency(" twd ") == "TWD"
        assert normalize_currency(None) is None
