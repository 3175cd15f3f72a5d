"""
Currency & Market Helpers

Decimal rounding rules for stored amounts and ticker-based market
detection. Amount precision:
- foreign amounts, shares, prices: 4 places
- home amounts, fees, costs, P&L: 2 places
- exchange rates, average costs: 6 places
"""
from decimal import Decimal, ROUND_HALF_UP, ROUND_FLOOR
from typing import Optional, Union

Number = Union[Decimal, int, float, str]

AMOUNT_PLACES = Decimal("0.0001")
MONEY_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.000001")

# Markets and their default trading currency
MARKET_CURRENCIES = {
    "us": "USD",
    "tw": "TWD",
    "uk": "GBP",
    "eu": "EUR",
}


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_amount(value: Number) -> Decimal:
    return to_decimal(value).quantize(AMOUNT_PLACES, rounding=ROUND_HALF_UP)


def round_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def round_rate(value: Number) -> Decimal:
    return to_decimal(value).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def normalize_currency(code: Optional[str]) -> Optional[str]:
    """Trim and upper-case an ISO currency code."""
    if code is None:
        return None
    return code.strip().upper()


def is_taiwan_ticker(ticker: str) -> bool:
    """Taiwan listings use numeric codes (2330, 0050, 00878)."""
    return bool(ticker) and ticker.strip()[:1].isdigit()


def guess_market_code(ticker: str) -> str:
    """
    Guess the listing market of a ticker.

    Args:
        ticker: The stock symbol (e.g., 'AAPL', '2330', 'VWRA.L')

    Returns:
        Market code ('us', 'tw', 'uk')
    """
    symbol = ticker.strip().upper()
    if is_taiwan_ticker(symbol):
        return "tw"
    if symbol.endswith(".L"):
        return "uk"
    return "us"


def trade_subtotal(shares: Number, price: Number, ticker: str) -> Decimal:
    """
    Trade notional (shares x price).

    Taiwan brokers settle whole dollars, so the notional is floored for
    Taiwan tickers.
    """
    subtotal = to_decimal(shares) * to_decimal(price)
    if is_taiwan_ticker(ticker):
        return subtotal.to_integral_value(rounding=ROUND_FLOOR)
    return subtotal
