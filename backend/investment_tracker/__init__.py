"""Investment Tracker - multi-currency portfolio ledger and performance engine."""

__version__ = "1.0.0"
