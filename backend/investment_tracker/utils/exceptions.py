"""
Investment Tracker - Custom Exceptions
Application-specific exceptions with HTTP error handling
"""
from typing import Optional, Any, Dict
from fastapi import HTTPException, status


class InvestmentTrackerException(Exception):
    """Base exception for Investment Tracker."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str = "An error occurred",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


# =========================
# Validation Exceptions
# =========================

class ValidationError(InvestmentTrackerException):
    """Malformed or out-of-range input, rejected before any persistence."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str = "Invalid input",
        field: Optional[str] = None,
        code: str = "VALIDATION_ERROR"
    ):
        super().__init__(
            message=message,
            code=code,
            details={"field": field} if field else None
        )
        self.field = field


class UnknownTransactionTypeError(ValidationError):
    """Currency transaction kind outside the supported set."""

    def __init__(self, transaction_type: Any = None):
        super().__init__(
            message=f"Unknown currency transaction type: {transaction_type!r}",
            field="transaction_type",
            code="UNKNOWN_TRANSACTION_TYPE"
        )


# =========================
# Business Rule Exceptions
# =========================

class BusinessRuleError(InvestmentTrackerException):
    """Request is well formed but violates a domain rule."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str = "Business rule violated", code: str = "BUSINESS_RULE"):
        super().__init__(message=message, code=code)


class CurrencyMismatchError(BusinessRuleError):
    """Trade currency differs from the bound ledger currency."""

    def __init__(self, requested: str, ledger_currency: str):
        super().__init__(
            message=f"股票幣別 ({requested}) 與帳本綁定幣別 ({ledger_currency}) 不符",
            code="CURRENCY_MISMATCH"
        )
        self.requested = requested
        self.ledger_currency = ledger_currency


class LockedTransactionError(BusinessRuleError):
    """Ledger entry is owned by a stock trade."""

    def __init__(self, message: str):
        super().__init__(message=message, code="LOCKED_TRANSACTION")


class InsufficientFundsError(BusinessRuleError):
    """Ledger balance would go negative while cash checks are enforced."""

    def __init__(self, message: str = "Insufficient ledger balance"):
        super().__init__(message=message, code="INSUFFICIENT_FUNDS")


# =========================
# Not Found Exceptions
# =========================

class NotFoundError(InvestmentTrackerException):
    """Unknown id, or an id owned by another user."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND"):
        super().__init__(message=message, code=code)


class PortfolioNotFoundError(NotFoundError):
    """Portfolio not found."""

    def __init__(self, portfolio_id: Any = None):
        message = f"Portfolio {portfolio_id} not found" if portfolio_id is not None else "Portfolio not found"
        super().__init__(message=message, code="PORTFOLIO_NOT_FOUND")


class CurrencyLedgerNotFoundError(NotFoundError):
    """Currency ledger not found."""

    def __init__(self, ledger_id: Any = None):
        message = f"Currency ledger {ledger_id} not found" if ledger_id is not None else "Currency ledger not found"
        super().__init__(message=message, code="CURRENCY_LEDGER_NOT_FOUND")


class TransactionNotFoundError(NotFoundError):
    """Stock or currency transaction not found."""

    def __init__(self, kind: str, transaction_id: Any = None):
        message = f"{kind} {transaction_id} not found" if transaction_id is not None else f"{kind} not found"
        super().__init__(message=message, code="TRANSACTION_NOT_FOUND")


# =========================
# HTTP Exception Helpers
# =========================

def raise_unauthorized(message: str = "Unauthorized"):
    """Raise 401 Unauthorized exception."""
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"}
    )
