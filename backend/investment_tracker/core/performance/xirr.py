"""
XIRR Solver

Internal rate of return for cash flows on irregular dates:

    sum(amount_i / (1 + r) ** (days_i / 365)) = 0

days_i counts actual days from the earliest flow. Solvers are tried in
order (Newton-Raphson, then bisection) and the first converged rate wins.
When no solver converges, or the flows never change sign, the result is
None ("undefined"), never 0.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from investment_tracker.config import settings

DAYS_PER_YEAR = 365.0
INITIAL_GUESS = 0.1
RATE_TOLERANCE = 1e-9
MIN_DERIVATIVE = 1e-10
BISECTION_LOW = -0.9999
BISECTION_HIGH = 100.0
BISECTION_MAX_ITERATIONS = 200


@dataclass(frozen=True)
class CashFlow:
    """Dated amount. Negative = money paid in, positive = money received."""
    date: date
    amount: float


def _prepare(cash_flows: Sequence[CashFlow]) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """Year fractions and amounts, or None when the rate is undefined."""
    if len(cash_flows) < 2:
        return None
    amounts = np.array([float(cf.amount) for cf in cash_flows], dtype=float)
    if not (np.any(amounts > 0) and np.any(amounts < 0)):
        return None
    first = min(cf.date for cf in cash_flows)
    years = np.array([(cf.date - first).days for cf in cash_flows], dtype=float) / DAYS_PER_YEAR
    return years, amounts


def npv(rate: float, years: np.ndarray, amounts: np.ndarray) -> float:
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        return float(np.sum(amounts * np.power(1.0 + rate, -years)))


def npv_derivative(rate: float, years: np.ndarray, amounts: np.ndarray) -> float:
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        return float(np.sum(-years * amounts * np.power(1.0 + rate, -years - 1.0)))


class XirrStrategy(ABC):
    """One root-finding method. Returns None when it cannot converge."""

    name: str = "base"

    @abstractmethod
    def solve(self, years: np.ndarray, amounts: np.ndarray) -> Optional[float]:
        ...


class NewtonRaphsonStrategy(XirrStrategy):
    """Newton-Raphson from r = 0.1."""

    name = "newton_raphson"

    def __init__(
        self,
        initial_guess: float = INITIAL_GUESS,
        max_iterations: Optional[int] = None,
        tolerance: Optional[float] = None,
    ):
        self.initial_guess = initial_guess
        self.max_iterations = max_iterations or settings.XIRR_MAX_ITERATIONS
        self.tolerance = tolerance or settings.XIRR_TOLERANCE

    def solve(self, years: np.ndarray, amounts: np.ndarray) -> Optional[float]:
        rate = self.initial_guess
        for _ in range(self.max_iterations):
            value = npv(rate, years, amounts)
            if not np.isfinite(value):
                return None
            if abs(value) < self.tolerance:
                return rate

            derivative = npv_derivative(rate, years, amounts)
            if not np.isfinite(derivative) or abs(derivative) < MIN_DERIVATIVE:
                return None

            next_rate = rate - value / derivative
            if not np.isfinite(next_rate) or next_rate <= -1.0:
                return None
            if abs(next_rate - rate) < RATE_TOLERANCE:
                return next_rate
            rate = next_rate
        return None


class BisectionStrategy(XirrStrategy):
    """Bisection on a bounded bracket; requires a sign change at the bounds."""

    name = "bisection"

    def __init__(
        self,
        low: float = BISECTION_LOW,
        high: float = BISECTION_HIGH,
        max_iterations: int = BISECTION_MAX_ITERATIONS,
        tolerance: Optional[float] = None,
    ):
        self.low = low
        self.high = high
        self.max_iterations = max_iterations
        self.tolerance = tolerance or settings.XIRR_TOLERANCE

    def solve(self, years: np.ndarray, amounts: np.ndarray) -> Optional[float]:
        low, high = self.low, self.high
        f_low = npv(low, years, amounts)
        f_high = npv(high, years, amounts)
        if np.isnan(f_low) or np.isnan(f_high):
            return None
        if f_low == 0:
            return low
        if f_high == 0:
            return high
        if np.sign(f_low) == np.sign(f_high):
            return None

        for _ in range(self.max_iterations):
            mid = (low + high) / 2.0
            f_mid = npv(mid, years, amounts)
            if abs(f_mid) < self.tolerance or (high - low) / 2.0 < RATE_TOLERANCE:
                return mid
            if np.sign(f_mid) == np.sign(f_low):
                low, f_low = mid, f_mid
            else:
                high = mid
        return None


DEFAULT_STRATEGIES: Tuple[XirrStrategy, ...] = (
    NewtonRaphsonStrategy(),
    BisectionStrategy(),
)


def xirr(
    cash_flows: Sequence[CashFlow],
    strategies: Optional[Sequence[XirrStrategy]] = None,
) -> Optional[float]:
    """
    Annualized internal rate of return as a fraction (0.1 = 10%).

    Args:
        cash_flows: Dated flows; at least one negative and one positive
        strategies: Ordered solvers, first converged result wins

    Returns:
        Rate, or None when undefined
    """
    prepared = _prepare(cash_flows)
    if prepared is None:
        return None
    years, amounts = prepared

    for strategy in strategies or DEFAULT_STRATEGIES:
        rate = strategy.solve(years, amounts)
        if rate is not None:
            return rate
        logger.debug(f"XIRR {strategy.name} did not converge for {len(cash_flows)} flows")
    return None


def xirr_percentage(
    cash_flows: Sequence[CashFlow],
    strategies: Optional[Sequence[XirrStrategy]] = None,
) -> Optional[float]:
    """XIRR as a percentage (rate x 100), or None when undefined."""
    rate = xirr(cash_flows, strategies)
    return rate * 100.0 if rate is not None else None
