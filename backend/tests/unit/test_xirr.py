"""
Unit Tests - XIRR Solver
Tests for the annualized internal rate of return and its solver chain.
"""
import pytest
from datetime import date

from investment_tracker.core.performance.xirr import (
    BisectionStrategy,
    CashFlow,
    NewtonRaphsonStrategy,
    XirrStrategy,
    xirr,
    xirr_percentage,
)


class NeverConverges(XirrStrategy):
    name = "never"

    def __init__(self):
        self.calls = 0

    def solve(self, years, amounts):
        self.calls += 1
        return None


def one_year(start_amount, end_amount):
    return [
        CashFlow(date(2022, 1, 1), start_amount),
        CashFlow(date(2023, 1, 1), end_amount),
    ]


class TestXirrUndefined:
    """Tests for flows without a defined rate."""

    def test_single_flow(self):
        assert xirr([CashFlow(date(2024, 1, 1), -1000.0)]) is None

    def test_empty(self):
        assert xirr([]) is None

    def test_all_negative(self):
        assert xirr(one_year(-1000.0, -100.0)) is None

    def test_all_positive(self):
        assert xirr(one_year(1000.0, 100.0)) is None

    def test_percentage_passes_none_through(self):
        assert xirr_percentage([]) is None


class TestXirrSolutions:
    """Tests for converged rates."""

    def test_ten_percent_over_one_year(self):
        assert xirr(one_year(-1000.0, 1100.0)) == pytest.approx(0.1, abs=1e-6)

    def test_loss(self):
        assert xirr(one_year(-1000.0, 900.0)) == pytest.approx(-0.1, abs=1e-6)

    def test_percentage(self):
        assert xirr_percentage(one_year(-1000.0, 1100.0)) == pytest.approx(10.0, abs=1e-4)

    def test_multiple_contributions(self):
        flows = [
            CashFlow(date(2022, 1, 1), -1000.0),
            CashFlow(date(2022, 7, 1), -1000.0),
            CashFlow(date(2023, 1, 1), 2200.0),
        ]
        rate = xirr(flows)
        assert rate is not None
        assert 0.1 < rate < 0.15

    def test_flow_order_does_not_matter(self):
        flows = one_year(-1000.0, 1100.0)
        assert xirr(list(reversed(flows))) == pytest.approx(xirr(flows), abs=1e-9)


class TestXirrStrategies:
    """Tests for the ordered solver chain."""

    def test_bisection_alone(self):
        rate = xirr(one_year(-1000.0, 1100.0), strategies=[BisectionStrategy()])
        assert rate == pytest.approx(0.1, abs=1e-6)

    def test_falls_back_to_next_strategy(self):
        never = NeverConverges()
        rate = xirr(one_year(-1000.0, 1250.0), strategies=[never, BisectionStrategy()])
        assert never.calls == 1
        assert rate == pytest.approx(0.25, abs=1e-6)

    def test_none_when_no_strategy_converges(self):
        assert xirr(one_year(-1000.0, 1100.0), strategies=[NeverConverges()]) is None

    def test_newton_gives_up_after_iteration_budget(self):
        strategy = NewtonRaphsonStrategy(initial_guess=50.0, max_iterations=1)
        assert xirr(one_year(-1000.0, 1100.0), strategies=[strategy]) is None
