"""
Period Return Calculator

Money-weighted (Modified Dietz) and time-weighted returns over a period
given its start value, end value and the external cash flows in between.
Flow sign: contributions into the portfolio positive, withdrawals
negative. Undefined results are None, never 0 or infinity.

Both metrics reduce to (EV - BV) / BV when there are no flows.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence, Union

Number = Union[Decimal, float, int]


@dataclass(frozen=True)
class PeriodCashFlow:
    """External flow inside a period."""
    date: date
    amount: Number


@dataclass(frozen=True)
class ValuationPoint:
    """Portfolio value at the end of a flow date (after the flow)."""
    date: date
    value_after_flow: Number
    cash_flow: Number


def modified_dietz(
    start_value: Number,
    end_value: Number,
    period_start: date,
    period_end: date,
    cash_flows: Sequence[PeriodCashFlow],
) -> Optional[float]:
    """
    Modified Dietz return as a fraction.

    return = (EV - BV - sum(CF)) / (BV + sum(CF_i * w_i))
    w_i = (total_days - days_from_start_i) / total_days

    Flows outside [period_start, period_end] are ignored.
    """
    total_days = (period_end - period_start).days
    if total_days <= 0:
        return None

    bv = float(start_value)
    ev = float(end_value)
    net_flow = 0.0
    weighted_flow = 0.0
    for cf in cash_flows:
        if cf.date < period_start or cf.date > period_end:
            continue
        amount = float(cf.amount)
        weight = (total_days - (cf.date - period_start).days) / total_days
        net_flow += amount
        weighted_flow += amount * weight

    denominator = bv + weighted_flow
    if denominator <= 0:
        return None
    return (ev - bv - net_flow) / denominator


def time_weighted_return(
    start_value: Number,
    end_value: Number,
    valuation_points: Sequence[ValuationPoint],
) -> Optional[float]:
    """
    Time-weighted return as a fraction.

    The period is split at every flow date. Each sub-period return is
    (value_after_flow - flow) / previous_value - 1, the last sub-period
    runs to the end value, and the returns are linked geometrically.

    Leading sub-periods with nothing invested yet (start value 0) are
    skipped. Any other sub-period starting at or below zero cannot be
    linked and makes the whole result None, as does having nothing to link.
    """
    points = sorted(valuation_points, key=lambda p: p.date)

    growth = 1.0
    linked = False
    previous = float(start_value)

    for point in points:
        if previous > 0:
            growth *= (float(point.value_after_flow) - float(point.cash_flow)) / previous
            linked = True
        elif linked or previous < 0:
            return None
        previous = float(point.value_after_flow)

    if previous > 0:
        growth *= float(end_value) / previous
        linked = True
    elif linked or previous < 0:
        return None

    if not linked:
        return None
    return growth - 1.0


def simple_return(start_value: Number, end_value: Number) -> Optional[float]:
    """(EV - BV) / BV, or None for a non-positive start."""
    bv = float(start_value)
    if bv <= 0:
        return None
    return (float(end_value) - bv) / bv


def total_return(start_value: Number, end_value: Number, net_contributions: Number) -> Optional[float]:
    """
    Gain over the capital at work.

    (EV - BV - C) / BV with a positive start; (EV - C) / C for a period
    that started empty and was funded; None otherwise.
    """
    bv = float(start_value)
    ev = float(end_value)
    contributions = float(net_contributions)
    if bv > 0:
        return (ev - bv - contributions) / bv
    if contributions > 0:
        return (ev - contributions) / contributions
    return None


def to_percentage(value: Optional[float]) -> Optional[float]:
    return value * 100.0 if value is not None else None
