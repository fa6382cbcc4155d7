"""
Cash-flow analytics under a single constant yield.

Flows are discounted stepwise: each pending flow advances an accrual clock
by `stepwise_discount_time` from the previous flow's date, starting at the
NPV date. Flows already paid at settlement are skipped; flows trading
ex-coupon contribute zero amount but still advance the clock.
"""

from __future__ import annotations

import pandas as pd
from typing import Iterator, Optional, Sequence, Tuple, Union

from .cashflows import CashFlow, stepwise_discount_time
from .config import BASIS_POINT, Settings, resolve_dates
from .curve_analytics import bps as _curve_bps
from .curves import FlatForward
from .daycount import DayCounter
from .errors import PreconditionError, UnsupportedConventionError
from .rates import Compounding, DurationType, Frequency, InterestRate


def as_interest_rate(
    y: Union[InterestRate, float],
    day_counter: Union[DayCounter, str, None] = None,
    compounding: Optional[Compounding] = None,
    frequency: Union[Frequency, int] = Frequency.ANNUAL,
) -> InterestRate:
    """Accept either an InterestRate or a raw rate with its conventions."""
    if isinstance(y, InterestRate):
        return y
    if day_counter is None or compounding is None:
        raise PreconditionError("a raw yield needs a day counter and a compounding convention")
    return InterestRate(y, day_counter, compounding, frequency)


def _pending_flows(
    leg: Sequence[CashFlow],
    dc: DayCounter,
    include_settlement_date_flows: bool,
    settlement_date: pd.Timestamp,
    npv_date: pd.Timestamp,
) -> Iterator[Tuple[float, float]]:
    """
    Yield (amount, step) for each flow not yet paid, where step is the
    time slice since the previous pending flow.
    """
    last_date = npv_date
    for cf in leg:
        if cf.has_occurred(settlement_date, include_settlement_date_flows):
            continue

        amount = 0.0 if cf.trading_ex_coupon(settlement_date) else cf.amount
        step = stepwise_discount_time(cf, dc, npv_date, last_date)
        last_date = cf.date
        yield amount, step


def npv(
    leg: Sequence[CashFlow],
    y: Union[InterestRate, float],
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    day_counter: Union[DayCounter, str, None] = None,
    compounding: Optional[Compounding] = None,
    frequency: Union[Frequency, int] = Frequency.ANNUAL,
    settings: Optional[Settings] = None,
) -> float:
    """
    NPV of the leg at a constant yield. The discount factor compounds
    multiplicatively across the stepwise time slices.
    """
    if len(leg) == 0:
        return 0.0

    y = as_interest_rate(y, day_counter, compounding, frequency)
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    total = 0.0
    discount = 1.0
    for amount, step in _pending_flows(leg, y.day_counter, include_settlement_date_flows, settlement_date, npv_date):
        discount *= y.discount_factor(step)
        total += amount * discount
    return total


def bps(
    leg: Sequence[CashFlow],
    y: Union[InterestRate, float],
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    day_counter: Union[DayCounter, str, None] = None,
    compounding: Optional[Compounding] = None,
    frequency: Union[Frequency, int] = Frequency.ANNUAL,
    settings: Optional[Settings] = None,
) -> float:
    """Basis-point sensitivity, discounting on a flat forward curve at y."""
    if len(leg) == 0:
        return 0.0

    y = as_interest_rate(y, day_counter, compounding, frequency)
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    flat = FlatForward(settlement_date, y)
    return _curve_bps(leg, flat, include_settlement_date_flows, settlement_date, npv_date)


def simple_duration(
    leg: Sequence[CashFlow],
    y: InterestRate,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    settings: Optional[Settings] = None,
) -> float:
    """PV-weighted average time to the pending flows (no sign flip)."""
    if len(leg) == 0:
        return 0.0
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    P = 0.0
    dPdy = 0.0
    t = 0.0
    for c, step in _pending_flows(leg, y.day_counter, include_settlement_date_flows, settlement_date, npv_date):
        t += step
        B = y.discount_factor(t)
        P += c * B
        dPdy += t * c * B

    if P == 0.0:
        return 0.0
    return dPdy / P


def modified_duration(
    leg: Sequence[CashFlow],
    y: InterestRate,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    settings: Optional[Settings] = None,
) -> float:
    """-1/P dP/dy, with dP/dy taken in closed form for the rate's compounding."""
    if len(leg) == 0:
        return 0.0
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    P = 0.0
    dPdy = 0.0
    t = 0.0
    r = y.rate
    N = y.periods
    comp = y.compounding

    for c, step in _pending_flows(leg, y.day_counter, include_settlement_date_flows, settlement_date, npv_date):
        t += step
        B = y.discount_factor(t)
        P += c * B

        if comp == Compounding.SIMPLE:
            dPdy -= c * B * B * t
        elif comp == Compounding.COMPOUNDED:
            dPdy -= c * t * B / (1 + r / N)
        elif comp == Compounding.CONTINUOUS:
            dPdy -= c * B * t
        elif comp == Compounding.SIMPLE_THEN_COMPOUNDED:
            if t <= 1.0 / N:
                dPdy -= c * B * B * t
            else:
                dPdy -= c * t * B / (1 + r / N)
        else:
            raise UnsupportedConventionError(f"unknown compounding convention ({comp})")

    if P == 0.0:
        return 0.0
    return -dPdy / P


def macaulay_duration(
    leg: Sequence[CashFlow],
    y: InterestRate,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    settings: Optional[Settings] = None,
) -> float:
    if y.compounding != Compounding.COMPOUNDED:
        raise UnsupportedConventionError("compounded rate required")

    return (1.0 + y.rate / y.periods) * modified_duration(
        leg, y, include_settlement_date_flows, settlement_date, npv_date, settings=settings
    )


def duration(
    leg: Sequence[CashFlow],
    y: Union[InterestRate, float],
    duration_type: DurationType = DurationType.MODIFIED,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    day_counter: Union[DayCounter, str, None] = None,
    compounding: Optional[Compounding] = None,
    frequency: Union[Frequency, int] = Frequency.ANNUAL,
    settings: Optional[Settings] = None,
) -> float:
    if len(leg) == 0:
        return 0.0

    y = as_interest_rate(y, day_counter, compounding, frequency)
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    if duration_type == DurationType.SIMPLE:
        fn = simple_duration
    elif duration_type == DurationType.MODIFIED:
        fn = modified_duration
    elif duration_type == DurationType.MACAULAY:
        fn = macaulay_duration
    else:
        raise UnsupportedConventionError(f"unknown duration type ({duration_type})")

    return fn(leg, y, include_settlement_date_flows, settlement_date, npv_date)


def convexity(
    leg: Sequence[CashFlow],
    y: Union[InterestRate, float],
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    day_counter: Union[DayCounter, str, None] = None,
    compounding: Optional[Compounding] = None,
    frequency: Union[Frequency, int] = Frequency.ANNUAL,
    settings: Optional[Settings] = None,
) -> float:
    """1/P d2P/dy2, closed form per compounding convention."""
    if len(leg) == 0:
        return 0.0

    y = as_interest_rate(y, day_counter, compounding, frequency)
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    P = 0.0
    d2Pdy2 = 0.0
    t = 0.0
    r = y.rate
    N = y.periods
    comp = y.compounding

    for c, step in _pending_flows(leg, y.day_counter, include_settlement_date_flows, settlement_date, npv_date):
        t += step
        B = y.discount_factor(t)
        P += c * B

        if comp == Compounding.SIMPLE:
            d2Pdy2 += c * 2.0 * B * B * B * t * t
        elif comp == Compounding.COMPOUNDED:
            d2Pdy2 += c * B * t * (N * t + 1) / (N * (1 + r / N) * (1 + r / N))
        elif comp == Compounding.CONTINUOUS:
            d2Pdy2 += c * B * t * t
        elif comp == Compounding.SIMPLE_THEN_COMPOUNDED:
            if t <= 1.0 / N:
                d2Pdy2 += c * 2.0 * B * B * B * t * t
            else:
                d2Pdy2 += c * B * t * (N * t + 1) / (N * (1 + r / N) * (1 + r / N))
        else:
            raise UnsupportedConventionError(f"unknown compounding convention ({comp})")

    if P == 0.0:
        return 0.0
    return d2Pdy2 / P


def basis_point_value(
    leg: Sequence[CashFlow],
    y: Union[InterestRate, float],
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    day_counter: Union[DayCounter, str, None] = None,
    compounding: Optional[Compounding] = None,
    frequency: Union[Frequency, int] = Frequency.ANNUAL,
    settings: Optional[Settings] = None,
) -> float:
    """
    Price change for dy = 1bp from the 2nd-order Taylor expansion
    in modified duration and convexity.
    """
    if len(leg) == 0:
        return 0.0

    y = as_interest_rate(y, day_counter, compounding, frequency)
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    value = npv(leg, y, include_settlement_date_flows, settlement_date, npv_date)
    mod_duration = modified_duration(leg, y, include_settlement_date_flows, settlement_date, npv_date)
    conv = convexity(leg, y, include_settlement_date_flows, settlement_date, npv_date)

    delta = -mod_duration * value * BASIS_POINT
    gamma = (conv / 100.0) * value * BASIS_POINT * BASIS_POINT
    return delta + 0.5 * gamma


def yield_value_basis_point(
    leg: Sequence[CashFlow],
    y: Union[InterestRate, float],
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    day_counter: Union[DayCounter, str, None] = None,
    compounding: Optional[Compounding] = None,
    frequency: Union[Frequency, int] = Frequency.ANNUAL,
    settings: Optional[Settings] = None,
) -> float:
    """Yield change per 0.01 change in price: 0.01 / (-P * D_mod), 0.0 when P * D_mod is zero."""
    if len(leg) == 0:
        return 0.0

    y = as_interest_rate(y, day_counter, compounding, frequency)
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    value = npv(leg, y, include_settlement_date_flows, settlement_date, npv_date)
    mod_duration = modified_duration(leg, y, include_settlement_date_flows, settlement_date, npv_date)

    denominator = -value * mod_duration
    if denominator == 0.0:
        return 0.0

    shift = 0.01
    return (1.0 / denominator) * shift
