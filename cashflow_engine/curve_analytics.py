"""
Cash-flow analytics against a discounting curve.

Pending flows (not yet paid at settlement, not trading ex-coupon) are
discounted with `curve.discount(date)` and the totals are rebased to the
NPV date by dividing by `curve.discount(npv_date)`.
"""

from __future__ import annotations

import logging
import pandas as pd
from typing import Optional, Sequence, Tuple, Union

from .cashflows import CashFlow
from .config import BASIS_POINT, Settings, resolve_dates, resolve_settings
from .curves import YieldCurve, ZeroSpreadedCurve
from .daycount import DayCounter
from .errors import NullBpsError
from .rates import Compounding, Frequency

logger = logging.getLogger(__name__)


def _is_pending(cf: CashFlow, settlement_date: pd.Timestamp, include_settlement_date_flows: bool) -> bool:
    return not cf.has_occurred(settlement_date, include_settlement_date_flows) and not cf.trading_ex_coupon(
        settlement_date
    )


class BpsCalculator:
    """
    Splits discounted flows into the rate-sensitive part (coupons:
    nominal * accrual period * DF) and the rest (bullets: amount * DF).
    """

    def __init__(self, discount_curve: YieldCurve):
        self.discount_curve = discount_curve
        self.bps = 0.0
        self.non_sensitive_npv = 0.0

    def visit(self, cf: CashFlow) -> None:
        coupon = cf.as_coupon()
        if coupon is not None:
            self.bps += coupon.nominal * coupon.accrual_period * self.discount_curve.discount(coupon.date)
        else:
            self.non_sensitive_npv += cf.amount * self.discount_curve.discount(cf.date)


def npv(
    leg: Sequence[CashFlow],
    discount_curve: YieldCurve,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    settings: Optional[Settings] = None,
) -> float:
    if len(leg) == 0:
        return 0.0
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    total = 0.0
    for cf in leg:
        if _is_pending(cf, settlement_date, include_settlement_date_flows):
            total += cf.amount * discount_curve.discount(cf.date)

    return total / discount_curve.discount(npv_date)


def bps(
    leg: Sequence[CashFlow],
    discount_curve: YieldCurve,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    settings: Optional[Settings] = None,
) -> float:
    """Change in NPV for a 1bp change in the rate paid by the coupons."""
    if len(leg) == 0:
        return 0.0
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    calc = BpsCalculator(discount_curve)
    for cf in leg:
        if _is_pending(cf, settlement_date, include_settlement_date_flows):
            calc.visit(cf)

    return BASIS_POINT * calc.bps / discount_curve.discount(npv_date)


def npvbps(
    leg: Sequence[CashFlow],
    discount_curve: YieldCurve,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    settings: Optional[Settings] = None,
) -> Tuple[float, float]:
    """(npv, bps) in a single pass over the leg."""
    if len(leg) == 0:
        return 0.0, 0.0
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    total_npv = 0.0
    total_bps = 0.0
    for cf in leg:
        if not _is_pending(cf, settlement_date, include_settlement_date_flows):
            continue
        df = discount_curve.discount(cf.date)
        total_npv += cf.amount * df
        coupon = cf.as_coupon()
        if coupon is not None:
            total_bps += coupon.nominal * coupon.accrual_period * df

    d = discount_curve.discount(npv_date)
    return total_npv / d, BASIS_POINT * total_bps / d


def atm_rate(
    leg: Sequence[CashFlow],
    discount_curve: YieldCurve,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    target_npv: Optional[float] = None,
    *,
    settings: Optional[Settings] = None,
) -> float:
    """
    Fixed coupon rate for which an equivalent fixed-rate leg has the target
    NPV (the leg's own NPV when no target is given).
    """
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    total = 0.0
    calc = BpsCalculator(discount_curve)
    for cf in leg:
        if _is_pending(cf, settlement_date, include_settlement_date_flows):
            total += cf.amount * discount_curve.discount(cf.date)
            calc.visit(cf)

    if target_npv is None:
        target = total - calc.non_sensitive_npv
    else:
        target = target_npv * discount_curve.discount(npv_date) - calc.non_sensitive_npv

    if target == 0.0:
        logger.debug("atm rate: target NPV matches the non rate-sensitive NPV")
        return 0.0

    if calc.bps == 0.0:
        raise NullBpsError("null bps: impossible atm rate")

    return target / calc.bps


def npv_with_spread(
    leg: Sequence[CashFlow],
    discount_curve: YieldCurve,
    z_spread: float,
    day_counter: Union[DayCounter, str, None],
    compounding: Compounding,
    frequency: Union[Frequency, int],
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    settings: Optional[Settings] = None,
) -> float:
    """NPV on the curve with `z_spread` added to its zero rates."""
    if len(leg) == 0:
        return 0.0
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    spreaded = ZeroSpreadedCurve(discount_curve, z_spread, compounding, frequency, day_counter)
    return npv(leg, spreaded, include_settlement_date_flows, settlement_date, npv_date)


def npv_cashflow(
    cashflow: Optional[CashFlow],
    discount_curve: YieldCurve,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    ex_dividend_days: int = 0,
    *,
    settings: Optional[Settings] = None,
) -> float:
    """NPV of a single flow, zero once paid at settlement + ex_dividend_days."""
    if cashflow is None:
        return 0.0
    settings = resolve_settings(settings)
    settlement_date, npv_date = resolve_dates(settlement_date, npv_date, settings)

    value = 0.0
    cutoff = settlement_date + pd.Timedelta(days=ex_dividend_days)
    if not cashflow.has_occurred(cutoff, settings.include_reference_date_events):
        value = cashflow.amount * discount_curve.discount(cashflow.date)

    return value / discount_curve.discount(npv_date)


def cash(
    leg: Sequence[CashFlow],
    settlement_date: Optional[pd.Timestamp] = None,
    ex_dividend_days: int = 0,
    *,
    settings: Optional[Settings] = None,
) -> float:
    """Undiscounted sum of the flows still to be paid."""
    if len(leg) == 0:
        return 0.0
    settings = resolve_settings(settings)
    settlement_date, _ = resolve_dates(settlement_date, None, settings)

    cutoff = settlement_date + pd.Timedelta(days=ex_dividend_days)
    return float(sum(cf.amount for cf in leg if not cf.has_occurred(cutoff, settings.include_reference_date_events)))
