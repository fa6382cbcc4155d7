from __future__ import annotations

import pandas as pd
from typing import Optional, Sequence

from .cashflows import CashFlow
from .config import BASIS_POINT, Settings, resolve_dates
from .curve_analytics import npv
from .curves import YieldCurve, ZeroSpreadedCurve
from .rates import Compounding, Frequency


def shocked_curve_parallel(curve: YieldCurve, shift_bp: float) -> ZeroSpreadedCurve:
    """Parallel shift in continuously-compounded zero rates by shift_bp."""
    return ZeroSpreadedCurve(curve, shift_bp * BASIS_POINT, Compounding.CONTINUOUS, Frequency.NO_FREQUENCY)


def _bumped_npvs(
    leg: Sequence[CashFlow],
    curve: YieldCurve,
    include_settlement_date_flows: bool,
    settlement_date: Optional[pd.Timestamp],
    npv_date: Optional[pd.Timestamp],
    bp: float,
    settings: Optional[Settings],
):
    settle, npv_date = resolve_dates(settlement_date, npv_date, settings)

    base = npv(leg, curve, include_settlement_date_flows, settle, npv_date)
    up = npv(leg, shocked_curve_parallel(curve, bp), include_settlement_date_flows, settle, npv_date)
    down = npv(leg, shocked_curve_parallel(curve, -bp), include_settlement_date_flows, settle, npv_date)
    return base, up, down


def dv01(
    leg: Sequence[CashFlow],
    curve: YieldCurve,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    bp: float = 1.0,
    *,
    settings: Optional[Settings] = None,
) -> float:
    """NPV(curve + bp) - NPV(curve); negative for a long position in fixed flows."""
    settle, npv_date = resolve_dates(settlement_date, npv_date, settings)

    base = npv(leg, curve, include_settlement_date_flows, settle, npv_date)
    shocked = npv(leg, shocked_curve_parallel(curve, bp), include_settlement_date_flows, settle, npv_date)
    return shocked - base


def effective_duration(
    leg: Sequence[CashFlow],
    curve: YieldCurve,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    bp: float = 1.0,
    *,
    settings: Optional[Settings] = None,
) -> float:
    settle, npv_date = resolve_dates(settlement_date, npv_date, settings)

    base = npv(leg, curve, include_settlement_date_flows, settle, npv_date)
    if base == 0.0:
        return 0.0
    d = dv01(leg, curve, include_settlement_date_flows, settle, npv_date, bp)
    return -d / (base * bp * BASIS_POINT)


def effective_convexity(
    leg: Sequence[CashFlow],
    curve: YieldCurve,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    bp: float = 1.0,
    *,
    settings: Optional[Settings] = None,
) -> float:
    base, up, down = _bumped_npvs(
        leg, curve, include_settlement_date_flows, settlement_date, npv_date, bp, settings
    )
    if base == 0.0:
        return 0.0

    h = bp * BASIS_POINT
    return (up + down - 2 * base) / (base * h**2)
