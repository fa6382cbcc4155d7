"""
Implied yield (IRR) and implied Z-spread.

Both invert a target NPV by repeatedly revaluing the whole leg:
the yield with a safeguarded Newton solve (value and modified duration),
the spread with a derivative-free Brent solve on a spreaded curve.
"""

from __future__ import annotations

import logging
import numpy as np
import pandas as pd
from dataclasses import replace
from typing import Optional, Sequence, Union

from . import curve_analytics, yield_analytics
from .cashflows import CashFlow
from .config import (
    DEFAULT_ACCURACY,
    DEFAULT_IRR_GUESS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_ZSPREAD_GUESS,
    ZSPREAD_STEP,
    Settings,
    resolve_dates,
)
from .curves import YieldCurve, ZeroSpreadedCurve
from .daycount import DayCounter
from .errors import SignChangeError
from .rates import Compounding, Frequency, InterestRate
from .solvers import Brent, NewtonSafe

logger = logging.getLogger(__name__)


class IrrFinder:
    """
    value(y) = target NPV - NPV(leg, y); derivative(y) = modified duration at y.

    Construction fails when the pending flows never change sign relative
    to the price, since no yield can then reproduce it.
    """

    def __init__(
        self,
        leg: Sequence[CashFlow],
        npv: float,
        day_counter: Union[DayCounter, str],
        compounding: Compounding,
        frequency: Union[Frequency, int],
        include_settlement_date_flows: bool = False,
        settlement_date: Optional[pd.Timestamp] = None,
        npv_date: Optional[pd.Timestamp] = None,
        settings: Optional[Settings] = None,
    ):
        self.leg = leg
        self.npv = npv
        self.day_counter = day_counter
        self.compounding = compounding
        self.frequency = frequency
        self.include_settlement_date_flows = include_settlement_date_flows
        self.settlement_date, self.npv_date = resolve_dates(settlement_date, npv_date, settings)

        self._check_sign()

    def _rate(self, y: float) -> InterestRate:
        return InterestRate(y, self.day_counter, self.compounding, self.frequency)

    def value(self, y: float) -> float:
        pv = yield_analytics.npv(
            self.leg, self._rate(y), self.include_settlement_date_flows, self.settlement_date, self.npv_date
        )
        return self.npv - pv

    def derivative(self, y: float) -> float:
        return yield_analytics.modified_duration(
            self.leg, self._rate(y), self.include_settlement_date_flows, self.settlement_date, self.npv_date
        )

    def _check_sign(self) -> None:
        last_sign = int(np.sign(-self.npv))
        sign_changes = 0
        for cf in self.leg:
            if cf.has_occurred(self.settlement_date, self.include_settlement_date_flows):
                continue
            if cf.trading_ex_coupon(self.settlement_date):
                continue

            this_sign = int(np.sign(cf.amount))
            if last_sign * this_sign < 0:
                sign_changes += 1
            if this_sign != 0:
                last_sign = this_sign

        if sign_changes == 0:
            raise SignChangeError("the given cash flows cannot result in the given market price due to their sign")


class ZSpreadFinder:
    """value(s) = target NPV - NPV(leg, curve spreaded by s)."""

    def __init__(
        self,
        leg: Sequence[CashFlow],
        discount_curve: YieldCurve,
        npv: float,
        day_counter: Union[DayCounter, str],
        compounding: Compounding,
        frequency: Union[Frequency, int],
        include_settlement_date_flows: bool = False,
        settlement_date: Optional[pd.Timestamp] = None,
        npv_date: Optional[pd.Timestamp] = None,
        settings: Optional[Settings] = None,
    ):
        self.leg = leg
        self.npv = npv
        self.include_settlement_date_flows = include_settlement_date_flows
        self.settlement_date, self.npv_date = resolve_dates(settlement_date, npv_date, settings)

        # owned by this finder only; each trial spread is a fresh copy
        self._curve = ZeroSpreadedCurve(
            discount_curve,
            0.0,
            compounding,
            frequency,
            day_counter,
            extrapolate=discount_curve.allows_extrapolation(),
        )

    def value(self, z_spread: float) -> float:
        curve = replace(self._curve, spread=z_spread)
        pv = curve_analytics.npv(
            self.leg, curve, self.include_settlement_date_flows, self.settlement_date, self.npv_date
        )
        return self.npv - pv


def implied_yield(
    leg: Sequence[CashFlow],
    npv: float,
    day_counter: Union[DayCounter, str],
    compounding: Compounding,
    frequency: Union[Frequency, int] = Frequency.ANNUAL,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    accuracy: float = DEFAULT_ACCURACY,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    guess: float = DEFAULT_IRR_GUESS,
    *,
    settings: Optional[Settings] = None,
) -> float:
    """Yield at which the leg's NPV equals `npv`."""
    solver = NewtonSafe(max_evaluations=max_iterations)
    objective = IrrFinder(
        leg, npv, day_counter, compounding, frequency,
        include_settlement_date_flows, settlement_date, npv_date, settings,
    )
    y = solver.solve(objective, accuracy, guess, guess / 10.0)
    logger.debug("implied yield %.10f for target NPV %.10g", y, npv)
    return y


def z_spread(
    leg: Sequence[CashFlow],
    npv: float,
    discount_curve: YieldCurve,
    day_counter: Union[DayCounter, str],
    compounding: Compounding,
    frequency: Union[Frequency, int] = Frequency.ANNUAL,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    accuracy: float = DEFAULT_ACCURACY,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    guess: float = DEFAULT_ZSPREAD_GUESS,
    *,
    settings: Optional[Settings] = None,
) -> float:
    """Parallel zero-rate spread over `discount_curve` at which the leg's NPV equals `npv`."""
    solver = Brent(max_evaluations=max_iterations)
    objective = ZSpreadFinder(
        leg, discount_curve, npv, day_counter, compounding, frequency,
        include_settlement_date_flows, settlement_date, npv_date, settings,
    )
    s = solver.solve(objective, accuracy, guess, ZSPREAD_STEP)
    logger.debug("implied z-spread %.10f for target NPV %.10g", s, npv)
    return s
