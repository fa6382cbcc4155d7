from __future__ import annotations

import math
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .daycount import DayCounter, day_counter as _day_counter
from .rates import Compounding, Frequency, InterestRate


class YieldCurve:
    """
    Discounting term structure keyed by date.

    Dates map to times with the curve's own day counter from its reference
    date. Subclasses implement `discount_t(t)` and may cap the time range
    with `max_time`; requests past it need extrapolation enabled.
    """
    reference_date: pd.Timestamp
    extrapolate: bool

    @property
    def day_counter(self) -> DayCounter:
        raise NotImplementedError

    @property
    def max_time(self) -> float:
        return math.inf

    def discount_t(self, t: float) -> float:
        raise NotImplementedError

    def time_from_reference(self, d: pd.Timestamp) -> float:
        return self.day_counter.year_fraction(self.reference_date, pd.Timestamp(d))

    def allows_extrapolation(self) -> bool:
        return self.extrapolate

    def enable_extrapolation(self, flag: bool = True) -> None:
        self.extrapolate = bool(flag)

    def _check_range(self, t: float, d: pd.Timestamp) -> None:
        if t < 0.0:
            raise ValueError(
                f"Requested date {pd.Timestamp(d).date()} before curve reference date {self.reference_date.date()}."
            )
        if t > self.max_time and not self.allows_extrapolation():
            raise ValueError(f"Requested date {pd.Timestamp(d).date()} beyond curve range (extrapolation disabled).")

    def discount(self, d: pd.Timestamp) -> float:
        t = self.time_from_reference(d)
        self._check_range(t, d)
        return self.discount_t(t)

    def zero_rate(
        self,
        d: pd.Timestamp,
        day_counter: Union[DayCounter, str],
        compounding: Compounding,
        frequency: Union[Frequency, int] = Frequency.ANNUAL,
    ) -> InterestRate:
        d = pd.Timestamp(d)
        if d == self.reference_date:
            # instantaneous rate from a one-day step
            t = self.time_from_reference(d + pd.Timedelta(days=1))
            compound = 1.0 / self.discount_t(t)
            return InterestRate.implied_rate(compound, day_counter, compounding, frequency, t)

        compound = 1.0 / self.discount(d)
        t = _day_counter(day_counter).year_fraction(self.reference_date, d)
        return InterestRate.implied_rate(compound, day_counter, compounding, frequency, t)


@dataclass
class FlatForward(YieldCurve):
    """Constant forward rate from the reference date; defined at all times."""
    reference_date: pd.Timestamp
    forward: InterestRate
    extrapolate: bool = True

    def __post_init__(self) -> None:
        self.reference_date = pd.Timestamp(self.reference_date)

    @property
    def day_counter(self) -> DayCounter:
        return self.forward.day_counter

    def discount_t(self, t: float) -> float:
        return self.forward.discount_factor(t)


@dataclass
class ZeroCurve(YieldCurve):
    """
    Discount curve represented by knot discount factors,
    interpolated linearly in log discount factor space.

    - Within knot range: log-linear interpolation on DF.
    - Short-end extrapolation: flat cc zero implied by first knot.
    - Long-end extrapolation: flat cc zero implied by last knot, only when enabled.
    """
    reference_date: pd.Timestamp
    knot_dates: np.ndarray          # dtype datetime64[ns]
    knot_log_dfs: np.ndarray        # log(D)
    zero_day_count: Union[DayCounter, str] = "ACT/365"
    extrapolate: bool = False

    def __post_init__(self) -> None:
        self.reference_date = pd.Timestamp(self.reference_date)
        self.knot_dates = np.asarray(self.knot_dates, dtype="datetime64[ns]")
        self.knot_log_dfs = np.asarray(self.knot_log_dfs, dtype=float)
        self.zero_day_count = _day_counter(self.zero_day_count)

        if len(self.knot_dates) != len(self.knot_log_dfs):
            raise ValueError("knot_dates and knot_log_dfs must have the same length")
        if len(self.knot_dates) == 0:
            raise ValueError("curve has no knots")

        self._knot_times = np.array(
            [self.time_from_reference(pd.Timestamp(d)) for d in self.knot_dates], dtype=float
        )
        if self._knot_times[0] <= 0:
            raise ValueError("First knot must be after reference date.")
        if np.any(np.diff(self._knot_times) <= 0):
            raise ValueError("Knot dates must be strictly increasing.")

    @classmethod
    def from_zero_rates(
        cls,
        reference_date: pd.Timestamp,
        dates: Iterable[pd.Timestamp],
        zero_rates_cc: Iterable[float],
        zero_day_count: Union[DayCounter, str] = "ACT/365",
        extrapolate: bool = False,
    ) -> "ZeroCurve":
        """Build from continuously-compounded zero rates at each knot date."""
        reference_date = pd.Timestamp(reference_date)
        dc = _day_counter(zero_day_count)
        dates_list = [pd.Timestamp(d) for d in dates]

        taus = np.array([dc.year_fraction(reference_date, d) for d in dates_list], dtype=float)
        zeros = np.asarray(list(zero_rates_cc), dtype=float)
        kd = np.array([d.to_datetime64() for d in dates_list], dtype="datetime64[ns]")

        return cls(reference_date, kd, -zeros * taus, dc, extrapolate)

    @property
    def day_counter(self) -> DayCounter:
        return self.zero_day_count

    @property
    def max_time(self) -> float:
        return float(self._knot_times[-1])

    def discount_t(self, t: float) -> float:
        kx = self._knot_times
        kv = self.knot_log_dfs

        if t < kx[0]:
            z1 = -kv[0] / kx[0]
            return float(np.exp(-z1 * t))

        if t > kx[-1]:
            zn = -kv[-1] / kx[-1]
            return float(np.exp(-zn * t))

        return float(np.exp(np.interp(t, kx, kv)))

    def zero_rates_cc(self) -> np.ndarray:
        """Continuously-compounded zero rates at the knots."""
        return -self.knot_log_dfs / self._knot_times

    @property
    def knot_times(self) -> np.ndarray:
        return self._knot_times.copy()


@dataclass
class ZeroSpreadedCurve(YieldCurve):
    """
    Base curve with a constant spread added to its zero rates, the spread
    being expressed under (day_counter, compounding, frequency).

    Extrapolation permission is inherited from the base curve unless given.
    """
    base: YieldCurve
    spread: float
    compounding: Compounding = Compounding.CONTINUOUS
    frequency: Union[Frequency, int] = Frequency.NO_FREQUENCY
    spread_day_counter: Union[DayCounter, str, None] = None
    extrapolate: Optional[bool] = None

    def __post_init__(self) -> None:
        if self.spread_day_counter is None:
            self.spread_day_counter = self.base.day_counter
        self.spread_day_counter = _day_counter(self.spread_day_counter)
        if self.extrapolate is None:
            self.extrapolate = self.base.allows_extrapolation()

    @property
    def reference_date(self) -> pd.Timestamp:
        return self.base.reference_date

    @property
    def day_counter(self) -> DayCounter:
        return self.base.day_counter

    @property
    def max_time(self) -> float:
        return self.base.max_time

    def discount(self, d: pd.Timestamp) -> float:
        """
        The base discount factor comes from the base curve's own time; the
        spread accrues over the year fraction of the spread day counter.
        """
        d = pd.Timestamp(d)
        t = self.time_from_reference(d)
        self._check_range(t, d)
        if t == 0.0:
            return 1.0
        spread_t = self.spread_day_counter.year_fraction(self.reference_date, d)
        return self._spreaded_discount(self.base.discount_t(t), spread_t)

    def discount_t(self, t: float) -> float:
        if t == 0.0:
            return 1.0
        return self._spreaded_discount(self.base.discount_t(t), t)

    def _spreaded_discount(self, base_discount: float, t: float) -> float:
        # no accrual time under the spread convention, nothing to add
        if t <= 0.0:
            return base_discount
        zero = InterestRate.implied_rate(
            1.0 / base_discount, self.spread_day_counter, self.compounding, self.frequency, t
        )
        spreaded = InterestRate(zero.rate + self.spread, self.spread_day_counter, self.compounding, self.frequency)
        return spreaded.discount_factor(t)
