from __future__ import annotations

import pandas as pd
from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from .errors import UnsupportedConventionError


@dataclass(frozen=True)
class DayCounter:
    """
    Year fraction between two dates under a day count convention.

    Instances carry no state, so two counters of the same convention compare equal.
    A reversed interval (d2 < d1) yields a negative fraction.
    """
    name: ClassVar[str] = ""

    def day_count(self, d1: pd.Timestamp, d2: pd.Timestamp) -> int:
        return (pd.Timestamp(d2) - pd.Timestamp(d1)).days

    def year_fraction(
        self,
        d1: pd.Timestamp,
        d2: pd.Timestamp,
        ref_start: Optional[pd.Timestamp] = None,
        ref_end: Optional[pd.Timestamp] = None,
    ) -> float:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Actual365Fixed(DayCounter):
    name: ClassVar[str] = "ACT/365F"

    def year_fraction(self, d1, d2, ref_start=None, ref_end=None) -> float:
        return self.day_count(d1, d2) / 365.0


@dataclass(frozen=True)
class Actual360(DayCounter):
    name: ClassVar[str] = "ACT/360"

    def year_fraction(self, d1, d2, ref_start=None, ref_end=None) -> float:
        return self.day_count(d1, d2) / 360.0


@dataclass(frozen=True)
class Thirty360(DayCounter):
    """30/360 US (bond basis)."""
    name: ClassVar[str] = "30/360"

    def day_count(self, d1: pd.Timestamp, d2: pd.Timestamp) -> int:
        d1 = pd.Timestamp(d1)
        d2 = pd.Timestamp(d2)
        y1, m1, dd1 = d1.year, d1.month, d1.day
        y2, m2, dd2 = d2.year, d2.month, d2.day

        if dd1 == 31:
            dd1 = 30
        if dd2 == 31 and dd1 == 30:
            dd2 = 30

        return (y2 - y1) * 360 + (m2 - m1) * 30 + (dd2 - dd1)

    def year_fraction(self, d1, d2, ref_start=None, ref_end=None) -> float:
        return self.day_count(d1, d2) / 360.0


@dataclass(frozen=True)
class ActualActualISMA(DayCounter):
    """
    Actual/Actual (ISMA/ICMA): the fraction is measured against the coupon
    reference period, so stub periods accrue relative to a regular period.

    Without a reference period the interval itself is used, falling back to
    a one-year period when it spans less than half a month.
    """
    name: ClassVar[str] = "ACT/ACT ISMA"

    def year_fraction(self, d1, d2, ref_start=None, ref_end=None) -> float:
        d1 = pd.Timestamp(d1)
        d2 = pd.Timestamp(d2)

        if d1 == d2:
            return 0.0
        if d1 > d2:
            return -self.year_fraction(d2, d1, ref_start, ref_end)

        ref_start = d1 if ref_start is None else pd.Timestamp(ref_start)
        ref_end = d2 if ref_end is None else pd.Timestamp(ref_end)

        if not (ref_end > ref_start and ref_end > d1):
            raise ValueError(f"Invalid reference period {ref_start.date()}..{ref_end.date()} for start {d1.date()}.")

        months = int(0.5 + 12 * self.day_count(ref_start, ref_end) / 365.0)
        if months == 0:
            ref_start = d1
            ref_end = d1 + pd.DateOffset(years=1)
            months = 12
        period = months / 12.0

        if d2 <= ref_end:
            if d1 >= ref_start:
                return period * self.day_count(d1, d2) / self.day_count(ref_start, ref_end)

            # long first coupon: split at the reference start
            previous_ref = ref_start - pd.DateOffset(months=months)
            if d2 > ref_start:
                return self.year_fraction(d1, ref_start, previous_ref, ref_start) + self.year_fraction(
                    ref_start, d2, ref_start, ref_end
                )
            return self.year_fraction(d1, d2, previous_ref, ref_start)

        # long last coupon: whole regular periods plus a final stub
        if ref_start > d1:
            raise ValueError(f"Invalid dates: start {d1.date()} precedes reference start {ref_start.date()}.")

        total = self.year_fraction(d1, ref_end, ref_start, ref_end)
        i = 0
        while True:
            new_start = ref_end + pd.DateOffset(months=months * i)
            new_end = ref_end + pd.DateOffset(months=months * (i + 1))
            if d2 < new_end:
                break
            total += period
            i += 1
        return total + self.year_fraction(new_start, d2, new_start, new_end)


_CONVENTIONS = {
    "ACT/365": Actual365Fixed,
    "ACT/365F": Actual365Fixed,
    "ACT/360": Actual360,
    "30/360": Thirty360,
    "30/360US": Thirty360,
    "ACT/ACT": ActualActualISMA,
    "ACT/ACTISMA": ActualActualISMA,
    "ACT/ACTICMA": ActualActualISMA,
}


def day_counter(convention: Union[str, DayCounter]) -> DayCounter:
    """Resolve a convention name (e.g. "ACT/365", "30/360") to a day counter."""
    if isinstance(convention, DayCounter):
        return convention

    key = str(convention).upper().replace(" ", "")
    try:
        return _CONVENTIONS[key]()
    except KeyError:
        raise UnsupportedConventionError(f"Unsupported day count convention: {convention}") from None
