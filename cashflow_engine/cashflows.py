from __future__ import annotations

import pandas as pd
from dataclasses import dataclass
from typing import Optional, Union

from .daycount import DayCounter, day_counter as _day_counter


def _ts(d: Optional[pd.Timestamp]) -> Optional[pd.Timestamp]:
    return None if d is None else pd.Timestamp(d)


class CashFlow:
    """
    Common envelope of every flow in a leg: a payment `date`, a signed
    `amount`, an optional `ex_coupon_date`, and the settlement predicates.

    Accruing flows refine this through `as_coupon()`; bullets return None.
    """
    date: pd.Timestamp
    ex_coupon_date: Optional[pd.Timestamp]

    def has_occurred(self, ref_date: pd.Timestamp, include_ref_date: bool = False) -> bool:
        """
        A flow paying on `ref_date` counts as already paid unless
        `include_ref_date` is set.
        """
        ref_date = pd.Timestamp(ref_date)
        if include_ref_date:
            return self.date < ref_date
        return self.date <= ref_date

    def trading_ex_coupon(self, ref_date: pd.Timestamp) -> bool:
        if self.ex_coupon_date is None:
            return False
        return self.ex_coupon_date <= pd.Timestamp(ref_date)

    def as_coupon(self) -> Optional["Coupon"]:
        return None


@dataclass(frozen=True)
class SimpleCashFlow(CashFlow):
    """Bullet payment: redemption, fee, notional exchange."""
    date: pd.Timestamp
    amount: float
    ex_coupon_date: Optional[pd.Timestamp] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", pd.Timestamp(self.date))
        object.__setattr__(self, "amount", float(self.amount))
        object.__setattr__(self, "ex_coupon_date", _ts(self.ex_coupon_date))


@dataclass(frozen=True)
class Coupon(CashFlow):
    """
    Fixed-rate coupon accruing simple interest on `nominal` over
    [accrual_start_date, accrual_end_date], paid on `date`.

    The reference period defaults to the accrual period; it differs only
    for stub coupons under reference-aware day counts.
    """
    date: pd.Timestamp
    nominal: float
    rate: float
    day_counter: Union[DayCounter, str]
    accrual_start_date: pd.Timestamp
    accrual_end_date: pd.Timestamp
    ref_period_start: Optional[pd.Timestamp] = None
    ref_period_end: Optional[pd.Timestamp] = None
    ex_coupon_date: Optional[pd.Timestamp] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", pd.Timestamp(self.date))
        object.__setattr__(self, "nominal", float(self.nominal))
        object.__setattr__(self, "rate", float(self.rate))
        object.__setattr__(self, "day_counter", _day_counter(self.day_counter))
        object.__setattr__(self, "accrual_start_date", pd.Timestamp(self.accrual_start_date))
        object.__setattr__(self, "accrual_end_date", pd.Timestamp(self.accrual_end_date))
        object.__setattr__(self, "ref_period_start", _ts(self.ref_period_start))
        object.__setattr__(self, "ref_period_end", _ts(self.ref_period_end))
        object.__setattr__(self, "ex_coupon_date", _ts(self.ex_coupon_date))

        if self.accrual_end_date < self.accrual_start_date:
            raise ValueError(f"Coupon accrual ends before it starts: {self.accrual_start_date.date()}.")

    def as_coupon(self) -> "Coupon":
        return self

    @property
    def reference_period_start(self) -> pd.Timestamp:
        return self.accrual_start_date if self.ref_period_start is None else self.ref_period_start

    @property
    def reference_period_end(self) -> pd.Timestamp:
        return self.accrual_end_date if self.ref_period_end is None else self.ref_period_end

    @property
    def accrual_period(self) -> float:
        return self.day_counter.year_fraction(
            self.accrual_start_date,
            self.accrual_end_date,
            self.reference_period_start,
            self.reference_period_end,
        )

    @property
    def accrual_days(self) -> int:
        return self.day_counter.day_count(self.accrual_start_date, self.accrual_end_date)

    @property
    def amount(self) -> float:
        return self.nominal * self.rate * self.accrual_period

    def accrued_period(self, d: pd.Timestamp) -> float:
        """Accrued year fraction as of d; negative once trading ex-coupon."""
        d = pd.Timestamp(d)
        if d <= self.accrual_start_date or d > self.date:
            return 0.0
        if self.trading_ex_coupon(d):
            return -self.day_counter.year_fraction(
                d, max(d, self.accrual_end_date), self.reference_period_start, self.reference_period_end
            )
        return self.day_counter.year_fraction(
            self.accrual_start_date, min(d, self.accrual_end_date), self.reference_period_start, self.reference_period_end
        )

    def accrued_days(self, d: pd.Timestamp) -> int:
        d = pd.Timestamp(d)
        if d <= self.accrual_start_date or d > self.date:
            return 0
        return self.day_counter.day_count(self.accrual_start_date, min(d, self.accrual_end_date))

    def accrued_amount(self, d: pd.Timestamp) -> float:
        return self.nominal * self.rate * self.accrued_period(d)


def stepwise_discount_time(
    cash_flow: CashFlow,
    dc: DayCounter,
    npv_date: pd.Timestamp,
    last_date: pd.Timestamp,
) -> float:
    """
    Time slice between `last_date` and the flow's date, measured so that the
    chain of slices over a chronological leg sums to accrual-consistent time.

    Coupons are measured against their own reference period as the difference
    (start -> pay) - (start -> last_date), unless `last_date` is the accrual
    start itself. Bullets fake a one-year reference period when there is no
    previous flow to anchor it.
    """
    cash_flow_date = cash_flow.date
    npv_date = pd.Timestamp(npv_date)
    last_date = pd.Timestamp(last_date)

    coupon = cash_flow.as_coupon()
    if coupon is not None:
        ref_start = coupon.reference_period_start
        ref_end = coupon.reference_period_end
    else:
        if last_date == npv_date:
            ref_start = cash_flow_date - pd.DateOffset(years=1)
        else:
            ref_start = last_date
        ref_end = cash_flow_date

    if coupon is not None and last_date != coupon.accrual_start_date:
        coupon_period = dc.year_fraction(coupon.accrual_start_date, cash_flow_date, ref_start, ref_end)
        accrued_period = dc.year_fraction(coupon.accrual_start_date, last_date, ref_start, ref_end)
        return coupon_period - accrued_period

    return dc.year_fraction(last_date, cash_flow_date, ref_start, ref_end)
