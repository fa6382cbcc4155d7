from __future__ import annotations

import math
import pandas as pd
from collections.abc import MutableSequence
from typing import Iterable, Iterator, List, Optional

from .cashflows import CashFlow, Coupon
from .config import Settings, resolve_settings
from .errors import CouponAggregationError, EmptyLegError


class Leg(MutableSequence):
    """
    Chronologically ordered cash flows. Duplicate dates are expected
    (e.g. last coupon and redemption); insertion order is preserved.

    Inspectors locate the next/previous pending flow relative to a
    settlement date and read coupon attributes from the flows paying
    on that date.
    """

    def __init__(self, cashflows: Optional[Iterable[CashFlow]] = None):
        self._cashflows: List[CashFlow] = list(cashflows) if cashflows is not None else []

    # list plumbing

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Leg(self._cashflows[index])
        return self._cashflows[index]

    def __setitem__(self, index, value) -> None:
        self._cashflows[index] = value

    def __delitem__(self, index) -> None:
        del self._cashflows[index]

    def __len__(self) -> int:
        return len(self._cashflows)

    def __iter__(self) -> Iterator[CashFlow]:
        return iter(self._cashflows)

    def insert(self, index: int, value: CashFlow) -> None:
        self._cashflows.insert(index, value)

    def __repr__(self) -> str:
        return f"Leg({self._cashflows!r})"

    def __eq__(self, other) -> bool:
        if isinstance(other, Leg):
            return self._cashflows == other._cashflows
        return NotImplemented

    def empty(self) -> bool:
        return len(self._cashflows) == 0

    # dates

    def start_date(self) -> pd.Timestamp:
        if self.empty():
            raise EmptyLegError("empty leg")
        return min(
            cf.accrual_start_date if cf.as_coupon() is not None else cf.date
            for cf in self._cashflows
        )

    def maturity_date(self) -> pd.Timestamp:
        if self.empty():
            raise EmptyLegError("empty leg")
        return max(
            cf.accrual_end_date if cf.as_coupon() is not None else cf.date
            for cf in self._cashflows
        )

    def is_expired(
        self,
        include_settlement_date_flows: bool = False,
        settlement_date: Optional[pd.Timestamp] = None,
        settings: Optional[Settings] = None,
    ) -> bool:
        if self.empty():
            return True
        settlement_date = self._settlement(settlement_date, settings)
        return all(cf.has_occurred(settlement_date, include_settlement_date_flows) for cf in reversed(self._cashflows))

    # cash flows

    def previous_cash_flow(
        self,
        include_settlement_date_flows: bool = False,
        settlement_date: Optional[pd.Timestamp] = None,
        settings: Optional[Settings] = None,
    ) -> Optional[CashFlow]:
        """The last flow paying before (or at) the settlement date."""
        if self.empty():
            return None
        settlement_date = self._settlement(settlement_date, settings)
        for cf in reversed(self._cashflows):
            if cf.has_occurred(settlement_date, include_settlement_date_flows):
                return cf
        return None

    def next_cash_flow(
        self,
        include_settlement_date_flows: bool = False,
        settlement_date: Optional[pd.Timestamp] = None,
        settings: Optional[Settings] = None,
    ) -> Optional[CashFlow]:
        """The first flow paying after the settlement date."""
        if self.empty():
            return None
        settlement_date = self._settlement(settlement_date, settings)
        for cf in self._cashflows:
            if not cf.has_occurred(settlement_date, include_settlement_date_flows):
                return cf
        return None

    def previous_cash_flow_date(self, include_settlement_date_flows=False, settlement_date=None, settings=None):
        cf = self.previous_cash_flow(include_settlement_date_flows, settlement_date, settings)
        return None if cf is None else cf.date

    def next_cash_flow_date(self, include_settlement_date_flows=False, settlement_date=None, settings=None):
        cf = self.next_cash_flow(include_settlement_date_flows, settlement_date, settings)
        return None if cf is None else cf.date

    def previous_cash_flow_amount(
        self,
        include_settlement_date_flows: bool = False,
        settlement_date: Optional[pd.Timestamp] = None,
        settings: Optional[Settings] = None,
    ) -> Optional[float]:
        cf = self.previous_cash_flow(include_settlement_date_flows, settlement_date, settings)
        if cf is None:
            return None
        return sum(x.amount for x in self._paying_on(cf.date))

    def next_cash_flow_amount(
        self,
        include_settlement_date_flows: bool = False,
        settlement_date: Optional[pd.Timestamp] = None,
        settings: Optional[Settings] = None,
    ) -> Optional[float]:
        cf = self.next_cash_flow(include_settlement_date_flows, settlement_date, settings)
        if cf is None:
            return None
        return sum(x.amount for x in self._paying_on(cf.date))

    # coupon inspectors

    def previous_coupon_rate(self, include_settlement_date_flows=False, settlement_date=None, settings=None) -> float:
        cf = self.previous_cash_flow(include_settlement_date_flows, settlement_date, settings)
        return self._aggregate_rate(cf)

    def next_coupon_rate(self, include_settlement_date_flows=False, settlement_date=None, settings=None) -> float:
        cf = self.next_cash_flow(include_settlement_date_flows, settlement_date, settings)
        return self._aggregate_rate(cf)

    def nominal(self, include_settlement_date_flows=False, settlement_date=None, settings=None) -> float:
        cp = self._next_coupon(include_settlement_date_flows, settlement_date, settings)
        return 0.0 if cp is None else cp.nominal

    def accrual_start_date(self, include_settlement_date_flows=False, settlement_date=None, settings=None):
        cp = self._next_coupon(include_settlement_date_flows, settlement_date, settings)
        return None if cp is None else cp.accrual_start_date

    def accrual_end_date(self, include_settlement_date_flows=False, settlement_date=None, settings=None):
        cp = self._next_coupon(include_settlement_date_flows, settlement_date, settings)
        return None if cp is None else cp.accrual_end_date

    def reference_period_start(self, include_settlement_date_flows=False, settlement_date=None, settings=None):
        cp = self._next_coupon(include_settlement_date_flows, settlement_date, settings)
        return None if cp is None else cp.reference_period_start

    def reference_period_end(self, include_settlement_date_flows=False, settlement_date=None, settings=None):
        cp = self._next_coupon(include_settlement_date_flows, settlement_date, settings)
        return None if cp is None else cp.reference_period_end

    def accrual_period(self, include_settlement_date_flows=False, settlement_date=None, settings=None) -> float:
        cp = self._next_coupon(include_settlement_date_flows, settlement_date, settings)
        return 0.0 if cp is None else cp.accrual_period

    def accrual_days(self, include_settlement_date_flows=False, settlement_date=None, settings=None) -> int:
        cp = self._next_coupon(include_settlement_date_flows, settlement_date, settings)
        return 0 if cp is None else cp.accrual_days

    def accrued_period(self, include_settlement_date_flows=False, settlement_date=None, settings=None) -> float:
        settlement_date = self._settlement(settlement_date, settings)
        cp = self._next_coupon(include_settlement_date_flows, settlement_date, settings)
        return 0.0 if cp is None else cp.accrued_period(settlement_date)

    def accrued_days(self, include_settlement_date_flows=False, settlement_date=None, settings=None) -> int:
        settlement_date = self._settlement(settlement_date, settings)
        cp = self._next_coupon(include_settlement_date_flows, settlement_date, settings)
        return 0 if cp is None else cp.accrued_days(settlement_date)

    def accrued_amount(
        self,
        include_settlement_date_flows: bool = False,
        settlement_date: Optional[pd.Timestamp] = None,
        settings: Optional[Settings] = None,
    ) -> float:
        """Accrued interest summed over every coupon paying on the next payment date."""
        settlement_date = self._settlement(settlement_date, settings)
        cf = self.next_cash_flow(include_settlement_date_flows, settlement_date, settings)
        if cf is None:
            return 0.0
        return sum(cp.accrued_amount(settlement_date) for cp in self._coupons_paying_on(cf.date))

    # helpers

    @staticmethod
    def _settlement(settlement_date: Optional[pd.Timestamp], settings: Optional[Settings]) -> pd.Timestamp:
        if settlement_date is None:
            return resolve_settings(settings).evaluation_date
        return pd.Timestamp(settlement_date)

    def _paying_on(self, payment_date: pd.Timestamp) -> List[CashFlow]:
        return [cf for cf in self._cashflows if cf.date == payment_date]

    def _coupons_paying_on(self, payment_date: pd.Timestamp) -> List[Coupon]:
        coupons = (cf.as_coupon() for cf in self._paying_on(payment_date))
        return [cp for cp in coupons if cp is not None]

    def _next_coupon(self, include_settlement_date_flows, settlement_date, settings) -> Optional[Coupon]:
        cf = self.next_cash_flow(include_settlement_date_flows, settlement_date, settings)
        if cf is None:
            return None
        coupons = self._coupons_paying_on(cf.date)
        return coupons[0] if coupons else None

    def _aggregate_rate(self, cf: Optional[CashFlow]) -> float:
        """
        Sum of the rates of all coupons paying on cf's date. Same-date coupons
        must share nominal, accrual period and day counter.
        """
        if cf is None:
            return 0.0

        payment_date = cf.date
        coupons = self._coupons_paying_on(payment_date)
        if not coupons:
            raise CouponAggregationError(f"no coupon paid at cashflow date {payment_date.date()}")

        first = coupons[0]
        for cp in coupons[1:]:
            if not (
                cp.nominal == first.nominal
                and math.isclose(cp.accrual_period, first.accrual_period)
                and cp.day_counter == first.day_counter
            ):
                raise CouponAggregationError(f"cannot aggregate two different coupons on {payment_date.date()}")

        return sum(cp.rate for cp in coupons)
