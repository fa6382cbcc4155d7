import pandas as pd
import pytest

from cashflow_engine.cashflows import Coupon, SimpleCashFlow
from cashflow_engine.leg import Leg


def fixed_rate_leg(start, n_periods, months=6, nominal=100.0, rate=0.05, day_count="30/360", redemption=True):
    """Regular fixed-rate leg: n_periods coupons of `months` each, plus redemption at the end."""
    start = pd.Timestamp(start)
    flows = []
    for i in range(n_periods):
        accrual_start = start + pd.DateOffset(months=months * i)
        accrual_end = start + pd.DateOffset(months=months * (i + 1))
        flows.append(Coupon(accrual_end, nominal, rate, day_count, accrual_start, accrual_end))
    if redemption:
        flows.append(SimpleCashFlow(flows[-1].date, nominal))
    return Leg(flows)


@pytest.fixture(scope="module")
def settle():
    return pd.Timestamp("2025-01-15")


@pytest.fixture(scope="module")
def two_flow_leg():
    """
    One 6m 30/360 coupon (alpha = 0.5, amount 2.5) and a redemption of 100
    one year out. Under 30/360 the stepwise times are 0.5 and 1.0.
    """
    coupon = Coupon(
        date=pd.Timestamp("2025-07-15"),
        nominal=100.0,
        rate=0.05,
        day_counter="30/360",
        accrual_start_date=pd.Timestamp("2025-01-15"),
        accrual_end_date=pd.Timestamp("2025-07-15"),
    )
    redemption = SimpleCashFlow(pd.Timestamp("2026-01-15"), 100.0)
    return Leg([coupon, redemption])


@pytest.fixture(scope="module")
def bond_leg():
    """2y semi-annual 5% bond on 30/360 starting 2025-01-15."""
    return fixed_rate_leg("2025-01-15", 4)


@pytest.fixture(scope="module")
def act365_leg():
    """3y annual 4% bond on ACT/365 starting 2025-01-15."""
    return fixed_rate_leg("2025-01-15", 3, months=12, rate=0.04, day_count="ACT/365")
