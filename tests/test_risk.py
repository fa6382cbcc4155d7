import pandas as pd
import pytest

from cashflow_engine import curve_analytics, yield_analytics
from cashflow_engine.curves import FlatForward, ZeroCurve
from cashflow_engine.leg import Leg
from cashflow_engine.rates import Compounding, InterestRate
from cashflow_engine.risk import dv01, effective_convexity, effective_duration, shocked_curve_parallel

from conftest import fixed_rate_leg


@pytest.fixture(scope="module")
def val_date():
    return pd.Timestamp("2026-02-13")


@pytest.fixture(scope="module")
def curve(val_date):
    dates = [
        pd.Timestamp("2026-08-13"),
        pd.Timestamp("2027-02-13"),
        pd.Timestamp("2028-02-13"),
        pd.Timestamp("2031-02-13"),
        pd.Timestamp("2036-02-13"),
    ]
    zeros = [0.0500, 0.0480, 0.0450, 0.0430, 0.0425]
    return ZeroCurve.from_zero_rates(val_date, dates, zeros, zero_day_count="ACT/365")


@pytest.fixture(scope="module")
def book(val_date):
    """Deterministic mini-book of fixed-rate legs at different maturities."""
    coupons = [0.04, 0.045, 0.05, 0.055, 0.06]
    return [fixed_rate_leg(val_date, 2 * (i + 1), rate=c) for i, c in enumerate(coupons)]


def test_shocked_curve_moves_discount_factors(curve):
    d = pd.Timestamp("2030-02-13")
    assert shocked_curve_parallel(curve, 1.0).discount(d) < curve.discount(d)
    assert shocked_curve_parallel(curve, -1.0).discount(d) > curve.discount(d)


def test_rate_dv01_sign_sanity(curve, book, val_date):
    """+1bp rate shock => price down => DV01 negative for long fixed legs."""
    for leg in book:
        assert dv01(leg, curve, settlement_date=val_date) < 0.0, "DV01 should be negative for a long leg"


def test_dv01_grows_with_maturity(curve, book, val_date):
    dv01s = [dv01(leg, curve, settlement_date=val_date) for leg in book]
    assert all(a > b for a, b in zip(dv01s, dv01s[1:])), "Longer legs carry more rate risk"


def test_convexity_positive_sanity(curve, book, val_date):
    for leg in book:
        assert effective_convexity(leg, curve, settlement_date=val_date) > 0.0


def test_effective_measures_match_flat_yield_analytics(val_date):
    leg = fixed_rate_leg(val_date, 5, months=12, rate=0.04, day_count="ACT/365")
    y = InterestRate(0.04, "ACT/365", Compounding.CONTINUOUS)
    flat = FlatForward(val_date, y)

    mod = yield_analytics.modified_duration(leg, y, settlement_date=val_date)
    conv = yield_analytics.convexity(leg, y, settlement_date=val_date)

    # one-sided bump: D - C*h/2
    assert effective_duration(leg, flat, settlement_date=val_date) == pytest.approx(mod - 0.5 * conv * 1e-4, abs=1e-5)
    assert effective_convexity(leg, flat, settlement_date=val_date) == pytest.approx(conv, rel=1e-4)


def test_dv01_scales_with_bump(curve, book, val_date):
    leg = book[2]
    one = dv01(leg, curve, settlement_date=val_date, bp=1.0)
    ten = dv01(leg, curve, settlement_date=val_date, bp=10.0)
    assert ten == pytest.approx(10.0 * one, rel=1e-2)


def test_dv01_matches_npv_with_spread(curve, book, val_date):
    leg = book[1]
    base = curve_analytics.npv(leg, curve, settlement_date=val_date)
    bumped = curve_analytics.npv_with_spread(
        leg, curve, 1e-4, "ACT/365", Compounding.CONTINUOUS, -1, settlement_date=val_date
    )
    assert dv01(leg, curve, settlement_date=val_date) == pytest.approx(bumped - base, abs=1e-12)


def test_empty_leg_has_no_risk(curve, val_date):
    assert dv01(Leg(), curve, settlement_date=val_date) == 0.0
    assert effective_duration(Leg(), curve, settlement_date=val_date) == 0.0
    assert effective_convexity(Leg(), curve, settlement_date=val_date) == 0.0
