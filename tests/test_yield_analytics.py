import math

import pandas as pd
import pytest

from cashflow_engine import curve_analytics
from cashflow_engine import yield_analytics as ya
from cashflow_engine.cashflows import Coupon, SimpleCashFlow
from cashflow_engine.config import Settings
from cashflow_engine.curves import FlatForward
from cashflow_engine.errors import PreconditionError, UnsupportedConventionError
from cashflow_engine.leg import Leg
from cashflow_engine.rates import Compounding, DurationType, Frequency, InterestRate


@pytest.fixture(scope="module")
def cont_30360():
    return InterestRate(0.05, "30/360", Compounding.CONTINUOUS)


@pytest.fixture(scope="module")
def closed_form():
    b1 = math.exp(-0.025)
    b2 = math.exp(-0.05)
    p = 2.5 * b1 + 100.0 * b2
    return {
        "npv": p,
        "duration": (0.5 * 2.5 * b1 + 100.0 * b2) / p,
        "convexity": (0.25 * 2.5 * b1 + 100.0 * b2) / p,
        "bps": 1e-4 * 100.0 * 0.5 * b1,
    }


def test_empty_leg_is_zero(settle):
    y = InterestRate(0.05, "ACT/365", Compounding.COMPOUNDED, Frequency.ANNUAL)
    empty = Leg()
    assert ya.npv(empty, y, settlement_date=settle) == 0.0
    assert ya.bps(empty, y, settlement_date=settle) == 0.0
    assert ya.duration(empty, y, settlement_date=settle) == 0.0
    assert ya.convexity(empty, y, settlement_date=settle) == 0.0
    assert ya.basis_point_value(empty, y, settlement_date=settle) == 0.0
    assert ya.yield_value_basis_point(empty, y, settlement_date=settle) == 0.0


def test_two_flow_scenario_closed_forms(two_flow_leg, cont_30360, settle, closed_form):
    npv = ya.npv(two_flow_leg, cont_30360, settlement_date=settle)
    assert npv == pytest.approx(closed_form["npv"], abs=1e-12)

    mod = ya.duration(two_flow_leg, cont_30360, DurationType.MODIFIED, settlement_date=settle)
    assert mod == pytest.approx(closed_form["duration"], abs=1e-12)

    simple = ya.duration(two_flow_leg, cont_30360, DurationType.SIMPLE, settlement_date=settle)
    assert simple == pytest.approx(closed_form["duration"], abs=1e-12), "Continuous simple and modified durations agree"

    conv = ya.convexity(two_flow_leg, cont_30360, settlement_date=settle)
    assert conv == pytest.approx(closed_form["convexity"], abs=1e-12)

    bps = ya.bps(two_flow_leg, cont_30360, settlement_date=settle)
    assert bps == pytest.approx(closed_form["bps"], abs=1e-14)


def test_raw_yield_with_conventions(two_flow_leg, settle, closed_form):
    npv = ya.npv(
        two_flow_leg, 0.05, settlement_date=settle, day_counter="30/360", compounding=Compounding.CONTINUOUS
    )
    assert npv == pytest.approx(closed_form["npv"], abs=1e-12)


def test_raw_yield_without_conventions_rejected(two_flow_leg, settle):
    with pytest.raises(PreconditionError):
        ya.npv(two_flow_leg, 0.05, settlement_date=settle)


def test_settlement_defaults_to_evaluation_date(two_flow_leg, cont_30360, settle, closed_form):
    npv = ya.npv(two_flow_leg, cont_30360, settings=Settings(evaluation_date=settle))
    assert npv == pytest.approx(closed_form["npv"], abs=1e-12)


@pytest.mark.parametrize(
    "compounding,frequency",
    [
        (Compounding.COMPOUNDED, Frequency.ANNUAL),
        (Compounding.COMPOUNDED, Frequency.SEMIANNUAL),
        (Compounding.CONTINUOUS, Frequency.NO_FREQUENCY),
    ],
)
def test_modified_duration_matches_finite_difference(act365_leg, settle, compounding, frequency):
    h = 1e-5
    y = InterestRate(0.04, "ACT/365", compounding, frequency)
    up = InterestRate(0.04 + h, "ACT/365", compounding, frequency)
    down = InterestRate(0.04 - h, "ACT/365", compounding, frequency)

    p = ya.npv(act365_leg, y, settlement_date=settle)
    fd = -(ya.npv(act365_leg, up, settlement_date=settle) - ya.npv(act365_leg, down, settlement_date=settle)) / (2 * h * p)
    mod = ya.modified_duration(act365_leg, y, settlement_date=settle)
    assert mod == pytest.approx(fd, rel=1e-6)


def test_convexity_matches_finite_difference(act365_leg, settle):
    h = 1e-4
    y = InterestRate(0.04, "ACT/365", Compounding.COMPOUNDED, Frequency.ANNUAL)
    up = InterestRate(0.04 + h, "ACT/365", Compounding.COMPOUNDED, Frequency.ANNUAL)
    down = InterestRate(0.04 - h, "ACT/365", Compounding.COMPOUNDED, Frequency.ANNUAL)

    p = ya.npv(act365_leg, y, settlement_date=settle)
    fd = (ya.npv(act365_leg, up, settlement_date=settle) + ya.npv(act365_leg, down, settlement_date=settle) - 2 * p) / (p * h * h)
    assert ya.convexity(act365_leg, y, settlement_date=settle) == pytest.approx(fd, rel=1e-4)


def test_macaulay_needs_compounded_rate(two_flow_leg, cont_30360, settle):
    with pytest.raises(UnsupportedConventionError):
        ya.duration(two_flow_leg, cont_30360, DurationType.MACAULAY, settlement_date=settle)


def test_macaulay_scales_modified(act365_leg, settle):
    y = InterestRate(0.04, "ACT/365", Compounding.COMPOUNDED, Frequency.SEMIANNUAL)
    mac = ya.duration(act365_leg, y, DurationType.MACAULAY, settlement_date=settle)
    mod = ya.duration(act365_leg, y, DurationType.MODIFIED, settlement_date=settle)
    assert mac == pytest.approx(1.02 * mod)


def test_unknown_duration_type(two_flow_leg, cont_30360, settle):
    with pytest.raises(UnsupportedConventionError):
        ya.duration(two_flow_leg, cont_30360, "effective", settlement_date=settle)


def test_basis_point_value_close_to_repricing(act365_leg, settle):
    y = InterestRate(0.04, "ACT/365", Compounding.CONTINUOUS)
    bumped = InterestRate(0.0401, "ACT/365", Compounding.CONTINUOUS)
    bpv = ya.basis_point_value(act365_leg, y, settlement_date=settle)
    diff = ya.npv(act365_leg, bumped, settlement_date=settle) - ya.npv(act365_leg, y, settlement_date=settle)
    assert bpv < 0.0, "Price falls when the yield rises"
    assert bpv == pytest.approx(diff, abs=1e-5)


def test_yield_value_basis_point(act365_leg, settle):
    y = InterestRate(0.04, "ACT/365", Compounding.COMPOUNDED, Frequency.ANNUAL)
    p = ya.npv(act365_leg, y, settlement_date=settle)
    mod = ya.modified_duration(act365_leg, y, settlement_date=settle)
    yvbp = ya.yield_value_basis_point(act365_leg, y, settlement_date=settle)
    assert yvbp == pytest.approx(0.01 / (-p * mod))


@pytest.mark.parametrize(
    "compounding,frequency",
    [
        (Compounding.COMPOUNDED, Frequency.ANNUAL),
        (Compounding.CONTINUOUS, Frequency.NO_FREQUENCY),
    ],
)
def test_flat_yield_agrees_with_flat_curve(act365_leg, compounding, frequency):
    settle = pd.Timestamp("2025-03-10")
    y = InterestRate(0.04, "ACT/365", compounding, frequency)
    curve = FlatForward(settle, y)
    assert ya.npv(act365_leg, y, settlement_date=settle) == pytest.approx(
        curve_analytics.npv(act365_leg, curve, settlement_date=settle), abs=1e-10
    )


def test_npv_date_rebasing(act365_leg, settle):
    y = InterestRate(0.04, "ACT/365", Compounding.CONTINUOUS)
    later = pd.Timestamp("2025-07-15")
    at_settle = ya.npv(act365_leg, y, settlement_date=settle)
    at_later = ya.npv(act365_leg, y, settlement_date=settle, npv_date=later)
    assert at_later == pytest.approx(at_settle * math.exp(0.04 * 181 / 365), rel=1e-10)


def test_ex_coupon_flow_keeps_clock_but_pays_nothing(settle):
    y = InterestRate(0.05, "ACT/365", Compounding.CONTINUOUS)
    coupon = Coupon(
        "2025-07-15", 100.0, 0.05, "ACT/365", "2025-01-15", "2025-07-15", ex_coupon_date="2025-01-10"
    )
    redemption = SimpleCashFlow("2026-01-15", 100.0)

    with_ex = ya.npv(Leg([coupon, redemption]), y, settlement_date=settle)
    assert with_ex == pytest.approx(100.0 * math.exp(-0.05 * 365 / 365), abs=1e-12)


def test_matured_leg_has_no_yield_sensitivity(bond_leg):
    after_maturity = pd.Timestamp("2027-06-01")
    y = InterestRate(0.04, "30/360", Compounding.COMPOUNDED, Frequency.SEMIANNUAL)
    assert ya.npv(bond_leg, y, settlement_date=after_maturity) == 0.0
    assert ya.modified_duration(bond_leg, y, settlement_date=after_maturity) == 0.0
    assert ya.basis_point_value(bond_leg, y, settlement_date=after_maturity) == 0.0
    assert ya.yield_value_basis_point(bond_leg, y, settlement_date=after_maturity) == 0.0


@pytest.fixture(scope="module")
def short_and_long_flows():
    """
    ACT/365 bullets at t = 0.2 (inside the first half-year, simple accrual)
    and t = 1.0 (compounded semi-annually) from 2025-01-01.
    """
    return Leg([SimpleCashFlow("2025-03-15", 5.0), SimpleCashFlow("2026-01-01", 105.0)])


@pytest.fixture(scope="module")
def simple_then_compounded():
    return InterestRate(0.05, "ACT/365", Compounding.SIMPLE_THEN_COMPOUNDED, Frequency.SEMIANNUAL)


def test_simple_then_compounded_duration_closed_form(short_and_long_flows, simple_then_compounded):
    settle = pd.Timestamp("2025-01-01")
    b1 = 1.0 / (1.0 + 0.05 * 0.2)
    b2 = 1.025 ** -2
    p = 5.0 * b1 + 105.0 * b2
    # simple side: c * B^2 * t, compounded side: c * t * B / (1 + r/N)
    expected = (5.0 * b1 * b1 * 0.2 + 105.0 * 1.0 * b2 / 1.025) / p

    mod = ya.duration(short_and_long_flows, simple_then_compounded, DurationType.MODIFIED, settlement_date=settle)
    assert mod == pytest.approx(expected, abs=1e-12)


def test_simple_then_compounded_convexity_closed_form(short_and_long_flows, simple_then_compounded):
    settle = pd.Timestamp("2025-01-01")
    b1 = 1.0 / (1.0 + 0.05 * 0.2)
    b2 = 1.025 ** -2
    p = 5.0 * b1 + 105.0 * b2
    expected = (
        5.0 * 2.0 * b1**3 * 0.2**2
        + 105.0 * b2 * 1.0 * (2 * 1.0 + 1) / (2 * 1.025 * 1.025)
    ) / p

    conv = ya.convexity(short_and_long_flows, simple_then_compounded, settlement_date=settle)
    assert conv == pytest.approx(expected, abs=1e-12)


def test_simple_then_compounded_npv_discounts_stepwise(short_and_long_flows, simple_then_compounded):
    settle = pd.Timestamp("2025-01-01")
    b1 = 1.0 / (1.0 + 0.05 * 0.2)
    # the second slice (0.8y) is past one period, so it compounds on its own
    b2 = b1 * 1.025 ** (-2 * 0.8)
    npv = ya.npv(short_and_long_flows, simple_then_compounded, settlement_date=settle)
    assert npv == pytest.approx(5.0 * b1 + 105.0 * b2, abs=1e-12)
