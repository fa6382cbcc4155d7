from __future__ import annotations

import numpy as np
import pandas as pd
from typing import Optional, Sequence

from .cashflows import CashFlow
from .config import Settings, resolve_dates
from .curves import YieldCurve, ZeroCurve


def cashflow_table(
    leg: Sequence[CashFlow],
    curve: YieldCurve,
    include_settlement_date_flows: bool = False,
    settlement_date: Optional[pd.Timestamp] = None,
    npv_date: Optional[pd.Timestamp] = None,
    *,
    settings: Optional[Settings] = None,
) -> pd.DataFrame:
    """
    One row per flow with its discount factor (rebased to the NPV date)
    and present value. Flows already paid or trading ex-coupon get pv 0,
    so the pv column sums to `curve_analytics.npv`.
    """
    settle, npv_date = resolve_dates(settlement_date, npv_date, settings)
    df_npv = curve.discount(npv_date)

    rows = []
    for cf in leg:
        coupon = cf.as_coupon()
        occurred = cf.has_occurred(settle, include_settlement_date_flows)
        ex_coupon = cf.trading_ex_coupon(settle)

        if occurred:
            discount = np.nan
            pv = 0.0
        else:
            discount = curve.discount(cf.date) / df_npv
            pv = 0.0 if ex_coupon else cf.amount * discount

        rows.append(
            (
                cf.date,
                "coupon" if coupon is not None else "cashflow",
                cf.amount,
                coupon.nominal if coupon is not None else np.nan,
                coupon.accrual_period if coupon is not None else np.nan,
                occurred,
                ex_coupon,
                discount,
                pv,
            )
        )

    return pd.DataFrame(
        rows,
        columns=["date", "kind", "amount", "nominal", "accrual_period", "occurred", "ex_coupon", "discount", "pv"],
    )


def curve_qc_report(curve: ZeroCurve) -> pd.DataFrame:
    dates = pd.to_datetime(curve.knot_dates)
    dfs = np.exp(curve.knot_log_dfs)
    taus = curve.knot_times

    return pd.DataFrame(
        {
            "date": dates,
            "tau": taus,
            "df": dfs,
            "zero_cc": curve.zero_rates_cc(),
            "df_positive": dfs > 0,
            "df_monotone": np.r_[True, np.diff(dfs) <= 1e-10],
        }
    )
