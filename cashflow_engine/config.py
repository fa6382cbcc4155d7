# config.py
# Purpose: Central configuration for the cash-flow engine (constants, evaluation settings)

from __future__ import annotations

import pandas as pd
from dataclasses import dataclass, field
from typing import Optional, Tuple

BASIS_POINT = 1.0e-4

# Solver defaults
DEFAULT_ACCURACY = 1.0e-10
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_IRR_GUESS = 0.05
DEFAULT_ZSPREAD_GUESS = 0.0
ZSPREAD_STEP = 0.01


def _today() -> pd.Timestamp:
    return pd.Timestamp.today().normalize()


@dataclass(frozen=True)
class Settings:
    """
    Valuation context passed explicitly to the analytics.

    - evaluation_date: default settlement date when a call omits one.
    - include_reference_date_events: whether a flow paying on the reference
      date still counts as pending, for calls that take no explicit flag.
    """
    evaluation_date: pd.Timestamp = field(default_factory=_today)
    include_reference_date_events: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "evaluation_date", pd.Timestamp(self.evaluation_date))


def resolve_settings(settings: Optional[Settings] = None) -> Settings:
    return settings if settings is not None else Settings()


def resolve_dates(
    settlement_date: Optional[pd.Timestamp],
    npv_date: Optional[pd.Timestamp],
    settings: Optional[Settings] = None,
) -> Tuple[pd.Timestamp, pd.Timestamp]:
    """Returns (settlement, npv_date); npv_date falls back to settlement."""
    if settlement_date is None:
        settlement_date = resolve_settings(settings).evaluation_date
    settlement_date = pd.Timestamp(settlement_date)

    npv_date = settlement_date if npv_date is None else pd.Timestamp(npv_date)
    return settlement_date, npv_date
