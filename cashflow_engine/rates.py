from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Union

from .daycount import DayCounter, day_counter
from .errors import UnsupportedConventionError


class Compounding(Enum):
    SIMPLE = "simple"                                  # 1 + r*t
    COMPOUNDED = "compounded"                          # (1 + r/f)^(f*t)
    CONTINUOUS = "continuous"                          # exp(r*t)
    SIMPLE_THEN_COMPOUNDED = "simple_then_compounded"  # simple up to 1/f, compounded after


class Frequency(IntEnum):
    NO_FREQUENCY = -1
    ONCE = 0
    ANNUAL = 1
    SEMIANNUAL = 2
    EVERY_FOURTH_MONTH = 3
    QUARTERLY = 4
    BIMONTHLY = 6
    MONTHLY = 12


class DurationType(Enum):
    SIMPLE = "simple"
    MODIFIED = "modified"
    MACAULAY = "macaulay"


def _unknown_compounding(compounding) -> UnsupportedConventionError:
    return UnsupportedConventionError(f"unknown compounding convention ({compounding})")


@dataclass(frozen=True)
class InterestRate:
    """
    Constant rate with its day counter, compounding and frequency.

    `day_counter` accepts a DayCounter or a convention name ("ACT/365", "30/360", ...).
    """
    rate: float
    day_counter: Union[DayCounter, str]
    compounding: Compounding
    frequency: Union[Frequency, int] = Frequency.ANNUAL

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", float(self.rate))
        object.__setattr__(self, "day_counter", day_counter(self.day_counter))

        if not isinstance(self.compounding, Compounding):
            raise _unknown_compounding(self.compounding)

        if self.compounding in (Compounding.COMPOUNDED, Compounding.SIMPLE_THEN_COMPOUNDED):
            if int(self.frequency) <= 0:
                raise UnsupportedConventionError(
                    f"frequency {self.frequency!r} not allowed for {self.compounding.value} compounding"
                )

    @property
    def periods(self) -> int:
        """Compounding periods per year."""
        return int(self.frequency)

    def compound_factor(self, t: float) -> float:
        r = self.rate
        comp = self.compounding

        if comp == Compounding.SIMPLE:
            return 1.0 + r * t
        if comp == Compounding.COMPOUNDED:
            n = self.periods
            return (1.0 + r / n) ** (n * t)
        if comp == Compounding.CONTINUOUS:
            return math.exp(r * t)
        if comp == Compounding.SIMPLE_THEN_COMPOUNDED:
            n = self.periods
            if t <= 1.0 / n:
                return 1.0 + r * t
            return (1.0 + r / n) ** (n * t)

        raise _unknown_compounding(comp)

    def discount_factor(self, t: float) -> float:
        return 1.0 / self.compound_factor(t)

    @classmethod
    def implied_rate(
        cls,
        compound: float,
        day_counter: Union[DayCounter, str],
        compounding: Compounding,
        frequency: Union[Frequency, int],
        t: float,
    ) -> "InterestRate":
        """Rate that produces `compound` over time `t` under the given convention."""
        if compound <= 0.0:
            raise ValueError(f"positive compound factor required, got {compound}")

        if compound == 1.0:
            if t < 0.0:
                raise ValueError(f"non-negative time required, got {t}")
            return cls(0.0, day_counter, compounding, frequency)

        if t <= 0.0:
            raise ValueError(f"positive time required, got {t}")

        n = int(frequency)
        if compounding == Compounding.SIMPLE:
            r = (compound - 1.0) / t
        elif compounding == Compounding.COMPOUNDED:
            r = (compound ** (1.0 / (n * t)) - 1.0) * n
        elif compounding == Compounding.CONTINUOUS:
            r = math.log(compound) / t
        elif compounding == Compounding.SIMPLE_THEN_COMPOUNDED:
            if t <= 1.0 / n:
                r = (compound - 1.0) / t
            else:
                r = (compound ** (1.0 / (n * t)) - 1.0) * n
        else:
            raise _unknown_compounding(compounding)

        return cls(r, day_counter, compounding, frequency)

    def equivalent_rate(
        self,
        compounding: Compounding,
        frequency: Union[Frequency, int],
        t: float,
    ) -> "InterestRate":
        return InterestRate.implied_rate(self.compound_factor(t), self.day_counter, compounding, frequency, t)

    def __str__(self) -> str:
        label = self.compounding.value
        if self.compounding in (Compounding.COMPOUNDED, Compounding.SIMPLE_THEN_COMPOUNDED):
            label += f" x{self.periods}"
        return f"{self.rate:.6%} {self.day_counter} {label}"
