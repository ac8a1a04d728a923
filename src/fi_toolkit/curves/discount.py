"""
Discount curves.

[T1] P(t) = exp(-r(t) * t), with r the continuously compounded zero rate
on the curve's Act/365F time axis.

[T1] Simple forward: F(t1, t2) = (P(t1)/P(t2) - 1) / tau(t1, t2)
"""

from datetime import date
from enum import Enum

import numpy as np

from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.curve import Curve
from fi_toolkit.curves.interpolation import ExtrapMethod, InterpMethod
from fi_toolkit.dates.daycount import DayCount, year_fraction
from fi_toolkit.dates.tenor import Frequency


class Compounding(Enum):
    """Rate compounding convention."""

    SIMPLE = "simple"
    CONTINUOUS = "continuous"
    PERIODIC = "periodic"


def rate_from_discount_factor(
    df: float,
    tau: float,
    compounding: Compounding = Compounding.CONTINUOUS,
    frequency: Frequency = Frequency.ANNUAL,
) -> float:
    """Zero rate implied by a discount factor over ``tau`` years."""
    if tau <= 0:
        raise ValueError(f"CRITICAL: Rate period must be positive, got {tau}")
    if compounding == Compounding.CONTINUOUS:
        return -np.log(df) / tau
    if compounding == Compounding.SIMPLE:
        return (1.0 / df - 1.0) / tau
    f = int(frequency)
    if f <= 0:
        raise ValueError("CRITICAL: Periodic compounding needs a non-zero frequency")
    return f * (df ** (-1.0 / (f * tau)) - 1.0)


def discount_factor_from_rate(
    rate: float,
    tau: float,
    compounding: Compounding = Compounding.CONTINUOUS,
    frequency: Frequency = Frequency.ANNUAL,
) -> float:
    """Discount factor for a zero rate over ``tau`` years."""
    if compounding == Compounding.CONTINUOUS:
        return float(np.exp(-rate * tau))
    if compounding == Compounding.SIMPLE:
        return 1.0 / (1.0 + rate * tau)
    f = int(frequency)
    return (1.0 + rate / f) ** (-f * tau)


class DiscountCurve(Curve):
    """
    Curve of discount factors with P(as_of) = 1.

    Examples
    --------
    >>> curve = DiscountCurve.flat(date(2024, 1, 2), 0.05)
    >>> round(curve.discount_factor(date(2025, 1, 1)), 10)
    0.9512294245
    """

    def discount_factor(self, d: date) -> float:
        return self.value(d)

    def discount_factors(self, dates) -> np.ndarray:
        return self.value_at_time(np.array([self.time(d) for d in dates], dtype=float))

    def zero_rate(
        self,
        d: date,
        compounding: Compounding = Compounding.CONTINUOUS,
        dc: DayCount = DayCount.ACTUAL_365_FIXED,
        frequency: Frequency = Frequency.ANNUAL,
    ) -> float:
        """Zero rate from the curve date to ``d`` in the given convention."""
        tau = year_fraction(self.as_of, d, dc)
        return rate_from_discount_factor(self.discount_factor(d), tau, compounding, frequency)

    def forward_discount(self, start: date, end: date) -> float:
        """P(end) / P(start)."""
        return self.discount_factor(end) / self.discount_factor(start)

    def forward_rate(self, start: date, end: date, dc: DayCount = DayCount.ACTUAL_360) -> float:
        """
        Simple forward rate between two dates.

        Raises
        ------
        ValueError
            If ``end`` is not after ``start``
        """
        if end <= start:
            raise ValueError(f"CRITICAL: Forward end {end} must be after start {start}")
        tau = year_fraction(start, end, dc)
        return (1.0 / self.forward_discount(start, end) - 1.0) / tau

    def instantaneous_forward(self, d: date) -> float:
        """Overnight continuously compounded forward at ``d`` (1-day difference)."""
        t1 = self.time(d)
        t2 = t1 + 1.0 / 365.0
        return float(np.log(self.value_at_time(t1) / self.value_at_time(t2)) / (t2 - t1))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def flat(cls, as_of: date, rate: float, name: str = "flat") -> "DiscountCurve":
        """Flat continuously compounded Act/365F curve."""
        pillar = date(as_of.year + 1, as_of.month, min(as_of.day, 28))
        return cls(
            as_of,
            [pillar],
            [np.exp(-rate * (pillar - as_of).days / SETTINGS.curve.time_basis_days)],
            interp=InterpMethod.WEIGHTED,
            extrap=ExtrapMethod.CONST,
            name=name,
        )

    @classmethod
    def from_zero_rates(
        cls,
        as_of: date,
        dates,
        rates,
        compounding: Compounding = Compounding.CONTINUOUS,
        dc: DayCount = DayCount.ACTUAL_365_FIXED,
        interp: InterpMethod | None = None,
        extrap: ExtrapMethod | None = None,
        name: str = "",
    ) -> "DiscountCurve":
        """Curve from zero rates quoted to each pillar date."""
        dfs = [
            discount_factor_from_rate(r, year_fraction(as_of, d, dc), compounding)
            for d, r in zip(dates, rates)
        ]
        return cls(as_of, dates, dfs, interp=interp, extrap=extrap, name=name)
