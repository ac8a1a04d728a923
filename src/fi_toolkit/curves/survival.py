"""
Survival curves.

[T1] S(t) = exp(-integral of h(u) du from 0 to t)

With the default WEIGHTED interpolation the hazard rate h is piecewise
constant between pillars.
"""

from datetime import date

import numpy as np

from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.curve import Curve
from fi_toolkit.curves.interpolation import ExtrapMethod, InterpMethod


class SurvivalCurve(Curve):
    """
    Curve of survival probabilities, non-increasing in (0, 1].

    A defaulted curve has survival probability zero on and after its
    default date.

    Examples
    --------
    >>> curve = SurvivalCurve.flat(date(2024, 1, 2), 0.02)
    >>> round(curve.hazard_rate(date(2026, 6, 1)), 10)
    0.02
    """

    def __init__(self, *args, **kwargs):
        self.defaulted_date: date | None = None
        super().__init__(*args, **kwargs)
        self._check_monotone()

    def _check_value(self, d: date, value: float) -> None:
        super()._check_value(d, value)
        if value > 1.0:
            raise ValueError(
                f"CRITICAL: Survival probability at {d} must be <= 1, got {value}"
            )

    def _check_monotone(self) -> None:
        values = self.values
        if len(values) > 1 and np.any(np.diff(values) > 0):
            raise ValueError(
                f"CRITICAL: Survival curve '{self.name}' must be non-increasing"
            )

    def add(self, d: date, value: float) -> None:
        super().add(d, value)
        self._check_monotone()

    # ------------------------------------------------------------------
    # Probabilities
    # ------------------------------------------------------------------

    def survival_probability(self, d: date) -> float:
        if self.defaulted_date is not None and d >= self.defaulted_date:
            return 0.0
        return self.value(d)

    def default_probability(self, d: date) -> float:
        return 1.0 - self.survival_probability(d)

    def conditional_survival(self, start: date, end: date) -> float:
        """P(survive to ``end`` | survived to ``start``)."""
        s0 = self.survival_probability(start)
        if s0 <= 0.0:
            return 0.0
        return self.survival_probability(end) / s0

    def forward_hazard(self, start: date, end: date) -> float:
        """Average hazard rate between two dates."""
        if end <= start:
            raise ValueError(f"CRITICAL: Hazard end {end} must be after start {start}")
        t1, t2 = self.time(start), self.time(end)
        return float(np.log(self.value_at_time(t1) / self.value_at_time(t2)) / (t2 - t1))

    def hazard_rate(self, d: date) -> float:
        """Instantaneous hazard at ``d`` (one-day difference)."""
        t1 = self.time(d)
        t2 = t1 + 1.0 / 365.0
        return float(np.log(self.value_at_time(t1) / self.value_at_time(t2)) / (t2 - t1))

    def set_defaulted(self, d: date) -> None:
        """Mark the name as defaulted on ``d``."""
        self.defaulted_date = d

    @property
    def is_defaulted(self) -> bool:
        return self.defaulted_date is not None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_hazard_rates(
        cls, as_of: date, dates, hazards, name: str = ""
    ) -> "SurvivalCurve":
        """
        Piecewise-constant hazard curve.

        ``hazards[i]`` applies from ``dates[i-1]`` (or ``as_of``) to ``dates[i]``
        and is extended flat after the last date.
        """
        hazards = np.asarray(hazards, dtype=float)
        if np.any(hazards < 0):
            raise ValueError(f"CRITICAL: Hazard rates must be >= 0, got {hazards}")
        times = np.array([(d - as_of).days / SETTINGS.curve.time_basis_days for d in dates])
        dt = np.diff(np.concatenate([[0.0], times]))
        survival = np.exp(-np.cumsum(hazards * dt))
        return cls(
            as_of, dates, survival,
            interp=InterpMethod.WEIGHTED, extrap=ExtrapMethod.SMOOTH, name=name,
        )

    @classmethod
    def flat(cls, as_of: date, hazard: float, name: str = "flat") -> "SurvivalCurve":
        """Constant hazard rate curve."""
        pillar = date(as_of.year + 1, as_of.month, min(as_of.day, 28))
        return cls.from_hazard_rates(as_of, [pillar], [hazard], name=name)
