"""
Dated term-structure base class.

A Curve holds pillar dates and positive values (discount factors or
survival probabilities) and interpolates their continuously compounded
average rate, -ln(v)/t, against time from the as-of date. Time runs on
a fixed day basis (Act/365F by default).

Curves are mutable only through ``add`` and ``set_value``, which the
bootstrappers use while building. Every other transformation returns a
new curve.
"""

from bisect import bisect_left
from datetime import date

import numpy as np
import pandas as pd

from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.interpolation import ExtrapMethod, Interpolator, InterpMethod


def _default_interp() -> InterpMethod:
    return InterpMethod(SETTINGS.curve.interp_method)


def _default_extrap() -> ExtrapMethod:
    return ExtrapMethod(SETTINGS.curve.extrap_method)


class Curve:
    """
    Interpolated curve of values v(t) = exp(-r(t) * t) with v(0) = 1.

    Parameters
    ----------
    as_of : date
        Curve date (time zero)
    dates : sequence of date, optional
        Pillar dates, strictly increasing and after ``as_of``
    values : sequence of float, optional
        Pillar values, strictly positive
    interp : InterpMethod, optional
        Interpolation of the average rate (default from settings)
    extrap : ExtrapMethod, optional
        Extrapolation after the last pillar (default from settings)
    name : str
        Label used in logs and reports
    """

    def __init__(
        self,
        as_of: date,
        dates=(),
        values=(),
        interp: InterpMethod | None = None,
        extrap: ExtrapMethod | None = None,
        name: str = "",
    ):
        dates = list(dates)
        values = [float(v) for v in values]
        if len(dates) != len(values):
            raise ValueError(
                f"CRITICAL: {len(dates)} pillar dates but {len(values)} values"
            )
        self.as_of = as_of
        self.interp = interp or _default_interp()
        self.extrap = extrap or _default_extrap()
        self.name = name
        self._dates: list[date] = []
        self._values: list[float] = []
        for d, v in zip(dates, values):
            self._insert(d, v)
        self._interpolator: Interpolator | None = None

    # ------------------------------------------------------------------
    # Pillars
    # ------------------------------------------------------------------

    def _check_value(self, d: date, value: float) -> None:
        if not np.isfinite(value) or value <= 0:
            raise ValueError(
                f"CRITICAL: Curve '{self.name}' value at {d} must be positive, got {value}"
            )

    def _insert(self, d: date, value: float) -> None:
        if d <= self.as_of:
            raise ValueError(
                f"CRITICAL: Pillar {d} must be after curve date {self.as_of}"
            )
        self._check_value(d, value)
        if d in self._dates:
            raise ValueError(f"CRITICAL: Duplicate pillar date {d} on curve '{self.name}'")
        idx = bisect_left(self._dates, d)
        self._dates.insert(idx, d)
        self._values.insert(idx, float(value))

    def add(self, d: date, value: float) -> None:
        """Insert a pillar in date order."""
        self._insert(d, value)
        self._interpolator = None

    def set_value(self, index: int, value: float) -> None:
        """Overwrite the value of an existing pillar."""
        self._check_value(self._dates[index], value)
        self._values[index] = float(value)
        self._interpolator = None

    def clear(self) -> None:
        self._dates.clear()
        self._values.clear()
        self._interpolator = None

    def __len__(self) -> int:
        return len(self._dates)

    @property
    def dates(self) -> list[date]:
        return list(self._dates)

    @property
    def values(self) -> np.ndarray:
        return np.array(self._values, dtype=float)

    @property
    def times(self) -> np.ndarray:
        return np.array([self.time(d) for d in self._dates], dtype=float)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def time(self, d: date) -> float:
        """Year fraction from the curve date on the curve's day basis."""
        return (d - self.as_of).days / SETTINGS.curve.time_basis_days

    def _build(self) -> Interpolator:
        if not self._dates:
            raise ValueError(f"CRITICAL: Curve '{self.name}' has no pillars")
        times = self.times
        rates = -np.log(self.values) / times
        return Interpolator(times, rates, self.interp, self.extrap)

    def rate_at_time(self, t):
        """Continuously compounded average rate to time ``t``."""
        if self._interpolator is None:
            self._interpolator = self._build()
        return self._interpolator(t)

    def value_at_time(self, t):
        """Interpolated value at time ``t`` (scalar or array); 1 at or before t=0."""
        ts = np.asarray(t, dtype=float)
        scalar = ts.ndim == 0
        ts = np.atleast_1d(ts)
        out = np.ones_like(ts)
        positive = ts > 0
        if np.any(positive):
            out[positive] = np.exp(-self.rate_at_time(ts[positive]) * ts[positive])
        return float(out[0]) if scalar else out

    def value(self, d: date) -> float:
        return self.value_at_time(self.time(d))

    # ------------------------------------------------------------------
    # Transformations
    # ------------------------------------------------------------------

    def _clone(self, dates, values, name: str | None = None) -> "Curve":
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        clone._dates = list(dates)
        clone._values = [float(v) for v in values]
        clone._interpolator = None
        if name is not None:
            clone.name = name
        return clone

    def copy(self) -> "Curve":
        return self._clone(self._dates, self._values)

    def bumped(self, shifts, name: str | None = None) -> "Curve":
        """
        New curve with the average rate of each pillar shifted.

        Parameters
        ----------
        shifts : float or sequence of float
            Parallel shift, or one shift per pillar (continuous rate units)
        name : str, optional
            Name of the bumped curve
        """
        shifts = np.broadcast_to(np.asarray(shifts, dtype=float), (len(self),))
        values = self.values * np.exp(-shifts * self.times)
        return self._clone(self._dates, values, name)

    def to_frame(self) -> pd.DataFrame:
        """Pillars with time, value and continuously compounded rate."""
        times = self.times
        values = self.values
        return pd.DataFrame({
            "date": self._dates,
            "time": times,
            "value": values,
            "rate": -np.log(values) / times if len(times) else values,
        })

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(name={self.name!r}, as_of={self.as_of}, "
            f"pillars={len(self)}, interp={self.interp.value})"
        )
