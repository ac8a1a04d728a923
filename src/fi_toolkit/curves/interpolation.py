"""
One-dimensional interpolation for curve construction.

Curves interpolate zero rates (or average hazard rates) against time.
The method decides the shape between pillars:

- LINEAR      y linear in x
- LOG_LINEAR  log(y) linear in x (positive y only)
- FLAT        y held at the left pillar
- WEIGHTED    x*y linear in x; on zero rates this gives piecewise-flat
              forwards, on average hazards piecewise-flat hazards
- CUBIC       natural cubic spline on y
- LOG_CUBIC   natural cubic spline on log(y) (positive y only)

Before the first pillar the curve is held flat. After the last pillar
CONST holds the last value and SMOOTH extends the final segment
linearly in the method's own space.

References:
    [T1] Hagan & West (2006) "Interpolation Methods for Curve Construction"
"""

from enum import Enum

import numpy as np
from scipy.interpolate import CubicSpline


class InterpMethod(Enum):
    """Interpolation between pillars."""

    LINEAR = "linear"
    LOG_LINEAR = "log_linear"
    FLAT = "flat"
    WEIGHTED = "weighted"
    CUBIC = "cubic"
    LOG_CUBIC = "log_cubic"


class ExtrapMethod(Enum):
    """Extrapolation after the last pillar."""

    CONST = "const"
    SMOOTH = "smooth"


_LOG_METHODS = (InterpMethod.LOG_LINEAR, InterpMethod.LOG_CUBIC)


class Interpolator:
    """
    Interpolate y(x) over strictly increasing pillars.

    Parameters
    ----------
    x : array_like
        Pillar abscissae, strictly increasing
    y : array_like
        Pillar values
    method : InterpMethod
        Shape between pillars
    extrap : ExtrapMethod
        Shape after the last pillar

    Examples
    --------
    >>> f = Interpolator([1.0, 2.0], [0.03, 0.04], InterpMethod.LINEAR)
    >>> round(float(f(1.5)), 10)
    0.035
    >>> f(np.array([0.5, 3.0]))
    array([0.03, 0.04])
    """

    def __init__(
        self,
        x,
        y,
        method: InterpMethod = InterpMethod.LINEAR,
        extrap: ExtrapMethod = ExtrapMethod.CONST,
    ):
        self._x = np.asarray(x, dtype=float)
        self._y = np.asarray(y, dtype=float)
        self.method = method
        self.extrap = extrap

        if self._x.ndim != 1 or self._x.shape != self._y.shape:
            raise ValueError(
                f"CRITICAL: x and y must be 1-D arrays of equal length, "
                f"got {self._x.shape} and {self._y.shape}"
            )
        if len(self._x) == 0:
            raise ValueError("CRITICAL: Interpolator needs at least one point")
        if np.any(np.diff(self._x) <= 0):
            raise ValueError("CRITICAL: Interpolation abscissae must be strictly increasing")
        if method in _LOG_METHODS and np.any(self._y <= 0):
            raise ValueError(
                f"CRITICAL: {method.value} interpolation requires positive values, "
                f"got min {self._y.min()}"
            )
        if method == InterpMethod.WEIGHTED and self._x[0] < 0:
            raise ValueError("CRITICAL: Weighted interpolation requires x >= 0")

        # Work in the method's own space
        if method in _LOG_METHODS:
            self._space = np.log(self._y)
        elif method == InterpMethod.WEIGHTED:
            self._space = self._x * self._y
        else:
            self._space = self._y.copy()

        self._spline = None
        if method in (InterpMethod.CUBIC, InterpMethod.LOG_CUBIC) and len(self._x) > 1:
            self._spline = CubicSpline(self._x, self._space, bc_type="natural")

    @property
    def x(self) -> np.ndarray:
        return self._x.copy()

    @property
    def y(self) -> np.ndarray:
        return self._y.copy()

    def __call__(self, x):
        xs = np.asarray(x, dtype=float)
        scalar = xs.ndim == 0
        xs = np.atleast_1d(xs)
        out = np.empty_like(xs)

        left = xs <= self._x[0]
        right = xs >= self._x[-1]
        inner = ~(left | right)

        out[left] = self._y[0]
        if np.any(right):
            out[right] = self._extrapolate(xs[right])
        if np.any(inner):
            out[inner] = self._interpolate(xs[inner])

        return float(out[0]) if scalar else out

    def _from_space(self, xs: np.ndarray, values: np.ndarray) -> np.ndarray:
        if self.method in _LOG_METHODS:
            return np.exp(values)
        if self.method == InterpMethod.WEIGHTED:
            return values / xs
        return values

    def _interpolate(self, xs: np.ndarray) -> np.ndarray:
        if self.method == InterpMethod.FLAT:
            return self._y[np.searchsorted(self._x, xs, side="right") - 1]
        if self._spline is not None:
            return self._from_space(xs, self._spline(xs))
        return self._from_space(xs, np.interp(xs, self._x, self._space))

    def _extrapolate(self, xs: np.ndarray) -> np.ndarray:
        if (
            self.extrap == ExtrapMethod.CONST
            or self.method == InterpMethod.FLAT
            or len(self._x) == 1
        ):
            return np.full_like(xs, self._y[-1])

        if self._spline is not None:
            slope = float(self._spline(self._x[-1], 1))
        else:
            slope = (self._space[-1] - self._space[-2]) / (self._x[-1] - self._x[-2])
        values = self._space[-1] + slope * (xs - self._x[-1])
        return self._from_space(xs, values)
