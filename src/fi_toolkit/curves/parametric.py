"""
Nelson-Siegel parametric zero curves.

[T1] y(t) = b0 + b1 * (1 - e^(-t/tau)) / (t/tau)
           + b2 * ((1 - e^(-t/tau)) / (t/tau) - e^(-t/tau))

Used to smooth a bootstrapped zero curve or to build a synthetic curve
from a handful of shape parameters.

References:
    [T1] Nelson & Siegel (1987) "Parsimonious Modeling of Yield Curves"
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta

import numpy as np
from scipy.optimize import minimize

from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.curves.interpolation import ExtrapMethod, InterpMethod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NelsonSiegelParams:
    """
    Nelson-Siegel parameters.

    Attributes
    ----------
    beta0 : float
        Long-run level
    beta1 : float
        Short-end slope (y(0) = beta0 + beta1)
    beta2 : float
        Medium-term curvature
    tau : float
        Decay time in years, > 0
    """

    beta0: float
    beta1: float
    beta2: float
    tau: float

    def __post_init__(self) -> None:
        if self.tau <= 0:
            raise ValueError(f"CRITICAL: Nelson-Siegel tau must be > 0, got {self.tau}")

    def rate(self, t):
        """Continuously compounded zero rate at time ``t`` (scalar or array)."""
        ts = np.asarray(t, dtype=float)
        x = np.maximum(ts, 1e-12) / self.tau
        decay = np.exp(-x)
        # expm1 keeps the short end accurate as x -> 0
        slope = -np.expm1(-x) / x
        result = self.beta0 + self.beta1 * slope + self.beta2 * (slope - decay)
        return float(result) if ts.ndim == 0 else result


def fit_nelson_siegel(
    times,
    rates,
    initial_guess: tuple[float, float, float, float] | None = None,
) -> NelsonSiegelParams:
    """
    Least-squares fit of Nelson-Siegel parameters to zero rates.

    Parameters
    ----------
    times : array_like
        Maturities in years
    rates : array_like
        Continuously compounded zero rates
    initial_guess : tuple, optional
        Starting (beta0, beta1, beta2, tau)

    Returns
    -------
    NelsonSiegelParams
        Fitted parameters

    Examples
    --------
    >>> params = fit_nelson_siegel([1, 2, 5, 10, 30], [0.03, 0.035, 0.04, 0.042, 0.045])
    >>> 0.04 < params.beta0 < 0.05
    True
    """
    times = np.asarray(times, dtype=float)
    rates = np.asarray(rates, dtype=float)
    if len(times) < 4:
        raise ValueError(
            f"CRITICAL: Need at least 4 points to fit Nelson-Siegel, got {len(times)}"
        )

    def objective(x: np.ndarray) -> float:
        beta0, beta1, beta2, tau = x
        if tau <= 0:
            return 1e10
        model = NelsonSiegelParams(beta0, beta1, beta2, tau).rate(times)
        return float(np.sum((model - rates) ** 2))

    if initial_guess is None:
        initial_guess = (rates[-1], rates[0] - rates[-1], 0.0, 2.0)

    result = minimize(objective, initial_guess, method="Nelder-Mead",
                      options={"maxiter": 4000, "xatol": 1e-10, "fatol": 1e-14})
    if not result.success:
        logger.warning(f"Nelson-Siegel fit did not converge: {result.message}")

    return NelsonSiegelParams(
        beta0=float(result.x[0]),
        beta1=float(result.x[1]),
        beta2=float(result.x[2]),
        tau=abs(float(result.x[3])),
    )


def nelson_siegel_curve(
    as_of: date,
    params: NelsonSiegelParams,
    pillar_dates=None,
    name: str = "nelson_siegel",
) -> DiscountCurve:
    """
    Discount curve sampled from a Nelson-Siegel zero curve.

    Pillars default to annual points out to 30 years plus 3M and 6M.
    """
    if pillar_dates is None:
        pillar_dates = [as_of + timedelta(days=n) for n in (91, 182)]
        pillar_dates += [date(as_of.year + y, as_of.month, min(as_of.day, 28)) for y in range(1, 31)]
    curve = DiscountCurve(as_of, interp=InterpMethod.CUBIC, extrap=ExtrapMethod.SMOOTH, name=name)
    for d in pillar_dates:
        t = curve.time(d)
        curve.add(d, float(np.exp(-params.rate(t) * t)))
    return curve


def smooth_curve(curve: DiscountCurve) -> tuple[DiscountCurve, NelsonSiegelParams]:
    """Fit Nelson-Siegel to a curve's pillars and resample on the same dates."""
    times = curve.times
    rates = -np.log(curve.values) / times
    params = fit_nelson_siegel(times, rates)
    logger.debug(f"Smoothed curve '{curve.name}': {params}")
    return nelson_siegel_curve(curve.as_of, params, curve.dates, name=f"{curve.name}_ns"), params
