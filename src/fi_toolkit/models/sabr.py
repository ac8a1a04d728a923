"""
SABR smile for caplet and swaption-style forward rates.

Hagan et al. (2002) give a closed-form lognormal volatility for the SABR
dynamics. Rates can go negative, so forwards and strikes are displaced by
``shift`` before the formula is applied (shifted SABR, quoted as Black vols
on F + s and K + s). Desks that quote normal vols get them through
``sabr_normal_volatility``, which converts the shifted Black price back to
a Bachelier volatility.

[T1] SABR dynamics:
  dF = alpha * (F + s)^beta * dW1
  dalpha = nu * alpha * dW2
  dW1 dW2 = rho dt

References
----------
[T1] Hagan, P. S., Kumar, D., Lesniewski, A. S., & Woodward, D. E. (2002).
     Managing smile risk. Wilmott magazine, 1(September), 84-108.
[T1] West, G. (2005). Calibration of the SABR Model in Illiquid Markets.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
from scipy.optimize import minimize

from fi_toolkit.models.black import BlackResult, OptionType, VolType, black76, implied_volatility

logger = logging.getLogger(__name__)

ArrayLike = Union[float, Sequence[float], np.ndarray]

#: Bounds for the free parameters (alpha, rho, nu) in calibration
_FIT_BOUNDS = ((1e-6, 5.0), (-0.999, 0.999), (1e-6, 5.0))


@dataclass(frozen=True)
class SABRParams:
    """
    SABR parameters for one expiry.

    Attributes
    ----------
    alpha : float
        Initial volatility level, > 0
    beta : float
        Backbone exponent in [0, 1]; 0 normal, 0.5 CIR-like, 1 lognormal
    rho : float
        Forward/volatility correlation in [-1, 1]
    nu : float
        Volatility of volatility, >= 0
    shift : float
        Displacement added to forward and strike, >= 0
    """

    alpha: float
    beta: float
    rho: float
    nu: float
    shift: float = 0.0

    def __post_init__(self) -> None:
        checks = (
            ("alpha", self.alpha > 0, "> 0"),
            ("beta", 0 <= self.beta <= 1, "in [0, 1]"),
            ("rho", -1 <= self.rho <= 1, "in [-1, 1]"),
            ("nu", self.nu >= 0, ">= 0"),
            ("shift", self.shift >= 0, ">= 0"),
        )
        for name, ok, rule in checks:
            if not ok:
                raise ValueError(
                    f"CRITICAL: SABR {name} must be {rule}, got {getattr(self, name)}"
                )


def _hagan_lognormal(f: float, k: np.ndarray, t: float, p: SABRParams) -> np.ndarray:
    """Hagan's lognormal vol on already shifted, positive f and k."""
    omb = 1.0 - p.beta
    fk_mid = np.sqrt(f * k)
    mid_pow = fk_mid ** omb
    log_fk = np.log(f / k)

    time_term = 1.0 + t * (
        omb ** 2 * p.alpha ** 2 / (24.0 * mid_pow ** 2)
        + 0.25 * p.rho * p.beta * p.nu * p.alpha / mid_pow
        + (2.0 - 3.0 * p.rho ** 2) * p.nu ** 2 / 24.0
    )
    backbone = p.alpha / (mid_pow * (1.0 + omb ** 2 / 24.0 * log_fk ** 2
                                     + omb ** 4 / 1920.0 * log_fk ** 4))

    z = p.nu / p.alpha * mid_pow * log_fk
    z_over_x = np.ones_like(z)
    smile = np.abs(z) >= 1e-7
    if p.rho < 1.0 and smile.any():
        zs = z[smile]
        x = np.log((np.sqrt(1.0 - 2.0 * p.rho * zs + zs ** 2) + zs - p.rho) / (1.0 - p.rho))
        z_over_x[smile] = zs / x

    return np.maximum(backbone * z_over_x * time_term, 1e-8)


def sabr_implied_volatility(
    forward: float,
    strike: ArrayLike,
    time: float,
    params: SABRParams,
) -> Union[float, np.ndarray]:
    """
    Shifted Black volatility from Hagan's approximation.

    Parameters
    ----------
    forward : float
        Forward rate, unshifted
    strike : float or array
        Strike rate(s), unshifted
    time : float
        Years to expiry
    params : SABRParams
        Smile parameters

    Returns
    -------
    float or ndarray
        Black volatility of F + shift struck at K + shift; a float for a
        scalar strike

    Notes
    -----
    [T1] At the money: sigma ~ alpha / (F + s)^(1 - beta)
    """
    if time <= 0:
        raise ValueError(f"CRITICAL: time must be > 0, got {time}")
    f = forward + params.shift
    k = np.atleast_1d(np.asarray(strike, dtype=float)) + params.shift
    if f <= 0:
        raise ValueError(
            f"CRITICAL: Shifted forward {f} must be > 0 (forward={forward}, shift={params.shift})"
        )
    if np.any(k <= 0):
        raise ValueError(
            f"CRITICAL: Shifted strikes must be > 0, got min {k.min()} (shift={params.shift})"
        )
    vols = _hagan_lognormal(f, k, time, params)
    return float(vols[0]) if np.ndim(strike) == 0 else vols


def sabr_option_price(
    forward: float,
    strike: float,
    time: float,
    params: SABRParams,
    option_type: OptionType,
    discount: float = 1.0,
) -> BlackResult:
    """[T1] Black-76 on the shifted forward and strike at the SABR volatility."""
    vol = sabr_implied_volatility(forward, strike, time, params)
    return black76(forward + params.shift, strike + params.shift, vol, time, option_type, discount)


def sabr_normal_volatility(forward: float, strike: float, time: float, params: SABRParams) -> float:
    """
    Bachelier volatility matching the SABR price.

    Uses the out-of-the-money option so the inversion is well conditioned.
    """
    option_type = OptionType.CALL if strike >= forward else OptionType.PUT
    price = sabr_option_price(forward, strike, time, params, option_type).price
    return implied_volatility(price, forward, strike, time, option_type, VolType.NORMAL)


def calibrate_sabr(
    forward: float,
    strikes: Sequence[float],
    market_vols: Sequence[float],
    time: float,
    beta: float = 0.5,
    shift: float = 0.0,
    initial_guess: Optional[tuple[float, float, float]] = None,
    weights: Optional[Sequence[float]] = None,
) -> SABRParams:
    """
    Fit alpha, rho and nu to a smile of shifted Black vols, beta fixed.

    [T1] Minimises the weighted RMS vol error with L-BFGS-B. Beta is not
    fitted because it is nearly collinear with rho on a single expiry (West 2005).

    Raises
    ------
    ValueError
        If fewer than three strikes are given, lengths differ, or the
        optimiser does not converge
    """
    if len(strikes) != len(market_vols):
        raise ValueError(
            f"CRITICAL: strikes and market_vols must have same length, "
            f"got {len(strikes)} and {len(market_vols)}"
        )
    if len(strikes) < 3:
        raise ValueError(f"CRITICAL: Need at least 3 strikes to fit SABR, got {len(strikes)}")

    k = np.asarray(strikes, dtype=float)
    target = np.asarray(market_vols, dtype=float)
    w = np.ones_like(k) if weights is None else np.asarray(weights, dtype=float)
    if w.shape != k.shape or np.any(w < 0) or w.sum() <= 0:
        raise ValueError("CRITICAL: weights must be non-negative, one per strike, not all zero")
    w = w / w.sum()

    if initial_guess is None:
        atm_vol = target[np.argmin(np.abs(k - forward))]
        initial_guess = (atm_vol * (forward + shift) ** (1 - beta), 0.0, 0.3)

    def objective(x: np.ndarray) -> float:
        params = SABRParams(x[0], beta, x[1], x[2], shift)
        model = sabr_implied_volatility(forward, k, time, params)
        return float(np.sqrt(np.sum(w * (model - target) ** 2)))

    result = minimize(
        objective,
        x0=initial_guess,
        method="L-BFGS-B",
        bounds=_FIT_BOUNDS,
        options={"maxiter": 1000, "ftol": 1e-12},
    )
    if not result.success:
        raise ValueError(f"CRITICAL: SABR calibration did not converge: {result.message}")

    alpha, rho, nu = result.x
    logger.debug(f"SABR T={time} fit alpha={alpha:.6f} rho={rho:.4f} nu={nu:.4f} "
                 f"rms={result.fun:.2e}")
    return SABRParams(alpha=alpha, beta=beta, rho=rho, nu=nu, shift=shift)
