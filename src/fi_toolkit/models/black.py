"""
Black-76 and Bachelier option models on a forward rate.

Prices are undiscounted unless a discount factor is passed; caplets
multiply by notional and accrual fraction outside this module.

References
----------
[T1] Black, F. (1976). The pricing of commodity contracts.
[T1] Bachelier, L. (1900). Theorie de la speculation.
[T1] Hull, J. C. (2018). Options, Futures, and Other Derivatives, Ch. 29.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np
from scipy import stats
from scipy.optimize import brentq

from fi_toolkit.config.settings import SETTINGS


class OptionType(Enum):
    """Call (cap, payer) or put (floor, receiver)."""

    CALL = "call"
    PUT = "put"


class VolType(Enum):
    """Volatility quotation."""

    LOGNORMAL = "lognormal"
    NORMAL = "normal"


@dataclass(frozen=True)
class BlackResult:
    """
    Immutable option pricing result.

    Attributes
    ----------
    price : float
        Option price
    delta : float
        dV/dF
    vega : float
        dV/dsigma per unit volatility
    """

    price: float
    delta: float
    vega: float


def _validate_inputs(volatility: float, time_to_expiry: float) -> None:
    if volatility < 0:
        raise ValueError(f"CRITICAL: volatility must be >= 0, got {volatility}")
    if time_to_expiry < 0:
        raise ValueError(f"CRITICAL: time_to_expiry must be >= 0, got {time_to_expiry}")


def _intrinsic(forward: float, strike: float, option_type: OptionType) -> float:
    if option_type == OptionType.CALL:
        return max(forward - strike, 0.0)
    return max(strike - forward, 0.0)


# =============================================================================
# Black-76
# =============================================================================

def black76(
    forward: float,
    strike: float,
    volatility: float,
    time_to_expiry: float,
    option_type: OptionType,
    discount: float = 1.0,
) -> BlackResult:
    """
    Black-76 price, delta and vega.

    [T1] C = D * (F N(d1) - K N(d2)),  P = D * (K N(-d2) - F N(-d1))
    [T1] d1 = (ln(F/K) + sigma^2 T / 2) / (sigma sqrt(T)),  d2 = d1 - sigma sqrt(T)

    Examples
    --------
    >>> round(black76(0.05, 0.05, 0.20, 1.0, OptionType.CALL).price, 8)
    0.00398278
    """
    _validate_inputs(volatility, time_to_expiry)
    if forward <= 0 or strike <= 0:
        raise ValueError(
            f"CRITICAL: Black-76 needs positive forward and strike, got {forward}, {strike}"
        )
    sd = volatility * np.sqrt(time_to_expiry)
    if sd == 0:
        price = discount * _intrinsic(forward, strike, option_type)
        itm = forward > strike if option_type == OptionType.CALL else forward < strike
        delta = discount * (1.0 if itm else 0.0) * (1 if option_type == OptionType.CALL else -1)
        return BlackResult(price, delta, 0.0)

    d1 = (np.log(forward / strike) + 0.5 * sd**2) / sd
    d2 = d1 - sd
    if option_type == OptionType.CALL:
        price = forward * stats.norm.cdf(d1) - strike * stats.norm.cdf(d2)
        delta = stats.norm.cdf(d1)
    else:
        price = strike * stats.norm.cdf(-d2) - forward * stats.norm.cdf(-d1)
        delta = -stats.norm.cdf(-d1)
    vega = forward * stats.norm.pdf(d1) * np.sqrt(time_to_expiry)
    return BlackResult(float(discount * price), float(discount * delta), float(discount * vega))


# =============================================================================
# Bachelier
# =============================================================================

def bachelier(
    forward: float,
    strike: float,
    volatility: float,
    time_to_expiry: float,
    option_type: OptionType,
    discount: float = 1.0,
) -> BlackResult:
    """
    Bachelier (normal) price, delta and vega. Negative rates and strikes allowed.

    [T1] C = D * ((F - K) N(d) + sigma sqrt(T) n(d)),  d = (F - K) / (sigma sqrt(T))

    Examples
    --------
    >>> round(bachelier(0.01, 0.01, 0.005, 1.0, OptionType.CALL).price, 8)
    0.00199471
    """
    _validate_inputs(volatility, time_to_expiry)
    sd = volatility * np.sqrt(time_to_expiry)
    sign = 1.0 if option_type == OptionType.CALL else -1.0
    if sd == 0:
        price = discount * _intrinsic(forward, strike, option_type)
        itm = sign * (forward - strike) > 0
        return BlackResult(price, discount * sign * (1.0 if itm else 0.0), 0.0)

    d = (forward - strike) / sd
    price = sign * (forward - strike) * stats.norm.cdf(sign * d) + sd * stats.norm.pdf(d)
    delta = sign * stats.norm.cdf(sign * d)
    vega = np.sqrt(time_to_expiry) * stats.norm.pdf(d)
    return BlackResult(float(discount * price), float(discount * delta), float(discount * vega))


def option_price(
    forward: float,
    strike: float,
    volatility: float,
    time_to_expiry: float,
    option_type: OptionType,
    vol_type: VolType = VolType.LOGNORMAL,
    discount: float = 1.0,
) -> BlackResult:
    """Dispatch to Black-76 or Bachelier by volatility type."""
    if vol_type == VolType.NORMAL:
        return bachelier(forward, strike, volatility, time_to_expiry, option_type, discount)
    return black76(forward, strike, volatility, time_to_expiry, option_type, discount)


def implied_volatility(
    price: float,
    forward: float,
    strike: float,
    time_to_expiry: float,
    option_type: OptionType,
    vol_type: VolType = VolType.LOGNORMAL,
    discount: float = 1.0,
    upper: float = 5.0,
) -> float:
    """
    Volatility that reproduces ``price``.

    Raises
    ------
    ValueError
        If the price is below intrinsic value or above the upper bound price
    """
    if time_to_expiry <= 0:
        raise ValueError(f"CRITICAL: time_to_expiry must be > 0, got {time_to_expiry}")
    intrinsic = discount * _intrinsic(forward, strike, option_type)
    if price < intrinsic - SETTINGS.calibration.tolerance:
        raise ValueError(f"CRITICAL: price {price} below intrinsic value {intrinsic}")

    def residual(vol: float) -> float:
        return option_price(forward, strike, vol, time_to_expiry, option_type,
                            vol_type, discount).price - price

    if residual(upper) < 0:
        raise ValueError(f"CRITICAL: price {price} exceeds the price at volatility {upper}")
    return brentq(residual, 0.0, upper, xtol=SETTINGS.calibration.xtol,
                  maxiter=SETTINGS.calibration.max_iterations)
