"""
Centralized tolerance framework for curve building and pricing.

Tolerance Tiers:
    Tier 1 (Analytical): Closed-form results and exact repricing
    Tier 2 (Cross-Library): External oracle precision bounds (QuantLib)
    Tier 3 (Stochastic): CLT-derived Monte Carlo bounds
    Tier 4 (Market): Quote-level precision

References:
    [T1] Higham (2002) "Accuracy and Stability of Numerical Algorithms"
    [T1] Glasserman (2003) Ch. 3-4 - Monte Carlo error bounds
    [T2] Hagan & West (2006) "Interpolation Methods for Curve Construction"
"""

from typing import Final

import numpy as np

# =============================================================================
# Tier 1: Analytical Tolerances (Deterministic)
# =============================================================================

#: Discount factor / survival probability arithmetic
#: Tolerance: float64 accumulation over a few hundred operations
CURVE_ARITHMETIC_TOLERANCE: Final[float] = 1e-12

#: Bootstrapped curves must reprice their input quotes to this rate error
#: 1e-10 in rate terms is far below a hundredth of a basis point
CALIBRATION_TOLERANCE: Final[float] = 1e-10

#: Absolute x-tolerance for brentq root solves (discount factors, yields)
ROOT_FINDER_XTOL: Final[float] = 1e-14

#: Finite-difference sensitivities vs analytical derivatives (per unit notional)
FINITE_DIFFERENCE_TOLERANCE: Final[float] = 1e-6


# =============================================================================
# Tier 2: Cross-Library Tolerances (External Oracle)
# =============================================================================

#: QuantLib comparisons of year fractions and discount factors
CROSS_LIBRARY_TOLERANCE: Final[float] = 1e-10

#: QuantLib Black caplet comparison (relative)
CROSS_LIBRARY_PRICE_TOLERANCE: Final[float] = 1e-8


# =============================================================================
# Tier 3: Stochastic Tolerances (CLT-Derived)
# =============================================================================

#: Basket default probabilities, MC vs semi-analytic (absolute probability)
BASKET_PROBABILITY_TOLERANCE: Final[float] = 0.01

#: Copula correlation recovery from simulated samples
COPULA_FIT_TOLERANCE: Final[float] = 0.05


def mc_tolerance(standard_error: float, confidence: float = 4.0) -> float:
    """
    Calculate CLT-derived Monte Carlo tolerance from a standard error.

    [T1] A k-sigma band around the estimate. 4 sigma keeps the false
    failure rate of seeded tests below 1e-4.

    Parameters
    ----------
    standard_error : float
        Standard error reported by the simulation
    confidence : float
        Number of standard deviations (default 4)

    Returns
    -------
    float
        Absolute tolerance for MC vs semi-analytic comparison

    Examples
    --------
    >>> mc_tolerance(0.5)
    2.0
    """
    return float(confidence * np.abs(standard_error))


# =============================================================================
# Tier 4: Market Tolerances
# =============================================================================

#: Futures margin values are quoted to the cent
MARGIN_VALUE_TOLERANCE: Final[float] = 0.005

#: Bond prices are quoted to 1e-6 of par
BOND_PRICE_TOLERANCE: Final[float] = 1e-6

#: Yield to maturity solved to 1e-10
YIELD_TOLERANCE: Final[float] = 1e-10


# =============================================================================
# Tolerance Registry (For Dynamic Access)
# =============================================================================

TOLERANCE_REGISTRY: dict[str, float] = {
    # Tier 1: Analytical
    "curve_arithmetic": CURVE_ARITHMETIC_TOLERANCE,
    "calibration": CALIBRATION_TOLERANCE,
    "root_finder_xtol": ROOT_FINDER_XTOL,
    "finite_difference": FINITE_DIFFERENCE_TOLERANCE,
    # Tier 2: Cross-Library
    "cross_library": CROSS_LIBRARY_TOLERANCE,
    "cross_library_price": CROSS_LIBRARY_PRICE_TOLERANCE,
    # Tier 3: Stochastic
    "basket_probability": BASKET_PROBABILITY_TOLERANCE,
    "copula_fit": COPULA_FIT_TOLERANCE,
    # Tier 4: Market
    "margin_value": MARGIN_VALUE_TOLERANCE,
    "bond_price": BOND_PRICE_TOLERANCE,
    "yield": YIELD_TOLERANCE,
}


def get_tolerance(name: str) -> float:
    """
    Get tolerance by name from registry.

    Parameters
    ----------
    name : str
        Tolerance name (see TOLERANCE_REGISTRY keys)

    Returns
    -------
    float
        Tolerance value

    Raises
    ------
    KeyError
        If tolerance name not found
    """
    if name not in TOLERANCE_REGISTRY:
        available = ", ".join(sorted(TOLERANCE_REGISTRY.keys()))
        raise KeyError(f"Unknown tolerance '{name}'. Available: {available}")
    return TOLERANCE_REGISTRY[name]
