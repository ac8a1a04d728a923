"""
Term structures: discount and survival curves.

[T1] Curves interpolate the continuously compounded average rate
against Act/365F time; WEIGHTED interpolation gives piecewise-flat
forwards and hazards.
"""

from fi_toolkit.curves.curve import Curve
from fi_toolkit.curves.discount import (
    Compounding,
    DiscountCurve,
    discount_factor_from_rate,
    rate_from_discount_factor,
)
from fi_toolkit.curves.interpolation import ExtrapMethod, Interpolator, InterpMethod
from fi_toolkit.curves.parametric import (
    NelsonSiegelParams,
    fit_nelson_siegel,
    nelson_siegel_curve,
    smooth_curve,
)
from fi_toolkit.curves.survival import SurvivalCurve

__all__ = [
    "Curve",
    "Compounding",
    "DiscountCurve",
    "discount_factor_from_rate",
    "rate_from_discount_factor",
    "ExtrapMethod",
    "Interpolator",
    "InterpMethod",
    "NelsonSiegelParams",
    "fit_nelson_siegel",
    "nelson_siegel_curve",
    "smooth_curve",
    "SurvivalCurve",
]
