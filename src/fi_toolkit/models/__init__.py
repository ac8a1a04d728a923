"""
Pricing models: option formulas, SABR smile, copulas and basket loss.
"""

from fi_toolkit.models.basket_loss import SemiAnalyticBasketModel, gauss_hermite_normal
from fi_toolkit.models.black import (
    BlackResult,
    OptionType,
    VolType,
    bachelier,
    black76,
    implied_volatility,
    option_price,
)
from fi_toolkit.models.copula import Copula, CopulaType
from fi_toolkit.models.rng import RNGEngine, normals, pair_average, uniforms
from fi_toolkit.models.sabr import (
    SABRParams,
    calibrate_sabr,
    sabr_implied_volatility,
    sabr_normal_volatility,
    sabr_option_price,
)

__all__ = [
    "SemiAnalyticBasketModel",
    "gauss_hermite_normal",
    "BlackResult",
    "OptionType",
    "VolType",
    "bachelier",
    "black76",
    "implied_volatility",
    "option_price",
    "Copula",
    "CopulaType",
    "RNGEngine",
    "normals",
    "pair_average",
    "uniforms",
    "SABRParams",
    "calibrate_sabr",
    "sabr_implied_volatility",
    "sabr_normal_volatility",
    "sabr_option_price",
]
