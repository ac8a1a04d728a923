"""
Curve calibrators: discount bootstrap and survival fit.
"""

from fi_toolkit.calibrators.discount_bootstrap import (
    DiscountBootstrapCalibrator,
    OverlapTreatment,
)
from fi_toolkit.calibrators.quotes import (
    CdsSpreadQuote,
    FraQuote,
    FutureQuote,
    InstrumentType,
    MoneyMarketQuote,
    SwapQuote,
)
from fi_toolkit.calibrators.survival_fit import SurvivalFitCalibrator

__all__ = [
    "DiscountBootstrapCalibrator",
    "OverlapTreatment",
    "CdsSpreadQuote",
    "FraQuote",
    "FutureQuote",
    "InstrumentType",
    "MoneyMarketQuote",
    "SwapQuote",
    "SurvivalFitCalibrator",
]
