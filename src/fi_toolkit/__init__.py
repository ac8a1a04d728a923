"""
fi-toolkit: Fixed-income and credit analytics.

Curves, calibrators, cashflow schedules, pricers for STIR futures, swaps,
bonds, loans, caps and basket credit swaps, and bump-and-reprice risk.

Quick Start
-----------
>>> from datetime import date
>>> from fi_toolkit import DiscountBootstrapCalibrator, MoneyMarketQuote, SwapQuote
>>> cal = DiscountBootstrapCalibrator(date(2024, 1, 2))
>>> curve = cal.fit([MoneyMarketQuote("6M", 0.05), SwapQuote("5Y", 0.045)])

Version: 0.1.0
"""

__version__ = "0.1.0"

# =============================================================================
# Dates
# =============================================================================
from fi_toolkit.dates import (
    BDConvention,
    Calendar,
    DayCount,
    Frequency,
    Schedule,
    Tenor,
    year_fraction,
)

# =============================================================================
# Curves and Calibration
# =============================================================================
from fi_toolkit.curves import DiscountCurve, SurvivalCurve
from fi_toolkit.calibrators import (
    CdsSpreadQuote,
    DiscountBootstrapCalibrator,
    FraQuote,
    FutureQuote,
    MoneyMarketQuote,
    SurvivalFitCalibrator,
    SwapQuote,
)

# =============================================================================
# Products
# =============================================================================
from fi_toolkit.products import (
    BasketCDS,
    Bond,
    BondPricer,
    CapFloor,
    CapFloorPricer,
    Loan,
    LoanPricer,
    MonteCarloBasketPricer,
    NthToDefault,
    PricingResult,
    RateFutureType,
    SemiAnalyticBasketPricer,
    StirFuture,
    StirFuturePricer,
    SwapLeg,
    SwapLegPricer,
    SwapPricer,
)

# =============================================================================
# Models
# =============================================================================
from fi_toolkit.models import (
    Copula,
    CopulaType,
    RNGEngine,
    SABRParams,
    SemiAnalyticBasketModel,
)

# =============================================================================
# Risk, Validation, Loaders
# =============================================================================
from fi_toolkit.sensitivity import BumpSpec, ScenarioAnalyzer, Sensitivities
from fi_toolkit.validation import ensure_valid, validate_curve
from fi_toolkit.loaders import QuoteLoader, SyntheticQuoteProvider, load_discount_curve

# =============================================================================
# Configuration
# =============================================================================
from fi_toolkit.config.settings import SETTINGS

__all__ = [
    "__version__",
    # Dates
    "BDConvention",
    "Calendar",
    "DayCount",
    "Frequency",
    "Schedule",
    "Tenor",
    "year_fraction",
    # Curves and calibration
    "DiscountCurve",
    "SurvivalCurve",
    "CdsSpreadQuote",
    "DiscountBootstrapCalibrator",
    "FraQuote",
    "FutureQuote",
    "MoneyMarketQuote",
    "SurvivalFitCalibrator",
    "SwapQuote",
    # Products
    "BasketCDS",
    "Bond",
    "BondPricer",
    "CapFloor",
    "CapFloorPricer",
    "Loan",
    "LoanPricer",
    "MonteCarloBasketPricer",
    "NthToDefault",
    "PricingResult",
    "RateFutureType",
    "SemiAnalyticBasketPricer",
    "StirFuture",
    "StirFuturePricer",
    "SwapLeg",
    "SwapLegPricer",
    "SwapPricer",
    # Models
    "Copula",
    "CopulaType",
    "RNGEngine",
    "SABRParams",
    "SemiAnalyticBasketModel",
    # Risk, validation, loaders
    "BumpSpec",
    "ScenarioAnalyzer",
    "Sensitivities",
    "ensure_valid",
    "validate_curve",
    "QuoteLoader",
    "SyntheticQuoteProvider",
    "load_discount_curve",
    # Configuration
    "SETTINGS",
]
