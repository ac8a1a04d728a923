"""
Products and their pricers.

Every pricer derives from BasePricer: ``pv()`` returns the present value
at ``as_of`` and ``price()`` wraps it with risk details in a
PricingResult.
"""

from fi_toolkit.products.base import BasePricer, PricingResult
from fi_toolkit.products.basket import (
    BasketCDS,
    BasketMCResult,
    MonteCarloBasketPricer,
    NthToDefault,
    SemiAnalyticBasketPricer,
)
from fi_toolkit.products.bond import Bond, BondPricer
from fi_toolkit.products.cap_floor import CapFloor, CapFloorPricer, CapFloorType
from fi_toolkit.products.loan import Amortization, Loan, LoanPricer
from fi_toolkit.products.stir_future import (
    RateFutureType,
    StirFuture,
    StirFuturePricer,
    ho_lee_convexity,
)
from fi_toolkit.products.swap import SwapLeg, SwapLegPricer, SwapPricer

__all__ = [
    "BasePricer",
    "PricingResult",
    "BasketCDS",
    "BasketMCResult",
    "MonteCarloBasketPricer",
    "NthToDefault",
    "SemiAnalyticBasketPricer",
    "Bond",
    "BondPricer",
    "CapFloor",
    "CapFloorPricer",
    "CapFloorType",
    "Amortization",
    "Loan",
    "LoanPricer",
    "RateFutureType",
    "StirFuture",
    "StirFuturePricer",
    "ho_lee_convexity",
    "SwapLeg",
    "SwapLegPricer",
    "SwapPricer",
]
