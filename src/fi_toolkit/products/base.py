"""
Base pricer abstract class for all fixed-income products.

Every pricer is bound to a valuation date, a settlement date and the
curves it needs, and exposes ``pv()``. ``price()`` wraps the PV with
whatever risk measures the product computes cheaply.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional


@dataclass(frozen=True)
class PricingResult:
    """
    Immutable result from a pricing calculation.

    Attributes
    ----------
    present_value : float
        Present value (may be negative: payer swaps, short positions)
    duration : float, optional
        Modified duration
    convexity : float, optional
        Convexity measure
    details : dict, optional
        Additional pricing details
    as_of_date : date, optional
        Valuation date
    """

    present_value: float
    duration: Optional[float] = None
    convexity: Optional[float] = None
    details: Optional[dict[str, Any]] = None
    as_of_date: Optional[date] = None

    def __post_init__(self) -> None:
        if self.present_value != self.present_value:
            raise ValueError("CRITICAL: present_value is NaN")


class BasePricer(ABC):
    """
    Abstract base class for product pricers.

    Parameters
    ----------
    as_of : date
        Valuation date
    settle : date, optional
        Settlement date (default ``as_of``)
    """

    def __init__(self, as_of: date, settle: Optional[date] = None):
        settle = settle or as_of
        if settle < as_of:
            raise ValueError(f"CRITICAL: Settle {settle} precedes valuation date {as_of}")
        self.as_of = as_of
        self.settle = settle

    @abstractmethod
    def pv(self) -> float:
        """Present value as of the valuation date."""

    def price(self) -> PricingResult:
        """PV wrapped in a PricingResult."""
        return PricingResult(present_value=self.pv(), as_of_date=self.as_of)
