"""
Fixed-coupon bonds.

Prices are quoted per unit of face (0.98 = 98% of par). Yields use the
street convention, compounding at the coupon frequency:

    [T1] Full price = sum_k CF_k / (1 + y/f)^(k - 1 + w)

where w is the fraction of the current coupon period still to run
(days to next coupon / days in period).

    [T1] Modified duration = -(1/P) dP/dy
    [T1] Convexity         =  (1/P) d2P/dy2
    [T1] Z-spread z:  full price = sum_k CF_k P(t_k) e^{-z t_k} / P(settle)

References:
    [T1] Fabozzi (2012) Bond Markets, Analysis and Strategies, Ch. 2-4
    [T1] O'Kane (2008) Modelling Single-name and Multi-name Credit Derivatives, Ch. 4
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

import numpy as np
from scipy.optimize import brentq

from fi_toolkit.cashflows.cashflow import CashflowKind, CashflowStream, fixed_cashflows
from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.curves.survival import SurvivalCurve
from fi_toolkit.dates.calendars import NONE as NO_CALENDAR
from fi_toolkit.dates.calendars import BDConvention, Calendar
from fi_toolkit.dates.daycount import DayCount
from fi_toolkit.dates.schedule import Schedule
from fi_toolkit.dates.tenor import Frequency
from fi_toolkit.products.base import BasePricer, PricingResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bond:
    """
    Fixed-coupon bullet bond.

    Attributes
    ----------
    effective : date
        Issue (first accrual) date
    maturity : date
        Maturity date
    coupon : float
        Annual coupon rate (decimal)
    frequency : Frequency
        Coupons per year
    day_count : DayCount
        Accrual convention
    bdc : BDConvention
        Payment roll
    calendar : Calendar
        Business-day calendar
    first_coupon, last_coupon : date, optional
        Regular coupon dates for odd first/last periods
    eom_rule : bool
        Month-end coupon dates stay at month end
    """

    effective: date
    maturity: date
    coupon: float
    frequency: Frequency = Frequency.SEMI_ANNUAL
    day_count: DayCount = DayCount.THIRTY_360
    bdc: BDConvention = BDConvention.FOLLOWING
    calendar: Calendar = NO_CALENDAR
    first_coupon: Optional[date] = None
    last_coupon: Optional[date] = None
    eom_rule: bool = False

    def __post_init__(self) -> None:
        if self.coupon < 0:
            raise ValueError(f"CRITICAL: coupon must be >= 0, got {self.coupon}")
        if Frequency(self.frequency) == Frequency.NONE:
            raise ValueError("CRITICAL: Bond frequency must not be NONE")

    def schedule(self) -> Schedule:
        return Schedule(
            self.effective,
            self.maturity,
            self.frequency,
            self.bdc,
            self.calendar,
            first_coupon=self.first_coupon,
            last_coupon=self.last_coupon,
            eom_rule=self.eom_rule,
        )


class BondPricer(BasePricer):
    """
    Pricer for a fixed-coupon bond.

    Parameters
    ----------
    bond : Bond
        Bond terms
    as_of : date
        Valuation date
    discount_curve : DiscountCurve, optional
        Curve for model prices, z-spread and PV
    survival_curve : SurvivalCurve, optional
        Issuer survival; weights each flow by its survival probability
    settle : date, optional
        Settlement date (default ``as_of``)
    market_clean_price : float, optional
        Quoted clean price per unit face, used for yield and spread measures
    notional : float
        Face amount held

    Examples
    --------
    >>> bond = Bond(date(2020, 1, 15), date(2030, 1, 15), 0.05)
    >>> pricer = BondPricer(bond, date(2024, 1, 15), market_clean_price=1.0)
    >>> round(pricer.yield_to_maturity(), 10)
    0.05
    """

    def __init__(
        self,
        bond: Bond,
        as_of: date,
        discount_curve: Optional[DiscountCurve] = None,
        survival_curve: Optional[SurvivalCurve] = None,
        settle: Optional[date] = None,
        market_clean_price: Optional[float] = None,
        notional: float = 1.0,
    ):
        super().__init__(as_of, settle)
        if self.settle >= bond.maturity:
            raise ValueError(f"CRITICAL: Settle {self.settle} is on or after maturity {bond.maturity}")
        self.bond = bond
        self.discount_curve = discount_curve
        self.survival_curve = survival_curve
        self.market_clean_price = market_clean_price
        self.notional = notional
        self._schedule = bond.schedule()
        self._flows = fixed_cashflows(self._schedule, bond.coupon, 1.0, bond.day_count)

    # ------------------------------------------------------------------
    # Cashflows and accrual
    # ------------------------------------------------------------------

    @property
    def schedule(self) -> Schedule:
        return self._schedule

    def cashflows(self) -> CashflowStream:
        """Flows per unit face paid after settle."""
        return self._flows.after(self.settle)

    def _current_period(self):
        for p in self._schedule:
            if p.accrual_start <= self.settle < p.accrual_end:
                return p
        raise ValueError(f"CRITICAL: Settle {self.settle} is outside the bond's accrual schedule")

    def accrual_days(self) -> int:
        if self.settle < self.bond.effective:
            return 0
        return (self.settle - self._current_period().accrual_start).days

    def accrued_interest(self) -> float:
        """Accrued interest per unit face at settle."""
        if self.settle <= self.bond.effective:
            return 0.0
        return self._flows.of_kind(CashflowKind.INTEREST).accrued(self.settle)

    # ------------------------------------------------------------------
    # Curve prices
    # ------------------------------------------------------------------

    def _require_curve(self) -> DiscountCurve:
        if self.discount_curve is None:
            raise ValueError("CRITICAL: Discount curve required for model prices")
        return self.discount_curve

    def full_price(self) -> float:
        """Model dirty price per unit face, valued at settle."""
        curve = self._require_curve()
        pv = self.cashflows().pv(curve, self.survival_curve, as_of=self.settle)
        return pv / curve.discount_factor(self.settle)

    def clean_price(self) -> float:
        return self.full_price() - self.accrued_interest()

    def pv(self) -> float:
        """PV of the position as of the valuation date."""
        curve = self._require_curve()
        return self.notional * self.cashflows().pv(curve, self.survival_curve, as_of=self.settle)

    # ------------------------------------------------------------------
    # Yield measures
    # ------------------------------------------------------------------

    def _periods_to_flows(self) -> tuple[np.ndarray, np.ndarray]:
        """Cashflow amounts and their exponents k - 1 + w."""
        flows = self.cashflows()
        period = self._current_period() if self.settle >= self.bond.effective else None
        if period is None:
            first = self._schedule[0]
            w = 1.0 + (first.accrual_start - self.settle).days / max(first.days, 1)
        else:
            w = (period.accrual_end - self.settle).days / period.days
        ends = sorted({cf.payment_date for cf in flows})
        index = {d: i for i, d in enumerate(ends)}
        exponents = np.array([index[cf.payment_date] + w for cf in flows])
        return flows.amounts, exponents

    def price_from_yield(self, y: float) -> float:
        """[T1] Full price per unit face at yield ``y``."""
        f = int(self.bond.frequency)
        amounts, n = self._periods_to_flows()
        return float(np.sum(amounts * (1.0 + y / f) ** (-n)))

    def clean_price_from_yield(self, y: float) -> float:
        return self.price_from_yield(y) - self.accrued_interest()

    def _target_full_price(self, clean_price: Optional[float]) -> float:
        if clean_price is None:
            clean_price = self.market_clean_price
        if clean_price is None:
            return self.full_price()
        if clean_price <= 0:
            raise ValueError(f"CRITICAL: clean price must be > 0, got {clean_price}")
        return clean_price + self.accrued_interest()

    def yield_to_maturity(self, clean_price: Optional[float] = None) -> float:
        """
        Yield at which the street-convention price matches ``clean_price``
        (default: the market clean price, else the model clean price).
        """
        target = self._target_full_price(clean_price)
        f = int(self.bond.frequency)
        lo, hi = -0.99 * f, 10.0
        try:
            return brentq(
                lambda y: self.price_from_yield(y) - target, lo, hi,
                xtol=SETTINGS.calibration.xtol, maxiter=SETTINGS.calibration.max_iterations,
            )
        except ValueError as e:
            raise ValueError(f"CRITICAL: No yield found for full price {target:.6f}: {e}") from e

    def _yield(self, y: Optional[float]) -> float:
        return self.yield_to_maturity() if y is None else y

    def modified_duration(self, y: Optional[float] = None) -> float:
        y = self._yield(y)
        f = int(self.bond.frequency)
        amounts, n = self._periods_to_flows()
        v = 1.0 / (1.0 + y / f)
        price = np.sum(amounts * v ** n)
        return float(np.sum(amounts * n * v ** (n + 1)) / f / price)

    def convexity(self, y: Optional[float] = None) -> float:
        y = self._yield(y)
        f = int(self.bond.frequency)
        amounts, n = self._periods_to_flows()
        v = 1.0 / (1.0 + y / f)
        price = np.sum(amounts * v ** n)
        return float(np.sum(amounts * n * (n + 1) * v ** (n + 2)) / f ** 2 / price)

    def pv01(self, y: Optional[float] = None) -> float:
        """Price change per unit face for a one basis point fall in yield."""
        y = self._yield(y)
        return self.modified_duration(y) * self.price_from_yield(y) * 1e-4

    # ------------------------------------------------------------------
    # Spread measures
    # ------------------------------------------------------------------

    def z_spread(self, clean_price: Optional[float] = None) -> float:
        """[T1] Parallel continuous spread over the curve that reprices the bond."""
        curve = self._require_curve()
        target = self._target_full_price(clean_price)
        flows = self.cashflows()
        times = np.array([curve.time(d) for d in flows.payment_dates])
        dfs = flows.discount_factors(curve, self.survival_curve)
        amounts = flows.amounts
        df_settle = curve.discount_factor(self.settle)
        t_settle = curve.time(self.settle)

        def residual(z: float) -> float:
            return float(np.sum(amounts * dfs * np.exp(-z * (times - t_settle)))) / df_settle - target

        try:
            z = brentq(residual, -0.5, 5.0, xtol=SETTINGS.calibration.xtol,
                       maxiter=SETTINGS.calibration.max_iterations)
        except ValueError as e:
            raise ValueError(f"CRITICAL: No z-spread found for full price {target:.6f}: {e}") from e
        logger.debug(f"z-spread {z:.8f} for full price {target:.6f}")
        return z

    def price(self) -> PricingResult:
        y = self.yield_to_maturity()
        details = {
            "accrued": self.accrued_interest(),
            "yield": y,
            "clean_price": self.clean_price_from_yield(y),
        }
        pv = self.pv() if self.discount_curve is not None else self.notional * self.price_from_yield(y)
        return PricingResult(
            present_value=pv,
            duration=self.modified_duration(y),
            convexity=self.convexity(y),
            details=details,
            as_of_date=self.as_of,
        )
