"""
Amortising term loans.

A loan is a fixed or floating coupon stream on an outstanding balance
that steps down with scheduled amortisation. Pricing discounts the
loan's CashflowStream, optionally weighted by borrower survival.

[T1] Expected weighted average life with a constant annual prepayment
rate c (balance surviving prepayment Q(t) = (1 - c)^t):

    E[WAL] = sum_i t_i * (N_i Q(t_{i-1}) - N_{i+1} Q(t_i)) / N_1

References:
    [T2] Fabozzi (2016) Handbook of Mortgage-Backed Securities, Ch. 1
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

import numpy as np
from scipy.optimize import brentq

from fi_toolkit.cashflows.cashflow import (
    CashflowKind,
    CashflowStream,
    fixed_cashflows,
    floating_cashflows,
    straight_line_notionals,
)
from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.curves.survival import SurvivalCurve
from fi_toolkit.dates.calendars import NONE as NO_CALENDAR
from fi_toolkit.dates.calendars import BDConvention, Calendar
from fi_toolkit.dates.daycount import DayCount, year_fraction
from fi_toolkit.dates.schedule import Schedule
from fi_toolkit.dates.tenor import Frequency
from fi_toolkit.products.base import BasePricer, PricingResult


class Amortization(Enum):
    """Scheduled principal repayment profile."""

    BULLET = "bullet"
    STRAIGHT_LINE = "straight_line"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Loan:
    """
    Term loan.

    Attributes
    ----------
    effective : date
        Drawdown date
    maturity : date
        Final repayment date
    frequency : Frequency
        Interest payment frequency
    rate : float
        Fixed coupon, or spread over the index for a floating loan
    floating : bool
        Coupon floats off the projection curve
    notional : float
        Drawn amount
    amortization : Amortization
        Repayment profile
    notionals : tuple of float, optional
        Outstanding balance per period (CUSTOM amortisation only)
    day_count : DayCount
        Accrual convention
    bdc : BDConvention
        Payment roll
    calendar : Calendar
        Business-day calendar
    """

    effective: date
    maturity: date
    frequency: Frequency
    rate: float
    floating: bool = False
    notional: float = 1.0
    amortization: Amortization = Amortization.BULLET
    notionals: Optional[tuple[float, ...]] = None
    day_count: DayCount = DayCount.ACTUAL_360
    bdc: BDConvention = BDConvention.MODIFIED_FOLLOWING
    calendar: Calendar = NO_CALENDAR

    def __post_init__(self) -> None:
        if self.notional <= 0:
            raise ValueError(f"CRITICAL: notional must be > 0, got {self.notional}")
        if (self.amortization == Amortization.CUSTOM) != (self.notionals is not None):
            raise ValueError("CRITICAL: notionals must be given exactly when amortization is CUSTOM")

    def schedule(self) -> Schedule:
        return Schedule(self.effective, self.maturity, self.frequency, self.bdc, self.calendar)

    def balances(self, schedule: Schedule) -> list[float]:
        """Outstanding balance for each period."""
        if self.amortization == Amortization.STRAIGHT_LINE:
            return straight_line_notionals(self.notional, len(schedule))
        if self.amortization == Amortization.CUSTOM:
            balances = list(self.notionals)
            if any(b < 0 for b in balances):
                raise ValueError(f"CRITICAL: balances must be >= 0, got {balances}")
            return balances
        return [self.notional] * len(schedule)


class LoanPricer(BasePricer):
    """
    Pricer for a term loan.

    Parameters
    ----------
    loan : Loan
        Loan terms
    as_of : date
        Valuation date
    discount_curve : DiscountCurve
        Discounting curve
    projection_curve : DiscountCurve, optional
        Index curve for floating loans (default: discount curve)
    survival_curve : SurvivalCurve, optional
        Borrower survival
    fixings : dict[date, float], optional
        Index fixings keyed by reset date
    settle : date, optional
        Settlement date
    """

    def __init__(
        self,
        loan: Loan,
        as_of: date,
        discount_curve: DiscountCurve,
        projection_curve: Optional[DiscountCurve] = None,
        survival_curve: Optional[SurvivalCurve] = None,
        fixings: Optional[Mapping[date, float]] = None,
        settle: Optional[date] = None,
    ):
        super().__init__(as_of, settle)
        self.loan = loan
        self.discount_curve = discount_curve
        self.projection_curve = projection_curve or discount_curve
        self.survival_curve = survival_curve
        self.fixings = dict(fixings or {})
        self._schedule = loan.schedule()
        self._balances = loan.balances(self._schedule)

    def cashflows(self) -> CashflowStream:
        loan = self.loan
        if loan.floating:
            return floating_cashflows(
                self._schedule, self.projection_curve, spread=loan.rate,
                dc=loan.day_count, fixings=self.fixings, as_of=self.as_of,
                include_principal=True, notionals=self._balances,
            )
        return fixed_cashflows(
            self._schedule, loan.rate, dc=loan.day_count,
            include_principal=True, notionals=self._balances,
        )

    def pv(self) -> float:
        return self.cashflows().pv(self.discount_curve, self.survival_curve, as_of=self.settle)

    def accrued(self) -> float:
        return self.cashflows().of_kind(CashflowKind.INTEREST).accrued(self.settle)

    def outstanding(self) -> float:
        """Balance outstanding at settle."""
        for p, balance in zip(self._schedule, self._balances):
            if p.payment_date > self.settle:
                return balance
        return 0.0

    def expected_average_life(
        self, dc: DayCount = DayCount.ACTUAL_360, prepayment_rate: float = 0.0
    ) -> float:
        """
        Expected weighted average life in years from settle.

        Parameters
        ----------
        dc : DayCount
            Convention for the time to each repayment
        prepayment_rate : float
            Constant annual prepayment rate in [0, 1)
        """
        if not 0.0 <= prepayment_rate < 1.0:
            raise ValueError(f"CRITICAL: prepayment_rate must be in [0, 1), got {prepayment_rate}")
        live = [
            (p, b) for p, b in zip(self._schedule, self._balances) if p.payment_date > self.settle
        ]
        if not live:
            return 0.0

        def surviving(d: date) -> float:
            t = max(year_fraction(self.settle, d, dc), 0.0)
            return (1.0 - prepayment_rate) ** t

        total = 0.0
        weighted = 0.0
        previous = self.settle
        for i, (p, balance) in enumerate(live):
            following = live[i + 1][1] if i + 1 < len(live) else 0.0
            repaid = balance * surviving(previous) - following * surviving(p.payment_date)
            weighted += year_fraction(self.settle, p.payment_date, dc) * repaid
            total += repaid
            previous = p.payment_date
        return weighted / total if total > 0 else 0.0

    def implied_discount_spread(self, target_pv: float) -> float:
        """Continuous spread over the discount curve at which PV equals ``target_pv``."""
        flows = self.cashflows().after(self.settle)
        dfs = flows.discount_factors(self.discount_curve, self.survival_curve)
        times = np.array([self.discount_curve.time(d) for d in flows.payment_dates])
        amounts = flows.amounts

        def residual(z: float) -> float:
            return float(np.sum(amounts * dfs * np.exp(-z * times))) - target_pv

        try:
            return brentq(residual, -0.5, 5.0, xtol=SETTINGS.calibration.xtol,
                          maxiter=SETTINGS.calibration.max_iterations)
        except ValueError as e:
            raise ValueError(f"CRITICAL: No discount spread reprices to {target_pv}: {e}") from e

    def price(self) -> PricingResult:
        return PricingResult(
            present_value=self.pv(),
            details={
                "accrued": self.accrued(),
                "outstanding": self.outstanding(),
                "expected_average_life": self.expected_average_life(),
            },
            as_of_date=self.as_of,
        )
