"""
Interest rate swap legs and swaps.

A leg is either fixed (``coupon`` is the rate) or floating (``coupon``
is the spread over the projected index). Leg PV is linear in the
coupon, which gives par coupons and par spreads in closed form:

    [T1] PV(c) = c * A + B,  A = sum_i N_i * tau_i * P(t_i)
    [T1] Par coupon:  c* = (N_0 * P(settle) - B) / A
    [T1] Swap par rate: fixed coupon with PV_fixed(c) = PV_other

References:
    [T1] Andersen & Piterbarg (2010) Interest Rate Modeling, Vol. 1, Ch. 5
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from fi_toolkit.cashflows.cashflow import (
    CashflowKind,
    CashflowStream,
    fixed_cashflows,
    floating_cashflows,
)
from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.dates.calendars import NONE as NO_CALENDAR
from fi_toolkit.dates.calendars import BDConvention, Calendar
from fi_toolkit.dates.daycount import DayCount
from fi_toolkit.dates.schedule import Schedule, StubRule
from fi_toolkit.dates.tenor import Frequency
from fi_toolkit.products.base import BasePricer, PricingResult


@dataclass(frozen=True)
class SwapLeg:
    """
    One leg of a swap.

    Attributes
    ----------
    effective : date
        Accrual start
    maturity : date
        Final accrual date (unadjusted)
    frequency : Frequency
        Payment frequency
    coupon : float
        Fixed rate, or spread over the index for a floating leg
    floating : bool
        Floating leg projected off the projection curve
    day_count : DayCount
        Accrual convention
    bdc : BDConvention
        Payment roll
    calendar : Calendar
        Business-day calendar
    notional : float
        Constant notional (ignored when ``notionals`` is given)
    notionals : tuple of float, optional
        Outstanding notional per period
    exchange_principal : bool
        Pay principal (amortisation and final balance) on the leg
    first_coupon, last_coupon : date, optional
        Regular coupon dates for front/back stubs
    eom_rule : bool
        Month-end cycle dates stay at month end
    stub : StubRule
        Stub placement when no stub dates are given
    """

    effective: date
    maturity: date
    frequency: Frequency
    coupon: float
    floating: bool = False
    day_count: DayCount = DayCount.THIRTY_360
    bdc: BDConvention = BDConvention.MODIFIED_FOLLOWING
    calendar: Calendar = NO_CALENDAR
    notional: float = 1.0
    notionals: Optional[tuple[float, ...]] = None
    exchange_principal: bool = False
    first_coupon: Optional[date] = None
    last_coupon: Optional[date] = None
    eom_rule: bool = False
    stub: StubRule = StubRule.SHORT_FRONT

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
            stub=self.stub,
        )

    def with_coupon(self, coupon: float) -> "SwapLeg":
        return replace(self, coupon=coupon)


class SwapLegPricer(BasePricer):
    """
    Pricer for a single swap leg.

    Parameters
    ----------
    leg : SwapLeg
        Leg terms
    as_of : date
        Valuation date
    discount_curve : DiscountCurve
        Discounting curve
    projection_curve : DiscountCurve, optional
        Index projection curve for floating legs (default: discount curve)
    fixings : dict[date, float], optional
        Index fixings keyed by reset (accrual start) date
    settle : date, optional
        Settlement date; flows paid on or before it are excluded

    Examples
    --------
    >>> leg = SwapLeg(date(2024, 1, 2), date(2029, 1, 2), Frequency.SEMI_ANNUAL, 0.04)
    >>> pricer = SwapLegPricer(leg, date(2024, 1, 2), DiscountCurve.flat(date(2024, 1, 2), 0.04))
    >>> pricer.annuity() > 0
    True
    """

    def __init__(
        self,
        leg: SwapLeg,
        as_of: date,
        discount_curve: DiscountCurve,
        projection_curve: Optional[DiscountCurve] = None,
        fixings: Optional[Mapping[date, float]] = None,
        settle: Optional[date] = None,
    ):
        super().__init__(as_of, settle)
        self.leg = leg
        self.discount_curve = discount_curve
        self.projection_curve = projection_curve or discount_curve
        self.fixings = dict(fixings or {})
        self._schedule = leg.schedule()

    @property
    def schedule(self) -> Schedule:
        return self._schedule

    def _notionals(self) -> Optional[Sequence[float]]:
        return list(self.leg.notionals) if self.leg.notionals is not None else None

    def cashflows(self, coupon: Optional[float] = None) -> CashflowStream:
        """Leg cashflows, optionally with the coupon (or spread) replaced."""
        leg = self.leg if coupon is None else self.leg.with_coupon(coupon)
        if leg.floating:
            return floating_cashflows(
                self._schedule,
                self.projection_curve,
                spread=leg.coupon,
                notional=leg.notional,
                dc=leg.day_count,
                fixings=self.fixings,
                as_of=self.as_of,
                include_principal=leg.exchange_principal,
                notionals=self._notionals(),
            )
        return fixed_cashflows(
            self._schedule,
            leg.coupon,
            notional=leg.notional,
            dc=leg.day_count,
            include_principal=leg.exchange_principal,
            notionals=self._notionals(),
        )

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------

    def pv(self) -> float:
        return self.cashflows().pv(self.discount_curve, as_of=self.settle)

    def accrued(self) -> float:
        """Coupon accrued at settle on the current period."""
        return self.cashflows().of_kind(CashflowKind.INTEREST).accrued(self.settle)

    def annuity(self) -> float:
        """[T1] PV of one unit of coupon: sum N_i * tau_i * P(t_i) over live periods."""
        total = 0.0
        for cf in self.cashflows().of_kind(CashflowKind.INTEREST).after(self.settle):
            total += cf.notional * cf.accrual_fraction * self.discount_curve.discount_factor(
                cf.payment_date
            )
        return total

    def pv_excluding_coupon(self) -> float:
        """PV with the coupon (or spread) set to zero."""
        return self.cashflows(coupon=0.0).pv(self.discount_curve, as_of=self.settle)

    def par_coupon(self) -> float:
        """
        Coupon (spread for a floating leg) at which the leg with principal
        exchange is worth its current notional at settle.
        """
        annuity = self.annuity()
        if annuity <= 0:
            raise ValueError("CRITICAL: Leg has no live coupons to solve a par coupon")
        principal_leg = replace(self.leg, exchange_principal=True, coupon=0.0)
        pricer = SwapLegPricer(
            principal_leg, self.as_of, self.discount_curve, self.projection_curve,
            self.fixings, self.settle,
        )
        live = self.cashflows().of_kind(CashflowKind.INTEREST).after(self.settle)
        current = live[0].notional if len(live) else self.leg.notional
        target = current * self.discount_curve.discount_factor(self.settle)
        return (target - pricer.pv()) / annuity

    def pv01(self) -> float:
        """PV change for a one basis point rise in the coupon."""
        return self.annuity() * 1e-4

    def price(self) -> PricingResult:
        return PricingResult(
            present_value=self.pv(),
            details={"accrued": self.accrued(), "annuity": self.annuity()},
            as_of_date=self.as_of,
        )


class SwapPricer(BasePricer):
    """
    Swap valued as receiver leg minus payer leg.

    Parameters
    ----------
    receiver : SwapLegPricer
        Leg received
    payer : SwapLegPricer
        Leg paid
    """

    def __init__(self, receiver: SwapLegPricer, payer: SwapLegPricer):
        if receiver.as_of != payer.as_of:
            raise ValueError(
                f"CRITICAL: Legs priced on different dates: {receiver.as_of}, {payer.as_of}"
            )
        super().__init__(receiver.as_of, receiver.settle)
        self.receiver = receiver
        self.payer = payer

    def pv(self) -> float:
        return self.receiver.pv() - self.payer.pv()

    def _fixed_and_other(self) -> tuple[SwapLegPricer, SwapLegPricer]:
        fixed = [p for p in (self.receiver, self.payer) if not p.leg.floating]
        if len(fixed) != 1:
            raise ValueError("CRITICAL: Par rate needs exactly one fixed leg")
        other = self.payer if fixed[0] is self.receiver else self.receiver
        return fixed[0], other

    def par_rate(self) -> float:
        """[T1] Fixed coupon that sets the swap PV to zero."""
        fixed, other = self._fixed_and_other()
        return (other.pv() - fixed.pv_excluding_coupon()) / fixed.annuity()

    def par_spread(self) -> float:
        """Spread on the floating leg that sets the swap PV to zero."""
        floating = [p for p in (self.receiver, self.payer) if p.leg.floating]
        if not floating:
            raise ValueError("CRITICAL: Par spread needs a floating leg")
        leg = floating[0]
        other = self.payer if leg is self.receiver else self.receiver
        return (other.pv() - leg.pv_excluding_coupon()) / leg.annuity()

    def pv01(self) -> float:
        """PV change of the swap for a one basis point rise in the fixed rate."""
        fixed, _ = self._fixed_and_other()
        sign = 1.0 if fixed is self.receiver else -1.0
        return sign * fixed.pv01()

    def price(self) -> PricingResult:
        details = {"receiver_pv": self.receiver.pv(), "payer_pv": self.payer.pv()}
        if self.receiver.leg.floating != self.payer.leg.floating:
            details["par_rate"] = self.par_rate()
        return PricingResult(present_value=self.pv(), details=details, as_of_date=self.as_of)
