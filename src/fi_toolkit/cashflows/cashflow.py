"""
Dated cashflows and cashflow streams.

A CashflowStream is the common currency between products and pricers:
bonds, loans and swap legs generate one from a Schedule, and pricing is
discounting (optionally survival-weighted) of the stream.

[T1] PV = sum_i CF_i * P(t_i) * S(t_i)

Recovery on principal is not modelled: a flow after default is lost.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum

import numpy as np
import pandas as pd

from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.curves.survival import SurvivalCurve
from fi_toolkit.dates.daycount import DayCount, year_fraction
from fi_toolkit.dates.schedule import Schedule


class CashflowKind(Enum):
    """What a cashflow pays."""

    INTEREST = "interest"
    PRINCIPAL = "principal"
    FEE = "fee"


@dataclass(frozen=True)
class Cashflow:
    """
    A single dated payment.

    Attributes
    ----------
    payment_date : date
        Date the amount is paid
    amount : float
        Payment amount (negative for payments made)
    kind : CashflowKind
        Interest, principal or fee
    accrual_start, accrual_end : date, optional
        Accrual period of an interest flow
    accrual_fraction : float
        Day count fraction of the accrual period
    rate : float
        All-in rate of an interest flow (coupon, or fixing plus spread)
    notional : float
        Notional the rate accrues on
    day_count : DayCount, optional
        Convention used for accrual
    """

    payment_date: date
    amount: float
    kind: CashflowKind = CashflowKind.INTEREST
    accrual_start: date | None = None
    accrual_end: date | None = None
    accrual_fraction: float = 0.0
    rate: float = 0.0
    notional: float = 0.0
    day_count: DayCount | None = None

    def accrued(self, settle: date) -> float:
        """
        Interest accrued on this flow at ``settle``.

        Zero outside (accrual_start, accrual_end) and for non-interest flows.
        Act/Act ICMA and period-style conventions accrue pro rata by days.
        """
        if self.kind != CashflowKind.INTEREST or self.accrual_start is None:
            return 0.0
        if not self.accrual_start < settle < self.accrual_end:
            return 0.0
        if self.day_count is None or self.day_count in (
            DayCount.ACTUAL_ACTUAL_ICMA, DayCount.ONE_ONE, DayCount.NONE, DayCount.ACTUAL_365L,
        ):
            elapsed = (settle - self.accrual_start).days
            total = (self.accrual_end - self.accrual_start).days
            return self.amount * elapsed / total
        return self.rate * self.notional * year_fraction(
            self.accrual_start, settle, self.day_count
        )


class CashflowStream:
    """
    Ordered collection of cashflows.

    Examples
    --------
    >>> stream = CashflowStream([
    ...     Cashflow(date(2025, 1, 2), 5.0),
    ...     Cashflow(date(2025, 1, 2), 100.0, CashflowKind.PRINCIPAL),
    ... ])
    >>> stream.total()
    105.0
    """

    def __init__(self, flows: Sequence[Cashflow] = ()):
        self._flows = sorted(flows, key=lambda cf: cf.payment_date)

    def __len__(self) -> int:
        return len(self._flows)

    def __iter__(self):
        return iter(self._flows)

    def __getitem__(self, i: int) -> Cashflow:
        return self._flows[i]

    def __add__(self, other: "CashflowStream") -> "CashflowStream":
        return CashflowStream(list(self._flows) + list(other._flows))

    @property
    def payment_dates(self) -> list[date]:
        return [cf.payment_date for cf in self._flows]

    @property
    def amounts(self) -> np.ndarray:
        return np.array([cf.amount for cf in self._flows], dtype=float)

    def after(self, settle: date) -> "CashflowStream":
        """Flows paid strictly after ``settle``."""
        return CashflowStream([cf for cf in self._flows if cf.payment_date > settle])

    def of_kind(self, kind: CashflowKind) -> "CashflowStream":
        return CashflowStream([cf for cf in self._flows if cf.kind == kind])

    def total(self, kind: CashflowKind | None = None) -> float:
        return float(sum(cf.amount for cf in self._flows if kind is None or cf.kind == kind))

    def accrued(self, settle: date) -> float:
        """Interest accrued at ``settle`` on the current period(s)."""
        return float(sum(cf.accrued(settle) for cf in self._flows))

    def discount_factors(
        self, discount_curve: DiscountCurve, survival_curve: SurvivalCurve | None = None
    ) -> np.ndarray:
        """Discount factor times survival probability for each flow."""
        dfs = discount_curve.discount_factors(self.payment_dates)
        if survival_curve is not None:
            dfs = dfs * np.array(
                [survival_curve.survival_probability(d) for d in self.payment_dates]
            )
        return dfs

    def pv(
        self,
        discount_curve: DiscountCurve,
        survival_curve: SurvivalCurve | None = None,
        as_of: date | None = None,
    ) -> float:
        """
        Present value of the flows paid after ``as_of``.

        Parameters
        ----------
        discount_curve : DiscountCurve
            Discounting curve
        survival_curve : SurvivalCurve, optional
            Weights each flow by the survival probability to its payment date
        as_of : date, optional
            Pricing date (default: the discount curve date)
        """
        as_of = as_of or discount_curve.as_of
        live = self.after(as_of)
        if len(live) == 0:
            return 0.0
        return float(np.dot(live.amounts, live.discount_factors(discount_curve, survival_curve)))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([
            {
                "payment_date": cf.payment_date,
                "kind": cf.kind.value,
                "amount": cf.amount,
                "accrual_start": cf.accrual_start,
                "accrual_end": cf.accrual_end,
                "fraction": cf.accrual_fraction,
                "rate": cf.rate,
                "notional": cf.notional,
            }
            for cf in self._flows
        ])

    def __repr__(self) -> str:
        return f"CashflowStream(flows={len(self)}, total={self.total():.2f})"


# =============================================================================
# Generators
# =============================================================================

def _period_notionals(schedule: Schedule, notional: float, notionals) -> list[float]:
    if notionals is None:
        return [notional] * len(schedule)
    notionals = [float(n) for n in notionals]
    if len(notionals) != len(schedule):
        raise ValueError(
            f"CRITICAL: {len(notionals)} notionals for {len(schedule)} schedule periods"
        )
    return notionals


def _principal_flows(schedule: Schedule, notionals: list[float]) -> list[Cashflow]:
    """Amortisation payments: the notional step-down at each payment, the balance at maturity."""
    flows = []
    for i, period in enumerate(schedule):
        following = notionals[i + 1] if i + 1 < len(notionals) else 0.0
        repaid = notionals[i] - following
        if repaid != 0.0:
            flows.append(Cashflow(period.payment_date, repaid, CashflowKind.PRINCIPAL,
                                  notional=notionals[i]))
    return flows


def straight_line_notionals(notional: float, periods: int) -> list[float]:
    """Outstanding notional per period for equal principal repayments."""
    if periods <= 0:
        raise ValueError(f"CRITICAL: periods must be > 0, got {periods}")
    step = notional / periods
    return [notional - i * step for i in range(periods)]


def fixed_cashflows(
    schedule: Schedule,
    coupon: float,
    notional: float = 1.0,
    dc: DayCount = DayCount.THIRTY_360,
    include_principal: bool = True,
    notionals: Sequence[float] | None = None,
) -> CashflowStream:
    """
    Fixed-rate coupons on a schedule, with optional principal.

    Parameters
    ----------
    schedule : Schedule
        Accrual schedule
    coupon : float
        Annual coupon rate (decimal)
    notional : float
        Constant notional (ignored when ``notionals`` is given)
    dc : DayCount
        Accrual convention
    include_principal : bool
        Add principal repayments (amortisation and final balance)
    notionals : sequence of float, optional
        Outstanding notional per period (amortising)

    Returns
    -------
    CashflowStream
    """
    balances = _period_notionals(schedule, notional, notionals)
    flows = []
    for period, balance in zip(schedule, balances):
        fraction = period.fraction(dc)
        flows.append(Cashflow(
            payment_date=period.payment_date,
            amount=coupon * fraction * balance,
            accrual_start=period.accrual_start,
            accrual_end=period.accrual_end,
            accrual_fraction=fraction,
            rate=coupon,
            notional=balance,
            day_count=dc,
        ))
    if include_principal:
        flows.extend(_principal_flows(schedule, balances))
    return CashflowStream(flows)


def floating_cashflows(
    schedule: Schedule,
    projection_curve: DiscountCurve,
    spread: float = 0.0,
    notional: float = 1.0,
    dc: DayCount = DayCount.ACTUAL_360,
    fixings: Mapping[date, float] | None = None,
    as_of: date | None = None,
    include_principal: bool = False,
    notionals: Sequence[float] | None = None,
) -> CashflowStream:
    """
    Floating coupons projected off a curve.

    [T1] Each period pays (F + spread) * tau * N with F the simple forward
    over the accrual period. A fixing for the accrual start date, when
    given, replaces the projection; one is required for resets before
    ``as_of`` unless the period has already paid (such periods are
    omitted).

    Raises
    ------
    ValueError
        If a period reset before ``as_of`` has no fixing
    """
    as_of = as_of or projection_curve.as_of
    fixings = fixings or {}
    balances = _period_notionals(schedule, notional, notionals)
    flows = []
    for period, balance in zip(schedule, balances):
        fraction = period.fraction(dc)
        if period.accrual_start in fixings:
            index_rate = float(fixings[period.accrual_start])
        elif period.payment_date <= as_of:
            continue
        elif period.accrual_start < as_of:
            raise ValueError(
                f"CRITICAL: Missing fixing for reset {period.accrual_start} "
                f"(as of {as_of})"
            )
        else:
            index_rate = projection_curve.forward_rate(period.accrual_start, period.accrual_end, dc)
        rate = index_rate + spread
        flows.append(Cashflow(
            payment_date=period.payment_date,
            amount=rate * fraction * balance,
            accrual_start=period.accrual_start,
            accrual_end=period.accrual_end,
            accrual_fraction=fraction,
            rate=rate,
            notional=balance,
            day_count=dc,
        ))
    if include_principal:
        flows.extend(_principal_flows(schedule, balances))
    return CashflowStream(flows)
