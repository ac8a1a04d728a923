"""
Short-term interest rate (STIR) futures.

A STIR future settles on a rate over a deposit period. The quoted price
is a decimal fraction, 1 - rate (0.945875 for a 94.5875 screen price).

Model rate by contract type:
    [T1] Cash rate (Eurodollar):  simple forward + futures convexity
    [T1] Arithmetic average:      mean of daily overnight rates
    [T1] Geometric average:       compounded daily overnight rates
    [T1] ASX bank bill:           (P(start) / P(end) - 1) * 365 / 90
    [T1] T-bill:                  simple forward

Contract margin value (per contract, rounded to cents):
    [T1] CME style:  size - (1 - price) * point_value * 1e4
    [T1] Bank bill:  size / (1 + (1 - price) * 90 / 365)
    [T1] T-bill:     size - (1 - price) / tick_size * tick_value

References:
    [T1] CME Group, Eurodollar and SOFR futures contract specifications
    [T1] ASX 90 Day Bank Accepted Bill futures contract specifications
    [T2] Hull (2018) Options, Futures and Other Derivatives, Ch. 6.4
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.dates.calendars import NONE as NO_CALENDAR
from fi_toolkit.dates.calendars import BDConvention, Calendar
from fi_toolkit.dates.daycount import DayCount, year_fraction
from fi_toolkit.products.base import BasePricer, PricingResult

logger = logging.getLogger(__name__)


def ho_lee_convexity(as_of: date, start: date, end: date, vol: Optional[float]) -> float:
    """
    [T2] Ho-Lee futures convexity adjustment 0.5 * sigma^2 * t1 * t2.

    Returns the (non-negative) amount by which the futures rate exceeds
    the forward rate. Zero without a volatility.
    """
    if not vol:
        return 0.0
    t1 = max(year_fraction(as_of, start, DayCount.ACTUAL_365_FIXED), 0.0)
    t2 = max(year_fraction(as_of, end, DayCount.ACTUAL_365_FIXED), 0.0)
    return 0.5 * vol ** 2 * t1 * t2


def _round_cents(value: float) -> float:
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class RateFutureType(Enum):
    """STIR future settlement style."""

    MONEY_MARKET_CASH_RATE = "money_market_cash_rate"
    ARITHMETIC_AVERAGE_RATE = "arithmetic_average_rate"
    GEOMETRIC_AVERAGE_RATE = "geometric_average_rate"
    ASX_BANK_BILL = "asx_bank_bill"
    TBILL = "tbill"


_AVERAGING = frozenset({
    RateFutureType.ARITHMETIC_AVERAGE_RATE,
    RateFutureType.GEOMETRIC_AVERAGE_RATE,
})


@dataclass(frozen=True)
class StirFuture:
    """
    STIR futures contract terms.

    Attributes
    ----------
    future_type : RateFutureType
        Settlement style
    last_trading_date : date
        Last date the contract trades
    deposit_start : date
        Start of the underlying rate period
    deposit_end : date
        End of the underlying rate period
    contract_size : float
        Notional per contract
    tick_size : float
        Minimum price move as a decimal fraction (0.5e-4 = half a basis point)
    tick_value : float
        Currency value of one tick
    day_count : DayCount
        Day count of the underlying rate
    calendar : Calendar
        Calendar for daily averaging periods
    roll : BDConvention
        Roll for daily averaging dates (NONE averages every calendar day)
    """

    future_type: RateFutureType
    last_trading_date: date
    deposit_start: date
    deposit_end: date
    contract_size: float = 1_000_000.0
    tick_size: float = 0.5e-4
    tick_value: float = 12.5
    day_count: DayCount = DayCount.ACTUAL_360
    calendar: Calendar = NO_CALENDAR
    roll: BDConvention = BDConvention.NONE

    def __post_init__(self) -> None:
        if self.deposit_end <= self.deposit_start:
            raise ValueError(
                f"CRITICAL: Deposit end {self.deposit_end} must be after start {self.deposit_start}"
            )
        if self.contract_size <= 0:
            raise ValueError(f"CRITICAL: contract_size must be > 0, got {self.contract_size}")
        if self.tick_size <= 0 or self.tick_value <= 0:
            raise ValueError(
                f"CRITICAL: tick_size and tick_value must be > 0, "
                f"got {self.tick_size}, {self.tick_value}"
            )

    @property
    def point_value(self) -> float:
        """Value of a one basis point move per contract."""
        return self.tick_value / (self.tick_size * 1e4)


class StirFuturePricer(BasePricer):
    """
    Pricer for a position in a STIR future.

    Parameters
    ----------
    future : StirFuture
        Contract terms
    as_of : date
        Valuation date
    contracts : float
        Number of contracts (negative for a short position)
    discount_curve : DiscountCurve
        Projection curve for the underlying rate
    quoted_price : float
        Market price as a decimal fraction
    convexity_vol : float, optional
        Short-rate volatility for the cash-rate convexity adjustment
    settle : date, optional
        Settlement date (default ``as_of``)
    model_basis : float
        Model price minus market price carried into ``pv()``
    fixings : dict[date, float], optional
        Published overnight rates for averaging days before ``as_of``
    prev_close_price : float, optional
        Previous close for ``margin()``

    Examples
    --------
    >>> fut = StirFuture(RateFutureType.MONEY_MARKET_CASH_RATE, date(2011, 6, 13),
    ...                  date(2011, 6, 15), date(2011, 9, 15))
    >>> curve = DiscountCurve.flat(date(2011, 5, 9), 0.05)
    >>> p = StirFuturePricer(fut, date(2011, 5, 9), 100, curve, 0.945875)
    >>> round(p.model_rate(), 8)
    0.04962713
    """

    def __init__(
        self,
        future: StirFuture,
        as_of: date,
        contracts: float,
        discount_curve: DiscountCurve,
        quoted_price: float,
        convexity_vol: Optional[float] = None,
        settle: Optional[date] = None,
        model_basis: float = 0.0,
        fixings: Optional[dict[date, float]] = None,
        prev_close_price: Optional[float] = None,
    ):
        super().__init__(as_of, settle)
        self.future = future
        self.contracts = contracts
        self.discount_curve = discount_curve
        self.quoted_price = quoted_price
        self.convexity_vol = convexity_vol
        self.model_basis = model_basis
        self.fixings = dict(fixings or {})
        self.prev_close_price = prev_close_price

    @property
    def notional(self) -> float:
        return self.contracts * self.future.contract_size

    # ------------------------------------------------------------------
    # Rates and prices
    # ------------------------------------------------------------------

    def _daily_rates(self) -> list[tuple[float, float]]:
        """(rate, accrual fraction) for each overnight period of the deposit."""
        f = self.future
        out = []
        d = f.deposit_start
        while d < f.deposit_end:
            nxt = min(f.calendar.roll(d + timedelta(days=1), f.roll), f.deposit_end)
            tau = year_fraction(d, nxt, f.day_count)
            if d < self.as_of:
                if d not in self.fixings:
                    raise ValueError(f"CRITICAL: Missing overnight fixing for {d}")
                rate = self.fixings[d]
            else:
                rate = self.discount_curve.forward_rate(d, nxt, f.day_count)
            out.append((rate, tau))
            d = nxt
        return out

    def convexity_adjustment(self) -> float:
        """
        Forward rate minus futures rate (zero or negative).

        Only cash-rate contracts carry an adjustment.
        """
        f = self.future
        if f.future_type != RateFutureType.MONEY_MARKET_CASH_RATE:
            return 0.0
        return -ho_lee_convexity(self.as_of, f.deposit_start, f.deposit_end, self.convexity_vol)

    def model_rate(self) -> float:
        """Futures rate implied by the curve."""
        f = self.future
        curve = self.discount_curve
        if f.future_type == RateFutureType.ASX_BANK_BILL:
            ratio = curve.discount_factor(f.deposit_start) / curve.discount_factor(f.deposit_end)
            return (ratio - 1.0) * 365.0 / 90.0
        if f.future_type == RateFutureType.TBILL:
            return curve.forward_rate(f.deposit_start, f.deposit_end, f.day_count)
        if f.future_type in _AVERAGING:
            total = year_fraction(f.deposit_start, f.deposit_end, f.day_count)
            daily = self._daily_rates()
            if f.future_type == RateFutureType.ARITHMETIC_AVERAGE_RATE:
                return sum(r * tau for r, tau in daily) / total
            growth = 1.0
            for r, tau in daily:
                growth *= 1.0 + r * tau
            return (growth - 1.0) / total
        forward = curve.forward_rate(f.deposit_start, f.deposit_end, f.day_count)
        return forward - self.convexity_adjustment()

    def model_price(self) -> float:
        return 1.0 - self.model_rate()

    def quoted_rate(self) -> float:
        return 1.0 - self.quoted_price

    def adjusted_quoted_rate(self) -> float:
        """Forward rate implied by the quoted price."""
        return self.quoted_rate() + self.convexity_adjustment()

    def implied_model_basis(self) -> float:
        return self.model_price() - self.quoted_price

    # ------------------------------------------------------------------
    # Margin calculations
    # ------------------------------------------------------------------

    def _model_margin_value(self, price: float) -> float:
        f = self.future
        if f.future_type == RateFutureType.ASX_BANK_BILL:
            return f.contract_size / (1.0 + (1.0 - price) * 90.0 / 365.0)
        if f.future_type == RateFutureType.TBILL:
            return f.contract_size - (1.0 - price) / f.tick_size * f.tick_value
        return f.contract_size - (1.0 - price) * f.point_value * 1e4

    def contract_margin_value(self, price: Optional[float] = None) -> float:
        """Exchange margin value of one contract at ``price`` (default quoted)."""
        price = self.quoted_price if price is None else price
        return _round_cents(self._model_margin_value(price))

    def percentage_margin_value(self, price: Optional[float] = None) -> float:
        return self.contract_margin_value(price) / self.future.contract_size

    def tick_value(self) -> float:
        """Value of one tick at the quoted price."""
        if self.future.future_type == RateFutureType.ASX_BANK_BILL:
            return (
                self.contract_margin_value(self.quoted_price)
                - self.contract_margin_value(self.quoted_price - 0.0001)
            )
        return self.future.tick_value

    def point_value(self) -> float:
        return self.future.point_value

    def margin(self, prev_price: Optional[float] = None) -> float:
        """Variation margin against the previous close."""
        prev_price = self.prev_close_price if prev_price is None else prev_price
        if prev_price is None:
            raise ValueError("CRITICAL: Previous close price required to compute margin")
        return (
            self.contract_margin_value(self.quoted_price)
            - self.contract_margin_value(prev_price)
        ) * self.contracts

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------

    def value(self) -> float:
        """Market value of the position at the quoted price."""
        return self.contracts * self.contract_margin_value()

    def pv(self) -> float:
        """Model value of the position; zero once trading has ended."""
        if self.settle > self.future.last_trading_date:
            logger.debug(f"Future expired {self.future.last_trading_date}, pv=0")
            return 0.0
        return self._model_margin_value(self.model_price() - self.model_basis) * self.contracts

    def pv01(self) -> float:
        """PV change for a one basis point rise in the futures rate."""
        return -self.point_value() * self.contracts

    def price(self) -> PricingResult:
        return PricingResult(
            present_value=self.pv(),
            details={
                "model_rate": self.model_rate(),
                "quoted_rate": self.quoted_rate(),
                "convexity_adjustment": self.convexity_adjustment(),
                "value": self.value(),
                "pv01": self.pv01(),
            },
            as_of_date=self.as_of,
        )
