"""
Interest rate caps and floors.

A cap is a strip of caplets, each a call on the simple forward rate of
one accrual period, fixed at the period start and paid at its end:

    [T1] caplet = N * tau * P(t_pay) * Black76(F, K, sigma, T_fix)

Volatilities are either flat (lognormal or normal) or read off a SABR
smile per caplet expiry and strike.

References:
    [T1] Brigo & Mercurio (2006) Interest Rate Models, Ch. 1.5-1.6
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

import pandas as pd
from scipy.optimize import brentq

from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.dates.calendars import NONE as NO_CALENDAR
from fi_toolkit.dates.calendars import BDConvention, Calendar
from fi_toolkit.dates.daycount import DayCount, year_fraction
from fi_toolkit.dates.schedule import Period, Schedule
from fi_toolkit.dates.tenor import Frequency
from fi_toolkit.models.black import OptionType, VolType, option_price
from fi_toolkit.models.sabr import SABRParams, sabr_option_price
from fi_toolkit.products.base import BasePricer, PricingResult

logger = logging.getLogger(__name__)


class CapFloorType(Enum):
    CAP = "cap"
    FLOOR = "floor"

    @property
    def option_type(self) -> OptionType:
        return OptionType.CALL if self is CapFloorType.CAP else OptionType.PUT


@dataclass(frozen=True)
class CapFloor:
    """
    Cap or floor terms.

    Attributes
    ----------
    effective : date
        Start of the first caplet period
    maturity : date
        End of the last caplet period
    frequency : Frequency
        Caplet frequency
    strike : float
        Strike rate (may be negative with normal vols)
    cap_type : CapFloorType
        Cap or floor
    notional : float
        Notional
    day_count : DayCount
        Accrual convention of the index
    bdc : BDConvention
        Payment roll
    calendar : Calendar
        Business-day calendar
    include_first : bool
        Include the first caplet (excluded by market convention when the
        first rate is already known at trade)
    """

    effective: date
    maturity: date
    frequency: Frequency
    strike: float
    cap_type: CapFloorType = CapFloorType.CAP
    notional: float = 1.0
    day_count: DayCount = DayCount.ACTUAL_360
    bdc: BDConvention = BDConvention.MODIFIED_FOLLOWING
    calendar: Calendar = NO_CALENDAR
    include_first: bool = False

    def schedule(self) -> Schedule:
        return Schedule(self.effective, self.maturity, self.frequency, self.bdc, self.calendar)

    def periods(self) -> list[Period]:
        periods = list(self.schedule())
        return periods if self.include_first else periods[1:]


class CapFloorPricer(BasePricer):
    """
    Pricer for caps and floors.

    Parameters
    ----------
    cap : CapFloor
        Terms
    as_of : date
        Valuation date
    discount_curve : DiscountCurve
        Discounting curve
    volatility : float, optional
        Flat volatility (ignored when ``sabr`` is given)
    vol_type : VolType
        Quotation of the flat volatility
    sabr : SABRParams, optional
        Smile used for strike-dependent lognormal vols
    projection_curve : DiscountCurve, optional
        Forward curve (default: discount curve)
    fixings : dict[date, float], optional
        Fixings for caplets already set, keyed by period start

    Examples
    --------
    >>> cap = CapFloor(date(2024, 1, 2), date(2029, 1, 2), Frequency.QUARTERLY, 0.05)
    >>> pricer = CapFloorPricer(cap, date(2024, 1, 2), DiscountCurve.flat(date(2024, 1, 2), 0.04),
    ...                         volatility=0.2)
    >>> pricer.pv() > 0
    True
    """

    def __init__(
        self,
        cap: CapFloor,
        as_of: date,
        discount_curve: DiscountCurve,
        volatility: Optional[float] = None,
        vol_type: VolType = VolType.LOGNORMAL,
        sabr: Optional[SABRParams] = None,
        projection_curve: Optional[DiscountCurve] = None,
        fixings: Optional[Mapping[date, float]] = None,
    ):
        super().__init__(as_of)
        if volatility is None and sabr is None:
            raise ValueError("CRITICAL: Either a flat volatility or SABR parameters are required")
        if volatility is not None and volatility < 0:
            raise ValueError(f"CRITICAL: volatility must be >= 0, got {volatility}")
        self.cap = cap
        self.discount_curve = discount_curve
        self.volatility = volatility
        self.vol_type = vol_type
        self.sabr = sabr
        self.projection_curve = projection_curve or discount_curve
        self.fixings = dict(fixings or {})

    # ------------------------------------------------------------------
    # Caplets
    # ------------------------------------------------------------------

    def _caplet(self, period: Period, volatility: Optional[float]) -> dict:
        cap = self.cap
        option_type = cap.cap_type.option_type
        tau = period.fraction(cap.day_count)
        df = self.discount_curve.discount_factor(period.payment_date)
        scale = cap.notional * tau
        expiry = year_fraction(self.as_of, period.accrual_start, DayCount.ACTUAL_365_FIXED)

        if period.accrual_start <= self.as_of:
            if period.accrual_start not in self.fixings:
                raise ValueError(f"CRITICAL: Missing fixing for caplet reset {period.accrual_start}")
            forward = float(self.fixings[period.accrual_start])
            intrinsic = max(forward - cap.strike, 0.0) if option_type == OptionType.CALL \
                else max(cap.strike - forward, 0.0)
            return {"forward": forward, "vol": 0.0, "expiry": 0.0,
                    "pv": scale * df * intrinsic, "vega": 0.0}

        forward = self.projection_curve.forward_rate(
            period.accrual_start, period.accrual_end, cap.day_count
        )
        if self.sabr is not None and volatility is None:
            result = sabr_option_price(forward, cap.strike, expiry, self.sabr, option_type, df)
            vol = float("nan")
        else:
            vol = volatility
            if self.vol_type == VolType.LOGNORMAL and (forward <= 0 or cap.strike <= 0):
                raise ValueError(
                    f"CRITICAL: Lognormal vol needs positive forward and strike "
                    f"(F={forward:.6f}, K={cap.strike}); use normal vols or shifted SABR"
                )
            result = option_price(forward, cap.strike, vol, expiry, option_type,
                                  self.vol_type, df)
        return {"forward": forward, "vol": vol, "expiry": expiry,
                "pv": scale * result.price, "vega": scale * result.vega}

    def _live_periods(self) -> list[Period]:
        return [p for p in self.cap.periods() if p.payment_date > self.as_of]

    def caplets(self) -> pd.DataFrame:
        """One row per live caplet."""
        rows = []
        for p in self._live_periods():
            row = {"start": p.accrual_start, "end": p.accrual_end, "payment": p.payment_date}
            row.update(self._caplet(p, self.volatility))
            rows.append(row)
        return pd.DataFrame(rows)

    def _pv_at(self, volatility: Optional[float]) -> float:
        return sum(self._caplet(p, volatility)["pv"] for p in self._live_periods())

    def pv(self) -> float:
        return self._pv_at(self.volatility)

    def vega(self) -> float:
        """dPV/dsigma per unit of flat volatility."""
        if self.volatility is None:
            raise ValueError("CRITICAL: Vega needs a flat volatility")
        return sum(self._caplet(p, self.volatility)["vega"] for p in self._live_periods())

    def implied_vol(self, target_pv: float, upper: float = 5.0) -> float:
        """
        Flat volatility (in this pricer's quotation) that reprices ``target_pv``.

        Raises
        ------
        ValueError
            If ``target_pv`` is outside the attainable range
        """
        low = self._pv_at(0.0)
        high = self._pv_at(upper)
        if not low - SETTINGS.calibration.tolerance <= target_pv <= high:
            raise ValueError(
                f"CRITICAL: target pv {target_pv} outside attainable range [{low}, {high}]"
            )
        vol = brentq(lambda v: self._pv_at(v) - target_pv, 0.0, upper,
                     xtol=SETTINGS.calibration.xtol, maxiter=SETTINGS.calibration.max_iterations)
        logger.debug(f"cap implied vol {vol:.6f} for pv {target_pv:.8f}")
        return vol

    def price(self) -> PricingResult:
        details = {"caplets": len(self._live_periods())}
        if self.volatility is not None:
            details["vega"] = self.vega()
        return PricingResult(present_value=self.pv(), details=details, as_of_date=self.as_of)
