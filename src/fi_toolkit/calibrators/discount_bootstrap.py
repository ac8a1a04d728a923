"""
Discount curve bootstrap from money-market, FRA, futures and swap quotes.

Quotes are sorted by maturity and solved one pillar at a time: for each
quote, brentq finds the discount factor at its maturity such that the
quote's model rate equals the market rate. Dates before the new pillar
are read off the curve being built.

Model rates:
    [T1] Deposit / FRA:  (P(start) / P(end) - 1) / tau
    [T1] Future:         same, compared with 1 - price - convexity
    [T1] Par swap:       (P(settle) - P(T)) / sum(tau_i * P(t_i))
    [T2] Ho-Lee convexity: 0.5 * sigma^2 * t1 * t2

References:
    [T1] Hagan & West (2006) "Interpolation Methods for Curve Construction"
    [T2] Hull (2018) Options, Futures and Other Derivatives, Ch. 6.4
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

import numpy as np
import pandas as pd
from scipy.optimize import brentq

from fi_toolkit.calibrators.quotes import (
    FORWARD_STARTING,
    FutureQuote,
    InstrumentType,
    RateQuote,
    SwapQuote,
)
from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.curves.interpolation import ExtrapMethod, InterpMethod
from fi_toolkit.dates.calendars import NONE as NO_CALENDAR
from fi_toolkit.dates.calendars import Calendar
from fi_toolkit.dates.schedule import Schedule
from fi_toolkit.errors import CalibrationError
from fi_toolkit.products.stir_future import ho_lee_convexity

logger = logging.getLogger(__name__)


# =============================================================================
# Overlap treatment
# =============================================================================

@dataclass(frozen=True)
class OverlapTreatment:
    """
    Priority order used to drop overlapping calibration instruments.

    Attributes
    ----------
    priority : tuple[InstrumentType, ...]
        Instrument types, highest priority first. Empty keeps everything.

    Examples
    --------
    >>> OverlapTreatment.default().priority[0]
    <InstrumentType.MM: 'MM'>
    """

    priority: tuple[InstrumentType, ...] = ()

    @classmethod
    def default(cls) -> "OverlapTreatment":
        return cls((InstrumentType.MM, InstrumentType.FUT, InstrumentType.FRA, InstrumentType.SWAP))

    @classmethod
    def keep_all(cls) -> "OverlapTreatment":
        return cls(())

    def resolve(
        self, quotes: Sequence[RateQuote], settle: date, calendar: Calendar = NO_CALENDAR
    ) -> tuple[list[RateQuote], list[RateQuote]]:
        """
        Split quotes into (kept, dropped).

        A forward-starting type covers [first start, last maturity] of its
        kept quotes; a spot-starting type covers [first maturity, last
        maturity]. Lower-priority quotes maturing inside any covered range
        are dropped.
        """
        if not self.priority:
            return list(quotes), []

        order: list[InstrumentType] = []
        for t in self.priority:
            if t not in order:
                order.append(t)

        covered: list[tuple[date, date]] = []
        kept: list[RateQuote] = []
        dropped: list[RateQuote] = []
        for itype in order:
            group = [q for q in quotes if q.instrument_type == itype]
            survivors = []
            for q in group:
                maturity = q.maturity(settle, calendar)
                if any(lo <= maturity <= hi for lo, hi in covered):
                    dropped.append(q)
                    logger.warning(
                        f"Dropping {itype.value} quote {q.name}: maturity {maturity} "
                        f"overlaps a higher-priority instrument"
                    )
                else:
                    survivors.append(q)
            if survivors:
                maturities = [q.maturity(settle, calendar) for q in survivors]
                if itype in FORWARD_STARTING:
                    lo = min(q.start(settle, calendar) for q in survivors)
                else:
                    lo = min(maturities)
                covered.append((lo, max(maturities)))
            kept.extend(survivors)

        # Types not ranked are kept as they are
        kept.extend(q for q in quotes if q.instrument_type not in order)
        return kept, dropped


# =============================================================================
# Calibrator
# =============================================================================

class DiscountBootstrapCalibrator:
    """
    Sequential pillar-by-pillar discount curve bootstrap.

    Parameters
    ----------
    as_of : date
        Curve date
    settle : date, optional
        Spot settlement date of the quotes (default ``as_of``)
    calendar : Calendar
        Calendar for quote maturities and swap schedules
    interp : InterpMethod, optional
        Curve interpolation (default from settings)
    extrap : ExtrapMethod, optional
        Curve extrapolation (default from settings)
    overlap : OverlapTreatment, optional
        Overlap resolution (default MM > FUT > FRA > SWAP)
    name : str
        Name of the calibrated curve

    Examples
    --------
    >>> from fi_toolkit.calibrators.quotes import MoneyMarketQuote, SwapQuote
    >>> cal = DiscountBootstrapCalibrator(date(2010, 12, 6))
    >>> curve = cal.fit([MoneyMarketQuote("6M", 0.0063), SwapQuote("2Y", 0.0126)])
    >>> len(curve)
    2
    """

    def __init__(
        self,
        as_of: date,
        settle: date | None = None,
        calendar: Calendar = NO_CALENDAR,
        interp: InterpMethod | None = None,
        extrap: ExtrapMethod | None = None,
        overlap: OverlapTreatment | None = None,
        name: str = "discount",
    ):
        self.as_of = as_of
        self.settle = settle or as_of
        if self.settle < as_of:
            raise ValueError(f"CRITICAL: Settle {self.settle} precedes curve date {as_of}")
        self.calendar = calendar
        self.interp = interp
        self.extrap = extrap
        self.overlap = overlap if overlap is not None else OverlapTreatment.default()
        self.name = name
        self.quotes: list[RateQuote] = []
        self.dropped: list[RateQuote] = []

    # ------------------------------------------------------------------
    # Model rates
    # ------------------------------------------------------------------

    def convexity_adjustment(self, quote: FutureQuote) -> float:
        """[T2] Ho-Lee futures convexity 0.5 * sigma^2 * t1 * t2 (zero without a vol)."""
        return ho_lee_convexity(
            self.as_of,
            quote.start(self.settle, self.calendar),
            quote.maturity(self.settle, self.calendar),
            quote.convexity_vol,
        )

    def market_rate(self, quote: RateQuote) -> float:
        if isinstance(quote, FutureQuote):
            return quote.rate - self.convexity_adjustment(quote)
        return quote.rate

    def _swap_schedule(self, quote: SwapQuote) -> Schedule:
        return Schedule(
            self.settle,
            quote.unadjusted_maturity(self.settle),
            quote.frequency,
            quote.bdc,
            self.calendar,
        )

    def model_rate(self, quote: RateQuote, curve: DiscountCurve) -> float:
        """Rate implied by the curve for a quote's instrument."""
        if isinstance(quote, SwapQuote):
            schedule = self._swap_schedule(quote)
            annuity = sum(
                p.fraction(quote.day_count) * curve.discount_factor(p.payment_date)
                for p in schedule
            )
            end = schedule[-1].payment_date
            return (curve.discount_factor(self.settle) - curve.discount_factor(end)) / annuity
        start = quote.start(self.settle, self.calendar)
        end = quote.maturity(self.settle, self.calendar)
        return curve.forward_rate(start, end, quote.day_count)

    # ------------------------------------------------------------------
    # Fit
    # ------------------------------------------------------------------

    def _prepare(self, quotes: Sequence[RateQuote]) -> list[RateQuote]:
        kept, dropped = self.overlap.resolve(quotes, self.settle, self.calendar)
        kept.sort(key=lambda q: q.maturity(self.settle, self.calendar))
        maturities = [q.maturity(self.settle, self.calendar) for q in kept]
        for a, b, qa, qb in zip(maturities, maturities[1:], kept, kept[1:]):
            if a == b:
                raise ValueError(
                    f"CRITICAL: Quotes {qa.name} and {qb.name} share maturity {a}; "
                    "use an overlap treatment that drops one of them"
                )
        if maturities and maturities[0] <= self.as_of:
            raise ValueError(f"CRITICAL: Quote {kept[0].name} matures on or before {self.as_of}")
        self.dropped = dropped
        return kept

    def fit(self, quotes: Sequence[RateQuote]) -> DiscountCurve:
        """
        Bootstrap a discount curve.

        Raises
        ------
        CalibrationError
            If a pillar cannot be bracketed or the solver fails
        ValueError
            If no quotes remain or two kept quotes share a maturity
        """
        kept = self._prepare(quotes)
        if not kept:
            raise ValueError("CRITICAL: No quotes to calibrate")

        curve = DiscountCurve(self.as_of, interp=self.interp, extrap=self.extrap, name=self.name)
        lo, hi = SETTINGS.calibration.df_bracket

        for quote in kept:
            maturity = quote.maturity(self.settle, self.calendar)
            target = self.market_rate(quote)
            guess = curve.discount_factor(maturity) if len(curve) else np.exp(
                -target * curve.time(maturity)
            )
            curve.add(maturity, guess)
            index = curve.dates.index(maturity)

            def residual(df: float) -> float:
                curve.set_value(index, df)
                return self.model_rate(quote, curve) - target

            try:
                f_lo, f_hi = residual(lo), residual(hi)
                if np.sign(f_lo) == np.sign(f_hi):
                    raise CalibrationError(
                        f"Cannot bracket discount factor for {quote.name} "
                        f"(residuals {f_lo:.3e}, {f_hi:.3e} on [{lo}, {hi}])",
                        tenor=quote.name,
                    )
                df = brentq(
                    residual, lo, hi,
                    xtol=SETTINGS.calibration.xtol,
                    maxiter=SETTINGS.calibration.max_iterations,
                )
            except (RuntimeError, ValueError) as e:
                raise CalibrationError(
                    f"Bootstrap failed at {quote.name}: {e}", tenor=quote.name
                ) from e

            curve.set_value(index, df)
            logger.debug(f"{self.name}: {quote.name} -> {maturity} df={df:.12f}")

        self.quotes = kept
        return curve

    def recalibrate_with(self, quotes: Sequence[RateQuote]) -> DiscountCurve:
        """Fit a new curve from (typically bumped) quotes with the same settings."""
        return self.fit(quotes)

    def repricing_errors(self, curve: DiscountCurve) -> pd.DataFrame:
        """Market vs model rate for every quote used in the last fit."""
        rows = []
        for q in self.quotes:
            market = self.market_rate(q)
            model = self.model_rate(q, curve)
            rows.append({
                "tenor": q.name,
                "type": q.instrument_type.value,
                "maturity": q.maturity(self.settle, self.calendar),
                "market": market,
                "model": model,
                "error": model - market,
            })
        return pd.DataFrame(rows)
