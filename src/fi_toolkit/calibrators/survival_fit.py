"""
Survival curve calibration from CDS par spreads.

[T1] Credit triangle: a flat hazard h prices a CDS at spread s = h * (1 - R),
so the average hazard to maturity T is spread(T) / (1 - R).

[T1] Piecewise-constant forward hazards follow from the averages:
    h_i = (avg_i * T_i - avg_{i-1} * T_{i-1}) / (T_i - T_{i-1})

A negative forward hazard means the spread curve is inverted steeply
enough to imply negative default probability, an arbitrage.

References:
    [T1] O'Kane (2008) Modelling Single-name and Multi-name Credit Derivatives, Ch. 3
"""

import logging
from collections.abc import Sequence
from datetime import date

import numpy as np
import pandas as pd

from fi_toolkit.calibrators.quotes import CdsSpreadQuote
from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.survival import SurvivalCurve
from fi_toolkit.errors import CalibrationError

logger = logging.getLogger(__name__)


class SurvivalFitCalibrator:
    """
    Piecewise-constant hazard bootstrap from CDS spreads.

    Parameters
    ----------
    as_of : date
        Curve date
    recovery : float, optional
        Recovery rate for quotes without their own (default from settings)
    name : str
        Name of the calibrated curve

    Examples
    --------
    >>> cal = SurvivalFitCalibrator(date(2024, 1, 2), recovery=0.4)
    >>> curve = cal.fit([CdsSpreadQuote("1Y", 0.006), CdsSpreadQuote("5Y", 0.012)])
    >>> round(cal.implied_spread(curve, curve.dates[0]), 10)
    0.006
    """

    def __init__(self, as_of: date, recovery: float | None = None, name: str = "survival"):
        recovery = SETTINGS.calibration.default_recovery if recovery is None else recovery
        if not 0.0 <= recovery < 1.0:
            raise ValueError(f"CRITICAL: Recovery must be in [0, 1), got {recovery}")
        self.as_of = as_of
        self.recovery = recovery
        self.name = name
        self.quotes: list[CdsSpreadQuote] = []

    def _recovery(self, quote: CdsSpreadQuote) -> float:
        return self.recovery if quote.recovery is None else quote.recovery

    def fit(self, quotes: Sequence[CdsSpreadQuote]) -> SurvivalCurve:
        """
        Bootstrap a survival curve.

        Raises
        ------
        CalibrationError
            If a forward hazard is negative
        ValueError
            If no quotes are given or two quotes share a maturity
        """
        if not quotes:
            raise ValueError("CRITICAL: No CDS quotes to calibrate")
        ordered = sorted(quotes, key=lambda q: q.maturity(self.as_of))
        maturities = [q.maturity(self.as_of) for q in ordered]
        if len(set(maturities)) != len(maturities):
            raise ValueError(f"CRITICAL: CDS quotes share a maturity: {maturities}")

        basis = SETTINGS.curve.time_basis_days
        times = np.array([(m - self.as_of).days / basis for m in maturities])
        averages = np.array([q.spread / (1.0 - self._recovery(q)) for q in ordered])

        hazards = []
        prev_t, prev_avg = 0.0, 0.0
        for q, t, avg in zip(ordered, times, averages):
            h = (avg * t - prev_avg * prev_t) / (t - prev_t)
            if h < 0:
                raise CalibrationError(
                    f"Negative forward hazard {h:.6f} at {q.tenor}: "
                    f"spread curve implies arbitrage",
                    tenor=q.tenor,
                )
            if h > SETTINGS.validation.max_hazard_rate:
                logger.warning(f"{self.name}: hazard {h:.4f} at {q.tenor} exceeds "
                               f"{SETTINGS.validation.max_hazard_rate}")
            logger.debug(f"{self.name}: {q.tenor} -> {maturities[len(hazards)]} h={h:.8f}")
            hazards.append(h)
            prev_t, prev_avg = t, avg

        self.quotes = list(ordered)
        return SurvivalCurve.from_hazard_rates(self.as_of, maturities, hazards, name=self.name)

    def recalibrate_with(self, quotes: Sequence[CdsSpreadQuote]) -> SurvivalCurve:
        """Fit a new curve from (typically bumped) quotes with the same settings."""
        return self.fit(quotes)

    def implied_spread(
        self, curve: SurvivalCurve, maturity: date, recovery: float | None = None
    ) -> float:
        """[T1] Credit-triangle spread: average hazard to maturity times (1 - R)."""
        recovery = self.recovery if recovery is None else recovery
        t = curve.time(maturity)
        average = -np.log(curve.survival_probability(maturity)) / t
        return float(average * (1.0 - recovery))

    def repricing_errors(self, curve: SurvivalCurve) -> pd.DataFrame:
        rows = []
        for q in self.quotes:
            maturity = q.maturity(self.as_of)
            model = self.implied_spread(curve, maturity, self._recovery(q))
            rows.append({
                "tenor": q.tenor,
                "type": q.instrument_type.value,
                "maturity": maturity,
                "market": q.spread,
                "model": model,
                "error": model - q.spread,
            })
        return pd.DataFrame(rows)
