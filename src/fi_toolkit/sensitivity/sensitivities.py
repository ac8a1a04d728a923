"""
Bump-and-reprice sensitivities.

A pricer factory rebuilds the pricer from named market inputs
(``discount_curve=...``, ``survival_curve=...``, ``as_of=...``,
``volatility=...``). Each measure replaces one input with a bumped copy
and reprices; the other inputs are passed unchanged.

[T1] Central differences per bump:
    delta = (PV(+h) - PV(-h)) / 2
    gamma = PV(+h) - 2 PV(0) + PV(-h)

Results are pandas DataFrames with one row per bumped input.
"""

import logging
from collections.abc import Callable
from datetime import date, timedelta
from typing import Any, Optional

import pandas as pd

from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.products.base import BasePricer
from fi_toolkit.sensitivity.bumps import BumpSpec, bump_discount_curve, bump_survival_curve

logger = logging.getLogger(__name__)

PricerFactory = Callable[..., BasePricer]


class Sensitivities:
    """
    Sensitivity runner for one pricer factory and a set of market inputs.

    Parameters
    ----------
    pricer_factory : callable
        Builds a pricer from keyword market inputs
    **market
        Base market inputs passed to the factory

    Examples
    --------
    >>> sens = Sensitivities(
    ...     lambda discount_curve: BondPricer(bond, as_of, discount_curve),
    ...     discount_curve=curve,
    ... )  # doctest: +SKIP
    >>> sens.rate01()  # doctest: +SKIP
    """

    def __init__(self, pricer_factory: PricerFactory, **market: Any):
        if not market:
            raise ValueError("CRITICAL: At least one market input is required")
        self.pricer_factory = pricer_factory
        self.market = market

    def pv(self, **overrides: Any) -> float:
        """PV with some market inputs replaced."""
        unknown = set(overrides) - set(self.market)
        if unknown:
            raise ValueError(f"CRITICAL: Unknown market inputs {sorted(unknown)}")
        return self.pricer_factory(**{**self.market, **overrides}).pv()

    def _input(self, key: str) -> Any:
        if key not in self.market:
            raise ValueError(
                f"CRITICAL: Market input '{key}' not set. Available: {sorted(self.market)}"
            )
        return self.market[key]

    def _central(self, key: str, bumper, bump: BumpSpec, label: str, base: float) -> dict:
        curve = self._input(key)
        up = self.pv(**{key: bumper(curve, bump)})
        down = self.pv(**{key: bumper(curve, bump.negated())})
        return {
            "input": key,
            "tenor": label,
            "bump": bump.size,
            "base_pv": base,
            "up_pv": up,
            "down_pv": down,
            "delta": 0.5 * (up - down),
            "gamma": up - 2.0 * base + down,
        }

    def _by_tenor(self, key: str, bumper, bump: BumpSpec) -> pd.DataFrame:
        curve = self._input(key)
        base = self.pv()
        rows = []
        for pillar in curve.dates:
            tenor_bump = BumpSpec(bump.size, bump.bump_type, (pillar,))
            rows.append(self._central(key, bumper, tenor_bump, pillar.isoformat(), base))
        logger.debug(f"{key}: {len(rows)} tenor bumps of {bump.size}")
        return pd.DataFrame(rows)

    # ------------------------------------------------------------------
    # Rates
    # ------------------------------------------------------------------

    def rate01(self, curve_key: str = "discount_curve", bump: Optional[BumpSpec] = None) -> pd.DataFrame:
        """Parallel rate delta and gamma per bump (default 1bp)."""
        bump = bump or BumpSpec(SETTINGS.sensitivity.rate_bump)
        row = self._central(curve_key, bump_discount_curve, bump, "parallel", self.pv())
        return pd.DataFrame([row])

    def rate_delta_by_tenor(
        self, curve_key: str = "discount_curve", bump: Optional[BumpSpec] = None
    ) -> pd.DataFrame:
        """Key-rate deltas, one row per curve pillar."""
        bump = bump or BumpSpec(SETTINGS.sensitivity.rate_bump)
        return self._by_tenor(curve_key, bump_discount_curve, bump)

    # ------------------------------------------------------------------
    # Credit
    # ------------------------------------------------------------------

    def spread01(
        self,
        curve_key: str = "survival_curve",
        bump: Optional[BumpSpec] = None,
        by_tenor: bool = False,
    ) -> pd.DataFrame:
        """Hazard-rate delta and gamma per bump (default 1bp), parallel or by pillar."""
        bump = bump or BumpSpec(SETTINGS.sensitivity.spread_bump)
        if by_tenor:
            return self._by_tenor(curve_key, bump_survival_curve, bump)
        row = self._central(curve_key, bump_survival_curve, bump, "parallel", self.pv())
        return pd.DataFrame([row])

    # ------------------------------------------------------------------
    # Time and volatility
    # ------------------------------------------------------------------

    def theta(self, days: int = 1, date_key: str = "as_of") -> pd.DataFrame:
        """PV change from rolling the valuation date forward with curves held fixed."""
        if days <= 0:
            raise ValueError(f"CRITICAL: days must be > 0, got {days}")
        as_of: date = self._input(date_key)
        base = self.pv()
        rolled = self.pv(**{date_key: as_of + timedelta(days=days)})
        return pd.DataFrame([{
            "input": date_key,
            "days": days,
            "base_pv": base,
            "rolled_pv": rolled,
            "theta": rolled - base,
        }])

    def vega(self, vol_key: str = "volatility", bump: Optional[float] = None) -> pd.DataFrame:
        """PV change per flat volatility bump (default one vol point)."""
        bump = SETTINGS.sensitivity.vol_bump if bump is None else bump
        vol = self._input(vol_key)
        if vol - bump < 0:
            raise ValueError(f"CRITICAL: vol bump {bump} exceeds volatility {vol}")
        base = self.pv()
        up = self.pv(**{vol_key: vol + bump})
        down = self.pv(**{vol_key: vol - bump})
        return pd.DataFrame([{
            "input": vol_key,
            "bump": bump,
            "base_pv": base,
            "up_pv": up,
            "down_pv": down,
            "vega": 0.5 * (up - down),
            "volga": up - 2.0 * base + down,
        }])
