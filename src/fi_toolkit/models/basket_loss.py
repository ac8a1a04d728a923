"""
Semi-analytic one-factor Gaussian basket loss model.

Conditional on the common factor M the names default independently, so
the conditional distribution of the number of defaults (or of the loss,
on an integer loss grid) follows from a recursion adding one name at a
time:

    [T1] q_{n+1}(j) = q_n(j) (1 - p_{n+1}(m)) + q_n(j - u_{n+1}) p_{n+1}(m)

The unconditional distribution integrates over M with Gauss-Hermite
quadrature.

Names already defaulted at the valuation date are removed from the
recursion; their realised loss shifts the loss distribution and their
count shifts the default count.

References:
    [T1] Andersen, Sidenius & Basu (2003) "All your hedges in one basket"
    [T1] O'Kane (2008) Modelling Single-name and Multi-name Credit Derivatives, Ch. 18
"""

import logging
from collections.abc import Mapping
from datetime import date
from typing import Optional, Union

import numpy as np
from numpy.polynomial.hermite_e import hermegauss

from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.survival import SurvivalCurve
from fi_toolkit.models.copula import Copula, CopulaType

logger = logging.getLogger(__name__)


def gauss_hermite_normal(n: int) -> tuple[np.ndarray, np.ndarray]:
    """Nodes and weights integrating against the standard normal density."""
    if n <= 0:
        raise ValueError(f"CRITICAL: quadrature points must be > 0, got {n}")
    nodes, weights = hermegauss(n)
    return nodes, weights / weights.sum()


def conditional_count_distribution(cond_pd: np.ndarray) -> np.ndarray:
    """
    Default-count distribution per quadrature node.

    Parameters
    ----------
    cond_pd : ndarray
        Conditional default probabilities, shape (n_nodes, n_names)

    Returns
    -------
    ndarray
        Shape (n_nodes, n_names + 1)
    """
    return conditional_loss_distribution(cond_pd, np.ones(cond_pd.shape[1], dtype=int))


def conditional_loss_distribution(cond_pd: np.ndarray, units: np.ndarray) -> np.ndarray:
    """
    Loss distribution on an integer grid per quadrature node.

    Parameters
    ----------
    cond_pd : ndarray
        Conditional default probabilities, shape (n_nodes, n_names)
    units : ndarray of int
        Loss of each name in grid units

    Returns
    -------
    ndarray
        Shape (n_nodes, sum(units) + 1)
    """
    n_nodes, n_names = cond_pd.shape
    dist = np.zeros((n_nodes, int(np.sum(units)) + 1))
    dist[:, 0] = 1.0
    top = 0
    for i in range(n_names):
        p = cond_pd[:, i : i + 1]
        u = int(units[i])
        shifted = np.zeros_like(dist)
        shifted[:, u : top + u + 1] = dist[:, : top + 1]
        dist = dist * (1.0 - p) + shifted * p
        top += u
    return dist


class SemiAnalyticBasketModel:
    """
    One-factor Gaussian copula basket with equal name weights.

    Parameters
    ----------
    as_of : date
        Valuation date
    survival_curves : Mapping[str, SurvivalCurve]
        Survival curve per name
    recovery : float or Mapping[str, float], optional
        Recovery rate(s) (default from settings)
    correlation : float
        Flat asset correlation in [0, 1)
    quadrature_points : int, optional
        Gauss-Hermite points (default from settings)
    defaulted : Mapping[str, date], optional
        Names known to have defaulted, with their default dates
    granularity : int
        Loss grid points per smallest name loss

    Examples
    --------
    >>> curves = {f"N{i}": SurvivalCurve.flat(date(2024, 1, 2), 0.02) for i in range(10)}
    >>> model = SemiAnalyticBasketModel(date(2024, 1, 2), curves, 0.4, correlation=0.3)
    >>> p = model.nth_default_probability(date(2029, 1, 2), 1)
    >>> 0.0 < p < 1.0
    True
    """

    def __init__(
        self,
        as_of: date,
        survival_curves: Mapping[str, SurvivalCurve],
        recovery: Union[float, Mapping[str, float], None] = None,
        correlation: float = 0.0,
        quadrature_points: Optional[int] = None,
        defaulted: Optional[Mapping[str, date]] = None,
        granularity: int = 1,
    ):
        if not survival_curves:
            raise ValueError("CRITICAL: Basket has no names")
        if granularity < 1:
            raise ValueError(f"CRITICAL: granularity must be >= 1, got {granularity}")
        self.as_of = as_of
        self.curves = dict(survival_curves)
        self.copula = Copula(CopulaType.GAUSSIAN, correlation)
        self.quadrature_points = quadrature_points or SETTINGS.monte_carlo.quadrature_points
        self.recoveries = resolve_recoveries(self.curves, recovery)

        self.names = list(self.curves)
        self.weight = 1.0 / len(self.names)
        self.defaulted_names = defaulted_names(as_of, self.curves, defaulted)
        self.live_names = [n for n in self.names if n not in self.defaulted_names]
        self.realized_loss = sum(self.weight * (1.0 - self.recoveries[n]) for n in self.defaulted_names)
        if self.defaulted_names:
            logger.info(f"Basket: {len(self.defaulted_names)} defaulted names removed, "
                        f"realised loss {self.realized_loss:.6f}")

        lgds = np.array([self.weight * (1.0 - self.recoveries[n]) for n in self.live_names])
        positive = lgds[lgds > 0]
        self._unit = positive.min() / granularity if len(positive) else 1.0
        self._units = np.rint(lgds / self._unit).astype(int)

    @property
    def n_names(self) -> int:
        return len(self.names)

    @property
    def n_defaulted(self) -> int:
        return len(self.defaulted_names)

    def _conditional_pd(self, d: date) -> tuple[np.ndarray, np.ndarray]:
        nodes, weights = gauss_hermite_normal(self.quadrature_points)
        pd = np.array([1.0 - self.curves[n].conditional_survival(self.as_of, d)
                       for n in self.live_names])
        return weights, self.copula.conditional_default_probability(pd, nodes)

    # ------------------------------------------------------------------
    # Distributions
    # ------------------------------------------------------------------

    def default_count_distribution(self, d: date) -> np.ndarray:
        """P(j live names default by ``d``) for j = 0..n_live."""
        if not self.live_names:
            return np.array([1.0])
        weights, cond = self._conditional_pd(d)
        return weights @ conditional_count_distribution(cond)

    def loss_distribution(self, d: date) -> tuple[np.ndarray, np.ndarray]:
        """
        Portfolio loss distribution at ``d`` as a fraction of basket notional.

        Returns
        -------
        tuple[ndarray, ndarray]
            Loss levels (including realised loss) and their probabilities
        """
        if not self.live_names:
            return np.array([self.realized_loss]), np.array([1.0])
        weights, cond = self._conditional_pd(d)
        probs = weights @ conditional_loss_distribution(cond, self._units)
        levels = self.realized_loss + self._unit * np.arange(len(probs))
        return levels, probs

    def expected_loss(self, d: date) -> float:
        levels, probs = self.loss_distribution(d)
        return float(levels @ probs)

    def expected_tranche_loss(self, d: date, attachment: float, detachment: float) -> float:
        """
        [T1] E[min(max(L - a, 0), d - a)] / (d - a), the expected loss of a
        tranche as a fraction of its notional.
        """
        if not 0.0 <= attachment < detachment <= 1.0:
            raise ValueError(
                f"CRITICAL: Need 0 <= attachment < detachment <= 1, got {attachment}, {detachment}"
            )
        levels, probs = self.loss_distribution(d)
        tranche = np.clip(levels - attachment, 0.0, detachment - attachment)
        return float(tranche @ probs / (detachment - attachment))

    def nth_default_probability(self, d: date, k: int) -> float:
        """P(at least ``k`` names in the basket, defaulted ones included, default by ``d``)."""
        if k < 1:
            raise ValueError(f"CRITICAL: k must be >= 1, got {k}")
        remaining = k - self.n_defaulted
        if remaining <= 0:
            return 1.0
        if remaining > len(self.live_names):
            return 0.0
        dist = self.default_count_distribution(d)
        return float(np.clip(dist[remaining:].sum(), 0.0, 1.0))


def defaulted_names(
    as_of: date,
    survival_curves: Mapping[str, SurvivalCurve],
    defaulted: Optional[Mapping[str, date]] = None,
) -> list[str]:
    """
    Names defaulted on or before ``as_of``, in basket order.

    A name counts as defaulted if it appears in ``defaulted`` or its
    survival curve carries a default date.
    """
    known = dict(defaulted or {})
    unknown = set(known) - set(survival_curves)
    if unknown:
        raise ValueError(f"CRITICAL: Defaulted names not in basket: {sorted(unknown)}")
    for name, curve in survival_curves.items():
        if curve.defaulted_date is not None and name not in known:
            known[name] = curve.defaulted_date
    return [n for n in survival_curves if n in known and known[n] <= as_of]


def resolve_recoveries(
    curves: Mapping[str, SurvivalCurve], recovery: Union[float, Mapping[str, float], None]
) -> dict[str, float]:
    if recovery is None:
        recovery = SETTINGS.calibration.default_recovery
    if isinstance(recovery, Mapping):
        missing = set(curves) - set(recovery)
        if missing:
            raise ValueError(f"CRITICAL: Missing recovery for {sorted(missing)}")
        out = {n: float(recovery[n]) for n in curves}
    else:
        out = {n: float(recovery) for n in curves}
    bad = {n: r for n, r in out.items() if not 0.0 <= r < 1.0}
    if bad:
        raise ValueError(f"CRITICAL: Recovery must be in [0, 1), got {bad}")
    return out
