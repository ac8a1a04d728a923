"""
Basket credit default swaps.

Two contracts on an equally weighted basket of names:

- NthToDefault: protection on the loss of the k-th name to default,
  premium paid until that default or maturity.
- BasketCDS: protection on the basket loss between an attachment and a
  detachment point, premium paid on the outstanding tranche notional.

Pricing is either semi-analytic (one-factor Gaussian copula via
SemiAnalyticBasketModel) or by Monte Carlo simulation of correlated
default times (k-th to default only).

[T1] Protection buyer value:
    PV = N * (protection leg - premium * risky annuity)
    breakeven premium = protection leg / risky annuity

References:
    [T1] O'Kane (2008) Modelling Single-name and Multi-name Credit Derivatives, Ch. 14, 18
    [T1] Glasserman (2003) Monte Carlo Methods in Financial Engineering, Ch. 9
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Union

import numpy as np

from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.curves.survival import SurvivalCurve
from fi_toolkit.dates.calendars import NONE as NO_CALENDAR
from fi_toolkit.dates.calendars import BDConvention, Calendar
from fi_toolkit.dates.daycount import DayCount
from fi_toolkit.dates.schedule import Period, Schedule
from fi_toolkit.dates.tenor import Frequency
from fi_toolkit.models.basket_loss import (
    SemiAnalyticBasketModel,
    defaulted_names,
    resolve_recoveries,
)
from fi_toolkit.models.copula import Copula
from fi_toolkit.models.rng import RNGEngine, pair_average, uniforms
from fi_toolkit.products.base import BasePricer, PricingResult

logger = logging.getLogger(__name__)

#: Spacing of the default-probability grid used to invert default times
_GRID_DAYS = 7


# =============================================================================
# Products
# =============================================================================

@dataclass(frozen=True)
class _BasketContract:
    names: tuple[str, ...]
    effective: date
    maturity: date
    premium: float
    notional: float = 1.0
    frequency: Frequency = Frequency.QUARTERLY
    day_count: DayCount = DayCount.ACTUAL_360
    bdc: BDConvention = BDConvention.FOLLOWING
    calendar: Calendar = NO_CALENDAR

    def __post_init__(self) -> None:
        if not self.names:
            raise ValueError("CRITICAL: Basket has no names")
        if len(set(self.names)) != len(self.names):
            raise ValueError(f"CRITICAL: Duplicate basket names in {self.names}")
        if self.maturity <= self.effective:
            raise ValueError(
                f"CRITICAL: Maturity {self.maturity} must be after effective {self.effective}"
            )
        if self.premium < 0:
            raise ValueError(f"CRITICAL: premium must be >= 0, got {self.premium}")
        if self.notional <= 0:
            raise ValueError(f"CRITICAL: notional must be > 0, got {self.notional}")

    def schedule(self) -> Schedule:
        return Schedule(self.effective, self.maturity, self.frequency, self.bdc, self.calendar)


@dataclass(frozen=True)
class NthToDefault(_BasketContract):
    """
    k-th to default basket swap.

    Attributes
    ----------
    names : tuple of str
        Reference names
    effective, maturity : date
        Protection and premium period
    premium : float
        Running premium (decimal per annum)
    notional : float
        Notional
    frequency, day_count, bdc, calendar
        Premium schedule conventions
    k : int
        Default that triggers the protection payment (1 = first to default)

    Examples
    --------
    >>> ntd = NthToDefault(("A", "B", "C"), date(2024, 1, 2), date(2029, 1, 2), 0.01, k=2)
    >>> ntd.k
    2
    """

    k: int = 1

    def __post_init__(self) -> None:
        super().__post_init__()
        if not 1 <= self.k <= len(self.names):
            raise ValueError(f"CRITICAL: k must be in [1, {len(self.names)}], got {self.k}")


@dataclass(frozen=True)
class BasketCDS(_BasketContract):
    """
    Tranche on the loss of an equally weighted basket.

    ``attachment`` and ``detachment`` are fractions of the basket
    notional; ``notional`` is the basket notional. The default 0-1
    tranche protects the whole basket.
    """

    attachment: float = 0.0
    detachment: float = 1.0

    def __post_init__(self) -> None:
        super().__post_init__()
        if not 0.0 <= self.attachment < self.detachment <= 1.0:
            raise ValueError(
                f"CRITICAL: Need 0 <= attachment < detachment <= 1, "
                f"got {self.attachment}, {self.detachment}"
            )

    @property
    def tranche_notional(self) -> float:
        return self.notional * (self.detachment - self.attachment)


BasketProduct = Union[NthToDefault, BasketCDS]


def _live_periods(product: _BasketContract, as_of: date) -> list[Period]:
    return [p for p in product.schedule() if p.payment_date > as_of]


# =============================================================================
# Semi-analytic pricer
# =============================================================================

class SemiAnalyticBasketPricer(BasePricer):
    """
    One-factor Gaussian copula pricer for NthToDefault and BasketCDS.

    The expected protection payout and outstanding premium notional are
    read off the model on the premium schedule dates. Protection payments
    are discounted at period mid-points; premium accrued on default is
    approximated by averaging the outstanding notional over each period.

    Protection runs from the later of ``as_of`` and the contract's effective
    date. Defaults before that date are never paid: a k-th to default
    triggered earlier knocks out (no protection, no premium), and tranche
    losses earlier erode the tranche notional without a payment.

    Parameters
    ----------
    product : NthToDefault or BasketCDS
        Contract
    as_of : date
        Valuation date
    discount_curve : DiscountCurve
        Discounting curve
    survival_curves : Mapping[str, SurvivalCurve]
        Survival curve per name
    recovery : float or Mapping[str, float], optional
        Recovery rate(s)
    correlation : float
        Flat asset correlation
    quadrature_points : int, optional
        Gauss-Hermite points
    defaulted : Mapping[str, date], optional
        Names known to have defaulted
    """

    def __init__(
        self,
        product: BasketProduct,
        as_of: date,
        discount_curve: DiscountCurve,
        survival_curves: Mapping[str, SurvivalCurve],
        recovery: Union[float, Mapping[str, float], None] = None,
        correlation: float = 0.0,
        quadrature_points: Optional[int] = None,
        defaulted: Optional[Mapping[str, date]] = None,
    ):
        super().__init__(as_of)
        missing = set(product.names) - set(survival_curves)
        if missing:
            raise ValueError(f"CRITICAL: Missing survival curves for {sorted(missing)}")
        self.product = product
        self.discount_curve = discount_curve
        curves = {n: survival_curves[n] for n in product.names}
        self.model = SemiAnalyticBasketModel(
            as_of, curves, recovery, correlation, quadrature_points, defaulted
        )
        self._check_not_triggered()

    def _check_not_triggered(self) -> None:
        product = self.product
        if isinstance(product, NthToDefault):
            if self.model.n_defaulted >= product.k:
                raise ValueError(
                    f"CRITICAL: {product.k}-th to default already triggered "
                    f"({self.model.n_defaulted} names defaulted)"
                )
        elif self.model.realized_loss >= product.detachment:
            raise ValueError(
                f"CRITICAL: Tranche exhausted, realised loss {self.model.realized_loss:.6f} "
                f">= detachment {product.detachment}"
            )

    # ------------------------------------------------------------------
    # Expected loss and outstanding notional
    # ------------------------------------------------------------------

    def _average_lgd(self) -> float:
        return float(np.mean([1.0 - self.model.recoveries[n] for n in self.model.live_names]))

    def _expected_loss(self, d: date) -> float:
        """Expected protection payout by ``d`` per unit of contract notional."""
        product = self.product
        if isinstance(product, NthToDefault):
            return self.model.nth_default_probability(d, product.k) * self._average_lgd()
        return self.model.expected_tranche_loss(d, product.attachment, product.detachment)

    def _outstanding(self, d: date) -> float:
        product = self.product
        if isinstance(product, NthToDefault):
            return 1.0 - self.model.nth_default_probability(d, product.k)
        return 1.0 - self.model.expected_tranche_loss(d, product.attachment, product.detachment)

    def _contract_notional(self) -> float:
        product = self.product
        if isinstance(product, BasketCDS):
            return product.tranche_notional
        return product.notional

    # ------------------------------------------------------------------
    # Legs
    # ------------------------------------------------------------------

    def protection_start(self) -> date:
        return max(self.as_of, self.product.effective)

    def protection_leg(self) -> float:
        total = 0.0
        prev_date = self.protection_start()
        prev_loss = self._expected_loss(prev_date)
        for period in _live_periods(self.product, self.as_of):
            end = min(period.accrual_end, self.product.maturity)
            if end <= prev_date:
                continue
            loss = self._expected_loss(end)
            mid = prev_date + timedelta(days=(end - prev_date).days // 2)
            total += (loss - prev_loss) * self.discount_curve.discount_factor(mid)
            prev_date, prev_loss = end, loss
        return self._contract_notional() * total

    def risky_annuity(self) -> float:
        """Premium leg value per unit of running premium."""
        total = 0.0
        for period in _live_periods(self.product, self.as_of):
            start = max(period.accrual_start, self.as_of)
            outstanding = 0.5 * (self._outstanding(start) + self._outstanding(period.accrual_end))
            tau = period.fraction(self.product.day_count)
            total += tau * self.discount_curve.discount_factor(period.payment_date) * outstanding
        return self._contract_notional() * total

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------

    def pv(self) -> float:
        """Protection buyer value."""
        return self.protection_leg() - self.product.premium * self.risky_annuity()

    def breakeven_spread(self) -> float:
        annuity = self.risky_annuity()
        if annuity <= 0:
            raise ValueError("CRITICAL: Risky annuity is zero, no premium left to pay")
        return self.protection_leg() / annuity

    def price(self) -> PricingResult:
        protection = self.protection_leg()
        annuity = self.risky_annuity()
        return PricingResult(
            present_value=protection - self.product.premium * annuity,
            details={
                "protection_leg": protection,
                "risky_annuity": annuity,
                "breakeven_spread": protection / annuity if annuity > 0 else float("nan"),
                "defaulted_names": self.model.n_defaulted,
            },
            as_of_date=self.as_of,
        )


# =============================================================================
# Monte Carlo pricer
# =============================================================================

@dataclass(frozen=True)
class BasketMCResult:
    """
    Monte Carlo k-th to default result (values per unit notional).

    Attributes
    ----------
    protection_leg : float
        Mean discounted protection payment
    risky_annuity : float
        Mean discounted premium leg per unit premium
    breakeven_spread : float
        protection_leg / risky_annuity
    standard_error : float
        Standard error of the breakeven spread (delta method)
    trigger_probability : float
        Fraction of paths with the k-th default between the effective
        date (or valuation date, if later) and maturity
    n_paths : int
        Number of scenarios
    """

    protection_leg: float
    risky_annuity: float
    breakeven_spread: float
    standard_error: float
    trigger_probability: float
    n_paths: int

    @property
    def confidence_interval(self) -> tuple[float, float]:
        """95% interval on the breakeven spread."""
        return (
            self.breakeven_spread - 1.96 * self.standard_error,
            self.breakeven_spread + 1.96 * self.standard_error,
        )


class MonteCarloBasketPricer(BasePricer):
    """
    Monte Carlo k-th to default pricer.

    Correlated uniforms from the copula are mapped to default times by
    inverting each name's default probability curve; the k-th smallest
    live default time triggers the protection payment. A k-th default before
    a forward-start effective date knocks the contract out.

    Parameters
    ----------
    product : NthToDefault
        Contract
    as_of : date
        Valuation date
    discount_curve : DiscountCurve
        Discounting curve
    survival_curves : Mapping[str, SurvivalCurve]
        Survival curve per name
    recovery : float or Mapping[str, float], optional
        Recovery rate(s)
    copula : Copula, optional
        Default dependence (default: independent Gaussian)
    n_paths : int, optional
        Scenarios (default from settings)
    engine : RNGEngine
        Uniform generator
    seed : int, optional
        Seed (default from settings)
    defaulted : Mapping[str, date], optional
        Names known to have defaulted

    Notes
    -----
    Standard errors assume independent scenarios; for SOBOL and HALTON
    they are indicative only.
    """

    def __init__(
        self,
        product: NthToDefault,
        as_of: date,
        discount_curve: DiscountCurve,
        survival_curves: Mapping[str, SurvivalCurve],
        recovery: Union[float, Mapping[str, float], None] = None,
        copula: Optional[Copula] = None,
        n_paths: Optional[int] = None,
        engine: RNGEngine = RNGEngine.PSEUDO,
        seed: Optional[int] = None,
        defaulted: Optional[Mapping[str, date]] = None,
    ):
        super().__init__(as_of)
        if not isinstance(product, NthToDefault):
            raise ValueError(
                f"CRITICAL: Monte Carlo pricing supports NthToDefault only, got {type(product).__name__}"
            )
        missing = set(product.names) - set(survival_curves)
        if missing:
            raise ValueError(f"CRITICAL: Missing survival curves for {sorted(missing)}")
        self.product = product
        self.discount_curve = discount_curve
        self.curves = {n: survival_curves[n] for n in product.names}
        self.recoveries = resolve_recoveries(self.curves, recovery)
        self.copula = copula or Copula()
        self.n_paths = n_paths or SETTINGS.monte_carlo.n_paths
        self.engine = engine
        self.seed = seed
        self.defaulted_names = defaulted_names(as_of, self.curves, defaulted)
        self.live_names = [n for n in product.names if n not in self.defaulted_names]
        self.k_live = product.k - len(self.defaulted_names)
        if self.k_live <= 0:
            raise ValueError(
                f"CRITICAL: {product.k}-th to default already triggered "
                f"({len(self.defaulted_names)} names defaulted)"
            )
        self._result: Optional[BasketMCResult] = None

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def _day_grid(self) -> np.ndarray:
        horizon = (self.product.maturity - self.as_of).days
        grid = np.arange(0, horizon, _GRID_DAYS)
        return np.append(grid, horizon).astype(float)

    def _df(self, days: np.ndarray) -> np.ndarray:
        offset = self.discount_curve.time(self.as_of)
        return np.asarray(
            self.discount_curve.value_at_time(offset + days / SETTINGS.curve.time_basis_days)
        )

    def default_times(self) -> np.ndarray:
        """
        Simulated default times in days after ``as_of`` for live names,
        shape (n_paths, n_live); ``inf`` where a name survives maturity.
        """
        grid = self._day_grid()
        n_live = len(self.live_names)
        u = uniforms(self.n_paths, self.copula.dimension(n_live), self.engine, self.seed)
        v = self.copula.default_uniforms(u, n_live)
        times = np.full(v.shape, np.inf)
        for i, name in enumerate(self.live_names):
            curve = self.curves[name]
            pd_grid = np.array([
                1.0 - curve.conditional_survival(self.as_of, self.as_of + timedelta(days=int(g)))
                for g in grid
            ])
            hit = v[:, i] <= pd_grid[-1]
            times[hit, i] = np.interp(v[hit, i], pd_grid, grid)
        return times

    def simulate(self) -> BasketMCResult:
        if self._result is not None:
            return self._result

        product = self.product
        horizon = float((product.maturity - self.as_of).days)
        start_offset = float(max((product.effective - self.as_of).days, 0))
        times = self.default_times()
        order = np.argsort(times, axis=1)
        kth_index = order[:, self.k_live - 1]
        tau = np.take_along_axis(times, order, axis=1)[:, self.k_live - 1]
        # k-th default before the effective date knocks the contract out
        triggered = (tau >= start_offset) & (tau <= horizon)

        lgd = np.array([1.0 - self.recoveries[n] for n in self.live_names])
        tau_safe = np.where(triggered, tau, horizon)
        df_tau = self._df(tau_safe)
        protection = np.where(triggered, lgd[kth_index] * df_tau, 0.0)

        annuity = np.zeros(self.n_paths)
        for period in _live_periods(product, self.as_of):
            start = float((period.accrual_start - self.as_of).days)
            end = float((period.accrual_end - self.as_of).days)
            accrual = period.fraction(product.day_count)
            df_pay = self.discount_curve.discount_factor(period.payment_date)
            alive = tau > end
            annuity += np.where(alive, accrual * df_pay, 0.0)
            in_period = triggered & (tau > max(start, 0.0)) & (tau <= end)
            partial = accrual * (tau_safe - start) / (end - start) * df_tau
            annuity += np.where(in_period, partial, 0.0)

        mean_protection = float(protection.mean())
        mean_annuity = float(annuity.mean())
        if mean_annuity <= 0:
            raise ValueError("CRITICAL: Simulated risky annuity is zero")
        breakeven = mean_protection / mean_annuity

        # delta method on the ratio estimator
        residual = pair_average(protection - breakeven * annuity, self.engine)
        se = float(residual.std(ddof=1) / np.sqrt(len(residual)) / mean_annuity)

        self._result = BasketMCResult(
            protection_leg=mean_protection,
            risky_annuity=mean_annuity,
            breakeven_spread=breakeven,
            standard_error=se,
            trigger_probability=float(triggered.mean()),
            n_paths=self.n_paths,
        )
        logger.debug(f"MC basket k={product.k} paths={self.n_paths} "
                     f"spread={breakeven:.6f} se={se:.2e}")
        return self._result

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------

    def breakeven_spread(self) -> float:
        return self.simulate().breakeven_spread

    def pv(self) -> float:
        """Protection buyer value."""
        result = self.simulate()
        return self.product.notional * (
            result.protection_leg - self.product.premium * result.risky_annuity
        )

    def price(self) -> PricingResult:
        result = self.simulate()
        return PricingResult(
            present_value=self.pv(),
            details={
                "protection_leg": self.product.notional * result.protection_leg,
                "risky_annuity": self.product.notional * result.risky_annuity,
                "breakeven_spread": result.breakeven_spread,
                "standard_error": result.standard_error,
                "trigger_probability": result.trigger_probability,
            },
            as_of_date=self.as_of,
        )
