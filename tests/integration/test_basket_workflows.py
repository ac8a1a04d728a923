"""
Basket workflow tests: survival curves -> basket model -> NTD and tranche pricing.

Covers:
1. Defaulted names: removing them from the basket is equivalent to
   rescaling the tranche on the surviving names
2. k-th to default with defaulted names matches a smaller basket
3. Monte Carlo against the semi-analytic pricer

References:
    [T1] O'Kane (2008) Modelling Single-name and Multi-name Credit Derivatives, Ch. 14, 18
"""

from datetime import date

import pytest

from fi_toolkit.config.tolerances import mc_tolerance
from fi_toolkit.curves import DiscountCurve, SurvivalCurve
from fi_toolkit.loaders import SyntheticQuoteProvider
from fi_toolkit.models import Copula, CopulaType, RNGEngine, SemiAnalyticBasketModel
from fi_toolkit.products import MonteCarloBasketPricer, NthToDefault, SemiAnalyticBasketPricer

AS_OF = date(2024, 1, 2)
HORIZON = date(2029, 1, 2)
DEFAULT_DATE = date(2023, 9, 15)
RECOVERY = 0.4


@pytest.fixture(scope="module")
def curves() -> dict[str, SurvivalCurve]:
    """100 names with hazards spread between 0.5% and 4%."""
    return SyntheticQuoteProvider(seed=7).basket_curves(AS_OF, 100, hazard_range=(0.005, 0.04))


@pytest.fixture
def discount_curve() -> DiscountCurve:
    return DiscountCurve.flat(AS_OF, 0.03)


# =============================================================================
# Defaulted Names
# =============================================================================

@pytest.mark.integration
class TestDefaultedNameEquivalence:
    """[T1] Realised losses shift the tranche; live names carry the rest."""

    def test_tranche_rescaling(self, curves: dict[str, SurvivalCurve]) -> None:
        names = list(curves)
        defaulted = {n: DEFAULT_DATE for n in names[:10]}
        live = {n: curves[n] for n in names[10:]}
        full = SemiAnalyticBasketModel(AS_OF, curves, RECOVERY, 0.3, defaulted=defaulted)
        reduced = SemiAnalyticBasketModel(AS_OF, live, RECOVERY, 0.3)

        assert full.n_defaulted == 10
        assert full.realized_loss == pytest.approx(0.06)

        # 10 defaults at 60% LGD eat 6% of the basket; 90 names remain
        attachment, detachment = 0.03, 0.10
        reduced_detachment = (detachment - 0.06) * 100 / 90
        full_loss = full.expected_tranche_loss(HORIZON, attachment, detachment)
        reduced_loss = reduced.expected_tranche_loss(HORIZON, 0.0, reduced_detachment)
        expected = 0.03 + 0.9 * reduced_detachment * reduced_loss
        assert full_loss * (detachment - attachment) == pytest.approx(expected, rel=1e-10)

    def test_expected_loss_adds_realised(self, curves: dict[str, SurvivalCurve]) -> None:
        names = list(curves)
        defaulted = {n: DEFAULT_DATE for n in names[:10]}
        full = SemiAnalyticBasketModel(AS_OF, curves, RECOVERY, 0.3, defaulted=defaulted)
        reduced = SemiAnalyticBasketModel(AS_OF, {n: curves[n] for n in names[10:]}, RECOVERY, 0.3)
        assert full.expected_loss(HORIZON) == pytest.approx(
            0.06 + 0.9 * reduced.expected_loss(HORIZON), rel=1e-10
        )

    def test_kth_to_default_matches_smaller_basket(
        self, curves: dict[str, SurvivalCurve], discount_curve: DiscountCurve
    ) -> None:
        names = tuple(list(curves)[:8])
        defaulted = {names[0]: DEFAULT_DATE, names[1]: DEFAULT_DATE}
        third = NthToDefault(names, AS_OF, HORIZON, 0.02, k=3)
        first = NthToDefault(names[2:], AS_OF, HORIZON, 0.02, k=1)

        with_defaults = SemiAnalyticBasketPricer(
            third, AS_OF, discount_curve, curves, RECOVERY, 0.3, defaulted=defaulted
        )
        smaller = SemiAnalyticBasketPricer(first, AS_OF, discount_curve, curves, RECOVERY, 0.3)
        assert with_defaults.pv() == pytest.approx(smaller.pv(), rel=1e-10)
        assert with_defaults.breakeven_spread() == pytest.approx(smaller.breakeven_spread(), rel=1e-10)

    def test_triggered_contract_rejected(
        self, curves: dict[str, SurvivalCurve], discount_curve: DiscountCurve
    ) -> None:
        names = tuple(list(curves)[:5])
        ftd = NthToDefault(names, AS_OF, HORIZON, 0.02, k=1)
        with pytest.raises(ValueError, match="already triggered"):
            SemiAnalyticBasketPricer(
                ftd, AS_OF, discount_curve, curves, RECOVERY, defaulted={names[0]: DEFAULT_DATE}
            )


# =============================================================================
# Monte Carlo vs Semi-Analytic
# =============================================================================

@pytest.mark.integration
@pytest.mark.slow
class TestMonteCarloAgreement:
    """Simulated k-th to default spreads agree with the semi-analytic model."""

    @pytest.mark.parametrize("k", [1, 2])
    @pytest.mark.parametrize("engine", [RNGEngine.PSEUDO, RNGEngine.SOBOL])
    def test_breakeven_spread(
        self,
        curves: dict[str, SurvivalCurve],
        discount_curve: DiscountCurve,
        k: int,
        engine: RNGEngine,
    ) -> None:
        names = tuple(list(curves)[:5])
        ntd = NthToDefault(names, AS_OF, HORIZON, 0.0, k=k)
        analytic = SemiAnalyticBasketPricer(
            ntd, AS_OF, discount_curve, curves, RECOVERY, 0.3
        ).breakeven_spread()
        result = MonteCarloBasketPricer(
            ntd, AS_OF, discount_curve, curves, RECOVERY,
            copula=Copula(CopulaType.GAUSSIAN, 0.3),
            n_paths=2**16,
            engine=engine,
            seed=42,
        ).simulate()

        # period discretisation of the semi-analytic legs adds a small bias
        tolerance = mc_tolerance(result.standard_error) + 0.01 * analytic
        assert abs(result.breakeven_spread - analytic) <= tolerance, (
            f"MC {result.breakeven_spread:.6f} +/- {result.standard_error:.2e} "
            f"vs analytic {analytic:.6f}"
        )
