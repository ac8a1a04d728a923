"""
Unit tests for k-th to default and tranche basket swaps.
"""

from datetime import date

import pytest

from fi_toolkit.config.tolerances import mc_tolerance
from fi_toolkit.curves import DiscountCurve, SurvivalCurve
from fi_toolkit.models import Copula, CopulaType, RNGEngine, SemiAnalyticBasketModel
from fi_toolkit.products import (
    BasketCDS,
    MonteCarloBasketPricer,
    NthToDefault,
    SemiAnalyticBasketPricer,
)

AS_OF = date(2024, 1, 2)
MATURITY = date(2029, 1, 2)
NAMES = ("A", "B", "C", "D", "E")


@pytest.fixture
def curve() -> DiscountCurve:
    return DiscountCurve.flat(AS_OF, 0.03)


@pytest.fixture
def survival() -> dict[str, SurvivalCurve]:
    return {n: SurvivalCurve.flat(AS_OF, 0.02) for n in NAMES}


def _ntd(k: int = 1, names: tuple[str, ...] = NAMES, premium: float = 0.01) -> NthToDefault:
    return NthToDefault(names, AS_OF, MATURITY, premium, k=k)


class TestBasketContracts:
    """Tests for contract validation."""

    def test_k_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            _ntd(k=6)

    def test_duplicate_names(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            _ntd(names=("A", "A"))

    def test_empty_basket(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            _ntd(names=())

    def test_negative_premium(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            _ntd(premium=-0.01)

    def test_invalid_tranche(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            BasketCDS(NAMES, AS_OF, MATURITY, 0.01, attachment=0.3, detachment=0.2)

    def test_tranche_notional(self) -> None:
        tranche = BasketCDS(NAMES, AS_OF, MATURITY, 0.01, notional=1e7,
                            attachment=0.03, detachment=0.07)
        assert tranche.tranche_notional == pytest.approx(4e5)


class TestSemiAnalyticBasketPricer:
    """Tests for the one-factor Gaussian basket pricer."""

    def test_single_name_credit_triangle(self, curve: DiscountCurve) -> None:
        """[T1] A one-name basket pays about hazard * (1 - R)."""
        pricer = SemiAnalyticBasketPricer(
            _ntd(names=("A",)), AS_OF, curve, {"A": SurvivalCurve.flat(AS_OF, 0.02)}, 0.4
        )
        assert pricer.breakeven_spread() == pytest.approx(0.012, abs=2e-4)

    def test_pv_zero_at_breakeven(self, curve: DiscountCurve, survival: dict) -> None:
        pricer = SemiAnalyticBasketPricer(_ntd(), AS_OF, curve, survival, 0.4, correlation=0.3)
        spread = pricer.breakeven_spread()
        at_par = SemiAnalyticBasketPricer(_ntd(premium=spread), AS_OF, curve, survival, 0.4,
                                          correlation=0.3)
        assert at_par.pv() == pytest.approx(0.0, abs=1e-12)

    def test_spreads_decrease_with_k(self, curve: DiscountCurve, survival: dict) -> None:
        spreads = [
            SemiAnalyticBasketPricer(_ntd(k), AS_OF, curve, survival, 0.4, correlation=0.3)
            .breakeven_spread()
            for k in range(1, 6)
        ]
        assert all(a > b for a, b in zip(spreads, spreads[1:]))

    def test_first_to_default_falls_with_correlation(
        self, curve: DiscountCurve, survival: dict
    ) -> None:
        low = SemiAnalyticBasketPricer(_ntd(), AS_OF, curve, survival, 0.4, correlation=0.1)
        high = SemiAnalyticBasketPricer(_ntd(), AS_OF, curve, survival, 0.4, correlation=0.7)
        assert high.breakeven_spread() < low.breakeven_spread()

    def test_first_to_default_bounds(self, curve: DiscountCurve, survival: dict) -> None:
        """Single-name spread <= FTD spread <= sum of single-name spreads."""
        single = SemiAnalyticBasketPricer(
            _ntd(names=("A",)), AS_OF, curve, {"A": survival["A"]}, 0.4
        ).breakeven_spread()
        ftd = SemiAnalyticBasketPricer(
            _ntd(), AS_OF, curve, survival, 0.4, correlation=0.3
        ).breakeven_spread()
        assert single < ftd < len(NAMES) * single

    def test_full_basket_spread_independent_of_correlation(
        self, curve: DiscountCurve, survival: dict
    ) -> None:
        product = BasketCDS(NAMES, AS_OF, MATURITY, 0.01)
        spreads = [
            SemiAnalyticBasketPricer(product, AS_OF, curve, survival, 0.4, correlation=rho)
            .breakeven_spread()
            for rho in (0.0, 0.5)
        ]
        assert spreads[0] == pytest.approx(spreads[1], abs=1e-5)
        assert spreads[0] == pytest.approx(0.012, abs=5e-4)

    def test_equity_tranche_wider_than_senior(self, curve: DiscountCurve, survival: dict) -> None:
        equity = BasketCDS(NAMES, AS_OF, MATURITY, 0.01, attachment=0.0, detachment=0.1)
        senior = BasketCDS(NAMES, AS_OF, MATURITY, 0.01, attachment=0.3, detachment=1.0)
        eq = SemiAnalyticBasketPricer(equity, AS_OF, curve, survival, 0.4, correlation=0.3)
        sn = SemiAnalyticBasketPricer(senior, AS_OF, curve, survival, 0.4, correlation=0.3)
        assert eq.breakeven_spread() > sn.breakeven_spread()

    def test_protection_scales_with_notional(self, curve: DiscountCurve, survival: dict) -> None:
        unit = SemiAnalyticBasketPricer(_ntd(), AS_OF, curve, survival, 0.4)
        big = SemiAnalyticBasketPricer(
            NthToDefault(NAMES, AS_OF, MATURITY, 0.01, notional=1e6), AS_OF, curve, survival, 0.4
        )
        assert big.protection_leg() == pytest.approx(1e6 * unit.protection_leg())

    def test_missing_curve(self, curve: DiscountCurve, survival: dict) -> None:
        survival.pop("E")
        with pytest.raises(ValueError, match="Missing survival curves"):
            SemiAnalyticBasketPricer(_ntd(), AS_OF, curve, survival, 0.4)

    def test_triggered_contract_rejected(self, curve: DiscountCurve, survival: dict) -> None:
        with pytest.raises(ValueError, match="already triggered"):
            SemiAnalyticBasketPricer(_ntd(k=1), AS_OF, curve, survival, 0.4,
                                     defaulted={"A": date(2023, 11, 1)})

    def test_exhausted_tranche_rejected(self, curve: DiscountCurve, survival: dict) -> None:
        equity = BasketCDS(NAMES, AS_OF, MATURITY, 0.01, attachment=0.0, detachment=0.1)
        with pytest.raises(ValueError, match="exhausted"):
            SemiAnalyticBasketPricer(equity, AS_OF, curve, survival, 0.4,
                                     defaulted={"A": date(2023, 11, 1)})

    def test_second_to_default_after_one_default(
        self, curve: DiscountCurve, survival: dict
    ) -> None:
        """Once a name has defaulted the 2nd-to-default behaves like a FTD on the rest."""
        after = SemiAnalyticBasketPricer(_ntd(k=2), AS_OF, curve, survival, 0.4, correlation=0.3,
                                         defaulted={"A": date(2023, 11, 1)})
        rest = NAMES[1:]
        ftd = SemiAnalyticBasketPricer(_ntd(names=rest), AS_OF, curve,
                                       {n: survival[n] for n in rest}, 0.4, correlation=0.3)
        assert after.breakeven_spread() == pytest.approx(ftd.breakeven_spread(), rel=1e-10)

    def test_price_details(self, curve: DiscountCurve, survival: dict) -> None:
        result = SemiAnalyticBasketPricer(_ntd(), AS_OF, curve, survival, 0.4).price()
        assert result.details["defaulted_names"] == 0
        assert result.details["breakeven_spread"] == pytest.approx(
            result.details["protection_leg"] / result.details["risky_annuity"]
        )


class TestMonteCarloBasketPricer:
    """Tests for the simulated k-th to default pricer."""

    def test_rejects_tranches(self, curve: DiscountCurve, survival: dict) -> None:
        with pytest.raises(ValueError, match="NthToDefault only"):
            MonteCarloBasketPricer(BasketCDS(NAMES, AS_OF, MATURITY, 0.01), AS_OF, curve, survival)

    def test_seeded_runs_reproducible(self, curve: DiscountCurve, survival: dict) -> None:
        a = MonteCarloBasketPricer(_ntd(), AS_OF, curve, survival, 0.4, n_paths=2000, seed=1)
        b = MonteCarloBasketPricer(_ntd(), AS_OF, curve, survival, 0.4, n_paths=2000, seed=1)
        assert a.breakeven_spread() == b.breakeven_spread()

    def test_result_cached(self, curve: DiscountCurve, survival: dict) -> None:
        pricer = MonteCarloBasketPricer(_ntd(), AS_OF, curve, survival, 0.4, n_paths=1000, seed=2)
        assert pricer.simulate() is pricer.simulate()

    def test_default_times_shape(self, curve: DiscountCurve, survival: dict) -> None:
        pricer = MonteCarloBasketPricer(_ntd(), AS_OF, curve, survival, 0.4, n_paths=500, seed=3)
        times = pricer.default_times()
        assert times.shape == (500, 5)
        finite = times[times < float("inf")]
        assert (finite >= 0).all()
        assert (finite <= (MATURITY - AS_OF).days).all()

    def test_trigger_probability_matches_model(self, curve: DiscountCurve, survival: dict) -> None:
        copula = Copula(CopulaType.GAUSSIAN, 0.3)
        result = MonteCarloBasketPricer(
            _ntd(), AS_OF, curve, survival, 0.4, copula=copula, n_paths=20000, seed=11
        ).simulate()
        model = SemiAnalyticBasketModel(AS_OF, survival, 0.4, correlation=0.3)
        expected = model.nth_default_probability(MATURITY, 1)
        p = result.trigger_probability
        se = (p * (1 - p) / result.n_paths) ** 0.5
        assert p == pytest.approx(expected, abs=mc_tolerance(se))

    def test_antithetic_engine(self, curve: DiscountCurve, survival: dict) -> None:
        result = MonteCarloBasketPricer(
            _ntd(), AS_OF, curve, survival, 0.4, n_paths=4000,
            engine=RNGEngine.ANTITHETIC, seed=5,
        ).simulate()
        assert result.standard_error > 0
        low, high = result.confidence_interval
        assert low < result.breakeven_spread < high

    def test_student_t_copula_runs(self, curve: DiscountCurve, survival: dict) -> None:
        copula = Copula(CopulaType.STUDENT_T, 0.3, dof=5)
        result = MonteCarloBasketPricer(
            _ntd(k=2), AS_OF, curve, survival, 0.4, copula=copula, n_paths=4000, seed=6
        ).simulate()
        assert 0.0 < result.breakeven_spread < 0.1

    def test_triggered_contract_rejected(self, curve: DiscountCurve, survival: dict) -> None:
        with pytest.raises(ValueError, match="already triggered"):
            MonteCarloBasketPricer(_ntd(k=1), AS_OF, curve, survival, 0.4,
                                   defaulted={"B": date(2023, 11, 1)})

    def test_price_scales_with_notional(self, curve: DiscountCurve, survival: dict) -> None:
        product = NthToDefault(NAMES, AS_OF, MATURITY, 0.01, notional=1e6)
        pricer = MonteCarloBasketPricer(product, AS_OF, curve, survival, 0.4, n_paths=2000, seed=7)
        result = pricer.simulate()
        assert pricer.pv() == pytest.approx(
            1e6 * (result.protection_leg - 0.01 * result.risky_annuity)
        )


class TestForwardStartBasket:
    """Contracts whose effective date is after the valuation date."""

    EFFECTIVE = date(2027, 1, 2)
    NAMES3 = ("A", "B", "C")

    @pytest.fixture
    def zero_curve(self) -> DiscountCurve:
        return DiscountCurve.flat(AS_OF, 0.0)

    @pytest.fixture
    def flat5(self) -> dict[str, SurvivalCurve]:
        return {n: SurvivalCurve.flat(AS_OF, 0.05) for n in self.NAMES3}

    def _forward_ftd(self, premium: float = 0.01) -> NthToDefault:
        return NthToDefault(self.NAMES3, self.EFFECTIVE, MATURITY, premium, k=1)

    def _window_probability(self, flat5: dict) -> float:
        """[T1] P(first default in [effective, maturity]) = S(eff)^3 - S(mat)^3."""
        s = flat5["A"]
        return s.survival_probability(self.EFFECTIVE) ** 3 - s.survival_probability(MATURITY) ** 3

    def test_protection_starts_at_effective(self, zero_curve: DiscountCurve, flat5: dict) -> None:
        pricer = SemiAnalyticBasketPricer(self._forward_ftd(), AS_OF, zero_curve, flat5, 0.4)
        assert pricer.protection_start() == self.EFFECTIVE
        expected = 0.6 * self._window_probability(flat5)
        assert pricer.protection_leg() == pytest.approx(expected, rel=1e-9)

    def test_protection_start_is_valuation_date_once_seasoned(
        self, zero_curve: DiscountCurve, flat5: dict
    ) -> None:
        seasoned = NthToDefault(self.NAMES3, date(2023, 6, 1), MATURITY, 0.01, k=1)
        pricer = SemiAnalyticBasketPricer(seasoned, AS_OF, zero_curve, flat5, 0.4)
        assert pricer.protection_start() == AS_OF

    def test_forward_start_cheaper_than_spot(self, zero_curve: DiscountCurve, flat5: dict) -> None:
        forward = SemiAnalyticBasketPricer(self._forward_ftd(), AS_OF, zero_curve, flat5, 0.4)
        spot = SemiAnalyticBasketPricer(
            NthToDefault(self.NAMES3, AS_OF, MATURITY, 0.01, k=1), AS_OF, zero_curve, flat5, 0.4
        )
        assert forward.protection_leg() < spot.protection_leg()
        assert forward.risky_annuity() < spot.risky_annuity()

    def test_forward_start_full_tranche(self, zero_curve: DiscountCurve, flat5: dict) -> None:
        """Losses before the effective date erode the tranche without a payment."""
        product = BasketCDS(self.NAMES3, self.EFFECTIVE, MATURITY, 0.01)
        pricer = SemiAnalyticBasketPricer(product, AS_OF, zero_curve, flat5, 0.4)
        s = flat5["A"]
        expected = 0.6 * (s.survival_probability(self.EFFECTIVE) - s.survival_probability(MATURITY))
        assert pricer.protection_leg() == pytest.approx(expected, rel=1e-9)

    def test_monte_carlo_matches_window(self, zero_curve: DiscountCurve, flat5: dict) -> None:
        result = MonteCarloBasketPricer(
            self._forward_ftd(), AS_OF, zero_curve, flat5, 0.4, n_paths=2 ** 15, seed=42
        ).simulate()
        expected = self._window_probability(flat5)
        p = result.trigger_probability
        se = (p * (1 - p) / result.n_paths) ** 0.5
        # default times are interpolated on a coarse day grid
        assert p == pytest.approx(expected, abs=mc_tolerance(se) + 1e-3)
        assert result.protection_leg == pytest.approx(0.6 * expected,
                                                      abs=0.6 * (mc_tolerance(se) + 1e-3))

    def test_monte_carlo_agrees_with_semi_analytic(
        self, zero_curve: DiscountCurve, flat5: dict
    ) -> None:
        semi = SemiAnalyticBasketPricer(self._forward_ftd(), AS_OF, zero_curve, flat5, 0.4)
        result = MonteCarloBasketPricer(
            self._forward_ftd(), AS_OF, zero_curve, flat5, 0.4, n_paths=2 ** 15, seed=42
        ).simulate()
        assert result.breakeven_spread == pytest.approx(
            semi.breakeven_spread(), abs=mc_tolerance(result.standard_error) + 5e-4
        )
