"""
Tests for Tolerance Framework - config/tolerances.py.

Verifies tolerance values, CLT-based MC tolerance calculations,
and the tolerance registry.
"""

import math

import numpy as np
import pytest

from fi_toolkit.config.tolerances import (
    BASKET_PROBABILITY_TOLERANCE,
    BOND_PRICE_TOLERANCE,
    CALIBRATION_TOLERANCE,
    COPULA_FIT_TOLERANCE,
    CROSS_LIBRARY_PRICE_TOLERANCE,
    CROSS_LIBRARY_TOLERANCE,
    CURVE_ARITHMETIC_TOLERANCE,
    FINITE_DIFFERENCE_TOLERANCE,
    MARGIN_VALUE_TOLERANCE,
    ROOT_FINDER_XTOL,
    TOLERANCE_REGISTRY,
    YIELD_TOLERANCE,
    get_tolerance,
    mc_tolerance,
)

# =============================================================================
# Tier 1: Analytical Tolerances
# =============================================================================


class TestTier1AnalyticalTolerances:
    """Tests for Tier 1 analytical tolerances."""

    def test_curve_arithmetic_near_machine_precision(self) -> None:
        eps = np.finfo(float).eps
        assert eps < CURVE_ARITHMETIC_TOLERANCE <= 1e-10

    def test_calibration_below_hundredth_of_basis_point(self) -> None:
        """Repricing error must be invisible at quote precision (1e-6)."""
        assert CALIBRATION_TOLERANCE <= 1e-8
        assert CALIBRATION_TOLERANCE > 0

    def test_root_finder_tighter_than_calibration(self) -> None:
        """brentq must converge well inside the repricing tolerance."""
        assert ROOT_FINDER_XTOL < CALIBRATION_TOLERANCE

    def test_finite_difference_near_sqrt_eps(self) -> None:
        sqrt_eps = math.sqrt(np.finfo(float).eps)  # ~1.5e-8
        assert sqrt_eps * 100 >= FINITE_DIFFERENCE_TOLERANCE
        assert sqrt_eps / 100 <= FINITE_DIFFERENCE_TOLERANCE


# =============================================================================
# Tier 2: Cross-Library Tolerances
# =============================================================================


class TestTier2CrossLibraryTolerances:
    """Tests for Tier 2 cross-library tolerances."""

    def test_cross_library_tight(self) -> None:
        """Year fractions and flat discount factors are closed-form on both sides."""
        assert CROSS_LIBRARY_TOLERANCE <= 1e-8

    def test_price_tolerance_relative(self) -> None:
        assert CROSS_LIBRARY_PRICE_TOLERANCE < 1e-4


# =============================================================================
# Tier 3: Stochastic Tolerances
# =============================================================================


class TestTier3StochasticTolerances:
    """Tests for Tier 3 stochastic (MC) tolerances."""

    def test_mc_tolerance_default_four_sigma(self) -> None:
        assert mc_tolerance(0.001) == pytest.approx(0.004)

    def test_mc_tolerance_custom_confidence(self) -> None:
        tol_3sigma = mc_tolerance(0.01, confidence=3.0)
        tol_2sigma = mc_tolerance(0.01, confidence=2.0)
        assert tol_3sigma == pytest.approx(tol_2sigma * 1.5, rel=1e-10)

    def test_mc_tolerance_uses_absolute_error(self) -> None:
        assert mc_tolerance(-0.002) == pytest.approx(0.008)

    def test_mc_tolerance_scales_as_inverse_sqrt_paths(self) -> None:
        """[T1] SE of a Bernoulli estimate falls as 1/sqrt(N)."""
        p = 0.2
        tol_10k = mc_tolerance(math.sqrt(p * (1 - p) / 10_000))
        tol_100k = mc_tolerance(math.sqrt(p * (1 - p) / 100_000))
        assert tol_10k / tol_100k == pytest.approx(math.sqrt(10), rel=1e-10)

    def test_basket_probability_tolerance_reasonable(self) -> None:
        assert 1e-4 <= BASKET_PROBABILITY_TOLERANCE <= 0.05

    def test_copula_fit_tolerance_reasonable(self) -> None:
        assert 0.0 < COPULA_FIT_TOLERANCE <= 0.1


# =============================================================================
# Tier 4: Market Tolerances
# =============================================================================


class TestTier4MarketTolerances:
    """Tests for quote-precision tolerances."""

    def test_margin_to_the_cent(self) -> None:
        assert MARGIN_VALUE_TOLERANCE <= 0.01

    def test_bond_price_and_yield(self) -> None:
        assert BOND_PRICE_TOLERANCE <= 1e-4
        assert YIELD_TOLERANCE <= CALIBRATION_TOLERANCE


# =============================================================================
# Registry
# =============================================================================


class TestToleranceRegistry:
    """Tests for dynamic tolerance lookup."""

    def test_registry_contains_all_tiers(self) -> None:
        expected = {
            "curve_arithmetic", "calibration", "root_finder_xtol", "finite_difference",
            "cross_library", "cross_library_price",
            "basket_probability", "copula_fit",
            "margin_value", "bond_price", "yield",
        }
        assert set(TOLERANCE_REGISTRY) == expected

    def test_all_positive(self) -> None:
        assert all(v > 0 for v in TOLERANCE_REGISTRY.values())

    def test_get_tolerance(self) -> None:
        assert get_tolerance("calibration") == CALIBRATION_TOLERANCE

    def test_unknown_tolerance(self) -> None:
        with pytest.raises(KeyError, match="Unknown tolerance"):
            get_tolerance("not_a_tolerance")
