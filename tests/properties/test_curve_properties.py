"""
Property-based tests for discount and survival curves.

Properties tested:
1. Flat curve: P(t) = exp(-r t) at any date
2. Positive forwards give non-increasing discount factors everywhere
3. Pillars are reproduced exactly
4. A bump followed by the opposite bump restores the curve
5. Non-negative hazards give survival probabilities in (0, 1], non-increasing
6. Day count additivity for actual conventions

References:
    [T1] Hagan & West (2006) "Interpolation Methods for Curve Construction"
"""

from datetime import date, timedelta

import numpy as np
from hypothesis import given, settings
from hypothesis import strategies as st

from fi_toolkit.config.tolerances import CURVE_ARITHMETIC_TOLERANCE
from fi_toolkit.curves import DiscountCurve, SurvivalCurve
from fi_toolkit.dates import DayCount, year_fraction

AS_OF = date(2024, 1, 2)

# =============================================================================
# Strategy Definitions
# =============================================================================

rate_strategy = st.floats(min_value=-0.02, max_value=0.20, allow_nan=False, allow_infinity=False)
days_strategy = st.integers(min_value=1, max_value=40 * 365)
date_strategy = st.dates(min_value=date(1990, 1, 1), max_value=date(2060, 12, 31))


@st.composite
def piecewise_curve(draw, min_rate: float = 0.0):
    """Pillar dates and values from random piecewise-flat forwards."""
    n = draw(st.integers(min_value=1, max_value=8))
    gaps = draw(st.lists(st.integers(30, 1500), min_size=n, max_size=n))
    forwards = draw(st.lists(st.floats(min_rate, 0.15), min_size=n, max_size=n))
    days = np.cumsum(gaps)
    dates = [AS_OF + timedelta(days=int(d)) for d in days]
    dt = np.diff(np.concatenate([[0], days])) / 365.0
    values = np.exp(-np.cumsum(np.array(forwards) * dt))
    return dates, values


# =============================================================================
# Discount Curves
# =============================================================================

class TestDiscountCurveProperties:
    """[T1] Discount curve invariants."""

    @given(rate=rate_strategy, days=days_strategy)
    @settings(max_examples=200)
    def test_flat_curve_discount_factor(self, rate: float, days: int) -> None:
        curve = DiscountCurve.flat(AS_OF, rate)
        d = AS_OF + timedelta(days=days)
        expected = np.exp(-rate * days / 365.0)
        assert abs(curve.discount_factor(d) - expected) <= CURVE_ARITHMETIC_TOLERANCE

    @given(pillars=piecewise_curve(), query=st.lists(days_strategy, min_size=2, max_size=20))
    @settings(max_examples=200)
    def test_positive_forwards_monotone(self, pillars, query: list[int]) -> None:
        dates, values = pillars
        curve = DiscountCurve(AS_OF, dates, values)
        dfs = curve.discount_factors([AS_OF + timedelta(days=d) for d in sorted(query)])
        assert np.all(np.diff(dfs) <= CURVE_ARITHMETIC_TOLERANCE), f"DFs rise: {dfs}"
        assert np.all(dfs <= 1.0 + CURVE_ARITHMETIC_TOLERANCE)

    @given(pillars=piecewise_curve(min_rate=-0.01))
    @settings(max_examples=100)
    def test_pillars_reproduced(self, pillars) -> None:
        dates, values = pillars
        curve = DiscountCurve(AS_OF, dates, values)
        np.testing.assert_allclose(curve.discount_factors(dates), values, rtol=1e-12)

    @given(pillars=piecewise_curve(), shift=st.floats(-0.05, 0.05))
    @settings(max_examples=100)
    def test_bump_round_trip(self, pillars, shift: float) -> None:
        dates, values = pillars
        curve = DiscountCurve(AS_OF, dates, values)
        restored = curve.bumped(shift).bumped(-shift)
        np.testing.assert_allclose(restored.values, curve.values, rtol=1e-12)


# =============================================================================
# Survival Curves
# =============================================================================

class TestSurvivalCurveProperties:
    """[T1] Survival curve invariants."""

    @given(
        hazards=st.lists(st.floats(0.0, 0.5), min_size=1, max_size=6),
        query=st.lists(days_strategy, min_size=2, max_size=20),
    )
    @settings(max_examples=200)
    def test_survival_in_unit_interval_and_non_increasing(
        self, hazards: list[float], query: list[int]
    ) -> None:
        dates = [date(2025 + 2 * i, 1, 2) for i in range(len(hazards))]
        curve = SurvivalCurve.from_hazard_rates(AS_OF, dates, hazards)
        probs = np.array([curve.survival_probability(AS_OF + timedelta(days=d))
                          for d in sorted(query)])
        assert np.all(probs > 0.0)
        assert np.all(probs <= 1.0 + CURVE_ARITHMETIC_TOLERANCE)
        assert np.all(np.diff(probs) <= CURVE_ARITHMETIC_TOLERANCE)

    @given(hazard=st.floats(0.0, 1.0), days=days_strategy)
    @settings(max_examples=100)
    def test_default_probability_complement(self, hazard: float, days: int) -> None:
        curve = SurvivalCurve.flat(AS_OF, hazard)
        d = AS_OF + timedelta(days=days)
        total = curve.survival_probability(d) + curve.default_probability(d)
        assert abs(total - 1.0) <= CURVE_ARITHMETIC_TOLERANCE


# =============================================================================
# Day Counts
# =============================================================================

class TestDayCountProperties:
    """[T1] Actual conventions are additive over adjacent intervals."""

    @given(a=date_strategy, b=date_strategy, c=date_strategy)
    @settings(max_examples=200)
    def test_actual_additivity(self, a: date, b: date, c: date) -> None:
        start, mid, end = sorted([a, b, c])
        for dc in (DayCount.ACTUAL_360, DayCount.ACTUAL_365_FIXED):
            whole = year_fraction(start, end, dc)
            parts = year_fraction(start, mid, dc) + year_fraction(mid, end, dc)
            assert abs(whole - parts) <= 1e-12

    @given(start=date_strategy, months=st.integers(0, 480))
    @settings(max_examples=200)
    def test_thirty_360_whole_months(self, start: date, months: int) -> None:
        start = start.replace(day=min(start.day, 27))
        total = start.month - 1 + months
        end = date(start.year + total // 12, total % 12 + 1, start.day)
        assert abs(year_fraction(start, end, DayCount.THIRTY_360) - months / 12.0) <= 1e-12
