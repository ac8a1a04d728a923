"""
Unit tests for STIR futures pricing.

[T1] Expected values are hand calculations on a flat 5% continuously
compounded curve, 100 contracts, valued 9 May 2011.
"""

import math
from datetime import date, timedelta

import pytest

from fi_toolkit.curves import DiscountCurve
from fi_toolkit.dates import DayCount
from fi_toolkit.products.stir_future import (
    RateFutureType,
    StirFuture,
    StirFuturePricer,
    ho_lee_convexity,
)

AS_OF = date(2011, 5, 9)


@pytest.fixture
def flat_curve() -> DiscountCurve:
    return DiscountCurve.flat(AS_OF, 0.05)


def _pricer(future: StirFuture, curve: DiscountCurve, price: float, **kwargs) -> StirFuturePricer:
    return StirFuturePricer(future, AS_OF, 100, curve, price, **kwargs)


@pytest.fixture
def eurodollar() -> StirFuture:
    return StirFuture(
        RateFutureType.MONEY_MARKET_CASH_RATE,
        last_trading_date=date(2011, 6, 13),
        deposit_start=date(2011, 6, 15),
        deposit_end=date(2011, 9, 15),
    )


@pytest.fixture
def bank_bill() -> StirFuture:
    return StirFuture(
        RateFutureType.ASX_BANK_BILL,
        last_trading_date=date(2011, 6, 9),
        deposit_start=date(2011, 6, 9),
        deposit_end=date(2011, 9, 7),
        tick_size=1.0e-4,
        tick_value=24.33,
        day_count=DayCount.ACTUAL_365_FIXED,
    )


@pytest.fixture
def ois_future() -> StirFuture:
    return StirFuture(
        RateFutureType.GEOMETRIC_AVERAGE_RATE,
        last_trading_date=date(2011, 6, 8),
        deposit_start=date(2011, 6, 9),
        deposit_end=date(2011, 9, 9),
        tick_value=12.33,
        day_count=DayCount.ACTUAL_365_FIXED,
    )


def _compounded_rate() -> float:
    """[T1] Daily compounding of a flat 5% curve over the 92 day deposit."""
    return (math.exp(0.05 * 92 / 365) - 1.0) * 365 / 92


def _fed_funds(start: date, end: date) -> StirFuture:
    return StirFuture(
        RateFutureType.ARITHMETIC_AVERAGE_RATE,
        last_trading_date=end,
        deposit_start=start,
        deposit_end=end,
        contract_size=3_000_000.0,
        tick_value=12.33,
    )


# =============================================================================
# Known answers
# =============================================================================

class TestCashRateFuture:
    """[T1] CME-style cash rate future."""

    def test_model_rate(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        assert _pricer(eurodollar, flat_curve, 0.945875).model_rate() == pytest.approx(
            0.04962713, abs=5e-9
        )

    def test_contract_margin_value(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        assert _pricer(eurodollar, flat_curve, 0.945875).contract_margin_value() == 986468.75

    def test_pv(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        assert _pricer(eurodollar, flat_curve, 0.945875).pv() == pytest.approx(98759321.74, abs=0.01)

    def test_value_at_quoted_price(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        assert _pricer(eurodollar, flat_curve, 0.945875).value() == pytest.approx(98646875.00)

    def test_point_value_and_pv01(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        pricer = _pricer(eurodollar, flat_curve, 0.945875)
        assert pricer.point_value() == pytest.approx(25.0)
        assert pricer.tick_value() == 12.5
        assert pricer.pv01() == pytest.approx(-2500.0)

    def test_percentage_margin_value(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        pricer = _pricer(eurodollar, flat_curve, 0.945875)
        assert pricer.percentage_margin_value() == pytest.approx(0.98646875)


class TestBankBillFuture:
    """[T1] ASX 90 day bank bill future."""

    def test_model_rate(self, bank_bill: StirFuture, flat_curve: DiscountCurve) -> None:
        assert _pricer(bank_bill, flat_curve, 0.9731).model_rate() == pytest.approx(0.05030949, abs=5e-9)

    def test_contract_margin_value(self, bank_bill: StirFuture, flat_curve: DiscountCurve) -> None:
        assert _pricer(bank_bill, flat_curve, 0.9731).contract_margin_value() == 993410.83

    def test_pv(self, bank_bill: StirFuture, flat_curve: DiscountCurve) -> None:
        assert _pricer(bank_bill, flat_curve, 0.9731).pv() == pytest.approx(98774692.08, abs=0.01)

    def test_tick_value_is_price_sensitive(self, bank_bill: StirFuture, flat_curve: DiscountCurve) -> None:
        pricer = _pricer(bank_bill, flat_curve, 0.9731)
        expected = pricer.contract_margin_value(0.9731) - pricer.contract_margin_value(0.9730)
        assert pricer.tick_value() == pytest.approx(expected)
        assert 20.0 < pricer.tick_value() < 30.0


class TestAveragingFutures:
    """[T1] Daily overnight averaging contracts."""

    def test_geometric_model_rate(self, ois_future: StirFuture, flat_curve: DiscountCurve) -> None:
        assert _pricer(ois_future, flat_curve, 0.97525).model_rate() == pytest.approx(
            _compounded_rate(), abs=1e-10
        )
        assert _compounded_rate() == pytest.approx(0.05031640, abs=5e-9)

    def test_geometric_pv_and_margin(self, ois_future: StirFuture, flat_curve: DiscountCurve) -> None:
        pricer = _pricer(ois_future, flat_curve, 0.97525)
        # point value 24.66 per bp per contract
        assert pricer.pv() == pytest.approx(100 * (1e6 - _compounded_rate() * 246600.0), abs=0.01)
        assert pricer.contract_margin_value() == 993896.65

    def test_arithmetic_with_fixings(self, flat_curve: DiscountCurve) -> None:
        """Accrual started 2 May; the days before the valuation date use published fixings."""
        future = _fed_funds(date(2011, 5, 2), date(2011, 5, 31))
        fixings = {date(2011, 5, 2) + timedelta(days=i): 0.05 for i in range(7)}
        pricer = _pricer(future, flat_curve, 0.975, fixings=fixings)
        assert pricer.model_rate() == pytest.approx(0.04948296, abs=5e-9)
        assert pricer.pv() == pytest.approx(298779750.22, abs=0.01)
        assert pricer.contract_margin_value() == 2993835.00

    def test_arithmetic_forward_month(self, flat_curve: DiscountCurve) -> None:
        future = _fed_funds(date(2011, 6, 1), date(2011, 6, 30))
        assert _pricer(future, flat_curve, 0.975).model_rate() == pytest.approx(0.04931845, abs=5e-9)

    def test_missing_fixing_raises(self, flat_curve: DiscountCurve) -> None:
        future = _fed_funds(date(2011, 5, 2), date(2011, 5, 31))
        with pytest.raises(ValueError, match="CRITICAL"):
            _pricer(future, flat_curve, 0.975).model_rate()


class TestTBillFuture:
    """[T1] T-bill margin value counts ticks from par."""

    def test_contract_margin_value(self, flat_curve: DiscountCurve) -> None:
        future = StirFuture(
            RateFutureType.TBILL, date(2011, 6, 13), date(2011, 6, 15), date(2011, 9, 14),
        )
        pricer = _pricer(future, flat_curve, 0.95)
        # 0.05 / 0.00005 = 1000 ticks at 12.5
        assert pricer.contract_margin_value() == 987500.00

    def test_model_rate_is_simple_forward(self, flat_curve: DiscountCurve) -> None:
        future = StirFuture(
            RateFutureType.TBILL, date(2011, 6, 13), date(2011, 6, 15), date(2011, 9, 14),
        )
        expected = flat_curve.forward_rate(date(2011, 6, 15), date(2011, 9, 14))
        assert _pricer(future, flat_curve, 0.95).model_rate() == pytest.approx(expected)


# =============================================================================
# Behaviour
# =============================================================================

class TestConvexityAndMargin:
    """Convexity sign, variation margin and expiry."""

    def test_ho_lee_convexity_is_non_negative(self) -> None:
        value = ho_lee_convexity(AS_OF, date(2012, 5, 9), date(2012, 8, 9), 0.01)
        t1 = (date(2012, 5, 9) - AS_OF).days / 365.0
        t2 = (date(2012, 8, 9) - AS_OF).days / 365.0
        assert value == pytest.approx(0.5 * 0.01 ** 2 * t1 * t2)
        assert ho_lee_convexity(AS_OF, date(2012, 5, 9), date(2012, 8, 9), None) == 0.0

    def test_futures_rate_exceeds_forward(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        pricer = _pricer(eurodollar, flat_curve, 0.945875, convexity_vol=0.01)
        forward = flat_curve.forward_rate(eurodollar.deposit_start, eurodollar.deposit_end)
        assert pricer.convexity_adjustment() < 0.0
        assert pricer.model_rate() == pytest.approx(forward - pricer.convexity_adjustment())
        assert pricer.adjusted_quoted_rate() < pricer.quoted_rate()

    def test_no_convexity_for_bank_bill(self, bank_bill: StirFuture, flat_curve: DiscountCurve) -> None:
        assert _pricer(bank_bill, flat_curve, 0.9731, convexity_vol=0.01).convexity_adjustment() == 0.0

    def test_variation_margin(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        pricer = _pricer(eurodollar, flat_curve, 0.945875, prev_close_price=0.9455)
        assert pricer.margin() == pytest.approx(9375.0)

    def test_margin_needs_previous_close(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            _pricer(eurodollar, flat_curve, 0.945875).margin()

    def test_expired_contract_has_zero_pv(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        pricer = StirFuturePricer(
            eurodollar, AS_OF, 100, flat_curve, 0.945875, settle=date(2011, 6, 14)
        )
        assert pricer.pv() == 0.0

    def test_model_basis_shifts_pv(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        base = _pricer(eurodollar, flat_curve, 0.945875)
        shifted = _pricer(eurodollar, flat_curve, 0.945875, model_basis=0.0001)
        assert shifted.pv() - base.pv() == pytest.approx(-2500.0, abs=1e-6)

    def test_price_details(self, eurodollar: StirFuture, flat_curve: DiscountCurve) -> None:
        result = _pricer(eurodollar, flat_curve, 0.945875).price()
        assert result.details["pv01"] == pytest.approx(-2500.0)
        assert result.as_of_date == AS_OF

    def test_invalid_contract_terms(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            StirFuture(
                RateFutureType.TBILL, date(2011, 6, 13), date(2011, 9, 15), date(2011, 6, 15)
            )
        with pytest.raises(ValueError, match="CRITICAL"):
            StirFuture(
                RateFutureType.TBILL, date(2011, 6, 13), date(2011, 6, 15), date(2011, 9, 15),
                tick_value=0.0,
            )
