"""
Unit tests for day counts, tenors, calendars and schedules.

[T1] Day count examples follow the ISDA 2006 Act/Act memo.
"""

from datetime import date

import pytest

from fi_toolkit.dates import (
    BDConvention,
    Calendar,
    DayCount,
    Frequency,
    Period,
    Schedule,
    StubRule,
    Tenor,
    TimeUnit,
    add_months,
    add_tenor,
    cds_maturity,
    day_count_days,
    from_int,
    imm_date,
    imm_date_from_code,
    imm_next,
    to_int,
    year_fraction,
)


# =============================================================================
# Day counts
# =============================================================================

class TestDayCount:
    """Tests for day count fractions."""

    @pytest.mark.parametrize(
        "dc,expected",
        [
            (DayCount.ACTUAL_ACTUAL, 0.497724381),
            (DayCount.ACTUAL_ACTUAL_ICMA, 0.5),
            (DayCount.ACTUAL_ACTUAL_AFB, 182 / 366),
            (DayCount.ACTUAL_360, 182 / 360),
            (DayCount.ACTUAL_365_FIXED, 182 / 365),
        ],
    )
    def test_isda_memo_regular_period(self, dc: DayCount, expected: float) -> None:
        """[T1] 1 Nov 2003 to 1 May 2004 under the actual family."""
        result = year_fraction(date(2003, 11, 1), date(2004, 5, 1), dc)
        assert result == pytest.approx(expected, abs=1e-9)

    def test_thirty_360_month_end_rules(self) -> None:
        """30/360 keeps day 31 when the start is before the 30th; 30E/360 does not."""
        start, end = date(1991, 1, 29), date(1991, 1, 31)
        assert day_count_days(start, end, DayCount.THIRTY_360) == 2
        assert day_count_days(start, end, DayCount.THIRTY_E_360) == 1

    def test_thirty_e_plus_rolls_into_next_month(self) -> None:
        days = day_count_days(date(2024, 1, 15), date(2024, 1, 31), DayCount.THIRTY_E_PLUS_360)
        assert days == 16

    def test_negative_fraction_when_reversed(self) -> None:
        forward = year_fraction(date(2020, 1, 1), date(2021, 3, 1), DayCount.ACTUAL_ACTUAL)
        backward = year_fraction(date(2021, 3, 1), date(2020, 1, 1), DayCount.ACTUAL_ACTUAL)
        assert backward == pytest.approx(-forward)

    def test_one_one_and_none(self) -> None:
        assert year_fraction(date(2020, 1, 1), date(2020, 2, 1), DayCount.ONE_ONE) == 1.0
        assert year_fraction(date(2020, 1, 1), date(2020, 2, 1), DayCount.NONE) == 0.0

    def test_parse_label_and_name(self) -> None:
        assert DayCount.parse("Act/360") == DayCount.ACTUAL_360
        assert DayCount.parse("thirty_360") == DayCount.THIRTY_360

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            DayCount.parse("act/999")


class TestIcmaStubs:
    """[T1] Act/Act ICMA stubs are measured against notional periods."""

    def test_short_first_period(self) -> None:
        period = Period(
            accrual_start=date(1999, 2, 1),
            accrual_end=date(1999, 7, 1),
            cycle_start=date(1998, 7, 1),
            cycle_end=date(1999, 7, 1),
            payment_date=date(1999, 7, 1),
            frequency=Frequency.ANNUAL,
        )
        assert not period.is_regular
        assert period.fraction(DayCount.ACTUAL_ACTUAL_ICMA) == pytest.approx(0.410958904, abs=1e-9)

    def test_long_first_period(self) -> None:
        period = Period(
            accrual_start=date(2002, 8, 15),
            accrual_end=date(2003, 7, 15),
            cycle_start=date(2003, 1, 15),
            cycle_end=date(2003, 7, 15),
            payment_date=date(2003, 7, 15),
            frequency=Frequency.SEMI_ANNUAL,
        )
        assert period.fraction(DayCount.ACTUAL_ACTUAL_ICMA) == pytest.approx(0.915760870, abs=1e-9)


# =============================================================================
# Tenors
# =============================================================================

class TestTenor:
    """Tests for tenor parsing, ordering and date arithmetic."""

    @pytest.mark.parametrize(
        "text,n,unit",
        [
            ("3M", 3, TimeUnit.MONTHS),
            ("10 years", 10, TimeUnit.YEARS),
            ("2w", 2, TimeUnit.WEEKS),
            ("O/N", 1, TimeUnit.DAYS),
            ("1S", 6, TimeUnit.MONTHS),
            ("2Q", 6, TimeUnit.MONTHS),
        ],
    )
    def test_parse(self, text: str, n: int, unit: TimeUnit) -> None:
        tenor = Tenor.parse(text)
        assert (tenor.n, tenor.unit) == (n, unit)

    def test_parse_empty(self) -> None:
        assert Tenor.parse("").is_empty

    def test_parse_garbage_raises(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            Tenor.parse("three months")

    def test_negative_count_rejected(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            Tenor(-1, TimeUnit.DAYS)

    def test_years_equal_months(self) -> None:
        assert Tenor(1, TimeUnit.YEARS) == Tenor(12, TimeUnit.MONTHS)
        assert hash(Tenor(1, TimeUnit.YEARS)) == hash(Tenor(12, TimeUnit.MONTHS))

    def test_ordering_across_units(self) -> None:
        tenors = [Tenor.parse(t) for t in ("1Y", "2W", "6M", "1D")]
        assert [str(t) for t in sorted(tenors)] == ["1D", "2W", "6M", "1Y"]

    @pytest.mark.parametrize(
        "days,expected",
        [(3, "3D"), (14, "2W"), (28, "1M"), (91, "3M"), (365, "1Y")],
    )
    def test_from_days(self, days: int, expected: str) -> None:
        assert str(Tenor.from_days(days)) == expected

    def test_frequency_round_trip(self) -> None:
        assert Tenor.from_frequency(Frequency.QUARTERLY) == Tenor.parse("3M")
        assert Tenor.parse("6M").to_frequency() == Frequency.SEMI_ANNUAL

    def test_month_end_clamping(self) -> None:
        assert add_months(date(2003, 10, 31), 1) == date(2003, 11, 30)
        assert add_months(date(2003, 2, 28), 1, eom_rule=True) == date(2003, 3, 31)

    def test_composite_tenor(self) -> None:
        assert add_tenor(date(2012, 1, 31), "1M3M") == date(2012, 5, 29)
        assert add_tenor(date(2004, 5, 4), "7m5d") == date(2004, 12, 9)


# =============================================================================
# Calendars
# =============================================================================

class TestCalendar:
    """Tests for holiday calendars and roll conventions."""

    def test_joint_calendar(self) -> None:
        cal = Calendar.parse("NYB+LNB")
        # Memorial Day and the UK spring bank holiday
        assert not cal.is_business_day(date(2015, 5, 25))
        # Thanksgiving is US only
        assert not cal.is_business_day(date(2015, 11, 26))
        assert Calendar.parse("LNB").is_business_day(date(2015, 11, 26))

    def test_easter_holidays(self) -> None:
        cal = Calendar.parse("TGT")
        assert cal.is_holiday(date(2024, 3, 29))  # Good Friday
        assert cal.is_holiday(date(2024, 4, 1))  # Easter Monday

    @pytest.mark.parametrize(
        "bdc,expected",
        [
            (BDConvention.FOLLOWING, date(1996, 12, 2)),
            (BDConvention.MODIFIED_FOLLOWING, date(1996, 11, 29)),
            (BDConvention.PRECEDING, date(1996, 11, 29)),
            (BDConvention.NONE, date(1996, 11, 30)),
        ],
    )
    def test_roll(self, bdc: BDConvention, expected: date) -> None:
        assert Calendar.parse("NYB").roll(date(1996, 11, 30), bdc) == expected

    def test_add_business_days_skips_weekend(self) -> None:
        cal = Calendar.parse("NONE")
        assert cal.add_business_days(date(2024, 1, 5), 1) == date(2024, 1, 8)
        assert cal.add_business_days(date(2024, 1, 8), -1) == date(2024, 1, 5)

    def test_unknown_code_raises(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            Calendar.parse("XXX")

    def test_calendars_combine_with_plus(self) -> None:
        assert Calendar.parse("NYB") + Calendar.parse("LNB") == Calendar.parse("LNB+NYB")


# =============================================================================
# Exchange and CDS dates
# =============================================================================

class TestExchangeDates:
    """Tests for IMM and CDS date rules."""

    def test_imm_third_wednesday(self) -> None:
        assert imm_date(12, 2008) == date(2008, 12, 17)

    def test_imm_next_is_strictly_after(self) -> None:
        assert imm_next(date(2008, 12, 17)) == date(2009, 3, 18)

    def test_single_digit_code_rolls_decade_after_last_trade(self) -> None:
        assert imm_date_from_code(date(2007, 12, 17), "EDZ7") == date(2007, 12, 19)
        assert imm_date_from_code(date(2007, 12, 18), "EDZ7") == date(2017, 12, 20)

    def test_invalid_code_raises(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            imm_date_from_code(date(2020, 1, 1), "ED??")

    def test_cds_semiannual_roll(self) -> None:
        assert cds_maturity(date(2016, 6, 1), Tenor.parse("5Y")) == date(2021, 6, 20)

    def test_integer_date_round_trip(self) -> None:
        assert from_int(20110509) == date(2011, 5, 9)
        assert to_int(date(2011, 5, 9)) == 20110509
        with pytest.raises(ValueError, match="CRITICAL"):
            from_int(20110230)


# =============================================================================
# Schedules
# =============================================================================

class TestSchedule:
    """Tests for coupon schedule generation."""

    def test_regular_semiannual(self) -> None:
        sched = Schedule(
            date(2000, 1, 5), date(2004, 1, 5), Frequency.SEMI_ANNUAL,
            BDConvention.FOLLOWING, Calendar.parse("NONE"),
        )
        assert len(sched) == 8
        assert all(p.is_regular for p in sched)
        # 5 Jan 2002 is a Saturday
        assert sched[3].payment_date == date(2002, 1, 7)

    def test_short_front_stub(self) -> None:
        sched = Schedule(date(2024, 1, 15), date(2025, 3, 20), Frequency.QUARTERLY)
        assert len(sched) == 5
        first = sched[0]
        assert first.accrual_start == date(2024, 1, 15)
        assert first.accrual_end == date(2024, 3, 20)
        assert first.cycle_start == date(2023, 12, 20)
        assert not first.is_regular

    def test_short_back_stub(self) -> None:
        sched = Schedule(
            date(2024, 1, 15), date(2025, 3, 20), Frequency.QUARTERLY,
            stub=StubRule.SHORT_BACK,
        )
        assert sched[0].accrual_start == date(2024, 1, 15)
        assert sched[0].accrual_end == date(2024, 4, 15)
        assert sched[-1].accrual_start == date(2025, 1, 15)
        assert sched[-1].accrual_end == date(2025, 3, 20)

    def test_periods_are_contiguous(self) -> None:
        sched = Schedule(date(2024, 2, 29), date(2030, 2, 28), Frequency.QUARTERLY, eom_rule=True)
        for prev, nxt in zip(sched.periods[:-1], sched.periods[1:]):
            assert prev.accrual_end == nxt.accrual_start

    def test_maturity_before_effective_raises(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            Schedule(date(2025, 1, 1), date(2024, 1, 1), Frequency.ANNUAL)

    def test_last_coupon_on_effective_raises(self) -> None:
        with pytest.raises(ValueError, match="Last coupon"):
            Schedule(date(2024, 1, 15), date(2025, 3, 20), Frequency.QUARTERLY,
                     last_coupon=date(2024, 1, 15))

    def test_last_coupon_before_first_coupon_raises(self) -> None:
        with pytest.raises(ValueError, match="Last coupon"):
            Schedule(date(2024, 1, 15), date(2025, 3, 20), Frequency.QUARTERLY,
                     first_coupon=date(2024, 6, 15), last_coupon=date(2024, 3, 15))

    def test_last_coupon_back_stub(self) -> None:
        sched = Schedule(date(2024, 1, 15), date(2025, 3, 20), Frequency.QUARTERLY,
                         last_coupon=date(2024, 12, 15))
        assert len(sched) == 5
        assert sched[0].accrual_end == date(2024, 3, 15)
        assert sched[-1].accrual_start == date(2024, 12, 15)
        assert sched[-1].accrual_end == date(2025, 3, 20)
        assert all(p.accrual_end > p.accrual_start for p in sched)

    def test_no_frequency_single_period(self) -> None:
        sched = Schedule(date(2024, 1, 1), date(2024, 7, 1), Frequency.NONE)
        assert len(sched) == 1

    def test_coupon_navigation(self) -> None:
        sched = Schedule(date(2024, 1, 15), date(2026, 1, 15), Frequency.SEMI_ANNUAL)
        assert sched.next_coupon_date(date(2024, 3, 1)) == date(2024, 7, 15)
        assert sched.previous_coupon_date(date(2024, 3, 1)) == date(2024, 1, 15)
        assert sched.coupons_remaining(date(2024, 3, 1)) == 4
        assert sched.next_coupon_date(date(2026, 2, 1)) is None

    def test_to_frame_columns(self) -> None:
        frame = Schedule(date(2024, 1, 15), date(2025, 1, 15), Frequency.QUARTERLY).to_frame()
        assert list(frame.columns) == [
            "accrual_start", "accrual_end", "cycle_start", "cycle_end", "payment_date", "days",
        ]
        assert len(frame) == 4
