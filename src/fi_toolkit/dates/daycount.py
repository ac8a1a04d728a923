"""
Day count conventions.

[T1] Implements the ISDA 2006 and SIA day count fractions used for
accrual and discounting:

- 30/360 family (ISDA bond basis, SIA/ISMA, 30E/360, 30E+/360)
- Actual family (Act/360, Act/365F, Act/366, Act/Act ISDA,
  Act/Act ICMA, Act/Act AFB, Act/365L)
- OneOne (always one full period)

References:
    [T1] ISDA (2006) Definitions, Section 4.16
    [T1] Mayle (2007) Standard Securities Calculation Methods, Vol. I
"""

import calendar
from datetime import date
from enum import Enum

from fi_toolkit.dates.tenor import Frequency


class DayCount(Enum):
    """Day count convention."""

    NONE = "none"
    ONE_ONE = "1/1"
    ACTUAL_360 = "act/360"
    ACTUAL_365_FIXED = "act/365f"
    ACTUAL_365L = "act/365l"
    ACTUAL_366 = "act/366"
    ACTUAL_ACTUAL = "act/act"
    ACTUAL_ACTUAL_ICMA = "act/act icma"
    ACTUAL_ACTUAL_AFB = "act/act afb"
    THIRTY_360 = "30/360"
    THIRTY_360_ISMA = "30/360 isma"
    THIRTY_E_360 = "30e/360"
    THIRTY_E_PLUS_360 = "30e+/360"
    MONTHS = "months"

    @classmethod
    def parse(cls, text: str) -> "DayCount":
        """
        Parse a day count from its label or enum name.

        Examples
        --------
        >>> DayCount.parse("Act/360")
        <DayCount.ACTUAL_360: 'act/360'>
        >>> DayCount.parse("THIRTY_360")
        <DayCount.THIRTY_360: '30/360'>
        """
        key = text.strip()
        try:
            return cls(key.lower())
        except ValueError:
            pass
        try:
            return cls[key.upper()]
        except KeyError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(
                f"CRITICAL: Unknown day count '{text}'. Valid: {valid}"
            ) from None


_THIRTY_FAMILY = frozenset({
    DayCount.THIRTY_360,
    DayCount.THIRTY_360_ISMA,
    DayCount.THIRTY_E_360,
    DayCount.THIRTY_E_PLUS_360,
})

_ZERO_FAMILY = frozenset({DayCount.NONE, DayCount.ONE_ONE, DayCount.MONTHS})


def _is_end_of_feb(d: date) -> bool:
    return d.month == 2 and d.day == calendar.monthrange(d.year, 2)[1]


def _thirty_days(y1: int, m1: int, d1: int, y2: int, m2: int, d2: int) -> int:
    return 360 * (y2 - y1) + 30 * (m2 - m1) + (d2 - d1)


def day_count_days(start: date, end: date, dc: DayCount) -> int:
    """
    Day count numerator between two dates.

    [T1] 30/360 conventions adjust the day-of-month before differencing;
    actual conventions return calendar days; NONE, ONE_ONE and MONTHS
    return zero.

    Parameters
    ----------
    start : date
        Start date
    end : date
        End date (may precede start, giving a negative count)
    dc : DayCount
        Day count convention

    Returns
    -------
    int
        Number of days under the convention

    Examples
    --------
    >>> day_count_days(date(1991, 1, 29), date(1991, 1, 31), DayCount.THIRTY_360)
    2
    >>> day_count_days(date(1991, 1, 29), date(1991, 1, 31), DayCount.THIRTY_E_360)
    1
    """
    if dc in _ZERO_FAMILY:
        return 0
    if dc not in _THIRTY_FAMILY:
        return (end - start).days

    y1, m1, d1 = start.year, start.month, start.day
    y2, m2, d2 = end.year, end.month, end.day

    if dc == DayCount.THIRTY_360_ISMA:
        # SIA rules, with the end-of-February extension on the second date
        if _is_end_of_feb(end) and _is_end_of_feb(start):
            d2 = 30
        if _is_end_of_feb(start):
            d1 = 30
        if (d2 > 30 or _is_end_of_feb(end)) and d1 >= 30:
            d2 = 30
        if d1 == 31:
            d1 = 30
    elif dc == DayCount.THIRTY_360:
        if d1 > 30:
            d1 = 30
        if d2 > 30 and d1 >= 30:
            d2 = 30
    elif dc == DayCount.THIRTY_E_360:
        d1 = min(d1, 30)
        d2 = min(d2, 30)
    else:  # THIRTY_E_PLUS_360
        d1 = min(d1, 30)
        if d2 > 30:
            m2 += 1
            d2 = 1

    return _thirty_days(y1, m1, d1, y2, m2, d2)


def _days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def _implied_frequency(period_start: date, period_end: date) -> int:
    """Coupons per year implied by a regular coupon period length."""
    period_days = (period_end - period_start).days
    months = int(0.5 + period_days / 365.0 * 12.0)
    if months < 1:
        raise ValueError(
            "CRITICAL: Coupon period cannot be shorter than half a month "
            f"({period_start} to {period_end})"
        )
    if months > 12:
        raise ValueError(
            "CRITICAL: Coupon period cannot be longer than 12 months "
            f"({period_start} to {period_end})"
        )
    return 12 // months


def _actual_actual_isda(start: date, end: date) -> float:
    if start.year == end.year:
        return (end - start).days / _days_in_year(start.year)
    fraction = ((date(start.year, 12, 31) - start).days + 1) / _days_in_year(start.year)
    fraction += end.year - start.year - 1
    fraction += (end - date(end.year, 1, 1)).days / _days_in_year(end.year)
    return fraction


def _actual_actual_afb(start: date, end: date) -> float:
    denominator = 365.0
    if start.year == end.year and calendar.isleap(start.year):
        leap_day = date(start.year, 2, 29)
        if start <= leap_day <= end:
            denominator = 366.0
    elif calendar.isleap(start.year):
        if start <= date(start.year, 2, 29):
            denominator = 366.0
    elif calendar.isleap(end.year):
        if end >= date(end.year, 2, 29):
            denominator = 366.0
    return (end - start).days / denominator


def _actual_365l(
    start: date, end: date, period_start: date, period_end: date, freq: int
) -> float:
    if freq == Frequency.ANNUAL.value:
        if calendar.isleap(period_start.year):
            feb29 = date(period_start.year, 2, 29)
        elif calendar.isleap(period_end.year):
            feb29 = date(period_end.year, 2, 29)
        else:
            feb29 = period_start
        denominator = 366 if period_start < feb29 <= period_end else 365
    else:
        denominator = _days_in_year(period_end.year)
    return (end - start).days / denominator


def year_fraction(
    start: date,
    end: date,
    dc: DayCount,
    period_start: date | None = None,
    period_end: date | None = None,
    frequency: Frequency | None = None,
) -> float:
    """
    Year fraction between two dates under a day count convention.

    [T1] Act/Act ICMA and Act/365L depend on the enclosing coupon period;
    pass ``period_start``/``period_end`` for accrual inside a period.
    When the frequency is not given it is implied from the period length.

    Parameters
    ----------
    start : date
        Accrual start
    end : date
        Accrual end
    dc : DayCount
        Day count convention
    period_start, period_end : date, optional
        Enclosing coupon period (defaults to start/end)
    frequency : Frequency, optional
        Coupon frequency for period-dependent conventions

    Returns
    -------
    float
        Year fraction. Negative when ``end`` precedes ``start``
        (except ONE_ONE which is always 1.0 and NONE which is 0.0).

    Examples
    --------
    >>> round(year_fraction(date(2003, 11, 1), date(2004, 5, 1), DayCount.ACTUAL_ACTUAL), 9)
    0.497724381
    >>> year_fraction(date(2003, 11, 1), date(2004, 5, 1), DayCount.ACTUAL_ACTUAL_ICMA)
    0.5
    """
    if dc == DayCount.NONE:
        return 0.0
    if dc == DayCount.ONE_ONE:
        return 1.0
    if dc == DayCount.MONTHS:
        return end.year - start.year + (end.month - start.month) / 12.0

    if start > end and dc in (
        DayCount.ACTUAL_ACTUAL, DayCount.ACTUAL_ACTUAL_AFB,
        DayCount.ACTUAL_ACTUAL_ICMA, DayCount.ACTUAL_365L,
    ):
        return -year_fraction(end, start, dc, period_start, period_end, frequency)

    if dc == DayCount.ACTUAL_360:
        return (end - start).days / 360.0
    if dc == DayCount.ACTUAL_365_FIXED:
        return (end - start).days / 365.0
    if dc == DayCount.ACTUAL_366:
        return (end - start).days / 366.0
    if dc in _THIRTY_FAMILY:
        return day_count_days(start, end, dc) / 360.0
    if dc == DayCount.ACTUAL_ACTUAL:
        return _actual_actual_isda(start, end)
    if dc == DayCount.ACTUAL_ACTUAL_AFB:
        return _actual_actual_afb(start, end)

    pstart = period_start or start
    pend = period_end or end
    if frequency is None or frequency == Frequency.NONE:
        freq = _implied_frequency(pstart, pend)
    else:
        freq = frequency.value

    if dc == DayCount.ACTUAL_ACTUAL_ICMA:
        return (end - start).days / ((pend - pstart).days * freq)
    return _actual_365l(start, end, pstart, pend, freq)
