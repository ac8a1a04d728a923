"""
Date helpers: month arithmetic, IMM and CDS roll dates, exchange codes.

Month stepping uses dateutil's relativedelta, which clamps to the last
day of shorter months.

References:
    [T1] CME Rulebook Ch. 452 - Eurodollar futures IMM dates
    [T1] ISDA (2009) Big Bang Protocol - CDS standard roll dates
    [T1] ISDA (2015) semi-annual CDS roll convention
"""

import calendar
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from dateutil.relativedelta import relativedelta

# =============================================================================
# Integer date conversion
# =============================================================================

def from_int(value: int) -> date:
    """
    Convert a YYYYMMDD integer to a date.

    Raises
    ------
    ValueError
        If the integer is not a valid calendar date
    """
    year, rest = divmod(int(value), 10000)
    month, day = divmod(rest, 100)
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValueError(f"CRITICAL: Invalid YYYYMMDD date {value}") from e


def to_int(d: date) -> int:
    """Convert a date to a YYYYMMDD integer."""
    return d.year * 10000 + d.month * 100 + d.day


def is_valid_int(value: int, min_year: int = 1900, max_year: int = 2150) -> bool:
    """Check a YYYYMMDD integer is a real date inside the supported range."""
    try:
        d = from_int(value)
    except ValueError:
        return False
    return min_year <= d.year <= max_year


# =============================================================================
# Month arithmetic
# =============================================================================

def last_day_of_month(year: int, month: int) -> date:
    """Last calendar day of a month."""
    return date(year, month, calendar.monthrange(year, month)[1])


def is_end_of_month(d: date) -> bool:
    return d.day == calendar.monthrange(d.year, d.month)[1]


def add_months(d: date, n: int, eom_rule: bool = False) -> date:
    """
    Add calendar months, clamping to month end.

    Parameters
    ----------
    d : date
        Start date
    n : int
        Months to add (may be negative)
    eom_rule : bool
        If True and ``d`` is the last day of its month, the result is the
        last day of the target month.

    Examples
    --------
    >>> add_months(date(2003, 10, 31), 1)
    datetime.date(2003, 11, 30)
    >>> add_months(date(2003, 2, 28), 1, eom_rule=True)
    datetime.date(2003, 3, 31)
    """
    result = d + relativedelta(months=n)
    if eom_rule and is_end_of_month(d):
        return last_day_of_month(result.year, result.month)
    return result


def nth_weekday(year: int, month: int, n: int, weekday: int) -> date:
    """
    The n-th given weekday of a month (Monday=0 ... Sunday=6).

    ``n=-1`` gives the last such weekday.

    Examples
    --------
    >>> nth_weekday(1995, 5, 3, 2)
    datetime.date(1995, 5, 17)
    """
    if n < 0:
        last = last_day_of_month(year, month)
        return last - timedelta(days=(last.weekday() - weekday) % 7)
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    result = first + timedelta(days=offset + 7 * (n - 1))
    if result.month != month:
        raise ValueError(
            f"CRITICAL: Month {year}-{month:02d} has no weekday #{n} of type {weekday}"
        )
    return result


def _quarter_month(month: int, year: int) -> tuple[int, int]:
    """Round a (possibly overflowing) month up to Mar/Jun/Sep/Dec."""
    month = ((month + 2) // 3) * 3
    while month > 12:
        year += 1
        month -= 12
    return month, year


# =============================================================================
# IMM dates
# =============================================================================

WEDNESDAY = 2
FRIDAY = 4


class ImmRule(Enum):
    """Exchange contract date rule."""

    IMM = "imm"  # third Wednesday
    IMM_AUD = "imm_aud"  # business day before the second Friday
    IMM_NZD = "imm_nzd"  # first Wednesday after the 9th


def imm_date(
    month: int,
    year: int,
    rule: ImmRule = ImmRule.IMM,
    previous_business_day: Callable[[date], date] | None = None,
) -> date:
    """
    Contract date for a month under an exchange rule.

    Parameters
    ----------
    month, year : int
        Contract month
    rule : ImmRule
        Exchange date rule
    previous_business_day : callable, optional
        Business-day step back used by IMM_AUD (e.g. a Sydney calendar).
        Defaults to stepping back over weekends only.

    Examples
    --------
    >>> imm_date(12, 2008)
    datetime.date(2008, 12, 17)
    """
    if rule == ImmRule.IMM:
        return nth_weekday(year, month, 3, WEDNESDAY)
    if rule == ImmRule.IMM_AUD:
        second_friday = nth_weekday(year, month, 2, FRIDAY)
        if previous_business_day is not None:
            return previous_business_day(second_friday)
        prior = second_friday - timedelta(days=1)
        while prior.weekday() >= 5:
            prior -= timedelta(days=1)
        return prior
    for n in range(1, 6):
        wednesday = nth_weekday(year, month, n, WEDNESDAY)
        if wednesday.day > 9:
            return wednesday
    raise ValueError(f"CRITICAL: No NZD IMM date in {year}-{month:02d}")  # pragma: no cover


def imm_next(d: date) -> date:
    """
    First quarterly IMM date (Mar/Jun/Sep/Dec) strictly after ``d``.

    Examples
    --------
    >>> imm_next(date(2008, 12, 17))
    datetime.date(2009, 3, 18)
    """
    month, year = _quarter_month(d.month, d.year)
    roll = imm_date(month, year)
    if d >= roll:
        month, year = _quarter_month(month + 3, year)
        roll = imm_date(month, year)
    return roll


def imm_last_trade(d: date) -> date:
    """Last trading day of an IMM contract: two weekdays before the IMM date."""
    return d - timedelta(days=2)


# =============================================================================
# Exchange codes
# =============================================================================

MONTH_CODES = "FGHJKMNQUVXZ"
_MONTH_ABBREVS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN",
                  "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")

_MMMYY_PATTERN = re.compile(r"^([A-Za-z]{3})(\d{2})$")
_CODE_PATTERN = re.compile(r"^([A-Za-z0-9]*?)([" + MONTH_CODES + r"])(\d{4}|\d{1,2})$")


@dataclass(frozen=True)
class ExchangeCode:
    """
    Parsed exchange contract code.

    Attributes
    ----------
    contract : str
        Contract prefix (e.g. "ED", "FEU3"); empty for bare or MMMYY codes
    month : int
        Contract month
    year : int
        Four-digit contract year
    year_digits : int
        Number of year digits in the original code
    """

    contract: str
    month: int
    year: int
    year_digits: int


def _match_code(code: str) -> tuple[str, int, str] | None:
    mmm = _MMMYY_PATTERN.match(code)
    if mmm and mmm.group(1).upper() in _MONTH_ABBREVS:
        return "", _MONTH_ABBREVS.index(mmm.group(1).upper()) + 1, mmm.group(2)
    match = _CODE_PATTERN.match(code)
    if match:
        return match.group(1), MONTH_CODES.index(match.group(2)) + 1, match.group(3)
    return None


def exchange_code_is_valid(code: str) -> bool:
    """
    Check the format of an exchange contract code.

    Accepts prefix + month letter + 1, 2 or 4 year digits (``EDZ8``,
    ``FEU3Q14``, ``SN2015``) and MMMYY (``DEC14``).
    """
    return _match_code(code) is not None


def parse_exchange_code(as_of: date, code: str) -> ExchangeCode:
    """
    Parse an exchange code into contract, month and year.

    Single-digit years resolve to the first matching year on or after the
    as-of year; two-digit years to the as-of century.

    Raises
    ------
    ValueError
        If the code is not a valid exchange code
    """
    matched = _match_code(code)
    if matched is None:
        raise ValueError(f"CRITICAL: Invalid exchange contract code '{code}'")
    contract, month, year_text = matched
    digits = len(year_text)
    if digits == 4:
        year = int(year_text)
    elif digits == 2:
        year = as_of.year - as_of.year % 100 + int(year_text)
    else:
        year = as_of.year - as_of.year % 10 + int(year_text)
        if year < as_of.year:
            year += 10
    return ExchangeCode(contract=contract, month=month, year=year, year_digits=digits)


def exchange_date_code(contract: str, month: int, year: int) -> str:
    """
    Build a two-digit-year exchange code.

    Examples
    --------
    >>> exchange_date_code("FEU3", 8, 2014)
    'FEU3Q14'
    """
    return f"{contract}{MONTH_CODES[month - 1]}{year % 100:02d}"


def imm_date_from_code(as_of: date, code: str, rule: ImmRule = ImmRule.IMM) -> date:
    """
    Contract date for an exchange code relative to an as-of date.

    A single-digit year rolls forward a decade once the contract's last
    trading day is before the as-of date.

    Examples
    --------
    >>> imm_date_from_code(date(2007, 12, 17), "EDZ7")
    datetime.date(2007, 12, 19)
    >>> imm_date_from_code(date(2007, 12, 18), "EDZ7")
    datetime.date(2017, 12, 20)
    """
    parsed = parse_exchange_code(as_of, code)
    contract_date = imm_date(parsed.month, parsed.year, rule)
    if parsed.year_digits == 1 and imm_last_trade(contract_date) < as_of:
        contract_date = imm_date(parsed.month, parsed.year + 10, rule)
    return contract_date


# =============================================================================
# CDS dates
# =============================================================================

#: First trade date using the semi-annual CDS maturity roll
CDS_SEMIANNUAL_ROLL_START = date(2015, 12, 21)


def cds_roll(d: date, standard: bool = True) -> date:
    """
    Next CDS roll date (20th of Mar/Jun/Sep/Dec) after ``d``.

    With ``standard=False`` the 30-day first-coupon rule pushes the roll
    one further month out.
    """
    month = d.month
    year = d.year
    if not standard:
        month += 1
    if d.day >= 20:
        month += 1
    month, year = _quarter_month(month, year)
    return date(year, month, 20)


def _round_up_quarters(tenor) -> int:
    n = tenor.n
    unit = tenor.unit.name
    if unit == "NONE":
        return 0
    if unit == "DAYS":
        return (n + 90) // 91
    if unit == "WEEKS":
        return (n + 12) // 13
    if unit == "MONTHS":
        return (n + 2) // 3
    return 4 * n


def _cds_maturity_quarterly(effective: date, tenor) -> date:
    end = tenor.add_to(effective)
    month = end.month + (1 if end.day > 20 else 0)
    month, year = _quarter_month(month, end.year)
    return date(year, month, 20)


def cds_maturity(effective: date, tenor) -> date:
    """
    Standard CDS maturity for a tenor.

    Trades before 2015-12-21 roll quarterly; later trades roll on
    20 March and 20 September (tenors under 3M still roll quarterly).

    Examples
    --------
    >>> from fi_toolkit.dates.tenor import Tenor
    >>> cds_maturity(date(2016, 6, 1), Tenor.parse("5Y"))
    datetime.date(2021, 6, 20)
    """
    if effective < CDS_SEMIANNUAL_ROLL_START or 0 < tenor.days < 90:
        return _cds_maturity_quarterly(effective, tenor)

    m, day = effective.month, effective.day
    if m in (3, 9) and day > 20:
        last_roll = m
    else:
        last_roll = 9 if m > 9 else (3 if m > 3 else -3)
    months = last_roll + (1 + _round_up_quarters(tenor)) * 3
    if months == 0:
        return date(effective.year - 1, 12, 20)
    months -= 1
    return date(effective.year + months // 12, 1 + months % 12, 20)
