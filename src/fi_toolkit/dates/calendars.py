"""
Business-day calendars and roll conventions.

Calendars are rule-based: each built-in calendar generates its holidays
for a year from fixed dates, nth-weekday rules and Easter offsets, with
weekend substitution where the market observes it. Calendars combine
with ``+`` (a day is a business day only if it is one in every member).

Built-ins:
    NONE  Weekends only
    NYB   New York banking (US Federal Reserve holidays)
    LNB   London banking (England & Wales bank holidays)
    TGT   TARGET2 settlement
    SYB   Sydney banking

References:
    [T2] Federal Reserve holiday schedule
    [T2] UK Banking and Financial Dealings Act 1971, Schedule 1
    [T2] ECB TARGET2 closing days
"""

from datetime import date, timedelta
from enum import IntEnum
from functools import lru_cache

from dateutil.easter import easter

from fi_toolkit.dates.dateutils import nth_weekday

MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = range(7)


class BDConvention(IntEnum):
    """Business day convention for rolling non-business days."""

    NONE = 0
    FOLLOWING = 1
    MODIFIED_FOLLOWING = 2
    PRECEDING = 3
    MODIFIED_PRECEDING = 4


# =============================================================================
# Holiday rules
# =============================================================================

def _observed_next_monday(d: date) -> date:
    """Weekend holiday moves to the following Monday."""
    if d.weekday() == SATURDAY:
        return d + timedelta(days=2)
    if d.weekday() == SUNDAY:
        return d + timedelta(days=1)
    return d


def _observed_sunday(d: date) -> date:
    """Sunday holiday observed Monday; Saturday holidays are not moved."""
    if d.weekday() == SUNDAY:
        return d + timedelta(days=1)
    return d


def _christmas_boxing_substituted(year: int) -> list[date]:
    """Christmas and Boxing Day with UK/AU weekend substitution."""
    christmas = date(year, 12, 25)
    boxing = date(year, 12, 26)
    if christmas.weekday() == SATURDAY:
        return [date(year, 12, 27), date(year, 12, 28)]
    if christmas.weekday() == SUNDAY:
        return [boxing, date(year, 12, 27)]
    if christmas.weekday() == FRIDAY:
        return [christmas, date(year, 12, 28)]
    return [christmas, boxing]


def _nyb_holidays(year: int) -> list[date]:
    days = [
        _observed_sunday(date(year, 1, 1)),
        nth_weekday(year, 2, 3, MONDAY),  # Washington's Birthday
        nth_weekday(year, 5, -1, MONDAY),  # Memorial Day
        _observed_sunday(date(year, 7, 4)),
        nth_weekday(year, 9, 1, MONDAY),  # Labor Day
        nth_weekday(year, 10, 2, MONDAY),  # Columbus Day
        _observed_sunday(date(year, 11, 11)),  # Veterans Day
        nth_weekday(year, 11, 4, THURSDAY),  # Thanksgiving
        _observed_sunday(date(year, 12, 25)),
    ]
    if year >= 1998:
        days.append(nth_weekday(year, 1, 3, MONDAY))  # Martin Luther King Jr. Day
    if year >= 2022:
        days.append(_observed_sunday(date(year, 6, 19)))  # Juneteenth
    return days


# One-off UK bank holiday moves and additions
_LNB_SPECIAL = {
    1995: {"early_may": date(1995, 5, 8)},
    2002: {"spring": date(2002, 6, 4), "extra": [date(2002, 6, 3)]},
    2011: {"extra": [date(2011, 4, 29)]},
    2012: {"spring": date(2012, 6, 4), "extra": [date(2012, 6, 5)]},
    2020: {"early_may": date(2020, 5, 8)},
    2022: {"spring": date(2022, 6, 2), "extra": [date(2022, 6, 3), date(2022, 9, 19)]},
    2023: {"extra": [date(2023, 5, 8)]},
}


def _lnb_holidays(year: int) -> list[date]:
    special = _LNB_SPECIAL.get(year, {})
    easter_sunday = easter(year)
    days = [
        _observed_next_monday(date(year, 1, 1)),
        easter_sunday - timedelta(days=2),  # Good Friday
        easter_sunday + timedelta(days=1),  # Easter Monday
        special.get("early_may", nth_weekday(year, 5, 1, MONDAY)),
        special.get("spring", nth_weekday(year, 5, -1, MONDAY)),
        nth_weekday(year, 8, -1, MONDAY),  # Summer bank holiday
    ]
    days.extend(_christmas_boxing_substituted(year))
    days.extend(special.get("extra", []))
    return days


def _tgt_holidays(year: int) -> list[date]:
    easter_sunday = easter(year)
    return [
        date(year, 1, 1),
        easter_sunday - timedelta(days=2),
        easter_sunday + timedelta(days=1),
        date(year, 5, 1),
        date(year, 12, 25),
        date(year, 12, 26),
    ]


def _syb_holidays(year: int) -> list[date]:
    easter_sunday = easter(year)
    days = [
        _observed_next_monday(date(year, 1, 1)),
        _observed_next_monday(date(year, 1, 26)),  # Australia Day
        easter_sunday - timedelta(days=2),
        easter_sunday + timedelta(days=1),
        date(year, 4, 25),  # Anzac Day
        nth_weekday(year, 6, 2, MONDAY),  # King's Birthday
        nth_weekday(year, 8, 1, MONDAY),  # Bank Holiday
        nth_weekday(year, 10, 1, MONDAY),  # Labour Day
    ]
    days.extend(_christmas_boxing_substituted(year))
    return days


_HOLIDAY_RULES = {
    "NONE": lambda year: [],
    "NYB": _nyb_holidays,
    "LNB": _lnb_holidays,
    "TGT": _tgt_holidays,
    "SYB": _syb_holidays,
}


@lru_cache(maxsize=1024)
def _holiday_set(code: str, year: int) -> frozenset[date]:
    return frozenset(d for d in _HOLIDAY_RULES[code](year) if d.year == year)


# =============================================================================
# Calendar
# =============================================================================

class Calendar:
    """
    Business-day calendar built from one or more holiday rule sets.

    Parameters
    ----------
    codes : tuple[str, ...]
        Built-in calendar codes (see module docstring)

    Examples
    --------
    >>> cal = Calendar.parse("NYB+LNB")
    >>> cal.is_business_day(date(2015, 5, 25))
    False
    >>> cal.roll(date(1996, 11, 30), BDConvention.MODIFIED_FOLLOWING)
    datetime.date(1996, 11, 29)
    """

    def __init__(self, codes: tuple[str, ...] = ("NONE",)):
        unknown = [c for c in codes if c not in _HOLIDAY_RULES]
        if unknown:
            raise ValueError(
                f"CRITICAL: Unknown calendar code(s) {unknown}. "
                f"Valid: {sorted(_HOLIDAY_RULES)}"
            )
        members = tuple(sorted(set(codes) - {"NONE"}))
        self._codes = members or ("NONE",)

    @classmethod
    def parse(cls, text: str) -> "Calendar":
        """Parse ``"NYB"``, ``"NYB+LNB"`` or ``"None"``."""
        parts = [p.strip().upper() for p in text.split("+") if p.strip()]
        return cls(tuple(parts) if parts else ("NONE",))

    @property
    def name(self) -> str:
        return "+".join(self._codes)

    def __add__(self, other: "Calendar") -> "Calendar":
        return Calendar(self._codes + other._codes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Calendar):
            return NotImplemented
        return self._codes == other._codes

    def __hash__(self) -> int:
        return hash(self._codes)

    def __repr__(self) -> str:
        return f"Calendar({self.name!r})"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def holidays(self, year: int) -> list[date]:
        """Sorted weekday and weekend holidays for a year."""
        combined: set[date] = set()
        for code in self._codes:
            combined |= _holiday_set(code, year)
        return sorted(combined)

    def is_holiday(self, d: date) -> bool:
        return any(d in _holiday_set(code, d.year) for code in self._codes)

    def is_business_day(self, d: date) -> bool:
        return d.weekday() < SATURDAY and not self.is_holiday(d)

    def roll(self, d: date, bdc: BDConvention) -> date:
        """
        Roll a date to a business day.

        [T1] Modified conventions fall back to the opposite direction
        when the roll would cross a month boundary.
        """
        if bdc == BDConvention.NONE or self.is_business_day(d):
            return d
        if bdc in (BDConvention.FOLLOWING, BDConvention.MODIFIED_FOLLOWING):
            rolled = self._step(d, 1)
            if bdc == BDConvention.MODIFIED_FOLLOWING and rolled.month != d.month:
                rolled = self._step(d, -1)
            return rolled
        rolled = self._step(d, -1)
        if bdc == BDConvention.MODIFIED_PRECEDING and rolled.month != d.month:
            rolled = self._step(d, 1)
        return rolled

    def _step(self, d: date, direction: int) -> date:
        result = d + timedelta(days=direction)
        while not self.is_business_day(result):
            result += timedelta(days=direction)
        return result

    def add_business_days(self, d: date, n: int) -> date:
        """
        Move ``n`` business days from ``d`` (negative moves backward).

        ``n == 0`` returns ``d`` unchanged even if it is not a business day.
        """
        result = d
        direction = 1 if n > 0 else -1
        for _ in range(abs(n)):
            result = self._step(result, direction)
        return result

    def business_days_between(self, start: date, end: date) -> int:
        """Number of business days in (start, end]; negative if end < start."""
        if end < start:
            return -self.business_days_between(end, start)
        count = 0
        current = start + timedelta(days=1)
        while current <= end:
            if self.is_business_day(current):
                count += 1
            current += timedelta(days=1)
        return count

    def nth_business_day(self, year: int, month: int, n: int) -> date:
        """
        The n-th business day of a month.

        Raises
        ------
        ValueError
            If the month has fewer than ``n`` business days
        """
        current = date(year, month, 1)
        count = 0
        while current.month == month:
            if self.is_business_day(current):
                count += 1
                if count == n:
                    return current
            current += timedelta(days=1)
        raise ValueError(
            f"CRITICAL: {year}-{month:02d} has fewer than {n} business days "
            f"on calendar {self.name}"
        )

    def is_last_business_day_of_month(self, d: date) -> bool:
        return self.is_business_day(d) and self._step(d, 1).month != d.month


NONE = Calendar(("NONE",))
NYB = Calendar(("NYB",))
LNB = Calendar(("LNB",))
TGT = Calendar(("TGT",))
SYB = Calendar(("SYB",))
