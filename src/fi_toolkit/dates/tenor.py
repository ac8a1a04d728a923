"""
Tenors and payment frequencies.

A Tenor is a length of time expressed as a count of calendar units
(days, weeks, months, years). Arithmetic on dates uses calendar
rules; comparisons and year approximations use the money-market
convention of 30-day months and 360-day years.
"""

import re
from dataclasses import dataclass
from datetime import date, timedelta
from enum import IntEnum
from functools import total_ordering

from fi_toolkit.dates.dateutils import add_months


class TimeUnit(IntEnum):
    """Calendar unit of a tenor."""

    NONE = 0
    DAYS = 1
    WEEKS = 2
    MONTHS = 3
    YEARS = 4


class Frequency(IntEnum):
    """Payments per year."""

    NONE = 0
    ANNUAL = 1
    SEMI_ANNUAL = 2
    TRI_ANNUAL = 3
    QUARTERLY = 4
    BI_MONTHLY = 6
    MONTHLY = 12
    TWENTY_EIGHT_DAYS = 13
    BI_WEEKLY = 26
    WEEKLY = 52
    DAILY = 365


_UNIT_LETTERS = {
    TimeUnit.NONE: "",
    TimeUnit.DAYS: "D",
    TimeUnit.WEEKS: "W",
    TimeUnit.MONTHS: "M",
    TimeUnit.YEARS: "Y",
}

_TENOR_PATTERN = re.compile(r"^\s*(\d+)\s*([A-Za-z]+)\s*$")
_COMPOSITE_PATTERN = re.compile(r"(\d+)\s*([A-Za-z]+)")


@total_ordering
@dataclass(frozen=True, eq=False)
class Tenor:
    """
    Length of time as ``n`` calendar units.

    Attributes
    ----------
    n : int
        Number of units (non-negative)
    unit : TimeUnit
        Calendar unit

    Examples
    --------
    >>> Tenor.parse("3M").months
    3.0
    >>> Tenor(1, TimeUnit.YEARS) == Tenor(12, TimeUnit.MONTHS)
    True
    >>> sorted([Tenor.parse("1Y"), Tenor.parse("2W")])
    [Tenor(n=2, unit=<TimeUnit.WEEKS: 2>), Tenor(n=1, unit=<TimeUnit.YEARS: 4>)]
    """

    n: int
    unit: TimeUnit

    def __post_init__(self) -> None:
        if self.n < 0:
            raise ValueError(f"CRITICAL: Tenor count must be >= 0, got {self.n}")
        if self.unit == TimeUnit.NONE and self.n != 0:
            raise ValueError(
                f"CRITICAL: Tenor with no unit must have n == 0, got {self.n}"
            )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, text: str) -> "Tenor":
        """
        Parse a single-unit tenor string.

        Accepts ``"3M"``, ``"10 years"``, ``"2w"``, ``"1D"``, ``"O/N"``.
        ``"S"`` (semi-annual) and ``"Q"`` (quarterly) scale to months.
        An empty string or ``"0"`` gives the empty tenor.

        Raises
        ------
        ValueError
            If the string is not a recognised tenor
        """
        stripped = text.strip()
        if stripped in ("", "0"):
            return EMPTY_TENOR
        if stripped.upper() in ("O/N", "ON", "T/N", "TN"):
            return cls(1, TimeUnit.DAYS)

        match = _TENOR_PATTERN.match(stripped)
        if not match:
            raise ValueError(f"CRITICAL: Unrecognised tenor format '{text}'")

        n = int(match.group(1))
        letter = match.group(2)[0].upper()
        if letter in ("Y", "A"):
            return cls(n, TimeUnit.YEARS)
        if letter == "M":
            return cls(n, TimeUnit.MONTHS)
        if letter == "W":
            return cls(n, TimeUnit.WEEKS)
        if letter == "D":
            return cls(n, TimeUnit.DAYS)
        if letter == "S":
            return cls(6 * n, TimeUnit.MONTHS)
        if letter == "Q":
            return cls(3 * n, TimeUnit.MONTHS)
        raise ValueError(f"CRITICAL: Unrecognised tenor unit '{match.group(2)}'")

    @classmethod
    def from_frequency(cls, freq: Frequency) -> "Tenor":
        """Tenor of one period at the given frequency (e.g. QUARTERLY -> 3M)."""
        if freq == Frequency.NONE:
            return EMPTY_TENOR
        if freq == Frequency.DAILY:
            return cls(1, TimeUnit.DAYS)
        if freq == Frequency.WEEKLY:
            return cls(1, TimeUnit.WEEKS)
        if freq == Frequency.BI_WEEKLY:
            return cls(2, TimeUnit.WEEKS)
        if freq == Frequency.TWENTY_EIGHT_DAYS:
            return cls(28, TimeUnit.DAYS)
        if 12 % int(freq) != 0:
            raise ValueError(f"CRITICAL: Frequency {freq!r} has no month tenor")
        return cls(12 // int(freq), TimeUnit.MONTHS)

    @classmethod
    def from_days(cls, days: int) -> "Tenor":
        """
        Approximate tenor for a day count.

        Under 6 days gives days, under 30 gives weeks (4 weeks is 1M),
        otherwise the nearest whole months or exact years.
        """
        if days < 6:
            return cls(days, TimeUnit.DAYS)
        if days < 30:
            weeks = (days + 3) // 7
            return cls(1, TimeUnit.MONTHS) if weeks == 4 else cls(weeks, TimeUnit.WEEKS)
        years = (days + 6) // 365
        months = (days - years * 365 + 4) // 30
        if months <= 0:
            return cls(years, TimeUnit.YEARS)
        return cls(years * 12 + months, TimeUnit.MONTHS)

    # ------------------------------------------------------------------
    # Approximate lengths
    # ------------------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return self.n == 0 and self.unit == TimeUnit.NONE

    @property
    def days(self) -> int:
        """Approximate days (30-day months, 360-day years)."""
        return self.n * {
            TimeUnit.NONE: 0,
            TimeUnit.DAYS: 1,
            TimeUnit.WEEKS: 7,
            TimeUnit.MONTHS: 30,
            TimeUnit.YEARS: 360,
        }[self.unit]

    @property
    def months(self) -> float:
        """Approximate months."""
        if self.unit == TimeUnit.DAYS:
            return self.n / 30.0
        if self.unit == TimeUnit.WEEKS:
            return self.n * 7 / 30.0
        if self.unit == TimeUnit.MONTHS:
            return float(self.n)
        if self.unit == TimeUnit.YEARS:
            return float(self.n * 12)
        return 0.0

    @property
    def years(self) -> float:
        """Approximate years (days / 360, weeks / 52)."""
        if self.unit == TimeUnit.DAYS:
            return self.n / 360.0
        if self.unit == TimeUnit.WEEKS:
            return self.n / 52.0
        if self.unit == TimeUnit.MONTHS:
            return self.n / 12.0
        if self.unit == TimeUnit.YEARS:
            return float(self.n)
        return 0.0

    def to_frequency(self) -> Frequency:
        """Frequency whose period is this tenor, or NONE."""
        if self.unit == TimeUnit.MONTHS and self.n in (1, 2, 3, 4, 6, 12):
            return Frequency(12 // self.n)
        if self.unit == TimeUnit.YEARS and self.n == 1:
            return Frequency.ANNUAL
        if self.unit == TimeUnit.WEEKS and self.n in (1, 2):
            return Frequency.WEEKLY if self.n == 1 else Frequency.BI_WEEKLY
        if self.unit == TimeUnit.DAYS and self.n == 1:
            return Frequency.DAILY
        if self.unit == TimeUnit.DAYS and self.n == 28:
            return Frequency.TWENTY_EIGHT_DAYS
        return Frequency.NONE

    # ------------------------------------------------------------------
    # Date arithmetic
    # ------------------------------------------------------------------

    def add_to(self, d: date, eom_rule: bool = False, sign: int = 1) -> date:
        """
        Add (or with ``sign=-1`` subtract) this tenor to a date.

        Month and year steps clamp to the end of shorter months.
        With ``eom_rule`` a month-end start stays at month end.
        """
        if self.unit == TimeUnit.DAYS:
            return d + timedelta(days=sign * self.n)
        if self.unit == TimeUnit.WEEKS:
            return d + timedelta(weeks=sign * self.n)
        if self.unit == TimeUnit.MONTHS:
            return add_months(d, sign * self.n, eom_rule)
        if self.unit == TimeUnit.YEARS:
            return add_months(d, sign * 12 * self.n, eom_rule)
        return d

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def _key(self) -> tuple[int, int]:
        # Weeks compare with days, years with months
        if self.unit == TimeUnit.WEEKS:
            return (TimeUnit.DAYS, self.n * 7)
        if self.unit == TimeUnit.YEARS:
            return (TimeUnit.MONTHS, self.n * 12)
        return (self.unit, self.n)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tenor):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __lt__(self, other: "Tenor") -> bool:
        if not isinstance(other, Tenor):
            return NotImplemented
        if self.unit == other.unit:
            return self.n < other.n
        return self.days < other.days

    def __str__(self) -> str:
        if self.is_empty:
            return ""
        return f"{self.n}{_UNIT_LETTERS[self.unit]}"


EMPTY_TENOR = Tenor(0, TimeUnit.NONE)


def parse_composite(text: str) -> list[Tenor]:
    """
    Parse a composite tenor such as ``"1Y5M"`` or ``"2 d 2 w"``.

    Components are returned in the order written.

    Raises
    ------
    ValueError
        If any part of the string is not a number-unit pair
    """
    compact = re.sub(r"\s+", "", text)
    if not compact:
        raise ValueError(f"CRITICAL: Empty composite tenor '{text}'")
    parts = _COMPOSITE_PATTERN.findall(compact)
    if "".join(n + u for n, u in parts) != compact:
        raise ValueError(f"CRITICAL: Unrecognised composite tenor '{text}'")
    return [Tenor.parse(n + u) for n, u in parts]


def add_tenor(d: date, text: str, eom_rule: bool = False) -> date:
    """
    Add a (possibly composite) tenor string to a date, component by component.

    Examples
    --------
    >>> add_tenor(date(2012, 1, 31), "1M3M")
    datetime.date(2012, 5, 29)
    >>> add_tenor(date(2004, 5, 4), "7m5d")
    datetime.date(2004, 12, 9)
    """
    result = d
    for tenor in parse_composite(text):
        result = tenor.add_to(result, eom_rule)
    return result


# Standard tenors
ONE_DAY = Tenor(1, TimeUnit.DAYS)
ONE_WEEK = Tenor(1, TimeUnit.WEEKS)
ONE_MONTH = Tenor(1, TimeUnit.MONTHS)
THREE_MONTHS = Tenor(3, TimeUnit.MONTHS)
SIX_MONTHS = Tenor(6, TimeUnit.MONTHS)
ONE_YEAR = Tenor(1, TimeUnit.YEARS)
TWO_YEARS = Tenor(2, TimeUnit.YEARS)
FIVE_YEARS = Tenor(5, TimeUnit.YEARS)
TEN_YEARS = Tenor(10, TimeUnit.YEARS)
THIRTY_YEARS = Tenor(30, TimeUnit.YEARS)
