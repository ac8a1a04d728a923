"""
Market quotes used to calibrate curves.

Each quote knows its instrument type, when its rate period starts and
ends relative to a settle date, and how to produce a bumped copy for
quote-level sensitivities.

Futures prices are decimal fractions (0.99715 for a 99.715 screen price).
"""

import re
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum

from fi_toolkit.dates.calendars import NONE as NO_CALENDAR
from fi_toolkit.dates.calendars import BDConvention, Calendar
from fi_toolkit.dates.dateutils import cds_maturity, imm_date_from_code
from fi_toolkit.dates.daycount import DayCount
from fi_toolkit.dates.tenor import Frequency, Tenor


class InstrumentType(Enum):
    """Calibration instrument type."""

    MM = "MM"
    FRA = "FRA"
    FUT = "FUT"
    SWAP = "SWAP"
    CDS = "CDS"

    @classmethod
    def parse(cls, text: str) -> "InstrumentType":
        key = text.strip().upper()
        aliases = {"MONEYMARKET": "MM", "DEPOSIT": "MM", "FUTURE": "FUT", "FUTURES": "FUT"}
        try:
            return cls(aliases.get(key, key))
        except ValueError:
            raise ValueError(
                f"CRITICAL: Unknown instrument type '{text}'. "
                f"Valid: {[t.value for t in cls]}"
            ) from None


#: Instrument types whose rate period starts in the future
FORWARD_STARTING = frozenset({InstrumentType.FRA, InstrumentType.FUT})

_FRA_PATTERN = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


@dataclass(frozen=True)
class MoneyMarketQuote:
    """
    Deposit rate from settle to settle + tenor.

    [T1] P(T) = P(settle) / (1 + r * tau)
    """

    tenor: str
    rate: float
    day_count: DayCount = DayCount.ACTUAL_360
    bdc: BDConvention = BDConvention.MODIFIED_FOLLOWING

    instrument_type = InstrumentType.MM

    @property
    def name(self) -> str:
        return self.tenor

    def start(self, settle: date, calendar: Calendar = NO_CALENDAR) -> date:
        return settle

    def maturity(self, settle: date, calendar: Calendar = NO_CALENDAR) -> date:
        return calendar.roll(Tenor.parse(self.tenor).add_to(settle), self.bdc)

    def bumped(self, size: float) -> "MoneyMarketQuote":
        return replace(self, rate=self.rate + size)


@dataclass(frozen=True)
class FraQuote:
    """
    Forward rate agreement named "AxB" (start and end in months from settle).

    [T1] P(end) = P(start) / (1 + r * tau)
    """

    tenor: str
    rate: float
    day_count: DayCount = DayCount.ACTUAL_360
    bdc: BDConvention = BDConvention.MODIFIED_FOLLOWING

    instrument_type = InstrumentType.FRA

    def __post_init__(self) -> None:
        match = _FRA_PATTERN.match(self.tenor)
        if not match or int(match.group(1)) >= int(match.group(2)):
            raise ValueError(f"CRITICAL: Invalid FRA name '{self.tenor}', expected e.g. '4x7'")

    @property
    def name(self) -> str:
        return self.tenor

    def _months(self) -> tuple[int, int]:
        match = _FRA_PATTERN.match(self.tenor)
        return int(match.group(1)), int(match.group(2))

    def start(self, settle: date, calendar: Calendar = NO_CALENDAR) -> date:
        months, _ = self._months()
        return calendar.roll(Tenor.parse(f"{months}M").add_to(settle), self.bdc)

    def maturity(self, settle: date, calendar: Calendar = NO_CALENDAR) -> date:
        _, months = self._months()
        return calendar.roll(Tenor.parse(f"{months}M").add_to(settle), self.bdc)

    def bumped(self, size: float) -> "FraQuote":
        return replace(self, rate=self.rate + size)


@dataclass(frozen=True)
class FutureQuote:
    """
    Three-month STIR future identified by an exchange code ("H1", "EDZ7").

    The rate period runs from the contract's IMM date for three months.

    [T1] f = 1 - price - convexity
    """

    code: str
    price: float
    day_count: DayCount = DayCount.ACTUAL_360
    bdc: BDConvention = BDConvention.MODIFIED_FOLLOWING
    convexity_vol: float | None = None

    instrument_type = InstrumentType.FUT

    def __post_init__(self) -> None:
        if not 0.0 < self.price < 2.0:
            raise ValueError(
                f"CRITICAL: Future price must be a decimal fraction (e.g. 0.99715), "
                f"got {self.price}"
            )

    @property
    def name(self) -> str:
        return self.code

    @property
    def rate(self) -> float:
        return 1.0 - self.price

    def start(self, settle: date, calendar: Calendar = NO_CALENDAR) -> date:
        return imm_date_from_code(settle, self.code)

    def maturity(self, settle: date, calendar: Calendar = NO_CALENDAR) -> date:
        return calendar.roll(Tenor.parse("3M").add_to(self.start(settle, calendar)), self.bdc)

    def bumped(self, size: float) -> "FutureQuote":
        """Shift the implied rate up by ``size`` (the price falls)."""
        return replace(self, price=self.price - size)


@dataclass(frozen=True)
class SwapQuote:
    """
    Par swap rate, fixed leg against a floating leg valued at par.

    [T1] rate * sum(tau_i * P(t_i)) = P(settle) - P(T)
    """

    tenor: str
    rate: float
    day_count: DayCount = DayCount.THIRTY_360
    frequency: Frequency = Frequency.SEMI_ANNUAL
    bdc: BDConvention = BDConvention.MODIFIED_FOLLOWING

    instrument_type = InstrumentType.SWAP

    @property
    def name(self) -> str:
        return self.tenor

    def start(self, settle: date, calendar: Calendar = NO_CALENDAR) -> date:
        return settle

    def unadjusted_maturity(self, settle: date) -> date:
        return Tenor.parse(self.tenor).add_to(settle)

    def maturity(self, settle: date, calendar: Calendar = NO_CALENDAR) -> date:
        return calendar.roll(self.unadjusted_maturity(settle), self.bdc)

    def bumped(self, size: float) -> "SwapQuote":
        return replace(self, rate=self.rate + size)


@dataclass(frozen=True)
class CdsSpreadQuote:
    """
    CDS par spread to a standard maturity.

    Maturities follow the standard CDS roll (20th of Mar/Jun/Sep/Dec,
    semi-annual roll after 2015-12-21).
    """

    tenor: str
    spread: float
    recovery: float | None = None

    instrument_type = InstrumentType.CDS

    def __post_init__(self) -> None:
        if self.spread < 0:
            raise ValueError(f"CRITICAL: CDS spread must be >= 0, got {self.spread}")
        if self.recovery is not None and not 0.0 <= self.recovery < 1.0:
            raise ValueError(f"CRITICAL: Recovery must be in [0, 1), got {self.recovery}")

    @property
    def name(self) -> str:
        return self.tenor

    @property
    def rate(self) -> float:
        return self.spread

    def start(self, settle: date, calendar: Calendar = NO_CALENDAR) -> date:
        return settle

    def maturity(self, settle: date, calendar: Calendar = NO_CALENDAR) -> date:
        return cds_maturity(settle, Tenor.parse(self.tenor))

    def bumped(self, size: float) -> "CdsSpreadQuote":
        return replace(self, spread=self.spread + size)


RateQuote = MoneyMarketQuote | FraQuote | FutureQuote | SwapQuote
