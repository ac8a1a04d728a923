"""
Coupon schedule generation.

A schedule splits [effective, maturity] into accrual periods on a regular
cycle set by the payment frequency. Each period remembers its regular
(notional) cycle, so stub periods can be measured the way Act/Act ICMA
requires.

Generation:
- With a first coupon, cycle dates run forward from it. The first period
  is a front stub and an off-cycle maturity leaves a short back stub.
- With a last coupon, cycle dates run backward from it and the final
  period runs from the last coupon to maturity.
- Otherwise the stub rule decides the direction and stub length.

A cycle date whose rolled date lands on or after the rolled maturity is
absorbed into the final period.

References:
    [T1] ISDA (2006) Definitions, Section 4.16(c) - Act/Act ICMA stubs
    [T1] ICMA Rule 251 - notional coupon periods
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

import pandas as pd

from fi_toolkit.dates.calendars import NONE as NO_CALENDAR
from fi_toolkit.dates.calendars import BDConvention, Calendar
from fi_toolkit.dates.daycount import DayCount, year_fraction
from fi_toolkit.dates.tenor import Frequency, Tenor


class StubRule(Enum):
    """Stub placement when neither a first nor a last coupon is given."""

    SHORT_FRONT = "short_front"
    LONG_FRONT = "long_front"
    SHORT_BACK = "short_back"
    LONG_BACK = "long_back"


def _shift(anchor: date, step: Tenor, k: int, eom_rule: bool) -> date:
    """Move ``k`` whole steps from the anchor (no cumulative clamping drift)."""
    if k == 0:
        return anchor
    multiple = Tenor(step.n * abs(k), step.unit)
    return multiple.add_to(anchor, eom_rule, sign=1 if k > 0 else -1)


# =============================================================================
# Period
# =============================================================================

@dataclass(frozen=True)
class Period:
    """
    One accrual period of a schedule.

    Attributes
    ----------
    accrual_start, accrual_end : date
        Dates interest accrues between
    cycle_start, cycle_end : date
        Regular coupon period the accrual belongs to. Equal to the accrual
        dates for a regular period; differ for stubs.
    payment_date : date
        Rolled payment date
    frequency : Frequency
        Coupon frequency of the schedule
    eom_rule : bool
        Whether notional periods keep month-end dates
    """

    accrual_start: date
    accrual_end: date
    cycle_start: date
    cycle_end: date
    payment_date: date
    frequency: Frequency = Frequency.NONE
    eom_rule: bool = False

    @property
    def is_regular(self) -> bool:
        return (
            self.accrual_start == self.cycle_start
            and self.accrual_end == self.cycle_end
        )

    @property
    def days(self) -> int:
        return (self.accrual_end - self.accrual_start).days

    def fraction(self, dc: DayCount) -> float:
        """
        Accrual fraction of the period.

        [T1] Act/Act ICMA measures each piece of a stub against the
        notional regular period that contains it; a long stub is the sum
        of its pieces.
        """
        if dc == DayCount.ACTUAL_ACTUAL_ICMA:
            return self._icma_fraction()
        if dc == DayCount.ACTUAL_365L:
            return year_fraction(
                self.accrual_start, self.accrual_end, dc,
                self.cycle_start, self.cycle_end,
                self.frequency if self.frequency != Frequency.NONE else None,
            )
        return year_fraction(self.accrual_start, self.accrual_end, dc)

    def _icma_fraction(self) -> float:
        if self.frequency == Frequency.NONE:
            return year_fraction(self.accrual_start, self.accrual_end, DayCount.ACTUAL_ACTUAL)

        freq = int(self.frequency)
        step = Tenor.from_frequency(self.frequency)
        start, end = self.accrual_start, self.accrual_end

        def piece(a: date, b: date, ns: date, ne: date) -> float:
            return (b - a).days / ((ne - ns).days * freq)

        core_start = max(start, self.cycle_start)
        core_end = min(end, self.cycle_end)
        total = 0.0
        if core_end > core_start:
            total += piece(core_start, core_end, self.cycle_start, self.cycle_end)

        # Front extension over earlier notional periods
        notional_end = self.cycle_start
        while start < notional_end:
            notional_start = step.add_to(notional_end, self.eom_rule, sign=-1)
            total += piece(max(start, notional_start), notional_end, notional_start, notional_end)
            notional_end = notional_start

        # Back extension over later notional periods
        notional_start = self.cycle_end
        while end > notional_start:
            notional_end = step.add_to(notional_start, self.eom_rule)
            total += piece(notional_start, min(end, notional_end), notional_start, notional_end)
            notional_start = notional_end

        return total


# =============================================================================
# Schedule
# =============================================================================

class Schedule:
    """
    Accrual and payment schedule of a coupon stream.

    Parameters
    ----------
    effective : date
        First accrual date
    maturity : date
        Last accrual date (unadjusted)
    frequency : Frequency
        Coupons per year; NONE gives a single period
    bdc : BDConvention
        Roll convention for payment (and, with ``adjust_next``, accrual) dates
    calendar : Calendar
        Business-day calendar
    first_coupon : date, optional
        First regular coupon date; cycle dates run forward from it
    last_coupon : date, optional
        Last regular coupon date before maturity
    eom_rule : bool
        Keep month-end cycle dates at month end
    adjust_next : bool
        Accrual dates are rolled, and each cycle date is stepped from the
        previous rolled date
    stub : StubRule
        Stub placement when no first or last coupon is given

    Examples
    --------
    >>> sched = Schedule(date(2000, 1, 5), date(2004, 1, 5), Frequency.SEMI_ANNUAL,
    ...                  BDConvention.FOLLOWING, NO_CALENDAR)
    >>> len(sched)
    8
    >>> sched[3].payment_date
    datetime.date(2002, 1, 7)
    """

    def __init__(
        self,
        effective: date,
        maturity: date,
        frequency: Frequency,
        bdc: BDConvention = BDConvention.NONE,
        calendar: Calendar = NO_CALENDAR,
        first_coupon: date | None = None,
        last_coupon: date | None = None,
        eom_rule: bool = False,
        adjust_next: bool = False,
        stub: StubRule = StubRule.SHORT_FRONT,
    ):
        if maturity <= effective:
            raise ValueError(
                f"CRITICAL: Maturity {maturity} must be after effective date {effective}"
            )
        if first_coupon is not None and not effective < first_coupon <= maturity:
            raise ValueError(
                f"CRITICAL: First coupon {first_coupon} must be in "
                f"({effective}, {maturity}]"
            )
        if last_coupon is not None:
            # a last coupon on the effective date would leave a zero-length period
            if first_coupon is None:
                ok, window = effective < last_coupon <= maturity, f"({effective}, {maturity}]"
            else:
                ok, window = first_coupon <= last_coupon <= maturity, f"[{first_coupon}, {maturity}]"
            if not ok:
                raise ValueError(f"CRITICAL: Last coupon {last_coupon} must be in {window}")
            if last_coupon == maturity:
                last_coupon = None

        self.effective = effective
        self.maturity = maturity
        self.frequency = Frequency(frequency)
        self.bdc = bdc
        self.calendar = calendar
        self.first_coupon = first_coupon
        self.last_coupon = last_coupon
        self.eom_rule = eom_rule
        self.adjust_next = adjust_next
        self.stub = stub
        self._step = Tenor.from_frequency(self.frequency)
        self._periods = tuple(self._build())

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _roll(self, d: date) -> date:
        return self.calendar.roll(d, self.bdc)

    def _build(self) -> list[Period]:
        if self._step.is_empty:
            bounds = [(self.effective, self.maturity, self.effective, self.maturity)]
        elif self.first_coupon is not None:
            bounds = self._forward(self.first_coupon, front_stub=True)
        elif self.last_coupon is not None:
            bounds = self._backward(self.last_coupon)
            cycle_end = _shift(self.last_coupon, self._step, 1, self.eom_rule)
            bounds.append((self.last_coupon, self.maturity, self.last_coupon, cycle_end))
        elif self.stub in (StubRule.SHORT_BACK, StubRule.LONG_BACK):
            bounds = self._forward(self.effective, front_stub=False)
        else:
            bounds = self._backward(self.maturity)

        periods = []
        last = len(bounds) - 1
        for i, (start, end, cycle_start, cycle_end) in enumerate(bounds):
            payment = self._roll(end)
            if self.adjust_next:
                if i > 0:
                    start = self._roll(start)
                end = payment
            periods.append(Period(
                accrual_start=start,
                accrual_end=end,
                cycle_start=cycle_start,
                cycle_end=cycle_end,
                payment_date=payment,
                frequency=self.frequency,
                eom_rule=self.eom_rule,
            ))
            if i < last and end > bounds[i + 1][1]:
                raise ValueError(
                    f"CRITICAL: Schedule period ending {end} overruns the next period"
                )
        return periods

    def _forward(self, anchor: date, front_stub: bool) -> list[tuple[date, date, date, date]]:
        """Cycle dates stepped forward from the anchor to maturity."""
        rolled_maturity = self._roll(self.maturity)
        cycle = [anchor]
        if self.adjust_next:
            cycle = [self._roll(anchor)]
            while True:
                candidate = self._step.add_to(cycle[-1], self.eom_rule)
                if candidate >= self.maturity or self._roll(candidate) >= rolled_maturity:
                    break
                cycle.append(self._roll(candidate))
            next_cycle = candidate
        else:
            k = 1
            while True:
                candidate = _shift(anchor, self._step, k, self.eom_rule)
                if candidate >= self.maturity or self._roll(candidate) >= rolled_maturity:
                    break
                cycle.append(candidate)
                k += 1
            next_cycle = candidate

        if self.maturity == next_cycle:
            cycle.append(self.maturity)
            next_cycle = None
        elif self.stub == StubRule.LONG_BACK and self.first_coupon is None and len(cycle) > 1:
            next_cycle = cycle.pop()

        bounds = []
        if front_stub and self.effective < anchor:
            previous = _shift(anchor, self._step, -1, self.eom_rule)
            bounds.append((self.effective, cycle[0], previous, cycle[0]))
        for start, end in zip(cycle[:-1], cycle[1:]):
            bounds.append((start, end, start, end))
        if next_cycle is not None:
            bounds.append((cycle[-1], self.maturity, cycle[-1], next_cycle))
        return bounds

    def _backward(self, anchor: date) -> list[tuple[date, date, date, date]]:
        """Cycle dates stepped backward from the anchor to the effective date."""
        cycle = [anchor]
        k = 1
        while True:
            candidate = _shift(anchor, self._step, -k, self.eom_rule)
            if candidate <= self.effective:
                break
            cycle.insert(0, candidate)
            k += 1
        previous_cycle = candidate

        if previous_cycle == self.effective:
            cycle.insert(0, self.effective)
            previous_cycle = None
        elif self.stub == StubRule.LONG_FRONT and len(cycle) > 1:
            previous_cycle = cycle.pop(0)

        bounds = []
        if previous_cycle is not None:
            bounds.append((self.effective, cycle[0], previous_cycle, cycle[0]))
        for start, end in zip(cycle[:-1], cycle[1:]):
            bounds.append((start, end, start, end))
        return bounds

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def periods(self) -> tuple[Period, ...]:
        return self._periods

    def __len__(self) -> int:
        return len(self._periods)

    def __iter__(self):
        return iter(self._periods)

    def __getitem__(self, i: int) -> Period:
        return self._periods[i]

    def periods_after(self, as_of: date) -> list[Period]:
        """Periods whose payment date is on or after ``as_of``."""
        return [p for p in self._periods if p.payment_date >= as_of]

    def next_coupon_date(self, d: date) -> date | None:
        """First accrual end strictly after ``d``, or None past maturity."""
        for p in self._periods:
            if p.accrual_end > d:
                return p.accrual_end
        return None

    def previous_coupon_date(self, d: date) -> date | None:
        """Last accrual boundary on or before ``d``, or None before the start."""
        if d < self._periods[0].accrual_start:
            return None
        result = self._periods[0].accrual_start
        for p in self._periods:
            if p.accrual_end > d:
                break
            result = p.accrual_end
        return result

    def coupons_remaining(self, d: date) -> int:
        return sum(1 for p in self._periods if p.accrual_end > d)

    def to_frame(self) -> pd.DataFrame:
        """One row per period."""
        return pd.DataFrame(
            [
                {
                    "accrual_start": p.accrual_start,
                    "accrual_end": p.accrual_end,
                    "cycle_start": p.cycle_start,
                    "cycle_end": p.cycle_end,
                    "payment_date": p.payment_date,
                    "days": p.days,
                }
                for p in self._periods
            ]
        )

    def __repr__(self) -> str:
        return (
            f"Schedule({self.effective}, {self.maturity}, {self.frequency.name}, "
            f"periods={len(self)})"
        )
