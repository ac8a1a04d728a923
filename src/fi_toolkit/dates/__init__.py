"""
Dates: day counts, tenors, business-day calendars and coupon schedules.
"""

from fi_toolkit.dates.calendars import BDConvention, Calendar
from fi_toolkit.dates.dateutils import (
    ImmRule,
    add_months,
    cds_maturity,
    cds_roll,
    from_int,
    imm_date,
    imm_date_from_code,
    imm_next,
    to_int,
)
from fi_toolkit.dates.daycount import DayCount, day_count_days, year_fraction
from fi_toolkit.dates.schedule import Period, Schedule, StubRule
from fi_toolkit.dates.tenor import Frequency, Tenor, TimeUnit, add_tenor

__all__ = [
    # Calendars
    "BDConvention",
    "Calendar",
    # Date utilities
    "ImmRule",
    "add_months",
    "cds_maturity",
    "cds_roll",
    "from_int",
    "imm_date",
    "imm_date_from_code",
    "imm_next",
    "to_int",
    # Day counts
    "DayCount",
    "day_count_days",
    "year_fraction",
    # Schedules
    "Period",
    "Schedule",
    "StubRule",
    # Tenors
    "Frequency",
    "Tenor",
    "TimeUnit",
    "add_tenor",
]
