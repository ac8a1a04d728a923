"""
QuantLib adapter for day-count, discounting and caplet cross-checks.

Cases checked:
- year fractions for the day counts QuantLib shares with fi_toolkit
- discount factors on a flat continuously compounded Act/365F curve
- Black-76 caplet prices

Note: QuantLib requires separate wheel installation on some platforms.
"""

from datetime import date

from fi_toolkit.adapters.base import BaseAdapter, ValidationResult
from fi_toolkit.config.tolerances import CROSS_LIBRARY_PRICE_TOLERANCE, CROSS_LIBRARY_TOLERANCE
from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.dates.daycount import DayCount, year_fraction
from fi_toolkit.models.black import OptionType, black76

# Try to import QuantLib
try:
    import QuantLib as ql

    QUANTLIB_AVAILABLE = True
except ImportError:
    QUANTLIB_AVAILABLE = False


class QuantLibAdapter(BaseAdapter):
    """
    Adapter for validating fi_toolkit against QuantLib.

    Examples
    --------
    >>> adapter = QuantLibAdapter()
    >>> if adapter.is_available:
    ...     r = adapter.validate_flat_discount(date(2024, 1, 2), 0.05, date(2029, 1, 2))
    """

    @property
    def name(self) -> str:
        return "QuantLib"

    @property
    def is_available(self) -> bool:
        return QUANTLIB_AVAILABLE

    @property
    def _install_hint(self) -> str:
        return "pip install QuantLib"

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    @staticmethod
    def to_ql_date(d: date) -> "ql.Date":
        return ql.Date(d.day, d.month, d.year)

    def day_counter(self, dc: DayCount) -> "ql.DayCounter":
        """QuantLib day counter matching ``dc``."""
        self.require_available()
        mapping = {
            DayCount.ACTUAL_360: lambda: ql.Actual360(),
            DayCount.ACTUAL_365_FIXED: lambda: ql.Actual365Fixed(),
            DayCount.ACTUAL_ACTUAL: lambda: ql.ActualActual(ql.ActualActual.ISDA),
            DayCount.ACTUAL_ACTUAL_AFB: lambda: ql.ActualActual(ql.ActualActual.AFB),
            DayCount.THIRTY_360: lambda: ql.Thirty360(ql.Thirty360.BondBasis),
            DayCount.THIRTY_E_360: lambda: ql.Thirty360(ql.Thirty360.European),
        }
        if dc not in mapping:
            raise ValueError(f"CRITICAL: No QuantLib equivalent for {dc.value}")
        return mapping[dc]()

    # ------------------------------------------------------------------
    # External values
    # ------------------------------------------------------------------

    def year_fraction(self, start: date, end: date, dc: DayCount) -> float:
        return self.day_counter(dc).yearFraction(self.to_ql_date(start), self.to_ql_date(end))

    def discount_factor_flat(self, as_of: date, rate: float, maturity: date) -> float:
        """Flat continuously compounded Act/365F discount factor."""
        self.require_available()
        ql.Settings.instance().evaluationDate = self.to_ql_date(as_of)
        curve = ql.FlatForward(
            self.to_ql_date(as_of), rate, ql.Actual365Fixed(), ql.Continuous, ql.Annual
        )
        return curve.discount(self.to_ql_date(maturity))

    def black_price(
        self,
        forward: float,
        strike: float,
        volatility: float,
        time: float,
        option_type: OptionType,
        discount: float = 1.0,
    ) -> float:
        self.require_available()
        ql_type = ql.Option.Call if option_type == OptionType.CALL else ql.Option.Put
        return ql.blackFormula(ql_type, strike, forward, volatility * time ** 0.5, discount)

    # ------------------------------------------------------------------
    # Comparisons
    # ------------------------------------------------------------------

    def validate_year_fraction(self, start: date, end: date, dc: DayCount) -> ValidationResult:
        return self.compare(
            year_fraction(start, end, dc),
            self.year_fraction(start, end, dc),
            tolerance=CROSS_LIBRARY_TOLERANCE,
            test_case=f"{dc.value} {start} -> {end}",
        )

    def validate_flat_discount(self, as_of: date, rate: float, maturity: date) -> ValidationResult:
        ours = DiscountCurve.flat(as_of, rate).discount_factor(maturity)
        return self.compare(
            ours,
            self.discount_factor_flat(as_of, rate, maturity),
            tolerance=CROSS_LIBRARY_TOLERANCE,
            test_case=f"flat {rate} to {maturity}",
        )

    def validate_black76(
        self,
        forward: float,
        strike: float,
        volatility: float,
        time: float,
        option_type: OptionType = OptionType.CALL,
        discount: float = 1.0,
    ) -> ValidationResult:
        ours = black76(forward, strike, volatility, time, option_type, discount).price
        theirs = self.black_price(forward, strike, volatility, time, option_type, discount)
        return self.compare(
            ours,
            theirs,
            tolerance=CROSS_LIBRARY_PRICE_TOLERANCE,
            test_case=f"black76 F={forward} K={strike} vol={volatility} T={time}",
            relative=True,
        )
