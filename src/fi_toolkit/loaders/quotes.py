"""
Quote table loader and synthetic quote generator.

CSV layout (one quote per row, ``#`` starts a comment):

    type,tenor,quote,daycount,frequency,recovery,convexity_vol
    MM,3M,0.0525,Act/360,,,
    FUT,EDZ4,0.9475,Act/360,,,0.01
    SWAP,5Y,0.0450,30/360,SEMI_ANNUAL,,
    CDS,5Y,0.0120,,,0.4,

Only ``type``, ``tenor`` and ``quote`` are required. ``quote`` is a rate
for MM/FRA/SWAP, a decimal price for FUT and a spread for CDS.

NEVER fails silently: a missing file, a missing column or an
unparseable row raises QuoteLoadError.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from fi_toolkit.calibrators.discount_bootstrap import DiscountBootstrapCalibrator
from fi_toolkit.calibrators.quotes import (
    CdsSpreadQuote,
    FraQuote,
    FutureQuote,
    InstrumentType,
    MoneyMarketQuote,
    RateQuote,
    SwapQuote,
)
from fi_toolkit.calibrators.survival_fit import SurvivalFitCalibrator
from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.curves.survival import SurvivalCurve
from fi_toolkit.dates.calendars import NONE as NO_CALENDAR
from fi_toolkit.dates.calendars import Calendar
from fi_toolkit.dates.daycount import DayCount
from fi_toolkit.dates.tenor import Frequency, Tenor
from fi_toolkit.errors import QuoteLoadError
from fi_toolkit.validation.gates import ensure_valid

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("type", "tenor", "quote")

Quote = Union[RateQuote, CdsSpreadQuote]


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, float) and np.isnan(value)) or str(value).strip() == ""


def parse_frequency(value) -> Frequency:
    """
    Frequency from a count ("2"), an enum name ("SEMI_ANNUAL") or a tenor ("6M").

    Examples
    --------
    >>> parse_frequency("6M")
    <Frequency.SEMI_ANNUAL: 2>
    """
    text = str(value).strip()
    if text.replace(".", "", 1).isdigit():
        return Frequency(int(float(text)))
    try:
        return Frequency[text.upper()]
    except KeyError:
        return Tenor.parse(text).to_frequency()


# =============================================================================
# Loader
# =============================================================================

class QuoteLoader:
    """
    Reads CSV quote tables into calibrator quote objects.

    Parameters
    ----------
    base_dir : Path, optional
        Directory for relative file names (default SETTINGS.data.quotes_dir)

    Examples
    --------
    >>> loader = QuoteLoader()  # doctest: +SKIP
    >>> quotes = loader.load_rate_quotes("usd_quotes.csv")  # doctest: +SKIP
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir is not None else SETTINGS.data.quotes_dir

    def resolve(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.base_dir / path

    def read(self, path: Union[str, Path]) -> pd.DataFrame:
        """
        Raw quote table with normalised column names.

        Raises
        ------
        QuoteLoadError
            If the file is missing, unreadable, empty or lacks a required column
        """
        file_path = self.resolve(path)
        if not file_path.exists():
            raise QuoteLoadError(f"CRITICAL: Quote file not found: {file_path}")
        try:
            df = pd.read_csv(
                file_path,
                comment=SETTINGS.data.comment_prefix,
                skipinitialspace=True,
                dtype={"tenor": str, "type": str},
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise QuoteLoadError(f"CRITICAL: Failed to read quotes from {file_path}: {e}") from e

        df.columns = [c.strip().lower() for c in df.columns]
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise QuoteLoadError(
                f"CRITICAL: Quote file {file_path} missing columns {missing}. "
                f"Found: {list(df.columns)}"
            )
        df = df.dropna(how="all")
        if df.empty:
            raise QuoteLoadError(f"CRITICAL: Quote file {file_path} has no rows")
        logger.debug(f"Read {len(df)} quotes from {file_path}")
        return df

    def _row_to_quote(self, row: pd.Series) -> Quote:
        kind = InstrumentType.parse(str(row["type"]))
        tenor = str(row["tenor"]).strip()
        value = float(row["quote"])
        kwargs = {}
        if not _is_blank(row.get("daycount")):
            kwargs["day_count"] = DayCount.parse(str(row["daycount"]))

        if kind == InstrumentType.MM:
            return MoneyMarketQuote(tenor, value, **kwargs)
        if kind == InstrumentType.FRA:
            return FraQuote(tenor, value, **kwargs)
        if kind == InstrumentType.FUT:
            if not _is_blank(row.get("convexity_vol")):
                kwargs["convexity_vol"] = float(row["convexity_vol"])
            return FutureQuote(tenor, value, **kwargs)
        if kind == InstrumentType.SWAP:
            if not _is_blank(row.get("frequency")):
                kwargs["frequency"] = parse_frequency(row["frequency"])
            return SwapQuote(tenor, value, **kwargs)
        recovery = None if _is_blank(row.get("recovery")) else float(row["recovery"])
        return CdsSpreadQuote(tenor, value, recovery)

    def load(self, path: Union[str, Path]) -> list[Quote]:
        """All quotes in the file, in file order."""
        df = self.read(path)
        quotes = []
        for i, row in df.iterrows():
            try:
                quotes.append(self._row_to_quote(row))
            except (ValueError, TypeError) as e:
                raise QuoteLoadError(f"CRITICAL: Bad quote on row {i} of {path}: {e}") from e
        return quotes

    def load_rate_quotes(self, path: Union[str, Path]) -> list[RateQuote]:
        """Discount curve quotes; a CDS row is an error."""
        quotes = self.load(path)
        cds = [q.name for q in quotes if isinstance(q, CdsSpreadQuote)]
        if cds:
            raise QuoteLoadError(f"CRITICAL: CDS quotes {cds} in rate quote file {path}")
        return quotes

    def load_cds_quotes(self, path: Union[str, Path]) -> list[CdsSpreadQuote]:
        """CDS spread quotes; any other row is an error."""
        quotes = self.load(path)
        other = [q.name for q in quotes if not isinstance(q, CdsSpreadQuote)]
        if other:
            raise QuoteLoadError(f"CRITICAL: Non-CDS quotes {other} in CDS quote file {path}")
        return quotes


def quotes_to_frame(quotes: list[Quote]) -> pd.DataFrame:
    """Quote objects back to the CSV layout."""
    rows = []
    for q in quotes:
        row = {"type": q.instrument_type.value, "tenor": q.name}
        if isinstance(q, FutureQuote):
            row["quote"] = q.price
            row["convexity_vol"] = q.convexity_vol
        elif isinstance(q, CdsSpreadQuote):
            row["quote"] = q.spread
            row["recovery"] = q.recovery
        else:
            row["quote"] = q.rate
        if hasattr(q, "day_count"):
            row["daycount"] = q.day_count.value
        if isinstance(q, SwapQuote):
            row["frequency"] = q.frequency.name
        rows.append(row)
    columns = ["type", "tenor", "quote", "daycount", "frequency", "recovery", "convexity_vol"]
    return pd.DataFrame(rows, columns=columns)


# =============================================================================
# Convenience Functions
# =============================================================================

def load_discount_curve(
    path: Union[str, Path],
    as_of: date,
    settle: Optional[date] = None,
    calendar: Calendar = NO_CALENDAR,
    name: str = "discount",
    validate: bool = True,
) -> DiscountCurve:
    """
    Load rate quotes and bootstrap a discount curve.

    Raises
    ------
    QuoteLoadError
        If the quote file is unusable
    CalibrationError
        If the bootstrap fails
    CurveValidationError
        If ``validate`` and a gate HALTs
    """
    quotes = QuoteLoader().load_rate_quotes(path)
    calibrator = DiscountBootstrapCalibrator(as_of, settle=settle, calendar=calendar, name=name)
    curve = calibrator.fit(quotes)
    if calibrator.dropped:
        logger.warning(f"{name}: dropped overlapping quotes {[q.name for q in calibrator.dropped]}")
    if validate:
        ensure_valid(curve, calibrator=calibrator)
    return curve


def load_survival_curve(
    path: Union[str, Path],
    as_of: date,
    recovery: Optional[float] = None,
    name: str = "survival",
    validate: bool = True,
) -> SurvivalCurve:
    """Load CDS spreads and fit a survival curve."""
    quotes = QuoteLoader().load_cds_quotes(path)
    calibrator = SurvivalFitCalibrator(as_of, recovery=recovery, name=name)
    curve = calibrator.fit(quotes)
    if validate:
        ensure_valid(curve, calibrator=calibrator)
    return curve


# =============================================================================
# Synthetic quotes
# =============================================================================

class SyntheticQuoteProvider:
    """
    Generate synthetic but realistic quote sets for testing and examples.

    ⚠️ SYNTHETIC DATA - NOT FOR PRODUCTION USE

    Usage
    -----
    >>> provider = SyntheticQuoteProvider(seed=42)
    >>> quotes = provider.rate_quotes()
    >>> [q.name for q in quotes][:3]
    ['1M', '3M', '6M']
    """

    MM_TENORS = ("1M", "3M", "6M")
    SWAP_TENORS = ("1Y", "2Y", "3Y", "5Y", "7Y", "10Y", "15Y", "20Y", "30Y")
    CDS_TENORS = ("1Y", "2Y", "3Y", "5Y", "7Y", "10Y")

    def __init__(self, seed: int = 42):
        self.rng = np.random.default_rng(seed)

    @staticmethod
    def _years(tenor: str) -> float:
        return Tenor.parse(tenor).years

    def rate_quotes(
        self, level: float = 0.03, slope: float = 0.01, noise_bp: float = 2.0
    ) -> list[RateQuote]:
        """
        Deposits and par swaps on a Nelson-Siegel-like shape.

        [T2] r(T) = level + slope * (1 - exp(-T / 2)) + noise
        """
        def rate(tenor: str) -> float:
            t = self._years(tenor)
            noise = self.rng.normal(0.0, noise_bp * 1e-4)
            return level + slope * (1.0 - np.exp(-t / 2.0)) + noise

        quotes: list[RateQuote] = [MoneyMarketQuote(t, rate(t)) for t in self.MM_TENORS]
        quotes += [SwapQuote(t, rate(t)) for t in self.SWAP_TENORS]
        return quotes

    def cds_quotes(self, spread_5y: float = 0.01, recovery: Optional[float] = None) -> list[CdsSpreadQuote]:
        """Upward sloping CDS spreads, non-decreasing so forward hazards stay positive."""
        spreads = []
        for tenor in self.CDS_TENORS:
            t = self._years(tenor)
            shape = 0.6 + 0.4 * min(t, 5.0) / 5.0 + 0.02 * max(t - 5.0, 0.0)
            spreads.append(spread_5y * shape * (1.0 + self.rng.normal(0.0, 0.02)))
        spreads = np.maximum.accumulate(np.maximum(spreads, 0.0))
        return [CdsSpreadQuote(t, float(s), recovery) for t, s in zip(self.CDS_TENORS, spreads)]

    def basket_curves(
        self,
        as_of: date,
        n_names: int,
        hazard_range: tuple[float, float] = (0.005, 0.03),
        prefix: str = "NAME",
    ) -> dict[str, SurvivalCurve]:
        """Flat-hazard survival curves for a basket, hazards uniform in ``hazard_range``."""
        lo, hi = hazard_range
        if not 0 <= lo <= hi:
            raise ValueError(f"CRITICAL: Invalid hazard range {hazard_range}")
        hazards = self.rng.uniform(lo, hi, n_names)
        return {
            f"{prefix}{i:03d}": SurvivalCurve.flat(as_of, float(h), name=f"{prefix}{i:03d}")
            for i, h in enumerate(hazards)
        }
