"""
Tests for the CSV quote loader and the synthetic quote generator.

Uses the fixtures in tests/fixtures and small files written to tmp_path.
"""

from datetime import date
from pathlib import Path

import numpy as np
import pytest

from fi_toolkit.calibrators import CdsSpreadQuote, FraQuote, FutureQuote, MoneyMarketQuote, SwapQuote
from fi_toolkit.dates import DayCount, Frequency
from fi_toolkit.errors import CalibrationError, QuoteLoadError
from fi_toolkit.loaders import (
    QuoteLoader,
    SyntheticQuoteProvider,
    load_discount_curve,
    load_survival_curve,
    parse_frequency,
    quotes_to_frame,
)

AS_OF = date(2024, 1, 2)
FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text)
    return path


# =============================================================================
# QuoteLoader
# =============================================================================

class TestQuoteLoader:
    """Tests for reading quote tables."""

    @pytest.fixture
    def loader(self) -> QuoteLoader:
        return QuoteLoader(FIXTURES_DIR)

    def test_load_rate_fixture(self, loader: QuoteLoader) -> None:
        quotes = loader.load_rate_quotes("usd_quotes.csv")
        assert len(quotes) == 10
        assert [q.name for q in quotes[:4]] == ["1M", "3M", "6M", "1Y"]
        assert isinstance(quotes[0], MoneyMarketQuote)
        assert quotes[0].day_count == DayCount.ACTUAL_360
        assert isinstance(quotes[3], SwapQuote)
        assert quotes[3].frequency == Frequency.SEMI_ANNUAL
        assert quotes[3].rate == pytest.approx(0.0490)

    def test_load_cds_fixture(self, loader: QuoteLoader) -> None:
        quotes = loader.load_cds_quotes("cds_quotes.csv")
        assert [q.tenor for q in quotes] == ["1Y", "2Y", "3Y", "5Y", "7Y", "10Y"]
        assert all(q.recovery == 0.4 for q in quotes)

    def test_default_base_dir_from_settings(self) -> None:
        assert QuoteLoader().base_dir.name == "fixtures"

    def test_absolute_path(self, loader: QuoteLoader, tmp_path: Path) -> None:
        path = _write(tmp_path, "mm.csv", "type,tenor,quote\nMM,3M,0.05\n")
        assert loader.resolve(path) == path
        assert loader.load(path) == [MoneyMarketQuote("3M", 0.05)]

    def test_all_instrument_types(self, tmp_path: Path) -> None:
        text = (
            "# mixed table\n"
            "type,tenor,quote,daycount,frequency,recovery,convexity_vol\n"
            "Deposit,1M,0.051,Act/360,,,\n"
            "FRA,3x6,0.052,,,,\n"
            "FUT,EDZ4,0.9475,,,,0.01\n"
            "swap,2Y,0.045,30/360,4,,\n"
            "CDS,5Y,0.011,,,,\n"
        )
        quotes = QuoteLoader(tmp_path).load(_write(tmp_path, "mixed.csv", text).name)
        mm, fra, fut, swap, cds = quotes
        assert isinstance(mm, MoneyMarketQuote)
        assert isinstance(fra, FraQuote) and fra.tenor == "3x6"
        assert isinstance(fut, FutureQuote) and fut.convexity_vol == pytest.approx(0.01)
        assert isinstance(swap, SwapQuote) and swap.frequency == Frequency.QUARTERLY
        assert isinstance(cds, CdsSpreadQuote) and cds.recovery is None

    def test_missing_file(self, loader: QuoteLoader) -> None:
        with pytest.raises(QuoteLoadError, match="not found"):
            loader.load("missing.csv")

    def test_missing_column(self, tmp_path: Path) -> None:
        _write(tmp_path, "bad.csv", "type,tenor\nMM,3M\n")
        with pytest.raises(QuoteLoadError, match="missing columns"):
            QuoteLoader(tmp_path).load("bad.csv")

    def test_header_only(self, tmp_path: Path) -> None:
        _write(tmp_path, "empty.csv", "type,tenor,quote\n")
        with pytest.raises(QuoteLoadError, match="no rows"):
            QuoteLoader(tmp_path).load("empty.csv")

    def test_empty_file(self, tmp_path: Path) -> None:
        _write(tmp_path, "blank.csv", "")
        with pytest.raises(QuoteLoadError, match="Failed to read"):
            QuoteLoader(tmp_path).load("blank.csv")

    def test_bad_row(self, tmp_path: Path) -> None:
        _write(tmp_path, "bad.csv", "type,tenor,quote\nMM,3M,0.05\nBOND,5Y,0.04\n")
        with pytest.raises(QuoteLoadError, match="Bad quote on row 1"):
            QuoteLoader(tmp_path).load("bad.csv")

    def test_cds_in_rate_file(self, tmp_path: Path) -> None:
        _write(tmp_path, "mixed.csv", "type,tenor,quote\nMM,3M,0.05\nCDS,5Y,0.01\n")
        with pytest.raises(QuoteLoadError, match="CDS quotes"):
            QuoteLoader(tmp_path).load_rate_quotes("mixed.csv")

    def test_rates_in_cds_file(self, loader: QuoteLoader) -> None:
        with pytest.raises(QuoteLoadError, match="Non-CDS"):
            loader.load_cds_quotes("usd_quotes.csv")

    def test_frame_reloads_to_same_quotes(self, loader: QuoteLoader, tmp_path: Path) -> None:
        quotes = loader.load_rate_quotes("usd_quotes.csv")
        frame = quotes_to_frame(quotes)
        assert list(frame.columns) == [
            "type", "tenor", "quote", "daycount", "frequency", "recovery", "convexity_vol"
        ]
        frame.to_csv(tmp_path / "copy.csv", index=False)
        assert QuoteLoader(tmp_path).load_rate_quotes("copy.csv") == quotes


class TestParseFrequency:
    """Tests for frequency parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("2", Frequency.SEMI_ANNUAL),
            ("4.0", Frequency.QUARTERLY),
            ("annual", Frequency.ANNUAL),
            ("6M", Frequency.SEMI_ANNUAL),
            ("3M", Frequency.QUARTERLY),
        ],
    )
    def test_formats(self, text: str, expected: Frequency) -> None:
        assert parse_frequency(text) == expected


# =============================================================================
# Curve loading
# =============================================================================

class TestLoadCurves:
    """Tests for load-and-calibrate convenience functions."""

    def test_load_discount_curve(self) -> None:
        curve = load_discount_curve(FIXTURES_DIR / "usd_quotes.csv", AS_OF, name="usd")
        assert curve.name == "usd"
        assert len(curve) == 10
        assert np.all(np.diff(curve.values) < 0)

    def test_load_survival_curve(self) -> None:
        curve = load_survival_curve(FIXTURES_DIR / "cds_quotes.csv", AS_OF)
        maturity = CdsSpreadQuote("5Y", 0.011).maturity(AS_OF)
        t = (maturity - AS_OF).days / 365.0
        assert curve.survival_probability(maturity) == pytest.approx(np.exp(-0.011 / 0.6 * t))

    def test_inverted_spreads_fail(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "inverted.csv", "type,tenor,quote\nCDS,1Y,0.05\nCDS,5Y,0.005\n")
        with pytest.raises(CalibrationError, match="Negative forward hazard"):
            load_survival_curve(path, AS_OF)


# =============================================================================
# Synthetic quotes
# =============================================================================

class TestSyntheticQuoteProvider:
    """Tests for the seeded synthetic quote generator."""

    def test_seed_reproducible(self) -> None:
        a = SyntheticQuoteProvider(seed=7).rate_quotes()
        b = SyntheticQuoteProvider(seed=7).rate_quotes()
        assert a == b

    def test_rate_quote_tenors(self) -> None:
        quotes = SyntheticQuoteProvider().rate_quotes(noise_bp=0.0)
        assert [q.name for q in quotes][-1] == "30Y"
        assert quotes[-1].rate == pytest.approx(0.03 + 0.01 * (1 - np.exp(-15.0)))

    def test_cds_spreads_non_decreasing(self) -> None:
        spreads = [q.spread for q in SyntheticQuoteProvider(seed=3).cds_quotes(0.02)]
        assert all(a <= b for a, b in zip(spreads, spreads[1:]))

    def test_basket_curves(self) -> None:
        curves = SyntheticQuoteProvider().basket_curves(AS_OF, 12, (0.01, 0.02), prefix="X")
        assert len(curves) == 12
        assert list(curves)[0] == "X000"
        hazards = [c.hazard_rate(date(2025, 6, 1)) for c in curves.values()]
        assert min(hazards) >= 0.01 - 1e-10
        assert max(hazards) <= 0.02 + 1e-10

    def test_invalid_hazard_range(self) -> None:
        with pytest.raises(ValueError, match="CRITICAL"):
            SyntheticQuoteProvider().basket_curves(AS_OF, 3, (0.03, 0.01))
