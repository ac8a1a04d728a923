"""
Centralized pytest fixtures for the fi-toolkit test suite.

Fixture Categories:
1. Fixture Paths - CSV quote tables and their checksums
2. Market Curves - Flat and upward sloping discount and survival curves
3. Quote Sets - Deposit/swap and CDS quotes, file-based and synthetic
4. Adapter Fixtures - External library adapters
5. Random Numbers - Reproducible generators
"""

import hashlib
import warnings
from datetime import date
from pathlib import Path

import numpy as np
import pytest

from fi_toolkit.curves import DiscountCurve, SurvivalCurve
from fi_toolkit.loaders import QuoteLoader, SyntheticQuoteProvider

# =============================================================================
# FIXTURE PATHS
# =============================================================================

FIXTURES_DIR = Path(__file__).parent / "fixtures"
USD_QUOTES_PATH = FIXTURES_DIR / "usd_quotes.csv"
CDS_QUOTES_PATH = FIXTURES_DIR / "cds_quotes.csv"
CHECKSUMS_PATH = FIXTURES_DIR / "CHECKSUMS.sha256"

AS_OF = date(2024, 1, 2)


# =============================================================================
# CHECKSUM VERIFICATION
# =============================================================================

def _compute_sha256(filepath: Path) -> str:
    sha256_hash = hashlib.sha256()
    with open(filepath, "rb") as f:
        for chunk in iter(lambda: f.read(4096), b""):
            sha256_hash.update(chunk)
    return sha256_hash.hexdigest()


def _load_expected_checksums() -> dict[str, str]:
    checksums = {}
    if CHECKSUMS_PATH.exists():
        with open(CHECKSUMS_PATH) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#"):
                    parts = line.split()
                    if len(parts) >= 2:
                        checksums[parts[1]] = parts[0]
    return checksums


@pytest.fixture(scope="session", autouse=True)
def verify_fixture_checksums():
    """
    Warn when a quote fixture has changed since its checksum was recorded.

    If the change was intentional, update tests/fixtures/CHECKSUMS.sha256.
    """
    for filename, expected_hash in _load_expected_checksums().items():
        filepath = FIXTURES_DIR / filename
        if filepath.exists():
            actual_hash = _compute_sha256(filepath)
            if actual_hash != expected_hash:
                warnings.warn(
                    f"Fixture checksum mismatch for {filename}!\n"
                    f"  Expected: {expected_hash}\n"
                    f"  Actual:   {actual_hash}\n"
                    f"If intentional, update tests/fixtures/CHECKSUMS.sha256",
                    UserWarning,
                )


# =============================================================================
# MARKET CURVES
# =============================================================================

@pytest.fixture
def as_of() -> date:
    """Standard valuation date."""
    return AS_OF


@pytest.fixture
def flat_discount_curve() -> DiscountCurve:
    """4% continuously compounded flat curve."""
    return DiscountCurve.flat(AS_OF, 0.04)


@pytest.fixture
def sloped_discount_curve() -> DiscountCurve:
    """Upward sloping zero curve out to 30 years."""
    pillars = [date(2025, 1, 2), date(2026, 1, 2), date(2029, 1, 2),
               date(2034, 1, 2), date(2054, 1, 2)]
    return DiscountCurve.from_zero_rates(
        AS_OF, pillars, [0.030, 0.033, 0.037, 0.040, 0.042], name="sloped"
    )


@pytest.fixture
def flat_survival_curve() -> SurvivalCurve:
    """2% flat hazard curve."""
    return SurvivalCurve.flat(AS_OF, 0.02)


# =============================================================================
# QUOTE SETS
# =============================================================================

@pytest.fixture(scope="session")
def quote_loader() -> QuoteLoader:
    return QuoteLoader(FIXTURES_DIR)


@pytest.fixture
def usd_rate_quotes(quote_loader: QuoteLoader) -> list:
    """Deposit and swap quotes from tests/fixtures/usd_quotes.csv."""
    if not USD_QUOTES_PATH.exists():
        pytest.skip(f"Quote fixture not found: {USD_QUOTES_PATH}")
    return quote_loader.load_rate_quotes(USD_QUOTES_PATH.name)


@pytest.fixture
def cds_quotes(quote_loader: QuoteLoader) -> list:
    """CDS spreads from tests/fixtures/cds_quotes.csv."""
    if not CDS_QUOTES_PATH.exists():
        pytest.skip(f"Quote fixture not found: {CDS_QUOTES_PATH}")
    return quote_loader.load_cds_quotes(CDS_QUOTES_PATH.name)


@pytest.fixture
def synthetic_provider() -> SyntheticQuoteProvider:
    """Seeded synthetic quote generator."""
    return SyntheticQuoteProvider(seed=42)


@pytest.fixture
def basket_curves(synthetic_provider: SyntheticQuoteProvider) -> dict[str, SurvivalCurve]:
    """Ten flat-hazard names with hazards between 0.5% and 3%."""
    return synthetic_provider.basket_curves(AS_OF, 10)


# =============================================================================
# ADAPTER FIXTURES (Optional Dependencies)
# =============================================================================

@pytest.fixture
def quantlib_adapter():
    """
    QuantLib adapter for cross-validation.

    Skips if QuantLib not installed.
    """
    pytest.importorskip("QuantLib")
    from fi_toolkit.adapters.quantlib_adapter import QuantLibAdapter

    return QuantLibAdapter()


# =============================================================================
# NUMPY RANDOM SEED
# =============================================================================

@pytest.fixture
def reproducible_rng():
    """Reproducible numpy random generator."""
    return np.random.default_rng(seed=42)
