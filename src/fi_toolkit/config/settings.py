"""
Frozen configuration settings for fixed-income analytics.

All configuration is immutable (frozen dataclasses) to ensure reproducibility.
Numerical tolerances live in config/tolerances.py.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from fi_toolkit.config.tolerances import (
    CALIBRATION_TOLERANCE,
    ROOT_FINDER_XTOL,
)

# =============================================================================
# Data Configuration
# =============================================================================

def _resolve_quotes_dir() -> Path:
    """
    Resolve quote fixture directory with environment variable override.

    Priority:
    1. FI_TOOLKIT_QUOTES_DIR environment variable (if set)
    2. Default: tests/fixtures in project root

    Returns
    -------
    Path
        Resolved directory holding CSV quote tables
    """
    env_path = os.environ.get("FI_TOOLKIT_QUOTES_DIR")
    if env_path:
        return Path(env_path)
    return Path(__file__).parent.parent.parent.parent / "tests" / "fixtures"


def _resolve_mc_seed() -> int:
    """Resolve default Monte Carlo seed (FI_TOOLKIT_MC_SEED overrides 42)."""
    env_seed = os.environ.get("FI_TOOLKIT_MC_SEED")
    if env_seed:
        try:
            return int(env_seed)
        except ValueError as e:
            raise ValueError(
                f"CRITICAL: FI_TOOLKIT_MC_SEED must be an integer, got {env_seed!r}"
            ) from e
    return 42


@dataclass(frozen=True)
class DataConfig:
    """
    Immutable data configuration.

    Attributes
    ----------
    quotes_dir : Path
        Directory of CSV quote tables. Override with FI_TOOLKIT_QUOTES_DIR.
    comment_prefix : str
        Lines starting with this prefix are ignored by the quote loader
    """

    quotes_dir: Path = None  # type: ignore[assignment]  # Set in __post_init__
    comment_prefix: str = "#"

    def __post_init__(self) -> None:
        """Initialize quotes_dir using resolver function."""
        if self.quotes_dir is None:
            object.__setattr__(self, "quotes_dir", _resolve_quotes_dir())


# =============================================================================
# Curve Configuration
# =============================================================================

@dataclass(frozen=True)
class CurveConfig:
    """
    Immutable curve construction defaults.

    Attributes
    ----------
    interp_method : str
        Default interpolation for discount and survival curves.
        "weighted" gives piecewise-flat forwards/hazards. [T1]
    extrap_method : str
        Default extrapolation beyond the last pillar
    time_basis_days : float
        Days per year for curve time axis (Act/365F) [T1]
    """

    interp_method: str = "weighted"
    extrap_method: str = "smooth"
    time_basis_days: float = 365.0


# =============================================================================
# Calibration Configuration
# =============================================================================

@dataclass(frozen=True)
class CalibrationConfig:
    """
    Immutable calibration configuration.

    Attributes
    ----------
    tolerance : float
        Maximum repricing error on calibrated instruments
    xtol : float
        Absolute tolerance passed to brentq
    max_iterations : int
        Iteration cap for root finders
    df_bracket : tuple[float, float]
        Discount-factor search bracket for swap bootstrapping [T3]
    default_recovery : float
        Recovery rate assumed when a CDS quote omits one [T2: ISDA standard]
    """

    tolerance: float = CALIBRATION_TOLERANCE
    xtol: float = ROOT_FINDER_XTOL
    max_iterations: int = 200
    df_bracket: tuple[float, float] = (1e-6, 2.0)
    default_recovery: float = 0.40


# =============================================================================
# Monte Carlo Configuration
# =============================================================================

@dataclass(frozen=True)
class MonteCarloConfig:
    """
    Immutable Monte Carlo configuration.

    Attributes
    ----------
    n_paths : int
        Default number of simulated scenarios
    seed : int
        Random seed. Override with FI_TOOLKIT_MC_SEED.
    quadrature_points : int
        Gauss-Hermite points for semi-analytic basket models [T1]
    """

    n_paths: int = 50_000
    seed: int = None  # type: ignore[assignment]  # Set in __post_init__
    quadrature_points: int = 40

    def __post_init__(self) -> None:
        """Initialize seed using resolver function."""
        if self.seed is None:
            object.__setattr__(self, "seed", _resolve_mc_seed())


# =============================================================================
# Sensitivity Configuration
# =============================================================================

@dataclass(frozen=True)
class SensitivityConfig:
    """
    Immutable bump-and-reprice configuration.

    Attributes
    ----------
    rate_bump : float
        Default interest-rate bump (1bp) [T1: market convention]
    spread_bump : float
        Default credit-spread bump (1bp)
    vol_bump : float
        Default volatility bump (1 vol point)
    """

    rate_bump: float = 0.0001
    spread_bump: float = 0.0001
    vol_bump: float = 0.01


# =============================================================================
# Validation Configuration
# =============================================================================

@dataclass(frozen=True)
class ValidationConfig:
    """
    Immutable validation configuration.

    Attributes
    ----------
    halt_on_negative_forward : bool
        Whether negative forward rates HALT (default WARN only, since
        negative rates are legitimate in some currencies)
    max_hazard_rate : float
        Hazard rates above this WARN [T3]
    """

    halt_on_negative_forward: bool = False
    max_hazard_rate: float = 5.0


# =============================================================================
# Master Configuration
# =============================================================================

@dataclass(frozen=True)
class Settings:
    """
    Master frozen configuration combining all sub-configs.

    Usage
    -----
    >>> from fi_toolkit.config.settings import SETTINGS
    >>> SETTINGS.calibration.default_recovery
    0.4
    """

    data: DataConfig = DataConfig()
    curve: CurveConfig = CurveConfig()
    calibration: CalibrationConfig = CalibrationConfig()
    monte_carlo: MonteCarloConfig = MonteCarloConfig()
    sensitivity: SensitivityConfig = SensitivityConfig()
    validation: ValidationConfig = ValidationConfig()


# Singleton instance - import this
SETTINGS = Settings()
