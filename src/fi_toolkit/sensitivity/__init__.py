"""
Bump-and-reprice sensitivities and scenario analysis.
"""

from fi_toolkit.sensitivity.bumps import (
    BumpSpec,
    BumpType,
    bump_discount_curve,
    bump_survival_curve,
)
from fi_toolkit.sensitivity.scenarios import (
    Scenario,
    ScenarioAnalyzer,
    SensitivityParameter,
    SensitivityResult,
    TornadoData,
    apply_shift,
    format_tornado_table,
)
from fi_toolkit.sensitivity.sensitivities import Sensitivities

__all__ = [
    "BumpSpec",
    "BumpType",
    "bump_discount_curve",
    "bump_survival_curve",
    "Scenario",
    "ScenarioAnalyzer",
    "SensitivityParameter",
    "SensitivityResult",
    "TornadoData",
    "apply_shift",
    "format_tornado_table",
    "Sensitivities",
]
