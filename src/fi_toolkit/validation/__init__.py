"""
Curve validation gates.
"""

from fi_toolkit.validation.gates import (
    CalibrationRepriceGate,
    DiscountFactorMonotonicityGate,
    GateResult,
    GateStatus,
    NegativeForwardGate,
    SurvivalProbabilityGate,
    ValidationEngine,
    ValidationGate,
    ValidationReport,
    ensure_valid,
    validate_curve,
)

__all__ = [
    "CalibrationRepriceGate",
    "DiscountFactorMonotonicityGate",
    "GateResult",
    "GateStatus",
    "NegativeForwardGate",
    "SurvivalProbabilityGate",
    "ValidationEngine",
    "ValidationGate",
    "ValidationReport",
    "ensure_valid",
    "validate_curve",
]
