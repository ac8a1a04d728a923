"""
Validation Gates - HALT/WARN/PASS checks on calibrated curves.

Each gate inspects a curve (plus optional context such as the calibrator
that built it) and returns a GateResult. A HALT means the curve must not
be used; a WARN is reported and logged but the curve may proceed.

Gates:
    DiscountFactorMonotonicityGate  implausible jumps up in discount factors
    NegativeForwardGate             negative pillar-to-pillar forwards (WARN)
    SurvivalProbabilityGate         survival in (0, 1], non-increasing; hazard bound
    CalibrationRepriceGate          calibrated curve reprices its input quotes
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from fi_toolkit.config.settings import SETTINGS
from fi_toolkit.config.tolerances import CALIBRATION_TOLERANCE
from fi_toolkit.curves.curve import Curve
from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.curves.survival import SurvivalCurve
from fi_toolkit.errors import CurveValidationError

logger = logging.getLogger(__name__)


class GateStatus(Enum):
    """Status of a validation gate."""
    PASS = "pass"
    HALT = "halt"
    WARN = "warn"


@dataclass(frozen=True)
class GateResult:
    """
    Result of a validation gate check.

    Attributes
    ----------
    status : GateStatus
        PASS, HALT, or WARN
    gate_name : str
        Name of the gate that was checked
    message : str
        Explanation of the result
    value : Any, optional
        The value that was checked
    threshold : Any, optional
        The threshold that was applied
    """

    status: GateStatus
    gate_name: str
    message: str
    value: Any | None = None
    threshold: Any | None = None

    @property
    def passed(self) -> bool:
        """PASS or WARN."""
        return self.status != GateStatus.HALT


@dataclass(frozen=True)
class ValidationReport:
    """
    Results of all gates run on one curve.
    """

    curve_name: str
    results: tuple[GateResult, ...]

    @property
    def overall_status(self) -> GateStatus:
        """Worst status across all gates."""
        if any(r.status == GateStatus.HALT for r in self.results):
            return GateStatus.HALT
        elif any(r.status == GateStatus.WARN for r in self.results):
            return GateStatus.WARN
        return GateStatus.PASS

    @property
    def passed(self) -> bool:
        return self.overall_status != GateStatus.HALT

    @property
    def halted_gates(self) -> list[GateResult]:
        return [r for r in self.results if r.status == GateStatus.HALT]

    @property
    def warned_gates(self) -> list[GateResult]:
        return [r for r in self.results if r.status == GateStatus.WARN]

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {
            "curve": self.curve_name,
            "overall_status": self.overall_status.value,
            "passed": self.passed,
            "n_halted": len(self.halted_gates),
            "n_warned": len(self.warned_gates),
            "results": [
                {
                    "gate": r.gate_name,
                    "status": r.status.value,
                    "message": r.message,
                    "value": r.value,
                    "threshold": r.threshold,
                }
                for r in self.results
            ],
        }


# =============================================================================
# Gate Implementations
# =============================================================================

class ValidationGate(ABC):
    """
    Base class for curve validation gates.

    Subclasses implement _check() and set ``applies_to`` to the curve
    classes they inspect; other curves PASS as not applicable.
    """

    name: str = "base_gate"
    applies_to: tuple[type, ...] = (Curve,)

    def check(self, curve: Curve, **context: Any) -> GateResult:
        if not isinstance(curve, self.applies_to):
            return self._result(GateStatus.PASS, f"Not applicable to {type(curve).__name__}")
        if len(curve) == 0:
            return self._result(GateStatus.HALT, f"Curve '{curve.name}' has no pillars")
        return self._check(curve, **context)

    @abstractmethod
    def _check(self, curve: Curve, **context: Any) -> GateResult:
        """Gate logic on a non-empty curve of a supported class."""
        ...

    def _result(self, status: GateStatus, message: str, value: Any = None,
                threshold: Any = None) -> GateResult:
        return GateResult(status=status, gate_name=self.name, message=message,
                          value=value, threshold=threshold)


class DiscountFactorMonotonicityGate(ValidationGate):
    """
    [T1] Discount factors may rise only as far as negative rates allow.

    Small increases are left to NegativeForwardGate; a rise larger than
    ``max_increase`` between pillars is a failed bootstrap.
    """

    name = "discount_factor_monotonicity"
    applies_to = (DiscountCurve,)

    def __init__(self, max_increase: float = 0.01):
        self.max_increase = max_increase

    def _check(self, curve: Curve, **context: Any) -> GateResult:
        values = np.concatenate([[1.0], curve.values])
        jumps = np.diff(values)
        worst = float(jumps.max())
        if worst > self.max_increase:
            i = int(jumps.argmax())
            return self._result(
                GateStatus.HALT,
                f"Discount factor rises by {worst:.6f} into pillar {curve.dates[i]}",
                value=worst,
                threshold=self.max_increase,
            )
        return self._result(GateStatus.PASS, "Discount factors consistent", value=worst)


class NegativeForwardGate(ValidationGate):
    """
    [T1] Pillar-to-pillar continuous forward f_i = ln(P_{i-1}/P_i) / (t_i - t_{i-1}).

    Negative forwards WARN by default (legitimate in some currencies);
    SETTINGS.validation.halt_on_negative_forward turns them into HALTs.
    """

    name = "negative_forward"
    applies_to = (DiscountCurve,)

    def _check(self, curve: Curve, **context: Any) -> GateResult:
        times = np.concatenate([[0.0], curve.times])
        values = np.concatenate([[1.0], curve.values])
        forwards = np.log(values[:-1] / values[1:]) / np.diff(times)
        lowest = float(forwards.min())
        if lowest < 0:
            status = GateStatus.HALT if SETTINGS.validation.halt_on_negative_forward \
                else GateStatus.WARN
            i = int(forwards.argmin())
            return self._result(
                status,
                f"Negative forward {lowest:.6f} ending {curve.dates[i]}",
                value=lowest,
                threshold=0.0,
            )
        return self._result(GateStatus.PASS, "All forwards non-negative", value=lowest)


class SurvivalProbabilityGate(ValidationGate):
    """
    [T1] Survival probabilities lie in (0, 1] and never increase.

    Forward hazards above SETTINGS.validation.max_hazard_rate WARN.
    """

    name = "survival_probability"
    applies_to = (SurvivalCurve,)

    def _check(self, curve: Curve, **context: Any) -> GateResult:
        values = curve.values
        if np.any(values > 1.0) or np.any(values <= 0.0):
            return self._result(
                GateStatus.HALT,
                f"Survival probabilities outside (0, 1]: [{values.min():.6f}, {values.max():.6f}]",
                value=(float(values.min()), float(values.max())),
            )
        full = np.concatenate([[1.0], values])
        if np.any(np.diff(full) > 0):
            return self._result(GateStatus.HALT, "Survival probability increases")
        times = np.concatenate([[0.0], curve.times])
        hazards = np.log(full[:-1] / full[1:]) / np.diff(times)
        highest = float(hazards.max())
        limit = SETTINGS.validation.max_hazard_rate
        if highest > limit:
            return self._result(
                GateStatus.WARN,
                f"Forward hazard {highest:.4f} exceeds {limit}",
                value=highest,
                threshold=limit,
            )
        return self._result(GateStatus.PASS, "Survival curve consistent", value=highest)


class CalibrationRepriceGate(ValidationGate):
    """
    A calibrated curve reprices its quotes to within ``tolerance``.

    Needs ``calibrator=`` in the context (anything with
    ``repricing_errors(curve)`` returning an ``error`` column).
    """

    name = "calibration_reprice"

    def __init__(self, tolerance: float = CALIBRATION_TOLERANCE):
        self.tolerance = tolerance

    def _check(self, curve: Curve, **context: Any) -> GateResult:
        calibrator = context.get("calibrator")
        if calibrator is None:
            return self._result(GateStatus.PASS, "No calibrator supplied")
        errors = calibrator.repricing_errors(curve)
        if errors.empty:
            return self._result(GateStatus.PASS, "No quotes to reprice")
        worst = float(errors["error"].abs().max())
        if worst > self.tolerance:
            tenor = errors.loc[errors["error"].abs().idxmax(), "tenor"]
            return self._result(
                GateStatus.HALT,
                f"Quote {tenor} repriced with error {worst:.3e}",
                value=worst,
                threshold=self.tolerance,
            )
        return self._result(GateStatus.PASS, f"Max repricing error {worst:.3e}", value=worst)


# =============================================================================
# Validation Engine
# =============================================================================

class ValidationEngine:
    """
    Runs a list of gates on a curve and collects a report.

    Parameters
    ----------
    gates : list[ValidationGate], optional
        Gates to run (default: all curve gates)
    """

    def __init__(self, gates: list[ValidationGate] | None = None):
        self.gates = gates if gates is not None else self._default_gates()

    def _default_gates(self) -> list[ValidationGate]:
        return [
            DiscountFactorMonotonicityGate(),
            NegativeForwardGate(),
            SurvivalProbabilityGate(),
            CalibrationRepriceGate(),
        ]

    def validate(self, curve: Curve, **context: Any) -> ValidationReport:
        report = ValidationReport(
            curve_name=curve.name,
            results=tuple(gate.check(curve, **context) for gate in self.gates),
        )
        for r in report.warned_gates:
            logger.warning(f"{curve.name}: {r.gate_name}: {r.message}")
        return report

    def validate_and_raise(self, curve: Curve, **context: Any) -> Curve:
        """
        Raises
        ------
        CurveValidationError
            If any gate HALTs
        """
        report = self.validate(curve, **context)
        if not report.passed:
            halt_messages = [g.message for g in report.halted_gates]
            raise CurveValidationError(
                f"CRITICAL: Curve '{curve.name}' failed validation. HALTs:\n" +
                "\n".join(f"  - {m}" for m in halt_messages)
            )
        return curve


# =============================================================================
# Convenience Functions
# =============================================================================

def validate_curve(curve: Curve, **context: Any) -> ValidationReport:
    """
    Run the default gates on a curve.

    Examples
    --------
    >>> report = validate_curve(curve, calibrator=calibrator)  # doctest: +SKIP
    >>> report.passed  # doctest: +SKIP
    True
    """
    return ValidationEngine().validate(curve, **context)


def ensure_valid(curve: Curve, **context: Any) -> Curve:
    """Return ``curve`` unchanged, or raise CurveValidationError on any HALT."""
    return ValidationEngine().validate_and_raise(curve, **context)
