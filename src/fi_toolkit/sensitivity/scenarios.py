"""
Scenario analysis and one-at-a-time sensitivity sweeps.

[T2] A Scenario applies simultaneous shifts to several market inputs and
reports the PV change. The one-at-a-time (OAT) sweep moves each input to
a down and an up level while holding the others at base, and ranks the
inputs by the width of the resulting PV range (tornado diagram data).

Shifts by input type:
- DiscountCurve: parallel zero-rate shift
- SurvivalCurve: parallel hazard-rate shift
- float (e.g. volatility): additive shift
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.curves.survival import SurvivalCurve
from fi_toolkit.sensitivity.bumps import BumpSpec, bump_discount_curve, bump_survival_curve
from fi_toolkit.sensitivity.sensitivities import PricerFactory

logger = logging.getLogger(__name__)


# =============================================================================
# Dataclasses
# =============================================================================

@dataclass(frozen=True)
class Scenario:
    """
    Named set of simultaneous market shifts.

    Attributes
    ----------
    name : str
        Scenario identifier
    shifts : Mapping[str, float]
        Shift per market input name
    description : str
        Free text for reports
    """

    name: str
    shifts: Mapping[str, float]
    description: str = ""


@dataclass(frozen=True)
class SensitivityParameter:
    """
    Market input swept in a one-at-a-time analysis.

    Attributes
    ----------
    name : str
        Market input name (factory keyword)
    display_name : str
        Label for reports
    shift_down : float
        Shift applied for the down case
    shift_up : float
        Shift applied for the up case
    unit : str
        Display unit (e.g. "bp", "vol")
    """

    name: str
    display_name: str
    shift_down: float
    shift_up: float
    unit: str = ""

    def __post_init__(self) -> None:
        if self.shift_down > self.shift_up:
            raise ValueError(
                f"CRITICAL: shift_down {self.shift_down} must be <= shift_up {self.shift_up}"
            )


@dataclass(frozen=True)
class SensitivityResult:
    """
    One-at-a-time result for a single market input.

    Attributes
    ----------
    parameter : str
        Market input name
    display_name : str
        Label for reports
    base_pv : float
        PV with all inputs at base
    down_pv, up_pv : float
        PV with this input shifted down / up
    down_delta, up_delta : float
        PV change from base
    sensitivity_width : float
        abs(up_delta - down_delta)
    """

    parameter: str
    display_name: str
    base_pv: float
    down_pv: float
    up_pv: float
    down_delta: float
    up_delta: float
    sensitivity_width: float

    def __post_init__(self) -> None:
        if self.sensitivity_width < 0:
            raise ValueError("CRITICAL: sensitivity_width must be >= 0")


@dataclass
class TornadoData:
    """
    Tornado diagram data, sorted by sensitivity width (largest first).
    """

    results: list[SensitivityResult]
    base_pv: float
    n_parameters: int = field(init=False)

    def __post_init__(self) -> None:
        self.n_parameters = len(self.results)
        self.results = sorted(self.results, key=lambda r: r.sensitivity_width, reverse=True)

    @property
    def most_sensitive_parameter(self) -> str | None:
        return self.results[0].parameter if self.results else None

    @property
    def least_sensitive_parameter(self) -> str | None:
        return self.results[-1].parameter if self.results else None

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([r.__dict__ for r in self.results])


# =============================================================================
# Shifts
# =============================================================================

def apply_shift(value: Any, shift: float) -> Any:
    """Shift one market input according to its type."""
    if isinstance(value, SurvivalCurve):
        return bump_survival_curve(value, BumpSpec(shift))
    if isinstance(value, DiscountCurve):
        return bump_discount_curve(value, BumpSpec(shift))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value + shift
    raise ValueError(f"CRITICAL: Cannot shift market input of type {type(value).__name__}")


# =============================================================================
# Analyzer
# =============================================================================

class ScenarioAnalyzer:
    """
    Revalues a pricer under market scenarios.

    Parameters
    ----------
    pricer_factory : callable
        Builds a pricer from keyword market inputs
    **market
        Base market inputs

    Examples
    --------
    >>> analyzer = ScenarioAnalyzer(factory, discount_curve=curve)  # doctest: +SKIP
    >>> analyzer.run([Scenario("up100", {"discount_curve": 0.01})])  # doctest: +SKIP
    """

    def __init__(self, pricer_factory: PricerFactory, **market: Any):
        if not market:
            raise ValueError("CRITICAL: At least one market input is required")
        self.pricer_factory = pricer_factory
        self.market = market

    def _pv(self, shifts: Mapping[str, float]) -> float:
        unknown = set(shifts) - set(self.market)
        if unknown:
            raise ValueError(f"CRITICAL: Unknown market inputs {sorted(unknown)}")
        inputs = dict(self.market)
        for key, shift in shifts.items():
            inputs[key] = apply_shift(inputs[key], shift)
        return self.pricer_factory(**inputs).pv()

    def base_pv(self) -> float:
        return self._pv({})

    def run(self, scenarios: list[Scenario]) -> pd.DataFrame:
        """PV and PV change per scenario."""
        base = self.base_pv()
        rows = []
        for scenario in scenarios:
            pv = self._pv(scenario.shifts)
            rows.append({
                "scenario": scenario.name,
                "pv": pv,
                "pv_change": pv - base,
                "description": scenario.description,
            })
            logger.debug(f"scenario {scenario.name}: pv change {pv - base:.6f}")
        return pd.DataFrame(rows)

    def run_single_parameter(self, parameter: SensitivityParameter, base_pv: float) -> SensitivityResult:
        down = self._pv({parameter.name: parameter.shift_down})
        up = self._pv({parameter.name: parameter.shift_up})
        return SensitivityResult(
            parameter=parameter.name,
            display_name=parameter.display_name,
            base_pv=base_pv,
            down_pv=down,
            up_pv=up,
            down_delta=down - base_pv,
            up_delta=up - base_pv,
            sensitivity_width=abs(up - down),
        )

    def run_oat(self, parameters: list[SensitivityParameter]) -> TornadoData:
        """One-at-a-time sweep over ``parameters``."""
        base = self.base_pv()
        results = [self.run_single_parameter(p, base) for p in parameters]
        return TornadoData(results=results, base_pv=base)


def format_tornado_table(tornado: TornadoData) -> str:
    """Markdown table of a tornado sweep."""
    lines = [
        f"Base PV: {tornado.base_pv:,.2f}",
        "",
        "| Parameter                 | Down         | Up           | Width        |",
        "|---------------------------|--------------|--------------|--------------|",
    ]
    for r in tornado.results:
        lines.append(
            f"| {r.display_name:<25} | {r.down_delta:>+12.2f} | "
            f"{r.up_delta:>+12.2f} | {r.sensitivity_width:>12.2f} |"
        )
    return "\n".join(lines)
