"""
Curve bumps for bump-and-reprice risk.

A bump shifts the continuously compounded average rate of curve pillars:
zero rates on discount curves, average hazard rates on survival curves.
Bumped curves are new objects; the input curve is never mutated.

[T1] Pillar value after a shift s: v' = v * exp(-s * t)
"""

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Optional, Union

import numpy as np

from fi_toolkit.curves.curve import Curve
from fi_toolkit.curves.discount import DiscountCurve
from fi_toolkit.curves.survival import SurvivalCurve
from fi_toolkit.dates.tenor import add_tenor


class BumpType(Enum):
    ABSOLUTE = "absolute"
    RELATIVE = "relative"


@dataclass(frozen=True)
class BumpSpec:
    """
    Size and shape of a curve bump.

    Attributes
    ----------
    size : float
        Shift in rate units (ABSOLUTE) or as a fraction of the pillar rate
        (RELATIVE)
    bump_type : BumpType
        Absolute or relative
    tenors : tuple, optional
        Pillars to bump, as dates or tenor strings ("5Y"); a tenor string
        selects the pillar nearest to as_of + tenor. None bumps every pillar.

    Examples
    --------
    >>> BumpSpec(0.0001).negated().size
    -0.0001
    """

    size: float
    bump_type: BumpType = BumpType.ABSOLUTE
    tenors: Optional[tuple[Union[date, str], ...]] = None

    def negated(self) -> "BumpSpec":
        return replace(self, size=-self.size)

    def pillar_mask(self, curve: Curve) -> np.ndarray:
        if self.tenors is None:
            return np.ones(len(curve), dtype=bool)
        pillars = curve.dates
        mask = np.zeros(len(pillars), dtype=bool)
        for tenor in self.tenors:
            if isinstance(tenor, str):
                target = add_tenor(curve.as_of, tenor)
                idx = int(np.argmin([abs((p - target).days) for p in pillars]))
            elif tenor in pillars:
                idx = pillars.index(tenor)
            else:
                raise ValueError(f"CRITICAL: {tenor} is not a pillar of curve '{curve.name}'")
            mask[idx] = True
        return mask

    def shifts(self, curve: Curve) -> np.ndarray:
        """Average-rate shift per pillar."""
        if len(curve) == 0:
            raise ValueError(f"CRITICAL: Curve '{curve.name}' has no pillars to bump")
        if self.bump_type == BumpType.RELATIVE:
            rates = -np.log(curve.values) / curve.times
            base = self.size * rates
        else:
            base = np.full(len(curve), self.size)
        return np.where(self.pillar_mask(curve), base, 0.0)


def _label(curve: Curve, bump: BumpSpec) -> str:
    where = "parallel" if bump.tenors is None else ",".join(str(t) for t in bump.tenors)
    return f"{curve.name}[{where}{bump.size:+g}]"


def bump_discount_curve(curve: DiscountCurve, bump: BumpSpec) -> DiscountCurve:
    """Discount curve with zero rates shifted."""
    return curve.bumped(bump.shifts(curve), name=_label(curve, bump))


def bump_survival_curve(curve: SurvivalCurve, bump: BumpSpec) -> SurvivalCurve:
    """
    Survival curve with average hazard rates shifted.

    Raises
    ------
    ValueError
        If the bump pushes a survival probability above 1, or makes survival
        rise between pillars (a negative forward hazard)
    """
    bumped = curve.bumped(bump.shifts(curve), name=_label(curve, bump))
    values = np.asarray(bumped.values)
    if np.any(values > 1.0):
        raise ValueError(
            f"CRITICAL: Bump {bump.size} gives survival probability > 1 on '{curve.name}'"
        )
    if np.any(np.diff(values) > 0):
        rising = bumped.dates[int(np.argmax(np.diff(values) > 0)) + 1]
        raise ValueError(
            f"CRITICAL: Bump {bump.size} makes survival on '{curve.name}' increase "
            f"into {rising}"
        )
    return bumped
