"""
Cross-library checks: compare an fi_toolkit number with the same number
computed by an independent library.

Closed forms (year fractions, flat discount factors, Black-76) should agree
to machine precision, so comparisons default to CROSS_LIBRARY_TOLERANCE in
absolute terms. Prices that scale with notional or forward level compare in
relative terms instead (``relative=True``).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from fi_toolkit.config.tolerances import CROSS_LIBRARY_TOLERANCE


@dataclass(frozen=True)
class ValidationResult:
    """
    One fi_toolkit value checked against an external library.

    Attributes
    ----------
    our_value : float
        fi_toolkit value
    external_value : float
        External library value
    difference : float
        our_value - external_value
    passed : bool
        Whether the difference is inside the bound
    tolerance : float
        Bound applied, in absolute units or as a fraction of external_value
    validator_name : str
        External library name
    test_case : str, optional
        Case label used in assertion messages
    relative : bool
        True when tolerance is a fraction of external_value
    """

    our_value: float
    external_value: float
    difference: float
    passed: bool
    tolerance: float
    validator_name: str
    test_case: str | None = None
    relative: bool = False

    @property
    def relative_difference(self) -> float:
        if self.external_value == 0:
            return float("inf") if self.our_value != 0 else 0.0
        return abs(self.difference / self.external_value)

    def describe(self) -> str:
        """One-line summary for assertion messages and logs."""
        status = "ok" if self.passed else "FAIL"
        kind = "rel" if self.relative else "abs"
        return (
            f"[{status}] {self.test_case or 'case'}: ours={self.our_value:.12g} "
            f"{self.validator_name}={self.external_value:.12g} "
            f"diff={self.difference:.3e} ({kind} tol {self.tolerance:.1e})"
        )


class BaseAdapter(ABC):
    """Wrapper around an optional external library."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the external library imported."""
        ...

    @property
    @abstractmethod
    def _install_hint(self) -> str:
        ...

    def require_available(self) -> None:
        """
        Raises
        ------
        ImportError
            If the external library is not installed
        """
        if not self.is_available:
            raise ImportError(f"{self.name} not installed. Install with: {self._install_hint}")

    def compare(
        self,
        our_value: float,
        external_value: float,
        tolerance: float = CROSS_LIBRARY_TOLERANCE,
        test_case: str | None = None,
        relative: bool = False,
    ) -> ValidationResult:
        """
        Compare two values.

        With ``relative=True`` the bound is ``tolerance * |external_value|``,
        floored at CROSS_LIBRARY_TOLERANCE so zero prices still compare.
        """
        difference = our_value - external_value
        bound = tolerance
        if relative:
            bound = max(tolerance * abs(external_value), CROSS_LIBRARY_TOLERANCE)
        return ValidationResult(
            our_value=our_value,
            external_value=external_value,
            difference=difference,
            passed=abs(difference) <= bound,
            tolerance=tolerance,
            validator_name=self.name,
            test_case=test_case,
            relative=relative,
        )
