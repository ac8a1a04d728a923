"""
One-factor copulas for correlated default times.

[T1] Latent variable of name i:
    X_i = sqrt(rho) * M + sqrt(1 - rho) * e_i,   M, e_i ~ N(0, 1)
Gaussian copula: U_i = Phi(X_i).
Student-t copula: X_i scaled by sqrt(nu / W), W ~ chi2(nu), U_i = T_nu(X_i).

Name i defaults by t when U_i <= 1 - S_i(t).

[T1] Gaussian conditional default probability given M = m:
    p_i(m) = Phi((Phi^-1(PD_i) - sqrt(rho) m) / sqrt(1 - rho))

References:
    [T1] Li (2000) "On Default Correlation: A Copula Function Approach"
    [T1] Demarta & McNeil (2005) "The t Copula and Related Copulas"
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from scipy import stats


class CopulaType(Enum):
    GAUSSIAN = "gaussian"
    STUDENT_T = "student_t"


@dataclass(frozen=True)
class Copula:
    """
    One-factor copula with a flat correlation.

    Attributes
    ----------
    copula_type : CopulaType
        Gaussian or Student-t
    correlation : float
        Pairwise asset correlation rho in [0, 1)
    dof : int, optional
        Degrees of freedom (Student-t only, > 2)

    Examples
    --------
    >>> Copula(CopulaType.GAUSSIAN, 0.3).dimension(10)
    11
    """

    copula_type: CopulaType = CopulaType.GAUSSIAN
    correlation: float = 0.0
    dof: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.correlation < 1.0:
            raise ValueError(f"CRITICAL: correlation must be in [0, 1), got {self.correlation}")
        if self.copula_type == CopulaType.STUDENT_T:
            if self.dof is None or self.dof <= 2:
                raise ValueError(f"CRITICAL: Student-t copula needs dof > 2, got {self.dof}")

    def dimension(self, n_names: int) -> int:
        """Uniforms needed per scenario: factor, one per name, chi-square for t."""
        extra = 1 if self.copula_type == CopulaType.STUDENT_T else 0
        return 1 + n_names + extra

    def default_uniforms(self, u: np.ndarray, n_names: int) -> np.ndarray:
        """
        Map independent uniforms of shape (n_paths, dimension) to correlated
        uniforms of shape (n_paths, n_names).
        """
        if u.shape[1] != self.dimension(n_names):
            raise ValueError(
                f"CRITICAL: Expected {self.dimension(n_names)} uniforms per path, got {u.shape[1]}"
            )
        z = stats.norm.ppf(u[:, : 1 + n_names])
        factor = z[:, :1]
        idio = z[:, 1:]
        x = np.sqrt(self.correlation) * factor + np.sqrt(1.0 - self.correlation) * idio
        if self.copula_type == CopulaType.STUDENT_T:
            w = stats.chi2.ppf(u[:, -1:], self.dof)
            x = x * np.sqrt(self.dof / w)
            return stats.t.cdf(x, self.dof)
        return stats.norm.cdf(x)

    def conditional_default_probability(self, pd: np.ndarray, m: np.ndarray) -> np.ndarray:
        """
        [T1] Gaussian default probability conditional on the factor.

        Parameters
        ----------
        pd : ndarray
            Unconditional default probabilities, shape (n_names,)
        m : ndarray
            Factor values, shape (n_nodes,)

        Returns
        -------
        ndarray
            Shape (n_nodes, n_names)
        """
        if self.copula_type != CopulaType.GAUSSIAN:
            raise ValueError("CRITICAL: Conditional probabilities are only available for Gaussian")
        pd = np.clip(np.asarray(pd, dtype=float), 0.0, 1.0)
        with np.errstate(divide="ignore"):
            threshold = stats.norm.ppf(pd)
        rho = self.correlation
        return stats.norm.cdf(
            (threshold[None, :] - np.sqrt(rho) * np.asarray(m)[:, None]) / np.sqrt(1.0 - rho)
        )
