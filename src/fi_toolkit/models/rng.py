"""
Uniform and normal variates for Monte Carlo basket simulation.

Engines:
    PSEUDO      numpy PCG64 generator
    ANTITHETIC  PCG64 with each draw u paired with 1 - u
    SOBOL       scrambled Sobol low-discrepancy sequence
    HALTON      scrambled Halton sequence

[T1] Antithetic pairs are not independent: standard errors must be
computed on pair averages (see ``pair_average``).

References:
    [T1] Glasserman (2003) Monte Carlo Methods in Financial Engineering, Ch. 4-5
"""

from enum import Enum
from typing import Optional

import numpy as np
from scipy import stats
from scipy.stats import qmc

from fi_toolkit.config.settings import SETTINGS

#: Uniforms are clipped away from 0 and 1 before inversion
_EPS = 1e-12


class RNGEngine(Enum):
    PSEUDO = "pseudo"
    ANTITHETIC = "antithetic"
    SOBOL = "sobol"
    HALTON = "halton"


def uniforms(
    n_paths: int,
    dim: int,
    engine: RNGEngine = RNGEngine.PSEUDO,
    seed: Optional[int] = None,
) -> np.ndarray:
    """
    Uniform variates of shape (n_paths, dim) strictly inside (0, 1).

    Parameters
    ----------
    n_paths : int
        Number of scenarios (must be even for ANTITHETIC)
    dim : int
        Variates per scenario
    engine : RNGEngine
        Generator
    seed : int, optional
        Seed (default from settings)

    Examples
    --------
    >>> u = uniforms(8, 3, RNGEngine.ANTITHETIC, seed=1)
    >>> bool(np.allclose(u[:4] + u[4:], 1.0))
    True
    """
    if n_paths <= 0:
        raise ValueError(f"CRITICAL: n_paths must be > 0, got {n_paths}")
    if dim <= 0:
        raise ValueError(f"CRITICAL: dim must be > 0, got {dim}")
    seed = SETTINGS.monte_carlo.seed if seed is None else seed

    if engine == RNGEngine.ANTITHETIC:
        if n_paths % 2 != 0:
            raise ValueError(f"CRITICAL: n_paths must be even for antithetic, got {n_paths}")
        half = np.random.default_rng(seed).random((n_paths // 2, dim))
        u = np.vstack([half, 1.0 - half])
    elif engine == RNGEngine.SOBOL:
        sampler = qmc.Sobol(d=dim, scramble=True, seed=seed)
        m = int(np.ceil(np.log2(n_paths)))
        u = sampler.random_base2(m)[:n_paths]
    elif engine == RNGEngine.HALTON:
        u = qmc.Halton(d=dim, scramble=True, seed=seed).random(n_paths)
    else:
        u = np.random.default_rng(seed).random((n_paths, dim))
    return np.clip(u, _EPS, 1.0 - _EPS)


def normals(
    n_paths: int,
    dim: int,
    engine: RNGEngine = RNGEngine.PSEUDO,
    seed: Optional[int] = None,
) -> np.ndarray:
    """Standard normal variates by inversion of ``uniforms``."""
    return stats.norm.ppf(uniforms(n_paths, dim, engine, seed))


def pair_average(samples: np.ndarray, engine: RNGEngine) -> np.ndarray:
    """Average antithetic pairs so the result is a set of independent samples."""
    if engine != RNGEngine.ANTITHETIC:
        return samples
    half = len(samples) // 2
    return 0.5 * (samples[:half] + samples[half:])
