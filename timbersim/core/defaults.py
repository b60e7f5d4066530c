"""
Built-in defaults for whole-dataset simulation.

- ``default_subsamples()``: four equal-weight bending subsamples of a single
  country, with increasing strength, stiffness and density.
- ``default_simbase()``: a basis over the anchor variables ``f`` (bending
  strength, MPa), ``E`` (static modulus of elasticity, N/mm²), ``rho``
  (density, kg/m³) and the indicating properties ``ip_f``, ``E_dyn``,
  ``ip_rho`` and ``E_dyn_u`` (dynamic modulus without density, km²/s²).

The default correlation matrix comes from a three-factor model (board
quality, density, fibre stiffness), which makes it positive definite by
construction.
"""

from typing import List, Optional

import numpy as np

from ..stats.transforms import Transform
from .simbase import SimulationBasis
from .subsamples import SubsampleDefinition

DEFAULT_N = 5000
DEFAULT_ANCHORS = ("f", "E", "rho")

DEFAULT_VARIABLES = ("f", "E", "rho", "ip_f", "E_dyn", "ip_rho", "E_dyn_u")

# Natural-unit mean and sd per variable
DEFAULT_MOMENTS = {
    "f": (37.0, 11.0),
    "E": (11800.0, 2500.0),
    "rho": (455.0, 50.0),
    "ip_f": (37.0, 8.5),
    "E_dyn": (12800.0, 2300.0),
    "ip_rho": (455.0, 48.0),
    "E_dyn_u": (28.0, 3.5),
}

DEFAULT_TRANSFORMS = {"f": Transform.LOG}

# Loadings on (quality, density, fibre stiffness); uniqueness is 1 - row sum of squares
_FACTOR_LOADINGS = np.array(
    [
        [0.80, 0.30, 0.20],  # f
        [0.60, 0.45, 0.55],  # E
        [0.15, 0.95, 0.00],  # rho
        [0.75, 0.35, 0.35],  # ip_f
        [0.45, 0.60, 0.60],  # E_dyn
        [0.15, 0.93, 0.00],  # ip_rho
        [0.40, 0.05, 0.80],  # E_dyn_u
    ]
)

# (f, E, rho) targets of the four default subsamples
_DEFAULT_SUBSAMPLE_TARGETS = [
    ((30.0, 8.0), (10500.0, 2200.0), (430.0, 45.0)),
    ((35.0, 9.0), (11500.0, 2400.0), (450.0, 48.0)),
    ((40.0, 10.0), (12500.0, 2600.0), (470.0, 50.0)),
    ((45.0, 11.0), (13500.0, 2700.0), (490.0, 52.0)),
]


def default_correlation() -> np.ndarray:
    """Correlation matrix of the default basis, in ``DEFAULT_VARIABLES`` order."""
    corr = _FACTOR_LOADINGS @ _FACTOR_LOADINGS.T
    np.fill_diagonal(corr, 1.0)
    return corr


_default_simbase: Optional[SimulationBasis] = None


def default_simbase() -> SimulationBasis:
    """Return the built-in ``SimulationBasis`` singleton (created on first call)."""
    global _default_simbase

    if _default_simbase is None:
        mean, sd = [], []
        for name in DEFAULT_VARIABLES:
            transform = DEFAULT_TRANSFORMS.get(name, Transform.IDENTITY)
            m, s = transform.moments_to_modeling(*DEFAULT_MOMENTS[name])
            mean.append(m)
            sd.append(s)
        _default_simbase = SimulationBasis.from_moments(
            DEFAULT_VARIABLES,
            mean,
            sd,
            default_correlation(),
            transforms=DEFAULT_TRANSFORMS,
        )

    return _default_simbase


def default_subsamples(country: str = "default", loadtype: str = "bending") -> List[SubsampleDefinition]:
    """Four equal-weight subsamples of one country (keys ``country``, ``subsample``, ``loadtype``)."""
    return [
        SubsampleDefinition(
            keys={"country": country, "subsample": i + 1, "loadtype": loadtype},
            targets=dict(zip(DEFAULT_ANCHORS, targets)),
        )
        for i, targets in enumerate(_DEFAULT_SUBSAMPLE_TARGETS)
    ]
