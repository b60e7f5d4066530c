"""
Transform registry for timbersim.

Each variable is modelled as Gaussian after an optional monotone scalar
transform. The set of transforms is closed (``Transform`` enum), so domain
validation stays exhaustive:

- ``IDENTITY``: forward and inverse are no-ops, domain is the real line.
- ``LOG``: forward is the natural logarithm, inverse the exponential,
  domain is the strictly positive reals.

Missing values (``NaN``) pass through both directions untouched.
"""

from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from ..errors import DomainError

__all__ = ["Transform", "get_transform", "resolve_transforms"]

_ALIASES = {
    "identity": "identity",
    "none": "identity",
    "id": "identity",
    "log": "log",
    "ln": "log",
}


class Transform(Enum):
    """Invertible scalar transform applied before Gaussian modelling."""

    IDENTITY = "identity"
    LOG = "log"

    def check_domain(self, x, variable: Optional[str] = None) -> None:
        """Raise ``DomainError`` if any non-missing value lies outside the domain."""
        if self is Transform.IDENTITY:
            return
        values = np.asarray(x, dtype=float)
        bad = ~np.isnan(values) & (values <= 0)
        if np.any(bad):
            first = values[bad].flat[0]
            raise DomainError(
                f"log transform requires strictly positive values, got {first} "
                f"({int(np.sum(bad))} non-positive value(s))",
                variable=variable,
            )

    def forward(self, x, variable: Optional[str] = None) -> np.ndarray:
        """Map natural values into modelling space."""
        values = np.asarray(x, dtype=float)
        if self is Transform.IDENTITY:
            return values.copy()
        self.check_domain(values, variable)
        return np.log(values)

    def inverse(self, y) -> np.ndarray:
        """Map modelling-space values back to natural units."""
        values = np.asarray(y, dtype=float)
        if self is Transform.IDENTITY:
            return values.copy()
        return np.exp(values)

    def moments_to_modeling(self, mean: float, sd: float) -> Tuple[float, float]:
        """Convert natural-space mean/sd into modelling-space mean/sd.

        For ``LOG`` these are the log-normal parameters whose exponential
        has the requested mean and standard deviation.

        Raises:
            DomainError: If ``mean`` is not positive for ``LOG``.
        """
        if self is Transform.IDENTITY:
            return float(mean), float(sd)
        if mean <= 0:
            raise DomainError(f"log-normal moments require a positive mean, got {mean}")
        sigma2 = np.log1p((sd / mean) ** 2)
        return float(np.log(mean) - sigma2 / 2), float(np.sqrt(sigma2))

    def moments_to_natural(self, mean: float, sd: float) -> Tuple[float, float]:
        """Inverse of :meth:`moments_to_modeling`."""
        if self is Transform.IDENTITY:
            return float(mean), float(sd)
        natural_mean = np.exp(mean + sd**2 / 2)
        return float(natural_mean), float(natural_mean * np.sqrt(np.expm1(sd**2)))


TransformSpec = Union[Transform, str]


def get_transform(spec: Optional[TransformSpec]) -> Transform:
    """Resolve a ``Transform`` member from itself, a name, or ``None`` (identity).

    Raises:
        ValueError: If the name is unknown.
    """
    if spec is None:
        return Transform.IDENTITY
    if isinstance(spec, Transform):
        return spec
    if isinstance(spec, str):
        key = spec.strip().lower()
        if key in _ALIASES:
            return Transform(_ALIASES[key])
        raise ValueError(f"Unknown transform '{spec}'. Available: {', '.join(t.value for t in Transform)}")
    raise TypeError(f"transform must be a Transform or a string, got {type(spec).__name__}")


def resolve_transforms(
    variables: List[str],
    transforms: Optional[Union[str, Mapping[str, TransformSpec]]] = None,
) -> Dict[str, Transform]:
    """Return a complete variable -> ``Transform`` mapping.

    Args:
        variables: Ordered variable names.
        transforms: Mapping from a subset of ``variables`` to transforms, or
            an assignment string such as ``"f=log, E=identity"``. Variables
            without an entry default to ``Transform.IDENTITY``.

    Raises:
        ValueError: If a transform names a variable outside ``variables``
            or the transform name is unknown.
    """
    if transforms is None:
        transforms = {}
    elif isinstance(transforms, str):
        from ..utils.parsers import _parse_transforms

        transforms = _parse_transforms(transforms, list(variables))

    unknown = [name for name in transforms if name not in variables]
    if unknown:
        raise ValueError(f"Transforms given for unknown variable(s): {', '.join(unknown)}. Available: {', '.join(variables)}")

    return {name: get_transform(transforms.get(name)) for name in variables}
