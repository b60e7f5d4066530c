"""
Simulation basis (simbase) for conditional simulation.

A ``SimulationBasis`` holds everything needed to treat a set of variables
as jointly Gaussian after per-variable transforms: the transformed-space
means and standard deviations and the correlation matrix. It is estimated
from reference data with ``build_basis`` or supplied directly with
``SimulationBasis.from_moments``, and is immutable afterwards.
"""

import warnings
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..errors import DomainError, InsufficientDataError
from ..stats.transforms import Transform, TransformSpec, resolve_transforms
from ..utils.data_input import normalize_dataset, numeric_column
from ..utils.validators import _validate_correlation_matrix, _validate_moments, _validate_variables

TransformsArg = Optional[Union[str, Mapping[str, TransformSpec]]]


def _frozen_array(values) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class SimulationBasis:
    """Transformed-space Gaussian model over an ordered set of variables.

    Attributes:
        variables: Variable names, in matrix order.
        transforms: Variable -> ``Transform`` (identity when unspecified).
        mean: Transformed-space means, one per variable.
        sd: Transformed-space standard deviations (ddof=1), non-negative.
        correlation: Symmetric positive semi-definite correlation matrix
            with unit diagonal.
        n_obs: Number of reference rows the basis was estimated from, or
            ``None`` when the moments were supplied directly.
    """

    variables: Tuple[str, ...]
    transforms: Mapping[str, Transform]
    mean: np.ndarray
    sd: np.ndarray
    correlation: np.ndarray
    n_obs: Optional[int] = None
    _covariance: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        variables = tuple(self.variables)
        _validate_variables(list(variables)).raise_if_invalid()

        transforms = resolve_transforms(list(variables), dict(self.transforms) if self.transforms else None)
        mean = _frozen_array(self.mean)
        sd = _frozen_array(self.sd)
        correlation = np.array(self.correlation, dtype=float)

        _validate_moments(mean, sd, len(variables)).raise_if_invalid()
        _validate_correlation_matrix(correlation, len(variables)).raise_if_invalid()

        if self.n_obs is not None and self.n_obs <= len(variables):
            raise InsufficientDataError(f"{len(variables)} variables need at least {len(variables) + 1} reference rows, got {self.n_obs}")

        # Exact symmetry and unit diagonal, so conditioning sees a clean matrix
        correlation = (correlation + correlation.T) / 2
        np.fill_diagonal(correlation, 1.0)
        correlation.setflags(write=False)

        covariance = correlation * np.outer(sd, sd)
        covariance.setflags(write=False)

        object.__setattr__(self, "variables", variables)
        object.__setattr__(self, "transforms", MappingProxyType(transforms))
        object.__setattr__(self, "mean", mean)
        object.__setattr__(self, "sd", sd)
        object.__setattr__(self, "correlation", correlation)
        object.__setattr__(self, "_covariance", covariance)

    @classmethod
    def from_moments(
        cls,
        variables: Sequence[str],
        mean: Sequence[float],
        sd: Sequence[float],
        correlation,
        transforms: TransformsArg = None,
    ) -> "SimulationBasis":
        """Build a basis from transformed-space moments.

        Args:
            variables: Ordered variable names.
            mean: Transformed-space means.
            sd: Transformed-space standard deviations.
            correlation: ``k x k`` correlation matrix in transformed space.
            transforms: Per-variable transforms (mapping or ``"f=log"``
                style string); missing entries default to identity.

        Raises:
            ValueError: If shapes disagree or the correlation matrix is not
                a valid (PSD, unit-diagonal, symmetric) correlation matrix.
        """
        _validate_variables(list(variables)).raise_if_invalid()
        return cls(
            variables=tuple(variables),
            transforms=resolve_transforms(list(variables), transforms),
            mean=mean,
            sd=sd,
            correlation=correlation,
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def covariance(self) -> np.ndarray:
        """Transformed-space covariance matrix ``diag(sd) R diag(sd)``."""
        return self._covariance

    @property
    def n_variables(self) -> int:
        return len(self.variables)

    def index(self, variable: str) -> int:
        """Position of *variable* in the basis."""
        try:
            return self.variables.index(variable)
        except ValueError:
            raise KeyError(f"'{variable}' is not a basis variable. Available: {', '.join(self.variables)}") from None

    # =========================================================================
    # Derived bases
    # =========================================================================

    def rename(self, mapping: Mapping[str, str]) -> "SimulationBasis":
        """Return a copy with variables renamed according to *mapping*.

        Useful to avoid collisions with existing dataset columns of a
        different meaning before conditional simulation.
        """
        unknown = [name for name in mapping if name not in self.variables]
        if unknown:
            raise KeyError(f"Cannot rename unknown variable(s): {', '.join(unknown)}")
        new_names = tuple(mapping.get(name, name) for name in self.variables)
        return SimulationBasis(
            variables=new_names,
            transforms={mapping.get(name, name): t for name, t in self.transforms.items()},
            mean=self.mean,
            sd=self.sd,
            correlation=self.correlation,
            n_obs=self.n_obs,
        )

    def subset(self, variables: Sequence[str]) -> "SimulationBasis":
        """Return the marginal basis over *variables* (in the given order)."""
        _validate_variables(list(variables), self.variables).raise_if_invalid()
        idx = [self.index(name) for name in variables]
        return SimulationBasis(
            variables=tuple(variables),
            transforms={name: self.transforms[name] for name in variables},
            mean=self.mean[idx],
            sd=self.sd[idx],
            correlation=self.correlation[np.ix_(idx, idx)],
            n_obs=self.n_obs,
        )

    def natural_moments(self) -> pd.DataFrame:
        """Natural-unit mean and sd implied by each variable's marginal.

        For log-transformed variables these are the log-normal moments.
        """
        rows = [self.transforms[name].moments_to_natural(m, s) for name, m, s in zip(self.variables, self.mean, self.sd)]
        return pd.DataFrame(rows, index=list(self.variables), columns=["mean", "sd"])

    def __repr__(self):
        transforms = ", ".join(f"{name}={t.value}" for name, t in self.transforms.items() if t is not Transform.IDENTITY)
        source = f"n_obs={self.n_obs}" if self.n_obs is not None else "supplied moments"
        return f"SimulationBasis(variables={list(self.variables)}, transforms={{{transforms}}}, {source})"


def build_basis(
    reference_data,
    variables: List[str],
    transforms: TransformsArg = None,
) -> SimulationBasis:
    """Estimate a ``SimulationBasis`` from reference data.

    Each variable's column is forward-transformed, then the sample mean,
    sample standard deviation (ddof=1) and Pearson correlation matrix are
    computed over the rows complete in all *variables*. Incomplete rows are
    excluded, never imputed, and reported with a ``UserWarning``.

    Args:
        reference_data: DataFrame (or dict of columns) holding at least the
            numeric *variables* columns.
        variables: Non-empty list of distinct column names.
        transforms: Per-variable transforms (mapping or ``"f=log"`` style
            string); missing entries default to identity.

    Returns:
        Immutable ``SimulationBasis`` with ``n_obs`` set.

    Raises:
        ValueError: If *variables* is malformed or a column is missing or
            non-numeric.
        InsufficientDataError: If the complete row count is not larger than
            the number of variables, or a variable does not vary.
        DomainError: If a transform's domain is violated.

    Example:
        >>> basis = build_basis(boards, ["f", "E", "rho"], transforms="f=log")
    """
    frame = normalize_dataset(reference_data)
    _validate_variables(variables, list(frame.columns)).raise_if_invalid()
    resolved = resolve_transforms(list(variables), transforms)

    values = np.column_stack([numeric_column(frame, name) for name in variables])
    complete = ~np.isnan(values).any(axis=1)
    n_dropped = int(np.sum(~complete))
    if n_dropped:
        warnings.warn(
            f"{n_dropped} of {len(frame)} reference rows have missing values in {', '.join(variables)} and were excluded.",
            UserWarning,
            stacklevel=2,
        )
    values = values[complete]

    n_rows, n_vars = values.shape
    if n_rows <= n_vars:
        raise InsufficientDataError(f"{n_vars} variables need at least {n_vars + 1} complete reference rows, got {n_rows}")

    transformed = np.empty_like(values)
    for j, name in enumerate(variables):
        try:
            transformed[:, j] = resolved[name].forward(values[:, j], variable=name)
        except DomainError as e:
            raise e.with_context(variable=name) from None

    sd = np.std(transformed, axis=0, ddof=1)
    for name, s in zip(variables, sd):
        if s == 0:
            raise InsufficientDataError("variable has zero variance; its correlations are undefined", variable=name)

    correlation = np.corrcoef(transformed, rowvar=False) if n_vars > 1 else np.ones((1, 1))
    correlation = np.clip(correlation, -1.0, 1.0)

    return SimulationBasis(
        variables=tuple(variables),
        transforms=resolved,
        mean=np.mean(transformed, axis=0),
        sd=sd,
        correlation=correlation,
        n_obs=n_rows,
    )
