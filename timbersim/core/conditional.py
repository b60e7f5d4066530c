"""
Conditional simulation of missing variables.

Given a dataset in which some of a basis's variables are already known,
draws the remaining variables from their Gaussian conditional distribution
(in transformed space) and maps them back to natural units.

Random draw order (the reproducibility contract): one standard-normal
vector, with one entry per target column, is drawn for every row in row
order before any group dispatch. A row's target variables use the entries
of their own columns, so a row's values depend only on its own draw.
"""

import warnings
from collections import OrderedDict
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd
from sklearn.utils import check_random_state

from ..errors import DomainError, NoObservedVariablesError, SingularCovarianceError
from ..stats.gaussian import conditional_normal, matrix_sqrt
from ..utils.data_input import normalize_dataset, numeric_column, row_keys
from ..utils.validators import _validate_group_columns
from .grouped import GroupedSimulationBasis
from .simbase import SimulationBasis

BasisArg = Union[SimulationBasis, GroupedSimulationBasis]


def simulate_conditionally(
    dataset,
    basis: BasisArg,
    random_state: Optional[Union[int, np.random.RandomState]] = None,
) -> pd.DataFrame:
    """Append (or fill) basis variables conditionally on the observed ones.

    For every row the basis variables split into *observed* (column present
    and value non-missing) and *target* (everything else). With ``mu`` and
    ``S`` the basis mean and covariance, targets are drawn from

    ``N(mu_t + S_to S_oo^-1 (x_o - mu_o), S_tt - S_to S_oo^-1 S_ot)``

    in transformed space and inverse-transformed to natural units. Rows
    sharing a group and a missingness pattern share the factorisation of
    ``S_oo``; each row still gets its own independent draw.

    Args:
        dataset: DataFrame (or dict of columns). Not modified.
        basis: ``SimulationBasis``, or ``GroupedSimulationBasis`` whose
            grouping columns must be present and fully populated.
        random_state: Seed or ``numpy.random.RandomState``; ``None`` uses
            fresh entropy.

    Returns:
        A new DataFrame: the input columns (missing basis cells filled)
        followed by the basis variables that were not columns, in basis
        order. Rows of a grouped basis without a matching group get ``NaN``
        for every target variable.

    Raises:
        NoObservedVariablesError: If no basis variable is a dataset column,
            or a row to be simulated has no observed basis variable (rows of
            unmatched groups are exempt).
        SingularCovarianceError: If the observed covariance block is not
            invertible.
        DomainError: If an observed value violates its transform's domain.
        ValueError: If grouping columns are missing or incomplete, or a
            basis column is not numeric.

    Example:
        >>> augmented = simulate_conditionally(boards[["f", "E"]], basis, random_state=2137)
    """
    if not isinstance(basis, (SimulationBasis, GroupedSimulationBasis)):
        raise TypeError(f"basis must be a SimulationBasis or GroupedSimulationBasis, got {type(basis).__name__}")

    rng = check_random_state(random_state)
    frame = normalize_dataset(dataset)
    variables = list(basis.variables)

    present = [name for name in variables if name in frame.columns]
    if not present:
        raise NoObservedVariablesError(
            f"None of the basis variables ({', '.join(variables)}) is a dataset column; nothing to condition on"
        )

    if isinstance(basis, GroupedSimulationBasis):
        _validate_group_columns(
            list(frame.columns),
            basis.group_keys,
            {key: int(frame[key].isna().sum()) for key in basis.group_keys if key in frame.columns},
        ).raise_if_invalid()

    n_rows = len(frame)
    values = np.full((n_rows, len(variables)), np.nan)
    for j, name in enumerate(variables):
        if name in frame.columns:
            values[:, j] = numeric_column(frame, name)

    observed = ~np.isnan(values)

    # Rows without a basis of their own group are neither checked nor drawn
    dispatch: Dict[tuple, List[int]] = OrderedDict()
    if isinstance(basis, SimulationBasis):
        dispatch[()] = list(range(n_rows))
    else:
        for position, key in enumerate(row_keys(frame, basis.group_keys)):
            dispatch.setdefault(key, []).append(position)

        unmatched = [key for key in dispatch if key not in basis]
        if unmatched:
            n_unmatched = sum(len(dispatch[key]) for key in unmatched)
            warnings.warn(
                f"No simulation basis for group(s) {', '.join(map(repr, unmatched))} "
                f"({n_unmatched} row(s)); their simulated variables are left missing.",
                UserWarning,
                stacklevel=2,
            )
            for key in unmatched:
                del dispatch[key]

    covered = np.zeros(n_rows, dtype=bool)
    for positions in dispatch.values():
        covered[positions] = True
    no_observed = covered & ~observed.any(axis=1)
    if np.any(no_observed):
        first = frame.index[int(np.argmax(no_observed))]
        raise NoObservedVariablesError(
            f"Row {first!r} has no observed basis variable ({int(np.sum(no_observed))} such row(s)); nothing to condition on"
        )

    target_columns = [
        j for j, name in enumerate(variables) if name not in frame.columns or not observed[:, j].all()
    ]
    if not target_columns:
        return frame

    draws = rng.standard_normal((n_rows, len(target_columns)))
    slot = {j: k for k, j in enumerate(target_columns)}

    for key, positions in dispatch.items():
        if positions:
            group_basis = basis if isinstance(basis, SimulationBasis) else basis[key]
            group = None if isinstance(basis, SimulationBasis) else key
            _fill_targets(values, observed, np.asarray(positions), group_basis, draws, slot, group=group)

    # Observed cells of existing columns were copied into ``values`` unchanged
    for j in target_columns:
        frame[variables[j]] = values[:, j]
    return frame


def _fill_targets(
    values: np.ndarray,
    observed: np.ndarray,
    positions: np.ndarray,
    basis: SimulationBasis,
    draws: np.ndarray,
    slot: Dict[int, int],
    group: Optional[tuple],
) -> None:
    """Draw target cells of *positions* in place, one pattern at a time."""
    transforms = [basis.transforms[name] for name in basis.variables]
    mean = basis.mean
    cov = basis.covariance

    patterns = observed[positions]
    unique_patterns, inverse = np.unique(patterns, axis=0, return_inverse=True)
    inverse = np.asarray(inverse).reshape(-1)

    for p, pattern in enumerate(unique_patterns):
        target = np.flatnonzero(~pattern)
        if target.size == 0:
            continue
        obs = np.flatnonzero(pattern)
        rows = positions[inverse == p]

        x_obs = np.empty((rows.size, obs.size))
        for k, j in enumerate(obs):
            try:
                x_obs[:, k] = transforms[j].forward(values[rows, j], variable=basis.variables[j])
            except DomainError as e:
                raise e.with_context(group=group) from None

        try:
            coefficients, conditional_cov = conditional_normal(cov, obs, target)
        except np.linalg.LinAlgError:
            raise SingularCovarianceError(
                f"Covariance of observed variables ({', '.join(basis.variables[j] for j in obs)}) is singular",
                group=group,
            ) from None

        cond_mean = mean[target] + (x_obs - mean[obs]) @ coefficients.T
        z = draws[np.ix_(rows, [slot[j] for j in target])]
        simulated = cond_mean + z @ matrix_sqrt(conditional_cov).T

        for k, j in enumerate(target):
            values[rows, j] = transforms[j].inverse(simulated[:, k])
