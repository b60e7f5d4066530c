"""
Whole-dataset simulation.

Generates the anchor variables of every subsample with the requested
moments, then derives the remaining correlated variables with the
conditional simulator.

Random draw order (the reproducibility contract), all from one
``RandomState``:

1. per subsample definition, in definition order,
2. per anchor variable, in the definition's target order,
   ``n_i`` standard normals;
3. then the conditional simulator's draws (one vector per row, in row
   order), see ``timbersim.core.conditional``.
"""

import warnings
from typing import Callable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.utils import check_random_state

from ..errors import InvalidSubsampleDefinitionError
from ..progress import ProgressReporter
from ..stats.moments import ExactMomentSampler, MomentSampler
from ..stats.transforms import Transform, TransformSpec, get_transform
from .conditional import simulate_conditionally
from .defaults import DEFAULT_N, default_simbase, default_subsamples
from .grouped import GroupedSimulationBasis
from .simbase import SimulationBasis
from .subsamples import SubsampleDefinition, allocate_rows, subsamples_from_table, validate_subsamples

INDEX_COLUMN = "subsample_index"


def simulate_dataset(
    subsamples: Optional[Union[Sequence[SubsampleDefinition], pd.DataFrame]] = None,
    basis: Optional[Union[SimulationBasis, GroupedSimulationBasis]] = None,
    n: Optional[int] = DEFAULT_N,
    random_seed: Optional[Union[int, np.random.RandomState]] = None,
    sampler: Optional[MomentSampler] = None,
    anchor_transforms: Optional[Mapping[str, TransformSpec]] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> pd.DataFrame:
    """Simulate a complete dataset of boards.

    Args:
        subsamples: Subsample definitions (default: ``default_subsamples()``).
            A DataFrame is read with ``subsamples_from_table`` using every
            column that is not ``<anchor>_mean``/``<anchor>_sd`` or
            ``weight`` as a key column.
        basis: Basis for the derived variables (default:
            ``default_simbase()``). A grouped basis must be keyed by key
            columns of the definitions.
        n: Total number of rows, split over the definitions by weight
            (largest remainder). ``None`` uses the weights as row counts.
        random_seed: Seed or ``RandomState``; ``None`` uses fresh entropy.
        sampler: Anchor sampling strategy (default: ``ExactMomentSampler``).
        anchor_transforms: Transform per anchor variable; defaults to the
            basis transform of that variable, else identity.
        progress_callback: Called as ``callback(current, total)`` with row
            steps (see ``timbersim.progress``): a subsample's rows after its
            anchors are drawn, all rows again after the conditional step.

    Returns:
        DataFrame with ``subsample_index``, the key columns, the anchor
        variables and every basis variable not among them, with rows grouped
        by definition in definition order.

    Raises:
        InvalidSubsampleDefinitionError: For inconsistent or unattainable
            definitions (see ``validate_subsamples``), or grouping columns of
            a grouped basis that are not definition keys.
        SimulationError: Propagated from the conditional simulator.

    Example:
        >>> boards = simulate_dataset(n=5000, random_seed=2137)
        >>> boards.groupby("subsample")["f"].agg(["mean", "std"])
    """
    if subsamples is None:
        subsamples = default_subsamples()
    elif isinstance(subsamples, pd.DataFrame):
        subsamples = _definitions_from_frame(subsamples)
    subsamples = list(subsamples)

    if basis is None:
        basis = default_simbase()
    if not isinstance(basis, (SimulationBasis, GroupedSimulationBasis)):
        raise TypeError(f"basis must be a SimulationBasis or GroupedSimulationBasis, got {type(basis).__name__}")
    sampler = sampler if sampler is not None else ExactMomentSampler()

    # Anchors follow the first definition; consistency is checked below
    first_anchors = list(subsamples[0].targets) if subsamples and isinstance(subsamples[0], SubsampleDefinition) else []
    transforms = _anchor_transforms(first_anchors, basis, anchor_transforms)
    log_anchors = [name for name, t in transforms.items() if t is Transform.LOG]
    key_columns, anchors = validate_subsamples(subsamples, log_anchors=log_anchors)

    if isinstance(basis, GroupedSimulationBasis):
        _check_grouped_basis(basis, key_columns, subsamples)

    try:
        counts = allocate_rows([d.effective_weight for d in subsamples], n)
    except ValueError as e:
        raise InvalidSubsampleDefinitionError(str(e)) from None

    rng = check_random_state(random_seed)
    progress = None
    if progress_callback is not None:
        # anchors and derived variables each count one step per row
        progress = ProgressReporter(2 * sum(counts), progress_callback)
        progress.start()

    frames = []
    for i, (definition, n_i) in enumerate(zip(subsamples, counts)):
        if n_i < sampler.min_rows:
            raise InvalidSubsampleDefinitionError(
                f"allocated {n_i} row(s), {type(sampler).__name__} needs at least {sampler.min_rows}", definition=i
            )
        columns = {INDEX_COLUMN: np.full(n_i, i, dtype=int)}
        for key, value in definition.keys.items():
            columns[key] = [value] * n_i
        for name in anchors:
            mean, sd = definition.targets[name]
            try:
                columns[name] = sampler.sample(n_i, mean, sd, transforms[name], rng)
            except ValueError as e:
                raise InvalidSubsampleDefinitionError(str(e), variable=name, definition=i) from None
        frames.append(pd.DataFrame(columns))
        if progress is not None:
            progress.advance(n_i)

    anchor_data = pd.concat(frames, ignore_index=True)
    result = simulate_conditionally(anchor_data, basis, random_state=rng)

    if progress is not None:
        progress.advance(len(result))
        progress.finish()
    return result


def _anchor_transforms(
    anchors: List[str],
    basis: Union[SimulationBasis, GroupedSimulationBasis],
    overrides: Optional[Mapping[str, TransformSpec]],
) -> dict:
    overrides = dict(overrides or {})
    unknown = [name for name in overrides if name not in anchors]
    if unknown:
        raise ValueError(f"anchor_transforms given for non-anchor variable(s): {', '.join(unknown)}")

    transforms = {}
    for name in anchors:
        if name in overrides:
            transforms[name] = get_transform(overrides[name])
        elif name in basis.variables:
            transforms[name] = basis.transforms[name]
        else:
            transforms[name] = Transform.IDENTITY
    return transforms


def _check_grouped_basis(
    basis: GroupedSimulationBasis,
    key_columns: List[str],
    subsamples: List[SubsampleDefinition],
) -> None:
    missing = [key for key in basis.group_keys if key not in key_columns]
    if missing:
        raise InvalidSubsampleDefinitionError(
            f"grouped basis is keyed by {', '.join(missing)}, which the subsample definitions do not define "
            f"(key columns: {', '.join(key_columns) or 'none'})"
        )

    wanted = {tuple(d.keys[key] for key in basis.group_keys) for d in subsamples}
    unused = [key for key in basis if key not in wanted]
    if unused:
        warnings.warn(
            f"Basis group(s) {', '.join(map(repr, unused))} match no subsample definition and are unused.",
            UserWarning,
            stacklevel=3,
        )


def _definitions_from_frame(table: pd.DataFrame) -> List[SubsampleDefinition]:
    """Read definitions from a DataFrame, inferring anchors and key columns."""
    anchors = [column[: -len("_mean")] for column in table.columns if str(column).endswith("_mean")]
    target_columns = {f"{a}_{stat}" for a in anchors for stat in ("mean", "sd")}
    weight_column = "weight" if "weight" in table.columns else None
    key_columns = [c for c in table.columns if c not in target_columns and c != weight_column]
    return subsamples_from_table(table, key_columns, anchors=anchors, weight_column=weight_column)
