"""
Subsample definitions for whole-dataset simulation.

A subsample is a group of simulated boards sharing constant grouping-key
values (country, load type, or custom columns such as width/thickness)
and target mean/sd per anchor variable.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import InvalidSubsampleDefinitionError
from ..utils.data_input import normalize_dataset
from ..utils.parsers import _parse_targets
from ..utils.validators import _validate_numeric_parameter, _validate_sample_size

__all__ = ["SubsampleDefinition", "allocate_rows", "subsamples_from_table", "validate_subsamples"]


@dataclass(frozen=True)
class SubsampleDefinition:
    """Targets for one simulated subsample.

    Attributes:
        keys: Grouping column -> constant value for this subsample's rows.
        targets: Anchor variable -> ``(mean, sd)`` in natural units. An
            assignment string ``"f=35/9, E=11500/2400"`` is also accepted.
        weight: Relative share of the total row count, or the absolute row
            count when simulating with ``n=None``. ``None`` means an
            implicit weight of 1 (and marks the weight as not explicit).
    """

    keys: Mapping[str, Any]
    targets: Mapping[str, Tuple[float, float]]
    weight: Optional[float] = None

    def __post_init__(self):
        targets = self.targets
        if isinstance(targets, str):
            targets = _parse_targets(targets)
        targets = {name: (float(mean), float(sd)) for name, (mean, sd) in dict(targets).items()}
        object.__setattr__(self, "keys", MappingProxyType(dict(self.keys)))
        object.__setattr__(self, "targets", MappingProxyType(targets))

    @property
    def effective_weight(self) -> float:
        return 1.0 if self.weight is None else self.weight

    @property
    def key_tuple(self) -> Tuple[Any, ...]:
        return tuple(self.keys.values())


def validate_subsamples(
    definitions: Sequence[SubsampleDefinition],
    log_anchors: Sequence[str] = (),
) -> Tuple[List[str], List[str]]:
    """Check a definition set for consistency.

    Args:
        definitions: Subsample definitions, in order.
        log_anchors: Anchor variables modelled on the log scale (their
            target means must be positive).

    Returns:
        ``(key_columns, anchors)`` shared by all definitions.

    Raises:
        InvalidSubsampleDefinitionError: Naming the offending definition.
    """
    if isinstance(definitions, SubsampleDefinition) or len(definitions) == 0:
        raise InvalidSubsampleDefinitionError("at least one subsample definition is required (as a list)")

    first = definitions[0]
    key_columns = list(first.keys)
    anchors = list(first.targets)
    if not anchors:
        raise InvalidSubsampleDefinitionError("no anchor targets given", definition=0)
    overlap = [name for name in anchors if name in key_columns]
    if overlap:
        raise InvalidSubsampleDefinitionError(f"column(s) used both as key and anchor: {', '.join(overlap)}", definition=0)

    seen: Dict[Tuple[Any, ...], int] = {}
    for i, definition in enumerate(definitions):
        if not isinstance(definition, SubsampleDefinition):
            raise InvalidSubsampleDefinitionError(f"expected SubsampleDefinition, got {type(definition).__name__}", definition=i)
        if list(definition.keys) != key_columns:
            raise InvalidSubsampleDefinitionError(
                f"key columns {list(definition.keys)} differ from {key_columns} of the first definition", definition=i
            )
        if list(definition.targets) != anchors:
            raise InvalidSubsampleDefinitionError(
                f"anchor variables {list(definition.targets)} differ from {anchors} of the first definition", definition=i
            )

        result = _validate_numeric_parameter(definition.effective_weight, "weight", min_val=0, exclusive_min=True)
        result.raise_if_invalid(InvalidSubsampleDefinitionError, definition=i)

        for name, (mean, sd) in definition.targets.items():
            _validate_numeric_parameter(mean, f"{name} mean").raise_if_invalid(
                InvalidSubsampleDefinitionError, variable=name, definition=i
            )
            _validate_numeric_parameter(sd, f"{name} sd", min_val=0).raise_if_invalid(
                InvalidSubsampleDefinitionError, variable=name, definition=i
            )
            if name in log_anchors and mean <= 0:
                raise InvalidSubsampleDefinitionError(
                    f"log-transformed anchor needs a positive mean, got {mean}", variable=name, definition=i
                )

        key = definition.key_tuple
        if key in seen:
            other = seen[key]
            if definition.weight is None or definitions[other].weight is None:
                raise InvalidSubsampleDefinitionError(
                    f"keys {dict(definition.keys)} duplicate definition {other}; give both explicit weights to keep them apart",
                    definition=i,
                )
        else:
            seen[key] = i

    return key_columns, anchors


def allocate_rows(weights: Sequence[float], n: Optional[int]) -> List[int]:
    """Split *n* rows proportionally to *weights* (largest-remainder method).

    Each definition first gets ``floor(n * w / sum(w))`` rows; the rows
    left over go one each to the largest fractional remainders, ties broken
    in definition order. The counts always sum to *n*.

    With ``n=None`` the weights are used as absolute row counts and must be
    whole numbers.

    Raises:
        ValueError: For non-positive weights, a non-integer *n*, or
            fractional weights when ``n=None``.
    """
    weights = np.asarray(weights, dtype=float)
    if weights.size == 0 or np.any(~np.isfinite(weights)) or np.any(weights <= 0):
        raise ValueError("weights must be positive and finite")

    if n is None:
        if np.any(weights != np.round(weights)):
            raise ValueError("with n=None the weights are row counts and must be whole numbers")
        return [int(w) for w in weights]

    _validate_sample_size(n).raise_if_invalid()
    quotas = n * weights / weights.sum()
    counts = np.floor(quotas).astype(int)
    remainder = int(n - counts.sum())
    if remainder > 0:
        # stable sort keeps definition order among equal remainders
        order = np.argsort(-(quotas - counts), kind="stable")
        counts[order[:remainder]] += 1
    return counts.tolist()


def subsamples_from_table(
    table,
    key_columns: Sequence[str],
    anchors: Sequence[str] = ("f", "E", "rho"),
    weight_column: Optional[str] = None,
    filters: Optional[Mapping[str, Union[Any, Sequence[Any]]]] = None,
) -> List[SubsampleDefinition]:
    """Build definitions from a table of reference statistics.

    The table holds one row per subsample with the *key_columns*, and
    ``<anchor>_mean`` / ``<anchor>_sd`` columns for every anchor (e.g. a
    table of published statistics per country and load type).

    Args:
        table: DataFrame (or dict of columns).
        key_columns: Columns copied into every definition's keys.
        anchors: Anchor variables whose targets are read.
        weight_column: Optional column of weights (explicit weights).
        filters: Column -> allowed value (or list of allowed values);
            rows not matching every filter are dropped.

    Raises:
        ValueError: If columns are missing or no row survives the filters.
    """
    frame = normalize_dataset(table)
    if isinstance(key_columns, str):
        key_columns = [key_columns]

    for column, allowed in (filters or {}).items():
        if column not in frame.columns:
            raise ValueError(f"Filter column '{column}' not found in table")
        if isinstance(allowed, (list, tuple, set)):
            frame = frame[frame[column].isin(list(allowed))]
        else:
            frame = frame[frame[column] == allowed]

    required = list(key_columns) + [f"{a}_{stat}" for a in anchors for stat in ("mean", "sd")]
    if weight_column is not None:
        required.append(weight_column)
    missing = [column for column in required if column not in frame.columns]
    if missing:
        raise ValueError(f"Table is missing column(s): {', '.join(missing)}")
    if frame.empty:
        raise ValueError("No table rows match the given filters")

    definitions = []
    for _, row in frame.iterrows():
        definitions.append(
            SubsampleDefinition(
                keys={key: _plain(row[key]) for key in key_columns},
                targets={a: (float(row[f"{a}_mean"]), float(row[f"{a}_sd"])) for a in anchors},
                weight=None if weight_column is None else float(row[weight_column]),
            )
        )
    return definitions


def _plain(value):
    """numpy scalars -> Python scalars, so keys compare like dataset values."""
    return value.item() if isinstance(value, np.generic) else value
