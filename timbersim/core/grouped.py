"""
Grouped simulation basis (simbase list).

Maps group-key tuples (values of one or more grouping columns, e.g.
``country``) to individual ``SimulationBasis`` objects so that each stratum
keeps its own covariance structure.
"""

import warnings
from collections import OrderedDict, abc
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from ..errors import DomainError, InsufficientDataError
from ..utils.data_input import normalize_dataset, row_keys
from ..utils.validators import _validate_group_columns, _validate_variables
from .simbase import SimulationBasis, TransformsArg, build_basis

GroupKey = Tuple[Any, ...]


def _normalize_key(key: Any) -> GroupKey:
    """Scalar keys become 1-tuples; tuples and lists become tuples."""
    if isinstance(key, tuple):
        return key
    if isinstance(key, list):
        return tuple(key)
    return (key,)


class GroupedSimulationBasis(abc.Mapping):
    """Ordered, immutable mapping ``group-key tuple -> SimulationBasis``.

    All member bases share the same variables and transforms. Lookup
    accepts scalar keys for single-column groupings (``grouped["AT"]`` is
    ``grouped[("AT",)]``).

    Attributes:
        group_keys: Names of the grouping columns, in key-tuple order.
        skipped: Groups omitted during construction, mapped to the reason
            (only populated by ``build_grouped_basis(on_error="skip")``).
    """

    def __init__(
        self,
        group_keys: Sequence[str],
        bases: Mapping[Any, SimulationBasis],
        skipped: Optional[Mapping[Any, str]] = None,
    ):
        """Initialise from a mapping of group keys to bases.

        Args:
            group_keys: Grouping column names.
            bases: Group key (tuple, or scalar for one grouping column) to
                ``SimulationBasis``.
            skipped: Optional record of groups left out and why.

        Raises:
            ValueError: If there are no bases, a key has the wrong length,
                keys repeat, or member bases disagree on variables or
                transforms.
        """
        if isinstance(group_keys, str):
            group_keys = [group_keys]
        _validate_variables(list(group_keys)).raise_if_invalid()
        self.group_keys: Tuple[str, ...] = tuple(group_keys)

        if not bases:
            raise ValueError("A grouped basis needs at least one group")

        ordered: "OrderedDict[GroupKey, SimulationBasis]" = OrderedDict()
        for raw_key, basis in bases.items():
            key = _normalize_key(raw_key)
            if len(key) != len(self.group_keys):
                raise ValueError(f"Group key {key!r} has {len(key)} value(s), expected {len(self.group_keys)} for {list(self.group_keys)}")
            if key in ordered:
                raise ValueError(f"Duplicate group key {key!r}")
            if not isinstance(basis, SimulationBasis):
                raise TypeError(f"Group {key!r}: expected SimulationBasis, got {type(basis).__name__}")
            ordered[key] = basis

        first_key, first = next(iter(ordered.items()))
        for key, basis in ordered.items():
            if basis.variables != first.variables:
                raise ValueError(f"Group {key!r} has variables {list(basis.variables)}, group {first_key!r} has {list(first.variables)}")
            if dict(basis.transforms) != dict(first.transforms):
                raise ValueError(f"Group {key!r} transforms differ from group {first_key!r}")

        self._bases = ordered
        self.skipped: Mapping[GroupKey, str] = MappingProxyType({_normalize_key(k): v for k, v in (skipped or {}).items()})

    # Mapping protocol

    def __getitem__(self, key) -> SimulationBasis:
        return self._bases[_normalize_key(key)]

    def __iter__(self) -> Iterator[GroupKey]:
        return iter(self._bases)

    def __len__(self) -> int:
        return len(self._bases)

    def __contains__(self, key) -> bool:
        return _normalize_key(key) in self._bases

    # Shared schema

    @property
    def variables(self) -> Tuple[str, ...]:
        """Variables shared by every member basis."""
        return next(iter(self._bases.values())).variables

    @property
    def transforms(self) -> Mapping:
        """Transforms shared by every member basis."""
        return next(iter(self._bases.values())).transforms

    def rename(self, mapping: Mapping[str, str]) -> "GroupedSimulationBasis":
        """Return a copy with every member basis renamed (see ``SimulationBasis.rename``)."""
        return GroupedSimulationBasis(
            self.group_keys,
            OrderedDict((key, basis.rename(mapping)) for key, basis in self._bases.items()),
            skipped=self.skipped,
        )

    def __repr__(self):
        return f"GroupedSimulationBasis(group_keys={list(self.group_keys)}, groups={len(self)}, variables={list(self.variables)})"


def build_grouped_basis(
    reference_data,
    group_keys: Sequence[str],
    variables: List[str],
    transforms: TransformsArg = None,
    on_error: str = "raise",
) -> GroupedSimulationBasis:
    """Build one ``SimulationBasis`` per distinct combination of *group_keys*.

    Groups are visited in order of first appearance in *reference_data*.

    Args:
        reference_data: DataFrame (or dict of columns) with the grouping
            columns and the numeric *variables*.
        group_keys: Grouping column name(s).
        variables: Variables of every member basis.
        transforms: Per-variable transforms, shared by all groups.
        on_error: ``"raise"`` re-raises the first group failure with the
            group attached; ``"skip"`` leaves failing groups out, records
            them in ``skipped`` and warns once per group.

    Raises:
        ValueError: For missing or incompletely populated grouping columns,
            an unknown *on_error*, or when every group was skipped.
        InsufficientDataError, DomainError: From ``build_basis`` when
            ``on_error="raise"``, with ``group`` set.
    """
    if on_error not in ("raise", "skip"):
        raise ValueError(f"on_error must be 'raise' or 'skip', got {on_error!r}")
    if isinstance(group_keys, str):
        group_keys = [group_keys]

    frame = normalize_dataset(reference_data)
    _validate_group_columns(
        list(frame.columns),
        group_keys,
        {key: int(frame[key].isna().sum()) for key in group_keys if key in frame.columns},
    ).raise_if_invalid()
    overlap = [key for key in group_keys if key in variables]
    if overlap:
        raise ValueError(f"Grouping column(s) cannot also be basis variables: {', '.join(overlap)}")

    partitions: Dict[GroupKey, List[int]] = OrderedDict()
    for position, key in enumerate(row_keys(frame, group_keys)):
        partitions.setdefault(key, []).append(position)

    bases: "OrderedDict[GroupKey, SimulationBasis]" = OrderedDict()
    skipped: Dict[GroupKey, str] = {}
    for key, positions in partitions.items():
        try:
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                bases[key] = build_basis(frame.iloc[positions], variables, transforms)
        except (InsufficientDataError, DomainError) as e:
            if on_error == "raise":
                raise e.with_context(group=key) from None
            skipped[key] = str(e)
            warnings.warn(f"Group {key!r} skipped: {e}", UserWarning, stacklevel=2)
            continue
        for w in caught:
            warnings.warn(f"Group {key!r}: {w.message}", w.category, stacklevel=2)

    if not bases:
        raise ValueError(f"No group produced a simulation basis ({len(skipped)} group(s) skipped)")

    return GroupedSimulationBasis(group_keys, bases, skipped=skipped)
