"""timbersim - simulation of correlated sawn-timber properties.

Builds covariance-based simulation bases (simbases) from reference data,
optionally per group, and uses Gaussian conditioning to simulate complete
datasets or to extend existing datasets with correlated variables.

Example:
    >>> from timbersim import simulate_dataset, build_basis, simulate_conditionally
    >>>
    >>> boards = simulate_dataset(n=5000, random_seed=2137)
    >>> basis = build_basis(boards, ["f", "E", "rho"], transforms="f=log")
    >>> augmented = simulate_conditionally(boards[["f", "E"]], basis, random_state=1)
"""

from importlib.metadata import version as _get_version

from .core import (
    GroupedSimulationBasis,
    SimulationBasis,
    SubsampleDefinition,
    allocate_rows,
    build_basis,
    build_grouped_basis,
    default_simbase,
    default_subsamples,
    simulate_conditionally,
    simulate_dataset,
    subsamples_from_table,
)
from .errors import (
    DomainError,
    InsufficientDataError,
    InvalidSubsampleDefinitionError,
    NoObservedVariablesError,
    SimulationError,
    SingularCovarianceError,
)
from .progress import PrintReporter, ProgressReporter, TqdmReporter
from .stats.moments import AsymptoticMomentSampler, ExactMomentSampler, MomentSampler
from .stats.transforms import Transform

__version__ = _get_version("timbersim")

__all__ = [
    "SimulationBasis",
    "GroupedSimulationBasis",
    "SubsampleDefinition",
    "build_basis",
    "build_grouped_basis",
    "simulate_conditionally",
    "simulate_dataset",
    "subsamples_from_table",
    "allocate_rows",
    "default_simbase",
    "default_subsamples",
    "Transform",
    "MomentSampler",
    "ExactMomentSampler",
    "AsymptoticMomentSampler",
    "SimulationError",
    "DomainError",
    "InsufficientDataError",
    "SingularCovarianceError",
    "NoObservedVariablesError",
    "InvalidSubsampleDefinitionError",
    "ProgressReporter",
    "PrintReporter",
    "TqdmReporter",
]
