"""Core components of the timbersim simulation engine.

Re-exports the building blocks:

- ``SimulationBasis``, ``build_basis``: covariance-based simulation basis.
- ``GroupedSimulationBasis``, ``build_grouped_basis``: per-group bases.
- ``simulate_conditionally``: Gaussian conditional simulation.
- ``SubsampleDefinition``, ``allocate_rows``, ``subsamples_from_table``:
  subsample targets for whole-dataset simulation.
- ``simulate_dataset``: whole-dataset simulation.
- ``default_simbase``, ``default_subsamples``: built-in defaults.
"""

from .conditional import simulate_conditionally
from .dataset import simulate_dataset
from .defaults import DEFAULT_N, default_simbase, default_subsamples
from .grouped import GroupedSimulationBasis, build_grouped_basis
from .simbase import SimulationBasis, build_basis
from .subsamples import SubsampleDefinition, allocate_rows, subsamples_from_table, validate_subsamples

__all__ = [
    # Bases
    "SimulationBasis",
    "build_basis",
    "GroupedSimulationBasis",
    "build_grouped_basis",
    # Simulation
    "simulate_conditionally",
    "simulate_dataset",
    # Subsamples
    "SubsampleDefinition",
    "allocate_rows",
    "subsamples_from_table",
    "validate_subsamples",
    # Defaults
    "DEFAULT_N",
    "default_simbase",
    "default_subsamples",
]
