"""
Shared pytest fixtures for timbersim tests.
"""

import numpy as np
import pandas as pd
import pytest

from tests.config import N_REFERENCE, REF_CORRELATION, REF_E, REF_LOG_F, REF_RHO, SEED


def make_reference_boards(n=N_REFERENCE, seed=SEED):
    """Reference boards with log-normal f and normal E, rho (correlated)."""
    rng = np.random.RandomState(seed)
    z = rng.standard_normal((n, 3)) @ np.linalg.cholesky(np.array(REF_CORRELATION)).T
    return pd.DataFrame(
        {
            "f": np.exp(REF_LOG_F[0] + REF_LOG_F[1] * z[:, 0]),
            "E": REF_E[0] + REF_E[1] * z[:, 1],
            "rho": REF_RHO[0] + REF_RHO[1] * z[:, 2],
        }
    )


@pytest.fixture
def reference_boards():
    """5000 reference boards with columns f, E, rho."""
    return make_reference_boards()


@pytest.fixture
def grouped_reference_boards():
    """Reference boards for two countries with different stiffness levels."""
    at = make_reference_boards(n=400, seed=SEED)
    at.insert(0, "country", "AT")
    de = make_reference_boards(n=300, seed=SEED + 1)
    de["E"] = de["E"] + 1500.0
    de.insert(0, "country", "DE")
    return pd.concat([at, de], ignore_index=True)


@pytest.fixture
def basis_3x3():
    """Supplied-moments basis over f (log), E, rho."""
    from timbersim import SimulationBasis

    return SimulationBasis.from_moments(
        ["f", "E", "rho"],
        mean=[REF_LOG_F[0], REF_E[0], REF_RHO[0]],
        sd=[REF_LOG_F[1], REF_E[1], REF_RHO[1]],
        correlation=REF_CORRELATION,
        transforms={"f": "log"},
    )


@pytest.fixture
def correlation_matrix_3x3():
    """Valid 3x3 correlation matrix."""
    return np.array(REF_CORRELATION)


@pytest.fixture
def two_subsamples():
    """Two subsample definitions keyed by country."""
    from timbersim import SubsampleDefinition

    return [
        SubsampleDefinition(keys={"country": "AT"}, targets={"f": (32.0, 9.0), "E": (11000.0, 2300.0), "rho": (440.0, 45.0)}),
        SubsampleDefinition(keys={"country": "DE"}, targets={"f": (38.0, 10.0), "E": (12000.0, 2500.0), "rho": (460.0, 50.0)}),
    ]
