"""
Multivariate-normal helpers: matrix square roots and Gaussian conditioning.
"""

from typing import Sequence, Tuple

import numpy as np
from scipy.linalg import cho_factor, cho_solve

FLOAT_NEAR_ZERO = 1e-15


def matrix_sqrt(cov: np.ndarray) -> np.ndarray:
    """Return ``L`` with ``L @ L.T == cov``.

    Uses the Cholesky factor, falling back to an eigen-decomposition with
    clipped eigenvalues for positive semi-definite (rank-deficient) input.
    """
    if cov.size == 0:
        return np.zeros_like(cov)
    try:
        return np.linalg.cholesky(cov)
    except np.linalg.LinAlgError:
        eigenvals, eigenvecs = np.linalg.eigh((cov + cov.T) / 2)
        eigenvals = np.maximum(eigenvals, FLOAT_NEAR_ZERO)
        return eigenvecs @ np.diag(np.sqrt(eigenvals))


def conditional_normal(
    cov: np.ndarray,
    observed: Sequence[int],
    target: Sequence[int],
) -> Tuple[np.ndarray, np.ndarray]:
    """Conditional-distribution operators of a Gaussian.

    For ``x ~ N(mu, cov)`` split into observed ``o`` and target ``t``
    blocks, the target given the observed values is Gaussian with

    - mean ``mu_t + B @ (x_o - mu_o)`` where ``B = S_to S_oo^-1``
    - covariance ``S_tt - B @ S_ot``

    Args:
        cov: Full covariance matrix.
        observed: Indices of the observed block (non-empty).
        target: Indices of the target block.

    Returns:
        ``(B, conditional_cov)`` with shapes ``(len(target), len(observed))``
        and ``(len(target), len(target))``.

    Raises:
        numpy.linalg.LinAlgError: If ``S_oo`` is not positive definite.
    """
    observed = np.asarray(observed, dtype=int)
    target = np.asarray(target, dtype=int)

    s_oo = cov[np.ix_(observed, observed)]
    s_ot = cov[np.ix_(observed, target)]
    s_tt = cov[np.ix_(target, target)]

    if np.any(np.diag(s_oo) <= 0):
        raise np.linalg.LinAlgError("observed covariance block has a zero-variance variable")

    factor = cho_factor(s_oo, lower=True, check_finite=True)
    # S_oo^-1 S_ot, transposed gives B = S_to S_oo^-1 (S_oo symmetric)
    coefficients = cho_solve(factor, s_ot).T
    conditional_cov = s_tt - coefficients @ s_ot
    conditional_cov = (conditional_cov + conditional_cov.T) / 2

    return coefficients, conditional_cov
