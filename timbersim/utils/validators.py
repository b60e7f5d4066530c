"""
Validation utilities for timbersim.

This module provides validation functions for simulation inputs,
parameters, and mathematical constraints.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Type, Union

import numpy as np

__all__ = []


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self, error_cls: Type[Exception] = ValueError, **context):
        """Raise ``error_cls`` if the validation failed.

        Extra keyword arguments are forwarded to ``error_cls`` (used for the
        ``variable`` / ``group`` / ``definition`` context of simulation errors).
        """
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise error_cls(error_msg, **context)


class _Validator:
    """Static helpers for type and range checks used by all validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type."""
        if isinstance(value, bool) or not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_range(
        value: Union[int, float],
        min_val: Optional[float],
        max_val: Optional[float],
        name: str,
        exclusive_min: bool = False,
    ) -> Optional[str]:
        """Check if value is within range."""
        if min_val is not None:
            if exclusive_min and value <= min_val:
                return f"{name} must be > {min_val}, got {value}"
            if not exclusive_min and value < min_val:
                return f"{name} must be >= {min_val}, got {value}"
        if max_val is not None and value > max_val:
            return f"{name} must be <= {max_val}, got {value}"
        return None


_validator = _Validator()


def _validate_numeric_parameter(
    value: Any,
    name: str,
    expected_types: tuple = (int, float, np.integer, np.floating),
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
    exclusive_min: bool = False,
) -> _ValidationResult:
    """Generic validation for numeric parameters (finite, typed, in range)."""
    errors: List[str] = []

    type_error = _validator._check_type(value, expected_types, name)
    if type_error:
        return _ValidationResult(False, [type_error], [])

    if not np.isfinite(value):
        return _ValidationResult(False, [f"{name} must be finite, got {value}"], [])

    range_error = _validator._check_range(value, min_val, max_val, name, exclusive_min)
    if range_error:
        errors.append(range_error)

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_sample_size(n: Any) -> _ValidationResult:
    """Validate the total number of rows to simulate (positive integer)."""
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        return _ValidationResult(False, [f"n must be an integer, got {type(n).__name__}"], [])
    if n < 1:
        return _ValidationResult(False, [f"n must be at least 1, got {n}"], [])
    return _ValidationResult(True, [], [])


def _validate_variables(variables: Any, available: Optional[Sequence[str]] = None) -> _ValidationResult:
    """Validate a variable list: non-empty, distinct strings, optionally present in ``available``."""
    errors: List[str] = []

    if isinstance(variables, str) or not isinstance(variables, (list, tuple)):
        return _ValidationResult(False, [f"variables must be a list of names, got {type(variables).__name__}"], [])
    if len(variables) == 0:
        return _ValidationResult(False, ["variables must not be empty"], [])

    seen = set()
    for name in variables:
        if not isinstance(name, str):
            errors.append(f"Variable names must be strings, got {name!r}")
        elif name in seen:
            errors.append(f"Variable '{name}' listed more than once")
        seen.add(name)

    if available is not None:
        missing = [name for name in variables if name not in available]
        if missing:
            errors.append(f"Column(s) not found: {', '.join(map(str, missing))}. Available: {', '.join(map(str, available))}")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_moments(mean: np.ndarray, sd: np.ndarray, n_vars: int) -> _ValidationResult:
    """Validate per-variable mean/sd vectors for a basis of ``n_vars`` variables."""
    errors: List[str] = []

    if mean.shape != (n_vars,):
        errors.append(f"mean must have {n_vars} entries, got shape {mean.shape}")
    elif not np.all(np.isfinite(mean)):
        errors.append("mean entries must be finite")

    if sd.shape != (n_vars,):
        errors.append(f"sd must have {n_vars} entries, got shape {sd.shape}")
    elif not np.all(np.isfinite(sd)) or np.any(sd < 0):
        errors.append("sd entries must be finite and non-negative")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_correlation_matrix(
    corr_matrix: Optional[np.ndarray],
    n_vars: Optional[int] = None,
) -> _ValidationResult:
    """Validate correlation matrix meets mathematical requirements."""
    errors = []

    if corr_matrix is None:
        errors.append("Correlation matrix is None")
        return _ValidationResult(False, errors, [])

    # Shape check
    if corr_matrix.ndim != 2 or corr_matrix.shape[0] != corr_matrix.shape[1]:
        errors.append("Correlation matrix must be square")
        return _ValidationResult(False, errors, [])

    if n_vars is not None and corr_matrix.shape[0] != n_vars:
        errors.append(f"Correlation matrix must be {n_vars}x{n_vars}, got {corr_matrix.shape[0]}x{corr_matrix.shape[1]}")
        return _ValidationResult(False, errors, [])

    if not np.all(np.isfinite(corr_matrix)):
        errors.append("Correlation matrix entries must be finite")
        return _ValidationResult(False, errors, [])

    # Diagonal check
    if not np.allclose(np.diag(corr_matrix), 1.0):
        errors.append("Diagonal elements of correlation matrix must be 1")

    # Symmetry check
    if not np.allclose(corr_matrix, corr_matrix.T):
        errors.append("Correlation matrix must be symmetric")

    # Range check
    if np.any(np.abs(corr_matrix) > 1 + 1e-12):
        errors.append("All correlations must be between -1 and 1")

    # Positive semi-definite check
    try:
        eigenvals = np.linalg.eigvalsh((corr_matrix + corr_matrix.T) / 2)
        if np.any(eigenvals < -1e-8):  # Tolerance for floating point noise
            errors.append("Correlation matrix must be positive semi-definite")
    except np.linalg.LinAlgError:
        errors.append("Cannot compute eigenvalues of correlation matrix")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_group_columns(columns: Sequence[str], group_keys: Sequence[str], missing_counts: Optional[dict] = None) -> _ValidationResult:
    """Validate that grouping columns exist and are fully populated.

    Args:
        columns: Columns available in the dataset.
        group_keys: Required grouping columns.
        missing_counts: Optional ``{column: n_missing}`` for present columns.
    """
    errors: List[str] = []
    absent = [key for key in group_keys if key not in columns]
    if absent:
        errors.append(f"Grouping column(s) not found in dataset: {', '.join(absent)}")

    for key, count in (missing_counts or {}).items():
        if count:
            errors.append(f"Grouping column '{key}' has {count} missing value(s); grouping columns must be fully populated")

    return _ValidationResult(len(errors) == 0, errors, [])
